from dataclasses import dataclass
from typing import Optional

from seamstamp.cli.config import CLIConfig


@dataclass
class CLIContext:
    """
    Context object that carries settings gathered by the CLI root
    to the subcommands. This object is passed around as a ``click`` context
    object.
    """

    config: Optional[CLIConfig] = None
    """
    Values for CLI configuration settings, if a configuration file was
    loaded.
    """

    verbose: bool = False
    """
    Whether the CLI runs in verbose mode.
    """

    def get_config(self) -> CLIConfig:
        return self.config if self.config is not None else CLIConfig()

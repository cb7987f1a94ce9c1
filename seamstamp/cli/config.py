from dataclasses import dataclass, field
from typing import Dict, Optional

import yaml
from pyhanko.config.errors import ConfigurationError
from pyhanko.config.logging import LogConfig, parse_logging_config

from seamstamp.cli.utils import merge_config
from seamstamp.options import StampingOptions


@dataclass
class CLIConfig:
    """
    CLI configuration settings.
    """

    stamping: Dict[str, object] = field(default_factory=dict)
    """
    Default values for the ``stamp`` command.
    The keys are those of :class:`~seamstamp.options.StampingOptions`,
    with nested sections ``seam``, ``page-stamp`` and ``signature``.
    Command line flags take precedence over these values.

    Callers should not process this information directly, but rely on
    :meth:`get_stamping_options` instead.
    """

    raw_config: dict = field(default_factory=dict)
    """
    The raw config data parsed into a Python dictionary.
    """

    def get_stamping_options(
        self, overrides: Optional[dict] = None
    ) -> StampingOptions:
        """
        Build stamping options from the configured defaults.

        :param overrides:
            Values that take precedence over the configured ones, in the same
            format as the ``stamping`` section of the configuration file.
        :return:
            A :class:`~seamstamp.options.StampingOptions` object.
        """
        settings = merge_config(self.stamping, overrides or {})
        return StampingOptions.from_config(settings)


@dataclass(frozen=True)
class CLIRootConfig:
    """
    Config settings that are only relevant to the CLI root and are not exposed
    to subcommands.
    """

    config: CLIConfig
    """
    General CLI config.
    """

    log_config: Dict[Optional[str], LogConfig]
    """
    Per-module logging configuration. The keys in this dictionary are
    module names, the :class:`.LogConfig` values define the logging settings.

    The ``None`` key houses the configuration for the root logger, if any.
    """


def parse_cli_config(yaml_str) -> CLIRootConfig:
    config_dict = yaml.safe_load(yaml_str) or {}
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            "The configuration file should contain a dictionary."
        )
    return CLIRootConfig(
        **process_root_config_settings(config_dict),
        config=CLIConfig(
            **process_config_dict(config_dict), raw_config=config_dict
        ),
    )


def process_root_config_settings(config_dict: dict) -> dict:
    # logging config
    log_config_spec = config_dict.get('logging', {})
    log_config = parse_logging_config(log_config_spec)
    return dict(log_config=log_config)


def process_config_dict(config_dict: dict) -> dict:
    stamping = config_dict.get('stamping', None) or {}
    if not isinstance(stamping, dict):
        raise ConfigurationError("'stamping' should be a dictionary.")
    return dict(stamping=stamping)

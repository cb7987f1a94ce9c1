from seamstamp.cli._root import cli_root
from seamstamp.cli.commands import *

__all__ = ['launch', 'cli_root']


def launch():
    cli_root(prog_name='seamstamp')

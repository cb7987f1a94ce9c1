import pytest
import yaml
from click.testing import CliRunner

from ..samples import FIVE_PAGES, write_file, write_seal_image

INPUT_PATH = 'input.pdf'
STAMP_PATH = 'seal.png'
OUTPUT_DIR = 'out'
STAMPED_OUTPUT_PATH = 'out/input_stamped.pdf'
DUMMY_PASSPHRASE = "secret"


# cli_runner is autouse to ensure it gets priority in the dependency graph
@pytest.fixture(scope="function", autouse=True)
def cli_runner():
    runner = CliRunner()
    with runner.isolated_filesystem():
        write_file(INPUT_PATH, FIVE_PAGES)
        write_seal_image(STAMP_PATH, 'PNG')
        yield runner


def _write_config(config: dict, fname: str = 'seamstamp.yml'):
    with open(fname, 'w') as outf:
        yaml.dump(config, outf)

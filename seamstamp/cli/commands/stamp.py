import threading

import click

from seamstamp.cli._ctx import CLIContext
from seamstamp.cli._root import cli_root
from seamstamp.cli.runtime import (
    cancel_on_interrupt,
    seamstamp_exception_manager,
)
from seamstamp.cli.utils import logger
from seamstamp.engine import StampProcessor

__all__ = ['stamp']


def _set_if_given(section: dict, key: str, value):
    if value is not None:
        section[key] = value


def _set_if_flagged(section: dict, key: str, flag: bool, value):
    # flags only override the configuration when they're actually passed
    if flag:
        section[key] = value


def _collect_overrides(params: dict) -> dict:
    overrides = {}
    inputs = list(params['input_paths']) + list(params['inputs'])
    if inputs:
        overrides['inputs'] = inputs
    _set_if_given(overrides, 'output-dir', params['output'])
    _set_if_flagged(overrides, 'overwrite', params['overwrite'], True)
    _set_if_given(overrides, 'output-suffix', params['suffix'])
    _set_if_given(overrides, 'stamp-image', params['stamp_image'])
    _set_if_flagged(overrides, 'recursive', params['recursive'], True)
    _set_if_given(overrides, 'width-mm', params['size_mm'])
    _set_if_given(overrides, 'rotation', params['rotation'])
    _set_if_flagged(overrides, 'keep-bounds', params['rotate_crop'], False)
    _set_if_given(overrides, 'opacity', params['opacity'])
    _set_if_flagged(
        overrides,
        'white-to-transparent',
        params['no_white_transparent'],
        False,
    )
    _set_if_given(overrides, 'input-password', params['input_password'])
    _set_if_given(overrides, 'output-password', params['encrypt_password'])

    seam = {}
    _set_if_given(seam, 'scope', params['seam_scope'])
    _set_if_given(seam, 'custom-pages', params['seam_pages'])
    _set_if_given(seam, 'side', params['seam_side'])
    _set_if_given(seam, 'edge-offset-percent', params['seam_offset'])
    _set_if_given(seam, 'max-slices-per-batch', params['seam_max_slices'])
    if seam:
        overrides['seam'] = seam

    page_stamp = {}
    _set_if_given(page_stamp, 'scope', params['page_scope'])
    _set_if_given(page_stamp, 'custom-pages', params['page_list'])
    _set_if_given(page_stamp, 'position', params['position'])
    _set_if_given(page_stamp, 'per-page-positions', params['position_map'])
    _set_if_flagged(
        page_stamp, 'randomize-per-page', params['random_offset'], True
    )
    if page_stamp:
        overrides['page-stamp'] = page_stamp

    signature = {}
    _set_if_given(signature, 'mode', params['sign_mode'])
    _set_if_given(signature, 'certificate-path', params['sign_pfx'])
    _set_if_given(signature, 'password', params['sign_pass'])
    _set_if_given(signature, 'self-signed-subject', params['sign_subject'])
    if signature:
        overrides['signature'] = signature
    return overrides


@cli_root.command(help='stamp PDF files with a seal image', name='stamp')
@click.argument('inputs', nargs=-1, type=click.Path())
@click.option(
    '-i',
    '--input',
    'input_paths',
    help='PDF file or directory to process (repeatable)',
    multiple=True,
    type=click.Path(),
)
@click.option(
    '-o',
    '--output',
    help='directory to write stamped files to; '
    'if omitted, files are stamped in place',
    required=False,
    type=click.Path(file_okay=False),
)
@click.option(
    '--overwrite',
    help='overwrite existing output files',
    is_flag=True,
    default=False,
)
@click.option(
    '--suffix',
    help='suffix for output file names [default: _stamped]',
    required=False,
    type=str,
)
@click.option(
    '-s',
    '--stamp-image',
    help='image to stamp with',
    required=False,
    type=click.Path(dir_okay=False),
)
@click.option(
    '--recursive',
    help='include PDF files in subdirectories of input directories',
    is_flag=True,
    default=False,
)
@click.option(
    '--size-mm',
    help='width of the stamp in millimetres [default: 40]',
    required=False,
    type=float,
)
@click.option(
    '--rotation',
    help='rotate the stamp image clockwise by this many degrees',
    required=False,
    type=int,
)
@click.option(
    '--rotate-crop',
    help='let the rotated stamp image grow to fit the rotated image, '
    'instead of keeping the original width',
    is_flag=True,
    default=False,
)
@click.option(
    '--opacity',
    help='stamp opacity in percent [default: 100]',
    required=False,
    type=click.IntRange(0, 100, clamp=True),
)
@click.option(
    '--no-white-transparent',
    help='do not make white pixels in the stamp image transparent',
    is_flag=True,
    default=False,
)
@click.option(
    '--input-password',
    help='password to unlock encrypted input files',
    required=False,
    type=str,
)
@click.option(
    '--encrypt-password',
    help='encrypt the output files with this password',
    required=False,
    type=str,
)
@click.option(
    '--seam-scope',
    help='pages that receive a seam stamp',
    required=False,
    type=click.Choice(['none', 'all', 'odd', 'even', 'custom']),
)
@click.option(
    '--seam-pages',
    help='pages for seam scope "custom", e.g. 1,3,5',
    required=False,
    type=str,
)
@click.option(
    '--seam-side',
    help='page edge for the seam stamp [default: right]',
    required=False,
    type=click.Choice(['left', 'right', 'top', 'bottom']),
)
@click.option(
    '--seam-offset',
    help='position of the seam stamp along the edge, in percent '
    '[default: 50]',
    required=False,
    type=float,
)
@click.option(
    '--seam-max-slices',
    help='maximum number of seam slices to process per batch '
    '[default: 20]',
    required=False,
    type=click.IntRange(min=1, clamp=True),
)
@click.option(
    '--page-scope',
    help='pages that receive a page stamp',
    required=False,
    type=click.Choice(['none', 'all', 'skip-first', 'skip-last', 'custom']),
)
@click.option(
    '--page-list',
    help='pages for page scope "custom", e.g. 1,3,5',
    required=False,
    type=str,
)
@click.option(
    '--position',
    help='page stamp position as x,y ratios [default: 0.5,0.5]',
    required=False,
    type=str,
)
@click.option(
    '--position-map',
    help='per-page stamp positions, e.g. 1@0.5,0.2;5@0.6,0.3',
    required=False,
    type=str,
)
@click.option(
    '--random-offset',
    help='slightly randomise the position and angle of each page stamp',
    is_flag=True,
    default=False,
)
@click.option(
    '--seed',
    help='seed for --random-offset, for reproducible output',
    required=False,
    type=int,
)
@click.option(
    '--sign-mode',
    help='sign the output files',
    required=False,
    type=click.Choice(
        ['none', 'self', 'selfsigned', 'self-signed', 'pfx', 'custom'],
        case_sensitive=False,
    ),
)
@click.option(
    '--sign-pfx',
    help='PKCS#12 file with the signing key and certificates',
    required=False,
    type=click.Path(dir_okay=False),
)
@click.option(
    '--sign-pass',
    help='password for the PKCS#12 file',
    required=False,
    type=str,
)
@click.option(
    '--sign-subject',
    help='subject for a self-signed certificate',
    required=False,
    type=str,
)
@click.pass_context
def stamp(ctx: click.Context, seed, **params):
    ctx_obj: CLIContext = ctx.obj
    with seamstamp_exception_manager():
        options = ctx_obj.get_config().get_stamping_options(
            _collect_overrides(params)
        )
        cancel = threading.Event()
        with cancel_on_interrupt(cancel):
            with StampProcessor(options, seed=seed) as processor:
                count = processor.execute(cancel)
        logger.debug(f"Processed {count} file(s)")
    click.echo(f"Stamped {count} file(s).")

"""
Resolution of input and output paths.
"""

import logging
import os
from typing import Iterable, Iterator, List

from .errors import DocumentError, StampResourceError

__all__ = [
    'is_pdf_path',
    'resolve_input_files',
    'compose_output_path',
    'ensure_output_path_valid',
]

logger = logging.getLogger(__name__)

PDF_EXTENSION = '.pdf'


def is_pdf_path(path: str) -> bool:
    return os.path.splitext(path)[1].lower() == PDF_EXTENSION


def _same_file_key(path: str) -> str:
    return os.path.normcase(os.path.abspath(path))


def _pdfs_in_directory(directory: str, recursive: bool) -> Iterator[str]:
    if recursive:
        for dirpath, _, filenames in os.walk(directory):
            for fname in filenames:
                if is_pdf_path(fname):
                    yield os.path.join(dirpath, fname)
    else:
        with os.scandir(directory) as entries:
            for entry in entries:
                if entry.is_file() and is_pdf_path(entry.name):
                    yield entry.path


def resolve_input_files(inputs: Iterable[str], recursive: bool) -> List[str]:
    """
    Expand a list of input paths into a list of PDF files.

    :param inputs:
        Paths to PDF files and/or directories containing PDF files.
    :param recursive:
        Whether to include PDF files in subdirectories of the input
        directories.
    :return:
        Absolute paths to PDF files, without duplicates. Files found in
        a directory are sorted by path, ignoring case.
    :raises StampResourceError:
        if no inputs were specified, if an input path does not exist,
        or if an input file is not a PDF file.
    """
    inputs = list(inputs)
    if not inputs:
        raise StampResourceError("At least one input path must be specified.")

    seen = set()
    results = []

    def _add(path):
        key = _same_file_key(path)
        if key not in seen:
            seen.add(key)
            results.append(path)

    for input_path in inputs:
        full_path = os.path.abspath(input_path)
        if os.path.isfile(full_path):
            if not is_pdf_path(full_path):
                raise StampResourceError(
                    f"Input file '{full_path}' is not a PDF file."
                )
            _add(full_path)
        elif os.path.isdir(full_path):
            found = sorted(
                _pdfs_in_directory(full_path, recursive), key=str.lower
            )
            logger.debug(f"Found {len(found)} PDF file(s) in {full_path}")
            for path in found:
                _add(os.path.abspath(path))
        else:
            raise StampResourceError(
                f"Input path '{full_path}' was not found."
            )
    return results


def compose_output_path(input_path: str, output_dir: str, suffix: str) -> str:
    """
    Determine the output path for an input file: the input file's name
    with ``suffix`` inserted before the extension, in ``output_dir``.
    """
    stem = os.path.splitext(os.path.basename(input_path))[0]
    return os.path.join(output_dir, f'{stem}{suffix}{PDF_EXTENSION}')


def ensure_output_path_valid(
    input_path: str, output_path: str, overwrite: bool
):
    """
    Check that writing to ``output_path`` doesn't clobber anything it
    shouldn't.

    :raises DocumentError:
        if the output path refers to the input file, or if the output file
        exists and ``overwrite`` is not set.
    """
    if _same_file_key(input_path) == _same_file_key(output_path):
        raise DocumentError(
            f"Output path '{output_path}' resolves to the input file. "
            f"Please choose a different output directory or suffix."
        )
    if not overwrite and os.path.exists(output_path):
        raise DocumentError(
            f"Output file '{output_path}' already exists. "
            f"Use --overwrite to replace it."
        )

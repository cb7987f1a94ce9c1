"""
Replacing files in place.

The new content is first written to a temporary file next to the target,
which is then moved over the target. If the file system doesn't allow that,
the temporary file is copied over the target instead.
Either way, the temporary file never outlives the operation.
"""

import logging
import os
import shutil
import stat
import uuid
from contextlib import contextmanager

__all__ = [
    'temporary_sibling_path',
    'commit_replacement',
    'safe_delete',
    'replacing',
]

logger = logging.getLogger(__name__)


def temporary_sibling_path(path: str) -> str:
    """
    Generate a fresh file name in the same directory as ``path``.

    The name is of the form ``<stem>.<random hex>.pdf``.
    """
    directory = os.path.dirname(os.path.abspath(path))
    stem = os.path.splitext(os.path.basename(path))[0]
    return os.path.join(directory, f'{stem}.{uuid.uuid4().hex}.pdf')


def safe_delete(path: str):
    """
    Delete a file if it exists. Errors are logged and otherwise ignored.
    """
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as e:
        logger.debug(f"Failed to delete temporary file {path}: {e}")


def _ensure_writable(path: str):
    try:
        mode = os.stat(path).st_mode
        if not mode & stat.S_IWRITE:
            os.chmod(path, mode | stat.S_IWRITE)
    except OSError as e:
        logger.debug(f"Could not clear read-only flag on {path}: {e}")


def commit_replacement(target: str, temp_path: str):
    """
    Replace ``target`` with ``temp_path``.

    An atomic rename is attempted first. If that fails, the target is made
    writable, the temporary file is copied over it and then deleted.
    If the fallback fails as well, the temporary file is deleted and the
    error is propagated.

    .. warning::
        The fallback is not atomic. If copying fails partway through,
        the target may be left truncated. Only a failed rename leaves
        the target untouched.

    :param target:
        The file to replace.
    :param temp_path:
        The file holding the new content.
    """
    try:
        os.replace(temp_path, target)
        return
    except (OSError, NotImplementedError) as e:
        logger.debug(
            f"Atomic replacement of {target} failed ({e}); "
            f"falling back to copying."
        )

    try:
        _ensure_writable(target)
        shutil.copyfile(temp_path, target)
        os.remove(temp_path)
    except Exception:
        safe_delete(temp_path)
        raise


@contextmanager
def replacing(target: str):
    """
    Context manager that yields a temporary path to write the new content
    of ``target`` to. When the block exits normally, the temporary file
    replaces the target. If an exception is raised, the temporary file is
    deleted and the target is left untouched.
    """
    temp_path = temporary_sibling_path(target)
    try:
        yield temp_path
        commit_replacement(target, temp_path)
    except BaseException:
        safe_delete(temp_path)
        raise

"""
Opening, modifying and writing the documents to be stamped.

Documents are modified through pyHanko's writer classes. By default, the
stamps are added in an incremental update, which preserves the original
document (including its encryption settings). If the output is to be
encrypted with a new password, all objects are copied into a fresh writer
instead.
"""

import logging
from contextlib import contextmanager
from typing import BinaryIO, Optional

from pyhanko.pdf_utils import crypt, generic, misc
from pyhanko.pdf_utils.incremental_writer import IncrementalPdfFileWriter
from pyhanko.pdf_utils.reader import PdfFileReader
from pyhanko.pdf_utils.writer import BasePdfFileWriter, copy_into_new_writer

from .errors import DocumentError
from .geometry import PageMetrics
from .stamp import ImageStamp

__all__ = ['StampingDocument', 'open_document']

logger = logging.getLogger(__name__)

# US Letter, used if a page tree doesn't specify a media box at all
DEFAULT_MEDIA_BOX = (0, 0, 612, 792)


def _inherited_attribute(page_obj: generic.DictionaryObject, key: str):
    node = page_obj
    while node is not None:
        try:
            return node[key]
        except KeyError:
            pass
        try:
            node = node['/Parent']
        except KeyError:
            node = None
    return None


class StampingDocument:
    """
    A document opened for stamping.

    :param writer:
        The writer that collects all modifications.
    :param name:
        Name of the document, for use in log messages.
    """

    def __init__(self, writer: BasePdfFileWriter, name: str = ''):
        self.writer = writer
        self.name = name
        self._isolated_pages = set()

    @property
    def page_count(self) -> int:
        return int(self.writer.root['/Pages']['/Count'])

    def _page_object(self, page_number: int) -> generic.DictionaryObject:
        if not 1 <= page_number <= self.page_count:
            raise DocumentError(
                f"Page {page_number} is out of range for document "
                f"'{self.name}' with {self.page_count} pages."
            )
        page_ref, _ = self.writer.find_page_for_modification(page_number - 1)
        return page_ref.get_object()

    def page_metrics(self, page_number: int) -> PageMetrics:
        """
        Determine the size and rotation of a page.

        :param page_number:
            The (1-based) page number.
        :return:
            A :class:`.PageMetrics` object.
        """
        page_obj = self._page_object(page_number)
        media_box = _inherited_attribute(page_obj, '/MediaBox')
        if media_box is None:
            logger.warning(
                f"Page {page_number} of '{self.name}' has no media box; "
                f"assuming US Letter size."
            )
            media_box = DEFAULT_MEDIA_BOX
        rotation = _inherited_attribute(page_obj, '/Rotate') or 0
        return PageMetrics.from_media_box(media_box, rotation)

    def _isolate_page_content(self, page_ix: int):
        # wrap the existing content in q/Q, so graphics state changes
        # on the page don't affect the stamps
        if page_ix in self._isolated_pages:
            return
        wr = self.writer
        wr.add_stream_to_page(
            page_ix,
            wr.add_object(generic.StreamObject(stream_data=b'q')),
            prepend=True,
        )
        wr.add_stream_to_page(
            page_ix, wr.add_object(generic.StreamObject(stream_data=b'Q'))
        )
        self._isolated_pages.add(page_ix)

    def stamp(
        self,
        page_number: int,
        stamp: ImageStamp,
        x: float,
        y: float,
        metrics: Optional[PageMetrics] = None,
        rotation: float = 0,
    ):
        """
        Draw a stamp on a page.

        :param page_number:
            The (1-based) page number.
        :param stamp:
            The stamp to draw. It must be attached to this document's writer.
        :param x:
            Horizontal position of the stamp's bounding box.
        :param y:
            Vertical position of the stamp's bounding box.
        :param metrics:
            The page's metrics, if already known.
        :param rotation:
            Rotation of the stamp, in degrees (counterclockwise).
        """
        if metrics is None:
            metrics = self.page_metrics(page_number)
        self._isolate_page_content(page_number - 1)
        return stamp.apply(page_number - 1, x, y, metrics, rotation=rotation)

    def write(self, output: BinaryIO):
        """
        Write the stamped document to a stream.
        """
        try:
            self.writer.write(output)
        except misc.PdfWriteError as e:
            raise DocumentError(
                f"Failed to write stamped version of '{self.name}': {e.msg}"
            ) from e


def _ensure_password_security(handler: PdfFileReader, name: str):
    if not isinstance(handler.security_handler, crypt.StandardSecurityHandler):
        raise DocumentError(
            f"Document '{name}' is encrypted with an unsupported "
            f"security handler."
        )


def _check_auth_result(result, password: Optional[str], name: str):
    if result.status != crypt.AuthStatus.FAILED:
        return
    if password:
        raise DocumentError(f"Password for document '{name}' is incorrect.")
    raise DocumentError(
        f"Document '{name}' is password-protected; specify an input password."
    )


@contextmanager
def open_document(
    path: str,
    input_password: Optional[str] = None,
    output_password: Optional[str] = None,
):
    """
    Open a document for stamping.

    The input file is kept open until the context manager exits.

    :param path:
        Path to the input file.
    :param input_password:
        Password to unlock the input file, if it is encrypted.
    :param output_password:
        If specified, the output document will be encrypted with this
        password (AES-256), serving as both the owner and the user password.
    :raises DocumentError:
        if the file cannot be read or unlocked.
    """
    try:
        inf = open(path, 'rb')
    except OSError as e:
        raise DocumentError(f"Failed to open '{path}': {e}") from e

    with inf:
        try:
            if output_password:
                reader = PdfFileReader(inf, strict=False)
                if reader.encrypted:
                    _ensure_password_security(reader, path)
                    # owner-password-only documents open with an empty password
                    result = reader.decrypt(input_password or '')
                    _check_auth_result(result, input_password, path)
                writer = copy_into_new_writer(reader)
                writer.encrypt(output_password, output_password)
            else:
                writer = IncrementalPdfFileWriter(inf, strict=False)
                if writer.prev.encrypted:
                    _ensure_password_security(writer.prev, path)
                    # updates must use the same encryption as the original
                    result = writer.encrypt(input_password or '')
                    _check_auth_result(result, input_password, path)
        except misc.PdfReadError as e:
            raise DocumentError(f"Failed to read PDF file '{path}': {e}") from e
        logger.debug(f"Opened '{path}' for stamping")
        yield StampingDocument(writer, name=path)

"""
Image stamps.

Here 'stamping' refers to drawing an image on top of the already existing
content of a page. The image is embedded once per document as a form
XObject, which is then painted on every page that receives the stamp.
"""

import uuid
from binascii import hexlify
from typing import Optional, Tuple

from PIL import Image
from pyhanko.pdf_utils import generic, layout
from pyhanko.pdf_utils.generic import pdf_name
from pyhanko.pdf_utils.images import PdfImage
from pyhanko.pdf_utils.misc import rd
from pyhanko.pdf_utils.writer import BasePdfFileWriter

from .geometry import (
    PageMetrics,
    page_rotation_matrix,
    rotated_placement,
    scaled_size,
)

__all__ = ['ImageStamp']


def _cm(matrix) -> bytes:
    return b'%g %g %g %g %g %g cm' % tuple(rd(v) for v in matrix)


class ImageStamp(PdfImage):
    """
    Stamp that paints a Pillow image at a fixed scale.

    :param writer:
        The PDF writer to embed the stamp into.
    :param image:
        The image to render.
    :param scale_percent:
        Scale factor, as a percentage. At ``100``, one pixel of the image
        takes up one user space unit.
    """

    def __init__(
        self,
        writer: BasePdfFileWriter,
        image: Image.Image,
        scale_percent: float = 100,
    ):
        width, height = scaled_size(image.width, image.height, scale_percent)
        super().__init__(
            image, writer=writer, box=layout.BoxConstraints(width, height)
        )
        self._stamp_ref: Optional[generic.IndirectObject] = None

    @property
    def width(self) -> float:
        return self.box.width

    @property
    def height(self) -> float:
        return self.box.height

    def bounding_box(self, rotation: float = 0) -> Tuple[float, float]:
        """
        Dimensions of the stamp's bounding box when rotated by ``rotation``
        degrees.
        """
        if rotation:
            placement = rotated_placement(self.width, self.height, rotation)
            return placement.width, placement.height
        return self.width, self.height

    def register(self) -> generic.IndirectObject:
        """
        Register the stamp with the writer coupled to this instance, and
        cache the returned reference.

        :return:
            An indirect reference to the form XObject containing the stamp.
        """
        stamp_ref = self._stamp_ref
        if stamp_ref is None:
            form_xobj = self.as_form_xobject()
            self._stamp_ref = stamp_ref = self.writer.add_object(form_xobj)
        return stamp_ref

    def apply(
        self,
        dest_page: int,
        x: float,
        y: float,
        metrics: PageMetrics,
        rotation: float = 0,
    ):
        """
        Apply the stamp to a page in the PDF writer attached to this
        :class:`.ImageStamp` instance.

        :param dest_page:
            Index of the page to which the stamp is to be applied
            (starting at `0`).
        :param x:
            Horizontal position of the lower left corner of the stamp's
            bounding box, relative to the page as rendered.
        :param y:
            Vertical position of the lower left corner of the stamp's
            bounding box, relative to the page as rendered.
        :param metrics:
            Metrics of the destination page.
        :param rotation:
            Rotation of the stamp in degrees (counterclockwise), about the
            lower left corner of the image. The bounding box of the rotated
            stamp is placed at ``(x, y)``.
        :return:
            A reference to the affected page object, together with
            a ``(width, height)`` tuple describing the dimensions of the
            stamp's bounding box.
        """
        stamp_ref = self.register()

        if rotation:
            placement = rotated_placement(self.width, self.height, rotation)
            matrix = placement.at(x, y)
            dims = (placement.width, placement.height)
        else:
            matrix = (1, 0, 0, 1, x, y)
            dims = (self.width, self.height)

        resource_name = b'/Stamp' + hexlify(uuid.uuid4().bytes)
        stamp_paint = b'q %s %s %s Do Q' % (
            _cm(page_rotation_matrix(metrics)),
            _cm(matrix),
            resource_name,
        )
        stamp_wrapper_stream = generic.StreamObject(stream_data=stamp_paint)
        resources = generic.DictionaryObject(
            {
                pdf_name('/XObject'): generic.DictionaryObject(
                    {pdf_name(resource_name.decode('ascii')): stamp_ref}
                )
            }
        )
        wr = self.writer
        page_ref = wr.add_stream_to_page(
            dest_page, wr.add_object(stamp_wrapper_stream), resources
        )
        return page_ref, dims

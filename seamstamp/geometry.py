"""
Geometry helpers for placing stamps on pages.

All coordinates in this module are expressed in PDF user space units
(points), relative to the lower left corner of the page *as rendered*, i.e.
after the page's ``/Rotate`` entry has been taken into account.
"""

import math
from dataclasses import dataclass
from typing import Tuple

from .errors import UnsupportedSeamSideError
from .options import SeamSide

__all__ = [
    'POINTS_PER_INCH',
    'MM_PER_INCH',
    'scale_percent',
    'scaled_size',
    'PageMetrics',
    'compute_page_position',
    'compute_seam_position',
    'page_rotation_matrix',
    'RotatedPlacement',
    'rotated_placement',
]

POINTS_PER_INCH = 72.0
MM_PER_INCH = 25.4


def _clamp_ratio(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def scale_percent(
    width_mm: float,
    original_px_width: int,
    units_per_inch: float = POINTS_PER_INCH,
) -> float:
    """
    Compute the scale factor (as a percentage) that makes an image
    ``original_px_width`` pixels wide render at ``width_mm`` millimetres.

    One pixel of the source image is taken to correspond to one user space
    unit, at ``units_per_inch`` units per inch.

    :param width_mm:
        Target width in millimetres.
    :param original_px_width:
        Width of the image *before* rotation, in pixels.
    :param units_per_inch:
        Number of user space units per inch.
    :return:
        The scale factor, as a percentage. If ``original_px_width`` is not
        positive, ``100`` is returned.
    """
    if original_px_width <= 0:
        return 100.0
    return width_mm * units_per_inch / MM_PER_INCH / original_px_width * 100


def scaled_size(
    px_width: int, px_height: int, percent: float
) -> Tuple[float, float]:
    factor = percent / 100
    return px_width * factor, px_height * factor


def _normalise_rotation(rotation) -> int:
    # /Rotate must be a multiple of 90, but can be negative
    return (int(rotation) // 90 * 90) % 360


@dataclass(frozen=True)
class PageMetrics:
    """
    Size and orientation of a page.
    """

    width: float
    """
    Horizontal extent of the page as rendered.
    """

    height: float
    """
    Vertical extent of the page as rendered.
    """

    rotation: int = 0
    """
    Intrinsic rotation of the page (``0``, ``90``, ``180`` or ``270``).
    """

    llx: float = 0.0
    """
    Lower left x-coordinate of the page's media box.
    """

    lly: float = 0.0
    """
    Lower left y-coordinate of the page's media box.
    """

    @classmethod
    def from_media_box(cls, media_box, rotation=0) -> 'PageMetrics':
        """
        Compute page metrics from a media box and a ``/Rotate`` value.

        :param media_box:
            The page's media box, as a sequence of four numbers.
        :param rotation:
            The page's ``/Rotate`` value.
        """
        x1, y1, x2, y2 = (float(c) for c in media_box)
        llx, urx = min(x1, x2), max(x1, x2)
        lly, ury = min(y1, y2), max(y1, y2)
        rotation = _normalise_rotation(rotation)
        width, height = urx - llx, ury - lly
        if rotation in (90, 270):
            width, height = height, width
        return cls(
            width=width, height=height, rotation=rotation, llx=llx, lly=lly
        )

    @property
    def media_box(self) -> Tuple[float, float, float, float]:
        if self.rotation in (90, 270):
            w, h = self.height, self.width
        else:
            w, h = self.width, self.height
        return self.llx, self.lly, self.llx + w, self.lly + h


def compute_page_position(
    ratio_x: float,
    ratio_y: float,
    page_width: float,
    page_height: float,
    image_width: float,
    image_height: float,
) -> Tuple[float, float]:
    """
    Compute the position of the lower left corner of a page stamp.

    A ratio of ``0`` puts the stamp flush against the left (resp. bottom)
    edge, ``1`` flush against the right (resp. top) edge.
    Ratios are clamped to ``[0, 1]``.
    """
    ratio_x = _clamp_ratio(ratio_x)
    ratio_y = _clamp_ratio(ratio_y)
    return (
        (page_width - image_width) * ratio_x,
        (page_height - image_height) * ratio_y,
    )


def compute_seam_position(
    side: SeamSide,
    edge_offset_percent: float,
    page_width: float,
    page_height: float,
    image_width: float,
    image_height: float,
) -> Tuple[float, float]:
    """
    Compute the position of the lower left corner of a seam slice.

    :param side:
        The page edge to put the slice against.
    :param edge_offset_percent:
        Offset along the edge. For the left and right edges, ``0`` is the
        top of the page. For the top and bottom edges, ``0`` is the left
        of the page.
    :raises UnsupportedSeamSideError:
        if ``side`` is not a :class:`.SeamSide`.
    """
    ratio = _clamp_ratio(edge_offset_percent / 100)
    if side == SeamSide.LEFT:
        return 0.0, (page_height - image_height) * (1 - ratio)
    elif side == SeamSide.RIGHT:
        return (
            page_width - image_width,
            (page_height - image_height) * (1 - ratio),
        )
    elif side == SeamSide.TOP:
        return (page_width - image_width) * ratio, page_height - image_height
    elif side == SeamSide.BOTTOM:
        return (page_width - image_width) * ratio, 0.0
    raise UnsupportedSeamSideError(f"Unsupported seam side: {side!r}.")


def page_rotation_matrix(
    metrics: PageMetrics,
) -> Tuple[float, float, float, float, float, float]:
    """
    Return the transformation matrix that maps coordinates relative to the
    page as rendered to the page's default user space.

    Prepending this matrix to the content stream of a stamp makes the stamp
    appear upright, regardless of the page's ``/Rotate`` value.
    """
    llx, lly, urx, ury = metrics.media_box
    rotation = metrics.rotation
    if rotation == 90:
        return 0, 1, -1, 0, urx, lly
    elif rotation == 180:
        return -1, 0, 0, -1, urx, ury
    elif rotation == 270:
        return 0, -1, 1, 0, llx, ury
    return 1, 0, 0, 1, llx, lly


@dataclass(frozen=True)
class RotatedPlacement:
    """
    Bounding box and drawing matrix of a rotated image.
    """

    width: float
    height: float

    matrix: Tuple[float, float, float, float, float, float]
    """
    Matrix that draws the image rotated about its lower left corner and
    shifted so that its bounding box starts at the origin.
    """

    def at(
        self, x: float, y: float
    ) -> Tuple[float, float, float, float, float, float]:
        """
        Return the drawing matrix for a bounding box placed at ``(x, y)``.
        """
        a, b, c, d, e, f = self.matrix
        return a, b, c, d, e + x, f + y


def rotated_placement(
    width: float, height: float, degrees: float
) -> RotatedPlacement:
    """
    Compute the placement of a ``width`` by ``height`` image rotated
    counterclockwise by ``degrees``.
    """
    theta = math.radians(degrees)
    cos, sin = math.cos(theta), math.sin(theta)
    corners = [
        (x * cos - y * sin, x * sin + y * cos)
        for x, y in ((0, 0), (width, 0), (0, height), (width, height))
    ]
    min_x = min(cx for cx, _ in corners)
    min_y = min(cy for _, cy in corners)
    return RotatedPlacement(
        width=abs(width * cos) + abs(height * sin),
        height=abs(width * sin) + abs(height * cos),
        matrix=(cos, sin, -sin, cos, -min_x, -min_y),
    )

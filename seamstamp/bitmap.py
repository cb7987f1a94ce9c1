"""
Preparation of stamp bitmaps.

The image processing is done by
`Pillow <https://github.com/python-pillow/Pillow>`_. All functions in this
module return new :class:`~PIL.Image.Image` objects in ``RGBA`` mode and
leave their input untouched.
"""

import logging
import math
import os
from dataclasses import dataclass

from PIL import Image, ImageChops, UnidentifiedImageError

from .errors import ImageDecodeError, StampResourceError

__all__ = [
    'WHITE_THRESHOLD',
    'PreparedStamp',
    'load_stamp_bitmap',
    'make_white_transparent',
    'apply_opacity',
    'rotated_size',
    'rotate_bitmap',
    'extract_slice',
    'prepare_stamp',
]

logger = logging.getLogger(__name__)

WHITE_THRESHOLD = 230
"""
Pixels whose red, green and blue channels all exceed this value are
considered white.
"""

# formats that can carry their own transparency
ALPHA_CAPABLE_FORMATS = frozenset(['PNG', 'WEBP'])


def make_white_transparent(
    img: Image.Image, threshold: int = WHITE_THRESHOLD
) -> Image.Image:
    """
    Make all near-white pixels fully transparent, keeping their colour.

    :param img:
        The source image.
    :param threshold:
        A pixel is made transparent if all of its colour channels are
        strictly greater than this value.
    :return:
        A new ``RGBA`` image.
    """
    rgba = img.convert('RGBA')
    r, g, b, a = rgba.split()
    # 255 where the channel exceeds the threshold, 0 elsewhere
    r, g, b = (
        ch.point(lambda v: 255 if v > threshold else 0) for ch in (r, g, b)
    )
    white = ImageChops.multiply(ImageChops.multiply(r, g), b)
    # clipped at 0, so white pixels end up with alpha 0
    alpha = ImageChops.subtract(a, white)
    rgba.putalpha(alpha)
    return rgba


def apply_opacity(img: Image.Image, opacity: int) -> Image.Image:
    """
    Set the alpha value of all pixels that are not fully transparent.

    :param img:
        The source image.
    :param opacity:
        Opacity as a percentage between ``0`` and ``100``.
    :return:
        A new ``RGBA`` image.
    """
    opacity = min(max(opacity, 0), 100)
    target_alpha = round(opacity / 100 * 255)
    rgba = img.convert('RGBA')
    alpha = rgba.getchannel('A').point(lambda v: target_alpha if v else 0)
    rgba.putalpha(alpha)
    return rgba


def load_stamp_bitmap(
    path: str, white_to_transparent: bool, opacity: int
) -> Image.Image:
    """
    Load a stamp image from a file.

    :param path:
        Path to the image.
    :param white_to_transparent:
        Make near-white pixels transparent. This is skipped for formats
        that support transparency by themselves.
    :param opacity:
        Opacity as a percentage. Values below ``100`` are applied to all
        non-transparent pixels.
    :return:
        An ``RGBA`` image.
    :raises StampResourceError:
        if the file does not exist.
    :raises ImageDecodeError:
        if the file cannot be decoded as an image.
    """
    if not os.path.isfile(path):
        raise StampResourceError(f"Stamp image file '{path}' was not found.")
    try:
        with Image.open(path) as src:
            src_format = src.format
            src.load()
            img = src.convert('RGBA')
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(
            f"Stamp image file '{path}' could not be decoded: {e}"
        ) from e

    if white_to_transparent and src_format not in ALPHA_CAPABLE_FORMATS:
        logger.debug(f"Making white pixels in {path} transparent")
        img = make_white_transparent(img)

    if opacity < 100:
        img = apply_opacity(img, opacity)
    return img


def rotated_size(width: int, height: int, degrees: float):
    """
    Compute the size of the axis-aligned bounding box of a rotated
    ``width`` by ``height`` rectangle, rounded to whole pixels.
    """
    theta = math.radians(degrees)
    cos, sin = math.cos(theta), math.sin(theta)
    new_width = max(
        abs(width * cos - height * sin), abs(width * cos + height * sin)
    )
    new_height = max(
        abs(width * sin - height * cos), abs(width * sin + height * cos)
    )
    return int(round(new_width)), int(round(new_height))


def rotate_bitmap(
    img: Image.Image, degrees: int, keep_bounds: bool
) -> Image.Image:
    """
    Rotate an image about its centre.

    :param img:
        The source image.
    :param degrees:
        Rotation angle in degrees; positive values rotate clockwise.
    :param keep_bounds:
        If ``True``, the result has the same width as the source, with the
        height scaled by the same factor. The corners of the rotated image
        may be cropped as a result.
        If ``False``, the result is large enough to hold the entire rotated
        image.
    :return:
        A new ``RGBA`` image.
    """
    rgba = img.convert('RGBA')
    angle = degrees % 360
    if angle == 0:
        return rgba

    width, height = rgba.size
    new_width, new_height = rotated_size(width, height, angle)
    if keep_bounds:
        new_height = new_height * width // new_width
        new_width = width

    # PIL rotates counterclockwise
    rotated = rgba.rotate(-angle, resample=Image.BICUBIC, expand=True)
    canvas = Image.new('RGBA', (new_width, new_height), (0, 0, 0, 0))
    # centre the rotated image on the canvas, cropping if necessary
    offset = (
        (new_width - rotated.width) // 2,
        (new_height - rotated.height) // 2,
    )
    canvas.paste(rotated, offset)
    return canvas


def extract_slice(img: Image.Image, start: int, width: int) -> Image.Image:
    """
    Cut a full-height vertical strip out of an image.

    :param img:
        The source image.
    :param start:
        Horizontal offset of the strip. Clamped to the last valid column.
    :param width:
        Width of the strip. Clamped so that the strip is at least one pixel
        wide and does not extend beyond the right edge of the image.
    :return:
        The strip, as a new image.
    """
    if img.width <= 0:
        raise ValueError("Stamp image width must be greater than zero.")
    start = min(max(start, 0), img.width - 1)
    width = min(max(width, 1), img.width - start)
    return img.crop((start, 0, start + width, img.height))


@dataclass
class PreparedStamp:
    """
    A stamp bitmap that is ready to be embedded.
    """

    image: Image.Image
    """
    The processed image.
    """

    original_width: int
    """
    Width of the image before rotation, in pixels.
    This is the reference for the stamp's scale factor.
    """

    def close(self):
        self.image.close()


def prepare_stamp(
    path: str,
    *,
    white_to_transparent: bool = True,
    opacity: int = 100,
    rotation: int = 0,
    keep_bounds: bool = True,
) -> PreparedStamp:
    """
    Load a stamp image and apply transparency, opacity and rotation
    settings.

    :return:
        A :class:`PreparedStamp`.
    """
    img = load_stamp_bitmap(path, white_to_transparent, opacity)
    original_width = img.width
    if rotation % 360:
        rotated = rotate_bitmap(img, rotation, keep_bounds)
        img.close()
        img = rotated
    logger.debug(
        f"Prepared stamp image {path}: {img.width}x{img.height} pixels, "
        f"original width {original_width}"
    )
    return PreparedStamp(image=img, original_width=original_width)

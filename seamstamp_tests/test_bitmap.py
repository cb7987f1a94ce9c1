import os

import pytest
from PIL import Image

from seamstamp.bitmap import (
    apply_opacity,
    extract_slice,
    load_stamp_bitmap,
    make_white_transparent,
    prepare_stamp,
    rotate_bitmap,
    rotated_size,
)
from seamstamp.errors import ErrorKind, ImageDecodeError, StampResourceError

from .samples import make_seal_image, write_seal_image


def test_white_to_transparent():
    img = Image.new('RGB', (3, 1))
    img.putpixel((0, 0), (255, 255, 255))
    img.putpixel((1, 0), (231, 240, 250))
    img.putpixel((2, 0), (230, 255, 255))
    result = make_white_transparent(img)
    assert result.mode == 'RGBA'
    assert result.getpixel((0, 0)) == (255, 255, 255, 0)
    assert result.getpixel((1, 0)) == (231, 240, 250, 0)
    # one channel at the threshold, so not white
    assert result.getpixel((2, 0)) == (230, 255, 255, 255)


def test_opacity():
    img = Image.new('RGBA', (2, 1))
    img.putpixel((0, 0), (10, 20, 30, 255))
    img.putpixel((1, 0), (10, 20, 30, 0))
    result = apply_opacity(img, 50)
    assert result.getpixel((0, 0)) == (10, 20, 30, 128)
    assert result.getpixel((1, 0))[3] == 0


def test_opacity_zero():
    img = Image.new('RGBA', (1, 1), (10, 20, 30, 200))
    assert apply_opacity(img, 0).getpixel((0, 0))[3] == 0


def test_load_jpeg_white_background(tmp_path):
    fname = write_seal_image(str(tmp_path / 'seal.jpg'), 'JPEG')
    img = load_stamp_bitmap(fname, white_to_transparent=True, opacity=100)
    assert img.mode == 'RGBA'
    assert img.getpixel((0, 0))[3] == 0
    # centre of the red disc
    assert img.getpixel((60, 40))[3] == 255


def test_load_jpeg_keep_white(tmp_path):
    fname = write_seal_image(str(tmp_path / 'seal.jpg'), 'JPEG')
    img = load_stamp_bitmap(fname, white_to_transparent=False, opacity=100)
    assert img.getpixel((0, 0))[3] == 255


def test_load_png_keeps_own_alpha(tmp_path):
    fname = str(tmp_path / 'seal.png')
    img = make_seal_image(mode='RGBA')
    # an opaque white pixel should survive, PNG has its own transparency
    img.putpixel((0, 0), (255, 255, 255, 255))
    img.save(fname, format='PNG')
    result = load_stamp_bitmap(fname, white_to_transparent=True, opacity=100)
    assert result.getpixel((0, 0)) == (255, 255, 255, 255)
    assert result.getpixel((1, 0))[3] == 0


def test_load_with_opacity(tmp_path):
    fname = write_seal_image(str(tmp_path / 'seal.png'), 'PNG')
    img = load_stamp_bitmap(fname, white_to_transparent=True, opacity=40)
    assert img.getpixel((60, 40))[3] == 102


def test_load_missing_file(tmp_path):
    with pytest.raises(StampResourceError) as exc_info:
        load_stamp_bitmap(str(tmp_path / 'nope.png'), True, 100)
    assert exc_info.value.kind == ErrorKind.RESOURCE


def test_load_garbage(tmp_path):
    fname = str(tmp_path / 'seal.png')
    with open(fname, 'wb') as outf:
        outf.write(os.urandom(64))
    with pytest.raises(ImageDecodeError):
        load_stamp_bitmap(fname, True, 100)


def test_rotated_size():
    assert rotated_size(100, 50, 0) == (100, 50)
    assert rotated_size(100, 50, 90) == (50, 100)
    assert rotated_size(100, 100, 45) == (141, 141)


def test_rotate_zero_is_copy():
    img = make_seal_image(mode='RGBA')
    result = rotate_bitmap(img, 360, keep_bounds=True)
    assert result.size == img.size
    assert result is not img


def test_rotate_expand():
    img = make_seal_image(100, 50, mode='RGBA')
    result = rotate_bitmap(img, 90, keep_bounds=False)
    assert result.size == (50, 100)


def test_rotate_keep_bounds():
    img = make_seal_image(100, 50, mode='RGBA')
    result = rotate_bitmap(img, 90, keep_bounds=True)
    # width is kept, height scaled by 100 / 50
    assert result.size == (100, 200)


def test_rotate_keep_bounds_small_angle():
    img = make_seal_image(100, 100, mode='RGBA')
    result = rotate_bitmap(img, 45, keep_bounds=True)
    assert result.size == (100, 100)


def test_rotate_clockwise():
    img = Image.new('RGBA', (20, 10), (0, 0, 0, 0))
    # mark the top right corner
    img.putpixel((19, 0), (255, 0, 0, 255))
    result = rotate_bitmap(img, 90, keep_bounds=False)
    assert result.size == (10, 20)
    # clockwise, the top right corner ends up at the bottom right
    r, g, b, a = result.getpixel((9, 19))
    assert a > 0 and r > 0


def test_extract_slice():
    img = make_seal_image(120, 80)
    strip = extract_slice(img, 40, 20)
    assert strip.size == (20, 80)


@pytest.mark.parametrize(
    'start,width,expected',
    [(200, 10, (1, 80)), (110, 50, (10, 80)), (-5, 0, (1, 80))],
)
def test_extract_slice_clamps(start, width, expected):
    img = make_seal_image(120, 80)
    assert extract_slice(img, start, width).size == expected


def test_prepare_stamp(tmp_path):
    fname = write_seal_image(str(tmp_path / 'seal.png'), 'PNG')
    stamp = prepare_stamp(fname, rotation=90, keep_bounds=False)
    try:
        assert stamp.original_width == 120
        assert stamp.image.size == (80, 120)
    finally:
        stamp.close()

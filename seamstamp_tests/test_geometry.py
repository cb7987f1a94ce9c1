import pytest

from seamstamp.errors import ErrorKind, UnsupportedSeamSideError
from seamstamp.geometry import (
    PageMetrics,
    compute_page_position,
    compute_seam_position,
    page_rotation_matrix,
    rotated_placement,
    scale_percent,
    scaled_size,
)
from seamstamp.options import SeamSide


def test_scale_percent_40mm():
    # 40 mm at 72 units per inch is ~113.39 units
    percent = scale_percent(40, 1000)
    assert percent == pytest.approx(11.3386, abs=1e-3)
    w, h = scaled_size(1000, 500, percent)
    assert w == pytest.approx(113.386, abs=1e-2)
    assert h == pytest.approx(56.693, abs=1e-2)


def test_scale_percent_other_resolution():
    assert scale_percent(25.4, 96, units_per_inch=96) == pytest.approx(100)


def test_scale_percent_zero_width():
    assert scale_percent(40, 0) == 100.0


def test_page_position_centred():
    assert compute_page_position(0.5, 0.5, 600, 800, 100, 50) == (250, 375)


def test_page_position_corners():
    assert compute_page_position(0, 0, 600, 800, 100, 50) == (0, 0)
    assert compute_page_position(1, 1, 600, 800, 100, 50) == (500, 750)


def test_page_position_clamped():
    assert compute_page_position(-1, 2, 600, 800, 100, 50) == (0, 750)


@pytest.mark.parametrize(
    'side,expected',
    [
        (SeamSide.RIGHT, (580, 375)),
        (SeamSide.LEFT, (0, 375)),
        (SeamSide.TOP, (290, 750)),
        (SeamSide.BOTTOM, (290, 0)),
    ],
)
def test_seam_position_centred(side, expected):
    assert compute_seam_position(side, 50, 600, 800, 20, 50) == expected


def test_seam_position_offset_from_top():
    # offset 0 puts the slice at the top of the page
    assert compute_seam_position(SeamSide.RIGHT, 0, 600, 800, 20, 50) == (
        580,
        750,
    )
    assert compute_seam_position(SeamSide.LEFT, 100, 600, 800, 20, 50) == (
        0,
        0,
    )


def test_seam_position_offset_from_left():
    assert compute_seam_position(SeamSide.TOP, 0, 600, 800, 20, 50) == (
        0,
        750,
    )
    assert compute_seam_position(SeamSide.BOTTOM, 100, 600, 800, 20, 50) == (
        580,
        0,
    )


def test_seam_position_bad_side():
    with pytest.raises(UnsupportedSeamSideError) as exc_info:
        compute_seam_position('diagonal', 50, 600, 800, 20, 50)
    assert exc_info.value.kind == ErrorKind.CONTRACT


def test_page_metrics_upright():
    metrics = PageMetrics.from_media_box((0, 0, 595, 842), 0)
    assert (metrics.width, metrics.height) == (595, 842)
    assert metrics.rotation == 0


@pytest.mark.parametrize('rotate', [90, 270, -90, 450])
def test_page_metrics_quarter_turn(rotate):
    metrics = PageMetrics.from_media_box((0, 0, 595, 842), rotate)
    assert (metrics.width, metrics.height) == (842, 595)
    assert metrics.media_box == (0, 0, 595, 842)


def test_page_metrics_offset_box():
    metrics = PageMetrics.from_media_box((10, 20, 110, 220))
    assert (metrics.width, metrics.height) == (100, 200)
    assert (metrics.llx, metrics.lly) == (10, 20)


def _transform(matrix, x, y):
    a, b, c, d, e, f = matrix
    return a * x + c * y + e, b * x + d * y + f


@pytest.mark.parametrize('rotate', [0, 90, 180, 270])
def test_page_rotation_matrix_maps_into_media_box(rotate):
    metrics = PageMetrics.from_media_box((0, 0, 200, 100), rotate)
    matrix = page_rotation_matrix(metrics)
    for x, y in [(0, 0), (metrics.width, metrics.height)]:
        ux, uy = _transform(matrix, x, y)
        assert 0 <= ux <= 200
        assert 0 <= uy <= 100


def test_page_rotation_matrix_90():
    metrics = PageMetrics.from_media_box((0, 0, 200, 100), 90)
    matrix = page_rotation_matrix(metrics)
    # the lower left corner as rendered is the lower right corner
    # of the media box
    assert _transform(matrix, 0, 0) == (200, 0)


def test_rotated_placement_no_rotation():
    placement = rotated_placement(100, 50, 0)
    assert placement.width == pytest.approx(100)
    assert placement.height == pytest.approx(50)
    assert placement.at(10, 20)[4:] == pytest.approx((10, 20))


def test_rotated_placement_quarter_turn():
    placement = rotated_placement(100, 50, 90)
    assert placement.width == pytest.approx(50)
    assert placement.height == pytest.approx(100)
    matrix = placement.at(0, 0)
    corners = [
        _transform(matrix, x, y)
        for x, y in ((0, 0), (100, 0), (0, 50), (100, 50))
    ]
    assert min(c[0] for c in corners) == pytest.approx(0)
    assert min(c[1] for c in corners) == pytest.approx(0)
    assert max(c[0] for c in corners) == pytest.approx(50)
    assert max(c[1] for c in corners) == pytest.approx(100)


def test_rotated_placement_small_angle():
    placement = rotated_placement(100, 50, -2)
    assert placement.width > 100
    assert placement.height > 50
    matrix = placement.at(5, 5)
    corners = [
        _transform(matrix, x, y)
        for x, y in ((0, 0), (100, 0), (0, 50), (100, 50))
    ]
    assert min(c[0] for c in corners) == pytest.approx(5)
    assert min(c[1] for c in corners) == pytest.approx(5)


def test_scale_percent_200px():
    assert scale_percent(40, 200) == pytest.approx(56.69, abs=1e-2)


def test_seam_position_right_ignores_offset_for_x():
    for offset in (0, 33, 50, 100):
        x, _ = compute_seam_position(SeamSide.RIGHT, offset, 600, 800, 20, 50)
        assert x == 580

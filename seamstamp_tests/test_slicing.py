import pytest

from seamstamp.slicing import SeamSlice, build_slice_plan, iter_batches


def _assert_contiguous(plan, total_width):
    assert plan[0].start == 0
    for prev, cur in zip(plan, plan[1:]):
        assert cur.start == prev.end
    assert plan[-1].end == total_width


def test_plan_first_slice_is_one_third():
    plan = build_slice_plan(300, 5)
    assert plan == (
        SeamSlice(0, 100),
        SeamSlice(100, 50),
        SeamSlice(150, 50),
        SeamSlice(200, 50),
        SeamSlice(250, 50),
    )


def test_plan_two_slices():
    plan = build_slice_plan(90, 2)
    assert plan == (SeamSlice(0, 30), SeamSlice(30, 60))


def test_plan_single_slice():
    assert build_slice_plan(120, 1) == (SeamSlice(0, 120),)


@pytest.mark.parametrize('count', [0, -1])
def test_plan_no_slices(count):
    assert build_slice_plan(120, count) == ()


def test_plan_zero_width():
    assert build_slice_plan(0, 3) == ()


@pytest.mark.parametrize(
    'total_width,count',
    [
        (100, 3),
        (101, 7),
        (997, 13),
        (64, 2),
        (1000, 4),
        (9, 5),
        (300, 81),
        (120, 80),
        (5, 5),
    ],
)
def test_plan_covers_image(total_width, count):
    plan = build_slice_plan(total_width, count)
    assert len(plan) == count
    assert all(s.width >= 1 for s in plan)
    assert sum(s.width for s in plan) == total_width
    _assert_contiguous(plan, total_width)


@pytest.mark.parametrize('total_width', [7, 9, 50, 120, 301])
def test_plan_covers_image_any_count(total_width):
    for count in range(2, total_width // 2 + 1):
        plan = build_slice_plan(total_width, count)
        assert sum(s.width for s in plan) == total_width, count
        _assert_contiguous(plan, total_width)


def test_plan_middle_widths_round_up():
    # the middle slices are 1.5 pixels wide; boundaries are rounded
    # individually instead of accumulating rounded widths
    plan = build_slice_plan(9, 5)
    assert [s.width for s in plan] == [3, 2, 1, 2, 1]
    assert plan[-1] == SeamSlice(8, 1)


def test_plan_many_pages_no_slivers():
    plan = build_slice_plan(300, 81)
    assert plan[0] == SeamSlice(0, 100)
    assert len({s.start for s in plan}) == 81
    assert all(s.width in (2, 3) for s in plan[1:])


def test_plan_rounded_boundaries():
    plan = build_slice_plan(100, 4)
    # boundaries at 33.33, 55.56 and 77.78
    assert plan[0] == SeamSlice(0, 33)
    assert plan[-1].end == 100
    assert sum(s.width for s in plan) == 100


def test_plan_more_slices_than_pixels():
    plan = build_slice_plan(3, 6)
    assert len(plan) == 6
    for s in plan:
        assert 0 <= s.start < 3
        assert s.width >= 1
        assert s.end <= 3


def test_batches():
    batches = list(iter_batches(45, 20))
    assert batches == [range(0, 20), range(20, 40), range(40, 45)]


def test_batches_minimum_size():
    assert list(iter_batches(3, 0)) == [range(0, 1), range(1, 2), range(2, 3)]


def test_batches_empty():
    assert list(iter_batches(0, 20)) == []

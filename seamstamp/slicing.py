"""
Planning of seam slices.

A seam stamp is cut into vertical strips, one per participating page.
Laid side by side in page order, the strips reconstruct the original image.
"""

import math
from dataclasses import dataclass
from typing import Iterator, Tuple

__all__ = ['SeamSlice', 'build_slice_plan', 'iter_batches']


@dataclass(frozen=True)
class SeamSlice:
    start: int
    """
    Horizontal offset of the slice in the stamp image, in pixels.
    """

    width: int
    """
    Width of the slice, in pixels. Always at least ``1``.
    """

    @property
    def end(self) -> int:
        return self.start + self.width


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _raw_boundaries(total_width: int, count: int) -> Iterator[int]:
    first_width = total_width / 3.0
    other_width = (total_width - first_width) / (count - 1)
    yield 0
    for ix in range(1, count):
        yield _round_half_up(first_width + (ix - 1) * other_width)
    yield total_width


def build_slice_plan(total_width: int, count: int) -> Tuple[SeamSlice, ...]:
    """
    Divide an image of width ``total_width`` into ``count`` slices.

    The first slice covers one third of the image, the remainder is divided
    evenly over the other slices. Slice boundaries are rounded from their
    exact positions, so rounding errors never accumulate: the slices are
    contiguous, and their widths add up to ``total_width``.

    If there are more slices than pixel columns, this is impossible.
    In that case, every slice still gets a width of at least one pixel,
    and the excess slices all cover the last column of the image.

    :param total_width:
        Width of the stamp image, in pixels.
    :param count:
        Number of slices.
    :return:
        A tuple of :class:`SeamSlice` objects. Empty if ``count`` or
        ``total_width`` is not positive.
    """
    if count <= 0 or total_width <= 0:
        return ()
    if count == 1:
        return (SeamSlice(start=0, width=total_width),)

    boundaries = list(_raw_boundaries(total_width, count))
    if count <= total_width:
        # keep every slice at least one column wide, leaving
        # room for the slices that follow
        for ix in range(1, count):
            boundaries[ix] = min(
                max(boundaries[ix], boundaries[ix - 1] + 1),
                total_width - (count - ix),
            )
        return tuple(
            SeamSlice(start=start, width=end - start)
            for start, end in zip(boundaries, boundaries[1:])
        )

    plan = []
    for start, end in zip(boundaries, boundaries[1:]):
        start = min(start, total_width - 1)
        width = min(max(1, end - start), total_width - start)
        plan.append(SeamSlice(start=start, width=width))
    return tuple(plan)


def iter_batches(count: int, max_batch: int) -> Iterator[range]:
    """
    Split the indices ``0, ..., count - 1`` into consecutive ranges of at
    most ``max_batch`` indices each.
    """
    max_batch = max(1, max_batch)
    for batch_start in range(0, count, max_batch):
        yield range(batch_start, min(batch_start + max_batch, count))

"""
Random perturbation of page stamp positions.

Stamps applied to a batch of pages look more natural if every stamp is
slightly offset and tilted. The random source is injectable, so that the
perturbations can be reproduced.
"""

import random
from dataclasses import dataclass
from typing import Optional

__all__ = ['JitteredPosition', 'PositionJitter']

OFFSET_STEPS = range(-2, 3)
OFFSET_UNIT = 0.01
ROTATION_STEPS = range(-2, 3)


@dataclass(frozen=True)
class JitteredPosition:
    x: float
    y: float
    rotation: int
    """
    Rotation adjustment in degrees (counterclockwise).
    """


def _apply_delta(value: float, delta: float) -> float:
    candidate = value + delta
    if 0 < candidate < 1:
        value = candidate
    return min(max(value, 0.0), 1.0)


class PositionJitter:
    """
    Perturb relative stamp positions.

    :param rng:
        Random number generator to use.
    :param seed:
        Seed for a new random number generator. Ignored if ``rng`` is
        specified.
    """

    def __init__(
        self, rng: Optional[random.Random] = None, seed: Optional[int] = None
    ):
        self.rng = rng if rng is not None else random.Random(seed)

    def perturb(self, x: float, y: float) -> JitteredPosition:
        """
        Perturb a position given as a pair of ratios.

        Each coordinate is shifted by a multiple of ``0.01`` between
        ``-0.02`` and ``0.02``, but only if the shifted value stays strictly
        between ``0`` and ``1``. In addition, a rotation between ``-2``
        and ``2`` degrees is chosen.
        """
        rng = self.rng
        dx = OFFSET_UNIT * rng.choice(OFFSET_STEPS)
        dy = OFFSET_UNIT * rng.choice(OFFSET_STEPS)
        rotation = rng.choice(ROTATION_STEPS)
        return JitteredPosition(
            x=_apply_delta(x, dx), y=_apply_delta(y, dy), rotation=rotation
        )

# scene_layout.py

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

# Basic vector aliases
Vec3 = Tuple[float, float, float]

NO_ROTATION: Vec3 = (0.0, 0.0, 0.0)
FLIP_X: Vec3 = (math.pi, 0.0, 0.0)
QUADRANT_OFFSET = 1.0


@dataclass(frozen=True)
class Placement:
    asset_ref: str
    position: Vec3
    rotation: Vec3 = NO_ROTATION  # Euler XYZ, radians, model space
    scale: float = 1.0


@dataclass(frozen=True)
class ReplicationSpec:
    asset_ref: str
    base_distance: float = 2.0
    height_offset: float = 0.0
    uniform_scale: float = 0.75
    flip_axis: bool = True
    offset_constant: float = QUADRANT_OFFSET
    rotation: Optional[Vec3] = None  # overrides the flip rotation when set


def place_in_quadrants(spec: ReplicationSpec) -> List[Placement]:
    """
    Four symmetric copies of one asset, one per quadrant around the origin.

    The x offset is pushed out by ``offset_constant`` so the copies sit a
    little wider than they are deep. Order is fixed: Q1, Q2, Q3, Q4.
    """
    d = float(spec.base_distance)
    dx = d + float(spec.offset_constant)
    y = float(spec.height_offset)

    if spec.rotation is not None:
        rotation = tuple(float(a) for a in spec.rotation)
    else:
        rotation = FLIP_X if spec.flip_axis else NO_ROTATION

    positions = [
        (+dx, y, +d),
        (-dx, y, +d),
        (-dx, y, -d),
        (+dx, y, -d),
    ]
    return [
        Placement(
            asset_ref=spec.asset_ref,
            position=pos,
            rotation=rotation,
            scale=float(spec.uniform_scale),
        )
        for pos in positions
    ]

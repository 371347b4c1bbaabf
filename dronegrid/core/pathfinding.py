# dronegrid/core/pathfinding.py
"""
Path planning on the dock grid
Straight-line plans sampled at five waypoints, plus reroute jitter
"""

from typing import List, Sequence, Union

import numpy as np

from .models import GridPosition, TargetPosition

# start + 3 interior points + target
PATH_LENGTH = 5
INTERIOR_FRACTIONS = (0.25, 0.5, 0.75)

PointLike = Union[GridPosition, TargetPosition]


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves toward +infinity

    0.5 -> 1, 1.5 -> 2, -0.5 -> 0, -1.5 -> -1
    """
    return int(np.floor(value + 0.5))


def calculate_optimal_path(start: PointLike, target: PointLike) -> List[GridPosition]:
    """
    Direct path from start to target

    Args:
        start: Dock position of the drone
        target: Destination, may lie outside the grid

    Returns:
        Exactly five points: start, three interpolated midpoints, target.
        Midpoint i is start + round((target - start) * i/4) per axis.
    """
    dx = target.x - start.x
    dy = target.y - start.y

    path = [GridPosition(start.x, start.y)]
    for t in INTERIOR_FRACTIONS:
        path.append(GridPosition(
            start.x + round_half_up(dx * t),
            start.y + round_half_up(dy * t),
        ))
    path.append(GridPosition(target.x, target.y))

    return path


def jitter_path(path: Sequence[GridPosition],
                rng: np.random.Generator,
                offset: float = 0.5) -> List[GridPosition]:
    """
    Shift every interior waypoint by +/-offset on each axis

    Args:
        path: Original waypoints
        rng: Random source deciding the sign of each shift
        offset: Shift magnitude in grid units

    Returns:
        New path with identical endpoints
    """
    if len(path) <= 2:
        return list(path)

    signs = rng.choice([-1.0, 1.0], size=(len(path) - 2, 2))
    jittered = [path[0]]
    for point, (sx, sy) in zip(path[1:-1], signs):
        jittered.append(GridPosition(point.x + sx * offset, point.y + sy * offset))
    jittered.append(path[-1])

    return jittered



# tests/conftest.py
"""
Shared fixtures for the dock-grid test suite
"""

import pytest

from dronegrid.core.airspace import POTENTIAL_TARGETS
from dronegrid.core.conflict_detector import ConflictDetector
from dronegrid.core.conflict_resolver import ConflictResolver, ResolverConfig
from dronegrid.core.coordinator import FlightCoordinator
from dronegrid.core.models import Drone, DroneStatus, GridPosition, TargetPosition
from dronegrid.core.pathfinding import calculate_optimal_path


class FakeClock:
    """Manually advanced time source"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def target(index: int) -> TargetPosition:
    """Catalog target by index"""
    return TargetPosition(**POTENTIAL_TARGETS[index])


EAST = 4
SOUTH = 6


def flying_drone(drone_id: int, x: float, y: float, destination: TargetPosition,
                 layer: int = 3, path=None) -> Drone:
    """Drone already in the air with a planned (or given) path"""
    dock = GridPosition(x, y)
    return Drone(
        id=drone_id,
        name=f"D{drone_id}",
        position=dock,
        status=DroneStatus.FLYING,
        target_position=destination,
        flight_path=list(path) if path is not None else calculate_optimal_path(dock, destination),
        assigned_layer=layer,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifications():
    """Collects every notification a coordinator emits"""
    return []


@pytest.fixture
def coordinator(clock, notifications):
    """Coordinator with a fixed clock and a seeded resolver"""
    return FlightCoordinator(
        detector=ConflictDetector(),
        resolver=ConflictResolver(ResolverConfig(seed=7)),
        on_notification=notifications.append,
        clock=clock,
    )

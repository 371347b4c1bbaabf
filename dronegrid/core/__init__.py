"""Conflict detection/resolution engine and its supporting planners."""

from .models import (
    CommandResult,
    Conflict,
    Drone,
    DroneStatus,
    FleetSnapshot,
    GridPosition,
    Metrics,
    Mission,
    MissionStatus,
    Notification,
    Priority,
    Resolution,
    Severity,
    TargetPosition,
    create_default_drones,
)
from .pathfinding import calculate_optimal_path, jitter_path
from .altitude import assign_altitude_layer, determine_quadrant
from .conflict_detector import ConflictDetector, ConflictDetectorConfig
from .conflict_resolver import ConflictResolver, ResolverConfig
from .coordinator import CoordinatorConfig, FlightCoordinator

__all__ = [
    "CommandResult",
    "Conflict",
    "Drone",
    "DroneStatus",
    "FleetSnapshot",
    "GridPosition",
    "Metrics",
    "Mission",
    "MissionStatus",
    "Notification",
    "Priority",
    "Resolution",
    "Severity",
    "TargetPosition",
    "create_default_drones",
    "calculate_optimal_path",
    "jitter_path",
    "assign_altitude_layer",
    "determine_quadrant",
    "ConflictDetector",
    "ConflictDetectorConfig",
    "ConflictResolver",
    "ResolverConfig",
    "CoordinatorConfig",
    "FlightCoordinator",
]

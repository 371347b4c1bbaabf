# dronegrid/core/models.py
"""
Core data models for the dock-grid drone coordination engine
Drones, missions, conflicts, metrics and the published fleet snapshot
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple
import copy
import time
import uuid

import numpy as np

from .airspace import (
    DEFAULT_BATTERY_LEVEL,
    DOCK_POSITIONS,
)
from .altitude import assign_altitude_layer, determine_quadrant


class DroneStatus(str, Enum):
    """Drone operational states"""
    IDLE = "idle"
    PREPARING = "preparing"
    TAKING_OFF = "taking-off"
    TRANSITION_UP = "transition-up"
    FLYING = "flying"
    TRANSITION_DOWN = "transition-down"
    RETURNING = "returning"
    LANDING = "landing"
    EMERGENCY = "emergency"
    MAINTENANCE = "maintenance"


# Statuses in which a drone occupies airspace and is checked for conflicts
IN_MOTION_STATUSES = frozenset({
    DroneStatus.TAKING_OFF,
    DroneStatus.TRANSITION_UP,
    DroneStatus.FLYING,
    DroneStatus.TRANSITION_DOWN,
    DroneStatus.RETURNING,
    DroneStatus.LANDING,
})

# Normal lifecycle order, emergency/maintenance are side states
FLIGHT_PHASES: Tuple[DroneStatus, ...] = (
    DroneStatus.IDLE,
    DroneStatus.PREPARING,
    DroneStatus.TAKING_OFF,
    DroneStatus.TRANSITION_UP,
    DroneStatus.FLYING,
    DroneStatus.TRANSITION_DOWN,
    DroneStatus.RETURNING,
    DroneStatus.LANDING,
)


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MissionStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Resolution(str, Enum):
    """Automatic conflict resolution actions"""
    ALTITUDE_CHANGE = "altitude-change"
    PATH_REROUTE = "path-reroute"
    TIME_DELAY = "time-delay"
    EMERGENCY_STOP = "emergency-stop"


@dataclass(frozen=True)
class GridPosition:
    """
    A point on the dock grid (or around it)
    Planner output is integral, rerouted waypoints may sit on half units
    """
    x: float
    y: float

    def to_array(self) -> np.ndarray:
        """Convert to numpy array [x, y]"""
        return np.array([self.x, self.y], dtype=float)

    def distance_to(self, other: "GridPosition") -> float:
        """Euclidean distance on the two grid axes"""
        return float(np.hypot(self.x - other.x, self.y - other.y))

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}

    def __repr__(self) -> str:
        return f"({self.x:g}, {self.y:g})"


@dataclass(frozen=True)
class TargetPosition:
    """Flight destination, may lie outside the grid"""
    x: int
    y: int
    description: Optional[str] = None

    def as_grid_position(self) -> GridPosition:
        return GridPosition(self.x, self.y)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "description": self.description}


@dataclass
class Mission:
    """
    A flight mission owned by a single drone
    At most one in-progress and one queued mission per drone
    """
    mission_id: str
    target: TargetPosition
    priority: Priority = Priority.MEDIUM
    status: MissionStatus = MissionStatus.QUEUED
    created_at: float = field(default_factory=time.time)
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    def __post_init__(self):
        self.priority = Priority(self.priority)
        self.status = MissionStatus(self.status)

    @property
    def duration(self) -> Optional[float]:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time

    def to_dict(self) -> dict:
        return {
            "mission_id": self.mission_id,
            "target": self.target.to_dict(),
            "priority": self.priority.value,
            "status": self.status.value,
            "created_at": self.created_at,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }


@dataclass
class Drone:
    """
    A docked drone and its current flight state

    In-motion drones started through the coordinator carry a target and a
    five-point flight path; idle drones carry neither.
    """
    id: int
    name: str
    position: GridPosition
    status: DroneStatus = DroneStatus.IDLE
    battery_level: float = DEFAULT_BATTERY_LEVEL
    target_position: Optional[TargetPosition] = None
    flight_path: Optional[List[GridPosition]] = None
    queued_mission: Optional[Mission] = None
    active_mission: Optional[Mission] = None
    assigned_layer: Optional[int] = None  # 1-5, transit layers are 3 and 4
    quadrant: Optional[int] = None  # 1-4

    def __post_init__(self):
        """Validate drone parameters"""
        self.status = DroneStatus(self.status)

        if not 0 <= self.battery_level <= 100:
            raise ValueError(f"Battery level must be within 0-100, got {self.battery_level}")

        if self.assigned_layer is not None and not 1 <= self.assigned_layer <= 5:
            raise ValueError(f"Assigned layer must be within 1-5, got {self.assigned_layer}")

        if self.quadrant is not None and not 1 <= self.quadrant <= 4:
            raise ValueError(f"Quadrant must be within 1-4, got {self.quadrant}")

    @property
    def in_motion(self) -> bool:
        return self.status in IN_MOTION_STATUSES

    @property
    def is_active(self) -> bool:
        """In motion with a plan the conflict detector can check"""
        return self.in_motion and bool(self.flight_path)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response"""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "position": self.position.to_dict(),
            "battery_level": self.battery_level,
            "target_position": self.target_position.to_dict() if self.target_position else None,
            "flight_path": [p.to_dict() for p in self.flight_path] if self.flight_path else None,
            "queued_mission": self.queued_mission.to_dict() if self.queued_mission else None,
            "active_mission": self.active_mission.to_dict() if self.active_mission else None,
            "assigned_layer": self.assigned_layer,
            "quadrant": self.quadrant,
        }

    def __repr__(self) -> str:
        return (f"Drone({self.name}, status={self.status.value}, "
                f"dock={self.position}, layer={self.assigned_layer})")


@dataclass
class Conflict:
    """
    Proximity between the planned paths of two drones
    Recomputed from scratch on every tick
    """
    conflict_id: str
    drone_ids: Tuple[int, int]
    position: GridPosition  # offending waypoint of the first drone
    severity: Severity
    time_to_conflict: float  # seconds
    distance: float = 0.0
    resolution: Optional[Resolution] = None

    def __post_init__(self):
        """Validate conflict data"""
        self.drone_ids = tuple(self.drone_ids)
        if len(self.drone_ids) != 2 or self.drone_ids[0] == self.drone_ids[1]:
            raise ValueError(f"Conflict needs exactly two distinct drones, got {self.drone_ids}")

        self.severity = Severity(self.severity)
        if self.resolution is not None:
            self.resolution = Resolution(self.resolution)

    def involves(self, drone_id: int) -> bool:
        return drone_id in self.drone_ids

    def to_dict(self) -> dict:
        return {
            "conflict_id": self.conflict_id,
            "drone_ids": list(self.drone_ids),
            "position": self.position.to_dict(),
            "severity": self.severity.value,
            "time_to_conflict": self.time_to_conflict,
            "distance": self.distance,
            "resolution": self.resolution.value if self.resolution else None,
        }

    def __repr__(self) -> str:
        return (f"Conflict({self.severity.value}: D{self.drone_ids[0]} <-> "
                f"D{self.drone_ids[1]} at {self.position}, t={self.time_to_conflict:.0f}s, "
                f"{self.resolution.value if self.resolution else 'unresolved'})")


@dataclass
class Metrics:
    """Aggregate operational metrics, derived on every tick"""
    active_flights: int = 0
    queued_flights: int = 0
    completed_flights: int = 0
    average_flight_time: float = 0.0  # seconds
    conflicts_detected: int = 0
    conflicts_resolved: int = 0
    flight_efficiency_score: float = 90.0
    safety_score: float = 100.0
    throughput_rate: float = 0.0  # flights per hour
    wait_time_average: float = 0.0  # seconds

    def to_dict(self) -> dict:
        return {
            "active_flights": self.active_flights,
            "queued_flights": self.queued_flights,
            "completed_flights": self.completed_flights,
            "average_flight_time": self.average_flight_time,
            "conflicts_detected": self.conflicts_detected,
            "conflicts_resolved": self.conflicts_resolved,
            "flight_efficiency_score": self.flight_efficiency_score,
            "safety_score": self.safety_score,
            "throughput_rate": self.throughput_rate,
            "wait_time_average": self.wait_time_average,
        }


@dataclass(frozen=True)
class Notification:
    """User-facing event record handed to notification observers"""
    kind: str
    message: str
    drone_id: Optional[int] = None
    level: str = "info"  # "info", "warning", "error"
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "drone_id": self.drone_id,
            "level": self.level,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FleetSnapshot:
    """
    Immutable view of the engine state published at the end of a tick
    Holds deep copies, readers can never reach the canonical drone records
    """
    tick: int
    drones: Tuple[Drone, ...]
    conflicts: Tuple[Conflict, ...]
    metrics: Metrics
    timestamp: float = field(default_factory=time.time)

    @property
    def active_drones(self) -> Tuple[Drone, ...]:
        return tuple(d for d in self.drones if d.is_active)

    def get_drone(self, drone_id: int) -> Optional[Drone]:
        for drone in self.drones:
            if drone.id == drone_id:
                return drone
        return None

    def to_dict(self) -> dict:
        return {
            "tick": self.tick,
            "timestamp": self.timestamp,
            "drones": [d.to_dict() for d in self.drones],
            "active_drone_ids": [d.id for d in self.active_drones],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "metrics": self.metrics.to_dict(),
        }


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a coordinator command"""
    accepted: bool
    notification: Notification
    snapshot: FleetSnapshot

    def to_dict(self) -> dict:
        return {
            "accepted": self.accepted,
            "notification": self.notification.to_dict(),
            "state": self.snapshot.to_dict(),
        }


# Utility functions for model creation

def create_default_drones() -> List[Drone]:
    """
    Build the 16 docked drones of the 4x4 testing site

    Returns:
        Idle drones D1..D16 in row-major dock order with precomputed
        quadrant and transit layer
    """
    drones = []
    for drone_id, (x, y) in sorted(DOCK_POSITIONS.items()):
        drones.append(Drone(
            id=drone_id,
            name=f"D{drone_id}",
            position=GridPosition(x, y),
            assigned_layer=assign_altitude_layer(drone_id),
            quadrant=determine_quadrant(x, y),
        ))
    return drones


def create_mission(target: TargetPosition,
                   priority: str = "medium",
                   status: str = "queued",
                   now: Optional[float] = None) -> Mission:
    """Convenience function to create a mission with a fresh id"""
    created = time.time() if now is None else now
    return Mission(
        mission_id=str(uuid.uuid4()),
        target=target,
        priority=Priority(priority),
        status=MissionStatus(status),
        created_at=created,
    )


def copy_drones(drones) -> Tuple[Drone, ...]:
    return tuple(copy.deepcopy(d) for d in drones)


if __name__ == "__main__":
    print("Testing Core Data Models...")

    fleet = create_default_drones()
    print(f"✅ Created {len(fleet)} docked drones")
    for drone in fleet[:4]:
        print(f"   {drone}")

    conflict = Conflict(
        conflict_id="C_000001",
        drone_ids=(1, 5),
        position=GridPosition(1, 1),
        severity="high",
        time_to_conflict=2.0,
        resolution="altitude-change",
    )
    print(f"✅ Created: {conflict}")

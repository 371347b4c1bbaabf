# dronegrid/core/conflict_detector.py
"""
Conflict Detection Engine
Pairwise waypoint proximity checks between active drones sharing a layer
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple
import logging

import numpy as np
from scipy.spatial.distance import cdist

from .models import Conflict, Drone, GridPosition, Resolution, Severity

logger = logging.getLogger(__name__)


@dataclass
class ConflictDetectorConfig:
    """Configuration for conflict detection (grid units / seconds)"""
    proximity_threshold: float = 1.5
    high_severity_distance: float = 0.5
    medium_severity_distance: float = 1.0
    seconds_per_waypoint: float = 2.0
    # Resolution bands on time to conflict
    emergency_stop_before: float = 2.0
    altitude_change_before: float = 5.0
    path_reroute_before: float = 10.0
    # Companion path overlap check
    overlap_threshold: float = 0.5
    overlap_high_distance: float = 0.2
    overlap_medium_distance: float = 0.35


class ConflictDetector:
    """
    Conflict Detection Engine

    Exhaustive O(D^2 * W^2) scan: with at most 16 drones and 5 waypoints
    per path there is nothing to gain from a spatial index.
    1. Filter to drones in motion with a flight path
    2. Pair drones that share an altitude layer
    3. Find the first waypoint pair closer than the threshold
    4. Classify severity and pre-select a resolution
    """

    def __init__(self, config: Optional[ConflictDetectorConfig] = None):
        self.config = config or ConflictDetectorConfig()

        self._conflict_counter = 0
        self.stats = {
            "checks": 0,
            "pairs_compared": 0,
            "conflicts_found": 0,
            "overlaps_found": 0,
        }

    def detect_conflicts(self, drones: Iterable[Drone]) -> List[Conflict]:
        """
        Find all conflicts for the current tick

        Args:
            drones: Drone records, inactive ones are ignored

        Returns:
            At most one conflict per drone pair, each with a resolution
        """
        active = [d for d in drones if d.is_active]
        conflicts = []
        self.stats["checks"] += 1

        for i, drone_a in enumerate(active):
            for drone_b in active[i + 1:]:
                # Different layers are vertically separated
                if drone_a.assigned_layer != drone_b.assigned_layer:
                    continue

                self.stats["pairs_compared"] += 1
                hit = self._first_proximity(drone_a.flight_path, drone_b.flight_path,
                                            self.config.proximity_threshold)
                if hit is None:
                    continue

                index_a, index_b, distance = hit
                time_to_conflict = min(index_a, index_b) * self.config.seconds_per_waypoint

                conflicts.append(Conflict(
                    conflict_id=self._next_conflict_id(),
                    drone_ids=(drone_a.id, drone_b.id),
                    position=drone_a.flight_path[index_a],
                    severity=self._classify_severity(distance),
                    time_to_conflict=time_to_conflict,
                    distance=distance,
                    resolution=self._select_resolution(time_to_conflict),
                ))

        self.stats["conflicts_found"] += len(conflicts)
        if conflicts:
            logger.debug("Detected %d conflict(s) among %d active drones",
                         len(conflicts), len(active))

        return conflicts

    def check_path_overlaps(self, drones: Iterable[Drone]) -> List[Conflict]:
        """
        Anticipatory overlap check on raw paths

        Ignores altitude layers and uses the stricter overlap threshold.
        No resolution is attached, results are for display only.
        """
        active = [d for d in drones if d.is_active]
        overlaps = []

        for i, drone_a in enumerate(active):
            for drone_b in active[i + 1:]:
                hit = self._first_proximity(drone_a.flight_path, drone_b.flight_path,
                                            self.config.overlap_threshold)
                if hit is None:
                    continue

                index_a, index_b, distance = hit
                if distance < self.config.overlap_high_distance:
                    severity = Severity.HIGH
                elif distance < self.config.overlap_medium_distance:
                    severity = Severity.MEDIUM
                else:
                    severity = Severity.LOW

                overlaps.append(Conflict(
                    conflict_id=self._next_conflict_id(),
                    drone_ids=(drone_a.id, drone_b.id),
                    position=drone_a.flight_path[index_a],
                    severity=severity,
                    time_to_conflict=min(index_a, index_b) * self.config.seconds_per_waypoint,
                    distance=distance,
                ))

        self.stats["overlaps_found"] += len(overlaps)
        return overlaps

    def _first_proximity(self,
                         path_a: Sequence[GridPosition],
                         path_b: Sequence[GridPosition],
                         threshold: float) -> Optional[Tuple[int, int, float]]:
        """
        First waypoint pair closer than threshold

        Scans path A's waypoints in order, and for each of them path B's
        waypoints in order. Later, possibly closer, pairs are not reported.

        Returns:
            (index in A, index in B, distance) or None
        """
        points_a = np.array([p.to_array() for p in path_a])
        points_b = np.array([p.to_array() for p in path_b])
        distances = cdist(points_a, points_b)

        # argwhere yields row-major order, i.e. A-major scan order
        hits = np.argwhere(distances < threshold)
        if len(hits) == 0:
            return None

        index_a, index_b = (int(v) for v in hits[0])
        return index_a, index_b, float(distances[index_a, index_b])

    def _classify_severity(self, distance: float) -> Severity:
        """
        Classify conflict severity based on waypoint separation

        Returns:
            HIGH below 0.5 units, MEDIUM below 1.0, LOW otherwise
        """
        if distance < self.config.high_severity_distance:
            return Severity.HIGH
        elif distance < self.config.medium_severity_distance:
            return Severity.MEDIUM
        else:
            return Severity.LOW

    def _select_resolution(self, time_to_conflict: float) -> Resolution:
        if time_to_conflict < self.config.emergency_stop_before:
            return Resolution.EMERGENCY_STOP
        elif time_to_conflict < self.config.altitude_change_before:
            return Resolution.ALTITUDE_CHANGE
        elif time_to_conflict < self.config.path_reroute_before:
            return Resolution.PATH_REROUTE
        else:
            return Resolution.TIME_DELAY

    def _next_conflict_id(self) -> str:
        self._conflict_counter += 1
        return f"C_{self._conflict_counter:06d}"

    def reset_statistics(self):
        """Zero the counters and restart conflict ids"""
        self._conflict_counter = 0
        for key in self.stats:
            self.stats[key] = 0

    def get_statistics(self) -> dict:
        """Get detector statistics"""
        return {
            **self.stats,
            "config": {
                "proximity_threshold": self.config.proximity_threshold,
                "high_severity_distance": self.config.high_severity_distance,
                "medium_severity_distance": self.config.medium_severity_distance,
                "overlap_threshold": self.config.overlap_threshold,
            }
        }


if __name__ == "__main__":
    print("Testing Conflict Detection Engine...")

    from .models import DroneStatus, TargetPosition
    from .pathfinding import calculate_optimal_path

    detector = ConflictDetector()

    target = TargetPosition(6, 2, "East Zone")
    drone_a = Drone(id=1, name="D1", position=GridPosition(0, 0), assigned_layer=4)
    drone_b = Drone(id=5, name="D5", position=GridPosition(0, 1), assigned_layer=4)
    for drone in (drone_a, drone_b):
        drone.status = DroneStatus.TAKING_OFF
        drone.target_position = target
        drone.flight_path = calculate_optimal_path(drone.position, target)

    conflicts = detector.detect_conflicts([drone_a, drone_b])
    print(f"✅ Same layer: {len(conflicts)} conflict(s)")
    for conflict in conflicts:
        print(f"   {conflict}")

    drone_b.assigned_layer = 3
    conflicts = detector.detect_conflicts([drone_a, drone_b])
    print(f"✅ Different layers: {len(conflicts)} conflict(s)")

    print(f"   Stats: {detector.get_statistics()}")

# dronegrid/core/conflict_resolver.py
"""
Conflict Resolution
Applies the resolution attached to each detected conflict to the drones involved
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence
import logging

import numpy as np

from .airspace import LAYER_PRIMARY_TRANSIT, LAYER_SECONDARY_TRANSIT
from .models import Conflict, Drone, DroneStatus, Resolution
from .pathfinding import calculate_optimal_path, jitter_path

logger = logging.getLogger(__name__)


@dataclass
class ResolverConfig:
    """Configuration for conflict resolution"""
    seed: Optional[int] = None  # None draws fresh entropy once per resolver
    reroute_offset: float = 0.5  # grid units


class ConflictResolver:
    """
    Resolution policy table

    - altitude-change: first drone to Secondary Transit, second to Primary
    - path-reroute: larger id (lower priority) gets a jittered fresh path
    - time-delay: larger id is held in "preparing"
    - emergency-stop: both drones to "emergency"

    Conflicts are applied in order, so a drone in several conflicts keeps
    whatever the last one did to it.
    """

    def __init__(self, config: Optional[ResolverConfig] = None):
        self.config = config or ResolverConfig()

        if self.config.seed is None:
            self._seed = int(np.random.SeedSequence().entropy % (2 ** 32))
        else:
            self._seed = self.config.seed

        self.stats: Dict[str, int] = {r.value: 0 for r in Resolution}

    @property
    def seed(self) -> int:
        return self._seed

    def resolve(self,
                drones: Sequence[Drone],
                conflicts: Sequence[Conflict],
                epoch: int = 0) -> List[Drone]:
        """
        Apply resolutions and return the updated drone list

        The input drones are never mutated, changed drones are replaced by
        new records. Reroute jitter is seeded by (seed, epoch, drone id) so the
        same conflicts applied twice in one epoch give the same result.

        Args:
            drones: Current drone records
            conflicts: Conflicts detected this tick
            epoch: Evaluation round the conflicts belong to

        Returns:
            New list, same order as the input
        """
        updated = list(drones)
        if not conflicts:
            return updated

        index_by_id = {d.id: i for i, d in enumerate(updated)}

        for conflict in conflicts:
            id_a, id_b = conflict.drone_ids
            if id_a not in index_by_id or id_b not in index_by_id:
                logger.debug("Skipping %s: unknown drone", conflict.conflict_id)
                continue
            if conflict.resolution is None:
                continue

            idx_a, idx_b = index_by_id[id_a], index_by_id[id_b]
            drone_a, drone_b = updated[idx_a], updated[idx_b]
            # Larger id is the lower priority drone
            idx_low = idx_a if drone_a.id > drone_b.id else idx_b

            if conflict.resolution == Resolution.ALTITUDE_CHANGE:
                updated[idx_a] = replace(drone_a, assigned_layer=LAYER_SECONDARY_TRANSIT)
                updated[idx_b] = replace(drone_b, assigned_layer=LAYER_PRIMARY_TRANSIT)

            elif conflict.resolution == Resolution.PATH_REROUTE:
                updated[idx_low] = self._reroute(updated[idx_low], epoch)

            elif conflict.resolution == Resolution.TIME_DELAY:
                updated[idx_low] = replace(updated[idx_low], status=DroneStatus.PREPARING)

            elif conflict.resolution == Resolution.EMERGENCY_STOP:
                updated[idx_a] = replace(drone_a, status=DroneStatus.EMERGENCY)
                updated[idx_b] = replace(drone_b, status=DroneStatus.EMERGENCY)
                logger.warning("Emergency stop: %s and %s (%s)",
                               drone_a.name, drone_b.name, conflict.conflict_id)

            self.stats[conflict.resolution.value] += 1

        return updated

    def _reroute(self, drone: Drone, epoch: int) -> Drone:
        """Fresh planner path with jittered interior waypoints"""
        if drone.target_position is None:
            return drone

        rng = np.random.default_rng([self._seed, epoch, drone.id])
        base_path = calculate_optimal_path(drone.position, drone.target_position)
        new_path = jitter_path(base_path, rng, self.config.reroute_offset)

        return replace(drone, flight_path=new_path)

    def reset_statistics(self):
        self.stats = {r.value: 0 for r in Resolution}

    def get_statistics(self) -> dict:
        return {"seed": self._seed, "applied": dict(self.stats)}

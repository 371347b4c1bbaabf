# dronegrid/simulation/traffic.py
"""
Flight Request Generator
Generates random launch requests against the named target catalog
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

from ..core.airspace import POTENTIAL_TARGETS
from ..core.models import Drone, DroneStatus, TargetPosition


@dataclass
class TrafficConfig:
    """Configuration for flight request generation"""
    num_requests: int = 4
    # low / medium / high
    priority_weights: Tuple[float, float, float] = (0.3, 0.5, 0.2)
    seed: Optional[int] = 42  # for reproducibility


@dataclass(frozen=True)
class FlightRequest:
    """A launch request as a control panel would issue it"""
    drone_id: int
    target: TargetPosition
    priority: str = "medium"


class TrafficGenerator:
    """
    Generates flight requests for demo runs, load tests and profiling

    Only idle drones are picked, each at most once per batch, so every
    request in a batch can be accepted by the coordinator.
    """

    PRIORITIES = ("low", "medium", "high")

    def __init__(self, config: Optional[TrafficConfig] = None):
        self.config = config or TrafficConfig()
        self.rng = np.random.default_rng(self.config.seed)

        weights = np.asarray(self.config.priority_weights, dtype=float)
        self._priority_p = weights / weights.sum()

    def generate_requests(self,
                          drones: Iterable[Drone],
                          num_requests: Optional[int] = None) -> List[FlightRequest]:
        """
        Generate a batch of flight requests

        Args:
            drones: Current drone records
            num_requests: Batch size (uses config if None), capped by idle drones

        Returns:
            List of FlightRequest objects
        """
        num_requests = self.config.num_requests if num_requests is None else num_requests
        idle_ids = [d.id for d in drones if d.status == DroneStatus.IDLE]
        count = min(num_requests, len(idle_ids))
        if count <= 0:
            return []

        chosen = self.rng.choice(idle_ids, size=count, replace=False)
        target_indices = self.rng.integers(0, len(POTENTIAL_TARGETS), size=count)
        priorities = self.rng.choice(self.PRIORITIES, size=count, p=self._priority_p)

        return [
            FlightRequest(
                drone_id=int(drone_id),
                target=TargetPosition(**POTENTIAL_TARGETS[int(target_index)]),
                priority=str(priority),
            )
            for drone_id, target_index, priority in zip(chosen, target_indices, priorities)
        ]

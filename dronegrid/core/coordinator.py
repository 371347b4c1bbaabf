# dronegrid/core/coordinator.py
"""
Mission/Metrics Coordinator
Single owner of the drone arena: flight commands, per-tick conflict
evaluation, metric recomputation and snapshot publishing
"""

from collections import deque
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional
import copy
import logging
import time

from .altitude import assign_altitude_layer
from .conflict_detector import ConflictDetector
from .conflict_resolver import ConflictResolver
from .models import (
    CommandResult,
    Conflict,
    Drone,
    DroneStatus,
    FleetSnapshot,
    Metrics,
    MissionStatus,
    Notification,
    Priority,
    TargetPosition,
    copy_drones,
    create_default_drones,
    create_mission,
)
from .pathfinding import calculate_optimal_path

logger = logging.getLogger(__name__)

NotificationCallback = Callable[[Notification], None]
SnapshotCallback = Callable[[FleetSnapshot], None]


@dataclass
class CoordinatorConfig:
    """Configuration for mission coordination and metrics"""
    max_resolution_rounds: int = 3
    # Scores
    baseline_safety_score: float = 100.0
    baseline_efficiency_score: float = 90.0
    safety_penalty_per_conflict: float = 10.0
    efficiency_penalty_per_flight: float = 2.0
    score_floor: float = 50.0
    # Flight phase progression (simulation steps)
    cruise_ticks: int = 4
    hold_ticks: int = 3
    notification_history: int = 50


class FlightCoordinator:
    """
    Mission/Metrics Coordinator

    Owns the canonical drone records, keyed by drone id. Every command that
    changes state runs a tick:
    1. Detect conflicts among active drones
    2. Resolve them and fold the updated drones back
    3. Repeat until stable or max_resolution_rounds is reached
    4. Recompute metrics and publish an immutable snapshot

    Invalid commands never raise, they return the unchanged state together
    with a notification.
    """

    def __init__(self,
                 config: Optional[CoordinatorConfig] = None,
                 detector: Optional[ConflictDetector] = None,
                 resolver: Optional[ConflictResolver] = None,
                 on_notification: Optional[NotificationCallback] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize coordinator

        Args:
            config: Coordination parameters
            detector: Conflict detector (default configuration if None)
            resolver: Conflict resolver (unseeded if None)
            on_notification: Observer for user-facing events
            clock: Time source in seconds, injectable for tests
        """
        self.config = config or CoordinatorConfig()
        self.detector = detector or ConflictDetector()
        self.resolver = resolver or ConflictResolver()
        self._on_notification = on_notification
        self._clock = clock

        self._subscribers: List[SnapshotCallback] = []
        self._notifications = deque(maxlen=self.config.notification_history)

        self._init_state()

    def _init_state(self):
        self._drones: Dict[int, Drone] = {d.id: d for d in create_default_drones()}
        self._conflicts: List[Conflict] = []
        self._metrics = Metrics(
            flight_efficiency_score=self.config.baseline_efficiency_score,
            safety_score=self.config.baseline_safety_score,
        )
        self._tick = 0
        self._phase_ticks: Dict[int, int] = {}

        self._flights_started = 0
        self._completed_flights = 0
        self._average_flight_time = 0.0
        self._conflicts_detected = 0
        self._conflicts_resolved = 0
        self._started_at = self._clock()

    # ==================== Queries ====================

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def drones(self) -> List[Drone]:
        return list(copy_drones(self._drones.values()))

    @property
    def active_drones(self) -> List[Drone]:
        return list(copy_drones(d for d in self._drones.values() if d.is_active))

    @property
    def conflicts(self) -> List[Conflict]:
        return copy.deepcopy(self._conflicts)

    @property
    def metrics(self) -> Metrics:
        return copy.copy(self._metrics)

    @property
    def notifications(self) -> List[Notification]:
        return list(self._notifications)

    def get_drone(self, drone_id: int) -> Optional[Drone]:
        drone = self._drones.get(drone_id)
        return copy.deepcopy(drone) if drone is not None else None

    def snapshot(self) -> FleetSnapshot:
        """Immutable copy of the current state"""
        return FleetSnapshot(
            tick=self._tick,
            drones=copy_drones(self._drones.values()),
            conflicts=tuple(copy.deepcopy(self._conflicts)),
            metrics=copy.copy(self._metrics),
            timestamp=self._clock(),
        )

    def check_path_overlaps(self) -> List[Conflict]:
        """Anticipatory overlap check for display, changes nothing"""
        return self.detector.check_path_overlaps(self._drones.values())

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """
        Register an observer for published snapshots

        Returns:
            Function that removes the observer again
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ==================== Commands ====================

    def start_flight(self,
                     drone_id: int,
                     target: TargetPosition,
                     priority: str = "medium") -> CommandResult:
        """
        Launch an idle drone toward a target

        Assigns the transit layer by id parity, plans the path, opens an
        in-progress mission and runs a tick. Any queued mission is dropped.
        """
        drone = self._drones.get(drone_id)
        if drone is None:
            return self._reject("unknown-drone", f"Drone {drone_id} does not exist", drone_id)

        if drone.status != DroneStatus.IDLE:
            return self._reject("drone-unavailable",
                                f"Drone {drone.name} is currently {drone.status.value}",
                                drone_id)

        try:
            priority = Priority(priority)
        except ValueError:
            return self._reject("invalid-priority", f"Unknown priority: {priority}", drone_id)

        now = self._clock()
        mission = create_mission(target, priority.value, MissionStatus.IN_PROGRESS.value, now)
        mission.start_time = now

        self._drones[drone_id] = replace(
            drone,
            status=DroneStatus.TAKING_OFF,
            target_position=target,
            flight_path=calculate_optimal_path(drone.position, target),
            assigned_layer=assign_altitude_layer(drone_id),
            active_mission=mission,
            queued_mission=None,
        )
        self._phase_ticks[drone_id] = 0
        self._flights_started += 1

        logger.info("Flight started: %s -> (%d, %d) priority=%s",
                    drone.name, target.x, target.y, priority.value)
        notification = self._notify("flight-started",
                                    f"Drone {drone.name} is taking off to target location",
                                    drone_id)
        return CommandResult(True, notification, self.tick())

    def queue_flight(self,
                     drone_id: int,
                     target: TargetPosition,
                     priority: str = "medium") -> CommandResult:
        """
        Store a mission for later without touching the current flight

        Queued missions are not promoted automatically.
        """
        drone = self._drones.get(drone_id)
        if drone is None:
            return self._reject("unknown-drone", f"Drone {drone_id} does not exist", drone_id)

        try:
            priority = Priority(priority)
        except ValueError:
            return self._reject("invalid-priority", f"Unknown priority: {priority}", drone_id)

        mission = create_mission(target, priority.value, MissionStatus.QUEUED.value, self._clock())
        self._drones[drone_id] = replace(drone, queued_mission=mission)

        logger.info("Flight queued: %s -> (%d, %d)", drone.name, target.x, target.y)
        notification = self._notify("flight-queued",
                                    f"Mission for drone {drone.name} has been queued",
                                    drone_id)
        return CommandResult(True, notification, self.tick())

    def end_flight(self, drone_id: int) -> CommandResult:
        """
        Bring a flying drone down

        No-op unless the drone is in motion and not already landing.
        """
        drone = self._drones.get(drone_id)
        if drone is None:
            return self._reject("unknown-drone", f"Drone {drone_id} does not exist", drone_id)

        if not drone.in_motion or drone.status == DroneStatus.LANDING:
            return self._reject("flight-not-active",
                                f"Drone {drone.name} is not flying ({drone.status.value})",
                                drone_id)

        self._drones[drone_id] = self._complete_flight(drone)

        logger.info("Flight ended: %s", drone.name)
        notification = self._notify("flight-completed",
                                    f"Drone {drone.name} has landed safely",
                                    drone_id)
        return CommandResult(True, notification, self.tick())

    def reset(self) -> CommandResult:
        """Restore every drone to its dock, clear conflicts and metrics"""
        self._init_state()
        self.detector.reset_statistics()
        self.resolver.reset_statistics()

        logger.info("System reset")
        notification = self._notify("system-reset",
                                    "All drones and metrics have been reset to default values")
        snapshot = self.snapshot()
        self._publish(snapshot)
        return CommandResult(True, notification, snapshot)

    # ==================== Tick ====================

    def tick(self) -> FleetSnapshot:
        """
        One synchronous evaluation cycle

        Returns:
            Snapshot published to subscribers. Its conflicts are the first
            conflict acted on for each drone pair during this tick.
        """
        self._tick += 1
        rounds = self.config.max_resolution_rounds

        drones = list(self._drones.values())
        previous_status = {d.id: d.status for d in drones}
        already_halted = {d.id for d in drones if d.status == DroneStatus.EMERGENCY}
        acted: List[Conflict] = []

        for round_index in range(rounds):
            conflicts = self.detector.detect_conflicts(drones)
            if not conflicts:
                break
            acted.extend(conflicts)
            drones = self.resolver.resolve(drones, conflicts,
                                           epoch=self._tick * rounds + round_index)

        # A pair that survives a round is still one conflict for the tick
        first_by_pair: Dict[tuple, Conflict] = {}
        for conflict in acted:
            first_by_pair.setdefault(conflict.drone_ids, conflict)
        acted = list(first_by_pair.values())

        self._drones = {d.id: d for d in drones}
        for drone in drones:
            # Held or halted drones start counting phase steps afresh
            if drone.status != previous_status[drone.id]:
                self._phase_ticks[drone.id] = 0
        self._conflicts = acted
        self._conflicts_detected += len(acted)
        self._conflicts_resolved += sum(1 for c in acted if c.resolution is not None)

        if acted:
            summary = ", ".join(
                f"D{c.drone_ids[0]} & D{c.drone_ids[1]}: {c.resolution.value}" for c in acted
            )
            logger.debug("Tick %d: %d conflict(s) resolved (%s)", self._tick, len(acted), summary)
            self._notify("conflicts-resolved",
                         f"{len(acted)} flight path conflict(s) detected, resolved by {summary}",
                         level="warning")

        self._fail_halted_missions(already_halted)
        self._recompute_metrics()

        snapshot = self.snapshot()
        self._publish(snapshot)
        return snapshot

    def advance_phases(self) -> None:
        """
        One step of flight phase progression

        taking-off -> transition-up -> flying (cruise_ticks steps) ->
        transition-down -> returning -> landing -> idle. Drones held in
        preparing with a plan resume taking-off after hold_ticks steps.
        Emergency and maintenance drones never move.
        """
        for drone_id, drone in list(self._drones.items()):
            status = drone.status
            count = self._phase_ticks.get(drone_id, 0) + 1

            if status == DroneStatus.PREPARING and drone.flight_path:
                if count >= self.config.hold_ticks:
                    self._set_status(drone, DroneStatus.TAKING_OFF)
                    self._notify("hold-released",
                                 f"Drone {drone.name} cleared to resume its flight", drone_id)
                else:
                    self._phase_ticks[drone_id] = count

            elif status == DroneStatus.TAKING_OFF:
                self._set_status(drone, DroneStatus.TRANSITION_UP)

            elif status == DroneStatus.TRANSITION_UP:
                self._set_status(drone, DroneStatus.FLYING)

            elif status == DroneStatus.FLYING:
                if count >= self.config.cruise_ticks:
                    self._set_status(drone, DroneStatus.TRANSITION_DOWN)
                else:
                    self._phase_ticks[drone_id] = count

            elif status == DroneStatus.TRANSITION_DOWN:
                self._set_status(drone, DroneStatus.RETURNING)

            elif status == DroneStatus.RETURNING:
                self._drones[drone_id] = self._complete_flight(drone)
                self._phase_ticks[drone_id] = 0
                self._notify("flight-completed",
                             f"Drone {drone.name} has landed safely", drone_id)

            elif status == DroneStatus.LANDING:
                self._drones[drone_id] = replace(
                    drone, status=DroneStatus.IDLE, target_position=None, flight_path=None
                )
                self._phase_ticks.pop(drone_id, None)

    # ==================== Internals ====================

    def _set_status(self, drone: Drone, status: DroneStatus):
        self._drones[drone.id] = replace(drone, status=status)
        self._phase_ticks[drone.id] = 0

    def _complete_flight(self, drone: Drone) -> Drone:
        """Close the mission, update flight time average, start landing"""
        now = self._clock()
        duration = 0.0

        if drone.active_mission is not None:
            finished = replace(drone.active_mission,
                               status=MissionStatus.COMPLETED,
                               end_time=now)
            duration = finished.duration or 0.0

        self._completed_flights += 1
        self._average_flight_time += (duration - self._average_flight_time) / self._completed_flights

        return replace(drone,
                       status=DroneStatus.LANDING,
                       target_position=None,
                       flight_path=None,
                       active_mission=None)

    def _fail_halted_missions(self, already_halted: set):
        """Missions of drones stopped this tick are marked failed"""
        now = self._clock()
        for drone in list(self._drones.values()):
            if drone.status != DroneStatus.EMERGENCY or drone.id in already_halted:
                continue

            mission = drone.active_mission
            if mission is not None and mission.status == MissionStatus.IN_PROGRESS:
                self._drones[drone.id] = replace(
                    drone,
                    active_mission=replace(mission, status=MissionStatus.FAILED, end_time=now),
                )
            self._notify("emergency-stop",
                         f"Drone {drone.name} halted, manual recovery required",
                         drone.id, level="error")

    def _recompute_metrics(self):
        now = self._clock()
        cfg = self.config
        drones = list(self._drones.values())

        queued = [d.queued_mission for d in drones if d.queued_mission is not None]
        wait_average = (sum(now - m.created_at for m in queued) / len(queued)) if queued else 0.0

        elapsed_hours = (now - self._started_at) / 3600.0
        throughput = self._flights_started / elapsed_hours if elapsed_hours > 0 else 0.0

        self._metrics = Metrics(
            active_flights=sum(1 for d in drones if d.is_active),
            queued_flights=len(queued),
            completed_flights=self._completed_flights,
            average_flight_time=self._average_flight_time,
            conflicts_detected=self._conflicts_detected,
            conflicts_resolved=self._conflicts_resolved,
            flight_efficiency_score=max(
                cfg.score_floor,
                cfg.baseline_efficiency_score - cfg.efficiency_penalty_per_flight * self._flights_started,
            ),
            safety_score=max(
                cfg.score_floor,
                cfg.baseline_safety_score - cfg.safety_penalty_per_conflict * len(self._conflicts),
            ),
            throughput_rate=throughput,
            wait_time_average=wait_average,
        )

    def _reject(self, kind: str, message: str, drone_id: Optional[int] = None) -> CommandResult:
        logger.warning("Command rejected (%s): %s", kind, message)
        notification = self._notify(kind, message, drone_id, level="warning")
        return CommandResult(False, notification, self.snapshot())

    def notify(self, kind: str, message: str,
               drone_id: Optional[int] = None, level: str = "info") -> Notification:
        """Record a notification raised by a collaborator (e.g. the driver)"""
        return self._notify(kind, message, drone_id, level)

    def _notify(self, kind: str, message: str,
                drone_id: Optional[int] = None, level: str = "info") -> Notification:
        notification = Notification(kind=kind, message=message, drone_id=drone_id,
                                    level=level, timestamp=self._clock())
        self._notifications.append(notification)
        if self._on_notification is not None:
            self._on_notification(notification)
        return notification

    def _publish(self, snapshot: FleetSnapshot):
        for callback in list(self._subscribers):
            callback(snapshot)

    def get_statistics(self) -> dict:
        return {
            "tick": self._tick,
            "flights_started": self._flights_started,
            "completed_flights": self._completed_flights,
            "detector": self.detector.get_statistics(),
            "resolver": self.resolver.get_statistics(),
        }


if __name__ == "__main__":
    print("Testing Flight Coordinator...")

    from .airspace import POTENTIAL_TARGETS

    coordinator = FlightCoordinator(on_notification=lambda n: print(f"   [{n.level}] {n.message}"))
    east = TargetPosition(**POTENTIAL_TARGETS[4])

    coordinator.start_flight(2, east)
    result = coordinator.start_flight(3, east)
    print(f"✅ Even/odd drones: {len(result.snapshot.conflicts)} conflict(s)")

    coordinator.start_flight(1, east)
    result = coordinator.start_flight(5, east)
    print(f"✅ Same layer drones: {len(result.snapshot.conflicts)} conflict(s)")
    for conflict in result.snapshot.conflicts:
        print(f"   {conflict}")

    print(f"✅ Metrics: {result.snapshot.metrics}")

# dronegrid/simulation/driver.py
"""
Simulation Driver
Periodic timer that advances flight phases and ticks the coordinator
"""

from dataclasses import dataclass
from typing import Optional
import asyncio
import logging

from ..core.coordinator import FlightCoordinator
from ..core.models import FleetSnapshot

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Configuration for the simulation timer"""
    tick_interval: float = 1.0  # seconds between steps at 1x
    min_speed: int = 1
    max_speed: int = 8
    initial_speed: int = 1


class SimulationDriver:
    """
    Drives the coordinator from an asyncio loop

    Each step is synchronous: advance flight phases, then tick. The loop
    only awaits between steps, so pausing never interrupts a tick.

    Example:
        driver = SimulationDriver(coordinator)
        driver.set_speed(4)
        driver.start()      # inside a running event loop
        ...
        driver.pause()
    """

    def __init__(self,
                 coordinator: FlightCoordinator,
                 config: Optional[SimulationConfig] = None):
        self.coordinator = coordinator
        self.config = config or SimulationConfig()

        self._speed = self.config.initial_speed
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self.steps = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def speed(self) -> int:
        return self._speed

    @property
    def tick_delay(self) -> float:
        """Seconds between steps at the current speed"""
        return self.config.tick_interval / self._speed

    def set_speed(self, speed: int) -> bool:
        """
        Change the speed multiplier

        Returns:
            False (with a notification) when outside min_speed..max_speed
        """
        if not self.config.min_speed <= speed <= self.config.max_speed:
            self.coordinator.notify(
                "invalid-speed",
                f"Simulation speed must be between {self.config.min_speed}x "
                f"and {self.config.max_speed}x, got {speed}",
                level="warning",
            )
            return False

        self._speed = int(speed)
        logger.info("Simulation speed set to %dx", self._speed)
        return True

    def start(self) -> bool:
        """
        Start the timer

        Inside a running event loop the background task is created here,
        otherwise only the running flag is set and run() must be awaited.
        """
        if self._running:
            return False

        self._running = True
        self.coordinator.notify("simulation-started", f"Simulation running at {self._speed}x")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None and (self._task is None or self._task.done()):
            self._task = loop.create_task(self.run())
        return True

    def pause(self) -> bool:
        """Stop the timer, the current step always completes"""
        if not self._running:
            return False

        self._running = False
        self.coordinator.notify("simulation-paused", "Simulation paused")
        return True

    def step(self) -> FleetSnapshot:
        """One synchronous simulation step"""
        self.coordinator.advance_phases()
        self.steps += 1
        return self.coordinator.tick()

    async def run(self, max_steps: Optional[int] = None):
        """
        Timer loop

        Args:
            max_steps: Stop after this many steps (runs until paused if None)
        """
        self._running = True
        taken = 0

        while self._running:
            await asyncio.sleep(self.tick_delay)
            if not self._running:
                break

            self.step()
            taken += 1
            if max_steps is not None and taken >= max_steps:
                self._running = False

        logger.debug("Simulation loop stopped after %d step(s)", taken)

"""Simulation driver and synthetic traffic."""

from .driver import SimulationConfig, SimulationDriver
from .traffic import FlightRequest, TrafficConfig, TrafficGenerator

__all__ = [
    "SimulationConfig",
    "SimulationDriver",
    "FlightRequest",
    "TrafficConfig",
    "TrafficGenerator",
]

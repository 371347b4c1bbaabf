# dronegrid/api/main.py
"""
FastAPI REST Service for the dock-grid coordination engine
Exposes engine queries and commands to the dashboard
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, model_validator
from typing import List, Literal, Optional
from datetime import datetime, timezone
import logging
import os
import time

from ..core.airspace import (
    AIRSPACE_STRUCTURE,
    DOCK_POSITIONS,
    GRID_SIZE,
    POTENTIAL_TARGETS,
)
from ..core.conflict_resolver import ConflictResolver, ResolverConfig
from ..core.coordinator import FlightCoordinator
from ..core.models import TargetPosition
from ..simulation.driver import SimulationConfig, SimulationDriver
from ..simulation.traffic import TrafficConfig, TrafficGenerator

logger = logging.getLogger(__name__)


def _env_int(name: str) -> Optional[int]:
    value = os.environ.get(name)
    return int(value) if value else None


# Initialize FastAPI app
app = FastAPI(
    title="Drone Grid Coordination Service",
    description="Dock-grid flight coordination with automatic conflict resolution",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify actual origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global state: one engine per process, all handlers run on the event loop
coordinator = FlightCoordinator(
    resolver=ConflictResolver(ResolverConfig(seed=_env_int("DRONEGRID_SEED")))
)
driver = SimulationDriver(
    coordinator,
    SimulationConfig(tick_interval=float(os.environ.get("DRONEGRID_TICK_INTERVAL", "1.0")))
)
traffic = TrafficGenerator(TrafficConfig(seed=_env_int("DRONEGRID_SEED")))
system_stats = {
    "started_at": time.time(),
    "commands_handled": 0,
}


# ==================== Pydantic Models ====================

class TargetRequest(BaseModel):
    """Explicit target coordinate"""
    x: int = Field(..., description="Grid X (may lie outside the 4x4 docks)")
    y: int = Field(..., description="Grid Y (may lie outside the 4x4 docks)")
    description: Optional[str] = Field(default=None, description="Human-readable label")


class FlightCommandRequest(BaseModel):
    """Start or queue a flight"""
    drone_id: int = Field(..., description="Drone identifier (1-16)")
    target_index: Optional[int] = Field(
        default=None, ge=0, lt=len(POTENTIAL_TARGETS), description="Index into the target catalog"
    )
    target: Optional[TargetRequest] = Field(default=None, description="Explicit target")
    priority: Literal["low", "medium", "high"] = "medium"

    @model_validator(mode="after")
    def check_target(self):
        if (self.target_index is None) == (self.target is None):
            raise ValueError("Provide exactly one of target_index or target")
        return self

    def to_target(self) -> TargetPosition:
        if self.target is not None:
            return TargetPosition(self.target.x, self.target.y, self.target.description)
        return TargetPosition(**POTENTIAL_TARGETS[self.target_index])


class DroneCommandRequest(BaseModel):
    """Command addressed to one drone"""
    drone_id: int = Field(..., description="Drone identifier (1-16)")


class SpeedRequest(BaseModel):
    """Simulation speed multiplier"""
    speed: int = Field(..., description="Speed multiplier, accepted range 1-8")


class RandomFlightsRequest(BaseModel):
    """Launch a batch of generated flights"""
    num_requests: int = Field(default=4, ge=1, le=16, description="Number of flights to launch")


class SimulationStatusResponse(BaseModel):
    """Simulation timer state"""
    running: bool
    speed: int
    tick_delay: float
    steps: int
    tick: int


# ==================== Helpers ====================

def _require_drone(drone_id: int):
    if coordinator.get_drone(drone_id) is None:
        raise HTTPException(status_code=404, detail=f"Drone {drone_id} not found")


def _simulation_status() -> SimulationStatusResponse:
    return SimulationStatusResponse(
        running=driver.is_running,
        speed=driver.speed,
        tick_delay=driver.tick_delay,
        steps=driver.steps,
        tick=coordinator.tick_count,
    )


def _command_handled(result) -> dict:
    system_stats["commands_handled"] += 1
    return result.to_dict()


# ==================== API Endpoints ====================

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Drone Grid Coordination Service",
        "version": "1.0.0",
        "status": "operational",
        "endpoints": {
            "state": "/api/v1/state",
            "drones": "/api/v1/drones",
            "conflicts": "/api/v1/conflicts",
            "metrics": "/api/v1/metrics",
            "airspace": "/api/v1/airspace",
            "start_flight": "/api/v1/flights/start",
            "simulation": "/api/v1/simulation"
        }
    }


@app.get("/api/v1/state")
async def get_state():
    """Full snapshot: drones, conflicts of the last tick, metrics"""
    return coordinator.snapshot().to_dict()


@app.get("/api/v1/drones")
async def get_drones():
    return {"drones": [d.to_dict() for d in coordinator.drones]}


@app.get("/api/v1/drones/active")
async def get_active_drones():
    return {"drones": [d.to_dict() for d in coordinator.active_drones]}


@app.get("/api/v1/drones/{drone_id}")
async def get_drone(drone_id: int):
    drone = coordinator.get_drone(drone_id)
    if drone is None:
        raise HTTPException(status_code=404, detail=f"Drone {drone_id} not found")
    return drone.to_dict()


@app.get("/api/v1/conflicts")
async def get_conflicts():
    """Conflicts acted on during the last tick"""
    conflicts = coordinator.conflicts
    return {
        "total_conflicts": len(conflicts),
        "conflicts": [c.to_dict() for c in conflicts]
    }


@app.get("/api/v1/path_overlaps")
async def get_path_overlaps():
    """
    Anticipatory overlap check on raw paths (ignores layers)
    Display only, nothing is resolved
    """
    overlaps = coordinator.check_path_overlaps()
    return {
        "total_overlaps": len(overlaps),
        "overlaps": [c.to_dict() for c in overlaps]
    }


@app.get("/api/v1/metrics")
async def get_metrics():
    return coordinator.metrics.to_dict()


@app.get("/api/v1/airspace")
async def get_airspace():
    """Static reference data: grid, docks, targets, layers, quadrants"""
    return {
        "grid_size": GRID_SIZE,
        "docks": [
            {"id": dock_id, "x": x, "y": y}
            for dock_id, (x, y) in sorted(DOCK_POSITIONS.items())
        ],
        "targets": POTENTIAL_TARGETS,
        "layers": AIRSPACE_STRUCTURE["layers"],
        "quadrants": AIRSPACE_STRUCTURE["quadrants"]
    }


@app.get("/api/v1/notifications")
async def get_notifications(limit: int = 20):
    """Most recent notifications, newest first"""
    notifications = coordinator.notifications[::-1][:limit]
    return {"notifications": [n.to_dict() for n in notifications]}


@app.get("/api/v1/statistics")
async def get_statistics():
    """Engine and service statistics"""
    return {
        "system": {
            **system_stats,
            "uptime_seconds": time.time() - system_stats["started_at"]
        },
        "engine": coordinator.get_statistics(),
        "simulation": _simulation_status().model_dump()
    }


@app.post("/api/v1/flights/start")
async def start_flight(request: FlightCommandRequest):
    """Launch an idle drone. Busy drones are rejected with accepted=false"""
    _require_drone(request.drone_id)
    result = coordinator.start_flight(request.drone_id, request.to_target(), request.priority)
    return _command_handled(result)


@app.post("/api/v1/flights/queue")
async def queue_flight(request: FlightCommandRequest):
    _require_drone(request.drone_id)
    result = coordinator.queue_flight(request.drone_id, request.to_target(), request.priority)
    return _command_handled(result)


@app.post("/api/v1/flights/end")
async def end_flight(request: DroneCommandRequest):
    _require_drone(request.drone_id)
    result = coordinator.end_flight(request.drone_id)
    return _command_handled(result)


@app.post("/api/v1/reset")
async def reset_system():
    """Pause the simulation and restore every drone to its dock"""
    driver.pause()
    result = coordinator.reset()
    return _command_handled(result)


@app.post("/api/v1/tick")
async def manual_tick():
    """Run one simulation step by hand"""
    snapshot = driver.step()
    return snapshot.to_dict()


@app.get("/api/v1/simulation", response_model=SimulationStatusResponse)
async def get_simulation():
    return _simulation_status()


@app.post("/api/v1/simulation/start", response_model=SimulationStatusResponse)
async def start_simulation():
    driver.start()
    return _simulation_status()


@app.post("/api/v1/simulation/pause", response_model=SimulationStatusResponse)
async def pause_simulation():
    driver.pause()
    return _simulation_status()


@app.post("/api/v1/simulation/speed")
async def set_simulation_speed(request: SpeedRequest):
    accepted = driver.set_speed(request.speed)
    return {
        "accepted": accepted,
        "simulation": _simulation_status().model_dump()
    }


@app.post("/api/v1/simulation/random_flights")
async def launch_random_flights(request: RandomFlightsRequest):
    """Launch generated flights from idle drones toward catalog targets"""
    requests_batch = traffic.generate_requests(coordinator.drones, request.num_requests)

    results = []
    for flight in requests_batch:
        result = coordinator.start_flight(flight.drone_id, flight.target, flight.priority)
        system_stats["commands_handled"] += 1
        results.append({
            "drone_id": flight.drone_id,
            "target": flight.target.to_dict(),
            "priority": flight.priority,
            "accepted": result.accepted,
            "message": result.notification.message
        })

    return {
        "launched": sum(1 for r in results if r["accepted"]),
        "flights": results,
        "state": coordinator.snapshot().to_dict()
    }


# ==================== Startup ====================

@app.on_event("startup")
async def configure_logging():
    """Configure process logging, also when served by an external uvicorn"""
    logging.basicConfig(level=os.environ.get("DRONEGRID_LOG_LEVEL", "INFO").upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.info("Coordination service started (resolver seed %d)", coordinator.resolver.seed)


# ==================== Health & Monitoring ====================

@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "simulation_running": driver.is_running
    }


if __name__ == "__main__":
    import uvicorn

    print("\n" + "="*60)
    print("Drone Grid Coordination Service")
    print("="*60)
    print("\nStarting server on http://localhost:8000")
    print("API Documentation: http://localhost:8000/docs")
    print("="*60 + "\n")

    uvicorn.run(app, host="0.0.0.0", port=8000)

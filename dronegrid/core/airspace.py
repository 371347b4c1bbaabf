# dronegrid/core/airspace.py
"""
Static airspace reference data for the dock-grid testing site
4x4 dock layout, named target zones, altitude layers and quadrants
"""

from typing import Dict, List

# Grid dimensions (docks per side)
GRID_SIZE = 4

# Altitude layer ids
LAYER_TAKEOFF_LANDING = 1
LAYER_TRANSITION = 2
LAYER_PRIMARY_TRANSIT = 3
LAYER_SECONDARY_TRANSIT = 4
LAYER_RESERVED = 5

ALTITUDE_LEVELS = {
    "TAKEOFF_LANDING": LAYER_TAKEOFF_LANDING,
    "TRANSITION": LAYER_TRANSITION,
    "PRIMARY_TRANSIT": LAYER_PRIMARY_TRANSIT,
    "SECONDARY_TRANSIT": LAYER_SECONDARY_TRANSIT,
    "RESERVED": LAYER_RESERVED,
}

# Vertical layering system (meters above ground)
AIRSPACE_LAYERS: List[Dict] = [
    {"id": 1, "name": "Takeoff/Landing", "min_altitude": 0, "max_altitude": 10,
     "purpose": "Vertical takeoff and landing at docks"},
    {"id": 2, "name": "Transition", "min_altitude": 10, "max_altitude": 20,
     "purpose": "Climb and descent between dock and transit layers"},
    {"id": 3, "name": "Primary Transit", "min_altitude": 20, "max_altitude": 30,
     "purpose": "Horizontal transit for even-numbered drones"},
    {"id": 4, "name": "Secondary Transit", "min_altitude": 30, "max_altitude": 40,
     "purpose": "Horizontal transit for odd-numbered drones"},
    {"id": 5, "name": "Reserved", "min_altitude": 40, "max_altitude": 50,
     "purpose": "Emergency holding and manual operations"},
]

# Dock groupings, dock id == drone id
AIRSPACE_QUADRANTS: List[Dict] = [
    {"id": 1, "name": "North West", "docks": [1, 2, 5, 6]},
    {"id": 2, "name": "North East", "docks": [3, 4, 7, 8]},
    {"id": 3, "name": "South West", "docks": [9, 10, 13, 14]},
    {"id": 4, "name": "South East", "docks": [11, 12, 15, 16]},
]

AIRSPACE_STRUCTURE = {
    "layers": AIRSPACE_LAYERS,
    "quadrants": AIRSPACE_QUADRANTS,
}

# Named delivery zones around the grid (outside the dock area)
POTENTIAL_TARGETS: List[Dict] = [
    {"x": -2, "y": -2, "description": "North West Zone"},
    {"x": 1, "y": -3, "description": "North Zone"},
    {"x": 5, "y": -1, "description": "North East Zone"},
    {"x": -3, "y": 2, "description": "West Zone"},
    {"x": 6, "y": 2, "description": "East Zone"},
    {"x": -2, "y": 5, "description": "South West Zone"},
    {"x": 2, "y": 6, "description": "South Zone"},
    {"x": 5, "y": 5, "description": "South East Zone"},
]

# Docks in row-major order: drone N sits at ((N-1) % 4, (N-1) // 4)
DOCK_POSITIONS: Dict[int, tuple] = {
    row * GRID_SIZE + col + 1: (col, row)
    for row in range(GRID_SIZE)
    for col in range(GRID_SIZE)
}

DEFAULT_BATTERY_LEVEL = 100.0

# Dashboard colours per drone status
DRONE_STATUS_COLORS = {
    "idle": "#e5e7eb",
    "preparing": "#bfdbfe",
    "taking-off": "#fef08a",
    "transition-up": "#fde047",
    "flying": "#4ade80",
    "transition-down": "#5eead4",
    "returning": "#2dd4bf",
    "landing": "#e9d5ff",
    "emergency": "#ef4444",
    "maintenance": "#fecaca",
}

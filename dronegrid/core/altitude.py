# dronegrid/core/altitude.py
"""
Altitude layer assignment and quadrant lookup
Even/odd separation of horizontal transit traffic
"""

from typing import Dict

from .airspace import (
    AIRSPACE_LAYERS,
    GRID_SIZE,
    LAYER_PRIMARY_TRANSIT,
    LAYER_SECONDARY_TRANSIT,
)


def assign_altitude_layer(drone_id: int) -> int:
    """
    Transit layer for a drone identity

    Even-numbered drones use Layer 3 (Primary Transit), odd-numbered
    drones use Layer 4 (Secondary Transit). Only drones sharing a layer
    are ever compared by the conflict detector.
    """
    return LAYER_PRIMARY_TRANSIT if drone_id % 2 == 0 else LAYER_SECONDARY_TRANSIT


def determine_quadrant(x: int, y: int) -> int:
    """Quadrant (1-4) of a dock position"""
    half = GRID_SIZE // 2
    if x < half:
        return 1 if y < half else 3
    return 2 if y < half else 4


def get_layer(layer_id: int) -> Dict:
    """
    Reference altitude band for a layer id

    Raises:
        ValueError: if the layer id is not part of the airspace table
    """
    for layer in AIRSPACE_LAYERS:
        if layer["id"] == layer_id:
            return dict(layer)
    raise ValueError(f"Unknown altitude layer: {layer_id}")


def layer_name(layer_id: int) -> str:
    return get_layer(layer_id)["name"]

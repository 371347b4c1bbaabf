# tests/test_conflict_resolution.py
"""
Test suite for the conflict resolver
"""

import copy

import pytest

from dronegrid.core.conflict_resolver import ConflictResolver, ResolverConfig
from dronegrid.core.models import (
    Conflict,
    DroneStatus,
    GridPosition,
    Resolution,
    Severity,
)
from dronegrid.core.pathfinding import calculate_optimal_path

from conftest import EAST, SOUTH, flying_drone, target


def _conflict(id_a, id_b, resolution, conflict_id="C_TEST"):
    return Conflict(
        conflict_id=conflict_id,
        drone_ids=(id_a, id_b),
        position=GridPosition(1, 1),
        severity=Severity.HIGH,
        time_to_conflict=0.0,
        resolution=resolution,
    )


class TestConflictResolution:
    """Resolution policy table"""

    @pytest.fixture
    def resolver(self):
        return ConflictResolver(ResolverConfig(seed=11))

    @pytest.fixture
    def drones(self):
        return [
            flying_drone(2, 1, 0, target(EAST), layer=3),
            flying_drone(3, 2, 0, target(EAST), layer=4),
            flying_drone(5, 0, 1, target(SOUTH), layer=4),
        ]

    def test_no_conflicts_returns_same_drones(self, resolver, drones):
        assert resolver.resolve(drones, []) == drones

    def test_emergency_stop_halts_both(self, resolver, drones):
        updated = resolver.resolve(drones, [_conflict(2, 3, Resolution.EMERGENCY_STOP)])
        by_id = {d.id: d for d in updated}

        assert by_id[2].status == DroneStatus.EMERGENCY
        assert by_id[3].status == DroneStatus.EMERGENCY
        assert by_id[5].status == DroneStatus.FLYING

    def test_altitude_change(self, resolver, drones):
        """First drone climbs to Secondary Transit, second drops to Primary"""
        updated = resolver.resolve(drones, [_conflict(2, 3, Resolution.ALTITUDE_CHANGE)])
        by_id = {d.id: d for d in updated}

        assert by_id[2].assigned_layer == 4
        assert by_id[3].assigned_layer == 3

    def test_reroute_moves_only_larger_id(self, resolver, drones):
        updated = resolver.resolve(drones, [_conflict(2, 3, Resolution.PATH_REROUTE)])
        by_id = {d.id: d for d in updated}

        assert by_id[2].flight_path == drones[0].flight_path

        base = calculate_optimal_path(GridPosition(2, 0), target(EAST))
        rerouted = by_id[3].flight_path
        assert len(rerouted) == 5
        assert rerouted[0] == GridPosition(2, 0)
        assert rerouted[-1] == GridPosition(6, 2)
        for planned, moved in zip(base[1:-1], rerouted[1:-1]):
            assert abs(moved.x - planned.x) == pytest.approx(0.5)
            assert abs(moved.y - planned.y) == pytest.approx(0.5)

    def test_reroute_reproducible_within_epoch(self, drones):
        conflicts = [_conflict(2, 3, Resolution.PATH_REROUTE)]

        first = ConflictResolver(ResolverConfig(seed=5)).resolve(drones, conflicts, epoch=9)
        second = ConflictResolver(ResolverConfig(seed=5)).resolve(drones, conflicts, epoch=9)

        assert first[1].flight_path == second[1].flight_path

    def test_reroute_idempotent(self, resolver, drones):
        """Applying the same conflicts twice in an epoch gives the same drones"""
        conflicts = [_conflict(2, 3, Resolution.PATH_REROUTE)]

        once = resolver.resolve(drones, conflicts, epoch=4)
        twice = resolver.resolve(once, conflicts, epoch=4)

        assert once == twice

    def test_time_delay_holds_larger_id(self, resolver, drones):
        updated = resolver.resolve(drones, [_conflict(3, 2, Resolution.TIME_DELAY)])
        by_id = {d.id: d for d in updated}

        assert by_id[3].status == DroneStatus.PREPARING
        assert by_id[3].flight_path == drones[1].flight_path
        assert by_id[2].status == DroneStatus.FLYING

    def test_input_not_mutated(self, resolver, drones):
        before = copy.deepcopy(drones)

        resolver.resolve(drones, [
            _conflict(2, 3, Resolution.ALTITUDE_CHANGE),
            _conflict(3, 5, Resolution.PATH_REROUTE),
            _conflict(2, 5, Resolution.EMERGENCY_STOP),
        ])

        assert drones == before

    def test_later_conflict_wins(self, resolver, drones):
        """Drone 3 is re-layered first, then halted"""
        updated = resolver.resolve(drones, [
            _conflict(2, 3, Resolution.ALTITUDE_CHANGE),
            _conflict(3, 5, Resolution.EMERGENCY_STOP),
        ])
        by_id = {d.id: d for d in updated}

        assert by_id[3].assigned_layer == 3
        assert by_id[3].status == DroneStatus.EMERGENCY
        assert by_id[2].assigned_layer == 4

    def test_unknown_drone_skipped(self, resolver, drones):
        updated = resolver.resolve(drones, [_conflict(2, 99, Resolution.EMERGENCY_STOP)])

        assert updated == drones
        assert resolver.get_statistics()["applied"]["emergency-stop"] == 0

    def test_statistics_count_applied_resolutions(self, resolver, drones):
        resolver.resolve(drones, [
            _conflict(2, 3, Resolution.ALTITUDE_CHANGE),
            _conflict(3, 5, Resolution.TIME_DELAY),
        ])
        stats = resolver.get_statistics()

        assert stats["seed"] == 11
        assert stats["applied"]["altitude-change"] == 1
        assert stats["applied"]["time-delay"] == 1

    def test_unseeded_resolver_draws_seed(self):
        assert isinstance(ConflictResolver().seed, int)

# tests/test_conflict_detection.py
"""
Test suite for the conflict detector
Tests same-layer proximity detection, severity and resolution selection
"""

import pytest

from dronegrid.core.conflict_detector import ConflictDetector, ConflictDetectorConfig
from dronegrid.core.models import DroneStatus, GridPosition, Resolution, Severity

from conftest import EAST, SOUTH, flying_drone, target


def _path(*points):
    return [GridPosition(x, y) for x, y in points]


class TestConflictDetection:
    """Test suite for conflict detection functionality"""

    @pytest.fixture
    def detector(self):
        """Create a conflict detector for testing"""
        return ConflictDetector(ConflictDetectorConfig())

    @pytest.fixture
    def crossing_pair(self):
        """
        Two same-layer drones whose paths first meet at (1, 1),
        waypoint 2 of A and waypoint 1 of B
        """
        drone_a = flying_drone(2, 0, -4, target(EAST),
                               path=_path((0, -4), (0, -2), (1, 1), (3, 3), (5, 5)))
        drone_b = flying_drone(4, 4, -2, target(EAST),
                               path=_path((4, -2), (1, 1), (-2, 4), (-4, 6), (-6, 8)))
        return drone_a, drone_b

    def test_detector_initialization(self, detector):
        """Test that detector initializes with the default thresholds"""
        assert detector.config.proximity_threshold == 1.5
        assert detector.config.seconds_per_waypoint == 2.0
        assert detector.stats["checks"] == 0

    def test_conflict_scenario(self, detector, crossing_pair):
        """Coincident waypoints give one high severity conflict"""
        conflicts = detector.detect_conflicts(crossing_pair)

        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.drone_ids == (2, 4)
        assert conflict.severity == Severity.HIGH
        assert conflict.distance == 0.0
        assert conflict.position == GridPosition(1, 1)

    def test_time_to_conflict_uses_earlier_index(self, detector, crossing_pair):
        """min(2, 1) waypoints at 2 seconds each"""
        conflict = detector.detect_conflicts(crossing_pair)[0]

        assert conflict.time_to_conflict == 2.0
        assert conflict.resolution == Resolution.ALTITUDE_CHANGE

    def test_altitude_separation(self, detector, crossing_pair):
        """Identical geometry on different layers never conflicts"""
        drone_a, drone_b = crossing_pair
        drone_b.assigned_layer = 4

        assert detector.detect_conflicts([drone_a, drone_b]) == []

    def test_inactive_drones_ignored(self, detector, crossing_pair):
        drone_a, drone_b = crossing_pair
        drone_b.status = DroneStatus.EMERGENCY

        assert detector.detect_conflicts([drone_a, drone_b]) == []

        drone_b.status = DroneStatus.FLYING
        drone_b.flight_path = None
        assert detector.detect_conflicts([drone_a, drone_b]) == []

    def test_no_conflict_scenario(self, detector):
        """Parallel paths far apart"""
        drone_a = flying_drone(2, 0, 0, target(EAST))
        drone_b = flying_drone(4, 0, 3, target(SOUTH))
        drone_b.flight_path = _path((10, 10), (11, 11), (12, 12), (13, 13), (14, 14))

        assert detector.detect_conflicts([drone_a, drone_b]) == []

    def test_first_hit_only_per_pair(self, detector):
        """Head-on paths overlap at every waypoint, only the first is reported"""
        drone_a = flying_drone(2, 0, 0, target(EAST),
                               path=_path((0, 0), (1, 0), (2, 0), (3, 0), (4, 0)))
        drone_b = flying_drone(4, 0, 1, target(EAST),
                               path=_path((0, 1), (1, 1), (2, 1), (3, 1), (4, 1)))

        conflicts = detector.detect_conflicts([drone_a, drone_b])

        assert len(conflicts) == 1
        assert conflicts[0].time_to_conflict == 0.0
        assert conflicts[0].position == GridPosition(0, 0)
        assert conflicts[0].severity == Severity.LOW
        assert conflicts[0].resolution == Resolution.EMERGENCY_STOP

    def test_one_conflict_per_pair_in_fleet(self, detector):
        """Three same-layer drones on the same path give three pairs"""
        path = _path((0, 0), (1, 0), (2, 0), (3, 0), (4, 0))
        drones = [flying_drone(i, 0, 0, target(EAST), path=path) for i in (2, 4, 6)]

        conflicts = detector.detect_conflicts(drones)

        assert [c.drone_ids for c in conflicts] == [(2, 4), (2, 6), (4, 6)]

    def test_adjacent_docks_same_target(self, detector):
        """Drones 1 and 5 sit one unit apart and share a layer"""
        drone_1 = flying_drone(1, 0, 0, target(EAST), layer=4)
        drone_5 = flying_drone(5, 0, 1, target(EAST), layer=4)

        conflicts = detector.detect_conflicts([drone_1, drone_5])

        assert len(conflicts) >= 1
        assert conflicts[0].resolution == Resolution.EMERGENCY_STOP

    def test_conflict_ids_unique(self, detector, crossing_pair):
        first = detector.detect_conflicts(crossing_pair)[0]
        second = detector.detect_conflicts(crossing_pair)[0]

        assert first.conflict_id != second.conflict_id
        assert first.conflict_id.startswith("C_")


class TestSeverityAndResolution:
    """Classification tables"""

    @pytest.fixture
    def detector(self):
        return ConflictDetector()

    @pytest.mark.parametrize("distance,severity", [
        (0.0, Severity.HIGH),
        (0.49, Severity.HIGH),
        (0.5, Severity.MEDIUM),
        (0.99, Severity.MEDIUM),
        (1.0, Severity.LOW),
        (1.49, Severity.LOW),
    ])
    def test_severity_bands(self, detector, distance, severity):
        assert detector._classify_severity(distance) == severity

    @pytest.mark.parametrize("seconds,resolution", [
        (0.0, Resolution.EMERGENCY_STOP),
        (1.9, Resolution.EMERGENCY_STOP),
        (2.0, Resolution.ALTITUDE_CHANGE),
        (4.0, Resolution.ALTITUDE_CHANGE),
        (5.0, Resolution.PATH_REROUTE),
        (8.0, Resolution.PATH_REROUTE),
        (10.0, Resolution.TIME_DELAY),
    ])
    def test_resolution_bands(self, detector, seconds, resolution):
        assert detector._select_resolution(seconds) == resolution

    def test_diagonal_neighbours_are_in_range(self, detector):
        """sqrt(2) is below the 1.5 threshold"""
        drone_a = flying_drone(2, 0, 0, target(EAST),
                               path=_path((0, 0), (0, 0), (0, 0), (0, 0), (0, 0)))
        drone_b = flying_drone(4, 1, 1, target(EAST),
                               path=_path((1, 1), (1, 1), (1, 1), (1, 1), (1, 1)))

        conflict = detector.detect_conflicts([drone_a, drone_b])[0]
        assert conflict.distance == pytest.approx(2 ** 0.5)
        assert conflict.severity == Severity.LOW


class TestPathOverlaps:
    """Anticipatory overlap check"""

    def test_overlap_ignores_layers(self):
        """Drones 2 and 3 to the East Zone share waypoint (4, 1)"""
        detector = ConflictDetector()
        drone_2 = flying_drone(2, 1, 0, target(EAST), layer=3)
        drone_3 = flying_drone(3, 2, 0, target(EAST), layer=4)

        assert detector.detect_conflicts([drone_2, drone_3]) == []

        overlaps = detector.check_path_overlaps([drone_2, drone_3])
        assert len(overlaps) == 1
        assert overlaps[0].position == GridPosition(4, 1)
        assert overlaps[0].severity == Severity.HIGH
        assert overlaps[0].time_to_conflict == 4.0
        assert overlaps[0].resolution is None

    def test_overlap_threshold_is_stricter(self):
        """One unit apart is a conflict but not an overlap"""
        detector = ConflictDetector()
        drone_a = flying_drone(2, 0, 0, target(EAST),
                               path=_path((0, 0), (1, 0), (2, 0), (3, 0), (4, 0)))
        drone_b = flying_drone(4, 0, 1, target(EAST),
                               path=_path((0, 1), (1, 1), (2, 1), (3, 1), (4, 1)))

        assert len(detector.detect_conflicts([drone_a, drone_b])) == 1
        assert detector.check_path_overlaps([drone_a, drone_b]) == []
        assert detector.get_statistics()["overlaps_found"] == 0


# Test runner configuration
if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])

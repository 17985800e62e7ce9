import pytest

from route_speed.distance import (
    cumulative_distances,
    haversine_distance,
    locate,
    planar_distance,
    straight_line_distance,
)


class TestHaversine:
    def test_same_point(self):
        assert haversine_distance(51.0543, 3.7174, 51.0543, 3.7174) == 0.0

    def test_ghent_to_brussels(self):
        d = haversine_distance(51.0543, 3.7174, 50.8503, 4.3517)
        assert d == pytest.approx(49_900, rel=0.02)

    def test_straight_line_sums_segments(self):
        coords = [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]
        one_degree = haversine_distance(0.0, 0.0, 1.0, 0.0)
        assert straight_line_distance(coords) == pytest.approx(2 * one_degree)


class TestPlanarDistance:
    def test_one_degree(self):
        assert planar_distance((0.0, 0.0), (1.0, 0.0)) == pytest.approx(111_000)

    def test_diagonal(self):
        assert planar_distance((0.0, 0.0), (0.003, 0.004)) == pytest.approx(555.0)

    def test_cumulative(self):
        coords = [(0.0, 0.0), (0.001, 0.0), (0.002, 0.0)]
        assert cumulative_distances(coords) == pytest.approx([0.0, 111.0, 222.0])

    def test_cumulative_empty(self):
        assert cumulative_distances([]) == []


class TestLocate:
    @pytest.fixture
    def line(self):
        # Points ~111 m apart along the equator
        return [(0.0, 0.0), (0.001, 0.0), (0.002, 0.0), (0.003, 0.0)]

    def test_empty(self):
        assert locate([], 100.0) is None

    def test_start(self, line):
        assert locate(line, 0.0) == (0.0, 0.0)

    def test_nearest_vertex(self, line):
        assert locate(line, 200.0) == (0.002, 0.0)

    def test_beyond_end(self, line):
        assert locate(line, 10_000.0) == (0.003, 0.0)

    def test_negative_distance(self, line):
        assert locate(line, -50.0) == (0.0, 0.0)

    def test_tie_goes_to_first(self):
        coords = [(0.0, 0.0), (0.002, 0.0)]
        assert locate(coords, 111.0) == (0.0, 0.0)

    def test_single_point(self):
        assert locate([(4.35, 50.85)], 500.0) == (4.35, 50.85)

"""Tests for spherical distance and offset helpers.

Pure functions; no database.
"""

import math
import random

import pytest

from cofish.services.geo import (
    EARTH_RADIUS_MILES,
    bounding_box,
    destination_point,
    haversine_miles,
    jitter_point,
    miles_to_degrees_lat,
)

BLOCK_ISLAND = (41.1720, -71.5778)
MONTAUK = (41.0710, -71.8570)


class _FixedRandom(random.Random):
    """Returns the given values in order from random()."""

    def __init__(self, *values: float):
        super().__init__()
        self._values = list(values)

    def random(self) -> float:
        return self._values.pop(0)


class TestHaversine:
    def test_symmetric(self):
        a_to_b = haversine_miles(*BLOCK_ISLAND, *MONTAUK)
        b_to_a = haversine_miles(*MONTAUK, *BLOCK_ISLAND)
        assert a_to_b == pytest.approx(b_to_a, abs=1e-12)

    def test_identical_points_are_zero_apart(self):
        assert haversine_miles(*BLOCK_ISLAND, *BLOCK_ISLAND) == 0

    def test_one_degree_of_latitude_is_about_69_miles(self):
        distance = haversine_miles(40.0, -71.0, 41.0, -71.0)
        assert distance == pytest.approx(EARTH_RADIUS_MILES * math.pi / 180)
        assert distance == pytest.approx(69.0, abs=0.2)

    def test_known_pair(self):
        # Block Island to Montauk Point, ~16 miles across the sound
        assert haversine_miles(*BLOCK_ISLAND, *MONTAUK) == pytest.approx(16.0, abs=0.5)

    @pytest.mark.parametrize("seed", range(5))
    def test_random_pairs_symmetric(self, seed: int):
        rng = random.Random(seed)
        a = (rng.uniform(-80, 80), rng.uniform(-180, 180))
        b = (rng.uniform(-80, 80), rng.uniform(-180, 180))
        assert haversine_miles(*a, *b) == pytest.approx(haversine_miles(*b, *a))


class TestJitter:
    def test_jitter_always_inside_radius(self):
        rng = random.Random(1234)
        for _ in range(2000):
            point = jitter_point(*BLOCK_ISLAND, 1.4, rng=rng)
            assert haversine_miles(*BLOCK_ISLAND, point.lat, point.lng) < 1.4

    def test_jitter_at_largest_draw_stays_inside(self):
        rng = _FixedRandom(0.999999, 0.375)
        point = jitter_point(*BLOCK_ISLAND, 2.0, rng=rng)
        assert haversine_miles(*BLOCK_ISLAND, point.lat, point.lng) < 2.0

    def test_zero_draw_returns_original_point(self):
        point = jitter_point(*BLOCK_ISLAND, 2.0, rng=_FixedRandom(0.0, 0.5))
        assert point.lat == pytest.approx(BLOCK_ISLAND[0])
        assert point.lng == pytest.approx(BLOCK_ISLAND[1])

    def test_distance_is_uniform_not_area_uniform(self):
        # Half the draws land within half the radius (sqrt-uniform would give a quarter)
        rng = random.Random(7)
        inner = 0
        samples = 4000
        for _ in range(samples):
            point = jitter_point(*BLOCK_ISLAND, 2.0, rng=rng)
            if haversine_miles(*BLOCK_ISLAND, point.lat, point.lng) < 1.0:
                inner += 1
        assert 0.45 < inner / samples < 0.55


class TestDestinationPoint:
    def test_due_north_moves_latitude_only(self):
        point = destination_point(40.0, -71.0, 69.0, 0.0)
        assert point.lng == pytest.approx(-71.0)
        assert haversine_miles(40.0, -71.0, point.lat, point.lng) == pytest.approx(69.0)

    def test_wraps_longitude_across_antimeridian(self):
        point = destination_point(0.0, 179.99, 10.0, math.pi / 2)
        assert -180 <= point.lng < -179


class TestBoundingBox:
    def test_square_around_center(self):
        box = bounding_box(*BLOCK_ISLAND, 7.5)
        assert box.max_lat - box.min_lat == pytest.approx(2 * miles_to_degrees_lat(7.5))
        assert box.min_lat < BLOCK_ISLAND[0] < box.max_lat
        assert box.min_lng < BLOCK_ISLAND[1] < box.max_lng

    def test_longitude_span_widens_with_latitude(self):
        equator = bounding_box(0.0, 0.0, 7.5)
        north = bounding_box(60.0, 0.0, 7.5)
        assert (north.max_lng - north.min_lng) > (equator.max_lng - equator.min_lng)

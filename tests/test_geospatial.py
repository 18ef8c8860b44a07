import pytest

from src.delivery_routing.models.domain import Coordinates
from src.delivery_routing.services.geospatial import distance_miles, haversine_miles, path_distance_miles

MANHATTAN = Coordinates(lat=40.7128, lng=-74.0060)
MIDTOWN = Coordinates(lat=40.7589, lng=-73.9851)
BROOKLYN = Coordinates(lat=40.6892, lng=-73.9442)


def test_distance_to_self_is_zero():
    assert distance_miles(MANHATTAN, MANHATTAN) == 0
    assert haversine_miles(12.5, -3.25, 12.5, -3.25) == 0


@pytest.mark.parametrize("a,b", [(MANHATTAN, MIDTOWN), (MIDTOWN, BROOKLYN), (BROOKLYN, MANHATTAN)])
def test_distance_is_symmetric(a, b):
    assert distance_miles(a, b) == pytest.approx(distance_miles(b, a))


def test_distance_in_miles():
    # Lower Manhattan to Times Square is roughly three and a third miles.
    assert distance_miles(MANHATTAN, MIDTOWN) == pytest.approx(3.37, abs=0.02)
    # One degree of latitude on a 3959 mile sphere.
    assert haversine_miles(0.0, 0.0, 1.0, 0.0) == pytest.approx(69.1, abs=0.05)


def test_path_distance_sums_legs():
    legs = distance_miles(MANHATTAN, MIDTOWN) + distance_miles(MIDTOWN, BROOKLYN)
    assert path_distance_miles(MANHATTAN, [MIDTOWN, BROOKLYN]) == pytest.approx(legs)
    assert path_distance_miles(MANHATTAN, []) == 0

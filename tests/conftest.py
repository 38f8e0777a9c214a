import pytest

from warehouse_planner.rate_registry import load_rate_tables


@pytest.fixture
def rate_tables():
    return load_rate_tables()


@pytest.fixture
def scenario_inputs():
    return {
        "length_m": 50.0,
        "width_m": 30.0,
        "height_m": 10.0,
        "wall_clearance_m": 0.5,
        "sprinkler_clearance_m": 0.9,
    }

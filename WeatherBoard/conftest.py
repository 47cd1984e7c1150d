"""Shared fixtures for the dashboard tests."""
import pytest

from weather_data import City, WeatherSnapshot


def make_snapshot(city="Toronto", **overrides) -> WeatherSnapshot:
    """Build a snapshot with mild, dry defaults."""
    values = dict(
        city=city,
        temperature=20.0,
        wind_speed=12.5,
        humidity=60.0,
        weather_code=0,
        snowfall=0.0,
        rain=0.0,
        precipitation=0.0,
        time="2024-06-01T12:00",
        last_fetched=1717243200000,
        latitude=43.65,
        longitude=-79.38,
    )
    values.update(overrides)
    return WeatherSnapshot(**values)


@pytest.fixture
def cities():
    return (
        City("Toronto", 43.65, -79.38),
        City("New York", 40.71, -74.01),
        City("Chicago", 41.88, -87.63),
    )


@pytest.fixture
def batch():
    return (
        make_snapshot("Toronto", temperature=18.4, humidity=55.0),
        make_snapshot("New York", temperature=27.6, humidity=70.0),
        make_snapshot("Chicago", temperature=-3.5, humidity=80.0, weather_code=73, snowfall=1.2),
    )

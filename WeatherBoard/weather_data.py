"""Weather domain model - pure data structures independent of any API."""
from dataclasses import dataclass
from datetime import datetime
from typing import Tuple


@dataclass(frozen=True)
class City:
    """A configured city. Fixed for the lifetime of the process."""
    name: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class WeatherSnapshot:
    """Latest reading for one city, replaced wholesale on every refresh."""
    city: str
    temperature: float  # °C
    wind_speed: float  # km/h
    humidity: float  # percent, 0-100
    weather_code: int  # WMO condition code as reported by the source
    snowfall: float  # mm
    rain: float  # mm
    precipitation: float  # mm
    time: str  # observation time as reported by the source
    last_fetched: int  # local capture time, epoch milliseconds
    latitude: float
    longitude: float

    @property
    def feels_like(self) -> float:
        """Placeholder "feels like" value: a fixed two degrees below temperature."""
        return self.temperature - 2

    def last_fetched_datetime(self) -> datetime:
        """Local time at which this snapshot was received."""
        return datetime.fromtimestamp(self.last_fetched / 1000.0)


DEFAULT_CITIES: Tuple[City, ...] = (
    City("Toronto", 43.65, -79.38),
    City("New York", 40.71, -74.01),
    City("Los Angeles", 34.05, -118.24),
    City("Chicago", 41.88, -87.63),
    City("Phoenix", 33.45, -112.07),
)

DEFAULT_CITY = "Toronto"

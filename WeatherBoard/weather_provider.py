"""Weather provider abstraction - allows swapping different weather APIs."""
from abc import ABC, abstractmethod
from typing import Optional
from weather_data import City, WeatherSnapshot


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""

    @abstractmethod
    def get_current(self, city: City) -> WeatherSnapshot:
        """
        Fetch current weather for a single city.

        Args:
            city: City to fetch

        Returns:
            WeatherSnapshot: Current weather for the city

        Raises:
            WeatherProviderError: If the provider fails to fetch data
        """
        pass


class WeatherProviderError(Exception):
    """Exception raised when a weather provider fails."""
    pass


class NetworkFailure(WeatherProviderError):
    """The request could not complete or returned a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseFailure(WeatherProviderError):
    """The response was missing expected fields or had the wrong types."""
    pass


class EmptyCityListError(WeatherProviderError):
    """A refresh cycle was requested with no cities configured."""
    pass

"""Open-Meteo current weather provider implementation."""
import logging
import math
import time
from typing import Any, Callable, Dict, Optional

import requests

from weather_data import City, WeatherSnapshot
from weather_provider import NetworkFailure, ParseFailure, WeatherProviderBase

CURRENT_FIELDS = (
    "temperature_2m",
    "wind_speed_10m",
    "relative_humidity_2m",
    "weather_code",
    "snowfall",
    "rain",
    "precipitation",
)


class OpenMeteoProvider(WeatherProviderBase):
    """
    Weather provider using the Open-Meteo forecast API.

    Only the "current" block is requested: https://open-meteo.com/en/docs
    The API is free and needs no key.
    """

    BASE_URL = "https://api.open-meteo.com/v1/forecast"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10,
        clock: Callable[[], float] = time.time,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Open-Meteo provider.

        Args:
            base_url: Forecast endpoint URL
            timeout: HTTP request timeout in seconds
            clock: Returns the local time in epoch seconds, used for last_fetched
            session: Optional requests session (shared connection pool)
        """
        self.base_url = base_url
        self.timeout = timeout
        self.clock = clock
        self.session = session

    def get_current(self, city: City) -> WeatherSnapshot:
        """
        Fetch current weather for a city from Open-Meteo.

        Args:
            city: City whose coordinates are queried

        Returns:
            WeatherSnapshot: Current weather information

        Raises:
            NetworkFailure: If the request fails or returns a non-success status
            ParseFailure: If the response is missing or has malformed fields
        """
        params = {
            "latitude": city.latitude,
            "longitude": city.longitude,
            "current": ",".join(CURRENT_FIELDS),
        }

        try:
            logging.debug(f"Open-Meteo request for {city.name}: lat={city.latitude}, lon={city.longitude}")
            get = self.session.get if self.session is not None else requests.get
            response = get(self.base_url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error fetching {city.name}: {e}")
            raise NetworkFailure(f"Network error for {city.name}: {e}") from e

        fetched_at = int(self.clock() * 1000)
        logging.debug(f"Open-Meteo response for {city.name}: HTTP {response.status_code}")

        if not response.ok:
            logging.error(f"Open-Meteo request for {city.name} failed with status {response.status_code}")
            self._handle_error_response(city, response)

        try:
            data = response.json()
        except ValueError as e:
            raise ParseFailure(f"Response for {city.name} is not JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("current"), dict):
            raise ParseFailure(f"Response for {city.name} missing 'current' object")
        current = data["current"]
        logging.debug(f"Current block for {city.name}: {current}")

        snapshot = WeatherSnapshot(
            city=city.name,
            temperature=_number(current, "temperature_2m"),
            wind_speed=_number(current, "wind_speed_10m"),
            humidity=_number(current, "relative_humidity_2m"),
            weather_code=_condition_code(current),
            snowfall=_number(current, "snowfall"),
            rain=_number(current, "rain"),
            precipitation=_number(current, "precipitation"),
            time=_string(current, "time"),
            last_fetched=fetched_at,
            latitude=city.latitude,
            longitude=city.longitude,
        )
        logging.info(
            f"{snapshot.city}: {snapshot.temperature}°C, Wind: {snapshot.wind_speed} km/h, "
            f"Humidity: {snapshot.humidity}%, Rain: {snapshot.rain}mm, "
            f"Snow: {snapshot.snowfall}mm, Precip: {snapshot.precipitation}mm"
        )
        return snapshot

    def _handle_error_response(self, city: City, response: requests.Response) -> None:
        """Raise a NetworkFailure from an Open-Meteo error response."""
        try:
            error_data = response.json()
            reason = error_data.get("reason", "Unknown error") if isinstance(error_data, dict) else "Unknown error"
        except ValueError:
            logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
            raise NetworkFailure(
                f"HTTP {response.status_code} for {city.name}: {response.text[:200]}",
                status_code=response.status_code,
            )
        logging.error(f"Open-Meteo error response: {error_data}")
        raise NetworkFailure(
            f"Open-Meteo error {response.status_code} for {city.name}: {reason}",
            status_code=response.status_code,
        )


def _number(current: Dict[str, Any], key: str) -> float:
    value = current.get(key)
    # bool is an int subclass; the API never sends one for a measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseFailure(f"Field '{key}' missing or not numeric: {value!r}")
    # the JSON decoder accepts NaN and Infinity tokens
    if not math.isfinite(value):
        raise ParseFailure(f"Field '{key}' is not a finite number: {value!r}")
    return float(value)


def _condition_code(current: Dict[str, Any]) -> int:
    value = current.get("weather_code")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ParseFailure(f"Field 'weather_code' missing or not a condition code: {value!r}")
    return value


def _string(current: Dict[str, Any], key: str) -> str:
    value = current.get(key)
    if not isinstance(value, str):
        raise ParseFailure(f"Field '{key}' missing or not a string: {value!r}")
    return value

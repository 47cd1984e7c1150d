"""Dashboard view state: the displayed batch, error flag and selected city."""
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from weather_data import WeatherSnapshot

FETCH_ERROR_MESSAGE = "Failed to fetch weather data"

STATUS_LOADING = "loading"
STATUS_ERROR = "error"
STATUS_READY = "ready"


@dataclass(frozen=True)
class DashboardView:
    """Immutable snapshot of everything the renderer needs."""
    batch: Tuple[WeatherSnapshot, ...]
    error: Optional[str]
    selected_city: str

    @property
    def status(self) -> str:
        if self.batch:
            return STATUS_READY
        if self.error:
            return STATUS_ERROR
        return STATUS_LOADING

    @property
    def featured(self) -> Optional[WeatherSnapshot]:
        """The selected city's snapshot, or the first entry when it is absent."""
        for snapshot in self.batch:
            if snapshot.city == self.selected_city:
                return snapshot
        return self.batch[0] if self.batch else None


class DashboardState:
    """
    Single owner of the displayed data.

    A completed refresh cycle and a user selection are the only two ways
    the state changes. Both take the lock, as does view(), so a render
    never observes a half-applied update.
    """

    def __init__(self, default_city: str):
        """
        Initialize an empty state.

        Args:
            default_city: City featured until the user picks another one
        """
        self._lock = threading.Lock()
        self._batch: Tuple[WeatherSnapshot, ...] = ()
        self._error: Optional[str] = None
        self._selected_city = default_city
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def apply_batch(self, batch: Sequence[WeatherSnapshot]) -> bool:
        """
        Replace the displayed batch with the result of a successful cycle.

        Returns:
            bool: False if the state was closed and the batch was discarded
        """
        new_batch = tuple(batch)
        with self._lock:
            if self._closed:
                logging.debug("Discarding batch that completed after teardown")
                return False
            self._batch = new_batch
            self._error = None
        logging.info(f"Weather data updated: {len(new_batch)} cities")
        return True

    def apply_failure(self, error: Exception) -> bool:
        """
        Record a failed cycle.

        If a previous batch is on display the failure is only logged and the
        batch stays. Otherwise the failure becomes the visible error state.

        Returns:
            bool: True if the visible state changed
        """
        with self._lock:
            if self._closed:
                logging.debug(f"Discarding failure that completed after teardown: {error}")
                return False
            if self._batch:
                logging.warning(f"Weather refresh failed, keeping previous data: {error}")
                return False
            self._error = FETCH_ERROR_MESSAGE
        logging.error(f"Weather refresh failed with no data to show: {error}")
        return True

    def select(self, city: str) -> None:
        """Select the featured city. Does not fetch or validate membership."""
        with self._lock:
            self._selected_city = city
        logging.debug(f"Selected city: {city}")

    def view(self) -> DashboardView:
        with self._lock:
            return DashboardView(
                batch=self._batch,
                error=self._error,
                selected_city=self._selected_city,
            )

    def close(self) -> None:
        """Mark the view as torn down; later cycle results become no-ops."""
        with self._lock:
            self._closed = True

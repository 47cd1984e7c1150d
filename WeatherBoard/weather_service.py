"""Weather service: parallel per-city fetch cycles on a fixed refresh timer."""
import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Optional, Sequence, Tuple

from dashboard_state import DashboardState
from weather_data import City, WeatherSnapshot
from weather_provider import (
    EmptyCityListError,
    NetworkFailure,
    WeatherProviderBase,
    WeatherProviderError,
)


class WeatherService:
    """
    Runs fetch cycles against a weather provider.

    A cycle requests every city at once and only succeeds if every request
    succeeds. There is no caching and no retrying here: a failed cycle is
    simply followed by the next scheduled one.
    """

    def __init__(self, provider: WeatherProviderBase, max_workers: Optional[int] = None):
        """
        Initialize weather service.

        Args:
            provider: Weather provider to use
            max_workers: Upper bound on parallel requests (default: one per city)
        """
        self.provider = provider
        self.max_workers = max_workers

    def run_cycle(self, cities: Sequence[City]) -> Tuple[WeatherSnapshot, ...]:
        """
        Fetch current weather for all cities in parallel.

        Args:
            cities: Ordered cities to fetch

        Returns:
            Tuple of snapshots in the same order as ``cities``

        Raises:
            EmptyCityListError: If ``cities`` is empty
            WeatherProviderError: If any single request fails
        """
        if not cities:
            raise EmptyCityListError("No cities configured")

        logging.info(f"Fetching weather data for {len(cities)} cities...")
        started = time.monotonic()
        workers = min(self.max_workers or len(cities), len(cities))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="weather-fetch")
        try:
            futures = [executor.submit(self.provider.get_current, city) for city in cities]
            done, _pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future, city in zip(futures, cities):
                if future in done and future.exception() is not None:
                    error = future.exception()
                    if isinstance(error, WeatherProviderError):
                        logging.error(f"Weather cycle failed on {city.name}: {error}")
                        raise error
                    raise _unexpected_error(city, error) from error
            # No failure means wait() returned once every request completed
            results = [future.result() for future in futures]
        finally:
            # Outstanding requests are bounded by the provider timeout
            executor.shutdown(wait=False, cancel_futures=True)

        logging.info(f"Weather cycle completed in {time.monotonic() - started:.2f}s")
        return tuple(results)


def _unexpected_error(city: City, error: BaseException) -> NetworkFailure:
    logging.error(f"Unexpected error fetching {city.name}: {error!r}")
    return NetworkFailure(f"Unexpected error for {city.name}: {error}")


class RefreshScheduler:
    """
    Runs a fetch cycle immediately and then every ``interval_seconds``.

    Cycles never overlap: a tick that finds a cycle still in flight is
    skipped, and ticks missed while a slow cycle ran are dropped rather
    than queued. Results that arrive after stop() are discarded.
    """

    def __init__(
        self,
        service: WeatherService,
        cities: Sequence[City],
        state: DashboardState,
        interval_seconds: float = 60.0,
        on_update: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            service: Service used to run cycles
            cities: Ordered cities fetched on every cycle
            state: View state receiving cycle results
            interval_seconds: Seconds between cycle starts
            on_update: Called after a cycle changed the visible state
        """
        self.service = service
        self.cities = tuple(cities)
        self.state = state
        self.interval_seconds = interval_seconds
        self.on_update = on_update

        self._cycle_lock = threading.Lock()
        self._stop = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self.cycles_run = 0
        self.ticks_skipped = 0

    def start(self) -> None:
        if self._worker and self._worker.is_alive():
            return
        self._stop.clear()
        self._worker = threading.Thread(target=self._worker_loop, name="weather-refresh", daemon=True)
        self._worker.start()
        logging.info(f"Refresh scheduler started (interval={self.interval_seconds}s)")

    def stop(self, timeout: float = 1.0) -> None:
        """Cancel the timer. A cycle still in flight finishes but is not applied."""
        self._stop.set()
        if self._worker:
            self._worker.join(timeout=timeout)
            if self._worker.is_alive():
                logging.info("Refresh worker still waiting on requests; its results will be discarded")
        logging.info("Refresh scheduler stopped")

    @property
    def running(self) -> bool:
        return bool(self._worker and self._worker.is_alive() and not self._stop.is_set())

    def refresh_now(self) -> bool:
        """
        Run one cycle on the calling thread.

        Returns:
            bool: False if the tick was skipped because a cycle was in flight
        """
        if not self._cycle_lock.acquire(blocking=False):
            self.ticks_skipped += 1
            logging.info("Previous weather cycle still running, skipping this tick")
            return False
        try:
            self._run_cycle()
        finally:
            self._cycle_lock.release()
        return True

    def _run_cycle(self) -> None:
        self.cycles_run += 1
        try:
            batch = self.service.run_cycle(self.cities)
        except WeatherProviderError as e:
            if self._stop.is_set():
                logging.debug(f"Ignoring failure from cycle finished after stop: {e}")
                return
            changed = self.state.apply_failure(e)
        else:
            if self._stop.is_set():
                logging.debug("Ignoring batch from cycle finished after stop")
                return
            changed = self.state.apply_batch(batch)

        if changed and self.on_update is not None:
            self.on_update()

    def _worker_loop(self) -> None:
        next_run = time.monotonic()
        while not self._stop.is_set():
            try:
                self.refresh_now()
            except Exception as e:
                # Keep the timer alive; the next tick gets a fresh attempt
                logging.exception(f"Unexpected error in refresh cycle: {e}")

            next_run += self.interval_seconds
            now = time.monotonic()
            if now > next_run:
                missed = int((now - next_run) // self.interval_seconds) + 1
                self.ticks_skipped += missed
                logging.warning(f"Weather cycle overran the refresh interval, skipping {missed} tick(s)")
                next_run += missed * self.interval_seconds
            self._stop.wait(max(0.0, next_run - now))

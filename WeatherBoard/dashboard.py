"""Dashboard owner: wires the refresh timer, view state and canvas together."""
import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from dashboard_state import DashboardState, DashboardView
from layout import DrawOp, calculate_layout, city_at, render_ops
from matrix_canvas import MatrixCanvas
from weather_data import City
from weather_service import RefreshScheduler, WeatherService


class Dashboard:
    """
    Live weather dashboard for a fixed list of cities.

    Re-renders after every cycle that changed the display and after every
    selection. Renders are serialized so the canvas is never drawn by two
    threads at once.
    """

    def __init__(
        self,
        service: WeatherService,
        cities: Sequence[City],
        canvas: MatrixCanvas,
        default_city: str,
        refresh_seconds: float = 60.0,
        after_render: Optional[Callable[[MatrixCanvas], None]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the dashboard.

        Args:
            service: Service used to run fetch cycles
            cities: Ordered cities shown on the roster
            canvas: Canvas to render onto
            default_city: City featured until the user picks another one
            refresh_seconds: Seconds between fetch cycles
            after_render: Called with the canvas after each render (e.g. save PNG)
            clock: Local time source for the header date
        """
        self.cities = tuple(cities)
        self.canvas = canvas
        self.after_render = after_render
        self.clock = clock

        self.state = DashboardState(default_city)
        self.scheduler = RefreshScheduler(
            service,
            self.cities,
            self.state,
            interval_seconds=refresh_seconds,
            on_update=self.render,
        )
        self._render_lock = threading.Lock()
        self._last_ops: List[DrawOp] = []

    def start(self) -> None:
        """Draw the loading placeholder and start refreshing."""
        self.render()
        self.scheduler.start()

    def stop(self) -> None:
        """Tear down: cancel the timer and ignore any late cycle results."""
        self.scheduler.stop()
        with self._render_lock:
            self.state.close()

    def refresh(self) -> bool:
        return self.scheduler.refresh_now()

    def view(self) -> DashboardView:
        return self.state.view()

    def select(self, city: str) -> None:
        self.state.select(city)
        self.render()

    def select_index(self, index: int) -> Optional[str]:
        """
        Select the roster entry at ``index`` (0-based) of the current batch.

        Returns:
            The selected city name, or None if the index is out of range
        """
        batch = self.state.view().batch
        if not 0 <= index < len(batch):
            return None
        city = batch[index].city
        self.select(city)
        return city

    def click(self, x: int, y: int) -> Optional[str]:
        """
        Select the roster entry at a canvas coordinate.

        Returns:
            The selected city name, or None if nothing was hit
        """
        with self._render_lock:
            city = city_at(self._last_ops, x, y)
        if city is None:
            return None
        self.select(city)
        return city

    def render(self) -> None:
        if self.state.closed:
            return
        with self._render_lock:
            # stop() may have run while we waited for the lock
            if self.state.closed:
                return
            view = self.state.view()
            ops = calculate_layout(view, self.canvas.width, self.canvas.height, now=self.clock())
            render_ops(self.canvas, ops)
            self._last_ops = ops
            logging.debug(f"Rendered {view.status} view with {len(ops)} draw ops")
            if self.after_render is not None:
                self.after_render(self.canvas)

"""Live multi-city weather dashboard for a PNG preview or an RGB matrix."""
import argparse
import logging
import os
import signal
import sys
import threading
from typing import Optional, Tuple

from dotenv import load_dotenv

from dashboard import Dashboard
from layout import ICON_GLYPHS, icon_for, round_half_up
from matrix_canvas import MatrixCanvas, PILCanvas, RealMatrixCanvas
from openmeteo_provider import OpenMeteoProvider
from weather_data import DEFAULT_CITIES, DEFAULT_CITY, City
from weather_service import WeatherService

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_FONT = os.path.join(BASE_DIR, "fonts", "5x8.bdf")
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "weatherboard.log")
DEFAULT_PNG_PATH = os.path.join(BASE_DIR, "dashboard.png")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Live multi-city weather dashboard")
    parser.add_argument("--output", choices=["png", "matrix"], default="png")
    parser.add_argument("--png-path", default=DEFAULT_PNG_PATH)
    parser.add_argument("--width", type=int, default=480, help="PNG canvas width")
    parser.add_argument("--height", type=int, default=270, help="PNG canvas height")
    parser.add_argument("--scale", type=int, default=2, help="PNG upscale factor")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    parser.add_argument("--led-rows", type=int, default=64)
    parser.add_argument("--led-cols", type=int, default=64)
    parser.add_argument("--led-chain", type=int, default=2)
    parser.add_argument("--led-parallel", type=int, default=1)
    parser.add_argument("--led-pwm-bits", type=int, default=11)
    parser.add_argument("--led-slowdown-gpio", type=int, default=2)
    parser.add_argument("--brightness", type=int, default=80)
    parser.add_argument("--font", default=DEFAULT_FONT)
    parser.add_argument("--refresh", type=float, default=60.0, help="Seconds between refreshes")
    parser.add_argument("--timeout", type=float, default=10.0, help="HTTP timeout in seconds")
    parser.add_argument("--city", default=None, help="City featured at startup")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: str, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(threadName)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )


def parse_cities(raw: str) -> Tuple[City, ...]:
    """
    Parse a city list of the form "Name:lat:lon;Name:lat:lon".

    Raises:
        SystemExit: If the list is empty or an entry is malformed
    """
    cities = []
    seen = set()
    for entry in raw.split(";"):
        entry = entry.strip()
        if not entry:
            continue
        # Names may contain colons; coordinates are always the last two fields
        parts = entry.rsplit(":", 2)
        if len(parts) != 3 or not parts[0].strip():
            raise SystemExit(f"Invalid city entry {entry!r}, expected Name:lat:lon")
        name = parts[0].strip()
        try:
            lat, lon = float(parts[1]), float(parts[2])
        except ValueError as exc:
            raise SystemExit(f"Invalid coordinates for {name}: {exc}") from exc
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise SystemExit(f"Coordinates out of range for {name}: {lat}, {lon}")
        if name in seen:
            raise SystemExit(f"Duplicate city name: {name}")
        seen.add(name)
        cities.append(City(name, lat, lon))
    if not cities:
        raise SystemExit("WEATHER_CITIES does not contain any cities")
    return tuple(cities)


def load_config(city_override: Optional[str] = None) -> Tuple[Tuple[City, ...], str, str]:
    load_dotenv()
    raw_cities = os.getenv("WEATHER_CITIES")
    cities = parse_cities(raw_cities) if raw_cities else DEFAULT_CITIES
    default_city = city_override or os.getenv("WEATHER_DEFAULT_CITY") or DEFAULT_CITY
    api_url = os.getenv("WEATHER_API_URL", OpenMeteoProvider.BASE_URL)

    if default_city not in {city.name for city in cities}:
        logging.warning("Default city %s is not configured; the first city will be featured", default_city)

    logging.info(
        "Configuration loaded: cities=%s default=%s api=%s",
        ", ".join(city.name for city in cities),
        default_city,
        api_url,
    )
    return cities, default_city, api_url


def init_matrix(args: argparse.Namespace):
    try:
        from rgbmatrix import RGBMatrix, RGBMatrixOptions, graphics
    except ImportError as exc:
        raise SystemExit("rgbmatrix library not available; run on the Pi or use --output png") from exc

    options = RGBMatrixOptions()
    options.rows = args.led_rows
    options.cols = args.led_cols
    options.chain_length = args.led_chain
    options.parallel = args.led_parallel
    options.pwm_bits = args.led_pwm_bits
    options.brightness = args.brightness
    options.gpio_slowdown = args.led_slowdown_gpio

    logging.info(
        "Matrix init: rows=%s cols=%s chain=%s parallel=%s pwm_bits=%s brightness=%s slowdown=%s",
        options.rows,
        options.cols,
        options.chain_length,
        options.parallel,
        options.pwm_bits,
        options.brightness,
        options.gpio_slowdown,
    )

    font_path = args.font
    if not os.path.isabs(font_path):
        font_path = os.path.join(BASE_DIR, font_path)
    font = graphics.Font()
    logging.info("Loading font: %s", font_path)
    font.LoadFont(font_path)

    return RealMatrixCanvas(RGBMatrix(options=options), font, graphics)


def build_dashboard(args: argparse.Namespace, cities, default_city: str, api_url: str) -> Dashboard:
    provider = OpenMeteoProvider(base_url=api_url, timeout=args.timeout)
    service = WeatherService(provider)

    after_render = None
    if args.output == "matrix":
        canvas = init_matrix(args)
    else:
        canvas = PILCanvas(width=args.width, height=args.height, scale=args.scale)
        png_path = args.png_path

        def after_render(rendered: MatrixCanvas) -> None:
            rendered.save(png_path)
            logging.debug("Saved dashboard to %s", png_path)

    dashboard = Dashboard(
        service,
        cities,
        canvas,
        default_city,
        refresh_seconds=args.refresh,
        after_render=after_render,
    )
    logging.info("Dashboard ready (%s output, refresh=%ss)", args.output, args.refresh)
    return dashboard


def format_roster(dashboard: Dashboard) -> str:
    view = dashboard.view()
    if not view.batch:
        return view.error or "Loading weather data..."
    featured = view.featured
    lines = []
    for i, weather in enumerate(view.batch, start=1):
        marker = "*" if weather is featured else " "
        glyph = ICON_GLYPHS[icon_for(weather.temperature, weather.weather_code)]
        lines.append(
            f"{marker} {i}. {weather.city:<14} {glyph} {round_half_up(weather.temperature):>4}°  "
            f"{weather.humidity:g}% humidity"
        )
    return "\n".join(lines)


def handle_command(dashboard: Dashboard, command: str) -> bool:
    """
    Apply one console command.

    Returns:
        bool: False when the command asks to quit
    """
    command = command.strip()
    if not command:
        print(format_roster(dashboard))
    elif command.lower() in ("q", "quit", "exit"):
        return False
    elif command.lower() in ("r", "refresh"):
        if not dashboard.refresh():
            print("A refresh is already running")
    elif command.isdigit():
        city = dashboard.select_index(int(command) - 1)
        print(f"Selected {city}" if city else f"No city at position {command}")
    else:
        names = {city.name.lower(): city.name for city in dashboard.cities}
        name = names.get(command.lower())
        if name is None:
            print(f"Unknown city {command!r}")
        else:
            dashboard.select(name)
            print(f"Selected {name}")
    return True


def command_loop(dashboard: Dashboard, stop: threading.Event) -> None:
    print("Enter a city name or number to feature it, 'r' to refresh, 'q' to quit, empty line for the list.")
    while not stop.is_set():
        try:
            line = input("> ")
        except EOFError:
            break
        if not handle_command(dashboard, line):
            break


def signal_handler(signum, frame):
    logging.info("Received signal %s, shutting down", signum)
    raise KeyboardInterrupt()


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    cities, default_city, api_url = load_config(args.city)

    dashboard = build_dashboard(args, cities, default_city, api_url)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    stop = threading.Event()
    try:
        dashboard.start()
        if sys.stdin.isatty():
            command_loop(dashboard, stop)
        else:
            while not stop.wait(1.0):
                pass
    except KeyboardInterrupt:
        logging.info("Stopping dashboard")
    finally:
        stop.set()
        dashboard.stop()
        dashboard.canvas.clear()
        logging.info("Canvas cleared")


if __name__ == "__main__":
    main()

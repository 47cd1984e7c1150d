"""Layout and rendering logic for the dashboard - pure functions for testability."""
import math
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from dashboard_state import STATUS_ERROR, STATUS_LOADING, DashboardView
from weather_data import WeatherSnapshot

LOADING_MESSAGE = "Loading weather data..."
HEADER_TITLE = "Live Weather"

ICON_HEAVY_RAIN = "heavy_rain"
ICON_SNOW = "snow"
ICON_LIGHT_RAIN = "light_rain"
ICON_DRIZZLE_FOG = "drizzle_fog"
ICON_CLOUDY = "cloudy"
ICON_SUNNY_HOT = "sunny_hot"
ICON_CLEAR_MILD = "clear_mild"

ICON_GLYPHS: Dict[str, str] = {
    ICON_HEAVY_RAIN: "🌧️",
    ICON_SNOW: "🌨️",
    ICON_LIGHT_RAIN: "🌦️",
    ICON_DRIZZLE_FOG: "🌫️",
    ICON_CLOUDY: "☁️",
    ICON_SUNNY_HOT: "☀️",
    ICON_CLEAR_MILD: "🌤️",
}

# LED fonts are ASCII only
ICON_LABELS: Dict[str, str] = {
    ICON_HEAVY_RAIN: "RAIN",
    ICON_SNOW: "SNOW",
    ICON_LIGHT_RAIN: "SHWR",
    ICON_DRIZZLE_FOG: "FOG",
    ICON_CLOUDY: "CLDY",
    ICON_SUNNY_HOT: "SUN",
    ICON_CLEAR_MILD: "CLR",
}

ICON_COLORS: Dict[str, Tuple[int, int, int]] = {
    ICON_HEAVY_RAIN: (70, 110, 255),
    ICON_SNOW: (235, 245, 255),
    ICON_LIGHT_RAIN: (120, 170, 255),
    ICON_DRIZZLE_FOG: (170, 170, 180),
    ICON_CLOUDY: (200, 200, 200),
    ICON_SUNNY_HOT: (255, 200, 0),
    ICON_CLEAR_MILD: (255, 230, 120),
}

BACKGROUND_SNOW = "snow"
BACKGROUND_RAIN = "rain"
BACKGROUND_SUNNY = "sunny"

BACKGROUND_TINTS: Dict[str, Tuple[int, int, int]] = {
    BACKGROUND_SNOW: (90, 105, 125),
    BACKGROUND_RAIN: (40, 50, 70),
    BACKGROUND_SUNNY: (200, 120, 30),
}

PAGE_COLOR = (26, 26, 26)
ROSTER_COLOR = (24, 28, 36)
ENTRY_COLOR = (38, 42, 50)
SELECTED_ENTRY_COLOR = (45, 55, 80)
CARD_COLOR = (10, 10, 10)
TEXT_COLOR = (255, 255, 255)
MUTED_COLOR = (140, 140, 140)
SELECTED_TEXT_COLOR = (96, 165, 250)
ERROR_COLOR = (248, 113, 113)


class DrawOp:
    """Represents a drawing operation (for testing/layout calculation)."""
    def __init__(self, op_type: str, **kwargs):
        self.op_type = op_type
        self.kwargs = kwargs

    def __repr__(self) -> str:
        return f"DrawOp({self.op_type!r}, {self.kwargs!r})"


def icon_for(temperature: float, condition_code: int) -> str:
    """
    Pick the weather icon for a reading. Rules are checked top-down.

    Args:
        temperature: Temperature in Celsius
        condition_code: WMO weather condition code

    Returns:
        One of the ICON_* identifiers
    """
    if condition_code >= 80:
        return ICON_HEAVY_RAIN
    if condition_code >= 71:
        return ICON_SNOW
    if condition_code >= 61:
        return ICON_LIGHT_RAIN
    if condition_code >= 51:
        return ICON_DRIZZLE_FOG
    if condition_code >= 3:
        return ICON_CLOUDY
    if temperature > 25:
        return ICON_SUNNY_HOT
    return ICON_CLEAR_MILD


def background_for(condition_code: int, temperature: float, rain_mm: float, snow_mm: float) -> str:
    """
    Pick the featured panel background. Rules are checked top-down.

    ``temperature`` is accepted but not used by any rule.

    Returns:
        One of the BACKGROUND_* identifiers
    """
    if snow_mm > 0 or condition_code >= 71:
        return BACKGROUND_SNOW
    if rain_mm > 0 or condition_code >= 61:
        return BACKGROUND_RAIN
    # Cloudy and foggy reuse the rain visual
    if condition_code >= 3:
        return BACKGROUND_RAIN
    return BACKGROUND_SUNNY


def get_temperature_color(temp_c: float) -> Tuple[int, int, int]:
    """
    Get RGB color for temperature using a simple gradient.

    Cold (< 0°C) = blue
    Cool (0-15°C) = cyan
    Mild (15-25°C) = green/yellow
    Warm (25-35°C) = yellow/orange
    Hot (> 35°C) = red
    """
    if temp_c < 0:
        return (0, 0, 255)
    elif temp_c < 15:
        ratio = temp_c / 15.0
        return (0, int(255 * ratio), 255)
    elif temp_c < 25:
        ratio = (temp_c - 15) / 10.0
        return (int(255 * ratio), 255, int(255 * (1 - ratio)))
    elif temp_c < 35:
        ratio = (temp_c - 25) / 10.0
        return (255, int(255 * (1 - ratio * 0.5)), 0)
    else:
        ratio = min((temp_c - 35) / 10.0, 1.0)
        return (255, int(255 * (1 - ratio)), 0)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def format_measurement(value: float) -> str:
    """Format a measurement without a trailing ".0" (65.0 -> "65", 12.3 -> "12.3")."""
    return f"{value:g}"


def format_date(now: datetime) -> str:
    return f"{now:%A, %B} {now.day}"


def format_clock(moment: datetime) -> str:
    return f"{moment:%H:%M}"


def stat_cards(weather: WeatherSnapshot) -> List[Tuple[str, str, str]]:
    """
    Stat cards for the featured city as (key, label, value) tuples.

    Wind and humidity are always shown. Precipitation, rain and snowfall
    only appear when strictly greater than zero.
    """
    cards = [
        ("wind", "Wind", f"{format_measurement(weather.wind_speed)} km/h"),
        ("humidity", "Humidity", f"{format_measurement(weather.humidity)} %"),
    ]
    if weather.precipitation > 0:
        cards.append(("precipitation", "Precipitation", f"{format_measurement(weather.precipitation)} mm"))
    if weather.rain > 0:
        cards.append(("rain", "Rain", f"{format_measurement(weather.rain)} mm"))
    if weather.snowfall > 0:
        cards.append(("snowfall", "Snowfall", f"{format_measurement(weather.snowfall)} mm"))
    return cards


def _text(text: str, x: int, y: int, color: Tuple[int, int, int], size: int, role: str, **extra) -> DrawOp:
    return DrawOp("text", text=text, x=x, y=y, r=color[0], g=color[1], b=color[2], size=size, role=role, **extra)


def _rect(x: int, y: int, w: int, h: int, color: Tuple[int, int, int], role: str, **extra) -> DrawOp:
    return DrawOp("rect", x=x, y=y, w=w, h=h, r=color[0], g=color[1], b=color[2], role=role, **extra)


def _centered_message(text: str, color: Tuple[int, int, int], width: int, height: int, role: str) -> List[DrawOp]:
    size = max(6, height // 16)
    # Rough estimate: glyphs are about 0.6 of the font size wide
    text_width = int(len(text) * size * 0.6)
    x = max(0, (width - text_width) // 2)
    y = max(0, (height - size) // 2)
    return [
        _rect(0, 0, width, height, PAGE_COLOR, "page"),
        _text(text, x, y, color, size, role),
    ]


def calculate_layout(
    view: DashboardView,
    width: int = 128,
    height: int = 64,
    now: Optional[datetime] = None,
) -> List[DrawOp]:
    """
    Calculate layout operations for the dashboard.

    This is a pure function of the view (and the clock for the header
    date), so it can be tested without any rendering backend.

    Args:
        view: Dashboard view snapshot
        width: Canvas width
        height: Canvas height
        now: Current local time for the header date (default: datetime.now())

    Returns:
        List of DrawOp objects representing what to draw
    """
    if view.status == STATUS_LOADING:
        return _centered_message(LOADING_MESSAGE, MUTED_COLOR, width, height, "loading")
    if view.status == STATUS_ERROR:
        return _centered_message(view.error, ERROR_COLOR, width, height, "error")

    now = now or datetime.now()
    featured = view.featured

    small = max(5, height // 24)
    medium = max(7, height // 12)
    large = max(9, height // 5)
    pad = max(1, min(width, height) // 40)

    ops = [_rect(0, 0, width, height, PAGE_COLOR, "page")]

    # Header
    ops.append(_text(HEADER_TITLE, pad, pad, TEXT_COLOR, small, "title"))
    date_text = format_date(now)
    date_x = max(pad, width - pad - int(len(date_text) * small * 0.6))
    ops.append(_text(date_text, date_x, pad, TEXT_COLOR, small, "date"))

    body_y = small + 2 * pad
    body_h = height - body_y - pad
    split_x = width * 9 // 12

    # Featured city panel
    panel_x, panel_w = pad, split_x - 2 * pad
    background = background_for(featured.weather_code, featured.temperature, featured.rain, featured.snowfall)
    ops.append(_rect(panel_x, body_y, panel_w, body_h, BACKGROUND_TINTS[background], "featured_background",
                     background=background, city=featured.city))

    x = panel_x + pad
    y = body_y + pad
    ops.append(_text(featured.city, x, y, TEXT_COLOR, medium, "featured_city"))
    y += medium + pad
    updated = format_clock(featured.last_fetched_datetime())
    ops.append(_text(f"Updated {updated}", x, y, TEXT_COLOR, small, "last_updated"))
    y += small + pad

    temp_text = f"{round_half_up(featured.temperature)}°"
    ops.append(_text(temp_text, x, y, get_temperature_color(featured.temperature), large, "temperature"))
    icon = icon_for(featured.temperature, featured.weather_code)
    icon_x = x + int((len(temp_text) + 1) * large * 0.6) + pad
    ops.append(_text(ICON_LABELS[icon], icon_x, y, ICON_COLORS[icon], large, "featured_icon", icon=icon))
    y += large + pad
    ops.append(_text(f"Feels like {round_half_up(featured.feels_like)}°", x, y, TEXT_COLOR, small, "feels_like"))

    cards = stat_cards(featured)
    card_h = 2 * small + 3 * pad
    card_y = body_y + body_h - card_h - pad
    card_w = (panel_w - pad * (len(cards) + 1)) // len(cards)
    for i, (key, label, value) in enumerate(cards):
        card_x = panel_x + pad + i * (card_w + pad)
        ops.append(_rect(card_x, card_y, card_w, card_h, CARD_COLOR, "stat_card", stat=key))
        ops.append(_text(label, card_x + pad, card_y + pad, TEXT_COLOR, small, "stat_label", stat=key))
        ops.append(_text(value, card_x + pad, card_y + small + 2 * pad, TEXT_COLOR, small, "stat_value", stat=key))

    # City roster
    roster_x = split_x
    roster_w = width - roster_x - pad
    ops.append(_rect(roster_x, body_y, roster_w, body_h, ROSTER_COLOR, "roster"))
    count = len(view.batch)
    entry_x = roster_x + pad
    entry_w = roster_w - 2 * pad
    # Entries share the roster height. Crowded rosters lose the inner
    # padding first, then fall back to one line per city.
    entry_h = max(1, (body_h - pad * (count + 1)) // count)
    inner = pad if entry_h >= 2 * small + 3 * pad else 0
    two_line = entry_h >= 2 * small
    for i, weather in enumerate(view.batch):
        selected = weather is featured
        entry_y = body_y + pad + i * (entry_h + pad)
        ops.append(_rect(entry_x, entry_y, entry_w, entry_h,
                         SELECTED_ENTRY_COLOR if selected else ENTRY_COLOR,
                         "roster_entry", city=weather.city, selected=selected))

        entry_icon = icon_for(weather.temperature, weather.weather_code)
        label = ICON_LABELS[entry_icon]
        temp = f"{round_half_up(weather.temperature)}°"
        text_x = entry_x + inner
        right = entry_x + entry_w - inner
        top = entry_y + inner
        temp_x = right - int(len(temp) * small * 0.6)
        if two_line:
            humidity = f"{format_measurement(weather.humidity)}% humidity"
            detail_y = top + small + inner
            icon_x = right - int(len(label) * small * 0.6)
            humidity_x = text_x
        else:
            humidity = f"{format_measurement(weather.humidity)}%"
            detail_y = top
            icon_x = temp_x - int((len(label) + 1) * small * 0.6)
            humidity_x = icon_x - int((len(humidity) + 1) * small * 0.6)

        name_color = SELECTED_TEXT_COLOR if selected else TEXT_COLOR
        ops.append(_text(weather.city, text_x, top, name_color, small, "roster_name", city=weather.city))
        ops.append(_text(label, icon_x, top, ICON_COLORS[entry_icon], small,
                         "roster_icon", city=weather.city, icon=entry_icon))
        ops.append(_text(humidity, humidity_x, detail_y, MUTED_COLOR, small, "roster_humidity", city=weather.city))
        ops.append(_text(temp, temp_x, detail_y, TEXT_COLOR, small, "roster_temperature", city=weather.city))

    return ops


def city_at(ops: List[DrawOp], x: int, y: int) -> Optional[str]:
    """
    Find the roster entry under a canvas coordinate.

    Returns:
        City name of the entry containing (x, y), or None
    """
    for op in ops:
        if op.op_type != "rect" or op.kwargs.get("role") != "roster_entry":
            continue
        k = op.kwargs
        if k["x"] <= x < k["x"] + k["w"] and k["y"] <= y < k["y"] + k["h"]:
            return k["city"]
    return None


def render_ops(canvas, ops: List[DrawOp]) -> None:
    """
    Execute drawing operations on a canvas.

    Args:
        canvas: MatrixCanvas instance (real, fake or PIL)
        ops: Operations from calculate_layout
    """
    canvas.clear()
    for op in ops:
        k = op.kwargs
        if op.op_type == "rect":
            canvas.fill_rect(k["x"], k["y"], k["w"], k["h"], k["r"], k["g"], k["b"])
        elif op.op_type == "text":
            canvas.draw_text(k["x"], k["y"], k["text"], k["r"], k["g"], k["b"], font_size=k["size"])

"""Tests for display mapping and layout logic."""
from datetime import datetime

import pytest

from conftest import make_snapshot
from dashboard_state import DashboardView
from layout import (
    BACKGROUND_RAIN,
    BACKGROUND_SNOW,
    BACKGROUND_SUNNY,
    ICON_CLEAR_MILD,
    ICON_CLOUDY,
    ICON_DRIZZLE_FOG,
    ICON_GLYPHS,
    ICON_HEAVY_RAIN,
    ICON_LABELS,
    ICON_LIGHT_RAIN,
    ICON_SNOW,
    ICON_SUNNY_HOT,
    LOADING_MESSAGE,
    background_for,
    calculate_layout,
    city_at,
    format_measurement,
    get_temperature_color,
    icon_for,
    round_half_up,
    stat_cards,
)
from weather_data import DEFAULT_CITIES

NOW = datetime(2024, 6, 3, 9, 30)


def ops_with_role(ops, role):
    return [op for op in ops if op.kwargs.get("role") == role]


def texts(ops, role):
    return [op.kwargs["text"] for op in ops_with_role(ops, role)]


@pytest.mark.parametrize("code", [80, 81, 82, 95, 96, 99, 1000])
@pytest.mark.parametrize("temperature", [-30.0, 0.0, 26.0, 45.0])
def test_icon_heavy_rain_regardless_of_temperature(code, temperature):
    assert icon_for(temperature, code) == ICON_HEAVY_RAIN


@pytest.mark.parametrize("temperature,code,expected", [
    (30.0, 0, ICON_SUNNY_HOT),
    (10.0, 0, ICON_CLEAR_MILD),
    (20.0, 55, ICON_DRIZZLE_FOG),
    (25.0, 0, ICON_CLEAR_MILD),
    (25.1, 2, ICON_SUNNY_HOT),
    (30.0, 3, ICON_CLOUDY),
    (30.0, 45, ICON_CLOUDY),
    (5.0, 51, ICON_DRIZZLE_FOG),
    (5.0, 61, ICON_LIGHT_RAIN),
    (5.0, 67, ICON_LIGHT_RAIN),
    (-5.0, 71, ICON_SNOW),
    (-5.0, 77, ICON_SNOW),
])
def test_icon_rules(temperature, code, expected):
    assert icon_for(temperature, code) == expected


@pytest.mark.parametrize("code,temperature,rain,snow,expected", [
    (0, 30.0, 0.0, 0.0, BACKGROUND_SUNNY),
    (65, 10.0, 0.0, 0.0, BACKGROUND_RAIN),
    (75, 10.0, 0.0, 0.0, BACKGROUND_SNOW),
    (5, 10.0, 0.0, 0.0, BACKGROUND_RAIN),
    (0, 10.0, 0.2, 0.0, BACKGROUND_RAIN),
    (0, 10.0, 0.0, 0.1, BACKGROUND_SNOW),
    (65, 10.0, 3.0, 0.5, BACKGROUND_SNOW),
    (2, -20.0, 0.0, 0.0, BACKGROUND_SUNNY),
])
def test_background_rules(code, temperature, rain, snow, expected):
    assert background_for(code, temperature, rain, snow) == expected


def test_background_ignores_temperature():
    assert background_for(0, -40.0, 0.0, 0.0) == background_for(0, 40.0, 0.0, 0.0)


def test_mappers_are_deterministic():
    for _ in range(3):
        assert icon_for(22.0, 63) == ICON_LIGHT_RAIN
        assert background_for(63, 22.0, 1.0, 0.0) == BACKGROUND_RAIN


def test_every_icon_has_glyph_and_label():
    icons = {ICON_HEAVY_RAIN, ICON_SNOW, ICON_LIGHT_RAIN, ICON_DRIZZLE_FOG,
             ICON_CLOUDY, ICON_SUNNY_HOT, ICON_CLEAR_MILD}
    assert set(ICON_GLYPHS) == icons
    assert set(ICON_LABELS) == icons


def test_temperature_color_cold():
    assert get_temperature_color(-10.0) == (0, 0, 255)


def test_temperature_color_hot():
    color = get_temperature_color(40.0)
    assert color[0] == 255
    assert color[1] < 255
    assert color[2] == 0


@pytest.mark.parametrize("value,expected", [
    (18.4, 18), (18.5, 19), (-2.5, -2), (-2.6, -3), (0.0, 0),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_format_measurement():
    assert format_measurement(65.0) == "65"
    assert format_measurement(12.3) == "12.3"


def test_loading_placeholder():
    view = DashboardView(batch=(), error=None, selected_city="Toronto")

    ops = calculate_layout(view, 128, 64, now=NOW)

    assert texts(ops, "loading") == [LOADING_MESSAGE]
    assert not ops_with_role(ops, "roster_entry")


def test_error_message():
    view = DashboardView(batch=(), error="Failed to fetch weather data", selected_city="Toronto")

    ops = calculate_layout(view, 128, 64, now=NOW)

    assert texts(ops, "error") == ["Failed to fetch weather data"]
    assert not ops_with_role(ops, "featured_city")


def test_error_with_batch_renders_data(batch):
    view = DashboardView(batch=batch, error="Failed to fetch weather data", selected_city="Toronto")

    ops = calculate_layout(view, 128, 64, now=NOW)

    assert not ops_with_role(ops, "error")
    assert texts(ops, "featured_city") == ["Toronto"]


def test_featured_panel(batch):
    view = DashboardView(batch=batch, error=None, selected_city="New York")

    ops = calculate_layout(view, 480, 270, now=NOW)

    assert texts(ops, "featured_city") == ["New York"]
    assert texts(ops, "temperature") == ["28°"]
    assert texts(ops, "feels_like") == ["Feels like 26°"]
    assert texts(ops, "date") == ["Monday, June 3"]
    updated = datetime.fromtimestamp(batch[1].last_fetched / 1000).strftime("%H:%M")
    assert texts(ops, "last_updated") == [f"Updated {updated}"]
    icon = ops_with_role(ops, "featured_icon")[0]
    assert icon.kwargs["icon"] == ICON_SUNNY_HOT
    assert icon.kwargs["text"] == ICON_LABELS[ICON_SUNNY_HOT]
    assert ops_with_role(ops, "featured_background")[0].kwargs["background"] == BACKGROUND_SUNNY


def test_featured_falls_back_to_first_entry(batch):
    view = DashboardView(batch=batch, error=None, selected_city="Atlantis")

    ops = calculate_layout(view, 480, 270, now=NOW)

    assert texts(ops, "featured_city") == ["Toronto"]


def test_snowy_featured_city(batch):
    view = DashboardView(batch=batch, error=None, selected_city="Chicago")

    ops = calculate_layout(view, 480, 270, now=NOW)

    assert ops_with_role(ops, "featured_icon")[0].kwargs["icon"] == ICON_SNOW
    assert ops_with_role(ops, "featured_background")[0].kwargs["background"] == BACKGROUND_SNOW
    assert texts(ops, "temperature") == ["-3°"]


@pytest.mark.parametrize("precipitation,rain,snowfall", [
    (0.0, 0.0, 0.0),
    (0.4, 0.4, 0.0),
    (1.0, 0.0, 1.0),
    (2.0, 1.5, 0.5),
    (0.0, 0.3, 0.0),
])
def test_stat_cards_present_only_when_positive(precipitation, rain, snowfall):
    weather = make_snapshot(precipitation=precipitation, rain=rain, snowfall=snowfall)
    view = DashboardView(batch=(weather,), error=None, selected_city="Toronto")

    ops = calculate_layout(view, 480, 270, now=NOW)

    shown = [op.kwargs["stat"] for op in ops_with_role(ops, "stat_card")]
    assert shown[:2] == ["wind", "humidity"]
    assert ("precipitation" in shown) == (precipitation > 0)
    assert ("rain" in shown) == (rain > 0)
    assert ("snowfall" in shown) == (snowfall > 0)


def test_stat_card_values():
    weather = make_snapshot(wind_speed=14.2, humidity=63.0, rain=0.4)

    assert stat_cards(weather) == [
        ("wind", "Wind", "14.2 km/h"),
        ("humidity", "Humidity", "63 %"),
        ("rain", "Rain", "0.4 mm"),
    ]


def test_roster_lists_every_city_in_order(batch):
    view = DashboardView(batch=batch, error=None, selected_city="New York")

    ops = calculate_layout(view, 480, 270, now=NOW)

    assert texts(ops, "roster_name") == ["Toronto", "New York", "Chicago"]
    assert texts(ops, "roster_temperature") == ["18°", "28°", "-3°"]
    assert texts(ops, "roster_humidity") == ["55% humidity", "70% humidity", "80% humidity"]
    selected = [op.kwargs["city"] for op in ops_with_role(ops, "roster_entry") if op.kwargs["selected"]]
    assert selected == ["New York"]


def test_roster_highlights_fallback_city_when_selection_missing(batch):
    view = DashboardView(batch=batch, error=None, selected_city="Atlantis")

    ops = calculate_layout(view, 480, 270, now=NOW)

    selected = [op.kwargs["city"] for op in ops_with_role(ops, "roster_entry") if op.kwargs["selected"]]
    assert selected == ["Toronto"]
    assert texts(ops, "featured_city") == ["Toronto"]


def test_city_at_hits_roster_entries(batch):
    view = DashboardView(batch=batch, error=None, selected_city="Toronto")
    ops = calculate_layout(view, 480, 270, now=NOW)

    for entry in ops_with_role(ops, "roster_entry"):
        k = entry.kwargs
        assert city_at(ops, k["x"] + 1, k["y"] + 1) == k["city"]

    assert city_at(ops, 0, 0) is None


def default_batch():
    return tuple(
        make_snapshot(city.name, latitude=city.latitude, longitude=city.longitude)
        for city in DEFAULT_CITIES
    )


def assert_within(ops, width, height):
    for op in ops:
        k = op.kwargs
        assert 0 <= k["x"] < width, op
        assert 0 <= k["y"] < height, op
        if op.op_type == "rect":
            assert k["x"] + k["w"] <= width, op
            assert k["y"] + k["h"] <= height, op
        else:
            assert k["y"] + k["size"] <= height, op


@pytest.mark.parametrize("width,height", [(128, 64), (480, 270), (1280, 720)])
def test_layout_stays_within_canvas(batch, width, height):
    for roster in (batch, default_batch()):
        view = DashboardView(batch=roster, error=None, selected_city="Toronto")

        assert_within(calculate_layout(view, width, height, now=NOW), width, height)


def test_default_cities_fit_led_matrix():
    """128x64 is the default 64x64 panel chained twice."""
    batch = default_batch()
    view = DashboardView(batch=batch, error=None, selected_city="Toronto")

    ops = calculate_layout(view, 128, 64, now=NOW)

    names = [city.name for city in DEFAULT_CITIES]
    assert texts(ops, "roster_name") == names
    assert len(texts(ops, "roster_temperature")) == len(names)
    assert len(texts(ops, "roster_humidity")) == len(names)
    assert len(ops_with_role(ops, "roster_icon")) == len(names)
    for entry in ops_with_role(ops, "roster_entry"):
        k = entry.kwargs
        assert k["y"] + k["h"] <= 64
        for op in ops:
            if op.op_type == "text" and op.kwargs.get("city") == k["city"]:
                assert k["y"] <= op.kwargs["y"]
                assert op.kwargs["y"] + op.kwargs["size"] <= k["y"] + k["h"]


def test_roster_entries_do_not_overlap():
    view = DashboardView(batch=default_batch(), error=None, selected_city="Toronto")

    entries = ops_with_role(calculate_layout(view, 128, 64, now=NOW), "roster_entry")

    for above, below in zip(entries, entries[1:]):
        assert above.kwargs["y"] + above.kwargs["h"] <= below.kwargs["y"]


def test_crowded_roster_uses_one_line_per_city():
    batch = tuple(make_snapshot(f"City {i}", humidity=55.0) for i in range(8))
    view = DashboardView(batch=batch, error=None, selected_city="City 0")

    ops = calculate_layout(view, 128, 64, now=NOW)

    assert len(texts(ops, "roster_name")) == 8
    assert texts(ops, "roster_humidity") == ["55%"] * 8
    for name, temp in zip(ops_with_role(ops, "roster_name"), ops_with_role(ops, "roster_temperature")):
        assert name.kwargs["y"] == temp.kwargs["y"]
    assert_within(ops, 128, 64)


def test_render_ops_uses_matrix_graphics_with_baseline(batch):
    """rgbmatrix positions text by baseline; layout positions by top edge."""
    from unittest.mock import Mock
    from layout import render_ops
    from matrix_canvas import RealMatrixCanvas

    matrix = Mock(width=128, height=64)
    graphics = Mock()
    font = Mock(baseline=7)
    canvas = RealMatrixCanvas(matrix, font, graphics)
    view = DashboardView(batch=batch, error=None, selected_city="Toronto")
    ops = calculate_layout(view, 128, 64, now=NOW)

    render_ops(canvas, ops)

    matrix.Clear.assert_called_once()
    text_ops = [op for op in ops if op.op_type == "text"]
    assert graphics.DrawText.call_count == len(text_ops)
    first = graphics.DrawText.call_args_list[0][0]
    assert first[0] is matrix
    assert first[1] is font
    assert first[3] == text_ops[0].kwargs["y"] + 7
    assert first[5] == text_ops[0].kwargs["text"]

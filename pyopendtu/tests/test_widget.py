import pytest

from pyopendtu.refresh import FRESH, HARD_FAIL, STALE_FALLBACK, RefreshResult
from pyopendtu.settings import Settings
from pyopendtu.widget import COLORS, present, relative_time, render

NOW = 1_700_000_000_000


def test_small_widget(settings, dtu_payload, tasmota_payload):
    result = RefreshResult(FRESH, dtu_payload, tasmota_payload, NOW - 5 * 60000)
    text = render(result, settings, "small", color=False, now=NOW)
    assert "OpenDTU" in text
    assert "231.40 W" in text
    assert "0.81 kWh" in text
    assert "431.25 kWh" in text
    assert "Power Draw:" in text and "312.00 W" in text
    assert "Panel A" not in text
    assert "5 min ago" in text


def test_medium_widget_shows_dc_strings(settings, dtu_payload):
    result = RefreshResult(FRESH, dtu_payload, None, NOW)
    text = render(result, settings, "medium", color=False, now=NOW)
    assert "Panel A:" in text and "120.20 W" in text
    assert "Panel B:" in text and "118.90 W" in text
    # Meter missing this run
    assert "Power Draw:" in text and "0.00 W" in text


def test_power_colors(dtu_payload):
    settings = Settings({"redThreshold": 300, "yellowThreshold": 400})
    text = render(RefreshResult(FRESH, dtu_payload, timestamp=NOW), settings, now=NOW)
    assert COLORS["red"] + "231.40 W" in text


def test_offline_inverter(settings, dtu_payload):
    dtu_payload["inverters"][0]["producing"] = False
    text = render(RefreshResult(FRESH, dtu_payload, timestamp=NOW), settings, color=False, now=NOW)
    assert "Offline" in text
    assert "231.40 W" not in text


def test_stale_widget_shows_warning_and_cache_time(settings, dtu_payload):
    result = RefreshResult(STALE_FALLBACK, dtu_payload, None, NOW - 3 * 3600000, from_cache=True,
                           message="Showing cached data")
    text = render(result, settings, color=False, now=NOW)
    assert "Showing cached data" in text
    assert "3 h ago" in text


def test_hard_fail_panel(settings):
    result = RefreshResult(HARD_FAIL, message="Verbindung fehlgeschlagen / Connection failed\nNo cached data")
    text = render(result, settings, color=False, now=NOW)
    assert "Connection failed" in text
    assert "No cached data" in text
    assert "W\n" not in text


def test_unrenderable_payload(settings):
    text = render(RefreshResult(FRESH, {"inverters": []}, timestamp=NOW), settings, color=False, now=NOW)
    assert "Error" in text


def test_unknown_size(settings, dtu_payload):
    with pytest.raises(ValueError):
        render(RefreshResult(FRESH, dtu_payload, timestamp=NOW), settings, "large")


def test_relative_time():
    assert relative_time(NOW - 30000, NOW) == "just now"
    assert relative_time(NOW - 2 * 86400000, NOW) == "2 d ago"


def test_present_to_file(tmp_path):
    out = tmp_path / "widget" / "opendtu.txt"
    present("panel\n", str(out))
    assert out.read_text() == "panel\n"


def test_present_to_terminal(capsys):
    present("panel\n")
    assert capsys.readouterr().out == "panel\n"

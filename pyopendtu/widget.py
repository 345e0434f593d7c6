# pyOpenDTU Module - Widget
# -*- coding: utf-8 -*-
"""
 Renders a RefreshResult as a small or medium text widget

 Small:   title, power, yield day, yield total, power draw, "ago" line
 Medium:  adds the DC string breakdown
 Errors:  a panel with the message (HARD_FAIL) or a stale data warning line

 present() writes the panel to a file (widget mode) or prints it to the
 terminal (interactive mode).
"""
import datetime
import logging
import sys
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from pyopendtu.cache import atomic_write, now_ms
from pyopendtu.exceptions import DecodeFailure
from pyopendtu.models import (GREEN, RED, YELLOW, InverterStatus, classify_power,
                              classify_power_draw, power_draw_value)
from pyopendtu.refresh import HARD_FAIL, STALE_FALLBACK

log = logging.getLogger(__name__)

TITLE = "OpenDTU☀️"
SIZES = ["small", "medium"]

COLORS = {
    RED: "\033[0m\033[91m",
    YELLOW: "\033[0m\033[93m",
    GREEN: "\033[0m\033[92m",
    "bold": "\033[0m\033[97m\033[1m",
    "dim": "\033[0m\033[97m\033[2m",
    "alert": "\033[0m\033[91m\033[1m",
    "normal": "\033[0m",
}


class Painter:
    def __init__(self, color: bool = True):
        self.color = color

    def __call__(self, style: str, text: str) -> str:
        if not self.color:
            return text
        return f"{COLORS[style]}{text}{COLORS['normal']}"


def relative_time(timestamp: int, now: int) -> str:
    """Return a short "x ago" string for an epoch ms timestamp"""
    if now - timestamp < 60000:
        return "just now"
    then = datetime.datetime.fromtimestamp(timestamp / 1000)
    delta = relativedelta(datetime.datetime.fromtimestamp(now / 1000), then)
    for unit, label in (("years", "y"), ("months", "mo"), ("days", "d"), ("hours", "h"), ("minutes", "min")):
        value = getattr(delta, unit)
        if value:
            return f"{value} {label} ago"
    return "just now"


def render(result, settings, size: str = "small", color: bool = True, now: Optional[int] = None) -> str:
    if size not in SIZES:
        raise ValueError(f"Unknown widget size '{size}' - use one of {SIZES}")
    paint = Painter(color)
    now = now if now is not None else now_ms()

    if result.state == HARD_FAIL:
        return render_error(result.message or "Error", color)

    try:
        status = InverterStatus.from_payload(result.dtu)
    except DecodeFailure as exc:
        log.error(f"Unable to render inverter data: {exc}")
        return render_error(f"Fehler / Error: {exc}", color)

    lines: List[str] = [paint("bold", TITLE), ""]
    lines.append(paint("dim", "Power:"))
    if not status.producing:
        lines.append(paint(RED, "Offline"))
    else:
        lines.append(paint(classify_power(status.power, settings), f"{status.power:.2f} W"))
    lines.append(paint("dim", "Yield Day:"))
    lines.append(f"{status.yield_day / 1000:.2f} kWh")
    lines.append(paint("dim", "Yield Total:"))
    lines.append(f"{status.yield_total:.2f} kWh")

    if size == "medium" and status.dc:
        lines.append("")
        for channel in status.dc:
            lines.append(paint("dim", f"{channel.name}:"))
            lines.append(f"{channel.power:.2f} W")

    if settings.showPowerDraw:
        value = 0.0
        if result.power_draw is not None:
            try:
                value = power_draw_value(settings.powermeter, result.power_draw)
            except DecodeFailure as exc:
                log.debug(f"No usable power draw reading: {exc}")
        lines.append(paint("dim", "Power Draw:"))
        lines.append(paint(classify_power_draw(value, settings), f"{value:.2f} W"))

    lines.append("")
    if result.state == STALE_FALLBACK:
        lines.append(paint("alert", f"⚠ {result.message}"))
    if result.timestamp is not None:
        lines.append(paint("dim", relative_time(result.timestamp, now)))
    return "\n".join(lines) + "\n"


def render_error(message: str, color: bool = True) -> str:
    paint = Painter(color)
    lines = [paint("bold", TITLE), ""]
    lines.extend(paint("alert", line) for line in message.splitlines())
    return "\n".join(lines) + "\n"


def present(text: str, output: Optional[str] = None):
    """Install the panel as the widget display (output file) or show it in the terminal"""
    if output:
        atomic_write(output, text)
        log.debug(f"Widget written to {output}")
    else:
        sys.stdout.write(text)
        sys.stdout.flush()

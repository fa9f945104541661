"""Playground host: a calendar page served through the inspector bridge.

Runs without any GUI toolkit. The page lives in the in-process document model
and commands are evaluated natively on the main thread, so every MCP tool
except raw ``eval`` (and the interactions built on it) can be tried against a
realistic document. The page deliberately carries a few problems for
``diagnose`` to find.
"""

from __future__ import annotations

import argparse
import calendar
import datetime
import logging

from .bridge import start_bridge
from .config import BridgeSettings
from .document import Document, Element, StyleSheet, Viewport, element
from .evaluator import DocumentEvaluator, EvaluationLoop

logger = logging.getLogger(__name__)

APP_NAME = "calendar"

CALENDAR_STYLES = """
.calendar { background: #1e293b; border-radius: 12px; padding: 1.5rem; color: white; }
.calendar-nav-btn { background: #334155; border: none; color: white; border-radius: 6px; }
.calendar-title { font-size: 1.125rem; font-weight: 600; }
.calendar-grid { display: grid; grid-template-columns: repeat(7, 2.5rem); gap: 0.25rem; }
.calendar-day { text-align: center; border-radius: 6px; }
.calendar-day.today { outline: 1px solid #38bdf8; }
.calendar-weekday { color: #94a3b8; font-size: 0.75rem; }
.toast { position: fixed; bottom: 1rem; right: 1rem; }
"""

DAY_SIZE = 40
GRID_LEFT = 460
GRID_TOP = 260


def _day_cell(day: int, col: int, row: int, today: datetime.date, month: int) -> Element:
    rect = (GRID_LEFT + col * (DAY_SIZE + 4), GRID_TOP + row * (DAY_SIZE + 4), DAY_SIZE, DAY_SIZE)
    if day == 0:
        return element("div", cls="calendar-day empty", rect=rect)
    cls = "calendar-day"
    if day == today.day and month == today.month:
        cls += " today"
    return element("button", str(day), cls=cls, rect=rect, data_day=day)


def build_calendar_document(today: datetime.date | None = None) -> Document:
    """Build the sample page for the given day (defaults to today)."""
    today = today or datetime.date.today()
    weeks = calendar.Calendar(firstweekday=6).monthdayscalendar(today.year, today.month)

    weekdays = element(
        "div",
        *[
            element("span", name, cls="calendar-weekday", rect=(GRID_LEFT + i * 44, 230, 40, 20))
            for i, name in enumerate(["Su", "Mo", "Tu", "We", "Th", "Fr", "Sa"])
        ],
        cls="calendar-weekdays",
        rect=(GRID_LEFT, 230, 304, 20),
    )
    grid = element(
        "div",
        *[
            _day_cell(day, col, row, today, today.month)
            for row, week in enumerate(weeks)
            for col, day in enumerate(week)
        ],
        cls="calendar-grid",
        rect=(GRID_LEFT, GRID_TOP, 304, len(weeks) * 44),
        role="grid",
    )
    header = element(
        "div",
        element("button", "◀", cls="calendar-nav-btn", rect=(GRID_LEFT, 190, 32, 32), aria_label="Previous month"),
        element(
            "h2",
            today.strftime("%B %Y"),
            cls="calendar-title",
            rect=(GRID_LEFT + 90, 194, 124, 24),
        ),
        element("button", "▶", cls="calendar-nav-btn", rect=(GRID_LEFT + 272, 190, 32, 32), aria_label="Next month"),
        cls="calendar-header flex justify-between",
        rect=(GRID_LEFT, 190, 304, 32),
    )

    body = element(
        "body",
        element(
            "div",
            element("h1", "Pick a Date", cls="text-white text-3xl font-sans", rect=(520, 120, 240, 40)),
            element(
                "div",
                header,
                weekdays,
                grid,
                cls="calendar",
                rect=(GRID_LEFT - 24, 166, 352, 120 + len(weeks) * 44),
            ),
            element(
                "p",
                "Selected: none",
                id="selected",
                cls="text-white text-xl font-sans",
                style={"display": "none"},
            ),
            element("div", "Legend", cls="calendar-legend", rect=(GRID_LEFT, 600, 304, 0)),
            element(
                "div",
                "Saved!",
                cls="toast",
                style={"position": "fixed", "z-index": "50"},
                rect=(1100, 860, 160, 48),
            ),
            element("input", id="note", placeholder="Add a note", rect=(GRID_LEFT, 640, 304, 36), value=""),
            id="app",
            cls="flex flex-col items-center justify-center min-h-screen bg-black gap-8",
            rect=(0, 0, 1280, 800),
        ),
        element("script", "window.__inspector = true;"),
        rect=(0, 0, 1280, 800),
    )
    return Document(
        body=body,
        viewport=Viewport(1280, 800),
        style_sheets=[
            StyleSheet.from_css(CALENDAR_STYLES, href="calendar.css"),
            StyleSheet.from_css(
                ".font-sans { font-family: system-ui; }",
                href="https://cdn.example.com/fonts.css",
                accessible=False,
            ),
        ],
    )


def run() -> None:
    """Entry point for ``webview-inspector-playground``."""
    parser = argparse.ArgumentParser(description="Serve a sample calendar page through the inspector bridge.")
    parser.add_argument("--port", type=int, help="Bridge port (default: $INSPECTOR_PORT or 9999)")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    settings = BridgeSettings() if args.port is None else BridgeSettings(port=args.port)
    document = build_calendar_document()

    handle = start_bridge(APP_NAME, settings)
    loop = EvaluationLoop(handle.receiver, DocumentEvaluator(lambda: document))
    logger.info(f"Playground ready; point the MCP server at INSPECTOR_BRIDGE_URL={handle.url}")
    try:
        loop.run()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        handle.stop()
        logger.info(f"Processed {loop.processed} commands")


if __name__ == "__main__":
    run()

"""icsbusy - calendar feed parsing and busy-time projection.

Turns raw iCalendar feed text into normalized UTC events (recurrences
expanded, exceptions applied, duplicates reconciled) and projects those
events onto busy intervals for a scheduling engine.
"""

__version__ = "0.1.0"

from typing import Optional

from icsbusy.calendar.ics_exceptions import IcsDateTimeError, IcsParseError, RecurrenceRuleError
from icsbusy.calendar.ics_models import (
    BusyInterval,
    CalendarEvent,
    EventStatus,
    EventTransparency,
    FeedUrlValidation,
    ParsedIcsData,
)
from icsbusy.calendar.ics_parser import IcsParser, parse_ics
from icsbusy.domain.busy_projector import extract_busy_times
from icsbusy.domain.feed_validation import validate_feed_url

__all__ = [
    "BusyInterval",
    "CalendarEvent",
    "EventStatus",
    "EventTransparency",
    "FeedUrlValidation",
    "IcsDateTimeError",
    "IcsParseError",
    "IcsParser",
    "ParsedIcsData",
    "RecurrenceRuleError",
    "__version__",
    "extract_busy_times",
    "parse_ics",
    "validate_feed_url",
]


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to the console.

    Installs a colorized stderr handler (unless one is already present) and
    sets the root level. ICSBUSY_DEBUG (truthy values: "1", "true", "yes",
    "on") forces DEBUG verbosity regardless of ``level_name``.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("ICSBUSY_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message, with only the level colorized
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )

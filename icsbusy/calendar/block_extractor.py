"""Splits raw feed text into per-event line groups - icsbusy."""

import logging
import re
from typing import Optional

from icsbusy.calendar.ics_models import EventBlock

logger = logging.getLogger(__name__)

BEGIN_EVENT = "BEGIN:VEVENT"
END_EVENT = "END:VEVENT"
CALENDAR_BOUNDARIES = frozenset({"BEGIN:VCALENDAR", "END:VCALENDAR"})

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def normalize_lines(text: str) -> list[str]:
    """Split text on any line ending, trim each line and drop blank lines."""
    return [line.strip() for line in _LINE_BREAK_RE.split(text) if line.strip()]


def extract_event_blocks(text: str) -> list[EventBlock]:
    """Extract VEVENT blocks from feed text in document order.

    Lines between BEGIN:VEVENT and END:VEVENT (inclusive) form one block. A
    block that is not closed before the next BEGIN:VEVENT or the end of input
    is discarded. Calendar-level METHOD lines seen outside event blocks are
    stamped onto the following blocks of the same VCALENDAR only.

    Args:
        text: Full calendar feed text

    Returns:
        One EventBlock per complete event record
    """
    blocks: list[EventBlock] = []
    current: list[str] = []
    in_event = False
    method: Optional[str] = None
    discarded = 0

    for line in normalize_lines(text):
        marker = line.upper()
        if marker == BEGIN_EVENT:
            if in_event:
                discarded += 1
            in_event = True
            current = [line]
        elif marker == END_EVENT:
            if in_event:
                current.append(line)
                blocks.append(EventBlock(lines=current, method=method))
                current = []
                in_event = False
        elif in_event:
            current.append(line)
        elif marker in CALENDAR_BOUNDARIES:
            # METHOD is scoped to its enclosing VCALENDAR
            method = None
        elif marker.startswith("METHOD:"):
            method = line.split(":", 1)[1].strip().upper() or None

    if in_event:
        discarded += 1

    if discarded:
        logger.debug("Discarded %d unterminated event block(s)", discarded)
    logger.debug("Extracted %d event block(s)", len(blocks))
    return blocks

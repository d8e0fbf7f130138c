"""Busy-time projection for the scheduling engine.

Reduces parsed events to the sorted list of intervals during which the
calendar owner should be treated as unavailable.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from icsbusy.calendar.ics_models import BusyInterval, CalendarEvent, EventStatus

logger = logging.getLogger(__name__)


def _is_busier(candidate: CalendarEvent, existing: CalendarEvent) -> bool:
    """Return True when ``candidate`` should replace ``existing`` for the same slot."""
    if candidate.is_opaque and not existing.is_opaque:
        return True
    return (
        candidate.transparency == existing.transparency
        and candidate.status == EventStatus.CONFIRMED
        and existing.status != EventStatus.CONFIRMED
    )


def deduplicate_by_slot(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    """Collapse events sharing the same (start, end) pair, keeping the busiest.

    Feeds often carry several series for one slot (e.g. a tentative copy of a
    confirmed meeting). OPAQUE wins over TRANSPARENT, then CONFIRMED over any
    other status; otherwise the first event seen is kept.
    """
    slots: dict[tuple[datetime, datetime], CalendarEvent] = {}

    for event in events:
        key = (event.start, event.end)
        existing = slots.get(key)
        if existing is None:
            slots[key] = event
        elif _is_busier(event, existing):
            logger.debug(
                "Slot dedup: replacing %r (%s) with %r (%s) at %s",
                existing.summary,
                existing.transparency,
                event.summary,
                event.transparency,
                event.start.isoformat(),
            )
            slots[key] = event

    return list(slots.values())


def is_busy(event: CalendarEvent, start_date: datetime, end_date: datetime) -> bool:
    """Decide whether one event blocks time inside ``[start_date, end_date)``."""
    title = event.summary.lower()
    if "tentative" in title:
        return False
    if not event.is_opaque:
        return False
    if not (event.start < end_date and event.end > start_date):
        return False

    if event.status not in (EventStatus.CANCELLED, EventStatus.TENTATIVE):
        return True
    # Titles such as "Busy" block time regardless of status, unless cancelled
    return "busy" in title and not event.is_cancelled


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def extract_busy_times(
    events: Iterable[CalendarEvent], start_date: datetime, end_date: datetime
) -> list[BusyInterval]:
    """Project events onto sorted busy intervals within a window.

    Args:
        events: Parsed events (typically ``ParsedIcsData.events``)
        start_date: Window start; naive values are taken as UTC
        end_date: Window end (exclusive); naive values are taken as UTC

    Returns:
        Busy intervals sorted by start
    """
    start_date = _as_utc(start_date)
    end_date = _as_utc(end_date)

    busy = [
        BusyInterval(start=event.start, end=event.end)
        for event in deduplicate_by_slot(events)
        if is_busy(event, start_date, end_date)
    ]
    busy.sort(key=lambda interval: interval.start)

    logger.debug("Projected %d busy interval(s)", len(busy))
    return busy

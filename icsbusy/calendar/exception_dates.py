"""EXDATE/RDATE reconciliation for expanded recurring events - icsbusy."""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Optional

from icsbusy.calendar.datetime_normalizer import DateTimeNormalizer, split_property
from icsbusy.calendar.ics_exceptions import IcsDateTimeError
from icsbusy.calendar.ics_models import CalendarEvent

logger = logging.getLogger(__name__)

DEFAULT_EXDATE_TOLERANCE_SECONDS = 60


def occurrence_uid(uid: str, start: datetime) -> str:
    """Build the per-occurrence UID ``<uid>_<YYYY-MM-DD>`` (UTC date)."""
    return f"{uid}_{start.strftime('%Y-%m-%d')}"


def clone_occurrence(base: CalendarEvent, start: datetime) -> CalendarEvent:
    """Clone ``base`` at ``start`` keeping the base duration."""
    return base.model_copy(
        update={
            "uid": occurrence_uid(base.uid, start),
            "start": start,
            "end": start + base.duration,
        }
    )


def _parse_date_list(
    prop_lines: Iterable[str],
    normalizer: Optional[DateTimeNormalizer],
    label: str,
) -> list[datetime]:
    normalizer = normalizer or DateTimeNormalizer()
    instants: list[datetime] = []

    for prop_line in prop_lines:
        params, values = split_property(prop_line)
        for raw in values.split(","):
            value = raw.strip()
            if not value:
                continue
            # PERIOD values are start/end or start/duration; only the start is used
            value = value.split("/", 1)[0]
            try:
                instants.append(normalizer.normalize(f"{params}:{value}"))
            except IcsDateTimeError as e:
                logger.warning("Skipping malformed %s value %r: %s", label, value, e)

    return instants


def parse_exception_dates(
    prop_lines: Iterable[str], normalizer: Optional[DateTimeNormalizer] = None
) -> list[datetime]:
    """Parse EXDATE property texts into UTC instants.

    Args:
        prop_lines: Full property texts such as
            ``"EXDATE;TZID=Eastern Standard Time:20240115T090000,20240122T090000"``
        normalizer: DateTime normalizer to use; a default one is created if omitted

    Returns:
        Excluded instants in UTC. Malformed entries are skipped with a warning.
    """
    return _parse_date_list(prop_lines, normalizer, "EXDATE")


def parse_recurrence_dates(
    prop_lines: Iterable[str], normalizer: Optional[DateTimeNormalizer] = None
) -> list[datetime]:
    """Parse RDATE property texts into UTC instants (PERIOD values yield their start)."""
    return _parse_date_list(prop_lines, normalizer, "RDATE")


def apply_exception_dates(
    events: Sequence[CalendarEvent],
    instants: Sequence[datetime],
    tolerance_seconds: int = DEFAULT_EXDATE_TOLERANCE_SECONDS,
) -> list[CalendarEvent]:
    """Drop every occurrence whose start is within the tolerance of an excluded instant."""
    if not instants:
        return list(events)

    tolerance = timedelta(seconds=tolerance_seconds)
    kept = [
        event
        for event in events
        if not any(abs(event.start - instant) < tolerance for instant in instants)
    ]
    removed = len(events) - len(kept)
    if removed:
        logger.debug("EXDATE removed %d occurrence(s)", removed)
    return kept


def create_additional_events(
    base: CalendarEvent,
    instants: Iterable[datetime],
    range_start: Optional[datetime] = None,
    range_end: Optional[datetime] = None,
) -> list[CalendarEvent]:
    """Create occurrences for RDATE instants.

    Each clone keeps the base duration. A clone is kept only if it overlaps
    the window on every bound that was given.
    """
    additions: list[CalendarEvent] = []
    for instant in instants:
        try:
            event = clone_occurrence(base, instant)
        except OverflowError:
            logger.warning("Skipping RDATE %s for %s: out of range", instant.isoformat(), base.uid)
            continue
        if range_end is not None and event.start >= range_end:
            continue
        if range_start is not None and event.end <= range_start:
            continue
        additions.append(event)
    return additions

"""iCalendar feed parser with Outlook compatibility - icsbusy."""

import logging
from datetime import UTC, datetime
from typing import Any, Optional

from icsbusy.calendar.block_extractor import extract_event_blocks
from icsbusy.calendar.datetime_normalizer import DateTimeNormalizer
from icsbusy.calendar.event_merger import (
    RecurrenceOverrideIndex,
    deduplicate_occurrences,
    suppress_cancelled_occurrences,
)
from icsbusy.calendar.event_parser import EventBlockParser
from icsbusy.calendar.ics_exceptions import IcsParseError
from icsbusy.calendar.ics_models import CalendarEvent, ParsedIcsData
from icsbusy.calendar.rrule_expander import RecurrenceExpander
from icsbusy.calendar.series_uid import SeriesUidNormalizer
from icsbusy.core.timezone_utils import DEFAULT_BUSINESS_TIMEZONE, TimezoneResolver

logger = logging.getLogger(__name__)


def _window_bound(value: Optional[datetime]) -> Optional[datetime]:
    # Naive window bounds are taken as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class IcsParser:
    """Parses calendar feed text into normalized, deduplicated occurrences."""

    def __init__(self, settings: Any = None) -> None:
        """Initialize ICS parser.

        Args:
            settings: Optional ``Config``; defaults are used for missing fields
        """
        self.settings = settings
        default_tz = getattr(settings, "default_timezone", DEFAULT_BUSINESS_TIMEZONE)
        self._normalizer = DateTimeNormalizer(TimezoneResolver(default_tz))
        self._uid_normalizer = SeriesUidNormalizer.from_patterns(
            getattr(settings, "series_uid_patterns", None)
        )
        self._event_parser = EventBlockParser(
            self._normalizer, RecurrenceExpander(settings), settings
        )

        logger.debug("ICS parser initialized (default timezone %s)", default_tz)

    def parse(
        self,
        feed_text: str,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
    ) -> ParsedIcsData:
        """Parse feed text into events plus per-record error strings.

        Args:
            feed_text: Raw calendar feed content
            range_start: Optional lower bound for recurrence expansion
            range_end: Optional upper bound for recurrence expansion

        Returns:
            ParsedIcsData; bad records are reported in ``errors`` and never
            abort the parse

        Raises:
            TypeError: If ``feed_text`` is not a string
        """
        if not isinstance(feed_text, str):
            raise TypeError(f"feed_text must be str, not {type(feed_text).__name__}")

        range_start = _window_bound(range_start)
        range_end = _window_bound(range_end)

        blocks = extract_event_blocks(feed_text)
        if not blocks:
            logger.debug("No event records found in feed")
            return ParsedIcsData()

        events: list[CalendarEvent] = []
        errors: list[str] = []

        for block in blocks:
            try:
                outcome = self._event_parser.parse_block(block, range_start, range_end)
            except IcsParseError as e:
                logger.warning("%s", e)
                errors.append(str(e))
                continue
            events.extend(outcome.events)
            errors.extend(outcome.diagnostics)

        overrides = RecurrenceOverrideIndex.from_blocks(
            blocks, self._normalizer, self._uid_normalizer
        )
        events = suppress_cancelled_occurrences(events, overrides)
        events = deduplicate_occurrences(events, self._uid_normalizer)

        logger.debug(
            "Parsed %d block(s) into %d event(s) with %d error(s)",
            len(blocks),
            len(events),
            len(errors),
        )
        return ParsedIcsData(events=events, errors=errors)


def parse_ics(
    feed_text: str,
    range_start: Optional[datetime] = None,
    range_end: Optional[datetime] = None,
    config: Any = None,
) -> ParsedIcsData:
    """Parse calendar feed text with a one-off IcsParser."""
    return IcsParser(config).parse(feed_text, range_start, range_end)

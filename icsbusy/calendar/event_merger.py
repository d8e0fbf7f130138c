"""RECURRENCE-ID suppression and ingest deduplication - icsbusy.

Both passes run over the flat occurrence list produced by the block parser.
Cancelled overrides are discovered by rescanning the original blocks because
the parser drops cancelled records before they become events.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from icsbusy.calendar.datetime_normalizer import DateTimeNormalizer, truncate_to_second
from icsbusy.calendar.event_parser import collect_properties, is_cancelled_record
from icsbusy.calendar.ics_exceptions import IcsDateTimeError
from icsbusy.calendar.ics_models import CalendarEvent, EventBlock
from icsbusy.calendar.series_uid import SeriesUidNormalizer

logger = logging.getLogger(__name__)


@dataclass
class RecurrenceOverrideIndex:
    """Anchors of cancelled RECURRENCE-ID overrides keyed by series.

    Each entry is ``(series_key, anchor)`` with the anchor in UTC truncated
    to whole seconds.
    """

    uid_normalizer: SeriesUidNormalizer = field(default_factory=SeriesUidNormalizer)
    anchors: set[tuple[str, datetime]] = field(default_factory=set)

    @classmethod
    def from_blocks(
        cls,
        blocks: Iterable[EventBlock],
        normalizer: Optional[DateTimeNormalizer] = None,
        uid_normalizer: Optional[SeriesUidNormalizer] = None,
    ) -> "RecurrenceOverrideIndex":
        """Scan event blocks for cancelled overrides.

        Args:
            blocks: Blocks from the block extractor, in document order
            normalizer: DateTime normalizer used for RECURRENCE-ID values
            uid_normalizer: Series identity used to key the anchors

        Returns:
            Index of cancelled occurrence anchors. Non-cancelled overrides
            are not indexed.
        """
        normalizer = normalizer or DateTimeNormalizer()
        index = cls(uid_normalizer=uid_normalizer or SeriesUidNormalizer())

        for block in blocks:
            props = collect_properties(block.lines)
            recurrence_id = props.get("RECURRENCE-ID")
            uid = (props.get("UID") or "").strip()
            if not recurrence_id or not uid:
                continue
            if not is_cancelled_record(props, block.method):
                continue

            try:
                anchor = truncate_to_second(normalizer.normalize(recurrence_id))
            except IcsDateTimeError as e:
                logger.warning("Ignoring unparseable RECURRENCE-ID for %s: %s", uid, e)
                continue

            index.anchors.add((index.uid_normalizer.series_key(uid), anchor))
            logger.debug("Cancelled override for %s at %s", uid, anchor.isoformat())

        return index

    def __contains__(self, event: object) -> bool:
        if not isinstance(event, CalendarEvent):
            return False
        key = (self.uid_normalizer.series_key(event.uid), truncate_to_second(event.start))
        return key in self.anchors

    def __len__(self) -> int:
        return len(self.anchors)


def suppress_cancelled_occurrences(
    events: Sequence[CalendarEvent], index: RecurrenceOverrideIndex
) -> list[CalendarEvent]:
    """Drop occurrences whose series and start match a cancelled override."""
    if not index:
        return list(events)

    kept = [event for event in events if event not in index]
    suppressed = len(events) - len(kept)
    if suppressed:
        logger.info("RECURRENCE-ID processing: suppressed %d cancelled occurrence(s)", suppressed)
    return kept


def deduplicate_occurrences(
    events: Sequence[CalendarEvent], uid_normalizer: Optional[SeriesUidNormalizer] = None
) -> list[CalendarEvent]:
    """Remove duplicate occurrences of the same series at the same start.

    The key is the series-base UID plus the start instant; the first event
    seen wins.
    """
    uid_normalizer = uid_normalizer or SeriesUidNormalizer()
    seen: set[tuple[str, str]] = set()
    deduplicated: list[CalendarEvent] = []

    for event in events:
        key = (uid_normalizer.series_key(event.uid), event.start.isoformat())
        if key in seen:
            continue
        seen.add(key)
        deduplicated.append(event)

    if len(events) != len(deduplicated):
        logger.debug("Removed %d duplicate events", len(events) - len(deduplicated))
    return deduplicated

"""Event block parsing for ICS calendar processing - icsbusy.

This module turns the raw lines of one VEVENT record into normalized
CalendarEvent occurrences, delegating recurrence expansion and EXDATE/RDATE
reconciliation to their own modules.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from icalendar.parser import Contentline
from pydantic import ValidationError

from icsbusy.calendar.datetime_normalizer import DateTimeNormalizer
from icsbusy.calendar.exception_dates import (
    DEFAULT_EXDATE_TOLERANCE_SECONDS,
    apply_exception_dates,
    create_additional_events,
    parse_exception_dates,
    parse_recurrence_dates,
)
from icsbusy.calendar.ics_exceptions import IcsDateTimeError, IcsParseError, RecurrenceRuleError
from icsbusy.calendar.ics_models import CalendarEvent, EventBlock, EventStatus, EventTransparency
from icsbusy.calendar.rrule_expander import RecurrenceExpander

logger = logging.getLogger(__name__)

DEFAULT_EVENT_DURATION = timedelta(hours=1)

# Properties whose parameters (TZID, VALUE) matter downstream keep their full text
_FULL_TEXT_PROPERTIES = frozenset({"DTSTART", "DTEND", "RECURRENCE-ID"})
_MULTI_VALUED_PROPERTIES = frozenset({"EXDATE", "RDATE"})

_KNOWN_STATUSES = {status.value for status in EventStatus}


@dataclass
class EventProperties:
    """Property map of one event record.

    ``values`` is last-wins; EXDATE and RDATE accumulate in ``multi``.
    """

    values: dict[str, str] = field(default_factory=dict)
    multi: dict[str, list[str]] = field(default_factory=dict)

    def get(self, name: str) -> Optional[str]:
        return self.values.get(name)


@dataclass
class BlockParseOutcome:
    """Occurrences produced by one block plus non-fatal diagnostics."""

    events: list[CalendarEvent] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)


def collect_properties(lines: list[str]) -> EventProperties:
    """Tokenize the lines of a VEVENT block into an EventProperties map.

    Lines inside nested sub-components (VALARM and friends) and lines that
    are not ``KEY[;PARAMS]:VALUE`` content lines are skipped.
    """
    props = EventProperties()
    depth = 0

    for line in lines:
        if ":" not in line:
            # Folded continuation lines land here
            continue
        try:
            name, _params, value = Contentline(line).parts()
        except ValueError:
            logger.debug("Skipping unparseable content line %r", line[:80])
            continue

        name = name.upper()
        if name == "BEGIN":
            depth += 1
            continue
        if name == "END":
            depth -= 1
            continue
        # depth 1 is the VEVENT itself
        if depth > 1:
            continue

        if name in _MULTI_VALUED_PROPERTIES:
            props.multi.setdefault(name, []).append(line)
        elif name in _FULL_TEXT_PROPERTIES:
            props.values[name] = line
        else:
            props.values[name] = value

    return props


def _parse_status(raw: Optional[str]) -> EventStatus:
    status = (raw or "").strip().upper()
    if status in _KNOWN_STATUSES:
        return EventStatus(status)
    return EventStatus.CONFIRMED


def _parse_transparency(props: EventProperties) -> EventTransparency:
    transp = (props.get("TRANSP") or "").strip().upper()
    if transp == EventTransparency.TRANSPARENT.value:
        return EventTransparency.TRANSPARENT
    if transp == EventTransparency.OPAQUE.value:
        return EventTransparency.OPAQUE

    # Outlook marks free time with its busy-status extension only
    busy_status = (props.get("X-MICROSOFT-CDO-BUSYSTATUS") or "").strip().upper()
    if busy_status == "FREE":
        return EventTransparency.TRANSPARENT
    return EventTransparency.OPAQUE


def is_cancelled_record(props: EventProperties, calendar_method: Optional[str] = None) -> bool:
    """Return True for STATUS:CANCELLED or a METHOD:CANCEL in or around the record."""
    if _parse_status(props.get("STATUS")) == EventStatus.CANCELLED:
        return True
    method = (props.get("METHOD") or calendar_method or "").strip().upper()
    return method == "CANCEL"


class EventBlockParser:
    """Parser for VEVENT blocks into CalendarEvent occurrences."""

    def __init__(
        self,
        normalizer: Optional[DateTimeNormalizer] = None,
        expander: Optional[RecurrenceExpander] = None,
        settings: Any = None,
    ):
        """Initialize event block parser.

        Args:
            normalizer: DateTime normalizer for DTSTART/DTEND/EXDATE/RDATE values
            expander: Recurrence expander for RRULE records
            settings: Optional settings (``Config``) supplying the EXDATE tolerance
        """
        self.normalizer = normalizer or DateTimeNormalizer()
        self.expander = expander or RecurrenceExpander(settings)
        self.exdate_tolerance = getattr(
            settings, "exdate_tolerance_seconds", DEFAULT_EXDATE_TOLERANCE_SECONDS
        )

    def parse_block(
        self,
        block: EventBlock,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
    ) -> BlockParseOutcome:
        """Parse one VEVENT block into its occurrences.

        Args:
            block: Lines of the record and the enclosing calendar METHOD
            range_start: Optional lower window bound for recurrence expansion
            range_end: Optional upper window bound for recurrence expansion

        Returns:
            BlockParseOutcome; empty when UID or DTSTART is missing or the
            record is cancelled

        Raises:
            IcsParseError: If a datetime value cannot be parsed or the event
                would end before it starts
        """
        props = collect_properties(block.lines)
        uid = (props.get("UID") or "").strip()
        dtstart = props.get("DTSTART")

        if not uid or not dtstart:
            logger.debug("Skipping record without UID or DTSTART")
            return BlockParseOutcome()

        if is_cancelled_record(props, block.method):
            logger.debug("Skipping cancelled record %s", uid)
            return BlockParseOutcome()

        base = self._build_base_event(uid, props)

        rrule = props.get("RRULE")
        if not rrule:
            return BlockParseOutcome(events=[base])

        return self._expand_recurring(base, rrule, props, range_start, range_end)

    def _build_base_event(self, uid: str, props: EventProperties) -> CalendarEvent:
        dtstart = props.get("DTSTART")
        dtend = props.get("DTEND")
        try:
            start = self.normalizer.normalize(dtstart)
            end = self.normalizer.normalize(dtend) if dtend else start + DEFAULT_EVENT_DURATION
            return CalendarEvent(
                uid=uid,
                summary=props.get("SUMMARY") or "Busy",
                start=start,
                end=end,
                status=_parse_status(props.get("STATUS")),
                transparency=_parse_transparency(props),
                raw_start=dtstart,
                raw_end=dtend,
                recurrence_id=props.get("RECURRENCE-ID"),
            )
        except (IcsDateTimeError, ValidationError, OverflowError) as e:
            raise IcsParseError(f"Failed to parse event {uid}: {e}") from e

    def _expand_recurring(
        self,
        base: CalendarEvent,
        rrule: str,
        props: EventProperties,
        range_start: Optional[datetime],
        range_end: Optional[datetime],
    ) -> BlockParseOutcome:
        outcome = BlockParseOutcome()
        anchor = self.normalizer.anchor_zone(base.raw_start or "")

        try:
            occurrences = self.expander.expand(base, rrule, range_start, range_end, anchor=anchor)
        except RecurrenceRuleError as e:
            logger.warning("Invalid recurrence rule for %s: %s", base.uid, e)
            outcome.diagnostics.append(f"Invalid recurrence rule for {base.uid}: {e}")
            in_window = (range_start is None or base.start >= range_start) and (
                range_end is None or base.start < range_end
            )
            occurrences = [base] if in_window else []

        exdates = props.multi.get("EXDATE")
        if exdates:
            occurrences = apply_exception_dates(
                occurrences,
                parse_exception_dates(exdates, self.normalizer),
                self.exdate_tolerance,
            )

        rdates = props.multi.get("RDATE")
        if rdates:
            occurrences.extend(
                create_additional_events(
                    base,
                    parse_recurrence_dates(rdates, self.normalizer),
                    range_start,
                    range_end,
                )
            )
            occurrences.sort(key=lambda event: event.start)

        logger.debug("Record %s produced %d occurrence(s)", base.uid, len(occurrences))
        outcome.events = occurrences
        return outcome

"""RRULE expansion for icsbusy ICS parser."""

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo
from typing import Any, Optional

from dateutil.rrule import rrulestr

from icsbusy.calendar.datetime_normalizer import from_anchor_frame, to_anchor_frame
from icsbusy.calendar.exception_dates import clone_occurrence
from icsbusy.calendar.ics_exceptions import RecurrenceRuleError
from icsbusy.calendar.ics_models import CalendarEvent

logger = logging.getLogger(__name__)

_UNTIL_RE = re.compile(r"(?i)(UNTIL=)(\d{8}(?:T\d{4,6})?Z?)")
# dateutil never advances a zero interval and walks backwards on a negative one
_NON_POSITIVE_INTERVAL_RE = re.compile(r"(?i)(?:^|;)INTERVAL=(?:-\d*|\+?0+)(?:;|$)")

# Largest representable instant, used when the horizon would overflow
_MAX_INSTANT = datetime.max.replace(tzinfo=UTC)


@dataclass
class RRuleExpanderConfig:
    """Configuration for RRULE expansion.

    Consolidates all RRULE-related settings with explicit defaults.
    """

    max_occurrences_per_rule: int = 1000
    expansion_days_window: int = 365

    @classmethod
    def from_settings(cls, settings: Any) -> "RRuleExpanderConfig":
        """Extract RRULE configuration from a settings object.

        Args:
            settings: Configuration object (e.g. ``Config``) or None

        Returns:
            RRuleExpanderConfig with values from settings or defaults
        """
        return cls(
            max_occurrences_per_rule=getattr(settings, "max_occurrences_per_rule", 1000),
            expansion_days_window=getattr(settings, "recurrence_horizon_days", 365),
        )


def _until_in_anchor_frame(value: str, anchor: Optional[tzinfo]) -> datetime:
    """Interpret an UNTIL value in the frame the rule is evaluated in."""
    is_utc = value.upper().endswith("Z")
    digits = value.rstrip("Zz").replace("T", "")
    year, month, day = int(digits[0:4]), int(digits[4:6]), int(digits[6:8])

    if len(digits) == 8:
        # A date-only UNTIL includes the whole day
        wall = datetime(year, month, day, 23, 59, 59)
    else:
        hour, minute = int(digits[8:10]), int(digits[10:12])
        second = int(digits[12:14]) if len(digits) == 14 else 0
        wall = datetime(year, month, day, hour, minute, second)

    if is_utc:
        return to_anchor_frame(wall.replace(tzinfo=UTC), anchor)
    if anchor is None:
        return wall
    return wall.replace(tzinfo=anchor)


def normalize_until(rule: str, anchor: Optional[tzinfo]) -> str:
    """Rewrite UNTIL so its awareness agrees with the rule's DTSTART.

    dateutil rejects a naive UNTIL against an aware DTSTART and vice versa.
    Aware anchors get a UTC ``...Z`` value, naive anchors a local wall clock.
    """

    def _rewrite(match: "re.Match[str]") -> str:
        try:
            until = _until_in_anchor_frame(match.group(2), anchor)
        except ValueError as e:
            raise RecurrenceRuleError(f"invalid UNTIL {match.group(2)!r}: {e}") from e
        if anchor is None:
            return f"{match.group(1)}{until.strftime('%Y%m%dT%H%M%S')}"
        return f"{match.group(1)}{until.astimezone(UTC).strftime('%Y%m%dT%H%M%SZ')}"

    return _UNTIL_RE.sub(_rewrite, rule)


class RecurrenceExpander:
    """Expands a base event and its RRULE into concrete occurrences."""

    def __init__(self, settings: Any = None) -> None:
        """Initialize expander with configuration settings.

        Args:
            settings: Configuration object with expansion settings, or None for defaults
        """
        config = RRuleExpanderConfig.from_settings(settings)
        self.max_occurrences = config.max_occurrences_per_rule
        self.expansion_days = config.expansion_days_window

    def expand(
        self,
        base: CalendarEvent,
        rule: str,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
        anchor: Optional[tzinfo] = UTC,
    ) -> list[CalendarEvent]:
        """Expand ``rule`` anchored at ``base.start`` into occurrences.

        Args:
            base: Base event; its start is the first instance of the series
            rule: RRULE value, with or without the ``RRULE:`` prefix
            range_start: Optional lower window bound (UTC)
            range_end: Optional upper window bound (UTC); defaults to the
                base start plus the configured horizon
            anchor: Zone the rule is evaluated in; None means naive local time

        Returns:
            Occurrences in the window, sorted by start, each with uid
            ``<uid>_<YYYY-MM-DD>``

        Raises:
            RecurrenceRuleError: If the rule cannot be parsed or fails while
                occurrences are generated
        """
        lo = max(range_start, base.start) if range_start is not None else base.start
        if range_end is not None:
            hi = range_end
        else:
            try:
                hi = base.start + timedelta(days=self.expansion_days)
            except OverflowError:
                hi = _MAX_INSTANT

        rule_text = rule.strip()
        if rule_text.upper().startswith("RRULE:"):
            rule_text = rule_text[len("RRULE:") :]

        if _NON_POSITIVE_INTERVAL_RE.search(rule_text):
            raise RecurrenceRuleError("INTERVAL must be a positive integer")

        try:
            dtstart = to_anchor_frame(base.start, anchor)
            parsed_rule = rrulestr(normalize_until(rule_text, anchor), dtstart=dtstart)
        except (ValueError, TypeError, OverflowError) as e:
            raise RecurrenceRuleError(str(e)) from e

        occurrences: list[CalendarEvent] = []
        seen: set[datetime] = set()

        # DTSTART is always the first instance, whether or not the rule matches it
        if lo <= base.start < hi:
            occurrences.append(clone_occurrence(base, base.start))
            seen.add(base.start)

        if lo >= hi:
            return occurrences

        capped = False
        try:
            for occurrence in parsed_rule.xafter(to_anchor_frame(lo, anchor), inc=True):
                start = from_anchor_frame(occurrence)
                if start >= hi:
                    break
                if start in seen:
                    continue
                if len(occurrences) >= self.max_occurrences:
                    capped = True
                    break
                seen.add(start)
                occurrences.append(clone_occurrence(base, start))
        except (ValueError, OverflowError) as e:
            raise RecurrenceRuleError(str(e)) from e

        if capped:
            logger.warning(
                "RRULE expansion for %s limited to %d occurrences",
                base.uid,
                self.max_occurrences,
            )

        occurrences.sort(key=lambda event: event.start)
        logger.debug("Expanded %s into %d occurrence(s)", base.uid, len(occurrences))
        return occurrences

"""DateTime normalization for ICS property values - icsbusy.

Converts one DTSTART/DTEND/EXDATE style token into an absolute UTC instant.
Three shapes are handled:

- UTC-suffixed values (``20240115T170000Z``) are built directly in UTC.
- Zone-qualified values (``DTSTART;TZID=Pacific Standard Time:20240115T090000``)
  are resolved through the legacy timezone table and converted with a
  format-then-diff pass over the target zone.
- Floating values (no suffix, no zone) are host-local wall-clock time.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import Optional

from icsbusy.calendar.ics_exceptions import IcsDateTimeError
from icsbusy.core.timezone_utils import DEFAULT_BUSINESS_TIMEZONE, TimezoneResolver, load_zone

logger = logging.getLogger(__name__)

_TZID_RE = re.compile(r"TZID=(\"[^\"]*\"|[^;:]+)")
_DIGITS_RE = re.compile(r"^\d+$")

# Two refinement passes settle the offset at DST transitions
_MAX_REFINEMENT_PASSES = 2


@dataclass(frozen=True)
class IcsDateTimeToken:
    """A property value split into its parameters and its datetime part."""

    value: str
    tzid: Optional[str] = None

    @property
    def is_utc(self) -> bool:
        return self.value.endswith("Z")

    @property
    def is_date_only(self) -> bool:
        return len(self.value.rstrip("Z").replace("T", "")) == 8


def split_property(text: str) -> tuple[str, str]:
    """Split ``NAME;PARAMS:VALUE`` into its parameter part and its value.

    The separator is the first colon that is not inside a quoted parameter.
    Text without a colon is treated as a bare value.
    """
    in_quotes = False
    for index, char in enumerate(text):
        if char == '"':
            in_quotes = not in_quotes
        elif char == ":" and not in_quotes:
            return text[:index], text[index + 1 :]
    return "", text


def tokenize(text: str) -> IcsDateTimeToken:
    """Extract the TZID parameter and the datetime value from property text."""
    params, value = split_property(text.strip())
    tzid = None
    match = _TZID_RE.search(params)
    if match:
        tzid = match.group(1).strip().strip('"') or None
    return IcsDateTimeToken(value=value.strip(), tzid=tzid)


def _wall_clock_fields(value: str) -> tuple[int, int, int, int, int, int]:
    """Parse ``YYYYMMDD[THHMM[SS]]`` into numeric fields."""
    clean = value.rstrip("Z").replace("T", "", 1)
    if not _DIGITS_RE.match(clean) or len(clean) not in (8, 12, 14):
        raise IcsDateTimeError(f"Unsupported date format: {value!r}")

    year, month, day = int(clean[0:4]), int(clean[4:6]), int(clean[6:8])
    hour = int(clean[8:10]) if len(clean) >= 12 else 0
    minute = int(clean[10:12]) if len(clean) >= 12 else 0
    second = int(clean[12:14]) if len(clean) == 14 else 0
    return year, month, day, hour, minute, second


class DateTimeNormalizer:
    """Normalizes ICS datetime tokens to aware UTC datetimes."""

    def __init__(self, resolver: Optional[TimezoneResolver] = None) -> None:
        """Initialize the normalizer.

        Args:
            resolver: Timezone resolver; defaults to one that falls back to
                America/New_York for unknown zone names
        """
        self.resolver = resolver or TimezoneResolver(DEFAULT_BUSINESS_TIMEZONE)

    def normalize(self, text: str) -> datetime:
        """Convert property text (with or without its name and params) to UTC.

        Args:
            text: e.g. ``"DTSTART;TZID=Eastern Standard Time:20240115T090000"``,
                ``"20240115T140000Z"`` or ``"TZID=UTC:20240115T140000"``

        Returns:
            Timezone-aware datetime in UTC

        Raises:
            IcsDateTimeError: If the value is not a recognised date or date-time
        """
        token = tokenize(text)
        if not token.value:
            raise IcsDateTimeError(f"Empty datetime value in {text!r}")

        try:
            fields = _wall_clock_fields(token.value)
            if token.is_date_only:
                return self._all_day(fields, token.is_utc)
            if token.is_utc:
                return datetime(*fields, tzinfo=UTC)
            if token.tzid:
                return self.zoned_to_utc(fields, token.tzid)
            return self._floating_to_utc(fields)
        except IcsDateTimeError:
            raise
        except (ValueError, OverflowError) as e:
            raise IcsDateTimeError(f"Invalid datetime {token.value!r}: {e}") from e

    def anchor_zone(self, text: str) -> Optional[tzinfo]:
        """Return the zone a recurrence should be anchored in for this value.

        UTC values anchor in UTC, zone-qualified values in their resolved
        zone (when timezone data is available) and floating values return
        None, meaning naive local time.
        """
        token = tokenize(text)
        if token.is_utc:
            return UTC
        if token.tzid:
            return load_zone(self.resolver.resolve(token.tzid)) or UTC
        return None

    def zoned_to_utc(self, fields: tuple[int, int, int, int, int, int], tz_name: str) -> datetime:
        """Convert wall-clock fields in ``tz_name`` to UTC using format-then-diff.

        A trial instant is taken as if the wall clock were UTC, rendered in the
        target zone, and shifted by the difference between the desired and the
        rendered wall clock.
        """
        iana_tz = self.resolver.resolve(tz_name)
        wanted = datetime(*fields)
        zone = load_zone(iana_tz)

        if zone is None:
            return self._fallback_to_utc(wanted, iana_tz)

        candidate = wanted.replace(tzinfo=UTC)
        for _ in range(_MAX_REFINEMENT_PASSES):
            rendered = candidate.astimezone(zone).replace(tzinfo=None)
            delta = wanted - rendered
            if not delta:
                break
            candidate += delta

        logger.debug("Converted %s %s to %s", wanted.isoformat(), iana_tz, candidate.isoformat())
        return candidate

    def _fallback_to_utc(self, wanted: datetime, iana_tz: str) -> datetime:
        offset = self.resolver.fallback_offset(iana_tz, wanted.month)
        if offset is None:
            logger.warning("No timezone data or fallback offset for %s, assuming UTC", iana_tz)
            return wanted.replace(tzinfo=UTC)
        logger.debug("Using fallback offset %s for %s", offset, iana_tz)
        return (wanted - offset).replace(tzinfo=UTC)

    def _floating_to_utc(self, fields: tuple[int, int, int, int, int, int]) -> datetime:
        # A naive datetime's astimezone() interprets it as host-local time
        return datetime(*fields).astimezone(UTC)

    def _all_day(self, fields: tuple[int, int, int, int, int, int], is_utc: bool) -> datetime:
        year, month, day = fields[:3]
        if is_utc:
            return datetime(year, month, day, tzinfo=UTC)
        return datetime(year, month, day).astimezone(UTC)


def to_anchor_frame(instant: datetime, anchor: Optional[tzinfo]) -> datetime:
    """Express a UTC instant in an anchor frame (naive local when ``anchor`` is None)."""
    if anchor is None:
        return instant.astimezone().replace(tzinfo=None)
    return instant.astimezone(anchor)


def from_anchor_frame(value: datetime) -> datetime:
    """Convert an occurrence produced in an anchor frame back to UTC."""
    return value.astimezone(UTC)


def truncate_to_second(instant: datetime) -> datetime:
    return instant.replace(microsecond=0)

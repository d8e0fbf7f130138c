"""Data models for ICS feed parsing and busy-time projection."""

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator


class EventStatus(str, Enum):
    """STATUS values carried by a calendar event."""

    CONFIRMED = "CONFIRMED"
    TENTATIVE = "TENTATIVE"
    CANCELLED = "CANCELLED"


class EventTransparency(str, Enum):
    """TRANSP values: whether an event blocks time on a free/busy view."""

    OPAQUE = "OPAQUE"
    TRANSPARENT = "TRANSPARENT"


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt.astimezone(UTC)


class CalendarEvent(BaseModel):
    """A single normalized event occurrence with UTC start and end."""

    uid: str = Field(..., description="Event UID, with a date suffix for generated instances")
    summary: str = Field(default="Busy", description="Event title")
    start: datetime = Field(..., description="Start instant (UTC)")
    end: datetime = Field(..., description="End instant (UTC)")
    status: EventStatus = Field(default=EventStatus.CONFIRMED, description="Event status")
    transparency: EventTransparency = Field(
        default=EventTransparency.OPAQUE, description="Free/busy transparency"
    )

    # Original property text, kept for debugging timezone issues
    raw_start: Optional[str] = Field(default=None, description="Original DTSTART line")
    raw_end: Optional[str] = Field(default=None, description="Original DTEND line")
    recurrence_id: Optional[str] = Field(
        default=None, description="Original RECURRENCE-ID line for override instances"
    )

    model_config = ConfigDict(use_enum_values=True, frozen=True)

    @field_validator("start", "end")
    @classmethod
    def _normalize_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _check_ordering(self) -> "CalendarEvent":
        if self.end < self.start:
            raise ValueError(f"event {self.uid} ends before it starts")
        return self

    @property
    def duration(self) -> timedelta:
        """Length of the event as a timedelta."""
        return self.end - self.start

    @property
    def is_cancelled(self) -> bool:
        return self.status == EventStatus.CANCELLED

    @property
    def is_opaque(self) -> bool:
        return self.transparency == EventTransparency.OPAQUE

    @field_serializer("start", "end")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetimes as ISO 8601 with a Z suffix."""
        return dt.isoformat().replace("+00:00", "Z")


class ParsedIcsData(BaseModel):
    """Result of parsing one feed: events plus advisory error strings."""

    events: list[CalendarEvent] = Field(default_factory=list, description="Parsed events")
    errors: list[str] = Field(default_factory=list, description="Per-record diagnostics")


class BusyInterval(BaseModel):
    """A busy time range handed to the scheduling engine."""

    start: datetime
    end: datetime

    model_config = ConfigDict(frozen=True)

    @field_serializer("start", "end")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetimes as ISO 8601 with a Z suffix."""
        return dt.astimezone(UTC).isoformat().replace("+00:00", "Z")


class FeedUrlValidation(BaseModel):
    """Outcome of advisory feed URL validation."""

    is_valid: bool
    error: Optional[str] = None


class EventBlock(BaseModel):
    """Raw lines of one VEVENT record plus its enclosing calendar METHOD."""

    lines: list[str] = Field(default_factory=list)
    method: Optional[str] = Field(default=None, description="Enclosing VCALENDAR METHOD value")

    model_config = ConfigDict(frozen=True)

"""Exception hierarchy for ICS feed parsing.

Each exception is scoped to a single event record. The orchestrator catches
them per block, records a message in ``ParsedIcsData.errors`` and carries on
with the remaining records.
"""


class IcsParseError(Exception):
    """Base exception for all record-level parsing errors."""


class IcsDateTimeError(IcsParseError, ValueError):
    """A DTSTART/DTEND style value could not be parsed.

    Raised when:
    - The value is neither an 8-digit date nor a date-time of at least 12 digits
    - Date or time fields are out of range (e.g. month 13)
    """


class RecurrenceRuleError(IcsParseError):
    """An RRULE value could not be evaluated.

    This is non-fatal for the record: the parser falls back to the base
    occurrence and reports the rule as a diagnostic.
    """

"""Shared fixtures for icsbusy tests: feed builders and host timezone pinning."""

import time
from collections.abc import Callable, Generator
from typing import Any, Optional

import pytest


def build_event(
    uid: Optional[str] = "event-1",
    dtstart: Optional[str] = "DTSTART:20240115T170000Z",
    dtend: Optional[str] = "DTEND:20240115T180000Z",
    summary: Optional[str] = "Team sync",
    extra: Optional[list[str]] = None,
) -> str:
    """Build one VEVENT block; pass None to omit a property."""
    lines = ["BEGIN:VEVENT"]
    if uid is not None:
        lines.append(f"UID:{uid}")
    if summary is not None:
        lines.append(f"SUMMARY:{summary}")
    if dtstart is not None:
        lines.append(dtstart)
    if dtend is not None:
        lines.append(dtend)
    lines.extend(extra or [])
    lines.append("END:VEVENT")
    return "\r\n".join(lines)


def build_feed(*events: str, method: Optional[str] = None) -> str:
    """Wrap VEVENT blocks in a VCALENDAR envelope."""
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//icsbusy//tests//EN"]
    if method:
        lines.append(f"METHOD:{method}")
    lines.extend(events)
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture
def make_event() -> Callable[..., str]:
    """Return the VEVENT builder."""
    return build_event


@pytest.fixture
def make_feed() -> Callable[..., str]:
    """Return the VCALENDAR builder."""
    return build_feed


@pytest.fixture
def host_timezone(monkeypatch: pytest.MonkeyPatch) -> Generator[Callable[[str], None], None, None]:
    """Pin the host-local timezone used for floating datetimes.

    Usage: ``host_timezone("EST5EDT,M3.2.0,M11.1.0")``. POSIX rule strings
    work without system zone files. The original zone is restored after
    the test.
    """

    def _pin(tz_name: str) -> None:
        monkeypatch.setenv("TZ", tz_name)
        time.tzset()

    yield _pin
    monkeypatch.undo()
    time.tzset()


@pytest.fixture(autouse=True)
def _clear_icsbusy_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ICSBUSY_* variables from the developer shell out of tests."""
    for name in (
        "ICSBUSY_DEBUG",
        "ICSBUSY_LOG_LEVEL",
        "ICSBUSY_DEFAULT_TIMEZONE",
        "ICSBUSY_MAX_OCCURRENCES",
    ):
        monkeypatch.delenv(name, raising=False)


def pytest_configure(config: Any) -> None:
    """Register icsbusy test markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: End-to-end parsing tests")

"""Advisory validation of calendar feed URLs.

The parser never fetches feeds; callers use this to reject obviously wrong
URLs before handing a feed to their own fetcher.
"""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from icsbusy.calendar.ics_models import FeedUrlValidation

logger = logging.getLogger(__name__)

CALENDAR_URL_MARKERS = (".ics", "/ical/", "webcal", "calendar")


def validate_feed_url(url: str) -> FeedUrlValidation:
    """Check that ``url`` looks like an HTTP(S) calendar feed.

    Args:
        url: Candidate feed URL

    Returns:
        FeedUrlValidation with ``is_valid`` and, when invalid, an error message
    """
    if not isinstance(url, str) or not url.strip():
        return FeedUrlValidation(is_valid=False, error="Invalid URL format")

    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
    except ValueError as e:
        logger.debug("URL validation error for %r: %s", url, e)
        return FeedUrlValidation(is_valid=False, error="Invalid URL format")

    if parsed.scheme.lower() not in ("http", "https"):
        logger.debug("Blocked non-HTTP(S) URL: %s", url)
        return FeedUrlValidation(is_valid=False, error="URL must use HTTP or HTTPS")

    if not hostname:
        logger.debug("Blocked URL with missing hostname: %s", url)
        return FeedUrlValidation(is_valid=False, error="Invalid URL format")

    lowered = url.lower()
    if not any(marker in lowered for marker in CALENDAR_URL_MARKERS):
        return FeedUrlValidation(is_valid=False, error="URL does not appear to be a calendar feed")

    logger.debug("URL validation passed: %s", url)
    return FeedUrlValidation(is_valid=True)

"""Timezone name resolution and offset fallbacks for icsbusy."""

from __future__ import annotations

import datetime
import logging
import os
import re
import zoneinfo
from functools import lru_cache
from typing import ClassVar

logger = logging.getLogger(__name__)

# Zone used when a TZID cannot be resolved (most Outlook feeds are Eastern)
DEFAULT_BUSINESS_TIMEZONE = "America/New_York"

_MOZILLA_PREFIX_RE = re.compile(r"^/(?:[^/]+/)*?(?P<zone>[A-Za-z_]+/[A-Za-z_+\-]+(?:/[A-Za-z_+\-]+)?)$")


class TimezoneResolver:
    """Resolves vendor and legacy timezone names to IANA identifiers."""

    # Windows/Outlook timezone names to IANA identifiers (CLDR windowsZones.xml)
    LEGACY_TZ_MAP: ClassVar[dict[str, str]] = {
        # UTC and fixed-offset zones
        "UTC": "Etc/UTC",
        "Coordinated Universal Time": "Etc/UTC",
        "UTC-11": "Etc/GMT+11",
        "UTC-09": "Etc/GMT+9",
        "UTC-08": "Etc/GMT+8",
        "UTC-02": "Etc/GMT+2",
        "UTC+12": "Etc/GMT-12",
        "UTC+13": "Etc/GMT-13",
        "Dateline Standard Time": "Etc/GMT+12",
        "Mid-Atlantic Standard Time": "Etc/GMT+2",
        # North America
        "Hawaiian Standard Time": "Pacific/Honolulu",
        "Aleutian Standard Time": "America/Adak",
        "Alaskan Standard Time": "America/Anchorage",
        "Alaskan Daylight Time": "America/Anchorage",
        "Pacific Standard Time": "America/Los_Angeles",
        "Pacific Daylight Time": "America/Los_Angeles",
        "Pacific Standard Time (Mexico)": "America/Tijuana",
        "US Mountain Standard Time": "America/Phoenix",
        "Mountain Standard Time": "America/Denver",
        "Mountain Daylight Time": "America/Denver",
        "Mountain Standard Time (Mexico)": "America/Mazatlan",
        "Yukon Standard Time": "America/Whitehorse",
        "Central America Standard Time": "America/Guatemala",
        "Central Standard Time": "America/Chicago",
        "Central Daylight Time": "America/Chicago",
        "Central Standard Time (Mexico)": "America/Mexico_City",
        "Canada Central Standard Time": "America/Regina",
        "Saskatchewan Standard Time": "America/Regina",
        "Eastern Standard Time": "America/New_York",
        "Eastern Daylight Time": "America/New_York",
        "Eastern Standard Time (Mexico)": "America/Cancun",
        "US Eastern Standard Time": "America/Indiana/Indianapolis",
        "Atlantic Standard Time": "America/Halifax",
        "Atlantic Daylight Time": "America/Halifax",
        "Newfoundland Standard Time": "America/St_Johns",
        "Newfoundland Daylight Time": "America/St_Johns",
        "Cuba Standard Time": "America/Havana",
        "Haiti Standard Time": "America/Port-au-Prince",
        "Turks And Caicos Standard Time": "America/Grand_Turk",
        "Greenland Standard Time": "America/Nuuk",
        "Saint Pierre Standard Time": "America/Miquelon",
        # South America
        "SA Pacific Standard Time": "America/Bogota",
        "Venezuela Standard Time": "America/Caracas",
        "Paraguay Standard Time": "America/Asuncion",
        "Central Brazilian Standard Time": "America/Cuiaba",
        "SA Western Standard Time": "America/La_Paz",
        "Pacific SA Standard Time": "America/Santiago",
        "Tocantins Standard Time": "America/Araguaina",
        "SA Eastern Standard Time": "America/Cayenne",
        "Argentina Standard Time": "America/Argentina/Buenos_Aires",
        "Montevideo Standard Time": "America/Montevideo",
        "Bahia Standard Time": "America/Bahia",
        "E. South America Standard Time": "America/Sao_Paulo",
        "Magallanes Standard Time": "America/Punta_Arenas",
        "Easter Island Standard Time": "Pacific/Easter",
        # Atlantic
        "Azores Standard Time": "Atlantic/Azores",
        "Cape Verde Standard Time": "Atlantic/Cape_Verde",
        # Europe
        "GMT Standard Time": "Europe/London",
        "GMT Daylight Time": "Europe/London",
        "British Summer Time": "Europe/London",
        "Western European Summer Time": "Europe/London",
        "Greenwich Standard Time": "Atlantic/Reykjavik",
        "W. Europe Standard Time": "Europe/Berlin",
        "W. Europe Daylight Time": "Europe/Berlin",
        "Central European Summer Time": "Europe/Berlin",
        "Central Europe Standard Time": "Europe/Budapest",
        "Romance Standard Time": "Europe/Paris",
        "Romance Daylight Time": "Europe/Paris",
        "Central European Standard Time": "Europe/Warsaw",
        "GTB Standard Time": "Europe/Bucharest",
        "E. Europe Standard Time": "Europe/Chisinau",
        "Eastern European Summer Time": "Europe/Athens",
        "FLE Standard Time": "Europe/Kyiv",
        "Kaliningrad Standard Time": "Europe/Kaliningrad",
        "Turkey Standard Time": "Europe/Istanbul",
        "Belarus Standard Time": "Europe/Minsk",
        "Russian Standard Time": "Europe/Moscow",
        "Volgograd Standard Time": "Europe/Volgograd",
        "Astrakhan Standard Time": "Europe/Astrakhan",
        "Saratov Standard Time": "Europe/Saratov",
        "Russia Time Zone 3": "Europe/Samara",
        # Africa
        "Morocco Standard Time": "Africa/Casablanca",
        "W. Central Africa Standard Time": "Africa/Lagos",
        "Sao Tome Standard Time": "Africa/Sao_Tome",
        "Egypt Standard Time": "Africa/Cairo",
        "South Africa Standard Time": "Africa/Johannesburg",
        "Libya Standard Time": "Africa/Tripoli",
        "Namibia Standard Time": "Africa/Windhoek",
        "Sudan Standard Time": "Africa/Khartoum",
        "South Sudan Standard Time": "Africa/Juba",
        "E. Africa Standard Time": "Africa/Nairobi",
        "Mauritius Standard Time": "Indian/Mauritius",
        # Middle East and Asia
        "Middle East Standard Time": "Asia/Beirut",
        "Syria Standard Time": "Asia/Damascus",
        "West Bank Standard Time": "Asia/Hebron",
        "Israel Standard Time": "Asia/Jerusalem",
        "Jerusalem Standard Time": "Asia/Jerusalem",
        "Jordan Standard Time": "Asia/Amman",
        "Arabic Standard Time": "Asia/Baghdad",
        "Arab Standard Time": "Asia/Riyadh",
        "Iran Standard Time": "Asia/Tehran",
        "Arabian Standard Time": "Asia/Dubai",
        "Azerbaijan Standard Time": "Asia/Baku",
        "Georgian Standard Time": "Asia/Tbilisi",
        "Caucasus Standard Time": "Asia/Yerevan",
        "Afghanistan Standard Time": "Asia/Kabul",
        "West Asia Standard Time": "Asia/Tashkent",
        "Qyzylorda Standard Time": "Asia/Qyzylorda",
        "Ekaterinburg Standard Time": "Asia/Yekaterinburg",
        "Pakistan Standard Time": "Asia/Karachi",
        "India Standard Time": "Asia/Kolkata",
        "Sri Lanka Standard Time": "Asia/Colombo",
        "Nepal Standard Time": "Asia/Kathmandu",
        "Central Asia Standard Time": "Asia/Almaty",
        "Bangladesh Standard Time": "Asia/Dhaka",
        "Omsk Standard Time": "Asia/Omsk",
        "Myanmar Standard Time": "Asia/Yangon",
        "SE Asia Standard Time": "Asia/Bangkok",
        "Altai Standard Time": "Asia/Barnaul",
        "W. Mongolia Standard Time": "Asia/Hovd",
        "North Asia Standard Time": "Asia/Krasnoyarsk",
        "N. Central Asia Standard Time": "Asia/Novosibirsk",
        "Tomsk Standard Time": "Asia/Tomsk",
        "China Standard Time": "Asia/Shanghai",
        "North Asia East Standard Time": "Asia/Irkutsk",
        "Singapore Standard Time": "Asia/Singapore",
        "Malay Peninsula Standard Time": "Asia/Kuala_Lumpur",
        "Taipei Standard Time": "Asia/Taipei",
        "Ulaanbaatar Standard Time": "Asia/Ulaanbaatar",
        "Transbaikal Standard Time": "Asia/Chita",
        "Tokyo Standard Time": "Asia/Tokyo",
        "Japan Standard Time": "Asia/Tokyo",
        "North Korea Standard Time": "Asia/Pyongyang",
        "Korea Standard Time": "Asia/Seoul",
        "Yakutsk Standard Time": "Asia/Yakutsk",
        "Vladivostok Standard Time": "Asia/Vladivostok",
        "Magadan Standard Time": "Asia/Magadan",
        "Sakhalin Standard Time": "Asia/Sakhalin",
        "Russia Time Zone 10": "Asia/Srednekolymsk",
        "Russia Time Zone 11": "Asia/Kamchatka",
        # Australia and Pacific
        "W. Australia Standard Time": "Australia/Perth",
        "Aus Central W. Standard Time": "Australia/Eucla",
        "Cen. Australia Standard Time": "Australia/Adelaide",
        "AUS Central Standard Time": "Australia/Darwin",
        "E. Australia Standard Time": "Australia/Brisbane",
        "AUS Eastern Standard Time": "Australia/Sydney",
        "AUS Eastern Daylight Time": "Australia/Sydney",
        "Australian Eastern Standard Time": "Australia/Sydney",
        "Tasmania Standard Time": "Australia/Hobart",
        "Lord Howe Standard Time": "Australia/Lord_Howe",
        "West Pacific Standard Time": "Pacific/Port_Moresby",
        "Bougainville Standard Time": "Pacific/Bougainville",
        "Norfolk Standard Time": "Pacific/Norfolk",
        "Central Pacific Standard Time": "Pacific/Guadalcanal",
        "New Zealand Standard Time": "Pacific/Auckland",
        "New Zealand Daylight Time": "Pacific/Auckland",
        "Fiji Standard Time": "Pacific/Fiji",
        "Chatham Islands Standard Time": "Pacific/Chatham",
        "Tonga Standard Time": "Pacific/Tongatapu",
        "Samoa Standard Time": "Pacific/Apia",
        "Line Islands Standard Time": "Pacific/Kiritimati",
        "Marquesas Standard Time": "Pacific/Marquesas",
    }

    # Obsolete or deprecated IANA names found in older feeds
    TZ_ALIAS_MAP: ClassVar[dict[str, str]] = {
        "US/Pacific": "America/Los_Angeles",
        "US/Mountain": "America/Denver",
        "US/Central": "America/Chicago",
        "US/Eastern": "America/New_York",
        "US/Alaska": "America/Anchorage",
        "US/Hawaii": "Pacific/Honolulu",
        "US/Arizona": "America/Phoenix",
        "GMT": "Etc/UTC",
        "Etc/GMT": "Etc/UTC",
        "Etc/Universal": "Etc/UTC",
        "Universal": "Etc/UTC",
        "Zulu": "Etc/UTC",
        "Z": "Etc/UTC",
        "PST8PDT": "America/Los_Angeles",
        "MST7MDT": "America/Denver",
        "CST6CDT": "America/Chicago",
        "EST5EDT": "America/New_York",
        "Asia/Rangoon": "Asia/Yangon",
        "Asia/Calcutta": "Asia/Kolkata",
        "America/Godthab": "America/Nuuk",
        "America/Buenos_Aires": "America/Argentina/Buenos_Aires",
        "Europe/Kiev": "Europe/Kyiv",
    }

    # Standard offsets (hours) used when no timezone database is available
    FALLBACK_OFFSETS: ClassVar[dict[str, int]] = {
        "America/New_York": -5,
        "America/Chicago": -6,
        "America/Denver": -7,
        "America/Phoenix": -7,
        "America/Los_Angeles": -8,
        "Europe/London": 0,
        "Europe/Berlin": 1,
        "Europe/Paris": 1,
        "Asia/Tokyo": 9,
        "Etc/UTC": 0,
    }

    def __init__(self, default_timezone: str = DEFAULT_BUSINESS_TIMEZONE) -> None:
        self.default_timezone = default_timezone

    def lookup(self, tz_name: str) -> str | None:
        """Map a TZID value to an IANA identifier without validating it.

        Returns None when the name is not recognised.
        """
        name = tz_name.strip().strip('"')
        if not name:
            return None

        if name in self.LEGACY_TZ_MAP:
            return self.LEGACY_TZ_MAP[name]

        # Outlook sometimes writes "Foo (Standard Time)" instead of "Foo Standard Time"
        normalized = name.replace(" (Standard Time)", " Standard Time")
        if normalized in self.LEGACY_TZ_MAP:
            return self.LEGACY_TZ_MAP[normalized]

        if name in self.TZ_ALIAS_MAP:
            return self.TZ_ALIAS_MAP[name]

        # Lightning/Sunbird wrote TZIDs like /mozilla.org/20050126_1/America/New_York
        if name.startswith("/"):
            match = _MOZILLA_PREFIX_RE.match(name)
            if match:
                return self.TZ_ALIAS_MAP.get(match.group("zone"), match.group("zone"))

        if "/" in name and (name in self.FALLBACK_OFFSETS or _is_known_zone(name)):
            return name

        return None

    def resolve(self, tz_name: str) -> str:
        """Resolve a TZID value, degrading to the default zone when unknown."""
        resolved = self.lookup(tz_name)
        if resolved is None:
            logger.debug(
                "Unrecognised timezone %r, using default %s", tz_name, self.default_timezone
            )
            return self.default_timezone
        return resolved

    def fallback_offset(self, iana_tz: str, month: int) -> datetime.timedelta | None:
        """Coarse UTC offset for ``iana_tz`` when zoneinfo data is missing.

        Daylight saving is approximated as March through November for
        American and European zones. Returns None for zones outside the table.
        """
        hours = self.FALLBACK_OFFSETS.get(iana_tz)
        if hours is None:
            return None
        observes_dst = iana_tz.startswith(("America/", "Europe/")) and iana_tz != "America/Phoenix"
        if observes_dst and 3 <= month <= 11:
            hours += 1
        return datetime.timedelta(hours=hours)


@lru_cache(maxsize=256)
def _is_known_zone(name: str) -> bool:
    try:
        zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        return False
    return True


@lru_cache(maxsize=64)
def load_zone(iana_tz: str) -> zoneinfo.ZoneInfo | None:
    """Load a ZoneInfo, returning None when the timezone database lacks it."""
    try:
        return zoneinfo.ZoneInfo(iana_tz)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.debug("No timezone data available for %s", iana_tz)
        return None


_resolver = TimezoneResolver()


def normalize_timezone_name(tz_str: str) -> str | None:
    """Normalize a timezone string to a canonical IANA identifier.

    Examples:
        >>> normalize_timezone_name("Pacific Standard Time")
        'America/Los_Angeles'
        >>> normalize_timezone_name("US/Pacific")
        'America/Los_Angeles'
        >>> normalize_timezone_name("Invalid/Timezone") is None
        True
    """
    if not tz_str:
        return None
    return _resolver.lookup(tz_str)


def get_default_timezone(fallback: str = DEFAULT_BUSINESS_TIMEZONE) -> str:
    """Get the default business timezone from the environment with validation.

    Checks ICSBUSY_DEFAULT_TIMEZONE first and falls back to ``fallback``
    when it is unset or not a valid IANA identifier.
    """
    timezone = os.environ.get("ICSBUSY_DEFAULT_TIMEZONE", fallback)
    if _is_known_zone(timezone):
        return timezone
    logger.warning("Invalid timezone %r, falling back to %r", timezone, fallback)
    return fallback

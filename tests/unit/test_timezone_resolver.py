"""Unit tests for timezone name resolution and fallback offsets."""

from datetime import timedelta

import pytest

from icsbusy.core.timezone_utils import (
    DEFAULT_BUSINESS_TIMEZONE,
    TimezoneResolver,
    get_default_timezone,
    load_zone,
    normalize_timezone_name,
)

pytestmark = pytest.mark.unit


class TestTimezoneResolver:
    """Tests for TimezoneResolver.lookup/resolve."""

    def setup_method(self):
        """Set up test fixtures."""
        self.resolver = TimezoneResolver()

    @pytest.mark.parametrize(
        ("windows_name", "expected"),
        [
            ("Pacific Standard Time", "America/Los_Angeles"),
            ("Eastern Standard Time", "America/New_York"),
            ("Central Standard Time", "America/Chicago"),
            ("Mountain Standard Time", "America/Denver"),
            ("GMT Standard Time", "Europe/London"),
            ("W. Europe Standard Time", "Europe/Berlin"),
            ("Romance Standard Time", "Europe/Paris"),
            ("Tokyo Standard Time", "Asia/Tokyo"),
            ("India Standard Time", "Asia/Kolkata"),
        ],
    )
    def test_lookup_windows_names(self, windows_name, expected):
        """Test Windows timezone names map to IANA identifiers."""
        assert self.resolver.lookup(windows_name) == expected

    def test_lookup_daylight_variant(self):
        """Test 'Daylight Time' spellings resolve like their standard names."""
        assert self.resolver.lookup("Pacific Daylight Time") == "America/Los_Angeles"

    def test_lookup_parenthesised_standard_time(self):
        """Test 'Foo (Standard Time)' variants are normalized."""
        assert self.resolver.lookup("Eastern (Standard Time)") == "America/New_York"

    def test_lookup_strips_quotes(self):
        """Test quoted TZID values are unquoted before lookup."""
        assert self.resolver.lookup('"Pacific Standard Time"') == "America/Los_Angeles"

    @pytest.mark.parametrize(
        ("alias", "expected"),
        [
            ("US/Pacific", "America/Los_Angeles"),
            ("US/Eastern", "America/New_York"),
            ("Asia/Calcutta", "Asia/Kolkata"),
            ("Europe/Kiev", "Europe/Kyiv"),
            ("GMT", "Etc/UTC"),
        ],
    )
    def test_lookup_obsolete_aliases(self, alias, expected):
        """Test deprecated IANA names are mapped to current ones."""
        assert self.resolver.lookup(alias) == expected

    def test_lookup_mozilla_prefix(self):
        """Test Lightning-style /mozilla.org/ TZIDs are reduced to the zone."""
        assert (
            self.resolver.lookup("/mozilla.org/20050126_1/America/New_York") == "America/New_York"
        )

    def test_lookup_accepts_iana_identifier(self):
        """Test a valid IANA identifier is returned unchanged."""
        assert self.resolver.lookup("Europe/Madrid") == "Europe/Madrid"

    def test_lookup_unknown_returns_none(self):
        """Test unknown names are not resolved."""
        assert self.resolver.lookup("Not A Real Zone") is None
        assert self.resolver.lookup("Invalid/Timezone") is None
        assert self.resolver.lookup("") is None

    def test_resolve_unknown_uses_default(self):
        """Test resolve() degrades to the default business timezone."""
        assert self.resolver.resolve("Martian Standard Time") == DEFAULT_BUSINESS_TIMEZONE

    def test_resolve_unknown_uses_configured_default(self):
        """Test the default zone is configurable."""
        resolver = TimezoneResolver("Europe/London")
        assert resolver.resolve("Martian Standard Time") == "Europe/London"


class TestFallbackOffsets:
    """Tests for the hardcoded offset table used without zone data."""

    def setup_method(self):
        """Set up test fixtures."""
        self.resolver = TimezoneResolver()

    def test_new_york_winter(self):
        """Test New York is UTC-5 in January."""
        assert self.resolver.fallback_offset("America/New_York", 1) == timedelta(hours=-5)

    def test_new_york_summer(self):
        """Test the March-November DST approximation adds one hour."""
        assert self.resolver.fallback_offset("America/New_York", 7) == timedelta(hours=-4)

    def test_berlin_summer(self):
        """Test European zones also get the DST hour."""
        assert self.resolver.fallback_offset("Europe/Berlin", 6) == timedelta(hours=2)

    def test_tokyo_has_no_dst(self):
        """Test Asian zones are not shifted."""
        assert self.resolver.fallback_offset("Asia/Tokyo", 7) == timedelta(hours=9)

    def test_unknown_zone_has_no_offset(self):
        """Test zones outside the table return None."""
        assert self.resolver.fallback_offset("Australia/Perth", 1) is None


class TestModuleHelpers:
    """Tests for module-level helpers."""

    def test_normalize_timezone_name(self):
        """Test normalize_timezone_name() handles Windows names and aliases."""
        assert normalize_timezone_name("Pacific Standard Time") == "America/Los_Angeles"
        assert normalize_timezone_name("US/Pacific") == "America/Los_Angeles"
        assert normalize_timezone_name("") is None

    def test_load_zone_unknown_returns_none(self):
        """Test load_zone() returns None rather than raising."""
        assert load_zone("Nowhere/Special") is None
        assert load_zone("America/Chicago") is not None

    def test_get_default_timezone_from_env(self, monkeypatch):
        """Test ICSBUSY_DEFAULT_TIMEZONE overrides the default zone."""
        monkeypatch.setenv("ICSBUSY_DEFAULT_TIMEZONE", "Europe/Paris")
        assert get_default_timezone() == "Europe/Paris"

    def test_get_default_timezone_invalid_env(self, monkeypatch):
        """Test an invalid environment value falls back."""
        monkeypatch.setenv("ICSBUSY_DEFAULT_TIMEZONE", "Nowhere/Special")
        assert get_default_timezone() == DEFAULT_BUSINESS_TIMEZONE

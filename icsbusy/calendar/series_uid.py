"""Series identity for event UIDs - icsbusy.

Generated occurrences carry a synthetic ``_YYYY-MM-DD`` suffix, and some
vendors encode per-instance data into the UID of override records. Both must
be stripped to compare an occurrence against the series it belongs to.
"""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

SYNTHETIC_SUFFIX_RE = re.compile(r"_\d{4}-\d{2}-\d{2}$")

# Exchange global object ids are long upper-case hex strings
_EXCHANGE_GOID_RE = re.compile(r"^[0-9A-Fa-f]{32,}$")


@dataclass(frozen=True)
class VendorUidRule:
    """Strips one vendor's recurring-instance marker from matching UIDs.

    Attributes:
        name: Vendor label used in debug logging
        applies: Predicate selecting the UIDs this rule handles
        marker: Pattern whose first match, and everything after it, is removed
    """

    name: str
    applies: Callable[[str], bool]
    marker: re.Pattern[str]

    def strip(self, uid: str) -> str:
        match = self.marker.search(uid)
        if match is None or match.start() == 0:
            return uid
        return uid[: match.start()]


EXCHANGE_RULE = VendorUidRule(
    name="exchange",
    applies=lambda uid: bool(_EXCHANGE_GOID_RE.match(uid)),
    marker=re.compile(r"0100000"),
)

DEFAULT_VENDOR_RULES: tuple[VendorUidRule, ...] = (EXCHANGE_RULE,)


@dataclass
class SeriesUidNormalizer:
    """Derives the series-base key used for override suppression and dedup."""

    vendor_rules: tuple[VendorUidRule, ...] = DEFAULT_VENDOR_RULES
    extra_patterns: list[re.Pattern[str]] = field(default_factory=list)

    @classmethod
    def from_patterns(cls, patterns: Optional[Iterable[str]] = None) -> "SeriesUidNormalizer":
        """Build a normalizer with extra regex patterns removed from every UID.

        Invalid patterns are logged and skipped.
        """
        compiled: list[re.Pattern[str]] = []
        for pattern in patterns or ():
            try:
                compiled.append(re.compile(pattern))
            except re.error as e:
                logger.warning("Ignoring invalid series UID pattern %r: %s", pattern, e)
        return cls(extra_patterns=compiled)

    def series_key(self, uid: str) -> str:
        """Return the series-base identifier for ``uid``."""
        base = SYNTHETIC_SUFFIX_RE.sub("", uid.strip())

        for rule in self.vendor_rules:
            if rule.applies(base):
                base = rule.strip(base)
                break

        for pattern in self.extra_patterns:
            base = pattern.sub("", base)

        return base

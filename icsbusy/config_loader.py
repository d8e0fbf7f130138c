"""icsbusy.config_loader

Lightweight config loader for icsbusy.

- Reads YAML (PyYAML), falling back to JSON for files that are not YAML.
- Exposes a typed dataclass `Config`, a `load_config()` helper that accepts
  an optional path override, and `apply_env_overrides()` for ICSBUSY_* variables.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from icsbusy.core.timezone_utils import DEFAULT_BUSINESS_TIMEZONE, get_default_timezone

logger = logging.getLogger(__name__)

MAX_OCCURRENCES_LIMIT = 100_000
MAX_HORIZON_DAYS = 3660


@dataclass
class Config:
    """Typed configuration for icsbusy.

    Fields:
        default_timezone: zone used when a TZID cannot be resolved
        max_occurrences_per_rule: cap on occurrences generated for one RRULE (1..100000)
        recurrence_horizon_days: expansion horizon when no window end is given (1..3660)
        exdate_tolerance_seconds: EXDATE match tolerance
        series_uid_patterns: extra regex patterns stripped from UIDs for series identity
        log_level: logging level name
    """

    default_timezone: str = DEFAULT_BUSINESS_TIMEZONE
    max_occurrences_per_rule: int = 1000
    recurrence_horizon_days: int = 365
    exdate_tolerance_seconds: int = 60
    series_uid_patterns: list[str] = field(default_factory=list)
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int and clamped to their allowed
        ranges; every coercion is logged as a warning.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int, low: int, high: int) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < low:
                logger.warning("Config %s=%d below minimum; coercing to %d", key, value, low)
                return low
            if value > high:
                logger.warning("Config %s=%d above maximum; coercing to %d", key, value, high)
                return high
            return value

        tz_raw = data.get("default_timezone", DEFAULT_BUSINESS_TIMEZONE)
        default_timezone = get_default_timezone_value(str(tz_raw))

        patterns_raw = data.get("series_uid_patterns") or []
        if not isinstance(patterns_raw, (list, tuple)):
            logger.warning("Config `series_uid_patterns` is not a list; coercing to single-item list")
            patterns_raw = [patterns_raw]

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            default_timezone=default_timezone,
            max_occurrences_per_rule=_coerce_int(
                "max_occurrences_per_rule", 1000, 1, MAX_OCCURRENCES_LIMIT
            ),
            recurrence_horizon_days=_coerce_int("recurrence_horizon_days", 365, 1, MAX_HORIZON_DAYS),
            exdate_tolerance_seconds=_coerce_int("exdate_tolerance_seconds", 60, 0, 86_400),
            series_uid_patterns=[str(p) for p in patterns_raw],
            log_level=log_level,
        )


def get_default_timezone_value(tz_name: str) -> str:
    """Validate a configured zone name, falling back to the business default.

    Windows and legacy alias names are accepted and mapped to IANA identifiers.
    """
    from icsbusy.core.timezone_utils import load_zone, normalize_timezone_name  # noqa: PLC0415

    resolved = normalize_timezone_name(tz_name)
    if resolved is None or load_zone(resolved) is None:
        logger.warning(
            "Config default_timezone=%r is not a known zone; using %s",
            tz_name,
            DEFAULT_BUSINESS_TIMEZONE,
        )
        return DEFAULT_BUSINESS_TIMEZONE
    return resolved


def _load_yaml_or_json(path: Path) -> Any:
    """Load a mapping from a YAML or JSON file."""
    text = path.read_text(encoding="utf-8")
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            raise ValueError(f"Unable to parse config file {path}: {exc}") from exc
    # safe_load returns None for empty files
    return {} if loaded is None else loaded


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML/JSON file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to ./icsbusy.yaml.

    Behavior:
    - If file is missing: returns Config() with defaults.
    - If file exists but top-level is not a mapping: raises ValueError.
    """
    p = Path(path) if path else Path.cwd() / "icsbusy.yaml"
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    raw = _load_yaml_or_json(p)
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg


def apply_env_overrides(cfg: Config) -> Config:
    """Return a copy of ``cfg`` with ICSBUSY_* environment overrides applied.

    Recognizes:
    - ICSBUSY_DEFAULT_TIMEZONE -> default_timezone
    - ICSBUSY_MAX_OCCURRENCES -> max_occurrences_per_rule
    - ICSBUSY_LOG_LEVEL -> log_level
    """
    updates: dict[str, Any] = {}

    if os.environ.get("ICSBUSY_DEFAULT_TIMEZONE"):
        updates["default_timezone"] = get_default_timezone(cfg.default_timezone)

    max_occ = os.environ.get("ICSBUSY_MAX_OCCURRENCES")
    if max_occ:
        try:
            updates["max_occurrences_per_rule"] = max(1, min(int(max_occ), MAX_OCCURRENCES_LIMIT))
        except ValueError:
            logger.warning("Ignoring non-integer ICSBUSY_MAX_OCCURRENCES=%r", max_occ)

    log_level = os.environ.get("ICSBUSY_LOG_LEVEL")
    if log_level:
        updates["log_level"] = log_level.upper()

    if updates:
        logger.debug("Applied environment overrides: %s", ", ".join(sorted(updates)))
    return replace(cfg, **updates)

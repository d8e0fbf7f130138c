"""
Central logging configuration for icsbusy.

Keeps the parser's own loggers at the requested verbosity while holding
chatty third-party libraries at WARNING so per-record debug output stays
readable.
"""

import logging
import os
from typing import Optional

_PACKAGE_LOGGERS = (
    "icsbusy",
    "icsbusy.calendar",
    "icsbusy.core",
    "icsbusy.domain",
)

_THIRD_PARTY_LOGGERS = (
    "icalendar",
    "dateutil",
)

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def configure_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    level_name: Optional[str] = None,
) -> None:
    """
    Configure logging levels for icsbusy.

    Args:
        debug_mode: Whether to enable debug logging for icsbusy modules
        force_debug: Override debug mode setting (None to use env var detection)
        level_name: Explicit level for root and icsbusy loggers; the
            environment override still wins

    Environment Variables:
        ICSBUSY_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        ICSBUSY_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("ICSBUSY_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("ICSBUSY_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if not final_debug and level_name and level_name.upper() in _VALID_LEVELS:
        root_level = getattr(logging, level_name.upper())
    if env_log_level in _VALID_LEVELS:
        root_level = getattr(logging, env_log_level)

    # Keep any handler installed by _init_logging
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s"))
        root_logger.addHandler(handler)

    logger_config: dict[str, int] = dict.fromkeys(_THIRD_PARTY_LOGGERS, logging.WARNING)
    package_level = logging.DEBUG if final_debug else root_level
    for module in _PACKAGE_LOGGERS:
        logger_config[module] = package_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.debug("Debug logging enabled for icsbusy modules")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("icsbusy", *_THIRD_PARTY_LOGGERS):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status

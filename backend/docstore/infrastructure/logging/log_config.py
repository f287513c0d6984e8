"""Centralized logging configuration.

Applies per-category log levels from Settings so that chatty loggers
(e.g. per-record store writes, per-request access lines) can be silenced
without affecting other parts of the application.

Usage:
    from docstore.infrastructure.logging.log_config import setup_logging
    setup_logging()   # Call once at startup (in create_app)
"""

import logging
import sys

from docstore.config import Settings, get_settings

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


# ── Logger-name → Settings-field mapping ────────────────────────────
#
# Each entry maps one or more Python logger names to a Settings field.
# When setup_logging() runs, it sets the level of each listed logger
# to the value of the corresponding setting.

_CATEGORY_MAP: dict[str, list[str]] = {
    "log_level_store": [
        "docstore.infrastructure.storage",
    ],
    "log_level_rules": [
        "docstore.application.services.rule_engine",
        "docstore.application.services.rule_expressions",
    ],
    "log_level_http": [
        "docstore.presentation",
        "docstore.main",
    ],
    "log_level_uvicorn": [
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
    ],
}


def setup_logging(settings: Settings | None = None) -> None:
    """Configure Python logging levels from application settings."""
    settings = settings or get_settings()
    root_level = _parse_level(settings.log_level)

    # ── Root logger ────────────────────────────────────────────────
    root = logging.getLogger()
    root.setLevel(root_level)

    if not root.handlers:
        root.addHandler(_stderr_handler())

    # ── Per-category loggers ───────────────────────────────────────
    for settings_field, logger_names in _CATEGORY_MAP.items():
        raw_level: str = getattr(settings, settings_field, "INFO")
        level = _parse_level(raw_level)

        for name in logger_names:
            logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).debug(
        "Logging configured: root=%s, store=%s, rules=%s, http=%s, uvicorn=%s",
        settings.log_level,
        settings.log_level_store,
        settings.log_level_rules,
        settings.log_level_http,
        settings.log_level_uvicorn,
    )


def _stderr_handler() -> logging.Handler:
    """Fallback handler for tests and scripts; uvicorn installs its own."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%H:%M:%S"))
    return handler


def _parse_level(raw: str) -> int:
    """Level name to logging constant; unknown names fall back to INFO."""
    numeric = logging.getLevelName(raw.strip().upper())
    return numeric if isinstance(numeric, int) else logging.INFO

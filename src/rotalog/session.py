"""Log call entry point: bootstrap the file, rotate if due, append."""

from __future__ import annotations

import logging
from datetime import datetime

from rotalog.archive import rotate_archived
from rotalog.config import LoggerSettings
from rotalog.log_rotation import list_numbered_logs, roll
from rotalog.threshold import needs_rotation, record_creation_time
from rotalog.writer import WriteResult, append_line, format_line

logger = logging.getLogger(__name__)

STARTED_BANNER = "Logging started"
RESUMED_BANNER = "Log rotated, logging resumed"


def _rotate(settings: LoggerSettings) -> bool:
    if settings.archive:
        return rotate_archived(
            settings.base_path,
            settings.name,
            settings.retention,
            scratch_dir=settings.scratch,
        )
    existing = list_numbered_logs(settings.directory, settings.name)
    return roll(
        settings.base_path, settings.directory, settings.name, existing, settings.retention
    )


def _start_fresh(settings: LoggerSettings) -> WriteResult:
    record_creation_time(settings.base_path)
    return _banner(settings, RESUMED_BANNER)


def _banner(settings: LoggerSettings, text: str) -> WriteResult:
    line = format_line(text, "Info", settings.timestamp_format, raw=settings.raw)
    return append_line(line, settings.base_path, settings.retry, settings.encoding)


def prepare_log(settings: LoggerSettings, now: datetime | None = None) -> bool:
    """Make the base file ready for an append.

    Creates the directory and base file (with a start banner) when missing.
    Otherwise rotates when the threshold is exceeded and writes a resumed
    banner into the fresh base file. Returns True if a rotation happened.
    Rotation errors propagate.
    """
    settings.directory.mkdir(parents=True, exist_ok=True)
    base = settings.base_path

    if not base.exists():
        base.touch()
        record_creation_time(base)
        _banner(settings, STARTED_BANNER)
        return False

    if not needs_rotation(settings.threshold, base, now=now):
        return False

    rotated = _rotate(settings)
    if rotated:
        logger.info("Rotated %s", base)
        _start_fresh(settings)
    return rotated


def rotate_now(settings: LoggerSettings) -> bool:
    """Rotate the base file regardless of the threshold."""
    if not settings.base_path.exists():
        return False
    rotated = _rotate(settings)
    if rotated:
        _start_fresh(settings)
    return rotated


def write_log(
    message: str,
    settings: LoggerSettings,
    level: str = "Info",
    now: datetime | None = None,
) -> WriteResult:
    """Rotate if due, then append ``message`` to the base log."""
    prepare_log(settings, now=now)
    line = format_line(message, level, settings.timestamp_format, raw=settings.raw)
    return append_line(line, settings.base_path, settings.retry, settings.encoding)

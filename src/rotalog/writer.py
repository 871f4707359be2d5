"""Append log lines with bounded retry and a fixed backoff."""

from __future__ import annotations

import logging
import time
import traceback
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    backoff: float = 0.5  # seconds


class WriteState(str, Enum):
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class WriteResult:
    state: WriteState
    attempts: int
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.state is WriteState.SUCCEEDED


def format_line(
    message: str,
    level: str = "Info",
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
    raw: bool = False,
    now: datetime | None = None,
) -> str:
    """Build ``[<timestamp>][<level>] <message>``, or just the message when raw."""
    if raw:
        return message
    stamp = (now or datetime.now()).strftime(timestamp_format)
    return f"[{stamp}][{level}] {message}"


def _call_site(exc: BaseException) -> str:
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return "unknown"
    frame = frames[-1]
    return f"{frame.filename}:{frame.lineno} in {frame.name}"


def append_line(
    line: str,
    target: Path,
    retry: RetryPolicy | None = None,
    encoding: str = "utf-8",
    sleep: Callable[[float], None] = time.sleep,
) -> WriteResult:
    """Append ``line`` plus a newline to ``target``.

    Never raises for I/O or encoding failures. I/O errors are retried up to
    ``retry.max_attempts``; encoding errors fail on the first attempt. On
    failure the error is logged and a FAILED result returned; the line is
    dropped.
    """
    retry = retry or RetryPolicy()
    result = WriteResult(state=WriteState.ATTEMPTING, attempts=0)

    while result.state is WriteState.ATTEMPTING:
        result.attempts += 1
        try:
            with open(target, "a", encoding=encoding) as f:
                f.write(line + "\n")
        except (OSError, UnicodeError) as exc:
            result.error = str(exc)
            retryable = isinstance(exc, OSError)
            if retryable and result.attempts < retry.max_attempts:
                logger.warning(
                    "Write to %s failed (attempt %d of %d): %s",
                    target, result.attempts, retry.max_attempts, exc,
                )
                sleep(retry.backoff)
            else:
                logger.error(
                    "Giving up writing to %s after %d attempt(s): %s [at %s]",
                    target, result.attempts, exc, _call_site(exc),
                )
                result.state = WriteState.FAILED
        else:
            result.error = ""
            result.state = WriteState.SUCCEEDED

    return result

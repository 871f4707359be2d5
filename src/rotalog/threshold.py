"""Rotation threshold parsing and evaluation.

A threshold spec is either ``<int><unit>`` with unit G, M or K (size in
base-1024 bytes) or a bare ``<int>`` (age in days). Anything else parses to
an INVALID threshold, which never triggers rotation.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

SIZE_UNITS = {
    "K": 1024,
    "M": 1024 * 1024,
    "G": 1024 * 1024 * 1024,
}

_SIZE_RE = re.compile(r"^(\d+)([GMK])$")
_AGE_RE = re.compile(r"^(\d+)$")


class ThresholdKind(str, Enum):
    SIZE = "size"
    AGE_DAYS = "age_days"
    INVALID = "invalid"


@dataclass(frozen=True)
class RotationThreshold:
    kind: ThresholdKind
    value: int = 0

    @property
    def enabled(self) -> bool:
        return self.kind is not ThresholdKind.INVALID


INVALID_THRESHOLD = RotationThreshold(ThresholdKind.INVALID)


def parse_threshold(spec: str | None) -> RotationThreshold:
    """Parse a threshold spec such as ``10M`` or ``7``.

    Never raises: malformed specs return ``INVALID_THRESHOLD``.
    """
    if not spec:
        return INVALID_THRESHOLD
    text = spec.strip()

    m = _SIZE_RE.match(text)
    if m:
        return RotationThreshold(ThresholdKind.SIZE, int(m.group(1)) * SIZE_UNITS[m.group(2)])

    m = _AGE_RE.match(text)
    if m:
        return RotationThreshold(ThresholdKind.AGE_DAYS, int(m.group(1)))

    return INVALID_THRESHOLD


def created_marker_path(path: Path) -> Path:
    """Sidecar holding the recorded creation time of ``path``."""
    return path.parent / f".{path.name}.created"


def record_creation_time(path: Path, when: datetime | None = None) -> datetime:
    """Record ``when`` (default now) as the creation time of ``path``.

    Appends bump ``st_ctime`` on Linux, so the recorded value is the only
    stable creation time there.
    """
    when = when or datetime.now()
    created_marker_path(path).write_text(when.isoformat() + "\n", encoding="utf-8")
    return when


def creation_time(path: Path) -> datetime:
    """Creation time of ``path``.

    Prefers the time recorded by ``record_creation_time``, then
    ``st_birthtime`` where the platform reports it, then ``st_ctime``.
    """
    marker = created_marker_path(path)
    try:
        return datetime.fromisoformat(marker.read_text(encoding="utf-8").strip())
    except FileNotFoundError:
        pass
    except ValueError:
        logger.warning("Ignoring unreadable creation marker %s", marker)

    st = path.stat()
    ts = getattr(st, "st_birthtime", None)
    if ts is None:
        ts = st.st_ctime
    return datetime.fromtimestamp(ts)


def needs_rotation(
    threshold: RotationThreshold, path: Path, now: datetime | None = None
) -> bool:
    """Return True if ``path`` is strictly over ``threshold``."""
    if not threshold.enabled or not path.exists():
        return False

    if threshold.kind is ThresholdKind.SIZE:
        return path.stat().st_size > threshold.value

    age = (now or datetime.now()) - creation_time(path)
    return age.days > threshold.value


def describe_threshold(threshold: RotationThreshold) -> str:
    if threshold.kind is ThresholdKind.SIZE:
        for unit in ("G", "M", "K"):
            factor = SIZE_UNITS[unit]
            if threshold.value % factor == 0:
                return f"size > {threshold.value // factor}{unit}"
        return f"size > {threshold.value} bytes"
    if threshold.kind is ThresholdKind.AGE_DAYS:
        return f"age > {threshold.value} day(s)"
    return "disabled"

"""Numbered log file rotation: <name>.log -> <name>.1.log -> <name>.2.log ..."""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".log"


@dataclass(frozen=True)
class LogFileRef:
    name: str
    directory: Path
    sequence: int
    size_bytes: int = 0

    @property
    def path(self) -> Path:
        if self.sequence == 0:
            return base_log_path(self.directory, self.name)
        return numbered_log_path(self.directory, self.name, self.sequence)


@dataclass(frozen=True)
class RetentionPolicy:
    max_count: int = 5


def base_log_path(directory: Path, name: str) -> Path:
    return directory / f"{name}{LOG_SUFFIX}"


def numbered_log_path(directory: Path, name: str, sequence: int) -> Path:
    return directory / f"{name}.{sequence}{LOG_SUFFIX}"


def list_numbered_logs(directory: Path, name: str) -> list[LogFileRef]:
    """List rotated files for ``name`` in ``directory``, ascending by sequence.

    Re-read from disk on every call; nothing is cached.
    """
    if not directory.is_dir():
        return []

    pattern = re.compile(rf"^{re.escape(name)}\.(\d+){re.escape(LOG_SUFFIX)}$")
    refs = []
    for entry in directory.iterdir():
        m = pattern.match(entry.name)
        if not m or not entry.is_file():
            continue
        refs.append(LogFileRef(
            name=name,
            directory=directory,
            sequence=int(m.group(1)),
            size_bytes=entry.stat().st_size,
        ))
    return sorted(refs, key=lambda r: r.sequence)


def roll(
    base_path: Path,
    numbered_dir: Path,
    name: str,
    existing: list[LogFileRef],
    retention: RetentionPolicy,
) -> bool:
    """Shift numbered files up by one and move the base file to sequence 1.

    Works from the highest sequence down so no rename overwrites a file that
    still has to move. Sequences >= ``retention.max_count`` are deleted.
    ``numbered_dir`` may differ from the base file's directory.
    Returns True once the base file has been moved.
    """
    first = numbered_log_path(numbered_dir, name, 1)

    if not existing:
        shutil.move(str(base_path), str(first))
        logger.debug("Rotated %s -> %s", base_path, first)
        return True

    by_sequence = {ref.sequence: ref for ref in existing}
    highest = max(by_sequence)

    for candidate in range(highest, -1, -1):
        if candidate == 0:
            shutil.move(str(base_path), str(first))
            logger.debug("Rotated %s -> %s", base_path, first)
            return True

        ref = by_sequence.get(candidate)
        if ref is None:
            continue

        if candidate >= retention.max_count:
            ref.path.unlink()
            logger.debug("Evicted %s (retention %d)", ref.path, retention.max_count)
        else:
            dst = numbered_log_path(numbered_dir, name, candidate + 1)
            ref.path.rename(dst)

    return False

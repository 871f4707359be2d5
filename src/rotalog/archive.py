"""Zip archive handling for rotated logs.

With archiving on, rotated files only exist on disk while a rotation is in
progress; the steady state is ``<name>.log`` plus ``<name>-archive.zip``.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path

from rotalog.log_rotation import RetentionPolicy, list_numbered_logs, roll

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = "-archive.zip"


@dataclass(frozen=True)
class ArchiveRef:
    path: Path
    exists: bool


def archive_path(directory: Path, name: str) -> Path:
    return directory / f"{name}{ARCHIVE_SUFFIX}"


def archive_ref(directory: Path, name: str) -> ArchiveRef:
    path = archive_path(directory, name)
    return ArchiveRef(path=path, exists=path.is_file())


def default_scratch_dir(name: str) -> Path:
    """Fixed extraction directory under the temp root.

    Shared by every process logging under ``name``; concurrent rotations
    of the same log race on it.
    """
    return Path(tempfile.gettempdir()) / "rotalog" / name


def list_archive(directory: Path, name: str) -> list[str]:
    """Member names of the archive for ``name``, or [] if there is none."""
    ref = archive_ref(directory, name)
    if not ref.exists:
        return []
    with zipfile.ZipFile(ref.path) as zf:
        return sorted(zf.namelist())


def rotate_archived(
    base_path: Path,
    name: str,
    retention: RetentionPolicy,
    scratch_dir: Path | None = None,
) -> bool:
    """Rotate ``base_path`` into ``<name>-archive.zip`` next to it.

    Errors from extraction, renaming or repacking propagate unchanged and
    may leave the archive or scratch directory half-written.
    """
    directory = base_path.parent
    ref = archive_ref(directory, name)

    if not ref.exists:
        return _create_archive(base_path, name, retention, ref.path)

    scratch = scratch_dir or default_scratch_dir(name)
    scratch.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(ref.path) as zf:
        zf.extractall(scratch)

    existing = list_numbered_logs(scratch, name)
    rotated = roll(base_path, scratch, name, existing, retention)

    _repack(scratch, ref.path)
    shutil.rmtree(scratch)

    logger.info("Rotated %s into %s", base_path, ref.path)
    return rotated


def _create_archive(
    base_path: Path, name: str, retention: RetentionPolicy, target: Path
) -> bool:
    directory = base_path.parent
    roll(base_path, directory, name, list_numbered_logs(directory, name), retention)

    for ref in list_numbered_logs(directory, name):
        with zipfile.ZipFile(target, "a", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.write(ref.path, arcname=ref.path.name)
        ref.path.unlink()

    logger.info("Created archive %s", target)
    return True


def _repack(source_dir: Path, target: Path) -> None:
    """Overwrite ``target`` with every file under ``source_dir``."""
    with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(source_dir.rglob("*")):
            if path.is_file():
                zf.write(path, arcname=path.relative_to(source_dir).as_posix())

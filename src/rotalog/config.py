"""Config loading, defaults, validation, and resolved logger settings."""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from pathlib import Path

from rotalog.archive import default_scratch_dir
from rotalog.log_rotation import RetentionPolicy, base_log_path
from rotalog.threshold import RotationThreshold, parse_threshold
from rotalog.utils import load_json, load_yaml, save_json
from rotalog.writer import DEFAULT_TIMESTAMP_FORMAT, RetryPolicy

logger = logging.getLogger(__name__)

CONFIG_DIR = ".rotalog"
CONFIG_NAMES = ("config.json", "config.yaml", "config.yml")

DEFAULT_CONFIG: dict = {
    "name": "rotalog",
    "directory": "logs",
    "rotate": None,
    "keep": 5,
    "archive": True,
    "attempts": 2,
    "backoff_ms": 500,
    "encoding": "utf-8",
    "timestamp_format": DEFAULT_TIMESTAMP_FORMAT,
    "raw": False,
    "scratch_dir": None,
}


def get_config_path(start_dir: Path | None = None) -> Path:
    """Find .rotalog/config.{json,yaml} by walking up from start_dir."""
    search = start_dir or Path.cwd()
    for d in [search, *search.parents]:
        for fname in CONFIG_NAMES:
            candidate = d / CONFIG_DIR / fname
            if candidate.exists():
                return candidate
    return search / CONFIG_DIR / "config.json"


def load_config(start_dir: Path | None = None) -> dict:
    """Load config from .rotalog/, merged with defaults."""
    config_path = get_config_path(start_dir)
    if not config_path.exists():
        return DEFAULT_CONFIG.copy()

    if config_path.suffix in (".yaml", ".yml"):
        user_config = load_yaml(config_path)
    else:
        user_config = load_json(config_path)
    if not user_config:
        logger.warning(
            "Config file exists but could not be loaded (corrupt?): %s "
            "Using defaults.", config_path
        )
    return {**DEFAULT_CONFIG, **user_config}


def save_config(config: dict, target_dir: Path | None = None) -> Path:
    """Save config to .rotalog/config.json."""
    target = target_dir or Path.cwd()
    config_path = target / CONFIG_DIR / "config.json"
    save_json(config_path, config)
    return config_path


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_config(config: dict) -> list[str]:
    """Validate config, returning list of error messages (empty if valid).

    A malformed ``rotate`` spec is not an error: it disables rotation.
    """
    errors = []

    name = config.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("'name' must be a non-empty string")
    elif "/" in name or "\\" in name:
        errors.append(f"'name' must not contain path separators: '{name}'")

    keep = config.get("keep")
    if not _is_int(keep) or keep < 1:
        errors.append(f"'keep' must be an integer >= 1, got {keep!r}")

    attempts = config.get("attempts")
    if not _is_int(attempts) or attempts < 1:
        errors.append(f"'attempts' must be an integer >= 1, got {attempts!r}")

    backoff = config.get("backoff_ms")
    if not isinstance(backoff, (int, float)) or isinstance(backoff, bool) or backoff < 0:
        errors.append(f"'backoff_ms' must be a number >= 0, got {backoff!r}")

    rotate = config.get("rotate")
    if rotate is not None and not isinstance(rotate, str):
        errors.append(f"'rotate' must be a string or null, got {rotate!r}")

    encoding = config.get("encoding")
    try:
        codecs.lookup(str(encoding))
    except LookupError:
        errors.append(f"Unknown encoding '{encoding}'")

    return errors


@dataclass(frozen=True)
class LoggerSettings:
    """Everything one log call needs, resolved from config."""

    name: str
    directory: Path
    threshold: RotationThreshold
    retention: RetentionPolicy
    retry: RetryPolicy
    archive: bool = True
    encoding: str = "utf-8"
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    raw: bool = False
    scratch_dir: Path | None = None

    @property
    def base_path(self) -> Path:
        return base_log_path(self.directory, self.name)

    @property
    def scratch(self) -> Path:
        return self.scratch_dir or default_scratch_dir(self.name)


def settings_from_config(config: dict, base_dir: Path | None = None) -> LoggerSettings:
    """Resolve a merged config dict into LoggerSettings.

    Relative ``directory`` and ``scratch_dir`` are taken relative to base_dir.
    """
    root = base_dir or Path.cwd()

    directory = Path(config["directory"]).expanduser()
    if not directory.is_absolute():
        directory = root / directory

    scratch = config.get("scratch_dir")
    scratch_dir = None
    if scratch:
        scratch_dir = Path(scratch).expanduser()
        if not scratch_dir.is_absolute():
            scratch_dir = root / scratch_dir

    return LoggerSettings(
        name=config["name"],
        directory=directory,
        threshold=parse_threshold(config.get("rotate")),
        retention=RetentionPolicy(max_count=config["keep"]),
        retry=RetryPolicy(
            max_attempts=config["attempts"],
            backoff=config["backoff_ms"] / 1000,
        ),
        archive=bool(config["archive"]),
        encoding=config["encoding"],
        timestamp_format=config["timestamp_format"],
        raw=bool(config["raw"]),
        scratch_dir=scratch_dir,
    )

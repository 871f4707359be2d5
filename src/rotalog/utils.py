"""JSON/YAML config file helpers."""

from __future__ import annotations

import json
from pathlib import Path

import yaml


def load_json(path: Path) -> dict:
    """Load a JSON object, returning empty dict if missing, malformed or not an object."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def load_yaml(path: Path) -> dict:
    """Load a YAML mapping, returning empty dict if missing, malformed or not a mapping."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def save_json(path: Path, data: dict) -> None:
    """Save dict as pretty-printed JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")

"""rotalog - self-rotating append-only log writer."""

__version__ = "0.3.0"

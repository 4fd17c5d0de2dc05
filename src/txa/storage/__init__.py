"""Windowed key-value stores holding per-window aggregates."""

from txa.storage.base import WindowedEntry, WindowStore
from txa.storage.memory import InMemoryWindowStore

__all__ = ["WindowStore", "WindowedEntry", "InMemoryWindowStore"]

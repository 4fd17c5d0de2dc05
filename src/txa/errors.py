"""Exception types raised by the analyzer."""

from __future__ import annotations


class ConfigError(ValueError):
    """A required property is missing or malformed. Fatal at startup."""


class ModelLoadError(RuntimeError):
    """The predictor artifact is missing or cannot be loaded. Fatal at startup."""


class StoreNotReadyError(RuntimeError):
    """A window store was queried before its first window materialized."""

# src/transfer_network/utils/errors.py

from __future__ import annotations

from typing import Iterable


class ConfigurationError(ValueError):
    """Raised when a channel mode (or other option) is not one of its allowed values."""

    def __init__(self, option: str, value, allowed: Iterable[str]):
        self.option = option
        self.value = value
        self.allowed = sorted(str(a) for a in allowed)
        super().__init__(
            f"Invalid value {value!r} for '{option}'. Allowed: {', '.join(self.allowed)}"
        )


class LayoutShapeError(ValueError):
    """Raised when a cached layout matrix does not line up with the graph's nodes."""


class HighlightTargetNotFoundError(KeyError):
    """Raised when the facility to highlight is not a node of the graph."""

    def __init__(self, target):
        self.target = target
        super().__init__(f"Highlight target {target!r} is not a node of the graph.")

"""Route access package."""

from apexfx.access.gate import (
    AccessEvent,
    AccessGate,
    normalize_path,
    transition,
)

__all__ = [
    "AccessEvent",
    "AccessGate",
    "normalize_path",
    "transition",
]

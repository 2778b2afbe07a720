"""ZenRadar crawler: matcha shop stock and price tracking."""

__version__ = "1.0.0"

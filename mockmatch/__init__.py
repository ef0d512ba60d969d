"""MockMatch: interview matching, scheduling and live session presence."""

__version__ = "0.1.0"

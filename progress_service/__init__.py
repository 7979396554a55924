"""Progress and achievement tracking for the Luganda learning games."""

__version__ = "1.0.0"

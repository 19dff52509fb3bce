"""Insurance policy lifecycle and commission accounting."""

__version__ = "1.0.0"

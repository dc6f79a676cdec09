"""TokenWatch - alert evaluation and scoring engine for tokens."""

__version__ = "0.1.0"

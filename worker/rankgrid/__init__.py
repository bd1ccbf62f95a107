"""Geographic grid rank scanner for Google Maps businesses."""

__version__ = "0.1.0"

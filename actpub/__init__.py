"""Release publisher: artifact commits, floating version tags and release records."""

__version__ = "0.4.0"

"""Image ingestion and compression service."""

__version__ = "1.0.0"

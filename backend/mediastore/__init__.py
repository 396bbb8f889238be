"""File ingestion and media-processing service."""

__version__ = "1.0.0"

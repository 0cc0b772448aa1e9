# src/__init__.py — v1
"""scanflow: staged ingestion pipeline for scanned documents."""

from scanflow.version import __version__

__all__ = ["__version__"]

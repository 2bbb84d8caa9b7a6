"""Batch cache and lazy-creation engine for per-user thumbnail metadata."""

__version__ = "0.1.0"

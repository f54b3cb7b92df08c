"""Notion-backed helpers for the renovation dashboard service."""

__version__ = "1.0.0"

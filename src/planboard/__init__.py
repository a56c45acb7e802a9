"""Planboard - terminal client for a personal planning service."""

__version__ = "0.1.0"

"""Engagement tracking and ranking for academic papers."""

__version__ = "0.1.0"

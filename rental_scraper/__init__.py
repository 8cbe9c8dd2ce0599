"""Yango Drive rental listing scraper."""

__version__ = "1.0.0"

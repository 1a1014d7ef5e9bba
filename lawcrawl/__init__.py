"""Crawl state legislature websites and persist their codes as title/chapter/section records."""

__version__ = "0.1.0"

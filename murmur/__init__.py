"""Murmur: anonymous text and voice messages behind a personal share link."""

__version__ = "0.1.0"

"""
VroidRSS - Read RSS feeds aloud through an external speech executable.

A small desktop utility that fetches a selected RSS/Atom feed and hands
each item's title and description to a configured executable.
"""

__version__ = "1.0.0"

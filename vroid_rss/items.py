"""
Feed item model.

Reduces feedparser entries to the two fields the player reads aloud.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FeedItem:
    """
    A fetched feed entry.

    Attributes
    ----------
    title : str
        Entry title.
    description : str
        Entry description (RSS ``<description>`` or Atom ``<summary>``).
    """

    title: str = ""
    description: str = ""

    @classmethod
    def from_feedparser(cls, entry: Any) -> "FeedItem":
        """
        Create a FeedItem from a feedparser entry.

        All other feed metadata is dropped.

        Parameters
        ----------
        entry : Any
            A feedparser entry object (or any mapping with ``get``).

        Returns
        -------
        FeedItem
            Item holding the entry's title and description.
        """
        # feedparser aliases "description" to "summary" for both RSS and Atom
        description = entry.get("description") or entry.get("summary") or ""

        return cls(
            title=entry.get("title") or "",
            description=description,
        )

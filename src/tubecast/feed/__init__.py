"""RSS feed generation and persistence."""

from tubecast.feed.builder import RSSFeedBuilder
from tubecast.feed.file_store import RSSFileStore

__all__ = ["RSSFeedBuilder", "RSSFileStore"]

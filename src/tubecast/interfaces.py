"""Collaborator interfaces consumed by the ingestion service.

Implementations are injected into the processor, scheduler and feed builder;
nothing in this package depends on a concrete lister, downloader or store.
"""

from datetime import datetime
from typing import Protocol

from tubecast.models import ChannelType, Entry


class ChannelLister(Protocol):
    """Lists the current entries of a channel, newest first."""

    def list(self, channel_id: str, channel_type: ChannelType) -> list[Entry]: ...


class Downloader(Protocol):
    """Downloads the audio of a video and returns the local file path."""

    def fetch(self, video_id: str, dest_name: str) -> str: ...


class MetadataStore(Protocol):
    """Durable storage for processed entries and processed marks."""

    def save(self, entry: Entry) -> bool:
        """Insert an entry, returning False if it was already present."""
        ...

    def load(self, channel_id: str, max_items: int) -> list[Entry]: ...

    def exists(self, entry: Entry) -> bool: ...

    def remove_old(self, channel_id: str, keep: int) -> list[str]:
        """Drop all but the newest `keep` entries and return their files.

        Raises PartialRemoveError (with the files attached) if metadata was
        trimmed but something else failed.
        """
        ...

    def remove(self, entry: Entry) -> None: ...

    def mark_processed(self, entry: Entry) -> None: ...

    def check_processed(self, entry: Entry) -> tuple[bool, datetime | None]: ...

    def count_processed(self) -> int: ...

    def last(self) -> Entry: ...


class RSSStore(Protocol):
    """Persists rendered RSS documents."""

    def save(self, channel_id: str, rss: str) -> None: ...

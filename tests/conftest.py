"""Pytest configuration, in-memory collaborators and shared fixtures."""

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from tubecast.exceptions import DownloadError
from tubecast.models import ChannelSpec, ChannelType, Entry

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

# MPEG-1 Layer III, 128 kbps, 48 kHz, no padding: 384 bytes, 24 ms per frame
MP3_FRAME_HEADER = bytes([0xFF, 0xFB, 0x94, 0x00])
MP3_FRAME_SIZE = 384


def make_mp3(frames: int) -> bytes:
    """Build a bitstream of silent MPEG frames."""
    frame = MP3_FRAME_HEADER + bytes(MP3_FRAME_SIZE - len(MP3_FRAME_HEADER))
    return frame * frames


def make_entry(video_id: str, channel_id: str = "chan1", age: timedelta = timedelta(days=2), **kwargs) -> Entry:
    """Create a listed entry published `age` before NOW."""
    data = {
        "channel_id": channel_id,
        "video_id": video_id,
        "title": f"Video {video_id}",
        "description": f"Description of {video_id}",
        "author_name": "Some Author",
        "author_uri": f"https://www.youtube.com/channel/{channel_id}",
        "link_href": f"https://www.youtube.com/watch?v={video_id}",
        "thumbnail_url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg",
        "published": NOW - age,
    }
    data.update(kwargs)
    return Entry(**data)


class FakeLister:
    """Returns canned listings per channel."""

    def __init__(self, listings: dict[str, list[Entry]] | None = None) -> None:
        self.listings = listings or {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, ChannelType]] = []
        self.on_list: Callable[[int], None] | None = None

    def list(self, channel_id: str, channel_type: ChannelType) -> list[Entry]:
        self.calls.append((channel_id, channel_type))
        if self.on_list:
            self.on_list(len(self.calls))
        if channel_id in self.errors:
            raise self.errors[channel_id]
        return list(self.listings.get(channel_id, []))


class FakeDownloader:
    """Writes a small MP3 file for every fetched video."""

    def __init__(self, directory: Path, frames: int = 260) -> None:
        self.directory = directory
        self.frames = frames
        self.fail_ids: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.on_fetch: Callable[[str], None] | None = None

    def fetch(self, video_id: str, dest_name: str) -> str:
        self.calls.append((video_id, dest_name))
        if video_id in self.fail_ids:
            raise DownloadError(f"can't download {video_id}")
        path = self.directory / f"{dest_name}.mp3"
        path.write_bytes(make_mp3(self.frames))
        if self.on_fetch:
            self.on_fetch(video_id)
        return str(path)


class FakeStore:
    """In-memory metadata store with processed marks."""

    def __init__(self) -> None:
        self.entries: dict[str, Entry] = {}
        self.marks: dict[str, datetime] = {}

    def save(self, entry: Entry) -> bool:
        if entry.uid in self.entries:
            return False
        self.entries[entry.uid] = entry
        return True

    def load(self, channel_id: str, max_items: int) -> list[Entry]:
        return self._channel_entries(channel_id)[:max_items]

    def exists(self, entry: Entry) -> bool:
        return entry.uid in self.entries

    def remove_old(self, channel_id: str, keep: int) -> list[str]:
        old = self._channel_entries(channel_id)[keep:]
        for entry in old:
            del self.entries[entry.uid]
        return [entry.file for entry in old]

    def remove(self, entry: Entry) -> None:
        del self.entries[entry.uid]

    def mark_processed(self, entry: Entry) -> None:
        self.marks[entry.uid] = datetime.now(UTC)

    def check_processed(self, entry: Entry) -> tuple[bool, datetime | None]:
        ts = self.marks.get(entry.uid)
        return ts is not None, ts

    def count_processed(self) -> int:
        return len(self.marks)

    def last(self) -> Entry:
        if not self.entries:
            raise LookupError("no entries")
        return max(self.entries.values(), key=lambda e: e.published)

    def _channel_entries(self, channel_id: str) -> list[Entry]:
        entries = [e for e in self.entries.values() if e.channel_id == channel_id]
        return sorted(entries, key=lambda e: e.published, reverse=True)


class FakeRSSStore:
    """Collects saved feeds."""

    def __init__(self) -> None:
        self.saved: list[tuple[str, str]] = []

    def save(self, channel_id: str, rss: str) -> None:
        self.saved.append((channel_id, rss))


@pytest.fixture
def channel() -> ChannelSpec:
    """A single watched channel."""
    return ChannelSpec(id="chan1", name="Channel One", keep=5)


@pytest.fixture
def lister() -> FakeLister:
    return FakeLister()


@pytest.fixture
def downloader(tmp_path: Path) -> FakeDownloader:
    media = tmp_path / "media"
    media.mkdir()
    return FakeDownloader(media)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def rss_store() -> FakeRSSStore:
    return FakeRSSStore()


@pytest.fixture
def stop_event() -> threading.Event:
    return threading.Event()

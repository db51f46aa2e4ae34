"""Per-channel processing: list, dedup, download, save, trim and publish.

One call to `ChannelProcessor.process` handles a single channel for one
cycle. Errors that only affect a channel or an entry are logged and
skipped; store failures on the dedup and save paths are raised so the
scheduler can stop.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

import structlog

from tubecast.audio import mp3_duration
from tubecast.exceptions import Cancelled, FeedError, PartialRemoveError, StoreError
from tubecast.feed.builder import RSSFeedBuilder
from tubecast.interfaces import ChannelLister, Downloader, MetadataStore, RSSStore
from tubecast.models import ChannelSpec, Entry

logger = structlog.get_logger(__name__)

# entries updated more recently than this get their published time reset
RECENT_WINDOW = timedelta(hours=24)


@dataclass
class CycleStats:
    """Counters accumulated over one pass across all channels."""

    entries: int = 0
    processed: int = 0
    added: int = 0
    removed: int = 0
    ignored: int = 0
    skipped: int = 0

    def __str__(self) -> str:
        return (
            f"entries: {self.entries}, processed: {self.processed}, updated: {self.added}, "
            f"removed: {self.removed}, ignored: {self.ignored}, skipped: {self.skipped}"
        )


def _utc(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)


class ChannelProcessor:
    """Downloads new entries of a channel and keeps its feed up to date."""

    def __init__(
        self,
        lister: ChannelLister,
        downloader: Downloader,
        store: MetadataStore,
        rss_builder: RSSFeedBuilder,
        rss_store: RSSStore,
        keep_per_channel: int = 10,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the channel processor.

        Args:
            lister: Source of channel entries.
            downloader: Fetches audio for new entries.
            store: Metadata store for processed entries.
            rss_builder: Renders channel feeds.
            rss_store: Persists rendered feeds.
            keep_per_channel: Entries kept when a channel sets no limit.
            clock: Source of the current time, UTC now by default.
        """
        self.lister = lister
        self.downloader = downloader
        self.store = store
        self.rss_builder = rss_builder
        self.rss_store = rss_store
        self.keep_per_channel = keep_per_channel
        self.clock = clock or (lambda: datetime.now(UTC))
        self.logger = logger.bind(component="channel_processor")

    def keep(self, channel: ChannelSpec) -> int:
        """Effective retention count for a channel."""
        return channel.retention(self.keep_per_channel)

    def process(self, channel: ChannelSpec, stats: CycleStats, stop_event: threading.Event) -> bool:
        """Process one channel for the current cycle.

        Args:
            channel: Channel to process.
            stats: Cycle counters, updated in place.
            stop_event: Cancellation event, checked before every entry.

        Returns:
            True if at least one new entry was saved.

        Raises:
            Cancelled: If the stop event is set while processing.
            StoreError: If the store fails a dedup lookup or a save.
        """
        log = self.logger.bind(channel_id=channel.id, channel=channel.name)

        try:
            entries = self.lister.list(channel.id, channel.type)
        except Exception as e:
            log.warning("Failed to get channel entries", error=str(e))
            return False

        keep = self.keep(channel)
        log.info("Got channel entries", count=len(entries), limit=keep)

        changed, processed = False, 0
        for i, entry in enumerate(entries):
            if stop_event.is_set():
                raise Cancelled(f"processing of {channel.id} cancelled")

            stats.entries += 1
            if processed >= keep:
                break

            if not self.is_new(entry, channel):
                stats.skipped += 1
                processed += 1
                continue

            log.info("New entry", index=i + 1, video_id=entry.video_id, title=entry.title)

            try:
                file = self.downloader.fetch(entry.video_id, entry.file_name())
            except Exception as e:
                stats.ignored += 1
                log.warning("Failed to download entry", video_id=entry.video_id, error=str(e))
                continue
            processed += 1
            log.info("Downloaded entry", video_id=entry.video_id, file=file)

            entry = self.finalize(entry, file, channel)

            try:
                inserted = self.store.save(entry)
            except Exception as e:
                raise StoreError(f"failed to save entry {entry.uid}: {e}") from e
            if not inserted:
                log.warning("Attempt to save duplicate entry", uid=entry.uid)
            changed = True

            try:
                self.store.mark_processed(entry)
            except Exception as e:
                log.warning("Failed to set processed status", video_id=entry.video_id, error=str(e))

            stats.added += 1
            log.info("Saved entry", video_id=entry.video_id, title=entry.title, file=file)

        stats.processed += processed

        if changed:
            stats.removed += self.remove_old(channel)
            self.publish(channel)

        return changed

    def is_new(self, entry: Entry, channel: ChannelSpec) -> bool:
        """Check that an entry has neither a metadata row nor a processed mark.

        The metadata row alone is not enough: trimmed entries lose their row
        but keep the mark, and a listing mutated in place would otherwise
        bring them back in an endless download/remove loop.

        Raises:
            StoreError: If either lookup fails.
        """
        try:
            exists = self.store.exists(entry)
        except Exception as e:
            raise StoreError(f"failed to check if entry {entry.video_id} exists: {e}") from e
        if exists:
            return False

        try:
            found, _ = self.store.check_processed(entry)
        except Exception as e:
            raise StoreError(
                f"failed to check processed status of {entry.video_id} ({channel.id}): {e}"
            ) from e
        return not found

    def finalize(self, entry: Entry, file: str, channel: ChannelSpec) -> Entry:
        """Build the processed copy of a freshly downloaded entry."""
        now = self.clock()

        # pick the latest ts, updated can be older than published
        last = _utc(entry.published)
        if entry.updated is not None and _utc(entry.updated) > last:
            last = _utc(entry.updated)

        published = entry.published
        if now - last < RECENT_WINDOW:
            # bulk uploads to a fresh channel would otherwise land out of order
            self.logger.debug(
                "Reset published time",
                video_id=entry.video_id,
                old=entry.published.isoformat(),
                new=now.isoformat(),
            )
            published = now

        title = entry.title
        if channel.name not in title:
            title = f"{channel.name}: {title}"

        return entry.model_copy(
            update={
                "file": file,
                "published": published,
                "title": title,
                "duration": mp3_duration(file),
            }
        )

    def remove_old(self, channel: ChannelSpec) -> int:
        """Trim stored entries beyond the retention count and delete their files.

        Returns:
            Number of files deleted.
        """
        log = self.logger.bind(channel_id=channel.id, channel=channel.name)
        try:
            files = self.store.remove_old(channel.id, self.keep(channel))
        except PartialRemoveError as e:
            # metadata is gone either way, so the files have to go too
            log.warning("Failed to remove some old metadata", error=str(e))
            files = e.files

        removed = 0
        for f in files:
            try:
                Path(f).unlink()
            except OSError as e:
                log.warning("Failed to remove file", file=f, error=str(e))
                continue
            removed += 1
            log.info("Removed old file", file=f)
        return removed

    def publish(self, channel: ChannelSpec) -> None:
        """Render the channel feed and persist it, logging any failure."""
        log = self.logger.bind(channel_id=channel.id, channel=channel.name)
        try:
            rss = self.rss_builder.render(channel)
        except FeedError as e:
            log.warning("Failed to generate rss", error=str(e))
            return

        if not rss:
            log.info("No entries to publish, feed left untouched")
            return

        try:
            self.rss_store.save(channel.id, rss)
        except Exception as e:
            log.warning("Failed to save rss", error=str(e))

"""Scheduler loop running the channel processor on a fixed interval."""

import threading
import time
from pathlib import Path

import structlog

from tubecast.config import YouTubeSettings
from tubecast.exceptions import Cancelled, PipelineError, StoreError
from tubecast.feed.builder import RSSFeedBuilder
from tubecast.ingestion.processor import ChannelProcessor, CycleStats
from tubecast.interfaces import ChannelLister, Downloader, MetadataStore, RSSStore
from tubecast.models import ChannelSpec, Entry

logger = structlog.get_logger(__name__)


class YouTubeService:
    """Downloads audio from YouTube channels and republishes it as podcasts."""

    def __init__(
        self,
        channels: list[ChannelSpec],
        lister: ChannelLister,
        downloader: Downloader,
        store: MetadataStore,
        rss_store: RSSStore,
        root_url: str,
        keep_per_channel: int = 10,
        check_interval: float = 3600,
    ) -> None:
        """Initialize the service.

        Args:
            channels: Channels to watch.
            lister: Source of channel entries.
            downloader: Fetches audio for new entries.
            store: Metadata store for processed entries.
            rss_store: Persists rendered feeds.
            root_url: Public base URL the audio files are served under.
            keep_per_channel: Entries kept when a channel sets no limit.
            check_interval: Seconds between processing cycles.
        """
        self.channels = channels
        self.store = store
        self.rss_store = rss_store
        self.check_interval = check_interval
        self.rss_builder = RSSFeedBuilder(store, root_url, keep_per_channel)
        self.processor = ChannelProcessor(
            lister=lister,
            downloader=downloader,
            store=store,
            rss_builder=self.rss_builder,
            rss_store=rss_store,
            keep_per_channel=keep_per_channel,
        )
        self.logger = logger.bind(component="youtube_service")

    @classmethod
    def from_settings(
        cls,
        settings: YouTubeSettings,
        lister: ChannelLister,
        downloader: Downloader,
        store: MetadataStore,
        rss_store: RSSStore,
    ) -> "YouTubeService":
        """Build a service from the YouTube settings section."""
        return cls(
            channels=settings.channels,
            lister=lister,
            downloader=downloader,
            store=store,
            rss_store=rss_store,
            root_url=settings.root_url,
            keep_per_channel=settings.keep_per_channel,
            check_interval=settings.check_interval,
        )

    def run(self, stop_event: threading.Event) -> None:
        """Process all channels now and then on every interval until stopped.

        Cycles start on a fixed grid of `check_interval` seconds measured from
        the first one, so the time a cycle takes does not push later ones
        back. A cycle that overruns one or more ticks is followed at once by a
        single catch-up cycle, and the missed ticks are dropped.

        Blocks the calling thread.

        Raises:
            Cancelled: When the stop event is set.
            PipelineError: If a cycle fails with a non-recoverable error.
        """
        self.logger.info("Starting youtube service", channels=len(self.channels))
        for channel in self.channels:
            self.logger.info("Youtube feed", **channel.model_dump(mode="json"))

        next_tick = time.monotonic() + self.check_interval
        self._cycle(stop_event)
        while not stop_event.wait(max(0.0, next_tick - time.monotonic())):
            missed = max(0, int((time.monotonic() - next_tick) // self.check_interval))
            next_tick += (missed + 1) * self.check_interval
            self._cycle(stop_event)

        raise Cancelled("youtube service stopped")

    def _cycle(self, stop_event: threading.Event) -> None:
        try:
            self.process_channels(stop_event)
        except Cancelled:
            raise
        except Exception as e:
            raise PipelineError(f"failed to process channels: {e}") from e

    def process_channels(self, stop_event: threading.Event) -> CycleStats:
        """Run one cycle over all channels and log the aggregate counters."""
        stats = CycleStats()
        for channel in self.channels:
            self.processor.process(channel, stats, stop_event)

        self.logger.info(
            "All channels processed",
            channels=len(self.channels),
            stats=str(stats),
            lifetime=self.store.count_processed(),
        )

        try:
            last = self.store.last()
        except Exception as e:
            self.logger.debug("No last entry", error=str(e))
        else:
            self.logger.info("Last entry", entry=str(last))

        return stats

    def rss_feed(self, channel: ChannelSpec) -> str:
        """Render the current feed of a channel without saving it."""
        return self.rss_builder.render(channel)

    def store_rss(self, channel_id: str, rss: str) -> None:
        """Persist a rendered feed for a channel."""
        self.rss_store.save(channel_id, rss)

    def remove_entry(self, entry: Entry) -> None:
        """Remove an entry's metadata and its audio file.

        The processed mark stays, so the entry is not downloaded again.

        Raises:
            StoreError: If the store fails to remove the entry.
        """
        try:
            self.store.remove(entry)
        except Exception as e:
            raise StoreError(f"failed to remove entry {entry.uid}: {e}") from e

        if entry.file:
            try:
                Path(entry.file).unlink()
            except OSError as e:
                self.logger.warning("Failed to remove file", file=entry.file, error=str(e))

        self.logger.info("Removed entry", uid=entry.uid, file=entry.file)

"""File system storage for generated RSS feeds."""

from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


class RSSFileStore:
    """Writes each channel feed to `<location>/<channel_id>.xml`."""

    def __init__(self, location: str | Path) -> None:
        self.location = Path(location)
        self.logger = logger.bind(component="rss_file_store", location=str(self.location))

    def path_for(self, channel_id: str) -> Path:
        """Path of the feed file for a channel."""
        return self.location / f"{channel_id}.xml"

    def save(self, channel_id: str, rss: str) -> None:
        """Atomically replace the feed file of a channel.

        Raises:
            ValueError: If the document is empty.
            OSError: If the file can't be written.
        """
        if not rss:
            raise ValueError(f"refusing to save empty feed for {channel_id}")

        dest = self.path_for(channel_id)
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = dest.with_suffix(".xml.tmp")
        tmp.write_text(rss, encoding="utf-8")
        tmp.replace(dest)

        self.logger.info("Saved rss feed", channel_id=channel_id, file=str(dest))

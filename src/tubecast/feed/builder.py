"""RSS 2.0 podcast feed generation from stored channel entries.

Produces one <item> per retained entry with an audio enclosure pointing at
the published copy of the downloaded file, plus the iTunes and Media RSS
elements podcast clients expect.
"""

import os
import re
from datetime import UTC, datetime
from email.utils import format_datetime
from xml.etree import ElementTree as ET

import structlog

from tubecast.exceptions import FeedError
from tubecast.interfaces import MetadataStore
from tubecast.models import ChannelSpec, ChannelType, Entry

logger = structlog.get_logger(__name__)

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"
MEDIA_NS = "http://search.yahoo.com/mrss/"
ENCLOSURE_TYPE = "audio/mpeg"
PLAYLIST_URL = "https://www.youtube.com/playlist?list="
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# complement of the XML 1.0 Char production
_INVALID_XML_CHARS = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def rfc822(ts: datetime) -> str:
    """Format a timestamp as RFC 822 date with a numeric zone."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return format_datetime(ts)


def xml_safe(text: str) -> str:
    """Replace characters XML 1.0 can't carry with U+FFFD."""
    return _INVALID_XML_CHARS.sub("\ufffd", text)


def _add(parent: ET.Element, tag: str, text: str | None = None, **attrib: str) -> ET.Element:
    """Append a child element with sanitized text and attributes."""
    elem = ET.SubElement(parent, tag, attrib={k: xml_safe(v) for k, v in attrib.items()})
    if text is not None:
        elem.text = xml_safe(text)
    return elem


class RSSFeedBuilder:
    """Renders the retained entries of a channel into an RSS document."""

    def __init__(self, store: MetadataStore, root_url: str, keep_per_channel: int) -> None:
        """Initialize the feed builder.

        Args:
            store: Metadata store to load channel entries from.
            root_url: Public base URL the audio files are served under.
            keep_per_channel: Default number of items when a channel sets none.
        """
        self.store = store
        self.root_url = root_url.rstrip("/")
        self.keep_per_channel = keep_per_channel
        self.logger = logger.bind(component="rss_builder")

    def render(self, channel: ChannelSpec) -> str:
        """Render the RSS feed for a channel.

        Args:
            channel: Channel to render.

        Returns:
            Pretty-printed RSS XML, or an empty string if the store holds no
            entries for the channel. Callers must not persist an empty result.

        Raises:
            FeedError: If the channel entries can't be loaded.
        """
        try:
            entries = self.store.load(channel.id, channel.retention(self.keep_per_channel))
        except Exception as e:
            raise FeedError(f"failed to get channel entries for {channel.id}: {e}") from e

        if not entries:
            return ""

        now = datetime.now(UTC)
        rss = ET.Element(
            "rss",
            attrib={"version": "2.0", "xmlns:itunes": ITUNES_NS, "xmlns:media": MEDIA_NS},
        )
        feed = ET.SubElement(rss, "channel")

        link = entries[0].author_uri
        if channel.type == ChannelType.PLAYLIST:
            link = PLAYLIST_URL + channel.id

        _add(feed, "title", channel.name)
        _add(feed, "link", link)
        _add(feed, "description", "generated by tubecast")
        _add(feed, "language", channel.language)
        _add(feed, "pubDate", rfc822(entries[0].published))
        _add(feed, "lastBuildDate", rfc822(now))

        # channel thumbnail doubles as the podcast artwork
        image = entries[0].thumbnail_url
        if image:
            _add(feed, "itunes:image", href=image)
            _add(feed, "media:thumbnail", url=image)

        for entry in entries:
            self._add_item(feed, entry)

        ET.indent(rss, space="  ")
        return XML_DECLARATION + ET.tostring(rss, encoding="unicode")

    def enclosure_url(self, entry: Entry) -> str:
        """Public URL of the entry's audio file."""
        return f"{self.root_url}/{os.path.basename(entry.file)}"

    def _add_item(self, feed: ET.Element, entry: Entry) -> None:
        item = ET.SubElement(feed, "item")
        _add(item, "title", entry.title)
        _add(item, "description", entry.description)
        _add(item, "link", entry.link_href)
        _add(item, "pubDate", rfc822(entry.published))
        _add(item, "guid", entry.uid, isPermaLink="false")
        _add(item, "author", entry.author_name)
        _add(
            item,
            "enclosure",
            url=self.enclosure_url(entry),
            length=str(self._file_size(entry)),
            type=ENCLOSURE_TYPE,
        )
        if entry.duration > 0:
            _add(item, "itunes:duration", str(entry.duration))

    def _file_size(self, entry: Entry) -> int:
        try:
            return os.stat(entry.file).st_size
        except OSError as e:
            self.logger.warning(
                "Failed to get file size",
                file=entry.file,
                video_id=entry.video_id,
                title=entry.title,
                error=str(e),
            )
            return 0

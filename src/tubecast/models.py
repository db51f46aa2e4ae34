"""Data models for channel entries and channel configuration.

An Entry is built fresh by the channel lister on every call and becomes
durable only once the metadata store saves it.
"""

import hashlib
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field


class ChannelType(str, Enum):
    """Kind of YouTube source a channel spec points to."""

    CHANNEL = "channel"
    PLAYLIST = "playlist"


class Entry(BaseModel):
    """A single video of a channel and its processing state."""

    channel_id: str = Field(description="Channel or playlist ID the entry belongs to")
    video_id: str = Field(description="YouTube video ID")
    title: str = Field(default="", description="Video title")
    description: str = Field(default="", description="Media description")
    author_name: str = Field(default="", description="Channel author name")
    author_uri: str = Field(default="", description="Channel author URL")
    link_href: str = Field(default="", description="Link to the video page")
    thumbnail_url: str = Field(default="", description="Video thumbnail URL")
    published: datetime = Field(description="Publication timestamp")
    updated: datetime | None = Field(default=None, description="Last modification timestamp")
    file: str = Field(default="", description="Local audio file, empty until processed")
    duration: int = Field(default=0, description="Audio duration in seconds, 0 until computed")

    @computed_field
    @property
    def uid(self) -> str:
        """Stable unique identifier used as the dedup key."""
        return f"{self.channel_id}::{self.video_id}"

    def file_name(self) -> str:
        """Destination name for the downloaded audio, derived from the uid."""
        return hashlib.sha1(self.uid.encode()).hexdigest()

    def __str__(self) -> str:
        published = self.published.strftime("%Y-%m-%d %H:%M:%S%z")
        return (
            f"{{ChannelID:{self.channel_id}, VideoID:{self.video_id}, "
            f"Title:{self.title!r}, Published:{published}, File:{self.file}, "
            f"Duration:{self.duration}s}}"
        )


class ChannelSpec(BaseModel):
    """Configuration for one watched channel or playlist."""

    id: str = Field(description="YouTube channel or playlist ID")
    name: str = Field(description="Human readable name, used as feed title")
    type: ChannelType = Field(default=ChannelType.CHANNEL, description="Channel or playlist")
    keep: int = Field(default=0, ge=0, description="Entries to keep, 0 means global default")
    language: str = Field(default="en-us", description="Language tag for the feed")

    def retention(self, default: int) -> int:
        """Effective number of entries to keep for this channel."""
        return self.keep if self.keep > 0 else default

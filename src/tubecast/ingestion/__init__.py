"""YouTube ingestion: per-channel processing and the scheduler loop."""

from tubecast.ingestion.processor import ChannelProcessor, CycleStats
from tubecast.ingestion.scheduler import YouTubeService

__all__ = ["ChannelProcessor", "CycleStats", "YouTubeService"]

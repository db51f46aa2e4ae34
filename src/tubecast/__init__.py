"""Tubecast - YouTube to Podcast Pipeline.

Watches YouTube channels and playlists, downloads new audio, keeps the
most recent entries per channel and publishes them as podcast RSS feeds.
"""

__version__ = "0.1.0"

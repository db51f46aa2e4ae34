"""Audio inspection helpers."""

from tubecast.audio.duration import FrameHeader, mp3_duration, parse_frame_header

__all__ = ["mp3_duration", "parse_frame_header", "FrameHeader"]

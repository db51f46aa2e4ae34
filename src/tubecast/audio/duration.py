"""MP3 duration extraction by walking the MPEG audio frame structure.

Tag-based lengths (Xing/VBRI headers, ID3 TLEN) are not trusted here: the
duration is the sum of the playback time of every frame actually present
in the file, so a truncated download is detected instead of reported with
the length it was supposed to have.
"""

import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import structlog

logger = structlog.get_logger(__name__)

HEADER_SIZE = 4
ID3V2_HEADER_SIZE = 10
ID3V1_SIZE = 128

# consecutive frames needed before a sync word is trusted
SYNC_FRAMES = 3
SCAN_CHUNK = 64 * 1024

MPEG1, MPEG2, MPEG25 = 1, 2, 25

# kbps, indexed by the 4-bit bitrate index; 0 is free format, 15 is invalid
_BITRATES = {
    (MPEG1, 1): (0, 32, 64, 96, 128, 160, 192, 224, 256, 288, 320, 352, 384, 416, 448),
    (MPEG1, 2): (0, 32, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320, 384),
    (MPEG1, 3): (0, 32, 40, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320),
    (MPEG2, 1): (0, 32, 48, 56, 64, 80, 96, 112, 128, 144, 160, 176, 192, 224, 256),
    (MPEG2, 2): (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160),
    (MPEG2, 3): (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160),
}

_SAMPLE_RATES = {
    MPEG1: (44100, 48000, 32000),
    MPEG2: (22050, 24000, 16000),
    MPEG25: (11025, 12000, 8000),
}

_VERSIONS = {0b00: MPEG25, 0b10: MPEG2, 0b11: MPEG1}
_LAYERS = {0b01: 3, 0b10: 2, 0b11: 1}


class FrameDecodeError(Exception):
    """Raised when the bitstream breaks off or turns invalid mid-stream."""

    pass


@dataclass(frozen=True)
class FrameHeader:
    """Decoded fields of a 4-byte MPEG audio frame header."""

    version: int
    layer: int
    bitrate: int
    sample_rate: int
    padding: bool

    @property
    def samples(self) -> int:
        """Number of PCM samples encoded in the frame."""
        if self.layer == 1:
            return 384
        if self.layer == 3 and self.version != MPEG1:
            return 576
        return 1152

    @property
    def frame_length(self) -> int:
        """Total frame size in bytes, header included."""
        if self.layer == 1:
            return (12 * self.bitrate // self.sample_rate + int(self.padding)) * 4
        return self.samples // 8 * self.bitrate // self.sample_rate + int(self.padding)

    @property
    def duration(self) -> float:
        """Playback time of the frame in seconds."""
        return self.samples / self.sample_rate


def parse_frame_header(data: bytes) -> FrameHeader | None:
    """Decode a frame header, returning None if the bytes are not a valid one."""
    if len(data) < HEADER_SIZE or data[0] != 0xFF or data[1] & 0xE0 != 0xE0:
        return None

    version = _VERSIONS.get((data[1] >> 3) & 0b11)
    layer = _LAYERS.get((data[1] >> 1) & 0b11)
    if version is None or layer is None:
        return None

    bitrate_index = data[2] >> 4
    rate_index = (data[2] >> 2) & 0b11
    if bitrate_index in (0, 15) or rate_index == 3:
        return None

    table_version = MPEG1 if version == MPEG1 else MPEG2
    return FrameHeader(
        version=version,
        layer=layer,
        bitrate=_BITRATES[(table_version, layer)][bitrate_index] * 1000,
        sample_rate=_SAMPLE_RATES[version][rate_index],
        padding=bool((data[2] >> 1) & 0b1),
    )


def _id3v2_size(header: bytes) -> int:
    """Size of an ID3v2 tag (header and optional footer included)."""
    size = 0
    for b in header[6:10]:
        size = (size << 7) | (b & 0x7F)
    footer = ID3V2_HEADER_SIZE if header[5] & 0x10 else 0
    return ID3V2_HEADER_SIZE + size + footer


def _same_stream(first: FrameHeader, header: FrameHeader) -> bool:
    return (
        header.version == first.version
        and header.layer == first.layer
        and header.sample_rate == first.sample_rate
    )


def _stream_ends(fh: BinaryIO, pos: int, file_size: int) -> bool:
    """True if `pos` is the end of the file or the start of a trailing ID3v1 tag."""
    if pos == file_size:
        return True
    if file_size - pos != ID3V1_SIZE:
        return False
    fh.seek(pos)
    return fh.read(3) == b"TAG"


def _starts_stream(fh: BinaryIO, pos: int, first: FrameHeader, file_size: int) -> bool:
    """Check that a candidate frame at `pos` is followed by matching frames.

    A run of SYNC_FRAMES back-to-back frames, or a shorter run that ends
    exactly at the end of the audio, confirms the stream.
    """
    header = first
    for _ in range(SYNC_FRAMES - 1):
        pos += header.frame_length
        if pos > file_size:
            return False
        if _stream_ends(fh, pos, file_size):
            return True
        fh.seek(pos)
        header = parse_frame_header(fh.read(HEADER_SIZE))
        if header is None or not _same_stream(first, header):
            return False
    return True


def _next_candidate(fh: BinaryIO, pos: int) -> int:
    """Offset of the next byte after `pos` that may start a frame or an ID3v2 tag."""
    offset = pos + 1
    fh.seek(offset)
    while True:
        chunk = fh.read(SCAN_CHUNK)
        if not chunk:
            return offset
        hits = [i for i in (chunk.find(b"\xff"), chunk.find(b"I")) if i >= 0]
        if hits:
            return offset + min(hits)
        offset += len(chunk)


def iter_frames(fh: BinaryIO, file_size: int) -> Iterator[FrameHeader]:
    """Yield the header of every MPEG frame in the stream.

    Leading junk is skipped until a run of consecutive frames confirms the
    start of the audio. From then on every frame must follow the previous
    one directly. ID3v2 tags are skipped wherever they appear and an ID3v1
    tag ends the stream.

    Raises:
        FrameDecodeError: If the stream breaks off or holds an invalid
            header once the audio has started.
    """
    pos = 0
    first: FrameHeader | None = None
    while pos < file_size:
        fh.seek(pos)
        head = fh.read(ID3V2_HEADER_SIZE)

        if head.startswith(b"ID3") and len(head) == ID3V2_HEADER_SIZE:
            pos += _id3v2_size(head)
            continue
        if head.startswith(b"TAG") and file_size - pos == ID3V1_SIZE:
            return

        header = parse_frame_header(head[:HEADER_SIZE])
        if first is None:
            if header is None or not _starts_stream(fh, pos, header, file_size):
                pos = _next_candidate(fh, pos)
                continue
            first = header
        elif header is None or not _same_stream(first, header):
            raise FrameDecodeError(f"invalid frame header at offset {pos}")

        end = pos + header.frame_length
        if end > file_size:
            raise FrameDecodeError(
                f"frame at offset {pos} needs {header.frame_length} bytes, "
                f"only {file_size - pos} left"
            )
        yield header
        pos = end


def mp3_duration(path: str | Path) -> int:
    """Scan an MP3 file and return its duration in whole seconds.

    Never raises: any open, read or decode problem is logged and reported
    as 0, as a partial sum would publish a misleading length.
    """
    log = logger.bind(component="duration", file=str(path))
    try:
        with open(path, "rb") as fh:
            file_size = os.fstat(fh.fileno()).st_size
            duration = sum(frame.duration for frame in iter_frames(fh, file_size))
    except FrameDecodeError as e:
        log.warning("Can't decode mp3 file", error=str(e))
        return 0
    except OSError as e:
        log.warning("Can't get duration, failed to read file", error=str(e))
        return 0

    return int(duration)

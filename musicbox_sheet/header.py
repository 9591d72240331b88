"""
MIDI header chunk (MThd) decoding.

The header payload holds three big-endian 16-bit words: file format, number of
tracks and the timing division. Bit 15 of the division selects metrical timing
(pulses per quarter note in bits 0-14) or timecode timing (negative frames per
second in the high byte, sub-frame resolution in the low byte).
"""

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from .chunks import Chunk, HEADER_CHUNK_ID
from .errors import MalformedFileError

__all__ = [
    'MidiFileFormat',
    'TimingScheme',
    'MetricalTiming',
    'TimecodeTiming',
    'TimingDivision',
    'MidiHeader',
    'decode_header',
]

HEADER_FIELDS = struct.Struct('>HHH')
SMPTE_FRAME_RATES = (24, 25, 29, 30)


class MidiFileFormat(IntEnum):
    SINGLE_TRACK = 0
    MULTI_TRACK = 1
    TYPE_2 = 2


class TimingScheme(IntEnum):
    METRICAL = 0
    TIMECODE = 1


@dataclass(frozen=True)
class MetricalTiming:
    """Tempo-relative timing: ticks are fractions of a quarter note."""
    pulses_per_quarter_note: int

    scheme = TimingScheme.METRICAL

    def seconds_per_tick(self, microseconds_per_quarter: int) -> float:
        return microseconds_per_quarter / 1_000_000.0 / self.pulses_per_quarter_note


@dataclass(frozen=True)
class TimecodeTiming:
    """Absolute timing: ticks are fractions of an SMPTE frame."""
    frames_per_second: int
    sub_frame_resolution: int

    scheme = TimingScheme.TIMECODE

    def seconds_per_tick(self, microseconds_per_quarter: int = 0) -> float:
        # 29 denotes 30 fps drop-frame
        fps = 29.97 if self.frames_per_second == 29 else float(self.frames_per_second)
        return 1.0 / (fps * self.sub_frame_resolution)


TimingDivision = Union[MetricalTiming, TimecodeTiming]


@dataclass(frozen=True)
class MidiHeader:
    format: MidiFileFormat
    track_count: int
    raw_timing_data: int
    timing: TimingDivision

    @property
    def is_multi_track(self) -> bool:
        return self.format == MidiFileFormat.MULTI_TRACK


def decode_timing_division(raw: int) -> TimingDivision:
    """
    Interpret the raw 16-bit division word.

    Raises:
        MalformedFileError: If the division cannot be used to time events
    """
    if raw & 0x8000:
        high = (raw >> 8) & 0xFF
        frames_per_second = 256 - high
        sub_frame_resolution = raw & 0xFF
        if frames_per_second not in SMPTE_FRAME_RATES or sub_frame_resolution == 0:
            raise MalformedFileError(
                f"Invalid timecode division 0x{raw:04X}: "
                f"{frames_per_second} fps, {sub_frame_resolution} sub-frames"
            )
        return TimecodeTiming(frames_per_second, sub_frame_resolution)

    pulses_per_quarter_note = raw & 0x7FFF
    if pulses_per_quarter_note == 0:
        raise MalformedFileError("Metrical division declares 0 pulses per quarter note")
    return MetricalTiming(pulses_per_quarter_note)


def decode_header(chunk: Chunk) -> MidiHeader:
    """
    Decode an MThd chunk.

    The declared track count is reported as-is; it is not checked against the
    number of track chunks that follow.

    Args:
        chunk: Header chunk as returned by read_chunks

    Returns:
        Decoded MidiHeader

    Raises:
        MalformedFileError: If the payload is short or holds unknown values
    """
    if chunk.chunk_id != HEADER_CHUNK_ID:
        raise MalformedFileError(f"Expected '{HEADER_CHUNK_ID}' chunk, got '{chunk.chunk_id}'")
    if len(chunk.data) < HEADER_FIELDS.size:
        raise MalformedFileError(
            f"Header chunk holds {len(chunk.data)} bytes, need {HEADER_FIELDS.size}"
        )

    file_format, track_count, raw_timing = HEADER_FIELDS.unpack_from(chunk.data, 0)
    try:
        file_format = MidiFileFormat(file_format)
    except ValueError:
        raise MalformedFileError(f"Unknown MIDI file format {file_format}") from None

    return MidiHeader(
        format=file_format,
        track_count=track_count,
        raw_timing_data=raw_timing,
        timing=decode_timing_division(raw_timing),
    )

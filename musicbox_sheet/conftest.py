"""
Shared fixtures: byte-level MIDI builders and small music box profiles.
"""

import struct

import pytest

from musicbox_sheet.config import MusicBoxProfile, SvgFormatOptions


class MidiBuilder:
    """Assemble Standard MIDI File bytes by hand."""

    @staticmethod
    def vlq(value: int) -> bytes:
        out = [value & 0x7F]
        value >>= 7
        while value:
            out.append((value & 0x7F) | 0x80)
            value >>= 7
        return bytes(reversed(out))

    @staticmethod
    def chunk(chunk_id: bytes, payload: bytes) -> bytes:
        return chunk_id + struct.pack('>I', len(payload)) + payload

    @classmethod
    def header(cls, fmt: int = 1, track_count: int = 2, division: int = 192) -> bytes:
        return cls.chunk(b'MThd', struct.pack('>HHH', fmt, track_count, division))

    @classmethod
    def track(cls, payload: bytes) -> bytes:
        return cls.chunk(b'MTrk', payload)

    @classmethod
    def event(cls, delta: int, *data: int) -> bytes:
        return cls.vlq(delta) + bytes(data)

    @classmethod
    def tempo(cls, delta: int, microseconds_per_quarter: int) -> bytes:
        return cls.event(delta, 0xFF, 0x51, 0x03) + microseconds_per_quarter.to_bytes(3, 'big')

    @classmethod
    def end_of_track(cls, delta: int = 0) -> bytes:
        return cls.event(delta, 0xFF, 0x2F, 0x00)

    @classmethod
    def file(cls, fmt: int, division: int, *track_payloads: bytes) -> bytes:
        return cls.header(fmt, len(track_payloads), division) + b''.join(
            cls.track(p) for p in track_payloads
        )

    @classmethod
    def melody(cls, notes, ticks_per_note: int, channel: int = 0) -> bytes:
        """Track payload playing `notes` back to back, each ticks_per_note long."""
        payload = b''
        for note in notes:
            payload += cls.event(0, 0x90 | channel, note, 0x64)
            payload += cls.event(ticks_per_note, 0x80 | channel, note, 0x40)
        return payload + cls.end_of_track()


C4_OCTAVE = (60, 62, 64, 65, 67, 69, 71, 72)


@pytest.fixture
def smf():
    """Byte builder for hand-made MIDI files."""
    return MidiBuilder


@pytest.fixture
def c4_octave_bytes():
    """
    Rising C4..C5 scale, 0.5 s per note at 120 BPM and 192 PPQN.

    Track 0 sets the tempo once and ends 7680 ticks (20 s) later, track 1
    holds the eight notes.
    """
    conductor = MidiBuilder.tempo(0, 500000) + MidiBuilder.end_of_track(7680)
    music = MidiBuilder.melody(C4_OCTAVE, 192)
    return MidiBuilder.file(1, 192, conductor, music)


@pytest.fixture
def small_profile():
    """
    Four-note box: 40 mm paper, 30 mm between outer note lines (10 mm apart),
    2 mm holes, 10 mm/s, 3 mm minimum gap.
    """
    return MusicBoxProfile(
        name='Test Four',
        paper_width_mm=40.0,
        content_width_mm=30.0,
        hole_diameter_mm=2.0,
        min_note_gap_mm=3.0,
        millimeters_per_second=10.0,
        supported_notes=(60, 62, 64, 65),
    )


@pytest.fixture
def continuous_options():
    return SvgFormatOptions(page_width_mm=0.0, start_padding_mm=0.0)

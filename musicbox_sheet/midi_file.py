"""
Standard MIDI File decoding.

Ties the chunk reader, header decoder and track decoder together into an
immutable MidiFile, and provides the debug JSON view and summary statistics
shown next to a layout.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from .chunks import HEADER_CHUNK_ID, TRACK_CHUNK_ID, read_chunks
from .errors import MalformedFileError
from .events import NoteOn, event_to_dict
from .header import MidiFileFormat, MidiHeader, MetricalTiming, decode_header
from .track import MidiTrack, TempoMap, decode_track

__all__ = [
    'MidiFile',
    'MidiStatistics',
    'decode_midi_file',
    'load_midi_file',
    'compute_statistics',
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class MidiFile:
    """A decoded file: one header followed by its track chunks, in file order."""
    header: MidiHeader
    tracks: Tuple[MidiTrack, ...]

    @property
    def chunks(self) -> Tuple[Union[MidiHeader, MidiTrack], ...]:
        return (self.header,) + self.tracks

    @property
    def music_track_index(self) -> int:
        """
        Index of the track holding the melody.

        Multi-track files keep tempo information in track 0, so the music is
        track 1. Single-track (and type 2) files use track 0.
        """
        if self.header.format == MidiFileFormat.MULTI_TRACK:
            if len(self.tracks) > 1:
                return 1
            logger.warning("Multi-track file has a single track, using track 0 as music track")
        return 0

    @property
    def music_track(self) -> MidiTrack:
        return self.tracks[self.music_track_index]

    def to_dict(self) -> Dict[str, Any]:
        """
        JSON-friendly view of the chunk/event tree.

        The raw timing word is left out; the decoded timing fields are shown
        instead, with enum names for the format and timing scheme.
        """
        timing = self.header.timing
        header: Dict[str, Any] = {
            'id': HEADER_CHUNK_ID,
            'format': self.header.format.name,
            'track_count': self.header.track_count,
            'timing_scheme': timing.scheme.name,
        }
        if isinstance(timing, MetricalTiming):
            header['pulses_per_quarter_note'] = timing.pulses_per_quarter_note
        else:
            header['frames_per_second'] = timing.frames_per_second
            header['sub_frame_resolution'] = timing.sub_frame_resolution

        tracks = [
            {
                'id': TRACK_CHUNK_ID,
                'length': track.length,
                'events': [event_to_dict(e) for e in track.events],
            }
            for track in self.tracks
        ]
        return {'chunks': [header] + tracks}

    def to_json(self, indent: int = 4) -> str:
        return json.dumps(self.to_dict(), indent=indent)


def decode_midi_file(buffer: bytes, conductor_tempo: bool = False) -> MidiFile:
    """
    Decode a complete Standard MIDI File held in memory.

    Args:
        buffer: Raw file contents
        conductor_tempo: For multi-track files, time every track with the tempo
            changes of track 0 instead of each track's own tempo events

    Returns:
        Decoded MidiFile

    Raises:
        MalformedFileError: If the container, header or any track is invalid
        MidiNotImplementedError: If a track holds SysEx events
    """
    chunks = read_chunks(buffer)
    if not chunks or chunks[0].chunk_id != HEADER_CHUNK_ID:
        raise MalformedFileError("File does not start with a header chunk")
    if any(c.chunk_id == HEADER_CHUNK_ID for c in chunks[1:]):
        raise MalformedFileError("File contains more than one header chunk")

    header = decode_header(chunks[0])
    track_chunks = chunks[1:]
    if not track_chunks:
        raise MalformedFileError("File contains no track chunks")
    if len(track_chunks) != header.track_count:
        logger.debug("Header declares %d tracks, file holds %d",
                     header.track_count, len(track_chunks))

    tracks: List[MidiTrack] = []
    tempo_map: Optional[TempoMap] = None
    for index, chunk in enumerate(track_chunks):
        track = decode_track(chunk.data, header.timing, tempo_map=tempo_map)
        tracks.append(track)
        if index == 0 and conductor_tempo and header.format == MidiFileFormat.MULTI_TRACK:
            tempo_map = TempoMap.from_track(track, header.timing)

    logger.debug("Decoded %s file with %d tracks", header.format.name, len(tracks))
    return MidiFile(header=header, tracks=tuple(tracks))


def load_midi_file(path: Union[str, Path], conductor_tempo: bool = False) -> MidiFile:
    """Read and decode a MIDI file from disk."""
    with open(path, 'rb') as f:
        return decode_midi_file(f.read(), conductor_tempo=conductor_tempo)


# ============================================================================
# STATISTICS
# ============================================================================

@dataclass(frozen=True)
class MidiStatistics:
    tempos_bpm: Tuple[float, ...]
    lowest_note: Optional[int]
    highest_note: Optional[int]
    duration_seconds: float
    note_histogram: Dict[int, int]

    @property
    def note_count(self) -> int:
        return sum(self.note_histogram.values())


def compute_statistics(midi_file: MidiFile) -> MidiStatistics:
    """
    Summarize a decoded file.

    Tempos come from every track in file order; the note range and per-pitch
    histogram count the sounding NoteOn events (velocity > 0) of the music
    track; duration is the latest event time across all tracks.
    """
    tempos = tuple(
        event.bpm
        for track in midi_file.tracks
        for event in track.tempo_events
    )

    notes = np.array(
        [e.note for e in midi_file.music_track.events
         if isinstance(e, NoteOn) and not e.is_note_off],
        dtype=np.int64,
    )
    if notes.size:
        counts = np.bincount(notes, minlength=128)
        histogram = {int(n): int(counts[n]) for n in np.flatnonzero(counts)}
        lowest, highest = int(notes.min()), int(notes.max())
    else:
        histogram = {}
        lowest = highest = None

    duration = max((t.end_time_seconds for t in midi_file.tracks), default=0.0)
    return MidiStatistics(
        tempos_bpm=tempos,
        lowest_note=lowest,
        highest_note=highest,
        duration_seconds=duration,
        note_histogram=histogram,
    )

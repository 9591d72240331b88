"""
MIDI track chunk (MTrk) decoding.

A track is a run of <delta-time><event> pairs. The decoder walks it left to
right, keeping the running status byte and the live tempo, and stamps every
event with its absolute time in seconds.
"""

import logging
from bisect import bisect_right
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .chunks import read_variable_length_quantity
from .errors import MalformedFileError, MidiNotImplementedError
from .events import (
    ChannelEvent,
    ChannelMessageType,
    ChannelPressure,
    ControllerChange,
    MetaEvent,
    MidiEvent,
    NoteOff,
    NoteOn,
    PitchBend,
    PolyphonicPressure,
    ProgramChange,
)
from .header import MetricalTiming, TimingDivision

__all__ = [
    'DEFAULT_MICROSECONDS_PER_QUARTER',
    'MidiTrack',
    'TempoMap',
    'decode_track',
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

DEFAULT_MICROSECONDS_PER_QUARTER = 500000  # 120 BPM

META_STATUS = 0xFF
SYSEX_STATUSES = (0xF0, 0xF7)

# Message type -> (data byte count, event factory)
_CHANNEL_MESSAGES: Dict[ChannelMessageType, Tuple[int, Callable[..., ChannelEvent]]] = {
    ChannelMessageType.NOTE_OFF: (
        2, lambda dt, t, ch, d: NoteOff(dt, t, ch, note=d[0], velocity=d[1])),
    ChannelMessageType.NOTE_ON: (
        2, lambda dt, t, ch, d: NoteOn(dt, t, ch, note=d[0], velocity=d[1])),
    ChannelMessageType.POLYPHONIC_PRESSURE: (
        2, lambda dt, t, ch, d: PolyphonicPressure(dt, t, ch, note=d[0], pressure=d[1])),
    ChannelMessageType.CONTROLLER_CHANGE: (
        2, lambda dt, t, ch, d: ControllerChange(dt, t, ch, controller=d[0], value=d[1])),
    ChannelMessageType.PROGRAM_CHANGE: (
        1, lambda dt, t, ch, d: ProgramChange(dt, t, ch, program=d[0])),
    ChannelMessageType.CHANNEL_PRESSURE: (
        1, lambda dt, t, ch, d: ChannelPressure(dt, t, ch, pressure=d[0])),
    ChannelMessageType.PITCH_BEND: (
        2, lambda dt, t, ch, d: PitchBend(dt, t, ch, value=d[0] | (d[1] << 7))),
}


@dataclass(frozen=True)
class MidiTrack:
    """Decoded track: its events in file order."""
    length: int
    events: Tuple[MidiEvent, ...]

    @property
    def note_on_events(self) -> List[NoteOn]:
        return [e for e in self.events if isinstance(e, NoteOn)]

    @property
    def tempo_events(self) -> List[MetaEvent]:
        return [e for e in self.events if isinstance(e, MetaEvent) and e.is_set_tempo]

    @property
    def end_time_seconds(self) -> float:
        return self.events[-1].absolute_time_seconds if self.events else 0.0


class TempoMap:
    """
    Tick -> seconds conversion driven by a list of tempo changes.

    Used to time every track of a multi-track file from the tempo changes of
    its first (conductor) track.
    """

    def __init__(self, timing: TimingDivision, changes: Sequence[Tuple[int, int]] = ()):
        self.timing = timing
        self._ticks: List[int] = [0]
        self._seconds: List[float] = [0.0]
        self._seconds_per_tick: List[float] = [
            timing.seconds_per_tick(DEFAULT_MICROSECONDS_PER_QUARTER)
        ]
        if not isinstance(timing, MetricalTiming):
            return

        for tick, microseconds_per_quarter in sorted(changes, key=lambda c: c[0]):
            seconds = self.seconds_at(tick)
            spt = timing.seconds_per_tick(microseconds_per_quarter)
            if tick == self._ticks[-1]:
                self._seconds_per_tick[-1] = spt
            else:
                self._ticks.append(tick)
                self._seconds.append(seconds)
                self._seconds_per_tick.append(spt)

    @classmethod
    def from_track(cls, track: MidiTrack, timing: TimingDivision) -> 'TempoMap':
        changes = []
        tick = 0
        for event in track.events:
            tick += event.delta_time
            if isinstance(event, MetaEvent) and event.is_set_tempo:
                changes.append((tick, event.microseconds_per_quarter))
        return cls(timing, changes)

    def seconds_at(self, tick: int) -> float:
        index = bisect_right(self._ticks, tick) - 1
        return self._seconds[index] + (tick - self._ticks[index]) * self._seconds_per_tick[index]


def _read_data_bytes(data: bytes, position: int, count: int, status: int) -> Tuple[bytes, int]:
    end = position + count
    if end > len(data):
        raise MalformedFileError(
            f"Channel message 0x{status:02X} at offset {position} needs {count} data "
            f"bytes, {len(data) - position} available"
        )
    payload = data[position:end]
    for byte in payload:
        if byte > 0x7F:
            raise MalformedFileError(
                f"Data byte 0x{byte:02X} of message 0x{status:02X} at offset {position} "
                f"has bit 7 set"
            )
    return payload, end


def _decode_meta(data: bytes, position: int, delta_time: int, seconds: float) -> Tuple[MetaEvent, int]:
    if position >= len(data):
        raise MalformedFileError(f"Meta event at offset {position} is missing its type byte")
    meta_type = data[position]
    length, start = read_variable_length_quantity(data, position + 1)
    end = start + length
    if end > len(data):
        raise MalformedFileError(
            f"Meta event 0x{meta_type:02X} at offset {position} declares {length} bytes, "
            f"{len(data) - start} available"
        )
    return MetaEvent(delta_time, seconds, meta_type=meta_type, data=data[start:end]), end


def decode_track(
    data: bytes,
    timing: TimingDivision,
    tempo_map: Optional[TempoMap] = None
) -> MidiTrack:
    """
    Decode the payload of one track chunk.

    Timing starts at 120 BPM. A SetTempo meta event changes the tempo for every
    following delta in the same track, unless `tempo_map` is given, in which
    case the map alone times the track. An EndOfTrack meta event with an empty
    payload stops decoding even if bytes remain.

    Args:
        data: Track chunk payload
        timing: Division from the file header
        tempo_map: Optional shared tempo map (conductor track timing)

    Returns:
        Decoded MidiTrack

    Raises:
        MalformedFileError: On truncated events or invalid status bytes
        MidiNotImplementedError: If a SysEx event is encountered
    """
    events: List[MidiEvent] = []
    position = 0
    running_status: Optional[int] = None

    seconds_per_tick = timing.seconds_per_tick(DEFAULT_MICROSECONDS_PER_QUARTER)
    anchor_seconds = 0.0
    ticks_since_anchor = 0
    absolute_ticks = 0

    while position < len(data):
        delta_time, position = read_variable_length_quantity(data, position)
        absolute_ticks += delta_time
        ticks_since_anchor += delta_time
        if tempo_map is not None:
            seconds = tempo_map.seconds_at(absolute_ticks)
        else:
            seconds = anchor_seconds + ticks_since_anchor * seconds_per_tick

        if position >= len(data):
            raise MalformedFileError(f"Track ends after a delta-time at offset {position}")

        status = data[position]
        if status < 0x80:
            # Running status: this byte is already the first data byte
            if running_status is None:
                raise MalformedFileError(
                    f"Data byte 0x{status:02X} at offset {position} without a running status"
                )
            status = running_status
        else:
            position += 1

        if status == META_STATUS:
            running_status = None
            meta_offset = position - 1
            event, position = _decode_meta(data, position, delta_time, seconds)
            if event.is_set_tempo and event.microseconds_per_quarter == 0:
                raise MalformedFileError(
                    f"SetTempo at offset {meta_offset} declares 0 microseconds per quarter note"
                )
            events.append(event)
            if event.is_set_tempo and tempo_map is None and isinstance(timing, MetricalTiming):
                anchor_seconds = seconds
                ticks_since_anchor = 0
                seconds_per_tick = timing.seconds_per_tick(event.microseconds_per_quarter)
                logger.debug("Tempo change to %.2f BPM at %.3fs", event.bpm, seconds)
            if event.is_end_of_track and not event.data:
                break
            continue

        if status in SYSEX_STATUSES:
            raise MidiNotImplementedError(
                f"SysEx event (0x{status:02X}) at offset {position - 1} is not supported"
            )

        if status > 0xEF:
            raise MalformedFileError(
                f"Status byte 0x{status:02X} at offset {position - 1} is not valid in a track"
            )

        try:
            message_type = ChannelMessageType(status >> 4)
        except ValueError:
            raise MalformedFileError(f"Unrecognized channel message 0x{status:02X}") from None
        data_length, factory = _CHANNEL_MESSAGES[message_type]
        payload, position = _read_data_bytes(data, position, data_length, status)
        events.append(factory(delta_time, seconds, status & 0x0F, payload))
        running_status = status

    return MidiTrack(length=len(data), events=tuple(events))

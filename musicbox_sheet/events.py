"""
MIDI track event types.

Events form a tagged union: each channel message kind is its own frozen
dataclass carrying only the fields that kind uses, plus MetaEvent for 0xFF
messages. SysEx messages have no variant, decoding them is an error.

Every event carries its `delta_time` (ticks since the previous event in the
track) and `absolute_time_seconds`, which is computed once by the track decoder.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional, Union

__all__ = [
    'ChannelMessageType',
    'MetaMessageType',
    'NoteOff',
    'NoteOn',
    'PolyphonicPressure',
    'ControllerChange',
    'ProgramChange',
    'ChannelPressure',
    'PitchBend',
    'MetaEvent',
    'ChannelEvent',
    'MidiEvent',
    'event_to_dict',
]


class ChannelMessageType(IntEnum):
    """High nibble of a channel message status byte (low nibble = channel)."""
    NOTE_OFF = 0x8
    NOTE_ON = 0x9
    POLYPHONIC_PRESSURE = 0xA
    CONTROLLER_CHANGE = 0xB
    PROGRAM_CHANGE = 0xC
    CHANNEL_PRESSURE = 0xD
    PITCH_BEND = 0xE


class MetaMessageType(IntEnum):
    """Type byte following a 0xFF status."""
    SEQUENCE_NUMBER = 0x00
    TEXT = 0x01
    COPYRIGHT_NOTICE = 0x02
    TRACK_NAME = 0x03
    INSTRUMENT_NAME = 0x04
    LYRICS = 0x05
    MARKER = 0x06
    CUE_POINT = 0x07
    CHANNEL_PREFIX = 0x20
    END_OF_TRACK = 0x2F
    SET_TEMPO = 0x51
    SMPTE_OFFSET = 0x54
    TIME_SIGNATURE = 0x58
    KEY_SIGNATURE = 0x59
    SEQUENCER_SPECIFIC = 0x7F


TEXT_META_TYPES = frozenset({
    MetaMessageType.TEXT,
    MetaMessageType.COPYRIGHT_NOTICE,
    MetaMessageType.TRACK_NAME,
    MetaMessageType.INSTRUMENT_NAME,
    MetaMessageType.LYRICS,
    MetaMessageType.MARKER,
    MetaMessageType.CUE_POINT,
})


# ============================================================================
# CHANNEL EVENTS
# ============================================================================

@dataclass(frozen=True)
class NoteOff:
    delta_time: int
    absolute_time_seconds: float
    channel: int
    note: int
    velocity: int

    message_type = ChannelMessageType.NOTE_OFF


@dataclass(frozen=True)
class NoteOn:
    delta_time: int
    absolute_time_seconds: float
    channel: int
    note: int
    velocity: int

    message_type = ChannelMessageType.NOTE_ON

    @property
    def is_note_off(self) -> bool:
        """NoteOn with velocity 0 is conventionally a NoteOff."""
        return self.velocity == 0


@dataclass(frozen=True)
class PolyphonicPressure:
    delta_time: int
    absolute_time_seconds: float
    channel: int
    note: int
    pressure: int

    message_type = ChannelMessageType.POLYPHONIC_PRESSURE


@dataclass(frozen=True)
class ControllerChange:
    delta_time: int
    absolute_time_seconds: float
    channel: int
    controller: int
    value: int

    message_type = ChannelMessageType.CONTROLLER_CHANGE


@dataclass(frozen=True)
class ProgramChange:
    delta_time: int
    absolute_time_seconds: float
    channel: int
    program: int

    message_type = ChannelMessageType.PROGRAM_CHANGE


@dataclass(frozen=True)
class ChannelPressure:
    delta_time: int
    absolute_time_seconds: float
    channel: int
    pressure: int

    message_type = ChannelMessageType.CHANNEL_PRESSURE


@dataclass(frozen=True)
class PitchBend:
    """14-bit bend value, 0x2000 is centre."""
    delta_time: int
    absolute_time_seconds: float
    channel: int
    value: int

    message_type = ChannelMessageType.PITCH_BEND


# ============================================================================
# META EVENTS
# ============================================================================

@dataclass(frozen=True)
class MetaEvent:
    delta_time: int
    absolute_time_seconds: float
    meta_type: int
    data: bytes

    @property
    def is_end_of_track(self) -> bool:
        return self.meta_type == MetaMessageType.END_OF_TRACK

    @property
    def is_set_tempo(self) -> bool:
        return self.meta_type == MetaMessageType.SET_TEMPO and len(self.data) == 3

    @property
    def microseconds_per_quarter(self) -> Optional[int]:
        if not self.is_set_tempo:
            return None
        return int.from_bytes(self.data, 'big')

    @property
    def bpm(self) -> Optional[float]:
        tempo = self.microseconds_per_quarter
        if not tempo:
            return None
        return 60_000_000.0 / tempo

    @property
    def text(self) -> Optional[str]:
        if self.meta_type not in TEXT_META_TYPES:
            return None
        return self.data.decode('latin-1')


ChannelEvent = Union[
    NoteOff, NoteOn, PolyphonicPressure, ControllerChange,
    ProgramChange, ChannelPressure, PitchBend,
]
MidiEvent = Union[ChannelEvent, MetaEvent]


def _enum_name(enum_type, value: int) -> str:
    try:
        return enum_type(value).name
    except ValueError:
        return f"0x{value:02X}"


def event_to_dict(event: MidiEvent) -> Dict[str, Any]:
    """
    Convert an event to a JSON-friendly dict for debug display.

    Meta payloads are shown as text where the type is textual, otherwise as a
    hex string.
    """
    if isinstance(event, MetaEvent):
        result: Dict[str, Any] = {
            'kind': 'meta',
            'meta_type': _enum_name(MetaMessageType, event.meta_type),
            'delta_time': event.delta_time,
            'absolute_time_seconds': event.absolute_time_seconds,
        }
        if event.is_set_tempo:
            result['microseconds_per_quarter'] = event.microseconds_per_quarter
            result['bpm'] = event.bpm
        elif event.text is not None:
            result['text'] = event.text
        else:
            result['data'] = event.data.hex()
        return result

    result = {
        'kind': 'channel',
        'message_type': event.message_type.name,
    }
    for key, value in vars(event).items():
        result[key] = value
    return result

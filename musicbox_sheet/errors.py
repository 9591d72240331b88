"""
Error taxonomy for MIDI decoding and music box layout.

Every condition here is recoverable at the caller boundary: the CLI (or any
other front end) catches MusicBoxError and reports it instead of crashing.
"""

__all__ = [
    'MusicBoxError',
    'MalformedFileError',
    'MidiNotImplementedError',
    'NoPlayableNotesError',
    'PageTooSmallError',
]


class MusicBoxError(Exception):
    """Base class for all decode and layout failures."""


class MalformedFileError(MusicBoxError):
    """The buffer is too short for a declared chunk, field or event."""


class MidiNotImplementedError(MusicBoxError, NotImplementedError):
    """The file uses a MIDI feature the decoder refuses to handle (SysEx)."""


class NoPlayableNotesError(MusicBoxError):
    """No note in the music track can be played by the music box."""


class PageTooSmallError(MusicBoxError):
    """A note cannot be placed on a page even when it is alone on it."""

"""
MIDI note numbers and their names.

A4 (MIDI 69) is the 440 Hz tuning note. Octave numbering follows the common
convention where middle C (MIDI 60) is C4 and MIDI 0 is C-1.
"""

import re
from typing import Union

__all__ = ['NOTE_NAMES', 'MIN_NOTE', 'MAX_NOTE', 'note_name', 'parse_note']

NOTE_NAMES = ('C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B')
MIN_NOTE = 0
MAX_NOTE = 127

_FLATS = {'Db': 'C#', 'Eb': 'D#', 'Gb': 'F#', 'Ab': 'G#', 'Bb': 'A#'}
_NOTE_PATTERN = re.compile(r'^([A-Ga-g])([#b]?)(-?\d+)$')


def note_name(note: int) -> str:
    """
    Return the scientific pitch name of a MIDI note number.

    Args:
        note: MIDI note number (0-127)

    Returns:
        Name such as 'C4', 'F#5' or 'C-1'

    Raises:
        ValueError: If the number is outside the MIDI range
    """
    if not MIN_NOTE <= note <= MAX_NOTE:
        raise ValueError(f"MIDI note out of range: {note}")
    octave = note // 12 - 1
    return f"{NOTE_NAMES[note % 12]}{octave}"


def parse_note(value: Union[int, str]) -> int:
    """
    Parse a MIDI note given either as a number or as a name like 'C#4' / 'Bb3'.

    Raises:
        ValueError: If the value is not a valid note
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid note: {value!r}")
    if isinstance(value, int):
        note = value
    else:
        text = str(value).strip()
        if text.lstrip('-').isdigit():
            note = int(text)
        else:
            match = _NOTE_PATTERN.match(text)
            if not match:
                raise ValueError(f"Invalid note: {value!r}")
            letter, accidental, octave = match.groups()
            name = letter.upper() + accidental
            name = _FLATS.get(name, name)
            if name not in NOTE_NAMES:
                # Cb, Fb and friends wrap into the neighbouring letter
                offset = -1 if accidental == 'b' else 1
                base = NOTE_NAMES.index(letter.upper()) + offset
                note = (int(octave) + 1) * 12 + base
            else:
                note = (int(octave) + 1) * 12 + NOTE_NAMES.index(name)

    if not MIN_NOTE <= note <= MAX_NOTE:
        raise ValueError(f"MIDI note out of range: {value!r}")
    return note

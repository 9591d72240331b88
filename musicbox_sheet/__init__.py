"""
MIDI to music box sheet conversion package.

This package decodes Standard MIDI Files and lays out their melody as punch
holes on paginated paper tape for pin-and-hole music boxes.
"""

from .config import (
    MusicBoxProfile,
    SvgFormatOptions,
    get_profile,
    get_format_options,
    load_config,
)
from .errors import (
    MusicBoxError,
    MalformedFileError,
    MidiNotImplementedError,
    NoPlayableNotesError,
    PageTooSmallError,
)
from .midi_file import MidiFile, decode_midi_file, load_midi_file, compute_statistics
from .pipeline import LayoutResult, generate_layout, write_svg_pages

__all__ = [
    'MusicBoxProfile',
    'SvgFormatOptions',
    'get_profile',
    'get_format_options',
    'load_config',
    'MusicBoxError',
    'MalformedFileError',
    'MidiNotImplementedError',
    'NoPlayableNotesError',
    'PageTooSmallError',
    'MidiFile',
    'decode_midi_file',
    'load_midi_file',
    'compute_statistics',
    'LayoutResult',
    'generate_layout',
    'write_svg_pages',
]

"""
Note selection for a music box profile.

Turns the NoteOn events of the music track into the stream of holes to punch:
notes the box cannot play are transposed by whole octaves when allowed, or set
aside and counted; same-pitch notes closer than the box can mechanically
separate are merged into one hole.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import MusicBoxProfile
from .events import MidiEvent, NoteOn
from .notes import note_name

__all__ = [
    'PlacedNote',
    'LayoutDiagnostics',
    'NoteSelection',
    'find_octave_transposition',
    'select_notes',
    'coalesce_notes',
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class PlacedNote:
    """A note to punch: its time and the (possibly transposed) pitch."""
    time_seconds: float
    note: int
    source_note: int

    @property
    def is_transposed(self) -> bool:
        return self.note != self.source_note


@dataclass(frozen=True)
class LayoutDiagnostics:
    """Non-fatal findings collected while laying out a tape."""
    transposed_count: int = 0
    skipped_count: int = 0
    unsupported_count: int = 0
    unsupported_notes: Dict[int, int] = field(default_factory=dict)
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class NoteSelection:
    notes: Tuple[PlacedNote, ...]
    unsupported: Tuple[PlacedNote, ...]
    transposed_count: int
    skipped_count: int

    @property
    def unsupported_count(self) -> int:
        return len(self.unsupported)

    @property
    def unsupported_histogram(self) -> Dict[int, int]:
        return dict(sorted(Counter(n.source_note for n in self.unsupported).items()))

    def diagnostics(self, extra_warnings: Sequence[str] = ()) -> LayoutDiagnostics:
        warnings: List[str] = []
        if self.unsupported:
            names = ', '.join(
                f"{note_name(n)} x{count}" for n, count in self.unsupported_histogram.items()
            )
            warnings.append(
                f"Unsupported notes found: {self.unsupported_count} total ({names}). "
                f"Inspect MIDI file or music box profile"
            )
        if self.transposed_count:
            warnings.append(f"Transposed {self.transposed_count} out-of-range notes by whole octaves")
        if self.skipped_count:
            warnings.append(f"Merged {self.skipped_count} notes closer than the minimum note gap")
        warnings.extend(extra_warnings)
        return LayoutDiagnostics(
            transposed_count=self.transposed_count,
            skipped_count=self.skipped_count,
            unsupported_count=self.unsupported_count,
            unsupported_notes=self.unsupported_histogram,
            warnings=tuple(warnings),
        )


def find_octave_transposition(note: int, supported_notes: Iterable[int]) -> Optional[int]:
    """
    Find a supported note with the same pitch class as `note`.

    The nearest octave wins; when an octave up and an octave down are equally
    far, the lower one is chosen.

    Returns:
        The supported note, or None if no octave of `note` is playable
    """
    candidates = [n for n in supported_notes if (n - note) % 12 == 0]
    if not candidates:
        return None
    return min(candidates, key=lambda n: (abs(n - note), n))


def coalesce_notes(notes: Sequence[PlacedNote], min_gap_seconds: float) -> Tuple[List[PlacedNote], int]:
    """
    Drop notes that repeat the pitch of the previous kept note within
    `min_gap_seconds`.

    Only the immediately preceding kept note is compared, so any other pitch
    in between keeps a repeated note.

    Args:
        notes: Time-ordered notes
        min_gap_seconds: Minimum time between two holes of the same pitch

    Returns:
        Tuple of (kept notes, number dropped)
    """
    kept: List[PlacedNote] = []
    skipped = 0
    for note in notes:
        if kept:
            previous = kept[-1]
            if note.note == previous.note and note.time_seconds - previous.time_seconds <= min_gap_seconds:
                skipped += 1
                continue
        kept.append(note)
    return kept, skipped


def select_notes(
    events: Iterable[MidiEvent],
    profile: MusicBoxProfile,
    transpose: bool = False
) -> NoteSelection:
    """
    Choose the holes to punch for a track's events.

    Only sounding NoteOn events are considered (NoteOn with velocity 0 is a
    NoteOff). Each note is kept when the profile supports it, otherwise moved
    by whole octaves when `transpose` is set and an octave fits, otherwise
    reported as unsupported. Kept notes are then coalesced with the profile's
    minimum note gap.

    Args:
        events: Decoded events of the music track
        profile: Target music box
        transpose: Allow octave transposition of out-of-range notes

    Returns:
        NoteSelection with kept notes, unsupported notes and counters
    """
    supported = frozenset(profile.supported_notes)
    transpositions: Dict[int, Optional[int]] = {}

    note_ons = sorted(
        (e for e in events if isinstance(e, NoteOn) and not e.is_note_off),
        key=lambda e: e.absolute_time_seconds,
    )

    playable: List[PlacedNote] = []
    unsupported: List[PlacedNote] = []
    transposed = 0
    for event in note_ons:
        target: Optional[int] = event.note
        if event.note not in supported:
            if transpose:
                if event.note not in transpositions:
                    transpositions[event.note] = find_octave_transposition(
                        event.note, profile.supported_notes
                    )
                target = transpositions[event.note]
            else:
                target = None

        if target is None:
            unsupported.append(PlacedNote(event.absolute_time_seconds, event.note, event.note))
            continue
        if target != event.note:
            transposed += 1
        playable.append(PlacedNote(event.absolute_time_seconds, target, event.note))

    kept, skipped = coalesce_notes(playable, profile.min_note_gap_seconds)

    logger.info("Selected %d notes (%d transposed, %d merged, %d unsupported)",
                len(kept), transposed, skipped, len(unsupported))
    return NoteSelection(
        notes=tuple(kept),
        unsupported=tuple(unsupported),
        transposed_count=transposed,
        skipped_count=skipped,
    )

"""
Pagination of a note stream into pages of bounded width.

A greedy forward scan: notes are added to the current page until one no
longer fits, then the page is closed at a seam centered in the gap between the
last note on the page and the one that did not fit (never beyond the page's
capacity) and a new page starts at that seam. A rest longer than a page is
bridged with blank pages, so no page exceeds its capacity.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .config import MusicBoxProfile, SvgFormatOptions
from .errors import NoPlayableNotesError, PageTooSmallError
from .selection import PlacedNote

__all__ = [
    'TRAILING_PADDING_SECONDS',
    'Page',
    'page_length_seconds',
    'paginate',
    'total_paper_length_mm',
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

TRAILING_PADDING_SECONDS = 0.5


@dataclass(frozen=True)
class Page:
    """
    A page of tape. Times are seconds since the start of the song; page 0
    starts at a negative time to leave room for the lead-in.
    """
    number: int
    start_time_seconds: float
    end_time_seconds: float
    notes: Tuple[PlacedNote, ...]

    @property
    def duration_seconds(self) -> float:
        return self.end_time_seconds - self.start_time_seconds


def page_length_seconds(profile: MusicBoxProfile, options: SvgFormatOptions) -> float:
    """Capacity of one page in seconds (infinite when page width is 0)."""
    if options.page_width_mm > 0:
        return options.page_width_mm / profile.millimeters_per_second
    return math.inf


def paginate(
    notes: Sequence[PlacedNote],
    profile: MusicBoxProfile,
    options: SvgFormatOptions
) -> List[Page]:
    """
    Split time-ordered notes into contiguous pages.

    Args:
        notes: Kept notes, ordered by time
        profile: Music box profile (speed and hole size)
        options: Format options (page width and lead-in padding)

    Returns:
        Pages in order; page[i].end_time_seconds == page[i + 1].start_time_seconds

    Raises:
        NoPlayableNotesError: If `notes` is empty
        PageTooSmallError: If the first note does not fit on the first page,
            or a seam would leave a page shorter than one hole
    """
    if not notes:
        raise NoPlayableNotesError('No supported MIDI notes!')

    mm_per_second = profile.millimeters_per_second
    capacity = page_length_seconds(profile, options)
    hole_radius_seconds = 0.5 * profile.hole_diameter_mm / mm_per_second
    min_page_seconds = profile.hole_diameter_mm / mm_per_second

    pages: List[Page] = []
    page_start = -(options.start_padding_mm + 0.5 * profile.hole_diameter_mm) / mm_per_second
    page_notes: List[PlacedNote] = []

    for note in notes:
        max_page_end = page_start + capacity
        while note.time_seconds + 0.5 * hole_radius_seconds > max_page_end:
            if page_notes:
                # Center the seam between the notes on either side where possible
                previous = page_notes[-1]
                seam = min(0.5 * (previous.time_seconds + note.time_seconds), max_page_end)
            elif pages:
                # Blank page across a long rest, ending at least one hole
                # radius before the note
                seam = min(max_page_end, note.time_seconds - hole_radius_seconds)
            else:
                raise PageTooSmallError(
                    f"Page size too small to handle gaps between notes: note at "
                    f"{note.time_seconds:.3f}s does not fit on a page starting at {page_start:.3f}s"
                )
            if seam - page_start < min_page_seconds:
                raise PageTooSmallError(
                    f"Page {len(pages)} would be only {(seam - page_start) * mm_per_second:.2f} mm long"
                )

            pages.append(Page(len(pages), page_start, seam, tuple(page_notes)))
            page_start = seam
            page_notes = []
            max_page_end = page_start + capacity

        page_notes.append(note)

    # Close the last page with up to TRAILING_PADDING_SECONDS of blank tape
    page_end = page_notes[-1].time_seconds
    remaining = capacity - (page_end - page_start)
    if math.isinf(capacity) or remaining > TRAILING_PADDING_SECONDS:
        page_end += TRAILING_PADDING_SECONDS
    elif remaining > 0:
        page_end += remaining
    pages.append(Page(len(pages), page_start, page_end, tuple(page_notes)))

    logger.info("Paginated %d notes onto %d pages", len(notes), len(pages))
    return pages


def total_paper_length_mm(pages: Sequence[Page], profile: MusicBoxProfile) -> float:
    return sum(p.duration_seconds for p in pages) * profile.millimeters_per_second

"""
Page geometry: holes, border lines and jigsaw joiners in millimeters.

The x axis runs along the tape (time), the y axis across it. Higher notes are
nearer the top edge (y = 0), the lowest supported note sits on the bottom
note line.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .config import MusicBoxProfile, SvgFormatOptions
from .pagination import Page

__all__ = [
    'JIGSAW_WIDTH_MM',
    'JIGSAW_OPEN_FACTOR',
    'JIGSAW_CLOSE_FACTOR',
    'MAX_START_SKEW_MM',
    'Circle',
    'Line',
    'PageGeometry',
    'note_line_positions',
    'start_skew_mm',
    'jigsaw_joiner_points',
    'build_page_geometry',
    'build_geometries',
]

JIGSAW_WIDTH_MM = 2.0
JIGSAW_OPEN_FACTOR = 0.3
JIGSAW_CLOSE_FACTOR = 0.5
MAX_START_SKEW_MM = 10.0

Point = Tuple[float, float]


@dataclass(frozen=True)
class Circle:
    cx: float
    cy: float
    r: float


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class PageGeometry:
    page_number: int
    width_mm: float
    height_mm: float
    circles: Tuple[Circle, ...]
    lines: Tuple[Line, ...]


def note_line_positions(profile: MusicBoxProfile) -> Dict[int, float]:
    """
    Map each supported note to the y position (mm) of its note line.

    Notes are sorted ascending and the i-th gets index N - 1 - i, so the
    lowest note is at the bottom of the tape.
    """
    notes = sorted(profile.supported_notes)
    count = len(notes)
    note_gap = profile.content_width_mm / (count - 1)
    offset = (profile.paper_width_mm - profile.content_width_mm) / 2
    return {note: offset + (count - 1 - i) * note_gap for i, note in enumerate(notes)}


def start_skew_mm(options: SvgFormatOptions) -> float:
    return min(options.start_padding_mm, MAX_START_SKEW_MM)


def jigsaw_joiner_points(x_start: float, height: float, profile: MusicBoxProfile) -> List[Point]:
    """
    Ten-point outline of a page edge with two interlocking teeth.

    One tooth sits in the margin above the content area and one below it,
    each centered in the space between the outermost holes and the paper edge.
    """
    gap = 0.5 * (profile.paper_width_mm - profile.content_width_mm - profile.hole_diameter_mm)
    h = 0.5 * gap
    a = JIGSAW_OPEN_FACTOR
    b = JIGSAW_CLOSE_FACTOR
    w = JIGSAW_WIDTH_MM
    return [
        (x_start, 0.0),
        (x_start, h - a * h),
        (x_start + w, h - b * h),
        (x_start + w, h + b * h),
        (x_start, h + a * h),
        (x_start, height - h - a * h),
        (x_start + w, height - h - b * h),
        (x_start + w, height - h + b * h),
        (x_start, height - h + a * h),
        (x_start, height),
    ]


def _polyline(points: Sequence[Point]) -> List[Line]:
    return [Line(p[0], p[1], q[0], q[1]) for p, q in zip(points, points[1:])]


def _joining_edge(x: float, height: float, profile: MusicBoxProfile, options: SvgFormatOptions) -> List[Line]:
    if options.render_joiners:
        return _polyline(jigsaw_joiner_points(x, height, profile))
    return [Line(x, 0.0, x, height)]


def _border_lines(
    page: Page,
    page_count: int,
    x_len: float,
    y_len: float,
    profile: MusicBoxProfile,
    options: SvgFormatOptions
) -> List[Line]:
    is_first = page.number == 0
    is_last = page.number == page_count - 1
    marked_start = is_first and not options.loop_mode
    skew = start_skew_mm(options)

    lines = [
        Line(skew if marked_start else 0.0, 0.0, x_len, 0.0),
        Line(0.0, y_len, x_len, y_len),
    ]

    if not options.omit_page_boundaries or is_first:
        if marked_start:
            # Slanted leading edge marks the start of the tape
            lines.append(Line(skew, 0.0, 0.0, y_len))
        else:
            lines.extend(_joining_edge(0.0, y_len, profile, options))

    if not options.omit_page_boundaries or is_last:
        if is_last and not options.loop_mode:
            lines.append(Line(x_len, 0.0, x_len, y_len))
        else:
            lines.extend(_joining_edge(x_len, y_len, profile, options))

    return lines


def build_page_geometry(
    page: Page,
    page_count: int,
    profile: MusicBoxProfile,
    options: SvgFormatOptions,
    positions: Optional[Dict[int, float]] = None
) -> PageGeometry:
    """
    Lay out one page.

    The page is `(end - start) * mm/s` long plus room for a hole or a joiner
    tooth overhanging the trailing edge, and as tall as the paper is wide.

    Args:
        page: Page to draw
        page_count: Total number of pages (to recognise the last page)
        profile: Music box profile
        options: Format options
        positions: Precomputed note_line_positions(profile)

    Returns:
        PageGeometry in millimeters
    """
    if positions is None:
        positions = note_line_positions(profile)

    mm_per_second = profile.millimeters_per_second
    x_len = page.duration_seconds * mm_per_second
    y_len = profile.paper_width_mm
    width = x_len + max(profile.hole_diameter_mm, JIGSAW_WIDTH_MM)

    radius = profile.hole_diameter_mm / 2
    circles = tuple(
        Circle((note.time_seconds - page.start_time_seconds) * mm_per_second, positions[note.note], radius)
        for note in page.notes
    )
    lines: List[Line] = []
    if options.render_border:
        lines = _border_lines(page, page_count, x_len, y_len, profile, options)

    return PageGeometry(
        page_number=page.number,
        width_mm=width,
        height_mm=y_len,
        circles=circles,
        lines=tuple(lines),
    )


def build_geometries(
    pages: Sequence[Page],
    profile: MusicBoxProfile,
    options: SvgFormatOptions
) -> List[PageGeometry]:
    positions = note_line_positions(profile)
    return [build_page_geometry(p, len(pages), profile, options, positions) for p in pages]

"""
End-to-end layout pipeline.

    raw bytes -> MidiFile -> selected notes -> pages -> page geometry

Every stage is a pure function of its inputs, so the same bytes, profile and
options always give the same pages and geometry.

Architecture: Functional Core coordinator
- generate_layout chains the pure stages and returns a LayoutResult
- write_svg_pages is the only function here that touches the filesystem
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Union

from .config import MusicBoxProfile, SvgFormatOptions
from .errors import NoPlayableNotesError
from .geometry import PageGeometry, build_geometries
from .midi_file import MidiFile, decode_midi_file
from .pagination import Page, paginate, total_paper_length_mm
from .selection import LayoutDiagnostics, select_notes
from .svg import export_filename, render_svg

__all__ = ['LayoutResult', 'generate_layout', 'write_svg_pages']

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class LayoutResult:
    pages: Tuple[Page, ...]
    geometries: Tuple[PageGeometry, ...]
    diagnostics: LayoutDiagnostics
    total_paper_length_mm: float

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def svg_documents(self) -> List[str]:
        return [render_svg(g) for g in self.geometries]


def _check_page_height(profile: MusicBoxProfile, options: SvgFormatOptions) -> List[str]:
    if 0 < options.page_height_mm < profile.paper_width_mm:
        return [
            f"Paper width {profile.paper_width_mm} mm exceeds the page height "
            f"{options.page_height_mm} mm; pages will not fit when printed"
        ]
    return []


def generate_layout(
    midi: Union[bytes, MidiFile],
    profile: MusicBoxProfile,
    options: SvgFormatOptions
) -> LayoutResult:
    """
    Lay out the music track of a MIDI file for a music box.

    Args:
        midi: Raw file contents or an already decoded MidiFile
        profile: Target music box
        options: Pagination and formatting options

    Returns:
        LayoutResult with pages, their geometry and non-fatal diagnostics

    Raises:
        MalformedFileError: If the bytes are not a valid MIDI file
        MidiNotImplementedError: If the file holds SysEx events
        NoPlayableNotesError: If no note can be played by the profile
        PageTooSmallError: If the page width cannot hold the notes
    """
    midi_file = midi if isinstance(midi, MidiFile) else decode_midi_file(midi)

    selection = select_notes(
        midi_file.music_track.events,
        profile,
        transpose=options.transpose_out_of_range_notes,
    )
    if not selection.notes:
        raise NoPlayableNotesError(
            f"None of the {selection.unsupported_count} notes in the music track "
            f"can be played by the '{profile.name}' profile"
        )

    diagnostics = selection.diagnostics(_check_page_height(profile, options))
    for warning in diagnostics.warnings:
        logger.warning(warning)

    pages = paginate(selection.notes, profile, options)
    geometries = build_geometries(pages, profile, options)
    return LayoutResult(
        pages=tuple(pages),
        geometries=tuple(geometries),
        diagnostics=diagnostics,
        total_paper_length_mm=total_paper_length_mm(pages, profile),
    )


def write_svg_pages(
    result: LayoutResult,
    output_dir: Union[str, Path],
    source: Union[str, Path]
) -> List[Path]:
    """
    Write every page of a layout as `<source>_page_<n>.svg` into output_dir.

    Returns:
        Paths of the written files, in page order
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for geometry, document in zip(result.geometries, result.svg_documents()):
        path = output_dir / export_filename(source, geometry.page_number)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(document)
        written.append(path)
    logger.info("Wrote %d SVG pages to %s", len(written), output_dir)
    return written

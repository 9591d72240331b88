"""
Convert a MIDI file into punch-hole SVG pages for a paper-tape music box.

Architecture: Modular Design (Functional Core, Imperative Shell)
- musicbox_sheet/ submodules: decoding, note selection, pagination, geometry
- midi_to_musicbox.py (this file): CLI orchestration and file I/O

Usage:
    python midi_to_musicbox.py song.mid                       # 15-note box, 200 mm pages
    python midi_to_musicbox.py song.mid --profile thirty_note --transpose
    python midi_to_musicbox.py song.mid --format continuous   # one long strip
    python midi_to_musicbox.py song.mid --stats --dump-json song.json
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from musicbox_sheet.config import (
    BUILT_IN_PROFILES,
    FORMAT_PRESETS,
    format_options_from_dict,
    load_config,
    resolve_format_options,
    resolve_profile,
)
from musicbox_sheet.errors import MusicBoxError
from musicbox_sheet.midi_file import compute_statistics, load_midi_file
from musicbox_sheet.notes import note_name
from musicbox_sheet.pipeline import generate_layout, write_svg_pages


def print_statistics(midi_file) -> None:
    stats = compute_statistics(midi_file)
    print("MIDI statistics:")
    tempos = ', '.join(f"{bpm:.1f}" for bpm in stats.tempos_bpm) or "none (120.0 assumed)"
    print(f"  Tempos (BPM): {tempos}")
    print(f"  Duration: {stats.duration_seconds:.2f} s")
    if stats.lowest_note is None:
        print("  No notes in music track")
        return
    print(f"  Range: {note_name(stats.lowest_note)} - {note_name(stats.highest_note)} "
          f"({stats.note_count} notes)")
    widest = max(stats.note_histogram.values())
    for note, count in stats.note_histogram.items():
        bar = '#' * max(1, round(40 * count / widest))
        print(f"    {note_name(note):>4s} {count:5d} {bar}")


def midi_to_musicbox(
    input_path: Path,
    output_dir: Path,
    profile_key: str = 'fifteen_note',
    format_preset: str = 'paginated',
    config_path: Path = None,
    overrides: dict = None,
    conductor_tempo: bool = None,
    show_stats: bool = False,
    json_path: Path = None
) -> int:
    """
    Run the full conversion for one MIDI file.

    Returns:
        Process exit code (0 on success, 1 on a reported error)
    """
    try:
        config = load_config(config_path)
    except FileNotFoundError:
        if config_path is not None:
            raise
        config = {'profiles': {}, 'format': {}, 'decoding': {}}

    profile = resolve_profile(profile_key, config)
    options = resolve_format_options(format_preset, config)
    if overrides:
        options = format_options_from_dict(overrides, base=options)
    if conductor_tempo is None:
        conductor_tempo = bool(config['decoding'].get('conductor_tempo', False))

    print(f"\n{'='*60}")
    print(f"MIDI to Music Box - {input_path.name}")
    print(f"{'='*60}\n")
    print(f"Profile: {profile.name} ({len(profile.supported_notes)} notes, "
          f"{profile.paper_width_mm} mm paper)")

    try:
        midi_file = load_midi_file(input_path, conductor_tempo=conductor_tempo)

        if json_path is not None:
            with open(json_path, 'w', encoding='utf-8') as f:
                f.write(midi_file.to_json())
            print(f"Event tree written to: {json_path}")

        if show_stats:
            print_statistics(midi_file)

        result = generate_layout(midi_file, profile, options)
    except MusicBoxError as e:
        print(f"ERROR: {e}")
        return 1

    diagnostics = result.diagnostics
    for warning in diagnostics.warnings:
        print(f"  Warning: {warning}")

    written = write_svg_pages(result, output_dir, input_path)
    print(f"\nPages: {result.page_count}")
    print(f"Total paper length: {result.total_paper_length_mm:.2f} mm, "
          f"width: {profile.paper_width_mm} mm")
    print(f"  Transposed: {diagnostics.transposed_count}, merged: {diagnostics.skipped_count}, "
          f"unsupported: {diagnostics.unsupported_count}")
    for path in written:
        print(f"  Saved: {path}")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(
        description="Convert a MIDI file into punch-hole SVG pages for a music box.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Built-in profiles: {', '.join(BUILT_IN_PROFILES)}
Format presets:    {', '.join(FORMAT_PRESETS)}

Pages are saved as <midi name>_page_<n>.svg in the output directory.
        """
    )

    parser.add_argument('input', type=Path, help="MIDI file to convert")
    parser.add_argument('-o', '--output-dir', type=Path, default=None,
                        help="Directory for SVG pages (default: next to the MIDI file)")
    parser.add_argument('-p', '--profile', default='fifteen_note',
                        help="Music box profile key (built-in or from the config file)")
    parser.add_argument('-f', '--format', default='paginated', choices=list(FORMAT_PRESETS),
                        help="Format preset (default: paginated)")
    parser.add_argument('--config', type=Path, default=None,
                        help="YAML config file (default: musicbox.yaml in project root)")

    layout_group = parser.add_argument_group('Layout overrides')
    layout_group.add_argument('--page-width', type=float, default=None,
                              help="Max page width in mm (0 = single unbounded page)")
    layout_group.add_argument('--page-height', type=float, default=None,
                              help="Max page height in mm (0 = unbounded)")
    layout_group.add_argument('--start-padding', type=float, default=None,
                              help="Blank tape before the first note, in mm")
    layout_group.add_argument('--transpose', action='store_true',
                              help="Move out-of-range notes by whole octaves when possible")
    layout_group.add_argument('--no-border', action='store_true',
                              help="Do not draw the page border")
    layout_group.add_argument('--omit-page-boundaries', action='store_true',
                              help="Do not draw the edges between pages")
    layout_group.add_argument('--no-joiners', action='store_true',
                              help="Straight page edges instead of jigsaw joiners")
    layout_group.add_argument('--loop', action='store_true',
                              help="Joiners on first and last page so the tape forms a loop")

    parser.add_argument('--conductor-tempo', action='store_true', default=None,
                        help="Time all tracks with the tempo changes of track 0")
    parser.add_argument('--stats', action='store_true',
                        help="Print tempo, range and note histogram")
    parser.add_argument('--dump-json', type=Path, default=None,
                        help="Write the decoded event tree as JSON to this file")
    parser.add_argument('--log-level', default=os.environ.get('LOG_LEVEL', 'WARNING'),
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help="Logging level (default: LOG_LEVEL env or WARNING)")

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not args.input.exists():
        print(f"ERROR: MIDI file not found: {args.input}")
        sys.exit(1)

    overrides = {}
    if args.page_width is not None:
        overrides['page_width_mm'] = args.page_width
    if args.page_height is not None:
        overrides['page_height_mm'] = args.page_height
    if args.start_padding is not None:
        overrides['start_padding_mm'] = args.start_padding
    if args.transpose:
        overrides['transpose_out_of_range_notes'] = True
    if args.no_border:
        overrides['render_border'] = False
    if args.omit_page_boundaries:
        overrides['omit_page_boundaries'] = True
    if args.no_joiners:
        overrides['render_joiners'] = False
    if args.loop:
        overrides['loop_mode'] = True

    try:
        exit_code = midi_to_musicbox(
            input_path=args.input,
            output_dir=args.output_dir or args.input.parent,
            profile_key=args.profile,
            format_preset=args.format,
            config_path=args.config,
            overrides=overrides,
            conductor_tempo=args.conductor_tempo,
            show_stats=args.stats,
            json_path=args.dump_json
        )
    except (ValueError, FileNotFoundError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    sys.exit(exit_code)

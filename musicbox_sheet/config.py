"""
Music box profiles, layout format options and YAML configuration.

Profiles describe the hardware (paper, holes, playable notes); format options
describe how the tape is cut into pages and decorated. Both are plain frozen
records. Built-in presets are looked up by key; more profiles can be declared in
musicbox.yaml.

Architecture: Part of the Imperative Shell
- Handles I/O (YAML file loading)
- Provides data structures for coordination
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .notes import parse_note

__all__ = [
    'MusicBoxProfile',
    'SvgFormatOptions',
    'BUILT_IN_PROFILES',
    'FORMAT_PRESETS',
    'get_profile',
    'get_format_options',
    'load_config',
    'profile_from_dict',
    'format_options_from_dict',
    'resolve_profile',
    'resolve_format_options',
]

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / 'musicbox.yaml'


@dataclass(frozen=True)
class MusicBoxProfile:
    """Physical properties of a music box and its paper tape."""
    name: str
    paper_width_mm: float           # Total tape width
    content_width_mm: float         # Distance between the first and last note line
    hole_diameter_mm: float
    min_note_gap_mm: float          # Closest two holes of the same note may be
    millimeters_per_second: float   # Tape length played per second
    supported_notes: Tuple[int, ...]

    def __post_init__(self):
        if self.millimeters_per_second <= 0:
            raise ValueError(f"millimeters_per_second must be positive, got {self.millimeters_per_second}")
        if self.hole_diameter_mm <= 0:
            raise ValueError(f"hole_diameter_mm must be positive, got {self.hole_diameter_mm}")
        if self.min_note_gap_mm < 0:
            raise ValueError(f"min_note_gap_mm cannot be negative, got {self.min_note_gap_mm}")
        if not 0 < self.content_width_mm <= self.paper_width_mm:
            raise ValueError(
                f"content_width_mm ({self.content_width_mm}) must be positive and "
                f"no wider than paper_width_mm ({self.paper_width_mm})"
            )
        if len(set(self.supported_notes)) < 2:
            raise ValueError("A profile needs at least two distinct supported notes")
        if len(set(self.supported_notes)) != len(self.supported_notes):
            raise ValueError("supported_notes contains duplicates")

    @property
    def min_note_gap_seconds(self) -> float:
        return self.min_note_gap_mm / self.millimeters_per_second


@dataclass(frozen=True)
class SvgFormatOptions:
    """Pagination and decoration of the generated pages. 0 = unbounded."""
    page_width_mm: float = 0.0
    page_height_mm: float = 0.0
    start_padding_mm: float = 10.0
    render_border: bool = True
    omit_page_boundaries: bool = False
    transpose_out_of_range_notes: bool = False
    render_joiners: bool = True
    loop_mode: bool = False

    def __post_init__(self):
        for name in ('page_width_mm', 'page_height_mm', 'start_padding_mm'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative, got {getattr(self, name)}")


# ============================================================================
# BUILT-IN PRESETS
# ============================================================================

BUILT_IN_PROFILES: Dict[str, MusicBoxProfile] = {
    'fifteen_note': MusicBoxProfile(
        name='15 Note',
        paper_width_mm=41.0,
        content_width_mm=29.0,
        hole_diameter_mm=1.8,
        min_note_gap_mm=5.0,
        millimeters_per_second=20.0,
        supported_notes=(
            60, 62, 64, 65, 67, 69, 71,         # C4 - B4
            72, 74, 76, 77, 79, 81, 83,         # C5 - B5
            84,                                 # C6
        ),
    ),
    'thirty_note': MusicBoxProfile(
        name='30 Note',
        paper_width_mm=70.1,
        content_width_mm=58.25,
        hole_diameter_mm=2.0,
        min_note_gap_mm=8.0,
        millimeters_per_second=20.0,
        supported_notes=(
            48, 50, 55, 57, 59,                 # C3 D3 G3 A3 B3
            60, 62, 64, 65, 66, 67, 68, 69, 70, 71,
            72, 73, 74, 75, 76, 77, 78, 79, 80, 81, 82, 83,
            84, 86, 88,                         # C6 D6 E6
        ),
    ),
}

FORMAT_PRESETS: Dict[str, SvgFormatOptions] = {
    'paginated': SvgFormatOptions(page_width_mm=200.0, start_padding_mm=10.0),
    'continuous': SvgFormatOptions(page_width_mm=0.0, start_padding_mm=10.0),
    'loop': SvgFormatOptions(page_width_mm=200.0, start_padding_mm=10.0, loop_mode=True),
}


def get_profile(key: str) -> MusicBoxProfile:
    """
    Look up a built-in profile by key.

    Raises:
        ValueError: If the key is unknown
    """
    if key not in BUILT_IN_PROFILES:
        raise ValueError(f"Unknown profile: {key}. Must be one of: {list(BUILT_IN_PROFILES.keys())}")
    return BUILT_IN_PROFILES[key]


def get_format_options(key: str) -> SvgFormatOptions:
    """
    Look up a built-in format preset by key.

    Raises:
        ValueError: If the key is unknown
    """
    if key not in FORMAT_PRESETS:
        raise ValueError(f"Unknown format preset: {key}. Must be one of: {list(FORMAT_PRESETS.keys())}")
    return FORMAT_PRESETS[key]


# ============================================================================
# YAML CONFIGURATION
# ============================================================================

def load_config(config_path: Optional[Path] = None) -> Dict:
    """
    Load music box configuration from a YAML file.

    Args:
        config_path: Path to config file (defaults to musicbox.yaml in project root)

    Returns:
        Configuration dictionary (empty sections are returned as empty dicts)

    Raises:
        FileNotFoundError: If config file doesn't exist
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    for section in ('profiles', 'format', 'decoding'):
        if config.get(section) is None:
            config[section] = {}
    return config


_TRUE_STRINGS = frozenset({'true', 'yes', 'on', '1'})
_FALSE_STRINGS = frozenset({'false', 'no', 'off', '0'})


def _coerce_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def _coerce_bool(name: str, value: Any) -> bool:
    """Accept booleans, 0 and 1, or strings such as 'yes' and 'off'."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"{name} must be true or false, got {value!r}")


def profile_from_dict(data: Mapping[str, Any], base: Optional[MusicBoxProfile] = None) -> MusicBoxProfile:
    """
    Build a profile from a mapping, e.g. a `profiles:` entry of musicbox.yaml.

    Notes may be MIDI numbers or names ('C#4'). Keys missing from `data` are
    taken from `base`; without a base every field is required.

    Raises:
        ValueError: On unknown keys, missing keys or invalid values
    """
    known = {f.name for f in fields(MusicBoxProfile)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown profile keys: {sorted(unknown)}")

    values = dict(data)
    if 'supported_notes' in values:
        values['supported_notes'] = tuple(parse_note(n) for n in values['supported_notes'])
    for key in ('paper_width_mm', 'content_width_mm', 'hole_diameter_mm',
                'min_note_gap_mm', 'millimeters_per_second'):
        if key in values:
            values[key] = _coerce_float(key, values[key])

    if base is not None:
        return replace(base, **values)

    missing = known - set(values)
    if missing:
        raise ValueError(f"Profile is missing keys: {sorted(missing)}")
    return MusicBoxProfile(**values)


def format_options_from_dict(
    data: Mapping[str, Any],
    base: Optional[SvgFormatOptions] = None
) -> SvgFormatOptions:
    """
    Build format options from a mapping, falling back to `base` (or the
    dataclass defaults) for omitted keys. Values are converted to the field
    types, so quoted YAML scalars such as "200" or "no" are accepted.

    Raises:
        ValueError: On unknown keys or invalid values
    """
    field_types = {f.name: f.type for f in fields(SvgFormatOptions)}
    unknown = set(data) - set(field_types)
    if unknown:
        raise ValueError(f"Unknown format keys: {sorted(unknown)}")

    values = {}
    for key, value in data.items():
        if field_types[key] in (bool, 'bool'):
            values[key] = _coerce_bool(key, value)
        else:
            values[key] = _coerce_float(key, value)
    return replace(base or SvgFormatOptions(), **values)


def resolve_profile(key: str, config: Optional[Dict] = None) -> MusicBoxProfile:
    """
    Resolve a profile key against the config's `profiles:` section first,
    then the built-in presets. A config profile may name a built-in `base`
    and override only some fields.
    """
    custom = (config or {}).get('profiles') or {}
    if key in custom:
        entry = dict(custom[key])
        base_key = entry.pop('base', None)
        base = get_profile(base_key) if base_key else None
        return profile_from_dict(entry, base=base)
    return get_profile(key)


def resolve_format_options(preset: str, config: Optional[Dict] = None) -> SvgFormatOptions:
    """Start from a format preset and apply the config's `format:` overrides."""
    base = get_format_options(preset)
    overrides = (config or {}).get('format') or {}
    return format_options_from_dict(overrides, base=base)

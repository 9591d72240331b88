"""
Tests for profiles, format presets and YAML configuration loading.
"""

import pytest
import yaml

from musicbox_sheet.config import (
    BUILT_IN_PROFILES,
    FORMAT_PRESETS,
    MusicBoxProfile,
    SvgFormatOptions,
    format_options_from_dict,
    get_format_options,
    get_profile,
    load_config,
    profile_from_dict,
    resolve_format_options,
    resolve_profile,
)


# ============================================================================
# PRESETS
# ============================================================================

class TestPresets:
    """Test built-in profiles and format presets."""

    def test_fifteen_note(self):
        profile = get_profile('fifteen_note')
        assert len(profile.supported_notes) == 15
        assert profile.supported_notes[0] == 60
        assert profile.supported_notes[-1] == 84
        assert profile.content_width_mm < profile.paper_width_mm

    def test_thirty_note(self):
        profile = get_profile('thirty_note')
        assert len(profile.supported_notes) == 30
        assert list(profile.supported_notes) == sorted(profile.supported_notes)

    def test_min_note_gap_seconds(self):
        profile = get_profile('fifteen_note')
        assert profile.min_note_gap_seconds == pytest.approx(
            profile.min_note_gap_mm / profile.millimeters_per_second
        )

    def test_format_presets(self):
        assert get_format_options('continuous').page_width_mm == 0
        assert get_format_options('paginated').page_width_mm > 0
        assert get_format_options('loop').loop_mode

    def test_unknown_profile(self):
        with pytest.raises(ValueError, match="Unknown profile"):
            get_profile('forty_note')

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Must be one of"):
            get_format_options('scroll')

    def test_presets_are_valid_records(self):
        """Test every preset is a frozen record of the right type."""
        assert all(isinstance(p, MusicBoxProfile) for p in BUILT_IN_PROFILES.values())
        assert all(isinstance(o, SvgFormatOptions) for o in FORMAT_PRESETS.values())
        with pytest.raises(AttributeError):
            BUILT_IN_PROFILES['fifteen_note'].paper_width_mm = 50.0


# ============================================================================
# VALIDATION
# ============================================================================

class TestValidation:
    """Test invalid profiles and options are rejected on construction."""

    @pytest.mark.parametrize("overrides", [
        {'millimeters_per_second': 0},
        {'hole_diameter_mm': -1},
        {'min_note_gap_mm': -0.5},
        {'content_width_mm': 50.0},
        {'supported_notes': (60,)},
        {'supported_notes': (60, 62, 60)},
    ])
    def test_invalid_profile(self, small_profile, overrides):
        with pytest.raises(ValueError):
            profile_from_dict(overrides, base=small_profile)

    def test_negative_page_width(self):
        with pytest.raises(ValueError, match="page_width_mm"):
            SvgFormatOptions(page_width_mm=-1)


# ============================================================================
# YAML CONFIGURATION
# ============================================================================

class TestLoadConfig:
    """Test reading musicbox.yaml files."""

    def test_default_config(self):
        """Test the shipped musicbox.yaml loads and resolves its profiles."""
        config = load_config()
        assert set(config) >= {'profiles', 'format', 'decoding'}
        assert config['decoding']['conductor_tempo'] is False

        slow = resolve_profile('fifteen_note_slow', config)
        assert slow.millimeters_per_second == 10.0
        assert slow.supported_notes == get_profile('fifteen_note').supported_notes

        eighteen = resolve_profile('eighteen_note', config)
        assert len(eighteen.supported_notes) == 18
        assert eighteen.supported_notes[:2] == (60, 62)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / 'absent.yaml')

    def test_empty_sections(self, tmp_path):
        """Test empty or missing sections come back as empty dicts."""
        path = tmp_path / 'musicbox.yaml'
        path.write_text("profiles:\n")
        config = load_config(path)
        assert config == {'profiles': {}, 'format': {}, 'decoding': {}}

    def test_custom_profile_from_yaml(self, tmp_path):
        path = tmp_path / 'musicbox.yaml'
        path.write_text(yaml.safe_dump({
            'profiles': {
                'tiny': {
                    'name': 'Tiny',
                    'paper_width_mm': 20,
                    'content_width_mm': 12,
                    'hole_diameter_mm': 1.5,
                    'min_note_gap_mm': 4,
                    'millimeters_per_second': 15,
                    'supported_notes': ['C4', 'E4', 'G4', 72],
                },
            },
            'format': {'page_width_mm': 120, 'render_joiners': False},
        }))
        config = load_config(path)

        profile = resolve_profile('tiny', config)
        assert profile.supported_notes == (60, 64, 67, 72)
        assert profile.paper_width_mm == 20.0

        options = resolve_format_options('paginated', config)
        assert options.page_width_mm == 120
        assert options.render_joiners is False
        assert options.start_padding_mm == FORMAT_PRESETS['paginated'].start_padding_mm

    def test_builtin_resolves_without_config(self):
        assert resolve_profile('thirty_note') is BUILT_IN_PROFILES['thirty_note']
        assert resolve_format_options('continuous') == FORMAT_PRESETS['continuous']


class TestFromDict:
    """Test mapping -> record conversion."""

    def test_missing_keys_without_base(self):
        with pytest.raises(ValueError, match="missing keys"):
            profile_from_dict({'name': 'Half'})

    def test_unknown_profile_key(self, small_profile):
        with pytest.raises(ValueError, match="Unknown profile keys"):
            profile_from_dict({'notes': [60, 62]}, base=small_profile)

    def test_unknown_format_key(self):
        with pytest.raises(ValueError, match="Unknown format keys"):
            format_options_from_dict({'page_length_mm': 10})

    def test_invalid_note_name(self, small_profile):
        with pytest.raises(ValueError):
            profile_from_dict({'supported_notes': ['C4', 'X9']}, base=small_profile)

    def test_base_is_not_modified(self, small_profile):
        derived = profile_from_dict({'millimeters_per_second': 40}, base=small_profile)
        assert derived.millimeters_per_second == 40.0
        assert small_profile.millimeters_per_second == 10.0

    def test_format_values_converted(self):
        """Test quoted YAML scalars become floats and booleans."""
        options = format_options_from_dict({
            'render_border': 'no',
            'loop_mode': 'Yes',
            'omit_page_boundaries': 1,
            'page_width_mm': '200',
            'start_padding_mm': 5,
        })
        assert options.render_border is False
        assert options.loop_mode is True
        assert options.omit_page_boundaries is True
        assert options.page_width_mm == 200.0
        assert isinstance(options.start_padding_mm, float)

    @pytest.mark.parametrize("overrides", [
        {'render_joiners': 'maybe'},
        {'render_border': 2},
        {'page_width_mm': 'wide'},
        {'page_height_mm': None},
        {'start_padding_mm': True},
    ])
    def test_format_value_wrong_type(self, overrides):
        with pytest.raises(ValueError, match=next(iter(overrides))):
            format_options_from_dict(overrides)

    def test_profile_value_wrong_type(self, small_profile):
        with pytest.raises(ValueError, match="hole_diameter_mm"):
            profile_from_dict({'hole_diameter_mm': 'large'}, base=small_profile)

    def test_quoted_format_values_in_yaml(self, tmp_path):
        path = tmp_path / 'musicbox.yaml'
        path.write_text('format:\n  render_border: "no"\n  page_width_mm: "150"\n')
        options = resolve_format_options('paginated', load_config(path))
        assert options.render_border is False
        assert options.page_width_mm == 150.0

"""
Tests for whole-file decoding, the JSON view and statistics.

Besides hand-built fixtures, files written by mido and midiutil are decoded and
compared with what those libraries put in.
"""

import json

import pytest
from midiutil import MIDIFile
from mido import Message, MetaMessage, MidiFile as MidoFile, MidiTrack as MidoTrack

from musicbox_sheet.errors import MalformedFileError, MidiNotImplementedError
from musicbox_sheet.events import MetaEvent, NoteOff, NoteOn
from musicbox_sheet.header import MidiFileFormat
from musicbox_sheet.midi_file import compute_statistics, decode_midi_file, load_midi_file


# ============================================================================
# KNOWN FIXTURE: C4..C5 SCALE
# ============================================================================

class TestC4OctaveFixture:
    """Test the eight-note scale at 120 BPM, 192 PPQN."""

    def test_structure(self, c4_octave_bytes):
        """Test one header, one tempo track and one music track."""
        midi_file = decode_midi_file(c4_octave_bytes)
        assert len(midi_file.chunks) == 3
        assert midi_file.header.format == MidiFileFormat.MULTI_TRACK
        assert midi_file.header.track_count == 2
        assert midi_file.header.timing.pulses_per_quarter_note == 192
        assert midi_file.music_track_index == 1

    def test_note_times(self, c4_octave_bytes):
        """Test eight NoteOn/NoteOff pairs half a second apart."""
        events = decode_midi_file(c4_octave_bytes).music_track.events
        note_ons = [e for e in events if isinstance(e, NoteOn)]
        note_offs = [e for e in events if isinstance(e, NoteOff)]

        assert len(note_ons) == 8
        assert len(note_offs) == 8
        expected = [0.5 * i for i in range(8)]
        assert [e.absolute_time_seconds for e in note_ons] == pytest.approx(expected)
        assert [e.absolute_time_seconds for e in note_offs] == pytest.approx([t + 0.5 for t in expected])
        assert [e.note for e in note_ons] == [e.note for e in note_offs]

    def test_tempo_track_end(self, c4_octave_bytes):
        """Test the tempo track ends 7680 ticks (20 s) after the tempo event."""
        tempo_track = decode_midi_file(c4_octave_bytes).tracks[0]
        end = tempo_track.events[-1]
        assert isinstance(end, MetaEvent) and end.is_end_of_track
        assert end.delta_time == 7680
        assert end.absolute_time_seconds == pytest.approx(20.0)
        assert tempo_track.length == 12

    def test_statistics(self, c4_octave_bytes):
        """Test tempo list, note range, duration and histogram."""
        stats = compute_statistics(decode_midi_file(c4_octave_bytes))
        assert stats.tempos_bpm == pytest.approx((120.0,))
        assert stats.lowest_note == 60
        assert stats.highest_note == 72
        assert stats.duration_seconds == pytest.approx(20.0)
        assert stats.note_histogram == {n: 1 for n in (60, 62, 64, 65, 67, 69, 71, 72)}
        assert stats.note_count == 8

    def test_json_view(self, c4_octave_bytes):
        """Test the debug JSON names enums and hides the raw timing word."""
        midi_file = decode_midi_file(c4_octave_bytes)
        tree = json.loads(midi_file.to_json())
        header = tree['chunks'][0]
        assert header['format'] == 'MULTI_TRACK'
        assert header['timing_scheme'] == 'METRICAL'
        assert header['pulses_per_quarter_note'] == 192
        assert 'raw_timing_data' not in header
        first_music_event = tree['chunks'][2]['events'][0]
        assert first_music_event['message_type'] == 'NOTE_ON'
        assert first_music_event['note'] == 60
        assert tree['chunks'][1]['events'][0]['bpm'] == pytest.approx(120.0)

    def test_decoding_is_repeatable(self, c4_octave_bytes):
        """Test decoding the same bytes twice gives equal files."""
        assert decode_midi_file(c4_octave_bytes) == decode_midi_file(c4_octave_bytes)


# ============================================================================
# FILE-LEVEL STRUCTURE
# ============================================================================

class TestFileStructure:
    """Test header/track arrangement and music track choice."""

    def test_single_track_music_track(self, smf):
        """Test format 0 files use track 0 as the music track."""
        data = smf.file(0, 96, smf.melody([60, 64], 96))
        midi_file = decode_midi_file(data)
        assert midi_file.music_track_index == 0
        assert len(midi_file.music_track.note_on_events) == 2

    def test_missing_header(self, smf):
        """Test a file starting with a track chunk."""
        with pytest.raises(MalformedFileError, match="header"):
            decode_midi_file(smf.track(smf.end_of_track()))

    def test_no_tracks(self, smf):
        """Test a header without tracks."""
        with pytest.raises(MalformedFileError, match="no track"):
            decode_midi_file(smf.header(0, 1, 96))

    def test_duplicate_header(self, smf):
        """Test a second header chunk."""
        data = smf.header(0, 1, 96) + smf.header(0, 1, 96) + smf.track(smf.end_of_track())
        with pytest.raises(MalformedFileError):
            decode_midi_file(data)

    def test_track_count_mismatch_tolerated(self, smf):
        """Test a header declaring more tracks than present."""
        data = smf.header(1, 5, 96) + smf.track(smf.end_of_track()) + smf.track(smf.melody([60], 96))
        assert len(decode_midi_file(data).tracks) == 2

    def test_sysex_propagates(self, smf):
        """Test SysEx in any track aborts decoding."""
        data = smf.file(0, 96, smf.event(0, 0xF0, 0x02, 0x7E, 0xF7) + smf.end_of_track())
        with pytest.raises(MidiNotImplementedError):
            decode_midi_file(data)

    def test_conductor_tempo(self, smf):
        """Test track 0 tempo changes time the music track when requested."""
        conductor = smf.tempo(0, 1000000) + smf.end_of_track()
        music = smf.event(192, 0x90, 60, 100) + smf.end_of_track()
        data = smf.file(1, 192, conductor, music)

        per_track = decode_midi_file(data).music_track.note_on_events[0]
        conducted = decode_midi_file(data, conductor_tempo=True).music_track.note_on_events[0]
        assert per_track.absolute_time_seconds == pytest.approx(0.5)
        assert conducted.absolute_time_seconds == pytest.approx(1.0)

    def test_zero_tempo_in_tempo_track(self, smf):
        """Test a zero SetTempo aborts decoding instead of yielding no tempo."""
        conductor = smf.tempo(0, 0) + smf.end_of_track()
        music = smf.event(0, 0x90, 60, 100) + smf.end_of_track()
        with pytest.raises(MalformedFileError, match="0 microseconds"):
            decode_midi_file(smf.file(1, 192, conductor, music))

    def test_load_from_disk(self, c4_octave_bytes, tmp_path):
        """Test loading a file by path."""
        path = tmp_path / 'c4-octave.mid'
        path.write_bytes(c4_octave_bytes)
        assert load_midi_file(path) == decode_midi_file(c4_octave_bytes)

    def test_empty_music_track_statistics(self, smf):
        """Test statistics of a file without notes."""
        stats = compute_statistics(decode_midi_file(smf.file(0, 96, smf.end_of_track())))
        assert stats.lowest_note is None
        assert stats.note_histogram == {}
        assert stats.tempos_bpm == ()


# ============================================================================
# FILES WRITTEN BY OTHER LIBRARIES
# ============================================================================

class TestThirdPartyFiles:
    """Test decoding files written by mido and midiutil."""

    def test_mido_file_with_running_status(self, tmp_path):
        """Test a mido-written file (mido emits running status) matches mido's timing."""
        mid = MidoFile(type=1, ticks_per_beat=480)
        conductor = MidoTrack()
        conductor.append(MetaMessage('set_tempo', tempo=600000, time=0))
        conductor.append(MetaMessage('set_tempo', tempo=400000, time=960))
        music = MidoTrack()
        music.append(MetaMessage('track_name', name='Melody', time=0))
        for i, note in enumerate([60, 62, 64, 65, 67, 65, 64, 62]):
            music.append(Message('note_on', note=note, velocity=90, time=0 if i == 0 else 120))
            music.append(Message('note_on', note=note, velocity=0, time=240))
        mid.tracks.extend([conductor, music])
        path = tmp_path / 'mido.mid'
        mid.save(str(path))

        expected_times, expected_notes = [], []
        now = 0.0
        for msg in MidoFile(str(path)):
            now += msg.time
            if msg.type == 'note_on' and msg.velocity > 0:
                expected_times.append(now)
                expected_notes.append(msg.note)

        midi_file = load_midi_file(path, conductor_tempo=True)
        note_ons = [e for e in midi_file.music_track.note_on_events if not e.is_note_off]
        assert [e.note for e in note_ons] == expected_notes
        assert [e.absolute_time_seconds for e in note_ons] == pytest.approx(expected_times)
        assert midi_file.music_track.events[0].text == 'Melody'

    def test_midiutil_file(self, tmp_path):
        """Test a midiutil-written file: tempo track plus one music track."""
        midi = MIDIFile(1)
        midi.addTempo(0, 0, 120)
        for beat, pitch in enumerate([72, 71, 69, 67]):
            midi.addNote(track=0, channel=0, pitch=pitch, time=beat, duration=1, volume=100)
        path = tmp_path / 'midiutil.mid'
        with open(path, 'wb') as f:
            midi.writeFile(f)

        midi_file = load_midi_file(path)
        assert midi_file.header.format == MidiFileFormat.MULTI_TRACK
        assert len(midi_file.tracks) == 2
        note_ons = [e for e in midi_file.music_track.note_on_events if not e.is_note_off]
        assert [e.note for e in note_ons] == [72, 71, 69, 67]
        assert [e.absolute_time_seconds for e in note_ons] == pytest.approx([0.0, 0.5, 1.0, 1.5])

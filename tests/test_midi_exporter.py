"""Unit tests for VoicingMidiExporter."""

from pathlib import Path

import pytest

from steelchord.copedent_models import Copedent
from steelchord.midi_exporter import VoicingMidiExporter
from steelchord.voicing_enumerator import find_chord_voicings


def test_export_writes_a_standard_midi_file(e9: Copedent, tmp_path: Path) -> None:
    voicings = find_chord_voicings(e9, "E4", [0, 4, 7], 1)[:4]
    output = tmp_path / "voicings.mid"
    VoicingMidiExporter(tempo=90, strum=0.1).export(voicings, str(output))
    data = output.read_bytes()
    assert data.startswith(b"MThd")
    # tempo track plus the steel guitar track
    assert data.count(b"MTrk") >= 2


def test_pitches_are_the_played_strings_low_to_high(e9: Copedent) -> None:
    voicing = find_chord_voicings(e9, "E4", [0, 4, 7], 1)[0]
    pitches = VoicingMidiExporter._pitches(voicing)
    assert pitches == sorted(pitches)
    assert len(pitches) == len(voicing.played_notes)
    # open E9 at fret 0: B2 is the lowest chord tone, G#4 the highest
    assert pitches[0] == 47
    assert pitches[-1] == 68


def test_empty_export_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        VoicingMidiExporter().export([], str(tmp_path / "empty.mid"))


@pytest.mark.parametrize(
    "kwargs",
    [{"velocity": 128}, {"beats_per_voicing": 0}, {"strum": -0.1}, {"strum": 2.0}],
)
def test_invalid_settings_are_rejected(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        VoicingMidiExporter(**kwargs)

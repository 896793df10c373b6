"""Unit tests for note parsing and semitone arithmetic."""

import pytest

from steelchord.notes import (
    InvalidNoteFormat,
    ensure_octave,
    get_note_at_offset,
    get_semitones_between,
    is_valid_note,
    normalize_note,
    note_from_index,
    note_to_frequency,
    note_to_midi,
    semitone_index,
    split_note,
    strip_octave,
)


def test_semitone_index_anchors() -> None:
    assert semitone_index("C0") == 0
    assert semitone_index("C4") == 48
    assert semitone_index("A4") == 57


@pytest.mark.parametrize(
    "spelled, canonical",
    [
        ("Db4", "C#4"),
        ("C♯4", "C#4"),
        ("G♭3", "F#3"),
        ("E#4", "F4"),
        ("Fx4", "G4"),
        ("F##4", "G4"),
        ("Abb2", "G2"),
        ("B#3", "C3"),
        ("Cb4", "B4"),
    ],
)
def test_enharmonic_spellings_share_an_index(spelled: str, canonical: str) -> None:
    assert semitone_index(spelled) == semitone_index(canonical)
    assert normalize_note(spelled) == canonical


def test_offset_round_trip() -> None:
    for start in ["C4", "F#2", "Bb3", "E-1"]:
        for k in range(-30, 31):
            moved = get_note_at_offset(start, k)
            assert get_semitones_between(start, moved) == k
            assert get_note_at_offset(moved, -k) == normalize_note(start)


def test_offset_carries_octaves() -> None:
    assert get_note_at_offset("B3", 1) == "C4"
    assert get_note_at_offset("C4", -1) == "B3"
    assert get_note_at_offset("G#3", 2) == "A#3"


def test_octave_is_monotonic() -> None:
    for name in ["C", "C#", "E", "G", "B"]:
        for octave in range(-1, 8):
            assert semitone_index(f"{name}{octave}") < semitone_index(f"{name}{octave + 1}")


def test_negative_octaves_round_trip() -> None:
    assert note_from_index(-1) == "B-1"
    assert semitone_index("B-1") == -1


@pytest.mark.parametrize("bad", ["H4", "C", "", "C#", "4", "c4", "E#"])
def test_invalid_notes_raise(bad: str) -> None:
    with pytest.raises(InvalidNoteFormat):
        split_note(bad)
    assert not is_valid_note(bad)


def test_invalid_note_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        semitone_index("Q9")


def test_frequency_and_midi() -> None:
    assert note_to_frequency("A4") == pytest.approx(440.0)
    assert note_to_frequency("A5") == pytest.approx(880.0)
    assert note_to_frequency("C4") == pytest.approx(261.6256, rel=1e-5)
    assert note_to_midi("C4") == 60
    assert note_to_midi("A4") == 69


def test_octave_helpers() -> None:
    assert strip_octave("F#4") == "F#"
    assert strip_octave("B-1") == "B"
    assert ensure_octave("Bb") == "Bb4"
    assert ensure_octave("E3") == "E3"
    assert ensure_octave("E", default_octave=2) == "E2"

"""Unit tests for pitch computation, the chord search and the scale map."""

from typing import Callable

import pytest

from steelchord.copedent_models import Copedent
from steelchord.notes import InvalidNoteFormat
from steelchord.split_detector import UnresolvedSplitError
from steelchord.voicing_enumerator import (
    SCALE_FRET_RANGE,
    calculate_fretted_notes,
    find_chord_voicings,
    find_scale_on_fretboard,
)

MAJOR_TRIAD = [0, 4, 7]


def _combos_by_fret(voicings: list) -> dict[int, set]:
    found: dict[int, set] = {}
    for v in voicings:
        found.setdefault(v.fret, set()).add((v.pedal_combo, v.lever_combo, v.mec_combo))
    return found


# ── Pitch computation ───────────────────────────────────────────────────────

def test_e9_a_and_b_pedals_give_an_a_major_grip(e9: Copedent) -> None:
    notes = calculate_fretted_notes(e9, ["P1", "P2"], [], [], "A4", 0)
    assert [n.final_note for n in notes[2:6]] == ["A4", "E4", "C#4", "A3"]
    assert notes[4].active_controls == ("P1",)
    assert notes[3].active_controls == ()


def test_fret_moves_every_string(e9: Copedent) -> None:
    notes = calculate_fretted_notes(e9, [], [], [], "E4", 3)
    assert [n.final_note for n in notes[:3]] == ["A4", "F#4", "B4"]
    assert all(n.fret == 3 for n in notes)


@pytest.fixture
def split_pair(make_copedent: Callable[..., Copedent], make_split: Callable) -> Callable:
    def _build(state: str | None, change: int = 0) -> Copedent:
        splits = [] if state is None else [make_split(2, "P1", "LKL", change, state)]
        return make_copedent(
            ["E4", "G#3", "B3"],
            pedals={"P1": {2: 1}},
            levers={"LKL": {2: 2}},
            splits=splits,
        )

    return _build


def test_included_split_replaces_the_pair(split_pair: Callable) -> None:
    copedent = split_pair("include", change=0)
    notes = calculate_fretted_notes(copedent, ["P1"], ["LKL"], [], "E4", 0)
    assert notes[1].final_note == "G#3"
    assert notes[1].is_overridden_by_split
    assert not notes[0].is_overridden_by_split


def test_excluded_split_uses_the_naive_sum(split_pair: Callable) -> None:
    copedent = split_pair("exclude", change=7)
    notes = calculate_fretted_notes(copedent, ["P1"], ["LKL"], [], "E4", 0)
    assert notes[1].final_note == "B3"
    assert not notes[1].is_overridden_by_split


def test_split_only_applies_when_both_controls_engaged(split_pair: Callable) -> None:
    copedent = split_pair("include", change=0)
    notes = calculate_fretted_notes(copedent, ["P1"], [], [], "E4", 0)
    assert notes[1].final_note == "A3"
    assert not notes[1].is_overridden_by_split


def test_exclude_is_identical_to_no_split(split_pair: Callable) -> None:
    excluded = find_chord_voicings(split_pair("exclude", change=-5), "E4", MAJOR_TRIAD, 50)
    absent = find_chord_voicings(split_pair(None), "E4", MAJOR_TRIAD, 50)
    assert excluded == absent


def test_third_control_adds_on_top_of_an_override(
    make_copedent: Callable[..., Copedent], make_split: Callable
) -> None:
    copedent = make_copedent(
        ["E4", "G#3"],
        pedals={"P1": {2: 1}},
        levers={"LKL": {2: 2}, "RKL": {2: -1}},
        splits=[
            make_split(2, "P1", "LKL", 1, "include"),
            make_split(2, "P1", "RKL", 0, "exclude"),
            make_split(2, "LKL", "RKL", 1, "exclude"),
        ],
    )
    notes = calculate_fretted_notes(copedent, ["P1"], ["LKL", "RKL"], [], "E4", 0)
    # override(P1+LKL) = +1, plus RKL -1
    assert notes[1].final_note == "G#3"
    assert notes[1].active_controls == ("P1", "LKL", "RKL")
    assert notes[1].is_overridden_by_split


def test_overlapping_included_splits_consume_each_control_once(
    make_copedent: Callable[..., Copedent], make_split: Callable
) -> None:
    copedent = make_copedent(
        ["E4", "G#3"],
        pedals={"P1": {2: 1}},
        levers={"LKL": {2: 2}, "RKL": {2: -1}},
        splits=[
            make_split(2, "P1", "LKL", 1, "include"),
            make_split(2, "P1", "RKL", 5, "include"),
            make_split(2, "LKL", "RKL", 1, "exclude"),
        ],
    )
    notes = calculate_fretted_notes(copedent, ["P1"], ["LKL", "RKL"], [], "E4", 0)
    assert notes[1].final_note == "G#3"


def test_inactive_lever_cannot_be_engaged(make_copedent: Callable[..., Copedent]) -> None:
    copedent = make_copedent(["E4"], levers={"RKL": {1: 1}}, inactive=("RKL",))
    with pytest.raises(ValueError):
        calculate_fretted_notes(copedent, [], ["RKL"], [], "E4", 0)


def test_a_control_cannot_be_engaged_twice(e9: Copedent) -> None:
    with pytest.raises(ValueError, match="more than once"):
        calculate_fretted_notes(e9, ["P1", "P1"], [], [], "E4", 0)
    with pytest.raises(ValueError, match="more than once"):
        find_scale_on_fretboard(e9, "E", "Ionian", active_levers=["LKL", "LKL"])


# ── Chord search ────────────────────────────────────────────────────────────

def test_open_triad_tuning_matches_at_fret_zero(make_copedent: Callable[..., Copedent]) -> None:
    copedent = make_copedent(["E3", "G#3", "B3"])
    voicings = find_chord_voicings(copedent, "E4", MAJOR_TRIAD, 5)
    first = voicings[0]
    assert (first.fret, first.pedal_combo, first.lever_combo) == (0, (), ())
    assert [n.final_note for n in first.played_notes] == ["E3", "G#3", "B3"]
    assert first.score.usable_strings == 3
    assert first.score.largest_block_size == 3
    assert first.parent_scale == "E Ionian"


def test_engaging_a_pedal_can_break_a_match(e_major_open: Copedent) -> None:
    voicings = find_chord_voicings(e_major_open, "E4", MAJOR_TRIAD, 10)
    at_zero = [v for v in voicings if v.fret == 0]
    assert [v.pedal_combo for v in at_zero] == [()]


def test_root_octave_only_changes_reported_distances(e9: Copedent) -> None:
    high = find_chord_voicings(e9, "E4", MAJOR_TRIAD, 4)
    low = find_chord_voicings(e9, "E2", MAJOR_TRIAD, 4)
    assert _combos_by_fret(high) == _combos_by_fret(low)
    assert [n.final_note for n in high[0].notes] == [n.final_note for n in low[0].notes]
    assert high[0].notes[0].semitones_from_root == low[0].notes[0].semitones_from_root - 24


def test_matching_is_translation_invariant(e9: Copedent) -> None:
    on_e = _combos_by_fret(find_chord_voicings(e9, "E4", [0, 4, 7, 10], 500))
    on_f = _combos_by_fret(find_chord_voicings(e9, "F4", [0, 4, 7, 10], 500))
    for fret in range(0, 24):
        assert on_e.get(fret, set()) == on_f.get(fret + 1, set())


def test_results_per_fret_caps_and_orders(e9: Copedent) -> None:
    voicings = find_chord_voicings(e9, "E4", MAJOR_TRIAD, 2)
    frets = [v.fret for v in voicings]
    assert frets == sorted(frets)
    for fret in set(frets):
        at_fret = [v for v in voicings if v.fret == fret]
        assert len(at_fret) <= 2
        sizes = [len(v.control_ids) for v in at_fret]
        assert sizes == sorted(sizes)
    assert voicings[0].fret == 0
    assert voicings[0].control_ids == ()


def test_every_voicing_plays_the_whole_chord(e9: Copedent) -> None:
    for voicing in find_chord_voicings(e9, "A4", [0, 4, 7, 10], 3):
        assert {n.interval_class for n in voicing.played_notes} == {0, 4, 7, 10}
        assert all(n.is_chord_tone for n in voicing.played_notes)
        assert voicing.score.ease_of_play == len(voicing.control_ids)


def test_prune_redundant_drops_supersets(e9: Copedent) -> None:
    voicings = find_chord_voicings(e9, "E4", MAJOR_TRIAD, 50, prune_redundant=True)
    at_zero = [v for v in voicings if v.fret == 0]
    assert [v.control_ids for v in at_zero] == [()]


def test_omit_unisons_keeps_one_string_per_pitch(make_copedent: Callable[..., Copedent]) -> None:
    copedent = make_copedent(["E4", "E4", "B3", "G#3"])
    plain = find_chord_voicings(copedent, "E4", MAJOR_TRIAD, 1)[0]
    thinned = find_chord_voicings(copedent, "E4", MAJOR_TRIAD, 1, omit_unisons=True)[0]
    assert [n.string_id for n in plain.played_notes] == [1, 2, 3, 4]
    assert [n.string_id for n in thinned.played_notes] == [2, 3, 4]


def test_bad_search_arguments(e9: Copedent) -> None:
    with pytest.raises(ValueError):
        find_chord_voicings(e9, "E4", [], 3)
    with pytest.raises(ValueError):
        find_chord_voicings(e9, "E4", MAJOR_TRIAD, 0)
    with pytest.raises(InvalidNoteFormat):
        find_chord_voicings(e9, "E", MAJOR_TRIAD, 3)


def test_unresolved_splits_block_every_query(split_pair: Callable) -> None:
    copedent = split_pair("DEFINE", change=3)
    with pytest.raises(UnresolvedSplitError):
        find_chord_voicings(copedent, "E4", MAJOR_TRIAD, 3)
    with pytest.raises(UnresolvedSplitError):
        find_scale_on_fretboard(copedent, "E", "Ionian")


def test_no_match_gives_an_empty_list(make_copedent: Callable[..., Copedent]) -> None:
    copedent = make_copedent(["E4", "E3"])
    assert find_chord_voicings(copedent, "E4", MAJOR_TRIAD, 3) == []


# ── Scale map ───────────────────────────────────────────────────────────────

def test_scale_map_on_open_e9(e9: Copedent) -> None:
    cells = find_scale_on_fretboard(e9, "E", "Ionian")
    open_strings = {c.string_id: c for c in cells if c.fret == 0}
    assert set(open_strings) == set(range(1, 11)) - {9}
    assert open_strings[4].interval_name == "R"
    assert open_strings[2].note_name == "D#4"
    assert open_strings[2].interval_name == "M7"
    assert {c.fret for c in cells} <= set(SCALE_FRET_RANGE)


def test_scale_map_follows_engaged_controls(e9: Copedent) -> None:
    cells = find_scale_on_fretboard(e9, "E", "Ionian", active_levers=["RKR"])
    open_strings = {c.string_id for c in cells if c.fret == 0}
    # RKR lowers D3 to C#3, the major sixth of E
    assert 9 in open_strings


def test_unknown_scale_raises(e9: Copedent) -> None:
    with pytest.raises(KeyError):
        find_scale_on_fretboard(e9, "E", "Nonexistent")

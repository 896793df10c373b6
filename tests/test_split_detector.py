"""Unit tests for split detection, merging and the resolution precondition."""

from dataclasses import replace
from typing import Callable

import pytest

from steelchord.copedent_models import DEFINE, EXCLUDE, INCLUDE, Copedent, Pedal
from steelchord.split_detector import (
    UnresolvedSplitError,
    can_controls_split,
    detect_splits,
    ensure_splits_resolved,
    merge_splits,
    split_key,
    unresolved_splits,
)


@pytest.fixture
def crowded(make_copedent: Callable[..., Copedent]) -> Copedent:
    """Two strings each bent by several controls; RKL is inactive."""
    return make_copedent(
        ["E4", "B3", "G#3"],
        pedals={"P1": {2: 2, 3: 1}, "P2": {3: 1}, "P3": {2: 1}},
        levers={"LKL": {2: 1}, "LKR": {2: -1}, "VL": {3: -1}, "RKL": {2: 3}},
        inactive=("RKL",),
        copedent_id="crowded",
    )


def _detect(copedent: Copedent) -> list:
    return detect_splits(
        copedent.strings,
        copedent.pedals,
        copedent.knee_levers,
        copedent.mechanisms,
        copedent.mechanism_combinations,
    )


def test_detects_every_combinable_pair(crowded: Copedent) -> None:
    splits = _detect(crowded)
    assert [split_key(s) for s in splits] == [
        (2, ("LKL", "P1")),
        (2, ("LKL", "P3")),
        (2, ("LKR", "P1")),
        (2, ("LKR", "P3")),
        (3, ("P1", "P2")),
        (3, ("P1", "VL")),
        (3, ("P2", "VL")),
    ]
    assert all(s.is_included_in_calculation == DEFINE for s in splits)


def test_default_manual_change_is_the_naive_sum(crowded: Copedent) -> None:
    by_key = {s.key: s for s in _detect(crowded)}
    assert by_key[(2, ("LKL", "P1"))].manual_semitone_change == 3
    assert by_key[(2, ("LKR", "P3"))].manual_semitone_change == 0
    assert by_key[(3, ("P1", "P2"))].manual_semitone_change == 2


def test_inactive_lever_never_splits(crowded: Copedent) -> None:
    assert all("RKL" not in s.control_ids for s in _detect(crowded))


def test_detection_ignores_control_order(crowded: Copedent) -> None:
    forward = _detect(crowded)
    backward = detect_splits(
        crowded.strings,
        tuple(reversed(crowded.pedals)),
        tuple(reversed(crowded.knee_levers)),
    )
    assert forward == backward


def test_no_split_between_opposite_knee_directions(crowded: Copedent) -> None:
    lkl = crowded.control_by_id("LKL")
    lkr = crowded.control_by_id("LKR")
    assert not can_controls_split(lkl, lkr, {})
    assert not can_controls_split(lkl, lkl, {})


def test_non_adjacent_pedals_never_split() -> None:
    assert not can_controls_split(Pedal("P1", "P1", {1: 1}), Pedal("P3", "P3", {1: 1}), {})
    assert can_controls_split(Pedal("P1", "P1", {1: 1}), Pedal("P2", "P2", {1: 1}), {})


def test_mechanism_splits_follow_permissions(make_copedent: Callable[..., Copedent]) -> None:
    copedent = make_copedent(
        ["E4", "B3", "G#3"],
        pedals={"P1": {3: 1}, "P2": {3: 1}},
        levers={"VL": {3: -1}},
        mechanisms={"M1": {3: 1}},
        combinations={"M1": ["P2"]},
    )
    mechanism_pairs = {s.control_ids for s in _detect(copedent) if "M1" in s.control_ids}
    assert mechanism_pairs == {("M1", "P2")}


def test_merge_keeps_resolutions_across_string_edits(crowded: Copedent) -> None:
    resolved = [
        replace(s, manual_semitone_change=5, is_included_in_calculation=INCLUDE)
        if s.key == (2, ("LKL", "P1"))
        else replace(s, is_included_in_calculation=EXCLUDE)
        for s in _detect(crowded)
    ]
    copedent = replace(crowded, detected_splits=tuple(resolved))

    grown = copedent.add_string("E3")
    assert len(grown.strings) == 4
    by_key = {s.key: s for s in grown.detected_splits}
    assert by_key[(2, ("LKL", "P1"))].manual_semitone_change == 5
    assert by_key[(2, ("LKL", "P1"))].is_included_in_calculation == INCLUDE
    assert unresolved_splits(grown) == []

    shrunk = grown.remove_last_string().remove_last_string()
    assert {s.string_id for s in shrunk.detected_splits} == {2}
    assert all(3 not in c.changes for c in shrunk.controls(include_inactive=True))


def test_merge_drops_vanished_and_adds_new(crowded: Copedent) -> None:
    previous = [replace(s, is_included_in_calculation=EXCLUDE) for s in _detect(crowded)]
    fresh = [s for s in _detect(crowded) if s.string_id == 3]
    merged = merge_splits(fresh, previous)
    assert [s.key for s in merged] == [s.key for s in fresh]
    assert all(s.is_included_in_calculation == EXCLUDE for s in merged)

    assert merge_splits(fresh, []) == fresh


def test_unresolved_copedent_is_rejected(crowded: Copedent) -> None:
    pending = crowded.refresh_splits()
    with pytest.raises(UnresolvedSplitError) as excinfo:
        ensure_splits_resolved(pending)
    assert excinfo.value.copedent_id == "crowded"
    assert len(excinfo.value.splits) == 7
    assert "crowded" in str(excinfo.value)

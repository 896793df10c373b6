"""Unit tests for the physical control-combination rules."""

from typing import Callable

import pytest

from steelchord.combination_validator import (
    MSG_LEVERS_IMPOSSIBLE,
    MSG_PEDALS_NOT_ADJACENT,
    MSG_TOO_MANY_PEDALS,
    generate_mechanism_combinations,
    generate_pedal_combinations,
    generate_valid_combinations,
    is_full_combination_valid,
)
from steelchord.copedent_models import Copedent


def test_adjacent_pedals_are_valid(e9: Copedent) -> None:
    assert is_full_combination_valid(["P1", "P2"], [], [], e9)
    assert is_full_combination_valid(["P2", "P3"], [], [], e9)


def test_non_adjacent_pedals_are_rejected(e9: Copedent) -> None:
    result = is_full_combination_valid(["P1", "P3"], [], [], e9)
    assert not result.valid
    assert result.message == MSG_PEDALS_NOT_ADJACENT


def test_three_pedals_are_rejected(e9: Copedent) -> None:
    result = is_full_combination_valid(["P1", "P2", "P3"], [], [], e9)
    assert result.message == MSG_TOO_MANY_PEDALS


@pytest.mark.parametrize(
    "levers, valid",
    [
        (["LKL", "LKR"], False),
        (["RKL", "RKR"], False),
        (["RKL", "RKR2"], False),
        (["LKL", "RKL"], True),
        (["LKR", "RKR", "RKR2"], True),
        (["VL", "LKL"], True),
        (["VL", "LKR", "RKL"], True),
    ],
)
def test_knee_direction_rule(e9: Copedent, levers: list[str], valid: bool) -> None:
    result = is_full_combination_valid([], levers, [], e9)
    assert result.valid is valid
    if not valid:
        assert result.message == MSG_LEVERS_IMPOSSIBLE


def test_unknown_or_misplaced_ids_raise(e9: Copedent) -> None:
    with pytest.raises(ValueError):
        is_full_combination_valid(["P9"], [], [], e9)
    with pytest.raises(ValueError):
        is_full_combination_valid(["LKL"], [], [], e9)


def test_mechanism_permissions_are_symmetric(make_copedent: Callable[..., Copedent]) -> None:
    copedent = make_copedent(
        ["E4", "B3", "G#3"],
        pedals={"P1": {1: 1}, "P2": {2: 1}},
        mechanisms={"M1": {3: 1}},
        combinations={"P1": ["M1"]},
    )
    assert is_full_combination_valid(["P1"], [], ["M1"], copedent)

    result = is_full_combination_valid(["P2"], [], ["M1"], copedent)
    assert not result.valid
    assert result.message == "Mechanism M1 cannot be combined with P2."


def test_pedal_combinations_are_ordered() -> None:
    from steelchord.copedent_models import Pedal

    pedals = [Pedal("P3", "P3"), Pedal("P1", "P1"), Pedal("P2", "P2")]
    assert generate_pedal_combinations(pedals) == [
        (), ("P1",), ("P2",), ("P3",), ("P1", "P2"), ("P2", "P3"),
    ]


def test_mechanism_combinations_are_cliques(make_copedent: Callable[..., Copedent]) -> None:
    copedent = make_copedent(
        ["E4", "B3"],
        mechanisms={"M1": {1: 1}, "M2": {2: 1}, "M3": {1: -1}},
        combinations={"M1": ["M2"]},
    )
    assert set(generate_mechanism_combinations(copedent)) == {
        (), ("M1",), ("M1", "M2"), ("M2",), ("M3",),
    }


def test_e9_combination_count(e9: Copedent) -> None:
    combos = generate_valid_combinations(e9)
    # 6 pedal sets x 3 left-knee x 5 right-knee x 2 vertical lever states
    assert len(combos) == 180
    assert len({combo.control_ids for combo in combos}) == 180


def test_every_generated_combination_is_valid(e9: Copedent) -> None:
    for combo in generate_valid_combinations(e9):
        assert is_full_combination_valid(combo.pedals, combo.levers, combo.mechanisms, e9)


def test_inactive_levers_are_not_generated(e9: Copedent) -> None:
    inactive = {lever.id for lever in e9.knee_levers if not lever.active}
    for combo in generate_valid_combinations(e9):
        assert not inactive.intersection(combo.levers)

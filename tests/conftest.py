"""Shared fixtures: small hand-built copedents and the built-in E9."""

from typing import Any, Callable

import pytest

from steelchord.copedent_models import Copedent
from steelchord.default_copedents import get_default_copedent


def build_copedent(
    strings: list[str],
    pedals: dict[str, dict[int, int]] | None = None,
    levers: dict[str, dict[int, int]] | None = None,
    mechanisms: dict[str, dict[int, int]] | None = None,
    combinations: dict[str, list[str]] | None = None,
    splits: list[dict[str, Any]] | None = None,
    inactive: tuple[str, ...] = (),
    copedent_id: str = "test",
) -> Copedent:
    return Copedent.from_dict(
        {
            "id": copedent_id,
            "name": copedent_id.title(),
            "strings": strings,
            "pedals": [{"id": pid, "changes": ch} for pid, ch in (pedals or {}).items()],
            "kneeLevers": [
                {"id": lid, "changes": ch, "active": lid not in inactive}
                for lid, ch in (levers or {}).items()
            ],
            "mechanisms": [{"id": mid, "changes": ch} for mid, ch in (mechanisms or {}).items()],
            "mechanismCombinations": combinations or {},
            "splits": splits or [],
        }
    )


def split_entry(string_id: int, first: str, second: str, change: int, state: str) -> dict[str, Any]:
    return {
        "stringId": string_id,
        "conflictingControlIds": [first, second],
        "manualSemitoneChange": change,
        "isIncludedInCalculation": state,
    }


@pytest.fixture
def make_copedent() -> Callable[..., Copedent]:
    return build_copedent


@pytest.fixture
def make_split() -> Callable[..., dict[str, Any]]:
    return split_entry


@pytest.fixture
def e9() -> Copedent:
    return get_default_copedent("default-e9-standard")


@pytest.fixture
def e_major_open(make_copedent: Callable[..., Copedent]) -> Copedent:
    """Three strings tuned E-G#-B with one pedal raising the G# a whole tone."""
    return make_copedent(["E3", "G#3", "B3"], pedals={"P1": {2: 2}}, copedent_id="e-major-open")

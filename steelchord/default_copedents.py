"""Built-in copedents: 12 string Universal, E9 standard and C6 standard."""

from typing import Any, Final

from steelchord.copedent_models import Copedent

DEFAULT_COPEDENT_ID: Final[str] = "default-e9-standard"

# Knee lever slots shared by every built-in copedent; unused slots stay inactive.
_EMPTY_LEVER_SLOTS: Final[list[str]] = ["VR", "LKL2", "LKR2", "VL2", "RKL2", "RKR2", "VR2"]


def _levers(active: dict[str, dict[int, int]], **overrides: Any) -> list[dict[str, Any]]:
    """Twelve lever slots; *active* levers get changes, the rest are inactive."""
    levers = []
    for lever_id in ["LKL", "LKR", "VL", "RKL", "RKR", *_EMPTY_LEVER_SLOTS]:
        lever = {
            "id": lever_id,
            "name": lever_id,
            "active": lever_id in active,
            "changes": active.get(lever_id, {}),
        }
        lever.update(overrides.get(lever_id, {}))
        levers.append(lever)
    return levers


_UNIVERSAL_12: Final[dict[str, Any]] = {
    "id": "default-12-string-universal",
    "name": "GFI 12 String Universal Tuning",
    "strings": ["F#4", "D#4", "G#4", "E4", "B3", "G#3", "F#3", "E3", "B2", "G#2", "E2", "B1"],
    "pedals": [
        {"id": "P1", "name": "P1", "changes": {5: 2, 9: 2}},
        {"id": "P2", "name": "P2", "changes": {3: 1, 6: 1, 10: 1}},
        {"id": "P3", "name": "P3", "changes": {4: 2, 5: 2}},
        {"id": "P4", "name": "P4", "changes": {9: 1, 11: -1, 12: -3}},
        {"id": "P5", "name": "P5", "changes": {7: -1, 11: 1, 12: 2}},
        {"id": "P6", "name": "P6", "changes": {4: 1, 8: -2}},
        {"id": "P7", "name": "P7", "changes": {5: 2, 6: 2}},
    ],
    "kneeLevers": _levers({
        "LKL": {4: 1, 8: 1},
        "LKR": {4: -1, 8: -1},
        "VL": {5: -1},
        "RKL": {1: 1, 7: 1},
        "RKR": {2: -1, 9: 3},
    }),
    "mechanisms": [],
    "mechanismCombinations": {},
    "splits": [
        {"stringId": 4, "conflictingControlIds": ["P3", "LKL"], "manualSemitoneChange": 2, "isIncludedInCalculation": "include"},
        {"stringId": 4, "conflictingControlIds": ["P3", "LKR"], "manualSemitoneChange": 1, "isIncludedInCalculation": "include"},
        {"stringId": 4, "conflictingControlIds": ["P6", "LKL"], "manualSemitoneChange": 1, "isIncludedInCalculation": "include"},
        {"stringId": 4, "conflictingControlIds": ["P6", "LKR"], "manualSemitoneChange": 0, "isIncludedInCalculation": "include"},
        {"stringId": 5, "conflictingControlIds": ["P1", "VL"], "manualSemitoneChange": 1, "isIncludedInCalculation": "include"},
        {"stringId": 5, "conflictingControlIds": ["P3", "VL"], "manualSemitoneChange": 1, "isIncludedInCalculation": "include"},
        {"stringId": 5, "conflictingControlIds": ["P7", "VL"], "manualSemitoneChange": 1, "isIncludedInCalculation": "include"},
        {"stringId": 7, "conflictingControlIds": ["P5", "RKL"], "manualSemitoneChange": 0, "isIncludedInCalculation": "include"},
        {"stringId": 8, "conflictingControlIds": ["P6", "LKL"], "manualSemitoneChange": -1, "isIncludedInCalculation": "include"},
        {"stringId": 8, "conflictingControlIds": ["P6", "LKR"], "manualSemitoneChange": -2, "isIncludedInCalculation": "include"},
        {"stringId": 9, "conflictingControlIds": ["P1", "RKR"], "manualSemitoneChange": 3, "isIncludedInCalculation": "include"},
        {"stringId": 9, "conflictingControlIds": ["P4", "RKR"], "manualSemitoneChange": 3, "isIncludedInCalculation": "include"},
        {"stringId": 11, "conflictingControlIds": ["P4", "P5"], "manualSemitoneChange": 0, "isIncludedInCalculation": "include"},
        {"stringId": 12, "conflictingControlIds": ["P4", "P5"], "manualSemitoneChange": -1, "isIncludedInCalculation": "include"},
    ],
}

_E9_STANDARD: Final[dict[str, Any]] = {
    "id": "default-e9-standard",
    "name": "E9 Standard",
    "strings": ["F#4", "D#4", "G#4", "E4", "B3", "G#3", "F#3", "E3", "D3", "B2"],
    "pedals": [
        {"id": "P1", "name": "P1", "changes": {5: 2, 10: 2}},
        {"id": "P2", "name": "P2", "changes": {3: 1, 6: 1}},
        {"id": "P3", "name": "P3", "changes": {4: 2, 5: 2}},
    ],
    "kneeLevers": _levers(
        {
            "LKL": {4: 1, 8: 1},
            "LKR": {4: -1, 8: -1},
            "VL": {5: -1, 10: -1},
            "RKL": {1: 2, 2: 1, 6: -2},
            "RKR": {2: -2, 9: -1},
            "RKR2": {2: -1},
        },
        RKR2={"name": "RKR-HS"},
    ),
    "mechanisms": [],
    "mechanismCombinations": {},
    "splits": [
        {"stringId": 2, "conflictingControlIds": ["RKR", "RKR2"], "manualSemitoneChange": -3, "isIncludedInCalculation": "exclude"},
        {"stringId": 4, "conflictingControlIds": ["P3", "LKL"], "manualSemitoneChange": 2, "isIncludedInCalculation": "include"},
        {"stringId": 4, "conflictingControlIds": ["P3", "LKR"], "manualSemitoneChange": 1, "isIncludedInCalculation": "include"},
        {"stringId": 5, "conflictingControlIds": ["P1", "VL"], "manualSemitoneChange": 1, "isIncludedInCalculation": "include"},
        {"stringId": 5, "conflictingControlIds": ["P3", "VL"], "manualSemitoneChange": 1, "isIncludedInCalculation": "include"},
        {"stringId": 6, "conflictingControlIds": ["P2", "RKL"], "manualSemitoneChange": 1, "isIncludedInCalculation": "include"},
        {"stringId": 10, "conflictingControlIds": ["P1", "VL"], "manualSemitoneChange": 1, "isIncludedInCalculation": "include"},
    ],
}

_C6_STANDARD: Final[dict[str, Any]] = {
    "id": "default-c6-standard",
    "name": "C6 Standard",
    "strings": ["G4", "E4", "C4", "A3", "G3", "E3", "C3", "A2", "F2", "C2"],
    "pedals": [
        {"id": "P1", "name": "P4", "changes": {4: 2, 8: 2}},
        {"id": "P2", "name": "P5", "changes": {1: 1, 5: -1, 9: 1, 10: 2}},
        {"id": "P3", "name": "P6", "changes": {2: 1, 6: -1}},
        {"id": "P4", "name": "P7", "changes": {3: 2, 4: 2}},
        {"id": "P5", "name": "P8", "changes": {7: 1, 9: -1, 10: -3}},
    ],
    "kneeLevers": _levers(
        {"RKL": {3: -1}},
        LKL={"changes": {4: 1, 8: 1}},
        LKR={"changes": {4: -1, 8: -1}},
        VL={"changes": {5: -1, 10: -1}},
        RKR={"changes": {2: -2, 9: -1}},
        RKR2={"name": "RKR-HS", "changes": {2: -1}},
    ),
    "mechanisms": [],
    "mechanismCombinations": {},
    "splits": [
        {"stringId": 3, "conflictingControlIds": ["P4", "RKL"], "manualSemitoneChange": 1, "isIncludedInCalculation": "include"},
    ],
}


def _build_defaults() -> dict[str, Copedent]:
    copedents = [Copedent.from_dict(raw) for raw in (_UNIVERSAL_12, _E9_STANDARD, _C6_STANDARD)]
    return {c.id: c for c in copedents}


DEFAULT_COPEDENTS: Final[dict[str, Copedent]] = _build_defaults()


def get_default_copedent(copedent_id: str = DEFAULT_COPEDENT_ID) -> Copedent:
    """
    Raises:
        KeyError: If *copedent_id* is not a built-in copedent.
    """
    try:
        return DEFAULT_COPEDENTS[copedent_id]
    except KeyError:
        known = ", ".join(DEFAULT_COPEDENTS)
        raise KeyError(f"Unknown copedent '{copedent_id}'. Built-in copedents: {known}.") from None

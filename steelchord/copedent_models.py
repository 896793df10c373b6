"""Data models describing a pedal steel copedent (tuning + control graph)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Final, Iterable, Mapping

from steelchord.notes import split_note

# Control kinds, as they appear in serialised splits
PEDAL: Final[str] = "pedal"
LEVER: Final[str] = "lever"
MECHANISM: Final[str] = "mechanism"

# Split resolution states
INCLUDE: Final[str] = "include"
EXCLUDE: Final[str] = "exclude"
DEFINE: Final[str] = "DEFINE"
SPLIT_STATES: Final[set[str]] = {INCLUDE, EXCLUDE, DEFINE}

# Knee lever sides
LEFT: Final[str] = "L"
RIGHT: Final[str] = "R"
VERTICAL: Final[str] = "Vertical"


def _parse_pedal_index(pedal_id: str) -> int | None:
    """Pedal number from its id ("P3" -> 3); None when the id has no digits."""
    match = re.search(r"\d+", pedal_id)
    return int(match.group(0)) if match else None


def _parse_lever_sides(lever_id: str) -> tuple[str, str | None]:
    """
    Knee side and push direction encoded in a lever id.

    "LKL" = Left Knee pushed Left, "RKR2" = Right Knee pushed Right,
    "VL" = vertical lever (no directional pair).
    """
    base_id = lever_id.split("-")[0]
    if base_id.startswith("V") or len(base_id) < 3:
        return VERTICAL, None
    return base_id[0], base_id[2]


def _clean_changes(changes: Mapping[Any, Any] | None) -> dict[int, int]:
    return {int(string_id): int(delta) for string_id, delta in (changes or {}).items()}


@dataclass(frozen=True)
class GuitarString:
    """
    One string of the instrument.

    Attributes:
        id:        1-based string number (1 = the string nearest the player's
                   face, as on a copedent chart).
        open_note: Pitch of the unfretted, unbent string, e.g. "F#4".
    """

    id: int
    open_note: str

    def __post_init__(self) -> None:
        split_note(self.open_note)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "openNote": self.open_note}


@dataclass(frozen=True)
class Control:
    """
    Base shape of a pitch-changing control.

    ``changes`` is a sparse map of string id -> semitone delta. A string with
    no entry is not affected; use :meth:`change_for` rather than indexing.
    """

    id: str
    name: str
    changes: dict[int, int] = field(default_factory=dict)

    kind: ClassVar[str] = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "changes", _clean_changes(self.changes))

    def change_for(self, string_id: int) -> int:
        return self.changes.get(string_id, 0)

    def affects(self, string_id: int) -> bool:
        return self.change_for(string_id) != 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "changes": {str(k): v for k, v in sorted(self.changes.items())},
        }


@dataclass(frozen=True)
class Pedal(Control):
    pedal_index: int | None = field(default=None, init=False, compare=False)

    kind: ClassVar[str] = PEDAL

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "pedal_index", _parse_pedal_index(self.id))


@dataclass(frozen=True)
class KneeLever(Control):
    """A knee lever; inactive levers are kept but ignored by every calculation."""

    active: bool = True
    knee: str = field(default=VERTICAL, init=False, compare=False)
    direction: str | None = field(default=None, init=False, compare=False)

    kind: ClassVar[str] = LEVER

    def __post_init__(self) -> None:
        super().__post_init__()
        knee, direction = _parse_lever_sides(self.id)
        object.__setattr__(self, "knee", knee)
        object.__setattr__(self, "direction", direction)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["active"] = self.active
        return data


@dataclass(frozen=True)
class Mechanism(Control):
    kind: ClassVar[str] = MECHANISM


@dataclass(frozen=True)
class ControlRef:
    """Identity of a control as recorded inside a Split."""

    id: str
    name: str
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "type": self.type}


@dataclass(frozen=True)
class Split:
    """
    Two combinable controls bending the same string.

    ``manual_semitone_change`` is the combined delta used in place of the two
    controls' summed deltas when the split is resolved as ``"include"``.
    ``"DEFINE"`` marks a split the user has not resolved yet.
    """

    string_id: int
    open_note: str
    conflicting_controls: tuple[ControlRef, ControlRef]
    manual_semitone_change: int
    is_included_in_calculation: str = DEFINE

    def __post_init__(self) -> None:
        if self.is_included_in_calculation not in SPLIT_STATES:
            raise ValueError(
                f"Unknown split state '{self.is_included_in_calculation}'. "
                f"Use one of: {', '.join(sorted(SPLIT_STATES))}."
            )
        if len(self.conflicting_controls) != 2:
            raise ValueError("A split names exactly two conflicting controls.")
        object.__setattr__(self, "conflicting_controls", tuple(self.conflicting_controls))

    @property
    def control_ids(self) -> tuple[str, str]:
        """Conflicting control ids, sorted."""
        first, second = sorted(ref.id for ref in self.conflicting_controls)
        return first, second

    @property
    def key(self) -> tuple[int, tuple[str, str]]:
        return self.string_id, self.control_ids

    def to_dict(self) -> dict[str, Any]:
        return {
            "stringId": self.string_id,
            "openNote": self.open_note,
            "conflictingControls": [ref.to_dict() for ref in self.conflicting_controls],
            "manualSemitoneChange": self.manual_semitone_change,
            "isIncludedInCalculation": self.is_included_in_calculation,
        }


def symmetrise_combinations(
    combinations: Mapping[str, Iterable[str]] | None,
) -> dict[str, frozenset[str]]:
    """Make the permission graph symmetric: if A lists B, B lists A."""
    partners: dict[str, set[str]] = {}
    for control_id, allowed in (combinations or {}).items():
        for other_id in allowed:
            partners.setdefault(control_id, set()).add(other_id)
            partners.setdefault(other_id, set()).add(control_id)
    return {control_id: frozenset(ids) for control_id, ids in partners.items()}


@dataclass(frozen=True)
class Copedent:
    """
    A complete instrument description: strings, pedals, knee levers,
    mechanisms, the mechanism permission graph and resolved splits.

    Instances are immutable. Editing helpers (:meth:`add_string`,
    :meth:`remove_last_string`, :meth:`refresh_splits`) return new copedents.

    Raises:
        ValueError: If string ids are not dense ``1..N``, control ids collide,
                    or a control or permission entry names something unknown.
    """

    id: str
    name: str
    strings: tuple[GuitarString, ...]
    pedals: tuple[Pedal, ...] = ()
    knee_levers: tuple[KneeLever, ...] = ()
    mechanisms: tuple[Mechanism, ...] = ()
    mechanism_combinations: dict[str, frozenset[str]] = field(default_factory=dict)
    detected_splits: tuple[Split, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "strings", tuple(self.strings))
        object.__setattr__(self, "pedals", tuple(self.pedals))
        object.__setattr__(self, "knee_levers", tuple(self.knee_levers))
        object.__setattr__(self, "mechanisms", tuple(self.mechanisms))
        object.__setattr__(self, "detected_splits", tuple(self.detected_splits))
        object.__setattr__(
            self, "mechanism_combinations", symmetrise_combinations(self.mechanism_combinations)
        )
        self._validate()

    def _validate(self) -> None:
        string_ids = [s.id for s in self.strings]
        if string_ids != list(range(1, len(string_ids) + 1)):
            raise ValueError(f"String ids must run 1..{len(string_ids)}, got {string_ids}.")

        control_ids = [c.id for c in self.controls(include_inactive=True)]
        duplicates = sorted({cid for cid in control_ids if control_ids.count(cid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate control ids: {', '.join(duplicates)}.")

        known_strings = set(string_ids)
        for control in self.controls(include_inactive=True):
            unknown = sorted(set(control.changes) - known_strings)
            if unknown:
                raise ValueError(f"Control {control.id} changes unknown string(s) {unknown}.")

        known_controls = set(control_ids)
        for control_id, partners in self.mechanism_combinations.items():
            missing = sorted(({control_id} | partners) - known_controls)
            if missing:
                raise ValueError(
                    f"Mechanism combinations name unknown control(s): {', '.join(missing)}."
                )

        for split in self.detected_splits:
            if split.string_id not in known_strings:
                raise ValueError(f"Split references unknown string {split.string_id}.")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def active_knee_levers(self) -> tuple[KneeLever, ...]:
        return tuple(lever for lever in self.knee_levers if lever.active)

    def controls(self, include_inactive: bool = False) -> list[Control]:
        """Pedals, knee levers (active only unless asked) and mechanisms."""
        levers = self.knee_levers if include_inactive else self.active_knee_levers
        return [*self.pedals, *levers, *self.mechanisms]

    def control_by_id(self, control_id: str) -> Control:
        for control in self.controls(include_inactive=True):
            if control.id == control_id:
                return control
        raise ValueError(f"Unknown control '{control_id}' on copedent '{self.id}'.")

    def allowed_partners(self, control_id: str) -> frozenset[str]:
        return self.mechanism_combinations.get(control_id, frozenset())

    def string_by_id(self, string_id: int) -> GuitarString:
        for string in self.strings:
            if string.id == string_id:
                return string
        raise ValueError(f"Unknown string {string_id} on copedent '{self.id}'.")

    # ------------------------------------------------------------------
    # Copy-on-write edits
    # ------------------------------------------------------------------

    def refresh_splits(self) -> Copedent:
        """Re-detect splits and carry forward earlier resolutions by key."""
        from steelchord.split_detector import detect_splits, merge_splits

        fresh = detect_splits(
            self.strings,
            self.pedals,
            self.knee_levers,
            self.mechanisms,
            self.mechanism_combinations,
        )
        return replace(self, detected_splits=tuple(merge_splits(fresh, self.detected_splits)))

    def add_string(self, open_note: str) -> Copedent:
        """Append a string below the current lowest one."""
        new_string = GuitarString(id=len(self.strings) + 1, open_note=open_note)
        return replace(self, strings=(*self.strings, new_string)).refresh_splits()

    def remove_last_string(self) -> Copedent:
        """Drop the highest-numbered string and every change that referenced it."""
        if not self.strings:
            raise ValueError("Copedent has no strings to remove.")
        removed_id = self.strings[-1].id

        def _without(control: Any) -> Any:
            changes = {k: v for k, v in control.changes.items() if k != removed_id}
            return replace(control, changes=changes)

        trimmed = replace(
            self,
            strings=self.strings[:-1],
            pedals=tuple(_without(p) for p in self.pedals),
            knee_levers=tuple(_without(kl) for kl in self.knee_levers),
            mechanisms=tuple(_without(m) for m in self.mechanisms),
            detected_splits=tuple(s for s in self.detected_splits if s.string_id != removed_id),
        )
        return trimmed.refresh_splits()

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "strings": [s.to_dict() for s in self.strings],
            "pedals": [p.to_dict() for p in self.pedals],
            "kneeLevers": [kl.to_dict() for kl in self.knee_levers],
            "mechanisms": [m.to_dict() for m in self.mechanisms],
            "mechanismCombinations": {
                cid: sorted(partners) for cid, partners in sorted(self.mechanism_combinations.items())
            },
            "detectedSplits": [s.to_dict() for s in self.detected_splits],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Copedent:
        """
        Build a copedent from its JSON shape.

        ``strings`` may be a list of ``{"id", "openNote"}`` objects or of bare
        note names. Splits may list ``conflictingControls`` objects or just
        ``conflictingControlIds``.
        """
        strings = []
        for index, raw in enumerate(data.get("strings", []), start=1):
            if isinstance(raw, str):
                strings.append(GuitarString(id=index, open_note=raw))
            else:
                strings.append(GuitarString(id=int(raw["id"]), open_note=raw["openNote"]))

        pedals = [
            Pedal(id=p["id"], name=p.get("name", p["id"]), changes=p.get("changes", {}))
            for p in data.get("pedals", [])
        ]
        levers = [
            KneeLever(
                id=kl["id"],
                name=kl.get("name", kl["id"]),
                changes=kl.get("changes", {}),
                active=bool(kl.get("active", True)),
            )
            for kl in data.get("kneeLevers", [])
        ]
        mechanisms = [
            Mechanism(id=m["id"], name=m.get("name", m["id"]), changes=m.get("changes", {}))
            for m in data.get("mechanisms", [])
        ]

        by_id: dict[str, Control] = {c.id: c for c in [*pedals, *levers, *mechanisms]}
        splits = []
        for raw in data.get("detectedSplits", data.get("splits", [])):
            if "conflictingControls" in raw:
                refs = [
                    ControlRef(id=ref["id"], name=ref.get("name", ref["id"]), type=ref["type"])
                    for ref in raw["conflictingControls"]
                ]
            else:
                refs = [_ref_for(by_id, cid) for cid in raw["conflictingControlIds"]]
            string_id = int(raw["stringId"])
            open_note = raw.get("openNote") or strings[string_id - 1].open_note
            splits.append(
                Split(
                    string_id=string_id,
                    open_note=open_note,
                    conflicting_controls=(refs[0], refs[1]),
                    manual_semitone_change=int(raw["manualSemitoneChange"]),
                    is_included_in_calculation=raw.get("isIncludedInCalculation", DEFINE),
                )
            )

        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            strings=tuple(strings),
            pedals=tuple(pedals),
            knee_levers=tuple(levers),
            mechanisms=tuple(mechanisms),
            mechanism_combinations=dict(data.get("mechanismCombinations", {})),
            detected_splits=tuple(splits),
        )


def _ref_for(by_id: Mapping[str, Control], control_id: str) -> ControlRef:
    control = by_id.get(control_id)
    if control is None:
        raise ValueError(f"Split names unknown control '{control_id}'.")
    return ControlRef(id=control.id, name=control.name, type=control.kind)


def format_control_combination(
    copedent: Copedent,
    pedal_ids: Iterable[str] = (),
    lever_ids: Iterable[str] = (),
    mechanism_ids: Iterable[str] = (),
) -> str:
    """
    Human-readable label for a control combination, using control names.

    Pedals, left-knee levers, right-knee levers and mechanisms each form one
    parenthesised group, e.g. ``"(P1+P2) + (LKL) + (RKR)"``. Vertical levers
    sit with the knee their id names (``VL`` left, ``VR`` right) and fall
    back to the left group. An empty combination is ``"Open"``.

    Raises:
        ValueError: If an id is not a control on *copedent*.
    """

    def names(ids: Iterable[str]) -> str:
        return "+".join(copedent.control_by_id(i).name for i in sorted(ids))

    levers = [copedent.control_by_id(i) for i in lever_ids]
    right = [lever.id for lever in levers if _is_right_knee(lever)]
    left = [lever.id for lever in levers if not _is_right_knee(lever)]

    groups = [list(pedal_ids), left, right, list(mechanism_ids)]
    parts = [f"({names(group)})" for group in groups if group]
    return " + ".join(parts) if parts else "Open"


def _is_right_knee(lever: Control) -> bool:
    if isinstance(lever, KneeLever) and lever.knee == RIGHT:
        return True
    return lever.id.startswith("VR")

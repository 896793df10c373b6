"""SplitDetector: finds strings bent by two combinable controls at once."""

import logging
from dataclasses import replace
from typing import Iterable, Mapping, Sequence

from steelchord.combination_validator import are_pedals_adjacent, is_lever_combination_valid
from steelchord.copedent_models import (
    DEFINE,
    Control,
    ControlRef,
    Copedent,
    GuitarString,
    KneeLever,
    Mechanism,
    Pedal,
    Split,
    symmetrise_combinations,
)

logger = logging.getLogger(__name__)

SplitKey = tuple[int, tuple[str, str]]


class UnresolvedSplitError(ValueError):
    """Raised when a copedent with ``"DEFINE"`` splits is used for a query."""

    def __init__(self, copedent_id: str, splits: Sequence[Split]) -> None:
        described = ", ".join(
            f"string {s.string_id} ({'+'.join(s.control_ids)})" for s in splits
        )
        super().__init__(
            f"Copedent '{copedent_id}' has {len(splits)} unresolved split(s): {described}."
        )
        self.copedent_id = copedent_id
        self.splits = tuple(splits)


def can_controls_split(
    first: Control,
    second: Control,
    mechanism_combinations: Mapping[str, frozenset[str]],
) -> bool:
    """
    Whether two controls may be engaged together, and so can split a string.

    - never with itself
    - any pair with a mechanism: the permission graph must list the pair
    - pedal + pedal: adjacent pedals only
    - lever + lever: no knee pushed both ways
    - pedal + lever: always
    """
    if first.id == second.id:
        return False

    if isinstance(first, Mechanism) or isinstance(second, Mechanism):
        mechanism, other = (first, second) if isinstance(first, Mechanism) else (second, first)
        return other.id in mechanism_combinations.get(mechanism.id, frozenset())

    if isinstance(first, Pedal) and isinstance(second, Pedal):
        return are_pedals_adjacent(first, second)

    if isinstance(first, KneeLever) and isinstance(second, KneeLever):
        return is_lever_combination_valid([first, second])

    return True


def detect_splits(
    strings: Sequence[GuitarString],
    pedals: Sequence[Pedal],
    knee_levers: Sequence[KneeLever],
    mechanisms: Sequence[Mechanism] = (),
    mechanism_combinations: Mapping[str, Iterable[str]] | None = None,
) -> list[Split]:
    """
    List every (string, control pair) where two combinable controls both
    bend the string.

    Each split starts unresolved (``"DEFINE"``) with the naive sum of the
    two deltas as its manual change. The result holds at most one split per
    string per unordered pair and is sorted by ``(string_id, control ids)``,
    so it does not depend on the order controls are given in.
    """
    combinations = symmetrise_combinations(mechanism_combinations)
    controls: list[Control] = [
        *pedals,
        *(lever for lever in knee_levers if lever.active),
        *mechanisms,
    ]

    found: dict[SplitKey, Split] = {}
    for string in strings:
        affecting = [c for c in controls if c.affects(string.id)]
        if len(affecting) < 2:
            continue

        for i, first in enumerate(affecting):
            for second in affecting[i + 1:]:
                if not can_controls_split(first, second, combinations):
                    continue
                low, high = sorted((first, second), key=lambda c: c.id)
                key = (string.id, (low.id, high.id))
                if key in found:
                    continue
                found[key] = Split(
                    string_id=string.id,
                    open_note=string.open_note,
                    conflicting_controls=(
                        ControlRef(id=low.id, name=low.name, type=low.kind),
                        ControlRef(id=high.id, name=high.name, type=high.kind),
                    ),
                    manual_semitone_change=low.change_for(string.id) + high.change_for(string.id),
                    is_included_in_calculation=DEFINE,
                )

    return [found[key] for key in sorted(found)]


def merge_splits(new_splits: Iterable[Split], previous_splits: Iterable[Split]) -> list[Split]:
    """
    Carry user resolutions forward onto a freshly detected split list.

    A new split whose key matches a previous one takes its resolution state
    and manual change; others stay ``"DEFINE"``. Previous splits that were not
    detected again are dropped.
    """
    previous_by_key = {split_key(split): split for split in previous_splits}
    merged = []
    carried = 0
    for split in new_splits:
        previous = previous_by_key.get(split_key(split))
        if previous is None:
            merged.append(split)
            continue
        carried += 1
        merged.append(
            replace(
                split,
                manual_semitone_change=previous.manual_semitone_change,
                is_included_in_calculation=previous.is_included_in_calculation,
            )
        )
    logger.debug(
        "Merged splits: %d detected, %d resolutions carried forward, %d dropped",
        len(merged),
        carried,
        len(previous_by_key) - carried,
    )
    return merged


def split_key(split: Split) -> SplitKey:
    """``(string_id, (first_id, second_id))`` with the ids sorted."""
    return split.key


def unresolved_splits(copedent: Copedent) -> list[Split]:
    return [s for s in copedent.detected_splits if s.is_included_in_calculation == DEFINE]


def ensure_splits_resolved(copedent: Copedent) -> None:
    """
    Raises:
        UnresolvedSplitError: If any split on *copedent* is still ``"DEFINE"``.
    """
    pending = unresolved_splits(copedent)
    if pending:
        raise UnresolvedSplitError(copedent.id, pending)

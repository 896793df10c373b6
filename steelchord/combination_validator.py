"""CombinationValidator: physical rules for engaging controls together."""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from steelchord.copedent_models import (
    LEFT,
    RIGHT,
    Copedent,
    KneeLever,
    Mechanism,
    Pedal,
)

logger = logging.getLogger(__name__)

MAX_SIMULTANEOUS_PEDALS = 2

MSG_TOO_MANY_PEDALS = "You can select a maximum of two adjacent pedals."
MSG_PEDALS_NOT_ADJACENT = "You can only select two pedals that are adjacent to each other."
MSG_LEVERS_IMPOSSIBLE = "This knee lever combination is physically impossible."


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validity check; ``message`` names the first rule broken."""

    valid: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class ControlCombination:
    """One set of simultaneously engaged controls, ids in canonical order."""

    pedals: tuple[str, ...] = ()
    levers: tuple[str, ...] = ()
    mechanisms: tuple[str, ...] = ()

    @property
    def control_ids(self) -> tuple[str, ...]:
        return (*self.pedals, *self.levers, *self.mechanisms)

    def __len__(self) -> int:
        return len(self.control_ids)


def are_pedals_adjacent(first: Pedal, second: Pedal) -> bool:
    if first.pedal_index is None or second.pedal_index is None:
        return False
    return abs(first.pedal_index - second.pedal_index) == 1


def is_lever_combination_valid(levers: Iterable[KneeLever]) -> bool:
    """
    A knee cannot push both ways at once.

    For each knee side, the engaged levers must not contain both a
    left-pushing and a right-pushing lever. Vertical levers are exempt.
    """
    directions: dict[str, set[str | None]] = {LEFT: set(), RIGHT: set()}
    for lever in levers:
        if lever.knee in directions:
            directions[lever.knee].add(lever.direction)
    return not any(LEFT in pushed and RIGHT in pushed for pushed in directions.values())


def _resolve(copedent: Copedent, ids: Sequence[str], kind: type) -> list:
    controls = []
    for control_id in ids:
        control = copedent.control_by_id(control_id)
        if not isinstance(control, kind):
            raise ValueError(f"Control '{control_id}' is not a {kind.kind}.")
        controls.append(control)
    return controls


def is_full_combination_valid(
    pedal_ids: Sequence[str],
    lever_ids: Sequence[str],
    mechanism_ids: Sequence[str],
    copedent: Copedent,
) -> ValidationResult:
    """
    Check a proposed set of engaged controls against the physical rules.

    Rules, first failure wins:
      1. At most two pedals, and two pedals must be adjacent.
      2. No knee pushed both left and right.
      3. Every engaged mechanism permits every other engaged control.

    Raises:
        ValueError: If an id does not name a control of the expected kind.
    """
    pedals: list[Pedal] = _resolve(copedent, pedal_ids, Pedal)
    levers: list[KneeLever] = _resolve(copedent, lever_ids, KneeLever)
    mechanisms: list[Mechanism] = _resolve(copedent, mechanism_ids, Mechanism)

    if len(pedals) > MAX_SIMULTANEOUS_PEDALS:
        return ValidationResult(False, MSG_TOO_MANY_PEDALS)
    if len(pedals) == 2 and not are_pedals_adjacent(pedals[0], pedals[1]):
        return ValidationResult(False, MSG_PEDALS_NOT_ADJACENT)

    if not is_lever_combination_valid(levers):
        return ValidationResult(False, MSG_LEVERS_IMPOSSIBLE)

    for mechanism in mechanisms:
        allowed = copedent.allowed_partners(mechanism.id)
        for other in [*mechanisms, *pedals, *levers]:
            if other.id != mechanism.id and other.id not in allowed:
                return ValidationResult(
                    False, f"Mechanism {mechanism.name} cannot be combined with {other.name}."
                )

    return ValidationResult(True)


# ---------------------------------------------------------------------------
# Pruned generation of every valid combination
# ---------------------------------------------------------------------------

def _pedal_sort_key(pedal: Pedal) -> tuple[int, str]:
    index = pedal.pedal_index if pedal.pedal_index is not None else 10**6
    return index, pedal.id


def generate_pedal_combinations(pedals: Sequence[Pedal]) -> list[tuple[str, ...]]:
    """No pedal, every single pedal, then every adjacent pair."""
    ordered = sorted(pedals, key=_pedal_sort_key)
    combos: list[tuple[str, ...]] = [()]
    combos.extend((p.id,) for p in ordered)
    for i, first in enumerate(ordered):
        for second in ordered[i + 1:]:
            if are_pedals_adjacent(first, second):
                combos.append((first.id, second.id))
    return combos


def generate_lever_combinations(levers: Sequence[KneeLever]) -> list[tuple[str, ...]]:
    """Every subset of *levers* that no knee would have to push both ways."""
    ordered = sorted(levers, key=lambda lever: lever.id)
    combos: list[tuple[str, ...]] = []

    def _extend(start: int, chosen: list[KneeLever]) -> None:
        combos.append(tuple(lever.id for lever in chosen))
        for i in range(start, len(ordered)):
            candidate = ordered[i]
            if is_lever_combination_valid([*chosen, candidate]):
                _extend(i + 1, [*chosen, candidate])

    _extend(0, [])
    return combos


def generate_mechanism_combinations(copedent: Copedent) -> list[tuple[str, ...]]:
    """Every set of mechanisms that pairwise permit each other (graph cliques)."""
    ordered = sorted(copedent.mechanisms, key=lambda m: m.id)
    combos: list[tuple[str, ...]] = []

    def _extend(start: int, chosen: list[str]) -> None:
        combos.append(tuple(chosen))
        for i in range(start, len(ordered)):
            candidate = ordered[i].id
            allowed = copedent.allowed_partners(candidate)
            if all(existing in allowed for existing in chosen):
                _extend(i + 1, [*chosen, candidate])

    _extend(0, [])
    return combos


def iter_valid_combinations(copedent: Copedent) -> Iterator[ControlCombination]:
    """
    Yield every physically valid combination of pedals, active levers and
    mechanisms, the empty combination included.

    The search space is pruned while it is built: only adjacent pedal pairs,
    lever subsets that respect knee direction, and mechanism sets that are
    cliques in the permission graph are generated, and a mechanism set is only
    joined to a pedal/lever base it permits entirely.
    """
    pedal_combos = generate_pedal_combinations(copedent.pedals)
    lever_combos = generate_lever_combinations(copedent.active_knee_levers)
    mechanism_combos = generate_mechanism_combinations(copedent)

    for mechanisms in mechanism_combos:
        permitted = None
        for mechanism_id in mechanisms:
            allowed = copedent.allowed_partners(mechanism_id)
            permitted = allowed if permitted is None else permitted & allowed
        for pedals in pedal_combos:
            if permitted is not None and not set(pedals) <= permitted:
                continue
            for levers in lever_combos:
                if permitted is not None and not set(levers) <= permitted:
                    continue
                yield ControlCombination(pedals=pedals, levers=levers, mechanisms=mechanisms)


def generate_valid_combinations(copedent: Copedent) -> list[ControlCombination]:
    combos = list(iter_valid_combinations(copedent))
    logger.debug("Copedent %s: %d valid control combinations", copedent.id, len(combos))
    return combos

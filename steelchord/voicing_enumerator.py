"""VoicingEnumerator: searches the fretboard for chord voicings and scales."""

import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Iterable, Sequence

import numpy as np

from steelchord.combination_validator import ControlCombination, generate_valid_combinations
from steelchord.copedent_models import INCLUDE, Control, Copedent, KneeLever, Pedal
from steelchord.notes import (
    SEMITONES_PER_OCTAVE,
    ensure_octave,
    note_from_index,
    semitone_index,
)
from steelchord.split_detector import ensure_splits_resolved
from steelchord.theory import (
    CHORD_TYPES,
    SCALES,
    find_chord_type_by_intervals,
    find_parent_scale,
    get_scale_interval_name,
    get_scale_note_enharmonic,
)

logger = logging.getLogger(__name__)

#: Frets searched for chord voicings (open string through the 24th fret).
CHORD_FRET_RANGE = range(0, 25)
#: Frets mapped by the scale finder (one octave of the neck).
SCALE_FRET_RANGE = range(0, 13)


@dataclass(frozen=True)
class NoteResult:
    """
    The pitch one string produces at a fret with a set of controls engaged.

    Attributes:
        string_id:             1-based string number.
        fret:                  Bar position.
        original_note:         Open string note as authored.
        final_note:            Resulting pitch, canonical sharp spelling.
        semitones_from_root:   Signed distance from the query root.
        is_chord_tone:         Pitch class belongs to the target set.
        is_played_in_voicing:  Default playback mask (chord tones only).
        active_controls:       Engaged controls that bend this string.
        is_overridden_by_split: An included split replaced the summed bend.
    """

    string_id: int
    fret: int
    original_note: str
    final_note: str
    semitones_from_root: int
    is_chord_tone: bool = False
    is_played_in_voicing: bool = False
    active_controls: tuple[str, ...] = ()
    is_overridden_by_split: bool = False

    @property
    def interval_class(self) -> int:
        return self.semitones_from_root % SEMITONES_PER_OCTAVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "stringId": self.string_id,
            "fret": self.fret,
            "originalNote": self.original_note,
            "finalNote": self.final_note,
            "semitonesFromRoot": self.semitones_from_root,
            "isChordTone": self.is_chord_tone,
            "isPlayedInVoicing": self.is_played_in_voicing,
            "activeControls": list(self.active_controls),
            "isOverriddenBySplit": self.is_overridden_by_split,
        }


@dataclass(frozen=True)
class VoicingScore:
    largest_block_size: int
    usable_strings: int
    ease_of_play: int

    def to_dict(self) -> dict[str, int]:
        return {
            "largestBlockSize": self.largest_block_size,
            "usableStrings": self.usable_strings,
            "easeOfPlay": self.ease_of_play,
        }


@dataclass(frozen=True)
class Voicing:
    """A fret plus a control combination that sounds the requested chord."""

    fret: int
    pedal_combo: tuple[str, ...]
    lever_combo: tuple[str, ...]
    mec_combo: tuple[str, ...]
    notes: tuple[NoteResult, ...]
    score: VoicingScore
    parent_scale: str | None = None

    @property
    def control_ids(self) -> tuple[str, ...]:
        return (*self.pedal_combo, *self.lever_combo, *self.mec_combo)

    @property
    def played_notes(self) -> tuple[NoteResult, ...]:
        return tuple(n for n in self.notes if n.is_played_in_voicing)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fret": self.fret,
            "pedalCombo": list(self.pedal_combo),
            "leverCombo": list(self.lever_combo),
            "mecCombo": list(self.mec_combo),
            "notes": [n.to_dict() for n in self.notes],
            "score": self.score.to_dict(),
            "parentScale": self.parent_scale,
        }


@dataclass(frozen=True)
class ScaleNote:
    """One in-scale cell of the fretboard map."""

    fret: int
    string_id: int
    final_note: str
    note_name: str
    interval_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "fret": self.fret,
            "stringId": self.string_id,
            "finalNote": self.final_note,
            "noteName": self.note_name,
            "intervalName": self.interval_name,
        }


@dataclass(frozen=True)
class StringEffect:
    """Net bend on one string for one control combination."""

    delta: int
    active_controls: tuple[str, ...]
    is_overridden_by_split: bool


# ---------------------------------------------------------------------------
# Per-string pitch computation (shared by the chord and scale paths)
# ---------------------------------------------------------------------------

def _engaged_controls(copedent: Copedent, control_ids: Iterable[str]) -> list[Control]:
    engaged = []
    seen: set[str] = set()
    for control_id in control_ids:
        if control_id in seen:
            raise ValueError(f"Control '{control_id}' is engaged more than once.")
        seen.add(control_id)
        control = copedent.control_by_id(control_id)
        if isinstance(control, KneeLever) and not control.active:
            raise ValueError(f"Knee lever '{control_id}' is inactive on copedent '{copedent.id}'.")
        engaged.append(control)
    return engaged


def combination_effects(copedent: Copedent, control_ids: Iterable[str]) -> list[StringEffect]:
    """
    Net semitone bend on every string (in string order) for a set of
    engaged controls.

    The bend is the sum of the engaged controls' deltas, except that each
    included split whose two controls are both engaged replaces the summed
    delta of just that pair with its manual change. Other engaged controls
    on the same string still add on top. When several included splits on a
    string apply, they are taken in key order and a control is consumed by
    at most one of them. Excluded splits behave as if they did not exist.
    """
    engaged = _engaged_controls(copedent, control_ids)
    engaged_ids = {c.id for c in engaged}
    included = sorted(
        (
            split
            for split in copedent.detected_splits
            if split.is_included_in_calculation == INCLUDE
            and set(split.control_ids) <= engaged_ids
        ),
        key=lambda split: split.key,
    )

    effects = []
    for string in copedent.strings:
        affecting = [c for c in engaged if c.affects(string.id)]
        consumed: set[str] = set()
        delta = 0
        for split in included:
            if split.string_id != string.id or consumed.intersection(split.control_ids):
                continue
            delta += split.manual_semitone_change
            consumed.update(split.control_ids)
        delta += sum(c.change_for(string.id) for c in affecting if c.id not in consumed)
        effects.append(
            StringEffect(
                delta=delta,
                active_controls=tuple(c.id for c in affecting),
                is_overridden_by_split=bool(consumed),
            )
        )
    return effects


def _notes_at_fret(
    copedent: Copedent,
    effects: Sequence[StringEffect],
    root_index: int,
    fret: int,
    targets: frozenset[int] = frozenset(),
) -> list[NoteResult]:
    notes = []
    for string, effect in zip(copedent.strings, effects):
        absolute = semitone_index(string.open_note) + fret + effect.delta
        from_root = absolute - root_index
        is_tone = from_root % SEMITONES_PER_OCTAVE in targets
        notes.append(
            NoteResult(
                string_id=string.id,
                fret=fret,
                original_note=string.open_note,
                final_note=note_from_index(absolute),
                semitones_from_root=from_root,
                is_chord_tone=is_tone,
                is_played_in_voicing=is_tone,
                active_controls=effect.active_controls,
                is_overridden_by_split=effect.is_overridden_by_split,
            )
        )
    return notes


def calculate_fretted_notes(
    copedent: Copedent,
    pedal_ids: Sequence[str],
    lever_ids: Sequence[str],
    mechanism_ids: Sequence[str],
    root_note: str,
    fret: int,
) -> list[NoteResult]:
    """Resulting note on every string at *fret* with the given controls engaged."""
    effects = combination_effects(copedent, [*pedal_ids, *lever_ids, *mechanism_ids])
    return _notes_at_fret(copedent, effects, semitone_index(root_note), fret)


# ---------------------------------------------------------------------------
# Chord search
# ---------------------------------------------------------------------------

def _largest_block(string_ids: Iterable[int]) -> int:
    """Longest run of consecutive string numbers."""
    ordered = sorted(string_ids)
    if not ordered:
        return 0
    best = current = 1
    for previous, following in zip(ordered, ordered[1:]):
        current = current + 1 if following == previous + 1 else 1
        best = max(best, current)
    return best


def _max_gap(string_ids: Iterable[int]) -> int:
    ordered = sorted(string_ids)
    return max((b - a - 1 for a, b in zip(ordered, ordered[1:])), default=0)


def omit_unison_doubles(notes: Sequence[NoteResult]) -> list[NoteResult]:
    """
    Keep one string of every group of played strings sounding the same pitch.

    The string kept is the one whose controls also bend another played
    string, else an unbent string, else any; ties go to the choice leaving
    the most compact block of strings, then to the lower string number.
    """
    played = [n for n in notes if n.is_played_in_voicing]
    if len(played) < 2:
        return list(notes)

    control_counts: dict[str, int] = {}
    for note in played:
        for control_id in note.active_controls:
            control_counts[control_id] = control_counts.get(control_id, 0) + 1

    groups: dict[str, list[NoteResult]] = {}
    for note in played:
        groups.setdefault(note.final_note, []).append(note)

    omitted: set[int] = set()
    for group in groups.values():
        if len(group) < 2:
            continue

        def _rank(note: NoteResult) -> tuple[int, int, int]:
            if not note.active_controls:
                efficiency = 2
            elif any(control_counts[c] > 1 for c in note.active_controls):
                efficiency = 3
            else:
                efficiency = 1
            others = {n.string_id for n in group if n.string_id != note.string_id}
            remaining = [n.string_id for n in played if n.string_id not in others]
            return -efficiency, _max_gap(remaining), note.string_id

        doubles = sorted(group, key=_rank)[1:]
        omitted.update(n.string_id for n in doubles)

    return [
        replace(n, is_played_in_voicing=False, is_chord_tone=False) if n.string_id in omitted else n
        for n in notes
    ]


def _combination_sort_key(copedent: Copedent, combo: ControlCombination) -> tuple:
    """Fewest controls first, then lowest pedal numbers, then lever and mechanism ids."""
    pedal_numbers = []
    for pedal_id in combo.pedals:
        pedal = copedent.control_by_id(pedal_id)
        index = pedal.pedal_index if isinstance(pedal, Pedal) else None
        pedal_numbers.append(index if index is not None else 10**6)
    return len(combo), tuple(pedal_numbers), combo.pedals, combo.levers, combo.mechanisms


def _prune_redundant(voicings: Sequence[Voicing]) -> list[Voicing]:
    """Drop supersets of an already kept combination and repeated played-note sets."""
    kept: list[Voicing] = []
    seen_notes: set[tuple[tuple[int, str], ...]] = set()
    for voicing in voicings:
        controls = set(voicing.control_ids)
        if any(
            len(controls) > len(accepted.control_ids) and set(accepted.control_ids) <= controls
            for accepted in kept
        ):
            continue
        played_key = tuple(sorted((n.string_id, n.final_note) for n in voicing.played_notes))
        if played_key in seen_notes:
            continue
        seen_notes.add(played_key)
        kept.append(voicing)
    return kept


def find_chord_voicings(
    copedent: Copedent,
    root_note_with_octave: str,
    target_intervals: Iterable[int],
    results_per_fret: int,
    use_full_copedent: bool = True,
    *,
    prune_redundant: bool = False,
    omit_unisons: bool = False,
) -> list[Voicing]:
    """
    Enumerate fret/control combinations that sound every target interval.

    For each fret 0-24 every physically valid control combination is tried.
    A combination matches when the strings landing on target interval
    classes cover the whole target set; other strings may ring but are left
    out of the default playback mask. At most *results_per_fret* matches are
    kept per fret, ordered by :func:`_combination_sort_key`, and frets are
    returned in ascending order.

    Args:
        copedent:              Instrument with every split resolved.
        root_note_with_octave: Chord root such as "E4". The octave only moves
                               the reported pitches, never which combos match.
        target_intervals:      Interval classes above the root, e.g. {0, 4, 7}.
        results_per_fret:      Cap on matches kept per fret.
        use_full_copedent:     Accepted for compatibility; the full control
                               set is always searched.
        prune_redundant:       Drop matches whose controls are a strict superset
                               of a kept match, or whose played notes repeat one.
        omit_unisons:          Un-play all but one string of each unison group.

    Raises:
        UnresolvedSplitError: If the copedent has ``"DEFINE"`` splits.
        InvalidNoteFormat:    If the root does not parse (an octave is required).
        ValueError:           If *target_intervals* is empty or the cap is < 1.
    """
    ensure_splits_resolved(copedent)
    targets = frozenset(i % SEMITONES_PER_OCTAVE for i in target_intervals)
    if not targets:
        raise ValueError("At least one target interval is required.")
    if results_per_fret < 1:
        raise ValueError("results_per_fret must be at least 1.")
    root_index = semitone_index(root_note_with_octave)

    started = time.perf_counter()
    combos = sorted(
        generate_valid_combinations(copedent),
        key=lambda combo: _combination_sort_key(copedent, combo),
    )
    effects_by_combo = [combination_effects(copedent, combo.control_ids) for combo in combos]

    open_indices = np.array([semitone_index(s.open_note) for s in copedent.strings], dtype=int)
    deltas = np.array(
        [[effect.delta for effect in effects] for effects in effects_by_combo], dtype=int
    ).reshape(len(combos), len(copedent.strings))
    target_array = np.array(sorted(targets), dtype=int)

    chord_name = find_chord_type_by_intervals(sorted(targets))
    chord_intervals = CHORD_TYPES[chord_name] if chord_name else sorted(targets)

    found: list[Voicing] = []
    for fret in CHORD_FRET_RANGE:
        # (combos x strings) interval classes above the root at this fret
        classes = (open_indices + fret + deltas - root_index) % SEMITONES_PER_OCTAVE
        at_fret: list[Voicing] = []
        for row, combo in enumerate(combos):
            if not np.isin(target_array, classes[row]).all():
                continue
            notes = _notes_at_fret(copedent, effects_by_combo[row], root_index, fret, targets)
            if omit_unisons:
                notes = omit_unison_doubles(notes)
            played = [n for n in notes if n.is_played_in_voicing]
            played_classes = {n.interval_class for n in played}
            if not played or not targets <= played_classes:
                continue

            at_fret.append(
                Voicing(
                    fret=fret,
                    pedal_combo=combo.pedals,
                    lever_combo=combo.levers,
                    mec_combo=combo.mechanisms,
                    notes=tuple(notes),
                    score=VoicingScore(
                        largest_block_size=_largest_block(n.string_id for n in played),
                        usable_strings=len(played),
                        ease_of_play=len(combo),
                    ),
                    parent_scale=find_parent_scale(
                        root_note_with_octave, sorted(played_classes), chord_intervals
                    ),
                )
            )
            if not prune_redundant and len(at_fret) >= results_per_fret:
                break

        if prune_redundant:
            at_fret = _prune_redundant(at_fret)
        found.extend(at_fret[:results_per_fret])

    logger.debug(
        "Searched %d combinations x %d frets for %s %s in %.1f ms: %d voicings",
        len(combos),
        len(CHORD_FRET_RANGE),
        root_note_with_octave,
        sorted(targets),
        (time.perf_counter() - started) * 1000,
        len(found),
    )
    return found


# ---------------------------------------------------------------------------
# Scale map
# ---------------------------------------------------------------------------

def find_scale_on_fretboard(
    copedent: Copedent,
    root_note: str,
    scale_name: str,
    active_pedals: Sequence[str] = (),
    active_levers: Sequence[str] = (),
    active_mechanisms: Sequence[str] = (),
) -> list[ScaleNote]:
    """
    Map every in-scale note for one fixed control combination, frets 0-12.

    *root_note* may omit the octave ("A" is read as "A4").

    Raises:
        KeyError:             If *scale_name* is not a known scale.
        ValueError:           If a control id cannot be engaged.
        UnresolvedSplitError: If the copedent has ``"DEFINE"`` splits.
    """
    if scale_name not in SCALES:
        raise KeyError(f"Unknown scale '{scale_name}'.")
    ensure_splits_resolved(copedent)
    scale_intervals = frozenset(SCALES[scale_name])
    root_with_octave = ensure_octave(root_note)
    root_index = semitone_index(root_with_octave)

    effects = combination_effects(copedent, [*active_pedals, *active_levers, *active_mechanisms])
    cells = []
    for fret in SCALE_FRET_RANGE:
        for note in _notes_at_fret(copedent, effects, root_index, fret):
            if note.interval_class not in scale_intervals:
                continue
            cells.append(
                ScaleNote(
                    fret=fret,
                    string_id=note.string_id,
                    final_note=note.final_note,
                    note_name=get_scale_note_enharmonic(note.final_note, root_with_octave, scale_name),
                    interval_name=get_scale_interval_name(note.interval_class, scale_name),
                )
            )
    return cells

"""ChordDecipher: names the chord sounded by a fixed fret and control set."""

import re
from dataclasses import dataclass, replace
from typing import Any, Sequence

from steelchord.copedent_models import Copedent
from steelchord.notes import NOTE_NAMES, SEMITONES_PER_OCTAVE, semitone_index, split_note
from steelchord.split_detector import ensure_splits_resolved
from steelchord.theory import CHORD_TYPES, get_contextual_interval_name
from steelchord.voicing_enumerator import NoteResult, calculate_fretted_notes

MIN_DISTINCT_PITCHES = 3
MAX_INTERPRETATIONS = 6

_EXTENSIONS = {1, 2, 5, 6, 9}
_CHORD_CORE = {0, 3, 4, 7, 8}
_TENSION_RE = re.compile(r"9|11|13")
_ALTERATION_RE = re.compile(r"b5|#5|b9|#9|#11|b13")


@dataclass(frozen=True)
class DecipheredChord:
    """One interpretation of the played strings as a named chord."""

    chord_name: str
    root: str
    chord_type: str
    score: float
    fret: int
    pedal_combo: tuple[str, ...]
    lever_combo: tuple[str, ...]
    mec_combo: tuple[str, ...]
    notes: tuple[NoteResult, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "chordName": self.chord_name,
            "root": self.root,
            "chordType": self.chord_type,
            "score": self.score,
            "fret": self.fret,
            "pedalCombo": list(self.pedal_combo),
            "leverCombo": list(self.lever_combo),
            "mecCombo": list(self.mec_combo),
            "notes": [n.to_dict() for n in self.notes],
        }


def _ordered_classes(intervals: Sequence[int]) -> list[int]:
    return list(dict.fromkeys(i % SEMITONES_PER_OCTAVE for i in intervals))


def get_chord_display_name(
    root_name: str, chord_name: str, played_intervals: set[int], chord_intervals: Sequence[int]
) -> str:
    """
    Display name for a chord that may be partially played.

    Missing tones are listed as "(no 5th-name)". When the chord's seventh is
    absent but an extension is sounding, the chord is renamed as a triad with
    an "(add X)" instead, e.g. "C Major (add 9)".
    """
    full = _ordered_classes(chord_intervals)
    missing = [i for i in full if i not in played_intervals]

    has_seventh = 10 in full or 11 in full
    seventh_missing = (10 in full and 10 in missing) or (11 in full and 11 in missing)
    has_extensions = bool(played_intervals & _EXTENSIONS)

    if has_seventh and seventh_missing and has_extensions:
        base = re.sub(r"13|11|9|7", "", chord_name).strip()
        if base in ("Dominant", "Major"):
            base = "Major"
        elif "Minor" in base:
            base = "Minor"
        else:
            base = ""

        highest = max(i for i in played_intervals if i not in _CHORD_CORE)
        name = f"{root_name} {base} (add {get_contextual_interval_name(highest, chord_name)})"
        other_missing = [i for i in missing if i not in (10, 11)]
        if other_missing:
            no_part = ", ".join(get_contextual_interval_name(i, chord_name) for i in other_missing)
            name += f" (no {no_part})"
        return re.sub(r"\s+", " ", name).strip()

    if missing:
        missing_names = ", ".join(get_contextual_interval_name(i, chord_name) for i in missing)
        return f"{root_name} {chord_name} (no {missing_names})"

    return f"{root_name} {chord_name}"


def _score(chord_name: str, played: set[int], full: set[int]) -> float:
    score = len(played) / len(full) * 1000

    has_third = 3 in played or 4 in played
    has_seventh = 10 in played or 11 in played
    if has_third and has_seventh:
        score += 150
    if has_third:
        score += 75
    if has_seventh:
        score += 50
    if 0 in played:
        score += 25

    if (3 in full or 4 in full) and not has_third:
        score -= 150
    if (10 in full or 11 in full) and not has_seventh:
        score -= 100

    if _TENSION_RE.search(chord_name) or _ALTERATION_RE.search(chord_name):
        defining = full - {0, 3, 4, 7, 10, 11}
        if any(t not in played for t in defining):
            score -= 250

    return score - len(full) * 5


def _quality_clash(played: set[int], full: set[int]) -> bool:
    if (4 in full and 3 in played) or (3 in full and 4 in played):
        return True
    return (10 in full and 11 in played) or (11 in full and 10 in played)


def decipher_chord(
    copedent: Copedent,
    fret: int,
    played_string_ids: Sequence[int],
    pedal_ids: Sequence[str] = (),
    lever_ids: Sequence[str] = (),
    mechanism_ids: Sequence[str] = (),
) -> list[DecipheredChord]:
    """
    Name the chord the picked strings sound at *fret* with the given controls.

    Every root and chord type whose interval set contains all played pitch
    classes is scored (coverage, presence of third, seventh and root, missing
    defining tensions, chord size). The best type per root is kept and the
    top six interpretations are returned, best first. Fewer than three
    distinct played pitches give an empty list.

    Raises:
        UnresolvedSplitError: If the copedent has ``"DEFINE"`` splits.
    """
    ensure_splits_resolved(copedent)
    all_notes = calculate_fretted_notes(copedent, pedal_ids, lever_ids, mechanism_ids, "C4", fret)
    played_ids = set(played_string_ids)
    played_indices = sorted(
        {semitone_index(n.final_note) for n in all_notes if n.string_id in played_ids}
    )
    if len(played_indices) < MIN_DISTINCT_PITCHES:
        return []

    _letter, _accidental, base_octave = split_note(
        next(n.final_note for n in all_notes if semitone_index(n.final_note) == played_indices[0])
    )

    best_by_root: dict[str, tuple[float, str, list[int], set[int]]] = {}
    for root_name in NOTE_NAMES:
        root_index = semitone_index(f"{root_name}{base_octave}")
        played = {(i - root_index) % SEMITONES_PER_OCTAVE for i in played_indices}
        for chord_name, chord_intervals in CHORD_TYPES.items():
            full = {i % SEMITONES_PER_OCTAVE for i in chord_intervals}
            if not played <= full or _quality_clash(played, full):
                continue
            score = _score(chord_name, played, full)
            current = best_by_root.get(root_name)
            if current is None or score > current[0]:
                best_by_root[root_name] = (score, chord_name, chord_intervals, played)

    ranked = sorted(best_by_root.items(), key=lambda item: item[1][0], reverse=True)

    results = []
    for root_name, (score, chord_name, chord_intervals, played) in ranked[:MAX_INTERPRETATIONS]:
        root_index = semitone_index(f"{root_name}{base_octave}")
        notes = tuple(
            replace(
                note,
                semitones_from_root=semitone_index(note.final_note) - root_index,
                is_chord_tone=note.string_id in played_ids,
                is_played_in_voicing=note.string_id in played_ids,
            )
            for note in all_notes
        )
        results.append(
            DecipheredChord(
                chord_name=get_chord_display_name(root_name, chord_name, played, chord_intervals),
                root=root_name,
                chord_type=chord_name,
                score=score,
                fret=fret,
                pedal_combo=tuple(pedal_ids),
                lever_combo=tuple(lever_ids),
                mec_combo=tuple(mechanism_ids),
                notes=notes,
            )
        )
    return results

"""Static chord-type and scale tables plus interval naming and spelling."""

import re
from typing import Final

from steelchord.notes import (
    NOTE_LETTERS,
    SEMITONES_PER_OCTAVE,
    ensure_octave,
    get_semitones_between,
    normalize_note,
    semitone_index,
    strip_octave,
)

# ── Chord types ─────────────────────────────────────────────────────────────

TRIADS: Final[dict[str, list[int]]] = {
    "Major Triad": [0, 4, 7], "Minor Triad": [0, 3, 7], "Diminished Triad": [0, 3, 6],
    "Augmented Triad": [0, 4, 8], "sus2 Triad": [0, 2, 7], "sus4 Triad": [0, 5, 7],
    "Lydian Triad no 5th": [0, 4, 6], "Lydian Triad no 3rd": [0, 6, 7],
}

SEVENTH_CHORDS: Final[dict[str, list[int]]] = {
    "Major 7": [0, 4, 7, 11], "Minor 7": [0, 3, 7, 10], "Dominant 7": [0, 4, 7, 10],
    "Diminished 7": [0, 3, 6, 9], "Minor 7b5": [0, 3, 6, 10], "Minor Major 7": [0, 3, 7, 11],
}

SUS_SEVENTH_CHORDS: Final[dict[str, list[int]]] = {
    "Major 7 sus4": [0, 5, 7, 11], "7 sus4": [0, 5, 7, 10], "Diminished 7 sus4": [0, 5, 6, 9],
    "Major 7 sus4 b5": [0, 5, 6, 11], "7 sus4 b5": [0, 5, 6, 10], "Major 7 sus2": [0, 2, 7, 11],
    "7 sus2": [0, 2, 7, 10], "Diminished 7 sus2": [0, 2, 6, 9], "Major 7 sus2 b5": [0, 2, 6, 11],
    "7 sus2 b5": [0, 2, 6, 10],
}

SIXTH_CHORDS: Final[dict[str, list[int]]] = {
    "Major 6": [0, 4, 7, 9], "Minor 6": [0, 3, 7, 9], "sus4 6": [0, 5, 7, 9],
}

ADD_9_CHORDS: Final[dict[str, list[int]]] = {
    "Major Triad add 9": [0, 4, 7, 2], "Minor Triad add 9": [0, 3, 7, 2],
    "Diminished Triad add 9": [0, 3, 6, 2], "Augmented Triad add 9": [0, 4, 8, 2],
    "Major Triad add b9": [0, 4, 7, 1], "Minor Triad add b9": [0, 3, 7, 1],
    "Diminished Triad add b9": [0, 3, 6, 1], "Augmented Triad add b9": [0, 4, 8, 1],
}

ADD_11_CHORDS: Final[dict[str, list[int]]] = {
    "Major Triad add 11": [0, 4, 7, 5], "Minor Triad add 11": [0, 3, 7, 5],
    "Diminished Triad add 11": [0, 3, 6, 5], "Major Triad add #11": [0, 4, 7, 6],
}

ALTERED_7TH_CHORDS: Final[dict[str, list[int]]] = {
    "Dominant 7b5": [0, 4, 6, 10], "Dominant 7#5": [0, 4, 8, 10], "Major 7b5": [0, 4, 6, 11],
    "Major 7#5": [0, 4, 8, 11], "Minor 7#5": [0, 3, 8, 10],
}

NINTH_CHORDS: Final[dict[str, list[int]]] = {
    "Major 9": [0, 4, 7, 11, 2], "Major b9": [0, 4, 7, 11, 1], "Major #9": [0, 4, 7, 11, 3],
    "Minor 9": [0, 3, 7, 10, 2], "Minor b9": [0, 3, 7, 10, 1], "Dominant 9": [0, 4, 7, 10, 2],
    "Dominant b9": [0, 4, 7, 10, 1], "Dominant #9": [0, 4, 7, 10, 3],
}

ALTERED_9TH_CHORDS: Final[dict[str, list[int]]] = {
    "Dominant 9b5": [0, 4, 6, 10, 2], "Dominant 9#5": [0, 4, 8, 10, 2],
    "Dominant b9b5": [0, 4, 6, 10, 1], "Dominant b9#5": [0, 4, 8, 10, 1],
    "Dominant #9b5": [0, 4, 6, 10, 3], "Dominant #9#5": [0, 4, 8, 10, 3],
    "Major 9b5": [0, 4, 6, 11, 2], "Major 9#5": [0, 4, 8, 11, 2],
    "Major b9b5": [0, 4, 6, 11, 1], "Major b9#5": [0, 4, 8, 11, 1],
    "Major #9b5": [0, 4, 6, 11, 3], "Major #9#5": [0, 4, 8, 11, 3],
    "Minor 9b5": [0, 3, 6, 10, 2], "Minor 9#5": [0, 3, 8, 10, 2],
    "Minor b9b5": [0, 3, 6, 10, 1], "Minor b9#5": [0, 3, 8, 10, 1],
}

SIXTH_NINTH_CHORDS: Final[dict[str, list[int]]] = {
    "6/9": [0, 4, 7, 9, 2], "Minor 6/9": [0, 3, 7, 9, 2], "6/9 sus4": [0, 5, 7, 9, 2],
}

ELEVENTH_CHORDS: Final[dict[str, list[int]]] = {
    "Major 11": [0, 4, 7, 11, 2, 5], "Major 11b9": [0, 4, 7, 11, 1, 5],
    "Major 11#9": [0, 4, 7, 11, 3, 5], "Minor 11": [0, 3, 7, 10, 2, 5],
    "Minor 11b9": [0, 3, 7, 10, 1, 5], "Dominant 11": [0, 4, 7, 10, 2, 5],
    "Dominant 11b9": [0, 4, 7, 10, 1, 5], "Dominant 11#9": [0, 4, 7, 10, 3, 5],
}

SHARP_ELEVENTH_CHORDS: Final[dict[str, list[int]]] = {
    "Major #11": [0, 4, 7, 11, 2, 6], "Major #11b9": [0, 4, 7, 11, 1, 6],
    "Major #11#9": [0, 4, 7, 11, 3, 6], "Minor #11": [0, 3, 7, 10, 2, 6],
    "Minor #11b9": [0, 3, 7, 10, 1, 6], "Dominant #11": [0, 4, 7, 10, 2, 6],
    "Dominant #11b9": [0, 4, 7, 10, 1, 6], "Dominant #11#9": [0, 4, 7, 10, 3, 6],
}

THIRTEENTH_CHORDS: Final[dict[str, list[int]]] = {
    "Major 13": [0, 4, 7, 11, 2, 5, 9], "Major 13b9": [0, 4, 7, 11, 1, 5, 9],
    "Major 13#9": [0, 4, 7, 11, 3, 5, 9], "Minor 13": [0, 3, 7, 10, 2, 5, 9],
    "Minor 13b9": [0, 3, 7, 10, 1, 5, 9], "Dominant 13": [0, 4, 7, 10, 2, 5, 9],
    "Dominant 13b9": [0, 4, 7, 10, 1, 5, 9], "Dominant 13#9": [0, 4, 7, 10, 3, 5, 9],
}

THIRTEENTH_SHARP_11_CHORDS: Final[dict[str, list[int]]] = {
    "Major 13#11": [0, 4, 7, 11, 2, 6, 9], "Major 13#11b9": [0, 4, 7, 11, 1, 6, 9],
    "Major 13#11#9": [0, 4, 7, 11, 3, 6, 9], "Minor 13#11": [0, 3, 7, 10, 2, 6, 9],
    "Minor 13#11b9": [0, 3, 7, 10, 1, 6, 9], "Dominant 13#11": [0, 4, 7, 10, 2, 6, 9],
    "Dominant 13#11b9": [0, 4, 7, 10, 1, 6, 9], "Dominant 13#11#9": [0, 4, 7, 10, 3, 6, 9],
}

#: Chord types by category, in menu order.
CHORD_CATEGORIES: Final[dict[str, dict[str, list[int]]]] = {
    "Triads (3-note)": TRIADS,
    "Seventh Chords (4-note)": SEVENTH_CHORDS,
    "Suspended Sevenths (4-note)": SUS_SEVENTH_CHORDS,
    "Sixth Chords (4-note)": SIXTH_CHORDS,
    "add 9 Chords (4-note)": ADD_9_CHORDS,
    "add 11 Chords (4-note)": ADD_11_CHORDS,
    "Altered 7ths (4-note)": ALTERED_7TH_CHORDS,
    "Ninth Chords (5-note)": NINTH_CHORDS,
    "Altered 9ths (5-note)": ALTERED_9TH_CHORDS,
    "Sixth/Ninth (5-note)": SIXTH_NINTH_CHORDS,
    "Eleventh Chords (6-note)": ELEVENTH_CHORDS,
    "Sharp 11th Chords (6-note)": SHARP_ELEVENTH_CHORDS,
    "Thirteenth Chords (7-note)": THIRTEENTH_CHORDS,
    "13th #11 Chords (7-note)": THIRTEENTH_SHARP_11_CHORDS,
}

CHORD_TYPES: Final[dict[str, list[int]]] = {
    name: intervals
    for category in CHORD_CATEGORIES.values()
    for name, intervals in category.items()
}

# ── Scales ──────────────────────────────────────────────────────────────────

MAJOR_MODES: Final[dict[str, list[int]]] = {
    "Ionian": [0, 2, 4, 5, 7, 9, 11], "Dorian": [0, 2, 3, 5, 7, 9, 10],
    "Phrygian": [0, 1, 3, 5, 7, 8, 10], "Lydian": [0, 2, 4, 6, 7, 9, 11],
    "Mixolydian": [0, 2, 4, 5, 7, 9, 10], "Aeolian": [0, 2, 3, 5, 7, 8, 10],
    "Locrian": [0, 1, 3, 5, 6, 8, 10],
}

MELODIC_MINOR_MODES: Final[dict[str, list[int]]] = {
    "Melodic Minor": [0, 2, 3, 5, 7, 9, 11], "Dorian b2": [0, 1, 3, 5, 7, 9, 10],
    "Lydian Augmented": [0, 2, 4, 6, 8, 9, 11], "Lydian Dominant": [0, 2, 4, 6, 7, 9, 10],
    "Mixolydian b6": [0, 2, 4, 5, 7, 8, 10], "Locrian natural 2": [0, 2, 3, 5, 6, 8, 10],
    "Super Locrian (Altered Scale)": [0, 1, 3, 4, 6, 8, 10],
}

HARMONIC_MINOR_MODES: Final[dict[str, list[int]]] = {
    "Harmonic Minor": [0, 2, 3, 5, 7, 8, 11], "Locrian natural 6": [0, 1, 3, 5, 6, 9, 10],
    "Ionian #5": [0, 2, 4, 5, 8, 9, 11], "Dorian #4": [0, 2, 3, 6, 7, 9, 10],
    "Phrygian Dominant": [0, 1, 4, 5, 7, 8, 10], "Lydian #2": [0, 3, 4, 6, 7, 9, 11],
    "Super Locrian bb7": [0, 1, 3, 4, 6, 8, 9],
}

PENTATONIC_SCALES: Final[dict[str, list[int]]] = {
    "Major Pentatonic": [0, 2, 4, 7, 9], "Minor Pentatonic": [0, 3, 5, 7, 10],
    "Blues Scale": [0, 3, 5, 6, 7, 10], "Suspended Pentatonic (Egyptian)": [0, 2, 5, 7, 10],
}

JAPANESE_SCALES: Final[dict[str, list[int]]] = {
    "Insen Scale": [0, 1, 5, 7, 10], "Hirajoshi Scale": [0, 2, 3, 7, 8],
}

BEBOP_SCALES: Final[dict[str, list[int]]] = {
    "Bebop Dominant": [0, 2, 4, 5, 7, 9, 10, 11], "Bebop Major": [0, 2, 4, 5, 7, 8, 9, 11],
}

SYMMETRIC_SCALES: Final[dict[str, list[int]]] = {
    "Whole Tone": [0, 2, 4, 6, 8, 10],
    "Whole-Half Diminished": [0, 2, 3, 5, 6, 8, 9, 11],
    "Half-Whole Diminished": [0, 1, 3, 4, 6, 7, 9, 10],
}

SCALES: Final[dict[str, list[int]]] = {
    **MAJOR_MODES, **MELODIC_MINOR_MODES, **HARMONIC_MINOR_MODES, **PENTATONIC_SCALES,
    **JAPANESE_SCALES, **BEBOP_SCALES, **SYMMETRIC_SCALES,
}

#: Diatonic modes first, then the melodic/harmonic minor families, then symmetric.
SCALE_PRIORITY: Final[list[str]] = [
    "Ionian", "Dorian", "Mixolydian", "Aeolian", "Lydian", "Phrygian", "Melodic Minor",
    "Harmonic Minor", "Lydian Dominant", "Phrygian Dominant", "Super Locrian (Altered Scale)",
    "Dorian b2", "Lydian Augmented", "Mixolydian b6", "Locrian natural 2", "Locrian natural 6",
    "Ionian #5", "Dorian #4", "Lydian #2", "Super Locrian bb7", "Whole Tone",
    "Half-Whole Diminished", "Whole-Half Diminished", "Locrian",
]

SCALE_INTERVAL_NAMES: Final[dict[str, list[str]]] = {
    "Ionian": ["R", "M2", "M3", "P4", "P5", "M6", "M7"],
    "Dorian": ["R", "M2", "m3", "P4", "P5", "M6", "m7"],
    "Phrygian": ["R", "b2", "m3", "P4", "P5", "m6", "m7"],
    "Lydian": ["R", "M2", "M3", "#4", "P5", "M6", "M7"],
    "Mixolydian": ["R", "M2", "M3", "P4", "P5", "M6", "m7"],
    "Aeolian": ["R", "M2", "m3", "P4", "P5", "m6", "m7"],
    "Locrian": ["R", "b2", "m3", "P4", "b5", "m6", "m7"],
    "Melodic Minor": ["R", "M2", "m3", "P4", "P5", "M6", "M7"],
    "Dorian b2": ["R", "b2", "m3", "P4", "P5", "M6", "m7"],
    "Lydian Augmented": ["R", "M2", "M3", "#4", "#5", "M6", "M7"],
    "Lydian Dominant": ["R", "M2", "M3", "#4", "P5", "M6", "m7"],
    "Mixolydian b6": ["R", "M2", "M3", "P4", "P5", "b6", "m7"],
    "Locrian natural 2": ["R", "M2", "m3", "P4", "b5", "m6", "m7"],
    "Super Locrian (Altered Scale)": ["R", "b2", "m3", "b4", "b5", "b6", "m7"],
    "Harmonic Minor": ["R", "M2", "m3", "P4", "P5", "m6", "M7"],
    "Locrian natural 6": ["R", "b2", "m3", "P4", "b5", "M6", "m7"],
    "Ionian #5": ["R", "M2", "M3", "P4", "#5", "M6", "M7"],
    "Dorian #4": ["R", "M2", "m3", "#4", "P5", "M6", "m7"],
    "Phrygian Dominant": ["R", "b2", "M3", "P4", "P5", "m6", "m7"],
    "Lydian #2": ["R", "#2", "M3", "#4", "P5", "M6", "M7"],
    "Super Locrian bb7": ["R", "b2", "m3", "b4", "b5", "b6", "bb7"],
    "Whole Tone": ["R", "M2", "M3", "#4", "#5", "b7"],
    "Whole-Half Diminished": ["R", "M2", "m3", "P4", "b5", "m6", "M6", "M7"],
    "Half-Whole Diminished": ["R", "b2", "m3", "b4", "b5", "P5", "M6", "m7"],
}

INTERVAL_NAMES: Final[dict[int, str]] = {
    0: "Root", 1: "m2/b9", 2: "M2/9", 3: "m3", 4: "M3", 5: "P4/11",
    6: "TT/#11/b5", 7: "P5", 8: "m6/b13", 9: "M6/13", 10: "m7", 11: "M7",
}

_ACCIDENTAL_SPELLING: Final[dict[int, str]] = {-2: "bb", -1: "b", 0: "", 1: "#", 2: "x"}
_NATURAL_PITCH_CLASSES: Final[dict[str, int]] = {
    "C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11,
}


# ── Interval naming ─────────────────────────────────────────────────────────

def get_contextual_interval_name(semitones: int, chord_name: str = "") -> str:
    """Name an interval class, choosing the spelling the chord name implies."""
    s = semitones % SEMITONES_PER_OCTAVE
    name = chord_name.lower()
    if s == 0:
        return "R"
    if s == 1:
        return "b9" if "b9" in name else "m2"
    if s == 2:
        return "9" if ("sus2" in name or "9" in name) else "M2"
    if s == 3:
        return "#9" if "#9" in name else "m3"
    if s == 4:
        return "M3"
    if s == 5:
        return "11" if ("sus4" in name or "11" in name) else "P4"
    if s == 6:
        if "lydian" in name or "#11" in name:
            return "#11"
        if "diminished" in name or "b5" in name:
            return "b5"
        return "TT"
    if s == 7:
        return "P5"
    if s == 8:
        if "b13" in name:
            return "b13"
        if "augmented" in name or "#5" in name:
            return "#5"
        return "m6"
    if s == 9:
        if "diminished 7" in name:
            return "bb7"
        return "13" if "13" in name else "M6"
    if s == 10:
        return "m7"
    return "M7"


def get_scale_interval_name(semitones: int, scale_name: str) -> str:
    """Degree name of an interval within *scale_name* ("R", "m3", "#4", ...)."""
    s = semitones % SEMITONES_PER_OCTAVE
    intervals = SCALES.get(scale_name)
    names = SCALE_INTERVAL_NAMES.get(scale_name)
    if not intervals or not names:
        return get_contextual_interval_name(s)
    if s in intervals:
        return names[intervals.index(s)]
    return f"b{get_contextual_interval_name(s)}"


# ── Contextual spelling (presentation only) ─────────────────────────────────

def _spell_by_degree(target_note: str, root_name: str, degree: int) -> str:
    """Spell *target_note* on the letter *degree* steps above the root letter."""
    root_letter = root_name[0]
    letter = NOTE_LETTERS[(NOTE_LETTERS.index(root_letter) + degree - 1) % 7]
    natural = _NATURAL_PITCH_CLASSES[letter]
    target = semitone_index(target_note)
    octave = round((target - natural) / SEMITONES_PER_OCTAVE)
    offset = target - (natural + SEMITONES_PER_OCTAVE * octave)
    accidental = _ACCIDENTAL_SPELLING.get(offset)
    if accidental is None:
        return normalize_note(target_note)
    return f"{letter}{accidental}{octave}"


def _degree_of(interval_name: str) -> int | None:
    if interval_name == "R":
        return 1
    match = re.search(r"\d+", interval_name)
    if not match:
        return None
    return int(match.group(0))


def get_enharmonic_note_name(target_note: str, root_note: str, chord_name: str = "") -> str:
    """
    Spell *target_note* relative to a chord root, e.g. the third of Ab major
    comes out as "C" and the third of E major as "G#".

    Falls back to the canonical sharp spelling where the interval name has no
    degree number (the tritone in a plain context).
    """
    root_name = strip_octave(root_note)
    semitones = get_semitones_between(ensure_octave(root_name), target_note)
    degree = _degree_of(get_contextual_interval_name(semitones, chord_name))
    if degree is None:
        return normalize_note(target_note)
    return _spell_by_degree(target_note, root_name, degree)


def get_scale_note_enharmonic(target_note: str, root_note: str, scale_name: str) -> str:
    """Spell *target_note* by its degree within *scale_name* rooted at *root_note*."""
    root_name = strip_octave(root_note)
    semitones = get_semitones_between(ensure_octave(root_name), target_note)
    degree = _degree_of(get_scale_interval_name(semitones, scale_name))
    if degree is None:
        return normalize_note(target_note)
    return _spell_by_degree(target_note, root_name, degree)


# ── Lookups ─────────────────────────────────────────────────────────────────

def find_scales_for_chord(chord_intervals: list[int]) -> list[str]:
    """
    Return every scale whose interval set contains the chord's interval classes.

    Scales named in SCALE_PRIORITY come first in that order; the rest follow
    in table order.
    """
    chord_set = {i % SEMITONES_PER_OCTAVE for i in chord_intervals}
    ordered = SCALE_PRIORITY + [name for name in SCALES if name not in SCALE_PRIORITY]
    return [name for name in ordered if chord_set <= set(SCALES[name])]


def find_chord_type_by_intervals(intervals: list[int]) -> str | None:
    """Return the chord type whose interval list is exactly *intervals*, if any."""
    wanted = sorted(intervals)
    for name, chord_intervals in sorted(CHORD_TYPES.items(), key=lambda item: len(item[1])):
        if sorted(chord_intervals) == wanted:
            return name
    return None


def chord_quality(chord_intervals: list[int]) -> str:
    """Classify a chord as major, minor or dominant from its 3rd and 7th."""
    intervals = {i % SEMITONES_PER_OCTAVE for i in chord_intervals}
    if 4 in intervals:
        return "dominant" if 10 in intervals else "major"
    return "minor"


def find_parent_scale(
    root_note: str, played_intervals: list[int], chord_intervals: list[int]
) -> str | None:
    """
    Name the first priority scale that fits both the chord quality and the
    intervals actually played, e.g. "E Mixolydian" for a played E7.
    """
    quality = chord_quality(chord_intervals)
    played = set(played_intervals)
    root_name = strip_octave(root_note)

    for scale_name in SCALE_PRIORITY:
        is_major = "Ionian" in scale_name or "Lydian" in scale_name
        is_minor = any(
            word in scale_name
            for word in ("Dorian", "Aeolian", "Phrygian", "Locrian", "Minor")
        )
        is_dominant = "Mixolydian" in scale_name or "Dominant" in scale_name

        if quality == "major" and not is_major:
            continue
        if quality == "minor" and not is_minor:
            continue
        if quality == "dominant" and not is_dominant:
            continue

        if played <= set(SCALES[scale_name]):
            return f"{root_name} {scale_name}"
    return None


def parse_intervals(text: str) -> list[int]:
    """Parse "0,4,7" into ``[0, 4, 7]``; raises ValueError on bad input."""
    values = [part.strip() for part in text.split(",") if part.strip()]
    if not values:
        raise ValueError("At least one interval is required.")
    try:
        return [int(value) for value in values]
    except ValueError as exc:
        raise ValueError(f"Invalid interval list '{text}'.") from exc

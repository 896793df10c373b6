"""Note arithmetic: parsing, enharmonic normalisation and semitone offsets."""

import re
from typing import Final

# Canonical pitch class names (index 0 = C)
NOTE_NAMES: Final[list[str]] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

NOTE_LETTERS: Final[list[str]] = ["C", "D", "E", "F", "G", "A", "B"]

SEMITONES_PER_OCTAVE = 12
A4_FREQUENCY = 440.0
A4 = "A4"

_NATURAL_PITCH_CLASSES: Final[dict[str, int]] = {
    "C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11,
}

_ACCIDENTAL_OFFSETS: Final[dict[str, int]] = {
    "": 0,
    "#": 1, "♯": 1,
    "b": -1, "♭": -1,
    "x": 2, "##": 2, "𝄪": 2,
    "bb": -2, "𝄫": -2,
}

_NOTE_RE = re.compile(r"^([A-G])(##|bb|#|♯|b|♭|x|𝄪|𝄫)?(-?\d+)$")


class InvalidNoteFormat(ValueError):
    """Raised when a string is not ``<A-G><accidental?><octave>``."""

    def __init__(self, note: object) -> None:
        super().__init__(f"Invalid note format: {note!r}.")
        self.note = note


def split_note(note: str) -> tuple[str, str, int]:
    """
    Split a note string into its letter, accidental and octave.

    Args:
        note: Note such as "F#4", "Bb3" or "C𝄪2".

    Returns:
        (letter, accidental, octave). The accidental is "" when absent.

    Raises:
        InvalidNoteFormat: If *note* does not parse.
    """
    if not isinstance(note, str):
        raise InvalidNoteFormat(note)
    match = _NOTE_RE.match(note.strip())
    if not match:
        raise InvalidNoteFormat(note)
    letter, accidental, octave = match.groups()
    return letter, accidental or "", int(octave)


def _pitch_class_of(letter: str, accidental: str) -> int:
    return (_NATURAL_PITCH_CLASSES[letter] + _ACCIDENTAL_OFFSETS[accidental]) % SEMITONES_PER_OCTAVE


def semitone_index(note: str) -> int:
    """
    Absolute semitone index of a note, C0 = 0.

    The spelled pitch class is reduced to one of the 12 canonical classes
    before the octave is applied, so "B#3" is the same index as "C3".
    """
    letter, accidental, octave = split_note(note)
    return _pitch_class_of(letter, accidental) + SEMITONES_PER_OCTAVE * octave


def pitch_class(note: str) -> int:
    """Pitch class (0-11) of a note, ignoring the octave."""
    letter, accidental, _octave = split_note(note)
    return _pitch_class_of(letter, accidental)


def note_from_index(index: int) -> str:
    """Canonical sharp-spelled note for an absolute semitone index."""
    octave, pc = divmod(index, SEMITONES_PER_OCTAVE)
    return f"{NOTE_NAMES[pc]}{octave}"


def normalize_note(note: str) -> str:
    """Respell *note* with the canonical sharp names, keeping its octave."""
    return note_from_index(semitone_index(note))


def get_note_at_offset(note: str, semitones: int) -> str:
    """Return the note *semitones* away from *note*, carrying octaves."""
    return note_from_index(semitone_index(note) + semitones)


def get_semitones_between(note_a: str, note_b: str) -> int:
    """Signed distance ``b - a`` in semitones."""
    return semitone_index(note_b) - semitone_index(note_a)


def note_to_frequency(note: str) -> float:
    """Equal-tempered frequency in Hz with A4 = 440 Hz."""
    return A4_FREQUENCY * 2 ** (get_semitones_between(A4, note) / SEMITONES_PER_OCTAVE)


def note_to_midi(note: str) -> int:
    """MIDI note number, C4 (Middle C) = 60."""
    return semitone_index(note) + SEMITONES_PER_OCTAVE


def is_valid_note(note: str) -> bool:
    try:
        split_note(note)
    except InvalidNoteFormat:
        return False
    return True


def strip_octave(note: str) -> str:
    """Drop a trailing octave number, e.g. "F#4" -> "F#"."""
    return re.sub(r"-?\d+$", "", note.strip())


def ensure_octave(note: str, default_octave: int = 4) -> str:
    """Append *default_octave* when *note* is a bare pitch name such as "Bb"."""
    if is_valid_note(note):
        return note.strip()
    return f"{note.strip()}{default_octave}"

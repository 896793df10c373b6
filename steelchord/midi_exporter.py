"""VoicingMidiExporter: writes chord voicings to a 2-track MIDI file."""

from midiutil import MIDIFile

from steelchord.notes import note_to_midi
from steelchord.voicing_enumerator import Voicing

# midiutil writes Format 1 files with its own tempo track in front, so user
# track 0 is the first data track. Tempo events always land on the tempo track.
TRACK_STEEL = 0

CHANNEL_STEEL = 0
# General MIDI program 25 (0-based 25 = "Acoustic Guitar (steel)")
PROGRAM_STEEL_GUITAR = 25


class VoicingMidiExporter:
    """
    Renders a sequence of voicings as consecutive chords so they can be
    auditioned in any MIDI player.

    Each voicing occupies ``beats_per_voicing`` beats. Only strings in the
    voicing's playback mask sound. With ``strum`` > 0 the strings enter
    one after another, lowest pitch first, ``strum`` beats apart; every
    note still ends with the chord.
    """

    DEFAULT_TEMPO = 72
    DEFAULT_VELOCITY = 90
    DEFAULT_BEATS_PER_VOICING = 2.0

    def __init__(
        self,
        tempo: int = DEFAULT_TEMPO,
        velocity: int = DEFAULT_VELOCITY,
        beats_per_voicing: float = DEFAULT_BEATS_PER_VOICING,
        strum: float = 0.0,
    ) -> None:
        """
        Args:
            tempo:             Playback tempo in beats per minute.
            velocity:          MIDI note-on velocity (0-127).
            beats_per_voicing: Length of each chord in beats.
            strum:             Offset in beats between successive strings.

        Raises:
            ValueError: If a setting is out of range.
        """
        if not 0 <= velocity <= 127:
            raise ValueError(f"velocity must be 0-127, got {velocity}.")
        if beats_per_voicing <= 0:
            raise ValueError("beats_per_voicing must be positive.")
        if strum < 0 or strum >= beats_per_voicing:
            raise ValueError("strum must be >= 0 and shorter than beats_per_voicing.")
        self.tempo = tempo
        self.velocity = velocity
        self.beats_per_voicing = beats_per_voicing
        self.strum = strum

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _pitches(voicing: Voicing) -> list[int]:
        """MIDI pitches of the played strings, low to high, unison doubles kept."""
        return sorted(note_to_midi(n.final_note) for n in voicing.played_notes)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, voicings: list[Voicing]) -> MIDIFile:
        midi = MIDIFile(numTracks=1, removeDuplicates=False, deinterleave=False)
        midi.addTempo(TRACK_STEEL, 0, self.tempo)
        midi.addTrackName(TRACK_STEEL, 0, "Pedal Steel")
        midi.addProgramChange(TRACK_STEEL, CHANNEL_STEEL, 0, PROGRAM_STEEL_GUITAR)

        for position, voicing in enumerate(voicings):
            start = position * self.beats_per_voicing
            for order, pitch in enumerate(self._pitches(voicing)):
                offset = min(order * self.strum, self.beats_per_voicing / 2)
                midi.addNote(
                    track=TRACK_STEEL,
                    channel=CHANNEL_STEEL,
                    pitch=pitch,
                    time=start + offset,
                    duration=self.beats_per_voicing - offset,
                    volume=self.velocity,
                )
        return midi

    def export(self, voicings: list[Voicing], output_path: str) -> None:
        """
        Write *voicings* to a Standard MIDI File.

        Args:
            voicings:    Voicings in playback order.
            output_path: Destination file path (e.g. "voicings.mid").

        Raises:
            ValueError: If *voicings* is empty.
            OSError:    If the output file cannot be opened for writing.
        """
        if not voicings:
            raise ValueError("No voicings to export.")
        midi = self.build(voicings)
        with open(output_path, "wb") as f:
            midi.writeFile(f)

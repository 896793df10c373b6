"""steelchord CLI entry point."""

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from steelchord import __version__
from steelchord.combination_validator import is_full_combination_valid
from steelchord.copedent_models import DEFINE, Copedent, format_control_combination
from steelchord.default_copedents import DEFAULT_COPEDENT_ID, DEFAULT_COPEDENTS, get_default_copedent
from steelchord.notes import ensure_octave
from steelchord.theory import CHORD_TYPES, SCALES, find_scales_for_chord, parse_intervals
from steelchord.voicing_cache import VoicingCache
from steelchord.voicing_enumerator import Voicing

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_PER_FRET = 3


def _fail(exc: Exception) -> NoReturn:
    """Print an error the way every command does and exit with status 1."""
    message = exc.args[0] if isinstance(exc, KeyError) and exc.args else exc
    click.echo(f"  ERROR: {message}", err=True)
    sys.exit(1)


def load_copedent(reference: str) -> Copedent:
    """
    Resolve ``--copedent``: a path to a JSON copedent, else a built-in id.

    Raises:
        KeyError:   If *reference* is neither a file nor a built-in id.
        ValueError: If the JSON is malformed or describes an invalid copedent.
        OSError:    If the file cannot be read.
    """
    path = Path(reference)
    if path.suffix.lower() == ".json" or path.is_file():
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        logger.debug("Loaded copedent '%s' from %s", data.get("id"), path)
        return Copedent.from_dict(data)
    return get_default_copedent(reference)


def _resolve_intervals(chord: str | None, intervals: str | None) -> tuple[str, list[int]]:
    """Pick the target intervals from exactly one of --chord / --intervals."""
    if (chord is None) == (intervals is None):
        raise click.UsageError("Give exactly one of --chord or --intervals.")
    if chord is not None:
        if chord not in CHORD_TYPES:
            raise KeyError(f"Unknown chord type '{chord}'.")
        return chord, list(CHORD_TYPES[chord])
    parsed = parse_intervals(intervals or "")
    return ", ".join(str(i) for i in parsed), parsed


def _parse_string_ids(text: str) -> list[int]:
    try:
        return [int(part) for part in text.split(",") if part.strip()]
    except ValueError as exc:
        raise ValueError(f"Invalid string list '{text}'.") from exc


def _format_voicing(copedent: Copedent, voicing: Voicing) -> str:
    controls = format_control_combination(
        copedent, voicing.pedal_combo, voicing.lever_combo, voicing.mec_combo
    )
    played = " ".join(f"{n.string_id}:{n.final_note}" for n in voicing.played_notes)
    line = (
        f"  fret {voicing.fret:>2}  {controls:<24} "
        f"block {voicing.score.largest_block_size:>2}  {played}"
    )
    if voicing.parent_scale:
        line += f"  [{voicing.parent_scale}]"
    return line


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(
    context_settings={
        "help_option_names": ["-h", "--help"],
        "auto_envvar_prefix": "STEELCHORD",
    }
)
@click.version_option(version=__version__, prog_name="steelchord")
@click.option(
    "--copedent",
    default=DEFAULT_COPEDENT_ID,
    show_default=True,
    metavar="ID|PATH",
    help="Built-in copedent id or path to a copedent JSON file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, copedent: str, verbose: bool) -> None:
    """steelchord: chord voicing explorer for the pedal steel guitar."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )
    ctx.obj = {"copedent_ref": copedent, "cache": VoicingCache()}


def _copedent_from(ctx: click.Context) -> Copedent:
    try:
        return load_copedent(ctx.obj["copedent_ref"])
    except (KeyError, ValueError, OSError) as exc:
        _fail(exc)


# ── copedents subcommand ───────────────────────────────────────────────────────

@main.command()
def copedents() -> None:
    """List the built-in copedents."""
    for copedent in DEFAULT_COPEDENTS.values():
        click.echo(
            f"{copedent.id:<30} {copedent.name}  "
            f"({len(copedent.strings)} strings, {len(copedent.pedals)} pedals, "
            f"{len(copedent.active_knee_levers)} knee levers)"
        )


# ── splits subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.option(
    "--refresh",
    is_flag=True,
    help="Re-detect splits from the control changes, keeping existing resolutions.",
)
@click.pass_context
def splits(ctx: click.Context, refresh: bool) -> None:
    """
    Show the detected splits of a copedent.

    Unresolved splits ("DEFINE") must be set to include or exclude before
    the copedent can be searched.
    """
    copedent = _copedent_from(ctx)
    if refresh:
        copedent = copedent.refresh_splits()

    click.echo(f"{copedent.name} ({copedent.id})")
    if not copedent.detected_splits:
        click.echo("  No splits.")
        return

    pending = 0
    for split in copedent.detected_splits:
        state = split.is_included_in_calculation
        if state == DEFINE:
            pending += 1
        names = " + ".join(ref.name for ref in split.conflicting_controls)
        click.echo(
            f"  string {split.string_id:>2} ({split.open_note:<4}) {names:<16} "
            f"change {split.manual_semitone_change:+d}  [{state}]"
        )
    if pending:
        click.echo(f"  {pending} split(s) unresolved.", err=True)


# ── find subcommand ────────────────────────────────────────────────────────────

@main.command()
@click.argument("root")
@click.option("--chord", default=None, metavar="NAME", help='Chord type, e.g. "Major 7".')
@click.option("--intervals", default=None, metavar="LIST", help="Intervals, e.g. 0,4,7.")
@click.option(
    "--results-per-fret",
    type=click.IntRange(1, 100),
    default=DEFAULT_RESULTS_PER_FRET,
    show_default=True,
    help="Maximum voicings listed per fret.",
)
@click.option(
    "--all-combos",
    is_flag=True,
    help="Keep combinations that only add controls to a simpler match.",
)
@click.option("--omit-unisons", is_flag=True, help="Play one string per unison group.")
@click.option("--midi", "midi_path", default=None, metavar="PATH", help="Also write a MIDI file.")
@click.option("--json", "as_json", is_flag=True, help="Print voicings as JSON.")
@click.pass_context
def find(
    ctx: click.Context,
    root: str,
    chord: str | None,
    intervals: str | None,
    results_per_fret: int,
    all_combos: bool,
    omit_unisons: bool,
    midi_path: str | None,
    as_json: bool,
) -> None:
    """
    Find every fret and control combination that voices a chord.

    ROOT is the chord root, e.g. E4 (octave 4 is assumed when omitted).

    \b
    Examples:
      steelchord find E --chord "Major Triad"
      steelchord find A3 --intervals 0,4,7,10 --results-per-fret 2
      steelchord --copedent default-c6-standard find C --chord "Major 6" --midi c6.mid
    """
    copedent = _copedent_from(ctx)
    try:
        label, targets = _resolve_intervals(chord, intervals)
        root_note = ensure_octave(root)
        voicings = ctx.obj["cache"].find_chord_voicings_with_cache(
            copedent,
            root_note,
            targets,
            results_per_fret,
            prune_redundant=not all_combos,
            omit_unisons=omit_unisons,
        )
    except (KeyError, ValueError) as exc:
        _fail(exc)

    if as_json:
        click.echo(json.dumps([v.to_dict() for v in voicings], indent=2))
    else:
        click.echo(f"steelchord v{__version__}")
        click.echo(f"  Copedent : {copedent.name}")
        click.echo(f"  Chord    : {root_note} {label}")
        click.echo()
        if not voicings:
            click.echo("  No voicings found.")
        for voicing in voicings:
            click.echo(_format_voicing(copedent, voicing))

    if midi_path is not None and voicings:
        from steelchord.midi_exporter import VoicingMidiExporter

        try:
            VoicingMidiExporter().export(voicings, midi_path)
        except OSError as exc:
            _fail(exc)
        click.echo(f"Wrote {len(voicings)} voicing(s) to '{midi_path}'.", err=as_json)


# ── decipher subcommand ────────────────────────────────────────────────────────

def _control_options(func):
    """Shared --pedal / --lever / --mechanism options."""
    func = click.option(
        "--mechanism", "mechanisms", multiple=True, metavar="ID", help="Engaged mechanism id."
    )(func)
    func = click.option("--lever", "levers", multiple=True, metavar="ID", help="Engaged lever id.")(func)
    func = click.option("--pedal", "pedals", multiple=True, metavar="ID", help="Engaged pedal id.")(func)
    return func


@main.command()
@click.option("--fret", type=click.IntRange(0, 24), required=True, help="Bar position.")
@click.option("--strings", "string_list", required=True, metavar="LIST", help="Picked strings, e.g. 3,4,5.")
@_control_options
@click.option("--json", "as_json", is_flag=True, help="Print interpretations as JSON.")
@click.pass_context
def decipher(
    ctx: click.Context,
    fret: int,
    string_list: str,
    pedals: tuple[str, ...],
    levers: tuple[str, ...],
    mechanisms: tuple[str, ...],
    as_json: bool,
) -> None:
    """
    Name the chord sounded by picked strings at a fret and control setting.

    \b
    Examples:
      steelchord decipher --fret 0 --strings 3,4,5
      steelchord decipher --fret 3 --strings 3,4,5,6 --pedal P1 --pedal P2
    """
    from steelchord.chord_decipher import decipher_chord

    copedent = _copedent_from(ctx)
    try:
        played = _parse_string_ids(string_list)
        check = is_full_combination_valid(pedals, levers, mechanisms, copedent)
        if not check:
            raise ValueError(check.message)
        results = decipher_chord(copedent, fret, played, pedals, levers, mechanisms)
    except (KeyError, ValueError) as exc:
        _fail(exc)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
        return
    if not results:
        click.echo("  No chord recognised (at least three distinct pitches are needed).")
        return
    for rank, result in enumerate(results, start=1):
        click.echo(f"  {rank}. {result.chord_name}  (score {result.score:.0f})")


# ── scale subcommand ───────────────────────────────────────────────────────────

@main.command()
@click.argument("root")
@click.argument("scale_name")
@_control_options
@click.pass_context
def scale(
    ctx: click.Context,
    root: str,
    scale_name: str,
    pedals: tuple[str, ...],
    levers: tuple[str, ...],
    mechanisms: tuple[str, ...],
) -> None:
    """
    Map a scale across frets 0-12 for one control setting.

    \b
    Examples:
      steelchord scale E Ionian
      steelchord scale A "Mixolydian" --pedal P1 --pedal P2
    """
    from steelchord.voicing_enumerator import find_scale_on_fretboard

    copedent = _copedent_from(ctx)
    try:
        check = is_full_combination_valid(pedals, levers, mechanisms, copedent)
        if not check:
            raise ValueError(check.message)
        cells = find_scale_on_fretboard(copedent, root, scale_name, pedals, levers, mechanisms)
    except (KeyError, ValueError) as exc:
        _fail(exc)

    click.echo(f"{ensure_octave(root)} {scale_name} on {copedent.name}")
    by_fret: dict[int, list[str]] = {}
    for cell in cells:
        by_fret.setdefault(cell.fret, []).append(
            f"{cell.string_id}:{cell.note_name}({cell.interval_name})"
        )
    for fret, entries in sorted(by_fret.items()):
        click.echo(f"  fret {fret:>2}  {' '.join(entries)}")


# ── scales-for-chord subcommand ────────────────────────────────────────────────

@main.command("scales-for-chord")
@click.option("--chord", default=None, metavar="NAME", help='Chord type, e.g. "Dominant 7".')
@click.option("--intervals", default=None, metavar="LIST", help="Intervals, e.g. 0,4,7,10.")
def scales_for_chord(chord: str | None, intervals: str | None) -> None:
    """List scales that contain every tone of a chord, most common first."""
    try:
        _label, targets = _resolve_intervals(chord, intervals)
    except (KeyError, ValueError) as exc:
        _fail(exc)

    names = find_scales_for_chord(targets)
    if not names:
        click.echo("  No scale contains this chord.")
    for name in names:
        click.echo(f"  {name:<24} {' '.join(str(i) for i in SCALES[name])}")


# ── validate subcommand ────────────────────────────────────────────────────────

@main.command()
@_control_options
@click.pass_context
def validate(
    ctx: click.Context,
    pedals: tuple[str, ...],
    levers: tuple[str, ...],
    mechanisms: tuple[str, ...],
) -> None:
    """Check whether a set of controls can be engaged together."""
    copedent = _copedent_from(ctx)
    try:
        result = is_full_combination_valid(pedals, levers, mechanisms, copedent)
    except ValueError as exc:
        _fail(exc)

    if result:
        click.echo(f"Valid: {format_control_combination(copedent, pedals, levers, mechanisms)}")
    else:
        click.echo(f"  INVALID: {result.message}", err=True)
        sys.exit(1)

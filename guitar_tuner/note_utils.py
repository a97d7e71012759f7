"""Utility functions for working with musical notes and frequencies.

All frequencies use twelve-tone equal temperament with A4 = 440 Hz.
"""

import math
from typing import Dict, List

from .logging_config import get_logger
from .note_types import Accidental, Letter, Note

# Get logger for this module
logger = get_logger(__name__)

A4_FREQUENCY = 440.0

# Semitones above C within one octave
BASE_SEMITONES: Dict[Letter, int] = {
    Letter.C: 0,
    Letter.D: 2,
    Letter.E: 4,
    Letter.F: 5,
    Letter.G: 7,
    Letter.A: 9,
    Letter.B: 11,
}

ACCIDENTAL_SEMITONES: Dict[Accidental, int] = {
    Accidental.SHARP: 1,
    Accidental.FLAT: -1,
}

LETTER_ORDER: List[Letter] = [
    Letter.C,
    Letter.D,
    Letter.E,
    Letter.F,
    Letter.G,
    Letter.A,
    Letter.B,
]

# Standard six-string guitar tuning, high string first
STANDARD_TUNING: List[str] = ["E4", "B3", "G3", "D3", "A2", "E2"]


def semitone_count(note: Note) -> int:
    """Number of semitones from C0 to the note."""
    count = BASE_SEMITONES[note.letter]
    if note.accidental is not None:
        count += ACCIDENTAL_SEMITONES[note.accidental]
    return count + 12 * note.octave


_A4_SEMITONES = semitone_count(Note(Letter.A, 4))


def get_note_frequency(note: Note) -> float:
    """Equal-tempered frequency of a note in Hz.

    Examples:
        >>> get_note_frequency(Note.parse("A4"))
        440.0
        >>> round(get_note_frequency(Note.parse("E2")), 4)
        82.4069
    """
    difference = semitone_count(note) - _A4_SEMITONES
    return A4_FREQUENCY * 2.0 ** (difference / 12.0)


def _next_letter(letter: Letter) -> Letter:
    return LETTER_ORDER[(LETTER_ORDER.index(letter) + 1) % len(LETTER_ORDER)]


def _prev_letter(letter: Letter) -> Letter:
    return LETTER_ORDER[(LETTER_ORDER.index(letter) - 1) % len(LETTER_ORDER)]


def semitone_up(note: Note) -> Note:
    """Return the note one half step above.

    E and B step straight to the next natural letter, other naturals gain a
    sharp, sharps move on to the next natural and flats drop their accidental.
    The octave increases exactly when crossing from B to C.
    """
    if note.accidental is None:
        if note.letter is Letter.E:
            return Note(Letter.F, note.octave)
        if note.letter is Letter.B:
            return Note(Letter.C, note.octave + 1)
        return Note(note.letter, note.octave, Accidental.SHARP)

    if note.accidental is Accidental.SHARP:
        # B# is never constructed, so a sharp never crosses the octave boundary
        return Note(_next_letter(note.letter), note.octave)

    return Note(note.letter, note.octave)


def semitone_down(note: Note) -> Note:
    """Return the note one half step below.

    Mirror image of :func:`semitone_up`: F and C step to E and B, other
    naturals gain a flat, flats move back to the previous natural and sharps
    drop their accidental. The octave decreases exactly when crossing from C
    to B.
    """
    if note.accidental is None:
        if note.letter is Letter.F:
            return Note(Letter.E, note.octave)
        if note.letter is Letter.C:
            return Note(Letter.B, note.octave - 1)
        return Note(note.letter, note.octave, Accidental.FLAT)

    if note.accidental is Accidental.FLAT:
        return Note(_prev_letter(note.letter), note.octave)

    return Note(note.letter, note.octave)


def parse_tuning(spellings) -> List[Note]:
    """Parse an ordered tuning such as ``["E4", "B3", ...]`` into notes.

    Raises:
        InvalidNoteError: If any spelling is invalid
    """
    notes = [Note.parse(spelling) for spelling in spellings]
    logger.debug(f"Parsed tuning: {' '.join(str(n) for n in notes)}")
    return notes


def cents_off(freq: float, note: Note) -> float:
    """Deviation of ``freq`` from the note's reference frequency in cents."""
    return 1200.0 * math.log2(freq / get_note_frequency(note))

"""Type definitions for the guitar tuner."""

from __future__ import annotations
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .core.errors import InvalidNoteError

# Compile regex to extract note letter, accidental and octave
# This pattern matches:
# - Note letter (A-G, upper case)
# - Optional accidental (# or b)
# - Octave number (may be negative)
NOTE_PATTERN = re.compile(r"^([A-G])([#b]?)(-?\d+)$")


class Letter(Enum):
    """Natural note letters."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"


class Accidental(Enum):
    """Accidentals a note may carry."""

    SHARP = "#"
    FLAT = "b"


# Spellings with no accidental between the two letters (E/F and B/C)
DISALLOWED_SPELLINGS = frozenset(
    {
        (Letter.E, Accidental.SHARP),
        (Letter.B, Accidental.SHARP),
        (Letter.C, Accidental.FLAT),
        (Letter.F, Accidental.FLAT),
    }
)


@dataclass(frozen=True)
class Note:
    """A note in scientific pitch notation, e.g. ``Note.parse("Bb3")``."""

    letter: Letter
    octave: int
    accidental: Optional[Accidental] = None

    def __post_init__(self):
        if not isinstance(self.letter, Letter):
            raise InvalidNoteError(f"Invalid note letter: {self.letter!r}")
        if self.accidental is not None and not isinstance(self.accidental, Accidental):
            raise InvalidNoteError(f"Invalid accidental: {self.accidental!r}")
        if (self.letter, self.accidental) in DISALLOWED_SPELLINGS:
            raise InvalidNoteError(
                f"Invalid note {self.letter.value}{self.accidental.value}{self.octave}"
            )

    @classmethod
    def parse(cls, text: str) -> Note:
        """Build a note from its spelling.

        Args:
            text: Note spelling such as 'E2', 'F#3' or 'Bb3'

        Returns:
            The parsed note

        Raises:
            InvalidNoteError: If the text is malformed or the spelling is disallowed
        """
        match = NOTE_PATTERN.match(str(text).strip())
        if not match:
            raise InvalidNoteError(f"Invalid note format: '{text}'")

        letter, accidental, octave = match.groups()
        return cls(
            letter=Letter(letter),
            octave=int(octave),
            accidental=Accidental(accidental) if accidental else None,
        )

    @property
    def name(self) -> str:
        """The note spelling without octave (e.g., 'F#')."""
        return self.letter.value + (self.accidental.value if self.accidental else "")

    def __str__(self):
        return f"{self.name}{self.octave}"


@dataclass(frozen=True)
class DetectedPitch:
    """A successful detection: the matched tuning note and the measured frequency."""

    note: Note
    frequency: float  # Hz, after harmonic resolution

    def __str__(self):
        return f"{self.note} ({self.frequency:.2f}Hz)"

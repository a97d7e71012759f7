"""Pitch detection pipeline."""

from .pitch_detector import PitchDetector, detect_note

__all__ = ["PitchDetector", "detect_note"]

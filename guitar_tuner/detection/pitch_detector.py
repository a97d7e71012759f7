"""Pitch detection by normalized square difference (generalized autocorrelation).

The pipeline runs on one fixed-length snapshot of samples:

1. low-pass filter the samples with a Hamming-windowed sinc FIR,
2. compute the normalized square difference (NSD) for every lag,
3. extract the key maxima between zero crossings of the NSD,
4. pick the lowest-lag maximum close enough to the highest one,
5. refine its lag with parabolic interpolation,
6. try the frequency and its sub-harmonics against the tuning notes,
7. report the closest tuning note within the allowed difference.

Every stage is a plain function so it can be exercised on its own; the
:class:`PitchDetector` class binds the tunable constants together.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import ClassVar, Dict, List, Optional, Sequence

import numpy as np

from ..logging_config import get_logger
from ..note_types import DetectedPitch, Note
from ..note_utils import get_note_frequency

logger = get_logger(__name__)


@dataclass(frozen=True)
class KeyMaxima:
    """Highest NSD value between two zero crossings, with its direct neighbors."""

    index: int
    value: float
    left_neighbor: Optional[float]  # None only at the first lag
    right_neighbor: Optional[float]  # None only at the last lag


def low_pass_filter(cutoff_frequency: float, order: int) -> np.ndarray:
    """Design a windowed-sinc low-pass FIR filter.

    Args:
        cutoff_frequency: Cutoff as a fraction of the sampling rate (0 - 0.5)
        order: Number of coefficients; must be odd so the filter is symmetric

    Returns:
        Filter coefficients normalized to sum to one (unity gain at DC)
    """
    if order < 1 or order % 2 == 0:
        raise ValueError(f"Filter order must be a positive odd number, got {order}")
    if not 0.0 < cutoff_frequency < 0.5:
        raise ValueError(f"Cutoff must be between 0 and 0.5 of the sampling rate, got {cutoff_frequency}")

    bound = (order - 1) // 2
    taps = np.arange(-bound, bound + 1, dtype=np.float64)

    # np.sinc is the normalized sinc, sin(pi x) / (pi x)
    ideal = 2.0 * cutoff_frequency * np.sinc(2.0 * cutoff_frequency * taps)
    coefficients = ideal * np.hamming(order)

    return coefficients / np.sum(coefficients)


def apply_filter(samples: np.ndarray, coefficients: np.ndarray) -> np.ndarray:
    """Causally convolve the samples with the filter.

    The first outputs only use the taps for which history exists; nothing is
    assumed about the signal before the first sample.
    """
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return samples.copy()
    return np.convolve(samples, coefficients)[: samples.size]


def normalized_square_difference(samples: np.ndarray) -> np.ndarray:
    """Compute the NSD of the samples for every lag in ``[0, len(samples))``.

    ``NSD[L] = 2 * sum(x[i] * x[i + L]) / sum(x[i]**2 + x[i + L]**2)``, summed
    over ``i`` in ``[0, N - L)``. Lags whose denominator is zero (silence) are 0.
    """
    x = np.asarray(samples, dtype=np.float64)
    n = x.size
    if n == 0:
        return np.zeros(0)

    # Lag-L cross terms: correlate()[n - 1 + L] == sum(x[i] * x[i + L])
    numerator = np.correlate(x, x, mode="full")[n - 1 :]

    # Energy of the leading window x[0:n-L] plus the trailing window x[L:n]
    cumulative = np.concatenate(([0.0], np.cumsum(x * x)))
    lags = np.arange(n)
    denominator = cumulative[n - lags] + (cumulative[n] - cumulative[lags])

    nsd = np.zeros(n)
    audible = denominator > 0.0
    nsd[audible] = 2.0 * numerator[audible] / denominator[audible]
    return nsd


def _key_maxima_at(values: List[float], index: int) -> KeyMaxima:
    return KeyMaxima(
        index=index,
        value=values[index],
        left_neighbor=values[index - 1] if index > 0 else None,
        right_neighbor=values[index + 1] if index < len(values) - 1 else None,
    )


def key_local_maxima(nsd: Sequence[float]) -> List[KeyMaxima]:
    """Extract one maximum per positive region of the NSD.

    The scan starts inside the zero-lag hump. Every zero crossing toggles
    between tracking a maximum and skipping a negative region; leaving a
    positive region records the tracked maximum, and a region still open at
    the end is recorded as well. The first entry is therefore always the
    zero-lag hump.
    """
    values = np.asarray(nsd, dtype=np.float64).tolist()
    if not values:
        return []

    tracking = True
    previous = values[0]
    best_index: Optional[int] = None
    maxima: List[KeyMaxima] = []

    for index, value in enumerate(values):
        if (previous > 0.0) != (value > 0.0):
            # Zero crossing
            if tracking:
                if best_index is not None:
                    maxima.append(_key_maxima_at(values, best_index))
                best_index = None
                tracking = False
            else:
                tracking = True

        if tracking and (best_index is None or values[best_index] < value):
            best_index = index

        previous = value

    if best_index is not None:
        maxima.append(_key_maxima_at(values, best_index))

    return maxima


def pick_maxima(maxima: Sequence[KeyMaxima], threshold: float) -> Optional[KeyMaxima]:
    """Pick the lowest-lag maximum whose value reaches ``threshold`` times the highest.

    The first maximum (zero-lag self correlation) never takes part.

    Returns:
        The selected maximum, or None if fewer than two maxima exist
    """
    candidates = list(maxima[1:])
    if not candidates:
        return None

    highest = max(m.value for m in candidates)
    return next((m for m in candidates if m.value >= highest * threshold), None)


def parabolic_interpolation(maxima: KeyMaxima) -> float:
    """Refine the lag of a maximum by fitting a parabola through it and its neighbors.

    With the three points at x = 0, 1, 2 the parabola ``a x^2 + b x + c`` peaks at
    ``x = -b / 2a``. A maximum on the sequence boundary, or three colinear points
    (``a == 0``), keep the integer lag.
    """
    left, center, right = maxima.left_neighbor, maxima.value, maxima.right_neighbor
    if left is None or right is None:
        return float(maxima.index)

    a = (left + right) / 2.0 - center
    b = 2.0 * center - 0.5 * right - 1.5 * left
    if a == 0.0:
        return float(maxima.index)

    return maxima.index - 1.0 + (-b / (2.0 * a))


def infer_note(
    frequency: float, tuning_notes: Sequence[Note], max_difference: float
) -> Optional[Note]:
    """Find the tuning note closest to ``frequency``.

    Notes further than ``max_difference`` Hz away are not considered.

    Returns:
        The closest qualifying note, or None if no note qualifies
    """
    best_note: Optional[Note] = None
    best_difference = max_difference
    for note in tuning_notes:
        difference = abs(frequency - get_note_frequency(note))
        if difference <= best_difference and (best_note is None or difference < best_difference):
            best_note = note
            best_difference = difference
    return best_note


class PitchDetector:
    """Detect which tuning note a snapshot of samples is playing.

    The detector holds no per-snapshot state; the filter coefficients are
    designed once per sampling rate and reused.
    """

    # Guitar fundamentals span roughly 75Hz - 1320Hz, overtones included
    MAX_FREQUENCY: ClassVar[float] = 1325.0
    FILTER_ORDER: ClassVar[int] = 255
    # A maximum within this fraction of the highest one may be the fundamental
    MAXIMA_THRESHOLD: ClassVar[float] = 0.85
    FREQUENCY_MAX_DIFFERENCE: ClassVar[float] = 5.0  # Hz
    MAX_HARMONIC_DEGREE: ClassVar[int] = 5

    def __init__(
        self,
        max_frequency: Optional[float] = None,
        filter_order: Optional[int] = None,
        maxima_threshold: Optional[float] = None,
        frequency_max_difference: Optional[float] = None,
        max_harmonic_degree: Optional[int] = None,
    ) -> None:
        """Initialize the detector.

        Args:
            max_frequency: Low-pass cutoff in Hz (default 1325.0)
            filter_order: Number of FIR coefficients, odd (default 255)
            maxima_threshold: Fraction of the highest NSD maximum a candidate must reach (default 0.85)
            frequency_max_difference: Largest distance in Hz to a tuning note (default 5.0)
            max_harmonic_degree: Highest divisor tried when resolving harmonics (default 5)
        """
        self._max_frequency = float(
            max_frequency if max_frequency is not None else self.MAX_FREQUENCY
        )
        self._filter_order = int(
            filter_order if filter_order is not None else self.FILTER_ORDER
        )
        self._maxima_threshold = float(
            maxima_threshold if maxima_threshold is not None else self.MAXIMA_THRESHOLD
        )
        self._frequency_max_difference = float(
            frequency_max_difference
            if frequency_max_difference is not None
            else self.FREQUENCY_MAX_DIFFERENCE
        )
        self._max_harmonic_degree = int(
            max_harmonic_degree
            if max_harmonic_degree is not None
            else self.MAX_HARMONIC_DEGREE
        )

        if self._max_frequency <= 0:
            raise ValueError("max_frequency must be positive")
        if self._filter_order < 1 or self._filter_order % 2 == 0:
            raise ValueError("filter_order must be a positive odd number")
        if not 0.0 < self._maxima_threshold <= 1.0:
            raise ValueError("maxima_threshold must be in (0.0, 1.0]")
        if self._frequency_max_difference < 0:
            raise ValueError("frequency_max_difference must not be negative")
        if self._max_harmonic_degree < 1:
            raise ValueError("max_harmonic_degree must be at least 1")

        self._filters: Dict[int, np.ndarray] = {}

    def _filter_for(self, sample_rate: int) -> np.ndarray:
        coefficients = self._filters.get(sample_rate)
        if coefficients is None:
            coefficients = low_pass_filter(self._max_frequency / sample_rate, self._filter_order)
            self._filters[sample_rate] = coefficients
        return coefficients

    def check_sample_rate(self, sample_rate: int) -> None:
        """Design the filter for ``sample_rate`` ahead of the first snapshot.

        Raises:
            ValueError: If the rate is not positive or the cutoff is not below half of it
        """
        if sample_rate <= 0:
            raise ValueError("Sample rate must be positive")
        self._filter_for(sample_rate)

    def infer_fundamental_frequency(self, nsd: np.ndarray, sample_rate: int) -> Optional[float]:
        """Estimate the frequency of the dominant periodicity from an NSD curve.

        Returns:
            The frequency in Hz, or None if no usable maximum exists
        """
        maxima = key_local_maxima(nsd)
        best = pick_maxima(maxima, self._maxima_threshold)
        if best is None:
            logger.debug(f"No usable maximum among {len(maxima)} key maxima")
            return None

        lag = parabolic_interpolation(best)
        if lag <= 0.0:
            logger.debug(f"Rejected non-positive interpolated lag {lag:.3f}")
            return None

        logger.debug(
            f"Selected maximum at lag {best.index} (value {best.value:.3f}), "
            f"interpolated lag {lag:.3f}"
        )
        return sample_rate / lag

    def detect_note(
        self, samples: np.ndarray, sample_rate: int, tuning_notes: Sequence[Note]
    ) -> Optional[DetectedPitch]:
        """Run the full pipeline on one snapshot.

        Args:
            samples: Mono samples, nominally in [-1.0, 1.0]
            sample_rate: Sampling rate of the samples in Hz
            tuning_notes: Notes the result may be matched to

        Returns:
            The matched note and measured frequency, or None when nothing was detected

        Raises:
            ValueError: If the snapshot is empty or the sample rate is not positive
        """
        samples = np.asarray(samples, dtype=np.float64)
        if samples.size == 0:
            raise ValueError("Cannot detect a pitch in an empty snapshot")
        self.check_sample_rate(sample_rate)

        filtered = apply_filter(samples, self._filter_for(sample_rate))
        nsd = normalized_square_difference(filtered)

        frequency = self.infer_fundamental_frequency(nsd, sample_rate)
        if frequency is None:
            return None

        # The NSD may lock onto an overtone; try the sub-harmonics too
        for harmonic_degree in range(1, self._max_harmonic_degree + 1):
            harmonic_frequency = frequency / harmonic_degree
            note = infer_note(harmonic_frequency, tuning_notes, self._frequency_max_difference)
            if note is not None:
                if harmonic_degree > 1:
                    logger.debug(
                        f"Resolved {frequency:.2f}Hz as harmonic {harmonic_degree} of {note}"
                    )
                return DetectedPitch(note=note, frequency=harmonic_frequency)

        logger.debug(f"No tuning note near {frequency:.2f}Hz or its sub-harmonics")
        return None

    @property
    def max_frequency(self) -> float:
        return self._max_frequency

    @property
    def filter_order(self) -> int:
        return self._filter_order

    @property
    def maxima_threshold(self) -> float:
        return self._maxima_threshold

    @property
    def frequency_max_difference(self) -> float:
        return self._frequency_max_difference

    @property
    def max_harmonic_degree(self) -> int:
        return self._max_harmonic_degree


_default_detector = PitchDetector()


def detect_note(
    samples: np.ndarray, sample_rate: int, tuning_notes: Sequence[Note]
) -> Optional[DetectedPitch]:
    """Detect a note with the default detector settings."""
    return _default_detector.detect_note(samples, sample_rate, tuning_notes)

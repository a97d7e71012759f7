"""Tests for the NSD pitch detection pipeline."""

import numpy as np
import pytest

from guitar_tuner.audio.fixtures import load_pcm_fixture, overlap_chunks
from guitar_tuner.detection import PitchDetector, detect_note
from guitar_tuner.detection.pitch_detector import (
    KeyMaxima,
    apply_filter,
    infer_note,
    key_local_maxima,
    low_pass_filter,
    normalized_square_difference,
    parabolic_interpolation,
    pick_maxima,
)
from guitar_tuner.note_types import Note
from guitar_tuner.note_utils import get_note_frequency, parse_tuning


class TestLowPassFilter:
    def test_coefficients_are_symmetric_with_unity_gain(self):
        coefficients = low_pass_filter(1325.0 / 44100, 255)

        assert coefficients.size == 255
        assert np.sum(coefficients) == pytest.approx(1.0)
        np.testing.assert_allclose(coefficients, coefficients[::-1])
        assert np.argmax(coefficients) == 127

    @pytest.mark.parametrize("order", [0, -3, 4, 256])
    def test_rejects_even_or_non_positive_order(self, order):
        with pytest.raises(ValueError):
            low_pass_filter(0.03, order)

    @pytest.mark.parametrize("cutoff", [0.0, 0.5, 0.75, -0.1])
    def test_rejects_cutoff_outside_nyquist(self, cutoff):
        with pytest.raises(ValueError):
            low_pass_filter(cutoff, 255)

    def test_first_outputs_use_only_available_taps(self):
        coefficients = low_pass_filter(0.1, 31)
        filtered = apply_filter(np.ones(100), coefficients)

        assert filtered.size == 100
        assert filtered[0] == pytest.approx(coefficients[0])
        np.testing.assert_allclose(filtered[:31], np.cumsum(coefficients))
        # Once the whole filter overlaps the signal, DC passes unchanged
        np.testing.assert_allclose(filtered[30:], 1.0)

    def test_attenuates_above_cutoff(self, sine_wave):
        coefficients = low_pass_filter(1325.0 / 44100, 255)
        high = apply_filter(sine_wave(5000.0, 8192), coefficients)
        low = apply_filter(sine_wave(200.0, 8192), coefficients)

        assert np.max(np.abs(high[1000:])) < 0.01
        assert np.max(np.abs(low[1000:])) == pytest.approx(0.5, abs=0.01)


class TestNormalizedSquareDifference:
    def test_silence_gives_zeros(self):
        nsd = normalized_square_difference(np.zeros(256))
        assert nsd.size == 256
        assert not np.any(nsd)

    def test_zero_lag_is_one(self, sine_wave):
        nsd = normalized_square_difference(sine_wave(110.0, 1024))
        assert nsd[0] == pytest.approx(1.0)

    def test_matches_definition(self):
        x = np.random.default_rng(3).uniform(-1.0, 1.0, 64)
        n = x.size
        expected = [
            2 * np.sum(x[: n - lag] * x[lag:]) / np.sum(x[: n - lag] ** 2 + x[lag:] ** 2)
            for lag in range(n)
        ]

        np.testing.assert_allclose(normalized_square_difference(x), expected, atol=1e-12)

    def test_values_stay_within_unit_range(self, sine_wave):
        nsd = normalized_square_difference(sine_wave(196.0, 2048) + 0.1)
        assert np.all(nsd <= 1.0 + 1e-12)
        assert np.all(nsd >= -1.0 - 1e-12)


class TestKeyLocalMaxima:
    def test_one_maximum_per_positive_region(self):
        nsd = [1.0, 0.5, -0.2, -0.5, 0.3, 0.8, 0.4, -0.1, 0.2, 0.9, 0.6]

        assert key_local_maxima(nsd) == [
            KeyMaxima(index=0, value=1.0, left_neighbor=None, right_neighbor=0.5),
            KeyMaxima(index=5, value=0.8, left_neighbor=0.3, right_neighbor=0.4),
            KeyMaxima(index=9, value=0.9, left_neighbor=0.2, right_neighbor=0.6),
        ]

    def test_maximum_on_last_lag_has_no_right_neighbor(self):
        maxima = key_local_maxima([1.0, -0.5, 0.2, 0.7])

        assert [m.index for m in maxima] == [0, 3]
        assert maxima[1].left_neighbor == 0.2
        assert maxima[1].right_neighbor is None

    def test_first_of_equal_values_wins(self):
        maxima = key_local_maxima([1.0, -0.1, 0.4, 0.4, -0.2])
        assert maxima[1].index == 2

    def test_silence_yields_only_zero_lag_region(self):
        maxima = key_local_maxima(np.zeros(32))
        assert len(maxima) == 1
        assert maxima[0].index == 0

    def test_empty(self):
        assert key_local_maxima([]) == []


class TestPickMaxima:
    @staticmethod
    def maxima(*values):
        return [KeyMaxima(i * 10, v, v, v) for i, v in enumerate(values)]

    def test_first_maximum_is_excluded(self):
        assert pick_maxima(self.maxima(1.0), 0.85) is None
        assert pick_maxima([], 0.85) is None

    def test_lowest_lag_above_threshold(self):
        # Highest candidate is 0.95, so 0.9 already qualifies
        chosen = pick_maxima(self.maxima(1.0, 0.7, 0.9, 0.95), 0.85)
        assert chosen.index == 20

    def test_highest_candidate_when_no_earlier_one_qualifies(self):
        chosen = pick_maxima(self.maxima(1.0, 0.2, 0.3, 0.6), 0.85)
        assert chosen.index == 30


class TestParabolicInterpolation:
    def test_recovers_vertex_of_parabola(self):
        # y = 1 - (x - 10.3)^2 sampled at 9, 10, 11
        maxima = KeyMaxima(index=10, value=0.91, left_neighbor=-0.69, right_neighbor=0.51)
        assert parabolic_interpolation(maxima) == pytest.approx(10.3)

    def test_symmetric_neighbors_keep_index(self):
        assert parabolic_interpolation(KeyMaxima(7, 0.9, 0.5, 0.5)) == pytest.approx(7.0)

    @pytest.mark.parametrize(
        "maxima",
        [
            KeyMaxima(0, 1.0, None, 0.9),
            KeyMaxima(99, 0.8, 0.7, None),
            KeyMaxima(10, 0.5, 0.4, 0.6),
            KeyMaxima(10, 0.5, 0.5, 0.5),
        ],
    )
    def test_falls_back_to_integer_lag(self, maxima):
        assert parabolic_interpolation(maxima) == float(maxima.index)


class TestInferNote:
    def test_closest_note_wins_regardless_of_order(self):
        e2, f2 = Note.parse("E2"), Note.parse("F2")
        # 84Hz is 1.6Hz from E2 and 3.3Hz from F2
        assert infer_note(84.0, [f2, e2], 5.0) == e2
        assert infer_note(84.0, [e2, f2], 5.0) == e2

    def test_no_note_within_difference(self, standard_tuning):
        assert infer_note(160.0, standard_tuning, 5.0) is None

    def test_difference_bound_is_inclusive(self):
        assert infer_note(115.0, [Note.parse("A2")], 5.0) == Note.parse("A2")

    def test_empty_tuning(self):
        assert infer_note(110.0, [], 5.0) is None


class TestPitchDetector:
    @pytest.mark.parametrize(
        "frequency,expected",
        [
            (82.4068892282175, "E2"),
            (110.0, "A2"),
            (146.8323839587038, "D3"),
            (195.99771799087463, "G3"),
            (246.94165062806206, "B3"),
            (329.6275569128699, "E4"),
            (85.0, "E2"),
            (112.0, "A2"),
            (326.0, "E4"),
        ],
    )
    def test_detects_sine_at_tuning_note(self, sine_wave, standard_tuning, frequency, expected):
        result = detect_note(sine_wave(frequency, 8192), 44100, standard_tuning)

        assert result is not None
        assert result.note == Note.parse(expected)
        assert result.frequency == pytest.approx(frequency, abs=1.0)

    def test_default_buffer_size_is_enough_for_low_e(self, sine_wave, standard_tuning):
        result = detect_note(sine_wave(82.41, 4096), 44100, standard_tuning)
        assert result.note == Note.parse("E2")

    @pytest.mark.parametrize(
        "frequency,tuning,expected",
        [
            (164.81377845643496, ["E2"], "E2"),
            (220.0, ["A2"], "A2"),
            (330.0, ["A2"], "A2"),
        ],
    )
    def test_resolves_overtone_to_fundamental(self, sine_wave, frequency, tuning, expected):
        result = detect_note(sine_wave(frequency, 8192), 44100, parse_tuning(tuning))

        note = Note.parse(expected)
        assert result.note == note
        assert result.frequency == pytest.approx(get_note_frequency(note), abs=1.0)

    def test_silence_detects_nothing(self, standard_tuning):
        assert detect_note(np.zeros(4096), 44100, standard_tuning) is None

    def test_pitch_far_from_tuning_detects_nothing(self, sine_wave, standard_tuning):
        # Neither 700Hz nor any of its sub-harmonics up to /5 is near a string
        assert detect_note(sine_wave(700.0, 8192), 44100, standard_tuning) is None

    def test_partially_filled_snapshot(self, sine_wave, standard_tuning):
        samples = np.concatenate((np.zeros(2048), sine_wave(110.0, 2048)))
        result = detect_note(samples, 44100, standard_tuning)
        assert result.note == Note.parse("A2")

    def test_plucked_string_fixture(self, d3_pluck_path, standard_tuning):
        samples = load_pcm_fixture(d3_pluck_path)
        windows = overlap_chunks(samples, 8192, 4096)[:5]
        assert len(windows) == 5

        detector = PitchDetector()
        for window in windows:
            result = detector.detect_note(window, 44100, standard_tuning)
            assert result is not None
            assert result.note == Note.parse("D3")
            assert result.frequency == pytest.approx(146.8323839587038, abs=1.0)

    def test_rejects_empty_snapshot(self, standard_tuning):
        with pytest.raises(ValueError):
            detect_note(np.array([]), 44100, standard_tuning)

    def test_rejects_non_positive_sample_rate(self, sine_wave, standard_tuning):
        with pytest.raises(ValueError):
            detect_note(sine_wave(110.0, 1024), 0, standard_tuning)

    def test_rejects_sample_rate_below_twice_cutoff(self, sine_wave, standard_tuning):
        with pytest.raises(ValueError):
            detect_note(sine_wave(110.0, 1024), 2000, standard_tuning)

    def test_default_settings(self):
        detector = PitchDetector()

        assert detector.max_frequency == 1325.0
        assert detector.filter_order == 255
        assert detector.maxima_threshold == 0.85
        assert detector.frequency_max_difference == 5.0
        assert detector.max_harmonic_degree == 5

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"filter_order": 256},
            {"max_frequency": 0},
            {"maxima_threshold": 0.0},
            {"maxima_threshold": 1.5},
            {"frequency_max_difference": -1.0},
            {"max_harmonic_degree": 0},
        ],
    )
    def test_rejects_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            PitchDetector(**kwargs)

    def test_single_harmonic_degree_ignores_overtones(self, sine_wave):
        detector = PitchDetector(max_harmonic_degree=1)
        assert detector.detect_note(sine_wave(220.0, 8192), 44100, parse_tuning(["A2"])) is None


class TestOverlapChunks:
    def test_full_windows_only(self):
        chunks = overlap_chunks(np.arange(10), 4, 3)

        assert [c.tolist() for c in chunks] == [[0, 1, 2, 3], [3, 4, 5, 6], [6, 7, 8, 9]]

    def test_too_short_for_a_window(self):
        assert overlap_chunks(np.arange(3), 4, 1) == []

    def test_rejects_non_positive_sizes(self):
        with pytest.raises(ValueError):
            overlap_chunks(np.arange(10), 0, 1)
        with pytest.raises(ValueError):
            overlap_chunks(np.arange(10), 4, 0)

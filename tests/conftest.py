"""
Pytest fixtures for the guitar tuner tests.
"""
import sys
import types
from unittest import mock

import numpy as np
import pytest

from guitar_tuner.audio.fixtures import save_pcm_fixture
from guitar_tuner.core.interfaces import IAudioInput
from guitar_tuner.note_utils import STANDARD_TUNING, get_note_frequency, parse_tuning
from guitar_tuner.note_types import Note

SAMPLE_RATE = 44100


class FakeAudioInput(IAudioInput):
    """Audio input driven by the test instead of a sound card."""

    def __init__(self, sample_rate=SAMPLE_RATE, error=None):
        self._sample_rate = sample_rate
        self._error = error
        self._running = False
        self.callback = None

    def start(self, callback):
        if self._error is not None:
            raise self._error
        self.callback = callback
        self._running = True

    def stop(self):
        self._running = False

    def is_running(self):
        return self._running

    @property
    def sample_rate(self):
        return self._sample_rate

    def push(self, samples):
        self.callback(np.asarray(samples, dtype=np.float32))


class MissingPortAudioModule(types.ModuleType):
    """Stands in for the audio input module when the PortAudio library cannot be loaded."""

    def __getattr__(self, name):
        raise OSError("PortAudio library not found")


def make_sine(frequency, size, sample_rate=SAMPLE_RATE, amplitude=0.5):
    t = np.arange(size) / sample_rate
    return amplitude * np.sin(2 * np.pi * frequency * t)


def make_pluck(frequency, seconds, sample_rate=SAMPLE_RATE, seed=7):
    """A decaying string-like tone with two overtones and a little noise."""
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    tone = (
        np.sin(2 * np.pi * frequency * t)
        + 0.5 * np.sin(2 * np.pi * 2 * frequency * t)
        + 0.25 * np.sin(2 * np.pi * 3 * frequency * t)
    )
    noise = np.random.default_rng(seed).normal(0.0, 0.002, t.size)
    return 0.4 * np.exp(-t / 0.8) * tone + noise


@pytest.fixture
def sample_rate():
    """Standard sample rate."""
    return SAMPLE_RATE


@pytest.fixture
def standard_tuning():
    """Standard guitar tuning, high string first."""
    return parse_tuning(STANDARD_TUNING)


@pytest.fixture
def fake_audio_input():
    """Factory for fake audio inputs."""
    return FakeAudioInput


@pytest.fixture
def sine_wave():
    """Factory for pure sinusoids: sine_wave(frequency, size)."""
    return make_sine


@pytest.fixture
def d3_pluck_path(tmp_path):
    """Plain-text PCM fixture of a plucked D3 string, two seconds long."""
    path = tmp_path / "D3_pcm"
    save_pcm_fixture(path, make_pluck(get_note_frequency(Note.parse("D3")), 2.0))
    return path


@pytest.fixture
def a2_sine_path(tmp_path):
    """Plain-text PCM fixture of a steady A2, half a second long."""
    path = tmp_path / "A2_pcm"
    save_pcm_fixture(path, make_sine(110.0, SAMPLE_RATE // 2))
    return path


@pytest.fixture
def missing_portaudio():
    """Make importing the sounddevice-backed input fail as it does without PortAudio."""
    name = "guitar_tuner.audio.audio_input"
    with mock.patch.dict(sys.modules, {name: MissingPortAudioModule(name)}):
        yield

"""Bounded sample buffer shared between the capture callback and the detection loop."""

from __future__ import annotations
import threading
from typing import Optional

import numpy as np

from ..logging_config import get_logger
from ..core.errors import DeviceError
from ..core.interfaces import IAudioInput

logger = get_logger(__name__)


class Recorder:
    """Keeps the most recent ``buffer_size`` samples of an audio input.

    The audio input calls :meth:`append` from its own thread for every block
    it delivers; the detection loop calls :meth:`snapshot` to get a private,
    fixed-length copy. A single lock guards the storage and is only held while
    appending or copying.
    """

    def __init__(
        self,
        sample_rate: int,
        buffer_size: int,
        audio_input: Optional[IAudioInput] = None,
        device_id: Optional[int] = None,
    ) -> None:
        """Initialize the recorder.

        Args:
            sample_rate: Sample rate the audio input must deliver, in Hz
            buffer_size: Number of most recent samples to keep
            audio_input: Audio source, or None to capture from a sounddevice input
            device_id: Input device ID used when no audio source is given, None for auto-detect
        """
        if sample_rate <= 0:
            raise ValueError("Sample rate must be positive")
        if buffer_size <= 0:
            raise ValueError("Buffer size must be positive")

        self._sample_rate = int(sample_rate)
        self._buffer_size = int(buffer_size)
        self._audio_input = audio_input
        self._device_id = device_id

        # Room for one full buffer plus a block smaller than the buffer
        self._storage = np.zeros(2 * self._buffer_size, dtype=np.float64)
        self._length = 0
        self._lock = threading.Lock()

    def record(self) -> None:
        """Start capturing audio into the buffer.

        Raises:
            DeviceError: If the PortAudio library is missing or no input supports
                mono capture at the sample rate
        """
        if self._audio_input is None:
            # Imported here so the buffer works without the PortAudio library
            try:
                from .audio_input import SoundDeviceInput
            except OSError as e:
                raise DeviceError(f"Audio capture is unavailable: {e}") from e

            self._audio_input = SoundDeviceInput(
                device_id=self._device_id, sample_rate=self._sample_rate
            )

        if self._audio_input.sample_rate != self._sample_rate:
            raise ValueError(
                f"Audio input delivers {self._audio_input.sample_rate} Hz, "
                f"recorder expects {self._sample_rate} Hz"
            )

        self._audio_input.start(self.append)
        logger.info(
            f"Recording started: sample_rate={self._sample_rate}, buffer_size={self._buffer_size}"
        )

    def stop(self) -> None:
        """Stop capturing audio. Samples already buffered are kept."""
        if self._audio_input is not None and self._audio_input.is_running():
            self._audio_input.stop()
            logger.info("Recording stopped")

    def is_recording(self) -> bool:
        return self._audio_input is not None and self._audio_input.is_running()

    def append(self, samples: np.ndarray) -> None:
        """Add a block of samples, discarding the oldest ones beyond ``buffer_size``.

        Note:
            This is called from the audio thread. It only copies data and
            compacts the storage when it overflows.
        """
        block = np.asarray(samples, dtype=np.float64).ravel()
        count = block.size
        if count == 0:
            return

        with self._lock:
            if count >= self._buffer_size:
                self._storage[: self._buffer_size] = block[-self._buffer_size :]
                self._length = self._buffer_size
                return

            end = self._length + count
            self._storage[self._length : end] = block
            if end > self._buffer_size:
                # Keep the tail; numpy copies overlapping ranges safely
                self._storage[: self._buffer_size] = self._storage[end - self._buffer_size : end]
                end = self._buffer_size
            self._length = end

    def snapshot(self) -> np.ndarray:
        """Copy the buffered samples, oldest first, as exactly ``buffer_size`` values.

        While fewer samples than ``buffer_size`` have been collected the copy
        is padded with leading zeros.
        """
        with self._lock:
            samples = self._storage[: self._length].copy()

        missing = self._buffer_size - samples.size
        if missing > 0:
            samples = np.concatenate((np.zeros(missing, dtype=np.float64), samples))
        return samples

    def sample_count(self) -> int:
        """Number of real samples currently buffered."""
        with self._lock:
            return self._length

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

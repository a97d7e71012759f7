"""Replays recorded samples as if they came from an input device."""

from __future__ import annotations
import threading
from typing import Callable, Optional

import numpy as np

from ..logging_config import get_logger
from ..core.interfaces import IAudioInput
from .fixtures import PathLike, load_samples

logger = get_logger(__name__)


class FileAudioInput(IAudioInput):
    """Provides audio blocks from recorded samples, paced like a live device."""

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: int,
        chunk_size: int = 1024,
        realtime: bool = True,
        gain: float = 1.0,
    ) -> None:
        """Initialize the file input.

        Args:
            samples: Mono samples to replay
            sample_rate: Sample rate of the samples in Hz
            chunk_size: Number of samples handed over per block
            realtime: Wait one block duration between blocks
            gain: Factor applied to every sample
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

        self._samples = np.asarray(samples, dtype=np.float64) * gain
        self._sample_rate = int(sample_rate)
        self._chunk_size = int(chunk_size)
        self._realtime = realtime

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._running = False

    @classmethod
    def from_file(
        cls, path: PathLike, sample_rate: Optional[int] = None, **kwargs
    ) -> FileAudioInput:
        """Create an input replaying an audio file or plain-text fixture."""
        samples, rate = load_samples(path, sample_rate)
        logger.info(f"Replaying {path}: {samples.size} samples at {rate} Hz")
        return cls(samples, rate, **kwargs)

    def start(self, callback: Callable[[np.ndarray], None]) -> None:
        if self._running:
            logger.warning("File input already running")
            return

        self._stop_event.clear()
        self._running = True
        self._thread = threading.Thread(
            target=self._stream_data, args=(callback,), name="file-audio-input", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None
        self._running = False

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every block has been delivered.

        Returns:
            True if the replay finished, False on timeout
        """
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def is_running(self) -> bool:
        return self._running

    def _stream_data(self, callback: Callable[[np.ndarray], None]) -> None:
        block_duration = self._chunk_size / self._sample_rate
        try:
            for start in range(0, self._samples.size, self._chunk_size):
                if self._stop_event.is_set():
                    return
                callback(self._samples[start : start + self._chunk_size])
                # Simulate real-time playback speed
                if self._realtime and self._stop_event.wait(block_duration):
                    return
        finally:
            self._running = False
            logger.debug("File input finished")

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

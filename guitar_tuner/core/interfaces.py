"""Defines the core interfaces for the guitar tuner."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable

import numpy as np


class IAudioInput(ABC):
    """Interface for audio sources that push mono sample blocks to a callback."""

    @abstractmethod
    def start(self, callback: Callable[[np.ndarray], None]) -> None:
        """Start capturing audio.

        Raises:
            DeviceError: If the source cannot deliver the requested format
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing audio."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if audio is running."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate of the audio stream."""
        pass


class ITunerService(ABC):
    """Interface for the periodic detection loop."""

    @abstractmethod
    def start(self) -> None:
        """Start recording and the detection loop."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop the detection loop and recording."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if the service is running."""
        pass

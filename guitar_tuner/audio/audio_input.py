"""Live audio input through sounddevice."""

from __future__ import annotations
from typing import Any, Callable, ClassVar, Dict, List, Optional

import numpy as np
import sounddevice as sd

from ..logging_config import get_logger
from ..core.errors import DeviceError
from ..core.interfaces import IAudioInput

logger = get_logger(__name__)


def supports_mono_capture(device_id: Optional[int], sample_rate: int) -> bool:
    """Check whether a device accepts single-channel float32 capture at ``sample_rate``."""
    try:
        sd.check_input_settings(
            device=device_id, channels=1, samplerate=sample_rate, dtype="float32"
        )
        return True
    except (sd.PortAudioError, ValueError) as e:
        logger.warning(f"Device {device_id} rejects mono capture at {sample_rate} Hz: {e}")
        return False


def list_input_devices() -> List[Dict[str, Any]]:
    """List the devices that have at least one input channel.

    Returns:
        One dict per input device with its ``id``, ``name`` and ``default_samplerate``
    """
    devices = []
    for device_id, device in enumerate(sd.query_devices()):
        if device["max_input_channels"] > 0:
            devices.append(
                {
                    "id": device_id,
                    "name": device["name"],
                    "default_samplerate": device["default_samplerate"],
                }
            )
    return devices


def find_input_device(sample_rate: int, device_id: Optional[int] = None) -> int:
    """Find an input device supporting mono capture at exactly ``sample_rate``.

    Args:
        sample_rate: Required sample rate in Hz
        device_id: Device to use, or None to try the default input device first
            and then every other input device

    Returns:
        The ID of a compatible device

    Raises:
        DeviceError: If no device supports the configuration
    """
    if device_id is not None:
        if supports_mono_capture(device_id, sample_rate):
            return device_id
        raise DeviceError(
            f"Input device {device_id} does not support mono capture at {sample_rate} Hz"
        )

    try:
        candidates = [device["id"] for device in list_input_devices()]
    except sd.PortAudioError as e:
        raise DeviceError(f"Could not query audio devices: {e}") from e

    if not candidates:
        raise DeviceError("No audio input device found")

    default_input = sd.default.device[0]
    if default_input is not None and default_input in candidates:
        candidates.remove(default_input)
        candidates.insert(0, default_input)

    for candidate in candidates:
        if supports_mono_capture(candidate, sample_rate):
            return candidate

    raise DeviceError(f"No input device supports mono capture at {sample_rate} Hz")


class SoundDeviceInput(IAudioInput):
    """Audio input handler using the sounddevice library."""

    # Audio configuration
    SAMPLE_RATE: ClassVar[int] = 44100  # Hz
    FRAMES_PER_BUFFER: ClassVar[int] = 0  # 0 lets PortAudio pick the block size
    CHANNELS: ClassVar[int] = 1  # Mono audio

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        frames_per_buffer: Optional[int] = None,
    ) -> None:
        """Initialize the audio input handler.

        Args:
            device_id: Audio input device ID, or None to auto-detect
            sample_rate: Sample rate in Hz, or None for default (44100)
            frames_per_buffer: Block size in frames, or None to let PortAudio decide

        Raises:
            DeviceError: If no device supports mono capture at the sample rate
        """
        self._sample_rate = int(sample_rate or self.SAMPLE_RATE)
        self._frames_per_buffer = (
            int(frames_per_buffer) if frames_per_buffer is not None else self.FRAMES_PER_BUFFER
        )
        self._device_id = find_input_device(self._sample_rate, device_id)

        self._stream: Optional[sd.InputStream] = None
        self._callback: Optional[Callable[[np.ndarray], None]] = None
        self._running = False

        logger.info(f"Audio device initialized: ID={self._device_id}, Rate={self._sample_rate}Hz")

    def _audio_callback(
        self,
        indata: np.ndarray,
        _frames: int,
        _time_info: Any,
        status: sd.CallbackFlags,
    ) -> None:
        """Callback for processing audio data from the input stream.

        Note:
            This is called from the PortAudio thread, so it only hands the
            block over and never blocks.
        """
        if status:
            logger.warning(f"Audio callback status: {status}")

        if self._callback:
            self._callback(indata[:, 0] if indata.ndim > 1 else indata)

    def start(self, callback: Callable[[np.ndarray], None]) -> None:
        """Start capturing audio and pass each mono block to the callback.

        Raises:
            DeviceError: If the stream cannot be opened with the negotiated settings
        """
        if self._running:
            logger.warning("Audio input already running")
            return

        self._callback = callback
        try:
            self._stream = sd.InputStream(
                device=self._device_id,
                samplerate=self._sample_rate,
                blocksize=self._frames_per_buffer,
                channels=self.CHANNELS,
                dtype="float32",
                callback=self._audio_callback,
            )
            self._stream.start()
        except (sd.PortAudioError, ValueError) as e:
            self._stream = None
            raise DeviceError(
                f"Could not start audio input on device {self._device_id} "
                f"at {self._sample_rate} Hz: {e}"
            ) from e

        self._running = True
        logger.info(f"Audio input started with sample rate {self._sample_rate} Hz")

    def stop(self) -> None:
        """Stop capturing audio."""
        if not self._running:
            return

        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        self._running = False
        logger.info("Audio input stopped")

    def is_running(self) -> bool:
        return self._running

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def device_id(self) -> int:
        return self._device_id

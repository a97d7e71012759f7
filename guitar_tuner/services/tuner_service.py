"""Periodic detection loop connecting the recorder, the pitch detector and listeners."""

from __future__ import annotations
import threading
import time
from typing import ClassVar, List, Optional, Sequence

from ..logging_config import get_logger
from ..audio.recorder import Recorder
from ..core.events import TunerEvents
from ..core.interfaces import ITunerService
from ..detection.pitch_detector import PitchDetector
from ..note_types import DetectedPitch, Note
from ..note_utils import STANDARD_TUNING, parse_tuning

logger = get_logger(__name__)


class TunerService(ITunerService):
    """Runs one detection cycle per frame and emits the result as an event.

    Every cycle takes a snapshot of the recorder, runs the pitch detector on
    it outside of any lock and emits either ``PITCH_DETECTED`` or
    ``NO_PITCH_DETECTED``, followed by ``AUDIO_RECORDED`` with the analysed
    samples.
    """

    FRAME_RATE: ClassVar[float] = 2.0  # Detection cycles per second

    def __init__(
        self,
        recorder: Recorder,
        detector: Optional[PitchDetector] = None,
        tuning_notes: Optional[Sequence[Note]] = None,
        frame_rate: Optional[float] = None,
        events: Optional[TunerEvents] = None,
    ) -> None:
        """Initialize the tuner service.

        Args:
            recorder: Buffer that the audio input fills
            detector: Pitch detector, or None for default settings
            tuning_notes: Ordered notes to match, or None for standard guitar tuning
            frame_rate: Detection cycles per second (default 2)
            events: Event emitter to publish to, or None to create one

        Raises:
            ValueError: If the detector cannot analyse the recorder's sample rate
        """
        self._recorder = recorder
        self._detector = detector or PitchDetector()
        self._detector.check_sample_rate(recorder.sample_rate)
        self._tuning_notes: List[Note] = (
            list(tuning_notes) if tuning_notes is not None else parse_tuning(STANDARD_TUNING)
        )
        self._frame_rate = float(frame_rate if frame_rate is not None else self.FRAME_RATE)
        if self._frame_rate <= 0:
            raise ValueError("frame_rate must be positive")

        self._events = events or TunerEvents()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._running = False

    def start(self) -> None:
        """Start recording and the detection loop.

        Raises:
            DeviceError: If recording cannot start; the loop is not started
        """
        if self._running:
            logger.warning("Tuner service already running")
            return

        self._recorder.record()

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="tuner-detection", daemon=True)
        self._running = True
        self._thread.start()
        logger.info(
            f"Tuner started: {self._frame_rate:g} cycles/s, tuning "
            f"{' '.join(str(n) for n in self._tuning_notes)}"
        )

    def stop(self) -> None:
        """Stop the detection loop between cycles, then stop recording."""
        if not self._running:
            return

        self._stop_event.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None
        self._recorder.stop()
        self._running = False
        logger.info("Tuner stopped")

    def is_running(self) -> bool:
        return self._running

    def run_once(self) -> Optional[DetectedPitch]:
        """Run a single detection cycle and emit its events.

        Returns:
            The detection, or None if no tuning note was detected
        """
        samples = self._recorder.snapshot()
        try:
            result = self._detector.detect_note(
                samples, self._recorder.sample_rate, self._tuning_notes
            )
        except Exception as e:
            logger.error(f"Pitch detection failed: {e}", exc_info=True)
            result = None

        if result is None:
            logger.debug("NoPitchDetected")
            self._events.emit_no_pitch_detected()
        else:
            logger.debug(f"PitchDetected({result.note}, {result.frequency:.4f})")
            self._events.emit_pitch_detected(result.note, result.frequency)

        self._events.emit_audio_recorded(samples)
        return result

    def _run(self) -> None:
        period = 1.0 / self._frame_rate
        next_deadline = time.monotonic()

        while not self._stop_event.is_set():
            next_deadline += period
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Error in detection cycle: {e}", exc_info=True)

            delay = next_deadline - time.monotonic()
            if delay < 0:
                logger.debug(f"Detection cycle overran its frame by {-delay:.3f}s")
                next_deadline = time.monotonic()
                delay = 0.0

            if self._stop_event.wait(delay):
                break

    @property
    def events(self) -> TunerEvents:
        return self._events

    @property
    def tuning_notes(self) -> List[Note]:
        return list(self._tuning_notes)

    @property
    def frame_rate(self) -> float:
        return self._frame_rate

    @property
    def recorder(self) -> Recorder:
        return self._recorder

"""Factory for creating the guitar tuner components."""

from typing import Optional

from ..logging_config import get_logger
from ..audio.recorder import Recorder
from ..detection.pitch_detector import PitchDetector
from ..note_utils import parse_tuning
from ..services.tuner_service import TunerService
from .config import ConfigManager
from .events import TunerEvents
from .interfaces import IAudioInput

logger = get_logger(__name__)


class ComponentFactory:
    """Builds components from a :class:`ConfigManager`, with keyword overrides."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize the component factory.

        Args:
            config_manager: Configuration manager, or None to use the defaults
        """
        self.config_manager = config_manager or ConfigManager()

    def create_recorder(self, audio_input: Optional[IAudioInput] = None, **kwargs) -> Recorder:
        """Create a recorder.

        Args:
            audio_input: Audio source, or None to capture from a sounddevice input
            **kwargs: Overrides for the 'recorder' configuration
        """
        config = self.config_manager.get_config("recorder")
        config.update(kwargs)

        if audio_input is not None:
            # A replayed source dictates the sample rate
            config["sample_rate"] = audio_input.sample_rate

        instance = Recorder(
            sample_rate=config["sample_rate"],
            buffer_size=config["buffer_size"],
            audio_input=audio_input,
            device_id=config["device_id"],
        )
        logger.info(
            f"Created recorder: {config['sample_rate']} Hz, {config['buffer_size']} samples"
        )
        return instance

    def create_pitch_detector(self, **kwargs) -> PitchDetector:
        """Create a pitch detector.

        Args:
            **kwargs: Overrides for the 'pitch_detector' configuration
        """
        config = self.config_manager.get_config("pitch_detector")
        config.update(kwargs)

        instance = PitchDetector(**config)
        logger.info(f"Created pitch detector: {config}")
        return instance

    def create_tuner_service(
        self,
        recorder: Optional[Recorder] = None,
        detector: Optional[PitchDetector] = None,
        events: Optional[TunerEvents] = None,
        **kwargs,
    ) -> TunerService:
        """Create a tuner service, building the recorder and detector if not provided.

        Args:
            recorder: Recorder to analyse, or None to create one
            detector: Pitch detector, or None to create one
            events: Event emitter to publish to, or None to create one
            **kwargs: Overrides for the 'tuner' configuration

        Raises:
            InvalidNoteError: If the configured tuning contains an invalid note
        """
        config = self.config_manager.get_config("tuner")
        config.update(kwargs)

        instance = TunerService(
            recorder=recorder if recorder is not None else self.create_recorder(),
            detector=detector if detector is not None else self.create_pitch_detector(),
            tuning_notes=parse_tuning(config["tuning_notes"]),
            frame_rate=config["frame_rate"],
            events=events,
        )
        logger.info("Created tuner service")
        return instance

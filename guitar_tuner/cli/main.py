"""Main entry point for the guitar tuner CLI."""

import argparse
import time
from typing import List, Optional

from ..logging_config import get_logger, setup_logging
from ..audio.file_input import FileAudioInput
from ..audio.fixtures import save_samples
from ..core.config import ConfigManager
from ..core.errors import DeviceError, InvalidNoteError
from ..core.factory import ComponentFactory
from ..note_types import Note
from ..note_utils import cents_off, get_note_frequency
from ..services.tuner_service import TunerService

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="guitar-tuner", description="Guitar Tuner - Pitch Detection"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log-file", default=None, help="Also append log records (and events) to this file"
    )
    parser.add_argument("--config", default=None, help="JSON file with configuration overrides")
    parser.add_argument(
        "--sample-rate", type=int, default=None, help="Audio sample rate in Hz (default: 44100)"
    )
    parser.add_argument(
        "--buffer-size", type=int, default=None, help="Samples analysed per cycle (default: 4096)"
    )
    parser.add_argument(
        "--frame-rate", type=float, default=None, help="Detection cycles per second (default: 2)"
    )
    parser.add_argument(
        "--tuning",
        nargs="+",
        default=None,
        metavar="NOTE",
        help="Tuning notes, e.g. E4 B3 G3 D3 A2 E2 (default: standard tuning)",
    )
    parser.add_argument(
        "--device", type=int, default=None, help="Audio input device ID (default: auto-detect)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    listen_parser = subparsers.add_parser("listen", help="Print detection events from live input")
    listen_parser.add_argument(
        "--duration", type=float, default=None, help="Stop after this many seconds"
    )

    simulate_parser = subparsers.add_parser(
        "simulate", help="Replay a recording or PCM fixture through the tuner"
    )
    simulate_parser.add_argument("file", help="Audio file or plain-text PCM fixture")
    simulate_parser.add_argument(
        "--chunk-size", type=int, default=1024, help="Samples delivered per block"
    )
    simulate_parser.add_argument(
        "--gain", type=float, default=1.0, help="Factor applied to every replayed sample"
    )

    record_parser = subparsers.add_parser(
        "record-fixture", help="Record live input into a fixture file"
    )
    record_parser.add_argument("file", help="Output file (.wav/.flac, otherwise plain-text PCM)")
    record_parser.add_argument(
        "--seconds", type=float, default=2.0, help="Length of the recording in seconds"
    )

    subparsers.add_parser("devices", help="List audio input devices")

    return parser


def _build_config(args: argparse.Namespace) -> ConfigManager:
    config_manager = ConfigManager(args.config)
    config_manager.update_config(
        "recorder",
        {
            "sample_rate": args.sample_rate,
            "buffer_size": args.buffer_size,
            "device_id": args.device,
        },
    )
    config_manager.update_config(
        "tuner", {"frame_rate": args.frame_rate, "tuning_notes": args.tuning}
    )
    return config_manager


def _print_events(service: TunerService) -> None:
    def on_pitch_detected(note: Note, frequency: float) -> None:
        reference = get_note_frequency(note)
        print(
            f"PitchDetected({note}, {frequency:.4f}) "
            f"reference {reference:.4f}Hz, {cents_off(frequency, note):+.1f} cents",
            flush=True,
        )

    def on_no_pitch_detected() -> None:
        print("NoPitchDetected", flush=True)

    service.events.on_pitch_detected(on_pitch_detected)
    service.events.on_no_pitch_detected(on_no_pitch_detected)


def _run_listen(factory: ComponentFactory, duration: Optional[float]) -> int:
    service = factory.create_tuner_service()
    _print_events(service)

    service.start()
    start_time = time.monotonic()
    try:
        while duration is None or time.monotonic() - start_time < duration:
            time.sleep(0.1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        service.stop()
    return 0


def _run_simulate(
    factory: ComponentFactory, path: str, chunk_size: int, gain: float
) -> int:
    sample_rate = factory.config_manager.get_config("recorder")["sample_rate"]
    audio_input = FileAudioInput.from_file(
        path, sample_rate=sample_rate, chunk_size=chunk_size, gain=gain
    )

    service = factory.create_tuner_service(recorder=factory.create_recorder(audio_input))
    _print_events(service)

    service.start()
    try:
        audio_input.wait()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        service.stop()
    return 0


def _run_record_fixture(factory: ComponentFactory, path: str, seconds: float) -> int:
    sample_rate = factory.config_manager.get_config("recorder")["sample_rate"]
    recorder = factory.create_recorder(buffer_size=int(seconds * sample_rate))

    recorder.record()
    try:
        # Record a little longer than the buffer so it is full
        time.sleep(seconds + 0.5)
    finally:
        recorder.stop()

    save_samples(path, recorder.snapshot(), sample_rate)
    return 0


def _run_devices(factory: ComponentFactory) -> int:
    from ..audio.audio_input import list_input_devices, supports_mono_capture

    sample_rate = factory.config_manager.get_config("recorder")["sample_rate"]
    devices = list_input_devices()
    if not devices:
        print("No audio input devices found")
        return 1

    print("Available audio input devices:")
    print("-" * 70)
    for device in devices:
        supported = supports_mono_capture(device["id"], sample_rate)
        print(f"Device {device['id']}: {device['name']}")
        print(f"  Default sample rate: {device['default_samplerate']} Hz")
        print(f"  Mono at {sample_rate} Hz: {'Supported' if supported else 'Not supported'}")
    return 0


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Command line arguments, or None to use sys.argv

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = build_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.command is None:
        parser.print_help()
        return 1

    setup_logging(level="DEBUG" if parsed_args.debug else None, log_file=parsed_args.log_file)

    try:
        factory = ComponentFactory(_build_config(parsed_args))

        if parsed_args.command == "listen":
            return _run_listen(factory, parsed_args.duration)
        if parsed_args.command == "simulate":
            return _run_simulate(
                factory, parsed_args.file, parsed_args.chunk_size, parsed_args.gain
            )
        if parsed_args.command == "record-fixture":
            return _run_record_fixture(factory, parsed_args.file, parsed_args.seconds)
        return _run_devices(factory)

    except DeviceError as e:
        logger.error(f"Audio device error: {e}")
        return 1
    except (InvalidNoteError, ValueError, OSError) as e:
        logger.error(f"{e}")
        return 2


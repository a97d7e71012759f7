"""Reading and writing recorded samples.

Two formats are understood: audio files handled by soundfile (WAV, FLAC, ...)
and plain-text PCM fixtures holding one decimal sample per line.
"""

from __future__ import annotations
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
import soundfile as sf

from ..logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]

AUDIO_SUFFIXES = {".wav", ".flac", ".ogg", ".aif", ".aiff"}

DEFAULT_SAMPLE_RATE = 44100


def is_audio_file(path: PathLike) -> bool:
    return Path(path).suffix.lower() in AUDIO_SUFFIXES


def load_pcm_fixture(path: PathLike) -> np.ndarray:
    """Load a plain-text fixture with one sample per line."""
    return np.loadtxt(path, dtype=np.float64, ndmin=1)


def save_pcm_fixture(path: PathLike, samples: np.ndarray) -> None:
    """Write samples as a plain-text fixture with one sample per line."""
    np.savetxt(path, np.asarray(samples, dtype=np.float64), fmt="%.17g")
    logger.info(f"Saved {len(samples)} samples to {path}")


def load_samples(
    path: PathLike, sample_rate: Optional[int] = None
) -> Tuple[np.ndarray, int]:
    """Load mono samples from an audio file or a plain-text fixture.

    Args:
        path: File to read
        sample_rate: Sample rate of a plain-text fixture (default 44100);
            audio files carry their own rate

    Returns:
        Tuple of (samples, sample_rate)
    """
    if is_audio_file(path):
        data, file_rate = sf.read(str(path), dtype="float64", always_2d=True)
        # Take the first channel of multi-channel recordings
        samples = data[:, 0]
        if sample_rate is not None and sample_rate != file_rate:
            logger.warning(f"{path} is recorded at {file_rate} Hz, ignoring requested {sample_rate} Hz")
        logger.debug(f"Loaded {samples.size} samples at {file_rate} Hz from {path}")
        return samples, int(file_rate)

    samples = load_pcm_fixture(path)
    rate = int(sample_rate or DEFAULT_SAMPLE_RATE)
    logger.debug(f"Loaded {samples.size} PCM fixture samples from {path}")
    return samples, rate


def save_samples(path: PathLike, samples: np.ndarray, sample_rate: int) -> None:
    """Save samples as an audio file or, for any other suffix, a plain-text fixture."""
    if is_audio_file(path):
        sf.write(str(path), np.asarray(samples, dtype=np.float64), sample_rate)
        logger.info(f"Saved {len(samples)} samples at {sample_rate} Hz to {path}")
    else:
        save_pcm_fixture(path, samples)


def overlap_chunks(samples: np.ndarray, chunk_size: int, hop: int) -> List[np.ndarray]:
    """Slice samples into windows of exactly ``chunk_size``, starting every ``hop`` samples.

    A trailing window shorter than ``chunk_size`` is dropped.
    """
    if chunk_size <= 0 or hop <= 0:
        raise ValueError("chunk_size and hop must be positive")

    samples = np.asarray(samples)
    return [
        samples[start : start + chunk_size]
        for start in range(0, samples.size - chunk_size + 1, hop)
    ]

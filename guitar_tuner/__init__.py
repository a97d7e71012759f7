"""Guitar tuner: pitch detection for plucked strings from live or recorded audio."""

__version__ = "0.1.0"

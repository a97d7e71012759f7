"""Core components for the guitar tuner."""

from .errors import DeviceError, InvalidNoteError

__all__ = ["DeviceError", "InvalidNoteError"]

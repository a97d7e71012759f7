"""Exception types raised by the guitar tuner components."""


class DeviceError(Exception):
    """No input device or device configuration supports the requested capture.

    Raised while negotiating the audio input. It is fatal for the capture
    subsystem and is never retried with a different configuration.
    """


class InvalidNoteError(ValueError):
    """A note spelling is malformed or uses a disallowed enharmonic spelling."""

"""Exception hierarchy for the capture-to-encode pipeline."""

from typing import List


class MicStreamError(Exception):
    """Base exception class for micstream errors."""

    pass


class DeviceUnavailable(MicStreamError):
    """Raised when no capture device is present or access was refused."""

    pass


class UnsupportedPlatform(MicStreamError):
    """Raised when the low-level capture or encode primitive is missing."""

    pass


class EncoderInitFailure(MicStreamError):
    """Raised when an encoder cannot be built with the negotiated parameters."""

    pass


class EncoderError(MicStreamError):
    """Raised when a running encoder fails."""

    pass


class BlockEncodeFault(MicStreamError):
    """A single block failed to encode; the session keeps capturing."""

    def __init__(self, sequence_number: int, cause: BaseException):
        super().__init__(f"Block {sequence_number} failed to encode: {cause}")
        self.sequence_number = sequence_number
        self.cause = cause


class CaptureError(MicStreamError):
    """Raised when the capture source could not deliver a block."""

    pass


class TeardownFault(MicStreamError):
    """One or more resources failed to release during stop."""

    def __init__(self, faults: List[BaseException]):
        details = "; ".join(f"{type(f).__name__}: {f}" for f in faults)
        super().__init__(f"{len(faults)} resource(s) failed to release: {details}")
        self.faults = list(faults)

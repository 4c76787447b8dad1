"""Exception types.

The engines (channel map aside) report the calibration and validation
states below as flags or status values; the exception classes exist so that
outer layers (CLI, scripts) can raise them with a consistent type.
"""


class ValidationError(Exception):
    """Base exception for validation errors."""

    pass


class OutOfRange(ValidationError, IndexError):
    """Raised when a channel index lies outside 1..32."""

    def __init__(self, channel):
        super().__init__(f"Channel {channel!r} out of range, expected 1..32.")
        self.channel = channel


class CalibrationIncomplete(ValidationError):
    """One or both calibration points of a bank are unset."""

    pass


class CalibrationDegenerate(ValidationError):
    """Both calibration points share a reference value (zero denominator)."""

    pass


class Uncalibrated(ValidationError):
    """Diagnosis attempted without a usable calibration."""

    pass


class RemoteUnavailable(Exception):
    """Raised when the remote record store cannot be reached."""

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.cause = cause

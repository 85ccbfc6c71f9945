"""Domain-specific errors for razerctl."""


class RazerctlError(Exception):
    """Base error for razerctl."""


class ProfileValidationError(RazerctlError):
    """Raised when a device profile does not conform to schema or semantics."""


class ProfileLoadError(RazerctlError):
    """Raised when loading profile sources fails."""


class DeviceSelectionError(RazerctlError):
    """Raised when device matching cannot resolve a single target."""


class InvalidArgumentError(RazerctlError):
    """Raised when a requested value is outside its enumerated legal set."""


class DeviceUnavailableError(RazerctlError):
    """Raised when no classified interface exists for the requested operation."""


class TransportError(RazerctlError):
    """Base transport error."""


class TransportOpenError(TransportError):
    """Raised when a HID interface cannot be opened."""


class WriteFailureError(TransportError):
    """Raised when a report write is rejected by the device."""

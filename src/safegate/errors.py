"""Exception classes for safegate.

Nothing here crosses the gate boundary: the pattern store and the
confirmation orchestrator catch these and resolve to a normal outcome.
"""


class SafeGateError(Exception):
    """Base exception for safegate."""

    def __init__(self, code: str, message: str, details=None):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigurationError(SafeGateError):
    """Settings file could not be read or failed validation."""

    def __init__(self, message: str, details=None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class PatternConfigError(ConfigurationError):
    """A pattern document is missing, malformed, or empty."""

    def __init__(self, path, message: str, details=None):
        self.path = path
        super().__init__(f"{path}: {message}", details)
        self.code = "PATTERN_CONFIG_ERROR"


class ConfirmationChannelError(SafeGateError):
    """The confirmation channel is closed or unreadable."""

    def __init__(self, message: str = "Confirmation channel unavailable"):
        super().__init__("CONFIRMATION_CHANNEL_ERROR", message)

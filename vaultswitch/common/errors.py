"""Typed failures raised by the switch service.

The HTTP layer maps each type to a status code; scan processing records them
per switch.
"""


class SwitchError(Exception):
    """Base class for every switch-service failure."""


class ConfigurationError(SwitchError):
    """Switch configuration is invalid (for example a non-positive period)."""


class NotFoundError(SwitchError):
    """Unknown switch id, owner or access token."""


class ExpiredTokenError(SwitchError):
    """Access token exists but its validity window has passed."""


class ConflictError(SwitchError):
    """A conditional update lost a race against a concurrent writer."""


class StoreError(SwitchError):
    """The persistent store could not be reached or rejected the statement."""


class DeliveryError(SwitchError):
    """The delivery channel failed to send a message."""


class InvalidTransitionError(SwitchError):
    """Requested lifecycle transition is not allowed."""


class ScanAlreadyRunningError(SwitchError):
    """Another process currently holds the scan lock."""

"""Errors raised while talking to the Portfolio Report service.

Every remote failure is fatal to a sync run: the engine does not retry and
the caller decides when to run again. The subclasses only refine the message
shown to the user.
"""


class RemoteUnavailable(Exception):
    """Base exception for any failed remote call."""

    pass


class AuthenticationError(RemoteUnavailable):
    """Raised when the API key is missing, invalid or lacks permissions."""

    pass


class NetworkError(RemoteUnavailable):
    """Raised when network/connectivity errors occur."""

    pass


class APIError(RemoteUnavailable):
    """Raised when API returns a retryable error response (429, 5xx)."""

    pass


class ClientError(RemoteUnavailable):
    """Raised when API returns a non-retryable client error (400, 404, etc.)."""

    pass


class MalformedRemoteRecord(RemoteUnavailable):
    """Raised when the service returns a payload of unexpected shape."""

    pass

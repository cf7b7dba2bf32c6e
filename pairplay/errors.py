"""Error taxonomy shared by the connection, API and lifecycle layers."""


class GameClientError(RuntimeError):
    """Base class for every failure the client reports."""

    fatal = False


class AuthFailure(GameClientError):
    """Missing or rejected credential. The user must re-authenticate upstream."""

    fatal = True


class TransportFailure(GameClientError):
    """Connect error or dropped connection. Recovered only by an explicit refresh."""

    fatal = True


class SessionUnavailable(GameClientError):
    """Neither an active session nor a freshly created one could be obtained."""

    fatal = True


class RejectedMove(GameClientError):
    """The service answered an intent with an `error` event."""


class LocalValidationFailure(GameClientError):
    """A move failed the turn-ownership or shape pre-check and was never sent."""


class ProtocolError(GameClientError):
    """An inbound payload could not be decoded into a valid session."""


class ApiError(GameClientError):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code

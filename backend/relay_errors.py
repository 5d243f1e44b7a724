"""
Error taxonomy for the relay.

Transport failures towards a single backend are not exceptions: they travel
as TransportFailure outcomes (see relay_client) so one backend can never
break the handling of another.
"""


class RelayError(Exception):
    """Base class for relay errors."""
    pass


class ConfigError(RelayError, ValueError):
    """Invalid or unreadable configuration. Fatal at startup."""
    pass


class ClientRequestError(RelayError):
    """The inbound request is unusable. No backend is contacted."""
    status_code = 400


class InvalidPayloadError(ClientRequestError):
    """Write body is not well-formed JSON."""
    pass


class PrimaryUnavailableError(RelayError):
    """The primary backend produced no usable response."""
    status_code = 500

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause

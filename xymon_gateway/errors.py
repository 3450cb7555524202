"""Gateway error kinds and their HTTP mapping."""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for failures surfaced to HTTP clients."""

    status_code = 500
    code = "gateway_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidParameter(GatewayError):
    """A request value cannot be encoded into a daemon command.

    Raised before any daemon contact is attempted.
    """

    status_code = 400
    code = "invalid_parameter"


class ConnectFailed(GatewayError):
    """The daemon refused, reset or could not be reached."""

    status_code = 502
    code = "connect_failed"


class RelayTimeout(GatewayError):
    """The daemon did not complete the exchange in time."""

    status_code = 504
    code = "relay_timeout"


class TranscodeFailure(GatewayError):
    """The reply stream cannot be reframed into records."""

    status_code = 502
    code = "transcode_failure"

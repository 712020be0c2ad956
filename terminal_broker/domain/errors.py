"""
Error taxonomy for the Terminal Broker.

Every error carries the HTTP status the API reports it with.
"""


class BrokerError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500


class InvalidArgument(BrokerError):
    """Unknown session type, missing or malformed parameter."""

    status_code = 400


class ResourceTooLarge(BrokerError):
    """File exceeds the read threshold."""

    status_code = 400


class Forbidden(BrokerError):
    """Path resolves outside the session workspace."""

    status_code = 403


class NotFound(BrokerError):
    """Unknown session id or missing filesystem path."""

    status_code = 404


class Conflict(BrokerError):
    """Operation clashes with a live session."""

    status_code = 409


class ConfigurationError(BrokerError):
    """Missing credential for a session type."""

    status_code = 500


class RuntimeOperationFailed(BrokerError):
    """Docker build/create/start/stop/stats failure."""

    status_code = 500

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class NotSupported(BrokerError):
    """Feature unavailable on this host."""

    status_code = 501


class DaemonUnavailable(BrokerError):
    """No Docker daemon answered at startup."""

    status_code = 503

"""Exceptions raised by the stick protocol, transport and configuration layers."""

from typing import Optional


class StickException(Exception):
    """Base class for all rainbird_stick errors."""

    def __init__(self, *args: object):
        super().__init__(*args)
        self.message: Optional[str] = str(args[0]) if args else None

    def __str__(self) -> str:
        return self.message or ""


class PayloadError(StickException):
    """An encrypted payload could not be built or opened."""


class StickTransportError(StickException):
    """The HTTP exchange with the stick failed (connection, timeout, status)."""


class StickAuthError(StickTransportError):
    """The stick refused the request (HTTP 403, usually a wrong password)."""


class StickDeviceBusyError(StickTransportError):
    """The stick is busy serving another client (HTTP 503)."""


class StickProtocolError(StickException):
    """The response envelope or tunnelled data was not what the command expects."""


class StickCommandRejected(StickProtocolError):
    """The controller answered a tunnelled command with a NAK (prefix 00)."""

    def __init__(self, command_name: str, data: str = ""):
        super().__init__(f"Command {command_name} was rejected by the controller")
        self.command_name = command_name
        self.data = data


class ConfigurationError(StickException, ValueError):
    """The configured endpoint is unusable; detected before any network call."""

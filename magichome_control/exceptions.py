import asyncio


class MagicHomeException(Exception):
    """Base exception for magichome_control."""


class ValidationError(MagicHomeException, ValueError):
    """The caller passed a value the controller cannot accept."""


class ProtocolError(MagicHomeException):
    """The controller sent a reply that cannot be decoded."""


class CommandTimeoutException(MagicHomeException, asyncio.TimeoutError):
    """The controller did not acknowledge a command in time."""


class DeviceUnavailableException(MagicHomeException):
    """The connection to the controller failed or was lost."""

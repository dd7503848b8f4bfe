"""Init file for Magic Home control"""
from .aiodevice import AIOWifiLedController
from .aioqueue import ConnectionState
from .exceptions import (
    CommandTimeoutException,
    DeviceUnavailableException,
    MagicHomeException,
    ProtocolError,
    ValidationError,
)
from .options import AckOptions, ControlOptions
from .pattern import CustomPattern, PresetPattern
from .protocol import ControllerState

__all__ = [
    "AckOptions",
    "AIOWifiLedController",
    "CommandTimeoutException",
    "ConnectionState",
    "ControllerState",
    "ControlOptions",
    "CustomPattern",
    "DeviceUnavailableException",
    "MagicHomeException",
    "PresetPattern",
    "ProtocolError",
    "ValidationError",
]

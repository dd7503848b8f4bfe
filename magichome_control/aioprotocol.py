import asyncio
from asyncio.transports import BaseTransport, WriteTransport
import logging
from typing import Any, Callable, Optional, cast

from .utils import format_bytes

_LOGGER = logging.getLogger(__name__)


class AIOLEDENETProtocol(asyncio.Protocol):
    """A asyncio.Protocol carrying one command queue session."""

    def __init__(
        self,
        data_received: Callable[[bytes], Any],
        connection_lost: Callable[[Optional[Exception]], Any],
        log_all_received: bool = False,
    ) -> None:
        self._data_receive_callback = data_received
        self._connection_lost_callback = connection_lost
        self._log_all_received = log_all_received
        self._closing = False
        self.transport: Optional[WriteTransport] = None
        self.peername: Any = None

    @property
    def closing(self) -> bool:
        """Return True once close() was called or the connection was lost."""
        return self._closing

    def connection_made(self, transport: BaseTransport) -> None:
        """Handle connection made."""
        self.transport = cast(WriteTransport, transport)
        self.peername = transport.get_extra_info("peername")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        """Handle connection lost.

        The queue is only told about losses it did not cause itself.
        """
        _LOGGER.debug("%s: Connection lost: %s", self.peername, exc)
        if self._closing:
            return
        self._closing = True
        self._connection_lost_callback(exc)

    def write(self, data: bytes) -> None:
        """Write data to the controller."""
        assert self.transport is not None
        _LOGGER.debug("%s => %s (%d)", self.peername, format_bytes(data), len(data))
        self.transport.write(data)

    def close(self) -> None:
        """Close the transport without notifying the queue."""
        if self._closing:
            return
        self._closing = True
        assert self.transport is not None
        self.transport.write_eof()
        self.transport.close()

    def data_received(self, data: bytes) -> None:
        """Process new data from the socket."""
        if self._closing:
            return
        _LOGGER.debug("%s <= %s (%d)", self.peername, format_bytes(data), len(data))
        if self._log_all_received:
            _LOGGER.info("%s: Received: %s", self.peername, data.hex(" "))
        self._data_receive_callback(data)

import asyncio
from collections import deque
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Deque, Optional

from .aioprotocol import AIOLEDENETProtocol
from .const import DEFAULT_COMMAND_TIMEOUT, RESPONSE_TIMEOUT
from .exceptions import CommandTimeoutException, DeviceUnavailableException
from .protocol import construct_message
from .utils import format_bytes

_LOGGER = logging.getLogger(__name__)


class ConnectionState(Enum):
    IDLE = "idle"  # no socket, empty queue
    CONNECTING = "connecting"  # socket requested, queue not empty
    ACTIVE = "active"  # socket established, dispatching the queue head


@dataclass
class QueuedCommand:
    msg: bytearray  # includes the checksum
    expect_reply: bool
    future: "asyncio.Future[bytes]"


def _unavailable(
    message: str, cause: Optional[BaseException] = None
) -> DeviceUnavailableException:
    exc = DeviceUnavailableException(message)
    exc.__cause__ = cause
    return exc


class AIOCommandQueue:
    """Serialize commands onto a single, short lived connection.

    The wire protocol has no request ids, so a reply can only be
    attributed to the command that is in flight. Commands are written
    one at a time, in the order they were submitted, and the
    connection is closed as soon as the queue is empty.

    Responses have no length prefix. A response is complete once no
    new bytes arrived for RESPONSE_TIMEOUT seconds.
    """

    def __init__(
        self,
        ipaddr: str,
        port: int,
        command_timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT,
        connect_timeout: Optional[float] = None,
        log_all_received: bool = False,
    ) -> None:
        """Init the queue, no connection is made until a command is submitted."""
        self.ipaddr = ipaddr
        self.port = port
        self.command_timeout = command_timeout
        self.connect_timeout = connect_timeout
        self.log_all_received = log_all_received
        self.loop = asyncio.get_running_loop()
        self._state = ConnectionState.IDLE
        self._queue: Deque[QueuedCommand] = deque()
        self._aio_protocol: Optional[AIOLEDENETProtocol] = None
        self._connect_task: Optional["asyncio.Task[None]"] = None
        self._buffer = b""
        self._receive_timer: Optional[asyncio.TimerHandle] = None
        self._command_timer: Optional[asyncio.TimerHandle] = None
        self._write_complete: Optional[asyncio.Handle] = None

    @property
    def state(self) -> ConnectionState:
        """Return the connection state."""
        return self._state

    @property
    def pending(self) -> int:
        """Return the number of commands queued, including the one in flight."""
        return len(self._queue)

    def async_submit(
        self, msg: bytearray, expect_reply: bool
    ) -> "asyncio.Future[bytes]":
        """Queue a frame and return a future for the bytes it gets back.

        The checksum is appended here.
        """
        command = QueuedCommand(
            construct_message(msg), expect_reply, self.loop.create_future()
        )
        self._queue.append(command)
        if self._state is ConnectionState.IDLE:
            self._state = ConnectionState.CONNECTING
            self._connect_task = self.loop.create_task(self._async_connect())
        return command.future

    def async_stop(self) -> None:
        """Fail everything outstanding and drop the connection."""
        if self._state is ConnectionState.IDLE:
            return
        self._async_reset(_unavailable(f"{self.ipaddr}: Connection shut down"))

    async def _async_connect(self) -> None:
        """Create the connection and start dispatching."""
        _LOGGER.debug("%s: Connecting on port %s", self.ipaddr, self.port)
        protocol: Optional[AIOLEDENETProtocol] = None

        def _protocol_factory() -> AIOLEDENETProtocol:
            nonlocal protocol
            protocol = AIOLEDENETProtocol(
                self._async_data_received,
                self._async_connection_lost,
                self.log_all_received,
            )
            return protocol

        try:
            _, connected = await asyncio.wait_for(
                self.loop.create_connection(  # type: ignore
                    _protocol_factory, self.ipaddr, self.port
                ),
                timeout=self.connect_timeout,
            )
        except asyncio.CancelledError:
            # reset while connecting, the transport may already exist
            self._async_close_unused(protocol)
            raise
        except asyncio.TimeoutError as ex:
            self._async_close_unused(protocol)
            self._connect_task = None
            self._async_reset(
                _unavailable(f"{self.ipaddr}: Connection timeout reached", ex)
            )
            return
        except OSError as ex:
            self._connect_task = None
            self._async_reset(_unavailable(f"{self.ipaddr}: {ex}", ex))
            return
        self._connect_task = None
        self._aio_protocol = connected
        self._state = ConnectionState.ACTIVE
        self._async_dispatch_head()

    def _async_close_unused(self, protocol: Optional[AIOLEDENETProtocol]) -> None:
        """Close a connection that was made but never handed to the queue."""
        if protocol is not None and protocol.transport is not None:
            _LOGGER.debug("%s: Closing abandoned connection", self.ipaddr)
            protocol.close()

    def _async_dispatch_head(self) -> None:
        """Write the command at the head of the queue."""
        if not self._queue:
            _LOGGER.debug("%s: Queue drained, closing connection", self.ipaddr)
            self._async_close()
            return
        assert self._aio_protocol is not None
        command = self._queue[0]
        self._aio_protocol.write(command.msg)
        if not command.expect_reply:
            # Done as soon as the transport has taken the write
            self._write_complete = self.loop.call_soon(self._async_finish_head)
            return
        if self.command_timeout is not None:
            self._command_timer = self.loop.call_later(
                self.command_timeout, self._async_command_timed_out
            )

    def _async_data_received(self, data: bytes) -> None:
        """New data on the socket."""
        if not self._queue:
            _LOGGER.debug(
                "%s: Ignoring data with no command in flight: %s",
                self.ipaddr,
                format_bytes(data),
            )
            return
        # Something arrived so the command can no longer time out
        if self._command_timer:
            self._command_timer.cancel()
            self._command_timer = None
        self._buffer += data
        if self._receive_timer:
            self._receive_timer.cancel()
        self._receive_timer = self.loop.call_later(
            RESPONSE_TIMEOUT, self._async_finish_head
        )

    def _async_finish_head(self) -> None:
        """Resolve the head command with everything received so far."""
        self._async_cancel_timers()
        data, self._buffer = self._buffer, b""
        command = self._queue.popleft()
        if not command.future.done():
            command.future.set_result(data)
        self._async_dispatch_head()

    def _async_command_timed_out(self) -> None:
        """Fail the head command, the rest of the queue carries on."""
        self._command_timer = None
        self._async_cancel_timers()
        self._buffer = b""
        command = self._queue.popleft()
        _LOGGER.debug(
            "%s: Command timed out: %s", self.ipaddr, format_bytes(command.msg)
        )
        if not command.future.done():
            command.future.set_exception(
                CommandTimeoutException(f"{self.ipaddr}: Command timed out")
            )
        self._async_dispatch_head()

    def _async_connection_lost(self, exc: Optional[Exception]) -> None:
        """Called when the controller drops the connection."""
        self._aio_protocol = None
        self._async_reset(_unavailable(f"{self.ipaddr}: Connection lost: {exc}", exc))

    def _async_reset(self, exc: DeviceUnavailableException) -> None:
        """Fail every queued command with exc and return to idle."""
        _LOGGER.debug(
            "%s: Failing %d queued commands: %s", self.ipaddr, len(self._queue), exc
        )
        self._async_cancel_timers()
        if self._connect_task:
            self._connect_task.cancel()
            self._connect_task = None
        self._buffer = b""
        queue, self._queue = self._queue, deque()
        self._async_close()
        for command in queue:
            if not command.future.done():
                command.future.set_exception(exc)

    def _async_close(self) -> None:
        """Close the connection if there is one and go idle."""
        protocol, self._aio_protocol = self._aio_protocol, None
        self._state = ConnectionState.IDLE
        if protocol:
            protocol.close()

    def _async_cancel_timers(self) -> None:
        for handle in (self._receive_timer, self._command_timer, self._write_complete):
            if handle:
                handle.cancel()
        self._receive_timer = None
        self._command_timer = None
        self._write_complete = None

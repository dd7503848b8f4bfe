import asyncio
import contextlib
import logging
from unittest.mock import MagicMock, call, patch

import pytest
import pytest_asyncio

from magichome_control import aioqueue
from magichome_control.aiodevice import AIOWifiLedController
from magichome_control.aioprotocol import AIOLEDENETProtocol
from magichome_control.aioqueue import AIOCommandQueue, ConnectionState
from magichome_control.const import MODE_COLOR, MODE_IA_PATTERN, MODE_PATTERN
from magichome_control.exceptions import (
    CommandTimeoutException,
    DeviceUnavailableException,
    ProtocolError,
    ValidationError,
)
from magichome_control.options import AckOptions, ControlOptions
from magichome_control.pattern import CustomPattern
from magichome_control.protocol import RGB

IP_ADDRESS = "127.0.0.1"

LEDENET_STATE_QUERY = b"\x81\x8a\x8b\x96"
POWER_ON = b"\x71\x23\x0f\xa3"
POWER_OFF = b"\x71\x24\x0f\xa4"
ACK = b"\x0f\x71\x23\xa3"

# 0x35 bulb, on, color mode, delay 6, rgb 38 05 06, ww f9, cw 10
STATE_0x35 = b"\x81\x35\x23\x61\x21\x06\x38\x05\x06\xf9\x01\x10\x0f\x00"

logging.getLogger("magichome_control").setLevel(logging.DEBUG)


@pytest.fixture(autouse=True)
def fast_responses():
    """Consider a response complete as soon as the loop comes around."""
    with patch.object(aioqueue, "RESPONSE_TIMEOUT", 0):
        yield


@pytest_asyncio.fixture
async def mock_aio_protocol():
    """Fixture to mock an asyncio connection."""
    loop = asyncio.get_running_loop()
    future = asyncio.Future()

    async def _wait_for_connection():
        transport, protocol = await future
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        return transport, protocol

    async def _mock_create_connection(func, ip, port):
        protocol: AIOLEDENETProtocol = func()
        transport = MagicMock()
        protocol.connection_made(transport)
        with contextlib.suppress(asyncio.InvalidStateError):
            future.set_result((transport, protocol))
        return transport, protocol

    with patch.object(loop, "create_connection", _mock_create_connection):
        yield _wait_for_connection


def _writes(transport):
    return [bytes(c.args[0]) for c in transport.write.mock_calls]


@pytest.mark.asyncio
async def test_turn_on_off(mock_aio_protocol):
    """Test a command waits for the reply and the connection closes when idle."""
    light = AIOWifiLedController(IP_ADDRESS)
    assert light.connection_state is ConnectionState.IDLE

    task = asyncio.create_task(light.async_turn_on())
    transport, protocol = await mock_aio_protocol()
    assert light.connection_state is ConnectionState.ACTIVE
    assert not task.done()

    protocol.data_received(ACK)
    assert await task is True
    assert transport.mock_calls == [
        call.get_extra_info("peername"),
        call.write(bytearray(POWER_ON)),
        call.write_eof(),
        call.close(),
    ]
    assert light.connection_state is ConnectionState.IDLE

    transport.reset_mock()
    task = asyncio.create_task(light.async_turn_off())
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    protocol = light._queue._aio_protocol
    assert protocol is not None
    protocol.data_received(ACK)
    assert await task is True


@pytest.mark.asyncio
async def test_reply_in_fragments(mock_aio_protocol):
    """Test fragments are joined until the controller goes quiet."""
    queue = AIOCommandQueue(IP_ADDRESS, 5577)
    future = queue.async_submit(bytearray([0x81, 0x8A, 0x8B]), True)
    transport, protocol = await mock_aio_protocol()
    assert _writes(transport) == [LEDENET_STATE_QUERY]

    protocol.data_received(STATE_0x35[:5])
    protocol.data_received(STATE_0x35[5:])
    assert await future == STATE_0x35
    assert queue.state is ConnectionState.IDLE
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_unacknowledged_command_settles_after_write(mock_aio_protocol):
    """Test a command without ack succeeds without any reply."""
    light = AIOWifiLedController(
        IP_ADDRESS, options=ControlOptions(ack=AckOptions.from_mask(0))
    )
    task = asyncio.create_task(light.async_turn_off())
    transport, _ = await mock_aio_protocol()
    assert await task is True
    assert _writes(transport) == [POWER_OFF]
    assert light.connection_state is ConnectionState.IDLE


@pytest.mark.asyncio
async def test_unacknowledged_command_ignores_early_reply():
    """Test a reply to a command without ack does not leak into the next one."""
    loop = asyncio.get_running_loop()
    connections = []

    async def _mock_create_connection(func, ip, port):
        protocol = func()
        transport = MagicMock()
        protocol.connection_made(transport)

        def _write(data):
            if bytes(data) == POWER_OFF:
                protocol.data_received(b"\x0f\x71\x24\xa4")

        transport.write.side_effect = _write
        connections.append((transport, protocol))
        return transport, protocol

    with patch.object(loop, "create_connection", _mock_create_connection):
        light = AIOWifiLedController(
            IP_ADDRESS, options=ControlOptions(ack=AckOptions(power=False))
        )
        turn_off = asyncio.create_task(light.async_turn_off())
        query = asyncio.create_task(light.async_query_state())
        assert await turn_off is True

        transport, protocol = connections[0]
        assert _writes(transport) == [POWER_OFF, LEDENET_STATE_QUERY]
        protocol.data_received(STATE_0x35)
        state = await query

    assert state.model_num == 0x35
    assert state.color == RGB(0x38, 0x05, 0x06)
    assert len(connections) == 1


@pytest.mark.asyncio
async def test_results_settle_in_submission_order(mock_aio_protocol):
    """Test only the head is in flight and results settle in order."""
    light = AIOWifiLedController(IP_ADDRESS)
    order = []

    async def _set_red(red):
        assert await light.async_set_color(red, 0, 0) is True
        order.append(red)

    tasks = [asyncio.create_task(_set_red(red)) for red in (1, 2, 3)]
    transport, protocol = await mock_aio_protocol()
    for idx, task in enumerate(tasks):
        assert len(transport.write.mock_calls) == idx + 1
        protocol.data_received(b"\x30")
        await task

    assert order == [1, 2, 3]
    assert [msg[1] for msg in _writes(transport)] == [1, 2, 3]
    assert light.connection_state is ConnectionState.IDLE


@pytest.mark.asyncio
async def test_command_timeout_only_fails_head(mock_aio_protocol):
    """Test a timed out command does not hold up the queue."""
    light = AIOWifiLedController(
        IP_ADDRESS, options=ControlOptions(command_timeout=0.01)
    )
    first = asyncio.create_task(light.async_turn_on())
    second = asyncio.create_task(light.async_turn_off())
    transport, protocol = await mock_aio_protocol()

    with pytest.raises(CommandTimeoutException):
        await first
    assert isinstance(first.exception(), asyncio.TimeoutError)
    assert _writes(transport) == [POWER_ON, POWER_OFF]

    protocol.data_received(ACK)
    assert await second is True
    assert light.connection_state is ConnectionState.IDLE


@pytest.mark.asyncio
async def test_command_timeout_disabled(mock_aio_protocol):
    """Test a command waits for its reply when the timeout is disabled."""
    light = AIOWifiLedController(
        IP_ADDRESS, options=ControlOptions(command_timeout=None)
    )
    task = asyncio.create_task(light.async_turn_on())
    _, protocol = await mock_aio_protocol()
    await asyncio.sleep(0.05)
    assert not task.done()
    protocol.data_received(ACK)
    assert await task is True


@pytest.mark.asyncio
async def test_connection_lost_fails_everything_queued(mock_aio_protocol):
    """Test a socket error fails every queued command and resets the queue."""
    light = AIOWifiLedController(IP_ADDRESS)
    tasks = [
        asyncio.create_task(light.async_turn_on()),
        asyncio.create_task(light.async_set_color(1, 2, 3)),
        asyncio.create_task(light.async_query_state()),
    ]
    transport, protocol = await mock_aio_protocol()
    assert light._queue.pending == 3

    error = ConnectionResetError("reset by peer")
    protocol.connection_lost(error)

    results = await asyncio.gather(*tasks, return_exceptions=True)
    assert all(isinstance(result, DeviceUnavailableException) for result in results)
    assert results[0] is results[1] is results[2]
    assert results[0].__cause__ is error
    assert light._queue.pending == 0
    assert light.connection_state is ConnectionState.IDLE
    assert _writes(transport) == [POWER_ON]


@pytest.mark.asyncio
async def test_new_connection_after_socket_error():
    """Test the next command after a socket error starts a fresh connection."""
    loop = asyncio.get_running_loop()
    connections = []

    async def _mock_create_connection(func, ip, port):
        if not connections:
            connections.append(None)
            raise ConnectionRefusedError("refused")
        protocol = func()
        transport = MagicMock()
        protocol.connection_made(transport)
        connections.append((transport, protocol))
        return transport, protocol

    with patch.object(loop, "create_connection", _mock_create_connection):
        light = AIOWifiLedController(IP_ADDRESS)
        first = asyncio.create_task(light.async_turn_on())
        second = asyncio.create_task(light.async_turn_off())
        with pytest.raises(DeviceUnavailableException) as exc_info:
            await first
        assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)
        with pytest.raises(DeviceUnavailableException):
            await second
        assert light.connection_state is ConnectionState.IDLE

        task = asyncio.create_task(light.async_turn_on())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert len(connections) == 2
        transport, protocol = connections[1]
        protocol.data_received(ACK)
        assert await task is True
        assert _writes(transport) == [POWER_ON]


@pytest.mark.asyncio
async def test_connect_timeout():
    """Test a connect timeout is handled like a socket error."""
    loop = asyncio.get_running_loop()

    async def _mock_create_connection(func, ip, port):
        await asyncio.sleep(10)

    with patch.object(loop, "create_connection", _mock_create_connection):
        light = AIOWifiLedController(
            IP_ADDRESS, options=ControlOptions(connect_timeout=0.01)
        )
        tasks = [
            asyncio.create_task(light.async_turn_on()),
            asyncio.create_task(light.async_turn_off()),
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

    assert all(isinstance(result, DeviceUnavailableException) for result in results)
    assert "timeout" in str(results[0])
    assert light.connection_state is ConnectionState.IDLE


@pytest.mark.asyncio
async def test_validation_errors_do_not_connect():
    """Test invalid arguments fail before a connection is attempted."""
    loop = asyncio.get_running_loop()
    with patch.object(loop, "create_connection") as mock_create_connection:
        light = AIOWifiLedController(IP_ADDRESS)
        with pytest.raises(ValidationError):
            await light.async_set_ia_pattern(0, 10)
        with pytest.raises(ValidationError):
            await light.async_set_ia_pattern(301, 10)
        with pytest.raises(ValidationError):
            await light.async_set_pattern("not_a_pattern", 50)
        with pytest.raises(ValidationError):
            await light.async_set_custom_pattern([(255, 0, 0)], 50)
        with pytest.raises(ValidationError):
            await light.async_set_custom_pattern(CustomPattern("blink"), 50)

    assert mock_create_connection.mock_calls == []
    assert light.connection_state is ConnectionState.IDLE


@pytest.mark.asyncio
async def test_query_state_enables_quirks(mock_aio_protocol):
    """Test a 0x35 state response enables masks and cold white."""
    light = AIOWifiLedController(IP_ADDRESS)
    task = asyncio.create_task(light.async_query_state())
    transport, protocol = await mock_aio_protocol()
    assert _writes(transport) == [LEDENET_STATE_QUERY]

    protocol.data_received(STATE_0x35)
    state = await task
    assert state.model_num == 0x35
    assert state.is_on is True
    assert state.mode == MODE_COLOR
    assert state.pattern is None
    assert state.speed == 83
    assert state.color == RGB(0x38, 0x05, 0x06)
    assert state.warm_white == 0xF9
    assert state.cold_white == 0x10
    assert light.options.apply_masks is True
    assert light.options.cold_white_support is True
    assert light.model_num == 0x35
    assert light.model == "Bulb RGBCW (0x35)"
    assert light.last_color == RGB(0x38, 0x05, 0x06)
    assert light.last_warm_white == 0xF9
    assert light.last_cold_white == 0x10


@pytest.mark.asyncio
async def test_quirks_do_not_leak_into_shared_options(mock_aio_protocol):
    """Test quirks found by a query stay on the controller that ran it."""
    options = ControlOptions()
    bulb = AIOWifiLedController(IP_ADDRESS, options=options)
    strip = AIOWifiLedController("127.0.0.2", options=options)
    assert bulb.options == strip.options == options
    assert bulb.options is not options
    assert bulb.options.ack is not options.ack

    task = asyncio.create_task(bulb.async_query_state())
    _, protocol = await mock_aio_protocol()
    protocol.data_received(STATE_0x35)
    await task

    assert bulb.options.apply_masks is True
    assert bulb.options.cold_white_support is True
    assert strip.options.apply_masks is False
    assert strip.options.cold_white_support is False
    assert options.apply_masks is False
    assert options.cold_white_support is False


@pytest.mark.asyncio
async def test_query_state_unknown_model_keeps_options(mock_aio_protocol):
    """Test a model without quirks leaves the options alone."""
    light = AIOWifiLedController(IP_ADDRESS)
    task = asyncio.create_task(light.async_query_state())
    _, protocol = await mock_aio_protocol()
    protocol.data_received(
        b"\x81\x33\x24\x2a\x21\x10\x00\x00\x00\x00\x01\x00\x0f\x00"
    )
    state = await task
    assert state.is_on is False
    assert state.mode == MODE_PATTERN
    assert state.pattern == "cyan_gradual_change"
    assert state.speed == 50
    assert light.options.apply_masks is False
    assert light.options.cold_white_support is False


@pytest.mark.asyncio
async def test_query_state_ia_pattern(mock_aio_protocol):
    """Test ia pattern speed is reported as sent."""
    light = AIOWifiLedController(IP_ADDRESS)
    task = asyncio.create_task(light.async_query_state())
    _, protocol = await mock_aio_protocol()
    protocol.data_received(
        b"\x81\x44\x23\x00\x6e\x32\x00\x00\x00\x00\x01\x00\x0f\x00"
    )
    state = await task
    assert state.mode == MODE_IA_PATTERN
    assert state.pattern == 11
    assert state.speed == 0x32
    assert light.options.apply_masks is True
    assert light.options.cold_white_support is False


@pytest.mark.asyncio
async def test_query_state_short_reply(mock_aio_protocol):
    """Test a short reply fails the query and leaves the options untouched."""
    light = AIOWifiLedController(IP_ADDRESS)
    task = asyncio.create_task(light.async_query_state())
    _, protocol = await mock_aio_protocol()
    protocol.data_received(STATE_0x35[:10])
    with pytest.raises(ProtocolError):
        await task
    assert light.options.apply_masks is False
    assert light.options.cold_white_support is False
    assert light.model_num is None


@pytest.mark.asyncio
async def test_set_color_and_whites_with_masks(mock_aio_protocol):
    """Test masks restrict level changes to colors or whites."""
    light = AIOWifiLedController(IP_ADDRESS, options=ControlOptions(apply_masks=True))
    color = asyncio.create_task(light.async_set_color(255, 0, 0))
    warm_white = asyncio.create_task(light.async_set_warm_white(100))
    transport, protocol = await mock_aio_protocol()
    protocol.data_received(b"\x30")
    assert await color is True
    protocol.data_received(b"\x30")
    assert await warm_white is True

    assert _writes(transport) == [
        b"\x31\xff\x00\x00\x00\xf0\x0f\x2f",
        b"\x31\x00\x00\x00\x64\x0f\x0f\xb3",
    ]
    assert light.last_color == RGB(255, 0, 0)
    assert light.last_warm_white == 100


@pytest.mark.asyncio
async def test_set_levels_without_masks(mock_aio_protocol, caplog):
    """Test levels that are not given are taken from the last command."""
    light = AIOWifiLedController(
        IP_ADDRESS, options=ControlOptions(ack=AckOptions(color=False))
    )
    tasks = [
        asyncio.create_task(light.async_set_color(10, 20, 30)),
        asyncio.create_task(light.async_set_color_and_warm_white(1, 2, 3, 200)),
        asyncio.create_task(light.async_set_warm_white(50)),
    ]
    transport, _ = await mock_aio_protocol()
    assert await asyncio.gather(*tasks) == [True, True, True]
    assert _writes(transport) == [
        b"\x31\x0a\x14\x1e\x00\x00\x0f\x7c",
        b"\x31\x01\x02\x03\xc8\x00\x0f\x0e",
        b"\x31\x01\x02\x03\x32\x00\x0f\x78",
    ]
    assert "Masks are enabled" not in caplog.text


@pytest.mark.asyncio
async def test_set_levels_with_cold_white(mock_aio_protocol, caplog):
    """Test the cold white byte is only sent with cold white support."""
    light = AIOWifiLedController(
        IP_ADDRESS,
        options=ControlOptions(
            ack=AckOptions(color=False), cold_white_support=True, apply_masks=True
        ),
    )
    tasks = [
        asyncio.create_task(light.async_set_color_and_whites(1, 2, 3, 4, 5)),
        asyncio.create_task(light.async_set_whites(6, 7)),
    ]
    transport, _ = await mock_aio_protocol()
    await asyncio.gather(*tasks)
    assert _writes(transport) == [
        b"\x31\x01\x02\x03\x04\x05\x00\x0f\x4f",
        b"\x31\x00\x00\x00\x06\x07\x0f\x0f\x5c",
    ]
    assert "Masks are enabled" in caplog.text
    assert "Cold white support is not enabled" not in caplog.text


@pytest.mark.asyncio
async def test_set_whites_warns_without_cold_white(mock_aio_protocol, caplog):
    """Test a cold white level without cold white support warns."""
    light = AIOWifiLedController(
        IP_ADDRESS, options=ControlOptions(ack=AckOptions(color=False))
    )
    task = asyncio.create_task(light.async_set_whites(6, 7))
    transport, _ = await mock_aio_protocol()
    assert await task is True
    assert _writes(transport) == [b"\x31\x00\x00\x00\x06\x00\x0f\x46"]
    assert "Cold white support is not enabled" in caplog.text


@pytest.mark.asyncio
async def test_set_color_with_brightness(mock_aio_protocol):
    """Test colors are scaled and black means white."""
    light = AIOWifiLedController(
        IP_ADDRESS, options=ControlOptions(ack=AckOptions(color=False))
    )
    tasks = [
        asyncio.create_task(light.async_set_color_with_brightness(200, 100, 0, 50)),
        asyncio.create_task(light.async_set_color_with_brightness(0, 0, 0, 200)),
    ]
    transport, _ = await mock_aio_protocol()
    await asyncio.gather(*tasks)
    writes = _writes(transport)
    assert writes[0][1:4] == bytes([100, 50, 0])
    assert writes[1][1:4] == bytes([255, 255, 255])


@pytest.mark.asyncio
async def test_set_patterns(mock_aio_protocol):
    """Test named, extended and custom pattern frames."""
    light = AIOWifiLedController(
        IP_ADDRESS,
        options=ControlOptions(ack=AckOptions(pattern=False, custom_pattern=False)),
    )
    custom = CustomPattern.jump().add_color(255, 0, 0).add_color(0, 0, 255)
    tasks = [
        asyncio.create_task(light.async_set_pattern("red_gradual_change", 50)),
        asyncio.create_task(light.async_set_ia_pattern(1, 10)),
        asyncio.create_task(light.async_set_custom_pattern(custom, 100)),
    ]
    transport, _ = await mock_aio_protocol()
    assert await asyncio.gather(*tasks) == [True, True, True]
    preset, ia, custom_msg = _writes(transport)
    assert preset == b"\x61\x26\x10\x0f\xa6"
    assert ia == b"\x61\x00\x64\x0a\x0f\xde"
    assert len(custom_msg) == 70
    assert custom_msg[:9] == b"\x51\xff\x00\x00\x00\x00\x00\xff\x00"
    assert custom_msg[9:13] == b"\x01\x02\x03\x00"
    assert custom_msg[65:69] == b"\x01\x3b\xff\x0f"
    assert custom_msg[-1] == sum(custom_msg[:-1]) & 0xFF


@pytest.mark.asyncio
async def test_stop_fails_pending(mock_aio_protocol):
    """Test stopping fails queued commands and closes the connection."""
    light = AIOWifiLedController(IP_ADDRESS)
    task = asyncio.create_task(light.async_turn_on())
    transport, _ = await mock_aio_protocol()
    await light.async_stop()
    with pytest.raises(DeviceUnavailableException):
        await task
    assert transport.close.mock_calls == [call()]
    assert light.connection_state is ConnectionState.IDLE


@pytest.mark.asyncio
async def test_stop_while_connecting_closes_transport():
    """Test a transport made while connecting is closed when the queue stops."""
    loop = asyncio.get_running_loop()
    transport = MagicMock()

    async def _mock_create_connection(func, ip, port):
        protocol = func()
        protocol.connection_made(transport)
        await asyncio.sleep(10)

    with patch.object(loop, "create_connection", _mock_create_connection):
        light = AIOWifiLedController(IP_ADDRESS)
        task = asyncio.create_task(light.async_turn_on())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert light.connection_state is ConnectionState.CONNECTING

        await light.async_stop()
        with pytest.raises(DeviceUnavailableException):
            await task
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    assert transport.mock_calls == [
        call.get_extra_info("peername"),
        call.write_eof(),
        call.close(),
    ]
    assert light.connection_state is ConnectionState.IDLE


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_break_queue(mock_aio_protocol):
    """Test a caller giving up does not desync the queue."""
    light = AIOWifiLedController(IP_ADDRESS)
    first = asyncio.create_task(light.async_turn_on())
    second = asyncio.create_task(light.async_turn_off())
    transport, protocol = await mock_aio_protocol()
    first.cancel()
    protocol.data_received(ACK)
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    protocol.data_received(ACK)
    assert await second is True
    assert _writes(transport) == [POWER_ON, POWER_OFF]


@pytest.mark.asyncio
async def test_log_all_received(mock_aio_protocol, caplog):
    """Test every received chunk is logged at info when asked to."""
    light = AIOWifiLedController(
        IP_ADDRESS, options=ControlOptions(log_all_received=True)
    )
    task = asyncio.create_task(light.async_turn_on())
    _, protocol = await mock_aio_protocol()
    with caplog.at_level(logging.INFO, logger="magichome_control"):
        protocol.data_received(ACK)
        await task
    assert "Received: 0f 71 23 a3" in caplog.text

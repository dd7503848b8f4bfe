from dataclasses import replace
import logging
from typing import Optional

from .aioqueue import AIOCommandQueue, ConnectionState
from .const import DEFAULT_PORT, LevelWriteMode
from .exceptions import ValidationError
from .models_db import get_model, get_model_description
from .options import ControlOptions
from .pattern import CustomPattern, PresetPattern
from .protocol import RGB, ControllerState, ProtocolLEDENETControl
from .utils import clamp, clamp_byte

_LOGGER = logging.getLogger(__name__)


class AIOWifiLedController:
    """A Magic Home LED controller."""

    def __init__(
        self,
        ipaddr: str,
        port: int = DEFAULT_PORT,
        options: Optional[ControlOptions] = None,
    ) -> None:
        """Init the controller. This does not connect yet."""
        self.ipaddr = ipaddr
        self.port = port
        options = options or ControlOptions()
        # quirks found by a query only apply to this controller
        self.options = replace(options, ack=replace(options.ack))
        self._protocol = ProtocolLEDENETControl()
        self._queue = AIOCommandQueue(
            ipaddr,
            port,
            command_timeout=self.options.command_timeout,
            connect_timeout=self.options.connect_timeout,
            log_all_received=self.options.log_all_received,
        )
        self._model_num: Optional[int] = None
        # last sent or queried levels, used when only part of them change
        self._last_color = RGB(0, 0, 0)
        self._last_warm_white = 0
        self._last_cold_white = 0

    @property
    def connection_state(self) -> ConnectionState:
        """Return the state of the connection."""
        return self._queue.state

    @property
    def model_num(self) -> Optional[int]:
        """Return the model number seen in the last state response."""
        return self._model_num

    @property
    def model(self) -> Optional[str]:
        """Return the model description."""
        if self._model_num is None:
            return None
        return f"{get_model_description(self._model_num)} (0x{self._model_num:02X})"

    @property
    def last_color(self) -> RGB:
        return self._last_color

    @property
    def last_warm_white(self) -> int:
        return self._last_warm_white

    @property
    def last_cold_white(self) -> int:
        return self._last_cold_white

    async def async_stop(self) -> None:
        """Shutdown the connection, failing anything still queued."""
        self._queue.async_stop()

    async def _async_send_msg(self, msg: bytearray, expect_reply: bool) -> bool:
        """Submit a frame and wait for it to settle."""
        data = await self._queue.async_submit(msg, expect_reply)
        # the replies vary from controller to controller and are not
        # documented, so any reply counts as an acknowledgement
        return len(data) > 0 or not expect_reply

    async def async_set_power(self, on: bool) -> bool:
        """Set the power state."""
        return await self._async_send_msg(
            self._protocol.construct_state_change(on), self.options.ack.power
        )

    async def async_turn_on(self) -> bool:
        """Turn on the device."""
        return await self.async_set_power(True)

    async def async_turn_off(self) -> bool:
        """Turn off the device."""
        return await self.async_set_power(False)

    async def _async_set_levels(
        self,
        red: int,
        green: int,
        blue: int,
        warm_white: int,
        cold_white: int,
        write_mode: LevelWriteMode,
    ) -> bool:
        red, green, blue = clamp_byte(red), clamp_byte(green), clamp_byte(blue)
        warm_white, cold_white = clamp_byte(warm_white), clamp_byte(cold_white)
        msg = self._protocol.construct_levels_change(
            red,
            green,
            blue,
            warm_white,
            cold_white,
            write_mode,
            self.options.cold_white_support,
        )
        if not await self._async_send_msg(msg, self.options.ack.color):
            return False
        if write_mode != LevelWriteMode.WHITES:
            self._last_color = RGB(red, green, blue)
        if write_mode != LevelWriteMode.COLORS:
            self._last_warm_white = warm_white
            self._last_cold_white = cold_white
        return True

    def _warn_if_masks_enabled(self) -> None:
        if self.options.apply_masks:
            _LOGGER.warning(
                "%s: Masks are enabled, but a method which does not use them was called",
                self.ipaddr,
            )

    async def async_set_color_and_warm_white(
        self, red: int, green: int, blue: int, warm_white: int
    ) -> bool:
        """Set the color and warm white, keeping the last cold white."""
        self._warn_if_masks_enabled()
        return await self._async_set_levels(
            red, green, blue, warm_white, self._last_cold_white, LevelWriteMode.ALL
        )

    async def async_set_color_and_whites(
        self, red: int, green: int, blue: int, warm_white: int, cold_white: int
    ) -> bool:
        """Set the color, warm white and cold white."""
        self._warn_if_masks_enabled()
        return await self._async_set_levels(
            red, green, blue, warm_white, cold_white, LevelWriteMode.ALL
        )

    async def async_set_color(self, red: int, green: int, blue: int) -> bool:
        """Set the color.

        With masks only the color channels are written, otherwise the
        last white levels are sent along.
        """
        if self.options.apply_masks:
            return await self._async_set_levels(
                red, green, blue, 0, 0, LevelWriteMode.COLORS
            )
        return await self.async_set_color_and_whites(
            red, green, blue, self._last_warm_white, self._last_cold_white
        )

    async def async_set_warm_white(self, warm_white: int) -> bool:
        """Set the warm white level.

        With masks only the white channels are written, otherwise the
        last color is sent along.
        """
        if self.options.apply_masks:
            return await self._async_set_levels(
                0, 0, 0, warm_white, self._last_cold_white, LevelWriteMode.WHITES
            )
        red, green, blue = self._last_color
        return await self.async_set_color_and_warm_white(red, green, blue, warm_white)

    async def async_set_whites(self, warm_white: int, cold_white: int) -> bool:
        """Set the warm and cold white levels."""
        if cold_white != 0 and not self.options.cold_white_support:
            _LOGGER.warning(
                "%s: Cold white support is not enabled, but the cold white value was set to %s",
                self.ipaddr,
                cold_white,
            )
        if self.options.apply_masks:
            return await self._async_set_levels(
                0, 0, 0, warm_white, cold_white, LevelWriteMode.WHITES
            )
        red, green, blue = self._last_color
        return await self.async_set_color_and_whites(
            red, green, blue, warm_white, cold_white
        )

    async def async_set_color_with_brightness(
        self, red: int, green: int, blue: int, brightness: int
    ) -> bool:
        """Scale a color by a brightness between 0 and 100.

        An all zero color means white (not warm white) at that brightness.
        """
        brightness = clamp(brightness, 0, 100)
        if red > 0 or green > 0 or blue > 0:
            red, green, blue = (
                round(clamp(channel, 0, 255) / 100 * brightness)
                for channel in (red, green, blue)
            )
        else:
            red = green = blue = round(255 / 100 * brightness)
        return await self.async_set_color(red, green, blue)

    async def async_set_pattern(self, pattern: str, speed: int) -> bool:
        """Set a built-in pattern by name with a speed between 0 and 100."""
        msg = self._protocol.construct_preset_pattern(
            PresetPattern.str_to_val(pattern), speed
        )
        return await self._async_send_msg(msg, self.options.ack.pattern)

    async def async_set_ia_pattern(self, code: int, speed: int) -> bool:
        """Set an extended pattern, code between 1 and 300."""
        msg = self._protocol.construct_ia_pattern(code, speed)
        return await self._async_send_msg(msg, self.options.ack.pattern)

    async def async_set_custom_pattern(
        self, pattern: CustomPattern, speed: int
    ) -> bool:
        """Play a custom pattern with a speed between 0 and 100."""
        if not isinstance(pattern, CustomPattern):
            raise ValidationError(f"{pattern!r} is not a CustomPattern")
        msg = self._protocol.construct_custom_pattern(pattern, speed)
        return await self._async_send_msg(msg, self.options.ack.custom_pattern)

    async def async_query_state(self) -> ControllerState:
        """Query the current state.

        Remembers the levels for set_color/set_warm_white and enables
        the options the reported model requires.
        """
        data = await self._queue.async_submit(
            self._protocol.construct_state_query(), True
        )
        state = self._protocol.parse_state_response(data)
        _LOGGER.debug("%s: State: %s", self.ipaddr, state)
        self._model_num = state.model_num
        self._last_color = state.color
        self._last_warm_white = state.warm_white
        self._last_cold_white = state.cold_white
        model = get_model(state.model_num)
        if model is not None:
            self.options.apply_model_quirks(model)
        return state

    def __str__(self) -> str:
        return f"{self.ipaddr}:{self.port} ({self.model or 'Unknown'})"

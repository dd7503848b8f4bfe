"""Magic Home control protocol."""

from dataclasses import dataclass
import logging
from typing import NamedTuple, Optional, Union

from .const import (
    COMMAND_CUSTOM_PATTERN,
    COMMAND_LEVELS,
    COMMAND_PATTERN,
    COMMAND_POWER,
    CUSTOM_PATTERN_PLACEHOLDER,
    CUSTOM_PATTERN_SLOTS,
    IA_PATTERN_MAX,
    IA_PATTERN_MIN,
    IA_PATTERN_OFFSET,
    MAX_SPEED,
    MIN_SPEED,
    MODE_COLOR,
    MODE_CUSTOM,
    MODE_IA_PATTERN,
    MODE_PATTERN,
    MODE_SPECIAL,
    OFF_BYTE,
    ON_BYTE,
    STATE_QUERY,
    STATE_RESPONSE_MIN_LEN,
    TERMINATOR,
    TRANSITION_BYTES,
    LevelWriteMode,
)
from .exceptions import ProtocolError, ValidationError
from .pattern import CustomPattern, PresetPattern
from .utils import clamp, clamp_byte, delay_to_speed, format_bytes, speed_to_delay

_LOGGER = logging.getLogger(__name__)


PROTOCOL_LEDENET_CONTROL = "LEDENET_CONTROL"

PATTERN_MODE_CODE = 0x61
SPECIAL_MODE_CODE = 0x62
CUSTOM_MODE_CODE = 0x60
IA_PATTERN_CODE_MIN = IA_PATTERN_MIN + IA_PATTERN_OFFSET  # 0x64
IA_PATTERN_CODE_MAX = IA_PATTERN_MAX + IA_PATTERN_OFFSET  # 0x18F


class RGB(NamedTuple):
    red: int
    green: int
    blue: int


class LEDENETRawState(NamedTuple):
    head: int
    model_num: int
    power_state: int
    preset_pattern: int
    mode: int
    speed: int
    red: int
    green: int
    blue: int
    warm_white: int
    version_number: int
    cool_white: int
    color_mode: int
    check_sum: int


# response from a 5-channel LEDENET controller:
# pos  0  1  2  3  4  5  6  7  8  9 10 11 12 13
#    81 25 23 61 21 06 38 05 06 f9 01 00 0f 9d
#     |  |  |  |  |  |  |  |  |  |  |  |  |  |
#     |  |  |  |  |  |  |  |  |  |  |  |  |  checksum
#     |  |  |  |  |  |  |  |  |  |  |  |  color mode (f0 colors were set, 0f whites, 00 all were set)
#     |  |  |  |  |  |  |  |  |  |  |  cool-white  0x00 to 0xFF
#     |  |  |  |  |  |  |  |  |  |  version number
#     |  |  |  |  |  |  |  |  |  warmwhite  0x00 to 0xFF
#     |  |  |  |  |  |  |  |  blue  0x00 to 0xFF
#     |  |  |  |  |  |  |  green  0x00 to 0xFF
#     |  |  |  |  |  |  red 0x00 to 0xFF
#     |  |  |  |  |  speed: 0x01 = highest 0x1f is lowest (raw speed for ia patterns)
#     |  |  |  |  mode, second byte of an ia pattern code
#     |  |  |  preset pattern, first byte of an ia pattern code
#     |  |  off(24)/on(23)
#     |  model_num (type)
#     msg head
#


@dataclass(frozen=True)
class ControllerState:
    """A decoded state query response."""

    model_num: int
    is_on: bool
    mode: Optional[str]
    pattern: Optional[Union[str, int]]
    speed: int
    color: RGB
    warm_white: int
    cold_white: int


def checksum(raw_bytes: Union[bytes, bytearray]) -> int:
    """Sum of all bytes modulo 256."""
    return sum(raw_bytes) & 0xFF


def construct_message(raw_bytes: Union[bytes, bytearray]) -> bytearray:
    """Calculate checksum of byte array and add to end."""
    msg = bytearray(raw_bytes)
    msg.append(checksum(msg))
    return msg


def _pattern_word(data: bytes) -> int:
    return (data[3] << 8) + data[4]


def determine_mode(data: bytes) -> Optional[str]:
    """Classify the mode of a state response."""
    preset_pattern = data[3]
    if preset_pattern == PATTERN_MODE_CODE or (
        preset_pattern == 0 and data[4] == PATTERN_MODE_CODE
    ):
        return MODE_COLOR
    if preset_pattern == SPECIAL_MODE_CODE:
        return MODE_SPECIAL
    if preset_pattern == CUSTOM_MODE_CODE:
        return MODE_CUSTOM
    if PresetPattern.valid(preset_pattern):
        # byte 4 does not matter here, the word is always above the ia range
        return MODE_PATTERN
    if IA_PATTERN_CODE_MIN <= _pattern_word(data) <= IA_PATTERN_CODE_MAX:
        return MODE_IA_PATTERN
    return None


def determine_pattern(data: bytes) -> Optional[Union[str, int]]:
    """Return the pattern name, ia pattern number or None."""
    if PresetPattern.valid(data[3]):
        return PresetPattern.valtostr(data[3])
    word = _pattern_word(data)
    if IA_PATTERN_CODE_MIN <= word <= IA_PATTERN_CODE_MAX:
        return word - IA_PATTERN_OFFSET
    return None


class ProtocolLEDENETControl:
    """The LEDENET control protocol.

    Every construct_* method returns the frame without its checksum,
    the command queue appends it when the frame is submitted.
    """

    @property
    def name(self) -> str:
        """The name of the protocol."""
        return PROTOCOL_LEDENET_CONTROL

    @property
    def state_response_length(self) -> int:
        """The minimum length of the query response."""
        return STATE_RESPONSE_MIN_LEN

    def construct_state_query(self) -> bytearray:
        """The bytes to send for a query request."""
        return bytearray(STATE_QUERY)

    def construct_state_change(self, turn_on: bool) -> bytearray:
        """The bytes to send for a state change request."""
        return bytearray([COMMAND_POWER, ON_BYTE if turn_on else OFF_BYTE, TERMINATOR])

    def construct_levels_change(
        self,
        red: int,
        green: int,
        blue: int,
        warm_white: int,
        cool_white: int,
        write_mode: LevelWriteMode,
        cold_white_support: bool,
    ) -> bytearray:
        """The bytes to send for a level change request."""
        # sample message without cold white support
        #  0  1  2  3  4  5  6
        # 31 90 fa 77 00 00 0f
        #  |  |  |  |  |  |  |
        #  |  |  |  |  |  |  terminator
        #  |  |  |  |  |  write mask (f0 colors, 0f whites, 00 all)
        #  |  |  |  |  warm white
        #  |  |  |  blue
        #  |  |  green
        #  |  red
        #  command
        #
        # with cold white support the cold white byte is inserted
        # between warm white and the write mask
        msg = bytearray(
            [
                COMMAND_LEVELS,
                clamp_byte(red),
                clamp_byte(green),
                clamp_byte(blue),
                clamp_byte(warm_white),
            ]
        )
        if cold_white_support:
            msg.append(clamp_byte(cool_white))
        msg.extend([write_mode.value, TERMINATOR])
        return msg

    def construct_preset_pattern(self, pattern: int, speed: float) -> bytearray:
        """The bytes to send for a preset pattern."""
        if not PresetPattern.valid(pattern):
            raise ValidationError(f"Pattern code 0x{pattern:02X} is not a preset")
        delay = round(speed_to_delay(speed))
        return bytearray([COMMAND_PATTERN, pattern, delay, TERMINATOR])

    def construct_ia_pattern(self, code: int, speed: float) -> bytearray:
        """The bytes to send for an extended (ia) pattern.

        The speed byte is sent as is, state responses for ia
        patterns report it the same way.
        """
        if not IA_PATTERN_MIN <= code <= IA_PATTERN_MAX:
            raise ValidationError(
                f"Pattern code {code} must be between {IA_PATTERN_MIN} and {IA_PATTERN_MAX}"
            )
        word = code + IA_PATTERN_OFFSET
        return bytearray(
            [
                COMMAND_PATTERN,
                word >> 8,
                word & 0xFF,
                int(clamp(speed, MIN_SPEED, MAX_SPEED)),
                TERMINATOR,
            ]
        )

    def construct_custom_pattern(
        self, pattern: CustomPattern, speed: float
    ) -> bytearray:
        """The bytes to send for a custom pattern."""
        pattern.validate()
        msg = bytearray([COMMAND_CUSTOM_PATTERN])
        for slot in range(CUSTOM_PATTERN_SLOTS):
            if slot < len(pattern.colors):
                red, green, blue = pattern.colors[slot]
                msg.extend([clamp_byte(red), clamp_byte(green), clamp_byte(blue), 0])
            else:
                # pad out empty slots
                msg.extend([*CUSTOM_PATTERN_PLACEHOLDER, 0])
        msg.append(round(speed_to_delay(speed)))
        msg.append(TRANSITION_BYTES[pattern.transition_type])
        msg.extend([0xFF, TERMINATOR])
        return msg

    def is_valid_state_response(self, raw_state: bytes) -> bool:
        """Check if a state response can be decoded."""
        return len(raw_state) >= self.state_response_length

    def named_raw_state(self, raw_state: bytes) -> LEDENETRawState:
        """Convert raw_state to a namedtuple."""
        return LEDENETRawState(*raw_state[: self.state_response_length])

    def parse_state_response(self, raw_state: bytes) -> ControllerState:
        """Decode a state query response."""
        if not self.is_valid_state_response(raw_state):
            raise ProtocolError(
                f"Only got short reply ({len(raw_state)} bytes): {format_bytes(raw_state)}"
            )
        named = self.named_raw_state(raw_state)
        _LOGGER.debug("Raw state: %s", named)
        mode = determine_mode(raw_state)
        return ControllerState(
            model_num=named.model_num,
            is_on=named.power_state == ON_BYTE,
            mode=mode,
            pattern=determine_pattern(raw_state),
            speed=named.speed
            if mode == MODE_IA_PATTERN
            else round(delay_to_speed(named.speed)),
            color=RGB(named.red, named.green, named.blue),
            warm_white=named.warm_white,
            cold_white=named.cool_white,
        )

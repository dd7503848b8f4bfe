import unittest

import pytest

from magichome_control.__main__ import parseArgs
from magichome_control.const import (
    MODE_COLOR,
    MODE_CUSTOM,
    MODE_IA_PATTERN,
    MODE_PATTERN,
    MODE_SPECIAL,
    TRANSITION_FADE,
    TRANSITION_GRADUAL,
    TRANSITION_JUMP,
    TRANSITION_STROBE,
    LevelWriteMode,
)
from magichome_control.exceptions import ProtocolError, ValidationError
from magichome_control.models_db import (
    UNKNOWN_MODEL,
    get_model,
    get_model_description,
    is_known_model,
)
from magichome_control.options import AckOptions, ControlOptions
from magichome_control.pattern import PATTERN_LIST, CustomPattern, PresetPattern
from magichome_control.protocol import (
    PROTOCOL_LEDENET_CONTROL,
    RGB,
    ProtocolLEDENETControl,
    checksum,
    construct_message,
    determine_mode,
    determine_pattern,
)
from magichome_control.utils import (
    color_object_to_tuple,
    delay_to_speed,
    format_bytes,
    get_color_names_list,
    speed_to_delay,
)

LEDENET_STATE_QUERY = b"\x81\x8a\x8b\x96"


def _state(byte3: int, byte4: int, speed: int = 0x10) -> bytes:
    return bytes(
        [0x81, 0x25, 0x23, byte3, byte4, speed, 1, 2, 3, 4, 1, 5, 0x0F, 0x00]
    )


class TestChecksum(unittest.TestCase):
    def test_checksum(self):
        assert checksum(b"\x81\x8a\x8b") == 0x96
        assert checksum(b"") == 0
        assert checksum(b"\xff\x01") == 0

    def test_construct_message(self):
        raw = bytearray(b"\x71\x23\x0f")
        assert construct_message(raw) == bytearray(b"\x71\x23\x0f\xa3")
        # the input is left alone
        assert raw == bytearray(b"\x71\x23\x0f")


class TestSpeed(unittest.TestCase):
    def test_speed_to_delay(self):
        assert speed_to_delay(100) == 1
        assert speed_to_delay(50) == 16
        assert speed_to_delay(0) == 31

    def test_speed_to_delay_clamps(self):
        assert speed_to_delay(150) == 1
        assert speed_to_delay(-5) == 31

    def test_delay_to_speed(self):
        assert delay_to_speed(1) == 100
        assert delay_to_speed(16) == 50
        assert delay_to_speed(31) == 0
        assert delay_to_speed(0) == 100
        assert delay_to_speed(40) == 0

    def test_round_trip(self):
        for speed in range(101):
            assert delay_to_speed(speed_to_delay(speed)) == pytest.approx(speed)
        for delay in range(1, 32):
            assert speed_to_delay(delay_to_speed(delay)) == pytest.approx(delay)

    def test_packed_delay_byte(self):
        protocol = ProtocolLEDENETControl()
        for speed, delay in (
            (0, 31),
            (10, 28),
            (33, 21),
            (50, 16),
            (66, 11),
            (100, 1),
        ):
            assert protocol.construct_preset_pattern(0x25, speed)[2] == delay
        for delay in range(1, 32):
            state = protocol.parse_state_response(_state(0x25, 0x00, speed=delay))
            assert protocol.construct_preset_pattern(0x25, state.speed)[2] == delay


class TestPatterns(unittest.TestCase):
    def test_preset_pattern(self):
        assert PresetPattern.valid(0x25)
        assert PresetPattern.valid(0x38)
        assert not PresetPattern.valid(0x24)
        assert not PresetPattern.valid(0x39)
        assert PresetPattern.valtostr(0x25) == "seven_color_cross_fade"
        assert PresetPattern.valtostr(0x2A) == "cyan_gradual_change"
        assert PresetPattern.valtostr(0x61) is None
        assert PresetPattern.str_to_val("red_strobe_flash") == 0x31
        assert len(PATTERN_LIST) == 20

    def test_unknown_pattern_name(self):
        with pytest.raises(ValidationError):
            PresetPattern.str_to_val("disco")

    def test_custom_pattern_builders(self):
        pattern = CustomPattern.strobe().add_color(300, -1, 10)
        pattern.add_color_list([(1, 2, 3)])
        assert pattern.transition_type == TRANSITION_STROBE
        assert pattern.colors == [(255, 0, 10), (1, 2, 3)]
        assert CustomPattern.fade().transition_type == TRANSITION_FADE
        assert CustomPattern.jump().transition_type == TRANSITION_JUMP
        assert (
            CustomPattern().set_transition_type(TRANSITION_GRADUAL).transition_type
            == TRANSITION_GRADUAL
        )

    def test_custom_pattern_validate(self):
        CustomPattern.fade().add_color(1, 2, 3).validate()
        with pytest.raises(ValidationError):
            CustomPattern.fade().validate()
        with pytest.raises(ValidationError):
            CustomPattern("blink").add_color(1, 2, 3).validate()
        with pytest.raises(ValidationError):
            CustomPattern.jump().add_color_list([(1, 1, 1)] * 17).validate()
        with pytest.raises(ValidationError):
            CustomPattern("fade", [(1, 2)]).validate()


class TestProtocol(unittest.TestCase):
    def setUp(self):
        self.protocol = ProtocolLEDENETControl()

    def test_basics(self):
        assert self.protocol.name == PROTOCOL_LEDENET_CONTROL
        assert self.protocol.state_response_length == 14
        assert construct_message(self.protocol.construct_state_query()) == (
            bytearray(LEDENET_STATE_QUERY)
        )
        assert self.protocol.construct_state_change(True) == bytearray(
            b"\x71\x23\x0f"
        )
        assert self.protocol.construct_state_change(False) == bytearray(
            b"\x71\x24\x0f"
        )

    def test_levels_change(self):
        assert self.protocol.construct_levels_change(
            1, 2, 3, 4, 5, LevelWriteMode.ALL, False
        ) == bytearray(b"\x31\x01\x02\x03\x04\x00\x0f")
        assert self.protocol.construct_levels_change(
            1, 2, 3, 4, 5, LevelWriteMode.WHITES, True
        ) == bytearray(b"\x31\x01\x02\x03\x04\x05\x0f\x0f")
        assert self.protocol.construct_levels_change(
            300, -3, 3, 4, 5, LevelWriteMode.COLORS, False
        ) == bytearray(b"\x31\xff\x00\x03\x04\xf0\x0f")

    def test_preset_pattern(self):
        msg = self.protocol.construct_preset_pattern(
            PresetPattern.str_to_val("cyan_gradual_change"), 50
        )
        assert msg == bytearray([0x61, 0x2A, 16, 0x0F])
        with pytest.raises(ValidationError):
            self.protocol.construct_preset_pattern(0x61, 50)

    def test_ia_pattern(self):
        assert self.protocol.construct_ia_pattern(1, 10) == bytearray(
            [0x61, 0x00, 0x64, 10, 0x0F]
        )
        assert self.protocol.construct_ia_pattern(300, 150) == bytearray(
            [0x61, 0x01, 0x8F, 100, 0x0F]
        )
        with pytest.raises(ValidationError):
            self.protocol.construct_ia_pattern(0, 10)
        with pytest.raises(ValidationError):
            self.protocol.construct_ia_pattern(301, 10)

    def test_custom_pattern(self):
        pattern = CustomPattern.fade().add_color(255, 0, 0).add_color(0, 255, 0)
        msg = self.protocol.construct_custom_pattern(pattern, 50)
        assert len(msg) == 69
        assert msg[0] == 0x51
        assert msg[1:9] == bytearray([255, 0, 0, 0, 0, 255, 0, 0])
        for slot in range(2, 16):
            start = 1 + slot * 4
            assert msg[start : start + 4] == bytearray([1, 2, 3, 0])
        assert msg[65:] == bytearray([16, 0x3A, 0xFF, 0x0F])

    def test_custom_pattern_transitions(self):
        for transition, code in (
            (TRANSITION_FADE, 0x3A),
            (TRANSITION_GRADUAL, 0x3A),
            (TRANSITION_JUMP, 0x3B),
            (TRANSITION_STROBE, 0x3C),
        ):
            pattern = CustomPattern(transition).add_color(1, 2, 3)
            assert self.protocol.construct_custom_pattern(pattern, 100)[66] == code

    def test_custom_pattern_full(self):
        pattern = CustomPattern.jump().add_color_list([(9, 9, 9)] * 16)
        msg = self.protocol.construct_custom_pattern(pattern, 0)
        assert 1 not in msg[1:65]
        assert msg[65] == 31

    def test_parse_state_response(self):
        state = self.protocol.parse_state_response(
            b"\x81\x25\x23\x61\x21\x06\x38\x05\x06\xf9\x01\x00\x0f\x9d"
        )
        assert state.model_num == 0x25
        assert state.is_on is True
        assert state.mode == MODE_COLOR
        assert state.pattern is None
        assert state.speed == 83
        assert state.color == RGB(0x38, 0x05, 0x06)
        assert state.warm_white == 0xF9
        assert state.cold_white == 0

    def test_parse_state_response_trailing_bytes(self):
        state = self.protocol.parse_state_response(_state(0x2A, 0x21) + b"\x00\x00")
        assert state.mode == MODE_PATTERN
        assert state.pattern == "cyan_gradual_change"
        assert state.speed == 50

    def test_parse_state_response_ia_speed(self):
        state = self.protocol.parse_state_response(_state(0x00, 0x64, speed=37))
        assert state.mode == MODE_IA_PATTERN
        assert state.pattern == 1
        assert state.speed == 37

    def test_parse_short_state_response(self):
        with pytest.raises(ProtocolError):
            self.protocol.parse_state_response(b"\x81\x25\x23\x61")
        with pytest.raises(ProtocolError):
            self.protocol.parse_state_response(b"")


class TestDetermineMode(unittest.TestCase):
    def test_modes(self):
        assert determine_mode(_state(0x61, 0x21)) == MODE_COLOR
        assert determine_mode(_state(0x00, 0x61)) == MODE_COLOR
        assert determine_mode(_state(0x62, 0x21)) == MODE_SPECIAL
        assert determine_mode(_state(0x60, 0x21)) == MODE_CUSTOM
        assert determine_mode(_state(0x25, 0x00)) == MODE_PATTERN
        assert determine_mode(_state(0x38, 0xFF)) == MODE_PATTERN
        assert determine_mode(_state(0x00, 0x64)) == MODE_IA_PATTERN
        assert determine_mode(_state(0x01, 0x8F)) == MODE_IA_PATTERN
        assert determine_mode(_state(0x00, 0x63)) is None
        assert determine_mode(_state(0x01, 0x90)) is None
        assert determine_mode(_state(0x41, 0x00)) is None

    def test_patterns(self):
        assert determine_pattern(_state(0x2A, 0x21)) == "cyan_gradual_change"
        assert determine_pattern(_state(0x25, 0x00)) == "seven_color_cross_fade"
        assert determine_pattern(_state(0x00, 0x64)) == 1
        assert determine_pattern(_state(0x01, 0x8F)) == 300
        assert determine_pattern(_state(0x61, 0x21)) is None
        assert determine_pattern(_state(0x00, 0x61)) is None


class TestOptions(unittest.TestCase):
    def test_defaults(self):
        options = ControlOptions()
        assert options.ack == AckOptions(True, True, True, True)
        assert options.apply_masks is False
        assert options.cold_white_support is False
        assert options.command_timeout == 1.0
        assert options.connect_timeout is None
        assert options.log_all_received is False

    def test_ack_from_mask(self):
        assert AckOptions.from_mask(0x0F) == AckOptions()
        assert AckOptions.from_mask(0) == AckOptions(False, False, False, False)
        assert AckOptions.from_mask(0x05) == AckOptions(
            power=True, color=False, pattern=True, custom_pattern=False
        )

    def test_apply_model_quirks(self):
        options = ControlOptions()
        options.apply_model_quirks(get_model(0x44))
        assert options.apply_masks is True
        assert options.cold_white_support is False
        options.apply_model_quirks(get_model(0x35))
        assert options.cold_white_support is True

    def test_apply_model_quirks_never_disables(self):
        options = ControlOptions(apply_masks=True, cold_white_support=True)
        options.apply_model_quirks(get_model(0x25))
        assert options.apply_masks is True
        assert options.cold_white_support is True


def test_models_db():
    assert is_known_model(0x25)
    assert not is_known_model(0x33)
    assert get_model(0x33) is None
    assert get_model(0x35).cold_white_support is True
    assert get_model_description(0x44) == "Bulb RGBW"
    assert get_model_description(0x33) == UNKNOWN_MODEL


def test_color_object_to_tuple():
    assert color_object_to_tuple((1, 2, 3)) == (1, 2, 3)
    assert color_object_to_tuple((1, 2, 3, 4)) == (1, 2, 3, 4)
    assert color_object_to_tuple("red") == (255, 0, 0)
    assert color_object_to_tuple("#00FF00") == (0, 255, 0)
    assert color_object_to_tuple("0,0,255") == (0, 0, 255)
    assert color_object_to_tuple("(1,2,3,4,5)") == (1, 2, 3, 4, 5)
    assert color_object_to_tuple("nonsense") is None
    assert color_object_to_tuple((1, 2)) is None
    assert color_object_to_tuple(7) is None


def test_utils_misc():
    assert format_bytes(b"\x71\x23\x0f") == "0x71 0x23 0x0F"
    names = get_color_names_list()
    assert "red" in names
    assert names == sorted(names)


def test_parse_args_color():
    options, args = parseArgs(["-c", "red", "192.168.1.100"])
    assert options.color == (255, 0, 0)
    assert args == ["192.168.1.100"]

    options, _ = parseArgs(["-1", "-i", "-c", "1,2,3,4", "192.168.1.100"])
    assert options.on is True
    assert options.info is True
    assert options.color == (1, 2, 3, 4)


def test_parse_args_patterns():
    options, _ = parseArgs(["-p", "red_gradual_change", "40", "192.168.1.100"])
    assert options.preset == ("red_gradual_change", 40)

    options, _ = parseArgs(["--ia", "12", "80", "192.168.1.100"])
    assert options.ia == (12, 80)

    options, _ = parseArgs(
        ["-C", "fade", "25", "red green (0,0,255)", "192.168.1.100"]
    )
    pattern, speed = options.custom
    assert speed == 25
    assert pattern == CustomPattern("fade", [(255, 0, 0), (0, 128, 0), (0, 0, 255)])


@pytest.mark.parametrize(
    "argv",
    [
        ["-c", "red", "-w", "10", "192.168.1.100"],
        ["--on", "--off", "192.168.1.100"],
        ["--on"],
        ["192.168.1.100"],
        ["-c", "notacolor", "192.168.1.100"],
        ["-c", "300,0,0", "192.168.1.100"],
        ["-p", "disco", "40", "192.168.1.100"],
        ["--ia", "301", "40", "192.168.1.100"],
        ["-C", "blink", "25", "red", "192.168.1.100"],
    ],
)
def test_parse_args_errors(argv):
    with pytest.raises(SystemExit):
        parseArgs(argv)

"""Magic Home control constants."""

from enum import Enum
import sys

if sys.version_info >= (3, 8):
    from typing import Final  # pylint: disable=no-name-in-module
else:
    from typing_extensions import Final


class LevelWriteMode(Enum):
    ALL = 0x00
    COLORS = 0xF0
    WHITES = 0x0F


DEFAULT_PORT: Final = 5577

# Seconds without new bytes after which a response is considered complete
RESPONSE_TIMEOUT: Final = 0.5
DEFAULT_COMMAND_TIMEOUT: Final = 1.0

# Opcodes
COMMAND_POWER: Final = 0x71
COMMAND_LEVELS: Final = 0x31
COMMAND_PATTERN: Final = 0x61
COMMAND_CUSTOM_PATTERN: Final = 0x51
STATE_QUERY: Final = (0x81, 0x8A, 0x8B)

TERMINATOR: Final = 0x0F
ON_BYTE: Final = 0x23
OFF_BYTE: Final = 0x24

STATE_RESPONSE_MIN_LEN: Final = 14

# Extended (IA) patterns
IA_PATTERN_MIN: Final = 1
IA_PATTERN_MAX: Final = 300
IA_PATTERN_OFFSET: Final = 99

# Custom patterns
CUSTOM_PATTERN_SLOTS: Final = 16
CUSTOM_PATTERN_PLACEHOLDER: Final = (1, 2, 3)

# Speed / delay
MIN_SPEED: Final = 0
MAX_SPEED: Final = 100
MIN_DELAY: Final = 0x01
MAX_DELAY: Final = 0x1F

# Modes
MODE_COLOR: Final = "color"
MODE_SPECIAL: Final = "special"
MODE_CUSTOM: Final = "custom"
MODE_PATTERN: Final = "pattern"
MODE_IA_PATTERN: Final = "ia_pattern"

# Transitions
TRANSITION_FADE: Final = "fade"
TRANSITION_GRADUAL: Final = "gradual"
TRANSITION_JUMP: Final = "jump"
TRANSITION_STROBE: Final = "strobe"

TRANSITION_BYTES = {
    TRANSITION_FADE: 0x3A,
    TRANSITION_GRADUAL: 0x3A,
    TRANSITION_JUMP: 0x3B,
    TRANSITION_STROBE: 0x3C,
}

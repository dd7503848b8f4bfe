from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .const import (
    CUSTOM_PATTERN_SLOTS,
    TRANSITION_BYTES,
    TRANSITION_FADE,
    TRANSITION_JUMP,
    TRANSITION_STROBE,
)
from .exceptions import ValidationError
from .utils import clamp_byte

# Table order matters, the first name with a matching code wins when decoding
PATTERNS: Dict[str, int] = {
    "seven_color_cross_fade": 0x25,
    "red_gradual_change": 0x26,
    "green_gradual_change": 0x27,
    "blue_gradual_change": 0x28,
    "yellow_gradual_change": 0x29,
    "cyan_gradual_change": 0x2A,
    "purple_gradual_change": 0x2B,
    "white_gradual_change": 0x2C,
    "red_green_cross_fade": 0x2D,
    "red_blue_cross_fade": 0x2E,
    "green_blue_cross_fade": 0x2F,
    "seven_color_strobe_flash": 0x30,
    "red_strobe_flash": 0x31,
    "green_strobe_flash": 0x32,
    "blue_strobe_flash": 0x33,
    "yellow_strobe_flash": 0x34,
    "cyan_strobe_flash": 0x35,
    "purple_strobe_flash": 0x36,
    "white_strobe_flash": 0x37,
    "seven_color_jumping": 0x38,
}

PATTERN_LIST = list(PATTERNS)

PATTERN_CODE_MIN = min(PATTERNS.values())
PATTERN_CODE_MAX = max(PATTERNS.values())


class PresetPattern:
    """Lookups between built-in pattern names and their codes."""

    @staticmethod
    def valid(pattern: int) -> bool:
        return PATTERN_CODE_MIN <= pattern <= PATTERN_CODE_MAX

    @staticmethod
    def valtostr(pattern: int) -> Optional[str]:
        for name, code in PATTERNS.items():
            if code == pattern:
                return name
        return None

    @staticmethod
    def str_to_val(pattern: str) -> int:
        if pattern not in PATTERNS:
            raise ValidationError(f"{pattern} is not a known pattern name.")
        return PATTERNS[pattern]


@dataclass
class CustomPattern:
    """A sequence of up to 16 colors played back with a transition."""

    transition_type: str = TRANSITION_FADE
    colors: List[Tuple[int, int, int]] = field(default_factory=list)

    def add_color(self, red: int, green: int, blue: int) -> "CustomPattern":
        self.colors.append((clamp_byte(red), clamp_byte(green), clamp_byte(blue)))
        return self

    def add_color_list(
        self, color_list: List[Tuple[int, int, int]]
    ) -> "CustomPattern":
        for red, green, blue in color_list:
            self.add_color(red, green, blue)
        return self

    def set_transition_type(self, transition_type: str) -> "CustomPattern":
        self.transition_type = transition_type
        return self

    @classmethod
    def fade(cls) -> "CustomPattern":
        return cls(TRANSITION_FADE)

    @classmethod
    def jump(cls) -> "CustomPattern":
        return cls(TRANSITION_JUMP)

    @classmethod
    def strobe(cls) -> "CustomPattern":
        return cls(TRANSITION_STROBE)

    def validate(self) -> None:
        """Raise ValidationError if the pattern cannot be sent."""
        if self.transition_type not in TRANSITION_BYTES:
            raise ValidationError(
                f"Unknown transition type {self.transition_type!r}, "
                f"must be one of {', '.join(sorted(TRANSITION_BYTES))}"
            )
        if not self.colors:
            raise ValidationError("A custom pattern requires at least one color")
        if len(self.colors) > CUSTOM_PATTERN_SLOTS:
            raise ValidationError(
                f"A custom pattern supports at most {CUSTOM_PATTERN_SLOTS} colors, "
                f"got {len(self.colors)}"
            )
        for color in self.colors:
            if len(color) != 3:
                raise ValidationError(f"{color} is not an RGB triple")

import ast
import contextlib
from typing import Iterable, List, Optional, Tuple, Union, cast

import webcolors  # type: ignore

from .const import MAX_DELAY, MAX_SPEED, MIN_DELAY, MIN_SPEED


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Saturate value into [minimum, maximum]."""
    return min(maximum, max(minimum, value))


def clamp_byte(value: float) -> int:
    return int(clamp(value, 0, 255))


def speed_to_delay(speed: float) -> float:
    # speed is 0-100, delay is 1-31
    speed = clamp(speed, MIN_SPEED, MAX_SPEED)
    inv_speed = MAX_SPEED - speed
    delay = (inv_speed * (MAX_DELAY - MIN_DELAY)) / MAX_SPEED
    # translate from 0-30 to 1-31
    return delay + MIN_DELAY


def delay_to_speed(delay: float) -> float:
    # speed is 0-100, delay is 1-31
    # 1st translate delay to 0-30
    delay = clamp(delay, MIN_DELAY, MAX_DELAY) - MIN_DELAY
    inv_speed = (delay * MAX_SPEED) / (MAX_DELAY - MIN_DELAY)
    return MAX_SPEED - inv_speed



def format_bytes(data: Iterable[int]) -> str:
    """Format raw bytes the way they are written to the debug log."""
    return " ".join(f"0x{x:02X}" for x in data)


def color_object_to_tuple(
    color: Union[Tuple[int, ...], str]
) -> Optional[Tuple[int, ...]]:
    """Convert a tuple, color name, web hex or "r,g,b" string to a tuple."""
    # see if it's already a color tuple
    if isinstance(color, tuple) and len(color) in [3, 4, 5]:
        return color

    # can't convert non-string
    if not isinstance(color, str):
        return None
    color = color.strip()

    # try to convert from an english name
    with contextlib.suppress(ValueError):
        return cast(Tuple[int, int, int], tuple(webcolors.name_to_rgb(color)))

    # try to convert an web hex code
    with contextlib.suppress(ValueError):
        return cast(
            Tuple[int, int, int],
            tuple(webcolors.hex_to_rgb(webcolors.normalize_hex(color))),
        )

    # try to convert a string RGB tuple
    with contextlib.suppress(ValueError, SyntaxError):
        val = ast.literal_eval(color)
        if (
            isinstance(val, tuple)
            and len(val) in [3, 4, 5]
            and all(isinstance(v, int) for v in val)
        ):
            return val

    return None


def get_color_names_list() -> List[str]:
    return sorted(webcolors.names("css3"))

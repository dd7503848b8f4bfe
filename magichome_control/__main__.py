#!/usr/bin/env python
"""
A utility for controlling Magic Home WiFi LED controllers.

Every operation is sent over a short lived TCP connection. Operations
given together are queued on the same connection in the order below:
power, mode (color, white, preset, extended preset or custom) and
finally the state query.

##### Available:
* Turning on/off
* Get state information
* Setting single color mode, with or without white levels
* Setting warm white
* Setting preset pattern mode by name
* Setting extended (numbered) pattern mode
* Setting custom pattern mode

##### Cool feature:
* Specify colors with names or web hex values.
  See the following for valid color names: http://www.w3schools.com/html/html_colornames.asp
"""

import asyncio
import logging
from optparse import OptionGroup, OptionParser, Values
import sys
from typing import Any, List, Optional, Sequence, Tuple

from .aiodevice import AIOWifiLedController
from .const import DEFAULT_PORT, IA_PATTERN_MAX, IA_PATTERN_MIN, TRANSITION_BYTES
from .exceptions import MagicHomeException
from .options import AckOptions, ControlOptions
from .pattern import PATTERN_LIST, PATTERNS, CustomPattern
from .utils import color_object_to_tuple, get_color_names_list

_LOGGER = logging.getLogger(__name__)


def showUsageExamples() -> None:
    example_text = """
Examples:

Turn on:
    %prog% 192.168.1.100 --on
    %prog% 192.168.1.100 192.168.1.101 -1

Turn off:
    %prog% 192.168.1.100 --off

Set warm white to 190:
    %prog% 192.168.1.100 -w 190

Set fixed color red :
    %prog% 192.168.1.100 -c Red
    %prog% 192.168.1.100 -c 255,0,0
    %prog% 192.168.1.100 -c "#FF0000"

Set RGBW 25 100 200 50:
    %prog% 192.168.1.100 -c 25,100,200,50

Set RGBWW 25 100 200 50 30:
    %prog% 192.168.1.100 -c 25,100,200,50,30

Set preset pattern with 40% speed:
    %prog% 192.168.1.100 -p seven_color_cross_fade 40

Set extended pattern #12 with 80% speed:
    %prog% 192.168.1.100 --ia 12 80

Set custom pattern 25% speed, red/green/blue, fade:
    %prog% 192.168.1.100 -C fade 25 "red green (0,0,255)"

Show state:
    %prog% 192.168.1.100 -i
    """

    print(example_text.replace("%prog%", sys.argv[0]))


def processCustomArgs(
    parser: OptionParser, args: Sequence[str]
) -> Tuple[CustomPattern, int]:
    if args[0] not in TRANSITION_BYTES:
        parser.error(f"bad pattern type: {args[0]}")

    try:
        speed = int(args[1])
    except ValueError:
        parser.error(f"bad speed: {args[1]}")

    # convert the string to a list of RGB tuples
    # it should have space separated items of either
    # color names, hex values, or byte triples
    pattern = CustomPattern(args[0])
    for item in args[2].strip().split(" "):
        color = color_object_to_tuple(item)
        if color is None or len(color) != 3:
            parser.error(
                "COLORLIST isn't formatted right.  It should be a space separated list of RGB tuples, color names or web hex values"
            )
        assert color is not None
        pattern.add_color(*color)
    return pattern, speed


def parseArgs(argv: Optional[List[str]] = None) -> Tuple[Values, List[str]]:  # noqa: C901

    parser = OptionParser()

    parser.description = "A utility to control Magic Home WiFi LED controllers. "
    power_group = OptionGroup(parser, "Power options (mutually exclusive)")
    mode_group = OptionGroup(parser, "Mode options (mutually exclusive)")
    info_group = OptionGroup(parser, "Program help and information option")
    other_group = OptionGroup(parser, "Other options")

    parser.add_option_group(info_group)
    info_group.add_option(
        "-e",
        "--examples",
        action="store_true",
        dest="showexamples",
        default=False,
        help="Show usage examples",
    )
    info_group.add_option(
        "-l",
        "--listpresets",
        action="store_true",
        dest="listpresets",
        default=False,
        help="List preset pattern names",
    )
    info_group.add_option(
        "--listcolors",
        action="store_true",
        dest="listcolors",
        default=False,
        help="List color names",
    )

    power_group.add_option(
        "-1",
        "--on",
        action="store_true",
        dest="on",
        default=False,
        help="Turn on specified controller(s)",
    )
    power_group.add_option(
        "-0",
        "--off",
        action="store_true",
        dest="off",
        default=False,
        help="Turn off specified controller(s)",
    )
    parser.add_option_group(power_group)

    mode_group.add_option(
        "-c",
        "--color",
        dest="color",
        default=None,
        help="""For setting a single color mode.  Can be either color name, web hex, or comma-separated RGB triple.
        For setting RGB and warm white can be a comma-seperated RGBW list
        For setting RGB, warm and cold white can be a comma-seperated RGBWW list""",
        metavar="COLOR",
    )
    mode_group.add_option(
        "-w",
        "--warmwhite",
        dest="ww",
        default=None,
        help="Set warm white (LEVELWW is 0-255)",
        metavar="LEVELWW",
        type="int",
    )
    mode_group.add_option(
        "-p",
        "--preset",
        dest="preset",
        default=None,
        help="Set preset pattern mode (SPEED is percent)",
        metavar="NAME SPEED",
        nargs=2,
    )
    mode_group.add_option(
        "--ia",
        dest="ia",
        default=None,
        help=f"Set extended pattern mode (CODE is {IA_PATTERN_MIN}-{IA_PATTERN_MAX}, SPEED is percent)",
        metavar="CODE SPEED",
        type="int",
        nargs=2,
    )
    mode_group.add_option(
        "-C",
        "--custom",
        dest="custom",
        metavar="TYPE SPEED COLORLIST",
        default=None,
        nargs=3,
        help="Set custom pattern mode. "
        + "TYPE should be fade, jump, or strobe. SPEED is percent. "
        + "COLORLIST is a space-separated list of color names, web hex values, or comma-separated RGB triples",
    )
    parser.add_option_group(mode_group)

    parser.add_option(
        "-i",
        "--info",
        action="store_true",
        dest="info",
        default=False,
        help="Info about controller(s) state",
    )

    other_group.add_option(
        "--port",
        dest="port",
        default=DEFAULT_PORT,
        type="int",
        help=f"Controller TCP port (default {DEFAULT_PORT})",
    )
    other_group.add_option(
        "--timeout",
        dest="timeout",
        default=None,
        type="float",
        help="Seconds to wait for the connection (default no limit)",
    )
    other_group.add_option(
        "--no-ack",
        action="store_true",
        dest="noack",
        default=False,
        help="Don't wait for controllers to acknowledge commands",
    )
    other_group.add_option(
        "--debug",
        action="store_true",
        dest="debug",
        default=False,
        help="Log all traffic",
    )
    parser.add_option_group(other_group)

    parser.usage = "usage: %prog [-10cwpCile] [--ia CODE SPEED] [addr1 [addr2 [addr3] ...]."
    (options, args) = parser.parse_args(argv)

    if options.showexamples:
        showUsageExamples()
        sys.exit(0)

    if options.listpresets:
        for name in PATTERN_LIST:
            print(f"0x{PATTERNS[name]:02X} {name}")
        sys.exit(0)

    if options.listcolors:
        for c in get_color_names_list():
            print(f"{c}, ")
        print("")
        sys.exit(0)

    mode_count = sum(
        1
        for mode in (
            options.color,
            options.ww is not None,
            options.preset,
            options.ia,
            options.custom,
        )
        if mode
    )
    if mode_count > 1:
        parser.error(
            "options --color, --warmwhite, --preset, --ia, and --custom are mutually exclusive"
        )

    if options.on and options.off:
        parser.error("options --on and --off are mutually exclusive")

    if options.custom:
        options.custom = processCustomArgs(parser, options.custom)

    if options.color:
        options.color = color_object_to_tuple(options.color)
        if options.color is None:
            parser.error("bad color specification")
        if any(i < 0 or i > 255 for i in options.color):
            parser.error("color values must be between 0-255")

    if options.preset:
        name, speed = options.preset
        if name not in PATTERNS:
            parser.error(f"unknown preset pattern: {name}")
        try:
            options.preset = (name, int(speed))
        except ValueError:
            parser.error(f"bad speed: {speed}")

    if options.ia and not IA_PATTERN_MIN <= options.ia[0] <= IA_PATTERN_MAX:
        parser.error("Extended pattern code is not in range")

    op_count = mode_count + sum(1 for op in (options.on, options.off, options.info) if op)
    if op_count == 0:
        parser.error("An operation must be specified")

    if len(args) == 0:
        parser.error("You must specify at least one IP address as an argument")

    return (options, args)


async def async_process_controller(options: Values, ipaddr: str) -> None:
    control_options = ControlOptions(
        connect_timeout=options.timeout,
        log_all_received=options.debug,
    )
    if options.noack:
        control_options.ack = AckOptions.from_mask(0)
    controller = AIOWifiLedController(ipaddr, options.port, control_options)

    pending: List[Any] = []
    if options.on:
        print(f"Turning on controller at {ipaddr}")
        pending.append(controller.async_turn_on())
    elif options.off:
        print(f"Turning off controller at {ipaddr}")
        pending.append(controller.async_turn_off())

    if options.color is not None:
        print(f"Setting color {options.color}")
        if len(options.color) == 3:
            pending.append(controller.async_set_color(*options.color))
        elif len(options.color) == 4:
            pending.append(controller.async_set_color_and_warm_white(*options.color))
        else:
            pending.append(controller.async_set_color_and_whites(*options.color))
    elif options.ww is not None:
        print(f"Setting warm white, level: {options.ww}")
        pending.append(controller.async_set_warm_white(options.ww))
    elif options.preset is not None:
        print(f"Setting preset pattern: {options.preset[0]}, Speed={options.preset[1]}%")
        pending.append(controller.async_set_pattern(*options.preset))
    elif options.ia is not None:
        print(f"Setting extended pattern: {options.ia[0]}, Speed={options.ia[1]}%")
        pending.append(controller.async_set_ia_pattern(*options.ia))
    elif options.custom is not None:
        pattern, speed = options.custom
        print(
            f"Setting custom pattern: {pattern.transition_type}, Speed={speed}%, {pattern.colors}"
        )
        pending.append(controller.async_set_custom_pattern(pattern, speed))

    if options.info:
        pending.append(controller.async_query_state())

    for result in await asyncio.gather(*pending, return_exceptions=True):
        if isinstance(result, MagicHomeException):
            print(f"{ipaddr}: {result}")
        elif isinstance(result, Exception):
            raise result
        elif result is False:
            print(f"{ipaddr}: command was not acknowledged")
        elif result is not True:
            print(f"{ipaddr} [{controller.model}] {result}")


async def async_main(options: Values, args: List[str]) -> None:
    await asyncio.gather(*(async_process_controller(options, addr) for addr in args))


def main() -> None:
    (options, args) = parseArgs()
    if options.debug:
        logging.basicConfig(level=logging.DEBUG)
    asyncio.run(async_main(options, args))
    sys.exit(0)


if __name__ == "__main__":
    main()

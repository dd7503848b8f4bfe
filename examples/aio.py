import asyncio
import logging
import pprint

logging.basicConfig(level=logging.DEBUG)
from magichome_control import AIOWifiLedController, CustomPattern


async def go():
    light = AIOWifiLedController("192.168.107.91")

    pprint.pprint(["State", await light.async_query_state()])
    # these are queued on one connection and run in order
    await asyncio.gather(
        light.async_turn_on(),
        light.async_set_color(255, 0, 0),
        light.async_query_state(),
    )
    await asyncio.sleep(2)
    await light.async_set_warm_white(200)
    await asyncio.sleep(2)
    await light.async_set_pattern("seven_color_cross_fade", 80)
    await asyncio.sleep(5)
    await light.async_set_ia_pattern(12, 50)
    await asyncio.sleep(5)
    pattern = CustomPattern.jump().add_color(255, 0, 0).add_color(0, 0, 255)
    await light.async_set_custom_pattern(pattern, 60)
    await asyncio.sleep(5)
    await light.async_turn_off()


asyncio.run(go())

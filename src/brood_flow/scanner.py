"""BLE advertisement scanning with bleak"""

import asyncio
import logging
from typing import AsyncIterator

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

logger = logging.getLogger(__name__)

type Advertisement = tuple[BLEDevice, AdvertisementData]


async def scan_advertisements(duration: float | None = None) -> AsyncIterator[Advertisement]:
    """
    Yield every advertisement seen by the default adapter.

    Args:
        duration: Stop after this many seconds (default: scan forever)
    """
    queue: asyncio.Queue[Advertisement] = asyncio.Queue()

    def callback(device: BLEDevice, adv_data: AdvertisementData):
        queue.put_nowait((device, adv_data))

    loop = asyncio.get_running_loop()
    deadline = None if duration is None else loop.time() + duration

    async with BleakScanner(detection_callback=callback):
        logger.info("Listening for Broodminder events")
        while True:
            if deadline is None:
                yield await queue.get()
                continue

            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                yield await asyncio.wait_for(queue.get(), timeout=remaining)
            except asyncio.TimeoutError:
                break

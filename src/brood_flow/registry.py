"""In-memory registry of Broodminder devices seen during this run"""

import threading
import time
from typing import Iterator
from typing import Optional

from brood_flow.types import BroodminderDevice
from brood_flow.types import BroodminderReading
from brood_flow.types import DeviceId


def now_millis() -> int:
    """Milliseconds since the epoch"""
    return int(time.time() * 1000)


class DeviceRegistry:
    """
    Devices keyed by their identity string.

    Records are created on the first sighting and updated in place afterwards.
    Nothing is ever evicted.
    """

    def __init__(self):
        self._devices: dict[DeviceId, BroodminderDevice] = {}
        self._lock = threading.Lock()

    def upsert(
        self, device_id: DeviceId, reading: BroodminderReading, now_ms: Optional[int] = None
    ) -> tuple[BroodminderDevice, bool]:
        """
        Store the latest reading for a device.

        Args:
            device_id: Identity of the device
            reading: The decoded advertisement
            now_ms: Current time in epoch milliseconds (default: now)

        Returns:
            The device record and whether it was created by this call
        """
        now_ms = now_millis() if now_ms is None else now_ms

        with self._lock:
            device = self._devices.get(device_id)
            if device is None:
                device = BroodminderDevice(
                    reading=reading, device_id=device_id, first_seen_ms=now_ms, last_seen_ms=now_ms, sightings=1
                )
                self._devices[device_id] = device
                return device, True

            device.reading = reading
            device.last_seen_ms = max(device.last_seen_ms, now_ms)
            device.sightings += 1
            return device, False

    def get(self, device_id: DeviceId) -> Optional[BroodminderDevice]:
        return self._devices.get(device_id)

    def devices(self) -> list[BroodminderDevice]:
        with self._lock:
            return list(self._devices.values())

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[BroodminderDevice]:
        return iter(self.devices())

"""Routes BLE advertisements through decoding, the registry and publication"""

import logging
from typing import AsyncIterable
from typing import Optional

from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

from brood_flow.decoder import decode
from brood_flow.decoder import extract_payload
from brood_flow.errors import MalformedPayload
from brood_flow.policy import PublicationPolicy
from brood_flow.registry import DeviceRegistry
from brood_flow.registry import now_millis
from brood_flow.types import UNRESOLVED_DEVICE_ID
from brood_flow.types import BroodminderDevice
from brood_flow.types import DeviceId

logger = logging.getLogger(__name__)


def resolve_device_id(device: BLEDevice, adv_data: AdvertisementData) -> DeviceId:
    """Broodminder devices advertise their ID, e.g. 47:01:01, as the local name"""
    return adv_data.local_name or device.name or UNRESOLVED_DEVICE_ID


class EventDispatcher:
    def __init__(
        self,
        registry: DeviceRegistry,
        policy: Optional[PublicationPolicy] = None,
        publish_enabled: bool = True,
        aliases: Optional[dict[DeviceId, str]] = None,
    ):
        self.registry = registry
        self.policy = policy
        self.publish_enabled = publish_enabled and policy is not None
        self.aliases = aliases or {}

    def handle_advertisement(
        self, device: BLEDevice, adv_data: AdvertisementData, now_ms: Optional[int] = None
    ) -> Optional[BroodminderDevice]:
        """
        Process a single advertisement.

        Args:
            device: The BLE device that sent the advertisement
            adv_data: The advertisement data
            now_ms: Current time in epoch milliseconds (default: now)

        Returns:
            The updated device record, or None if the advertisement was ignored
        """
        # Right now, we only care about the data advertisements from the Broodminder devices
        payload = extract_payload(adv_data.manufacturer_data)
        if payload is None:
            return None

        device_id = resolve_device_id(device, adv_data)
        try:
            reading = decode(payload)
        except MalformedPayload as e:
            logger.warning("Dropping advertisement from %s (%s): %s", device_id, device.address, e)
            return None

        now_ms = now_millis() if now_ms is None else now_ms
        record, created = self.registry.upsert(device_id, reading, now_ms)
        if created:
            logger.info("New Broodminder device detected: %s (%s)", self.display_name(device_id), reading.model_name)
        else:
            logger.debug("Updated device: %s", record)

        if self.publish_enabled:
            # Discovery metadata must reach Home Assistant before the first state value
            self.policy.send_config_messages(record, now_ms)
            self.policy.send_state_message(record, now_ms)

        return record

    async def run(self, events: AsyncIterable[tuple[BLEDevice, AdvertisementData]]) -> None:
        """Process advertisements in order until the stream ends"""
        async for device, adv_data in events:
            self.handle_advertisement(device, adv_data)
        logger.info("Advertisement stream ended")

    def display_name(self, device_id: DeviceId) -> str:
        alias = self.aliases.get(device_id)
        return f"{alias} ({device_id})" if alias else device_id

"""
Rate limited publication of Broodminder devices to Home Assistant

Configuration messages go out at most once an hour per device and state
messages at most once every 30 seconds. The two windows are tracked on the
device record and are independent of each other.
"""

import logging
from typing import Optional
from typing import Protocol

from brood_flow.errors import TransportFailure
from brood_flow.messages import DEFAULT_DISCOVERY_PREFIX
from brood_flow.messages import ConfigMessage
from brood_flow.messages import Message
from brood_flow.messages import StateMessage
from brood_flow.registry import now_millis
from brood_flow.types import BroodminderDevice
from brood_flow.types import DeviceId

logger = logging.getLogger(__name__)

CONFIG_INTERVAL_MS = 3_600_000
STATE_INTERVAL_MS = 30_000


class Publisher(Protocol):
    def submit(self, topic: str, payload: bytes) -> None:
        """Hand a message to the transport without waiting for delivery"""
        ...


class PublicationPolicy:
    """Decides which discovery and state messages a device should emit"""

    def __init__(
        self,
        publisher: Publisher,
        discovery_prefix: str = DEFAULT_DISCOVERY_PREFIX,
        config_interval_ms: int = CONFIG_INTERVAL_MS,
        state_interval_ms: int = STATE_INTERVAL_MS,
        realtime: Optional[dict[DeviceId, bool]] = None,
    ):
        """
        Initialize the publication policy

        Args:
            publisher: Transport that accepts topic/payload publish requests
            discovery_prefix: Home Assistant discovery prefix (default: 'homeassistant')
            config_interval_ms: Minimum time between configuration messages
            state_interval_ms: Minimum time between state messages
            realtime: Per device choice of realtime (default) or aggregated temperature
        """
        self.publisher = publisher
        self.discovery_prefix = discovery_prefix
        self.config_interval_ms = config_interval_ms
        self.state_interval_ms = state_interval_ms
        self.realtime = realtime or {}

    def send_config_messages(self, device: BroodminderDevice, now_ms: Optional[int] = None) -> list[ConfigMessage]:
        """
        Publish the discovery configuration for each sensor channel of a device.

        Returns:
            The messages handed to the publisher, empty when the device is not due
        """
        if not device.is_resolved:
            return []

        now_ms = now_millis() if now_ms is None else now_ms
        if now_ms - device.last_config_sent_ms <= self.config_interval_ms:
            return []

        logger.info("Publishing configuration via MQTT for %s", device.device_id)

        messages = []
        if device.has_temperature:
            messages.append(ConfigMessage.temperature(device, self.discovery_prefix))
        # A scale payload without the weight bytes would leave the weight template unresolved
        if device.is_scale and device.realtime_weight_lbs is not None:
            messages.append(ConfigMessage.weight(device, self.discovery_prefix))

        for message in messages:
            self._submit(message)

        # Advance even when the model has no channels so the hourly cadence holds
        device.last_config_sent_ms = now_ms
        return messages

    def send_state_message(self, device: BroodminderDevice, now_ms: Optional[int] = None) -> Optional[StateMessage]:
        """
        Publish the current values of a device.

        Returns:
            The message handed to the publisher, or None when the device is not due
        """
        if not device.is_resolved:
            return None

        now_ms = now_millis() if now_ms is None else now_ms
        if now_ms - device.last_state_sent_ms <= self.state_interval_ms:
            return None

        logger.info("Publishing state via MQTT for %s", device.device_id)

        message = StateMessage.for_device(
            device, self.discovery_prefix, realtime=self.realtime.get(device.device_id, True)
        )
        self._submit(message)

        device.last_state_sent_ms = now_ms
        return message

    def _submit(self, message: Message) -> None:
        payload = message.encode()
        logger.info("Publishing: %s to %s", payload.decode("utf-8"), message.topic)
        try:
            self.publisher.submit(message.topic, payload)
        except TransportFailure as e:
            logger.error("Failed to publish to %s: %s", message.topic, e)

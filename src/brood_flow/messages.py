"""
Home Assistant MQTT discovery messages

Home Assistant expects a configuration message for every sensor value a
device reports, see https://www.home-assistant.io/integrations/sensor.mqtt/.
The topic must conform to:

    <discovery_prefix>/<component>/[<node_id>/]<object_id>/config

Every sensor of a device shares a single state topic whose JSON payload is
read by the `value_template` of each configuration message.
"""

from dataclasses import dataclass
from dataclasses import field
import json
from typing import Any
from typing import Union

from brood_flow.types import BroodminderDevice

DEFAULT_DISCOVERY_PREFIX = "homeassistant"

# Home Assistant marks the sensor unavailable when nothing arrives for this long
EXPIRE_AFTER_SECONDS = 3600

TEMPERATURE_KEY = "temperature_c"
WEIGHT_KEY = "weight_lbs"


def state_topic(device: BroodminderDevice, prefix: str = DEFAULT_DISCOVERY_PREFIX) -> str:
    return f"{prefix}/sensor/{device.object_id}/state"


def config_topic(device: BroodminderDevice, channel: str, prefix: str = DEFAULT_DISCOVERY_PREFIX) -> str:
    return f"{prefix}/sensor/{device.object_id}{channel}/config"


@dataclass(frozen=True)
class StateMessage:
    """Current values of a device, temperature only or temperature and weight"""

    topic: str
    temperature_c: float
    weight_lbs: float | None = None

    @classmethod
    def temperature(cls, topic: str, temperature_c: float) -> "StateMessage":
        return cls(topic=topic, temperature_c=temperature_c)

    @classmethod
    def temperature_and_weight(cls, topic: str, temperature_c: float, weight_lbs: float) -> "StateMessage":
        return cls(topic=topic, temperature_c=temperature_c, weight_lbs=weight_lbs)

    @classmethod
    def for_device(
        cls, device: BroodminderDevice, prefix: str = DEFAULT_DISCOVERY_PREFIX, realtime: bool = True
    ) -> "StateMessage":
        topic = state_topic(device, prefix)
        temperature_c = device.realtime_temperature_c if realtime else device.temperature_c

        # Scales emit a weight value as well
        if device.is_scale and device.realtime_weight_lbs is not None:
            return cls.temperature_and_weight(topic, temperature_c, device.realtime_weight_lbs)
        return cls.temperature(topic, temperature_c)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {TEMPERATURE_KEY: self.temperature_c}
        if self.weight_lbs is not None:
            payload[WEIGHT_KEY] = self.weight_lbs
        return payload

    def encode(self) -> bytes:
        return json.dumps(self.to_dict()).encode("utf-8")


@dataclass(frozen=True)
class ConfigMessage:
    """Discovery metadata for a single sensor channel of a device"""

    topic: str
    name: str
    unique_id: str
    unit_of_measurement: str
    state_topic: str
    value_template: str
    device_class: str
    device: dict[str, Any] = field(default_factory=dict)
    expire_after: int = EXPIRE_AFTER_SECONDS
    force_update: bool = True
    state_class: str = "measurement"

    @classmethod
    def temperature(cls, device: BroodminderDevice, prefix: str = DEFAULT_DISCOVERY_PREFIX) -> "ConfigMessage":
        return cls(
            topic=config_topic(device, "Temp", prefix),
            name=f"{device.device_id}_temperature",
            unique_id=f"{device.simple_id}_temperature",
            unit_of_measurement="°C",
            state_topic=state_topic(device, prefix),
            value_template=f"{{{{ value_json.{TEMPERATURE_KEY} }}}}",
            device_class="temperature",
            device=_device_block(device),
        )

    @classmethod
    def weight(cls, device: BroodminderDevice, prefix: str = DEFAULT_DISCOVERY_PREFIX) -> "ConfigMessage":
        return cls(
            topic=config_topic(device, "Weight", prefix),
            name=f"{device.device_id}_weight",
            unique_id=f"{device.simple_id}_weight",
            unit_of_measurement="lb",
            state_topic=state_topic(device, prefix),
            value_template=f"{{{{ value_json.{WEIGHT_KEY} }}}}",
            device_class="weight",
            device=_device_block(device),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "unique_id": self.unique_id,
            "device_class": self.device_class,
            "expire_after": self.expire_after,
            "force_update": self.force_update,
            "state_class": self.state_class,
            "unit_of_measurement": self.unit_of_measurement,
            "state_topic": self.state_topic,
            "value_template": self.value_template,
            "device": self.device,
        }

    def encode(self) -> bytes:
        return json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")


def _device_block(device: BroodminderDevice) -> dict[str, Any]:
    return {
        "identifiers": [device.device_id],
        "manufacturer": "Broodminder",
        "model": device.model_name,
        "name": device.device_id,
    }


type Message = Union[StateMessage, ConfigMessage]

"""
Configuration for brood-flow

Settings are read from a YAML file, configuration.yml by default:

    mqtt_enabled: true
    broker_host: 192.168.1.10
    broker_port: 1883
    discovery_prefix: homeassistant
    devices:
      - id: "47:01:01"
        name: Hive 1
        realtime: true
"""

from dataclasses import dataclass
from dataclasses import field
import logging
import os
from pathlib import Path
from typing import Any
from typing import Optional

import yaml

from brood_flow.errors import ConfigurationError
from brood_flow.messages import DEFAULT_DISCOVERY_PREFIX
from brood_flow.mqtt import MqttConfig
from brood_flow.types import DeviceId

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configuration.yml")


@dataclass
class DeviceConfiguration:
    id: Optional[DeviceId] = None  # The Broodminder issued ID, eg "47:01:01"
    name: Optional[str] = None  # A name for the device for your reference
    topic: Optional[str] = None  # Accepted but not used for publishing
    realtime: bool = True  # Publish realtime temperature instead of the aggregated value


@dataclass
class Configuration:
    devices: list[DeviceConfiguration] = field(default_factory=list)
    broker_host: Optional[str] = None
    broker_port: Optional[int] = None
    mqtt_enabled: bool = True
    discovery_prefix: str = DEFAULT_DISCOVERY_PREFIX

    @property
    def aliases(self) -> dict[DeviceId, str]:
        return {device.id: device.name for device in self.devices if device.id and device.name}

    @property
    def realtime(self) -> dict[DeviceId, bool]:
        return {device.id: device.realtime for device in self.devices if device.id}

    def mqtt_config(self) -> MqttConfig:
        return MqttConfig(host=self.broker_host, port=self.broker_port)


def get_config_path(path: Optional[Path] = None) -> Path:
    if path is not None:
        return Path(path)
    return Path(os.environ.get("BROOD_FLOW_CONFIG", DEFAULT_CONFIG_PATH))


def load_config(path: Optional[Path] = None) -> Configuration:
    """
    Load the configuration file

    Args:
        path: Location of the YAML file (default: BROOD_FLOW_CONFIG env var or ./configuration.yml)

    Returns:
        The parsed configuration, or defaults if the file does not exist

    Raises:
        ConfigurationError: if the file cannot be read or has an invalid shape
    """
    file_path = get_config_path(path)
    if not file_path.exists():
        logger.warning("Configuration file %s not found, using defaults", file_path)
        return Configuration()

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not read configuration file {file_path}: {e}") from e

    config = parse_config(data or {})
    logger.info("Loaded configuration from %s", file_path)
    return config


def parse_config(data: Any) -> Configuration:
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    devices = data.get("devices") or []
    if not isinstance(devices, list):
        raise ConfigurationError("'devices' must be a list")

    try:
        return Configuration(
            devices=[_parse_device(device) for device in devices],
            broker_host=data.get("broker_host"),
            broker_port=int(data["broker_port"]) if data.get("broker_port") is not None else None,
            mqtt_enabled=_parse_bool(data, "mqtt_enabled", True),
            discovery_prefix=data.get("discovery_prefix") or DEFAULT_DISCOVERY_PREFIX,
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _parse_device(data: Any) -> DeviceConfiguration:
    if not isinstance(data, dict):
        raise ConfigurationError(f"Device entries must be mappings, got {data!r}")
    return DeviceConfiguration(
        id=str(data["id"]) if data.get("id") is not None else None,
        name=data.get("name"),
        topic=data.get("topic"),
        realtime=_parse_bool(data, "realtime", True),
    )


def _parse_bool(data: dict, key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be true or false, got {value!r}")
    return value

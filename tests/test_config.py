import pytest

from brood_flow.config import Configuration
from brood_flow.config import load_config
from brood_flow.config import parse_config
from brood_flow.errors import ConfigurationError

CONFIG_YAML = """
broker_host: 192.168.1.10
broker_port: 1884
devices:
  - id: "47:01:01"
    name: Hive 1
  - id: "57:02:0A"
    name: Hive 2 scale
    realtime: false
    topic: bees/hive2
"""


def test_load_config(tmp_path):
    path = tmp_path / "configuration.yml"
    path.write_text(CONFIG_YAML)

    config = load_config(path)

    assert config.broker_host == "192.168.1.10"
    assert config.broker_port == 1884
    assert config.mqtt_enabled is True
    assert config.discovery_prefix == "homeassistant"
    assert config.aliases == {"47:01:01": "Hive 1", "57:02:0A": "Hive 2 scale"}
    assert config.realtime == {"47:01:01": True, "57:02:0A": False}
    assert config.devices[1].topic == "bees/hive2"

    mqtt_config = config.mqtt_config()
    assert mqtt_config.host == "192.168.1.10"
    assert mqtt_config.port == 1884


def test_missing_file_uses_defaults(tmp_path):
    config = load_config(tmp_path / "missing.yml")
    assert config == Configuration()


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "bees.yml"
    path.write_text("mqtt_enabled: false\n")
    monkeypatch.setenv("BROOD_FLOW_CONFIG", str(path))

    assert load_config().mqtt_enabled is False


def test_invalid_yaml(tmp_path):
    path = tmp_path / "configuration.yml"
    path.write_text("devices: [unclosed\n")

    with pytest.raises(ConfigurationError):
        load_config(path)


@pytest.mark.parametrize(
    "data",
    [
        ["not", "a", "mapping"],
        {"devices": "47:01:01"},
        {"devices": ["47:01:01"]},
        {"broker_port": "not-a-port"},
    ],
)
def test_invalid_shapes(data):
    with pytest.raises(ConfigurationError):
        parse_config(data)


def test_empty_file(tmp_path):
    path = tmp_path / "configuration.yml"
    path.write_text("")
    assert load_config(path) == Configuration()


@pytest.mark.parametrize(
    "data",
    [
        {"mqtt_enabled": "false"},
        {"mqtt_enabled": 0},
        {"devices": [{"id": "47:01:01", "realtime": "no"}]},
    ],
)
def test_flags_must_be_booleans(data):
    with pytest.raises(ConfigurationError):
        parse_config(data)

from brood_flow.decoder import decode
from brood_flow.registry import DeviceRegistry
from conftest import make_payload


def test_upsert_creates_device():
    registry = DeviceRegistry()
    reading = decode(make_payload())

    device, created = registry.upsert("47:01:01", reading, now_ms=1000)

    assert created
    assert device.device_id == "47:01:01"
    assert device.reading is reading
    assert device.last_config_sent_ms == 0
    assert device.last_state_sent_ms == 0
    assert device.first_seen_ms == 1000
    assert registry.get("47:01:01") is device
    assert "47:01:01" in registry
    assert len(registry) == 1


def test_upsert_updates_reading_and_keeps_timestamps():
    registry = DeviceRegistry()
    device, _ = registry.upsert("47:01:01", decode(make_payload(realtime_hi=30)), now_ms=1000)
    device.last_config_sent_ms = 1500
    device.last_state_sent_ms = 1600

    newer = decode(make_payload(realtime_hi=31))
    updated, created = registry.upsert("47:01:01", newer, now_ms=2000)

    assert not created
    assert updated is device
    assert updated.reading is newer
    assert updated.realtime_temperature_c == newer.realtime_temperature_c
    assert updated.last_config_sent_ms == 1500
    assert updated.last_state_sent_ms == 1600
    assert updated.first_seen_ms == 1000
    assert updated.last_seen_ms == 2000
    assert updated.sightings == 2


def test_get_is_exact_match():
    registry = DeviceRegistry()
    registry.upsert("47:01:01", decode(make_payload()))

    assert registry.get("470101") is None
    assert registry.get("47:01:0") is None


def test_devices_are_kept_per_identity():
    registry = DeviceRegistry()
    registry.upsert("47:01:01", decode(make_payload()))
    registry.upsert("57:02:0A", decode(make_payload(model=57)))
    registry.upsert("47:01:01", decode(make_payload()))

    assert sorted(device.device_id for device in registry) == ["47:01:01", "57:02:0A"]

import pytest

from brood_flow.decoder import BROODMINDER_MANUFACTURER_ID
from brood_flow.decoder import decode
from brood_flow.decoder import extract_payload
from brood_flow.decoder import is_broodminder
from brood_flow.errors import MalformedPayload
from conftest import make_payload


def test_decode_core_fields():
    reading = decode(bytes([47, 1, 1, 10, 90, 0, 0, 20, 30, 5]))

    assert reading.model == 47
    assert reading.minor_version == 1
    assert reading.major_version == 1
    assert reading.realtime_temp_lo == 10
    assert reading.battery_percent == 90
    assert reading.temp_lo == 20
    assert reading.temp_hi == 30
    assert reading.realtime_temp_hi == 5
    assert reading.realtime_temperature_c == (256 * 5 + 10 - 5000) / 100
    assert reading.realtime_temperature_c == -37.1
    assert reading.temperature_c == 27.0
    assert reading.realtime_weight_kg is None
    assert reading.realtime_weight_lbs is None


def test_fahrenheit_follows_celsius():
    for hi in (0, 19, 30, 60):
        reading = decode(make_payload(realtime_hi=hi))
        assert reading.temperature_f == reading.temperature_c * 9 / 5 + 32
        assert reading.realtime_temperature_f == reading.realtime_temperature_c * 9 / 5 + 32


def test_decode_is_deterministic():
    payload = make_payload(model=57, weight=(12, 144))
    assert decode(payload) == decode(payload)


def test_decode_scale_weight():
    reading = decode(make_payload(model=57, weight=(0, 144)))

    assert reading.is_scale
    assert reading.realtime_weight_lo == 0
    assert reading.realtime_weight_hi == 144
    assert reading.realtime_weight_kg == (256 * 144 - 0 - 32767) / 100
    assert reading.realtime_weight_lbs == reading.realtime_weight_kg * 2.204623


def test_scale_without_weight_bytes_has_no_weight():
    reading = decode(make_payload(model=57))
    assert reading.realtime_weight_kg is None


def test_non_scale_ignores_weight_bytes():
    reading = decode(make_payload(model=47, weight=(0, 144)))
    assert reading.realtime_weight_kg is None


def test_reading_properties():
    reading = decode(make_payload(model=57))
    assert reading.model_name == "BroodMinder-WSLR"
    assert reading.firmware_version == "2.1"
    assert reading.elapsed_ticks == 4 + (1 << 8)
    assert reading.has_temperature

    assert decode(make_payload(model=99)).model_name == "Unknown-99"


@pytest.mark.parametrize("length", [0, 3, 9])
def test_short_payload_is_malformed(length):
    with pytest.raises(MalformedPayload) as exc_info:
        decode(bytes(length))
    assert exc_info.value.length == length
    assert exc_info.value.required == 10


def test_is_broodminder():
    assert is_broodminder({BROODMINDER_MANUFACTURER_ID: b""})
    assert is_broodminder({76: b"\x02", BROODMINDER_MANUFACTURER_ID: b"\x00"})
    assert not is_broodminder({76: b"\x02"})
    assert not is_broodminder({})
    assert not is_broodminder(None)


def test_extract_payload():
    payload = make_payload()
    assert extract_payload({BROODMINDER_MANUFACTURER_ID: bytearray(payload)}) == payload
    assert extract_payload({76: payload}) is None

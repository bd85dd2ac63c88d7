"""
Broodminder advertisement decoding

Broodminder devices broadcast their readings as manufacturer specific data
under the IF, LLC manufacturer id. The payload is a flat record with fixed
byte offsets; the conversions below come from the Broodminder manual.
"""

from typing import Mapping
from typing import Optional

from brood_flow.errors import MalformedPayload
from brood_flow.types import SCALE_MODELS
from brood_flow.types import BroodminderReading

# Define manufacturer ID for IF, LLC (Broodminder)
BROODMINDER_MANUFACTURER_ID = 0x028D  # 653 decimal

# Bytes 0-9 hold the model, version, battery, tick and temperature fields
MIN_PAYLOAD_LENGTH = 10

# Total weight lives in bytes 19-20
WEIGHT_PAYLOAD_LENGTH = 21

KG_TO_LBS = 2.204623


def is_broodminder(manufacturer_data: Mapping[int, bytes] | None) -> bool:
    """Return True if the manufacturer data carries a Broodminder payload"""
    if not manufacturer_data:
        return False
    return BROODMINDER_MANUFACTURER_ID in manufacturer_data


def extract_payload(manufacturer_data: Mapping[int, bytes] | None) -> Optional[bytes]:
    """Return the Broodminder payload from the manufacturer data, if any"""
    if not is_broodminder(manufacturer_data):
        return None
    return bytes(manufacturer_data[BROODMINDER_MANUFACTURER_ID])


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def decode(data: bytes) -> BroodminderReading:
    """
    Decode a Broodminder manufacturer payload.

    Args:
        data: The bytes stored under the Broodminder manufacturer id

    Returns:
        The decoded reading

    Raises:
        MalformedPayload: if the payload is shorter than 10 bytes
    """
    if len(data) < MIN_PAYLOAD_LENGTH:
        raise MalformedPayload(len(data), MIN_PAYLOAD_LENGTH)

    model = data[0]

    # Realtime temperature updates on every advertisement
    realtime_temperature_c = (256 * data[9] + data[3] - 5000) / 100
    # Aggregated temperature only moves once per elapsed tick
    temperature_c = (256 * data[8] + data[7] - 5000) / 100

    weight_lo = weight_hi = None
    weight_kg = weight_lbs = None
    if model in SCALE_MODELS and len(data) >= WEIGHT_PAYLOAD_LENGTH:
        weight_lo = data[19]
        weight_hi = data[20]
        weight_kg = (256 * weight_hi - weight_lo - 32767) / 100
        weight_lbs = weight_kg * KG_TO_LBS

    return BroodminderReading(
        model=model,
        minor_version=data[1],
        major_version=data[2],
        realtime_temp_lo=data[3],
        battery_percent=data[4],
        elapsed_tick_a=data[5],
        elapsed_tick_b=data[6],
        temp_lo=data[7],
        temp_hi=data[8],
        realtime_temp_hi=data[9],
        realtime_temperature_c=realtime_temperature_c,
        realtime_temperature_f=celsius_to_fahrenheit(realtime_temperature_c),
        temperature_c=temperature_c,
        temperature_f=celsius_to_fahrenheit(temperature_c),
        realtime_weight_lo=weight_lo,
        realtime_weight_hi=weight_hi,
        realtime_weight_kg=weight_kg,
        realtime_weight_lbs=weight_lbs,
        raw_data=bytes(data),
    )

from dataclasses import dataclass

# Model number to name mapping
MODEL_NAMES = {
    41: "BroodMinder-T",
    42: "BroodMinder-TH",
    43: "BroodMinder-W",
    47: "BroodMinder-TMWC",
    49: "BroodMinder-XLR",
    52: "BroodMinder-SubHub",
    56: "BroodMinder-WS",
    57: "BroodMinder-WSLR",
    58: "BroodMinder-WSXLR",
}

# Models that publish a temperature channel
TEMPERATURE_MODELS = frozenset({47, 57})

# Models that publish a weight channel in addition to temperature
SCALE_MODELS = frozenset({57})

# Identity used when the advertiser has no local name
UNRESOLVED_DEVICE_ID = "00:00:00"

# Identity of a record that has not been assigned one yet
UNKNOWN_DEVICE_ID = "(unknown)"

type DeviceId = str


@dataclass(frozen=True)
class BroodminderReading:
    """Class for storing a single decoded Broodminder advertisement"""

    model: int
    minor_version: int
    major_version: int
    realtime_temp_lo: int
    battery_percent: int
    elapsed_tick_a: int
    elapsed_tick_b: int
    temp_lo: int
    temp_hi: int
    realtime_temp_hi: int
    realtime_temperature_c: float
    realtime_temperature_f: float
    temperature_c: float
    temperature_f: float
    realtime_weight_lo: int | None = None
    realtime_weight_hi: int | None = None
    realtime_weight_kg: float | None = None
    realtime_weight_lbs: float | None = None
    raw_data: bytes | None = None

    @property
    def model_name(self) -> str:
        return MODEL_NAMES.get(self.model, f"Unknown-{self.model}")

    @property
    def firmware_version(self) -> str:
        return f"{self.major_version}.{self.minor_version}"

    @property
    def elapsed_ticks(self) -> int:
        return self.elapsed_tick_a + (self.elapsed_tick_b << 8)

    @property
    def has_temperature(self) -> bool:
        return self.model in TEMPERATURE_MODELS

    @property
    def is_scale(self) -> bool:
        return self.model in SCALE_MODELS


@dataclass
class BroodminderDevice:
    """
    Latest known state of a single Broodminder device.

    The reading is replaced on every sighting. The two publication timestamps
    are epoch milliseconds, 0 meaning nothing has been sent yet, and only move
    forward when the publication policy sends for this device.
    """

    reading: BroodminderReading
    device_id: DeviceId = UNKNOWN_DEVICE_ID
    last_config_sent_ms: int = 0
    last_state_sent_ms: int = 0
    first_seen_ms: int = 0
    last_seen_ms: int = 0
    sightings: int = 0

    @property
    def is_resolved(self) -> bool:
        return self.device_id != UNRESOLVED_DEVICE_ID

    @property
    def object_id(self) -> str:
        """Home Assistant object id, e.g. BM470101 for 47:01:01"""
        return f"BM{self.simple_id}"

    @property
    def simple_id(self) -> str:
        return self.device_id.replace(":", "")

    def __getattr__(self, name: str):
        # Flattened access to the latest reading, e.g. device.temperature_c
        if name == "reading":
            raise AttributeError(name)
        return getattr(self.reading, name)

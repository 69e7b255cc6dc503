from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class ReadingPayload(BaseModel):
    """Sample pushed by a metering device (e.g. an ESP32)."""

    # NaN/Infinity are valid JSON floats for the decoder but never valid samples
    model_config = ConfigDict(allow_inf_nan=False)

    device_id: str = Field(..., min_length=1, max_length=100)
    current: float
    voltage: float
    temperature: float


@dataclass(frozen=True)
class SpikeEvent:
    device_id: str
    owner_id: int
    current_power: float
    average_power: float
    threshold: float
    ratio: float = 1.5

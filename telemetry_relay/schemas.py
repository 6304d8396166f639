"""TelemetrySample Pydantic v2 model.

Field aliases are the route-planner telemetry keys; the wire form is
always produced with ``by_alias=True`` in alias declaration order.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field
from pydantic_core import PydanticSerializationError

from telemetry_relay.exceptions import SerializationFailure


class TelemetrySample(BaseModel):
    """One normalized snapshot of vehicle state.

    ``latitude``/``longitude``/``altitude``/``power`` are fixed-decimal
    strings (3, 3, 1 and 1 places); that precision is part of the
    downstream API contract.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    timestamp: int = Field(..., alias="utc", description="Unix seconds")
    state_of_charge: int = Field(
        ..., alias="soc", description="Percent, nominally 0-100; not clamped"
    )
    state_of_health: float = Field(..., alias="soh")
    speed: float = Field(..., alias="speed")
    vehicle_model: str = Field(..., alias="car_model")
    latitude: str = Field(..., alias="lat", examples=["37.771"])
    longitude: str = Field(..., alias="lon", examples=["-122.419"])
    altitude: str = Field(..., alias="alt", examples=["15.2"])
    external_temp: float = Field(..., alias="ext_temp")
    is_charging: int = Field(..., alias="is_charging", ge=0, le=1)
    battery_temp: float = Field(..., alias="batt_temp")
    voltage: float = Field(..., alias="voltage")
    current: float = Field(..., alias="current")
    power: str = Field(..., alias="power", examples=["-3.4"])

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json(self) -> str:
        """Compact JSON of the wire form."""
        try:
            return self.model_dump_json(by_alias=True)
        except PydanticSerializationError as exc:
            raise SerializationFailure(str(exc)) from exc

    def to_lines(self) -> List[str]:
        """``key=value`` lines in wire order (chat webhook text)."""
        return [f"{key}={value}" for key, value in self.to_wire().items()]

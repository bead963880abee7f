"""Core data structures and typing protocols for the LIFX bridge."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from lifx_bridge.const import YES_ANSWER


class LanMode(StrEnum):
    """Which adapter serves reads and writes.

    DISABLED reads and writes through the cloud, GET reads from the LAN and
    writes through the cloud, FULL reads and writes over the LAN.
    """

    DISABLED = "disabled"
    GET = "get"
    FULL = "full"

    @classmethod
    def parse(cls, value: object) -> LanMode:
        """Map a homebridge-style `use_lan` value onto a mode."""
        if isinstance(value, LanMode):
            return value
        if value is None or value is False:
            return cls.DISABLED
        if value is True:
            return cls.FULL
        normalized = str(value).strip().casefold()
        if normalized in ("get", "get-only", "get_only"):
            return cls.GET
        if normalized in ("full", *(str(x) for x in YES_ANSWER)):
            return cls.FULL
        return cls.DISABLED


class LightProperty(StrEnum):
    POWER = "power"
    BRIGHTNESS = "brightness"
    HUE = "hue"
    SATURATION = "saturation"


class LightCapabilities(BaseModel):
    """Capability flags reported by the cloud listing."""

    model_config = ConfigDict(extra="allow")

    has_color: bool = False
    has_variable_color_temp: bool = False


class LightRecord(BaseModel):
    """One light as returned by `GET /lights/all`.

    Older API responses carry `product_name` and `capabilities` at the top
    level; v1 nests them under `product`. Both are accepted.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    label: str = ""
    product_name: str = ""
    uuid: str = ""
    capabilities: LightCapabilities = Field(default_factory=LightCapabilities)

    @model_validator(mode="before")
    @classmethod
    def _flatten_product(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        product = data.get("product")
        if not isinstance(product, dict):
            return data
        flattened = dict(data)
        flattened.setdefault("product_name", product.get("name", ""))
        if "capabilities" not in flattened and isinstance(product.get("capabilities"), dict):
            flattened["capabilities"] = product["capabilities"]
        return flattened

    @property
    def name(self) -> str:
        return self.label or f"LIFX {self.id}"


class LanLightState(BaseModel):
    """Last state reported by a bulb over the LAN, all on the 16-bit scale."""

    power: int = Field(default=0, ge=0, le=0xFFFF)
    hue: int = Field(default=0, ge=0, le=0xFFFF)
    saturation: int = Field(default=0, ge=0, le=0xFFFF)
    brightness: int = Field(default=0, ge=0, le=0xFFFF)
    kelvin: int = Field(default=0, ge=0, le=0xFFFF)


class PlatformConfig(BaseModel):
    """Platform block as supplied by the host, e.g.

        platform: LIFx
        name: LIFx
        access_token: c87a...
        use_lan: "get"
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    platform: str = "LIFx"
    name: str = "LIFx"
    access_token: str = Field(min_length=1)
    use_lan: LanMode = LanMode.DISABLED

    @field_validator("use_lan", mode="before")
    @classmethod
    def _parse_use_lan(cls, value: object) -> LanMode:
        return LanMode.parse(value)


class CloudAPIProtocol(Protocol):
    """Remote adapter contract used by accessories and the platform."""

    async def list_lights(self, selector: str) -> str: ...

    async def set_power(self, selector: str, power: str, duration: float = 0) -> str: ...

    async def set_color(
        self,
        selector: str,
        color: str,
        duration: float = 0,
        power_on: bool | None = None,
    ) -> str: ...

    async def breathe_effect(
        self,
        selector: str,
        color: str,
        from_color: str | None = None,
        period: float = 1,
        cycles: float = 1,
        persist: bool = False,
        power_on: bool = True,
        peak: float = 0.5,
    ) -> str: ...

    async def close(self) -> None: ...


class LanBulbProtocol(Protocol):
    id: str
    state: LanLightState


class LanSubscriptionProtocol(Protocol):
    def cancel(self) -> None: ...


BulbStateCallback = Callable[[Any], None]


class LanClientProtocol(Protocol):
    """Local adapter contract: a live bulb map plus state notifications."""

    @property
    def bulbs(self) -> Mapping[str, LanBulbProtocol]: ...

    def subscribe(self, callback: BulbStateCallback) -> LanSubscriptionProtocol: ...

    async def lights_on(self, bulb: Any) -> None: ...

    async def lights_off(self, bulb: Any) -> None: ...

    async def lights_colour(
        self,
        hue: int,
        saturation: int,
        brightness: int,
        kelvin: int,
        duration: int,
        bulb: Any,
    ) -> None: ...

    async def start(self) -> None: ...

    async def discover(self, timeout: float) -> int: ...

    async def stop(self) -> None: ...

"""One host accessory per LIFX light.

Reads and writes go to the LAN client or the cloud API depending on the
platform's `use_lan` mode. The mode is fixed when the accessory is built.
"""

from __future__ import annotations

import json
from enum import StrEnum
from functools import partial
from typing import TYPE_CHECKING, Any, cast

import aiohttp

from lifx_bridge.const import DEFAULT_KELVIN, LIFX_MANUFACTURER
from lifx_bridge.conversions import format_number, host_to_raw, raw_to_host, round_half_up
from lifx_bridge.exceptions import DeviceNotFoundError
from lifx_bridge.hap import CharacteristicType, GetHandler, Service, SetHandler
from lifx_bridge.logging_abstraction import get_logger
from lifx_bridge.structs import (
    LanBulbProtocol,
    LanLightState,
    LanMode,
    LanSubscriptionProtocol,
    LightProperty,
    LightRecord,
)

if TYPE_CHECKING:
    from lifx_bridge.platform import LifxPlatform

logger = get_logger(__name__)


class Source(StrEnum):
    LAN = "lan"
    REMOTE = "remote"


# (reads, writes) per mode
WIRING: dict[LanMode, tuple[Source, Source]] = {
    LanMode.FULL: (Source.LAN, Source.LAN),
    LanMode.GET: (Source.LAN, Source.REMOTE),
    LanMode.DISABLED: (Source.REMOTE, Source.REMOTE),
}

CHARACTERISTIC_FOR: dict[LightProperty, CharacteristicType] = {
    LightProperty.POWER: CharacteristicType.ON,
    LightProperty.BRIGHTNESS: CharacteristicType.BRIGHTNESS,
    LightProperty.HUE: CharacteristicType.HUE,
    LightProperty.SATURATION: CharacteristicType.SATURATION,
}
COLOR_PROPERTIES = (LightProperty.HUE, LightProperty.SATURATION)

IDENTIFY_COLOR = "green"


class LifxBulbAccessory:
    """Host accessory for a single LIFX light."""

    lp: str = "LifxBulbAccessory:"

    def __init__(self, platform: LifxPlatform, record: LightRecord) -> None:
        self.platform: LifxPlatform = platform
        self.record: LightRecord = record
        self.name: str = record.name
        self.model: str = record.product_name
        self.device_id: str = record.id
        self.serial: str = record.uuid
        self.capabilities = record.capabilities
        self.lp = f"LifxBulbAccessory:{self.name}({self.device_id}):"
        self.state: LanLightState | None = None
        self.service: Service | None = None
        self._subscription: LanSubscriptionProtocol | None = None
        self.read_source, self.write_source = WIRING[self.mode]

        if self.mode is not LanMode.DISABLED:
            bulb = self._lan_bulb()
            if bulb is not None:
                self._attach(bulb)

    def __repr__(self) -> str:
        return f"LifxBulbAccessory({self.device_id!r}, {self.name!r}, mode={self.mode.value})"

    @property
    def mode(self) -> LanMode:
        return self.platform.config.use_lan

    @property
    def selector(self) -> str:
        return f"id:{self.device_id}"

    @property
    def has_color(self) -> bool:
        return self.capabilities.has_color

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None

    # ------------------------------------------------------------------ LAN state

    def _lan_bulb(self) -> LanBulbProtocol | None:
        lan = self.platform.lan_client
        if lan is None:
            return None
        return lan.bulbs.get(self.device_id)

    def _attach(self, bulb: LanBulbProtocol) -> None:
        self.state = bulb.state
        lan = self.platform.lan_client
        if self._subscription is None and lan is not None:
            self._subscription = lan.subscribe(self._on_bulb_state)
            logger.debug("%s Subscribed to LAN state updates", self.lp)

    def _require_bulb(self) -> LanBulbProtocol:
        bulb = self._lan_bulb()
        if bulb is None:
            raise DeviceNotFoundError(self.device_id, Source.LAN.value)
        if self.state is None or self._subscription is None:
            # bulb showed up on the LAN after this accessory was built
            self._attach(bulb)
        return bulb

    def _on_bulb_state(self, bulb: LanBulbProtocol) -> None:
        if bulb.id != self.device_id:
            return
        self.state = bulb.state
        if self.service is not None:
            self._push_state(bulb.state)

    def _push_state(self, state: LanLightState) -> None:
        service = cast("Service", self.service)
        service.get_characteristic(CharacteristicType.ON).update_value(state.power > 0)
        service.get_characteristic(CharacteristicType.BRIGHTNESS).update_value(
            raw_to_host(LightProperty.BRIGHTNESS, state.brightness),
        )
        if self.has_color:
            service.get_characteristic(CharacteristicType.HUE).update_value(raw_to_host(LightProperty.HUE, state.hue))
            service.get_characteristic(CharacteristicType.SATURATION).update_value(
                raw_to_host(LightProperty.SATURATION, state.saturation),
            )

    def close(self) -> None:
        """Release the LAN subscription."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
            logger.debug("%s LAN subscription released", self.lp)

    # ---------------------------------------------------------------------- reads

    async def get_lan(self, prop: LightProperty) -> bool | int:
        _ = self._require_bulb()
        state = cast("LanLightState", self.state)
        if prop is LightProperty.POWER:
            return state.power > 0
        return raw_to_host(prop, getattr(state, prop.value))

    async def get_remote(self, prop: LightProperty) -> int | float:
        body = await self.platform.cloud_api.list_lights(self.selector)
        light = self._parse_remote_light(body)
        if light is None or light.get("connected") is not True:
            raise DeviceNotFoundError(self.device_id, Source.REMOTE.value)

        color = cast("dict[str, Any]", light.get("color") or {})
        match prop:
            case LightProperty.POWER:
                return 1 if light.get("power") == "on" else 0
            case LightProperty.BRIGHTNESS:
                return round_half_up(float(light["brightness"]) * 100)
            case LightProperty.HUE:
                return color["hue"]
            case LightProperty.SATURATION:
                return round_half_up(float(color["saturation"]) * 100)
            case _:
                msg = f"Unknown light property: {prop!r}"
                raise ValueError(msg)

    def _parse_remote_light(self, body: str) -> dict[str, Any] | None:
        parsed: object = json.loads(body)
        if isinstance(parsed, list):
            parsed = parsed[0] if parsed else None
        if not isinstance(parsed, dict):
            return None
        return cast("dict[str, Any]", parsed)

    # --------------------------------------------------------------------- writes

    async def set_lan_power(self, value: Any) -> None:
        logger.info("%s Setting LAN power: %s", self.lp, value)
        bulb = self._require_bulb()
        lan = self.platform.lan_client
        assert lan is not None
        if value:
            await lan.lights_on(bulb)
        else:
            await lan.lights_off(bulb)

    async def set_lan_color(self, prop: LightProperty, value: float) -> None:
        logger.info("%s Setting LAN color: %s value: %s", self.lp, prop.value, value)
        bulb = self._require_bulb()
        state = cast("LanLightState", self.state)
        channels = {
            LightProperty.HUE: state.hue,
            LightProperty.SATURATION: state.saturation,
            LightProperty.BRIGHTNESS: state.brightness,
        }
        channels[prop] = host_to_raw(prop, value)
        lan = self.platform.lan_client
        assert lan is not None
        await lan.lights_colour(
            channels[LightProperty.HUE],
            channels[LightProperty.SATURATION],
            channels[LightProperty.BRIGHTNESS],
            DEFAULT_KELVIN,
            0,
            bulb,
        )

    async def set_remote_power(self, value: Any) -> None:
        logger.info("%s Setting remote power: %s", self.lp, value)
        _ = await self.platform.cloud_api.set_power(self.selector, "on" if value else "off", 0)

    async def set_remote_color(self, prop: LightProperty, value: float) -> None:
        logger.info("%s Setting remote color: %s, value: %s", self.lp, prop.value, value)
        if prop is LightProperty.HUE:
            color = f"hue:{format_number(value)}"
        else:
            color = f"{prop.value}:{format_number(value / 100)}"
        _ = await self.platform.cloud_api.set_color(self.selector, color, 0)

    # ----------------------------------------------------------------------- host

    async def identify(self) -> None:
        """Breathe green a few times so the user can spot the bulb."""
        try:
            _ = await self.platform.cloud_api.breathe_effect(
                self.selector,
                IDENTIFY_COLOR,
                None,
                1,
                3,
                False,
                True,
                0.5,
            )
        except (aiohttp.ClientError, TimeoutError):
            logger.exception("%s Identify effect failed", self.lp)

    def _getter(self, prop: LightProperty) -> GetHandler:
        read = self.get_lan if self.read_source is Source.LAN else self.get_remote
        return partial(read, prop)

    def _setter(self, prop: LightProperty) -> SetHandler:
        if prop is LightProperty.POWER:
            return self.set_lan_power if self.write_source is Source.LAN else self.set_remote_power
        write = self.set_lan_color if self.write_source is Source.LAN else self.set_remote_color
        return partial(write, prop)

    def get_services(self) -> list[Service]:
        """Build the light bulb and identification services for the host."""
        service = Service.lightbulb(self.name)
        props = [LightProperty.POWER, LightProperty.BRIGHTNESS]
        if self.has_color:
            props.extend(COLOR_PROPERTIES)

        for prop in props:
            ctype = CHARACTERISTIC_FOR[prop]
            characteristic = (
                service.get_characteristic(ctype) if service.has_characteristic(ctype) else service.add_characteristic(ctype)
            )
            _ = characteristic.on("get", self._getter(prop)).on("set", self._setter(prop))

        information = (
            Service.accessory_information(self.name)
            .set_characteristic(CharacteristicType.MANUFACTURER, LIFX_MANUFACTURER)
            .set_characteristic(CharacteristicType.MODEL, self.model)
            .set_characteristic(CharacteristicType.SERIAL_NUMBER, self.serial)
        )

        self.service = service
        logger.debug(
            "%s Services built",
            self.lp,
            extra={"reads": self.read_source.value, "writes": self.write_source.value, "color": self.has_color},
        )
        return [service, information]

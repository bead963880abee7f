"""LIFX LAN adapter on top of aiolifx.

aiolifx discovers bulbs and speaks the LAN protocol. This adapter keeps the
bulbs it has registered, keyed by the same hex id the cloud API uses, mirrors
each bulb's HSBK and power into a `LanLightState`, and notifies subscribers
whenever that state changes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from aiolifx.aiolifx import LifxDiscovery, Light

from lifx_bridge.const import (
    HSBK_MAX,
    LIFX_LAN_DISCOVERY_INTERVAL,
    LIFX_LAN_POLL_INTERVAL,
)
from lifx_bridge.correlation import correlation_scope
from lifx_bridge.logging_abstraction import get_logger
from lifx_bridge.structs import BulbStateCallback, LanLightState

logger = get_logger(__name__)


def device_id_of(light: Light) -> str:
    """`d0:73:d5:00:00:01` -> `d073d5000001`"""
    return str(light.mac_addr).replace(":", "").lower()


@dataclass
class LanBulb:
    """A registered aiolifx light and the last state seen for it."""

    id: str
    light: Light
    state: LanLightState = field(default_factory=LanLightState)

    @property
    def host(self) -> str:
        return self.light.ip_addr

    @property
    def label(self) -> str:
        return self.light.label or ""

    def sync_from_light(self) -> None:
        """Copy the values aiolifx last received from the bulb."""
        update: dict[str, int] = {}
        if self.light.color:
            hue, saturation, brightness, kelvin = self.light.color
            update.update(hue=hue, saturation=saturation, brightness=brightness, kelvin=kelvin)
        if self.light.power_level is not None:
            update["power"] = self.light.power_level
        self.state = self.state.model_copy(update=update)


class LanSubscription:
    """Handle for one `bulbstate` listener; `cancel()` removes it."""

    def __init__(self, client: LifxLanClient, callback: BulbStateCallback) -> None:
        self._client: LifxLanClient | None = client
        self.callback: BulbStateCallback = callback

    @property
    def active(self) -> bool:
        return self._client is not None

    def cancel(self) -> None:
        if self._client is None:
            return
        self._client.unsubscribe(self.callback)
        self._client = None


class LifxLanClient:
    """Shared LAN client; aiolifx calls `register`/`unregister` as bulbs come and go."""

    lp: str = "LifxLanClient"

    def __init__(
        self,
        broadcast_address: str = "255.255.255.255",
        discovery_interval: float = LIFX_LAN_DISCOVERY_INTERVAL,
        poll_interval: float = LIFX_LAN_POLL_INTERVAL,
    ) -> None:
        self.broadcast_address: str = broadcast_address
        self.discovery_interval: float = discovery_interval
        self.poll_interval: float = poll_interval
        self.bulbs: dict[str, LanBulb] = {}
        self._subscribers: list[BulbStateCallback] = []
        self._discovery: LifxDiscovery | None = None
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return self._discovery is not None

    # ------------------------------------------------------------------ lifecycle

    async def start(self) -> None:
        """Start aiolifx discovery and the state poll loop."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._discovery = LifxDiscovery(
            loop,
            self,
            discovery_interval=int(self.discovery_interval),
            broadcast_ip=self.broadcast_address,
        )
        _ = self._discovery.start()
        logger.info("%s:start: discovery started", self.lp, extra={"broadcast": self.broadcast_address})
        self._tasks = [asyncio.create_task(self._poll_loop(), name=f"{self.lp}:poll")]

    async def stop(self) -> None:
        for task in self._tasks:
            if not task.done():
                _ = task.cancel()
        if self._tasks:
            _ = await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        if self._discovery is not None:
            self._discovery.cleanup()
            self._discovery = None
        for bulb in self.bulbs.values():
            bulb.light.cleanup()
        logger.info("%s:stop: LAN client stopped", self.lp)

    async def discover(self, timeout: float) -> int:
        """Give discovery `timeout` seconds; return how many bulbs are registered."""
        await asyncio.sleep(timeout)
        logger.info("%s:discover: %d bulb(s) on the LAN", self.lp, len(self.bulbs))
        return len(self.bulbs)

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            self.refresh()

    def refresh(self) -> None:
        """Ask every registered bulb for its current state."""
        for bulb in list(self.bulbs.values()):
            bulb.light.get_color(self._on_light_state)

    # ------------------------------------------------------------ aiolifx parent

    def register(self, light: Light) -> None:
        device_id = device_id_of(light)
        bulb = self.bulbs.get(device_id)
        if bulb is None:
            bulb = LanBulb(id=device_id, light=light)
            self.bulbs[device_id] = bulb
            logger.info("%s:register: bulb %s at %s", self.lp, device_id, light.ip_addr)
        else:
            bulb.light = light
        bulb.sync_from_light()
        light.get_color(self._on_light_state)

    def unregister(self, light: Light) -> None:
        bulb = self.bulbs.pop(device_id_of(light), None)
        if bulb is not None:
            logger.warning("%s:unregister: bulb %s stopped answering", self.lp, bulb.id)

    def _on_light_state(self, light: Light, _response: Any) -> None:
        bulb = self.bulbs.get(device_id_of(light))
        if bulb is None:
            return
        with correlation_scope("lan"):
            bulb.sync_from_light()
            self._emit_bulbstate(bulb)

    # ---------------------------------------------------------------- subscribers

    def subscribe(self, callback: BulbStateCallback) -> LanSubscription:
        self._subscribers.append(callback)
        return LanSubscription(self, callback)

    def unsubscribe(self, callback: BulbStateCallback) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            logger.debug("%s:unsubscribe: callback was not registered", self.lp)

    def _emit_bulbstate(self, bulb: LanBulb) -> None:
        for callback in list(self._subscribers):
            try:
                callback(bulb)
            except Exception:
                logger.exception("%s:emit: bulbstate listener failed", self.lp, extra={"device_id": bulb.id})

    # ----------------------------------------------------------------------- send

    def _record(self, bulb: LanBulb, **channels: int) -> None:
        # later writes in the same burst build on this one
        bulb.state = bulb.state.model_copy(update=channels)
        self._emit_bulbstate(bulb)

    async def lights_on(self, bulb: LanBulb, duration: int = 0) -> None:
        logger.debug("%s:lights_on: %s", self.lp, bulb.id)
        bulb.light.set_power(True, duration=duration)
        self._record(bulb, power=HSBK_MAX)

    async def lights_off(self, bulb: LanBulb, duration: int = 0) -> None:
        logger.debug("%s:lights_off: %s", self.lp, bulb.id)
        bulb.light.set_power(False, duration=duration)
        self._record(bulb, power=0)

    async def lights_colour(
        self,
        hue: int,
        saturation: int,
        brightness: int,
        kelvin: int,
        duration: int,
        bulb: LanBulb,
    ) -> None:
        logger.debug(
            "%s:lights_colour: %s",
            self.lp,
            bulb.id,
            extra={"hue": hue, "saturation": saturation, "brightness": brightness, "kelvin": kelvin},
        )
        bulb.light.set_color([hue, saturation, brightness, kelvin], duration=duration)
        self._record(bulb, hue=hue, saturation=saturation, brightness=brightness, kelvin=kelvin)

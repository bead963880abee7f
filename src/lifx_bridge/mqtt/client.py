"""Home Assistant host for the platform, over MQTT.

Discovers accessories once, publishes them as MQTT-discovery lights, routes
Home Assistant commands to characteristic set handlers, and republishes state
from periodic reads and from values the accessories push on their own.
"""

from __future__ import annotations

import asyncio
import json
from functools import partial
from typing import TYPE_CHECKING, Any

import aiohttp
import aiomqtt

from lifx_bridge.const import (
    DEVICE_LWT_MSG,
    LIFX_HASS_TOPIC,
    LIFX_MQTT_HOST,
    LIFX_MQTT_PASS,
    LIFX_MQTT_PORT,
    LIFX_MQTT_USER,
    LIFX_REFRESH_INTERVAL,
    LIFX_TOPIC,
)
from lifx_bridge.correlation import correlated, correlation_scope
from lifx_bridge.exceptions import DeviceNotFoundError
from lifx_bridge.hap import Characteristic, CharacteristicType, Service, ServiceType
from lifx_bridge.logging_abstraction import get_logger
from lifx_bridge.mqtt.discovery import (
    build_identify_config,
    build_light_config,
    build_state_payload,
    find_service,
    object_id,
)

if TYPE_CHECKING:
    from lifx_bridge.accessory import LifxBulbAccessory
    from lifx_bridge.platform import LifxPlatform

logger = get_logger(__name__)

RECONNECT_DELAY = 10
# HA command field -> characteristic, applied in this order
COMMAND_FIELDS: tuple[tuple[str, CharacteristicType], ...] = (
    ("state", CharacteristicType.ON),
    ("brightness", CharacteristicType.BRIGHTNESS),
    ("h", CharacteristicType.HUE),
    ("s", CharacteristicType.SATURATION),
)


class HomeAssistantBridge:
    """Drives a `LifxPlatform` the way a host framework would."""

    lp: str = "mqtt:"

    def __init__(
        self,
        platform: LifxPlatform,
        host: str = LIFX_MQTT_HOST,
        port: int | str = LIFX_MQTT_PORT,
        username: str | None = LIFX_MQTT_USER,
        password: str | None = LIFX_MQTT_PASS,
        topic: str = LIFX_TOPIC,
        ha_topic: str = LIFX_HASS_TOPIC,
        refresh_interval: float = LIFX_REFRESH_INTERVAL,
    ) -> None:
        self.platform: LifxPlatform = platform
        self.broker_host: str = host
        self.broker_port: int = int(port) if port else 1883
        self.broker_username: str | None = username
        self.broker_password: str | None = password
        self.topic: str = topic or "lifx_bridge"
        self.ha_topic: str = ha_topic or "homeassistant"
        self.refresh_interval: float = refresh_interval
        self.client: aiomqtt.Client | None = None
        self.accessories: dict[str, LifxBulbAccessory] = {}
        self.services: dict[str, list[Service]] = {}
        self._pending_push: set[str] = set()
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def is_connected(self) -> bool:
        return self.client is not None

    # ------------------------------------------------------------------ accessories

    async def load_accessories(self) -> int:
        """Ask the platform for its accessories and wire their services."""
        lp = f"{self.lp}load:"
        for accessory in await self.platform.accessories():
            services = accessory.get_services()
            self.accessories[accessory.device_id] = accessory
            self.services[accessory.device_id] = services
            lightbulb = find_service(services, ServiceType.LIGHTBULB)
            for characteristic in lightbulb.characteristics.values():
                _ = characteristic.subscribe(partial(self._on_push, accessory.device_id))
        logger.info("%s %d accessories loaded", lp, len(self.accessories))
        return len(self.accessories)

    def lightbulb(self, device_id: str) -> Service:
        return find_service(self.services[device_id], ServiceType.LIGHTBULB)

    def _on_push(self, device_id: str, _characteristic: Characteristic, _value: Any) -> None:
        # one publish per burst of characteristic updates
        if device_id in self._pending_push:
            return
        self._pending_push.add(device_id)
        self._spawn(self._flush_push(device_id))

    async def _flush_push(self, device_id: str) -> None:
        await asyncio.sleep(0)
        self._pending_push.discard(device_id)
        _ = await self.publish_state(device_id)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # -------------------------------------------------------------------- connection

    async def start(self) -> None:
        """Connect, announce, and process messages; reconnect on broker errors."""
        lp = f"{self.lp}start:"
        while True:
            refresh_task: asyncio.Task[None] | None = None
            try:
                async with aiomqtt.Client(
                    hostname=self.broker_host,
                    port=self.broker_port,
                    username=self.broker_username,
                    password=self.broker_password,
                    will=aiomqtt.Will(topic=f"{self.topic}/connected", payload=DEVICE_LWT_MSG, retain=True),
                ) as client:
                    self.client = client
                    logger.info("%s Connected to MQTT broker: %s port: %s", lp, self.broker_host, self.broker_port)
                    await self._on_connected()
                    for topic in (f"{self.topic}/set/#", f"{self.topic}/identify/#", f"{self.ha_topic}/status"):
                        await client.subscribe(topic)
                    refresh_task = asyncio.create_task(self._refresh_loop(), name=f"{self.lp}refresh")
                    async for message in client.messages:
                        await self.handle_message(str(message.topic), message.payload)
            except aiomqtt.MqttError as e:
                logger.warning(
                    "%s MQTT connection lost, retrying in %s seconds: %s",
                    lp,
                    RECONNECT_DELAY,
                    e,
                )
                self.client = None
                await asyncio.sleep(RECONNECT_DELAY)
            finally:
                self.client = None
                if refresh_task is not None and not refresh_task.done():
                    _ = refresh_task.cancel()

    async def stop(self) -> None:
        for task in list(self._tasks):
            _ = task.cancel()
        if self.is_connected:
            for device_id in self.accessories:
                _ = await self.publish(f"{self.topic}/availability/{device_id}", b"offline")
            _ = await self.publish(f"{self.topic}/connected", DEVICE_LWT_MSG, retain=True)

    async def _on_connected(self) -> None:
        _ = await self.publish(f"{self.topic}/connected", b"online", retain=True)
        await self.publish_discovery()
        await self.refresh_all()

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            with correlation_scope("refresh"):
                try:
                    await self.refresh_all()
                except Exception:
                    logger.exception("%srefresh: pass failed, retrying next interval", self.lp)

    # ---------------------------------------------------------------------- publish

    async def publish(self, topic: str, payload: bytes, retain: bool = False) -> bool:
        lp = f"{self.lp}publish:"
        if self.client is None:
            return False
        try:
            await self.client.publish(topic, payload, qos=0, retain=retain)
        except aiomqtt.MqttCodeError as mqtt_code_exc:
            logger.warning("%s [MqttCodeError] -> %s", lp, mqtt_code_exc)
        except aiomqtt.MqttError as mqtt_err:
            logger.warning("%s [MqttError] -> %s", lp, mqtt_err)
        else:
            return True
        return False

    async def publish_json(self, topic: str, data: dict[str, Any], retain: bool = False) -> bool:
        return await self.publish(topic, json.dumps(data).encode(), retain=retain)

    async def publish_discovery(self) -> None:
        lp = f"{self.lp}discovery:"
        for device_id, accessory in self.accessories.items():
            services = self.services[device_id]
            uid = object_id(accessory)
            _ = await self.publish_json(
                f"{self.ha_topic}/light/{uid}/config",
                build_light_config(accessory, services, self.topic),
                retain=True,
            )
            _ = await self.publish_json(
                f"{self.ha_topic}/button/{uid}_identify/config",
                build_identify_config(accessory, services, self.topic),
                retain=True,
            )
        logger.info("%s Published discovery for %d lights", lp, len(self.accessories))

    async def publish_state(self, device_id: str) -> bool:
        if device_id not in self.services:
            return False
        return await self.publish_json(f"{self.topic}/status/{device_id}", build_state_payload(self.lightbulb(device_id)))

    async def publish_availability(self, device_id: str, online: bool) -> bool:
        return await self.publish(f"{self.topic}/availability/{device_id}", b"online" if online else b"offline")

    # ---------------------------------------------------------------------- refresh

    async def refresh_state(self, device_id: str) -> bool:
        """Read every characteristic through its get handler and publish the result."""
        lp = f"{self.lp}refresh:"
        lightbulb = self.lightbulb(device_id)
        try:
            for characteristic in lightbulb.characteristics.values():
                _ = await characteristic.get()
        except DeviceNotFoundError as e:
            logger.warning("%s %s", lp, e)
            _ = await self.publish_availability(device_id, False)
            return False
        except (aiohttp.ClientError, TimeoutError, json.JSONDecodeError, KeyError):
            logger.exception("%s Failed to read state", lp, extra={"device_id": device_id})
            return False
        _ = await self.publish_availability(device_id, True)
        return await self.publish_state(device_id)

    async def refresh_all(self) -> None:
        for device_id in list(self.accessories):
            _ = await self.refresh_state(device_id)

    # --------------------------------------------------------------------- commands

    @correlated("mqtt")
    async def handle_message(self, topic: str, payload: bytes | bytearray | Any) -> None:
        lp = f"{self.lp}rcv:"
        raw = bytes(payload) if isinstance(payload, (bytes, bytearray)) else str(payload).encode()
        if topic == f"{self.ha_topic}/status":
            if raw.decode(errors="replace").strip().casefold() == "online":
                logger.info("%s Home Assistant came online, re-announcing", lp)
                await self.publish_discovery()
                await self.refresh_all()
            return

        parts = topic.removeprefix(f"{self.topic}/").split("/")
        if len(parts) != 2:
            logger.debug("%s Ignoring topic %s", lp, topic)
            return
        action, device_id = parts
        accessory = self.accessories.get(device_id)
        if accessory is None:
            logger.warning("%s Unknown device id in topic %s", lp, topic)
            return

        if action == "identify":
            await accessory.identify()
            return
        if action != "set":
            logger.debug("%s Ignoring action %s", lp, action)
            return

        try:
            command = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("%s Command for %s is not JSON: %r", lp, device_id, raw)
            return
        if not isinstance(command, dict):
            logger.warning("%s Command for %s is not an object: %r", lp, device_id, command)
            return
        _ = await self.apply_command(device_id, command)

    async def apply_command(self, device_id: str, command: dict[str, Any]) -> bool:
        """Apply a JSON-schema light command through the characteristic set handlers."""
        lp = f"{self.lp}command:"
        lightbulb = self.lightbulb(device_id)
        color = command.get("color") if isinstance(command.get("color"), dict) else {}
        fields = {**command, **color}
        try:
            for field, ctype in COMMAND_FIELDS:
                if field not in fields or not lightbulb.has_characteristic(ctype):
                    continue
                value = fields[field]
                if ctype is CharacteristicType.ON:
                    value = str(value).upper() == "ON"
                await lightbulb.get_characteristic(ctype).set(value)
        except DeviceNotFoundError as e:
            logger.warning("%s %s", lp, e)
            _ = await self.publish_availability(device_id, False)
            return False
        except (aiohttp.ClientError, TimeoutError):
            logger.exception("%s Command failed", lp, extra={"device_id": device_id, "command": command})
            return False
        return await self.publish_state(device_id)

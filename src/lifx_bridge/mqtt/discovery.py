"""Home Assistant MQTT discovery and state payloads built from accessory services."""

from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING, Any

from lifx_bridge.const import ORIGIN_STRUCT
from lifx_bridge.hap import CharacteristicType, Service, ServiceType

if TYPE_CHECKING:
    from lifx_bridge.accessory import LifxBulbAccessory


def slugify(text: str) -> str:
    """
    Convert text to a slug suitable for entity IDs.
    E.g., 'Hallway Lights' -> 'hallway_lights'
    """
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s]+", "_", text)
    return text.strip("_")


def object_id(accessory: LifxBulbAccessory) -> str:
    return f"lifx_{accessory.device_id}"


def find_service(services: list[Service], service_type: ServiceType) -> Service:
    for service in services:
        if service.type is service_type:
            return service
    msg = f"No {service_type.value} service"
    raise LookupError(msg)


def _device_block(accessory: LifxBulbAccessory, services: list[Service]) -> dict[str, Any]:
    info = find_service(services, ServiceType.ACCESSORY_INFORMATION)
    block: dict[str, Any] = {
        "identifiers": [object_id(accessory)],
        "name": accessory.name,
        "manufacturer": info.get_characteristic(CharacteristicType.MANUFACTURER).value,
        "model": info.get_characteristic(CharacteristicType.MODEL).value,
    }
    serial = info.get_characteristic(CharacteristicType.SERIAL_NUMBER).value
    if serial:
        block["serial_number"] = serial
    return block


def build_light_config(accessory: LifxBulbAccessory, services: list[Service], topic: str) -> dict[str, Any]:
    """JSON-schema light entity for one accessory."""
    lightbulb = find_service(services, ServiceType.LIGHTBULB)
    uid = object_id(accessory)
    config: dict[str, Any] = {
        "name": None,
        "unique_id": uid,
        "default_entity_id": f"light.{slugify(accessory.name) or uid}",
        "schema": "json",
        "command_topic": f"{topic}/set/{accessory.device_id}",
        "state_topic": f"{topic}/status/{accessory.device_id}",
        "availability_topic": f"{topic}/availability/{accessory.device_id}",
        "payload_available": "online",
        "payload_not_available": "offline",
        "origin": ORIGIN_STRUCT,
        "device": _device_block(accessory, services),
    }
    if lightbulb.has_characteristic(CharacteristicType.BRIGHTNESS):
        config.update({"brightness": True, "brightness_scale": 100})
    if lightbulb.has_characteristic(CharacteristicType.HUE):
        config["supported_color_modes"] = ["hs"]
    elif lightbulb.has_characteristic(CharacteristicType.BRIGHTNESS):
        config["supported_color_modes"] = ["brightness"]
    else:
        config["supported_color_modes"] = ["onoff"]
    return config


def build_identify_config(accessory: LifxBulbAccessory, services: list[Service], topic: str) -> dict[str, Any]:
    """Button entity that makes the bulb breathe."""
    uid = f"{object_id(accessory)}_identify"
    return {
        "name": "Identify",
        "unique_id": uid,
        "default_entity_id": f"button.{slugify(accessory.name) or object_id(accessory)}_identify",
        "command_topic": f"{topic}/identify/{accessory.device_id}",
        "availability_topic": f"{topic}/availability/{accessory.device_id}",
        "entity_category": "diagnostic",
        "device_class": "identify",
        "origin": ORIGIN_STRUCT,
        "device": _device_block(accessory, services),
    }


def build_state_payload(lightbulb: Service) -> dict[str, Any]:
    """Current characteristic values as a JSON-schema light state."""
    on = lightbulb.get_characteristic(CharacteristicType.ON).value
    state: dict[str, Any] = {"state": "ON" if on else "OFF"}
    if lightbulb.has_characteristic(CharacteristicType.BRIGHTNESS):
        brightness = lightbulb.get_characteristic(CharacteristicType.BRIGHTNESS).value
        if brightness is not None:
            state["brightness"] = brightness
    if lightbulb.has_characteristic(CharacteristicType.HUE):
        hue = lightbulb.get_characteristic(CharacteristicType.HUE).value
        saturation = lightbulb.get_characteristic(CharacteristicType.SATURATION).value
        if hue is not None and saturation is not None:
            state["color_mode"] = "hs"
            state["color"] = {"h": hue, "s": saturation}
    elif "brightness" in state:
        state["color_mode"] = "brightness"
    return state

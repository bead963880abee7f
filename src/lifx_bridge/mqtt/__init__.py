"""Home Assistant MQTT host for the LIFX platform."""

from lifx_bridge.mqtt.client import HomeAssistantBridge
from lifx_bridge.mqtt.discovery import build_light_config, build_state_payload, slugify

__all__ = ["HomeAssistantBridge", "build_light_config", "build_state_payload", "slugify"]

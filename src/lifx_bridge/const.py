import logging
import os

from lifx_bridge import __version__

__all__ = [
    "DEFAULT_KELVIN",
    "DEVICE_LWT_MSG",
    "FOREIGN_LOG_FORMATTER",
    "HSBK_MAX",
    "LIFX_API_BASE",
    "LIFX_API_TIMEOUT",
    "LIFX_CONFIG_FILE",
    "LIFX_DEBUG",
    "LIFX_HASS_TOPIC",
    "LIFX_LAN_DISCOVERY_INTERVAL",
    "LIFX_LAN_DISCOVERY_WAIT",
    "LIFX_LAN_POLL_INTERVAL",
    "LIFX_LOG_FORMAT",
    "LIFX_LOG_HUMAN_OUTPUT",
    "LIFX_LOG_JSON_FILE",
    "LIFX_MANUFACTURER",
    "LIFX_MQTT_HOST",
    "LIFX_MQTT_PASS",
    "LIFX_MQTT_PORT",
    "LIFX_MQTT_USER",
    "LIFX_REFRESH_INTERVAL",
    "LIFX_TOPIC",
    "LIFX_VERSION",
    "ORIGIN_STRUCT",
    "SRC_REPO_URL",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")

FOREIGN_LOG_FORMATTER = logging.Formatter(
    "%(asctime)s.%(msecs)d %(levelname)s <%(name)s> [%(module)s:%(lineno)d] > %(message)s",
    "%m/%d/%y %H:%M:%S",
)
LIFX_VERSION: str = __version__
SRC_REPO_URL: str = "https://api.developer.lifx.com/"
LIFX_API_BASE: str = os.environ.get("LIFX_API_BASE", "https://api.lifx.com/v1/")
LIFX_MANUFACTURER = "LIFX"
DEVICE_LWT_MSG: bytes = b"offline"

# kelvin sent with every LAN colour write
DEFAULT_KELVIN: int = 5500
HSBK_MAX: int = 0xFFFF


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


LIFX_CONFIG_FILE: str = os.environ.get("LIFX_CONFIG_FILE", "config.yaml")
LIFX_API_TIMEOUT: float = _float_env("LIFX_API_TIMEOUT", 8.0)

LIFX_LAN_DISCOVERY_INTERVAL: float = _float_env("LIFX_LAN_DISCOVERY_INTERVAL", 30.0)
LIFX_LAN_DISCOVERY_WAIT: float = _float_env("LIFX_LAN_DISCOVERY_WAIT", 3.0)
LIFX_LAN_POLL_INTERVAL: float = _float_env("LIFX_LAN_POLL_INTERVAL", 10.0)
LIFX_REFRESH_INTERVAL: float = _float_env("LIFX_REFRESH_INTERVAL", 60.0)

LIFX_MQTT_HOST = os.environ.get("LIFX_MQTT_HOST", "homeassistant.local")
LIFX_MQTT_PORT = os.environ.get("LIFX_MQTT_PORT", "1883")
LIFX_MQTT_USER = os.environ.get("LIFX_MQTT_USER")
LIFX_MQTT_PASS = os.environ.get("LIFX_MQTT_PASS")
LIFX_TOPIC = os.environ.get("LIFX_TOPIC", "lifx_bridge")
LIFX_HASS_TOPIC = os.environ.get("LIFX_HASS_TOPIC", "homeassistant")

LIFX_DEBUG = os.environ.get("LIFX_DEBUG", "0").casefold() in YES_ANSWER

# Logging Configuration
LIFX_LOG_FORMAT: str = os.environ.get("LIFX_LOG_FORMAT", "human")  # "json", "human", or "both"
LIFX_LOG_JSON_FILE: str = os.environ.get("LIFX_LOG_JSON_FILE", "/var/log/lifx_bridge.json")
LIFX_LOG_HUMAN_OUTPUT: str = os.environ.get("LIFX_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or file path

ORIGIN_STRUCT = {
    "name": "lifx-bridge",
    "sw_version": LIFX_VERSION,
    "support_url": SRC_REPO_URL,
}

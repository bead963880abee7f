"""Exception types raised by the LIFX bridge."""

from __future__ import annotations


class LifxBridgeError(Exception):
    """Base class for errors produced by the bridge itself."""


class DeviceNotFoundError(LifxBridgeError):
    """A light could not be reached through the selected adapter.

    Raised when:
    - The LAN client has no bulb with this id
    - The cloud API reports the light as disconnected, or returns no light

    Attributes:
        device_id: LIFX device id (hex MAC) that was looked up
        source: "lan" or "remote"

    """

    def __init__(self, device_id: str, source: str = "lan") -> None:
        self.device_id: str = device_id
        self.source: str = source
        super().__init__(f"Device not found: {device_id} ({source})")


class ConfigError(LifxBridgeError):
    """Platform configuration is missing or invalid."""

    def __init__(self, reason: str) -> None:
        self.reason: str = reason
        super().__init__(f"Invalid configuration: {reason}")

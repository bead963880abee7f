"""LIFX LAN adapter built on aiolifx."""

from lifx_bridge.lan.client import LanBulb, LanSubscription, LifxLanClient, device_id_of

__all__ = ["LanBulb", "LanSubscription", "LifxLanClient", "device_id_of"]

"""
Shared fixtures for unit tests.

Provides fake cloud and LAN adapters plus a platform factory so accessories
can be exercised without network access.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from lifx_bridge.lan.client import LanBulb
from lifx_bridge.platform import LifxPlatform
from lifx_bridge.structs import LanLightState, PlatformConfig

DEVICE_ID = "d073d5000001"


def fake_light(mac="d0:73:d5:00:00:01", ip_addr="192.168.1.50", color=None, power_level=None):
    """Stand-in for an aiolifx `Light` as handed to `register`."""
    light = MagicMock()
    light.mac_addr = mac
    light.ip_addr = ip_addr
    light.label = "Kitchen"
    light.color = color
    light.power_level = power_level
    return light


def cloud_light(**overrides):
    """One light entry as returned by GET /lights/<selector>."""
    light = {
        "id": DEVICE_ID,
        "uuid": "02ea5835-9dc2-4323-84f3-3b825419008d",
        "label": "Kitchen",
        "connected": True,
        "power": "on",
        "color": {"hue": 120.0, "saturation": 0.5, "kelvin": 3500},
        "brightness": 0.42,
        "product": {
            "name": "LIFX A19",
            "capabilities": {"has_color": True, "has_variable_color_temp": True},
        },
    }
    light.update(overrides)
    return light


@pytest.fixture
def mock_cloud_api():
    """
    Mock LifxCloudAPI.

    `list_lights` answers with a single connected color light by default.
    """
    api = MagicMock()
    api.list_lights = AsyncMock(return_value=json.dumps([cloud_light()]))
    api.set_power = AsyncMock(return_value="{}")
    api.set_color = AsyncMock(return_value="{}")
    api.breathe_effect = AsyncMock(return_value="{}")
    api.close = AsyncMock()
    return api


@pytest.fixture
def lan_bulb():
    """A bulb on the LAN that is off, half bright, at hue ~60 degrees."""
    return LanBulb(
        id=DEVICE_ID,
        light=fake_light(),
        state=LanLightState(power=0, hue=10923, saturation=65535, brightness=32768, kelvin=3500),
    )


@pytest.fixture
def mock_lan_client(lan_bulb):
    """
    Mock LifxLanClient that knows `lan_bulb`.

    `subscribe` records callbacks and returns a cancellable handle.
    """
    client = MagicMock()
    client.bulbs = {lan_bulb.id: lan_bulb}
    client.callbacks = []

    def _subscribe(callback):
        client.callbacks.append(callback)
        handle = MagicMock()
        handle.cancel = MagicMock(side_effect=lambda: client.callbacks.remove(callback))
        return handle

    client.subscribe = MagicMock(side_effect=_subscribe)
    client.lights_on = AsyncMock()
    client.lights_off = AsyncMock()
    client.lights_colour = AsyncMock()
    client.start = AsyncMock()
    client.discover = AsyncMock(return_value=1)
    client.stop = AsyncMock()
    return client


@pytest.fixture
def make_platform(mock_cloud_api, mock_lan_client):
    """Factory building a LifxPlatform for a given `use_lan` value."""

    def _make(use_lan=False):
        config = PlatformConfig(access_token="token", use_lan=use_lan)
        return LifxPlatform(config, cloud_api=mock_cloud_api, lan_client=mock_lan_client)

    return _make

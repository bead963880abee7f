"""Unit tests for platform module.

Tests LifxPlatform construction from a platform block, accessory discovery,
and startup/shutdown of the shared clients.
"""

import json
from unittest.mock import AsyncMock

import pytest

from conftest import cloud_light
from lifx_bridge.cloud_api import LifxCloudAPI
from lifx_bridge.exceptions import ConfigError
from lifx_bridge.lan import LifxLanClient
from lifx_bridge.platform import LifxPlatform
from lifx_bridge.structs import LanMode


class TestPlatformConfig:
    """Tests for LifxPlatform.from_mapping"""

    def test_from_mapping_builds_real_clients(self):
        """Test default clients are created from the block"""
        platform = LifxPlatform.from_mapping({"platform": "LIFx", "access_token": "abc", "use_lan": "true"})

        assert isinstance(platform.cloud_api, LifxCloudAPI)
        assert isinstance(platform.lan_client, LifxLanClient)
        assert platform.config.use_lan is LanMode.FULL

    def test_from_mapping_without_lan(self):
        """Test no LAN client when use_lan is absent"""
        platform = LifxPlatform.from_mapping({"access_token": "abc"})

        assert platform.lan_client is None
        assert platform.config.use_lan is LanMode.DISABLED

    @pytest.mark.parametrize("block", [{}, {"access_token": ""}])
    def test_from_mapping_requires_token(self, block):
        """Test a missing or empty access token raises ConfigError"""
        with pytest.raises(ConfigError):
            LifxPlatform.from_mapping(block)


class TestPlatformAccessories:
    """Tests for LifxPlatform.accessories"""

    @pytest.mark.asyncio
    async def test_one_accessory_per_light_in_order(self, make_platform, mock_cloud_api):
        """Test accessories follow the cloud response order"""
        mock_cloud_api.list_lights.return_value = json.dumps(
            [cloud_light(id="d073d5000002", label="Hall"), cloud_light(id="d073d5000001", label="Kitchen")],
        )
        platform = make_platform(False)

        accessories = await platform.accessories()

        mock_cloud_api.list_lights.assert_awaited_once_with("all")
        assert [a.device_id for a in accessories] == ["d073d5000002", "d073d5000001"]
        assert [a.name for a in accessories] == ["Hall", "Kitchen"]
        assert platform.found_accessories == accessories

    @pytest.mark.asyncio
    async def test_empty_listing(self, make_platform, mock_cloud_api):
        """Test an account without lights yields no accessories"""
        mock_cloud_api.list_lights.return_value = "[]"

        assert await make_platform(False).accessories() == []

    @pytest.mark.asyncio
    async def test_unexpected_body_raises(self, make_platform, mock_cloud_api):
        """Test a non-list body is rejected"""
        mock_cloud_api.list_lights.return_value = json.dumps({"error": "Invalid token"})

        with pytest.raises(TypeError):
            await make_platform(False).accessories()

    @pytest.mark.asyncio
    async def test_accessories_share_platform_clients(self, make_platform, mock_lan_client):
        """Test every accessory uses the platform's single LAN client"""
        platform = make_platform("true")

        accessories = await platform.accessories()

        assert all(a.platform.lan_client is mock_lan_client for a in accessories)


class TestPlatformLifecycle:
    """Tests for start and stop"""

    @pytest.mark.asyncio
    async def test_start_runs_lan_discovery(self, make_platform, mock_lan_client):
        """Test start opens the LAN client and waits for discovery"""
        await make_platform("get").start(discovery_wait=0.5)

        mock_lan_client.start.assert_awaited_once()
        mock_lan_client.discover.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    async def test_start_without_lan_is_noop(self, make_platform, mock_lan_client):
        """Test start does nothing when LAN is disabled"""
        await make_platform(False).start()

        mock_lan_client.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_stop_closes_everything(self, make_platform, mock_cloud_api, mock_lan_client):
        """Test stop releases subscriptions and closes both clients"""
        platform = make_platform("true")
        accessories = await platform.accessories()
        assert accessories[0].subscribed

        await platform.stop()

        assert not accessories[0].subscribed
        assert mock_lan_client.callbacks == []
        mock_lan_client.stop.assert_awaited_once()
        mock_cloud_api.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_without_lan(self, make_platform, mock_cloud_api):
        """Test stop only closes the cloud client when LAN is disabled"""
        mock_cloud_api.close = AsyncMock()

        await make_platform(False).stop()

        mock_cloud_api.close.assert_awaited_once()

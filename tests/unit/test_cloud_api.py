"""Unit tests for cloud_api module.

Tests LifxCloudAPI session handling, request construction and error propagation.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from lifx_bridge.cloud_api import LifxCloudAPI


def mock_response(text="[]", raise_exc=None):
    response = MagicMock()
    response.text = AsyncMock(return_value=text)
    response.raise_for_status = MagicMock(side_effect=raise_exc)
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=response)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


@pytest.fixture
def api_with_session():
    """LifxCloudAPI whose session is a MagicMock with a configurable request()."""
    api = LifxCloudAPI("secret-token")
    session = MagicMock()
    session.closed = False
    session.request = MagicMock(return_value=mock_response())
    api.http_session = session
    return api, session


class TestLifxCloudAPIInitialization:
    """Tests for LifxCloudAPI initialization"""

    def test_init_defaults(self):
        """Test defaults and bearer header"""
        api = LifxCloudAPI("secret-token")

        assert api.api_base == "https://api.lifx.com/v1/"
        assert api.http_session is None
        assert api.headers == {"Authorization": "Bearer secret-token"}

    def test_init_adds_trailing_slash(self):
        """Test a custom base URL is normalized"""
        api = LifxCloudAPI("t", api_base="http://localhost:8080/v1", api_timeout=2)

        assert api.api_base == "http://localhost:8080/v1/"
        assert api.api_timeout == 2

    def test_init_requires_token(self):
        """Test an empty token is rejected"""
        with pytest.raises(ValueError, match="access token"):
            LifxCloudAPI("")


class TestLifxCloudAPISession:
    """Tests for session management"""

    @pytest.mark.asyncio
    async def test_check_session_creates_session_with_auth(self):
        """Test the session carries the Authorization header"""
        with patch("lifx_bridge.cloud_api.aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = MagicMock(closed=False)
            api = LifxCloudAPI("secret-token")

            session = await api._check_session()

            mock_session_class.assert_called_once_with(headers={"Authorization": "Bearer secret-token"})
            assert api.http_session is session

    @pytest.mark.asyncio
    async def test_check_session_reuses_open_session(self, api_with_session):
        """Test an open session is not recreated"""
        api, session = api_with_session
        with patch("lifx_bridge.cloud_api.aiohttp.ClientSession") as mock_session_class:
            assert await api._check_session() is session
            mock_session_class.assert_not_called()

    @pytest.mark.asyncio
    async def test_close_session(self, api_with_session):
        """Test close closes and forgets the session"""
        api, session = api_with_session
        session.close = AsyncMock()

        await api.close()

        session.close.assert_awaited_once()
        assert api.http_session is None


class TestLifxCloudAPIRequests:
    """Tests for the HTTP calls"""

    @pytest.mark.asyncio
    async def test_list_lights(self, api_with_session):
        """Test list_lights GETs the selector and returns the body"""
        api, session = api_with_session
        session.request.return_value = mock_response('[{"id": "d073d5000001"}]')

        body = await api.list_lights("id:d073d5000001")

        assert body == '[{"id": "d073d5000001"}]'
        args, kwargs = session.request.call_args
        assert args == ("GET", "https://api.lifx.com/v1/lights/id:d073d5000001")
        assert kwargs["json"] is None

    @pytest.mark.asyncio
    async def test_set_power(self, api_with_session):
        """Test set_power PUTs power and duration"""
        api, session = api_with_session

        await api.set_power("id:abc", "off", 0)

        args, kwargs = session.request.call_args
        assert args == ("PUT", "https://api.lifx.com/v1/lights/id:abc/state")
        assert kwargs["json"] == {"power": "off", "duration": 0}

    @pytest.mark.asyncio
    async def test_set_power_rejects_other_values(self, api_with_session):
        """Test only "on" and "off" are accepted"""
        api, session = api_with_session

        with pytest.raises(ValueError, match="power must be"):
            await api.set_power("all", "dim")

        session.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_color(self, api_with_session):
        """Test set_color PUTs the color string"""
        api, session = api_with_session

        await api.set_color("id:abc", "hue:120", 0)

        _, kwargs = session.request.call_args
        assert kwargs["json"] == {"color": "hue:120", "duration": 0}

    @pytest.mark.asyncio
    async def test_set_color_power_on(self, api_with_session):
        """Test power_on adds power to the payload"""
        api, session = api_with_session

        await api.set_color("id:abc", "brightness:0.5", 1, power_on=True)

        _, kwargs = session.request.call_args
        assert kwargs["json"] == {"color": "brightness:0.5", "duration": 1, "power": "on"}

    @pytest.mark.asyncio
    async def test_breathe_effect(self, api_with_session):
        """Test breathe_effect POSTs the effect parameters"""
        api, session = api_with_session

        await api.breathe_effect("id:abc", "green", None, 1, 3, False, True, 0.5)

        args, kwargs = session.request.call_args
        assert args == ("POST", "https://api.lifx.com/v1/lights/id:abc/effects/breathe")
        assert kwargs["json"] == {
            "color": "green",
            "period": 1,
            "cycles": 3,
            "persist": False,
            "power_on": True,
            "peak": 0.5,
        }

    @pytest.mark.asyncio
    async def test_breathe_effect_from_color(self, api_with_session):
        """Test from_color is only sent when given"""
        api, session = api_with_session

        await api.breathe_effect("all", "red", from_color="blue")

        _, kwargs = session.request.call_args
        assert kwargs["json"]["from_color"] == "blue"

    @pytest.mark.asyncio
    async def test_http_error_propagates(self, api_with_session):
        """Test HTTP errors are logged and re-raised"""
        api, session = api_with_session
        error = aiohttp.ClientResponseError(MagicMock(), (), status=401, message="Unauthorized")
        session.request.return_value = mock_response(raise_exc=error)

        with pytest.raises(aiohttp.ClientResponseError) as exc_info:
            await api.list_lights()

        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_connection_error_propagates(self, api_with_session):
        """Test connection errors are re-raised"""
        api, session = api_with_session
        session.request.side_effect = aiohttp.ClientConnectionError("unreachable")

        with pytest.raises(aiohttp.ClientConnectionError):
            await api.list_lights()

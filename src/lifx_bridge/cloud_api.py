"""LIFX HTTP API client.

Thin wrapper around the v1 cloud API. Every call returns the raw response
body text; callers decide how to parse it.
"""

from __future__ import annotations

from typing import Any

import aiohttp

from lifx_bridge.const import LIFX_API_BASE, LIFX_API_TIMEOUT
from lifx_bridge.logging_abstraction import get_logger

logger = get_logger(__name__)


class LifxCloudAPI:
    """LIFX cloud API client bound to one access token.

    Selectors follow the API's syntax: `all`, `id:d073d5000001`,
    `label:Kitchen`, etc.
    """

    lp: str = "LifxCloudAPI"
    http_session: aiohttp.ClientSession | None = None

    def __init__(
        self,
        access_token: str,
        api_base: str = LIFX_API_BASE,
        api_timeout: float = LIFX_API_TIMEOUT,
    ) -> None:
        if not access_token:
            msg = "An access token is required for the LIFX cloud API"
            raise ValueError(msg)
        self.access_token: str = access_token
        self.api_base: str = api_base if api_base.endswith("/") else f"{api_base}/"
        self.api_timeout: float = api_timeout
        self.http_session = None

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def close(self) -> None:
        """Close the aiohttp session if it exists and is not closed."""
        lp = f"{self.lp}:close:"
        if self.http_session and not self.http_session.closed:
            logger.debug("%s Closing aiohttp ClientSession", lp)
            await self.http_session.close()
        self.http_session = None

    async def _check_session(self) -> aiohttp.ClientSession:
        """Return the open session, creating one if needed."""
        if not self.http_session or self.http_session.closed:
            logger.debug("%s:_check_session: Creating new aiohttp ClientSession", self.lp)
            self.http_session = aiohttp.ClientSession(headers=self.headers)
        return self.http_session

    async def _request(
        self,
        method: str,
        path: str,
        lp: str,
        payload: dict[str, Any] | None = None,
    ) -> str:
        sesh = await self._check_session()
        url = f"{self.api_base}{path}"
        logger.debug("%s %s %s", lp, method, url, extra={"payload": payload} if payload else None)
        try:
            async with sesh.request(
                method,
                url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.api_timeout),
            ) as r:
                r.raise_for_status()
                return await r.text()
        except aiohttp.ClientResponseError as e:
            logger.exception(
                "%s HTTP error from LIFX cloud",
                lp,
                extra={"status": e.status, "url": url, "error": e.message},
            )
            raise
        except aiohttp.ClientError:
            logger.exception("%s Request to LIFX cloud failed", lp, extra={"url": url})
            raise

    async def list_lights(self, selector: str = "all") -> str:
        """List lights matching `selector`; the body is a JSON array."""
        return await self._request("GET", f"lights/{selector}", f"{self.lp}:list_lights:")

    async def set_power(self, selector: str, power: str, duration: float = 0) -> str:
        """Turn matching lights "on" or "off"."""
        if power not in ("on", "off"):
            msg = f"power must be 'on' or 'off', got: {power!r}"
            raise ValueError(msg)
        return await self._request(
            "PUT",
            f"lights/{selector}/state",
            f"{self.lp}:set_power:",
            {"power": power, "duration": duration},
        )

    async def set_color(
        self,
        selector: str,
        color: str,
        duration: float = 0,
        power_on: bool | None = None,
    ) -> str:
        """Apply a color string such as `hue:120` or `brightness:0.5`."""
        payload: dict[str, Any] = {"color": color, "duration": duration}
        if power_on:
            payload["power"] = "on"
        return await self._request("PUT", f"lights/{selector}/state", f"{self.lp}:set_color:", payload)

    async def breathe_effect(
        self,
        selector: str,
        color: str,
        from_color: str | None = None,
        period: float = 1,
        cycles: float = 1,
        persist: bool = False,
        power_on: bool = True,
        peak: float = 0.5,
    ) -> str:
        """Slowly fade between two colors."""
        payload: dict[str, Any] = {
            "color": color,
            "period": period,
            "cycles": cycles,
            "persist": persist,
            "power_on": power_on,
            "peak": peak,
        }
        if from_color is not None:
            payload["from_color"] = from_color
        return await self._request(
            "POST",
            f"lights/{selector}/effects/breathe",
            f"{self.lp}:breathe_effect:",
            payload,
        )

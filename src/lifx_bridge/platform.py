"""Platform: shared clients plus accessory discovery from the cloud listing."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from lifx_bridge.accessory import LifxBulbAccessory
from lifx_bridge.cloud_api import LifxCloudAPI
from lifx_bridge.const import LIFX_LAN_DISCOVERY_WAIT
from lifx_bridge.exceptions import ConfigError
from lifx_bridge.lan import LifxLanClient
from lifx_bridge.logging_abstraction import get_logger
from lifx_bridge.structs import (
    CloudAPIProtocol,
    LanClientProtocol,
    LanMode,
    LightRecord,
    PlatformConfig,
)

logger = get_logger(__name__)


class LifxPlatform:
    """Context shared by every accessory: configuration, cloud client, LAN client.

    The LAN client only exists when `use_lan` is not disabled.
    """

    lp: str = "LifxPlatform:"

    def __init__(
        self,
        config: PlatformConfig,
        cloud_api: CloudAPIProtocol | None = None,
        lan_client: LanClientProtocol | None = None,
    ) -> None:
        self.config: PlatformConfig = config
        self.cloud_api: CloudAPIProtocol = cloud_api or LifxCloudAPI(config.access_token)
        self.lan_client: LanClientProtocol | None = None
        if config.use_lan is not LanMode.DISABLED:
            self.lan_client = lan_client or LifxLanClient()
        self.found_accessories: list[LifxBulbAccessory] = []
        logger.info(
            "%s Initialized",
            self.lp,
            extra={"name": config.name, "use_lan": config.use_lan.value},
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], **kwargs: Any) -> LifxPlatform:
        """Build a platform from a homebridge-style platform block."""
        try:
            config = PlatformConfig.model_validate(dict(data))
        except ValidationError as e:
            raise ConfigError(str(e)) from e
        return cls(config, **kwargs)

    async def start(self, discovery_wait: float = LIFX_LAN_DISCOVERY_WAIT) -> None:
        """Start the LAN client, if any, and give bulbs time to answer."""
        if self.lan_client is None:
            return
        await self.lan_client.start()
        found = await self.lan_client.discover(discovery_wait)
        logger.info("%s LAN client ready", self.lp, extra={"bulbs": found})

    async def accessories(self) -> list[LifxBulbAccessory]:
        """Fetch all lights from the cloud and build one accessory each, in response order."""
        lp = f"{self.lp}accessories:"
        logger.info("%s Fetching LIFX devices.", lp)

        body = await self.cloud_api.list_lights("all")
        bulbs: object = json.loads(body)
        if not isinstance(bulbs, list):
            msg = "Invalid response format: expected a list of lights"
            raise TypeError(msg)

        found = [LifxBulbAccessory(self, LightRecord.model_validate(bulb)) for bulb in bulbs]
        self.found_accessories = found
        logger.info("%s Found %d light(s)", lp, len(found))
        return found

    async def stop(self) -> None:
        for accessory in self.found_accessories:
            accessory.close()
        if self.lan_client is not None:
            await self.lan_client.stop()
        await self.cloud_api.close()
        logger.info("%s Stopped", self.lp)

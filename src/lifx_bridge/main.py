from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any

import dotenv
import uvloop
import yaml

from lifx_bridge.const import (
    FOREIGN_LOG_FORMATTER,
    LIFX_CONFIG_FILE,
    LIFX_DEBUG,
    LIFX_HASS_TOPIC,
    LIFX_MQTT_HOST,
    LIFX_MQTT_PASS,
    LIFX_MQTT_PORT,
    LIFX_MQTT_USER,
    LIFX_REFRESH_INTERVAL,
    LIFX_TOPIC,
    LIFX_VERSION,
)
from lifx_bridge.correlation import correlation_scope, ensure_correlation_id
from lifx_bridge.exceptions import ConfigError
from lifx_bridge.logging_abstraction import get_logger
from lifx_bridge.mqtt import HomeAssistantBridge
from lifx_bridge.platform import LifxPlatform

logger = get_logger(__name__)

# Quiet third-party loggers
_foreign_handler = logging.StreamHandler(sys.stdout)
_foreign_handler.setFormatter(FOREIGN_LOG_FORMATTER)
for _name in ("aiomqtt", "mqtt", "aiohttp", "aiolifx"):
    _foreign_logger = logging.getLogger(_name)
    _foreign_logger.setLevel(logging.WARNING)
    _foreign_logger.propagate = False
    _foreign_logger.addHandler(_foreign_handler)


def load_config(config_file: Path) -> dict[str, Any]:
    """Read the LIFX platform block from a YAML file.

    The file may hold the block itself, or a homebridge-style `platforms:`
    list from which the first `platform: LIFx` entry is used.
    """
    logger.debug("Parsing config file: %s", config_file)
    try:
        with config_file.open(encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.exception("Failed to parse config file: %s", config_file)
        raise ConfigError(f"cannot read {config_file}") from e

    if not isinstance(config_data, dict):
        raise ConfigError(f"{config_file} must contain a mapping")

    platforms = config_data.get("platforms")
    if isinstance(platforms, list):
        for block in platforms:
            if isinstance(block, dict) and str(block.get("platform", "")).casefold() == "lifx":
                return dict(block)
        raise ConfigError(f"no 'platform: LIFx' block in {config_file}")
    return dict(config_data)


def apply_env_overrides(block: dict[str, Any]) -> dict[str, Any]:
    merged = dict(block)
    token = os.environ.get("LIFX_ACCESS_TOKEN")
    if token:
        merged["access_token"] = token
    use_lan = os.environ.get("LIFX_USE_LAN")
    if use_lan:
        merged["use_lan"] = use_lan
    return merged


def bridge_settings() -> dict[str, Any]:
    """MQTT settings, read after any --env file has been loaded."""
    return {
        "host": os.environ.get("LIFX_MQTT_HOST", LIFX_MQTT_HOST),
        "port": os.environ.get("LIFX_MQTT_PORT", LIFX_MQTT_PORT),
        "username": os.environ.get("LIFX_MQTT_USER", LIFX_MQTT_USER),
        "password": os.environ.get("LIFX_MQTT_PASS", LIFX_MQTT_PASS),
        "topic": os.environ.get("LIFX_TOPIC", LIFX_TOPIC),
        "ha_topic": os.environ.get("LIFX_HASS_TOPIC", LIFX_HASS_TOPIC),
        "refresh_interval": float(os.environ.get("LIFX_REFRESH_INTERVAL", LIFX_REFRESH_INTERVAL)),
    }


async def run(platform: LifxPlatform, bridge: HomeAssistantBridge) -> None:
    """Start the platform and host, then wait for SIGINT/SIGTERM."""
    _ = ensure_correlation_id("main")
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)
    logger.debug("Signal handlers configured for SIGINT & SIGTERM")

    bridge_task: asyncio.Task[None] | None = None
    try:
        await platform.start()
        _ = await bridge.load_accessories()
        bridge_task = asyncio.create_task(bridge.start(), name="HomeAssistantBridge_START")
        _ = await stop_event.wait()
        logger.info("Shutting down LIFX bridge...")
    finally:
        await bridge.stop()
        if bridge_task is not None and not bridge_task.done():
            _ = bridge_task.cancel()
            _ = await asyncio.gather(bridge_task, return_exceptions=True)
        await platform.stop()


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="LIFX bridge for Home Assistant")
    _ = parser.add_argument("-D", "--debug", action="store_true", help="Enable debug mode")
    _ = parser.add_argument("--config", help="Path to the YAML platform config", default=None, type=Path)
    _ = parser.add_argument("--env", help="Path to the environment file", default=None, type=Path)
    args = parser.parse_args(argv)

    if args.debug or LIFX_DEBUG:
        logger.set_level(logging.DEBUG)
        logger.info("Debug logging enabled")

    if args.env:
        env_path = args.env.expanduser().resolve()
        if not env_path.exists():
            logger.error("Environment file not found", extra={"path": str(env_path)})
        elif dotenv.load_dotenv(env_path, override=True):
            logger.info("Environment variables loaded", extra={"source": str(env_path)})
        else:
            logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})
    return args


def build(args: argparse.Namespace) -> tuple[LifxPlatform, HomeAssistantBridge]:
    config_path: Path = (args.config or Path(os.environ.get("LIFX_CONFIG_FILE", LIFX_CONFIG_FILE))).expanduser()
    block: dict[str, Any] = {}
    if config_path.exists():
        logger.info("Loading configuration", extra={"config_path": str(config_path)})
        block = load_config(config_path)
    else:
        logger.warning("Configuration file not found, using environment only", extra={"config_path": str(config_path)})
    platform = LifxPlatform.from_mapping(apply_env_overrides(block))
    return platform, HomeAssistantBridge(platform, **bridge_settings())


def main() -> None:
    """Main entry point for the LIFX bridge."""
    with correlation_scope("main"):
        logger.info("Starting LIFX bridge", extra={"version": LIFX_VERSION})
        args = parse_cli()
        try:
            platform, bridge = build(args)
        except ConfigError:
            logger.exception("Cannot start without a valid configuration")
            sys.exit(1)

        try:
            uvloop.run(run(platform, bridge))
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
        except Exception as e:
            logger.exception("Fatal error in main loop", extra={"error": str(e)})
            sys.exit(1)
        else:
            logger.info("LIFX bridge stopped gracefully")


if __name__ == "__main__":
    main()

"""Services and characteristics handed to the host.

Accessories describe themselves as a list of `Service` objects. Each
`Characteristic` carries async get/set handlers registered by the accessory
and a last-known value. Hosts read through `get()`, write through `set()`,
and listen for `update_value()` pushes that arrive without a request.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any, Self

from lifx_bridge.logging_abstraction import get_logger

logger = get_logger(__name__)

GetHandler = Callable[[], Awaitable[Any]]
SetHandler = Callable[[Any], Awaitable[None]]
ValueListener = Callable[["Characteristic", Any], None]


class CharacteristicType(StrEnum):
    ON = "On"
    BRIGHTNESS = "Brightness"
    HUE = "Hue"
    SATURATION = "Saturation"
    NAME = "Name"
    MANUFACTURER = "Manufacturer"
    MODEL = "Model"
    SERIAL_NUMBER = "SerialNumber"


class ServiceType(StrEnum):
    LIGHTBULB = "Lightbulb"
    ACCESSORY_INFORMATION = "AccessoryInformation"


REQUIRED_CHARACTERISTICS: dict[ServiceType, tuple[CharacteristicType, ...]] = {
    ServiceType.LIGHTBULB: (CharacteristicType.ON,),
    ServiceType.ACCESSORY_INFORMATION: (
        CharacteristicType.NAME,
        CharacteristicType.MANUFACTURER,
        CharacteristicType.MODEL,
        CharacteristicType.SERIAL_NUMBER,
    ),
}


class Characteristic:
    """One host-visible property with optional get/set wiring."""

    def __init__(self, ctype: CharacteristicType, value: Any = None) -> None:
        self.type: CharacteristicType = ctype
        self.value: Any = value
        self._get_handler: GetHandler | None = None
        self._set_handler: SetHandler | None = None
        self._listeners: list[ValueListener] = []

    def __repr__(self) -> str:
        return f"Characteristic({self.type.value}={self.value!r})"

    def on(self, event: str, handler: GetHandler | SetHandler) -> Self:
        """Register the "get" or "set" handler. Returns self for chaining."""
        if event == "get":
            self._get_handler = handler  # type: ignore[assignment]
        elif event == "set":
            self._set_handler = handler  # type: ignore[assignment]
        else:
            msg = f"Unknown characteristic event: {event!r}"
            raise ValueError(msg)
        return self

    @property
    def writable(self) -> bool:
        return self._set_handler is not None

    async def get(self) -> Any:
        """Ask the accessory for the current value; static values are returned as-is."""
        if self._get_handler is None:
            return self.value
        self.value = await self._get_handler()
        return self.value

    async def set(self, value: Any) -> None:
        """Forward a host write to the accessory."""
        if self._set_handler is None:
            msg = f"{self.type.value} is read-only"
            raise PermissionError(msg)
        await self._set_handler(value)
        self.value = value

    def update_value(self, value: Any) -> None:
        """Record a value pushed by the accessory and notify host listeners.

        Set handlers are not invoked.
        """
        self.value = value
        for listener in list(self._listeners):
            try:
                listener(self, value)
            except Exception:
                logger.exception("Characteristic listener failed", extra={"characteristic": self.type.value})

    def subscribe(self, listener: ValueListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe


class Service:
    """A group of characteristics, e.g. a light bulb or identification data."""

    def __init__(self, service_type: ServiceType, display_name: str = "") -> None:
        self.type: ServiceType = service_type
        self.display_name: str = display_name
        self.characteristics: dict[CharacteristicType, Characteristic] = {}
        for ctype in REQUIRED_CHARACTERISTICS.get(service_type, ()):
            self.characteristics[ctype] = Characteristic(ctype)
        if CharacteristicType.NAME in self.characteristics:
            self.characteristics[CharacteristicType.NAME].value = display_name

    def __repr__(self) -> str:
        return f"Service({self.type.value}, {self.display_name!r}, {list(self.characteristics)})"

    @classmethod
    def lightbulb(cls, name: str) -> Service:
        return cls(ServiceType.LIGHTBULB, name)

    @classmethod
    def accessory_information(cls, name: str = "") -> Service:
        return cls(ServiceType.ACCESSORY_INFORMATION, name)

    def has_characteristic(self, ctype: CharacteristicType) -> bool:
        return ctype in self.characteristics

    def get_characteristic(self, ctype: CharacteristicType) -> Characteristic:
        try:
            return self.characteristics[ctype]
        except KeyError:
            msg = f"{self.type.value} service has no {ctype.value} characteristic"
            raise KeyError(msg) from None

    def add_characteristic(self, ctype: CharacteristicType) -> Characteristic:
        if ctype in self.characteristics:
            msg = f"{self.type.value} service already has {ctype.value}"
            raise ValueError(msg)
        characteristic = Characteristic(ctype)
        self.characteristics[ctype] = characteristic
        return characteristic

    def set_characteristic(self, ctype: CharacteristicType, value: Any) -> Self:
        """Set a static value, adding the characteristic if needed. Returns self for chaining."""
        characteristic = self.characteristics.get(ctype) or self.add_characteristic(ctype)
        characteristic.value = value
        return self

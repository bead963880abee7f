"""Unit tests for the host service/characteristic model."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from lifx_bridge.hap import Characteristic, CharacteristicType, Service, ServiceType


class TestCharacteristic:
    """Tests for Characteristic"""

    @pytest.mark.asyncio
    async def test_get_without_handler_returns_value(self):
        """Test static characteristics answer with their stored value"""
        assert await Characteristic(CharacteristicType.MODEL, "LIFX A19").get() == "LIFX A19"

    @pytest.mark.asyncio
    async def test_get_calls_handler_and_caches(self):
        """Test get stores the handler result"""
        characteristic = Characteristic(CharacteristicType.BRIGHTNESS).on("get", AsyncMock(return_value=42))

        assert await characteristic.get() == 42
        assert characteristic.value == 42

    @pytest.mark.asyncio
    async def test_set_calls_handler(self):
        """Test set forwards the value and records it"""
        handler = AsyncMock()
        characteristic = Characteristic(CharacteristicType.ON).on("set", handler)

        await characteristic.set(True)

        handler.assert_awaited_once_with(True)
        assert characteristic.value is True
        assert characteristic.writable is True

    @pytest.mark.asyncio
    async def test_set_failure_keeps_old_value(self):
        """Test a failing set handler leaves the value unchanged"""
        characteristic = Characteristic(CharacteristicType.ON, False).on("set", AsyncMock(side_effect=TimeoutError))

        with pytest.raises(TimeoutError):
            await characteristic.set(True)

        assert characteristic.value is False

    @pytest.mark.asyncio
    async def test_set_read_only(self):
        """Test writing a characteristic without set handler fails"""
        with pytest.raises(PermissionError):
            await Characteristic(CharacteristicType.NAME).set("x")

    def test_unknown_event(self):
        """Test only get and set can be registered"""
        with pytest.raises(ValueError, match="Unknown characteristic event"):
            Characteristic(CharacteristicType.ON).on("change", AsyncMock())

    def test_update_value_notifies_without_set(self):
        """Test pushes reach listeners but never the set handler"""
        set_handler = AsyncMock()
        listener = MagicMock()
        characteristic = Characteristic(CharacteristicType.HUE).on("set", set_handler)
        unsubscribe = characteristic.subscribe(listener)

        characteristic.update_value(120)
        unsubscribe()
        characteristic.update_value(240)

        listener.assert_called_once_with(characteristic, 120)
        set_handler.assert_not_called()
        assert characteristic.value == 240

    def test_listener_errors_are_contained(self):
        """Test a failing listener does not stop the next one"""
        characteristic = Characteristic(CharacteristicType.ON)
        good = MagicMock()
        characteristic.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        characteristic.subscribe(good)

        characteristic.update_value(True)

        good.assert_called_once_with(characteristic, True)


class TestService:
    """Tests for Service"""

    def test_lightbulb_has_on(self):
        """Test a light bulb service starts with On only"""
        service = Service.lightbulb("Kitchen")

        assert service.type is ServiceType.LIGHTBULB
        assert list(service.characteristics) == [CharacteristicType.ON]

    def test_information_has_required_fields(self):
        """Test identification service starts with name, manufacturer, model and serial"""
        service = Service.accessory_information("Kitchen")

        assert set(service.characteristics) == {
            CharacteristicType.NAME,
            CharacteristicType.MANUFACTURER,
            CharacteristicType.MODEL,
            CharacteristicType.SERIAL_NUMBER,
        }
        assert service.get_characteristic(CharacteristicType.NAME).value == "Kitchen"

    def test_add_duplicate(self):
        """Test adding an existing characteristic fails"""
        with pytest.raises(ValueError, match="already has"):
            Service.lightbulb("x").add_characteristic(CharacteristicType.ON)

    def test_get_missing(self):
        """Test looking up a missing characteristic raises KeyError"""
        with pytest.raises(KeyError):
            Service.lightbulb("x").get_characteristic(CharacteristicType.HUE)

    def test_set_characteristic_chains(self):
        """Test set_characteristic adds as needed and returns the service"""
        service = Service.lightbulb("x").set_characteristic(CharacteristicType.HUE, 10)

        assert service.get_characteristic(CharacteristicType.HUE).value == 10

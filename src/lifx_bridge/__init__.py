"""LIFX accessory bridge for home-automation hosts."""

__version__ = "0.3.0"

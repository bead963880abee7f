"""Scale conversions between host units and the LAN protocol's 16-bit values.

Host units are percent (0-100) for brightness and saturation and degrees
(0-360) for hue. Rounding is half-up so results match what the LIFX apps
display.
"""

from __future__ import annotations

import math

from lifx_bridge.const import HSBK_MAX
from lifx_bridge.structs import LightProperty

HOST_SCALE: dict[LightProperty, int] = {
    LightProperty.HUE: 360,
    LightProperty.SATURATION: 100,
    LightProperty.BRIGHTNESS: 100,
}


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def raw_to_host(prop: LightProperty, raw: int) -> int:
    """16-bit value -> percent or degrees."""
    return round_half_up(raw * HOST_SCALE[prop] / HSBK_MAX)


def host_to_raw(prop: LightProperty, value: float) -> int:
    """Percent or degrees -> 16-bit value, wrapped to 16 bits."""
    return round_half_up(value * HSBK_MAX / HOST_SCALE[prop]) & 0xFFFF


def format_number(value: float) -> str:
    """Render a number for a cloud color string without a trailing `.0`.

    Fractions keep every significant digit: 123.4567 stays `123.4567`.
    """
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))

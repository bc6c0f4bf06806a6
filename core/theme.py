# core/theme.py
from enum import Enum
from typing import Dict, NamedTuple, Union


class ColorScheme(str, Enum):
    GREEN_RED = "greenRed" # Verde = sube, rojo = baja
    RED_GREEN = "redGreen" # Convención asiática: rojo = sube


class ColorPalette(NamedTuple):
    up: str
    down: str
    up_alpha: str
    down_alpha: str


COLOR_SCHEMES: Dict[ColorScheme, ColorPalette] = {
    ColorScheme.GREEN_RED: ColorPalette(
        up="#26a69a",
        down="#ef5350",
        up_alpha="rgba(38, 166, 154, 0.5)",
        down_alpha="rgba(239, 83, 80, 0.5)",
    ),
    ColorScheme.RED_GREEN: ColorPalette(
        up="#ef5350",
        down="#26a69a",
        up_alpha="rgba(239, 83, 80, 0.5)",
        down_alpha="rgba(38, 166, 154, 0.5)",
    ),
}


def parse_color_scheme(value: Union[str, ColorScheme]) -> ColorScheme:
    if isinstance(value, ColorScheme):
        return value
    try:
        return ColorScheme(value)
    except ValueError:
        raise ValueError(f"Esquema de color desconocido: '{value}'") from None


def get_palette(value: Union[str, ColorScheme]) -> ColorPalette:
    return COLOR_SCHEMES[parse_color_scheme(value)]

# core/i18n.py
"""
Tablas de traducción para las etiquetas del gráfico (tooltip, timeframes, meses).

Búsqueda pura, sin estado. Dos locales soportados: 'zh-TW' y 'en'.
"""
from enum import Enum
from typing import Dict, Union

from core.timeframes import Timeframe


class Locale(str, Enum):
    ZH_TW = "zh-TW"
    EN = "en"


TRANSLATIONS: Dict[Locale, Dict[str, str]] = {
    Locale.ZH_TW: {
        # Nav
        "appName": "CryptoChart",
        "notifications": "通知",
        # Tooltip del gráfico
        "time": "時間",
        "open": "開盤",
        "close": "收盤",
        "high": "最高",
        "low": "最低",
        "change": "漲跌幅",
        "volume": "成交量",
        # Timeframes
        "15m": "15 分鐘",
        "1h": "1 小時",
        "4h": "4 小時",
        "1d": "1 天",
        # Meses
        "jan": "1月", "feb": "2月", "mar": "3月", "apr": "4月",
        "may": "5月", "jun": "6月", "jul": "7月", "aug": "8月",
        "sep": "9月", "oct": "10月", "nov": "11月", "dec": "12月",
    },
    Locale.EN: {
        "appName": "CryptoChart",
        "notifications": "Notifications",
        "time": "Time",
        "open": "Open",
        "close": "Close",
        "high": "High",
        "low": "Low",
        "change": "Change",
        "volume": "Volume",
        "15m": "15m",
        "1h": "1H",
        "4h": "4H",
        "1d": "1D",
        "jan": "Jan", "feb": "Feb", "mar": "Mar", "apr": "Apr",
        "may": "May", "jun": "Jun", "jul": "Jul", "aug": "Aug",
        "sep": "Sep", "oct": "Oct", "nov": "Nov", "dec": "Dec",
    },
}

LOCALE_LABELS: Dict[Locale, str] = {
    Locale.ZH_TW: "繁中",
    Locale.EN: "EN",
}

# Etiquetas por defecto de los timeframes (las del locale zh-TW)
TIME_FRAME_LABELS: Dict[Timeframe, str] = {tf: TRANSLATIONS[Locale.ZH_TW][tf.value] for tf in Timeframe}

TOOLTIP_KEYS = ("time", "open", "close", "high", "low", "change", "volume")


def parse_locale(value: Union[str, Locale]) -> Locale:
    if isinstance(value, Locale):
        return value
    try:
        return Locale(value)
    except ValueError:
        raise ValueError(f"Locale desconocido: '{value}'. Válidos: {[loc.value for loc in Locale]}") from None


def get_translation(locale: Union[str, Locale], key: Union[str, Timeframe]) -> str:
    """
    Devuelve el texto para 'key' en el locale indicado.

    Raises:
        ValueError: locale desconocido.
        KeyError: clave inexistente en la tabla.
    """
    table = TRANSLATIONS[parse_locale(locale)]
    lookup_key = key.value if isinstance(key, Timeframe) else key
    if lookup_key not in table:
        raise KeyError(f"Clave de traducción desconocida: '{lookup_key}'")
    return table[lookup_key]


def tooltip_labels(locale: Union[str, Locale]) -> Dict[str, str]:
    return {key: get_translation(locale, key) for key in TOOLTIP_KEYS}


def get_time_scale_localization(locale: Union[str, Locale]) -> Dict[str, str]:
    """Opciones de localización de la escala temporal para el colaborador de renderizado."""
    if parse_locale(locale) is Locale.ZH_TW:
        return {"locale": "zh-TW", "dateFormat": "yyyy-MM-dd"}
    return {"locale": "en-US", "dateFormat": "yyyy-MM-dd"}

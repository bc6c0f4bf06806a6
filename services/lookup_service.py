# services/lookup_service.py
import logging
from datetime import datetime, timezone
from typing import List, Optional, Union

from core.theme import ColorScheme, get_palette, parse_color_scheme
from core.timeframes import Timeframe, TimePoint, parse_timeframe, to_epoch_ms
from schemas.chart import Bar, Dataset, PriceSummary, TooltipMetrics, VolumeBar

logger = logging.getLogger(__name__)

# Formato de la etiqueta temporal del tooltip según el timeframe (UTC)
_TIME_LABEL_FORMATS = {
    Timeframe.D1: "%Y-%m-%d",
    Timeframe.H4: "%Y-%m-%d %H:00",
    Timeframe.H1: "%Y-%m-%d %H:00",
    Timeframe.M15: "%Y-%m-%d %H:%M",
}


def format_time(time: TimePoint, timeframe: Union[str, Timeframe]) -> str:
    """Etiqueta legible para el tooltip ('2026-01-01', '2026-01-01 04:00', ...)."""
    moment = datetime.fromtimestamp(to_epoch_ms(time) / 1000, tz=timezone.utc)
    return moment.strftime(_TIME_LABEL_FORMATS[parse_timeframe(timeframe)])


def _percent_change(current: float, previous: float) -> float:
    # Sin referencia válida la variación se fija en 0 en lugar de propagar inf/NaN
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def is_up(bar: Bar, color_scheme: Union[str, ColorScheme] = ColorScheme.GREEN_RED) -> bool:
    """
    Clasificación 'sube' según el esquema: en redGreen se invierte la semántica
    (close < open cuenta como 'up'), no solo el color.
    """
    if parse_color_scheme(color_scheme) is ColorScheme.GREEN_RED:
        return bar.close >= bar.open
    return bar.close < bar.open


def resolve(dataset: Dataset, cursor_time: TimePoint,
            color_scheme: Union[str, ColorScheme] = ColorScheme.GREEN_RED) -> Optional[TooltipMetrics]:
    """
    Métricas del tooltip para la vela cuyo tiempo coincide exactamente con el cursor.

    Returns:
        TooltipMetrics, o None si no hay vela en ese instante (el tooltip no se muestra).
    """
    try:
        cursor_epoch = to_epoch_ms(cursor_time)
    except ValueError:
        logger.debug(f"Cursor con tiempo no interpretable: {cursor_time!r}")
        return None

    index = next((i for i, bar in enumerate(dataset.candlestick) if bar.epoch_ms == cursor_epoch), None)
    if index is None:
        return None

    bar = dataset.candlestick[index]
    previous_close = dataset.candlestick[index - 1].close if index > 0 else bar.open

    volume = next((vol.value for vol in dataset.volume if vol.epoch_ms == cursor_epoch), 0.0)

    return TooltipMetrics(
        time=bar.time,
        time_label=format_time(bar.time, dataset.timeframe),
        open=bar.open,
        high=bar.high,
        low=bar.low,
        close=bar.close,
        volume=volume,
        previous_close=previous_close,
        change_percent=_percent_change(bar.close, previous_close),
        is_up=is_up(bar, color_scheme),
    )


def price_summary(dataset: Dataset,
                  color_scheme: Union[str, ColorScheme] = ColorScheme.GREEN_RED) -> PriceSummary:
    """Último precio del dataset y su variación respecto al cierre anterior."""
    bars = dataset.candlestick
    latest = bars[-1].close if bars else 0.0
    previous = bars[-2].close if len(bars) >= 2 else 0.0
    change = latest - previous

    if parse_color_scheme(color_scheme) is ColorScheme.GREEN_RED:
        is_positive = change >= 0
    else:
        is_positive = change < 0

    return PriceSummary(
        latest_price=latest,
        previous_price=previous,
        price_change=change,
        price_change_percent=_percent_change(latest, previous),
        is_positive=is_positive,
    )


def colorize_volume(dataset: Dataset,
                    color_scheme: Union[str, ColorScheme] = ColorScheme.GREEN_RED) -> List[VolumeBar]:
    """
    Asigna a cada barra de volumen el color translúcido del esquema según la
    dirección bruta (close >= open) de la vela alineada.
    """
    palette = get_palette(color_scheme)
    colored: List[VolumeBar] = []
    for index, vol in enumerate(dataset.volume):
        if index >= len(dataset.candlestick):
            colored.append(vol)
            continue
        candle = dataset.candlestick[index]
        color = palette.up_alpha if candle.close >= candle.open else palette.down_alpha
        colored.append(vol.model_copy(update={"color": color}))
    return colored

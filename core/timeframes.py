# core/timeframes.py
import numbers
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, NamedTuple, Union

# Un punto temporal es 'YYYY-MM-DD' (timeframe diario) o segundos Unix (intradía)
TimePoint = Union[int, str]

# Ancla fija de la ventana inicial: 2026-01-01T00:00:00Z
FIXED_BASE_DATE_MS: int = int(datetime(2026, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)

DAILY_DATE_FORMAT = "%Y-%m-%d"


class Timeframe(str, Enum):
    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"


class TimeframeSpec(NamedTuple):
    interval_ms: int
    volatility: float


TIMEFRAME_SPECS: Dict[Timeframe, TimeframeSpec] = {
    Timeframe.M15: TimeframeSpec(interval_ms=15 * 60 * 1000, volatility=0.005),
    Timeframe.H1: TimeframeSpec(interval_ms=60 * 60 * 1000, volatility=0.01),
    Timeframe.H4: TimeframeSpec(interval_ms=4 * 60 * 60 * 1000, volatility=0.02),
    Timeframe.D1: TimeframeSpec(interval_ms=24 * 60 * 60 * 1000, volatility=0.03),
}

# Orden de los botones de timeframe en la barra del gráfico
TIMEFRAME_ORDER = [Timeframe.M15, Timeframe.H1, Timeframe.H4, Timeframe.D1]


def parse_timeframe(value: Union[str, Timeframe]) -> Timeframe:
    """
    Convierte un string ('15m', '1h', '4h', '1d') a Timeframe.

    Raises:
        ValueError: si el timeframe no existe (error del programador, no recuperable).
    """
    if isinstance(value, Timeframe):
        return value
    try:
        return Timeframe(value)
    except ValueError:
        raise ValueError(f"Timeframe desconocido: '{value}'. Válidos: {[tf.value for tf in Timeframe]}") from None


def get_timeframe_spec(value: Union[str, Timeframe]) -> TimeframeSpec:
    return TIMEFRAME_SPECS[parse_timeframe(value)]


def to_epoch_ms(time: TimePoint) -> int:
    """
    Resuelve un TimePoint a milisegundos Unix (UTC).

    Las fechas 'YYYY-MM-DD' se interpretan como medianoche UTC; los enteros
    son segundos Unix.
    """
    if isinstance(time, bool):
        raise ValueError(f"TimePoint inválido: {time!r}")
    if isinstance(time, numbers.Integral):
        return int(time) * 1000
    if isinstance(time, str):
        day = datetime.strptime(time, DAILY_DATE_FORMAT).replace(tzinfo=timezone.utc)
        return int(day.timestamp()) * 1000
    raise ValueError(f"TimePoint inválido: {time!r}")


def to_time_point(timeframe: Union[str, Timeframe], epoch_ms: int) -> TimePoint:
    """Representación temporal propia del timeframe para un instante dado."""
    if parse_timeframe(timeframe) is Timeframe.D1:
        return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).strftime(DAILY_DATE_FORMAT)
    return epoch_ms // 1000

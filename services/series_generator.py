# services/series_generator.py
import logging
import math
from typing import List, Tuple, Union

from core.timeframes import (
    FIXED_BASE_DATE_MS,
    Timeframe,
    get_timeframe_spec,
    parse_timeframe,
    to_time_point,
)
from schemas.chart import Bar, Dataset, VolumeBar, VolumeColorTag
from services.random_source import seeded_random

logger = logging.getLogger(__name__)

DEFAULT_BASE_PRICE = 100000.0
DEFAULT_WINDOW_COUNT = 60
# Cada vela consume 4 valores aleatorios: cambio, high, low y volumen
DRAWS_PER_BAR = 4
VOLUME_RANGE = 50000
VOLUME_FLOOR = 10000


def _round2(value: float) -> float:
    """Redondeo a 2 decimales 'half-up' (no bancario) para igualar la salida histórica."""
    return math.floor(value * 100 + 0.5) / 100


def _initial_seed(timeframe: Timeframe, seed_offset: int) -> int:
    return ord(timeframe.value[0]) * 1000 + seed_offset


def _synthesize(timeframe: Timeframe, epochs_ms: List[int], seed: int,
                start_price: float) -> Tuple[List[Bar], List[VolumeBar]]:
    """
    Algoritmo común de síntesis de velas.

    Recorre 'epochs_ms' en orden (siempre ascendente) manteniendo la
    continuidad de precio: el open de cada vela es el close (sin redondear)
    de la anterior.
    """
    volatility = get_timeframe_spec(timeframe).volatility
    bars: List[Bar] = []
    volumes: List[VolumeBar] = []
    current_price = start_price

    for epoch_ms in epochs_ms:
        time_value = to_time_point(timeframe, epoch_ms)

        # 1. Cambio porcentual de la vela
        seed += 1
        change = (seeded_random(seed) - 0.5) * 2 * volatility
        open_price = current_price
        close_price = open_price * (1 + change)
        # 2-3. Mechas por encima/debajo del cuerpo
        seed += 1
        high_price = max(open_price, close_price) * (1 + seeded_random(seed) * volatility * 0.5)
        seed += 1
        low_price = min(open_price, close_price) * (1 - seeded_random(seed) * volatility * 0.5)

        bar = Bar(
            time=time_value,
            open=_round2(open_price),
            high=_round2(high_price),
            low=_round2(low_price),
            close=_round2(close_price),
        )
        bars.append(bar)

        # 4. Volumen
        seed += 1
        volumes.append(VolumeBar(
            time=time_value,
            value=math.floor(seeded_random(seed) * VOLUME_RANGE) + VOLUME_FLOOR,
            color_tag=VolumeColorTag.UP if bar.close >= bar.open else VolumeColorTag.DOWN,
        ))

        current_price = close_price

    return bars, volumes


def seed_window(timeframe: Union[str, Timeframe],
                base_price: float = DEFAULT_BASE_PRICE,
                count: int = DEFAULT_WINDOW_COUNT) -> Dataset:
    """
    Genera la ventana inicial de 'count' velas consecutivas a partir del ancla
    fija (2026-01-01 UTC), avanzando hacia adelante en el tiempo.

    Raises:
        ValueError: si el timeframe es desconocido.
    """
    tf = parse_timeframe(timeframe)
    if count <= 0:
        return Dataset(timeframe=tf)

    interval = get_timeframe_spec(tf).interval_ms
    epochs = [FIXED_BASE_DATE_MS + i * interval for i in range(count)]
    bars, volumes = _synthesize(tf, epochs, _initial_seed(tf, 0), base_price)
    logger.debug(f"Ventana inicial generada para {tf.value}: {len(bars)} velas desde {bars[0].time}")
    return Dataset(timeframe=tf, candlestick=bars, volume=volumes)


def extend_backward(timeframe: Union[str, Timeframe],
                    before_epoch_ms: int,
                    count: int,
                    seed_offset: int,
                    base_price: float = DEFAULT_BASE_PRICE) -> Dataset:
    """
    Genera 'count' velas que terminan justo un intervalo antes de 'before_epoch_ms'.

    La salida va de la más antigua a la más reciente, de modo que se puede
    concatenar delante del dataset existente sin romper el orden temporal.
    El precio base se re-aleatoriza (0.9x - 1.1x de 'base_price'); no está
    anclado al primer precio del dataset existente.

    Args:
        timeframe: '15m', '1h', '4h' o '1d'.
        before_epoch_ms: Instante (ms UTC) de la vela más antigua ya cargada.
        count: Número de velas a generar (<= 0 devuelve dataset vacío).
        seed_offset: Desplazamiento de semilla para que cada lote sea distinto.
        base_price: Precio de referencia sobre el que se aleatoriza el inicio.

    Raises:
        ValueError: si el timeframe es desconocido.
    """
    tf = parse_timeframe(timeframe)
    if count <= 0:
        return Dataset(timeframe=tf)

    interval = get_timeframe_spec(tf).interval_ms
    seed = _initial_seed(tf, seed_offset)
    start_price = base_price * (0.9 + seeded_random(seed) * 0.2)
    epochs = [before_epoch_ms - i * interval for i in range(count, 0, -1)]
    bars, volumes = _synthesize(tf, epochs, seed, start_price)
    logger.debug(f"Historial generado para {tf.value}: {len(bars)} velas [{bars[0].time} -> {bars[-1].time}] "
                 f"(seed_offset={seed_offset})")
    return Dataset(timeframe=tf, candlestick=bars, volume=volumes)

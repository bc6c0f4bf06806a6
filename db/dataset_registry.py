# db/dataset_registry.py
import logging
import pandas as pd
from typing import Dict, List, Optional, Union

from core.config import settings
from core.timeframes import Timeframe, parse_timeframe
from schemas.chart import Bar, Dataset, VolumeBar
from services.series_generator import seed_window

logger = logging.getLogger(__name__)

OHLCV_COLUMNS = ["open", "high", "low", "close", "volume"]


class DatasetRegistry:
    """
    Repositorio en memoria con el dataset actual de cada timeframe.

    Pertenece a una sesión de gráfico: se crea al iniciar la sesión y se
    descarta al cerrarla. Además del dataset guarda, por timeframe, el
    contador de cargas hacia atrás que usa el controlador de paginación.
    """
    def __init__(self, base_price: Optional[float] = None,
                 window_counts: Optional[Dict[str, int]] = None):
        self.base_price = base_price if base_price is not None else settings.BASE_PRICE
        self.window_counts = dict(window_counts if window_counts is not None else settings.SEED_WINDOW_COUNTS)
        self._datasets: Dict[Timeframe, Dataset] = {}
        self._load_counts: Dict[Timeframe, int] = {}

    def pristine(self, timeframe: Union[str, Timeframe]) -> Dataset:
        """Ventana sembrada por defecto para el timeframe (sin historial cargado)."""
        tf = parse_timeframe(timeframe)
        count = self.window_counts.get(tf.value, 0)
        return seed_window(tf, self.base_price, count)

    def get(self, timeframe: Union[str, Timeframe]) -> Dataset:
        """Devuelve el dataset del timeframe, sembrándolo en el primer acceso."""
        tf = parse_timeframe(timeframe)
        dataset = self._datasets.get(tf)
        if dataset is None:
            dataset = self.pristine(tf)
            self._datasets[tf] = dataset
            self._load_counts[tf] = 0
            logger.info(f"Dataset {tf.value} creado con {len(dataset)} velas.")
        return dataset

    def has(self, timeframe: Union[str, Timeframe]) -> bool:
        return parse_timeframe(timeframe) in self._datasets

    def replace(self, timeframe: Union[str, Timeframe], dataset: Dataset) -> None:
        """Reemplazo completo (cambio de timeframe). Reinicia el contador de cargas."""
        tf = parse_timeframe(timeframe)
        if dataset.timeframe is not tf:
            raise ValueError(f"El dataset es de {dataset.timeframe.value}, no de {tf.value}")
        self._datasets[tf] = self._validated(dataset)
        self._load_counts[tf] = 0
        logger.info(f"Dataset {tf.value} reemplazado ({len(dataset)} velas). Contador de cargas reiniciado.")

    def prepend(self, timeframe: Union[str, Timeframe],
                older_bars: List[Bar], older_volumes: List[VolumeBar]) -> Dataset:
        """
        Concatena velas más antiguas delante del dataset actual.

        El llamador garantiza que 'older_bars' son anteriores a la primera vela
        existente y vienen ordenadas; aun así el resultado se re-valida.

        Raises:
            ValueError: si velas y volúmenes no tienen la misma longitud.
        """
        tf = parse_timeframe(timeframe)
        if len(older_bars) != len(older_volumes):
            raise ValueError(f"prepend({tf.value}): {len(older_bars)} velas vs {len(older_volumes)} volúmenes")

        current = self.get(tf)
        merged = Dataset(
            timeframe=tf,
            candlestick=list(older_bars) + current.candlestick,
            volume=list(older_volumes) + current.volume,
        )
        merged = self._validated(merged)
        self._datasets[tf] = merged
        logger.info(f"Añadidas {len(older_bars)} velas antiguas a {tf.value}. Total: {len(merged)}")
        return merged

    def load_count(self, timeframe: Union[str, Timeframe]) -> int:
        return self._load_counts.get(parse_timeframe(timeframe), 0)

    def next_load_count(self, timeframe: Union[str, Timeframe]) -> int:
        """Incrementa y devuelve el contador de cargas (1, 2, 3...) del timeframe."""
        tf = parse_timeframe(timeframe)
        self._load_counts[tf] = self._load_counts.get(tf, 0) + 1
        return self._load_counts[tf]

    def discard(self, timeframe: Union[str, Timeframe]) -> None:
        tf = parse_timeframe(timeframe)
        self._datasets.pop(tf, None)
        self._load_counts.pop(tf, None)

    def clear(self) -> None:
        self._datasets.clear()
        self._load_counts.clear()

    def get_ohlcv_data(self, timeframe: Union[str, Timeframe]) -> Optional[pd.DataFrame]:
        """
        Exporta el dataset del timeframe como DataFrame.

        Returns:
            DataFrame con índice 'timestamp' (DatetimeIndex UTC, ascendente) y
            columnas OHLCV, o None si el dataset está vacío.
        """
        dataset = self.get(timeframe)
        if dataset.is_empty():
            logger.warning(f"Dataset {dataset.timeframe.value} vacío; no hay datos que exportar.")
            return None

        df = pd.DataFrame({
            "timestamp": pd.to_datetime([bar.epoch_ms for bar in dataset.candlestick], unit="ms", utc=True),
            "open": [bar.open for bar in dataset.candlestick],
            "high": [bar.high for bar in dataset.candlestick],
            "low": [bar.low for bar in dataset.candlestick],
            "close": [bar.close for bar in dataset.candlestick],
            "volume": [vol.value for vol in dataset.volume],
        }).set_index("timestamp")
        return df[OHLCV_COLUMNS]

    @staticmethod
    def _validated(dataset: Dataset) -> Dataset:
        """Garantiza orden ascendente y alineación vela/volumen."""
        if len(dataset.candlestick) != len(dataset.volume):
            raise ValueError(f"Dataset {dataset.timeframe.value} desalineado: "
                             f"{len(dataset.candlestick)} velas vs {len(dataset.volume)} volúmenes")
        if dataset.is_time_ascending() and dataset.is_aligned():
            return dataset

        logger.warning(f"Dataset {dataset.timeframe.value} fuera de orden; reordenando por tiempo.")
        bars = sorted(dataset.candlestick, key=lambda b: b.epoch_ms)
        volumes = sorted(dataset.volume, key=lambda v: v.epoch_ms)
        resorted = Dataset(timeframe=dataset.timeframe, candlestick=bars, volume=volumes)
        if not resorted.is_aligned():
            raise ValueError(f"Dataset {dataset.timeframe.value}: velas y volúmenes no comparten tiempos")
        return resorted

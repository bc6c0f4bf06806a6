# schemas/chart.py
from pydantic import BaseModel, Field, model_validator
from enum import Enum
from typing import Dict, List, Optional

from core.config import settings
from core.i18n import Locale
from core.theme import ColorScheme
from core.timeframes import Timeframe, TimePoint, to_epoch_ms


class VolumeColorTag(str, Enum):
    UP = "up"
    DOWN = "down"


class Bar(BaseModel):
    """Vela OHLC de un intervalo de tiempo."""
    time: TimePoint
    open: float
    high: float
    low: float
    close: float

    @model_validator(mode="after")
    def check_price_bounds(self):
        if self.low > min(self.open, self.close):
            raise ValueError(f"low ({self.low}) debe ser <= min(open, close) en {self.time}")
        if self.high < max(self.open, self.close):
            raise ValueError(f"high ({self.high}) debe ser >= max(open, close) en {self.time}")
        return self

    @property
    def epoch_ms(self) -> int:
        return to_epoch_ms(self.time)

    class Config:
        frozen = True


class VolumeBar(BaseModel):
    time: TimePoint
    value: float = Field(..., ge=0)
    color_tag: Optional[VolumeColorTag] = None
    color: Optional[str] = None # Color de display, solo lo rellena colorize_volume

    @property
    def epoch_ms(self) -> int:
        return to_epoch_ms(self.time)

    class Config:
        frozen = True


class Dataset(BaseModel):
    """
    Velas + volúmenes de un timeframe, ordenados ascendentemente y alineados
    por índice (volume[i].time == candlestick[i].time).
    """
    timeframe: Timeframe
    candlestick: List[Bar] = Field(default_factory=list)
    volume: List[VolumeBar] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.candlestick)

    def is_empty(self) -> bool:
        return not self.candlestick

    def earliest_epoch_ms(self) -> Optional[int]:
        if not self.candlestick:
            return None
        return self.candlestick[0].epoch_ms

    def is_time_ascending(self) -> bool:
        epochs = [bar.epoch_ms for bar in self.candlestick]
        return all(a < b for a, b in zip(epochs, epochs[1:]))

    def is_aligned(self) -> bool:
        if len(self.candlestick) != len(self.volume):
            return False
        return all(bar.epoch_ms == vol.epoch_ms for bar, vol in zip(self.candlestick, self.volume))


class TooltipMetrics(BaseModel):
    """Métricas derivadas para la vela bajo el cursor (crosshair)."""
    time: TimePoint
    time_label: str
    open: float
    high: float
    low: float
    close: float
    volume: float
    previous_close: float
    change_percent: float
    is_up: bool


class PriceSummary(BaseModel):
    """Resumen de cabecera: último precio y variación respecto a la vela anterior."""
    latest_price: float = 0.0
    previous_price: float = 0.0
    price_change: float = 0.0
    price_change_percent: float = 0.0
    is_positive: bool = True


class ChartConfig(BaseModel):
    """Entradas inmutables del host al instanciar el gráfico."""
    symbol: str = Field(default_factory=lambda: settings.CHART_SYMBOL, min_length=1)
    height: int = Field(default_factory=lambda: settings.CHART_HEIGHT, gt=0)
    default_timeframe: Timeframe = Field(default_factory=lambda: Timeframe(settings.DEFAULT_TIMEFRAME))
    color_scheme: ColorScheme = Field(default_factory=lambda: ColorScheme(settings.DEFAULT_COLOR_SCHEME))
    locale: Locale = Field(default_factory=lambda: Locale(settings.DEFAULT_LOCALE))

    class Config:
        frozen = True


class ChartSnapshot(BaseModel):
    """Todo lo que el colaborador de renderizado necesita para dibujar un frame."""
    symbol: str
    height: int
    timeframe: Timeframe
    color_scheme: ColorScheme
    locale: Locale
    candlestick: List[Bar]
    volume: List[VolumeBar] # Ya coloreado según el esquema
    summary: PriceSummary
    tooltip: Optional[TooltipMetrics] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    timeframe_labels: Dict[str, str] = Field(default_factory=dict)
    time_scale: Dict[str, str] = Field(default_factory=dict)

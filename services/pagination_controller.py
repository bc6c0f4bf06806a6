# services/pagination_controller.py
import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Union

from core.config import settings
from core.timeframes import Timeframe, parse_timeframe
from db.dataset_registry import DatasetRegistry
from schemas.chart import Dataset
from services.series_generator import extend_backward

logger = logging.getLogger(__name__)

SEED_OFFSET_STEP = 1000 # seed_offset = load_count * 1000


class PaginationState(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    COOLDOWN = "COOLDOWN"


class PaginationController:
    """
    Carga historial hacia atrás cuando el viewport se acerca al borde izquierdo.

    Máquina de estados IDLE -> LOADING -> COOLDOWN -> IDLE sobre el event loop
    de asyncio: como máximo una extensión en curso por gráfico. Los eventos
    que llegan en LOADING o COOLDOWN se descartan (no se encolan).

    Todas las acciones diferidas (espera inicial, carga, cooldown) son
    TimerHandle propios que dispose() cancela.
    """
    def __init__(self, registry: DatasetRegistry, timeframe: Union[str, Timeframe],
                 batch_size: Optional[int] = None,
                 edge_threshold: Optional[float] = None,
                 settle_delay: Optional[float] = None,
                 cooldown: Optional[float] = None,
                 on_loaded: Optional[Callable[[Timeframe, Dataset], None]] = None):
        self.registry = registry
        self.timeframe = parse_timeframe(timeframe)
        self.batch_size = batch_size if batch_size is not None else settings.HISTORY_BATCH_SIZE
        self.edge_threshold = edge_threshold if edge_threshold is not None else settings.LEFT_EDGE_THRESHOLD
        self.settle_delay = settle_delay if settle_delay is not None else settings.SETTLE_DELAY_SECONDS
        self.cooldown = cooldown if cooldown is not None else settings.COOLDOWN_SECONDS
        self.on_loaded = on_loaded

        self.state = PaginationState.IDLE
        self._ready = False
        self._disposed = False
        self._settle_handle: Optional[asyncio.TimerHandle] = None
        self._load_handle: Optional[asyncio.Handle] = None
        self._cooldown_handle: Optional[asyncio.TimerHandle] = None

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def mount(self, timeframe: Union[str, Timeframe, None] = None) -> None:
        """
        (Re)inicia el controlador para un timeframe: cancela lo pendiente y
        arranca la espera inicial antes de aceptar cargas (evita disparos
        durante el auto-ajuste inicial del gráfico).
        """
        if self._disposed:
            raise RuntimeError("PaginationController ya liberado; crea uno nuevo.")
        loop = asyncio.get_running_loop()
        self._cancel_handles()
        if timeframe is not None:
            self.timeframe = parse_timeframe(timeframe)
        self.state = PaginationState.IDLE
        self._ready = False

        if self.settle_delay <= 0:
            self._ready = True
        else:
            self._settle_handle = loop.call_later(self.settle_delay, self._mark_ready)
        logger.debug(f"Paginación montada para {self.timeframe.value} (espera {self.settle_delay}s)")

    def on_visible_range_change(self, from_index: Optional[float]) -> bool:
        """
        Notificación de cambio del rango lógico visible.

        Args:
            from_index: Índice lógico del borde izquierdo visible (None si no hay rango).

        Returns:
            True si el evento disparó una carga de historial.
        """
        if self._disposed or from_index is None:
            return False
        if self.state is not PaginationState.IDLE:
            logger.debug(f"Evento de viewport ignorado en estado {self.state.value}")
            return False
        if not self._ready or not (from_index < self.edge_threshold):
            return False
        if self.registry.get(self.timeframe).is_empty():
            return False

        self.state = PaginationState.LOADING
        # Diferir la generación al siguiente tick del loop
        self._load_handle = asyncio.get_running_loop().call_soon(self._load_more, self.timeframe)
        logger.debug(f"Borde izquierdo alcanzado (from={from_index}); carga programada para {self.timeframe.value}")
        return True

    def dispose(self) -> None:
        """Libera el controlador: ninguna acción pendiente llegará a ejecutarse."""
        self._disposed = True
        self._cancel_handles()
        self.state = PaginationState.IDLE
        self._ready = False
        self.on_loaded = None
        logger.debug(f"PaginationController ({self.timeframe.value}) liberado.")

    # --- Callbacks internos del loop ---
    def _mark_ready(self) -> None:
        self._settle_handle = None
        self._ready = True

    def _load_more(self, timeframe: Timeframe) -> None:
        self._load_handle = None
        if self._disposed or timeframe is not self.timeframe or self.state is not PaginationState.LOADING:
            return

        earliest_epoch = self.registry.get(timeframe).earliest_epoch_ms()
        if earliest_epoch is None:
            self.state = PaginationState.IDLE
            return

        load_count = self.registry.next_load_count(timeframe)
        history = extend_backward(
            timeframe,
            earliest_epoch,
            self.batch_size,
            load_count * SEED_OFFSET_STEP,
            self.registry.base_price,
        )
        merged = self.registry.prepend(timeframe, history.candlestick, history.volume)
        logger.info(f"Carga #{load_count} de historial {timeframe.value}: +{len(history)} velas (total {len(merged)})")

        self.state = PaginationState.COOLDOWN
        self._cooldown_handle = asyncio.get_running_loop().call_later(self.cooldown, self._end_cooldown)

        if self.on_loaded is not None:
            self.on_loaded(timeframe, merged)

    def _end_cooldown(self) -> None:
        self._cooldown_handle = None
        if not self._disposed:
            self.state = PaginationState.IDLE

    def _cancel_handles(self) -> None:
        for handle in (self._settle_handle, self._load_handle, self._cooldown_handle):
            if handle is not None:
                handle.cancel()
        self._settle_handle = None
        self._load_handle = None
        self._cooldown_handle = None

# services/chart_session.py
import logging
from typing import Callable, List, Optional, Union

from core.i18n import Locale, get_time_scale_localization, get_translation, parse_locale, tooltip_labels
from core.theme import ColorScheme, parse_color_scheme
from core.timeframes import TIMEFRAME_ORDER, Timeframe, TimePoint, parse_timeframe
from db.dataset_registry import DatasetRegistry
from schemas.chart import ChartConfig, ChartSnapshot, Dataset, TooltipMetrics
from services import lookup_service
from services.pagination_controller import PaginationController

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[ChartSnapshot], None]


class ChartSession:
    """
    Contexto de una instancia de gráfico: posee el registro de datasets, el
    controlador de paginación y el estado del cursor.

    El colaborador de renderizado envía eventos de viewport/crosshair y recibe
    ChartSnapshot a través de subscribe(). Uso típico:

        async with ChartSession(ChartConfig(symbol="ETH/USDT")) as session:
            session.subscribe(render)
            session.on_visible_range_change(2.0)

    Debe usarse dentro de un event loop de asyncio en ejecución: mount() y
    switch_timeframe() programan timers con asyncio.get_running_loop() y
    lanzan RuntimeError si se llaman desde código síncrono sin loop.
    """
    def __init__(self, config: Optional[ChartConfig] = None,
                 registry: Optional[DatasetRegistry] = None,
                 controller: Optional[PaginationController] = None):
        self.config = config or ChartConfig()
        # Solo se vacía al cerrar el registro creado por la propia sesión
        self._owns_registry = registry is None
        self.registry = registry or DatasetRegistry()
        self.timeframe: Timeframe = self.config.default_timeframe
        self.color_scheme: ColorScheme = self.config.color_scheme
        self.locale: Locale = self.config.locale
        self.controller = controller or PaginationController(self.registry, self.timeframe)
        self.controller.on_loaded = self._on_history_loaded

        self.tooltip: Optional[TooltipMetrics] = None
        self._cursor_time: Optional[TimePoint] = None
        self._listeners: List[SnapshotListener] = []
        self._mounted = False
        self._closed = False

    # --- Ciclo de vida ---
    async def __aenter__(self) -> "ChartSession":
        self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def mount(self) -> None:
        if self._closed:
            raise RuntimeError("ChartSession cerrada; no se puede volver a montar.")
        self.registry.get(self.timeframe)
        self.controller.mount(self.timeframe)
        self._mounted = True
        logger.info(f"Gráfico {self.config.symbol} montado en {self.timeframe.value} ({len(self.current_dataset())} velas)")
        self._notify()

    def close(self) -> None:
        """Libera timers y suscripciones; el estado no vuelve a mutar tras cerrar."""
        if self._closed:
            return
        self._closed = True
        self.controller.dispose()
        self._listeners.clear()
        if self._owns_registry:
            self.registry.clear()
        self.tooltip = None
        self._cursor_time = None
        logger.info(f"Gráfico {self.config.symbol} cerrado.")

    @property
    def is_closed(self) -> bool:
        return self._closed

    # --- Datos ---
    def current_dataset(self) -> Dataset:
        self._ensure_open()
        return self.registry.get(self.timeframe)

    def switch_timeframe(self, timeframe: Union[str, Timeframe]) -> Dataset:
        """
        Cambia de timeframe: vuelve a la ventana sembrada original, reinicia el
        contador de cargas y limpia el tooltip.
        """
        self._ensure_open()
        tf = parse_timeframe(timeframe)
        self.timeframe = tf
        self.registry.replace(tf, self.registry.pristine(tf))
        self.tooltip = None
        self._cursor_time = None
        if self._mounted:
            self.controller.mount(tf)
        logger.info(f"Timeframe cambiado a {tf.value}")
        self._notify()
        return self.current_dataset()

    # --- Eventos del colaborador de renderizado ---
    def on_visible_range_change(self, from_index: Optional[float]) -> bool:
        if self._closed:
            return False
        return self.controller.on_visible_range_change(from_index)

    def on_crosshair_move(self, time: Optional[TimePoint]) -> Optional[TooltipMetrics]:
        """Actualiza el tooltip para el tiempo bajo el cursor (None = cursor fuera)."""
        if self._closed:
            return None
        self._cursor_time = time
        self.tooltip = None if time is None else lookup_service.resolve(
            self.current_dataset(), time, self.color_scheme)
        self._notify()
        return self.tooltip

    # --- Nuevas entradas del host tras el montaje ---
    def set_color_scheme(self, color_scheme: Union[str, ColorScheme]) -> None:
        self._ensure_open()
        self.color_scheme = parse_color_scheme(color_scheme)
        self._refresh_tooltip()
        self._notify()

    def set_locale(self, locale: Union[str, Locale]) -> None:
        self._ensure_open()
        self.locale = parse_locale(locale)
        self._notify()

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Registra un listener; devuelve la función para darlo de baja."""
        self._ensure_open()
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def snapshot(self) -> ChartSnapshot:
        dataset = self.current_dataset()
        return ChartSnapshot(
            symbol=self.config.symbol,
            height=self.config.height,
            timeframe=self.timeframe,
            color_scheme=self.color_scheme,
            locale=self.locale,
            candlestick=dataset.candlestick,
            volume=lookup_service.colorize_volume(dataset, self.color_scheme),
            summary=lookup_service.price_summary(dataset, self.color_scheme),
            tooltip=self.tooltip,
            labels=tooltip_labels(self.locale),
            timeframe_labels={tf.value: get_translation(self.locale, tf) for tf in TIMEFRAME_ORDER},
            time_scale=get_time_scale_localization(self.locale),
        )

    # --- Internos ---
    def _on_history_loaded(self, timeframe: Timeframe, dataset: Dataset) -> None:
        if self._closed or timeframe is not self.timeframe:
            return
        self._refresh_tooltip()
        self._notify()

    def _refresh_tooltip(self) -> None:
        if self._cursor_time is None:
            self.tooltip = None
            return
        self.tooltip = lookup_service.resolve(self.current_dataset(), self._cursor_time, self.color_scheme)

    def _notify(self) -> None:
        if self._closed or not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("ChartSession cerrada.")

# main.py
from contextlib import asynccontextmanager
import logging
import asyncio

# Importar configuración y la sesión del gráfico
from core.config import settings
from schemas.chart import ChartConfig, ChartSnapshot
from services.chart_session import ChartSession

# --- Configuración de logging ---
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO), # DEBUG para ver cada evento de viewport
    format='%(asctime)s | %(levelname)-8s | %(name)-25s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logging.getLogger("asyncio").setLevel(logging.WARNING)
# --------------------------------

logger = logging.getLogger("main")


@asynccontextmanager
async def lifespan(config: ChartConfig):
    # Startup: montar el gráfico (siembra el dataset y arranca la espera inicial)
    logger.info(f"=== {settings.PROJECT_NAME} Iniciando ===")
    session = ChartSession(config)
    session.mount()
    try:
        yield session
    finally:
        # Shutdown: cancelar timers pendientes y descartar datasets
        logger.info("=== Iniciando Cierre ===")
        session.close()
        logger.info("=== Cierre Finalizado ===")


def log_snapshot(snapshot: ChartSnapshot) -> None:
    summary = snapshot.summary
    logger.info(f"[render] {snapshot.symbol} {snapshot.timeframe.value}: {len(snapshot.candlestick)} velas | "
                f"último {summary.latest_price:,.2f} ({summary.price_change_percent:+.2f}%)")
    if snapshot.tooltip:
        tip = snapshot.tooltip
        logger.info(f"[tooltip] {tip.time_label} O:{tip.open} H:{tip.high} L:{tip.low} C:{tip.close} "
                    f"V:{tip.volume:,.0f} {tip.change_percent:+.2f}%")


async def run_demo() -> None:
    """Simula al colaborador de renderizado: scroll hacia la izquierda y movimiento del cursor."""
    async with lifespan(ChartConfig()) as session:
        session.subscribe(log_snapshot)

        # Esperar a que termine la espera inicial del gráfico
        await asyncio.sleep(settings.SETTLE_DELAY_SECONDS + 0.1)

        for _ in range(3):
            # Dos eventos seguidos del mismo gesto: solo el primero carga historial
            session.on_visible_range_change(1.5)
            session.on_visible_range_change(0.5)
            await asyncio.sleep(settings.COOLDOWN_SECONDS + 0.1)

        first_bar = session.current_dataset().candlestick[0]
        session.on_crosshair_move(first_bar.time)

        session.switch_timeframe("4h")
        session.on_crosshair_move(session.current_dataset().candlestick[-1].time)


if __name__ == "__main__":
    asyncio.run(run_demo())

# core/config.py
import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from typing import Dict

# Cargar explícitamente .env si existe
load_dotenv()

# --- Definición de la Clase de Configuración ---
class Settings(BaseSettings):
    """
    Configuraciones del motor de datos del gráfico cargadas desde variables
    de entorno y/o el archivo .env.
    """
    PROJECT_NAME: str = "Candle Chart Engine"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # --- Configuración del host (valores iniciales del gráfico) ---
    CHART_SYMBOL: str = "BTC/USDT"
    CHART_HEIGHT: int = 500
    DEFAULT_TIMEFRAME: str = "1d"
    DEFAULT_COLOR_SCHEME: str = "greenRed"
    DEFAULT_LOCALE: str = "zh-TW"

    # --- Generador sintético ---
    BASE_PRICE: float = 100000.0
    # Número de velas de la ventana inicial por timeframe
    SEED_WINDOW_COUNTS: Dict[str, int] = {"1d": 30, "4h": 60, "1h": 72, "15m": 96}

    # --- Paginación hacia atrás ---
    HISTORY_BATCH_SIZE: int = 30
    LEFT_EDGE_THRESHOLD: float = 5.0
    SETTLE_DELAY_SECONDS: float = 0.5 # Espera tras montar antes de permitir cargas
    COOLDOWN_SECONDS: float = 0.5 # Tiempo muerto tras cada carga

    # --- Configuración interna de Pydantic ---
    class Config:
        case_sensitive = True
        env_file = ".env"
        env_file_encoding = 'utf-8'

# --- Creación de la instancia global (Fuera de la clase Settings) ---
settings = Settings()

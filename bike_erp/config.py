# ==============================================================================
# CONFIGURACIÓN DE LA TERMINAL
# ==============================================================================
# Todos los valores se leen de variables de entorno (o de un archivo .env en
# la raíz del proyecto). Ningún valor sensible queda hardcodeado.
# ==============================================================================

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: Optional[str] = None) -> Optional[str]:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int = 0) -> int:
    v = _get_env(*keys)
    if v is None:
        return default
    return int(v)


def _get_float(*keys: str, default: float = 0.0) -> float:
    v = _get_env(*keys)
    if v is None:
        return default
    return float(v)


def _get_bool(*keys: str, default: bool = False) -> bool:
    v = _get_env(*keys)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "si", "sí", "on")


@dataclass(frozen=True)
class Settings:
    # Backend REST
    api_base_url: str
    api_timeout: float
    api_retries: int

    # Almacenamiento local (equivalente al localStorage del navegador)
    data_dir: str

    # Zona horaria de la tienda (para "hoy" y "este mes")
    timezone: str

    # Reglas de crédito (supuestas, no vienen del backend)
    credit_window_days: int
    due_soon_days: int

    # Inventario
    low_stock_default: int

    # Flask
    secret_key: str
    production_mode: bool
    enable_profiling: bool


def load_settings() -> Settings:
    """Construye la configuración a partir del entorno actual."""
    return Settings(
        api_base_url=(_get_env("BIKE_ERP_API_BASE_URL", "VITE_API_BASE_URL",
                               default="http://localhost:4000/api") or "").rstrip("/"),
        api_timeout=_get_float("BIKE_ERP_API_TIMEOUT", default=10.0),
        api_retries=_get_int("BIKE_ERP_API_RETRIES", default=2),
        data_dir=_get_env("BIKE_ERP_DATA_DIR", default=str(ROOT_DIR / "data")) or "",
        timezone=_get_env("BIKE_ERP_TIMEZONE", default="America/Caracas") or "UTC",
        credit_window_days=_get_int("BIKE_ERP_CREDIT_WINDOW_DAYS", default=30),
        due_soon_days=_get_int("BIKE_ERP_DUE_SOON_DAYS", default=7),
        low_stock_default=_get_int("BIKE_ERP_LOW_STOCK_DEFAULT", default=5),
        secret_key=_get_env("BIKE_ERP_SECRET_KEY", default="") or "",
        production_mode=_get_bool("BIKE_ERP_PRODUCTION", default=False),
        enable_profiling=_get_bool("BIKE_ERP_PROFILING", default=True),
    )


settings = load_settings()

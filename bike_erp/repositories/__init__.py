# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Dos fuentes de datos:
#   - Backend REST (productos, clientes, ventas, categorías) vía ApiClient
#   - Almacén local JSON (carrito, sesión POS, tasas, usuario) vía LocalStore
# Los servicios dependen de estas clases, nunca de httpx ni de archivos.
# ==============================================================================

from .api_client import ApiClient, ApiError, ENDPOINTS
from .base import LocalStore
from .query_cache import QueryCache
from .rest_repository import RestRepository
from .product_repository import ProductRepository, CategoryRepository
from .client_repository import ClientRepository
from .sales_repository import SalesRepository, SaleItemRepository
from .settings_repository import (
    SettingsRepository,
    RATES_KEY,
    DATABASE_CONFIG_KEY,
    USER_KEY,
)
from .interfaces import IKeyValueStore, IRestRepository

__all__ = [
    'ApiClient',
    'ApiError',
    'ENDPOINTS',
    'LocalStore',
    'QueryCache',
    'RestRepository',
    'ProductRepository',
    'CategoryRepository',
    'ClientRepository',
    'SalesRepository',
    'SaleItemRepository',
    'SettingsRepository',
    'RATES_KEY',
    'DATABASE_CONFIG_KEY',
    'USER_KEY',
    'IKeyValueStore',
    'IRestRepository',
]

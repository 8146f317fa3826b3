# ==============================================================================
# REPOSITORIO DE CONFIGURACIONES LOCALES
# ==============================================================================
# Claves del almacén local que no pertenecen al carrito:
#   enhancedExchangeRates -> tasas BCV / paralela
#   databaseConfig        -> conexión que la terminal envía al backend
#   erp_user              -> usuario con sesión iniciada
# ==============================================================================

from typing import Any, Callable, Dict, Optional

from bike_erp.models import DatabaseConfig, ExchangeRates, User
from bike_erp.repositories.base import LocalStore

RATES_KEY = 'enhancedExchangeRates'
DATABASE_CONFIG_KEY = 'databaseConfig'
USER_KEY = 'erp_user'


class SettingsRepository:
    """
    Acceso tipado a las configuraciones persistidas en LocalStore.

    Formato en local_storage.json:
    {
        "enhancedExchangeRates": {"bcv": 36.2, "parallel": 35.5, ...},
        "databaseConfig": {"host": "localhost", "port": "5432", ...},
        "erp_user": {"id": "1", "email": "admin@bicicentro.com", ...}
    }
    """

    def __init__(self, store: LocalStore):
        self.store = store

    # =========================================================================
    # TASAS DE CAMBIO
    # =========================================================================

    def get_rates(self) -> ExchangeRates:
        """Tasas guardadas o las tasas por defecto si nunca se configuraron."""
        return ExchangeRates.from_dict(self.store.get(RATES_KEY))

    def save_rates(self, rates: ExchangeRates) -> None:
        self.store.set(RATES_KEY, rates.to_dict())

    def update_rates(self, mutator: Callable[[ExchangeRates], ExchangeRates]) -> ExchangeRates:
        """
        Lectura-modificación-escritura atómica de las tasas.

        Args:
            mutator: Recibe las tasas actuales y retorna las nuevas
        """
        stored = self.store.update(
            RATES_KEY,
            lambda current: mutator(ExchangeRates.from_dict(current)).to_dict(),
        )
        return ExchangeRates.from_dict(stored)

    # =========================================================================
    # CONFIGURACIÓN DE BASE DE DATOS
    # =========================================================================

    def get_database_config(self) -> DatabaseConfig:
        return DatabaseConfig.from_dict(self.store.get(DATABASE_CONFIG_KEY))

    def update_database_config(self, updates: Dict[str, Any]) -> DatabaseConfig:
        """
        Mezcla updates sobre la configuración guardada (o la de por defecto).

        Args:
            updates: Campos en formato JSON (host, port, maxConnections, ...)
        """
        def merge(current):
            merged = DatabaseConfig.from_dict(current).to_dict()
            merged.update({k: v for k, v in updates.items() if k in merged})
            return DatabaseConfig.from_dict(merged).to_dict()

        return DatabaseConfig.from_dict(self.store.update(DATABASE_CONFIG_KEY, merge))

    # =========================================================================
    # USUARIO CON SESIÓN
    # =========================================================================

    def get_current_user(self) -> Optional[User]:
        data = self.store.get(USER_KEY)
        if not isinstance(data, dict):
            return None
        return User.from_dict(data)

    def set_current_user(self, user: User) -> None:
        self.store.set(USER_KEY, user.to_dict())

    def clear_current_user(self) -> bool:
        return self.store.remove(USER_KEY)

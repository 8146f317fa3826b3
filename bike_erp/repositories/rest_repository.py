# ==============================================================================
# REPOSITORIO REST BASE
# ==============================================================================
# Clase base para las colecciones del backend (/products, /clients, ...).
# Lecturas pasan por la QueryCache; cada escritura invalida las consultas
# que dependen de esa colección.
# ==============================================================================

from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from bike_erp.repositories.api_client import ApiClient
from bike_erp.repositories.query_cache import QueryCache

T = TypeVar('T')


class RestRepository(Generic[T]):
    """
    Acceso CRUD a una colección del backend.

    Subclases definen:
        endpoint: ruta de la colección (ej: '/products')
        query_key: nombre de la consulta en caché (ej: 'products')
        entity_factory: función dict -> entidad
        invalidates: consultas extra a invalidar tras escribir
    """

    endpoint: str = ''
    query_key: str = ''
    entity_factory: Callable[[Dict[str, Any]], T]
    invalidates: Iterable[str] = ()
    stale_time: Optional[float] = None

    def __init__(self, api: ApiClient, cache: QueryCache):
        """
        Args:
            api: Cliente HTTP del backend
            cache: Caché de consultas compartida
        """
        self.api = api
        self.cache = cache

    # =========================================================================
    # LECTURA
    # =========================================================================

    def list_raw(self) -> List[Dict[str, Any]]:
        """
        Obtiene la colección tal como la devuelve el backend.
        Las filas que no son objetos JSON se descartan.

        Raises:
            ApiError: Si el backend falla tras los reintentos
        """
        data = self.cache.get_or_fetch(
            (self.query_key,),
            lambda: self.api.get(self.endpoint) or [],
            self.stale_time,
        )
        if not isinstance(data, list):
            return []
        return [row for row in data if isinstance(row, dict)]

    def list(self) -> List[T]:
        return [type(self).entity_factory(row) for row in self.list_raw()]

    def get(self, record_id: Any) -> Optional[T]:
        """Busca por id dentro de la colección (el backend no expone GET /:id)."""
        for row in self.list_raw():
            if str(row.get('id')) == str(record_id):
                return type(self).entity_factory(row)
        return None

    # =========================================================================
    # ESCRITURA
    # =========================================================================

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self.api.post(self.endpoint, data)
        self.invalidate()
        return result or {}

    def update(self, record_id: Any, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self.api.put(f"{self.endpoint}/{record_id}", data)
        self.invalidate()
        return result or {}

    def delete(self, record_id: Any) -> Dict[str, Any]:
        result = self.api.delete(f"{self.endpoint}/{record_id}")
        self.invalidate()
        return result or {}

    def invalidate(self) -> None:
        """Invalida la colección y las consultas que dependen de ella."""
        self.cache.invalidate(self.query_key, *self.invalidates)

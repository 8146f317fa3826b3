# ==============================================================================
# CACHÉ DE CONSULTAS
# ==============================================================================
# Guarda en memoria el resultado de cada consulta al backend bajo una clave
# (ej: ('products',) o ('reportsData', '2024-01-01', '2024-01-31')).
#
# - Una entrada vale mientras no supere su stale_time
# - Las mutaciones invalidan por nombre de consulta (primer elemento de la clave)
# - Un fetch fallido NO se guarda: el siguiente intento vuelve al backend
# ==============================================================================

import copy
import logging
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

QueryKey = Tuple[Hashable, ...]


class QueryCache:
    """
    Caché en memoria con vencimiento por tiempo.

    Uso:
        cache = QueryCache(default_stale_time=30)
        products = cache.get_or_fetch(('products',), lambda: api.get('/products'))
        cache.invalidate('products', 'dashboardStats')
    """

    def __init__(self, default_stale_time: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.default_stale_time = default_stale_time
        self._clock = clock
        self._entries: Dict[QueryKey, Tuple[float, Any]] = {}
        self._lock = threading.RLock()

    @staticmethod
    def _normalize(key: Any) -> QueryKey:
        if isinstance(key, tuple):
            return key
        return (key,)

    def get(self, key: Any, stale_time: Optional[float] = None) -> Any:
        """
        Obtiene una entrada vigente.

        Returns:
            Copia del valor o None si no existe o está vencida
        """
        key = self._normalize(key)
        limit = self.default_stale_time if stale_time is None else stale_time
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at > limit:
                del self._entries[key]
                return None
            return copy.deepcopy(value)

    def set(self, key: Any, value: Any) -> None:
        with self._lock:
            self._entries[self._normalize(key)] = (self._clock(), copy.deepcopy(value))

    def get_or_fetch(self, key: Any, fetcher: Callable[[], Any], stale_time: Optional[float] = None) -> Any:
        """
        Retorna la entrada vigente o ejecuta fetcher y guarda su resultado.

        Las excepciones de fetcher se propagan sin tocar la caché.
        """
        key = self._normalize(key)
        cached = self.get(key, stale_time)
        if cached is not None:
            return cached
        logger.debug("Caché: consultando %s", key)
        value = fetcher()
        self.set(key, value)
        return copy.deepcopy(value)

    def invalidate(self, *names: Hashable) -> int:
        """
        Invalida todas las entradas cuyo nombre de consulta esté en names.

        Returns:
            Cantidad de entradas eliminadas
        """
        wanted = set(names)
        with self._lock:
            doomed = [k for k in self._entries if k and k[0] in wanted]
            for k in doomed:
                del self._entries[k]
        if doomed:
            logger.debug("Caché: invalidadas %d entradas (%s)", len(doomed), ', '.join(map(str, names)))
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

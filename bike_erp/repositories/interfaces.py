# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
# Contratos que los servicios esperan de la capa de datos. Permiten pasar
# dobles de prueba o cambiar el backend REST por otra fuente sin tocar
# services/.
# ==============================================================================

from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class IKeyValueStore(Protocol):
    """Almacén local de la terminal (implementado por LocalStore)."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def remove(self, key: str) -> bool:
        ...

    def update(self, key: str, mutator: Callable[[Any], Any], default: Any = None) -> Any:
        """Lectura-modificación-escritura atómica."""
        ...

    def subscribe(self, key: str, callback: Callable[[str, Any], None]) -> Callable[[], None]:
        ...


@runtime_checkable
class IRestRepository(Protocol):
    """Colección del backend con caché (implementado por RestRepository)."""

    def list_raw(self) -> List[Dict[str, Any]]:
        ...

    def list(self) -> List[Any]:
        ...

    def get(self, record_id: Any) -> Optional[Any]:
        ...

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def update(self, record_id: Any, data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def delete(self, record_id: Any) -> Dict[str, Any]:
        ...

    def invalidate(self) -> None:
        ...

# ==============================================================================
# ALMACÉN LOCAL - Estado persistente de la terminal
# ==============================================================================
# Reemplaza al localStorage del navegador: un único archivo JSON con
# claves -> blobs JSON (carrito, sesión POS, tasas, usuario, config de BD).
#
# Es el ÚNICO dueño de ese estado. Todas las escrituras pasan por aquí:
# - lectura-modificación-escritura atómica con update()
# - escritura atómica a disco (archivo temporal + replace)
# - notificación a suscriptores después de cada escritura
# Así dos servicios que comparten una clave siempre ven los cambios del otro.
# ==============================================================================

import copy
import json
import os
import threading
from typing import Any, Callable, Dict, List

Subscriber = Callable[[str, Any], None]


class LocalStore:
    """
    Almacén clave/valor persistido en un archivo JSON.

    Formato de datos en local_storage.json:
    {
        "pos-cart": {"items": [...], "globalDiscount": 0, ...},
        "erp_user": {"id": "1", "email": "...", ...}
    }

    Los valores devueltos son copias: mutarlos no altera el almacén hasta
    que se llame a set() o update().
    """

    FILE_NAME = 'local_storage.json'

    # Lock global para evitar escrituras concurrentes al archivo
    _file_lock = threading.RLock()

    def __init__(self, base_path: str):
        """
        Inicializa el almacén.

        Args:
            base_path: Directorio donde vive local_storage.json
        """
        os.makedirs(base_path, exist_ok=True)
        self.file_path = os.path.join(base_path, self.FILE_NAME)
        self._subscribers: Dict[str, List[Subscriber]] = {}
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        if not os.path.exists(self.file_path):
            self._write_raw({})

    def _read_raw(self) -> Dict[str, Any]:
        """
        Lee el archivo completo.

        Returns:
            Diccionario de claves; vacío si el archivo está corrupto
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (json.JSONDecodeError, FileNotFoundError):
                return {}
            return data if isinstance(data, dict) else {}

    def _write_raw(self, data: Dict[str, Any]) -> None:
        """
        Escribe el archivo completo de forma atómica.

        Raises:
            OSError: Si hay error de escritura
        """
        with self._file_lock:
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except Exception:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise

    # =========================================================================
    # API CLAVE/VALOR
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """
        Obtiene el valor de una clave.

        Args:
            key: Clave a leer
            default: Valor si la clave no existe

        Returns:
            Copia del valor almacenado o default
        """
        data = self._read_raw()
        if key not in data:
            return default
        return copy.deepcopy(data[key])

    def set(self, key: str, value: Any) -> None:
        """Guarda un valor (write-through) y notifica a los suscriptores."""
        with self._file_lock:
            data = self._read_raw()
            data[key] = value
            self._write_raw(data)
        self._notify(key, copy.deepcopy(value))

    def remove(self, key: str) -> bool:
        """
        Elimina una clave.

        Returns:
            True si la clave existía
        """
        with self._file_lock:
            data = self._read_raw()
            if key not in data:
                return False
            del data[key]
            self._write_raw(data)
        self._notify(key, None)
        return True

    def update(self, key: str, mutator: Callable[[Any], Any], default: Any = None) -> Any:
        """
        Lectura-modificación-escritura atómica de una clave.

        El mutator recibe el valor actual (o default) y retorna el nuevo
        valor. Si lanza una excepción no se escribe nada.

        Returns:
            Nuevo valor almacenado
        """
        with self._file_lock:
            data = self._read_raw()
            current = copy.deepcopy(data.get(key, default))
            new_value = mutator(current)
            data[key] = new_value
            self._write_raw(data)
        self._notify(key, copy.deepcopy(new_value))
        return new_value

    def keys(self) -> List[str]:
        return list(self._read_raw().keys())

    # =========================================================================
    # SUSCRIPCIONES
    # =========================================================================

    def subscribe(self, key: str, callback: Subscriber) -> Callable[[], None]:
        """
        Registra un callback para cambios de una clave.

        El callback recibe (key, nuevo_valor); nuevo_valor es None si la
        clave fue eliminada.

        Returns:
            Función para cancelar la suscripción
        """
        with self._file_lock:
            self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            with self._file_lock:
                callbacks = self._subscribers.get(key, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def _notify(self, key: str, value: Any) -> None:
        with self._file_lock:
            callbacks = list(self._subscribers.get(key, []))
        for callback in callbacks:
            callback(key, value)

# ==============================================================================
# CLIENTE DEL BACKEND REST
# ==============================================================================
# Todas las llamadas al backend (Express/SQLite de la tienda) pasan por aquí.
# - Cuerpos JSON en ambos sentidos
# - Reintentos fijos (por defecto 2) ante errores de red o 5xx
# - Cualquier respuesta no exitosa lanza ApiError con status y status_text
# ==============================================================================

import logging
from http import HTTPStatus
from typing import Any, Dict, Optional

import httpx

from bike_erp.performance_logger import profile_function

logger = logging.getLogger(__name__)

# Endpoints conocidos del backend
ENDPOINTS = {
    'auth': '/auth',
    'products': '/products',
    'sales': '/sales',
    'clients': '/clients',
    'categories': '/categories',
    'sale_items': '/sale_items',
}


class ApiError(Exception):
    """
    Error de comunicación con el backend.

    Attributes:
        status: Código HTTP (0 si no hubo respuesta)
        status_text: Texto del estado HTTP
        detail: Mensaje de error devuelto por el backend, si lo hay
    """

    def __init__(self, status: int, status_text: str, detail: Optional[str] = None):
        self.status = status
        self.status_text = status_text
        self.detail = detail
        message = f"HTTP {status}: {status_text}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)

    @property
    def is_network_error(self) -> bool:
        return self.status == 0


def _status_text(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return 'Unknown'


class ApiClient:
    """
    Cliente HTTP síncrono para el backend REST.

    Uso:
        client = ApiClient('http://localhost:4000/api')
        products = client.get('/products')
        client.put('/clients/3', {'balance': -50})
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        retries: int = 2,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Inicializa el cliente.

        Args:
            base_url: URL base del backend (ej: http://localhost:4000/api)
            timeout: Timeout por petición en segundos
            retries: Reintentos adicionales ante error de red o 5xx
            transport: Transporte httpx alternativo (tests)
        """
        self.base_url = base_url.rstrip('/')
        self.retries = max(0, int(retries))
        self._http = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={'Content-Type': 'application/json'},
        )

    def build_url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    @profile_function(name="Petición al backend")
    def request(
        self,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Ejecuta una petición y retorna el JSON decodificado.

        Args:
            method: GET, POST, PUT o DELETE
            endpoint: Ruta relativa (ej: '/products/4')
            body: Cuerpo JSON opcional

        Returns:
            JSON de la respuesta (None si viene vacía)

        Raises:
            ApiError: Si la respuesta no es 2xx tras los reintentos
        """
        url = self.build_url(endpoint)
        attempts = self.retries + 1
        last_error: Optional[ApiError] = None

        for attempt in range(1, attempts + 1):
            logger.debug("API %s %s (intento %d/%d)", method, url, attempt, attempts)
            try:
                response = self._http.request(method, url, json=body)
            except httpx.TransportError as e:
                last_error = ApiError(0, 'Network Error', str(e))
                logger.warning("API %s %s sin respuesta: %s", method, url, e)
                continue

            if response.is_success:
                return self._decode(response)

            last_error = ApiError(
                response.status_code,
                response.reason_phrase or _status_text(response.status_code),
                self._error_detail(response),
            )
            if response.status_code < 500:
                break
            logger.warning("API %s %s respondió %d", method, url, response.status_code)

        logger.error("API %s %s falló: %s", method, url, last_error)
        raise last_error

    def _decode(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise ApiError(response.status_code, 'Invalid JSON', response.text[:200])

    def _error_detail(self, response: httpx.Response) -> Optional[str]:
        try:
            payload = response.json()
        except ValueError:
            return response.text[:200] or None
        if isinstance(payload, dict):
            return payload.get('error') or payload.get('message')
        return None

    # =========================================================================
    # ATAJOS POR VERBO
    # =========================================================================

    def get(self, endpoint: str) -> Any:
        return self.request('GET', endpoint)

    def post(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return self.request('POST', endpoint, body or {})

    def put(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return self.request('PUT', endpoint, body or {})

    def delete(self, endpoint: str) -> Any:
        return self.request('DELETE', endpoint)

    def close(self) -> None:
        self._http.close()

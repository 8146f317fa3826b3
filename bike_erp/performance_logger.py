# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide cuánto tarda cada ruta /api y cada llamada clave (cobro, dashboard,
# reportes, peticiones al backend). Escribe una línea por evento en
# <data_dir>/logs/ y guarda contadores en memoria para /api/system/performance.
#
# ACTIVAR/DESACTIVAR: variable de entorno BIKE_ERP_PROFILING
# ==============================================================================

import os
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from typing import Dict, Optional

from bike_erp.config import settings

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

ENABLE_PROFILING = settings.enable_profiling

# Umbrales en milisegundos
SLOW_MS = 300
CRITICAL_MS = 700

LOGS_DIR = os.path.join(settings.data_dir, 'logs')

LOG_FILES = {
    'performance': os.path.join(LOGS_DIR, 'performance.log'),
    'slow_routes': os.path.join(LOGS_DIR, 'slow_routes.log'),
    'slow_functions': os.path.join(LOGS_DIR, 'slow_functions.log'),
}

# Acciones legibles por regla de Flask (método + url_rule)
ROUTE_ACTIONS = {
    'POST /api/auth/login': 'Iniciar sesión',
    'POST /api/auth/logout': 'Cerrar sesión',
    'GET /api/dashboard': 'Ver panel principal',
    'GET /api/debts': 'Ver deudas de clientes',
    'GET /api/reports': 'Ver reportes',
    'GET /api/cart': 'Ver carrito',
    'POST /api/cart/items': 'Agregar al carrito',
    'DELETE /api/cart/items/<product_id>': 'Quitar del carrito',
    'PUT /api/cart/items/<product_id>/quantity': 'Cambiar cantidad',
    'POST /api/cart/clear': 'Vaciar carrito',
    'POST /api/cart/checkout': 'Cobrar venta',
    'GET /api/clients': 'Ver clientes',
    'POST /api/clients': 'Crear cliente',
    'POST /api/clients/<int:client_id>/balance': 'Ajustar balance',
    'POST /api/clients/<int:client_id>/credits': 'Registrar crédito',
    'GET /api/products': 'Ver inventario',
    'POST /api/products': 'Crear producto',
    'POST /api/products/<int:product_id>/stock': 'Ajustar stock',
    'GET /api/rates': 'Ver tasas de cambio',
    'PUT /api/rates': 'Actualizar tasas de cambio',
}


@dataclass
class CallStats:
    """Acumulado de una función perfilada."""
    calls: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0

    def record(self, elapsed_ms: float) -> None:
        self.calls += 1
        self.total_ms += elapsed_ms
        self.max_ms = max(self.max_ms, elapsed_ms)

    def to_dict(self) -> Dict[str, float]:
        avg = self.total_ms / self.calls if self.calls else 0
        return {'calls': self.calls, 'avg_time': round(avg, 2), 'max_time': round(self.max_ms, 2)}


_call_stats: Dict[str, CallStats] = {}
_stats_lock = threading.Lock()
_file_lock = threading.Lock()


# ═══════════════════════════════════════════════════════════════════════════
# ESCRITURA DE LOGS
# ═══════════════════════════════════════════════════════════════════════════

def _severity(elapsed_ms: float) -> Optional[str]:
    """None si fue rápido; 'LENTO' o 'CRÍTICO' según los umbrales."""
    if elapsed_ms >= CRITICAL_MS:
        return 'CRÍTICO'
    if elapsed_ms >= SLOW_MS:
        return 'LENTO'
    return None


def _append(log_name: str, *fields) -> None:
    """Agrega una línea 'fecha | campo | campo ...' al log indicado."""
    line = ' | '.join([datetime.now().strftime('%Y-%m-%d %H:%M:%S'), *map(str, fields)])
    try:
        with _file_lock:
            os.makedirs(LOGS_DIR, exist_ok=True)
            with open(LOG_FILES[log_name], 'a', encoding='utf-8') as f:
                f.write(line + '\n')
    except OSError:
        pass  # Errores de escritura de logs se ignoran


def describe_route(method: str, path: str, rule: Optional[str] = None) -> str:
    for candidate in (rule, path):
        action = ROUTE_ACTIONS.get(f"{method} {candidate}")
        if action:
            return action
    return f"{method} {path}"


def log_request(method: str, path: str, rule: Optional[str], elapsed_ms: float, user: Optional[str] = None):
    """Registra una petición; si fue lenta también va a slow_routes.log"""
    if not ENABLE_PROFILING:
        return
    action = describe_route(method, path, rule)
    who = user or 'anónimo'
    _append('performance', action, who, f"{method} {path}", f"{elapsed_ms:.0f} ms")

    severity = _severity(elapsed_ms)
    if severity:
        _append('slow_routes', severity, action, who, f"{method} {path}", f"{elapsed_ms:.0f} ms")


# ═══════════════════════════════════════════════════════════════════════════
# HOOKS PARA FLASK
# ═══════════════════════════════════════════════════════════════════════════

def init_profiling(app):
    """
    Registra before_request/after_request en la app.

    El usuario se toma de g.user_email (lo fija login_required).
    """
    if not ENABLE_PROFILING:
        return

    from flask import g, request

    @app.before_request
    def _start_timer():
        g.profile_start = time.perf_counter()

    @app.after_request
    def _log_request(response):
        start = g.get('profile_start')
        if start is None:
            return response
        rule = str(request.url_rule) if request.url_rule else None
        log_request(request.method, request.path, rule,
                    (time.perf_counter() - start) * 1000, g.get('user_email'))
        return response


# ═══════════════════════════════════════════════════════════════════════════
# DECORADOR PARA FUNCIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Mide cada llamada de la función decorada.

    Uso:
        @profile_function
        def sincronizar():
            ...

        @profile_function(name="Cobrar venta")
        def checkout(self, ...):
            ...
    """
    def decorator(fn):
        if not ENABLE_PROFILING:
            return fn

        label = name or fn.__qualname__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                with _stats_lock:
                    _call_stats.setdefault(label, CallStats()).record(elapsed_ms)
                severity = _severity(elapsed_ms)
                if severity:
                    _append('slow_functions', severity, label, f"{elapsed_ms:.0f} ms")

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
# CONSULTA DE ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

def get_function_stats():
    """{nombre: {calls, avg_time, max_time}} de las funciones perfiladas."""
    with _stats_lock:
        return {label: stats.to_dict() for label, stats in _call_stats.items()}


def reset_stats():
    with _stats_lock:
        _call_stats.clear()


def get_log_summary():
    """{log: {exists, size_kb, lines}} de cada archivo de log."""
    summary = {}
    for log_name, path in LOG_FILES.items():
        if not os.path.exists(path):
            summary[log_name] = {'exists': False, 'size_kb': 0, 'lines': 0}
            continue
        with open(path, 'r', encoding='utf-8') as f:
            lines = sum(1 for _ in f)
        summary[log_name] = {
            'exists': True,
            'size_kb': round(os.path.getsize(path) / 1024, 2),
            'lines': lines,
        }
    return summary


__all__ = [
    'ENABLE_PROFILING',
    'init_profiling',
    'profile_function',
    'describe_route',
    'get_function_stats',
    'reset_stats',
    'get_log_summary',
]

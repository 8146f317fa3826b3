# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Los servicios reciben repositorios por constructor y retornan dicts
# {'ok': bool, 'error': str, ...}. 'kind' clasifica el error para la ruta:
#   validation -> 400, not_found -> 404, business -> 409, api -> 502
# ==============================================================================

from .currency_service import (
    CurrencyService,
    convert_usd_to_ves,
    convert_ves_to_usd,
    format_usd,
    format_ves,
    format_price_with_both_rates,
    rate_for_payment_method,
)
from .cart_service import CartService, CART_KEY
from .pos_session_service import POSSessionService, SESSION_KEY
from .dashboard_service import DashboardService, compute_dashboard_stats
from .debt_service import DebtService, compute_debt_summaries, client_debts_view
from .reports_service import ReportsService, compute_report
from .client_service import ClientService
from .inventory_service import InventoryService
from .user_service import UserService, ROLE_DEFINITIONS

__all__ = [
    'CurrencyService',
    'convert_usd_to_ves',
    'convert_ves_to_usd',
    'format_usd',
    'format_ves',
    'format_price_with_both_rates',
    'rate_for_payment_method',
    'CartService',
    'CART_KEY',
    'POSSessionService',
    'SESSION_KEY',
    'DashboardService',
    'compute_dashboard_stats',
    'DebtService',
    'compute_debt_summaries',
    'client_debts_view',
    'ReportsService',
    'compute_report',
    'ClientService',
    'InventoryService',
    'UserService',
    'ROLE_DEFINITIONS',
]

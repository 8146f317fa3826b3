# ==============================================================================
# SERVICIO DE REPORTES
# ==============================================================================
# KPIs de ventas, inventario y clientes para un rango de fechas.
# Si el backend no responde, el reporte sale en ceros.
# ==============================================================================

import logging
from datetime import date, datetime, tzinfo
from typing import Any, Dict, List, Optional, Tuple

from bike_erp.models import Client, Product, Sale
from bike_erp.performance_logger import profile_function
from bike_erp.repositories import ApiError, ClientRepository, ProductRepository, QueryCache, SalesRepository
from bike_erp.services.shop_time import day_range, in_range, to_shop_time

logger = logging.getLogger(__name__)

REPORTS_STALE_TIME = 300  # segundos


def empty_report() -> Dict[str, Any]:
    return {
        'sales': {'totalSales': 0, 'transactions': 0, 'averageTicket': 0},
        'inventory': {'totalProducts': 0, 'lowStock': 0, 'totalValue': 0},
        'clients': {'totalClients': 0, 'newClients': 0, 'activeClients': 0, 'retention': 0},
    }


def parse_report_range(date_from: str, date_to: str, tz: tzinfo) -> Tuple[datetime, datetime]:
    """
    Rango [inicio de date_from, fin de date_to) en la zona de la tienda.

    Raises:
        ValueError: Si alguna fecha no es YYYY-MM-DD o el rango está invertido
    """
    start_day = date.fromisoformat(date_from)
    end_day = date.fromisoformat(date_to)
    if end_day < start_day:
        raise ValueError('La fecha final es anterior a la inicial')
    return day_range(start_day, tz)[0], day_range(end_day, tz)[1]


def compute_report(
    sales: List[Sale],
    products: List[Product],
    clients: List[Client],
    start: datetime,
    end: datetime,
    tz: tzinfo
) -> Dict[str, Any]:
    filtered = [s for s in sales if in_range(to_shop_time(s.sale_date, tz), start, end)]
    total_sales = sum(s.total for s in filtered)
    transactions = len(filtered)

    total_clients = len(clients)
    active_clients = sum(1 for c in clients if c.is_active)
    new_clients = sum(1 for c in clients if in_range(to_shop_time(c.created_at, tz), start, end))
    retention = (active_clients / total_clients * 100) if total_clients else 0

    return {
        'sales': {
            'totalSales': round(total_sales, 2),
            'transactions': transactions,
            'averageTicket': round(total_sales / transactions, 2) if transactions else 0,
        },
        'inventory': {
            'totalProducts': len(products),
            # Estricto: igual al mínimo todavía no cuenta como stock bajo
            'lowStock': sum(1 for p in products if p.current_stock < p.min_stock),
            'totalValue': round(sum(p.sale_price * p.current_stock for p in products), 2),
        },
        'clients': {
            'totalClients': total_clients,
            'newClients': new_clients,
            'activeClients': active_clients,
            'retention': round(retention, 1),
        },
    }


class ReportsService:

    def __init__(
        self,
        sales_repo: SalesRepository,
        product_repo: ProductRepository,
        client_repo: ClientRepository,
        cache: QueryCache,
        tz: tzinfo
    ):
        self.sales_repo = sales_repo
        self.product_repo = product_repo
        self.client_repo = client_repo
        self.cache = cache
        self.tz = tz

    @profile_function(name="Generar reporte")
    def get_report(self, date_from: Optional[str], date_to: Optional[str]) -> Dict[str, Any]:
        """
        Reporte para el rango [date_from, date_to] (ambos YYYY-MM-DD, inclusive).

        Returns:
            Dict con ok y report; error solo si el rango es inválido
        """
        if not date_from or not date_to:
            return {'ok': False, 'error': 'Debe indicar dateFrom y dateTo', 'kind': 'validation'}
        try:
            start, end = parse_report_range(date_from, date_to, self.tz)
        except ValueError as e:
            return {'ok': False, 'error': f"Rango de fechas inválido: {e}", 'kind': 'validation'}

        try:
            report = self.cache.get_or_fetch(
                ('reportsData', date_from, date_to),
                lambda: compute_report(
                    self.sales_repo.list(),
                    self.product_repo.list(),
                    self.client_repo.list(),
                    start,
                    end,
                    self.tz,
                ),
                REPORTS_STALE_TIME,
            )
        except ApiError as e:
            logger.warning("Reporte sin datos del backend, usando ceros: %s", e)
            report = empty_report()
        except (ValueError, TypeError, AttributeError) as e:
            logger.error("Datos del backend inválidos para el reporte, usando ceros: %s", e)
            report = empty_report()
        return {'ok': True, 'report': report, 'dateFrom': date_from, 'dateTo': date_to}

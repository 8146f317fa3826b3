# ==============================================================================
# SERVICIO DEL PANEL PRINCIPAL
# ==============================================================================
# Reduce ventas, productos y líneas de venta a los contadores del dashboard.
#
# REGLA PRINCIPAL: si cualquier consulta al backend falla, el panel muestra
# el resumen en ceros (nunca un error). La falla queda en el log.
# ==============================================================================

import logging
from collections import OrderedDict
from datetime import datetime, tzinfo
from typing import Any, Dict, Iterable, List, Optional

from bike_erp.models import DashboardStats, Product, Sale, SaleItem, TopSellingProduct
from bike_erp.performance_logger import profile_function
from bike_erp.repositories import (
    ApiError,
    ProductRepository,
    QueryCache,
    SaleItemRepository,
    SalesRepository,
)
from bike_erp.services.shop_time import day_range, in_range, month_range, to_shop_time

logger = logging.getLogger(__name__)

TOP_SELLERS_LIMIT = 3
DASHBOARD_STALE_TIME = 120  # segundos


def _sum_totals(sales: Iterable[Sale]) -> float:
    return sum(sale.total for sale in sales)


def top_selling_products(
    sale_items: Iterable[SaleItem],
    products: Iterable[Product],
    limit: int = TOP_SELLERS_LIMIT
) -> List[TopSellingProduct]:
    """
    Agrupa cantidades por producto y retorna los más vendidos.

    Los empates conservan el orden en que apareció cada producto.
    """
    quantities: "OrderedDict[int, int]" = OrderedDict()
    names: Dict[int, str] = {}
    for item in sale_items:
        quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
        names.setdefault(item.product_id, item.product_name)

    by_id = {p.id: p for p in products}
    ranked = sorted(quantities.items(), key=lambda pair: pair[1], reverse=True)[:limit]

    result = []
    for product_id, quantity in ranked:
        product = by_id.get(product_id)
        if product is not None:
            meta = {'id': product.id, **product.to_dict()}
        else:
            meta = {'id': product_id, 'name': names.get(product_id) or 'Producto desconocido'}
        result.append(TopSellingProduct(product=meta, quantity=quantity))
    return result


def compute_dashboard_stats(
    sales: List[Sale],
    products: List[Product],
    sale_items: List[SaleItem],
    now: datetime,
    tz: tzinfo,
    low_stock_default: int = 5
) -> DashboardStats:
    """
    Calcula el resumen del dashboard.

    Args:
        sales: Cabeceras de venta
        products: Inventario completo
        sale_items: Todas las líneas de venta
        now: Momento de referencia (aware)
        tz: Zona horaria de la tienda
        low_stock_default: Mínimo usado cuando el producto no define minStock
    """
    today = now.astimezone(tz).date()
    day_start, day_end = day_range(today, tz)
    month_start, month_end = month_range(today, tz)

    sale_dates = {sale.id: to_shop_time(sale.sale_date, tz) for sale in sales}

    today_sales = [s for s in sales if in_range(sale_dates[s.id], day_start, day_end)]
    month_sales = [s for s in sales if in_range(sale_dates[s.id], month_start, month_end)]
    month_sale_ids = {s.id for s in month_sales}

    return DashboardStats(
        today_sales=_sum_totals(today_sales),
        month_sales=_sum_totals(month_sales),
        low_stock_items=sum(1 for p in products if p.is_low_stock(low_stock_default)),
        # Sin módulo de taller en el backend
        active_service_orders=0,
        pending_payments=_sum_totals(s for s in sales if s.status == 'pending'),
        top_selling_products=top_selling_products(
            (i for i in sale_items if i.sale_id in month_sale_ids),
            products,
        ),
    )


class DashboardService:
    """
    Servicio del panel principal.

    Preparado para inyectar repositorios falsos en tests.
    """

    def __init__(
        self,
        product_repo: ProductRepository,
        sales_repo: SalesRepository,
        sale_items_repo: SaleItemRepository,
        cache: QueryCache,
        tz: tzinfo,
        low_stock_default: int = 5,
        clock=None
    ):
        self.product_repo = product_repo
        self.sales_repo = sales_repo
        self.sale_items_repo = sale_items_repo
        self.cache = cache
        self.tz = tz
        self.low_stock_default = low_stock_default
        self._clock = clock or (lambda: datetime.now(tz))

    @profile_function(name="Calcular dashboard")
    def get_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Resumen del dashboard (camelCase, listo para JSON).

        Nunca lanza: ante un error del backend retorna el resumen en ceros.
        Con un now explícito se calcula sin pasar por la caché.
        """
        try:
            if now is not None:
                return self._compute(now)
            return self.cache.get_or_fetch(
                ('dashboardStats',),
                lambda: self._compute(self._clock()),
                DASHBOARD_STALE_TIME,
            )
        except ApiError as e:
            logger.warning("Dashboard sin datos del backend, usando ceros: %s", e)
            return DashboardStats().to_dict()
        except (ValueError, TypeError, AttributeError) as e:
            logger.error("Datos del backend inválidos para el dashboard, usando ceros: %s", e)
            return DashboardStats().to_dict()

    def _compute(self, now: datetime) -> Dict[str, Any]:
        stats = compute_dashboard_stats(
            self.sales_repo.list(),
            self.product_repo.list(),
            self.sale_items_repo.list(),
            now,
            self.tz,
            self.low_stock_default,
        )
        return stats.to_dict()

# ==============================================================================
# REPOSITORIO DE VENTAS
# ==============================================================================
# /sales (cabeceras, camelCase) y /sale_items (líneas, snake_case).
# El backend solo permite listar y crear.
# ==============================================================================

from typing import Any, Dict, List

from bike_erp.models import Sale, SaleItem
from bike_erp.repositories.rest_repository import RestRepository


class SalesRepository(RestRepository[Sale]):
    """
    Formato de /sales:
    [
        {"id": 12, "clientId": 3, "saleDate": "2024-06-01T15:04:05.000Z",
         "total": 120.5, "userId": "1"}
    ]
    """

    endpoint = '/sales'
    query_key = 'sales'
    entity_factory = Sale.from_dict
    invalidates = ('dashboardStats', 'reportsData', 'clientPurchaseHistory')

    def for_client(self, client_id: Any) -> List[Sale]:
        return [s for s in self.list() if s.client_id is not None and str(s.client_id) == str(client_id)]


class SaleItemRepository(RestRepository[SaleItem]):
    """
    Formato de /sale_items (el backend agrega product_name con un JOIN):
    [
        {"id": 40, "sale_id": 12, "product_id": 4, "quantity": 2,
         "unit_price": 45.0, "subtotal": 90.0, "product_name": "Casco MTB"}
    ]
    """

    endpoint = '/sale_items'
    query_key = 'sale_items'
    entity_factory = SaleItem.from_dict
    invalidates = ('dashboardStats', 'clientPurchaseHistory')

    def for_sale(self, sale_id: Any) -> List[SaleItem]:
        return [i for i in self.list() if str(i.sale_id) == str(sale_id)]

    def create_many(self, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Crea varias líneas (el backend no tiene inserción en lote)."""
        results = []
        for item in items:
            results.append(self.api.post(self.endpoint, item) or {})
        self.invalidate()
        return results

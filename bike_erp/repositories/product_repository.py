# ==============================================================================
# REPOSITORIO DE PRODUCTOS Y CATEGORÍAS
# ==============================================================================
# /products y /categories del backend. El stock (currentStock) es
# autoritativo aquí; el carrito solo lo lee.
# ==============================================================================

from typing import Any, Dict, List

from bike_erp.models import Category, Product
from bike_erp.repositories.rest_repository import RestRepository


class ProductRepository(RestRepository[Product]):
    """
    Formato de /products:
    [
        {"id": 4, "name": "Casco MTB", "sku": "7591234567890",
         "salePrice": 45.0, "currentStock": 3, "minStock": 5, ...}
    ]
    """

    endpoint = '/products'
    query_key = 'products'
    entity_factory = Product.from_dict
    invalidates = ('dashboardStats', 'reportsData')

    def regenerate_sku(self, product_id: Any) -> Dict[str, Any]:
        """
        Pide al backend un SKU nuevo para el producto.

        Returns:
            Respuesta del backend (incluye el nuevo sku y un mensaje)
        """
        result = self.api.post(f"{self.endpoint}/{product_id}/regenerate-sku")
        self.invalidate()
        return result or {}

    def low_stock(self, default_min: int = 5) -> List[Product]:
        return [p for p in self.list() if p.is_low_stock(default_min)]


class CategoryRepository(RestRepository[Category]):
    endpoint = '/categories'
    query_key = 'categories'
    entity_factory = Category.from_dict
    # Cambiar una categoría altera cómo se listan los productos
    invalidates = ('products',)

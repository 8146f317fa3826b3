# ==============================================================================
# SERVICIO DE INVENTARIO
# ==============================================================================
# Productos y categorías del backend: altas, cambios, bajas, ajustes de
# stock y regeneración de SKU. currentStock solo cambia desde aquí.
# ==============================================================================

import logging
import math
from typing import Any, Dict, Optional

from bike_erp.models import Product
from bike_erp.repositories import ApiError, CategoryRepository, ProductRepository

logger = logging.getLogger(__name__)

STOCK_ADJUSTMENTS = ('add', 'remove', 'set')


def _api_error(action: str, error: ApiError) -> Dict[str, Any]:
    logger.error("Error al %s: %s", action, error)
    return {'ok': False, 'error': f"No se pudo {action}: {error}", 'kind': 'api'}


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ''


def _product_json(product: Product) -> Dict[str, Any]:
    return {
        'id': product.id,
        **product.to_dict(),
        'createdAt': product.created_at,
        'updatedAt': product.updated_at,
    }


class InventoryService:
    """
    Servicio de inventario.

    Responsabilidades:
    - Validar productos antes de enviarlos (nombre, SKU, precios >= 0)
    - Ajustes de stock sin permitir negativos
    - CRUD de categorías
    """

    def __init__(
        self,
        product_repo: ProductRepository,
        category_repo: CategoryRepository,
        low_stock_default: int = 5
    ):
        self.product_repo = product_repo
        self.category_repo = category_repo
        self.low_stock_default = low_stock_default

    # =========================================================================
    # PRODUCTOS
    # =========================================================================

    def list_products(self) -> Dict[str, Any]:
        try:
            products = self.product_repo.list()
        except ApiError as e:
            return _api_error('obtener los productos', e)
        return {'ok': True, 'products': [_product_json(p) for p in products]}

    def get_product(self, product_id: Any) -> Optional[Product]:
        """
        Raises:
            ApiError: Si el backend no responde
        """
        return self.product_repo.get(product_id)

    def low_stock(self) -> Dict[str, Any]:
        try:
            products = self.product_repo.low_stock(self.low_stock_default)
        except ApiError as e:
            return _api_error('obtener el stock bajo', e)
        return {'ok': True, 'products': [_product_json(p) for p in products]}

    def _validate_product(self, data: Dict[str, Any]) -> Optional[str]:
        if not _text(data.get('name')):
            return 'El nombre es obligatorio'
        if not _text(data.get('sku')):
            return 'El SKU es obligatorio'
        for field_name, label in (('salePrice', 'precio de venta'), ('costPrice', 'precio de costo')):
            try:
                price = float(data.get(field_name) or 0)
            except (TypeError, ValueError):
                return f"El {label} es inválido"
            if not math.isfinite(price):
                return f"El {label} es inválido"
            if price < 0:
                return f"El {label} no puede ser negativo"
        for field_name in ('currentStock', 'minStock', 'maxStock'):
            try:
                if int(data.get(field_name) or 0) < 0:
                    return 'El stock no puede ser negativo'
            except (TypeError, ValueError, OverflowError):
                return 'Cantidades de stock inválidas'
        return None

    def create_product(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Crea un producto.

        Args:
            data: Campos en formato backend (name, sku, salePrice, ...)
        """
        error = self._validate_product(data)
        if error:
            return {'ok': False, 'error': error, 'kind': 'validation'}

        product = Product.from_dict({**data, 'name': _text(data.get('name')), 'sku': _text(data.get('sku'))})
        try:
            result = self.product_repo.create(product.to_dict())
        except ApiError as e:
            return _api_error('crear el producto', e)
        logger.info("Producto creado: %s (%s)", product.name, product.sku)
        return {'ok': True, 'id': result.get('id')}

    def update_product(self, product_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
        try:
            product = self.product_repo.get(product_id)
            if product is None:
                return {'ok': False, 'error': 'Producto no encontrado', 'kind': 'not_found'}
            merged = {**product.to_dict(), **changes}
            error = self._validate_product(merged)
            if error:
                return {'ok': False, 'error': error, 'kind': 'validation'}
            merged.update(name=_text(merged.get('name')), sku=_text(merged.get('sku')))
            self.product_repo.update(product.id, Product.from_dict(merged).to_dict())
        except ApiError as e:
            return _api_error('actualizar el producto', e)
        return {'ok': True, 'mensaje': 'Producto actualizado'}

    def delete_product(self, product_id: Any) -> Dict[str, Any]:
        try:
            self.product_repo.delete(product_id)
        except ApiError as e:
            return _api_error('eliminar el producto', e)
        logger.info("Producto %s eliminado", product_id)
        return {'ok': True, 'mensaje': 'Producto eliminado'}

    def adjust_stock(
        self,
        product_id: Any,
        adjustment_type: str,
        quantity: Any,
        reason: str = ''
    ) -> Dict[str, Any]:
        """
        Ajusta el stock de un producto.

        Args:
            adjustment_type: 'add', 'remove' (o 'subtract') o 'set'
            quantity: Cantidad (>= 0; > 0 para add/remove)
            reason: Motivo del ajuste (obligatorio)

        Returns:
            Dict con ok, previousStock, currentStock o error
        """
        if adjustment_type == 'subtract':
            adjustment_type = 'remove'
        if adjustment_type not in STOCK_ADJUSTMENTS:
            return {'ok': False, 'error': 'Tipo de ajuste inválido', 'kind': 'validation'}
        try:
            qty = int(quantity)
        except (TypeError, ValueError, OverflowError):
            return {'ok': False, 'error': 'Cantidad inválida', 'kind': 'validation'}
        if qty < 0 or (qty == 0 and adjustment_type != 'set'):
            return {'ok': False, 'error': 'Cantidad debe ser mayor a 0', 'kind': 'validation'}
        if not _text(reason):
            return {'ok': False, 'error': 'Debe indicar el motivo del ajuste', 'kind': 'validation'}

        try:
            product = self.product_repo.get(product_id)
            if product is None:
                return {'ok': False, 'error': 'Producto no encontrado', 'kind': 'not_found'}

            if adjustment_type == 'add':
                new_stock = product.current_stock + qty
            elif adjustment_type == 'remove':
                new_stock = product.current_stock - qty
                if new_stock < 0:
                    return {
                        'ok': False,
                        'error': f"Stock insuficiente. Disponible: {product.current_stock}",
                        'kind': 'business',
                        'disponible': product.current_stock,
                    }
            else:
                new_stock = qty

            previous = product.current_stock
            product.current_stock = new_stock
            self.product_repo.update(product.id, product.to_dict())
        except ApiError as e:
            return _api_error('ajustar el stock', e)

        logger.info("Stock de %s: %d -> %d (%s)", product.name, previous, new_stock, reason)
        return {'ok': True, 'previousStock': previous, 'currentStock': new_stock}

    def regenerate_sku(self, product_id: Any) -> Dict[str, Any]:
        try:
            result = self.product_repo.regenerate_sku(product_id)
        except ApiError as e:
            return _api_error('regenerar el SKU', e)
        return {'ok': True, 'sku': result.get('sku'), 'mensaje': result.get('message') or 'SKU regenerado'}

    # =========================================================================
    # CATEGORÍAS
    # =========================================================================

    def list_categories(self) -> Dict[str, Any]:
        try:
            categories = self.category_repo.list()
        except ApiError as e:
            return _api_error('obtener las categorías', e)
        return {'ok': True, 'categories': [{'id': c.id, **c.to_dict()} for c in categories]}

    def _validate_category(self, data: Dict[str, Any]) -> Optional[str]:
        if not _text(data.get('name')):
            return 'El nombre de la categoría es obligatorio'
        if not _text(data.get('displayName')):
            return 'El nombre visible es obligatorio'
        return None

    def create_category(self, data: Dict[str, Any]) -> Dict[str, Any]:
        error = self._validate_category(data)
        if error:
            return {'ok': False, 'error': error, 'kind': 'validation'}
        payload = {
            'name': _text(data['name']),
            'displayName': _text(data['displayName']),
            'isActive': bool(data.get('isActive', True)),
        }
        try:
            result = self.category_repo.create(payload)
        except ApiError as e:
            return _api_error('crear la categoría', e)
        return {'ok': True, 'id': result.get('id')}

    def update_category(self, category_id: Any, data: Dict[str, Any]) -> Dict[str, Any]:
        error = self._validate_category(data)
        if error:
            return {'ok': False, 'error': error, 'kind': 'validation'}
        try:
            self.category_repo.update(category_id, {
                'name': _text(data['name']),
                'displayName': _text(data['displayName']),
                'isActive': bool(data.get('isActive', True)),
            })
        except ApiError as e:
            return _api_error('actualizar la categoría', e)
        return {'ok': True, 'mensaje': 'Categoría actualizada'}

    def delete_category(self, category_id: Any) -> Dict[str, Any]:
        try:
            self.category_repo.delete(category_id)
        except ApiError as e:
            return _api_error('eliminar la categoría', e)
        return {'ok': True, 'mensaje': 'Categoría eliminada'}

# ==============================================================================
# SERVICIO DE CARRITO
# ==============================================================================
# Centraliza toda la lógica del carrito del POS.
# El carrito vive en el almacén local bajo la clave 'pos-cart'; cada mutación
# es una lectura-modificación-escritura atómica, así dos instancias del
# servicio sobre el mismo almacén ven siempre los cambios de la otra.
# ==============================================================================

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from bike_erp.models import CartLineItem, CartSession, PaymentMethod, Product
from bike_erp.performance_logger import profile_function
from bike_erp.repositories import (
    ApiError,
    ClientRepository,
    IKeyValueStore,
    QueryCache,
    SaleItemRepository,
    SalesRepository,
)
from bike_erp.services.currency_service import CurrencyService

logger = logging.getLogger(__name__)

CART_KEY = 'pos-cart'

# Consultas afectadas por una venta
CHECKOUT_INVALIDATES = (
    'sales',
    'sale_items',
    'products',
    'clients',
    'dashboardStats',
    'reportsData',
    'clientDebts',
    'clientDebtSummary',
    'clientPurchaseHistory',
)


class CartRejected(Exception):
    """Una regla de negocio impidió la mutación; el carrito no cambia."""

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra


def _clamp_percent(value: Any) -> float:
    try:
        pct = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(100.0, pct))


def compute_subtotal(session: CartSession) -> float:
    """Suma de precio con descuento por línea * cantidad."""
    return sum(item.line_total for item in session.items)


def compute_global_discount(session: CartSession) -> float:
    return compute_subtotal(session) * (session.global_discount / 100)


def compute_total(session: CartSession) -> float:
    return compute_subtotal(session) - compute_global_discount(session)


class CartService:
    """
    Servicio para gestión del carrito del POS.

    Responsabilidades:
    - Agregar/eliminar líneas respetando el stock leído del backend
    - Descuentos por línea y global (siempre dentro de [0, 100])
    - Calcular subtotal, descuento y total
    - Cobrar: registrar venta y líneas en el backend
    """

    def __init__(
        self,
        store: IKeyValueStore,
        sales_repo: SalesRepository,
        sale_items_repo: SaleItemRepository,
        client_repo: ClientRepository,
        currency_service: CurrencyService,
        cache: QueryCache,
    ):
        self.store = store
        self.sales_repo = sales_repo
        self.sale_items_repo = sale_items_repo
        self.client_repo = client_repo
        self.currency_service = currency_service
        self.cache = cache

    # =========================================================================
    # ESTADO
    # =========================================================================

    def get_session(self) -> CartSession:
        """Carrito actual (vacío si no hay snapshot guardado)."""
        return CartSession.from_dict(self.store.get(CART_KEY))

    def _mutate(self, mutator: Callable[[CartSession], None]) -> CartSession:
        """
        Aplica mutator sobre el carrito de forma atómica.

        Si mutator lanza CartRejected no se escribe nada.
        """
        def apply(raw):
            session = CartSession.from_dict(raw)
            mutator(session)
            return session.to_dict()

        return CartSession.from_dict(self.store.update(CART_KEY, apply))

    def get_cart(self) -> Dict[str, Any]:
        """
        Carrito con totales calculados.

        Returns:
            Dict con items, selectedClient, globalDiscount, notes, subtotal,
            globalDiscountAmount, total, itemCount
        """
        return self._summary(self.get_session())

    def _summary(self, session: CartSession) -> Dict[str, Any]:
        data = session.to_dict()
        for raw, item in zip(data['items'], session.items):
            raw['lineTotal'] = round(item.line_total, 2)
        data.update({
            'subtotal': round(compute_subtotal(session), 2),
            'globalDiscountAmount': round(compute_global_discount(session), 2),
            'total': round(compute_total(session), 2),
            'itemCount': sum(item.quantity for item in session.items),
        })
        return data

    def subscribe(self, callback: Callable[[CartSession], None]) -> Callable[[], None]:
        """
        Notifica cada cambio del carrito (incluye los de otras instancias).

        Returns:
            Función para cancelar la suscripción
        """
        return self.store.subscribe(
            CART_KEY,
            lambda _key, value: callback(CartSession.from_dict(value)),
        )

    # =========================================================================
    # MUTACIONES
    # =========================================================================

    def add_item(self, product: Product) -> Dict[str, Any]:
        """
        Agrega una unidad del producto.

        - Si ya está en el carrito suma 1, salvo que supere currentStock
        - Si no está y hay stock, lo agrega con cantidad 1

        Returns:
            Dict con resultado (ok, error, cart)
        """
        def apply(session: CartSession) -> None:
            existing = session.find(product.id)
            if existing:
                if existing.quantity + 1 > product.current_stock:
                    raise CartRejected(
                        f"Stock insuficiente. Solo hay {product.current_stock} unidades disponibles",
                        disponible=product.current_stock,
                    )
                existing.quantity += 1
                existing.stock = product.current_stock
                return
            if product.current_stock <= 0:
                raise CartRejected("Sin stock: este producto no tiene stock disponible", disponible=0)
            session.items.append(CartLineItem.from_product(product))

        try:
            session = self._mutate(apply)
        except CartRejected as e:
            return {'ok': False, 'error': e.message, 'kind': 'business', **e.extra}
        return {'ok': True, 'mensaje': f"{product.name} agregado al carrito", 'cart': self._summary(session)}

    def remove_item(self, product_id: Any) -> Dict[str, Any]:
        """Elimina la línea; no falla si no existe."""
        key = str(product_id)

        def apply(session: CartSession) -> None:
            session.items = [item for item in session.items if item.product_id != key]

        return {'ok': True, 'cart': self._summary(self._mutate(apply))}

    def set_quantity(self, product_id: Any, quantity: Any) -> Dict[str, Any]:
        """
        Reemplaza la cantidad de una línea.

        quantity <= 0 equivale a remove_item. Más que el techo de stock
        se rechaza y la cantidad queda igual.
        """
        try:
            quantity = int(quantity)
        except (TypeError, ValueError, OverflowError):
            return {'ok': False, 'error': 'Cantidad inválida', 'kind': 'validation'}

        if quantity <= 0:
            return self.remove_item(product_id)

        def apply(session: CartSession) -> None:
            item = session.find(product_id)
            if item is None:
                raise CartRejected('Producto no está en el carrito')
            if quantity > item.stock:
                raise CartRejected(
                    f"Stock insuficiente. Solo hay {item.stock} unidades disponibles",
                    disponible=item.stock,
                )
            item.quantity = quantity

        try:
            session = self._mutate(apply)
        except CartRejected as e:
            return {'ok': False, 'error': e.message, 'kind': 'business', **e.extra}
        return {'ok': True, 'cart': self._summary(session)}

    def set_item_discount(self, product_id: Any, percent: Any) -> Dict[str, Any]:
        pct = _clamp_percent(percent)

        def apply(session: CartSession) -> None:
            item = session.find(product_id)
            if item is not None:
                item.discount = pct

        return {'ok': True, 'cart': self._summary(self._mutate(apply))}

    def set_global_discount(self, percent: Any) -> Dict[str, Any]:
        pct = _clamp_percent(percent)

        def apply(session: CartSession) -> None:
            session.global_discount = pct

        return {'ok': True, 'cart': self._summary(self._mutate(apply))}

    def set_selected_client(self, client: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        def apply(session: CartSession) -> None:
            session.selected_client = client

        return {'ok': True, 'cart': self._summary(self._mutate(apply))}

    def set_notes(self, notes: Optional[str]) -> Dict[str, Any]:
        def apply(session: CartSession) -> None:
            session.notes = notes or ''

        return {'ok': True, 'cart': self._summary(self._mutate(apply))}

    def clear(self) -> Dict[str, Any]:
        """Vacía el carrito y elimina el snapshot guardado."""
        self.store.remove(CART_KEY)
        return {'ok': True, 'mensaje': 'Carrito vaciado', 'cart': self._summary(CartSession())}

    # =========================================================================
    # CÁLCULOS
    # =========================================================================

    def compute_subtotal(self) -> float:
        return compute_subtotal(self.get_session())

    def compute_global_discount(self) -> float:
        return compute_global_discount(self.get_session())

    def compute_total(self) -> float:
        return compute_total(self.get_session())

    def get_item_count(self) -> int:
        return sum(item.quantity for item in self.get_session().items)

    # =========================================================================
    # COBRO
    # =========================================================================

    def build_checkout_payload(
        self,
        user_id: Any,
        payment_method: str,
        session: Optional[CartSession] = None
    ) -> Dict[str, Any]:
        """
        Arma la venta y sus líneas tal como las espera el backend.

        El descuento global se refleja en el total de la venta; cada línea
        lleva su precio con descuento por línea.

        Returns:
            {'sale': {...}, 'items': [{product_id, quantity, unit_price, subtotal}]}
        """
        session = session or self.get_session()
        client = session.selected_client or {}
        is_credit = payment_method == PaymentMethod.CREDIT.value
        sale = {
            'clientId': client.get('id'),
            'saleDate': datetime.now(timezone.utc).isoformat(),
            'total': round(compute_total(session), 2),
            'userId': user_id,
            'status': 'pending' if is_credit else 'completed',
            'paymentMethod': payment_method,
            'notes': session.notes,
        }
        items: List[Dict[str, Any]] = [
            {
                'product_id': int(item.product_id) if item.product_id.isdigit() else item.product_id,
                'quantity': item.quantity,
                'unit_price': round(item.discounted_unit_price, 2),
                'subtotal': round(item.line_total, 2),
            }
            for item in session.items
        ]
        return {'sale': sale, 'items': items}

    @profile_function(name="Cobrar venta")
    def checkout(self, user_id: Any, payment_method: str = PaymentMethod.CASH_USD.value) -> Dict[str, Any]:
        """
        Registra la venta en el backend.

        Pasos: POST /sales, POST /sale_items por línea y, si es a crédito,
        baja el balance del cliente por el total en Bs.S. Solo si todo sale
        bien se vacía el carrito; ante un error queda intacto.

        Returns:
            Dict con ok, saleId, total o error
        """
        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            return {'ok': False, 'error': 'Método de pago inválido', 'kind': 'validation'}

        session = self.get_session()
        if not session.items:
            return {'ok': False, 'error': 'No hay productos en el carrito', 'kind': 'validation'}

        client_id = (session.selected_client or {}).get('id')
        if method == PaymentMethod.CREDIT and client_id is None:
            return {'ok': False, 'error': 'Seleccione un cliente para vender a crédito', 'kind': 'validation'}

        payload = self.build_checkout_payload(user_id, method.value, session)

        try:
            created = self.sales_repo.create(payload['sale'])
            sale_id = created.get('id')
            for item in payload['items']:
                item['sale_id'] = sale_id
            self.sale_items_repo.create_many(payload['items'])

            if method == PaymentMethod.CREDIT:
                self._charge_client_credit(client_id, payload['sale']['total'])
        except ApiError as e:
            logger.error("No se pudo registrar la venta: %s", e)
            return {'ok': False, 'error': f"No se pudo registrar la venta: {e}", 'kind': 'api'}

        self.store.remove(CART_KEY)
        self.cache.invalidate(*CHECKOUT_INVALIDATES)
        logger.info("Venta %s registrada: %.2f USD (%s)", sale_id, payload['sale']['total'], method.value)
        return {
            'ok': True,
            'mensaje': 'Venta registrada',
            'saleId': sale_id,
            'total': payload['sale']['total'],
        }

    def _charge_client_credit(self, client_id: Any, total_usd: float) -> None:
        client = self.client_repo.get(client_id)
        if client is None:
            raise ApiError(404, 'Not Found', f"Cliente {client_id} no existe")
        amount_ves = total_usd * self.currency_service.rate_for_payment_method(PaymentMethod.CREDIT)
        self.client_repo.merge_update(client, {'balance': round(client.balance - amount_ves, 2)})

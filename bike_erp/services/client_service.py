# ==============================================================================
# SERVICIO DE CLIENTES
# ==============================================================================
# CRUD de clientes, ajustes de balance, créditos e historial de compras.
# El balance es con signo (negativo = deuda) y solo cambia por:
#   - ajuste explícito (adjust_balance)
#   - crédito registrado (create_credit)
#   - venta a crédito (CartService.checkout)
# ==============================================================================

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bike_erp.models import Client, parse_datetime
from bike_erp.repositories import (
    ApiError,
    ClientRepository,
    ProductRepository,
    SaleItemRepository,
    SalesRepository,
)
from bike_erp.services.currency_service import CurrencyService

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = ('DNI', 'RIF')
BALANCE_ADJUSTMENTS = ('increase', 'decrease')


def _api_error(action: str, error: ApiError) -> Dict[str, Any]:
    logger.error("Error al %s: %s", action, error)
    return {'ok': False, 'error': f"No se pudo {action}: {error}", 'kind': 'api'}


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ''


def _positive_amount(value: Any) -> Optional[float]:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    return amount if math.isfinite(amount) and amount > 0 else None


class ClientService:
    """
    Servicio para gestión de clientes.

    Responsabilidades:
    - Validar datos antes de llamar al backend
    - Enviar siempre el registro completo en los PUT
    - Armar el historial de compras con nombres de producto
    """

    def __init__(
        self,
        client_repo: ClientRepository,
        sales_repo: SalesRepository,
        sale_items_repo: SaleItemRepository,
        product_repo: ProductRepository,
        currency_service: CurrencyService,
        credit_window_days: int = 30
    ):
        self.client_repo = client_repo
        self.sales_repo = sales_repo
        self.sale_items_repo = sale_items_repo
        self.product_repo = product_repo
        self.currency_service = currency_service
        self.credit_window_days = credit_window_days

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def list_clients(self) -> Dict[str, Any]:
        try:
            clients = self.client_repo.list()
        except ApiError as e:
            return _api_error('obtener los clientes', e)
        return {'ok': True, 'clients': [{'id': c.id, **c.to_dict(), 'createdAt': c.created_at} for c in clients]}

    def get_client(self, client_id: Any) -> Optional[Client]:
        return self.client_repo.get(client_id)

    # =========================================================================
    # ALTAS, CAMBIOS Y BAJAS
    # =========================================================================

    def _validate(self, data: Dict[str, Any]) -> Optional[str]:
        if not _text(data.get('name')):
            return 'El nombre es obligatorio'
        if not _text(data.get('documentNumber')):
            return 'El número de documento es obligatorio'
        try:
            balance = float(data.get('balance') or 0)
        except (TypeError, ValueError):
            return 'El balance es inválido'
        if not math.isfinite(balance):
            return 'El balance es inválido'
        return None

    def create_client(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Crea un cliente.

        Args:
            data: Campos en formato backend (name, documentType, documentNumber, ...)
        """
        error = self._validate(data)
        if error:
            return {'ok': False, 'error': error, 'kind': 'validation'}

        payload = {
            'name': _text(data['name']),
            'documentType': data.get('documentType') or 'DNI',
            'documentNumber': _text(data['documentNumber']),
            'phone': data.get('phone') or '',
            'email': data.get('email') or '',
            'address': data.get('address') or '',
            'balance': float(data.get('balance') or 0),
            'isActive': 1 if data.get('isActive', True) else 0,
        }
        try:
            result = self.client_repo.create(payload)
        except ApiError as e:
            return _api_error('crear el cliente', e)
        logger.info("Cliente creado: %s (%s)", payload['name'], payload['documentNumber'])
        return {'ok': True, 'id': result.get('id'), 'client': {'id': result.get('id'), **payload}}

    def quick_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Alta rápida desde el POS: solo nombre, documento y contacto opcional.
        Nace con balance 0 y activo.
        """
        document_type = data.get('documentType') or 'DNI'
        if document_type not in DOCUMENT_TYPES:
            return {'ok': False, 'error': 'Tipo de documento debe ser DNI o RIF', 'kind': 'validation'}
        return self.create_client({
            'name': data.get('name') or '',
            'documentType': document_type,
            'documentNumber': data.get('documentNumber') or '',
            'phone': data.get('phone') or '',
            'email': data.get('email') or '',
            'address': '',
            'balance': 0,
            'isActive': True,
        })

    def update_client(self, client_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
        try:
            client = self.client_repo.get(client_id)
            if client is None:
                return {'ok': False, 'error': 'Cliente no encontrado', 'kind': 'not_found'}
            merged = {**client.to_dict(), **changes}
            error = self._validate(merged)
            if error:
                return {'ok': False, 'error': error, 'kind': 'validation'}
            self.client_repo.merge_update(client, changes)
        except ApiError as e:
            return _api_error('actualizar el cliente', e)
        return {'ok': True, 'mensaje': 'Cliente actualizado'}

    def delete_client(self, client_id: Any) -> Dict[str, Any]:
        try:
            self.client_repo.delete(client_id)
        except ApiError as e:
            return _api_error('eliminar el cliente', e)
        logger.info("Cliente %s eliminado", client_id)
        return {'ok': True, 'mensaje': 'Cliente eliminado'}

    # =========================================================================
    # BALANCE Y CRÉDITOS
    # =========================================================================

    def adjust_balance(
        self,
        client_id: Any,
        adjustment_type: str,
        amount: Any,
        reason: str = ''
    ) -> Dict[str, Any]:
        """
        Ajusta el balance de un cliente.

        Args:
            adjustment_type: 'increase' (suma al balance) o 'decrease' (resta)
            amount: Monto positivo en Bs.S
            reason: Motivo (queda en el log)

        Returns:
            Dict con ok, balance (nuevo) o error
        """
        if adjustment_type not in BALANCE_ADJUSTMENTS:
            return {'ok': False, 'error': 'Tipo de ajuste inválido', 'kind': 'validation'}
        value = _positive_amount(amount)
        if value is None:
            return {'ok': False, 'error': 'El monto debe ser mayor a 0', 'kind': 'validation'}

        try:
            client = self.client_repo.get(client_id)
            if client is None:
                return {'ok': False, 'error': 'Cliente no encontrado', 'kind': 'not_found'}
            delta = value if adjustment_type == 'increase' else -value
            new_balance = round(client.balance + delta, 2)
            self.client_repo.merge_update(client, {'balance': new_balance})
        except ApiError as e:
            return _api_error('actualizar el balance', e)

        logger.info("Balance de cliente %s: %.2f -> %.2f (%s)",
                    client.id, client.balance, new_balance, reason or 'sin motivo')
        return {
            'ok': True,
            'mensaje': 'Crédito agregado' if adjustment_type == 'increase' else 'Deuda reducida',
            'previousBalance': client.balance,
            'balance': new_balance,
        }

    def create_credit(
        self,
        client_id: Any,
        amount: Any,
        due_date: Optional[str] = None,
        notes: str = '',
        exchange_rate: Any = None,
        sale_id: Any = None
    ) -> Dict[str, Any]:
        """
        Registra un crédito (monto en USD) para un cliente.

        El backend descuenta el equivalente en Bs.S del balance. Si no se da
        due_date vence a los credit_window_days.
        """
        value = _positive_amount(amount)
        if value is None:
            return {'ok': False, 'error': 'El monto debe ser mayor a 0', 'kind': 'validation'}
        if client_id is None:
            return {'ok': False, 'error': 'Cliente requerido', 'kind': 'validation'}

        rate = _positive_amount(exchange_rate) or self.currency_service.get_rates().parallel
        now = datetime.now(timezone.utc)
        if due_date and parse_datetime(due_date) is None:
            return {'ok': False, 'error': 'Fecha de vencimiento inválida', 'kind': 'validation'}
        due = due_date or (now + timedelta(days=self.credit_window_days)).date().isoformat()

        credit = {
            'clientId': client_id,
            'amount': value,
            'amountBsS': round(value * rate, 2),
            'exchangeRate': rate,
            'dueDate': due,
            'notes': notes or '',
            'saleId': sale_id,
            'createdDate': now.isoformat(),
        }
        try:
            result = self.client_repo.create_credit(credit)
        except ApiError as e:
            return _api_error('crear el crédito', e)
        logger.info("Crédito de %.2f USD para cliente %s (vence %s)", value, client_id, due)
        return {'ok': True, 'credit': {**credit, 'id': result.get('id')}}

    # =========================================================================
    # HISTORIAL
    # =========================================================================

    def purchase_history(self, client_id: Any) -> Dict[str, Any]:
        """
        Compras del cliente con sus líneas, de la más reciente a la más antigua.
        """
        try:
            sales = self.sales_repo.for_client(client_id)
            items = self.sale_items_repo.list()
            products = {p.id: p for p in self.product_repo.list()}
        except ApiError as e:
            return _api_error('obtener el historial', e)

        history: List[Dict[str, Any]] = []
        for sale in sales:
            is_credit = sale.status == 'pending'
            sale_date = parse_datetime(sale.sale_date)
            due_date = None
            if is_credit and sale_date is not None:
                due_date = (sale_date + timedelta(days=self.credit_window_days)).isoformat()
            history.append({
                'id': sale.id,
                'saleId': sale.id,
                'clientId': sale.client_id,
                'saleDate': sale.sale_date,
                'total': sale.total,
                'paymentType': 'credit' if is_credit else 'cash',
                'status': sale.status,
                'dueDate': due_date,
                'notes': sale.notes,
                'items': [
                    {
                        'productName': (products[i.product_id].name if i.product_id in products
                                        else i.product_name or 'Producto desconocido'),
                        'quantity': i.quantity,
                        'unitPrice': i.unit_price,
                        'subtotal': i.subtotal,
                    }
                    for i in items if i.sale_id == sale.id
                ],
            })

        def sort_key(entry):
            dt = parse_datetime(entry['saleDate'])
            if dt is None:
                return 0.0
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt.timestamp()

        history.sort(key=sort_key, reverse=True)
        return {'ok': True, 'history': history}

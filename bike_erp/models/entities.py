# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio (tienda de bicicletas y
# motos). Los nombres de campo en to_dict()/from_dict() respetan el formato
# JSON del backend REST (camelCase), los atributos Python van en snake_case.
# ==============================================================================

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class DebtStatus(str, Enum):
    """Estado de la deuda de un cliente respecto a su fecha de vencimiento."""
    OVERDUE = "overdue"      # Vencida
    DUE_SOON = "due_soon"    # Vence dentro de la ventana de aviso
    CURRENT = "current"      # Al día


# Orden de prioridad para listar deudas (vencidas primero)
DEBT_STATUS_ORDER = {
    DebtStatus.OVERDUE: 0,
    DebtStatus.DUE_SOON: 1,
    DebtStatus.CURRENT: 2,
}


class PaymentMethod(str, Enum):
    """Métodos de pago aceptados en el POS."""
    CASH_VES = "cash_ves"
    CASH_USD = "cash_usd"
    CARD = "card"
    TRANSFER = "transfer"
    CREDIT = "credit"
    ZELLE = "zelle"
    USDT = "usdt"


PAYMENT_METHOD_LABELS = {
    PaymentMethod.CASH_VES: "Efectivo en Bs",
    PaymentMethod.CASH_USD: "Efectivo en $",
    PaymentMethod.CARD: "Tarjeta",
    PaymentMethod.TRANSFER: "Transferencia",
    PaymentMethod.CREDIT: "Crédito",
    PaymentMethod.ZELLE: "Zelle",
    PaymentMethod.USDT: "USDT",
}


class RateTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        number = float(value if value is not None else default)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value if value is not None else default)
    except (TypeError, ValueError, OverflowError):
        return default


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parsea una fecha ISO del backend.

    Acepta 'YYYY-MM-DD', 'YYYY-MM-DD HH:MM:SS' (formato SQLite) y
    timestamps ISO con 'Z' u offset. Retorna None si no puede parsear.
    El resultado puede ser naive; quien lo use decide la zona horaria.
    """
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    text = value.strip().replace('Z', '+00:00')
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


# ==============================================================================
# ENTIDADES DEL BACKEND
# ==============================================================================

@dataclass
class Product:
    """
    Producto del inventario.

    current_stock es autoritativo desde el backend: el carrito lo usa como
    techo, nunca lo modifica.
    """
    id: int
    name: str
    sku: str = ''
    category: str = ''
    sale_price: float = 0.0
    cost_price: float = 0.0
    current_stock: int = 0
    min_stock: int = 0
    max_stock: int = 0
    brand: str = ''
    model: str = ''
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def is_low_stock(self, default_min: int = 5) -> bool:
        """Stock bajo: current_stock <= (min_stock o el mínimo por defecto)."""
        return self.current_stock <= (self.min_stock or default_min)

    def to_dict(self) -> Dict[str, Any]:
        """Convierte al formato JSON del backend (sin id)."""
        return {
            'name': self.name,
            'sku': self.sku,
            'category': self.category,
            'salePrice': self.sale_price,
            'costPrice': self.cost_price,
            'currentStock': self.current_stock,
            'minStock': self.min_stock,
            'maxStock': self.max_stock,
            'brand': self.brand,
            'model': self.model,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        return cls(
            id=_to_int(data.get('id')),
            name=data.get('name') or '',
            sku=data.get('sku') or '',
            category=data.get('category') or '',
            sale_price=_to_float(data.get('salePrice')),
            cost_price=_to_float(data.get('costPrice')),
            current_stock=_to_int(data.get('currentStock')),
            min_stock=_to_int(data.get('minStock')),
            max_stock=_to_int(data.get('maxStock')),
            brand=data.get('brand') or '',
            model=data.get('model') or '',
            created_at=data.get('createdAt'),
            updated_at=data.get('updatedAt'),
        )


@dataclass
class Client:
    """
    Cliente de la tienda.

    balance es con signo: negativo = deuda. Solo cambia por ajustes
    explícitos, créditos o ventas completadas.
    """
    id: int
    name: str
    document_type: str = ''
    document_number: str = ''
    phone: str = ''
    email: str = ''
    address: str = ''
    balance: float = 0.0
    is_active: bool = True
    created_at: Optional[str] = None

    @property
    def has_debt(self) -> bool:
        return self.balance < 0

    def to_dict(self) -> Dict[str, Any]:
        """Convierte al formato JSON del backend (sin id)."""
        return {
            'name': self.name,
            'documentType': self.document_type,
            'documentNumber': self.document_number,
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
            'balance': self.balance,
            'isActive': 1 if self.is_active else 0,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Client':
        return cls(
            id=_to_int(data.get('id')),
            name=data.get('name') or '',
            document_type=data.get('documentType') or '',
            document_number=data.get('documentNumber') or '',
            phone=data.get('phone') or '',
            email=data.get('email') or '',
            address=data.get('address') or '',
            balance=_to_float(data.get('balance')),
            is_active=bool(data.get('isActive', 1)),
            created_at=data.get('createdAt'),
        )


@dataclass
class Sale:
    """Cabecera de venta tal como la devuelve /sales."""
    id: int
    client_id: Optional[int] = None
    sale_date: Optional[str] = None
    total: float = 0.0
    user_id: Optional[Any] = None
    status: str = 'completed'
    notes: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Sale':
        client_id = data.get('clientId')
        return cls(
            id=_to_int(data.get('id')),
            client_id=_to_int(client_id) if client_id is not None else None,
            sale_date=data.get('saleDate'),
            total=_to_float(data.get('total')),
            user_id=data.get('userId'),
            status=data.get('status') or 'completed',
            notes=data.get('notes') or '',
        )


@dataclass
class SaleItem:
    """Línea de venta tal como la devuelve /sale_items (snake_case en el backend)."""
    id: int
    sale_id: int
    product_id: int
    quantity: int = 0
    unit_price: float = 0.0
    subtotal: float = 0.0
    product_name: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SaleItem':
        quantity = _to_int(data.get('quantity'))
        subtotal = _to_float(data.get('subtotal'))
        unit_price = data.get('unit_price', data.get('unitPrice'))
        if unit_price is None and quantity:
            unit_price = subtotal / quantity
        return cls(
            id=_to_int(data.get('id')),
            sale_id=_to_int(data.get('sale_id')),
            product_id=_to_int(data.get('product_id')),
            quantity=quantity,
            unit_price=_to_float(unit_price),
            subtotal=subtotal,
            product_name=data.get('product_name') or '',
        )


@dataclass
class Category:
    id: int
    name: str
    display_name: str
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'displayName': self.display_name,
            'isActive': self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Category':
        return cls(
            id=_to_int(data.get('id')),
            name=data.get('name') or '',
            display_name=data.get('displayName') or data.get('name') or '',
            is_active=bool(data.get('isActive', 1)),
        )


# ==============================================================================
# CARRITO
# ==============================================================================

@dataclass
class CartLineItem:
    """
    Línea del carrito del POS.

    Invariantes:
    - 1 <= quantity <= stock (techo de la última lectura de stock)
    - 0 <= discount <= 100
    """
    product_id: str
    name: str
    unit_price: float
    quantity: int = 1
    stock: int = 0
    sku: str = ''
    brand: str = ''
    model: str = ''
    discount: float = 0.0

    @property
    def discounted_unit_price(self) -> float:
        return self.unit_price * (1 - (self.discount or 0) / 100)

    @property
    def line_total(self) -> float:
        return self.discounted_unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.product_id,
            'name': self.name,
            'price': self.unit_price,
            'quantity': self.quantity,
            'stock': self.stock,
            'sku': self.sku,
            'brand': self.brand,
            'model': self.model,
            'discount': self.discount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartLineItem':
        return cls(
            product_id=str(data.get('id', '')),
            name=data.get('name') or '',
            unit_price=_to_float(data.get('price')),
            quantity=_to_int(data.get('quantity'), 1),
            stock=_to_int(data.get('stock')),
            sku=data.get('sku') or '',
            brand=data.get('brand') or '',
            model=data.get('model') or '',
            discount=_to_float(data.get('discount')),
        )

    @classmethod
    def from_product(cls, product: Product) -> 'CartLineItem':
        return cls(
            product_id=str(product.id),
            name=product.name,
            unit_price=product.sale_price,
            quantity=1,
            stock=product.current_stock,
            sku=product.sku,
            brand=product.brand,
            model=product.model,
        )


@dataclass
class CartSession:
    """Estado completo del carrito antes del cobro."""
    items: List[CartLineItem] = field(default_factory=list)
    selected_client: Optional[Dict[str, Any]] = None
    global_discount: float = 0.0
    notes: str = ''

    def find(self, product_id: Any) -> Optional[CartLineItem]:
        key = str(product_id)
        for item in self.items:
            if item.product_id == key:
                return item
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'items': [item.to_dict() for item in self.items],
            'selectedClient': self.selected_client,
            'globalDiscount': self.global_discount,
            'notes': self.notes,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CartSession':
        if not isinstance(data, dict):
            return cls()
        return cls(
            items=[CartLineItem.from_dict(i) for i in data.get('items') or []],
            selected_client=data.get('selectedClient'),
            global_discount=_to_float(data.get('globalDiscount')),
            notes=data.get('notes') or '',
        )


# ==============================================================================
# VALORES DERIVADOS (no persistidos en el backend)
# ==============================================================================

@dataclass
class ExchangeRates:
    """Tasas USD -> Bs.S (BCV oficial y paralela)."""
    bcv: float = 36.20
    parallel: float = 35.50
    last_update: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    variation: float = 0.0
    trend: RateTrend = RateTrend.STABLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bcv': self.bcv,
            'parallel': self.parallel,
            'lastUpdate': self.last_update.isoformat(),
            'variation': self.variation,
            'trend': self.trend.value,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ExchangeRates':
        if not isinstance(data, dict):
            return cls()
        defaults = cls()
        try:
            trend = RateTrend(data.get('trend', 'stable'))
        except ValueError:
            trend = RateTrend.STABLE
        return cls(
            bcv=_to_float(data.get('bcv'), defaults.bcv),
            parallel=_to_float(data.get('parallel'), defaults.parallel),
            last_update=parse_datetime(data.get('lastUpdate')) or defaults.last_update,
            variation=_to_float(data.get('variation')),
            trend=trend,
        )


@dataclass
class DebtSummary:
    """Resumen de deuda de un cliente con balance negativo."""
    client_id: int
    client_name: str
    document_number: str
    total_debt: float
    status: DebtStatus
    next_due_date: str
    days_past_due: Optional[int] = None
    days_until_due: Optional[int] = None
    total_debt_usd: Optional[float] = None

    @property
    def overdue_amount(self) -> float:
        return self.total_debt if self.status == DebtStatus.OVERDUE else 0.0

    @property
    def current_amount(self) -> float:
        return self.total_debt if self.status != DebtStatus.OVERDUE else 0.0

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'clientId': self.client_id,
            'clientName': self.client_name,
            'documentNumber': self.document_number,
            'totalDebt': round(self.total_debt, 2),
            'overdueAmount': round(self.overdue_amount, 2),
            'currentAmount': round(self.current_amount, 2),
            'nextDueDate': self.next_due_date,
            'daysPastDue': self.days_past_due,
            'daysUntilDue': self.days_until_due,
            'status': self.status.value,
        }
        if self.total_debt_usd is not None:
            d['totalDebtUSD'] = round(self.total_debt_usd, 2)
            d['totalDebtBsS'] = round(self.total_debt, 2)
        return d


@dataclass
class TopSellingProduct:
    product: Dict[str, Any]
    quantity: int

    def to_dict(self) -> Dict[str, Any]:
        return {'product': self.product, 'quantity': self.quantity}


@dataclass
class DashboardStats:
    today_sales: float = 0.0
    month_sales: float = 0.0
    low_stock_items: int = 0
    active_service_orders: int = 0
    pending_payments: float = 0.0
    top_selling_products: List[TopSellingProduct] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'todaySales': round(self.today_sales, 2),
            'monthSales': round(self.month_sales, 2),
            'lowStockItems': self.low_stock_items,
            'activeServiceOrders': self.active_service_orders,
            'pendingPayments': round(self.pending_payments, 2),
            'topSellingProducts': [p.to_dict() for p in self.top_selling_products],
        }


# ==============================================================================
# USUARIOS, ROLES Y PERMISOS
# ==============================================================================

@dataclass
class Permission:
    module: str
    actions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'module': self.module, 'actions': list(self.actions)}


@dataclass
class Role:
    id: int
    name: str
    display_name: str
    permissions: List[Permission] = field(default_factory=list)

    def allows(self, module: str, action: str) -> bool:
        for permission in self.permissions:
            if permission.module == module:
                return action in permission.actions
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'displayName': self.display_name,
            'permissions': [p.to_dict() for p in self.permissions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Role':
        return cls(
            id=_to_int(data.get('id')),
            name=data.get('name') or '',
            display_name=data.get('displayName') or '',
            permissions=[
                Permission(module=p.get('module', ''), actions=list(p.get('actions') or []))
                for p in data.get('permissions') or []
            ],
        )


@dataclass
class User:
    """
    Usuario de la terminal.

    NOTA: la autenticación es de demostración (placeholder), no un diseño
    de seguridad.
    """
    id: str
    name: str
    email: str
    role: Role
    is_active: bool = True
    created_at: Optional[str] = None
    last_login: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role.to_dict(),
            'isActive': self.is_active,
            'createdAt': self.created_at,
            'lastLogin': self.last_login,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name') or '',
            email=data.get('email') or '',
            role=Role.from_dict(data.get('role') or {}),
            is_active=bool(data.get('isActive', True)),
            created_at=data.get('createdAt'),
            last_login=data.get('lastLogin'),
        )


@dataclass
class DatabaseConfig:
    """Configuración de conexión guardada localmente (se envía al backend)."""
    host: str = 'localhost'
    port: str = '5432'
    database: str = 'bicicentro_erp'
    username: str = 'postgres'
    password: str = ''
    max_connections: int = 20
    timeout: int = 10000

    def to_dict(self) -> Dict[str, Any]:
        return {
            'host': self.host,
            'port': self.port,
            'database': self.database,
            'username': self.username,
            'password': self.password,
            'maxConnections': self.max_connections,
            'timeout': self.timeout,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DatabaseConfig':
        defaults = cls()
        if not isinstance(data, dict):
            return defaults
        return cls(
            host=str(data.get('host', defaults.host)),
            port=str(data.get('port', defaults.port)),
            database=str(data.get('database', defaults.database)),
            username=str(data.get('username', defaults.username)),
            password=str(data.get('password', defaults.password)),
            max_connections=_to_int(data.get('maxConnections'), defaults.max_connections),
            timeout=_to_int(data.get('timeout'), defaults.timeout),
        )

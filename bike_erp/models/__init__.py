# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Entidades del dominio como dataclasses. Independientes del transporte:
# los repositorios las construyen desde el JSON del backend REST y desde el
# almacenamiento local de la terminal.
# ==============================================================================

from .entities import (
    # Backend
    Product,
    Client,
    Sale,
    SaleItem,
    Category,

    # Carrito
    CartLineItem,
    CartSession,

    # Derivados
    ExchangeRates,
    RateTrend,
    DebtSummary,
    DebtStatus,
    DEBT_STATUS_ORDER,
    DashboardStats,
    TopSellingProduct,

    # Pagos
    PaymentMethod,
    PAYMENT_METHOD_LABELS,

    # Usuarios
    User,
    Role,
    Permission,

    # Configuración
    DatabaseConfig,

    # Utilidades
    parse_datetime,
)

__all__ = [
    'Product',
    'Client',
    'Sale',
    'SaleItem',
    'Category',
    'CartLineItem',
    'CartSession',
    'ExchangeRates',
    'RateTrend',
    'DebtSummary',
    'DebtStatus',
    'DEBT_STATUS_ORDER',
    'DashboardStats',
    'TopSellingProduct',
    'PaymentMethod',
    'PAYMENT_METHOD_LABELS',
    'User',
    'Role',
    'Permission',
    'DatabaseConfig',
    'parse_datetime',
]

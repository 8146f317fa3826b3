# ==============================================================================
# SERVICIO DE MONEDA - USD / Bs.S
# ==============================================================================
# Los precios del inventario están en USD. Para cobrar en bolívares se usa
# la tasa paralela (o la BCV si se pide explícitamente).
#
# Formatos de pantalla:
#   USD  -> $1,234.56   (en-US, 2 decimales)
#   Bs.S -> Bs.S 1.235  (es-VE, sin decimales)
# ==============================================================================

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Union

from bike_erp.models import ExchangeRates, PaymentMethod, RateTrend
from bike_erp.repositories import SettingsRepository

logger = logging.getLogger(__name__)

# Métodos de pago liquidados directamente en dólares (sin conversión)
USD_PAYMENT_METHODS = {
    PaymentMethod.CASH_USD,
    PaymentMethod.ZELLE,
    PaymentMethod.USDT,
}


# ==============================================================================
# FUNCIONES PURAS
# ==============================================================================

def convert_usd_to_ves(usd_amount: float, rates: ExchangeRates, rate: str = 'parallel') -> float:
    """
    Convierte un monto en USD a Bs.S.

    Args:
        usd_amount: Monto en dólares
        rates: Tasas vigentes
        rate: 'bcv' o 'parallel'
    """
    exchange_rate = rates.bcv if rate == 'bcv' else rates.parallel
    return usd_amount * exchange_rate


def convert_ves_to_usd(ves_amount: float, rates: ExchangeRates) -> float:
    """Convierte Bs.S a USD con la tasa paralela."""
    if rates.parallel <= 0:
        return 0.0
    return ves_amount / rates.parallel


def _round_half_up(amount: float, places: int) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(amount)).quantize(exponent, rounding=ROUND_HALF_UP)


def format_usd(amount: float) -> str:
    """1234.5 -> '$1,234.50'"""
    value = _round_half_up(amount, 2)
    sign = '-' if value < 0 else ''
    return f"{sign}${abs(value):,.2f}"


def format_ves(amount: float) -> str:
    """1234.5 -> 'Bs.S 1.235' (punto como separador de miles)"""
    value = _round_half_up(amount, 0)
    sign = '-' if value < 0 else ''
    grouped = f"{abs(int(value)):,}".replace(',', '.')
    return f"Bs.S {sign}{grouped}"


def format_price_with_both_rates(usd_price: float, rates: ExchangeRates) -> Dict[str, Any]:
    """
    Precio en USD junto a su equivalente con cada tasa.

    Returns:
        {usd, bcv, parallel, bcvAmount, parallelAmount}
    """
    bcv_price = convert_usd_to_ves(usd_price, rates, 'bcv')
    parallel_price = convert_usd_to_ves(usd_price, rates, 'parallel')
    return {
        'usd': format_usd(usd_price),
        'bcv': format_ves(bcv_price),
        'parallel': format_ves(parallel_price),
        'bcvAmount': bcv_price,
        'parallelAmount': parallel_price,
    }


def rate_for_payment_method(method: Union[str, PaymentMethod], rates: ExchangeRates) -> float:
    """
    Tasa a aplicar según el método de pago.

    Pagos en dólares no se convierten (1); todo lo pagado en Bs.S usa
    la tasa paralela.
    """
    try:
        method = PaymentMethod(method)
    except ValueError:
        return rates.parallel
    if method in USD_PAYMENT_METHODS:
        return 1.0
    return rates.parallel


def compute_rate_change(previous: ExchangeRates, bcv: float, parallel: float) -> ExchangeRates:
    """
    Construye las nuevas tasas con su variación respecto a las anteriores.

    variation es el cambio porcentual de la tasa paralela.
    """
    variation = 0.0
    if previous.parallel > 0:
        variation = round((parallel - previous.parallel) / previous.parallel * 100, 2)

    if variation > 0:
        trend = RateTrend.UP
    elif variation < 0:
        trend = RateTrend.DOWN
    else:
        trend = RateTrend.STABLE

    return ExchangeRates(
        bcv=bcv,
        parallel=parallel,
        last_update=datetime.now(timezone.utc),
        variation=variation,
        trend=trend,
    )


# ==============================================================================
# SERVICIO (tasas persistidas)
# ==============================================================================

class CurrencyService:
    """
    Servicio de tasas de cambio.

    Las tasas viven en el almacén local bajo 'enhancedExchangeRates'.
    """

    def __init__(self, settings_repo: SettingsRepository):
        self.settings_repo = settings_repo

    def get_rates(self) -> ExchangeRates:
        return self.settings_repo.get_rates()

    def update_rates(self, bcv: Any = None, parallel: Any = None) -> Dict[str, Any]:
        """
        Actualiza una o ambas tasas.

        Args:
            bcv: Nueva tasa BCV (None = conservar la actual)
            parallel: Nueva tasa paralela (None = conservar la actual)

        Returns:
            Dict con ok, rates o error
        """
        try:
            bcv_value = float(bcv) if bcv is not None else None
            parallel_value = float(parallel) if parallel is not None else None
        except (TypeError, ValueError):
            return {'ok': False, 'error': 'Las tasas deben ser numéricas', 'kind': 'validation'}

        if bcv_value is None and parallel_value is None:
            return {'ok': False, 'error': 'Debe indicar al menos una tasa', 'kind': 'validation'}

        for value in (bcv_value, parallel_value):
            if value is not None and (not math.isfinite(value) or value <= 0):
                return {'ok': False, 'error': 'Las tasas deben ser mayores a 0', 'kind': 'validation'}

        def apply(current: ExchangeRates) -> ExchangeRates:
            return compute_rate_change(
                current,
                bcv_value if bcv_value is not None else current.bcv,
                parallel_value if parallel_value is not None else current.parallel,
            )

        rates = self.settings_repo.update_rates(apply)
        logger.info("Tasas actualizadas: BCV %.2f / paralela %.2f (%s)",
                    rates.bcv, rates.parallel, rates.trend.value)
        return {'ok': True, 'rates': rates.to_dict()}

    def convert(self, amount: Any, direction: str = 'usd_to_ves', rate: str = 'parallel') -> Dict[str, Any]:
        """
        Conversión puntual con las tasas guardadas.

        Args:
            amount: Monto a convertir
            direction: 'usd_to_ves' o 'ves_to_usd'
            rate: 'bcv' o 'parallel' (solo para usd_to_ves)
        """
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            return {'ok': False, 'error': 'Monto inválido', 'kind': 'validation'}
        if not math.isfinite(amount):
            return {'ok': False, 'error': 'Monto inválido', 'kind': 'validation'}

        rates = self.get_rates()
        if direction == 'ves_to_usd':
            result = convert_ves_to_usd(amount, rates)
            return {'ok': True, 'amount': result, 'formatted': format_usd(result)}

        result = convert_usd_to_ves(amount, rates, rate)
        return {
            'ok': True,
            'amount': result,
            'formatted': format_ves(result),
            'prices': format_price_with_both_rates(amount, rates),
        }

    def rate_for_payment_method(self, method: Union[str, PaymentMethod]) -> float:
        return rate_for_payment_method(method, self.get_rates())

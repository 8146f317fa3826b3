# ==============================================================================
# SERVICIO DE DEUDAS DE CLIENTES
# ==============================================================================
# Deriva el estado de crédito de cada cliente con balance negativo.
#
# El backend NO guarda fecha de vencimiento: se asume una ventana de crédito
# (por defecto 30 días) desde la creación del cliente. Es una regla supuesta,
# configurable con BIKE_ERP_CREDIT_WINDOW_DAYS.
#
# Estados:
#   overdue  -> vencida (days_past_due = días desde el vencimiento)
#   due_soon -> vence dentro de due_soon_days (inclusive)
#   current  -> al día
# ==============================================================================

import logging
import math
from datetime import datetime, timedelta, tzinfo
from typing import Any, Dict, Iterable, List, Optional

from bike_erp.models import Client, DEBT_STATUS_ORDER, DebtStatus, DebtSummary, ExchangeRates
from bike_erp.repositories import ApiError, ClientRepository
from bike_erp.services.currency_service import CurrencyService, convert_ves_to_usd
from bike_erp.services.shop_time import to_shop_time

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def summarize_client_debt(
    client: Client,
    now: datetime,
    tz: tzinfo,
    credit_window_days: int = 30,
    due_soon_days: int = 7,
    rates: Optional[ExchangeRates] = None
) -> Optional[DebtSummary]:
    """
    Resumen de deuda de un cliente.

    Returns:
        DebtSummary o None si el cliente no debe nada
    """
    if client.balance >= 0:
        return None

    total_debt = abs(client.balance)
    created = to_shop_time(client.created_at, tz) or now.astimezone(tz)
    due_date = created + timedelta(days=credit_window_days)
    days_diff = math.ceil((due_date - now).total_seconds() / SECONDS_PER_DAY)

    days_past_due = None
    days_until_due = None
    if days_diff < 0:
        status = DebtStatus.OVERDUE
        days_past_due = abs(days_diff)
    elif days_diff <= due_soon_days:
        status = DebtStatus.DUE_SOON
        days_until_due = days_diff
    else:
        status = DebtStatus.CURRENT
        days_until_due = days_diff

    return DebtSummary(
        client_id=client.id,
        client_name=client.name,
        document_number=client.document_number,
        total_debt=total_debt,
        status=status,
        next_due_date=due_date.date().isoformat(),
        days_past_due=days_past_due,
        days_until_due=days_until_due,
        total_debt_usd=convert_ves_to_usd(total_debt, rates) if rates is not None else None,
    )


def compute_debt_summaries(
    clients: Iterable[Client],
    now: datetime,
    tz: tzinfo,
    credit_window_days: int = 30,
    due_soon_days: int = 7,
    rates: Optional[ExchangeRates] = None
) -> List[DebtSummary]:
    """
    Resúmenes de todos los deudores: vencidos, luego por vencer, luego al día.
    Dentro de cada grupo se conserva el orden de entrada.
    """
    summaries = [
        summarize_client_debt(c, now, tz, credit_window_days, due_soon_days, rates)
        for c in clients
    ]
    return sorted(
        (s for s in summaries if s is not None),
        key=lambda s: DEBT_STATUS_ORDER[s.status],
    )


def client_debts_view(summaries: Iterable[DebtSummary]) -> List[Dict[str, Any]]:
    """Vista plana para alertas: un registro por deudor."""
    return [
        {
            'clientId': s.client_id,
            'clientName': s.client_name,
            'documentNumber': s.document_number,
            'debtAmount': round(s.total_debt, 2),
            'status': s.status.value,
            'days': s.days_past_due if s.status == DebtStatus.OVERDUE else s.days_until_due,
        }
        for s in summaries
    ]


class DebtService:
    """Servicio de deudas; combina clientes del backend y tasas locales."""

    def __init__(
        self,
        client_repo: ClientRepository,
        currency_service: CurrencyService,
        tz: tzinfo,
        credit_window_days: int = 30,
        due_soon_days: int = 7,
        clock=None
    ):
        self.client_repo = client_repo
        self.currency_service = currency_service
        self.tz = tz
        self.credit_window_days = credit_window_days
        self.due_soon_days = due_soon_days
        self._clock = clock or (lambda: datetime.now(tz))

    def get_summaries(self, enhanced: bool = False, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Deudas de todos los clientes.

        Args:
            enhanced: Si True agrega totalDebtUSD / totalDebtBsS (tasa paralela)

        Returns:
            Dict con ok, debts, totals o error
        """
        try:
            clients = self.client_repo.list()
        except ApiError as e:
            logger.warning("No se pudieron obtener clientes para deudas: %s", e)
            return {'ok': False, 'error': str(e), 'kind': 'api', 'debts': []}

        rates = self.currency_service.get_rates() if enhanced else None
        summaries = compute_debt_summaries(
            clients,
            now or self._clock(),
            self.tz,
            self.credit_window_days,
            self.due_soon_days,
            rates,
        )
        return {
            'ok': True,
            'debts': [s.to_dict() for s in summaries],
            'alerts': client_debts_view(summaries),
            'totals': {
                'totalDebt': round(sum(s.total_debt for s in summaries), 2),
                'overdueAmount': round(sum(s.overdue_amount for s in summaries), 2),
                'currentAmount': round(sum(s.current_amount for s in summaries), 2),
                'overdueClients': sum(1 for s in summaries if s.status == DebtStatus.OVERDUE),
            },
        }

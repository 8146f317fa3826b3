from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from bike_erp.models import Client, DebtStatus, ExchangeRates
from bike_erp.services.debt_service import compute_debt_summaries, summarize_client_debt

TZ = ZoneInfo('America/Caracas')
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=TZ)


def debtor(cid, days_ago, balance=-100.0):
    created = (NOW - timedelta(days=days_ago)).strftime('%Y-%m-%d %H:%M:%S')
    return Client(id=cid, name=f'Cliente {cid}', document_number=f'V-{cid}',
                  balance=balance, created_at=created)


def test_overdue_after_credit_window():
    summary = summarize_client_debt(debtor(1, 35), NOW, TZ, credit_window_days=30, due_soon_days=7)

    assert summary.status == DebtStatus.OVERDUE
    assert summary.days_past_due == 5
    assert summary.days_until_due is None
    assert summary.overdue_amount == 100.0
    assert summary.current_amount == 0


def test_due_soon_inside_warning_window():
    summary = summarize_client_debt(debtor(1, 25), NOW, TZ, credit_window_days=30, due_soon_days=7)

    assert summary.status == DebtStatus.DUE_SOON
    assert summary.days_until_due == 5
    assert summary.next_due_date == '2024-06-20'


def test_current_when_far_from_due_date():
    summary = summarize_client_debt(debtor(1, 10), NOW, TZ)

    assert summary.status == DebtStatus.CURRENT
    assert summary.days_until_due == 20


def test_clients_without_debt_are_skipped():
    assert summarize_client_debt(debtor(1, 40, balance=0), NOW, TZ) is None
    assert summarize_client_debt(debtor(1, 40, balance=25.0), NOW, TZ) is None


def test_summaries_sorted_by_status_keeping_order():
    clients = [debtor(1, 10), debtor(2, 40), debtor(3, 25), debtor(4, 31)]

    summaries = compute_debt_summaries(clients, NOW, TZ)

    assert [s.client_id for s in summaries] == [2, 4, 3, 1]


def test_enhanced_summary_adds_usd_amount():
    rates = ExchangeRates(bcv=41.0, parallel=40.0)
    summary = summarize_client_debt(debtor(1, 10, balance=-4000.0), NOW, TZ, rates=rates)

    data = summary.to_dict()
    assert data['totalDebtUSD'] == 100.0
    assert data['totalDebtBsS'] == 4000.0


def test_service_reports_totals(container, backend):
    created = (NOW - timedelta(days=40)).strftime('%Y-%m-%d %H:%M:%S')
    backend.data['clients'][1]['createdAt'] = created

    result = container.debt_service.get_summaries(now=NOW)

    assert result['ok']
    assert [d['clientName'] for d in result['debts']] == ['Ana Rojas']
    assert result['debts'][0]['status'] == 'overdue'
    assert result['alerts'][0]['days'] == 10
    assert result['totals'] == {
        'totalDebt': 1500.0,
        'overdueAmount': 1500.0,
        'currentAmount': 0,
        'overdueClients': 1,
    }


def test_service_enhanced_uses_saved_parallel_rate(container):
    container.currency_service.update_rates(parallel=50)

    result = container.debt_service.get_summaries(enhanced=True, now=NOW)

    assert result['debts'][0]['totalDebtUSD'] == pytest.approx(30.0)


def test_service_reports_backend_failure(container, backend):
    backend.fail('/clients')

    result = container.debt_service.get_summaries(now=NOW)

    assert not result['ok']
    assert result['kind'] == 'api'

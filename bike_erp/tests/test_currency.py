import pytest

from bike_erp.models import ExchangeRates, RateTrend
from bike_erp.services import (
    convert_usd_to_ves,
    convert_ves_to_usd,
    format_price_with_both_rates,
    format_usd,
    format_ves,
    rate_for_payment_method,
)

RATES = ExchangeRates(bcv=36.20, parallel=35.50)


def test_conversions():
    assert convert_usd_to_ves(10, RATES) == pytest.approx(355.0)
    assert convert_usd_to_ves(10, RATES, 'bcv') == pytest.approx(362.0)
    assert convert_ves_to_usd(355, RATES) == pytest.approx(10.0)
    assert convert_ves_to_usd(100, ExchangeRates(parallel=0)) == 0.0


def test_formats():
    assert format_usd(1234.5) == '$1,234.50'
    assert format_usd(0) == '$0.00'
    assert format_usd(-3.456) == '-$3.46'
    assert format_ves(1234.5) == 'Bs.S 1.235'
    assert format_ves(1000000) == 'Bs.S 1.000.000'


def test_price_with_both_rates():
    prices = format_price_with_both_rates(10, RATES)
    assert prices['usd'] == '$10.00'
    assert prices['bcv'] == 'Bs.S 362'
    assert prices['parallel'] == 'Bs.S 355'
    assert prices['parallelAmount'] == pytest.approx(355.0)


@pytest.mark.parametrize('method, expected', [
    ('cash_usd', 1.0),
    ('zelle', 1.0),
    ('usdt', 1.0),
    ('cash_ves', 35.50),
    ('card', 35.50),
    ('credit', 35.50),
])
def test_rate_for_payment_method(method, expected):
    assert rate_for_payment_method(method, RATES) == expected


def test_default_rates_when_nothing_saved(container):
    rates = container.currency_service.get_rates()
    assert (rates.bcv, rates.parallel) == (36.20, 35.50)


def test_update_rates_tracks_variation(container):
    result = container.currency_service.update_rates(bcv=40, parallel=39.05)

    assert result['ok']
    rates = container.currency_service.get_rates()
    assert rates.bcv == 40
    assert rates.variation == pytest.approx(10.0)
    assert rates.trend == RateTrend.UP

    container.currency_service.update_rates(parallel=39.05)
    assert container.currency_service.get_rates().trend == RateTrend.STABLE
    assert container.currency_service.get_rates().bcv == 40


@pytest.mark.parametrize('bcv, parallel', [
    (None, None),
    (-1, None),
    (None, 0),
    ('abc', 10),
    ('nan', None),
    (None, 'inf'),
    ('nan', 'inf'),
])
def test_update_rates_validation(container, bcv, parallel):
    result = container.currency_service.update_rates(bcv, parallel)
    assert not result['ok']
    assert result['kind'] == 'validation'
    rates = container.currency_service.get_rates()
    assert (rates.bcv, rates.parallel) == (36.20, 35.50)


def test_convert(container):
    result = container.currency_service.convert('10')
    assert result['formatted'] == 'Bs.S 355'

    result = container.currency_service.convert(710, 'ves_to_usd')
    assert result['formatted'] == '$20.00'

    assert not container.currency_service.convert('diez')['ok']


@pytest.mark.parametrize('amount', ['nan', 'inf', '-inf'])
def test_convert_rejects_non_finite_amounts(container, amount):
    result = container.currency_service.convert(amount)
    assert not result['ok']
    assert result['kind'] == 'validation'


def test_saved_rates_ignore_non_finite_values():
    rates = ExchangeRates.from_dict({'bcv': 'nan', 'parallel': float('inf')})
    assert (rates.bcv, rates.parallel) == (36.20, 35.50)

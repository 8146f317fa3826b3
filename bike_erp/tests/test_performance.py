import os

import pytest

from bike_erp import performance_logger as profiler


@pytest.fixture
def profiling(tmp_path, monkeypatch):
    monkeypatch.setattr(profiler, 'ENABLE_PROFILING', True)
    monkeypatch.setattr(profiler, 'LOGS_DIR', str(tmp_path))
    monkeypatch.setattr(profiler, 'LOG_FILES', {
        name: os.path.join(str(tmp_path), f'{name}.log') for name in profiler.LOG_FILES
    })
    profiler.reset_stats()
    yield profiler
    profiler.reset_stats()


def test_profile_function_collects_stats(profiling):
    @profiling.profile_function(name='Sumar')
    def add(a, b):
        return a + b

    assert add(2, 3) == 5
    add(1, 1)

    stats = profiling.get_function_stats()['Sumar']
    assert stats['calls'] == 2
    assert stats['max_time'] >= stats['avg_time'] >= 0


def test_profile_function_counts_failures(profiling):
    @profiling.profile_function
    def explode():
        raise ValueError('x')

    with pytest.raises(ValueError):
        explode()
    assert profiling.get_function_stats()[explode.__qualname__]['calls'] == 1


def test_slow_request_goes_to_both_logs(profiling):
    profiling.log_request('POST', '/api/cart/checkout', '/api/cart/checkout', 900, 'admin@bicicentro.com')
    profiling.log_request('GET', '/api/cart', '/api/cart', 12)

    summary = profiling.get_log_summary()
    assert summary['performance']['lines'] == 2
    assert summary['slow_routes']['lines'] == 1
    assert not summary['slow_functions']['exists']

    with open(profiling.LOG_FILES['slow_routes'], encoding='utf-8') as f:
        line = f.read()
    assert 'CRÍTICO' in line
    assert 'Cobrar venta' in line


def test_route_descriptions():
    assert profiler.describe_route('POST', '/api/clients/3/balance',
                                   '/api/clients/<int:client_id>/balance') == 'Ajustar balance'
    assert profiler.describe_route('GET', '/api/otra') == 'GET /api/otra'

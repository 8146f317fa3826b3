import json

import pytest

from bike_erp.repositories import LocalStore, QueryCache


@pytest.fixture
def store(tmp_path):
    return LocalStore(str(tmp_path))


def test_get_returns_copies(store):
    store.set('pos-cart', {'items': [{'id': '1'}]})
    value = store.get('pos-cart')
    value['items'].append({'id': '2'})
    assert store.get('pos-cart') == {'items': [{'id': '1'}]}


def test_missing_key_and_remove(store):
    assert store.get('nada') is None
    assert store.get('nada', default=[]) == []
    store.set('a', 1)
    assert store.remove('a') is True
    assert store.remove('a') is False
    assert 'a' not in store.keys()


def test_update_is_read_modify_write(store):
    store.set('counter', 1)
    assert store.update('counter', lambda v: v + 1) == 2
    assert store.update('other', lambda v: (v or 0) + 5) == 5
    assert store.get('counter') == 2


def test_update_that_raises_writes_nothing(store):
    store.set('counter', 1)

    def boom(_value):
        raise RuntimeError('rechazado')

    with pytest.raises(RuntimeError):
        store.update('counter', boom)
    assert store.get('counter') == 1


def test_subscribers_see_every_write(store):
    seen = []
    unsubscribe = store.subscribe('pos-cart', lambda key, value: seen.append((key, value)))

    store.set('pos-cart', {'items': []})
    store.update('pos-cart', lambda v: {**v, 'notes': 'x'})
    store.remove('pos-cart')
    store.set('other', 1)

    assert seen == [
        ('pos-cart', {'items': []}),
        ('pos-cart', {'items': [], 'notes': 'x'}),
        ('pos-cart', None),
    ]

    unsubscribe()
    store.set('pos-cart', {})
    assert len(seen) == 3


def test_two_stores_share_the_file(tmp_path):
    first = LocalStore(str(tmp_path))
    second = LocalStore(str(tmp_path))
    first.set('erp_user', {'id': '1'})
    assert second.get('erp_user') == {'id': '1'}


def test_corrupted_file_reads_as_empty(tmp_path):
    store = LocalStore(str(tmp_path))
    with open(store.file_path, 'w', encoding='utf-8') as f:
        f.write('{no es json')
    assert store.get('pos-cart') is None
    store.set('pos-cart', {'items': []})
    with open(store.file_path, 'r', encoding='utf-8') as f:
        assert json.load(f) == {'pos-cart': {'items': []}}


# ==============================================================================
# QueryCache
# ==============================================================================

class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_cache_entries_expire():
    clock = FakeClock()
    cache = QueryCache(default_stale_time=30, clock=clock)
    calls = []

    def fetch():
        calls.append(1)
        return [1, 2]

    assert cache.get_or_fetch(('products',), fetch) == [1, 2]
    clock.now = 10
    assert cache.get_or_fetch(('products',), fetch) == [1, 2]
    assert len(calls) == 1

    clock.now = 45
    cache.get_or_fetch(('products',), fetch)
    assert len(calls) == 2


def test_cache_invalidates_by_query_name():
    cache = QueryCache()
    cache.set(('reportsData', '2024-01-01', '2024-01-31'), {'a': 1})
    cache.set(('reportsData', '2024-02-01', '2024-02-29'), {'a': 2})
    cache.set(('products',), [])
    cache.set(('clients',), [])

    assert cache.invalidate('reportsData', 'products') == 3
    assert cache.get(('clients',)) == []
    assert cache.get(('products',)) is None


def test_failed_fetch_is_not_cached():
    cache = QueryCache()

    def failing():
        raise ValueError('backend caído')

    with pytest.raises(ValueError):
        cache.get_or_fetch('sales', failing)
    assert cache.get('sales') is None
    assert cache.get_or_fetch('sales', lambda: ['ok']) == ['ok']


def test_store_and_repositories_match_their_interfaces(container):
    from bike_erp.repositories import IKeyValueStore, IRestRepository

    assert isinstance(container.store, IKeyValueStore)
    for repo in (container.product_repo, container.client_repo, container.sales_repo,
                 container.sale_items_repo, container.category_repo):
        assert isinstance(repo, IRestRepository)

import pytest


@pytest.fixture
def clients(container):
    return container.client_service


def test_create_client_requires_name_and_document(clients, backend):
    result = clients.create_client({'name': '  ', 'documentNumber': 'V-1'})
    assert result['kind'] == 'validation'

    result = clients.create_client({'name': 'Luis', 'documentNumber': ''})
    assert result['kind'] == 'validation'
    assert len(backend.data['clients']) == 2


def test_create_client(clients, backend):
    result = clients.create_client({'name': 'Luis Díaz', 'documentNumber': 'V-555'})

    assert result['ok']
    created = backend.data['clients'][-1]
    assert created['id'] == result['id'] == 3
    assert created['documentType'] == 'DNI'
    assert created['balance'] == 0


@pytest.mark.parametrize('balance', ['abc', 'nan', float('inf')])
def test_create_client_rejects_invalid_balance(clients, backend, balance):
    result = clients.create_client({'name': 'Luis', 'documentNumber': 'V-1', 'balance': balance})
    assert result['kind'] == 'validation'
    assert backend.calls('POST') == []


def test_create_client_accepts_non_text_fields(clients, backend):
    result = clients.create_client({'name': 5, 'documentNumber': 12345678})

    assert result['ok']
    created = backend.data['clients'][-1]
    assert (created['name'], created['documentNumber']) == ('5', '12345678')


def test_quick_create_validates_document_type(clients, backend):
    assert clients.quick_create({'name': 'X', 'documentNumber': '1', 'documentType': 'PAS'})['kind'] == 'validation'

    result = clients.quick_create({'name': 'Tienda Sur', 'documentNumber': 'J-1', 'documentType': 'RIF'})
    assert result['ok']
    assert backend.data['clients'][-1]['isActive'] == 1


def test_update_client_sends_full_record(clients, backend):
    result = clients.update_client(1, {'phone': '0412-0000000'})

    assert result['ok']
    body = backend.calls('PUT', '/clients/1')[0][2]
    assert body['phone'] == '0412-0000000'
    assert body['name'] == 'Pedro Pérez'
    assert body['email'] == 'pedro@example.com'


def test_update_missing_client(clients):
    assert clients.update_client(99, {'name': 'x'})['kind'] == 'not_found'


def test_adjust_balance(clients, backend):
    result = clients.adjust_balance(1, 'decrease', 100, 'compra fiada')

    assert result['ok']
    assert result['previousBalance'] == 0
    assert result['balance'] == -100
    assert backend.data['clients'][0]['balance'] == -100
    assert backend.data['clients'][0]['name'] == 'Pedro Pérez'

    result = clients.adjust_balance(1, 'increase', '40.5')
    assert result['balance'] == -59.5


@pytest.mark.parametrize('kind, amount', [
    ('increase', 0),
    ('decrease', -5),
    ('decrease', 'mucho'),
    ('borrar', 10),
])
def test_adjust_balance_validation(clients, kind, amount):
    assert clients.adjust_balance(1, kind, amount)['kind'] == 'validation'


def test_create_credit_posts_once(clients, backend):
    result = clients.create_credit(1, 100, notes='moto a crédito')

    assert result['ok']
    credit = backend.credits[0]
    assert credit['amount'] == 100
    assert credit['exchangeRate'] == 35.5
    assert credit['amountBsS'] == 3550.0
    assert credit['dueDate']
    assert backend.calls('PUT') == []
    assert backend.data['clients'][0]['balance'] == -3550.0


def test_create_credit_validation(clients):
    assert clients.create_credit(1, 0)['kind'] == 'validation'
    assert clients.create_credit(1, 10, due_date='mañana')['kind'] == 'validation'


def test_purchase_history_newest_first(clients, backend):
    backend.data['sales'] = [
        {'id': 1, 'clientId': 2, 'saleDate': '2024-06-01 10:00:00', 'total': 45.0, 'status': 'completed'},
        {'id': 2, 'clientId': 2, 'saleDate': '2024-06-10 10:00:00', 'total': 20.0, 'status': 'pending'},
        {'id': 3, 'clientId': 1, 'saleDate': '2024-06-11 10:00:00', 'total': 99.0},
    ]
    backend.data['sale_items'] = [
        {'id': 1, 'sale_id': 1, 'product_id': 1, 'quantity': 1, 'unit_price': 45.0, 'subtotal': 45.0},
        {'id': 2, 'sale_id': 2, 'product_id': 42, 'quantity': 1, 'subtotal': 20.0, 'product_name': 'Pedal'},
    ]

    history = clients.purchase_history(2)['history']

    assert [h['saleId'] for h in history] == [2, 1]
    assert history[0]['paymentType'] == 'credit'
    assert history[0]['dueDate'].startswith('2024-07-10')
    assert history[0]['items'][0]['productName'] == 'Pedal'
    assert history[1]['paymentType'] == 'cash'
    assert history[1]['items'][0]['productName'] == 'Casco MTB'

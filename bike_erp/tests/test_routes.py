from conftest import login


def test_requires_login(client):
    r = client.get('/api/cart')
    assert r.status_code == 401
    assert r.get_json()['error'] == 'Debes iniciar sesión.'


def test_login_and_me(client):
    r = client.post('/api/auth/login', json={'email': 'admin@bicicentro.com', 'password': 'mala'})
    assert r.status_code == 401

    login(client)
    r = client.get('/api/auth/me')
    assert r.status_code == 200
    assert r.get_json()['user']['email'] == 'admin@bicicentro.com'

    client.post('/api/auth/logout')
    assert client.get('/api/auth/me').status_code == 401


def test_permission_denied(client):
    login(client, 'ventas@bicicentro.com')

    r = client.delete('/api/clients/1')
    assert r.status_code == 403
    assert r.get_json()['error'] == 'Permiso denegado.'

    assert client.get('/api/settings/database').status_code == 403


def test_cart_flow_and_checkout(client, backend):
    login(client, 'ventas@bicicentro.com')

    r = client.post('/api/cart/items', json={'productId': 1})
    assert r.status_code == 200
    assert r.get_json()['cart']['items'][0]['name'] == 'Casco MTB'

    r = client.put('/api/cart/items/1/quantity', json={'quantity': 2})
    assert r.get_json()['cart']['total'] == 90.0

    r = client.put('/api/cart/items/1/quantity', json={'quantity': 9})
    assert r.status_code == 409

    r = client.post('/api/cart/items', json={'productId': 3})
    assert r.status_code == 409

    r = client.post('/api/cart/items', json={'productId': 99})
    assert r.status_code == 404

    r = client.put('/api/cart/client', json={'clientId': 2})
    assert r.get_json()['cart']['selectedClient']['name'] == 'Ana Rojas'

    r = client.post('/api/cart/checkout', json={'paymentMethod': 'cash_usd'})
    assert r.status_code == 201
    assert backend.data['sales'][0]['clientId'] == 2
    assert backend.data['sales'][0]['userId'] == '3'

    assert client.get('/api/cart').get_json()['cart']['items'] == []


def test_checkout_backend_down(client, backend):
    login(client)
    client.post('/api/cart/items', json={'productId': 2})
    backend.fail('/sales')

    r = client.post('/api/cart/checkout', json={'paymentMethod': 'card'})

    assert r.status_code == 502
    assert len(client.get('/api/cart').get_json()['cart']['items']) == 1


def test_dashboard(client):
    login(client)
    r = client.get('/api/dashboard')
    assert r.status_code == 200
    assert set(r.get_json()['stats']) == {
        'todaySales', 'monthSales', 'lowStockItems',
        'activeServiceOrders', 'pendingPayments', 'topSellingProducts',
    }


def test_debts(client):
    login(client)
    r = client.get('/api/debts?enhanced=1')
    assert r.status_code == 200
    assert r.get_json()['debts'][0]['clientName'] == 'Ana Rojas'
    assert 'totalDebtUSD' in r.get_json()['debts'][0]


def test_reports_validation(client):
    login(client)
    r = client.get('/api/reports?dateFrom=2024-06-10&dateTo=2024-06-01')
    assert r.status_code == 400

    r = client.get('/api/reports?dateFrom=2024-06-01&dateTo=2024-06-10')
    assert r.status_code == 200


def test_rates(client):
    login(client)
    assert client.put('/api/rates', json={'parallel': -1}).status_code == 400

    r = client.put('/api/rates', json={'bcv': 40, 'parallel': 38})
    assert r.status_code == 200
    assert client.get('/api/rates').get_json()['rates']['parallel'] == 38

    r = client.get('/api/rates/convert?amount=2')
    assert r.get_json()['formatted'] == 'Bs.S 76'


def test_clients_crud(client, backend):
    login(client)
    r = client.post('/api/clients', json={'name': 'Luis', 'documentNumber': 'V-9'})
    assert r.status_code == 201

    r = client.post('/api/clients/1/balance', json={'type': 'decrease', 'amount': 10})
    assert r.get_json()['balance'] == -10

    r = client.post('/api/clients/1/balance', json={'type': 'decrease', 'amount': 0})
    assert r.status_code == 400

    assert client.put('/api/clients/99', json={'name': 'x'}).status_code == 404
    assert client.get('/api/clients/2/history').status_code == 200


def test_backend_down_is_502(client, backend):
    login(client)
    backend.fail('/clients')
    assert client.get('/api/clients').status_code == 502


def test_products_and_stock(client, backend):
    login(client)
    r = client.post('/api/products/1/stock', json={'type': 'remove', 'quantity': 10, 'reason': 'x'})
    assert r.status_code == 409

    r = client.post('/api/products/1/stock', json={'type': 'add', 'quantity': 1, 'reason': 'compra'})
    assert r.get_json()['currentStock'] == 4

    r = client.get('/api/products/low-stock')
    assert [p['id'] for p in r.get_json()['products']] == [1, 3]


def test_database_settings(client):
    login(client)
    r = client.put('/api/settings/database', json={'host': 'db.local', 'maxConnections': 0})
    assert r.status_code == 400

    r = client.put('/api/settings/database', json={'host': 'db.local', 'port': 5433})
    assert r.get_json()['config']['host'] == 'db.local'
    assert r.get_json()['config']['port'] == '5433'
    assert client.get('/api/settings/database').get_json()['config']['database'] == 'bicicentro_erp'


def test_pos_session_routes(client):
    login(client)
    client.post('/api/pos-session/items', json={'id': '4', 'name': 'Casco', 'salePrice': 45})
    r = client.put('/api/pos-session/items/4/quantity', json={'quantity': 3})
    assert r.get_json()['session']['cart'][0]['subtotal'] == 135.0

    r = client.post('/api/pos-session/clear')
    assert r.get_json()['session']['cart'] == []


def test_performance_endpoint(client):
    login(client)
    r = client.get('/api/system/performance')
    assert r.status_code == 200
    assert set(r.get_json()['logs']) == {'performance', 'slow_routes', 'slow_functions'}


def test_rates_reject_non_finite_values(client):
    login(client)
    assert client.get('/api/rates/convert?amount=nan').status_code == 400
    assert client.get('/api/rates/convert?amount=inf').status_code == 400

    r = client.put('/api/rates', json={'bcv': 'nan', 'parallel': 'inf'})
    assert r.status_code == 400
    assert client.get('/api/rates').get_json()['rates']['parallel'] == 35.50


def test_invalid_client_fields_are_400(client, backend):
    login(client)
    r = client.post('/api/clients', json={'name': 'X', 'documentNumber': 'V-1', 'balance': 'abc'})
    assert r.status_code == 400

    r = client.post('/api/clients', json={'name': 5, 'documentNumber': 'V-1'})
    assert r.status_code == 201
    assert backend.data['clients'][-1]['name'] == '5'


def test_json_body_that_is_not_an_object(client, backend):
    login(client)
    r = client.post('/api/clients', json=[{'name': 'Luis', 'documentNumber': 'V-9'}])
    assert r.status_code == 400
    assert len(backend.data['clients']) == 2


def test_pos_session_rejects_invalid_price(client):
    login(client)
    r = client.post('/api/pos-session/items', json={'id': '4', 'name': 'Casco', 'salePrice': 'caro'})
    assert r.status_code == 400
    assert client.get('/api/pos-session').get_json()['session']['cart'] == []

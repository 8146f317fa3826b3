import json
import os
import tempfile

# La configuración se lee al importar bike_erp: fijar el entorno antes
os.environ['BIKE_ERP_PROFILING'] = '0'
os.environ['BIKE_ERP_DATA_DIR'] = tempfile.mkdtemp(prefix='bike_erp_tests_')
os.environ['BIKE_ERP_API_BASE_URL'] = 'http://backend.test/api'
os.environ['BIKE_ERP_TIMEZONE'] = 'America/Caracas'

import httpx
import pytest

from bike_erp.app_container import AppContainer, get_container
from bike_erp.main import app

API_PREFIX = '/api'
COLLECTIONS = ('products', 'clients', 'sales', 'sale_items', 'categories')


class FakeBackend:
    """
    Backend REST en memoria con la misma forma que el Express/SQLite real:
    GET/POST por colección, PUT/DELETE por id, POST /clients/credits y
    POST /products/:id/regenerate-sku.
    """

    def __init__(self):
        self.data = {
            'products': [
                {'id': 1, 'name': 'Casco MTB', 'sku': '7591234567890', 'category': 'accesorios',
                 'salePrice': 45.0, 'costPrice': 30.0, 'currentStock': 3, 'minStock': 5,
                 'maxStock': 20, 'brand': 'Fox', 'model': 'Rampage'},
                {'id': 2, 'name': 'Cadena Shimano', 'sku': '7591234567906', 'category': 'repuestos',
                 'salePrice': 20.0, 'costPrice': 12.0, 'currentStock': 10, 'minStock': 2,
                 'maxStock': 50, 'brand': 'Shimano', 'model': 'HG-71'},
                {'id': 3, 'name': 'Bicicleta Rin 29', 'sku': '7591234567913', 'category': 'bicicletas',
                 'salePrice': 350.0, 'costPrice': 250.0, 'currentStock': 0, 'minStock': 1,
                 'maxStock': 5, 'brand': 'Trek', 'model': 'Marlin'},
            ],
            'clients': [
                {'id': 1, 'name': 'Pedro Pérez', 'documentType': 'DNI', 'documentNumber': 'V-12345678',
                 'phone': '0414-1234567', 'email': 'pedro@example.com', 'address': 'Caracas',
                 'balance': 0, 'isActive': 1, 'createdAt': '2024-05-01 14:30:00'},
                {'id': 2, 'name': 'Ana Rojas', 'documentType': 'RIF', 'documentNumber': 'J-87654321',
                 'phone': '', 'email': '', 'address': '',
                 'balance': -1500.0, 'isActive': 1, 'createdAt': '2024-05-10 09:00:00'},
            ],
            'sales': [],
            'sale_items': [],
            'categories': [
                {'id': 1, 'name': 'accesorios', 'displayName': 'Accesorios', 'isActive': 1},
            ],
        }
        self.credits = []
        self.requests = []
        self.failing = set()

    # -------------------------------------------------------------------------

    def fail(self, *prefixes):
        """Las rutas que empiezan con alguno de los prefijos responden 500."""
        self.failing.update(prefixes)

    def recover(self):
        self.failing.clear()

    def calls(self, method, path=None):
        return [r for r in self.requests if r[0] == method and (path is None or r[1] == path)]

    def _next_id(self, rows):
        return max((row['id'] for row in rows), default=0) + 1

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith(API_PREFIX):
            path = path[len(API_PREFIX):]
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))

        if any(path.startswith(prefix) for prefix in self.failing):
            return httpx.Response(500, json={'error': 'boom'})

        parts = [p for p in path.split('/') if p]
        if not parts or parts[0] not in COLLECTIONS:
            return httpx.Response(404, json={'error': 'Not found'})
        rows = self.data[parts[0]]

        if parts == ['clients', 'credits'] and request.method == 'POST':
            credit = {'id': len(self.credits) + 1, **body}
            self.credits.append(credit)
            for row in self.data['clients']:
                if str(row['id']) == str(body['clientId']):
                    row['balance'] = row['balance'] - body['amountBsS']
            return httpx.Response(201, json={'id': credit['id']})

        if len(parts) == 3 and parts[0] == 'products' and parts[2] == 'regenerate-sku':
            for row in rows:
                if str(row['id']) == parts[1]:
                    row['sku'] = '7590000000017'
                    return httpx.Response(200, json={'sku': row['sku'], 'message': 'SKU regenerado'})
            return httpx.Response(404, json={'error': 'Producto no encontrado'})

        if len(parts) == 1:
            if request.method == 'GET':
                return httpx.Response(200, json=rows)
            if request.method == 'POST':
                row = {'id': self._next_id(rows), **body}
                rows.append(row)
                return httpx.Response(201, json={'id': row['id']})

        if len(parts) == 2:
            for row in rows:
                if str(row['id']) == parts[1]:
                    if request.method == 'PUT':
                        row.update(body)
                        return httpx.Response(200, json={'message': 'updated'})
                    if request.method == 'DELETE':
                        rows.remove(row)
                        return httpx.Response(200, json={'message': 'deleted'})
            return httpx.Response(404, json={'error': 'Not found'})

        return httpx.Response(405, json={'error': 'Method not allowed'})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def container(tmp_path, backend):
    AppContainer.reset_instance()
    c = get_container(str(tmp_path), transport=httpx.MockTransport(backend.handler))
    yield c
    AppContainer.reset_instance()


@pytest.fixture
def client(container):
    with app.test_client() as c:
        yield c


def login(client, email='admin@bicicentro.com', password='123456'):
    r = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert r.status_code == 200, r.get_json()
    return r.get_json()['user']

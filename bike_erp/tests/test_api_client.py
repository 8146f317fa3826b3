import json

import httpx
import pytest

from bike_erp.repositories import ApiClient, ApiError

BASE_URL = 'http://backend.test/api'


def make_client(handler, retries=2):
    return ApiClient(BASE_URL, timeout=1, retries=retries, transport=httpx.MockTransport(handler))


def test_get_decodes_json():
    def handler(request):
        assert request.url.path == '/api/products'
        return httpx.Response(200, json=[{'id': 1}])

    assert make_client(handler).get('/products') == [{'id': 1}]


def test_post_sends_json_body():
    received = {}

    def handler(request):
        received['method'] = request.method
        received['body'] = json.loads(request.content)
        return httpx.Response(201, json={'id': 7})

    result = make_client(handler).post('/sales', {'total': 10})
    assert result == {'id': 7}
    assert received == {'method': 'POST', 'body': {'total': 10}}


def test_empty_response_is_none():
    assert make_client(lambda request: httpx.Response(204)).delete('/products/1') is None


def test_server_errors_are_retried():
    attempts = []

    def handler(request):
        attempts.append(1)
        return httpx.Response(503, json={'error': 'mantenimiento'})

    with pytest.raises(ApiError) as exc:
        make_client(handler, retries=2).get('/products')

    assert len(attempts) == 3
    assert exc.value.status == 503
    assert exc.value.detail == 'mantenimiento'
    assert not exc.value.is_network_error


def test_retry_recovers_after_transient_failure():
    attempts = []

    def handler(request):
        attempts.append(1)
        if len(attempts) < 2:
            return httpx.Response(500)
        return httpx.Response(200, json=[])

    assert make_client(handler).get('/clients') == []
    assert len(attempts) == 2


def test_client_errors_are_not_retried():
    attempts = []

    def handler(request):
        attempts.append(1)
        return httpx.Response(404, json={'error': 'Producto no encontrado'})

    with pytest.raises(ApiError) as exc:
        make_client(handler).put('/products/99', {'name': 'x'})

    assert len(attempts) == 1
    assert exc.value.status == 404
    assert exc.value.status_text == 'Not Found'
    assert 'Producto no encontrado' in str(exc.value)


def test_network_error_has_status_zero():
    attempts = []

    def handler(request):
        attempts.append(1)
        raise httpx.ConnectError('conexión rechazada', request=request)

    with pytest.raises(ApiError) as exc:
        make_client(handler, retries=1).get('/sales')

    assert len(attempts) == 2
    assert exc.value.is_network_error

import pytest


@pytest.fixture
def pos(container):
    return container.pos_session_service


def test_empty_session(pos):
    assert pos.get_session() == {'cart': [], 'clientId': None, 'discount': 0, 'notes': ''}


def test_add_same_item_twice(pos):
    item = {'id': 4, 'name': 'Casco', 'sku': '759', 'salePrice': 45.0}
    pos.add_to_cart(item)
    session = pos.add_to_cart(item)

    assert len(session['cart']) == 1
    assert session['cart'][0]['quantity'] == 2
    assert session['cart'][0]['subtotal'] == 90.0


def test_update_quantity_and_remove(pos):
    pos.add_to_cart({'id': '4', 'name': 'Casco', 'salePrice': 45.0})
    pos.add_to_cart({'id': '5', 'name': 'Cadena', 'salePrice': 20.0})

    session = pos.update_cart_quantity('5', 3)
    assert session['cart'][1]['subtotal'] == 60.0

    session = pos.update_cart_quantity('4', 0)
    assert [line['id'] for line in session['cart']] == ['5']

    session = pos.remove_from_cart('5')
    assert session['cart'] == []


def test_update_session_ignores_unknown_fields(pos):
    session = pos.update_session({'clientId': 3, 'notes': 'x', 'hack': True})

    assert session['clientId'] == 3
    assert 'hack' not in session
    assert pos.get_session()['notes'] == 'x'


def test_clear_session(pos, container):
    pos.add_to_cart({'id': '4', 'name': 'Casco', 'salePrice': 45.0})
    assert pos.clear_session()['cart'] == []
    assert container.store.get('posSession') is None

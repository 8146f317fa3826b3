import pytest

from bike_erp.services.user_service import DEMO_USERS


@pytest.fixture
def users(container):
    return container.user_service


@pytest.mark.parametrize('user_id, name, email, role', DEMO_USERS)
def test_demo_users_can_login(users, user_id, name, email, role):
    result = users.login(email.upper(), '123456')

    assert result['ok']
    assert result['user']['name'] == name
    assert result['user']['role']['name'] == role
    assert result['user']['lastLogin']


def test_wrong_password(users):
    result = users.login('admin@bicicentro.com', '1234')

    assert not result['ok']
    assert result['error'] == 'Credenciales inválidas'
    assert users.current_user() is None


def test_session_persists_until_logout(users, container):
    users.login('ventas@bicicentro.com', '123456')

    assert container.store.get('erp_user')['email'] == 'ventas@bicicentro.com'
    assert users.current_user().name == 'Carlos Rodríguez'

    users.logout()
    assert users.current_user() is None


def test_role_permissions(users):
    users.login('ventas@bicicentro.com', '123456')
    assert users.has_permission('sales', 'create')
    assert users.has_permission('inventory', 'read')
    assert not users.has_permission('inventory', 'update')
    assert not users.has_permission('clients', 'delete')

    users.login('administracion@bicicentro.com', '123456')
    assert users.has_permission('inventory', 'update')
    assert not users.has_permission('sales', 'create')
    assert not users.has_permission('settings', 'read')

    users.login('admin@bicicentro.com', '123456')
    assert users.has_permission('settings', 'update')
    assert users.has_permission('sales', 'void')


def test_no_session_has_no_permissions(users):
    assert not users.has_permission('sales', 'read')


def test_roles_listing(users):
    assert [r['name'] for r in users.list_roles()] == ['admin', 'administration', 'sales']

# ==============================================================================
# SERVICIO DE USUARIOS (AUTENTICACIÓN DE DEMOSTRACIÓN)
# ==============================================================================
# IMPORTANTE: esto es un placeholder. Tres usuarios fijos y una contraseña
# compartida; NO es un diseño de seguridad. El backend /auth no se usa.
#
# Roles:
#   admin          -> todo
#   administration -> ventas (ver/anular), inventario, clientes, reportes...
#   sales          -> vender, ver inventario y clientes
#
# El usuario con sesión se guarda en el almacén local bajo 'erp_user'.
# ==============================================================================

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from bike_erp.models import Permission, Role, User
from bike_erp.repositories import SettingsRepository

logger = logging.getLogger(__name__)

DEMO_PASSWORD = '123456'

CRUD = ['create', 'read', 'update', 'delete']

ROLE_DEFINITIONS: List[Role] = [
    Role(
        id=1,
        name='admin',
        display_name='Administrador',
        permissions=[
            Permission('users', list(CRUD)),
            Permission('sales', CRUD + ['void']),
            Permission('inventory', CRUD + ['adjust']),
            Permission('workshop', list(CRUD)),
            Permission('purchases', list(CRUD)),
            Permission('clients', list(CRUD)),
            Permission('suppliers', list(CRUD)),
            Permission('financial', list(CRUD)),
            Permission('reports', ['read', 'export']),
            Permission('settings', list(CRUD)),
        ],
    ),
    Role(
        id=2,
        name='administration',
        display_name='Administración',
        permissions=[
            Permission('sales', ['read', 'void']),
            Permission('inventory', ['read', 'update']),
            Permission('workshop', list(CRUD)),
            Permission('purchases', list(CRUD)),
            Permission('clients', ['create', 'read', 'update']),
            Permission('suppliers', ['create', 'read', 'update']),
            Permission('financial', ['read', 'update']),
            Permission('reports', ['read', 'export']),
        ],
    ),
    Role(
        id=3,
        name='sales',
        display_name='Ventas',
        permissions=[
            Permission('sales', ['create', 'read']),
            Permission('inventory', ['read']),
            Permission('clients', ['read']),
        ],
    ),
]

ROLES_BY_NAME = {role.name: role for role in ROLE_DEFINITIONS}

# (id, nombre, email, rol)
DEMO_USERS = [
    ('1', 'Juan Pérez', 'admin@bicicentro.com', 'admin'),
    ('2', 'María González', 'administracion@bicicentro.com', 'administration'),
    ('3', 'Carlos Rodríguez', 'ventas@bicicentro.com', 'sales'),
]


class UserService:
    """
    Servicio de usuarios de la terminal.

    Responsabilidades:
    - Login/logout contra los usuarios de demostración
    - Persistir el usuario con sesión
    - Resolver permisos (módulo, acción) del rol
    """

    def __init__(self, settings_repo: SettingsRepository, password: str = DEMO_PASSWORD):
        self.settings_repo = settings_repo
        self._password_hash = generate_password_hash(password)
        self._users: Dict[str, User] = {
            email: User(id=user_id, name=name, email=email, role=ROLES_BY_NAME[role])
            for user_id, name, email, role in DEMO_USERS
        }

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Verifica credenciales sin iniciar sesión.

        Returns:
            Usuario o None si las credenciales no son válidas
        """
        user = self._users.get((email or '').strip().lower())
        if user is None or not user.is_active:
            return None
        if not check_password_hash(self._password_hash, password or ''):
            return None
        return user

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Inicia sesión y guarda el usuario (con lastLogin) en el almacén local.

        Returns:
            Dict con ok, user o error
        """
        user = self.authenticate(email, password)
        if user is None:
            logger.info("Login fallido para %s", email)
            return {'ok': False, 'error': 'Credenciales inválidas', 'kind': 'auth'}

        session_user = User(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
            last_login=datetime.now(timezone.utc).isoformat(),
        )
        self.settings_repo.set_current_user(session_user)
        logger.info("Login exitoso: %s (%s)", session_user.email, session_user.role.name)
        return {'ok': True, 'user': session_user.to_dict()}

    def logout(self) -> None:
        self.settings_repo.clear_current_user()

    def current_user(self) -> Optional[User]:
        return self.settings_repo.get_current_user()

    def has_permission(self, module: str, action: str, user: Optional[User] = None) -> bool:
        """
        ¿El usuario (por defecto el de la sesión) puede hacer action en module?
        """
        user = user or self.current_user()
        if user is None:
            return False
        return user.role.allows(module, action)

    def list_roles(self) -> List[Dict[str, Any]]:
        return [role.to_dict() for role in ROLE_DEFINITIONS]

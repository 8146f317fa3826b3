# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Punto único para obtener repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (transporte HTTP falso, directorio de datos temporal)
#   - Cambiar el backend REST sin tocar services/
# ==============================================================================

from typing import Optional

import httpx

from bike_erp.config import Settings, settings as default_settings

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Backend REST + almacén local
# ═══════════════════════════════════════════════════════════════════════════════
from bike_erp.repositories import (
    ApiClient,
    CategoryRepository,
    ClientRepository,
    LocalStore,
    ProductRepository,
    QueryCache,
    SaleItemRepository,
    SalesRepository,
    SettingsRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Lógica de negocio
# ═══════════════════════════════════════════════════════════════════════════════
from bike_erp.services import (
    CartService,
    ClientService,
    CurrencyService,
    DashboardService,
    DebtService,
    InventoryService,
    POSSessionService,
    ReportsService,
    UserService,
)
from bike_erp.services.shop_time import shop_zone


class AppContainer:
    """
    Contenedor de dependencias de la aplicación (singleton).

    Uso:
        container = AppContainer(base_path='/ruta/datos')
        cart = container.cart_service
        stats = container.dashboard_service.get_stats()
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(
        self,
        base_path: str = None,
        transport: Optional[httpx.BaseTransport] = None,
        app_settings: Optional[Settings] = None
    ):
        """
        Inicializa el contenedor.

        Args:
            base_path: Directorio del almacén local (por defecto settings.data_dir)
            transport: Transporte httpx alternativo (tests)
            app_settings: Configuración (por defecto la del entorno)
        """
        if self._initialized:
            return

        self.settings = app_settings or default_settings
        self._base_path = base_path or self.settings.data_dir
        self._transport = transport
        self.tz = shop_zone(self.settings.timezone)

        # Infraestructura (lazy loading)
        self._store: Optional[LocalStore] = None
        self._api: Optional[ApiClient] = None
        self._cache: Optional[QueryCache] = None

        # Repositorios
        self._product_repo: Optional[ProductRepository] = None
        self._category_repo: Optional[CategoryRepository] = None
        self._client_repo: Optional[ClientRepository] = None
        self._sales_repo: Optional[SalesRepository] = None
        self._sale_items_repo: Optional[SaleItemRepository] = None
        self._settings_repo: Optional[SettingsRepository] = None

        # Servicios
        self._currency_service: Optional[CurrencyService] = None
        self._cart_service: Optional[CartService] = None
        self._pos_session_service: Optional[POSSessionService] = None
        self._dashboard_service: Optional[DashboardService] = None
        self._debt_service: Optional[DebtService] = None
        self._reports_service: Optional[ReportsService] = None
        self._client_service: Optional[ClientService] = None
        self._inventory_service: Optional[InventoryService] = None
        self._user_service: Optional[UserService] = None

        self._initialized = True

    # =========================================================================
    # INFRAESTRUCTURA
    # =========================================================================

    @property
    def store(self) -> LocalStore:
        """Almacén local (único dueño del estado persistido de la terminal)."""
        if self._store is None:
            self._store = LocalStore(self._base_path)
        return self._store

    @property
    def api(self) -> ApiClient:
        if self._api is None:
            self._api = ApiClient(
                self.settings.api_base_url,
                timeout=self.settings.api_timeout,
                retries=self.settings.api_retries,
                transport=self._transport,
            )
        return self._api

    @property
    def cache(self) -> QueryCache:
        if self._cache is None:
            self._cache = QueryCache()
        return self._cache

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def product_repo(self) -> ProductRepository:
        if self._product_repo is None:
            self._product_repo = ProductRepository(self.api, self.cache)
        return self._product_repo

    @property
    def category_repo(self) -> CategoryRepository:
        if self._category_repo is None:
            self._category_repo = CategoryRepository(self.api, self.cache)
        return self._category_repo

    @property
    def client_repo(self) -> ClientRepository:
        if self._client_repo is None:
            self._client_repo = ClientRepository(self.api, self.cache)
        return self._client_repo

    @property
    def sales_repo(self) -> SalesRepository:
        if self._sales_repo is None:
            self._sales_repo = SalesRepository(self.api, self.cache)
        return self._sales_repo

    @property
    def sale_items_repo(self) -> SaleItemRepository:
        if self._sale_items_repo is None:
            self._sale_items_repo = SaleItemRepository(self.api, self.cache)
        return self._sale_items_repo

    @property
    def settings_repo(self) -> SettingsRepository:
        if self._settings_repo is None:
            self._settings_repo = SettingsRepository(self.store)
        return self._settings_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def currency_service(self) -> CurrencyService:
        if self._currency_service is None:
            self._currency_service = CurrencyService(self.settings_repo)
        return self._currency_service

    @property
    def cart_service(self) -> CartService:
        if self._cart_service is None:
            self._cart_service = CartService(
                self.store,
                self.sales_repo,
                self.sale_items_repo,
                self.client_repo,
                self.currency_service,
                self.cache,
            )
        return self._cart_service

    @property
    def pos_session_service(self) -> POSSessionService:
        if self._pos_session_service is None:
            self._pos_session_service = POSSessionService(self.store)
        return self._pos_session_service

    @property
    def dashboard_service(self) -> DashboardService:
        if self._dashboard_service is None:
            self._dashboard_service = DashboardService(
                self.product_repo,
                self.sales_repo,
                self.sale_items_repo,
                self.cache,
                self.tz,
                self.settings.low_stock_default,
            )
        return self._dashboard_service

    @property
    def debt_service(self) -> DebtService:
        if self._debt_service is None:
            self._debt_service = DebtService(
                self.client_repo,
                self.currency_service,
                self.tz,
                self.settings.credit_window_days,
                self.settings.due_soon_days,
            )
        return self._debt_service

    @property
    def reports_service(self) -> ReportsService:
        if self._reports_service is None:
            self._reports_service = ReportsService(
                self.sales_repo,
                self.product_repo,
                self.client_repo,
                self.cache,
                self.tz,
            )
        return self._reports_service

    @property
    def client_service(self) -> ClientService:
        if self._client_service is None:
            self._client_service = ClientService(
                self.client_repo,
                self.sales_repo,
                self.sale_items_repo,
                self.product_repo,
                self.currency_service,
                self.settings.credit_window_days,
            )
        return self._client_service

    @property
    def inventory_service(self) -> InventoryService:
        if self._inventory_service is None:
            self._inventory_service = InventoryService(
                self.product_repo,
                self.category_repo,
                self.settings.low_stock_default,
            )
        return self._inventory_service

    @property
    def user_service(self) -> UserService:
        if self._user_service is None:
            self._user_service = UserService(self.settings_repo)
        return self._user_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """Reinicia todas las instancias (cierra el cliente HTTP)."""
        if self._api is not None:
            self._api.close()
        for name in list(vars(self)):
            if name.startswith('_') and name.endswith(('_repo', '_service')):
                setattr(self, name, None)
        self._store = None
        self._api = None
        self._cache = None

    @classmethod
    def get_instance(cls, base_path: str = None, **kwargs) -> 'AppContainer':
        if cls._instance is None:
            return cls(base_path, **kwargs)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(base_path: str = None, **kwargs) -> AppContainer:
    """
    Obtiene el contenedor de dependencias global.

    Args:
        base_path: Directorio de datos (solo se usa en la primera llamada)
        transport: Transporte httpx alternativo (solo primera llamada)
    """
    return AppContainer.get_instance(base_path, **kwargs)

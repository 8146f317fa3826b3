# ==============================================================================
# TERMINAL POS / ERP - BICICENTRO
# ==============================================================================
# Aplicación Flask que expone endpoints JSON (/api/...) para la interfaz de
# la tienda. Las rutas solo traducen HTTP <-> servicios; la lógica vive en
# services/ y el acceso a datos en repositories/.
# ==============================================================================

import logging
import math
from functools import wraps

from flask import Flask, g, request

from bike_erp.app_container import get_container
from bike_erp.config import settings
from bike_erp.models import Client
from bike_erp.performance_logger import get_function_stats, get_log_summary, init_profiling
from bike_erp.repositories import ApiError

logger = logging.getLogger(__name__)

app = Flask(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# INICIALIZAR SISTEMA DE PROFILING
# ═══════════════════════════════════════════════════════════════════════════
# Mide rendimiento de rutas y funciones. Logs en <data_dir>/logs/
# Para desactivar: BIKE_ERP_PROFILING=0
init_profiling(app)

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════
_DEFAULT_SECRET = "bike_erp_dev_secret_key_change_in_production"

if settings.production_mode and not settings.secret_key:
    logger.warning("BIKE_ERP_PRODUCTION activo sin BIKE_ERP_SECRET_KEY definida")

app.secret_key = settings.secret_key or _DEFAULT_SECRET
app.config.update(
    SESSION_COOKIE_HTTPONLY=True,
    SESSION_COOKIE_SECURE=False,
    SESSION_COOKIE_SAMESITE='Lax',
)
app.config['MAX_CONTENT_LENGTH'] = 1 * 1024 * 1024

# Código HTTP según el tipo de error que reporta el servicio
ERROR_STATUS = {
    'validation': 400,
    'auth': 401,
    'forbidden': 403,
    'not_found': 404,
    'business': 409,
    'api': 502,
}


def to_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def to_float(value, default=None):
    """float finito o default."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def respond(result, ok_status=200):
    """Convierte el dict de un servicio en (json, status)."""
    if result.get('ok'):
        return result, ok_status
    return result, ERROR_STATUS.get(result.get('kind'), 400)


def api_failure(error: ApiError):
    logger.error("Backend no disponible: %s", error)
    return {"ok": False, "error": f"Backend no disponible: {error}"}, 502


def json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ═══════════════════════════════════════════════════════════════════════════
# AUTENTICACIÓN Y PERMISOS
# ═══════════════════════════════════════════════════════════════════════════

def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        user = get_container().user_service.current_user()
        if user is None:
            return {"ok": False, "error": "Debes iniciar sesión."}, 401
        g.user = user
        g.user_email = user.email
        return f(*args, **kwargs)
    return wrapper


def permission_required(module, action):
    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            user = g.get('user')
            if user is None or not user.role.allows(module, action):
                return {"ok": False, "error": "Permiso denegado."}, 403
            return f(*args, **kwargs)
        return wrapper
    return deco


@app.route("/api/auth/login", methods=["POST"])
def api_login():
    data = json_body()
    result = get_container().user_service.login(data.get("email", ""), data.get("password", ""))
    return respond(result)


@app.route("/api/auth/logout", methods=["POST"])
def api_logout():
    get_container().user_service.logout()
    return {"ok": True, "mensaje": "Sesión cerrada"}


@app.route("/api/auth/me", methods=["GET"])
@login_required
def api_me():
    return {"ok": True, "user": g.user.to_dict()}


@app.route("/api/auth/roles", methods=["GET"])
@login_required
@permission_required("users", "read")
def api_roles():
    return {"ok": True, "roles": get_container().user_service.list_roles()}


# ═══════════════════════════════════════════════════════════════════════════
# API: DASHBOARD, DEUDAS Y REPORTES
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/api/dashboard", methods=["GET"])
@login_required
def api_dashboard():
    """Resumen del panel (en ceros si el backend falla)"""
    return {"ok": True, "stats": get_container().dashboard_service.get_stats()}


@app.route("/api/debts", methods=["GET"])
@login_required
@permission_required("clients", "read")
def api_debts():
    enhanced = request.args.get("enhanced", "0").lower() in ("1", "true", "yes")
    return respond(get_container().debt_service.get_summaries(enhanced=enhanced))


@app.route("/api/reports", methods=["GET"])
@login_required
@permission_required("reports", "read")
def api_reports():
    result = get_container().reports_service.get_report(
        request.args.get("dateFrom"),
        request.args.get("dateTo"),
    )
    return respond(result)


# ═══════════════════════════════════════════════════════════════════════════
# API: TASAS DE CAMBIO
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/api/rates", methods=["GET"])
@login_required
def api_rates():
    return {"ok": True, "rates": get_container().currency_service.get_rates().to_dict()}


@app.route("/api/rates", methods=["PUT"])
@login_required
@permission_required("settings", "update")
def api_rates_update():
    data = json_body()
    result = get_container().currency_service.update_rates(data.get("bcv"), data.get("parallel"))
    return respond(result)


@app.route("/api/rates/convert", methods=["GET"])
@login_required
def api_rates_convert():
    result = get_container().currency_service.convert(
        request.args.get("amount"),
        request.args.get("direction", "usd_to_ves"),
        request.args.get("rate", "parallel"),
    )
    return respond(result)


# ═══════════════════════════════════════════════════════════════════════════
# API: CARRITO DEL POS
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/api/cart", methods=["GET"])
@login_required
def api_cart():
    return {"ok": True, "cart": get_container().cart_service.get_cart()}


@app.route("/api/cart/items", methods=["POST"])
@login_required
@permission_required("sales", "create")
def api_cart_add():
    """Agregar una unidad de un producto (stock leído del backend)"""
    product_id = to_int(json_body().get("productId"))
    if product_id is None:
        return {"ok": False, "error": "ID de producto inválido"}, 400

    container = get_container()
    try:
        product = container.inventory_service.get_product(product_id)
    except ApiError as e:
        return api_failure(e)
    if product is None:
        return {"ok": False, "error": "Producto no encontrado"}, 404
    return respond(container.cart_service.add_item(product))


@app.route("/api/cart/items/<product_id>", methods=["DELETE"])
@login_required
def api_cart_remove(product_id):
    return respond(get_container().cart_service.remove_item(product_id))


@app.route("/api/cart/items/<product_id>/quantity", methods=["PUT"])
@login_required
def api_cart_quantity(product_id):
    return respond(get_container().cart_service.set_quantity(product_id, json_body().get("quantity")))


@app.route("/api/cart/items/<product_id>/discount", methods=["PUT"])
@login_required
def api_cart_item_discount(product_id):
    return respond(get_container().cart_service.set_item_discount(product_id, json_body().get("discount")))


@app.route("/api/cart/discount", methods=["PUT"])
@login_required
def api_cart_discount():
    return respond(get_container().cart_service.set_global_discount(json_body().get("discount")))


@app.route("/api/cart/client", methods=["PUT"])
@login_required
def api_cart_client():
    """Seleccionar (o quitar con clientId null) el cliente de la venta"""
    container = get_container()
    client_id = json_body().get("clientId")
    if client_id is None:
        return respond(container.cart_service.set_selected_client(None))

    try:
        client = container.client_service.get_client(client_id)
    except ApiError as e:
        return api_failure(e)
    if client is None:
        return {"ok": False, "error": "Cliente no encontrado"}, 404
    return respond(container.cart_service.set_selected_client(_client_ref(client)))


def _client_ref(client: Client):
    return {
        "id": client.id,
        "name": client.name,
        "documentNumber": client.document_number,
        "balance": client.balance,
    }


@app.route("/api/cart/notes", methods=["PUT"])
@login_required
def api_cart_notes():
    return respond(get_container().cart_service.set_notes(json_body().get("notes")))


@app.route("/api/cart/clear", methods=["POST"])
@login_required
def api_cart_clear():
    return respond(get_container().cart_service.clear())


@app.route("/api/cart/checkout", methods=["POST"])
@login_required
@permission_required("sales", "create")
def api_cart_checkout():
    """Cobrar: registra venta y líneas; vacía el carrito solo si todo sale bien"""
    payment_method = json_body().get("paymentMethod", "cash_usd")
    result = get_container().cart_service.checkout(g.user.id, payment_method)
    return respond(result, 201)


# ═══════════════════════════════════════════════════════════════════════════
# API: SESIÓN POS (cobro rápido)
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/api/pos-session", methods=["GET"])
@login_required
def api_pos_session():
    return {"ok": True, "session": get_container().pos_session_service.get_session()}


@app.route("/api/pos-session", methods=["PUT"])
@login_required
def api_pos_session_update():
    return {"ok": True, "session": get_container().pos_session_service.update_session(json_body())}


@app.route("/api/pos-session/items", methods=["POST"])
@login_required
def api_pos_session_add():
    data = json_body()
    if not data.get("id"):
        return {"ok": False, "error": "ID de producto inválido"}, 400
    price = to_float(data.get("salePrice") or 0)
    if price is None or price < 0:
        return {"ok": False, "error": "Precio inválido"}, 400
    data["salePrice"] = price
    return {"ok": True, "session": get_container().pos_session_service.add_to_cart(data)}


@app.route("/api/pos-session/items/<item_id>", methods=["DELETE"])
@login_required
def api_pos_session_remove(item_id):
    return {"ok": True, "session": get_container().pos_session_service.remove_from_cart(item_id)}


@app.route("/api/pos-session/items/<item_id>/quantity", methods=["PUT"])
@login_required
def api_pos_session_quantity(item_id):
    quantity = to_int(json_body().get("quantity"))
    if quantity is None:
        return {"ok": False, "error": "Cantidad inválida"}, 400
    session = get_container().pos_session_service.update_cart_quantity(item_id, quantity)
    return {"ok": True, "session": session}


@app.route("/api/pos-session/clear", methods=["POST"])
@login_required
def api_pos_session_clear():
    return {"ok": True, "session": get_container().pos_session_service.clear_session()}


# ═══════════════════════════════════════════════════════════════════════════
# API: CLIENTES
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/api/clients", methods=["GET"])
@login_required
@permission_required("clients", "read")
def api_clients():
    return respond(get_container().client_service.list_clients())


@app.route("/api/clients", methods=["POST"])
@login_required
@permission_required("clients", "create")
def api_clients_create():
    return respond(get_container().client_service.create_client(json_body()), 201)


@app.route("/api/clients/quick", methods=["POST"])
@login_required
@permission_required("sales", "create")
def api_clients_quick():
    """Alta rápida desde el POS (la puede hacer el vendedor)"""
    return respond(get_container().client_service.quick_create(json_body()), 201)


@app.route("/api/clients/<int:client_id>", methods=["PUT"])
@login_required
@permission_required("clients", "update")
def api_clients_update(client_id):
    return respond(get_container().client_service.update_client(client_id, json_body()))


@app.route("/api/clients/<int:client_id>", methods=["DELETE"])
@login_required
@permission_required("clients", "delete")
def api_clients_delete(client_id):
    return respond(get_container().client_service.delete_client(client_id))


@app.route("/api/clients/<int:client_id>/balance", methods=["POST"])
@login_required
@permission_required("clients", "update")
def api_clients_balance(client_id):
    data = json_body()
    result = get_container().client_service.adjust_balance(
        client_id,
        data.get("type"),
        data.get("amount"),
        data.get("reason", ""),
    )
    return respond(result)


@app.route("/api/clients/<int:client_id>/credits", methods=["POST"])
@login_required
@permission_required("financial", "update")
def api_clients_credit(client_id):
    data = json_body()
    result = get_container().client_service.create_credit(
        client_id,
        data.get("amount"),
        due_date=data.get("dueDate"),
        notes=data.get("notes", ""),
        exchange_rate=data.get("exchangeRate"),
        sale_id=data.get("saleId"),
    )
    return respond(result, 201)


@app.route("/api/clients/<int:client_id>/history", methods=["GET"])
@login_required
@permission_required("clients", "read")
def api_clients_history(client_id):
    return respond(get_container().client_service.purchase_history(client_id))


# ═══════════════════════════════════════════════════════════════════════════
# API: PRODUCTOS
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/api/products", methods=["GET"])
@login_required
@permission_required("inventory", "read")
def api_products():
    return respond(get_container().inventory_service.list_products())


@app.route("/api/products/low-stock", methods=["GET"])
@login_required
@permission_required("inventory", "read")
def api_products_low_stock():
    return respond(get_container().inventory_service.low_stock())


@app.route("/api/products", methods=["POST"])
@login_required
@permission_required("inventory", "create")
def api_products_create():
    return respond(get_container().inventory_service.create_product(json_body()), 201)


@app.route("/api/products/<int:product_id>", methods=["PUT"])
@login_required
@permission_required("inventory", "update")
def api_products_update(product_id):
    return respond(get_container().inventory_service.update_product(product_id, json_body()))


@app.route("/api/products/<int:product_id>", methods=["DELETE"])
@login_required
@permission_required("inventory", "delete")
def api_products_delete(product_id):
    return respond(get_container().inventory_service.delete_product(product_id))


@app.route("/api/products/<int:product_id>/stock", methods=["POST"])
@login_required
@permission_required("inventory", "update")
def api_products_stock(product_id):
    data = json_body()
    result = get_container().inventory_service.adjust_stock(
        product_id,
        data.get("type"),
        data.get("quantity"),
        data.get("reason", ""),
    )
    return respond(result)


@app.route("/api/products/<int:product_id>/regenerate-sku", methods=["POST"])
@login_required
@permission_required("inventory", "update")
def api_products_regenerate_sku(product_id):
    return respond(get_container().inventory_service.regenerate_sku(product_id))


# ═══════════════════════════════════════════════════════════════════════════
# API: CATEGORÍAS
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/api/categories", methods=["GET"])
@login_required
@permission_required("inventory", "read")
def api_categories():
    return respond(get_container().inventory_service.list_categories())


@app.route("/api/categories", methods=["POST"])
@login_required
@permission_required("inventory", "create")
def api_categories_create():
    return respond(get_container().inventory_service.create_category(json_body()), 201)


@app.route("/api/categories/<int:category_id>", methods=["PUT"])
@login_required
@permission_required("inventory", "update")
def api_categories_update(category_id):
    return respond(get_container().inventory_service.update_category(category_id, json_body()))


@app.route("/api/categories/<int:category_id>", methods=["DELETE"])
@login_required
@permission_required("inventory", "delete")
def api_categories_delete(category_id):
    return respond(get_container().inventory_service.delete_category(category_id))


# ═══════════════════════════════════════════════════════════════════════════
# API: CONFIGURACIÓN DEL SISTEMA
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/api/settings/database", methods=["GET"])
@login_required
@permission_required("settings", "read")
def api_database_config():
    config = get_container().settings_repo.get_database_config()
    return {"ok": True, "config": config.to_dict()}


@app.route("/api/settings/database", methods=["PUT"])
@login_required
@permission_required("settings", "update")
def api_database_config_update():
    data = json_body()
    for field_name in ("maxConnections", "timeout"):
        if field_name in data and (to_int(data[field_name]) is None or to_int(data[field_name]) <= 0):
            return {"ok": False, "error": f"{field_name} debe ser un entero positivo"}, 400
    if "port" in data and to_int(data["port"]) is None:
        return {"ok": False, "error": "Puerto inválido"}, 400
    config = get_container().settings_repo.update_database_config(data)
    return {"ok": True, "config": config.to_dict()}


@app.route("/api/system/performance", methods=["GET"])
@login_required
@permission_required("settings", "read")
def api_performance():
    """Estadísticas del profiler interno"""
    return {"ok": True, "functions": get_function_stats(), "logs": get_log_summary()}


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.run(host="0.0.0.0", port=5000, debug=not settings.production_mode)

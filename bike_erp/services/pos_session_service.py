# ==============================================================================
# SERVICIO DE SESIÓN POS
# ==============================================================================
# Registro liviano de la venta en curso (clave 'posSession'): líneas con
# subtotal precalculado, cliente, descuento y notas. A diferencia del
# carrito no valida stock; lo usa la pantalla de cobro rápido.
# ==============================================================================

from typing import Any, Dict

from bike_erp.repositories import IKeyValueStore

SESSION_KEY = 'posSession'

# Campos que acepta update_session
SESSION_FIELDS = ('cart', 'clientId', 'discount', 'notes')


def default_session() -> Dict[str, Any]:
    return {'cart': [], 'clientId': None, 'discount': 0, 'notes': ''}


def _normalized(raw: Any) -> Dict[str, Any]:
    session = default_session()
    if isinstance(raw, dict):
        session.update({k: raw[k] for k in SESSION_FIELDS if k in raw})
    if not isinstance(session['cart'], list):
        session['cart'] = []
    return session


class POSSessionService:
    """
    Formato en local_storage.json:
    {
        "posSession": {
            "cart": [{"id": "4", "name": "Casco", "salePrice": 45.0,
                      "quantity": 2, "subtotal": 90.0, ...}],
            "clientId": 3, "discount": 0, "notes": ""
        }
    }
    """

    def __init__(self, store: IKeyValueStore):
        self.store = store

    def get_session(self) -> Dict[str, Any]:
        return _normalized(self.store.get(SESSION_KEY))

    def update_session(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Mezcla updates (solo campos conocidos) sobre la sesión actual."""
        def apply(raw):
            session = _normalized(raw)
            session.update({k: v for k, v in updates.items() if k in SESSION_FIELDS})
            return session

        return self.store.update(SESSION_KEY, apply)

    def clear_session(self) -> Dict[str, Any]:
        self.store.remove(SESSION_KEY)
        return default_session()

    def add_to_cart(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """
        Agrega una unidad del item (suma 1 si ya existe).

        Args:
            item: {id, name, sku, salePrice, category, brand, model}
        """
        item_id = str(item.get('id', ''))
        price = float(item.get('salePrice') or 0)

        def apply(raw):
            session = _normalized(raw)
            for line in session['cart']:
                if str(line.get('id')) == item_id:
                    line['quantity'] = int(line.get('quantity', 0)) + 1
                    line['subtotal'] = line['quantity'] * float(line.get('salePrice') or 0)
                    return session
            new_line = dict(item)
            new_line.update({'id': item_id, 'salePrice': price, 'quantity': 1, 'subtotal': price})
            session['cart'].append(new_line)
            return session

        return self.store.update(SESSION_KEY, apply)

    def remove_from_cart(self, item_id: Any) -> Dict[str, Any]:
        key = str(item_id)

        def apply(raw):
            session = _normalized(raw)
            session['cart'] = [line for line in session['cart'] if str(line.get('id')) != key]
            return session

        return self.store.update(SESSION_KEY, apply)

    def update_cart_quantity(self, item_id: Any, quantity: int) -> Dict[str, Any]:
        """quantity <= 0 elimina la línea."""
        if quantity <= 0:
            return self.remove_from_cart(item_id)
        key = str(item_id)

        def apply(raw):
            session = _normalized(raw)
            for line in session['cart']:
                if str(line.get('id')) == key:
                    line['quantity'] = quantity
                    line['subtotal'] = quantity * float(line.get('salePrice') or 0)
            return session

        return self.store.update(SESSION_KEY, apply)

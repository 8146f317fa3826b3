# ==============================================================================
# REPOSITORIO DE CLIENTES
# ==============================================================================
# /clients del backend. El balance es con signo (negativo = deuda).
#
# OJO: el PUT /clients/:id del backend sobrescribe TODOS los campos, así que
# cualquier cambio parcial debe enviar el registro completo (ver merge_update).
# ==============================================================================

from typing import Any, Dict

from bike_erp.models import Client
from bike_erp.repositories.rest_repository import RestRepository


class ClientRepository(RestRepository[Client]):
    """
    Formato de /clients:
    [
        {"id": 3, "name": "Pedro Pérez", "documentType": "DNI",
         "documentNumber": "V-12345678", "balance": -1500.0,
         "isActive": 1, "createdAt": "2024-05-01 14:30:00"}
    ]
    """

    endpoint = '/clients'
    query_key = 'clients'
    entity_factory = Client.from_dict
    invalidates = ('clientDebts', 'clientDebtSummary', 'dashboardStats', 'reportsData')

    def merge_update(self, client: Client, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Actualiza un cliente enviando el registro completo con los cambios.

        Args:
            client: Cliente actual
            changes: Campos en formato backend (camelCase) a sobrescribir
        """
        payload = client.to_dict()
        payload.update(changes)
        return self.update(client.id, payload)

    def create_credit(self, credit: Dict[str, Any]) -> Dict[str, Any]:
        """
        Registra un crédito. El backend descuenta el monto del balance.

        Args:
            credit: {clientId, amount, dueDate, notes, exchangeRate, ...}
        """
        result = self.api.post(f"{self.endpoint}/credits", credit)
        self.cache.invalidate('clientCredits')
        self.invalidate()
        return result or {}

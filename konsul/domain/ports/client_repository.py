# konsul/domain/ports/client_repository.py
from abc import ABC, abstractmethod
from typing import List

from konsul.domain.models.client import ClientRecord, ClientStatus


class ClientRepository(ABC):
    """Maestro de clientes y prospectos del usuario."""

    @abstractmethod
    def fetch_clients(self, user_id: str) -> List[ClientRecord]:
        """Combina las tablas `clients` y `prospects`."""
        pass

    @abstractmethod
    def save_client(self, record: ClientRecord, user_id: str, status: ClientStatus) -> ClientRecord:
        """
        Guarda el registro. Un prospecto promovido a cliente se mueve de tabla;
        un cliente existente nunca vuelve a ser prospecto.
        """
        pass

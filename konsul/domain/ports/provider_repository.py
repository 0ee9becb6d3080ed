# konsul/domain/ports/provider_repository.py
from abc import ABC, abstractmethod
from typing import List

from konsul.domain.models.client import ProviderRecord


class ProviderRepository(ABC):
    """Maestro de proveedores a los que se registran gastos."""

    @abstractmethod
    def fetch_providers(self, user_id: str) -> List[ProviderRecord]:
        pass

    @abstractmethod
    def save_provider(self, record: ProviderRecord, user_id: str) -> ProviderRecord:
        """Upsert por nombre; los campos vacíos no borran los ya guardados."""
        pass

# konsul/domain/ports/catalog_repository.py
from abc import ABC, abstractmethod
from typing import List

from konsul.domain.models.catalog import CatalogItem


class CatalogRepository(ABC):

    @abstractmethod
    def fetch_items(self, user_id: str) -> List[CatalogItem]:
        """Catálogo del usuario, del más reciente al más antiguo."""
        pass

    @abstractmethod
    def save_item(self, item: CatalogItem, user_id: str) -> CatalogItem:
        """Crea o actualiza el producto; asigna un ID si no lo trae."""
        pass

    @abstractmethod
    def delete_item(self, item_id: str, user_id: str) -> bool:
        pass

# konsul/infrastructure/persistence/catalog_repository_adapter.py
import logging
import uuid
from typing import List

from sqlalchemy.orm import Session

from konsul.domain.models.catalog import CatalogItem
from konsul.domain.ports.catalog_repository import CatalogRepository
from .models import CatalogItemRow

logger = logging.getLogger(__name__)


class SQLCatalogRepository(CatalogRepository):
    def __init__(self, db: Session):
        self.db = db

    def _to_item(self, row: CatalogItemRow) -> CatalogItem:
        return CatalogItem(
            id=row.id,
            name=row.name,
            price=float(row.price),
            description=row.description,
            sku=row.sku,
            is_recurring=bool(row.is_recurring),
        )

    def fetch_items(self, user_id: str) -> List[CatalogItem]:
        rows = (
            self.db.query(CatalogItemRow)
            .filter(CatalogItemRow.user_id == user_id)
            .order_by(CatalogItemRow.created_at.desc())
            .all()
        )
        return [self._to_item(row) for row in rows]

    def save_item(self, item: CatalogItem, user_id: str) -> CatalogItem:
        item_id = item.id or f"item_{uuid.uuid4().hex[:12]}"
        row = self.db.query(CatalogItemRow).filter(CatalogItemRow.id == item_id).first()
        if row is not None and row.user_id != user_id:
            raise ValueError(f"El producto {item_id} no pertenece al usuario.")
        if row is None:
            row = CatalogItemRow(id=item_id, user_id=user_id)
            self.db.add(row)
        row.name = item.name
        row.price = item.price
        row.description = item.description
        row.sku = item.sku
        row.is_recurring = item.is_recurring
        self.db.flush()
        logger.info(f"[{user_id}] Producto '{item.name}' guardado en el catálogo.")
        return self._to_item(row)

    def delete_item(self, item_id: str, user_id: str) -> bool:
        deleted = (
            self.db.query(CatalogItemRow)
            .filter(CatalogItemRow.id == item_id, CatalogItemRow.user_id == user_id)
            .delete()
        )
        self.db.flush()
        return deleted > 0

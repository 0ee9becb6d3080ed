# konsul/infrastructure/persistence/document_repository_adapter.py
import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session

from konsul.domain.models.document import Document, DocumentType
from konsul.domain.ports.document_repository import DocumentRepository
from .models import ExpenseRow, InvoiceRow

logger = logging.getLogger(__name__)


def _to_float(value) -> float:
    return float(value) if value is not None else 0.0


class SQLDocumentRepository(DocumentRepository):
    def __init__(self, db: Session):
        self.db = db

    def _invoice_from_row(self, row: InvoiceRow) -> Document:
        data = dict(row.data or {})
        data.update({
            "id": row.id,
            "userId": row.user_id or data.get("userId"),
            "clientName": row.client_name or data.get("clientName", ""),
            "clientTaxId": row.client_tax_id,
            "total": _to_float(row.total),
            "status": row.status or data.get("status", "Borrador"),
            "date": row.date,
            "type": row.type or data.get("type", DocumentType.INVOICE.value),
            "amountPaid": _to_float(data.get("amountPaid")),
        })
        return Document.model_validate(data)

    def _expense_from_row(self, row: ExpenseRow) -> Document:
        data = dict(row.data or {})
        data.update({
            "id": row.id,
            "userId": row.user_id or data.get("userId"),
            "clientName": row.provider_name or data.get("clientName", ""),
            "total": _to_float(row.total),
            "status": row.status or data.get("status", "Borrador"),
            "date": row.date,
            "type": DocumentType.EXPENSE.value,
            "receiptUrl": row.receipt_url,
        })
        return Document.model_validate(data)

    def _map_rows(self, rows, mapper) -> List[Document]:
        documents = []
        for row in rows:
            try:
                documents.append(mapper(row))
            except ValidationError as e:
                logger.warning(f"Documento {row.id} con formato inválido. Omitiendo. Error: {e}")
        return documents

    def fetch_documents(self, user_id: str) -> List[Document]:
        invoice_rows = self.db.query(InvoiceRow).filter(InvoiceRow.user_id == user_id).all()
        expense_rows = self.db.query(ExpenseRow).filter(ExpenseRow.user_id == user_id).all()

        documents = self._map_rows(invoice_rows, self._invoice_from_row)
        documents += self._map_rows(expense_rows, self._expense_from_row)
        logger.info(f"[{user_id}] {len(invoice_rows)} facturas/cotizaciones y {len(expense_rows)} gastos cargados.")

        # Más recientes primero; las fechas ilegibles van al final.
        return sorted(documents, key=lambda d: d.date or datetime.min, reverse=True)

    def find_by_id(self, document_id: str) -> Optional[Document]:
        row = self.db.query(InvoiceRow).filter(InvoiceRow.id == document_id).first()
        if row is not None:
            return self._invoice_from_row(row)
        expense = self.db.query(ExpenseRow).filter(ExpenseRow.id == document_id).first()
        return self._expense_from_row(expense) if expense is not None else None

    def save_document(self, document: Document) -> None:
        data = document.model_dump(mode="json", by_alias=True)
        date_str = document.date.isoformat() if document.date else None

        if document.is_expense:
            category = document.items[0].description if document.items else "General"
            self.db.merge(ExpenseRow(
                id=document.id,
                user_id=document.user_id,
                provider_name=document.client_name,
                date=date_str,
                total=document.total,
                currency=document.currency,
                category=category or "General",
                receipt_url=document.receipt_url,
                status=document.status.value,
                data=data,
            ))
        else:
            self.db.merge(InvoiceRow(
                id=document.id,
                user_id=document.user_id,
                client_name=document.client_name,
                client_tax_id=document.client_tax_id,
                total=document.total,
                status=document.status.value,
                date=date_str,
                type=document.type.value,
                data=data,
            ))
        self.db.flush()
        logger.info(f"Documento {document.id} ({document.type.value}) guardado con estado {document.status.value}.")

    def delete_document(self, document_id: str) -> bool:
        deleted = self.db.query(InvoiceRow).filter(InvoiceRow.id == document_id).delete()
        if not deleted:
            deleted = self.db.query(ExpenseRow).filter(ExpenseRow.id == document_id).delete()
        self.db.flush()
        return bool(deleted)

    def search(self, user_id: str, term: str) -> List[Document]:
        """Búsqueda por nombre de cliente o ID, solo en facturas y cotizaciones."""
        pattern = f"%{term}%"
        rows = self.db.query(InvoiceRow).filter(
            InvoiceRow.user_id == user_id,
            or_(InvoiceRow.client_name.ilike(pattern), InvoiceRow.id.ilike(pattern)),
        ).all()
        return self._map_rows(rows, self._invoice_from_row)

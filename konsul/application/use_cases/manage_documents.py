# konsul/application/use_cases/manage_documents.py
import logging
import uuid
from datetime import datetime
from typing import Optional

from konsul.domain.exceptions import DocumentNotFound
from konsul.domain.models.client import ClientRecord, ClientStatus, ProviderRecord
from konsul.domain.models.document import (
    Document,
    DocumentStatus,
    TimelineEvent,
    TimelineEventType,
    utc_now,
)
from konsul.domain.ports.client_repository import ClientRepository
from konsul.domain.ports.document_repository import DocumentRepository
from konsul.domain.ports.provider_repository import ProviderRepository
from konsul.domain.services.collection import collected_amount
from konsul.domain.services.status_machine import transition, validate_initial_status

logger = logging.getLogger(__name__)

# Diferencia máxima, en la moneda del documento, para dar un pago por completo.
PAYMENT_TOLERANCE = 0.01


def new_event(event_type: TimelineEventType, title: str, description: Optional[str] = None, at: Optional[datetime] = None) -> TimelineEvent:
    return TimelineEvent(
        id=str(uuid.uuid4()),
        type=event_type,
        title=title,
        description=description,
        timestamp=at or utc_now(),
    )


def event_for_status(doc: Document, target: DocumentStatus) -> Optional[TimelineEvent]:
    """Evento de la línea de tiempo que acompaña a un cambio de estado, si lo hay."""
    if target == DocumentStatus.ENVIADA:
        return new_event(TimelineEventType.SENT, "Documento enviado")
    if target == DocumentStatus.SEGUIMIENTO:
        return new_event(TimelineEventType.REMINDER, "Seguimiento al cliente")
    if target == DocumentStatus.ACEPTADA:
        if doc.is_quote:
            return new_event(TimelineEventType.APPROVED, "Cotización aprobada")
        return new_event(TimelineEventType.PAID, "Pago recibido")
    return None


def load_owned(document_repo: DocumentRepository, document_id: str, user_id: Optional[str]) -> Document:
    doc = document_repo.find_by_id(document_id)
    # Un documento de otro usuario se trata igual que uno inexistente.
    if doc is None or (user_id and doc.user_id and doc.user_id != user_id):
        raise DocumentNotFound(document_id)
    return doc


class SaveDocumentUseCase:
    """
    Crea o actualiza un documento. Al crear registra el evento CREATED y da de
    alta al cliente (o al proveedor, si es un gasto) en su maestro; al
    actualizar, el cambio de estado se valida.
    """
    def __init__(
        self,
        document_repo: DocumentRepository,
        client_repo: Optional[ClientRepository] = None,
        provider_repo: Optional[ProviderRepository] = None
    ):
        self.document_repo = document_repo
        self.client_repo = client_repo
        self.provider_repo = provider_repo

    def execute(self, document: Document, user_id: str) -> Document:
        doc = document.model_copy(update={"user_id": user_id})
        existing = self.document_repo.find_by_id(doc.id)

        if existing is None:
            validate_initial_status(doc)
            # Un documento nuevo en PendingSync se creó sin conexión y parte de Borrador.
            doc.status_before_sync = None
            if not doc.total and doc.items:
                doc.total = round(doc.computed_total(), 2)
            if doc.date is None:
                doc.date = utc_now()
            if not doc.has_event(TimelineEventType.CREATED):
                doc.timeline = [new_event(TimelineEventType.CREATED, "Documento creado", at=doc.date)] + doc.timeline
            logger.info(f"[{user_id}] Creando {doc.type.value} {doc.id} para '{doc.client_name}'.")
        else:
            if existing.user_id and existing.user_id != user_id:
                raise DocumentNotFound(doc.id)
            if existing.status != doc.status:
                moved = transition(existing.model_copy(update={"type": doc.type}), doc.status)
                doc.status_before_sync = moved.status_before_sync
            else:
                doc.status_before_sync = existing.status_before_sync
            logger.info(f"[{user_id}] Actualizando {doc.type.value} {doc.id}.")

        self.document_repo.save_document(doc)

        if self.client_repo is not None and not doc.is_expense and doc.client_name.strip():
            status = ClientStatus.CLIENT if collected_amount(doc) > 0 else ClientStatus.PROSPECT
            record = ClientRecord(name=doc.client_name.strip(), tax_id=doc.client_tax_id)
            self.client_repo.save_client(record, user_id, status)
        if self.provider_repo is not None and doc.is_expense and doc.client_name.strip():
            self.provider_repo.save_provider(ProviderRecord(name=doc.client_name.strip(), tax_id=doc.client_tax_id), user_id)
        return doc


class ChangeDocumentStatusUseCase:
    def __init__(self, document_repo: DocumentRepository):
        self.document_repo = document_repo

    def execute(self, document_id: str, target: DocumentStatus, user_id: Optional[str] = None) -> Document:
        doc = load_owned(self.document_repo, document_id, user_id)
        updated = transition(doc, target)
        event = event_for_status(updated, target)
        if event is not None:
            updated.timeline = updated.timeline + [event]

        self.document_repo.save_document(updated)
        logger.info(f"Documento {document_id}: {doc.status.value} -> {target.value}.")
        return updated


class RecordPaymentUseCase:
    """
    Registra un cobro sobre una factura. Un abono parcial deja la factura en
    `Abonada`; al completar el total pasa a `Aceptada` con su evento PAID.
    """
    def __init__(self, document_repo: DocumentRepository):
        self.document_repo = document_repo

    def execute(self, document_id: str, amount: float, user_id: Optional[str] = None, paid_at: Optional[datetime] = None) -> Document:
        if amount <= 0:
            raise ValueError("El monto del pago debe ser mayor que cero.")

        doc = load_owned(self.document_repo, document_id, user_id)
        if not doc.is_invoice:
            raise ValueError("Solo se pueden registrar pagos sobre facturas.")

        paid_so_far = (doc.amount_paid or 0.0) + amount
        fully_paid = paid_so_far >= doc.total - PAYMENT_TOLERANCE
        target = DocumentStatus.ACEPTADA if fully_paid else DocumentStatus.ABONADA

        updated = transition(doc, target)
        updated.amount_paid = round(min(paid_so_far, doc.total) if fully_paid else paid_so_far, 2)
        if fully_paid:
            updated.timeline = updated.timeline + [
                new_event(TimelineEventType.PAID, "Pago recibido", f"Pago final de {amount:.2f} {doc.currency}", at=paid_at)
            ]

        self.document_repo.save_document(updated)
        logger.info(f"Factura {document_id}: cobrado {updated.amount_paid:.2f} de {doc.total:.2f} ({target.value}).")
        return updated


class DeleteDocumentUseCase:
    def __init__(self, document_repo: DocumentRepository):
        self.document_repo = document_repo

    def execute(self, document_id: str, user_id: Optional[str] = None) -> None:
        load_owned(self.document_repo, document_id, user_id)
        self.document_repo.delete_document(document_id)
        logger.info(f"Documento {document_id} eliminado.")

# konsul/application/use_cases/send_document.py
import logging
from typing import Optional

from konsul.application.use_cases.manage_documents import load_owned, new_event
from konsul.domain.models.document import Document, DocumentStatus, TimelineEventType
from konsul.domain.ports.document_repository import DocumentRepository
from konsul.domain.ports.email_sender import EmailSender
from konsul.domain.services.status_machine import can_transition, transition

logger = logging.getLogger(__name__)

DOCUMENT_LABELS = {"Invoice": "Factura", "Quote": "Cotizacion", "Expense": "Gasto"}


def attachment_filename(doc: Document) -> str:
    return f"{DOCUMENT_LABELS[doc.type.value]}_{doc.id}.pdf"


def default_subject(doc: Document, sender_name: Optional[str]) -> str:
    return f"{DOCUMENT_LABELS[doc.type.value]} {doc.id} de {sender_name or 'Kônsul Bills'}"


class SendDocumentUseCase:
    """
    Envía el documento por correo con el PDF adjunto (en base64). Si el envío
    sale bien, el documento pasa a `Enviada` cuando su estado lo permite y se
    registra el evento SENT; un reenvío no retrocede el estado.
    """
    def __init__(self, document_repo: DocumentRepository, email_sender: EmailSender):
        self.document_repo = document_repo
        self.email_sender = email_sender

    def execute(
        self,
        document_id: str,
        to: str,
        html: str,
        subject: Optional[str] = None,
        pdf_base64: Optional[str] = None,
        sender_name: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> dict:
        doc = load_owned(self.document_repo, document_id, user_id)

        attachments = None
        if pdf_base64:
            attachments = [{"filename": attachment_filename(doc), "content": pdf_base64}]

        logger.info(f"[{document_id}] Enviando documento a {to}...")
        result = self.email_sender.send_email(
            to=to,
            subject=subject or default_subject(doc, sender_name),
            html=html,
            attachments=attachments,
            sender_name=sender_name,
        )
        if not result.get("success"):
            logger.error(f"[{document_id}] No se pudo enviar el documento: {result.get('error')}")
            return {**result, "status": doc.status.value}

        updated = doc.model_copy()
        if doc.status != DocumentStatus.ENVIADA and can_transition(doc.type, doc.status, DocumentStatus.ENVIADA, doc.status_before_sync):
            updated = transition(doc, DocumentStatus.ENVIADA)
        updated.timeline = doc.timeline + [
            new_event(TimelineEventType.SENT, "Documento enviado", f"Enviado a {to} (ID {result.get('id')})")
        ]
        self.document_repo.save_document(updated)
        logger.info(f"[{document_id}] Documento enviado. Estado: {updated.status.value}.")
        return {**result, "status": updated.status.value}

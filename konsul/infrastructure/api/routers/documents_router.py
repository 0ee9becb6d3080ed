# konsul/infrastructure/api/routers/documents_router.py
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

import config
from konsul.application.use_cases.manage_documents import (
    ChangeDocumentStatusUseCase,
    DeleteDocumentUseCase,
    RecordPaymentUseCase,
    SaveDocumentUseCase,
    load_owned,
)
from konsul.domain.exceptions import DocumentNotFound, InvalidStatusTransition
from konsul.domain.models.document import Document, DocumentStatus
from konsul.domain.ports.client_repository import ClientRepository
from konsul.domain.ports.document_repository import DocumentRepository
from konsul.domain.ports.provider_repository import ProviderRepository
from konsul.domain.services.status_machine import valid_statuses
from konsul.infrastructure.api.dependencies import (
    get_client_repo,
    get_document_repo,
    get_provider_repo,
    get_user_id,
)
from konsul.infrastructure.celery.worker import celery_app
from konsul.infrastructure.persistence.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{config.API_PREFIX}/documentos", tags=["Documentos"])


class StatusChangeRequest(BaseModel):
    status: DocumentStatus


class PaymentRequest(BaseModel):
    amount: float = Field(..., gt=0)
    paid_at: Optional[datetime] = None


class SendDocumentRequest(BaseModel):
    to: str = Field(..., min_length=3)
    html: str = ""
    subject: Optional[str] = None
    pdf_base64: Optional[str] = Field(None, description="PDF del documento en base64.")
    sender_name: Optional[str] = None


def _not_found(e: DocumentNotFound) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


def _conflict(e: InvalidStatusTransition) -> HTTPException:
    return HTTPException(status_code=409, detail={
        "message": str(e),
        "current": e.current,
        "target": e.target,
    })


@router.get("/", response_model=List[Document], summary="Documentos del usuario")
def list_documents(
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
):
    return document_repo.fetch_documents(user_id)


@router.get("/buscar", response_model=List[Document], summary="Buscar por cliente o ID")
def search_documents(
    q: str = Query(..., min_length=1),
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
):
    return document_repo.search(user_id, q.strip())


@router.get("/{document_id}", response_model=Document)
def get_document(
    document_id: str,
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
):
    try:
        return load_owned(document_repo, document_id, user_id)
    except DocumentNotFound as e:
        raise _not_found(e)


@router.get("/{document_id}/estados", summary="Estados válidos para el tipo del documento")
def get_valid_statuses(
    document_id: str,
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
):
    try:
        doc = load_owned(document_repo, document_id, user_id)
    except DocumentNotFound as e:
        raise _not_found(e)
    return {"type": doc.type.value, "statuses": sorted(s.value for s in valid_statuses(doc.type))}


@router.post("/", response_model=Document, status_code=201, summary="Crear o actualizar un documento")
def save_document(
    document: Document,
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
    client_repo: ClientRepository = Depends(get_client_repo),
    provider_repo: ProviderRepository = Depends(get_provider_repo),
    db: Session = Depends(get_db),
):
    try:
        saved = SaveDocumentUseCase(document_repo, client_repo, provider_repo).execute(document, user_id)
    except DocumentNotFound as e:
        raise _not_found(e)
    except InvalidStatusTransition as e:
        raise _conflict(e)
    db.commit()
    return saved


@router.patch("/{document_id}/estado", response_model=Document, summary="Cambiar el estado")
def change_status(
    document_id: str,
    request: StatusChangeRequest,
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
    db: Session = Depends(get_db),
):
    try:
        updated = ChangeDocumentStatusUseCase(document_repo).execute(document_id, request.status, user_id)
    except DocumentNotFound as e:
        raise _not_found(e)
    except InvalidStatusTransition as e:
        raise _conflict(e)
    db.commit()
    return updated


@router.post("/{document_id}/pagos", response_model=Document, summary="Registrar un pago")
def record_payment(
    document_id: str,
    request: PaymentRequest,
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
    db: Session = Depends(get_db),
):
    try:
        updated = RecordPaymentUseCase(document_repo).execute(document_id, request.amount, user_id, request.paid_at)
    except DocumentNotFound as e:
        raise _not_found(e)
    except InvalidStatusTransition as e:
        raise _conflict(e)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    db.commit()
    return updated


@router.post("/{document_id}/enviar", status_code=202, summary="Encolar el envío del documento por correo")
def send_document(
    document_id: str,
    request: SendDocumentRequest,
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
):
    """
    Comprueba que el documento existe y lanza una tarea en segundo plano
    que envía el correo y actualiza el estado.
    """
    try:
        load_owned(document_repo, document_id, user_id)
    except DocumentNotFound as e:
        raise _not_found(e)

    try:
        celery_app.send_task(
            'tasks.send_document_email',
            args=[document_id, request.to, request.html],
            kwargs={
                "subject": request.subject,
                "pdf_base64": request.pdf_base64,
                "sender_name": request.sender_name,
                "user_id": user_id,
            }
        )
    except Exception as e:
        logger.error(f"[{document_id}] No se pudo encolar el envío: {e}")
        raise HTTPException(status_code=503, detail="No se pudo encolar el envío del correo.")
    return {"status": "email_queued", "document_id": document_id}


@router.delete("/{document_id}", status_code=204, summary="Eliminar un documento")
def delete_document(
    document_id: str,
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
    db: Session = Depends(get_db),
):
    try:
        DeleteDocumentUseCase(document_repo).execute(document_id, user_id)
    except DocumentNotFound as e:
        raise _not_found(e)
    db.commit()

# konsul/infrastructure/api/routers/integrations_router.py
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

import config
from konsul.application.use_cases.ai_assistant import AnalyzeFinancesUseCase, DraftDocumentUseCase
from konsul.application.use_cases.subscriptions import ConfirmSubscriptionUseCase
from konsul.domain.exceptions import AIBlockedError, ExternalServiceError
from konsul.domain.models.ai import DeepDiveReport, FinancialAnalysisResult, PriceAnalysisResult
from konsul.domain.models.document import Document
from konsul.domain.models.report import TimeRange
from konsul.domain.ports.ai_service import AIService
from konsul.domain.ports.checkout_gateway import CheckoutGateway
from konsul.domain.ports.document_repository import DocumentRepository
from konsul.domain.ports.email_sender import EmailSender
from konsul.domain.ports.profile_repository import ProfileRepository
from konsul.domain.ports.tax_id_directory import Contribuyente, TaxIdDirectory
from konsul.infrastructure.api.dependencies import (
    get_ai_service,
    get_checkout_gateway,
    get_document_repo,
    get_email_sender,
    get_profile_repo,
    get_tax_id_directory,
    get_user_id,
)
from konsul.infrastructure.persistence.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{config.API_PREFIX}/integraciones", tags=["Integraciones"])


class CheckoutRequest(BaseModel):
    email: str
    plan: str = config.DEFAULT_PLAN
    origin: str = Field(..., description="URL del front a la que vuelve la pasarela.")


class PortalRequest(BaseModel):
    customer_id: str
    origin: str


class ConfirmCheckoutRequest(BaseModel):
    session_id: str


class TextDraftRequest(BaseModel):
    text: str = Field(..., min_length=3)


class ReceiptDraftRequest(BaseModel):
    image_base64: str
    mime_type: str = "image/jpeg"


class AnalysisRequest(BaseModel):
    time_range: TimeRange = TimeRange.LAST_12_MONTHS
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class DeepDiveRequest(AnalysisRequest):
    chart_title: str


class PriceRequest(BaseModel):
    item_name: str
    country: str = "Panamá"


def _ai_blocked(e: AIBlockedError) -> HTTPException:
    return HTTPException(status_code=403, detail={"code": AIBlockedError.code, "message": str(e)})


def _unavailable(e: ExternalServiceError) -> HTTPException:
    return HTTPException(status_code=502, detail=str(e))


def _empty_ai_response() -> HTTPException:
    return HTTPException(status_code=502, detail="La IA no devolvió una respuesta válida.")


# --- RUC ---

@router.get("/ruc/{ruc}", response_model=Contribuyente, summary="Consultar un RUC en la DGI")
def lookup_ruc(ruc: str, directory: TaxIdDirectory = Depends(get_tax_id_directory)):
    try:
        contribuyente = directory.lookup(ruc)
    except ExternalServiceError as e:
        raise _unavailable(e)
    if contribuyente is None:
        raise HTTPException(status_code=404, detail=f"RUC no encontrado: {ruc}")
    return contribuyente


# --- CORREO ---

@router.get("/correos/{email_id}", summary="Estado de entrega de un correo enviado")
def get_email_status(email_id: str, email_sender: EmailSender = Depends(get_email_sender)):
    status = email_sender.get_email_status(email_id)
    if status is None:
        raise HTTPException(status_code=404, detail=f"No se encontró el correo {email_id}")
    return status


# --- PAGOS ---

@router.post("/checkout", summary="Crear la sesión de pago de la suscripción")
def create_checkout(
    request: CheckoutRequest,
    user_id: str = Depends(get_user_id),
    gateway: CheckoutGateway = Depends(get_checkout_gateway),
):
    try:
        url = gateway.create_checkout_session(request.plan, request.email, user_id, request.origin)
    except ExternalServiceError as e:
        raise _unavailable(e)
    return {"url": url}


@router.post("/portal", summary="Portal de facturación del cliente")
def create_portal(request: PortalRequest, gateway: CheckoutGateway = Depends(get_checkout_gateway)):
    try:
        url = gateway.create_portal_session(request.customer_id, request.origin)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ExternalServiceError as e:
        raise _unavailable(e)
    return {"url": url}


@router.post("/checkout/confirmar", summary="Activar la suscripción tras el pago")
def confirm_checkout(
    request: ConfirmCheckoutRequest,
    user_id: str = Depends(get_user_id),
    gateway: CheckoutGateway = Depends(get_checkout_gateway),
    profile_repo: ProfileRepository = Depends(get_profile_repo),
    db: Session = Depends(get_db),
):
    try:
        session = ConfirmSubscriptionUseCase(gateway, profile_repo).execute(user_id, request.session_id)
    except ExternalServiceError as e:
        raise _unavailable(e)
    db.commit()
    return session


# --- IA ---

@router.post("/ia/borrador", response_model=Document, summary="Borrador de factura o cotización a partir de texto")
def draft_from_text(
    request: TextDraftRequest,
    user_id: str = Depends(get_user_id),
    ai_service: AIService = Depends(get_ai_service),
):
    try:
        draft = DraftDocumentUseCase(ai_service).from_text(request.text, user_id)
    except AIBlockedError as e:
        raise _ai_blocked(e)
    if draft is None:
        raise _empty_ai_response()
    return draft


@router.post("/ia/gasto", response_model=Document, summary="Borrador de gasto a partir de la foto de un recibo")
def draft_from_receipt(
    request: ReceiptDraftRequest,
    user_id: str = Depends(get_user_id),
    ai_service: AIService = Depends(get_ai_service),
):
    try:
        draft = DraftDocumentUseCase(ai_service).from_receipt(request.image_base64, request.mime_type, user_id)
    except AIBlockedError as e:
        raise _ai_blocked(e)
    if draft is None:
        raise _empty_ai_response()
    return draft


@router.post("/ia/analisis", response_model=FinancialAnalysisResult, summary="Diagnóstico financiero con IA")
def analyze_finances(
    request: AnalysisRequest,
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
    ai_service: AIService = Depends(get_ai_service),
):
    try:
        result = AnalyzeFinancesUseCase(document_repo, ai_service).execute(
            user_id, request.time_range, request.start, request.end
        )
    except AIBlockedError as e:
        raise _ai_blocked(e)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if result is None:
        raise _empty_ai_response()
    return result


@router.post("/ia/reporte", response_model=DeepDiveReport, summary="Reporte detallado de un gráfico")
def deep_dive_report(
    request: DeepDiveRequest,
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
    ai_service: AIService = Depends(get_ai_service),
):
    try:
        result = AnalyzeFinancesUseCase(document_repo, ai_service).deep_dive(
            user_id, request.chart_title, request.time_range, request.start, request.end
        )
    except AIBlockedError as e:
        raise _ai_blocked(e)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if result is None:
        raise _empty_ai_response()
    return result


@router.post("/ia/precio", response_model=PriceAnalysisResult, summary="Rango de precios de mercado")
def analyze_price(request: PriceRequest, ai_service: AIService = Depends(get_ai_service)):
    try:
        result: Optional[PriceAnalysisResult] = ai_service.analyze_price_market(request.item_name, request.country)
    except AIBlockedError as e:
        raise _ai_blocked(e)
    if result is None:
        raise _empty_ai_response()
    return result

# konsul/infrastructure/api/dependencies.py
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from konsul.domain.ports.ai_service import AIService
from konsul.domain.ports.catalog_repository import CatalogRepository
from konsul.domain.ports.checkout_gateway import CheckoutGateway
from konsul.domain.ports.client_repository import ClientRepository
from konsul.domain.ports.document_repository import DocumentRepository
from konsul.domain.ports.email_sender import EmailSender
from konsul.domain.ports.profile_repository import ProfileRepository
from konsul.domain.ports.provider_repository import ProviderRepository
from konsul.domain.ports.tax_id_directory import TaxIdDirectory
from konsul.infrastructure.external.dgi_adapter import DgiAdapter
from konsul.infrastructure.external.gemini_adapter import GeminiAdapter
from konsul.infrastructure.external.resend_adapter import ResendAdapter
from konsul.infrastructure.external.stripe_adapter import StripeCheckoutAdapter
from konsul.infrastructure.persistence.catalog_repository_adapter import SQLCatalogRepository
from konsul.infrastructure.persistence.client_repository_adapter import (
    SQLClientRepository,
    SQLProfileRepository,
    SQLProviderRepository,
)
from konsul.infrastructure.persistence.database import get_db
from konsul.infrastructure.persistence.document_repository_adapter import SQLDocumentRepository

logger = logging.getLogger(__name__)


def get_user_id(x_user_id: str = Header(..., description="ID del usuario autenticado.")) -> str:
    if not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Falta el usuario.")
    return x_user_id.strip()


def get_document_repo(db: Session = Depends(get_db)) -> DocumentRepository:
    return SQLDocumentRepository(db)


def get_client_repo(db: Session = Depends(get_db)) -> ClientRepository:
    return SQLClientRepository(db)


def get_profile_repo(db: Session = Depends(get_db)) -> ProfileRepository:
    return SQLProfileRepository(db)


def get_provider_repo(db: Session = Depends(get_db)) -> ProviderRepository:
    return SQLProviderRepository(db)


def get_catalog_repo(db: Session = Depends(get_db)) -> CatalogRepository:
    return SQLCatalogRepository(db)


def get_checkout_gateway() -> CheckoutGateway:
    try:
        return StripeCheckoutAdapter()
    except ValueError as e:
        logger.error(f"Pasarela de pagos no disponible: {e}")
        raise HTTPException(status_code=503, detail="La pasarela de pagos no está configurada.")


def get_email_sender() -> EmailSender:
    try:
        return ResendAdapter()
    except ValueError as e:
        logger.error(f"Servicio de correo no disponible: {e}")
        raise HTTPException(status_code=503, detail="El servicio de correo no está configurado.")


def get_tax_id_directory() -> TaxIdDirectory:
    return DgiAdapter()


def get_ai_service(x_gemini_key: Optional[str] = Header(None, description="API key de Gemini del usuario.")) -> AIService:
    return GeminiAdapter(api_key=x_gemini_key)

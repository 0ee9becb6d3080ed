import itertools
import os
from datetime import datetime
from typing import Dict, List, Optional

import pytest

# Antes de importar `config`: las pruebas nunca tocan la base de datos local.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from konsul.domain.models.ai import (
    DeepDiveReport,
    FinancialAnalysisResult,
    ParsedInvoiceData,
    PriceAnalysisResult,
)
from konsul.domain.models.catalog import CatalogItem
from konsul.domain.models.client import ClientRecord, ClientStatus, ProviderRecord
from konsul.domain.models.document import (
    Document,
    DocumentItem,
    DocumentStatus,
    DocumentType,
    TimelineEvent,
    TimelineEventType,
)
from konsul.domain.models.profile import UserProfile
from konsul.domain.models.report import FiscalConfig
from konsul.domain.ports.ai_service import AIService
from konsul.domain.ports.catalog_repository import CatalogRepository
from konsul.domain.ports.client_repository import ClientRepository
from konsul.domain.ports.document_repository import DocumentRepository
from konsul.domain.ports.email_sender import EmailSender
from konsul.domain.ports.profile_repository import ProfileRepository
from konsul.domain.ports.provider_repository import ProviderRepository

NOW = datetime(2024, 6, 30, 12, 0, 0)


# ---------------------------------------------------------------------------
# Fábricas
# ---------------------------------------------------------------------------

@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_doc():
    counter = itertools.count(1)

    def _make(
        client_name: str = "Acme",
        total: float = 100.0,
        status: DocumentStatus = DocumentStatus.ENVIADA,
        type: DocumentType = DocumentType.INVOICE,
        date: Optional[datetime] = NOW,
        **extra,
    ) -> Document:
        return Document(
            id=extra.pop("id", f"DOC-{next(counter):03d}"),
            client_name=client_name,
            total=total,
            status=status,
            type=type,
            date=date,
            **extra,
        )

    return _make


@pytest.fixture
def event():
    def _event(event_type: TimelineEventType, timestamp: datetime) -> TimelineEvent:
        return TimelineEvent(type=event_type, title=event_type.value, timestamp=timestamp)
    return _event


def taxed_item(price: float, tax: float, description: str = "Servicio", quantity: float = 1) -> DocumentItem:
    return DocumentItem(description=description, quantity=quantity, price=price, tax=tax)


@pytest.fixture
def item():
    return taxed_item


# ---------------------------------------------------------------------------
# Puertos en memoria
# ---------------------------------------------------------------------------

class InMemoryDocumentRepository(DocumentRepository):
    def __init__(self, documents: Optional[List[Document]] = None):
        self.documents: Dict[str, Document] = {doc.id: doc for doc in documents or []}
        self.saved: List[Document] = []

    def fetch_documents(self, user_id: str) -> List[Document]:
        return [doc for doc in self.documents.values() if doc.user_id in (None, user_id)]

    def find_by_id(self, document_id: str) -> Optional[Document]:
        return self.documents.get(document_id)

    def save_document(self, document: Document) -> None:
        self.documents[document.id] = document
        self.saved.append(document)

    def delete_document(self, document_id: str) -> bool:
        return self.documents.pop(document_id, None) is not None

    def search(self, user_id: str, term: str) -> List[Document]:
        needle = term.lower()
        return [
            doc for doc in self.fetch_documents(user_id)
            if not doc.is_expense and (needle in doc.client_name.lower() or needle in doc.id.lower())
        ]


class InMemoryClientRepository(ClientRepository):
    def __init__(self, records: Optional[List[ClientRecord]] = None):
        self.records: List[ClientRecord] = list(records or [])
        self.saved: List[tuple] = []

    def fetch_clients(self, user_id: str) -> List[ClientRecord]:
        return list(self.records)

    def save_client(self, record: ClientRecord, user_id: str, status: ClientStatus) -> ClientRecord:
        saved = record.model_copy(update={"status": status})
        self.saved.append((saved, user_id))
        return saved


class StaticProfileRepository(ProfileRepository):
    def __init__(self, fiscal_config: Optional[FiscalConfig] = None):
        self.fiscal_config = fiscal_config
        self.profile: Optional[UserProfile] = None
        self.subscriptions: List[dict] = []

    def get_fiscal_config(self, user_id: str) -> Optional[FiscalConfig]:
        return self.fiscal_config

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.profile

    def save_profile(self, user_id: str, profile: UserProfile) -> UserProfile:
        self.profile = profile
        self.fiscal_config = profile.fiscal_config
        return profile

    def update_subscription(self, user_id, plan, renewal_date, customer_id) -> None:
        self.subscriptions.append({
            "user_id": user_id,
            "plan": plan,
            "renewal_date": renewal_date,
            "customer_id": customer_id,
        })


class InMemoryProviderRepository(ProviderRepository):
    def __init__(self):
        self.providers: Dict[str, ProviderRecord] = {}

    def fetch_providers(self, user_id: str) -> List[ProviderRecord]:
        return list(self.providers.values())

    def save_provider(self, record: ProviderRecord, user_id: str) -> ProviderRecord:
        self.providers[record.name] = record
        return record


class InMemoryCatalogRepository(CatalogRepository):
    def __init__(self, items: Optional[List[CatalogItem]] = None):
        self.items: Dict[str, CatalogItem] = {item.id: item for item in items or []}

    def fetch_items(self, user_id: str) -> List[CatalogItem]:
        return list(self.items.values())

    def save_item(self, item: CatalogItem, user_id: str) -> CatalogItem:
        saved = item.model_copy(update={"id": item.id or f"item_{len(self.items) + 1}"})
        self.items[saved.id] = saved
        return saved

    def delete_item(self, item_id: str, user_id: str) -> bool:
        return self.items.pop(item_id, None) is not None


class RecordingEmailSender(EmailSender):
    def __init__(self, success: bool = True):
        self.success = success
        self.sent: List[dict] = []

    def send_email(self, to, subject, html, attachments=None, sender_name=None) -> dict:
        self.sent.append({
            "to": to,
            "subject": subject,
            "html": html,
            "attachments": attachments,
            "sender_name": sender_name,
        })
        if self.success:
            return {"success": True, "id": "email_123", "error": None}
        return {"success": False, "id": None, "error": "Dominio no verificado"}

    def get_email_status(self, email_id: str) -> Optional[dict]:
        return None


class ScriptedAIService(AIService):
    """Devuelve respuestas fijas y guarda los argumentos recibidos."""
    def __init__(self, parsed: Optional[ParsedInvoiceData] = None):
        self.parsed = parsed
        self.calls: List[tuple] = []

    def parse_invoice_request(self, text):
        self.calls.append(("parse_invoice_request", text))
        return self.parsed

    def parse_expense_image(self, image_base64, mime_type):
        self.calls.append(("parse_expense_image", mime_type))
        return self.parsed

    def generate_financial_analysis(self, summary):
        self.calls.append(("generate_financial_analysis", summary))
        return FinancialAnalysisResult(
            health_score=72,
            health_status="Good",
            diagnosis="Flujo estable.",
            actionable_tips=["Cobra antes."],
            projection="Crecimiento moderado.",
        )

    def generate_deep_dive_report(self, title, context):
        self.calls.append(("generate_deep_dive_report", title))
        return DeepDiveReport(
            chart_title=title,
            executive_summary="Resumen",
            strategic_insight="Insight",
            recommendation="Recomendación",
        )

    def analyze_price_market(self, item_name, country):
        self.calls.append(("analyze_price_market", item_name))
        return PriceAnalysisResult(min_price=10, max_price=30, avg_price=20, currency="USD", reasoning="Mercado local")


@pytest.fixture
def document_repo():
    return InMemoryDocumentRepository()


@pytest.fixture
def client_repo():
    return InMemoryClientRepository()

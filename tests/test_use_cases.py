"""Casos de uso con puertos en memoria."""

import json
from datetime import datetime, timedelta

import pytest

from conftest import (
    InMemoryClientRepository,
    InMemoryDocumentRepository,
    InMemoryProviderRepository,
    RecordingEmailSender,
    ScriptedAIService,
    StaticProfileRepository,
)
from konsul.application.use_cases.ai_assistant import AnalyzeFinancesUseCase, DraftDocumentUseCase
from konsul.application.use_cases.build_reports import BuildClientDirectoryUseCase, BuildReportsUseCase
from konsul.application.use_cases.manage_documents import (
    ChangeDocumentStatusUseCase,
    DeleteDocumentUseCase,
    RecordPaymentUseCase,
    SaveDocumentUseCase,
)
from konsul.application.use_cases.send_document import SendDocumentUseCase
from konsul.application.use_cases.subscriptions import ConfirmSubscriptionUseCase
from konsul.domain.exceptions import DocumentNotFound, InvalidStatusTransition
from konsul.domain.models.ai import ParsedInvoiceData
from konsul.domain.models.client import ClientRecord, ClientStatus
from konsul.domain.models.document import DocumentStatus, DocumentType, TimelineEventType
from konsul.domain.models.report import EntityType, FiscalConfig, TimeRange
from konsul.domain.ports.checkout_gateway import CheckoutGateway

USER = "user-1"


# ---------------------------------------------------------------------------
# Reportes y directorio
# ---------------------------------------------------------------------------

class TestBuildReports:
    def test_dashboard_filters_range_but_directory_uses_history(self, make_doc, now):
        repo = InMemoryDocumentRepository([
            make_doc(client_name="Reciente", date=now - timedelta(days=5), status=DocumentStatus.ACEPTADA, total=1000),
            make_doc(client_name="Antiguo", date=now - timedelta(days=200), status=DocumentStatus.ACEPTADA, total=400),
        ])
        dashboard = BuildReportsUseCase(repo, StaticProfileRepository()).execute(USER, TimeRange.LAST_30_DAYS, now=now)

        assert dashboard.document_count == 1
        assert dashboard.cash_flow.kpis.total_revenue == pytest.approx(1000)
        assert set(dashboard.clients.clients) == {"Reciente", "Antiguo"}

    def test_missing_fiscal_config_defaults_to_natural(self, make_doc, now):
        repo = InMemoryDocumentRepository([make_doc(date=now, status=DocumentStatus.ACEPTADA, total=100)])
        dashboard = BuildReportsUseCase(repo, StaticProfileRepository()).execute(USER, now=now)
        assert dashboard.tax.entity_type == EntityType.NATURAL
        assert dashboard.tax.disclaimer

    def test_uses_profile_entity_type(self, now):
        profile = StaticProfileRepository(FiscalConfig(entity_type=EntityType.JURIDICA))
        dashboard = BuildReportsUseCase(InMemoryDocumentRepository(), profile).execute(USER, now=now)
        assert dashboard.tax.entity_type == EntityType.JURIDICA

    def test_custom_range_without_bounds_fails(self, now):
        use_case = BuildReportsUseCase(InMemoryDocumentRepository(), StaticProfileRepository())
        with pytest.raises(ValueError):
            use_case.execute(USER, TimeRange.CUSTOM, now=now)


def test_client_directory_merges_master(make_doc):
    repo = InMemoryDocumentRepository([make_doc(client_name="Acme", status=DocumentStatus.ACEPTADA)])
    clients = InMemoryClientRepository([ClientRecord(name="Nuevo", email="n@nuevo.com")])
    directory = BuildClientDirectoryUseCase(repo, clients).execute(USER)
    assert directory.clients["Nuevo"].status == ClientStatus.PROSPECT
    assert directory.clients["Acme"].status == ClientStatus.CLIENT


# ---------------------------------------------------------------------------
# Alta y estados de documentos
# ---------------------------------------------------------------------------

class TestSaveDocument:
    def test_new_document_gets_total_event_and_prospect(self, make_doc, item, document_repo, client_repo):
        doc = make_doc(id="INV-9", total=0, status=DocumentStatus.BORRADOR, items=[item(100, 7)], client_tax_id="8-1-1")
        saved = SaveDocumentUseCase(document_repo, client_repo).execute(doc, USER)

        assert saved.user_id == USER
        assert saved.total == pytest.approx(107)
        assert saved.timeline[0].type == TimelineEventType.CREATED
        record, user_id = client_repo.saved[0]
        assert (record.name, record.tax_id, record.status, user_id) == ("Acme", "8-1-1", ClientStatus.PROSPECT, USER)

    def test_update_validates_status_change(self, make_doc):
        repo = InMemoryDocumentRepository([make_doc(id="INV-1", status=DocumentStatus.RECHAZADA, user_id=USER)])
        with pytest.raises(InvalidStatusTransition):
            SaveDocumentUseCase(repo).execute(make_doc(id="INV-1", status=DocumentStatus.ENVIADA), USER)

    def test_cannot_overwrite_other_users_document(self, make_doc):
        repo = InMemoryDocumentRepository([make_doc(id="INV-1", user_id="otro")])
        with pytest.raises(DocumentNotFound):
            SaveDocumentUseCase(repo).execute(make_doc(id="INV-1"), USER)

    def test_expenses_do_not_touch_client_master(self, make_doc, document_repo, client_repo):
        SaveDocumentUseCase(document_repo, client_repo).execute(make_doc(type=DocumentType.EXPENSE, status=DocumentStatus.ACEPTADA), USER)
        assert client_repo.saved == []

    def test_expense_registers_provider(self, make_doc, document_repo, client_repo):
        providers = InMemoryProviderRepository()
        expense = make_doc(type=DocumentType.EXPENSE, status=DocumentStatus.ACEPTADA, client_name=" Uber ", client_tax_id="155-1-1")
        SaveDocumentUseCase(document_repo, client_repo, providers).execute(expense, USER)

        assert providers.providers["Uber"].tax_id == "155-1-1"
        assert client_repo.saved == []

    @pytest.mark.parametrize("document_type, status", [
        (DocumentType.QUOTE, DocumentStatus.INCOBRABLE),
        (DocumentType.QUOTE, DocumentStatus.ABONADA),
        (DocumentType.EXPENSE, DocumentStatus.NEGOCIACION),
    ])
    def test_new_document_needs_status_of_its_type(self, make_doc, document_repo, document_type, status):
        with pytest.raises(InvalidStatusTransition):
            SaveDocumentUseCase(document_repo).execute(make_doc(id="X-1", type=document_type, status=status), USER)
        assert document_repo.saved == []

    def test_update_leaving_pending_sync_respects_previous_status(self, make_doc):
        repo = InMemoryDocumentRepository([make_doc(id="INV-1", status=DocumentStatus.ENVIADA, user_id=USER)])
        synced = ChangeDocumentStatusUseCase(repo).execute("INV-1", DocumentStatus.PENDING_SYNC, USER)
        assert synced.status_before_sync == DocumentStatus.ENVIADA

        with pytest.raises(InvalidStatusTransition):
            SaveDocumentUseCase(repo).execute(make_doc(id="INV-1", status=DocumentStatus.BORRADOR), USER)

        saved = SaveDocumentUseCase(repo).execute(make_doc(id="INV-1", status=DocumentStatus.ACEPTADA), USER)
        assert saved.status == DocumentStatus.ACEPTADA
        assert saved.status_before_sync is None


class TestChangeStatus:
    def test_accepting_quote_adds_approved_event(self, make_doc):
        repo = InMemoryDocumentRepository([make_doc(id="Q-1", type=DocumentType.QUOTE, status=DocumentStatus.NEGOCIACION)])
        updated = ChangeDocumentStatusUseCase(repo).execute("Q-1", DocumentStatus.ACEPTADA)
        assert updated.status == DocumentStatus.ACEPTADA
        assert updated.timeline[-1].type == TimelineEventType.APPROVED
        assert repo.saved == [updated]

    def test_illegal_change_is_not_saved(self, make_doc):
        repo = InMemoryDocumentRepository([make_doc(id="INV-1", status=DocumentStatus.ACEPTADA)])
        with pytest.raises(InvalidStatusTransition):
            ChangeDocumentStatusUseCase(repo).execute("INV-1", DocumentStatus.BORRADOR)
        assert repo.saved == []

    def test_accepted_invoice_cannot_go_through_pending_sync(self, make_doc):
        repo = InMemoryDocumentRepository([make_doc(id="INV-1", status=DocumentStatus.ACEPTADA)])
        with pytest.raises(InvalidStatusTransition):
            ChangeDocumentStatusUseCase(repo).execute("INV-1", DocumentStatus.PENDING_SYNC)
        assert repo.find_by_id("INV-1").status == DocumentStatus.ACEPTADA

    def test_unknown_document(self, document_repo):
        with pytest.raises(DocumentNotFound):
            ChangeDocumentStatusUseCase(document_repo).execute("NOPE", DocumentStatus.ENVIADA)


class TestRecordPayment:
    def test_partial_then_full_payment(self, make_doc, event, now):
        created = now - timedelta(days=12)
        repo = InMemoryDocumentRepository([
            make_doc(id="INV-1", total=500, status=DocumentStatus.ENVIADA, timeline=[event(TimelineEventType.CREATED, created)]),
        ])
        use_case = RecordPaymentUseCase(repo)

        partial = use_case.execute("INV-1", 150)
        assert partial.status == DocumentStatus.ABONADA
        assert partial.amount_paid == pytest.approx(150)
        assert not partial.has_event(TimelineEventType.PAID)

        full = use_case.execute("INV-1", 350, paid_at=now)
        assert full.status == DocumentStatus.ACEPTADA
        assert full.amount_paid == pytest.approx(500)
        assert full.first_event(TimelineEventType.PAID).timestamp == now

    def test_only_invoices_take_payments(self, make_doc):
        repo = InMemoryDocumentRepository([make_doc(id="Q-1", type=DocumentType.QUOTE)])
        with pytest.raises(ValueError):
            RecordPaymentUseCase(repo).execute("Q-1", 10)

    def test_amount_must_be_positive(self, document_repo):
        with pytest.raises(ValueError):
            RecordPaymentUseCase(document_repo).execute("INV-1", 0)

    def test_draft_cannot_be_paid(self, make_doc):
        repo = InMemoryDocumentRepository([make_doc(id="INV-1", status=DocumentStatus.BORRADOR)])
        with pytest.raises(InvalidStatusTransition):
            RecordPaymentUseCase(repo).execute("INV-1", 10)


def test_delete_document(make_doc):
    repo = InMemoryDocumentRepository([make_doc(id="INV-1", user_id=USER)])
    DeleteDocumentUseCase(repo).execute("INV-1", USER)
    assert repo.find_by_id("INV-1") is None


# ---------------------------------------------------------------------------
# Envío por correo
# ---------------------------------------------------------------------------

class TestSendDocument:
    def test_success_moves_draft_to_sent(self, make_doc):
        repo = InMemoryDocumentRepository([make_doc(id="INV-1", status=DocumentStatus.BORRADOR)])
        sender = RecordingEmailSender()
        result = SendDocumentUseCase(repo, sender).execute(
            "INV-1", to="cliente@acme.com", html="<p>Adjunto</p>", pdf_base64="JVBERi0=", sender_name="Mi Negocio",
        )

        assert result["success"] is True
        assert result["status"] == "Enviada"
        assert sender.sent[0]["attachments"] == [{"filename": "Factura_INV-1.pdf", "content": "JVBERi0="}]
        assert sender.sent[0]["subject"] == "Factura INV-1 de Mi Negocio"
        assert repo.find_by_id("INV-1").timeline[-1].type == TimelineEventType.SENT

    def test_resend_keeps_later_status(self, make_doc):
        repo = InMemoryDocumentRepository([make_doc(id="INV-1", status=DocumentStatus.ABONADA)])
        result = SendDocumentUseCase(repo, RecordingEmailSender()).execute("INV-1", to="a@b.com", html="")
        assert result["status"] == "Abonada"
        assert repo.find_by_id("INV-1").has_event(TimelineEventType.SENT)

    def test_failure_leaves_document_untouched(self, make_doc):
        repo = InMemoryDocumentRepository([make_doc(id="INV-1", status=DocumentStatus.BORRADOR)])
        result = SendDocumentUseCase(repo, RecordingEmailSender(success=False)).execute("INV-1", to="a@b.com", html="")
        assert result["success"] is False
        assert result["status"] == "Borrador"
        assert repo.saved == []


# ---------------------------------------------------------------------------
# IA y suscripciones
# ---------------------------------------------------------------------------

def test_draft_from_text():
    ai = ScriptedAIService(ParsedInvoiceData(client_name=" Acme ", concept="Logo", amount=250, detected_type=DocumentType.QUOTE))
    draft = DraftDocumentUseCase(ai).from_text("cotiza un logo a Acme por 250", USER)

    assert draft.client_name == "Acme"
    assert draft.type == DocumentType.QUOTE
    assert draft.status == DocumentStatus.BORRADOR
    assert draft.total == pytest.approx(250)
    assert draft.items[0].description == "Logo"
    assert draft.has_event(TimelineEventType.CREATED)


def test_draft_from_receipt_is_expense():
    ai = ScriptedAIService(ParsedInvoiceData(client_name="Uber", concept="Viaje", amount=12, date="2024-05-01"))
    draft = DraftDocumentUseCase(ai).from_receipt("aW1n", "image/png", USER)
    assert draft.type == DocumentType.EXPENSE
    assert draft.date == datetime(2024, 5, 1)


def test_draft_is_none_when_ai_returns_nothing():
    assert DraftDocumentUseCase(ScriptedAIService(None)).from_text("???") is None


def test_financial_summary_sent_to_ai(make_doc, now):
    repo = InMemoryDocumentRepository([
        make_doc(date=now - timedelta(days=3), status=DocumentStatus.ACEPTADA, total=800),
        make_doc(date=now - timedelta(days=3), total=200, type=DocumentType.EXPENSE),
    ])
    ai = ScriptedAIService()
    use_case = AnalyzeFinancesUseCase(repo, ai)

    summary = json.loads(use_case.build_summary(USER, TimeRange.LAST_30_DAYS, now=now))
    assert summary["ingresos"] == 800
    assert summary["gastos"] == 200
    assert summary["margenPorcentaje"] == 75

    assert use_case.deep_dive(USER, "Flujo de caja").chart_title == "Flujo de caja"
    assert ai.calls[-1] == ("generate_deep_dive_report", "Flujo de caja")


class FakeCheckout(CheckoutGateway):
    def create_checkout_session(self, plan, email, user_id, origin):
        return "https://pay"

    def create_portal_session(self, customer_id, origin):
        return "https://portal"

    def get_session(self, session_id):
        return {"customer_id": "cus_1", "renewal_date": datetime(2024, 7, 30), "plan": "Emprendedor Pro"}


def test_confirm_subscription_updates_profile():
    profile = StaticProfileRepository()
    ConfirmSubscriptionUseCase(FakeCheckout(), profile).execute(USER, "cs_1")
    assert profile.subscriptions == [{
        "user_id": USER,
        "plan": "Emprendedor Pro",
        "renewal_date": datetime(2024, 7, 30),
        "customer_id": "cus_1",
    }]

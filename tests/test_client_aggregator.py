"""Directorio de clientes: cobros, promoción a cliente, VIP por posición y KPIs de cartera."""

from datetime import datetime

import pytest

from konsul.domain.models.client import ClientRecord, ClientSegment, ClientStatus
from konsul.domain.models.document import DocumentStatus, DocumentType
from konsul.domain.services.client_aggregator import aggregate_clients, vip_threshold
from konsul.domain.services.collection import normalized_name


# ---------------------------------------------------------------------------
# Escenario Acme: dos facturas y una cotización en negociación
# ---------------------------------------------------------------------------

class TestAcmeScenario:
    @pytest.fixture(autouse=True)
    def aggregate(self, make_doc):
        self.documents = [
            make_doc(total=1000, amount_paid=0, status=DocumentStatus.ACEPTADA),
            make_doc(total=500, status=DocumentStatus.ENVIADA),
            make_doc(total=2000, status=DocumentStatus.NEGOCIACION, type=DocumentType.QUOTE),
        ]
        self.directory = aggregate_clients(self.documents)
        self.acme = self.directory.clients["Acme"]

    def test_status_is_client(self):
        assert self.acme.status == ClientStatus.CLIENT

    def test_both_sent_and_paid_invoices_count_as_invoiced(self):
        assert self.acme.total_invoiced == pytest.approx(1500)
        assert self.acme.invoice_count == 2

    def test_only_paid_invoice_is_collected(self):
        assert self.acme.total_collected == pytest.approx(1000)

    def test_open_quote_goes_to_pipeline(self):
        assert self.directory.stats.total_pipeline_value == pytest.approx(2000)
        assert self.directory.stats.open_opportunities_count == 1

    def test_client_value_uses_invoices(self):
        assert self.acme.avg_ticket == pytest.approx(750)
        assert self.acme.display_value == pytest.approx(1500)

    def test_portfolio_stats(self):
        stats = self.directory.stats
        assert stats.total_active_clients == 1
        assert stats.total_portfolio_value == pytest.approx(1500)
        assert stats.avg_global_ticket == pytest.approx(750)

    def test_idempotent(self):
        again = aggregate_clients(self.documents)
        assert again.model_dump() == self.directory.model_dump()


# ---------------------------------------------------------------------------
# Reglas de cobro y de estado
# ---------------------------------------------------------------------------

def test_partial_payment_takes_precedence_over_total(make_doc):
    directory = aggregate_clients([make_doc(total=500, amount_paid=150, status=DocumentStatus.ENVIADA)])
    client = directory.clients["Acme"]
    assert client.total_collected == pytest.approx(150)
    assert client.status == ClientStatus.CLIENT


def test_accepted_quote_promotes_prospect_without_invoices(make_doc):
    directory = aggregate_clients([make_doc(client_name="Beta", total=800, status=DocumentStatus.ACEPTADA, type=DocumentType.QUOTE)])
    beta = directory.clients["Beta"]
    assert beta.status == ClientStatus.CLIENT
    assert beta.quotes_won == 1
    assert beta.win_rate == pytest.approx(100)
    assert beta.is_vip is False


def test_prospect_valued_by_quotes(make_doc):
    directory = aggregate_clients([
        make_doc(client_name="Gamma", total=300, status=DocumentStatus.ENVIADA, type=DocumentType.QUOTE),
        make_doc(client_name="Gamma", total=100, status=DocumentStatus.RECHAZADA, type=DocumentType.QUOTE),
    ])
    gamma = directory.clients["Gamma"]
    assert gamma.status == ClientStatus.PROSPECT
    assert gamma.display_value == pytest.approx(400)
    assert gamma.avg_ticket == pytest.approx(200)
    assert gamma.win_rate == pytest.approx(0)


def test_draft_and_rejected_invoices_are_not_invoiced(make_doc):
    directory = aggregate_clients([
        make_doc(total=100, status=DocumentStatus.BORRADOR),
        make_doc(total=200, status=DocumentStatus.RECHAZADA),
    ])
    acme = directory.clients["Acme"]
    assert acme.invoice_count == 0
    assert acme.total_invoiced == 0


def test_expenses_are_ignored(make_doc):
    directory = aggregate_clients([make_doc(client_name="Doit Center", total=50, type=DocumentType.EXPENSE)])
    assert directory.clients == {}


def test_names_are_trimmed_but_case_sensitive(make_doc):
    directory = aggregate_clients([
        make_doc(client_name="  Acme  "),
        make_doc(client_name="Acme"),
        make_doc(client_name="ACME"),
    ])
    assert set(directory.clients) == {"Acme", "ACME"}


def test_normalized_key_strategy_merges_variants(make_doc):
    directory = aggregate_clients(
        [make_doc(client_name="Juan Pérez."), make_doc(client_name="juan perez")],
        key_strategy=normalized_name,
    )
    assert list(directory.clients) == ["juan perez"]


def test_last_interaction_and_tax_id(make_doc):
    directory = aggregate_clients([
        make_doc(date=datetime(2024, 3, 1), client_tax_id="8-111-222"),
        make_doc(date=datetime(2024, 5, 1)),
        make_doc(date=None),
    ])
    acme = directory.clients["Acme"]
    assert acme.last_interaction == datetime(2024, 5, 1)
    assert acme.tax_id == "8-111-222"


# ---------------------------------------------------------------------------
# VIP por posición
# ---------------------------------------------------------------------------

def test_vip_is_top_twenty_percent_by_rank(make_doc):
    totals = [1000, 900, 899, 500, 400, 300, 200, 100, 50, 10]
    documents = [
        make_doc(client_name=f"Cliente {i}", total=total, status=DocumentStatus.ACEPTADA)
        for i, total in enumerate(totals)
    ]
    directory = aggregate_clients(documents)

    vips = sorted(name for name, client in directory.clients.items() if client.is_vip)
    assert vips == ["Cliente 0", "Cliente 1"]
    assert directory.clients["Cliente 2"].is_vip is False


def test_vip_threshold_empty():
    assert vip_threshold([]) == 0.0


def test_prospect_is_never_vip(make_doc):
    directory = aggregate_clients([make_doc(client_name="Solo", total=900, status=DocumentStatus.ENVIADA)])
    solo = directory.clients["Solo"]
    assert solo.status == ClientStatus.PROSPECT
    assert solo.is_vip is False


# ---------------------------------------------------------------------------
# Maestro de clientes y búsqueda
# ---------------------------------------------------------------------------

def test_seed_clients_without_documents(make_doc):
    seeds = [
        ClientRecord(name=" Delta ", tax_id="155-1-2", status=ClientStatus.CLIENT),
        ClientRecord(name="Epsilon"),
    ]
    now = datetime(2024, 6, 15)
    directory = aggregate_clients([make_doc()], seed_clients=seeds, now=now)

    assert directory.clients["Delta"].status == ClientStatus.CLIENT
    assert directory.clients["Delta"].tax_id == "155-1-2"
    assert directory.clients["Delta"].last_interaction == now
    assert directory.clients["Epsilon"].status == ClientStatus.PROSPECT
    assert directory.clients["Epsilon"].record.name == "Epsilon"


def test_seed_client_counts_as_recent_interaction(make_doc):
    now = datetime(2024, 6, 15)
    directory = aggregate_clients(
        [make_doc(client_name="Delta", date=datetime(2024, 1, 10)), make_doc(client_name="Omega", date=datetime(2024, 1, 10))],
        seed_clients=[ClientRecord(name="Delta")],
        now=now,
    )

    assert directory.clients["Delta"].last_interaction == now
    assert directory.clients["Omega"].last_interaction == datetime(2024, 1, 10)


def test_search_by_segment_and_term(make_doc):
    directory = aggregate_clients([
        make_doc(client_name="Acme", total=1000, status=DocumentStatus.ACEPTADA),
        make_doc(client_name="Beta", total=300, status=DocumentStatus.ENVIADA, type=DocumentType.QUOTE),
    ])
    assert [c.name for c in directory.search(segment=ClientSegment.CLIENT)] == ["Acme"]
    assert [c.name for c in directory.search(segment=ClientSegment.PROSPECT)] == ["Beta"]
    assert [c.name for c in directory.search(segment=ClientSegment.VIP)] == ["Acme"]
    assert [c.name for c in directory.search("bet")] == ["Beta"]


def test_ranked_puts_vip_first(make_doc):
    directory = aggregate_clients([
        make_doc(client_name="Grande", total=5000, status=DocumentStatus.ACEPTADA),
        make_doc(client_name="Prospecto", total=9000, status=DocumentStatus.ENVIADA, type=DocumentType.QUOTE),
        make_doc(client_name="Chico", total=100, status=DocumentStatus.ACEPTADA),
    ])
    assert [c.name for c in directory.ranked()] == ["Grande", "Prospecto", "Chico"]

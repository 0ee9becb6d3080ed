"""Modelo de documento: alias camelCase, fechas tolerantes y estados heredados."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from konsul.domain.models.document import (
    Document,
    DocumentStatus,
    DocumentType,
    TimelineEventType,
    parse_timestamp,
    utc_now,
)
from konsul.domain.services.collection import collected_amount, embedded_tax_ratio


def test_parses_camel_case_payload():
    doc = Document.model_validate({
        "id": "INV-1",
        "clientName": "Acme",
        "clientTaxId": "8-1-2",
        "date": "2024-05-01T10:00:00Z",
        "items": [{"description": "Diseño", "quantity": 2, "price": 50, "tax": 7}],
        "total": 107,
        "amountPaid": 20,
        "status": "Abonada",
        "type": "Invoice",
        "timeline": [{"type": "CREATED", "title": "Creada", "timestamp": "2024-05-01T10:00:00Z"}],
        "successProbability": 80,
    })
    assert doc.client_name == "Acme"
    assert doc.amount_paid == 20
    assert doc.date == datetime(2024, 5, 1, 10, 0)
    assert doc.subtotal == pytest.approx(100)
    assert doc.tax_total == pytest.approx(7)
    assert doc.has_event(TimelineEventType.CREATED)


def test_dump_uses_camel_case():
    data = Document(id="Q-1", client_name="Beta", type=DocumentType.QUOTE).model_dump(by_alias=True)
    assert data["clientName"] == "Beta"
    assert data["type"] == "Quote"


@pytest.mark.parametrize("value", ["no es fecha", "", None, "2024-13-45"])
def test_unreadable_dates_become_none(value):
    assert parse_timestamp(value) is None
    assert Document(id="X", date=value).date is None


def test_aware_dates_normalized_to_naive_utc():
    assert parse_timestamp("2024-01-01T05:00:00-05:00") == datetime(2024, 1, 1, 10, 0)


def test_utc_now_is_naive_utc():
    now = utc_now()
    assert now.tzinfo is None
    assert abs(now - datetime.now(timezone.utc).replace(tzinfo=None)) < timedelta(seconds=5)


@pytest.mark.parametrize("legacy, current", [
    ("Draft", DocumentStatus.BORRADOR),
    ("Sent", DocumentStatus.ENVIADA),
    ("Viewed", DocumentStatus.SEGUIMIENTO),
    ("Paid", DocumentStatus.PAGADA),
])
def test_legacy_statuses(legacy, current):
    assert Document(id="X", status=legacy).status == current


def test_legacy_paid_counts_as_collected():
    assert collected_amount(Document(id="X", total=300, status="Paid")) == 300


def test_quotes_and_expenses_never_collect():
    assert collected_amount(Document(id="Q", total=300, status="Aceptada", type="Quote")) == 0
    assert collected_amount(Document(id="E", total=300, status="Aceptada", type="Expense")) == 0


def test_embedded_tax_ratio_without_items():
    assert embedded_tax_ratio(Document(id="X", total=100)) == 0


def test_negative_quantity_rejected():
    with pytest.raises(ValidationError):
        Document.model_validate({"id": "X", "items": [{"quantity": -1, "price": 10}]})


def test_null_collections_default_to_empty():
    doc = Document.model_validate({"id": "X", "items": None, "timeline": None})
    assert doc.items == [] and doc.timeline == []

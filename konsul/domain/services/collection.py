# konsul/domain/services/collection.py
"""
Reglas de cobro compartidas por el directorio de clientes, el flujo de caja
y la proyección fiscal.
"""
from typing import Callable
import re
import unicodedata

from konsul.domain.models.document import COLLECTED_STATUSES, Document, DocumentStatus

# Estados que no cuentan como facturado.
NON_BILLED_STATUSES = frozenset({DocumentStatus.BORRADOR, DocumentStatus.RECHAZADA})

OPEN_QUOTE_STATUSES = frozenset({
    DocumentStatus.ENVIADA,
    DocumentStatus.SEGUIMIENTO,
    DocumentStatus.NEGOCIACION,
})

ClientKeyStrategy = Callable[[str], str]


def collected_amount(doc: Document) -> float:
    """
    Monto cobrado de una factura: el abono parcial tiene prioridad sobre el
    total; si no hay abono, el total solo cuenta cuando la factura está pagada.
    """
    if not doc.is_invoice:
        return 0.0
    if doc.amount_paid and doc.amount_paid > 0:
        return doc.amount_paid
    if doc.status in COLLECTED_STATUSES:
        return doc.total
    return 0.0


def is_billed(doc: Document) -> bool:
    return doc.is_invoice and doc.status not in NON_BILLED_STATUSES


def embedded_tax_ratio(doc: Document) -> float:
    """Proporción de impuesto dentro del total bruto, según sus propias líneas."""
    tax = doc.tax_total
    gross = doc.subtotal + tax
    return tax / gross if gross > 0 else 0.0


def trimmed_name(name: str) -> str:
    return (name or "").strip()


def normalized_name(name: str) -> str:
    """Sin mayúsculas, tildes ni signos de puntuación: 'Juan Pérez.' == 'juan perez'."""
    decomposed = unicodedata.normalize("NFKD", trimmed_name(name))
    without_accents = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    without_punctuation = re.sub(r"[^\w\s]", "", without_accents)
    return " ".join(without_punctuation.casefold().split())

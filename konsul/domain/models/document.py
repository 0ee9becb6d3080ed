# konsul/domain/models/document.py
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class DocumentType(str, Enum):
    INVOICE = "Invoice"
    QUOTE = "Quote"
    EXPENSE = "Expense"


class DocumentStatus(str, Enum):
    BORRADOR = "Borrador"
    CREADA = "Creada"
    ENVIADA = "Enviada"
    SEGUIMIENTO = "Seguimiento"
    NEGOCIACION = "Negociacion"
    ABONADA = "Abonada"
    ACEPTADA = "Aceptada"
    RECHAZADA = "Rechazada"
    INCOBRABLE = "Incobrable"
    PENDING_SYNC = "PendingSync"
    # Estado heredado de filas antiguas; equivale a "cobrada".
    PAGADA = "Pagada"


class TimelineEventType(str, Enum):
    CREATED = "CREATED"
    SENT = "SENT"
    OPENED = "OPENED"
    CLICKED = "CLICKED"
    APPROVED = "APPROVED"
    PAID = "PAID"
    REMINDER = "REMINDER"


# Estados en inglés que aún existen en documentos guardados por la primera versión.
LEGACY_STATUS_MAP = {
    "Draft": DocumentStatus.BORRADOR,
    "Sent": DocumentStatus.ENVIADA,
    "Viewed": DocumentStatus.SEGUIMIENTO,
    "Paid": DocumentStatus.PAGADA,
}

COLLECTED_STATUSES = frozenset({DocumentStatus.PAGADA, DocumentStatus.ACEPTADA})


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Convierte un valor ISO 8601 en `datetime` UTC sin zona horaria.
    Un valor ilegible devuelve None en lugar de lanzar una excepción.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def utc_now() -> datetime:
    """Hora actual en UTC sin zona horaria, la misma convención que `parse_timestamp`."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra='ignore'
    )


class DocumentItem(_CamelModel):
    id: Optional[str] = None
    description: str = ""
    quantity: float = Field(default=0, ge=0)
    price: float = Field(default=0, ge=0)
    tax: float = Field(default=0, ge=0)

    @property
    def base_amount(self) -> float:
        return self.quantity * self.price

    @property
    def tax_amount(self) -> float:
        return self.base_amount * self.tax / 100


class TimelineEvent(_CamelModel):
    id: Optional[str] = None
    type: TimelineEventType
    title: str = ""
    description: Optional[str] = None
    timestamp: Optional[datetime] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _lenient_timestamp(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)


class Document(_CamelModel):
    """
    Factura, cotización o gasto tal como se guarda en la columna JSON `data`.
    Acepta tanto las claves camelCase del front como snake_case.
    """
    id: str
    client_name: str = ""
    client_tax_id: Optional[str] = None
    date: Optional[datetime] = None
    items: List[DocumentItem] = Field(default_factory=list)
    total: float = 0.0
    amount_paid: Optional[float] = None
    status: DocumentStatus = DocumentStatus.BORRADOR
    # Estado que tenía el documento al pasar a PendingSync.
    status_before_sync: Optional[DocumentStatus] = None
    type: DocumentType = DocumentType.INVOICE
    currency: str = "USD"
    timeline: List[TimelineEvent] = Field(default_factory=list)
    success_probability: Optional[int] = Field(default=None, ge=0, le=100)
    user_id: Optional[str] = None
    receipt_url: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @field_validator("status", mode="before")
    @classmethod
    def _legacy_status(cls, value: Any) -> Any:
        if isinstance(value, str) and value in LEGACY_STATUS_MAP:
            return LEGACY_STATUS_MAP[value]
        return value

    @field_validator("timeline", "items", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def is_invoice(self) -> bool:
        return self.type == DocumentType.INVOICE

    @property
    def is_quote(self) -> bool:
        return self.type == DocumentType.QUOTE

    @property
    def is_expense(self) -> bool:
        return self.type == DocumentType.EXPENSE

    @property
    def subtotal(self) -> float:
        return sum(item.base_amount for item in self.items)

    @property
    def tax_total(self) -> float:
        return sum(item.tax_amount for item in self.items)

    def computed_total(self) -> float:
        """Total según las líneas; solo se usa al crear el documento."""
        return self.subtotal + self.tax_total

    def has_event(self, event_type: TimelineEventType) -> bool:
        return any(event.type == event_type for event in self.timeline)

    def first_event(self, event_type: TimelineEventType) -> Optional[TimelineEvent]:
        return next((event for event in self.timeline if event.type == event_type), None)

# konsul/domain/services/status_machine.py
"""
Máquina de estados de documentos. Toda escritura de estado pasa por
`validate_transition`; las transiciones no listadas se rechazan.

`PendingSync` es una capa transitoria: el documento recuerda en
`status_before_sync` el estado que tenía al entrar y, al salir, solo puede
volver a ese estado o avanzar a uno alcanzable desde él.
"""
from typing import Dict, FrozenSet, Optional

from konsul.domain.exceptions import InvalidStatusTransition
from konsul.domain.models.document import Document, DocumentStatus, DocumentType

TERMINAL_STATUSES = frozenset({
    DocumentStatus.ACEPTADA,
    DocumentStatus.RECHAZADA,
    DocumentStatus.INCOBRABLE,
    DocumentStatus.PAGADA,
})

_INVOICE_TRANSITIONS: Dict[DocumentStatus, FrozenSet[DocumentStatus]] = {
    DocumentStatus.BORRADOR: frozenset({DocumentStatus.CREADA, DocumentStatus.ENVIADA, DocumentStatus.RECHAZADA}),
    DocumentStatus.CREADA: frozenset({DocumentStatus.ENVIADA, DocumentStatus.RECHAZADA}),
    DocumentStatus.ENVIADA: frozenset({
        DocumentStatus.SEGUIMIENTO,
        DocumentStatus.ABONADA,
        DocumentStatus.ACEPTADA,
        DocumentStatus.RECHAZADA,
        DocumentStatus.INCOBRABLE,
    }),
    DocumentStatus.SEGUIMIENTO: frozenset({
        DocumentStatus.ABONADA,
        DocumentStatus.ACEPTADA,
        DocumentStatus.RECHAZADA,
        DocumentStatus.INCOBRABLE,
    }),
    DocumentStatus.ABONADA: frozenset({DocumentStatus.ABONADA, DocumentStatus.ACEPTADA, DocumentStatus.INCOBRABLE}),
}

_QUOTE_TRANSITIONS: Dict[DocumentStatus, FrozenSet[DocumentStatus]] = {
    DocumentStatus.BORRADOR: frozenset({DocumentStatus.CREADA, DocumentStatus.ENVIADA, DocumentStatus.RECHAZADA}),
    DocumentStatus.CREADA: frozenset({DocumentStatus.ENVIADA, DocumentStatus.RECHAZADA}),
    DocumentStatus.ENVIADA: frozenset({
        DocumentStatus.SEGUIMIENTO,
        DocumentStatus.NEGOCIACION,
        DocumentStatus.ACEPTADA,
        DocumentStatus.RECHAZADA,
    }),
    DocumentStatus.SEGUIMIENTO: frozenset({DocumentStatus.NEGOCIACION, DocumentStatus.ACEPTADA, DocumentStatus.RECHAZADA}),
    DocumentStatus.NEGOCIACION: frozenset({DocumentStatus.ACEPTADA, DocumentStatus.RECHAZADA}),
}

# Un gasto solo se registra y, como mucho, se marca como pagado.
_EXPENSE_TRANSITIONS: Dict[DocumentStatus, FrozenSet[DocumentStatus]] = {
    DocumentStatus.BORRADOR: frozenset({DocumentStatus.CREADA, DocumentStatus.ACEPTADA}),
    DocumentStatus.CREADA: frozenset({DocumentStatus.ACEPTADA}),
}

TRANSITIONS = {
    DocumentType.INVOICE: _INVOICE_TRANSITIONS,
    DocumentType.QUOTE: _QUOTE_TRANSITIONS,
    DocumentType.EXPENSE: _EXPENSE_TRANSITIONS,
}


def valid_statuses(document_type: DocumentType) -> FrozenSet[DocumentStatus]:
    table = TRANSITIONS[document_type]
    statuses = set(table)
    for targets in table.values():
        statuses.update(targets)
    statuses.add(DocumentStatus.PENDING_SYNC)
    return frozenset(statuses)


def can_transition(
    document_type: DocumentType,
    current: DocumentStatus,
    target: DocumentStatus,
    status_before_sync: Optional[DocumentStatus] = None,
) -> bool:
    if target not in valid_statuses(document_type):
        return False
    if target == DocumentStatus.PENDING_SYNC:
        return current not in TERMINAL_STATUSES
    if current == DocumentStatus.PENDING_SYNC:
        # Sin estado previo registrado (documento creado sin conexión) se parte de Borrador.
        origin = status_before_sync or DocumentStatus.BORRADOR
        return target == origin or target in TRANSITIONS[document_type].get(origin, frozenset())
    return target in TRANSITIONS[document_type].get(current, frozenset())


def validate_transition(
    document_type: DocumentType,
    current: DocumentStatus,
    target: DocumentStatus,
    status_before_sync: Optional[DocumentStatus] = None,
) -> None:
    if not can_transition(document_type, current, target, status_before_sync):
        raise InvalidStatusTransition(document_type.value, current.value, target.value)


def validate_initial_status(doc: Document) -> None:
    """Un documento nuevo solo puede nacer en un estado que exista para su tipo."""
    if doc.status not in valid_statuses(doc.type):
        raise InvalidStatusTransition(doc.type.value, "Nuevo", doc.status.value)


def transition(doc: Document, target: DocumentStatus) -> Document:
    """Devuelve una copia del documento con el nuevo estado, si la transición es legal."""
    validate_transition(doc.type, doc.status, target, doc.status_before_sync)
    if target == DocumentStatus.PENDING_SYNC:
        before_sync = doc.status_before_sync if doc.status == DocumentStatus.PENDING_SYNC else doc.status
    else:
        before_sync = None
    return doc.model_copy(update={"status": target, "status_before_sync": before_sync})

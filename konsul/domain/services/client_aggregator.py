# konsul/domain/services/client_aggregator.py
"""
Directorio de clientes: pliega facturas y cotizaciones en un perfil por
cliente, más los indicadores globales de la cartera.

Se recalcula completo en cada llamada; no guarda estado entre ejecuciones.
"""
import math
from datetime import datetime
from typing import Dict, Iterable, Optional

from konsul.domain.models.client import (
    AggregatedClient,
    ClientDirectory,
    ClientRecord,
    ClientStatus,
    PortfolioStats,
)
from konsul.domain.models.document import Document, DocumentStatus, utc_now
from konsul.domain.services.collection import (
    OPEN_QUOTE_STATUSES,
    ClientKeyStrategy,
    collected_amount,
    is_billed,
    trimmed_name,
)

VIP_SHARE = 0.2


def _seed(record: ClientRecord, key: str, now: datetime) -> AggregatedClient:
    # Un cliente del maestro cuenta como interacción reciente aunque no tenga documentos.
    return AggregatedClient(
        name=key,
        tax_id=record.tax_id or "N/A",
        status=record.status or ClientStatus.PROSPECT,
        last_interaction=now,
        record=record,
    )


def _is_later(candidate, current) -> bool:
    if candidate is None:
        return False
    return current is None or candidate > current


def vip_threshold(clients: Iterable[AggregatedClient]) -> float:
    """
    Umbral por posición: el cliente en el puesto ceil(20% de N) fija el corte.
    Con empates en la frontera, el orden de llegada decide (sort estable).
    """
    ordered = sorted(clients, key=lambda c: c.total_invoiced, reverse=True)
    if not ordered:
        return 0.0
    vip_count = math.ceil(len(ordered) * VIP_SHARE)
    return ordered[vip_count - 1].total_invoiced


def aggregate_clients(
    documents: Iterable[Document],
    seed_clients: Iterable[ClientRecord] = (),
    key_strategy: Optional[ClientKeyStrategy] = None,
    now: Optional[datetime] = None,
) -> ClientDirectory:
    key_for = key_strategy or trimmed_name
    seeded_at = now or utc_now()
    clients: Dict[str, AggregatedClient] = {}
    pipeline_value = 0.0
    open_opportunities = 0

    # 1. Capa base: maestro de clientes
    for record in seed_clients:
        key = key_for(record.name)
        clients[key] = _seed(record, key, seeded_at)

    # 2. Capa de documentos
    for doc in documents:
        if doc.is_expense:
            continue

        key = key_for(doc.client_name)
        client = clients.get(key)
        if client is None:
            client = AggregatedClient(name=key, tax_id=doc.client_tax_id or "N/A")
            clients[key] = client

        if _is_later(doc.date, client.last_interaction):
            client.last_interaction = doc.date
        if doc.client_tax_id:
            client.tax_id = doc.client_tax_id

        if doc.is_invoice:
            if is_billed(doc):
                client.invoice_count += 1
                client.total_invoiced += doc.total
            collected = collected_amount(doc)
            if collected > 0:
                client.total_collected += collected
                client.status = ClientStatus.CLIENT
        elif doc.is_quote:
            client.quote_count += 1
            client.total_quoted += doc.total
            if doc.status in OPEN_QUOTE_STATUSES:
                pipeline_value += doc.total
                open_opportunities += 1
            if doc.status == DocumentStatus.ACEPTADA:
                client.status = ClientStatus.CLIENT
                client.quotes_won += 1

    # 3. Segunda pasada: ticket y valor según el tipo de relación
    threshold = vip_threshold(clients.values())
    for client in clients.values():
        if client.status == ClientStatus.PROSPECT:
            client.avg_ticket = client.total_quoted / client.quote_count if client.quote_count else 0.0
            client.display_value = client.total_quoted
        else:
            client.avg_ticket = client.total_invoiced / client.invoice_count if client.invoice_count else 0.0
            client.display_value = client.total_invoiced
        client.win_rate = client.quotes_won / client.quote_count * 100 if client.quote_count else 0.0
        client.is_vip = (
            client.status == ClientStatus.CLIENT
            and client.total_invoiced > 0
            and client.total_invoiced >= threshold
        )

    active = [c for c in clients.values() if c.status == ClientStatus.CLIENT]
    portfolio_value = sum(c.total_invoiced for c in active)
    invoice_count = sum(c.invoice_count for c in clients.values())

    stats = PortfolioStats(
        total_active_clients=len(active),
        total_portfolio_value=portfolio_value,
        avg_global_ticket=portfolio_value / invoice_count if invoice_count else 0.0,
        total_pipeline_value=pipeline_value,
        open_opportunities_count=open_opportunities,
    )
    return ClientDirectory(clients=clients, stats=stats)

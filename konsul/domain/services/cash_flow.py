# konsul/domain/services/cash_flow.py
"""
Flujo de caja mensual, embudos, días de cobro y retención de clientes
sobre un conjunto de documentos ya filtrado por rango de fechas.
"""
from datetime import datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from konsul.domain.models.document import (
    COLLECTED_STATUSES,
    Document,
    DocumentStatus,
    TimelineEventType,
)
from konsul.domain.models.report import (
    CashFlowKpis,
    CashFlowReport,
    FunnelCounts,
    FunnelStage,
    MonthlyBucket,
    ProductSales,
    RetentionBuckets,
    RetentionEntry,
    TimeRange,
)
from konsul.domain.services.collection import ClientKeyStrategy, collected_amount, is_billed, trimmed_name

MONTH_LABELS = ("Ene", "Feb", "Mar", "Abr", "May", "Jun", "Jul", "Ago", "Sep", "Oct", "Nov", "Dic")

RANGE_DAYS = {
    TimeRange.LAST_30_DAYS: 30,
    TimeRange.LAST_90_DAYS: 90,
    TimeRange.LAST_12_MONTHS: 365,
}

CHURN_THRESHOLD_DAYS = 90

WON_STATUSES = frozenset({DocumentStatus.ACEPTADA, DocumentStatus.PAGADA, DocumentStatus.ABONADA})


def _opened(doc: Document) -> bool:
    return doc.has_event(TimelineEventType.OPENED)


def range_bounds(
    time_range: TimeRange,
    now: datetime,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    if time_range == TimeRange.CUSTOM:
        if start is None or end is None:
            raise ValueError("El rango CUSTOM requiere fecha de inicio y fin.")
        # Los extremos personalizados incluyen el día completo.
        return datetime.combine(start.date(), time.min), datetime.combine(end.date(), time.max)
    return now - timedelta(days=RANGE_DAYS[time_range]), now


def filter_by_range(
    documents: Iterable[Document],
    time_range: TimeRange,
    now: datetime,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Document]:
    lower, upper = range_bounds(time_range, now, start, end)
    return [doc for doc in documents if doc.date is not None and lower <= doc.date <= upper]


def month_label(moment: datetime) -> str:
    return f"{MONTH_LABELS[moment.month - 1]} {moment.year % 100:02d}"


def monthly_series(documents: Iterable[Document]) -> List[MonthlyBucket]:
    buckets: Dict[Tuple[int, int], MonthlyBucket] = {}
    for doc in documents:
        if doc.date is None:
            continue
        key = (doc.date.year, doc.date.month)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = MonthlyBucket(name=month_label(doc.date), year=key[0], month=key[1])
            buckets[key] = bucket
        if doc.is_invoice:
            bucket.ingresos += collected_amount(doc)
        elif doc.is_expense:
            bucket.gastos += doc.total
    # Orden cronológico, nunca alfabético por etiqueta.
    return [buckets[key] for key in sorted(buckets)]


def days_to_payment(documents: Iterable[Document]) -> Optional[float]:
    """
    Promedio de días entre los eventos CREATED y PAID de las facturas pagadas.
    Las facturas sin ambos eventos quedan fuera del promedio.
    """
    durations = []
    for doc in documents:
        if not doc.is_invoice or doc.status not in COLLECTED_STATUSES:
            continue
        created = doc.first_event(TimelineEventType.CREATED)
        paid = doc.first_event(TimelineEventType.PAID)
        if created is None or paid is None or created.timestamp is None or paid.timestamp is None:
            continue
        durations.append((paid.timestamp - created.timestamp).total_seconds() / 86400)
    if not durations:
        return None
    return sum(durations) / len(durations)


def funnel_counts(documents: Iterable[Document]) -> FunnelCounts:
    funnel = FunnelCounts()
    for doc in documents:
        if doc.is_expense:
            continue
        if doc.status == DocumentStatus.BORRADOR:
            funnel.borrador += 1
        if doc.status == DocumentStatus.ENVIADA:
            funnel.enviada += 1
        if doc.has_event(TimelineEventType.OPENED):
            funnel.vista += 1
        if doc.status in WON_STATUSES:
            funnel.ganada += 1
    return funnel


def invoice_funnel(documents: Sequence[Document]) -> List[FunnelStage]:
    invoices = [d for d in documents if d.is_invoice]
    return [
        FunnelStage(name="Enviada", value=sum(1 for d in invoices if d.status == DocumentStatus.ENVIADA)),
        FunnelStage(name="Seguimiento", value=sum(1 for d in invoices if d.status == DocumentStatus.SEGUIMIENTO or _opened(d))),
        FunnelStage(name="Abonada", value=sum(1 for d in invoices if d.status == DocumentStatus.ABONADA)),
        FunnelStage(name="Pagada", value=sum(1 for d in invoices if d.status in COLLECTED_STATUSES)),
        FunnelStage(name="Incobrable", value=sum(1 for d in invoices if d.status == DocumentStatus.INCOBRABLE)),
    ]


def quote_funnel(documents: Sequence[Document]) -> List[FunnelStage]:
    quotes = [d for d in documents if d.is_quote]
    return [
        FunnelStage(name="Enviada", value=sum(1 for d in quotes if d.status == DocumentStatus.ENVIADA)),
        FunnelStage(name="Negociacion", value=sum(1 for d in quotes if d.status == DocumentStatus.NEGOCIACION or _opened(d))),
        FunnelStage(name="Aceptada", value=sum(1 for d in quotes if d.status == DocumentStatus.ACEPTADA)),
        FunnelStage(name="Rechazada", value=sum(1 for d in quotes if d.status == DocumentStatus.RECHAZADA)),
    ]


def conversion_rate(documents: Iterable[Document]) -> float:
    quotes = [d for d in documents if d.is_quote]
    if not quotes:
        return 0.0
    won = sum(1 for d in quotes if d.status == DocumentStatus.ACEPTADA)
    return won / len(quotes) * 100


def retention_buckets(
    documents: Iterable[Document],
    now: datetime,
    key_strategy: Optional[ClientKeyStrategy] = None,
) -> RetentionBuckets:
    key_for = key_strategy or trimmed_name
    entries: Dict[str, RetentionEntry] = {}
    for doc in documents:
        if doc.is_expense:
            continue
        key = key_for(doc.client_name)
        entry = entries.setdefault(key, RetentionEntry(name=key))
        if doc.date is not None and (entry.last_interaction is None or doc.date > entry.last_interaction):
            entry.last_interaction = doc.date
        if doc.is_invoice:
            entry.count += 1
            entry.revenue += collected_amount(doc)

    buckets = RetentionBuckets()
    for entry in sorted(entries.values(), key=lambda e: e.revenue, reverse=True):
        if entry.last_interaction is not None:
            entry.days_since_last = (now - entry.last_interaction).days
        # Sin fecha válida no hay interacción reciente que demostrar.
        if entry.days_since_last is not None and entry.days_since_last <= CHURN_THRESHOLD_DAYS:
            buckets.active.append(entry)
        else:
            buckets.at_risk.append(entry)
    return buckets


def product_sales(documents: Iterable[Document]) -> List[ProductSales]:
    stats: Dict[str, ProductSales] = {}
    for doc in documents:
        if not is_billed(doc):
            continue
        for item in doc.items:
            key = item.description.strip()
            product = stats.setdefault(key, ProductSales(name=key))
            product.total_revenue += item.base_amount
            product.count += item.quantity
    return sorted(stats.values(), key=lambda p: p.total_revenue, reverse=True)


def cash_flow_kpis(documents: Iterable[Document]) -> CashFlowKpis:
    revenue = 0.0
    expenses = 0.0
    for doc in documents:
        if doc.is_invoice:
            revenue += collected_amount(doc)
        elif doc.is_expense:
            expenses += doc.total
    net = revenue - expenses
    return CashFlowKpis(
        total_revenue=revenue,
        total_expenses=expenses,
        net_margin=net,
        margin_percent=net / revenue * 100 if revenue > 0 else 0.0,
    )


def build_cash_flow_report(
    documents: Sequence[Document],
    now: datetime,
    key_strategy: Optional[ClientKeyStrategy] = None,
) -> CashFlowReport:
    return CashFlowReport(
        monthly=monthly_series(documents),
        funnel=funnel_counts(documents),
        invoice_funnel=invoice_funnel(documents),
        quote_funnel=quote_funnel(documents),
        conversion_rate=conversion_rate(documents),
        days_to_payment=days_to_payment(documents),
        retention=retention_buckets(documents, now, key_strategy),
        product_sales=product_sales(documents),
        kpis=cash_flow_kpis(documents),
    )

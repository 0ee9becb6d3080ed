# konsul/domain/services/expenses.py
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from konsul.domain.models.catalog import CatalogEntry, CatalogItem
from konsul.domain.models.document import Document, DocumentStatus

TOP_PARTNER_SHARE = 0.2
TOP_PARTNER_RANK = 3
WEEKS_PER_MONTH = 4
DEFAULT_PROVIDER = "Proveedor General"


class ProviderStats(BaseModel):
    name: str
    total_spend: float = 0.0
    transaction_count: int = 0
    last_transaction: Optional[datetime] = None
    avg_ticket: float = 0.0
    category: str = "General"
    is_top_partner: bool = False


class ExpenseSummary(BaseModel):
    total_income: float
    total_expenses: float
    net_profit: float


def expense_summary(documents: Iterable[Document]) -> ExpenseSummary:
    docs = list(documents)
    income = sum(d.total for d in docs if d.is_invoice and d.status == DocumentStatus.ACEPTADA)
    expenses = sum(d.total for d in docs if d.is_expense)
    return ExpenseSummary(total_income=income, total_expenses=expenses, net_profit=income - expenses)


def provider_stats(documents: Iterable[Document]) -> List[ProviderStats]:
    """
    Gasto por proveedor. Es socio principal quien concentra más del 20% del
    gasto total o está entre los tres primeros.
    """
    providers: Dict[str, ProviderStats] = {}
    total_spend = 0.0
    for doc in documents:
        if not doc.is_expense:
            continue
        name = doc.client_name or DEFAULT_PROVIDER
        provider = providers.get(name)
        if provider is None:
            category = doc.items[0].description if doc.items and doc.items[0].description else "General"
            provider = ProviderStats(name=name, category=category)
            providers[name] = provider
        provider.total_spend += doc.total
        provider.transaction_count += 1
        total_spend += doc.total
        if doc.date is not None and (provider.last_transaction is None or doc.date > provider.last_transaction):
            provider.last_transaction = doc.date

    ordered = sorted(providers.values(), key=lambda p: p.total_spend, reverse=True)
    threshold = total_spend * TOP_PARTNER_SHARE
    for rank, provider in enumerate(ordered):
        provider.avg_ticket = provider.total_spend / provider.transaction_count
        provider.is_top_partner = provider.total_spend > 0 and (
            provider.total_spend > threshold or rank < TOP_PARTNER_RANK
        )
    return ordered


def hourly_rate(target_income: float, monthly_costs: float, billable_hours_per_week: float) -> float:
    """Tarifa por hora necesaria para cubrir el ingreso deseado más los costos fijos."""
    monthly_hours = billable_hours_per_week * WEEKS_PER_MONTH
    if monthly_hours <= 0:
        return 0.0
    return (target_income + monthly_costs) / monthly_hours


def is_below_hourly_rate(price: float, reference_rate: Optional[float]) -> bool:
    if not reference_rate or reference_rate <= 0:
        return False
    return 0 < price < reference_rate


def price_catalog(items: Iterable[CatalogItem], reference_rate: Optional[float] = None) -> List[CatalogEntry]:
    """Marca los productos cuyo precio queda por debajo de la tarifa por hora."""
    return [
        CatalogEntry(**item.model_dump(), below_hourly_rate=is_below_hourly_rate(item.price, reference_rate))
        for item in items
    ]

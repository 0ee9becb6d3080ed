# konsul/domain/models/report.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from konsul.domain.models.client import ClientDirectory


class TimeRange(str, Enum):
    LAST_30_DAYS = "30D"
    LAST_90_DAYS = "90D"
    LAST_12_MONTHS = "12M"
    CUSTOM = "CUSTOM"


class EntityType(str, Enum):
    NATURAL = "NATURAL"
    JURIDICA = "JURIDICA"


class FiscalConfig(BaseModel):
    entity_type: EntityType = EntityType.NATURAL


class MonthlyBucket(BaseModel):
    name: str
    year: int
    month: int
    ingresos: float = 0.0
    gastos: float = 0.0


class FunnelCounts(BaseModel):
    """Embudo no excluyente: un documento puede contar en varias etapas."""
    borrador: int = 0
    enviada: int = 0
    vista: int = 0
    ganada: int = 0


class FunnelStage(BaseModel):
    name: str
    value: int


class ProductSales(BaseModel):
    name: str
    total_revenue: float = 0.0
    count: float = 0.0


class RetentionEntry(BaseModel):
    name: str
    revenue: float = 0.0
    count: int = 0
    last_interaction: Optional[datetime] = None
    days_since_last: Optional[int] = None


class RetentionBuckets(BaseModel):
    active: List[RetentionEntry] = Field(default_factory=list)
    at_risk: List[RetentionEntry] = Field(default_factory=list)


class CashFlowKpis(BaseModel):
    total_revenue: float = 0.0
    total_expenses: float = 0.0
    net_margin: float = 0.0
    margin_percent: float = 0.0


class CashFlowReport(BaseModel):
    monthly: List[MonthlyBucket]
    funnel: FunnelCounts
    invoice_funnel: List[FunnelStage]
    quote_funnel: List[FunnelStage]
    conversion_rate: float
    days_to_payment: Optional[float]
    retention: RetentionBuckets
    product_sales: List[ProductSales]
    kpis: CashFlowKpis


class TaxInsight(BaseModel):
    code: str
    severity: str
    message: str


class TaxProjection(BaseModel):
    entity_type: EntityType
    months_in_period: float
    itbms_collected: float
    itbms_paid: float
    itbms_net: float
    period_revenue: float
    period_net_profit: float
    annual_revenue: float
    annual_net_profit: float
    estimated_isr: float
    isr_bracket: str
    cair_applied: bool = False
    insights: List[TaxInsight] = Field(default_factory=list)
    disclaimer: str


class ReportsDashboard(BaseModel):
    time_range: TimeRange
    generated_at: datetime
    document_count: int
    cash_flow: CashFlowReport
    clients: ClientDirectory
    tax: Optional[TaxProjection] = None

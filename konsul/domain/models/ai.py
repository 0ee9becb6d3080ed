# konsul/domain/models/ai.py
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from konsul.domain.models.document import DocumentType


class _AiModel(BaseModel):
    """Las respuestas del modelo llegan en camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


class ParsedInvoiceData(_AiModel):
    client_name: str
    concept: str
    amount: float
    currency: str = "USD"
    detected_type: DocumentType = DocumentType.INVOICE
    date: Optional[str] = None


class FinancialAnalysisResult(_AiModel):
    health_score: float = Field(ge=0, le=100)
    health_status: Literal['Excellent', 'Good', 'Fair', 'Critical']
    diagnosis: str
    actionable_tips: List[str] = Field(default_factory=list)
    projection: str


class KeyMetric(_AiModel):
    label: str
    value: str
    trend: Literal['up', 'down', 'neutral'] = 'neutral'


class DeepDiveReport(_AiModel):
    chart_title: str
    executive_summary: str
    key_metrics: List[KeyMetric] = Field(default_factory=list)
    strategic_insight: str
    recommendation: str


class PriceAnalysisResult(_AiModel):
    min_price: float
    max_price: float
    avg_price: float
    currency: str
    reasoning: str

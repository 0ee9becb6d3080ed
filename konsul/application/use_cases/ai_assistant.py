# konsul/application/use_cases/ai_assistant.py
import json
import logging
import uuid
from datetime import datetime
from typing import Optional

from konsul.application.use_cases.manage_documents import new_event
from konsul.domain.models.ai import DeepDiveReport, FinancialAnalysisResult, ParsedInvoiceData
from konsul.domain.models.document import (
    Document,
    DocumentItem,
    DocumentStatus,
    DocumentType,
    TimelineEventType,
    parse_timestamp,
    utc_now,
)
from konsul.domain.models.report import TimeRange
from konsul.domain.ports.ai_service import AIService
from konsul.domain.ports.document_repository import DocumentRepository
from konsul.domain.services.cash_flow import build_cash_flow_report, filter_by_range

logger = logging.getLogger(__name__)


def draft_from_parsed(parsed: ParsedInvoiceData, user_id: Optional[str] = None) -> Document:
    """Convierte la respuesta de la IA en un borrador de una sola línea."""
    date = parse_timestamp(parsed.date) or utc_now()
    return Document(
        id=str(uuid.uuid4()),
        client_name=parsed.client_name.strip(),
        date=date,
        items=[DocumentItem(id=str(uuid.uuid4()), description=parsed.concept, quantity=1, price=parsed.amount, tax=0)],
        total=parsed.amount,
        status=DocumentStatus.BORRADOR,
        type=parsed.detected_type,
        currency=parsed.currency or "USD",
        timeline=[new_event(TimelineEventType.CREATED, "Documento creado con IA", at=date)],
        user_id=user_id,
    )


class DraftDocumentUseCase:
    """Borradores de facturas, cotizaciones o gastos generados por la IA."""
    def __init__(self, ai_service: AIService):
        self.ai_service = ai_service

    def from_text(self, text: str, user_id: Optional[str] = None) -> Optional[Document]:
        parsed = self.ai_service.parse_invoice_request(text)
        return draft_from_parsed(parsed, user_id) if parsed else None

    def from_receipt(self, image_base64: str, mime_type: str, user_id: Optional[str] = None) -> Optional[Document]:
        parsed = self.ai_service.parse_expense_image(image_base64, mime_type)
        if parsed is None:
            return None
        parsed.detected_type = DocumentType.EXPENSE
        return draft_from_parsed(parsed, user_id)


class AnalyzeFinancesUseCase:
    """
    Análisis de CFO con IA sobre los KPIs del flujo de caja del periodo.
    """
    def __init__(self, document_repo: DocumentRepository, ai_service: AIService):
        self.document_repo = document_repo
        self.ai_service = ai_service

    def build_summary(
        self,
        user_id: str,
        time_range: TimeRange,
        now: Optional[datetime] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> str:
        now = now or utc_now()
        documents = filter_by_range(self.document_repo.fetch_documents(user_id), time_range, now, start, end)
        report = build_cash_flow_report(documents, now)
        summary = {
            "periodo": time_range.value,
            "ingresos": round(report.kpis.total_revenue, 2),
            "gastos": round(report.kpis.total_expenses, 2),
            "margenNeto": round(report.kpis.net_margin, 2),
            "margenPorcentaje": round(report.kpis.margin_percent, 1),
            "tasaConversion": round(report.conversion_rate, 1),
            "diasDeCobro": round(report.days_to_payment, 1) if report.days_to_payment is not None else None,
            "clientesEnRiesgo": len(report.retention.at_risk),
            "mensual": [{"mes": b.name, "ingresos": round(b.ingresos, 2), "gastos": round(b.gastos, 2)} for b in report.monthly],
        }
        return json.dumps(summary, ensure_ascii=False)

    def execute(
        self,
        user_id: str,
        time_range: TimeRange = TimeRange.LAST_12_MONTHS,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Optional[FinancialAnalysisResult]:
        summary = self.build_summary(user_id, time_range, start=start, end=end)
        logger.info(f"[{user_id}] Solicitando análisis financiero ({time_range.value}).")
        return self.ai_service.generate_financial_analysis(summary)

    def deep_dive(
        self,
        user_id: str,
        chart_title: str,
        time_range: TimeRange = TimeRange.LAST_12_MONTHS,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Optional[DeepDiveReport]:
        summary = self.build_summary(user_id, time_range, start=start, end=end)
        return self.ai_service.generate_deep_dive_report(chart_title, summary)

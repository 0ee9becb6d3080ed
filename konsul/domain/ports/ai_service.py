# konsul/domain/ports/ai_service.py
from abc import ABC, abstractmethod
from typing import Optional

from konsul.domain.models.ai import (
    DeepDiveReport,
    FinancialAnalysisResult,
    ParsedInvoiceData,
    PriceAnalysisResult,
)


class AIService(ABC):
    """
    Puerto para el servicio de IA generativa con salida estructurada.
    Todas las operaciones lanzan `AIBlockedError` si no hay API key.
    """

    @abstractmethod
    def parse_invoice_request(self, text: str) -> Optional[ParsedInvoiceData]:
        """Interpreta una petición en lenguaje natural ("factura a Acme 500 por diseño")."""
        pass

    @abstractmethod
    def parse_expense_image(self, image_base64: str, mime_type: str) -> Optional[ParsedInvoiceData]:
        """Extrae proveedor, monto, fecha y concepto de la foto de un recibo."""
        pass

    @abstractmethod
    def generate_financial_analysis(self, summary: str) -> Optional[FinancialAnalysisResult]:
        pass

    @abstractmethod
    def generate_deep_dive_report(self, title: str, context: str) -> Optional[DeepDiveReport]:
        pass

    @abstractmethod
    def analyze_price_market(self, item_name: str, country: str) -> Optional[PriceAnalysisResult]:
        pass

# konsul/infrastructure/external/gemini_adapter.py
import json
import logging
import os
import re
from typing import Any, Dict, Optional, Type, TypeVar

import requests
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

import config
from konsul.domain.exceptions import AIBlockedError
from konsul.domain.models.ai import (
    DeepDiveReport,
    FinancialAnalysisResult,
    ParsedInvoiceData,
    PriceAnalysisResult,
)
from konsul.domain.models.document import DocumentType
from konsul.domain.ports.ai_service import AIService

load_dotenv()
logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

STRING = {"type": "STRING"}
NUMBER = {"type": "NUMBER"}

PARSED_REQUEST_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "clientName": STRING,
        "amount": NUMBER,
        "currency": STRING,
        "concept": STRING,
        "detectedType": {"type": "STRING", "enum": ["Invoice", "Quote"]},
    },
    "required": ["clientName", "amount", "currency", "concept", "detectedType"],
}

EXPENSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "clientName": {"type": "STRING", "description": "Nombre comercial o razón social del proveedor. Sin 'Factura' ni 'Recibo'."},
        "amount": {"type": "NUMBER", "description": "Monto total a pagar final."},
        "currency": {"type": "STRING", "description": "Código de moneda, ej. USD, EUR, PAB"},
        "date": {"type": "STRING", "description": "Fecha de emisión en formato YYYY-MM-DD."},
        "concept": {"type": "STRING", "description": "Qué se compró, sin repetir el proveedor."},
    },
    "required": ["clientName", "amount", "currency", "concept"],
}

ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "healthScore": NUMBER,
        "healthStatus": {"type": "STRING", "enum": ["Excellent", "Good", "Fair", "Critical"]},
        "diagnosis": STRING,
        "actionableTips": {"type": "ARRAY", "items": STRING},
        "projection": STRING,
    },
    "required": ["healthScore", "healthStatus", "diagnosis", "actionableTips", "projection"],
}

DEEP_DIVE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "chartTitle": STRING,
        "executiveSummary": STRING,
        "keyMetrics": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "label": STRING,
                    "value": STRING,
                    "trend": {"type": "STRING", "enum": ["up", "down", "neutral"]},
                },
            },
        },
        "strategicInsight": STRING,
        "recommendation": STRING,
    },
    "required": ["chartTitle", "executiveSummary", "keyMetrics", "strategicInsight", "recommendation"],
}

PRICE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "minPrice": NUMBER,
        "maxPrice": NUMBER,
        "avgPrice": NUMBER,
        "currency": STRING,
        "reasoning": STRING,
    },
    "required": ["minPrice", "maxPrice", "avgPrice", "currency", "reasoning"],
}

EXPENSE_PROMPT = """Analiza este documento (imagen o PDF) y actúa como un asistente contable preciso.
1. Proveedor: quién emite la factura (ej. "Doit Center", "Uber").
2. Concepto: resume los ítems o el servicio prestado, de forma concisa.
3. Fecha: la fecha de la transacción.
4. Total: el monto final pagado.
Si el documento es ilegible o no es una factura, devuelve null."""


def clean_json(text: str) -> str:
    """Quita las cercas ```json que a veces devuelve el modelo."""
    if not text:
        return "{}"
    text = re.sub(r"^```(?:json)?\s*", "", text.strip())
    return re.sub(r"\s*```$", "", text).strip()


class GeminiAdapter(AIService):
    """
    Adaptador para la API REST de Gemini con salida JSON estructurada.
    Prioridad de la clave: la del usuario y luego GEMINI_API_KEY del entorno.
    """
    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _generate(self, parts: list, schema: Optional[Dict[str, Any]] = None, model: str = config.GEMINI_MODEL_ID) -> Optional[str]:
        if not self.api_key:
            logger.error("Gemini deshabilitado: no hay API key de usuario ni GEMINI_API_KEY.")
            raise AIBlockedError("IA deshabilitada: configura tu API key.")

        body: Dict[str, Any] = {"contents": [{"parts": parts}]}
        if schema is not None:
            body["generationConfig"] = {"responseMimeType": "application/json", "responseSchema": schema}

        url = f"{config.GEMINI_API_URL}/{model}:generateContent"
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        try:
            response = requests.post(url, json=body, headers=headers, timeout=config.AI_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Error al llamar a Gemini ({model}): {e}")
            return None

        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            logger.warning(f"Gemini bloqueó la petición: {block_reason}")
            return None

        candidates = data.get("candidates") or []
        if not candidates:
            return None
        text_parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in text_parts) or None

    def _structured(self, model_cls: Type[T], parts: list, schema: Dict[str, Any], model: str = config.GEMINI_MODEL_ID, **extra) -> Optional[T]:
        text = self._generate(parts, schema, model)
        if text is None:
            return None
        try:
            payload = json.loads(clean_json(text))
            if payload is None:
                return None
            payload.update(extra)
            return model_cls.model_validate(payload)
        except (json.JSONDecodeError, ValidationError, AttributeError) as e:
            logger.warning(f"Respuesta de Gemini no válida para {model_cls.__name__}: {e}")
            return None

    def parse_invoice_request(self, text: str) -> Optional[ParsedInvoiceData]:
        return self._structured(ParsedInvoiceData, [{"text": text}], PARSED_REQUEST_SCHEMA)

    def parse_expense_image(self, image_base64: str, mime_type: str) -> Optional[ParsedInvoiceData]:
        parts = [
            {"inlineData": {"data": image_base64, "mimeType": mime_type}},
            {"text": EXPENSE_PROMPT},
        ]
        return self._structured(
            ParsedInvoiceData, parts, EXPENSE_SCHEMA,
            model=config.GEMINI_VISION_MODEL_ID,
            detectedType=DocumentType.EXPENSE.value,
        )

    def generate_financial_analysis(self, summary: str) -> Optional[FinancialAnalysisResult]:
        prompt = f"Analiza este resumen financiero y actúa como un CFO experto: {summary}"
        return self._structured(FinancialAnalysisResult, [{"text": prompt}], ANALYSIS_SCHEMA)

    def generate_deep_dive_report(self, title: str, context: str) -> Optional[DeepDiveReport]:
        prompt = f'Genera un reporte de análisis detallado para el gráfico "{title}". Datos de contexto: {context}'
        return self._structured(DeepDiveReport, [{"text": prompt}], DEEP_DIVE_SCHEMA)

    def analyze_price_market(self, item_name: str, country: str) -> Optional[PriceAnalysisResult]:
        prompt = f'Analiza el precio de mercado de "{item_name}" en {country}. Da un rango estimado y el razonamiento.'
        return self._structured(PriceAnalysisResult, [{"text": prompt}], PRICE_SCHEMA)

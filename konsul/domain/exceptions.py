# konsul/domain/exceptions.py


class KonsulError(Exception):
    """Error base del dominio."""


class InvalidStatusTransition(KonsulError):
    def __init__(self, document_type: str, current: str, target: str):
        self.document_type = document_type
        self.current = current
        self.target = target
        super().__init__(f"Transición inválida para {document_type}: {current} -> {target}")


class DocumentNotFound(KonsulError):
    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Documento no encontrado: {document_id}")


class AIBlockedError(KonsulError):
    """La IA está deshabilitada porque no hay API key configurada."""
    code = "AI_BLOCKED_MISSING_KEYS"


class ExternalServiceError(KonsulError):
    def __init__(self, service: str, detail: str):
        self.service = service
        self.detail = detail
        super().__init__(f"Error de {service}: {detail}")

# konsul/domain/ports/email_sender.py
from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class EmailSender(ABC):
    """Puerto para el envío de correos transaccionales."""

    @abstractmethod
    def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: Optional[List[Dict[str, str]]] = None,
        sender_name: Optional[str] = None,
    ) -> dict:
        """
        Envía el correo. `attachments` es una lista de dicts:
        [{'filename': str, 'content': str en base64}]
        Retorna {'success': bool, 'id': str | None, 'error': str | None}.
        """
        pass

    @abstractmethod
    def get_email_status(self, email_id: str) -> Optional[dict]:
        """Estado de entrega (entregado, abierto, clic) o None si no se pudo consultar."""
        pass

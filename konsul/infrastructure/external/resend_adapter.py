# konsul/infrastructure/external/resend_adapter.py
import logging
import os
from typing import Dict, List, Optional

import requests
from dotenv import load_dotenv

import config
from konsul.domain.ports.email_sender import EmailSender

load_dotenv()
logger = logging.getLogger(__name__)


class ResendAdapter(EmailSender):
    """
    Adaptador para la API de Resend. El remitente siempre usa el correo del
    dominio verificado; solo el nombre visible cambia por usuario.
    """
    def __init__(self):
        self.api_key = os.getenv("RESEND_API_KEY")
        self.from_email = os.getenv("RESEND_FROM_EMAIL")
        if not self.api_key:
            raise ValueError("Falta la variable de entorno RESEND_API_KEY")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

    def _sender(self, name: Optional[str]) -> str:
        name = name or config.DEFAULT_SENDER_NAME
        if self.from_email:
            return f"{name} <{self.from_email}>"
        logger.warning("RESEND_FROM_EMAIL no está configurado. Usando el remitente sandbox de Resend.")
        return f"{name} <{config.SANDBOX_SENDER_EMAIL}>"

    def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: Optional[List[Dict[str, str]]] = None,
        sender_name: Optional[str] = None,
    ) -> dict:
        sender = self._sender(sender_name)
        payload = {
            "from": sender,
            "to": [to],
            "subject": subject,
            "html": html or "<p>No content provided</p>",
        }
        if attachments:
            payload["attachments"] = attachments

        try:
            response = requests.post(config.RESEND_API_URL, json=payload, headers=self._headers(), timeout=config.HTTP_TIMEOUT)
        except requests.exceptions.RequestException as e:
            logger.error(f"Error de conexión con Resend: {e}")
            return {"success": False, "id": None, "error": "Error de conexión con el servidor de envíos."}

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            error = data.get("message") or "Error al enviar email"
            if data.get("name") == "validation_error" and "domain" in (data.get("message") or ""):
                error = (
                    f"Error de dominio: se intentó enviar desde \"{sender}\". "
                    "RESEND_FROM_EMAIL debe pertenecer al dominio verificado en Resend."
                )
            logger.error(f"Resend respondió {response.status_code}: {error}")
            return {"success": False, "id": None, "error": error}

        logger.info(f"Correo enviado a {to}. ID: {data.get('id')}")
        return {"success": True, "id": data.get("id"), "error": None}

    def get_email_status(self, email_id: str) -> Optional[dict]:
        try:
            response = requests.get(f"{config.RESEND_API_URL}/{email_id}", headers=self._headers(), timeout=config.HTTP_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"No se pudo consultar el estado del correo {email_id}: {e}")
            return None

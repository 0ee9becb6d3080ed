# konsul/infrastructure/external/stripe_adapter.py
import logging
import os
from datetime import datetime, timedelta, timezone

import requests
from dotenv import load_dotenv

import config
from konsul.domain.exceptions import ExternalServiceError
from konsul.domain.ports.checkout_gateway import CheckoutGateway

load_dotenv()
logger = logging.getLogger(__name__)


class StripeCheckoutAdapter(CheckoutGateway):
    """
    Adaptador para la API REST de Stripe (formularios url-encoded, autenticación
    básica con la clave secreta). Un único plan mensual ligado a un producto existente.
    """
    def __init__(self):
        self.secret_key = os.getenv("STRIPE_SECRET_KEY")
        if not self.secret_key:
            raise ValueError("Falta la variable de entorno STRIPE_SECRET_KEY")

    def _request(self, method: str, path: str, data: dict = None) -> dict:
        url = f"{config.STRIPE_API_URL}{path}"
        try:
            response = requests.request(method, url, data=data, auth=(self.secret_key, ""), timeout=config.HTTP_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            detail = e.response.text if e.response is not None else str(e)
            logger.error(f"Error de Stripe en {path}: {detail}")
            raise ExternalServiceError("Stripe", detail) from e

    def create_checkout_session(self, plan: str, email: str, user_id: str, origin: str) -> str:
        data = {
            "mode": "subscription",
            "payment_method_types[0]": "card",
            "line_items[0][quantity]": 1,
            "line_items[0][price_data][currency]": "usd",
            "line_items[0][price_data][product]": config.STRIPE_PRODUCT_ID,
            "line_items[0][price_data][unit_amount]": config.STRIPE_UNIT_AMOUNT,
            "line_items[0][price_data][recurring][interval]": "month",
            "success_url": f"{origin}/?session_id={{CHECKOUT_SESSION_ID}}&payment_success=true",
            "cancel_url": f"{origin}/?payment_canceled=true",
            "customer_email": email,
            "client_reference_id": user_id,
            "metadata[userId]": user_id,
            "metadata[plan]": plan or config.DEFAULT_PLAN,
        }
        session = self._request("POST", "/checkout/sessions", data)
        logger.info(f"[{user_id}] Sesión de pago creada: {session.get('id')}")
        return session["url"]

    def create_portal_session(self, customer_id: str, origin: str) -> str:
        if not customer_id:
            raise ValueError("Falta el ID de cliente de Stripe.")
        session = self._request("POST", "/billing_portal/sessions", {"customer": customer_id, "return_url": f"{origin}/"})
        return session["url"]

    def get_session(self, session_id: str) -> dict:
        session = self._request("GET", f"/checkout/sessions/{session_id}")
        plan = (session.get("metadata") or {}).get("plan") or config.DEFAULT_PLAN

        if session.get("subscription"):
            subscription = self._request("GET", f"/subscriptions/{session['subscription']}")
            renewal_date = datetime.fromtimestamp(subscription["current_period_end"], tz=timezone.utc)
        else:
            # Pago único o prueba: renovación a un mes
            renewal_date = datetime.now(timezone.utc) + timedelta(days=30)

        return {
            "customer_id": session.get("customer"),
            "renewal_date": renewal_date,
            "plan": plan,
        }

# konsul/domain/ports/checkout_gateway.py
from abc import ABC, abstractmethod


class CheckoutGateway(ABC):
    """Puerto para la pasarela de pagos de suscripciones."""

    @abstractmethod
    def create_checkout_session(self, plan: str, email: str, user_id: str, origin: str) -> str:
        """Crea la sesión de pago y retorna la URL a la que se redirige al usuario."""
        pass

    @abstractmethod
    def create_portal_session(self, customer_id: str, origin: str) -> str:
        """Retorna la URL del portal de facturación del cliente."""
        pass

    @abstractmethod
    def get_session(self, session_id: str) -> dict:
        """
        Retorna {'customer_id': str, 'renewal_date': datetime, 'plan': str}
        de una sesión de pago completada.
        """
        pass

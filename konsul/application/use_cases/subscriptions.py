# konsul/application/use_cases/subscriptions.py
import logging

from konsul.domain.ports.checkout_gateway import CheckoutGateway
from konsul.domain.ports.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)


class ConfirmSubscriptionUseCase:
    """
    Tras volver de la pasarela de pago, lee la sesión y guarda en el perfil
    el plan, la fecha de renovación y el ID de cliente de la pasarela.
    """
    def __init__(self, checkout_gateway: CheckoutGateway, profile_repo: ProfileRepository):
        self.checkout_gateway = checkout_gateway
        self.profile_repo = profile_repo

    def execute(self, user_id: str, session_id: str) -> dict:
        session = self.checkout_gateway.get_session(session_id)
        self.profile_repo.update_subscription(
            user_id,
            plan=session["plan"],
            renewal_date=session["renewal_date"],
            customer_id=session.get("customer_id"),
        )
        logger.info(f"[{user_id}] Suscripción '{session['plan']}' activa hasta {session['renewal_date']}.")
        return session

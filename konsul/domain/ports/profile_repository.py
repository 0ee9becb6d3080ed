# konsul/domain/ports/profile_repository.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from konsul.domain.models.profile import UserProfile
from konsul.domain.models.report import FiscalConfig


class ProfileRepository(ABC):

    @abstractmethod
    def get_fiscal_config(self, user_id: str) -> Optional[FiscalConfig]:
        """Configuración fiscal del perfil, o None si el usuario no la ha definido."""
        pass

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    def save_profile(self, user_id: str, profile: UserProfile) -> UserProfile:
        """Guarda los datos del negocio y su régimen fiscal; no toca el plan."""
        pass

    @abstractmethod
    def update_subscription(self, user_id: str, plan: str, renewal_date: Optional[datetime], customer_id: Optional[str]) -> None:
        pass

# konsul/domain/models/profile.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from konsul.domain.models.report import FiscalConfig


class UserProfile(BaseModel):
    """
    Perfil del negocio del usuario. `fiscal_config` decide el régimen de la
    proyección de impuestos; el plan y la renovación solo los escribe el
    flujo de suscripción.
    """
    name: str = ""
    email: Optional[str] = None
    tax_id: Optional[str] = None
    address: Optional[str] = None
    country: str = "Panamá"
    default_currency: str = "USD"
    payment_terms_days: int = Field(default=30, ge=0)
    fiscal_config: FiscalConfig = Field(default_factory=FiscalConfig)
    plan: str = "Free"
    renewal_date: Optional[datetime] = None

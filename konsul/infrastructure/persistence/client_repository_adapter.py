# konsul/infrastructure/persistence/client_repository_adapter.py
import logging
import re
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from konsul.domain.models.client import ClientRecord, ClientStatus, ProviderRecord
from konsul.domain.models.profile import UserProfile
from konsul.domain.models.report import EntityType, FiscalConfig
from konsul.domain.ports.client_repository import ClientRepository
from konsul.domain.ports.profile_repository import ProfileRepository
from konsul.domain.ports.provider_repository import ProviderRepository
from .models import ClientRow, ProspectRow, ProviderRow, UserRow

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ("tax_id", "email", "address", "phone", "tags", "notes")
PROVIDER_FIELDS = ("tax_id", "email", "address", "phone", "category", "notes")
PROFILE_DATA_FIELDS = ("tax_id", "address", "country", "default_currency", "payment_terms_days")


def _safe_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def client_id_for(name: str, user_id: str) -> str:
    """ID estable a partir del nombre, compartido entre `clients` y `prospects`."""
    return f"cli_{user_id[:8]}_{_safe_name(name)}"


def provider_id_for(name: str, user_id: str) -> str:
    return f"prov_{user_id[:8]}_{_safe_name(name)}"


class SQLClientRepository(ClientRepository):
    def __init__(self, db: Session):
        self.db = db

    def _to_record(self, row, status: ClientStatus) -> ClientRecord:
        return ClientRecord(
            id=row.id,
            name=row.name,
            status=status,
            **{field: getattr(row, field) for field in CONTACT_FIELDS},
        )

    def fetch_clients(self, user_id: str) -> List[ClientRecord]:
        clients = self.db.query(ClientRow).filter(ClientRow.user_id == user_id).all()
        prospects = self.db.query(ProspectRow).filter(ProspectRow.user_id == user_id).all()
        return (
            [self._to_record(row, ClientStatus.CLIENT) for row in clients]
            + [self._to_record(row, ClientStatus.PROSPECT) for row in prospects]
        )

    def _upsert(self, model, record_id: str, record: ClientRecord, user_id: str, rename: bool = True):
        row = self.db.query(model).filter(model.id == record_id).first()
        if row is None:
            row = model(id=record_id, user_id=user_id, name=record.name)
            self.db.add(row)
        elif rename:
            row.name = record.name
        # Los campos vacíos no borran lo que ya estaba guardado.
        for field in CONTACT_FIELDS:
            value = getattr(record, field)
            if value is not None:
                setattr(row, field, value)
        return row

    def save_client(self, record: ClientRecord, user_id: str, status: ClientStatus) -> ClientRecord:
        record_id = record.id or client_id_for(record.name, user_id)

        if status == ClientStatus.CLIENT:
            row = self._upsert(ClientRow, record_id, record, user_id)
            # Promoción: deja de ser prospecto
            self.db.query(ProspectRow).filter(ProspectRow.id == record_id).delete()
            saved_status = ClientStatus.CLIENT
        elif self.db.query(ClientRow).filter(ClientRow.id == record_id).first() is not None:
            # Ya es cliente: se actualiza el contacto, nunca se degrada a prospecto.
            row = self._upsert(ClientRow, record_id, record, user_id, rename=False)
            saved_status = ClientStatus.CLIENT
        else:
            row = self._upsert(ProspectRow, record_id, record, user_id)
            saved_status = ClientStatus.PROSPECT

        self.db.flush()
        logger.info(f"[{user_id}] Contacto '{record.name}' guardado como {saved_status.value}.")
        return self._to_record(row, saved_status)


class SQLProviderRepository(ProviderRepository):
    def __init__(self, db: Session):
        self.db = db

    def fetch_providers(self, user_id: str) -> List[ProviderRecord]:
        rows = self.db.query(ProviderRow).filter(ProviderRow.user_id == user_id).order_by(ProviderRow.name).all()
        return [ProviderRecord.model_validate(row) for row in rows]

    def save_provider(self, record: ProviderRecord, user_id: str) -> ProviderRecord:
        record_id = record.id or provider_id_for(record.name, user_id)
        row = self.db.query(ProviderRow).filter(ProviderRow.id == record_id).first()
        if row is None:
            row = ProviderRow(id=record_id, user_id=user_id, name=record.name)
            self.db.add(row)
        else:
            row.name = record.name
        for field in PROVIDER_FIELDS:
            value = getattr(record, field)
            if value is not None:
                setattr(row, field, value)
        self.db.flush()
        logger.info(f"[{user_id}] Proveedor '{record.name}' guardado.")
        return ProviderRecord.model_validate(row)


class SQLProfileRepository(ProfileRepository):
    def __init__(self, db: Session):
        self.db = db

    def _find_user(self, user_id: str) -> Optional[UserRow]:
        return self.db.query(UserRow).filter(UserRow.id == user_id).first()

    def get_fiscal_config(self, user_id: str) -> Optional[FiscalConfig]:
        user = self._find_user(user_id)
        if user is None or not user.entity_type:
            return None
        return FiscalConfig(entity_type=EntityType(user.entity_type))

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        user = self._find_user(user_id)
        if user is None:
            return None
        extra = {key: value for key, value in (user.profile_data or {}).items() if key in PROFILE_DATA_FIELDS}
        fiscal_config = FiscalConfig(entity_type=EntityType(user.entity_type)) if user.entity_type else FiscalConfig()
        return UserProfile(
            name=user.name or "",
            email=user.email,
            fiscal_config=fiscal_config,
            plan=user.plan or "Free",
            renewal_date=user.renewal_date,
            **extra,
        )

    def save_profile(self, user_id: str, profile: UserProfile) -> UserProfile:
        user = self._find_user(user_id)
        if user is None:
            user = UserRow(id=user_id)
            self.db.add(user)
        user.name = profile.name
        user.email = profile.email
        user.entity_type = profile.fiscal_config.entity_type.value
        user.profile_data = profile.model_dump(mode="json", include=set(PROFILE_DATA_FIELDS))
        self.db.flush()
        logger.info(f"[{user_id}] Perfil actualizado ({user.entity_type}).")
        return self.get_profile(user_id)

    def update_subscription(self, user_id: str, plan: str, renewal_date: Optional[datetime], customer_id: Optional[str]) -> None:
        user = self._find_user(user_id)
        if user is None:
            user = UserRow(id=user_id)
            self.db.add(user)
        user.plan = plan
        user.renewal_date = renewal_date
        if customer_id:
            user.stripe_customer_id = customer_id
        self.db.flush()

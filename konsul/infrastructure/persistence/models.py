# konsul/infrastructure/persistence/models.py
from sqlalchemy import JSON, Boolean, Column, DateTime, Numeric, String, Text, func

from .database import Base


class InvoiceRow(Base):
    """Facturas y cotizaciones. `data` guarda el documento completo."""
    __tablename__ = "invoices"

    id = Column(String, primary_key=True)
    user_id = Column(String, index=True)
    client_name = Column(String)
    client_tax_id = Column(String)
    total = Column(Numeric(14, 2))
    status = Column(String)
    date = Column(String)
    type = Column(String)
    data = Column(JSON)
    created_at = Column(DateTime, server_default=func.now())


class ExpenseRow(Base):
    __tablename__ = "expenses"

    id = Column(String, primary_key=True)
    user_id = Column(String, index=True)
    provider_name = Column(String)
    date = Column(String)
    total = Column(Numeric(14, 2))
    currency = Column(String)
    category = Column(String)
    receipt_url = Column(String)
    status = Column(String)
    data = Column(JSON)
    created_at = Column(DateTime, server_default=func.now())


class _ContactColumns:
    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    tax_id = Column(String)
    email = Column(String)
    address = Column(String)
    phone = Column(String)
    tags = Column(Text)
    notes = Column(Text)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ClientRow(_ContactColumns, Base):
    __tablename__ = "clients"


class ProspectRow(_ContactColumns, Base):
    __tablename__ = "prospects"


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String)
    email = Column(String, unique=True)
    entity_type = Column(String)
    # Datos del negocio que no tienen columna propia.
    profile_data = Column(JSON)
    plan = Column(String, default="Free")
    renewal_date = Column(DateTime)
    stripe_customer_id = Column(String)


class ProviderRow(Base):
    __tablename__ = "providers"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    tax_id = Column(String)
    email = Column(String)
    address = Column(String)
    phone = Column(String)
    category = Column(String)
    notes = Column(Text)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class CatalogItemRow(Base):
    __tablename__ = "catalog_items"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(14, 2), nullable=False)
    description = Column(Text)
    is_recurring = Column(Boolean, default=False)
    sku = Column(String)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

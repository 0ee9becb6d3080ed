# konsul/domain/models/catalog.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CatalogItem(BaseModel):
    """Producto o servicio reutilizable al armar facturas y cotizaciones."""
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    description: Optional[str] = None
    sku: Optional[str] = None
    is_recurring: bool = False

    model_config = ConfigDict(from_attributes=True)


class CatalogEntry(CatalogItem):
    # True cuando el precio no cubre la tarifa por hora de referencia.
    below_hourly_rate: bool = False

# konsul/infrastructure/api/routers/catalog_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

import config
from konsul.domain.models.catalog import CatalogEntry, CatalogItem
from konsul.domain.ports.catalog_repository import CatalogRepository
from konsul.domain.services.expenses import is_below_hourly_rate, price_catalog
from konsul.infrastructure.api.dependencies import get_catalog_repo, get_user_id
from konsul.infrastructure.persistence.database import get_db

router = APIRouter(prefix=f"{config.API_PREFIX}/catalogo", tags=["Catálogo"])


@router.get("/", response_model=List[CatalogEntry], summary="Productos y servicios del catálogo")
def list_items(
    hourly_rate: Optional[float] = Query(None, alias="tarifa_hora", ge=0, description="Tarifa por hora de referencia."),
    user_id: str = Depends(get_user_id),
    catalog_repo: CatalogRepository = Depends(get_catalog_repo),
):
    return price_catalog(catalog_repo.fetch_items(user_id), hourly_rate)


@router.post("/", response_model=CatalogEntry, status_code=201, summary="Crear o actualizar un producto")
def save_item(
    item: CatalogItem,
    hourly_rate: Optional[float] = Query(None, alias="tarifa_hora", ge=0),
    user_id: str = Depends(get_user_id),
    catalog_repo: CatalogRepository = Depends(get_catalog_repo),
    db: Session = Depends(get_db),
):
    try:
        saved = catalog_repo.save_item(item, user_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()
    return CatalogEntry(**saved.model_dump(), below_hourly_rate=is_below_hourly_rate(saved.price, hourly_rate))


@router.delete("/{item_id}", status_code=204, summary="Eliminar un producto")
def delete_item(
    item_id: str,
    user_id: str = Depends(get_user_id),
    catalog_repo: CatalogRepository = Depends(get_catalog_repo),
    db: Session = Depends(get_db),
):
    if not catalog_repo.delete_item(item_id, user_id):
        raise HTTPException(status_code=404, detail=f"Producto no encontrado: {item_id}")
    db.commit()

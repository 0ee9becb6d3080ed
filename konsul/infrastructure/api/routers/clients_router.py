# konsul/infrastructure/api/routers/clients_router.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

import config
from konsul.application.use_cases.build_reports import BuildClientDirectoryUseCase
from konsul.domain.models.client import (
    AggregatedClient,
    ClientRecord,
    ClientSegment,
    ClientStatus,
    PortfolioStats,
    ProviderRecord,
)
from konsul.domain.ports.client_repository import ClientRepository
from konsul.domain.ports.document_repository import DocumentRepository
from konsul.domain.ports.provider_repository import ProviderRepository
from konsul.infrastructure.api.dependencies import (
    get_client_repo,
    get_document_repo,
    get_provider_repo,
    get_user_id,
)
from konsul.infrastructure.persistence.database import get_db

router = APIRouter(prefix=f"{config.API_PREFIX}/clientes", tags=["Clientes"])


class ClientListResponse(BaseModel):
    clients: List[AggregatedClient]
    stats: PortfolioStats


@router.get("/", response_model=ClientListResponse, summary="Directorio de clientes y prospectos")
def list_clients(
    q: str = Query("", description="Filtra por nombre o RUC."),
    segment: ClientSegment = Query(ClientSegment.ALL, alias="segmento"),
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
    client_repo: ClientRepository = Depends(get_client_repo),
):
    directory = BuildClientDirectoryUseCase(document_repo, client_repo).execute(user_id)
    return ClientListResponse(clients=directory.search(q, segment), stats=directory.stats)


@router.post("/", response_model=ClientRecord, status_code=201, summary="Guardar un cliente o prospecto")
def save_client(
    record: ClientRecord,
    user_id: str = Depends(get_user_id),
    client_repo: ClientRepository = Depends(get_client_repo),
    db: Session = Depends(get_db),
):
    if not record.name.strip():
        raise HTTPException(status_code=422, detail="El nombre del cliente es obligatorio.")
    saved = client_repo.save_client(record, user_id, record.status or ClientStatus.PROSPECT)
    db.commit()
    return saved


@router.get("/proveedores", response_model=List[ProviderRecord], summary="Maestro de proveedores")
def list_providers(
    user_id: str = Depends(get_user_id),
    provider_repo: ProviderRepository = Depends(get_provider_repo),
):
    return provider_repo.fetch_providers(user_id)


@router.post("/proveedores", response_model=ProviderRecord, status_code=201, summary="Guardar un proveedor")
def save_provider(
    record: ProviderRecord,
    user_id: str = Depends(get_user_id),
    provider_repo: ProviderRepository = Depends(get_provider_repo),
    db: Session = Depends(get_db),
):
    if not record.name.strip():
        raise HTTPException(status_code=422, detail="El nombre del proveedor es obligatorio.")
    saved = provider_repo.save_provider(record, user_id)
    db.commit()
    return saved

# konsul/infrastructure/api/routers/reports_router.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

import config
from konsul.application.use_cases.build_reports import BuildReportsUseCase
from konsul.domain.models.report import ReportsDashboard, TimeRange
from konsul.domain.ports.client_repository import ClientRepository
from konsul.domain.ports.document_repository import DocumentRepository
from konsul.domain.ports.profile_repository import ProfileRepository
from konsul.domain.services.expenses import ExpenseSummary, ProviderStats, expense_summary, hourly_rate, provider_stats
from konsul.infrastructure.api.dependencies import (
    get_client_repo,
    get_document_repo,
    get_profile_repo,
    get_user_id,
)

router = APIRouter(prefix=f"{config.API_PREFIX}/reportes", tags=["Reportes"])


class ExpensesOverview(BaseModel):
    summary: ExpenseSummary
    providers: List[ProviderStats]


class HourlyRateRequest(BaseModel):
    target_income: float = Field(..., ge=0, description="Ingreso mensual deseado.")
    monthly_costs: float = Field(0, ge=0, description="Costos fijos mensuales.")
    billable_hours_per_week: float = Field(..., ge=0)


@router.get("/", response_model=ReportsDashboard, summary="Tablero de reportes del periodo")
def get_dashboard(
    time_range: TimeRange = Query(TimeRange.LAST_12_MONTHS, alias="range"),
    start: Optional[datetime] = Query(None, description="Inicio del rango CUSTOM."),
    end: Optional[datetime] = Query(None, description="Fin del rango CUSTOM."),
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
    profile_repo: ProfileRepository = Depends(get_profile_repo),
    client_repo: ClientRepository = Depends(get_client_repo),
):
    """
    Flujo de caja, embudos, retención, directorio de clientes y proyección
    fiscal. La proyección es una estimación y no sustituye a un contador.
    """
    use_case = BuildReportsUseCase(document_repo, profile_repo, client_repo)
    try:
        return use_case.execute(user_id, time_range, start, end)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/gastos", response_model=ExpensesOverview, summary="Resumen de gastos por proveedor")
def get_expenses(
    user_id: str = Depends(get_user_id),
    document_repo: DocumentRepository = Depends(get_document_repo),
):
    documents = document_repo.fetch_documents(user_id)
    return ExpensesOverview(summary=expense_summary(documents), providers=provider_stats(documents))


@router.post("/tarifa-hora", summary="Calculadora de tarifa por hora")
def calculate_hourly_rate(request: HourlyRateRequest):
    rate = hourly_rate(request.target_income, request.monthly_costs, request.billable_hours_per_week)
    return {"hourly_rate": round(rate, 2)}

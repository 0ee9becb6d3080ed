# konsul/application/use_cases/build_reports.py
import logging
from datetime import datetime
from typing import Optional

from konsul.domain.models.client import ClientDirectory
from konsul.domain.models.document import utc_now
from konsul.domain.models.report import FiscalConfig, ReportsDashboard, TimeRange
from konsul.domain.ports.client_repository import ClientRepository
from konsul.domain.ports.document_repository import DocumentRepository
from konsul.domain.ports.profile_repository import ProfileRepository
from konsul.domain.services.cash_flow import build_cash_flow_report, filter_by_range
from konsul.domain.services.client_aggregator import aggregate_clients
from konsul.domain.services.collection import ClientKeyStrategy
from konsul.domain.services.tax_projection import project_taxes

logger = logging.getLogger(__name__)


class BuildReportsUseCase:
    """
    Recalcula el tablero de reportes desde cero: flujo de caja y proyección
    fiscal sobre el rango pedido, directorio de clientes sobre todo el historial.
    """
    def __init__(
        self,
        document_repo: DocumentRepository,
        profile_repo: ProfileRepository,
        client_repo: Optional[ClientRepository] = None,
        key_strategy: Optional[ClientKeyStrategy] = None
    ):
        self.document_repo = document_repo
        self.profile_repo = profile_repo
        self.client_repo = client_repo
        self.key_strategy = key_strategy

    def execute(
        self,
        user_id: str,
        time_range: TimeRange = TimeRange.LAST_12_MONTHS,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> ReportsDashboard:
        now = now or utc_now()
        documents = self.document_repo.fetch_documents(user_id)
        filtered = filter_by_range(documents, time_range, now, start, end)
        logger.info(f"[{user_id}] {len(filtered)} de {len(documents)} documentos dentro del rango {time_range.value}.")

        fiscal_config = self.profile_repo.get_fiscal_config(user_id)
        if fiscal_config is None:
            logger.info(f"[{user_id}] Perfil sin tipo de entidad. Se asume persona NATURAL.")
            fiscal_config = FiscalConfig()

        seed_clients = self.client_repo.fetch_clients(user_id) if self.client_repo else []

        return ReportsDashboard(
            time_range=time_range,
            generated_at=now,
            document_count=len(filtered),
            cash_flow=build_cash_flow_report(filtered, now, self.key_strategy),
            clients=aggregate_clients(documents, seed_clients, self.key_strategy, now),
            tax=project_taxes(filtered, fiscal_config, time_range, start, end),
        )


class BuildClientDirectoryUseCase:
    def __init__(
        self,
        document_repo: DocumentRepository,
        client_repo: ClientRepository,
        key_strategy: Optional[ClientKeyStrategy] = None
    ):
        self.document_repo = document_repo
        self.client_repo = client_repo
        self.key_strategy = key_strategy

    def execute(self, user_id: str, now: Optional[datetime] = None) -> ClientDirectory:
        documents = self.document_repo.fetch_documents(user_id)
        records = self.client_repo.fetch_clients(user_id)
        directory = aggregate_clients(documents, records, self.key_strategy, now)
        logger.info(
            f"[{user_id}] Directorio: {len(directory.clients)} contactos, "
            f"{directory.stats.total_active_clients} clientes activos."
        )
        return directory

# konsul/domain/models/client.py
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class ClientStatus(str, Enum):
    CLIENT = "CLIENT"
    PROSPECT = "PROSPECT"


class ClientSegment(str, Enum):
    ALL = "ALL"
    CLIENT = "CLIENT"
    PROSPECT = "PROSPECT"
    VIP = "VIP"


class ClientRecord(BaseModel):
    """Registro del maestro de clientes (tablas `clients` y `prospects`)."""
    id: Optional[str] = None
    name: str
    tax_id: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    tags: Optional[str] = None
    notes: Optional[str] = None
    status: ClientStatus = ClientStatus.PROSPECT

    model_config = ConfigDict(from_attributes=True)


class AggregatedClient(BaseModel):
    name: str
    tax_id: str = "N/A"
    total_invoiced: float = 0.0
    total_quoted: float = 0.0
    total_collected: float = 0.0
    invoice_count: int = 0
    quote_count: int = 0
    quotes_won: int = 0
    last_interaction: Optional[datetime] = None
    status: ClientStatus = ClientStatus.PROSPECT
    avg_ticket: float = 0.0
    display_value: float = 0.0
    win_rate: float = 0.0
    is_vip: bool = False
    record: Optional[ClientRecord] = None


class PortfolioStats(BaseModel):
    total_active_clients: int = 0
    total_portfolio_value: float = 0.0
    avg_global_ticket: float = 0.0
    total_pipeline_value: float = 0.0
    open_opportunities_count: int = 0


class ClientDirectory(BaseModel):
    clients: Dict[str, AggregatedClient]
    stats: PortfolioStats

    def ranked(self) -> List[AggregatedClient]:
        """VIP primero, luego por valor mostrado y por interacción más reciente."""
        def sort_key(client: AggregatedClient):
            last = client.last_interaction.timestamp() if client.last_interaction else float("-inf")
            return (not client.is_vip, -client.display_value, -last)
        return sorted(self.clients.values(), key=sort_key)

    def search(self, term: str = "", segment: ClientSegment = ClientSegment.ALL) -> List[AggregatedClient]:
        needle = term.lower()
        result = []
        for client in self.ranked():
            if needle and needle not in client.name.lower() and needle not in client.tax_id.lower():
                continue
            if segment == ClientSegment.CLIENT and client.status != ClientStatus.CLIENT:
                continue
            if segment == ClientSegment.PROSPECT and client.status != ClientStatus.PROSPECT:
                continue
            if segment == ClientSegment.VIP and not client.is_vip:
                continue
            result.append(client)
        return result


class ProviderRecord(BaseModel):
    """Registro del maestro de proveedores (tabla `providers`)."""
    id: Optional[str] = None
    name: str
    tax_id: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

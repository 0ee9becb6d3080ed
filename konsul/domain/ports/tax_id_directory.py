# konsul/domain/ports/tax_id_directory.py
from abc import ABC, abstractmethod
from typing import Literal, Optional

from pydantic import BaseModel


class Contribuyente(BaseModel):
    ruc: str
    dv: str = ""
    razon_social: str
    tipo_persona: Literal['NATURAL', 'JURIDICA'] = 'JURIDICA'
    direccion: Optional[str] = None
    estado: Literal['ACTIVO', 'INACTIVO', 'NO_HABIDO'] = 'ACTIVO'
    email: Optional[str] = None


class TaxIdDirectory(ABC):
    """Puerto para consultar el registro de contribuyentes (RUC)."""

    @abstractmethod
    def lookup(self, ruc: str) -> Optional[Contribuyente]:
        """Retorna el contribuyente o None si el RUC no existe."""
        pass

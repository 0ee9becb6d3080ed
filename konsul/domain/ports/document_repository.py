# konsul/domain/ports/document_repository.py
from abc import ABC, abstractmethod
from typing import List, Optional

from konsul.domain.models.document import Document


class DocumentRepository(ABC):
    """
    Contrato de persistencia de facturas, cotizaciones y gastos.
    Las facturas y cotizaciones viven en `invoices`; los gastos en `expenses`.
    """

    @abstractmethod
    def fetch_documents(self, user_id: str) -> List[Document]:
        """
        Devuelve todos los documentos del usuario (ambas tablas combinadas),
        del más reciente al más antiguo.
        """
        pass

    @abstractmethod
    def find_by_id(self, document_id: str) -> Optional[Document]:
        """Busca un documento por su ID en cualquiera de las dos tablas."""
        pass

    @abstractmethod
    def save_document(self, document: Document) -> None:
        """Inserta o actualiza el documento en la tabla que le corresponde."""
        pass

    @abstractmethod
    def delete_document(self, document_id: str) -> bool:
        """Elimina el documento. Retorna False si no existía."""
        pass

    @abstractmethod
    def search(self, user_id: str, term: str) -> List[Document]:
        """Facturas y cotizaciones cuyo cliente o ID contienen `term`."""
        pass

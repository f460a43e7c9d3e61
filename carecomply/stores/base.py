"""
CareComply Store Interfaces — Document Store and Override Store collaborators.

Each method is one independent request. Implementations raise
CareComplyStoreUnavailableError when the backing service fails; they never
return empty results in place of an error.
"""

from __future__ import annotations

import abc
from typing import Any, Dict, List, Optional

from carecomply.compliance.overrides import ComplianceOverride, FolderOverride, OverrideSet
from carecomply.documents.models import Document, NewDocument


class DocumentStore(abc.ABC):
    """CRUD + archive transitions for Document records."""

    name = "document_store"

    @abc.abstractmethod
    def create(self, document: NewDocument) -> Document:
        """Persist a new non-archived document; the store assigns id and created_at."""

    @abc.abstractmethod
    def get(self, doc_id: str) -> Optional[Document]:
        ...

    @abc.abstractmethod
    def list(self, client_id: str) -> List[Document]:
        """All documents for a client, archived included, newest upload first."""

    @abc.abstractmethod
    def update(self, doc_id: str, fields: Dict[str, Any]) -> Optional[Document]:
        ...

    @abc.abstractmethod
    def archive(self, doc_id: str, archived_by: Optional[str] = None) -> Optional[Document]:
        """Atomically mark archived, moving folder_id into original_folder_id."""

    @abc.abstractmethod
    def unarchive(self, doc_id: str) -> Optional[Document]:
        """Atomically clear the archive flag, restoring folder_id."""

    @abc.abstractmethod
    def delete(self, doc_id: str) -> bool:
        """Hard delete. Returns False when nothing was deleted."""


class OverrideStore(abc.ABC):
    """Get/set for per-client compliance and folder overrides (upsert by key)."""

    name = "override_store"

    @abc.abstractmethod
    def list_compliance(self, client_id: str) -> List[ComplianceOverride]:
        ...

    @abc.abstractmethod
    def get_compliance(self, client_id: str, document_type: str) -> Optional[ComplianceOverride]:
        ...

    @abc.abstractmethod
    def set_compliance(self, override: ComplianceOverride) -> ComplianceOverride:
        ...

    @abc.abstractmethod
    def delete_compliance(self, client_id: str, document_type: str) -> bool:
        ...

    @abc.abstractmethod
    def list_folders(self, client_id: str) -> List[FolderOverride]:
        ...

    @abc.abstractmethod
    def get_folder(self, client_id: str, folder_id: str) -> Optional[FolderOverride]:
        ...

    @abc.abstractmethod
    def set_folder(self, override: FolderOverride) -> FolderOverride:
        ...

    @abc.abstractmethod
    def delete_folder(self, client_id: str, folder_id: str) -> bool:
        ...

    def overrides_for(self, client_id: str) -> OverrideSet:
        """Fresh overlay snapshot for one client."""
        return OverrideSet(
            client_id,
            compliance=self.list_compliance(client_id),
            folders=self.list_folders(client_id),
        )

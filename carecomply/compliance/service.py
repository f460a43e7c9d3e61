"""
CareComply Compliance Service — Status queries and override toggles per client.

Every query reads a fresh snapshot (documents + overrides) from the stores and
hands it to the stateless AggregationEngine; nothing is cached between calls.
Store failures propagate as CareComplyStoreUnavailableError.

    service = ComplianceService(taxonomy, document_store, override_store)
    service.overall_status("client-1")            # ComplianceStatus
    service.visible_folders("client-1")           # [FolderView, ...]
    service.set_not_required("client-1", "Wound Care Plan", reason="No wounds")
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from carecomply.compliance.aggregation import (
    AggregationEngine,
    ClientComplianceSummary,
    TrackedItemStatus,
)
from carecomply.compliance.overrides import (
    ComplianceOverride,
    FolderOverride,
    OverrideSet,
    VisibleFolder,
    visible_folders,
)
from carecomply.compliance.status import ComplianceStatus
from carecomply.compliance.toggles import OverrideManager
from carecomply.documents import membership
from carecomply.documents.models import Document
from carecomply.engine.config import ComplianceConfig
from carecomply.engine.logging import log, log_status_evaluation
from carecomply.stores.base import DocumentStore, OverrideStore
from carecomply.taxonomy.models import Taxonomy

logger = logging.getLogger("carecomply.compliance.service")


class FolderView(BaseModel):
    """A visible folder with its resolved name, status and document count."""

    folder_id: str
    name: str
    customized: bool = False
    status: ComplianceStatus = ComplianceStatus.NONE
    document_count: int = 0
    subfolders: List["FolderView"] = Field(default_factory=list)


class MissingDocumentsEntry(BaseModel):
    client_id: str
    total_required: int
    total_missing: int
    missing_documents: List[str]
    completion_rate: int


class ComplianceService:
    """Read-side status contract plus the per-client override toggles."""

    def __init__(
        self,
        taxonomy: Taxonomy,
        document_store: DocumentStore,
        override_store: OverrideStore,
        config: Optional[ComplianceConfig] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._taxonomy = taxonomy
        self._documents = document_store
        self._overrides = override_store
        self._config = config or ComplianceConfig()
        self._clock = clock
        self._engine = AggregationEngine(
            taxonomy, compliant_threshold_percent=self._config.compliant_threshold_percent
        )
        self._toggles = OverrideManager(taxonomy, override_store)

    @property
    def taxonomy(self) -> Taxonomy:
        return self._taxonomy

    @property
    def toggles(self) -> OverrideManager:
        return self._toggles

    def _snapshot(self, client_id: str) -> Tuple[List[Document], OverrideSet]:
        documents = self._documents.list(client_id)
        overrides = self._overrides.overrides_for(client_id)
        return documents, overrides

    # -------------------------------------------------------------------
    # Status queries
    # -------------------------------------------------------------------

    def folder_status(self, folder_id: str, client_id: str) -> ComplianceStatus:
        """Status of one folder (sub-folders included) for a client."""
        folder = self._taxonomy.folder(folder_id)
        documents, overrides = self._snapshot(client_id)
        return self._engine.folder_status(folder, documents, overrides, self._clock())

    def folder_items(self, folder_id: str, client_id: str) -> List[TrackedItemStatus]:
        folder = self._taxonomy.folder(folder_id)
        documents, overrides = self._snapshot(client_id)
        return self._engine.item_statuses(folder, documents, overrides, self._clock())

    def overall_status(self, client_id: str) -> ComplianceStatus:
        """Most severe status across the client's visible folders."""
        start = time.monotonic()
        documents, overrides = self._snapshot(client_id)
        status = self._engine.overall_status(documents, overrides, self._clock())
        duration_ms = (time.monotonic() - start) * 1000
        logger.debug(f"Overall status for {client_id}: {status.value} ({duration_ms:.1f}ms)")
        log(log_status_evaluation(client_id, "overall", status.value, duration_ms=duration_ms))
        return status

    def visible_folders(self, client_id: str) -> List[FolderView]:
        """Visible folders in taxonomy order, with status and document count."""
        documents, overrides = self._snapshot(client_id)
        today = self._clock()
        return [
            self._view(folder, documents, overrides, today)
            for folder in visible_folders(self._taxonomy, overrides)
        ]

    def _view(
        self,
        visible: VisibleFolder,
        documents: List[Document],
        overrides: OverrideSet,
        today: date,
    ) -> FolderView:
        folder = self._taxonomy.folder(visible.folder_id)
        return FolderView(
            folder_id=visible.folder_id,
            name=visible.name,
            customized=visible.customized,
            status=self._engine.folder_status(folder, documents, overrides, today),
            document_count=membership.count_in_folder(self._taxonomy, folder.id, documents),
            subfolders=[
                self._view(sub, documents, overrides, today) for sub in visible.subfolders
            ],
        )

    def documents_in_folder(self, folder_id: str, client_id: str) -> List[Document]:
        """Documents shown in a folder, newest first; ``"archive"`` lists archived ones."""
        documents, _ = self._snapshot(client_id)
        return membership.documents_in_folder(self._taxonomy, folder_id, documents)

    def client_summary(self, client_id: str) -> ClientComplianceSummary:
        documents, overrides = self._snapshot(client_id)
        summary = self._engine.client_summary(client_id, documents, overrides, self._clock())
        log(log_status_evaluation(client_id, "summary", summary.overall_status.value))
        return summary

    def missing_documents_report(self, client_ids: Iterable[str]) -> List[MissingDocumentsEntry]:
        """
        Clients with at least one required tracked item lacking a current
        document, with their completion rate.
        """
        report: List[MissingDocumentsEntry] = []
        for client_id in client_ids:
            documents, overrides = self._snapshot(client_id)
            summary = self._engine.client_summary(client_id, documents, overrides, self._clock())
            if not summary.missing_documents:
                continue
            total = summary.total_required
            missing = len(summary.missing_documents)
            report.append(MissingDocumentsEntry(
                client_id=client_id,
                total_required=total,
                total_missing=missing,
                missing_documents=summary.missing_documents,
                completion_rate=round((total - missing) / total * 100) if total else 100,
            ))
        return report

    # -------------------------------------------------------------------
    # Override toggles
    # -------------------------------------------------------------------

    def set_not_required(
        self,
        client_id: str,
        document_type: str,
        reason: Optional[str] = None,
        changed_by: Optional[Any] = None,
    ) -> ComplianceOverride:
        return self._toggles.set_not_required(client_id, document_type, reason, changed_by)

    def set_required(
        self,
        client_id: str,
        document_type: str,
        changed_by: Optional[Any] = None,
    ) -> bool:
        return self._toggles.set_required(client_id, document_type, changed_by)

    def customize_folder(
        self,
        client_id: str,
        folder_id: str,
        custom_name: Optional[str] = None,
        hidden: Optional[bool] = None,
        changed_by: Optional[Any] = None,
    ) -> Optional[FolderOverride]:
        return self._toggles.customize_folder(client_id, folder_id, custom_name, hidden, changed_by)

    def reset_folder(self, client_id: str, folder_id: str, changed_by: Optional[Any] = None) -> bool:
        return self._toggles.reset_folder(client_id, folder_id, changed_by)

    def compliance_overrides(self, client_id: str) -> Dict[str, ComplianceOverride]:
        return {o.document_type: o for o in self._overrides.list_compliance(client_id)}

    def __repr__(self) -> str:
        return (
            f"<ComplianceService taxonomy=v{self._taxonomy.version} "
            f"threshold={self._config.compliant_threshold_percent}%>"
        )

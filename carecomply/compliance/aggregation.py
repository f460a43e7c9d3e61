"""
CareComply Aggregation Engine — Folder and client compliance rollups.

folder_status(F):
    1. Flatten F's tracked documents with its sub-folders' tracked documents.
    2. Nothing tracked                          → none
    3. Each item: not-required override         → excluded
                  no current document           → overdue
                  current document              → evaluated status
    4. Every item excluded                      → not-required
    5. Otherwise the most severe included status (overdue > due-soon >
       compliant > none).

overall_status: the same reduction across every folder visible to the client,
with none and not-required ranking equally at the bottom.

Stateless: every call works from the snapshot it is given.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from carecomply.compliance.overrides import OverrideSet
from carecomply.compliance.status import (
    ComplianceStatus,
    derive_due_date,
    document_status,
    reduce_statuses,
)
from carecomply.documents.membership import current_document
from carecomply.documents.models import Document
from carecomply.taxonomy.models import AnyFolder, Frequency, Taxonomy, flatten_tracked_documents


class TrackedItemStatus(BaseModel):
    name: str
    frequency: Frequency
    status: ComplianceStatus
    due_date: Optional[date] = None
    document_id: Optional[str] = None
    not_required: bool = False
    reason: Optional[str] = None

    @property
    def is_missing(self) -> bool:
        return not self.not_required and self.document_id is None


class ClientComplianceSummary(BaseModel):
    client_id: str
    overall_status: ComplianceStatus
    percentage: int = 0
    compliant_count: int = 0
    total_required: int = 0
    is_compliant: bool = False
    folders: Dict[str, ComplianceStatus] = Field(default_factory=dict)
    missing_documents: List[str] = Field(default_factory=list)
    overdue_documents: List[str] = Field(default_factory=list)
    due_soon_documents: List[str] = Field(default_factory=list)
    not_required_documents: List[str] = Field(default_factory=list)


class AggregationEngine:
    """Combines evaluator output across folders for one client snapshot."""

    def __init__(self, taxonomy: Taxonomy, compliant_threshold_percent: int = 75):
        self._taxonomy = taxonomy
        self._threshold = compliant_threshold_percent

    @property
    def taxonomy(self) -> Taxonomy:
        return self._taxonomy

    def _folder(self, folder: Union[str, AnyFolder]) -> AnyFolder:
        if isinstance(folder, str):
            return self._taxonomy.folder(folder)
        return folder

    # -------------------------------------------------------------------
    # Per folder
    # -------------------------------------------------------------------

    def item_statuses(
        self,
        folder: Union[str, AnyFolder],
        documents: Sequence[Document],
        overrides: OverrideSet,
        today: Optional[date] = None,
    ) -> List[TrackedItemStatus]:
        """Status of every tracked item in the folder's flattened list."""
        items: List[TrackedItemStatus] = []
        for tracked in flatten_tracked_documents(self._folder(folder)):
            if overrides.is_not_required(tracked.name):
                items.append(TrackedItemStatus(
                    name=tracked.name,
                    frequency=tracked.frequency,
                    status=ComplianceStatus.NOT_REQUIRED,
                    not_required=True,
                    reason=overrides.reason_for(tracked.name),
                ))
                continue

            current = current_document(documents, tracked.name)
            if current is None:
                # Required obligation without evidence.
                items.append(TrackedItemStatus(
                    name=tracked.name,
                    frequency=tracked.frequency,
                    status=ComplianceStatus.OVERDUE,
                ))
                continue

            items.append(TrackedItemStatus(
                name=tracked.name,
                frequency=tracked.frequency,
                status=document_status(current, tracked.frequency, today),
                due_date=derive_due_date(current, tracked.frequency),
                document_id=current.id,
            ))
        return items

    def folder_status(
        self,
        folder: Union[str, AnyFolder],
        documents: Sequence[Document],
        overrides: OverrideSet,
        today: Optional[date] = None,
    ) -> ComplianceStatus:
        items = self.item_statuses(folder, documents, overrides, today)
        return self._rollup(items)

    @staticmethod
    def _rollup(items: Sequence[TrackedItemStatus]) -> ComplianceStatus:
        if not items:
            return ComplianceStatus.NONE
        included = [i.status for i in items if not i.not_required]
        if not included:
            return ComplianceStatus.NOT_REQUIRED
        return reduce_statuses(included)

    # -------------------------------------------------------------------
    # Per client
    # -------------------------------------------------------------------

    def visible_top_level(self, overrides: OverrideSet) -> List[AnyFolder]:
        return [f for f in self._taxonomy.folders if overrides.is_folder_visible(f)]

    def folder_statuses(
        self,
        documents: Sequence[Document],
        overrides: OverrideSet,
        today: Optional[date] = None,
    ) -> Dict[str, ComplianceStatus]:
        """Status of every visible top-level folder, keyed by folder id, in order."""
        return {
            folder.id: self.folder_status(folder, documents, overrides, today)
            for folder in self.visible_top_level(overrides)
        }

    def overall_status(
        self,
        documents: Sequence[Document],
        overrides: OverrideSet,
        today: Optional[date] = None,
    ) -> ComplianceStatus:
        return reduce_statuses(self.folder_statuses(documents, overrides, today).values())

    def client_summary(
        self,
        client_id: str,
        documents: Sequence[Document],
        overrides: OverrideSet,
        today: Optional[date] = None,
    ) -> ClientComplianceSummary:
        """
        Overall status plus counts and per-document breakdown across visible
        folders. Due-soon items still count as compliant for the percentage.
        Missing and overdue names are disjoint: an item without a current
        document is listed as missing only, though both block is_compliant.
        """
        folders: Dict[str, ComplianceStatus] = {}
        items: List[TrackedItemStatus] = []
        for folder in self.visible_top_level(overrides):
            folder_items = self.item_statuses(folder, documents, overrides, today)
            folders[folder.id] = self._rollup(folder_items)
            items.extend(folder_items)

        included = [i for i in items if not i.not_required]
        compliant_count = sum(
            1 for i in included
            if i.status in (ComplianceStatus.COMPLIANT, ComplianceStatus.DUE_SOON)
        )
        total = len(included)
        percentage = round(compliant_count / total * 100) if total else 100
        any_overdue = any(i.status == ComplianceStatus.OVERDUE for i in included)

        return ClientComplianceSummary(
            client_id=client_id,
            overall_status=reduce_statuses(folders.values()),
            percentage=percentage,
            compliant_count=compliant_count,
            total_required=total,
            is_compliant=percentage >= self._threshold and not any_overdue,
            folders=folders,
            missing_documents=_names(i for i in included if i.is_missing),
            overdue_documents=_names(
                i for i in included if i.status == ComplianceStatus.OVERDUE and not i.is_missing
            ),
            due_soon_documents=_names(i for i in included if i.status == ComplianceStatus.DUE_SOON),
            not_required_documents=_names(i for i in items if i.not_required),
        )


def _names(items: Iterable[TrackedItemStatus]) -> List[str]:
    return [i.name for i in items]

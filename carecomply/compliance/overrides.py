"""
CareComply Override Resolver — Per-client overlays on the shared taxonomy.

ComplianceOverride: (client_id, document_type) → not required (+ reason)
FolderOverride:     (client_id, folder_id)     → custom name / hidden

Overrides are sparse: an absent record reads exactly like a default-valued
record. They are merged at read time; the taxonomy is never copied or mutated.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from carecomply.taxonomy.models import AnyFolder, CompositeFolder, Taxonomy


class ComplianceOverride(BaseModel):
    client_id: str
    document_type: str
    not_required: bool = False
    reason: Optional[str] = Field(default=None, max_length=1000)
    updated_at: Optional[datetime] = None

    @property
    def is_default(self) -> bool:
        return not self.not_required


class FolderOverride(BaseModel):
    """``hidden=None`` follows the taxonomy's default visibility."""

    client_id: str
    folder_id: str
    custom_name: Optional[str] = Field(default=None, max_length=200)
    hidden: Optional[bool] = None
    updated_at: Optional[datetime] = None

    @property
    def is_default(self) -> bool:
        return not self.custom_name and self.hidden is None


class VisibleFolder(BaseModel):
    """A folder as exposed to one client: resolved name, visible sub-folders."""

    folder_id: str
    name: str
    customized: bool = False
    subfolders: List["VisibleFolder"] = Field(default_factory=list)


def resolved_name(folder: AnyFolder, override: Optional[FolderOverride]) -> str:
    if override is not None and override.custom_name:
        return override.custom_name
    return folder.display_name


def is_visible(folder: AnyFolder, override: Optional[FolderOverride]) -> bool:
    if override is not None and override.hidden is not None:
        return not override.hidden
    return folder.default_visible


class OverrideSet:
    """All overrides for one client, keyed for lookup."""

    def __init__(
        self,
        client_id: str,
        compliance: Iterable[ComplianceOverride] = (),
        folders: Iterable[FolderOverride] = (),
    ):
        self.client_id = client_id
        self._compliance: Dict[str, ComplianceOverride] = {
            o.document_type: o for o in compliance if o.client_id == client_id
        }
        self._folders: Dict[str, FolderOverride] = {
            o.folder_id: o for o in folders if o.client_id == client_id
        }

    def is_not_required(self, document_type: str) -> bool:
        override = self._compliance.get(document_type)
        return override is not None and override.not_required

    def reason_for(self, document_type: str) -> Optional[str]:
        override = self._compliance.get(document_type)
        if override is None or not override.not_required:
            return None
        return override.reason

    def compliance_override(self, document_type: str) -> Optional[ComplianceOverride]:
        return self._compliance.get(document_type)

    def folder_override(self, folder_id: str) -> Optional[FolderOverride]:
        return self._folders.get(folder_id)

    def is_folder_visible(self, folder: AnyFolder) -> bool:
        return is_visible(folder, self.folder_override(folder.id))

    def folder_name(self, folder: AnyFolder) -> str:
        return resolved_name(folder, self.folder_override(folder.id))

    def __repr__(self) -> str:
        return (
            f"<OverrideSet client='{self.client_id}' "
            f"compliance={len(self._compliance)} folders={len(self._folders)}>"
        )


def _expose(folder: AnyFolder, overrides: OverrideSet) -> VisibleFolder:
    override = overrides.folder_override(folder.id)
    subfolders: List[VisibleFolder] = []
    if isinstance(folder, CompositeFolder):
        subfolders = [
            _expose(sub, overrides)
            for sub in folder.subfolders
            if overrides.is_folder_visible(sub)
        ]
    return VisibleFolder(
        folder_id=folder.id,
        name=resolved_name(folder, override),
        customized=override is not None and not override.is_default,
        subfolders=subfolders,
    )


def visible_folders(taxonomy: Taxonomy, overrides: OverrideSet) -> List[VisibleFolder]:
    """Top-level folders visible to the client, in taxonomy-declared order."""
    return [
        _expose(folder, overrides)
        for folder in taxonomy.folders
        if overrides.is_folder_visible(folder)
    ]

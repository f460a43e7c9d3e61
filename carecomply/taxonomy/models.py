"""
CareComply Taxonomy Models — Immutable folder / tracked-document catalog.

Folders are a tagged variant discriminated on ``kind``:

    TrackedFolder        — declares tracked documents (obligations)
    MultiArtifactFolder  — free-form evidence bucket, tracks nothing
    CompositeFolder      — own tracked documents + one level of sub-folders

The catalog is constructed once at process start and passed explicitly to the
aggregation engine and document lifecycle manager. It is never mutated.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Annotated, Dict, Iterator, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from carecomply.engine.errors import CareComplyNotFoundError

# Virtual folder collecting every archived document; never part of the tree.
ARCHIVE_FOLDER_ID = "archive"


class Frequency(str, Enum):
    """Recurrence cadence of a tracked document."""

    ANNUAL = "annual"
    SIX_MONTHLY = "6-monthly"
    AS_NEEDED = "as-needed"

    @property
    def offset(self) -> Optional[timedelta]:
        """Days added to the upload date to obtain the due date (None = never due)."""
        days = FREQUENCY_OFFSET_DAYS.get(self)
        return timedelta(days=days) if days is not None else None


FREQUENCY_OFFSET_DAYS: Dict[Frequency, int] = {
    Frequency.ANNUAL: 365,
    Frequency.SIX_MONTHLY: 182,
}


class TrackedDocument(BaseModel):
    """A taxonomy-declared obligation subject to compliance evaluation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, max_length=200)
    frequency: Frequency = Frequency.ANNUAL


class _FolderBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1, max_length=100)
    display_name: str = Field(min_length=1, max_length=200)
    default_visible: bool = True

    @property
    def allows_multiple_artifacts(self) -> bool:
        return False


class TrackedFolder(_FolderBase):
    kind: Literal["tracked"] = "tracked"
    tracked_documents: Tuple[TrackedDocument, ...] = ()


class MultiArtifactFolder(_FolderBase):
    """Free-form folder: any number of ad-hoc documents, no obligations."""

    kind: Literal["multi_artifact"] = "multi_artifact"

    @property
    def allows_multiple_artifacts(self) -> bool:
        return True


LeafFolder = Annotated[
    Union[TrackedFolder, MultiArtifactFolder],
    Field(discriminator="kind"),
]


class CompositeFolder(_FolderBase):
    """Folder with its own tracked documents and one level of sub-folders."""

    kind: Literal["composite"] = "composite"
    tracked_documents: Tuple[TrackedDocument, ...] = ()
    subfolders: Tuple[LeafFolder, ...] = ()


Folder = Annotated[
    Union[TrackedFolder, MultiArtifactFolder, CompositeFolder],
    Field(discriminator="kind"),
]

AnyFolder = Union[TrackedFolder, MultiArtifactFolder, CompositeFolder]


def own_tracked_documents(folder: AnyFolder) -> Tuple[TrackedDocument, ...]:
    """Tracked documents declared directly on *folder* (sub-folders excluded)."""
    if isinstance(folder, MultiArtifactFolder):
        return ()
    if isinstance(folder, (TrackedFolder, CompositeFolder)):
        return folder.tracked_documents
    raise TypeError(f"Unknown folder variant: {type(folder).__name__}")


def flatten_tracked_documents(folder: AnyFolder) -> List[TrackedDocument]:
    """The folder's own tracked documents followed by all of its sub-folders'."""
    flattened = list(own_tracked_documents(folder))
    if isinstance(folder, CompositeFolder):
        for sub in folder.subfolders:
            flattened.extend(own_tracked_documents(sub))
    return flattened


class Taxonomy(BaseModel):
    """Versioned, ordered, read-only folder catalog."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = "1"
    folders: Tuple[Folder, ...] = ()

    @model_validator(mode="after")
    def _check_unique(self) -> "Taxonomy":
        seen_ids: Dict[str, str] = {}
        seen_docs: Dict[str, str] = {}
        for folder in self.all_folders():
            if folder.id == ARCHIVE_FOLDER_ID:
                raise ValueError(f"Folder id '{ARCHIVE_FOLDER_ID}' is reserved")
            if folder.id in seen_ids:
                raise ValueError(f"Duplicate folder id '{folder.id}'")
            seen_ids[folder.id] = folder.display_name
            for doc in own_tracked_documents(folder):
                if doc.name in seen_docs:
                    raise ValueError(
                        f"Tracked document '{doc.name}' declared in both "
                        f"'{seen_docs[doc.name]}' and '{folder.id}'"
                    )
                seen_docs[doc.name] = folder.id
        return self

    def iter_folders(self) -> Iterator[AnyFolder]:
        """Top-level folders, each followed by its sub-folders, in declared order."""
        for folder in self.folders:
            yield folder
            if isinstance(folder, CompositeFolder):
                yield from folder.subfolders

    def all_folders(self) -> List[AnyFolder]:
        return list(self.iter_folders())

    def find_folder(self, folder_id: str) -> Optional[AnyFolder]:
        for folder in self.iter_folders():
            if folder.id == folder_id:
                return folder
        return None

    def folder(self, folder_id: str) -> AnyFolder:
        """Look up a top-level or sub-folder by id. Raises CareComplyNotFoundError."""
        found = self.find_folder(folder_id)
        if found is None:
            raise CareComplyNotFoundError(
                f"Folder '{folder_id}' not found in taxonomy v{self.version}",
                resource_type="folder",
                resource_id=folder_id,
            )
        return found

    def flattened_tracked_documents(self, folder: Union[str, AnyFolder]) -> List[TrackedDocument]:
        if isinstance(folder, str):
            folder = self.folder(folder)
        return flatten_tracked_documents(folder)

    def tracked_document(self, name: str) -> Optional[TrackedDocument]:
        for folder in self.iter_folders():
            for doc in own_tracked_documents(folder):
                if doc.name == name:
                    return doc
        return None

    def tracked_names(self) -> List[str]:
        return [doc.name for f in self.iter_folders() for doc in own_tracked_documents(f)]

    def multi_artifact_folders(self) -> List[MultiArtifactFolder]:
        return [f for f in self.iter_folders() if isinstance(f, MultiArtifactFolder)]

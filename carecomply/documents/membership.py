"""
CareComply Folder Membership — Which documents appear in which folder.

Rules, in order:
1. Archived documents appear in the Archive pseudo-folder and nowhere else.
2. Explicit placement: ``document.folder_id == folder.id``.
3. Tracked / composite folders: unplaced documents whose type is one of the
   folder's own tracked document names.
4. Multi-artifact folders: the legacy name/prefix rule for records created
   before ``folder_id`` existed (``matches_legacy_folder``, the only place that
   rule lives).
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from carecomply.documents.models import Document
from carecomply.taxonomy.models import (
    ARCHIVE_FOLDER_ID,
    AnyFolder,
    MultiArtifactFolder,
    Taxonomy,
    own_tracked_documents,
)


def matches_legacy_folder(doc_type: str, folder: MultiArtifactFolder) -> bool:
    """
    Backward-compatible match for pre-folder_id records: the document type is
    the folder's display name, or is prefixed with ``"<display name>:"``.
    """
    name = folder.display_name
    return doc_type == name or doc_type.startswith(name + ":")


def belongs_to_folder(document: Document, folder: AnyFolder) -> bool:
    """Membership of a non-archived document in a taxonomy folder."""
    if document.is_archived:
        return False
    if document.folder_id is not None:
        return document.folder_id == folder.id
    if isinstance(folder, MultiArtifactFolder):
        return matches_legacy_folder(document.document_type, folder)
    return any(doc.name == document.document_type for doc in own_tracked_documents(folder))


def documents_in_folder(
    taxonomy: Taxonomy,
    folder_id: str,
    documents: Iterable[Document],
) -> List[Document]:
    """
    Documents shown in *folder_id*, newest upload first.
    ``ARCHIVE_FOLDER_ID`` selects every archived document.

    Raises CareComplyNotFoundError for an unknown folder id.
    """
    if folder_id == ARCHIVE_FOLDER_ID:
        selected = [d for d in documents if d.is_archived]
    else:
        folder = taxonomy.folder(folder_id)
        selected = [d for d in documents if belongs_to_folder(d, folder)]
    return sorted(selected, key=_newest_first_key, reverse=True)


def count_in_folder(taxonomy: Taxonomy, folder_id: str, documents: Iterable[Document]) -> int:
    return len(documents_in_folder(taxonomy, folder_id, documents))


def current_document(documents: Iterable[Document], document_type: str) -> Optional[Document]:
    """
    The non-archived document satisfying *document_type*. If concurrent writes
    left more than one, the latest upload (then latest creation) wins.
    """
    candidates = [
        d for d in documents
        if not d.is_archived and d.document_type == document_type
    ]
    if not candidates:
        return None
    return max(candidates, key=_newest_first_key)


def _newest_first_key(document: Document):
    created = document.created_at.timestamp() if document.created_at else 0.0
    return (document.upload_date, created)

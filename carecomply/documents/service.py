"""
CareComply Document Lifecycle Manager — Upload, edit, archive, unarchive, delete.

Handles:
- Upload validation (binary: single file, size, MIME; link: name + URL)
  strictly before any store or file mutation
- Placement validation against the taxonomy
- Archive / unarchive transitions (folder_id ↔ original_folder_id)
- Hard delete of the record and its stored file
- Folder listings, counts and search over a fresh store snapshot

The manager never writes to the taxonomy and never caches documents.
"""

from __future__ import annotations

import io
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from carecomply.documents import membership
from carecomply.documents.models import (
    BinaryUpload,
    Document,
    DocumentEdit,
    LinkUpload,
    NewDocument,
    UploadPayload,
)
from carecomply.documents.storage import FileStorage
from carecomply.engine.config import DocumentsConfig
from carecomply.engine.errors import CareComplyNotFoundError, CareComplyValidationError
from carecomply.engine.logging import log, log_document_operation
from carecomply.stores.base import DocumentStore
from carecomply.taxonomy.models import (
    ARCHIVE_FOLDER_ID,
    MultiArtifactFolder,
    Taxonomy,
    own_tracked_documents,
)

logger = logging.getLogger("carecomply.documents.service")

IMMUTABLE_FIELDS = ("document_type", "folder_id")


def accepts_mime_type(mime_type: str, accepted: Sequence[str]) -> bool:
    """
    Check a MIME type against an accepted list.

    Supports exact matches ("application/pdf"), category wildcards
    ("image/*") and the universal "*/*".
    """
    if "*/*" in accepted:
        return True
    for allowed in accepted:
        if allowed == mime_type:
            return True
        if allowed.endswith("/*"):
            category = allowed.split("/")[0]
            if mime_type.startswith(category + "/"):
                return True
    return False


class DocumentLifecycleManager:
    """
    Evidence-artifact lifecycle for one deployment.

    The taxonomy is injected once; stores are reached per call.
    """

    def __init__(
        self,
        taxonomy: Taxonomy,
        document_store: DocumentStore,
        file_storage: FileStorage,
        config: Optional[DocumentsConfig] = None,
    ):
        self._taxonomy = taxonomy
        self._store = document_store
        self._files = file_storage
        self._config = config or DocumentsConfig()

    # -------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------

    def validate_binary(self, payload: BinaryUpload) -> Tuple[bool, Optional[str]]:
        """Returns (is_valid, error_message_or_None)."""
        if len(payload.files) != 1:
            return False, f"Exactly one file must be uploaded, got {len(payload.files)}"

        upload = payload.files[0]
        if not upload.file_name.strip():
            return False, "Uploaded file has no name"

        mime_type = upload.mime_type or self._files.detect_mime_type(upload.file_name)
        if not accepts_mime_type(mime_type, self._config.accepted_mime_types):
            return False, (
                f"File type '{mime_type}' is not an accepted evidence format. "
                f"Allowed: {self._config.accepted_mime_types}"
            )

        max_bytes = self._config.max_upload_size_mb * 1024 * 1024
        if upload.size_bytes > max_bytes:
            return False, (
                f"File size ({upload.size_bytes / 1024 / 1024:.1f} MB) exceeds "
                f"limit ({self._config.max_upload_size_mb} MB)"
            )
        return True, None

    @staticmethod
    def validate_link(payload: LinkUpload) -> Tuple[bool, Optional[str]]:
        """Returns (is_valid, error_message_or_None)."""
        if not payload.display_name.strip():
            return False, "Link uploads require a display name"
        raw = payload.url.strip()
        if not raw:
            return False, "Link uploads require a URL"
        try:
            url = httpx.URL(raw)
        except httpx.InvalidURL as e:
            return False, f"Malformed link reference: {e}"
        if url.scheme not in ("http", "https") or not url.host:
            return False, f"Link reference must be an absolute http(s) URL, got '{raw}'"
        return True, None

    def validate_placement(self, document_type: str, folder_id: Optional[str]) -> Optional[str]:
        """
        Check that *document_type* may live in *folder_id*.

        Raises CareComplyNotFoundError for an unknown folder; returns an error
        message for a disallowed placement, None when valid.
        """
        if folder_id == ARCHIVE_FOLDER_ID:
            return "Documents cannot be uploaded directly into the archive"

        if folder_id is not None:
            folder = self._taxonomy.folder(folder_id)
            if isinstance(folder, MultiArtifactFolder):
                return None
            tracked = [d.name for d in own_tracked_documents(folder)]
            if document_type not in tracked:
                return (
                    f"Document type '{document_type}' is not tracked in folder "
                    f"'{folder.display_name}' (expected one of {tracked})"
                )
            return None

        if self._taxonomy.tracked_document(document_type) is not None:
            return None
        if any(
            membership.matches_legacy_folder(document_type, f)
            for f in self._taxonomy.multi_artifact_folders()
        ):
            return None
        return f"Unknown document type '{document_type}' and no folder given"

    # -------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------

    def upload(
        self,
        client_id: str,
        payload: UploadPayload,
        document_type: str,
        folder_id: Optional[str] = None,
        custom_title: Optional[str] = None,
        upload_date: Optional[date] = None,
        expiry_date: Optional[date] = None,
        uploaded_by: Optional[str] = None,
    ) -> Document:
        """
        Create a new, non-archived document.

        1. Validate payload and placement (no mutation on failure)
        2. Reject a second current document for a tracked obligation
        3. Write binary content to FileStorage (binary mode)
        4. Create the record; remove the stored file if creation fails

        A prior current document is never archived implicitly.
        """
        document_type = (document_type or "").strip()
        object_ref = f"{client_id}.documents.upload"
        if not document_type:
            raise CareComplyValidationError(
                "Document type is required", object_ref=object_ref, client_id=client_id
            )

        if isinstance(payload, BinaryUpload):
            valid, error = self.validate_binary(payload)
        elif isinstance(payload, LinkUpload):
            valid, error = self.validate_link(payload)
        else:
            valid, error = False, f"Unsupported upload payload: {type(payload).__name__}"
        if not valid:
            raise CareComplyValidationError(
                error or "Upload validation failed",
                object_ref=object_ref,
                client_id=client_id,
                validation_errors=[error],
            )

        placement_error = self.validate_placement(document_type, folder_id)
        if placement_error:
            raise CareComplyValidationError(
                placement_error,
                object_ref=object_ref,
                client_id=client_id,
                validation_errors=[placement_error],
            )

        if self._taxonomy.tracked_document(document_type) is not None:
            existing = membership.current_document(self._store.list(client_id), document_type)
            if existing is not None:
                message = (
                    f"Client already has a current '{document_type}' "
                    f"(document {existing.id}); archive it before uploading a replacement"
                )
                raise CareComplyValidationError(
                    message,
                    object_ref=object_ref,
                    client_id=client_id,
                    validation_errors=[message],
                )

        fields: Dict[str, Any] = {
            "client_id": client_id,
            "document_type": document_type,
            "upload_date": upload_date or date.today(),
            "expiry_date": expiry_date,
            "custom_title": custom_title,
            "folder_id": folder_id,
        }
        if isinstance(payload, BinaryUpload):
            upload = payload.files[0]
            fields.update(
                file_name=upload.file_name,
                mime_type=upload.mime_type or self._files.detect_mime_type(upload.file_name),
                size_bytes=upload.size_bytes,
            )
        else:
            fields.update(file_name=payload.display_name.strip(), link_url=payload.url.strip())

        try:
            new_doc = NewDocument(**fields)
        except PydanticValidationError as e:
            errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            raise CareComplyValidationError(
                f"Invalid document metadata: {e.error_count()} error(s)",
                object_ref=object_ref,
                client_id=client_id,
                validation_errors=errors,
            ) from e

        storage_ref: Optional[str] = None
        if isinstance(payload, BinaryUpload):
            storage_ref, size = self._files.save(client_id, upload.file_name, io.BytesIO(upload.data))
            new_doc = new_doc.model_copy(update={"storage_ref": storage_ref, "size_bytes": size})

        try:
            document = self._store.create(new_doc)
        except Exception:
            if storage_ref is not None:
                self._files.remove(storage_ref)
            raise

        logger.info(
            f"Uploaded {document.document_type!r} for client {client_id}: "
            f"{document.id} ({'link' if document.is_link else document.mime_type})"
        )
        log(log_document_operation(
            "upload", document.id, client_id, document.document_type,
            user_id=uploaded_by, folder_id=folder_id,
        ))
        return document

    # -------------------------------------------------------------------
    # Edit / archive / unarchive / delete
    # -------------------------------------------------------------------

    def get(self, doc_id: str) -> Document:
        document = self._store.get(doc_id)
        if document is None:
            raise CareComplyNotFoundError(
                f"Document '{doc_id}' not found",
                resource_type="document",
                resource_id=doc_id,
            )
        return document

    def edit(
        self,
        doc_id: str,
        changes: Union[DocumentEdit, Dict[str, Any]],
        edited_by: Optional[str] = None,
    ) -> Document:
        """
        Update upload date, expiry date and/or custom title in place.
        Changing document_type or folder_id is rejected.
        """
        if isinstance(changes, dict):
            immutable = [f for f in IMMUTABLE_FIELDS if f in changes]
            if immutable:
                raise CareComplyValidationError(
                    f"Fields cannot be changed after creation: {immutable}",
                    object_ref=f"documents.{doc_id}",
                    validation_errors=[f"{f} is immutable" for f in immutable],
                )
            try:
                changes = DocumentEdit(**changes)
            except PydanticValidationError as e:
                raise CareComplyValidationError(
                    f"Invalid document edit: {e.error_count()} error(s)",
                    object_ref=f"documents.{doc_id}",
                    validation_errors=[err["msg"] for err in e.errors()],
                ) from e

        fields = changes.model_dump(exclude_unset=True)
        if "upload_date" in fields and fields["upload_date"] is None:
            raise CareComplyValidationError(
                "Upload date cannot be cleared",
                object_ref=f"documents.{doc_id}",
                validation_errors=["upload_date is required"],
            )

        current = self.get(doc_id)
        if not fields:
            return current

        updated = self._store.update(doc_id, fields)
        if updated is None:
            raise CareComplyNotFoundError(
                f"Document '{doc_id}' was deleted during edit",
                resource_type="document",
                resource_id=doc_id,
            )
        log(log_document_operation(
            "edit", doc_id, updated.client_id, updated.document_type, user_id=edited_by,
        ))
        return updated

    def archive(self, doc_id: str, archived_by: Optional[str] = None) -> Document:
        """Move a document to the Archive pseudo-folder. Idempotent."""
        document = self.get(doc_id)
        if document.is_archived:
            logger.info(f"Document {doc_id} already archived")
            return document

        archived = self._store.archive(doc_id, archived_by=archived_by)
        if archived is None:
            raise CareComplyNotFoundError(
                f"Document '{doc_id}' not found", resource_type="document", resource_id=doc_id
            )
        log(log_document_operation(
            "archive", doc_id, archived.client_id, archived.document_type,
            user_id=archived_by, folder_id=archived.original_folder_id,
        ))
        return archived

    def unarchive(self, doc_id: str, restored_by: Optional[str] = None) -> Document:
        """
        Return an archived document to its original folder. Idempotent.
        Rejected when another current document now satisfies the same
        tracked obligation.
        """
        document = self.get(doc_id)
        if not document.is_archived:
            logger.info(f"Document {doc_id} is not archived")
            return document

        if self._taxonomy.tracked_document(document.document_type) is not None:
            other = membership.current_document(
                self._store.list(document.client_id), document.document_type
            )
            if other is not None:
                message = (
                    f"Client already has a current '{document.document_type}' "
                    f"(document {other.id}); archive it before restoring {doc_id}"
                )
                raise CareComplyValidationError(
                    message,
                    object_ref=f"documents.{doc_id}",
                    client_id=document.client_id,
                    validation_errors=[message],
                )

        restored = self._store.unarchive(doc_id)
        if restored is None:
            raise CareComplyNotFoundError(
                f"Document '{doc_id}' not found", resource_type="document", resource_id=doc_id
            )
        log(log_document_operation(
            "unarchive", doc_id, restored.client_id, restored.document_type,
            user_id=restored_by, folder_id=restored.folder_id,
        ))
        return restored

    def delete(self, doc_id: str, deleted_by: Optional[str] = None) -> None:
        """Permanently remove the record and its stored file. No recovery."""
        document = self.get(doc_id)
        if not self._store.delete(doc_id):
            raise CareComplyNotFoundError(
                f"Document '{doc_id}' not found", resource_type="document", resource_id=doc_id
            )
        if document.storage_ref:
            try:
                self._files.remove(document.storage_ref)
            except OSError as e:
                logger.error(f"Failed to remove stored file {document.storage_ref}: {e}")
        logger.info(f"Deleted document {doc_id} for client {document.client_id}")
        log(log_document_operation(
            "delete", doc_id, document.client_id, document.document_type, user_id=deleted_by,
        ))

    # -------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------

    def list_documents(self, client_id: str) -> List[Document]:
        return self._store.list(client_id)

    def documents_in_folder(self, client_id: str, folder_id: str) -> List[Document]:
        """Documents shown in a folder (``"archive"`` for the Archive pseudo-folder)."""
        return membership.documents_in_folder(
            self._taxonomy, folder_id, self._store.list(client_id)
        )

    def count_in_folder(self, client_id: str, folder_id: str) -> int:
        return len(self.documents_in_folder(client_id, folder_id))

    def search(self, client_id: str, term: str) -> List[Document]:
        """Case-insensitive match on file name, document type or custom title."""
        needle = term.strip().lower()
        if not needle:
            return []
        matches = [
            d for d in self._store.list(client_id)
            if needle in d.file_name.lower()
            or needle in d.document_type.lower()
            or needle in (d.custom_title or "").lower()
        ]
        return sorted(
            matches,
            key=lambda d: (d.upload_date, d.created_at.timestamp() if d.created_at else 0.0),
            reverse=True,
        )

    def __repr__(self) -> str:
        return f"<DocumentLifecycleManager taxonomy=v{self._taxonomy.version} store={self._store.name}>"

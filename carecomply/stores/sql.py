"""
CareComply SQL Stores — SQLAlchemy implementations of the store collaborators.

Every public method opens its own session (see ``session_scope``). SQLAlchemy
failures surface as CareComplyStoreUnavailableError; timeouts and retries are
the connection pool's concern, not the engine's.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from carecomply.compliance.overrides import ComplianceOverride, FolderOverride
from carecomply.db.base import utcnow
from carecomply.db.models import ComplianceOverrideRecord, DocumentRecord, FolderOverrideRecord
from carecomply.db.session import session_scope
from carecomply.documents.models import Document, NewDocument
from carecomply.engine.errors import CareComplyStoreUnavailableError
from carecomply.stores.base import DocumentStore, OverrideStore

logger = logging.getLogger("carecomply.stores.sql")

# Columns DocumentStore.update() may touch.
UPDATABLE_DOCUMENT_FIELDS = frozenset({"upload_date", "expiry_date", "custom_title"})


class _SqlStore:
    name = "sql_store"

    def __init__(self, session_factory: sessionmaker):
        self._factory = session_factory

    @contextmanager
    def _call(self, operation: str, **context: Any) -> Generator[Session, None, None]:
        try:
            with session_scope(self._factory) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"{self.name}.{operation} failed: {e}")
            raise CareComplyStoreUnavailableError(
                f"{self.name} unavailable during {operation}",
                store=self.name,
                operation=operation,
                **context,
            ) from e


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def _to_document(row: DocumentRecord) -> Document:
    return Document.model_validate(row, from_attributes=True)


class SqlDocumentStore(_SqlStore, DocumentStore):
    name = "document_store"

    def create(self, document: NewDocument) -> Document:
        with self._call("create", client_id=document.client_id) as session:
            row = DocumentRecord(**document.model_dump(), is_archived=False)
            session.add(row)
            session.flush()
            return _to_document(row)

    def get(self, doc_id: str) -> Optional[Document]:
        with self._call("get", object_ref=doc_id) as session:
            row = session.get(DocumentRecord, doc_id)
            return _to_document(row) if row is not None else None

    def list(self, client_id: str) -> List[Document]:
        with self._call("list", client_id=client_id) as session:
            rows = session.scalars(
                select(DocumentRecord)
                .where(DocumentRecord.client_id == client_id)
                .order_by(DocumentRecord.upload_date.desc(), DocumentRecord.created_at.desc())
            ).all()
            return [_to_document(r) for r in rows]

    def update(self, doc_id: str, fields: Dict[str, Any]) -> Optional[Document]:
        illegal = set(fields) - UPDATABLE_DOCUMENT_FIELDS
        if illegal:
            raise ValueError(f"Fields not updatable: {sorted(illegal)}")
        with self._call("update", object_ref=doc_id) as session:
            row = session.get(DocumentRecord, doc_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            session.flush()
            return _to_document(row)

    def archive(self, doc_id: str, archived_by: Optional[str] = None) -> Optional[Document]:
        with self._call("archive", object_ref=doc_id) as session:
            row = session.get(DocumentRecord, doc_id)
            if row is None:
                return None
            if not row.is_archived:
                row.is_archived = True
                row.original_folder_id = row.folder_id
                row.folder_id = None
                row.archived_at = utcnow()
                row.archived_by = archived_by
                session.flush()
            return _to_document(row)

    def unarchive(self, doc_id: str) -> Optional[Document]:
        with self._call("unarchive", object_ref=doc_id) as session:
            row = session.get(DocumentRecord, doc_id)
            if row is None:
                return None
            if row.is_archived:
                row.is_archived = False
                row.folder_id = row.original_folder_id
                row.original_folder_id = None
                row.archived_at = None
                row.archived_by = None
                session.flush()
            return _to_document(row)

    def delete(self, doc_id: str) -> bool:
        with self._call("delete", object_ref=doc_id) as session:
            row = session.get(DocumentRecord, doc_id)
            if row is None:
                return False
            session.delete(row)
            return True


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------

def _to_compliance(row: ComplianceOverrideRecord) -> ComplianceOverride:
    return ComplianceOverride(
        client_id=row.client_id,
        document_type=row.document_type,
        not_required=row.not_required,
        reason=row.reason,
        updated_at=row.updated_at,
    )


def _to_folder(row: FolderOverrideRecord) -> FolderOverride:
    return FolderOverride(
        client_id=row.client_id,
        folder_id=row.folder_id,
        custom_name=row.custom_name,
        hidden=row.hidden,
        updated_at=row.updated_at,
    )


class SqlOverrideStore(_SqlStore, OverrideStore):
    name = "override_store"

    # -- compliance -------------------------------------------------------

    @staticmethod
    def _compliance_row(session: Session, client_id: str, document_type: str):
        return session.scalars(
            select(ComplianceOverrideRecord).where(
                ComplianceOverrideRecord.client_id == client_id,
                ComplianceOverrideRecord.document_type == document_type,
            )
        ).first()

    def list_compliance(self, client_id: str) -> List[ComplianceOverride]:
        with self._call("list_compliance", client_id=client_id) as session:
            rows = session.scalars(
                select(ComplianceOverrideRecord)
                .where(ComplianceOverrideRecord.client_id == client_id)
            ).all()
            return [_to_compliance(r) for r in rows]

    def get_compliance(self, client_id: str, document_type: str) -> Optional[ComplianceOverride]:
        with self._call("get_compliance", client_id=client_id) as session:
            row = self._compliance_row(session, client_id, document_type)
            return _to_compliance(row) if row is not None else None

    def set_compliance(self, override: ComplianceOverride) -> ComplianceOverride:
        with self._call("set_compliance", client_id=override.client_id) as session:
            row = self._compliance_row(session, override.client_id, override.document_type)
            if row is None:
                row = ComplianceOverrideRecord(
                    client_id=override.client_id,
                    document_type=override.document_type,
                )
                session.add(row)
            row.not_required = override.not_required
            row.reason = override.reason
            session.flush()
            return _to_compliance(row)

    def delete_compliance(self, client_id: str, document_type: str) -> bool:
        with self._call("delete_compliance", client_id=client_id) as session:
            row = self._compliance_row(session, client_id, document_type)
            if row is None:
                return False
            session.delete(row)
            return True

    # -- folders ----------------------------------------------------------

    @staticmethod
    def _folder_row(session: Session, client_id: str, folder_id: str):
        return session.scalars(
            select(FolderOverrideRecord).where(
                FolderOverrideRecord.client_id == client_id,
                FolderOverrideRecord.folder_id == folder_id,
            )
        ).first()

    def list_folders(self, client_id: str) -> List[FolderOverride]:
        with self._call("list_folders", client_id=client_id) as session:
            rows = session.scalars(
                select(FolderOverrideRecord)
                .where(FolderOverrideRecord.client_id == client_id)
            ).all()
            return [_to_folder(r) for r in rows]

    def get_folder(self, client_id: str, folder_id: str) -> Optional[FolderOverride]:
        with self._call("get_folder", client_id=client_id) as session:
            row = self._folder_row(session, client_id, folder_id)
            return _to_folder(row) if row is not None else None

    def set_folder(self, override: FolderOverride) -> FolderOverride:
        with self._call("set_folder", client_id=override.client_id) as session:
            row = self._folder_row(session, override.client_id, override.folder_id)
            if row is None:
                row = FolderOverrideRecord(
                    client_id=override.client_id,
                    folder_id=override.folder_id,
                )
                session.add(row)
            row.custom_name = override.custom_name
            row.hidden = override.hidden
            session.flush()
            return _to_folder(row)

    def delete_folder(self, client_id: str, folder_id: str) -> bool:
        with self._call("delete_folder", client_id=client_id) as session:
            row = self._folder_row(session, client_id, folder_id)
            if row is None:
                return False
            session.delete(row)
            return True

"""
CareComply Store Models — SQLAlchemy tables behind the Document and Override stores.

Tables:
1. client_documents            — Evidence artifacts (files or links)
2. client_document_compliance  — Per-client "not required" overrides
3. client_document_folders     — Per-client folder rename / hide overrides
"""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from carecomply.db.base import AuditMixin, Base


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# 1. Documents
# ---------------------------------------------------------------------------

class DocumentRecord(Base, AuditMixin):
    __tablename__ = "client_documents"

    id = Column(String(36), primary_key=True, default=_new_id)
    client_id = Column(String(64), nullable=False, index=True)
    document_type = Column(String(200), nullable=False)
    file_name = Column(String(255), nullable=False)
    storage_ref = Column(String(500), nullable=True)
    link_url = Column(Text, nullable=True)
    mime_type = Column(String(100), nullable=True)
    size_bytes = Column(Integer, default=0, nullable=False)
    upload_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=True)
    custom_title = Column(String(255), nullable=True)
    folder_id = Column(String(100), nullable=True)

    is_archived = Column(Boolean, default=False, nullable=False)
    original_folder_id = Column(String(100), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    archived_by = Column(String(64), nullable=True)

    __table_args__ = (
        Index("idx_client_documents_client_type", "client_id", "document_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<DocumentRecord(id='{self.id}', client='{self.client_id}', "
            f"type='{self.document_type}', archived={self.is_archived})>"
        )


# ---------------------------------------------------------------------------
# 2. Compliance overrides
# ---------------------------------------------------------------------------

class ComplianceOverrideRecord(Base, AuditMixin):
    __tablename__ = "client_document_compliance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(String(64), nullable=False, index=True)
    document_type = Column(String(200), nullable=False)
    not_required = Column(Boolean, default=False, nullable=False)
    reason = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("client_id", "document_type", name="uq_compliance_client_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<ComplianceOverrideRecord(client='{self.client_id}', "
            f"type='{self.document_type}', not_required={self.not_required})>"
        )


# ---------------------------------------------------------------------------
# 3. Folder overrides
# ---------------------------------------------------------------------------

class FolderOverrideRecord(Base, AuditMixin):
    __tablename__ = "client_document_folders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(String(64), nullable=False, index=True)
    folder_id = Column(String(100), nullable=False)
    custom_name = Column(String(200), nullable=True)
    hidden = Column(Boolean, nullable=True)

    __table_args__ = (
        UniqueConstraint("client_id", "folder_id", name="uq_folder_client_folder"),
    )

    def __repr__(self) -> str:
        return (
            f"<FolderOverrideRecord(client='{self.client_id}', folder='{self.folder_id}', "
            f"name={self.custom_name!r}, hidden={self.hidden})>"
        )

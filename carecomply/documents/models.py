"""
CareComply Document Models — Evidence artifacts and upload payloads.

Document: One uploaded file or external link satisfying an obligation.
UploadedFile / BinaryUpload / LinkUpload: Inbound upload payloads.
DocumentEdit: The only fields that may change after creation.

Invariant: at most one non-archived Document per (client_id, document_type);
archived copies may coexist.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Document record
# ---------------------------------------------------------------------------

class Document(BaseModel):
    """
    Evidence artifact metadata. Binary content lives in FileStorage
    (``storage_ref``) or outside the system (``link_url``).

    ``document_type`` and ``folder_id`` are fixed at creation; archive and
    unarchive are the only operations that move ``folder_id`` in and out of
    ``original_folder_id``.
    """

    id: str = Field(description="Store-assigned identifier")
    client_id: str
    document_type: str = Field(min_length=1, max_length=200)
    file_name: str = Field(max_length=255)
    storage_ref: Optional[str] = Field(default=None, description="Relative path in FileStorage")
    link_url: Optional[str] = Field(default=None, description="External reference (link mode)")
    mime_type: Optional[str] = None
    size_bytes: int = Field(default=0, ge=0)
    upload_date: date
    expiry_date: Optional[date] = Field(default=None, description="Explicit due date override")
    custom_title: Optional[str] = Field(default=None, max_length=255)
    folder_id: Optional[str] = None

    is_archived: bool = False
    original_folder_id: Optional[str] = Field(default=None, description="Set only while archived")
    archived_at: Optional[datetime] = None
    archived_by: Optional[str] = None

    created_at: Optional[datetime] = None

    @property
    def is_link(self) -> bool:
        return self.link_url is not None

    @property
    def title(self) -> str:
        return self.custom_title or self.file_name


class NewDocument(BaseModel):
    """
    Fields supplied to DocumentStore.create(); the store assigns id and created_at.
    Limits mirror the ``client_documents`` columns.
    """

    client_id: str = Field(min_length=1, max_length=64)
    document_type: str = Field(min_length=1, max_length=200)
    file_name: str = Field(min_length=1, max_length=255)
    storage_ref: Optional[str] = Field(default=None, max_length=500)
    link_url: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, max_length=100)
    size_bytes: int = Field(default=0, ge=0)
    upload_date: date
    expiry_date: Optional[date] = None
    custom_title: Optional[str] = Field(default=None, max_length=255)
    folder_id: Optional[str] = Field(default=None, max_length=100)


# ---------------------------------------------------------------------------
# Upload payloads
# ---------------------------------------------------------------------------

class UploadedFile(BaseModel):
    file_name: str
    data: bytes
    mime_type: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class BinaryUpload(BaseModel):
    """Binary-mode upload. Exactly one file is accepted."""

    mode: Literal["binary"] = "binary"
    files: List[UploadedFile] = Field(default_factory=list)


class LinkUpload(BaseModel):
    """Link-mode upload: an external reference with a display name."""

    mode: Literal["link"] = "link"
    display_name: str = ""
    url: str = ""


UploadPayload = Union[BinaryUpload, LinkUpload]


class DocumentEdit(BaseModel):
    """Editable fields. Unknown or immutable fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    upload_date: Optional[date] = None
    expiry_date: Optional[date] = None
    custom_title: Optional[str] = Field(default=None, max_length=255)

"""
CareComply Documents — Evidence artifacts and their lifecycle.

Physical storage: {storage_root}/{client_id}/
Archived documents live in the "archive" pseudo-folder.

DocumentLifecycleManager lives in ``carecomply.documents.service``.
"""

from carecomply.documents.models import (
    BinaryUpload,
    Document,
    DocumentEdit,
    LinkUpload,
    NewDocument,
    UploadedFile,
)
from carecomply.documents.membership import (
    belongs_to_folder,
    current_document,
    documents_in_folder,
    matches_legacy_folder,
)
from carecomply.documents.storage import FileStorage

__all__ = [
    "BinaryUpload",
    "Document",
    "DocumentEdit",
    "LinkUpload",
    "NewDocument",
    "UploadedFile",
    "belongs_to_folder",
    "current_document",
    "documents_in_folder",
    "matches_legacy_folder",
    "FileStorage",
]

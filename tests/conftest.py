"""
CareComply Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

import pytest

# Every date-sensitive test evaluates against this day.
TODAY = date(2026, 3, 2)


# ---------------------------------------------------------------------------
# Global state isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_config():
    """Reset global singletons between tests."""
    import carecomply.engine.config as cfg_mod
    import carecomply.engine.logging as log_mod

    cfg_mod._platform_config = None
    yield
    cfg_mod._platform_config = None
    log_mod.shutdown_logging()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def project_root(tmp_path):
    """A project directory holding a minimal carecomply.yaml."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "carecomply.yaml").write_text(
        "platform:\n"
        "  name: TestCare\n"
        "  version: '2.0.0'\n"
        "  environment: staging\n"
        "database:\n"
        f"  url: sqlite:///{(root / 'store.db').as_posix()}\n"
        "documents:\n"
        "  max_upload_size_mb: 5\n"
        f"  storage_root: {(root / 'documents').as_posix()}\n"
        "compliance:\n"
        "  compliant_threshold_percent: 80\n"
        "logging:\n"
        f"  directory: {(root / 'logs').as_posix()}\n"
        "  async_queue:\n"
        "    flush_interval_ms: 10\n",
        encoding="utf-8",
    )
    return root


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------

@pytest.fixture
def taxonomy():
    """The packaged default catalog."""
    from carecomply.taxonomy.loader import load_taxonomy

    return load_taxonomy()


@pytest.fixture
def small_taxonomy():
    """
    Three folders: one tracked obligation, one multi-artifact bucket and a
    two-document consent folder.
    """
    from carecomply.taxonomy.loader import parse_taxonomy

    return parse_taxonomy({
        "version": "test",
        "folders": [
            {
                "id": "service-agreement",
                "name": "Service Agreement",
                "documents": [{"name": "Service Agreement", "frequency": "annual"}],
            },
            {
                "id": "risk-assessments",
                "name": "Risk Assessments",
                "allows_multiple_artifacts": True,
            },
            {
                "id": "consent",
                "name": "Consent Forms",
                "documents": [
                    {"name": "Consent Form", "frequency": "annual"},
                    {"name": "Medication Consent", "frequency": "annual"},
                ],
            },
        ],
    })


# ---------------------------------------------------------------------------
# Documents (in-memory, for the pure evaluators)
# ---------------------------------------------------------------------------

@pytest.fixture
def make_document():
    """Factory for Document values without touching a store."""
    from carecomply.documents.models import Document

    def _make(
        document_type: str,
        client_id: str = "client-1",
        upload_date: Optional[date] = None,
        expiry_date: Optional[date] = None,
        folder_id: Optional[str] = None,
        is_archived: bool = False,
        created_at: Optional[datetime] = None,
        **extra: Any,
    ) -> Document:
        return Document(
            id=extra.pop("id", str(uuid.uuid4())),
            client_id=client_id,
            document_type=document_type,
            file_name=extra.pop("file_name", f"{document_type}.pdf"),
            upload_date=upload_date or TODAY - timedelta(days=30),
            expiry_date=expiry_date,
            folder_id=folder_id,
            is_archived=is_archived,
            created_at=created_at or datetime(2026, 1, 1, tzinfo=timezone.utc),
            **extra,
        )

    return _make


# ---------------------------------------------------------------------------
# Stores (SQLite in-memory)
# ---------------------------------------------------------------------------

@pytest.fixture
def session_factory():
    from carecomply.db.session import close_store_db, init_store_db

    factory = init_store_db("sqlite://", create_tables=True)
    yield factory
    close_store_db()


@pytest.fixture
def document_store(session_factory):
    from carecomply.stores.sql import SqlDocumentStore

    return SqlDocumentStore(session_factory)


@pytest.fixture
def override_store(session_factory):
    from carecomply.stores.sql import SqlOverrideStore

    return SqlOverrideStore(session_factory)


@pytest.fixture
def file_storage(tmp_path):
    from carecomply.documents.storage import FileStorage

    return FileStorage(str(tmp_path / "documents"))


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@pytest.fixture
def manager(taxonomy, document_store, file_storage):
    from carecomply.documents.service import DocumentLifecycleManager

    return DocumentLifecycleManager(taxonomy, document_store, file_storage)


@pytest.fixture
def service(taxonomy, document_store, override_store):
    from carecomply.compliance.service import ComplianceService

    return ComplianceService(taxonomy, document_store, override_store, clock=lambda: TODAY)


@pytest.fixture
def small_manager(small_taxonomy, document_store, file_storage):
    from carecomply.documents.service import DocumentLifecycleManager

    return DocumentLifecycleManager(small_taxonomy, document_store, file_storage)


@pytest.fixture
def small_service(small_taxonomy, document_store, override_store):
    from carecomply.compliance.service import ComplianceService

    return ComplianceService(small_taxonomy, document_store, override_store, clock=lambda: TODAY)


@pytest.fixture
def pdf_upload():
    """Factory for a single-file binary payload."""
    from carecomply.documents.models import BinaryUpload, UploadedFile

    def _make(file_name: str = "evidence.pdf", data: bytes = b"%PDF-1.7 test", mime_type=None):
        return BinaryUpload(files=[UploadedFile(file_name=file_name, data=data, mime_type=mime_type)])

    return _make

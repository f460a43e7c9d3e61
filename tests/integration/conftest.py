"""
Integration test fixtures — a file-backed SQLite store, on-disk evidence
storage and the async audit trail, all wired from carecomply.yaml.

Run: pytest tests/integration/ -v -m integration
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest


# Custom marker for integration tests
def pytest_configure(config):
    config.addinivalue_line("markers", "integration: end-to-end workflows over real stores")


@pytest.fixture
def integration_project(tmp_path):
    """A project tree with carecomply.yaml pointing every resource into tmp_path."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "taxonomy.yaml").write_text(
        "version: 'it-1'\n"
        "folders:\n"
        "  - id: service-agreement\n"
        "    name: Service Agreement\n"
        "    documents:\n"
        "      - {name: Service Agreement, frequency: annual}\n"
        "  - id: care-planning\n"
        "    name: Care Planning\n"
        "    documents:\n"
        "      - {name: Care Plan, frequency: 6-monthly}\n"
        "    subfolders:\n"
        "      - id: health-summaries\n"
        "        name: Health Summaries\n"
        "        documents:\n"
        "          - {name: Health Summary, frequency: 6-monthly}\n"
        "      - id: attachments\n"
        "        name: Attachments\n"
        "        allows_multiple_artifacts: true\n"
        "  - id: risk-assessments\n"
        "    name: Risk Assessments\n"
        "    allows_multiple_artifacts: true\n"
        "  - id: wound-care\n"
        "    name: Wound Care\n"
        "    visible: false\n"
        "    documents:\n"
        "      - {name: Wound Care Plan, frequency: 6-monthly}\n",
        encoding="utf-8",
    )
    (root / "carecomply.yaml").write_text(
        "platform:\n"
        "  name: IntegrationCare\n"
        "  environment: dev\n"
        "database:\n"
        f"  url: sqlite:///{(root / 'store.db').as_posix()}\n"
        "  create_tables: true\n"
        "documents:\n"
        "  max_upload_size_mb: 2\n"
        f"  storage_root: {(root / 'runtime' / 'documents').as_posix()}\n"
        "compliance:\n"
        "  compliant_threshold_percent: 75\n"
        "taxonomy:\n"
        f"  path: {(root / 'taxonomy.yaml').as_posix()}\n"
        "logging:\n"
        f"  directory: {(root / 'logs').as_posix()}\n"
        "  async_queue:\n"
        "    flush_interval_ms: 10\n",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def platform(integration_project, today):
    """Everything a caller would wire at process start."""
    from carecomply.compliance.service import ComplianceService
    from carecomply.db.session import close_store_db, init_store_db_from_config
    from carecomply.documents.service import DocumentLifecycleManager
    from carecomply.documents.storage import FileStorage
    from carecomply.engine.config import load_platform_config
    from carecomply.engine.logging import init_logging, shutdown_logging
    from carecomply.stores.sql import SqlDocumentStore, SqlOverrideStore
    from carecomply.taxonomy.loader import load_taxonomy

    config = load_platform_config(str(integration_project / "carecomply.yaml"))
    init_logging(
        config.logging.directory,
        flush_interval_ms=config.logging.async_queue.flush_interval_ms,
    )
    taxonomy = load_taxonomy(config.taxonomy.path)
    factory = init_store_db_from_config(config.database)
    document_store = SqlDocumentStore(factory)
    override_store = SqlOverrideStore(factory)

    yield SimpleNamespace(
        config=config,
        taxonomy=taxonomy,
        storage=FileStorage(config.documents.storage_root),
        manager=DocumentLifecycleManager(
            taxonomy, document_store, FileStorage(config.documents.storage_root), config.documents
        ),
        service=ComplianceService(
            taxonomy, document_store, override_store, config=config.compliance, clock=lambda: today
        ),
    )

    shutdown_logging()
    close_store_db()

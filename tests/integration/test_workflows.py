"""
Integration tests — Cross-module workflows.

Uploads, edits, archives and override toggles flow through the real SQL
stores and file storage, and the status contract reflects every step.
"""

from datetime import timedelta

import pytest

from carecomply.compliance.status import ComplianceStatus
from carecomply.documents.models import BinaryUpload, LinkUpload, UploadedFile
from carecomply.engine.errors import CareComplyValidationError
from carecomply.engine.logging import FileLogger, shutdown_logging

CLIENT = "client-42"


def _pdf(name="evidence.pdf", size=32):
    return BinaryUpload(files=[UploadedFile(file_name=name, data=b"x" * size)])


@pytest.mark.integration
class TestClientOnboarding:

    def test_from_empty_to_compliant(self, platform, today):
        service, manager = platform.service, platform.manager

        assert service.overall_status(CLIENT) is ComplianceStatus.OVERDUE
        summary = service.client_summary(CLIENT)
        assert summary.total_required == 3
        assert summary.percentage == 0

        manager.upload(CLIENT, _pdf("sa.pdf"), "Service Agreement",
                       folder_id="service-agreement", upload_date=today)
        manager.upload(CLIENT, _pdf("cp.pdf"), "Care Plan",
                       folder_id="care-planning", upload_date=today)
        assert service.folder_status("care-planning", CLIENT) is ComplianceStatus.OVERDUE

        manager.upload(CLIENT, _pdf("hs.pdf"), "Health Summary",
                       folder_id="health-summaries", upload_date=today - timedelta(days=170))
        assert service.folder_status("care-planning", CLIENT) is ComplianceStatus.DUE_SOON
        assert service.overall_status(CLIENT) is ComplianceStatus.DUE_SOON

        summary = service.client_summary(CLIENT)
        assert summary.percentage == 100
        assert summary.is_compliant
        assert summary.due_soon_documents == ["Health Summary"]
        assert service.missing_documents_report([CLIENT]) == []

    def test_upload_size_limit_from_config(self, platform):
        with pytest.raises(CareComplyValidationError, match="2 MB"):
            platform.manager.upload(CLIENT, _pdf(size=2 * 1024 * 1024 + 1), "Service Agreement")


@pytest.mark.integration
class TestRenewal:

    def test_archive_and_replace(self, platform, today):
        service, manager = platform.service, platform.manager
        old = manager.upload(CLIENT, _pdf(), "Service Agreement",
                             folder_id="service-agreement", upload_date=today - timedelta(days=400))
        assert service.folder_status("service-agreement", CLIENT) is ComplianceStatus.OVERDUE

        with pytest.raises(CareComplyValidationError):
            manager.upload(CLIENT, _pdf(), "Service Agreement", folder_id="service-agreement")

        manager.archive(old.id, archived_by="coordinator")
        new = manager.upload(CLIENT, _pdf(), "Service Agreement",
                             folder_id="service-agreement", upload_date=today)
        assert service.folder_status("service-agreement", CLIENT) is ComplianceStatus.COMPLIANT
        assert [d.id for d in service.documents_in_folder("service-agreement", CLIENT)] == [new.id]
        assert [d.id for d in service.documents_in_folder("archive", CLIENT)] == [old.id]

        with pytest.raises(CareComplyValidationError):
            manager.unarchive(old.id)


@pytest.mark.integration
class TestPerClientCustomisation:

    def test_overrides_are_isolated(self, platform):
        service = platform.service
        service.customize_folder(CLIENT, "wound-care", custom_name="Pressure Care", hidden=False)
        service.customize_folder(CLIENT, "risk-assessments", hidden=True)
        service.set_not_required(CLIENT, "Care Plan", reason="Plan held by hospital")

        mine = {v.folder_id: v.name for v in service.visible_folders(CLIENT)}
        theirs = {v.folder_id: v.name for v in service.visible_folders("someone-else")}
        assert mine["wound-care"] == "Pressure Care"
        assert "risk-assessments" not in mine
        assert "wound-care" not in theirs
        assert theirs["risk-assessments"] == "Risk Assessments"

        assert service.client_summary(CLIENT).not_required_documents == ["Care Plan"]
        assert service.client_summary("someone-else").not_required_documents == []

    def test_legacy_documents_counted(self, platform):
        manager, service = platform.manager, platform.service
        manager.upload(CLIENT, LinkUpload(display_name="Falls review", url="https://files.example.org/1"),
                       "Risk Assessments: Falls")
        manager.upload(CLIENT, _pdf(), "Kitchen", folder_id="risk-assessments")
        view = next(v for v in service.visible_folders(CLIENT) if v.folder_id == "risk-assessments")
        assert view.document_count == 2
        assert view.status is ComplianceStatus.NONE


@pytest.mark.integration
class TestAuditTrail:

    def test_everything_logged(self, platform, integration_project):
        manager, service = platform.manager, platform.service
        doc = manager.upload(CLIENT, _pdf(), "Service Agreement", uploaded_by="coordinator")
        manager.edit(doc.id, {"custom_title": "2026 agreement"}, edited_by="coordinator")
        manager.delete(doc.id, deleted_by="coordinator")
        service.set_not_required(CLIENT, "Care Plan")
        service.overall_status(CLIENT)
        shutdown_logging()

        logs = FileLogger(str(integration_project / "logs"))
        ops = [e["operation"] for e in logs.query("documents", "execution")]
        assert ops == ["upload", "edit", "delete"]
        assert logs.query("overrides", "execution", filters={"client_id": CLIENT})
        assert logs.query("compliance", "execution")[0]["status"] == "overdue"
        assert logs.query("system", "execution", filters={"event": "taxonomy_loaded"})
        assert list(platform.storage.root.rglob("*.pdf")) == []

"""Unit tests for carecomply.compliance.overrides — Sparse per-client overlays."""

from carecomply.compliance.overrides import (
    ComplianceOverride,
    FolderOverride,
    OverrideSet,
    is_visible,
    resolved_name,
    visible_folders,
)


def _ids(views):
    return [v.folder_id for v in views]


class TestDefaults:

    def test_compliance_default(self):
        assert ComplianceOverride(client_id="c", document_type="X").is_default
        assert not ComplianceOverride(client_id="c", document_type="X", not_required=True).is_default

    def test_folder_default(self):
        assert FolderOverride(client_id="c", folder_id="f").is_default
        assert FolderOverride(client_id="c", folder_id="f", custom_name="").is_default
        assert not FolderOverride(client_id="c", folder_id="f", hidden=False).is_default
        assert not FolderOverride(client_id="c", folder_id="f", custom_name="Mine").is_default


class TestResolution:

    def test_resolved_name(self, taxonomy):
        folder = taxonomy.folder("risk")
        assert resolved_name(folder, None) == "Risk & Safety"
        assert resolved_name(folder, FolderOverride(client_id="c", folder_id="risk")) == "Risk & Safety"
        assert resolved_name(
            folder, FolderOverride(client_id="c", folder_id="risk", custom_name="Safety")
        ) == "Safety"

    def test_is_visible(self, taxonomy):
        risk = taxonomy.folder("risk")
        wound = taxonomy.folder("wound-care")
        assert is_visible(risk, None)
        assert not is_visible(risk, FolderOverride(client_id="c", folder_id="risk", hidden=True))
        assert not is_visible(wound, None)
        assert is_visible(wound, FolderOverride(client_id="c", folder_id="wound-care", hidden=False))

    def test_absent_equals_default_record(self, taxonomy):
        bare = OverrideSet("c")
        explicit = OverrideSet("c", folders=[
            FolderOverride(client_id="c", folder_id=f.id) for f in taxonomy.all_folders()
        ])
        assert [v.name for v in visible_folders(taxonomy, bare)] == [
            v.name for v in visible_folders(taxonomy, explicit)
        ]
        assert _ids(visible_folders(taxonomy, bare)) == _ids(visible_folders(taxonomy, explicit))


class TestOverrideSet:

    def test_ignores_other_clients(self):
        overrides = OverrideSet("c-1", compliance=[
            ComplianceOverride(client_id="c-2", document_type="Care Plan", not_required=True),
        ])
        assert not overrides.is_not_required("Care Plan")

    def test_reason(self):
        overrides = OverrideSet("c", compliance=[
            ComplianceOverride(client_id="c", document_type="Care Plan", not_required=True, reason="In hospital"),
            ComplianceOverride(client_id="c", document_type="Consent Form", not_required=False, reason="stale"),
        ])
        assert overrides.is_not_required("Care Plan")
        assert overrides.reason_for("Care Plan") == "In hospital"
        assert overrides.reason_for("Consent Form") is None
        assert overrides.reason_for("Unknown") is None


class TestVisibleFolders:

    def test_default_order_and_hidden(self, taxonomy):
        ids = _ids(visible_folders(taxonomy, OverrideSet("c")))
        assert ids == [
            "service-agreement", "consent", "risk", "care-planning",
            "behaviour-support", "incident-reports", "correspondence",
        ]

    def test_rename_and_hide(self, taxonomy):
        overrides = OverrideSet("c", folders=[
            FolderOverride(client_id="c", folder_id="consent", custom_name="Permissions"),
            FolderOverride(client_id="c", folder_id="correspondence", hidden=True),
            FolderOverride(client_id="c", folder_id="wound-care", hidden=False),
        ])
        views = visible_folders(taxonomy, overrides)
        by_id = {v.folder_id: v for v in views}
        assert by_id["consent"].name == "Permissions"
        assert by_id["consent"].customized
        assert "correspondence" not in by_id
        assert "wound-care" in by_id
        assert not by_id["risk"].customized

    def test_subfolder_visibility(self, taxonomy):
        overrides = OverrideSet("c", folders=[
            FolderOverride(client_id="c", folder_id="care-plan-attachments", hidden=True),
            FolderOverride(client_id="c", folder_id="health-summaries", custom_name="Health"),
        ])
        care = next(v for v in visible_folders(taxonomy, overrides) if v.folder_id == "care-planning")
        assert [(s.folder_id, s.name) for s in care.subfolders] == [("health-summaries", "Health")]

    def test_taxonomy_untouched(self, taxonomy):
        before = taxonomy.model_dump()
        visible_folders(taxonomy, OverrideSet("c", folders=[
            FolderOverride(client_id="c", folder_id="risk", custom_name="Other", hidden=True),
        ]))
        assert taxonomy.model_dump() == before

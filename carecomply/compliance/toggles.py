"""
CareComply Override Manager — Per-client exception toggles.

Compliance overrides, per (client, document type):

    Required ──set_not_required(reason?)──▶ NotRequired(reason)
    NotRequired ──set_required()──▶ Required   (record removed, reason cleared)

Folder overrides, per (client, folder): custom name and hidden flag; a record
that returns to defaults is removed.

All transitions upsert by key and are idempotent.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from carecomply.compliance.overrides import ComplianceOverride, FolderOverride
from carecomply.engine.errors import CareComplyValidationError
from carecomply.engine.logging import log, log_override_change
from carecomply.stores.base import OverrideStore
from carecomply.taxonomy.models import Taxonomy

logger = logging.getLogger("carecomply.compliance.toggles")


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


OverrideT = TypeVar("OverrideT", bound=BaseModel)


def _build(model: Type[OverrideT], data: Dict[str, Any], object_ref: str) -> OverrideT:
    """Validate an override record, mapping pydantic errors to CareComplyValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise CareComplyValidationError(
            f"Invalid override: {e.error_count()} error(s)",
            object_ref=object_ref,
            client_id=data.get("client_id"),
            validation_errors=[
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ],
        ) from e


class OverrideManager:
    """Writes per-client overrides; never touches the taxonomy."""

    def __init__(self, taxonomy: Taxonomy, override_store: OverrideStore):
        self._taxonomy = taxonomy
        self._store = override_store

    # -------------------------------------------------------------------
    # Compliance (not-required) toggles
    # -------------------------------------------------------------------

    def _require_tracked(self, client_id: str, document_type: str) -> None:
        if self._taxonomy.tracked_document(document_type) is None:
            raise CareComplyValidationError(
                f"'{document_type}' is not a tracked document",
                object_ref=f"overrides.compliance.{document_type}",
                client_id=client_id,
                validation_errors=[f"unknown tracked document '{document_type}'"],
            )

    def set_not_required(
        self,
        client_id: str,
        document_type: str,
        reason: Optional[str] = None,
        changed_by: Optional[Any] = None,
    ) -> ComplianceOverride:
        """Mark an obligation not required for this client, with an optional reason."""
        self._require_tracked(client_id, document_type)
        override = _build(
            ComplianceOverride,
            {
                "client_id": client_id,
                "document_type": document_type,
                "not_required": True,
                "reason": _clean(reason),
            },
            object_ref=f"overrides.compliance.{document_type}",
        )
        reason = override.reason

        existing = self._store.get_compliance(client_id, document_type)
        if existing is not None and existing.not_required and existing.reason == reason:
            return existing

        saved = self._store.set_compliance(override)
        logger.info(f"{document_type!r} marked not required for client {client_id}")
        log(log_override_change(
            "compliance", client_id, document_type,
            {"not_required": True, "reason": reason}, user_id=changed_by,
        ))
        return saved

    def set_required(
        self,
        client_id: str,
        document_type: str,
        changed_by: Optional[Any] = None,
    ) -> bool:
        """
        Restore the default (required). Returns True if an override was removed,
        False if the obligation was already required.
        """
        self._require_tracked(client_id, document_type)
        removed = self._store.delete_compliance(client_id, document_type)
        if removed:
            logger.info(f"{document_type!r} marked required for client {client_id}")
            log(log_override_change(
                "compliance", client_id, document_type,
                {"not_required": False}, user_id=changed_by,
            ))
        return removed

    def is_not_required(self, client_id: str, document_type: str) -> bool:
        existing = self._store.get_compliance(client_id, document_type)
        return existing is not None and existing.not_required

    # -------------------------------------------------------------------
    # Folder customisation
    # -------------------------------------------------------------------

    def _update_folder(
        self,
        client_id: str,
        folder_id: str,
        changed_by: Optional[Any],
        **changes: Any,
    ) -> Optional[FolderOverride]:
        self._taxonomy.folder(folder_id)  # NotFound for unknown ids

        existing = self._store.get_folder(client_id, folder_id)
        base = existing or FolderOverride(client_id=client_id, folder_id=folder_id)
        merged = _build(
            FolderOverride,
            {**base.model_dump(), **changes},
            object_ref=f"overrides.folder.{folder_id}",
        )

        if merged.is_default:
            if existing is None:
                return None
            self._store.delete_folder(client_id, folder_id)
            result = None
        elif (
            existing is not None
            and existing.custom_name == merged.custom_name
            and existing.hidden == merged.hidden
        ):
            return existing
        else:
            result = self._store.set_folder(merged)

        log(log_override_change("folder", client_id, folder_id, changes, user_id=changed_by))
        return result

    def rename_folder(
        self,
        client_id: str,
        folder_id: str,
        custom_name: Optional[str],
        changed_by: Optional[Any] = None,
    ) -> Optional[FolderOverride]:
        """Set (or with None/blank, clear) the client's name for a folder."""
        return self._update_folder(
            client_id, folder_id, changed_by, custom_name=_clean(custom_name)
        )

    def set_folder_hidden(
        self,
        client_id: str,
        folder_id: str,
        hidden: Optional[bool],
        changed_by: Optional[Any] = None,
    ) -> Optional[FolderOverride]:
        """Hide/show a folder for a client; None follows the taxonomy default."""
        return self._update_folder(client_id, folder_id, changed_by, hidden=hidden)

    def customize_folder(
        self,
        client_id: str,
        folder_id: str,
        custom_name: Optional[str] = None,
        hidden: Optional[bool] = None,
        changed_by: Optional[Any] = None,
    ) -> Optional[FolderOverride]:
        """
        Apply the given customisation, leaving unspecified attributes as they
        are. Use rename_folder / set_folder_hidden to clear a single attribute.
        """
        changes: Dict[str, Any] = {}
        if custom_name is not None:
            changes["custom_name"] = _clean(custom_name)
        if hidden is not None:
            changes["hidden"] = hidden
        return self._update_folder(client_id, folder_id, changed_by, **changes)

    def reset_folder(self, client_id: str, folder_id: str, changed_by: Optional[Any] = None) -> bool:
        """Drop all customisation for a folder. Returns True if something was removed."""
        self._taxonomy.folder(folder_id)
        removed = self._store.delete_folder(client_id, folder_id)
        if removed:
            log(log_override_change("folder", client_id, folder_id, {"reset": True}, user_id=changed_by))
        return removed

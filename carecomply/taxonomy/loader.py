"""
CareComply Taxonomy Loader — Parse the folder catalog from YAML.

File format (see default_taxonomy.yaml)::

    version: "2026.1"
    folders:
      - id: service-agreement
        name: Service Agreement
        documents:
          - {name: Service Agreement, frequency: annual}
      - id: incident-reports
        name: Incident Reports
        allows_multiple_artifacts: true
      - id: care-planning
        name: Care Planning
        documents: [...]
        subfolders: [...]

``kind`` may be given explicitly; otherwise it is inferred: sub-folders make a
composite folder, ``allows_multiple_artifacts: true`` a multi-artifact folder,
anything else a tracked folder.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from carecomply.engine.errors import CareComplyConfigError
from carecomply.engine.logging import log, log_system_event
from carecomply.taxonomy.models import Taxonomy

logger = logging.getLogger("carecomply.taxonomy.loader")

DEFAULT_TAXONOMY_PATH = Path(__file__).with_name("default_taxonomy.yaml")


def _normalize_folder(raw: Dict[str, Any], depth: int = 0) -> Dict[str, Any]:
    """Map the YAML folder shape onto the Folder variant fields."""
    if not isinstance(raw, dict):
        raise CareComplyConfigError(f"Folder entry must be a mapping, got {type(raw).__name__}")

    subfolders = raw.get("subfolders") or []
    if subfolders and depth > 0:
        raise CareComplyConfigError(
            f"Folder '{raw.get('id')}' nests sub-folders more than one level deep"
        )

    kind = raw.get("kind")
    if kind is None:
        if subfolders:
            kind = "composite"
        elif raw.get("allows_multiple_artifacts"):
            kind = "multi_artifact"
        else:
            kind = "tracked"

    folder: Dict[str, Any] = {
        "kind": kind,
        "id": raw.get("id"),
        "display_name": raw.get("name", raw.get("display_name")),
        "default_visible": raw.get("visible", raw.get("default_visible", True)),
    }
    if kind in ("tracked", "composite"):
        folder["tracked_documents"] = raw.get("documents") or []
    elif raw.get("documents"):
        raise CareComplyConfigError(
            f"Multi-artifact folder '{raw.get('id')}' cannot declare tracked documents"
        )
    if kind == "composite":
        folder["subfolders"] = [_normalize_folder(sub, depth + 1) for sub in subfolders]
    return folder


def parse_taxonomy(raw: Any) -> Taxonomy:
    """Build a validated Taxonomy from an already-parsed mapping."""
    if not isinstance(raw, dict):
        raise CareComplyConfigError(
            f"Taxonomy must be a mapping with a 'folders' list, got {type(raw).__name__}"
        )
    raw_folders = raw.get("folders") or []
    if not isinstance(raw_folders, list):
        raise CareComplyConfigError(
            f"Taxonomy 'folders' must be a list, got {type(raw_folders).__name__}"
        )
    folders: List[Dict[str, Any]] = [_normalize_folder(f) for f in raw_folders]
    try:
        return Taxonomy(version=str(raw.get("version", "1")), folders=folders)
    except PydanticValidationError as e:
        raise CareComplyConfigError(
            f"Invalid taxonomy: {e.error_count()} error(s)",
            validation_errors=[err["msg"] for err in e.errors()],
        ) from e


def load_taxonomy(path: Optional[str] = None) -> Taxonomy:
    """
    Load the taxonomy catalog.

    Args:
        path: YAML file path. None loads the packaged default catalog.

    Raises:
        CareComplyConfigError: File missing, malformed, or fails validation.
    """
    file_path = Path(path) if path else DEFAULT_TAXONOMY_PATH
    if not file_path.exists():
        raise CareComplyConfigError(f"Taxonomy file not found: {file_path}", object_ref=str(file_path))

    with open(file_path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise CareComplyConfigError(
                f"Malformed taxonomy file: {e}", object_ref=str(file_path)
            ) from e

    taxonomy = parse_taxonomy(raw)
    logger.info(
        f"Loaded taxonomy v{taxonomy.version} from {file_path.name}: "
        f"{len(taxonomy.all_folders())} folders, {len(taxonomy.tracked_names())} tracked documents"
    )
    log(log_system_event(
        "taxonomy_loaded",
        f"Taxonomy v{taxonomy.version} loaded",
        details={"path": str(file_path), "folders": len(taxonomy.all_folders())},
    ))
    return taxonomy

"""
CareComply CLI — Store bootstrap and read-only compliance inspection.

Commands:
- carecomply init                 — Create the store tables
- carecomply taxonomy             — Validate and print the folder catalog
- carecomply status <client_id>   — Per-folder and overall compliance status
- carecomply folders <client_id>  — Visible folders with resolved names and counts
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from carecomply.engine.config import CONFIG_FILE_NAME, PlatformConfig, load_platform_config
from carecomply.engine.errors import CareComplyError
from carecomply.engine.logging import shutdown_logging

logger = logging.getLogger("carecomply.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="carecomply",
        description="CareComply — Document Compliance & Folder Override Engine",
    )
    parser.add_argument(
        "--config", default=None, help=f"Path to {CONFIG_FILE_NAME} (default: auto-discover)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # carecomply init
    subparsers.add_parser("init", help="Create the store database tables")

    # carecomply taxonomy
    tax_parser = subparsers.add_parser("taxonomy", help="Validate and print the taxonomy")
    tax_parser.add_argument("--path", help="Taxonomy YAML (default: configured or packaged)")

    # carecomply status
    status_parser = subparsers.add_parser("status", help="Compliance status for a client")
    status_parser.add_argument("client_id", help="Client identifier")
    status_parser.add_argument("--json", action="store_true", help="Print the summary as JSON")

    # carecomply folders
    folders_parser = subparsers.add_parser("folders", help="Visible folders for a client")
    folders_parser.add_argument("client_id", help="Client identifier")

    args = parser.parse_args(argv)

    if args.command == "init":
        return cmd_init(args)
    elif args.command == "taxonomy":
        return cmd_taxonomy(args)
    elif args.command == "status":
        return cmd_status(args)
    elif args.command == "folders":
        return cmd_folders(args)
    else:
        parser.print_help()
        return 0


def _load_config(args: argparse.Namespace) -> Optional[PlatformConfig]:
    try:
        config = load_platform_config(args.config)
    except CareComplyError as e:
        print(f"[ERROR] Failed to load config: {e.message}")
        return None
    except PydanticValidationError as e:
        print(f"[ERROR] Invalid config: {e.error_count()} error(s)")
        for err in e.errors():
            print(f"  {'.'.join(str(p) for p in err['loc'])}: {err['msg']}")
        return None
    logging.basicConfig(level=getattr(logging, config.logging.level.upper(), logging.INFO))
    return config


def _build_service(config: PlatformConfig):
    """Start the audit trail, then wire taxonomy, SQL stores and the compliance service."""
    from carecomply.compliance.service import ComplianceService
    from carecomply.db.session import init_store_db_from_config
    from carecomply.engine.logging import init_logging_from_config
    from carecomply.stores.sql import SqlDocumentStore, SqlOverrideStore
    from carecomply.taxonomy.loader import load_taxonomy

    init_logging_from_config(config.logging)
    taxonomy = load_taxonomy(config.taxonomy.path)
    factory = init_store_db_from_config(config.database)
    return ComplianceService(
        taxonomy,
        SqlDocumentStore(factory),
        SqlOverrideStore(factory),
        config=config.compliance,
    )


def cmd_init(args: argparse.Namespace) -> int:
    """
    Bootstrap the store database:
    1. Load config from carecomply.yaml
    2. Create all tables (SQLAlchemy metadata.create_all)
    """
    config = _load_config(args)
    if config is None:
        return 1

    from sqlalchemy.exc import SQLAlchemyError

    from carecomply.db.session import init_store_db

    try:
        init_store_db(config.database.url, create_tables=True)
    except SQLAlchemyError as e:
        print(f"[ERROR] Failed to create tables: {e}")
        return 1

    print("[OK] Store tables created")
    return 0


def cmd_taxonomy(args: argparse.Namespace) -> int:
    """Load the taxonomy and print its folder tree."""
    config = _load_config(args)
    if config is None:
        return 1

    from carecomply.taxonomy.loader import load_taxonomy
    from carecomply.taxonomy.models import CompositeFolder, own_tracked_documents

    try:
        taxonomy = load_taxonomy(args.path or config.taxonomy.path)
    except CareComplyError as e:
        print(f"[ERROR] {e.message}")
        return 1

    print(f"Taxonomy v{taxonomy.version}")
    for folder in taxonomy.folders:
        _print_folder(folder, own_tracked_documents(folder), indent="  ")
        if isinstance(folder, CompositeFolder):
            for sub in folder.subfolders:
                _print_folder(sub, own_tracked_documents(sub), indent="    ")
    return 0


def _print_folder(folder, tracked, indent: str) -> None:
    flags: List[str] = [folder.kind]
    if not folder.default_visible:
        flags.append("hidden")
    print(f"{indent}{folder.display_name} [{folder.id}] ({', '.join(flags)})")
    for doc in tracked:
        print(f"{indent}  - {doc.name} ({doc.frequency.value})")


def cmd_status(args: argparse.Namespace) -> int:
    """Print per-folder and overall status for one client."""
    config = _load_config(args)
    if config is None:
        return 1

    try:
        service = _build_service(config)
        summary = service.client_summary(args.client_id)
    except CareComplyError as e:
        print(f"[ERROR] {e.message}")
        return 1
    finally:
        shutdown_logging()

    if args.json:
        print(json.dumps(summary.model_dump(mode="json"), indent=2))
        return 0

    print(f"Client {summary.client_id}: {summary.overall_status.value}")
    print(f"  Completion: {summary.percentage}% ({summary.compliant_count}/{summary.total_required})")
    for folder_id, status in summary.folders.items():
        print(f"  {folder_id:<28} {status.value}")
    if summary.missing_documents:
        print(f"  Missing: {', '.join(summary.missing_documents)}")
    return 0


def cmd_folders(args: argparse.Namespace) -> int:
    """Print the client's visible folders with document counts."""
    config = _load_config(args)
    if config is None:
        return 1

    try:
        service = _build_service(config)
        views = service.visible_folders(args.client_id)
    except CareComplyError as e:
        print(f"[ERROR] {e.message}")
        return 1
    finally:
        shutdown_logging()

    for view in views:
        print(f"{view.name} [{view.folder_id}] {view.status.value} ({view.document_count} docs)")
        for sub in view.subfolders:
            print(f"  {sub.name} [{sub.folder_id}] {sub.status.value} ({sub.document_count} docs)")
    return 0


if __name__ == "__main__":
    sys.exit(main())

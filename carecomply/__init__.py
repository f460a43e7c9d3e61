"""
CareComply — Document Compliance & Folder Override Engine

Tracks evidence documents for care clients against a shared folder taxonomy,
derives per-folder and overall compliance status, and applies per-client
overrides (not-required obligations, renamed / hidden folders) without ever
mutating the taxonomy.

Packages:
    taxonomy    — static folder / tracked-document catalog
    documents   — evidence lifecycle (upload, edit, archive, delete)
    compliance  — status evaluation, overrides, aggregation
    stores      — Document Store / Override Store collaborators
    db          — SQLAlchemy models and sessions
    engine      — config, errors, structured logging
"""

__version__ = "1.0.0"
__all__ = ["engine", "taxonomy", "documents", "compliance", "stores", "db"]

"""CareComply Taxonomy — Static folder / tracked-document catalog."""

from carecomply.taxonomy.loader import load_taxonomy, parse_taxonomy
from carecomply.taxonomy.models import (
    ARCHIVE_FOLDER_ID,
    CompositeFolder,
    Frequency,
    MultiArtifactFolder,
    Taxonomy,
    TrackedDocument,
    TrackedFolder,
    flatten_tracked_documents,
)

__all__ = [
    "ARCHIVE_FOLDER_ID",
    "CompositeFolder",
    "Frequency",
    "MultiArtifactFolder",
    "Taxonomy",
    "TrackedDocument",
    "TrackedFolder",
    "flatten_tracked_documents",
    "load_taxonomy",
    "parse_taxonomy",
]

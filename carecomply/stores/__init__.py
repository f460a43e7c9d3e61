"""CareComply Stores — Document Store and Override Store collaborators."""

from carecomply.stores.base import DocumentStore, OverrideStore
from carecomply.stores.sql import SqlDocumentStore, SqlOverrideStore

__all__ = ["DocumentStore", "OverrideStore", "SqlDocumentStore", "SqlOverrideStore"]

"""
CareComply Error Hierarchy — Structured exceptions for the compliance engine.

Every error carries enough context (object_ref, client_id, free-form context)
to be written to the JSONL audit trail and surfaced verbatim to callers.

Hierarchy:
    CareComplyError
    ├── CareComplyValidationError        — Invalid upload / edit / override input
    ├── CareComplyNotFoundError          — Document, override or folder id unknown
    ├── CareComplyStoreUnavailableError  — Document / Override store call failed
    └── CareComplyConfigError            — Invalid carecomply.yaml or taxonomy file
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class CareComplyError(Exception):
    """
    Base error for all CareComply engine failures.
    All context is serializable to JSON.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.object_ref: Optional[str] = context.get("object_ref")
        self.client_id: Optional[str] = context.get("client_id")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to JSON-compatible dict for logging and transport."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "object_ref": self.object_ref,
            "client_id": self.client_id,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("object_ref", "client_id")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.object_ref:
            parts.append(f"object_ref={self.object_ref}")
        if self.client_id:
            parts.append(f"client_id={self.client_id}")
        return " | ".join(parts)


class CareComplyValidationError(CareComplyError):
    """
    Input validation failed (upload format/size, link reference, edit fields).
    Raised before any store mutation. Includes field-level error details.
    """

    def __init__(self, message: str, **context: Any):
        self.validation_errors: List[str] = list(context.get("validation_errors") or [])
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d


class CareComplyNotFoundError(CareComplyError):
    """Referenced Document, Override or Folder does not exist."""

    def __init__(self, message: str, **context: Any):
        self.resource_type: Optional[str] = context.get("resource_type")
        self.resource_id: Optional[str] = context.get("resource_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["resource_type"] = self.resource_type
        d["resource_id"] = self.resource_id
        return d


class CareComplyStoreUnavailableError(CareComplyError):
    """
    Document Store or Override Store unreachable or returned an error.
    Never retried internally; an unknown state is never reported as compliant.
    """

    def __init__(self, message: str, **context: Any):
        self.store: Optional[str] = context.get("store")
        self.operation: Optional[str] = context.get("operation")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["store"] = self.store
        d["operation"] = self.operation
        return d


class CareComplyConfigError(CareComplyError):
    """
    Configuration error — invalid carecomply.yaml or taxonomy definition.
    Carries the underlying validation messages when there are any.
    """

    def __init__(self, message: str, **context: Any):
        self.validation_errors: List[str] = list(context.get("validation_errors") or [])
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d


# Short names used throughout the public API.
ValidationError = CareComplyValidationError
NotFoundError = CareComplyNotFoundError
StoreUnavailable = CareComplyStoreUnavailableError

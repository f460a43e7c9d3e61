"""CareComply Engine — Configuration, errors and structured logging."""

from carecomply.engine.config import PlatformConfig, get_platform_config, load_platform_config  # noqa: F401
from carecomply.engine.errors import (  # noqa: F401
    CareComplyConfigError,
    CareComplyError,
    CareComplyNotFoundError,
    CareComplyStoreUnavailableError,
    CareComplyValidationError,
    NotFoundError,
    StoreUnavailable,
    ValidationError,
)

__all__ = [
    "PlatformConfig",
    "get_platform_config",
    "load_platform_config",
    "CareComplyError",
    "CareComplyValidationError",
    "CareComplyNotFoundError",
    "CareComplyStoreUnavailableError",
    "CareComplyConfigError",
    "ValidationError",
    "NotFoundError",
    "StoreUnavailable",
]

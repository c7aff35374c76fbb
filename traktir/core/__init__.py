"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from traktir.core.config import get_settings, Settings, EnvironmentMode
from traktir.core.exceptions import (
    TraktirError,
    AuthenticationRequired,
    ValidationFailed,
    ResourceNotFound,
    QuotaExceeded,
    UpstreamFailure,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "TraktirError",
    "AuthenticationRequired",
    "ValidationFailed",
    "ResourceNotFound",
    "QuotaExceeded",
    "UpstreamFailure",
]

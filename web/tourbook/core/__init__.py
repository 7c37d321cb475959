from .base import BaseRepository, IRepository, BaseService
from .exceptions import (
    BaseError,
    NotFoundError,
    ValidationError,
    CapacityExceededError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    BusinessLogicError,
    TransientStoreError,
    ExternalServiceError
)
from .config import Settings, get_settings
from .retry import retry_transient

__all__ = [
    # Base classes
    "BaseRepository",
    "IRepository",
    "BaseService",

    # Exceptions
    "BaseError",
    "NotFoundError",
    "ValidationError",
    "CapacityExceededError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "BusinessLogicError",
    "TransientStoreError",
    "ExternalServiceError",
    
    # Config
    "Settings",
    "get_settings",

    # Retry
    "retry_transient",
]

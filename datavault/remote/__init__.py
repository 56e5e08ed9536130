from .client import RemoteClient
from .errors import (
    DataVaultError,
    ValidationError,
    ChallengeMismatch,
    RemoteError,
    RemoteRejection,
    TransportError,
    ShapeViolation,
    SessionInvalid,
)

__all__ = [
    "RemoteClient",
    "DataVaultError",
    "ValidationError",
    "ChallengeMismatch",
    "RemoteError",
    "RemoteRejection",
    "TransportError",
    "ShapeViolation",
    "SessionInvalid",
]

"""
Utility modules for Backend Forge
"""

from .security import (
    AuthConfigurationError,
    TokenSubject,
    create_access_token,
    decode_token,
    verify_access_token,
    mask_api_key,
)

__all__ = [
    # Security
    "AuthConfigurationError",
    "TokenSubject",
    "create_access_token",
    "decode_token",
    "verify_access_token",
    "mask_api_key",
]

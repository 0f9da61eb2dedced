"""Utility helpers for the radio CMS backend."""

from .security import (
    AuthenticationError,
    TokenPayload,
    create_access_token,
    decode_access_token,
)

__all__ = [
    "create_access_token",
    "decode_access_token",
    "AuthenticationError",
    "TokenPayload",
]

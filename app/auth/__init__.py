"""
Identity of the match creator, from an optional bearer token
"""
from app.auth.utils import get_identity, create_access_token, verify_token

__all__ = [
    "get_identity",
    "create_access_token",
    "verify_token",
]

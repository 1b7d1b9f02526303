"""Authentication module for Pintag.

This module handles:
- Password hashing (bcrypt)
- Access token issuing and verification (signed JWT)
- Login lockout after repeated failures
- Role-based access control (user / admin)
"""

from pintag.auth.jwt import create_access_token, decode_access_token
from pintag.auth.passwords import hash_password, verify_password

__all__ = [
    "create_access_token",
    "decode_access_token",
    "hash_password",
    "verify_password",
]

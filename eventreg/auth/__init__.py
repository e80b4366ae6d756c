"""Authentication helpers for the event registration core.

Provides:
- Password hashing and verification (passlib bcrypt)
"""

from eventreg.auth.security import get_password_hash, verify_password

__all__ = [
    "get_password_hash",
    "verify_password",
]

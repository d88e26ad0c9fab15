"""Security helpers: password hashing."""

from objectstore.infrastructure.security.password import (
    BcryptPasswordHasher,
    PasswordHasher,
)

__all__ = ["BcryptPasswordHasher", "PasswordHasher"]

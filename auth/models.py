"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors posts/models.py
-- dataclasses own domain shape; stores and services do the work.

Layer rule: no imports from api/ or posts/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered postboard account.

    email is stored in the normalized form produced at registration and is
    unique across all users. hashed_password is a bcrypt digest and must never
    leave the auth layer -- api/ response models do not carry it.

    avatar is the gravatar URL derived from email at registration time.
    """

    name: str
    email: str
    hashed_password: str
    avatar: str = ""
    id: int | None = None
    created_at: str | None = None

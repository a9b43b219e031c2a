"""
auth/avatar.py -- Gravatar reference derived from an email address.

Pure function: builds the URL, never fetches it. Gravatar keys images by the
MD5 of the trimmed, lowercased address.
"""

from __future__ import annotations

import hashlib
from urllib.parse import urlencode

_GRAVATAR_BASE = "https://www.gravatar.com/avatar/"


def email_to_avatar_ref(email: str, size: int = 200, rating: str = "pg", default: str = "mm") -> str:
    """Return the gravatar URL for email.

    size is the square pixel size, rating the maximum content rating, and
    default the image gravatar serves when the address has none ("mm" is the
    grey silhouette).
    """
    digest = hashlib.md5(email.strip().lower().encode("utf-8"), usedforsecurity=False).hexdigest()
    query = urlencode({"s": size, "r": rating, "d": default})
    return f"{_GRAVATAR_BASE}{digest}?{query}"

"""
posts/models.py -- Domain dataclasses for posts and likes.

These are pure data containers with zero logic. Ownership checks and the
like-set rules live in posts/service.py and posts/store.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Like:
    """One user's like on a post. A post holds at most one Like per user_id."""

    user_id: int


@dataclass
class Post:
    """A text post on the shared board.

    author_name and author_avatar are copied from the author's account when
    the post is created, so listing posts needs no user lookups.

    likes is ordered most recent first.

    id is None before the record is written to the database.
    """

    author_id: int
    text: str
    author_name: str = ""
    author_avatar: str = ""
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    likes: list[Like] = field(default_factory=list)


class LikeDirection(str, Enum):
    LIKE = "like"
    UNLIKE = "unlike"

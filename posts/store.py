"""
posts/store.py -- SQLAlchemy-backed persistence layer for posts and likes.

Uses SQLAlchemy Core (not ORM) so the dataclasses in posts/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. PostStore is the repository; the _row_to_*
functions are the mappers. Service and route code never touches SQL directly.

Like-set invariant:
  A post's likes hold at most one entry per user. Two layers enforce it:
    1. add_like() / remove_like() run their existence check and their write
       inside one transaction, on one connection.
    2. UNIQUE(post_id, user_id) on post_likes. If another process inserts the
       same like between our check and our insert, the INSERT fails with
       IntegrityError and add_like() reports AlreadyLiked -- a duplicate row
       can never be stored.
  posts/service.py additionally serializes all mutations of one post inside
  this process.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = PostStore("sqlite:///postboard.db")
    post_id = store.create_post(Post(author_id=1, text="hello", author_name="Alice"))
    likes = store.add_like(post_id, user_id=2)
    store.delete_post(post_id, author_id=1)
    store.close()
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, UniqueConstraint, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from core.database import make_engine
from core.errors import AlreadyLiked, NotFound, NotLiked
from posts.models import Like, Post

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("author_id", Integer, nullable=False, index=True),
    Column("author_name", String(255), nullable=False),
    Column("author_avatar", Text, nullable=False, server_default=""),
    Column("text", Text, nullable=False),
    Column("created_at", String(32), nullable=False, index=True),
)

# user_id is a weak reference: likes are not removed when an account goes away.
_post_likes = Table(
    "post_likes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", Integer, nullable=False, index=True),
    Column("user_id", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("post_id", "user_id", name="uq_post_like"),
)

_POST_NOT_FOUND = "Post not found."

# SQLite INTEGER is a signed 64-bit value; no stored row id lies outside it.
_MIN_ROW_ID = -(2**63)
_MAX_ROW_ID = 2**63 - 1


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PostStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def create_post(self, post: Post) -> int:
        """Insert a new post with no likes and return its assigned database ID."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _posts.insert().values(
                    author_id=post.author_id,
                    author_name=post.author_name,
                    author_avatar=post.author_avatar,
                    text=post.text,
                    created_at=post.created_at or _now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def get_post(self, post_id: int) -> Post | None:
        """Fetch a single post with its likes. Returns None if not found."""
        if not _is_row_id(post_id):
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_posts.select().where(_posts.c.id == post_id)).fetchone()
            if row is None:
                return None
            return _row_to_post(row, _likes_for(conn, post_id))

    def list_posts(self) -> list[Post]:
        """Return every post, newest first, each with its likes.

        Ties on created_at fall back to id so insertion order is preserved.
        Two queries total: one for posts, one for all their likes.
        """
        with self.engine.connect() as conn:
            rows = conn.execute(_posts.select().order_by(_posts.c.created_at.desc(), _posts.c.id.desc())).fetchall()
            like_rows = conn.execute(
                select(_post_likes.c.post_id, _post_likes.c.user_id).order_by(_post_likes.c.id.desc())
            ).fetchall()
        likes_by_post: dict[int, list[Like]] = {}
        for like_row in like_rows:
            likes_by_post.setdefault(like_row.post_id, []).append(Like(user_id=like_row.user_id))
        return [_row_to_post(r, likes_by_post.get(r.id, [])) for r in rows]

    def delete_post(self, post_id: int, author_id: int) -> bool:
        """Delete a post and its likes. author_id is part of the WHERE clause.

        The author check in SQL means a post can only ever be removed by its
        author, even if the caller's own ownership check raced with a change.

        Returns True if the post was deleted, False if not found or wrong author.
        """
        if not _is_row_id(post_id):
            return False
        with self.engine.begin() as conn:
            result = conn.execute(
                _posts.delete().where((_posts.c.id == post_id) & (_posts.c.author_id == author_id))
            )
            if result.rowcount == 0:
                return False
            conn.execute(_post_likes.delete().where(_post_likes.c.post_id == post_id))
        return True

    # ------------------------------------------------------------------
    # Likes
    # ------------------------------------------------------------------

    def get_likes(self, post_id: int) -> list[Like]:
        """Return a post's likes, most recent first."""
        if not _is_row_id(post_id):
            return []
        with self.engine.connect() as conn:
            return _likes_for(conn, post_id)

    def add_like(self, post_id: int, user_id: int) -> list[Like]:
        """Record user_id's like on a post and return the updated likes.

        Raises NotFound if the post does not exist, AlreadyLiked if the user
        already likes it.
        """
        try:
            with self.engine.begin() as conn:
                _require_post(conn, post_id)
                if _has_like(conn, post_id, user_id):
                    raise AlreadyLiked()
                conn.execute(_post_likes.insert().values(post_id=post_id, user_id=user_id, created_at=_now_iso()))
                return _likes_for(conn, post_id)
        except IntegrityError as exc:
            raise AlreadyLiked() from exc

    def remove_like(self, post_id: int, user_id: int) -> list[Like]:
        """Remove user_id's like from a post and return the updated likes.

        Raises NotFound if the post does not exist, NotLiked if the user does
        not currently like it.
        """
        with self.engine.begin() as conn:
            _require_post(conn, post_id)
            result = conn.execute(
                _post_likes.delete().where((_post_likes.c.post_id == post_id) & (_post_likes.c.user_id == user_id))
            )
            if result.rowcount == 0:
                raise NotLiked()
            return _likes_for(conn, post_id)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Query helpers (run on the caller's connection / transaction)
# ---------------------------------------------------------------------------


def _is_row_id(value: int) -> bool:
    return _MIN_ROW_ID <= value <= _MAX_ROW_ID


def _require_post(conn: Connection, post_id: int) -> None:
    if not _is_row_id(post_id):
        raise NotFound(_POST_NOT_FOUND)
    found = conn.execute(select(_posts.c.id).where(_posts.c.id == post_id)).first()
    if found is None:
        raise NotFound(_POST_NOT_FOUND)


def _has_like(conn: Connection, post_id: int, user_id: int) -> bool:
    found = conn.execute(
        select(_post_likes.c.id).where((_post_likes.c.post_id == post_id) & (_post_likes.c.user_id == user_id))
    ).first()
    return found is not None


def _likes_for(conn: Connection, post_id: int) -> list[Like]:
    rows = conn.execute(
        select(_post_likes.c.user_id).where(_post_likes.c.post_id == post_id).order_by(_post_likes.c.id.desc())
    ).fetchall()
    return [Like(user_id=r.user_id) for r in rows]


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_post(row, likes: list[Like]) -> Post:
    return Post(
        id=row.id,
        author_id=row.author_id,
        author_name=row.author_name,
        author_avatar=row.author_avatar,
        text=row.text,
        created_at=row.created_at,
        likes=likes,
    )

"""
posts/service.py -- Post creation, reads, ownership-guarded delete, like/unlike.

Every operation here runs for an already-authenticated user id (see
auth/dependencies.py). Errors are raised as core.errors types; the service
never returns a default value in place of a failure.

Concurrency:
  Requests are handled concurrently (FastAPI runs these sync calls in a thread
  pool). Each mutation of an existing post -- like, unlike, delete -- holds
  that post's lock from _PostLocks for its whole read-check-write sequence,
  so two likes from the same user can never both pass the "not yet liked"
  check. Across processes the transactional store and its UNIQUE(post_id,
  user_id) constraint give the same guarantee.

  Locks are keyed by post id only. Nothing about a post or a user is cached
  between requests; every operation reads the store.
"""

from __future__ import annotations

import logging
import threading
import weakref

from auth.store import UserStore
from core.errors import FieldError, Forbidden, InternalError, NotFound, ValidationError, store_errors
from posts.models import Like, LikeDirection, Post
from posts.store import PostStore

logger = logging.getLogger("postboard.posts")

_POST_NOT_FOUND = "Post not found."


class _PostLock:
    # _thread.lock cannot be weakly referenced, hence the wrapper.
    __slots__ = ("_lock", "__weakref__")

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def __enter__(self) -> "_PostLock":
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self._lock.release()


class _PostLocks:
    """One mutual-exclusion lock per post id, created on demand.

    Entries are weakly held: a lock disappears once no request is using it,
    so the registry does not grow with the number of posts ever touched.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[int, _PostLock] = weakref.WeakValueDictionary()

    def lock(self, post_id: int) -> _PostLock:
        with self._guard:
            lock = self._locks.get(post_id)
            if lock is None:
                lock = _PostLock()
                self._locks[post_id] = lock
            return lock


class PostService:
    """Usage:
    service = PostService(post_store, user_store)
    post = service.create_post(author_id, "hello")
    likes = service.toggle_like(post.id, other_user_id, LikeDirection.LIKE)
    service.delete_post(post.id, author_id)
    """

    def __init__(self, posts: PostStore, users: UserStore) -> None:
        self.posts = posts
        self.users = users
        self._locks = _PostLocks()

    # ------------------------------------------------------------------
    # Create / read
    # ------------------------------------------------------------------

    def create_post(self, author_id: int, text: str) -> Post:
        """Publish a post for author_id with an empty like set."""
        if not text or not text.strip():
            raise ValidationError([FieldError("text", "Text is required")])

        with store_errors(logger, "create post"):
            author = self.users.get_by_id(author_id)
            if author is None:
                raise NotFound("User not found.")
            post_id = self.posts.create_post(
                Post(
                    author_id=author_id,
                    text=text,
                    author_name=author.name,
                    author_avatar=author.avatar,
                )
            )
            created = self.posts.get_post(post_id)
        if created is None:
            logger.error("Post %d missing immediately after insert", post_id)
            raise InternalError()
        logger.info("User %d created post %d", author_id, post_id)
        return created

    def list_posts(self) -> list[Post]:
        """Return all posts, newest first. Unpaginated."""
        with store_errors(logger, "list posts"):
            return self.posts.list_posts()

    def get_post(self, post_id: int) -> Post:
        with store_errors(logger, "load post"):
            post = self.posts.get_post(post_id)
        if post is None:
            raise NotFound(_POST_NOT_FOUND)
        return post

    # ------------------------------------------------------------------
    # Ownership-guarded delete
    # ------------------------------------------------------------------

    def delete_post(self, post_id: int, requester_id: int) -> None:
        """Delete a post. Only its author may do so.

        Raises NotFound if the post is absent and Forbidden if requester_id is
        not the author. Authorship is verified before anything is removed.
        """
        with self._locks.lock(post_id), store_errors(logger, "delete post"):
            post = self.posts.get_post(post_id)
            if post is None:
                raise NotFound(_POST_NOT_FOUND)
            if post.author_id != requester_id:
                logger.info("User %d refused delete of post %d owned by %d", requester_id, post_id, post.author_id)
                raise Forbidden()
            if not self.posts.delete_post(post_id, requester_id):
                # Removed by another process between the read and the delete.
                raise NotFound(_POST_NOT_FOUND)
        logger.info("User %d deleted post %d", requester_id, post_id)

    # ------------------------------------------------------------------
    # Likes
    # ------------------------------------------------------------------

    def like(self, post_id: int, requester_id: int) -> list[Like]:
        """Add requester_id to the front of the post's likes.

        Raises NotFound if the post is absent, AlreadyLiked if the requester
        already likes it. Returns the updated likes, most recent first.
        """
        with self._locks.lock(post_id), store_errors(logger, "like post"):
            return self.posts.add_like(post_id, requester_id)

    def unlike(self, post_id: int, requester_id: int) -> list[Like]:
        """Remove requester_id from the post's likes.

        Raises NotFound if the post is absent, NotLiked if the requester does
        not currently like it. Returns the updated likes.
        """
        with self._locks.lock(post_id), store_errors(logger, "unlike post"):
            return self.posts.remove_like(post_id, requester_id)

    def toggle_like(self, post_id: int, requester_id: int, direction: LikeDirection) -> list[Like]:
        if direction is LikeDirection.LIKE:
            return self.like(post_id, requester_id)
        return self.unlike(post_id, requester_id)

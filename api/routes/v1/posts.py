"""
api/routes/v1/posts.py -- Post and like endpoints.

Routes (in registration order to avoid FastAPI path capture conflicts):
  POST   /posts              -- create post
  GET    /posts              -- list all posts, newest first
  PUT    /posts/like/{id}    -- like a post
  PUT    /posts/unlike/{id}  -- remove the caller's like
  GET    /posts/{id}         -- single post
  DELETE /posts/{id}         -- delete a post (author only)

Every route requires a valid token. The router-level dependency runs the auth
gate before any handler; handlers that need the caller's id declare
Depends(get_current_user_id) again, which FastAPI resolves from its
per-request cache rather than verifying the token twice.

Handlers are plain `def` so FastAPI runs them in its thread pool; PostService
serializes concurrent mutations of the same post.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import LikeResponse, MessageResponse, PostCreate, PostResponse
from auth.dependencies import get_current_user_id
from posts.models import LikeDirection
from posts.service import PostService

router = APIRouter(dependencies=[Depends(get_current_user_id)])


def _service(request: Request) -> PostService:
    return request.app.state.posts


@router.post("/posts", response_model=PostResponse)
def create_post(
    request: Request,
    body: PostCreate,
    user_id: int = Depends(get_current_user_id),
) -> PostResponse:
    """Publish a post as the authenticated user."""
    post = _service(request).create_post(user_id, body.text)
    return PostResponse.from_post(post)


@router.get("/posts", response_model=list[PostResponse])
def list_posts(request: Request) -> list[PostResponse]:
    """Return every post, newest first. No pagination."""
    return [PostResponse.from_post(p) for p in _service(request).list_posts()]


@router.put("/posts/like/{post_id}", response_model=list[LikeResponse])
def like_post(
    request: Request,
    post_id: int,
    user_id: int = Depends(get_current_user_id),
) -> list[LikeResponse]:
    """Like a post. 400 already_liked if the caller already likes it."""
    likes = _service(request).toggle_like(post_id, user_id, LikeDirection.LIKE)
    return [LikeResponse.from_like(like) for like in likes]


@router.put("/posts/unlike/{post_id}", response_model=list[LikeResponse])
def unlike_post(
    request: Request,
    post_id: int,
    user_id: int = Depends(get_current_user_id),
) -> list[LikeResponse]:
    """Remove the caller's like. 400 not_liked if there is none."""
    likes = _service(request).toggle_like(post_id, user_id, LikeDirection.UNLIKE)
    return [LikeResponse.from_like(like) for like in likes]


@router.get("/posts/{post_id}", response_model=PostResponse)
def get_post(request: Request, post_id: int) -> PostResponse:
    return PostResponse.from_post(_service(request).get_post(post_id))


@router.delete("/posts/{post_id}", response_model=MessageResponse)
def delete_post(
    request: Request,
    post_id: int,
    user_id: int = Depends(get_current_user_id),
) -> MessageResponse:
    """Delete a post. 403 forbidden unless the caller is its author."""
    _service(request).delete_post(post_id, user_id)
    return MessageResponse(message="Post removed.")

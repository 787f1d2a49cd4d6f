"""Post CRUD endpoints.

    POST   /users/{user_id}/posts            create a post
    GET    /users/{user_id}/posts            list a user's posts
    GET    /users/{user_id}/posts/{post_id}  read a post
    PUT    /users/{user_id}/posts/{post_id}  replace a post's data
    DELETE /users/{user_id}/posts/{post_id}  delete a post (idempotent)

Storage errors are not handled here; the application's exception handlers
map them to client-visible responses.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from crudapp.api.deps import get_storage
from crudapp.core.record import Record
from crudapp.observability.logging import LogContext
from crudapp.storage.base import Storage

router = APIRouter(prefix="/users/{user_id}/posts", tags=["Posts"])


class PostRequest(BaseModel):
    """Body of create and update requests."""

    model_config = {"extra": "forbid"}

    data: str


class PostResponse(BaseModel):
    """A post as returned to clients."""

    model_config = {"populate_by_name": True}

    user_id: str = Field(alias="userID")
    post_id: str = Field(alias="postID")
    data: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @classmethod
    def from_record(cls, record: Record) -> PostResponse:
        return cls(
            user_id=record.user_id,
            post_id=record.post_id,
            data=record.data,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class PostListResponse(BaseModel):
    """All posts of one user."""

    posts: list[PostResponse]


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=PostResponse,
    response_model_by_alias=True,
)
async def create_post(
    user_id: str, body: PostRequest, storage: Storage = Depends(get_storage)
) -> PostResponse:
    with LogContext(user_id=user_id):
        record = await storage.create(user_id, body.data)
    return PostResponse.from_record(record)


@router.get("", response_model=PostListResponse, response_model_by_alias=True)
async def list_posts(user_id: str, storage: Storage = Depends(get_storage)) -> PostListResponse:
    with LogContext(user_id=user_id):
        async with await storage.read_all(user_id) as records:
            posts = [PostResponse.from_record(record) async for record in records]
    return PostListResponse(posts=posts)


@router.get("/{post_id}", response_model=PostResponse, response_model_by_alias=True)
async def read_post(
    user_id: str, post_id: str, storage: Storage = Depends(get_storage)
) -> PostResponse:
    with LogContext(user_id=user_id):
        record = await storage.read(user_id, post_id)
    return PostResponse.from_record(record)


@router.put("/{post_id}", response_model=PostResponse, response_model_by_alias=True)
async def update_post(
    user_id: str, post_id: str, body: PostRequest, storage: Storage = Depends(get_storage)
) -> PostResponse:
    with LogContext(user_id=user_id):
        record = await storage.update(user_id, post_id, body.data)
    return PostResponse.from_record(record)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    user_id: str, post_id: str, storage: Storage = Depends(get_storage)
) -> Response:
    with LogContext(user_id=user_id):
        await storage.delete(user_id, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

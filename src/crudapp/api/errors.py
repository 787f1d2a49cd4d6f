"""Error responses for the crudapp API.

Every error body uses the same Result/Message structure:
    {"messages": [{"code": ..., "messageType": ..., "text": ..., "timestamp": ...}]}

Storage errors are mapped at this boundary only: a missing post is the
caller's mistake (400 InvalidArgument), anything else is an opaque 500.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from crudapp.storage.errors import PostNotFoundError, StorageError

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    EXCEPTION = "Exception"


class Message(BaseModel):
    """A single error message."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    """Result wrapper for errors."""

    model_config = {"extra": "forbid"}

    messages: list[Message]


def _result(code: str, text: str, message_type: MessageType) -> Result:
    return Result(
        messages=[
            Message(
                code=code,
                messageType=message_type,
                text=text,
                timestamp=datetime.now(UTC).isoformat(),
            )
        ]
    )


class ApiError(HTTPException):
    """Base exception for API errors."""

    def __init__(
        self,
        status_code: int,
        code: str,
        text: str,
        message_type: MessageType = MessageType.ERROR,
    ):
        self.code = code
        self.text = text
        self.message_type = message_type
        super().__init__(status_code=status_code, detail=text)

    def to_result(self) -> Result:
        return _result(self.code, self.text, self.message_type)


class InvalidArgumentError(ApiError):
    """Invalid argument (400)."""

    def __init__(self, text: str):
        super().__init__(status_code=400, code="InvalidArgument", text=text)


class InternalServerError(ApiError):
    """Internal server error (500)."""

    def __init__(self, text: str = "Internal server error"):
        super().__init__(
            status_code=500,
            code="InternalServerError",
            text=text,
            message_type=MessageType.EXCEPTION,
        )


def map_storage_error(exc: Exception) -> ApiError:
    """Translate a storage exception into the error the client sees."""
    if isinstance(exc, PostNotFoundError):
        return InvalidArgumentError("Post does not exist")
    return InternalServerError()


async def api_exception_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Exception handler for API errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_result().model_dump(by_alias=True),
    )


async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Exception handler for errors raised by the storage layer."""
    if not isinstance(exc, PostNotFoundError):
        logger.error(f"Storage failure on {request.method} {request.url.path}", exc_info=exc)
    return await api_exception_handler(request, map_storage_error(exc))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=_result(
            "InternalServerError", "Internal server error", MessageType.EXCEPTION
        ).model_dump(by_alias=True),
    )

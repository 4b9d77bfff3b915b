"""Response envelope and JSON body models shared by the request handlers."""

from __future__ import annotations

import dataclasses
import datetime
import uuid
from typing import Sequence

from pydantic import BaseModel, Field, SerializeAsAny, TypeAdapter

OK = 200
BAD_REQUEST = 400
UNAUTHORIZED = 401
SERVICE_UNAVAILABLE = 503

JSON = "application/json"
TEXT = "text/plain"

SESSION_INVALID = "Invalid session ID provided or session timed out."


@dataclasses.dataclass(frozen=True)
class Response:
    status: int
    body: str = ""
    content_type: str = TEXT

    @property
    def ok(self) -> bool:
        return self.status == OK


def text(status: int, message: str = "") -> Response:
    return Response(status=status, body=message, content_type=TEXT)


def json_body(payload: BaseModel | Sequence[BaseModel], status: int = OK) -> Response:
    if isinstance(payload, BaseModel):
        raw = payload.model_dump_json()
    else:
        raw = _MODEL_LIST.dump_json(list(payload)).decode()
    return Response(status=status, body=raw, content_type=JSON)


_MODEL_LIST = TypeAdapter(list[SerializeAsAny[BaseModel]])


def valid_id(raw: str | None) -> bool:
    """True when *raw* parses as a UUID."""
    if not raw:
        return False
    try:
        uuid.UUID(raw)
    except ValueError:
        return False
    return True


class ForumSummary(BaseModel):
    id: str
    name: str
    description: str


class PostSummary(BaseModel):
    id: str
    title: str
    author: str
    timestamp: datetime.datetime


class PostBody(BaseModel):
    title: str
    author: str
    body: str
    timestamp: datetime.datetime


class ReplyBody(BaseModel):
    id: str
    author: str
    body: str
    timestamp: datetime.datetime


class MessageSummary(BaseModel):
    id: str
    other: str = Field(description="Sender for inbox listings, recipient for outbox listings")
    subject: str
    timestamp: datetime.datetime
    unread: bool
    flagged: bool


class MessageBody(BaseModel):
    sender: str
    recipient: str
    subject: str
    body: str
    timestamp: datetime.datetime
    read: bool
    flagged: bool


class UserInfo(BaseModel):
    username: str
    created_at: datetime.datetime
    last_login: datetime.datetime | None = None
    email: str | None = None
    is_email_confirmed: bool | None = None

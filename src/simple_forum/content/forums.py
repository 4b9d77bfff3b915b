"""Forum boards, posts and replies (in-memory)."""

from __future__ import annotations

import dataclasses
import datetime
import threading
import uuid

from simple_forum.content.paging import page


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


@dataclasses.dataclass(frozen=True)
class Forum:
    """A board.  An empty ``whitelist`` makes it public."""

    id: str
    name: str
    description: str
    moderators: frozenset[str] = frozenset()
    blacklist: frozenset[str] = frozenset()
    whitelist: frozenset[str] = frozenset()

    @property
    def is_public(self) -> bool:
        return not self.whitelist


@dataclasses.dataclass(frozen=True)
class Post:
    id: str
    forum_id: str
    author: str
    title: str
    body: str
    timestamp: datetime.datetime
    removed: bool = False


@dataclasses.dataclass(frozen=True)
class PostReply:
    """A reply to a post.  ``parent_reply_id`` is ``None`` for top-level replies."""

    id: str
    post_id: str
    author: str
    body: str
    timestamp: datetime.datetime
    parent_reply_id: str | None = None


class ForumStore:
    """Thread-safe storage for forums, posts and replies."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._forums: dict[str, Forum] = {}
        self._posts: dict[str, Post] = {}
        self._replies: dict[str, PostReply] = {}

    def add_forum(
        self,
        name: str,
        description: str,
        whitelist: frozenset[str] = frozenset(),
        moderators: frozenset[str] = frozenset(),
    ) -> Forum:
        forum = Forum(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            moderators=frozenset(moderators),
            whitelist=frozenset(whitelist),
        )
        with self._lock:
            self._forums[forum.id] = forum
        return forum

    def add_post(self, forum_id: str, author: str, title: str, body: str) -> Post:
        post = Post(
            id=str(uuid.uuid4()),
            forum_id=forum_id,
            author=author,
            title=title,
            body=body,
            timestamp=_utcnow(),
        )
        with self._lock:
            if forum_id not in self._forums:
                raise KeyError(f"Unknown forum: {forum_id}")
            self._posts[post.id] = post
        return post

    def add_reply(
        self, post_id: str, author: str, body: str, parent_reply_id: str | None = None
    ) -> PostReply:
        reply = PostReply(
            id=str(uuid.uuid4()),
            post_id=post_id,
            author=author,
            body=body,
            timestamp=_utcnow(),
            parent_reply_id=parent_reply_id,
        )
        with self._lock:
            if post_id not in self._posts:
                raise KeyError(f"Unknown post: {post_id}")
            self._replies[reply.id] = reply
        return reply

    def remove_post(self, post_id: str) -> None:
        with self._lock:
            post = self._posts[post_id]
            self._posts[post_id] = dataclasses.replace(post, removed=True)

    def get_forum(self, forum_id: str) -> Forum | None:
        with self._lock:
            return self._forums.get(forum_id)

    def get_post(self, post_id: str) -> Post | None:
        with self._lock:
            return self._posts.get(post_id)

    def forums(self, offset: int, limit: int, include_private: bool = False) -> list[Forum]:
        with self._lock:
            forums = [f for f in self._forums.values() if include_private or f.is_public]
        return page(forums, offset, limit)

    def posts(self, forum_id: str, offset: int, limit: int) -> list[Post]:
        with self._lock:
            posts = [
                p for p in self._posts.values()
                if p.forum_id == forum_id and not p.removed
            ]
        posts.sort(key=lambda p: p.timestamp)
        return page(posts, offset, limit)

    def replies(
        self, post_id: str, parent_reply_id: str | None, offset: int, limit: int
    ) -> list[PostReply]:
        with self._lock:
            replies = [
                r for r in self._replies.values()
                if r.post_id == post_id and r.parent_reply_id == parent_reply_id
            ]
        replies.sort(key=lambda r: r.timestamp)
        return page(replies, offset, limit)

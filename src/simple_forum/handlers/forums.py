"""Forum endpoints.

Forums admit anonymous readers: the session token is optional and a missing,
unknown or expired token simply means *no user*.  The visibility rule then
decides; public boards are readable by everyone, whitelisted boards only by
their members and administrators.
"""

from __future__ import annotations

import logging

from simple_forum.auth.service import AuthService
from simple_forum.content.forums import Forum, ForumStore
from simple_forum.handlers import responses
from simple_forum.handlers.responses import Response
from simple_forum.identity.store import IdentityStore
from simple_forum.policy.engine import AuthorizationDenied, PolicyEngine, require_authorized

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "forums"


class ForumHandlers:
    def __init__(
        self,
        forums: ForumStore,
        identities: IdentityStore,
        auth: AuthService,
        policy_engine: PolicyEngine,
    ) -> None:
        self._forums = forums
        self._identities = identities
        self._auth = auth
        self._policy = policy_engine.resolve(RESOURCE_TYPE)

    def forum_index(self, offset: int = 0, limit: int = 50, include_private: bool = False) -> Response:
        """List boards.  Private boards are listed only when *include_private* is set."""
        forums = self._forums.forums(offset, limit, include_private=include_private)
        return responses.json_body([
            responses.ForumSummary(id=f.id, name=f.name, description=f.description)
            for f in forums
        ])

    def post_index(self, forum_id: str, session_id: str | None, offset: int = 0, limit: int = 50) -> Response:
        forum = self._forums.get_forum(forum_id) if responses.valid_id(forum_id) else None
        if forum is None:
            return responses.text(responses.BAD_REQUEST, "Invalid forum id provided.")

        denied = self._authorize(forum, session_id)
        if denied is not None:
            return denied

        return responses.json_body([
            responses.PostSummary(
                id=p.id,
                title=p.title,
                author=self._identities.get_identifier(p.author),
                timestamp=p.timestamp,
            )
            for p in self._forums.posts(forum.id, offset, limit)
        ])

    def post(self, post_id: str, session_id: str | None) -> Response:
        post = self._forums.get_post(post_id) if responses.valid_id(post_id) else None
        if post is None or post.removed:
            return responses.text(responses.BAD_REQUEST, "Invalid post id provided.")

        forum = self._forums.get_forum(post.forum_id)
        if forum is not None:
            denied = self._authorize(forum, session_id)
            if denied is not None:
                return denied

        return responses.json_body(responses.PostBody(
            title=post.title,
            author=self._identities.get_identifier(post.author),
            body=post.body,
            timestamp=post.timestamp,
        ))

    def replies(
        self,
        post_id: str,
        session_id: str | None,
        parent_id: str | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Response:
        """List replies to a post; *parent_id* selects a reply thread, ``None`` the top level."""
        post = self._forums.get_post(post_id) if responses.valid_id(post_id) else None
        if post is None or post.removed:
            return responses.text(responses.BAD_REQUEST, "Invalid post id provided.")

        forum = self._forums.get_forum(post.forum_id)
        if forum is not None:
            denied = self._authorize(forum, session_id)
            if denied is not None:
                return denied

        if parent_id is not None and not responses.valid_id(parent_id):
            return responses.text(responses.BAD_REQUEST, "Invalid parent id provided.")

        return responses.json_body([
            responses.ReplyBody(
                id=r.id,
                author=self._identities.get_identifier(r.author),
                body=r.body,
                timestamp=r.timestamp,
            )
            for r in self._forums.replies(post.id, parent_id, offset, limit)
        ])

    # -- private helpers -----------------------------------------------------

    def _authorize(self, forum: Forum, session_id: str | None) -> Response | None:
        user = self._auth.current_user(session_id)
        if user is None and not self._policy.allow_anonymous:
            return responses.text(responses.UNAUTHORIZED, responses.SESSION_INVALID)
        try:
            require_authorized(forum, user)
        except AuthorizationDenied as exc:
            logger.debug("Forum %s denied to %s", forum.id, user.id if user else "anonymous")
            return responses.text(responses.UNAUTHORIZED, str(exc))
        return None

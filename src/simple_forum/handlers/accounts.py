"""Account endpoints: login, registration, logout and user lookup.

``user_info`` is the administrative query.  Any live session may look up a
user's public profile, and so may anonymous callers when the ``accounts``
policy allows them.  The email address and confirmation status are added
only when the caller passes the tier gate configured for those queries.
"""

from __future__ import annotations

import logging

from simple_forum.auth.registry import SessionCollisionError, SessionNotFound
from simple_forum.auth.service import AuthService, InvalidCredentialsError
from simple_forum.handlers import responses
from simple_forum.handlers.responses import Response
from simple_forum.identity.store import IdentityConflictError, IdentityStore
from simple_forum.policy.engine import PolicyEngine, has_tier

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "accounts"

_COLLISION_RETRY = "Failed to create new user session; please retry."


class AccountHandlers:
    def __init__(
        self,
        identities: IdentityStore,
        auth: AuthService,
        policy_engine: PolicyEngine,
    ) -> None:
        self._identities = identities
        self._auth = auth
        self._policy = policy_engine.resolve(RESOURCE_TYPE)
        self._email_tier = policy_engine.required_tier("user_email")
        self._confirmation_tier = policy_engine.required_tier("user_confirmation")

    def login(self, username: str, password: str) -> Response:
        try:
            session_id = self._auth.login(username, password)
        except InvalidCredentialsError as exc:
            return responses.text(responses.BAD_REQUEST, str(exc))
        except SessionCollisionError:
            logger.error("Session id collision during login for %s", username)
            return responses.text(responses.SERVICE_UNAVAILABLE, _COLLISION_RETRY)
        return responses.text(responses.OK, session_id)

    def register(self, username: str, email: str, password: str) -> Response:
        try:
            session_id = self._auth.register(username, email, password)
        except IdentityConflictError as exc:
            return responses.text(responses.BAD_REQUEST, str(exc))
        except ValueError as exc:
            return responses.text(responses.BAD_REQUEST, str(exc))
        except SessionCollisionError:
            logger.error("Session id collision after registering %s", username)
            return responses.text(
                responses.SERVICE_UNAVAILABLE,
                f"Successfully registered user {username} but failed to create a session; please log in.",
            )
        return responses.text(responses.OK, session_id)

    def logout(self, session_id: str | None) -> Response:
        if not responses.valid_id(session_id):
            return responses.text(responses.BAD_REQUEST, "Invalid session id provided.")
        try:
            self._auth.logout(session_id)
        except SessionNotFound as exc:
            return responses.text(responses.BAD_REQUEST, str(exc))
        return responses.text(responses.OK)

    def user_info(self, session_id: str | None, identifier: str) -> Response:
        caller = self._auth.current_user(session_id)
        if caller is None and not self._policy.allow_anonymous:
            return responses.text(responses.UNAUTHORIZED, str(SessionNotFound()))

        user = self._identities.find(identifier)
        if user is None:
            return responses.text(responses.BAD_REQUEST, f"User {identifier} not found.")

        info = responses.UserInfo(
            username=user.username,
            created_at=user.created_at,
            last_login=user.last_login,
        )
        if has_tier(caller, self._email_tier):
            info.email = user.email
        if has_tier(caller, self._confirmation_tier):
            info.is_email_confirmed = user.is_email_confirmed
        return responses.json_body(info)

"""End-to-end handler tests: resolve the token, then authorize, then serve."""

from __future__ import annotations

import json
import pathlib
from unittest.mock import patch

import pytest

from simple_forum.app import ForumApplication
from simple_forum.auth.registry import SessionCollisionError
from simple_forum.auth.service import AuthService
from simple_forum.handlers import responses
from simple_forum.handlers.accounts import AccountHandlers
from simple_forum.identity.models import User
from simple_forum.identity.store import IdentityStore
from simple_forum.policy.engine import PolicyEngine

from conftest import PASSWORD, FakeClock


def _login(app: ForumApplication, username: str) -> str:
    response = app.accounts.login(username, PASSWORD)
    assert response.ok, response.body
    return response.body


@pytest.fixture
def boards(app: ForumApplication, alice: User, bob: User):
    public = app.forum_store.add_forum("General", "Open to all")
    private = app.forum_store.add_forum("Staff", "Members only", whitelist=frozenset([alice.id]))
    public_post = app.forum_store.add_post(public.id, bob.id, "Hello", "First!")
    private_post = app.forum_store.add_post(private.id, alice.id, "Secret", "Members only")
    app.forum_store.add_reply(public_post.id, alice.id, "Welcome")
    return public, private, public_post, private_post


class TestAccountHandlers:
    def test_register_then_login(self, app: ForumApplication) -> None:
        response = app.accounts.register("carol", "carol@example.org", "pw")
        assert response.ok
        assert app.accounts.login("carol@example.org", "pw").ok

    def test_register_conflict_is_bad_request(self, app: ForumApplication) -> None:
        response = app.accounts.register("alice", "new@example.org", "pw")
        assert response.status == responses.BAD_REQUEST
        assert "already in use" in response.body

    def test_bad_credentials(self, app: ForumApplication) -> None:
        response = app.accounts.login("alice", "wrong")
        assert response.status == responses.BAD_REQUEST

    def test_collision_is_retryable_failure(self, app: ForumApplication) -> None:
        with patch.object(app.registry, "create_session", side_effect=SessionCollisionError("dup")):
            response = app.accounts.login("alice", PASSWORD)
        assert response.status == responses.SERVICE_UNAVAILABLE

    def test_logout(self, app: ForumApplication) -> None:
        session_id = _login(app, "alice")
        assert app.accounts.logout(session_id).ok
        assert app.accounts.logout(session_id).status == responses.BAD_REQUEST

    def test_logout_rejects_malformed_token(self, app: ForumApplication) -> None:
        assert app.accounts.logout("not-a-uuid").status == responses.BAD_REQUEST

    def test_user_info_hides_email_from_regular_users(self, app: ForumApplication) -> None:
        session_id = _login(app, "bob")
        body = json.loads(app.accounts.user_info(session_id, "alice").body)
        assert body["username"] == "alice"
        assert body["email"] is None
        assert body["is_email_confirmed"] is None

    def test_user_info_reveals_email_to_administrators(self, app: ForumApplication) -> None:
        session_id = _login(app, "admin")
        body = json.loads(app.accounts.user_info(session_id, "alice").body)
        assert body["email"] == "alice@example.org"
        assert body["is_email_confirmed"] is False

    def test_user_info_requires_session(self, app: ForumApplication) -> None:
        response = app.accounts.user_info(None, "alice")
        assert response.status == responses.UNAUTHORIZED

    def test_user_info_open_to_anonymous_when_policy_allows(
        self, identities: IdentityStore, auth: AuthService, tmp_path: pathlib.Path
    ) -> None:
        path = tmp_path / "access.yaml"
        path.write_text(
            "resources:\n  accounts:\n    allow_anonymous: true\n"
            "queries:\n  user_email:\n    required_tier: administrator\n"
            "  user_confirmation:\n    required_tier: administrator\n"
        )
        accounts = AccountHandlers(identities, auth, PolicyEngine(policy_path=path))
        response = accounts.user_info(None, "alice")
        assert response.ok
        body = json.loads(response.body)
        assert body["username"] == "alice"
        assert body["email"] is None


class TestForumHandlers:
    def test_index_lists_public_boards_by_default(self, app: ForumApplication, boards) -> None:
        names = [f["name"] for f in json.loads(app.forums.forum_index().body)]
        assert names == ["General"]

    def test_index_can_include_private_boards(self, app: ForumApplication, boards) -> None:
        names = {f["name"] for f in json.loads(app.forums.forum_index(include_private=True).body)}
        assert names == {"General", "Staff"}

    def test_index_treats_negative_paging_as_zero(self, app: ForumApplication) -> None:
        for name in ("B0", "B1", "B2"):
            app.forum_store.add_forum(name, "")
        names = [f["name"] for f in json.loads(app.forums.forum_index(offset=-1, limit=50).body)]
        assert names == ["B0", "B1", "B2"]
        assert json.loads(app.forums.forum_index(offset=0, limit=-1).body) == []

    def test_anonymous_reads_public_board(self, app: ForumApplication, boards) -> None:
        public, _, _, _ = boards
        response = app.forums.post_index(public.id, None)
        assert response.ok
        posts = json.loads(response.body)
        assert posts[0]["title"] == "Hello"
        assert posts[0]["author"] == "bob"

    def test_anonymous_denied_private_board(self, app: ForumApplication, boards) -> None:
        _, private, _, private_post = boards
        assert app.forums.post_index(private.id, None).status == responses.UNAUTHORIZED
        assert app.forums.post(private_post.id, None).status == responses.UNAUTHORIZED

    def test_member_reads_private_board(self, app: ForumApplication, boards) -> None:
        _, private, _, private_post = boards
        session_id = _login(app, "alice")
        assert app.forums.post_index(private.id, session_id).ok
        assert json.loads(app.forums.post(private_post.id, session_id).body)["title"] == "Secret"

    def test_non_member_denied_private_board(self, app: ForumApplication, boards) -> None:
        _, private, _, _ = boards
        session_id = _login(app, "bob")
        assert app.forums.post_index(private.id, session_id).status == responses.UNAUTHORIZED

    def test_administrator_reads_private_board(self, app: ForumApplication, boards) -> None:
        _, private, _, _ = boards
        session_id = _login(app, "admin")
        assert app.forums.post_index(private.id, session_id).ok

    def test_expired_member_session_is_treated_as_anonymous(
        self, app: ForumApplication, boards, clock: FakeClock
    ) -> None:
        public, private, _, _ = boards
        session_id = _login(app, "alice")
        clock.advance(minutes=16)
        assert app.forums.post_index(private.id, session_id).status == responses.UNAUTHORIZED
        assert app.forums.post_index(public.id, session_id).ok

    def test_replies(self, app: ForumApplication, boards) -> None:
        _, _, public_post, _ = boards
        replies = json.loads(app.forums.replies(public_post.id, None).body)
        assert [r["body"] for r in replies] == ["Welcome"]
        assert replies[0]["author"] == "alice"

    def test_removed_post_is_hidden(self, app: ForumApplication, boards) -> None:
        public, _, public_post, _ = boards
        app.forum_store.remove_post(public_post.id)
        assert json.loads(app.forums.post_index(public.id, None).body) == []
        assert app.forums.post(public_post.id, None).status == responses.BAD_REQUEST

    @pytest.mark.parametrize("bad_id", ["", "not-a-uuid", "00000000-0000-0000-0000-000000000000"])
    def test_invalid_forum_id(self, app: ForumApplication, bad_id: str) -> None:
        assert app.forums.post_index(bad_id, None).status == responses.BAD_REQUEST


class TestPostOffice:
    def test_mail_requires_live_session(self, app: ForumApplication) -> None:
        assert app.mail.inbox(None).status == responses.UNAUTHORIZED
        assert app.mail.send("never-issued", "bob", "Hi", "There").status == responses.UNAUTHORIZED

    def test_send_and_read(self, app: ForumApplication) -> None:
        alice_sid = _login(app, "alice")
        bob_sid = _login(app, "bob")

        sent = app.mail.send(alice_sid, "bob", "Hi", "There")
        assert sent.ok
        inbox = json.loads(app.mail.inbox(bob_sid).body)
        assert inbox[0]["other"] == "alice"
        assert inbox[0]["unread"] is True

        outbox = json.loads(app.mail.outbox(alice_sid).body)
        assert outbox[0]["other"] == "bob"

        message = json.loads(app.mail.message(bob_sid, sent.body).body)
        assert message["body"] == "There"

    def test_unknown_recipient(self, app: ForumApplication) -> None:
        session_id = _login(app, "alice")
        assert app.mail.send(session_id, "nobody", "Hi", "There").status == responses.BAD_REQUEST

    def test_third_party_cannot_read(self, app: ForumApplication) -> None:
        alice_sid = _login(app, "alice")
        admin_sid = _login(app, "admin")
        sent = app.mail.send(alice_sid, "bob", "Hi", "There")
        assert app.mail.message(admin_sid, sent.body).status == responses.UNAUTHORIZED

    def test_only_recipient_marks(self, app: ForumApplication) -> None:
        alice_sid = _login(app, "alice")
        bob_sid = _login(app, "bob")
        sent = app.mail.send(alice_sid, "bob", "Hi", "There")

        assert app.mail.mark(alice_sid, sent.body, read=True, flagged=False).status == responses.UNAUTHORIZED
        assert app.mail.mark(bob_sid, sent.body, read=True, flagged=True).ok

        assert json.loads(app.mail.inbox(bob_sid, unread_only=True).body) == []
        flagged = json.loads(app.mail.inbox(bob_sid, flagged_only=True).body)
        assert len(flagged) == 1

    def test_negative_paging_on_mailboxes(self, app: ForumApplication) -> None:
        alice_sid = _login(app, "alice")
        bob_sid = _login(app, "bob")
        app.mail.send(alice_sid, "bob", "First", "1")
        app.mail.send(alice_sid, "bob", "Second", "2")

        inbox = json.loads(app.mail.inbox(bob_sid, offset=-1).body)
        assert [m["subject"] for m in inbox] == ["First", "Second"]
        assert len(json.loads(app.mail.outbox(alice_sid, offset=-1).body)) == 2
        assert json.loads(app.mail.outbox(alice_sid, limit=-1).body) == []

    def test_malformed_message_id(self, app: ForumApplication) -> None:
        session_id = _login(app, "alice")
        assert app.mail.message(session_id, "nope").status == responses.BAD_REQUEST


class TestApplicationLifecycle:
    def test_stop_discards_sessions(self, app: ForumApplication) -> None:
        session_id = _login(app, "alice")
        app.stop()
        assert not app.running
        app.start()
        assert app.forums is not None
        assert app.mail.inbox(session_id).status == responses.UNAUTHORIZED

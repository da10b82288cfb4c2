import google.auth.exceptions
import pytest

from src.career_app import session as session_module
from src.career_app.session import (
    FirebaseAuthGateway,
    LocalAuthGateway,
    SessionContext,
    User,
)


def test_subscribe_delivers_current_then_changes():
    """Tests that a listener sees the current value, then every change."""
    session = SessionContext()
    seen = []
    session.subscribe(seen.append)

    session.publish(User("u1"))
    session.publish(None)

    assert seen == [None, User("u1"), None]


def test_context_seeded_with_user():
    seen = []
    SessionContext(User("u1")).subscribe(seen.append)
    assert seen == [User("u1")]


def test_unsubscribe_stops_notifications():
    session = SessionContext()
    seen = []
    unsubscribe = session.subscribe(seen.append)
    unsubscribe()
    unsubscribe()  # Second call is a no-op.

    session.publish(User("u1"))

    assert seen == [None]
    assert session.current_user == User("u1")


def test_listeners_notified_in_order():
    session = SessionContext()
    calls = []
    session.subscribe(lambda user: calls.append(("a", user)))
    session.subscribe(lambda user: calls.append(("b", user)))
    calls.clear()

    session.publish(User("u2"))

    assert calls == [("a", User("u2")), ("b", User("u2"))]


def test_contexts_are_independent():
    first, second = SessionContext(), SessionContext()
    LocalAuthGateway(first).sign_in("u1")
    assert second.current_user is None


def test_gateway_sign_in_and_out():
    session = SessionContext()
    auth = LocalAuthGateway(session)
    changes = []
    auth.on_auth_state_changed(changes.append)

    user = auth.sign_in(" u1 ", " me@example.com ")
    assert user == User("u1", "me@example.com")
    assert session.current_user == user

    auth.sign_out()
    assert session.current_user is None
    assert changes == [None, user, None]


@pytest.mark.parametrize("uid", ["", "   ", None])
def test_gateway_rejects_blank_uid(uid):
    auth = LocalAuthGateway(SessionContext())
    with pytest.raises(ValueError):
        auth.sign_in(uid)


# =============================================================================
# Firebase ID token gateway (verification mocked)
# =============================================================================
@pytest.fixture
def verified_calls(monkeypatch):
    calls = []

    def _verify(token, request, audience=None):
        calls.append((token, audience))
        if token == "expired":
            raise ValueError("Token expired")
        if token == "no-keys":
            raise google.auth.exceptions.TransportError("certs unavailable")
        if token == "no-subject":
            return {"email": "x@example.com"}
        return {"sub": "fb-1", "email": "fb@example.com"}

    monkeypatch.setattr(session_module.id_token, "verify_firebase_token", _verify)
    return calls


def test_firebase_gateway_publishes_verified_user(verified_calls):
    session = SessionContext()
    auth = FirebaseAuthGateway(session, "demo-project", request=object())

    user = auth.sign_in_from_form({"id_token": " good ", "uid": "ignored"})

    assert user == User("fb-1", "fb@example.com")
    assert session.current_user == user
    assert verified_calls == [("good", "demo-project")]


@pytest.mark.parametrize("token", ["", "expired", "no-keys", "no-subject"])
def test_firebase_gateway_rejects_unverified_tokens(verified_calls, token):
    """Tests that nothing is published unless the token verifies."""
    session = SessionContext()
    auth = FirebaseAuthGateway(session, "demo-project", request=object())

    with pytest.raises(ValueError):
        auth.sign_in(token)

    assert session.current_user is None

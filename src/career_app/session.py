"""
Session state and identity gateways for the web application.

`SessionContext` is an observable cell holding the signed-in user (or None).
The web app builds one per request from the client's signed session cookie;
views read it, and only an auth gateway writes to it.

Two gateways publish users into a context:

1.  **FirebaseAuthGateway**: Verifies a Firebase ID token issued by the
    hosted identity service and publishes the user it names.
2.  **LocalAuthGateway**: Trusts the user id it is given. Development only;
    the server refuses to use it on anything but a loopback host.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional

import google.auth.exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional["User"]], None]


@dataclass(frozen=True)
class User:
    """The identity of a signed-in user, as delivered by the auth gateway."""

    uid: str
    email: Optional[str] = None


class SessionContext:
    """
    Holds the current user and notifies subscribers of every change.

    Subscribers receive the current value immediately on subscription and
    then each new value, in subscription order.
    """

    def __init__(self, user: Optional[User] = None) -> None:
        self._current_user: Optional[User] = user
        self._listeners: List[SessionListener] = []

    @property
    def current_user(self) -> Optional[User]:
        return self._current_user

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Registers a listener and returns a function that unregisters it.

        Calling the returned function more than once has no further effect.
        """
        self._listeners.append(listener)
        listener(self._current_user)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, user: Optional[User]) -> None:
        """Replaces the current user and notifies all listeners."""
        self._current_user = user
        for listener in list(self._listeners):
            listener(user)


class AuthGateway:
    """Base class for identity gateways bound to one session context."""

    # Whether the sign-in form posts a hosted-identity token instead of a user id.
    uses_id_token = False

    def __init__(self, session: SessionContext):
        self.session = session

    def sign_in_from_form(self, fields: Mapping[str, str]) -> User:
        """
        Signs in with the fields posted by the sign-in form.

        Raises:
            ValueError: If the fields do not identify a user.
        """
        raise NotImplementedError

    def sign_out(self) -> None:
        current = self.session.current_user
        if current is not None:
            logger.info(f"User '{current.uid}' signed out")
        self.session.publish(None)

    def on_auth_state_changed(self, listener: SessionListener) -> Callable[[], None]:
        return self.session.subscribe(listener)

    def _publish_sign_in(self, user: User) -> User:
        logger.info(f"User '{user.uid}' signed in")
        self.session.publish(user)
        return user


class FirebaseAuthGateway(AuthGateway):
    """
    Signs users in with Firebase ID tokens.

    The browser obtains the token from Firebase Authentication; the gateway
    checks its signature, expiry and audience with google-auth before any
    user is published.
    """

    uses_id_token = True

    def __init__(
        self,
        session: SessionContext,
        project_id: str,
        request: Optional[google_requests.Request] = None,
    ):
        super().__init__(session)
        self.project_id = project_id
        self._request = request or google_requests.Request()

    def sign_in(self, token: str) -> User:
        token = (token or "").strip()
        if not token:
            raise ValueError("An identity token is required to sign in.")
        try:
            claims = id_token.verify_firebase_token(
                token, self._request, audience=self.project_id
            )
        except (ValueError, google.auth.exceptions.GoogleAuthError) as e:
            logger.warning(f"Rejected identity token: {e}")
            raise ValueError("The identity token could not be verified.") from e
        if not claims or not claims.get("sub"):
            raise ValueError("The identity token could not be verified.")
        return self._publish_sign_in(User(uid=claims["sub"], email=claims.get("email")))

    def sign_in_from_form(self, fields: Mapping[str, str]) -> User:
        return self.sign_in(fields.get("id_token", ""))


class LocalAuthGateway(AuthGateway):
    """
    A trusting identity gateway for local development.

    It accepts whatever user id it is given, so anyone who can reach the
    server can act as any user. It is only selected by the `local` auth
    backend, which the server entry point refuses to bind to a non-loopback
    host. No credentials are stored.
    """

    def sign_in(self, uid: str, email: Optional[str] = None) -> User:
        uid = (uid or "").strip()
        if not uid:
            raise ValueError("A user id is required to sign in.")
        return self._publish_sign_in(User(uid=uid, email=(email or "").strip() or None))

    def sign_in_from_form(self, fields: Mapping[str, str]) -> User:
        return self.sign_in(fields.get("uid", ""), fields.get("email"))

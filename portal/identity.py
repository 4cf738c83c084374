"""Firebase Authentication as the portal's identity provider."""

import enum
import logging
from dataclasses import dataclass
from datetime import timedelta

import requests as http_requests
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from portal.errors import AuthenticationError, IdentityProviderError, RemoteFailure

logger = logging.getLogger(__name__)

FIREBASE_SIGN_IN_URL = (
    'https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword'
)


class AuthEvent(enum.Enum):
    SIGNED_IN = 'SIGNED_IN'
    SIGNED_OUT = 'SIGNED_OUT'


@dataclass(frozen=True)
class AuthSession:
    uid: str
    email: str


class FirebaseIdentityProvider:
    """Session-cookie based sign-in against Firebase Auth.

    One provider instance backs one browser session. Listeners registered
    through `subscribe` receive `(AuthEvent, AuthSession | None)`.
    """

    def __init__(self, auth, api_key, session_cookie=None,
                 cookie_lifetime=timedelta(days=5), timeout=10):
        self._auth = auth
        self._api_key = api_key
        self._session_cookie = session_cookie
        self._cookie_lifetime = cookie_lifetime
        self._timeout = timeout
        self._listeners = []

    @property
    def session_cookie(self):
        return self._session_cookie

    def subscribe(self, callback):
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def _emit(self, event, session):
        for callback in list(self._listeners):
            callback(event, session)

    def get_current_session(self):
        """Verify the stored session cookie. Returns AuthSession or None."""
        if not self._session_cookie:
            return None
        try:
            decoded = self._auth.verify_session_cookie(self._session_cookie, check_revoked=True)
        except (firebase_auth.InvalidSessionCookieError, firebase_auth.UserDisabledError):
            self._session_cookie = None
            return None
        except firebase_exceptions.FirebaseError as exc:
            raise IdentityProviderError(f'Session check failed: {exc}') from exc
        return AuthSession(uid=decoded['uid'], email=decoded.get('email', ''))

    def sign_in(self, email, password):
        """Verify email/password via the Firebase Auth REST API."""
        if not self._api_key:
            raise IdentityProviderError('FIREBASE_WEB_API_KEY is not configured')
        try:
            resp = http_requests.post(
                f'{FIREBASE_SIGN_IN_URL}?key={self._api_key}',
                json={
                    'email': email,
                    'password': password,
                    'returnSecureToken': True,
                },
                timeout=self._timeout,
            )
        except http_requests.RequestException as exc:
            raise IdentityProviderError(f'Sign-in request failed: {exc}') from exc

        if resp.status_code >= 500:
            raise IdentityProviderError(f'Sign-in service responded with HTTP {resp.status_code}')
        if resp.status_code != 200:
            try:
                message = resp.json().get('error', {}).get('message')
            except ValueError:
                message = None
            raise AuthenticationError(message or 'INVALID_LOGIN_CREDENTIALS')

        payload = resp.json()
        try:
            self._session_cookie = self._auth.create_session_cookie(
                payload['idToken'], expires_in=self._cookie_lifetime
            )
        except firebase_exceptions.FirebaseError as exc:
            raise IdentityProviderError(f'Could not create a session: {exc}') from exc

        session = AuthSession(uid=payload['localId'], email=payload.get('email', email))
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    def sign_out(self):
        """Drop the session and revoke the user's refresh tokens.

        Revocation is best-effort: a failure is logged and the local
        session is cleared regardless.
        """
        session_cookie, self._session_cookie = self._session_cookie, None
        if session_cookie:
            try:
                decoded = self._auth.verify_session_cookie(session_cookie)
                self._auth.revoke_refresh_tokens(decoded['uid'])
            except firebase_exceptions.FirebaseError as exc:
                logger.warning('Could not revoke session on sign-out: %s', exc)
        self._emit(AuthEvent.SIGNED_OUT, None)


class UserProvisioner:
    """Create and remove Firebase Auth accounts for new portal users."""

    def __init__(self, auth):
        self._auth = auth

    def create_account(self, email, password, display_name=None):
        try:
            fb_user = self._auth.create_user(email=email, password=password, display_name=display_name)
        except firebase_exceptions.FirebaseError as exc:
            raise RemoteFailure(f'Could not create account for {email}: {exc}') from exc
        logger.info('Provisioned auth account %s for %s', fb_user.uid, email)
        return fb_user.uid

    def delete_account(self, uid):
        try:
            self._auth.delete_user(uid)
        except firebase_auth.UserNotFoundError:
            logger.warning('Auth account %s was already gone', uid)
        except firebase_exceptions.FirebaseError as exc:
            raise RemoteFailure(f'Could not delete account {uid}: {exc}') from exc

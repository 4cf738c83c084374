"""
Session holder: the signed-in identity for one portal instance.

The identity comes from Firebase Auth (the provider) joined with the
caller's row in the `profiles` table. Resolution runs under an explicit
bounded retry policy, so `is_loading` always settles to present-or-absent.
"""

import logging
from dataclasses import dataclass

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from portal.errors import (
    AuthenticationError,
    IdentityProviderError,
    InactiveAccountError,
    InvalidFieldError,
    PortalError,
    RemoteFailure,
)
from portal.identity import AuthEvent
from portal.models import AccountStatus, Identity, UserProfile

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (IdentityProviderError, RemoteFailure)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry for session resolution: attempts, back-off and a deadline."""

    max_attempts: int = 3
    deadline: float = 8.0
    min_wait: float = 0.5
    max_wait: float = 4.0

    def call(self, fn, *args, **kwargs):
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts) | stop_after_delay(self.deadline),
            wait=wait_exponential(multiplier=self.min_wait, min=self.min_wait, max=self.max_wait),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(fn, *args, **kwargs)


class SessionHolder:
    def __init__(self, provider, profiles, retry_policy=None):
        self._provider = provider
        self._profiles = profiles
        self._retry = retry_policy or RetryPolicy()
        self._identity = None
        self._loading = True
        self._signing_in = False
        self._listeners = []
        self._unsubscribe = None

    # -- Read side -----------------------------------------------------------

    @property
    def provider(self):
        return self._provider

    @property
    def is_loading(self):
        return self._loading

    @property
    def is_authenticated(self):
        return self._identity is not None

    def current_identity(self):
        return self._identity

    def subscribe(self, listener):
        """Call `listener(identity)` whenever the identity changes."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # -- Lifecycle -----------------------------------------------------------

    def start(self):
        """Resolve a prior session and start following provider events."""
        if self._unsubscribe is None:
            self._unsubscribe = self._provider.subscribe(self._on_auth_event)
        self._loading = True
        identity = self._resolve_guarded(self._resolve_current)
        self._set_identity(identity)
        return identity

    def close(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def refresh(self):
        """Re-check the provider session and the profile behind it.

        An expired or revoked session, or a profile that is gone or no
        longer active, makes the identity absent. A transient failure keeps
        the current identity until the next check.
        """
        try:
            identity = self._retry.call(self._resolve_current)
        except InactiveAccountError as exc:
            logger.warning('Session rejected on refresh: %s', exc)
            self._provider.sign_out()
            identity = None
        except InvalidFieldError as exc:
            logger.error('Profile row is malformed: %s', exc)
            identity = None
        except TRANSIENT_ERRORS:
            logger.warning('Session refresh failed; keeping current identity', exc_info=True)
            return self._identity
        self._set_identity(identity)
        return identity

    def login(self, email, password):
        """Sign in with the provider and resolve the caller's profile.

        AuthenticationError from the provider propagates unchanged. An
        inactive profile signs the provider out again and raises
        InactiveAccountError.
        """
        self._signing_in = True
        try:
            session = self._provider.sign_in(email, password)
        finally:
            self._signing_in = False

        try:
            identity = self._retry.call(self._resolve_profile, session)
        except InactiveAccountError:
            self._provider.sign_out()
            raise
        if identity is None:
            self._provider.sign_out()
            raise AuthenticationError('No portal profile is registered for this account.')
        self._loading = False
        self._set_identity(identity)
        logger.info('%s signed in as %s', identity.email, identity.role.value)
        return identity

    def logout(self):
        try:
            self._provider.sign_out()
        except PortalError:
            logger.warning('Identity provider sign-out failed', exc_info=True)
        finally:
            self._loading = False
            self._set_identity(None)

    # -- Internals -----------------------------------------------------------

    def _on_auth_event(self, event, session):
        if event == AuthEvent.SIGNED_IN and session is not None:
            if self._signing_in:
                return
            if self._identity is None:
                self._loading = True
            identity = self._resolve_guarded(self._resolve_profile, session)
            self._set_identity(identity)
        elif event == AuthEvent.SIGNED_OUT:
            self._loading = False
            self._set_identity(None)

    def _resolve_guarded(self, fn, *args):
        """Run a resolution step; any failure settles to "no session".

        Transient failures that outlast the retry policy leave the provider
        session in place so a slow-but-valid session is not dropped.
        """
        try:
            return self._retry.call(fn, *args)
        except InactiveAccountError as exc:
            logger.warning('Session rejected: %s', exc)
            self._provider.sign_out()
            return None
        except InvalidFieldError as exc:
            logger.error('Profile row is malformed: %s', exc)
            return None
        except TRANSIENT_ERRORS:
            logger.exception('Session resolution gave up after retries')
            return None
        finally:
            self._loading = False

    def _resolve_current(self):
        session = self._provider.get_current_session()
        if session is None:
            return None
        return self._resolve_profile(session)

    def _resolve_profile(self, session):
        row = self._profiles.get(session.uid)
        if row is None:
            logger.warning('No profile row for auth user %s', session.uid)
            return None
        profile = UserProfile.from_dict(row, session.uid)
        if profile.status != AccountStatus.ACTIVE:
            raise InactiveAccountError('Account is inactive. Please contact the administrator.')
        return Identity.from_profile(profile, email=session.email)

    def _set_identity(self, identity):
        if identity == self._identity:
            return
        self._identity = identity
        for listener in list(self._listeners):
            listener(identity)

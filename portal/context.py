"""
Portal context: the session holder plus one store per collection.

A Portal is built once per signed-in browser session and passed to
whatever needs it; nothing here lives in module globals.
"""

import logging
import time
from dataclasses import dataclass
from datetime import timedelta

from portal.identity import FirebaseIdentityProvider, UserProvisioner
from portal.models import (
    Affiliate,
    ContentPage,
    HonorRollEntry,
    Member,
    Organizer,
    TimelineEvent,
    UserProfile,
)
from portal.remote import build_tables
from portal.services.storage import AssetStore
from portal.session import RetryPolicy, SessionHolder
from portal.settings import SettingsStore
from portal.stores import ContentPageStore, EntityStore, UserProfileStore

logger = logging.getLogger(__name__)


class Portal:
    def __init__(self, session, tables, provisioner=None, assets=None):
        self.session = session
        self.members = EntityStore(Member, tables[Member.TABLE], session)
        self.organizers = EntityStore(Organizer, tables[Organizer.TABLE], session)
        self.affiliates = EntityStore(Affiliate, tables[Affiliate.TABLE], session)
        self.honor_roll = EntityStore(HonorRollEntry, tables[HonorRollEntry.TABLE], session)
        self.users = UserProfileStore(tables[UserProfile.TABLE], session, provisioner)
        self.content_pages = ContentPageStore(tables[ContentPage.TABLE], session)
        self.timeline = EntityStore(TimelineEvent, tables[TimelineEvent.TABLE], session)
        self.settings = SettingsStore(self.content_pages, session, assets)
        self._loaded_for = None
        self._unsubscribe = session.subscribe(self._on_identity_change)

    @property
    def stores(self):
        return {
            'members': self.members,
            'organizers': self.organizers,
            'affiliates': self.affiliates,
            'honor-roll': self.honor_roll,
            'users': self.users,
            'pages': self.content_pages,
            'timeline': self.timeline,
        }

    def start(self):
        """Resolve any prior session; collections load once it is present."""
        return self.session.start()

    def close(self):
        self._unsubscribe()
        self.session.close()

    def load_all(self):
        """Fetch every collection the current identity may read."""
        identity = self.session.current_identity()
        if identity is None:
            return
        for store in self.stores.values():
            # Only admins can see the user list
            if store is self.users and not identity.is_admin:
                store.reset()
                continue
            store.load()
        self.settings.refresh()
        self._loaded_for = (identity.id, identity.role)

    def _on_identity_change(self, identity):
        if identity is None:
            self._loaded_for = None
            for store in self.stores.values():
                store.reset()
            self.settings.refresh()
        elif (identity.id, identity.role) != self._loaded_for:
            self.load_all()


@dataclass
class _Entry:
    portal: Portal
    checked_at: float
    seen_at: float


class PortalRegistry:
    """Live portals for the web layer, one per session cookie.

    A cached portal re-checks its session with the provider once
    `recheck_after` seconds have passed, so expired or revoked cookies and
    deactivated profiles stop working. Portals idle for longer than
    `idle_timeout` seconds are closed and dropped.
    """

    def __init__(self, factory, recheck_after=60.0, idle_timeout=3600.0, clock=time.monotonic):
        self._factory = factory
        self._recheck_after = recheck_after
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._portals = {}

    def __len__(self):
        return len(self._portals)

    def _remember(self, session_cookie, portal):
        now = self._clock()
        self._portals[session_cookie] = _Entry(portal, checked_at=now, seen_at=now)

    def for_cookie(self, session_cookie):
        """Return the signed-in portal for a cookie, or None."""
        if not session_cookie:
            return None
        self.sweep()
        entry = self._portals.get(session_cookie)
        if entry is not None:
            now = self._clock()
            if now - entry.checked_at >= self._recheck_after:
                entry.portal.session.refresh()
                entry.checked_at = now
            if entry.portal.session.is_authenticated:
                entry.seen_at = now
                return entry.portal
            logger.info('Dropping portal for a session that is no longer valid')
            self.discard(session_cookie)
            return None

        portal = self._factory(session_cookie)
        portal.start()
        if not portal.session.is_authenticated:
            portal.close()
            return None
        self._remember(session_cookie, portal)
        return portal

    def sign_in(self, email, password):
        """Log in a new browser session. Returns (portal, session cookie)."""
        self.sweep()
        portal = self._factory(None)
        try:
            portal.session.login(email, password)
        except Exception:
            portal.close()
            raise
        session_cookie = portal.session.provider.session_cookie
        self._remember(session_cookie, portal)
        return portal, session_cookie

    def sign_out(self, session_cookie):
        entry = self._portals.pop(session_cookie, None)
        if entry is not None:
            entry.portal.session.logout()
            entry.portal.close()

    def discard(self, session_cookie):
        entry = self._portals.pop(session_cookie, None)
        if entry is not None:
            entry.portal.close()

    def sweep(self):
        """Close portals that have not been used within the idle timeout."""
        now = self._clock()
        idle = [cookie for cookie, entry in self._portals.items()
                if now - entry.seen_at > self._idle_timeout]
        for cookie in idle:
            self.discard(cookie)
        if idle:
            logger.info('Closed %d idle portals', len(idle))
        return len(idle)


def build_firebase_portal(config, session_cookie=None):
    """Wire a Portal to Firestore, Firebase Auth and Cloud Storage."""
    from portal.firebase_init import get_auth, get_bucket, get_db

    auth = get_auth()
    timeout = config.get('PORTAL_REMOTE_TIMEOUT', 10.0)
    provider = FirebaseIdentityProvider(
        auth,
        config.get('FIREBASE_WEB_API_KEY'),
        session_cookie=session_cookie,
        cookie_lifetime=timedelta(days=config.get('SESSION_COOKIE_DAYS', 5)),
        timeout=timeout,
    )
    tables = build_tables(get_db(), timeout=timeout)
    policy = RetryPolicy(
        max_attempts=config.get('PORTAL_SESSION_MAX_ATTEMPTS', 3),
        deadline=config.get('PORTAL_SESSION_DEADLINE', 8.0),
    )
    session = SessionHolder(provider, tables[UserProfile.TABLE], policy)
    bucket = get_bucket()
    assets = AssetStore(bucket) if bucket is not None else None
    return Portal(session, tables, provisioner=UserProvisioner(auth), assets=assets)

import copy

import pytest

from config import TestConfig
from portal import create_app
from portal.context import Portal
from portal.errors import AuthenticationError, IdentityProviderError, NotFoundError, RemoteFailure
from portal.identity import AuthEvent, AuthSession
from portal.models import RECORD_MODELS
from portal.session import RetryPolicy, SessionHolder

FAST_RETRY = RetryPolicy(max_attempts=3, deadline=5.0, min_wait=0, max_wait=0)

ACCOUNTS = {
    'admin@alphabeta.org': ('admin1963', 'admin-uid'),
    'guest@alphabeta.org': ('guest1925', 'guest-uid'),
    'inactive@alphabeta.org': ('sleepy', 'inactive-uid'),
    'orphan@alphabeta.org': ('nobody', 'orphan-uid'),
}

PROFILES = [
    {'id': 'admin-uid', 'name': 'Gate Keeper', 'email': 'admin@alphabeta.org', 'role': 'admin', 'status': 'active'},
    {'id': 'guest-uid', 'name': 'Gate Guest', 'email': 'guest@alphabeta.org', 'role': 'guest', 'status': 'active'},
    {'id': 'inactive-uid', 'name': 'Old Timer', 'email': 'inactive@alphabeta.org', 'role': 'guest', 'status': 'inactive'},
]


class FakeTable:
    """In-memory stand-in for a Firestore collection."""

    def __init__(self, name, rows=()):
        self.name = name
        self.rows = {}
        self.calls = []
        self.fail_with = None
        self.fail_times = None
        for row in rows:
            self.rows[row['id']] = copy.deepcopy(row)

    def _call(self, action):
        self.calls.append(action)
        if self.fail_with is None:
            return
        exc = self.fail_with
        if self.fail_times is not None:
            self.fail_times -= 1
            if self.fail_times <= 0:
                self.fail_with = None
        raise exc

    def select_all(self):
        self._call('select')
        return [copy.deepcopy(row) for row in self.rows.values()]

    def get(self, record_id):
        self._call('get')
        row = self.rows.get(record_id)
        return copy.deepcopy(row) if row is not None else None

    def insert(self, row):
        self._call('insert')
        if row['id'] in self.rows:
            raise RemoteFailure(f'{self.name}/{row["id"]} already exists')
        self.rows[row['id']] = copy.deepcopy(row)
        return copy.deepcopy(row)

    def update(self, record_id, partial):
        self._call('update')
        if record_id not in self.rows:
            raise NotFoundError(self.name, record_id)
        self.rows[record_id].update(copy.deepcopy(partial))
        return copy.deepcopy(self.rows[record_id])

    def delete(self, record_id):
        self._call('delete')
        if record_id not in self.rows:
            raise NotFoundError(self.name, record_id)
        del self.rows[record_id]

    @property
    def writes(self):
        return [c for c in self.calls if c in ('insert', 'update', 'delete')]


class FakeAuthBackend:
    """Accounts and live session cookies shared by every FakeProvider."""

    def __init__(self, accounts=None):
        self.accounts = dict(accounts or ACCOUNTS)
        self.cookies = {}
        self.issued = 0
        self.session_failures = 0

    def session_for(self, cookie):
        if self.session_failures:
            self.session_failures -= 1
            raise IdentityProviderError('session check timed out')
        return self.cookies.get(cookie)


class FakeProvider:
    def __init__(self, backend, session_cookie=None):
        self.backend = backend
        self.session_cookie = session_cookie
        self.listeners = []
        self.sign_out_calls = 0

    def subscribe(self, callback):
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)

    def _emit(self, event, session):
        for callback in list(self.listeners):
            callback(event, session)

    def get_current_session(self):
        if not self.session_cookie:
            return None
        return self.backend.session_for(self.session_cookie)

    def sign_in(self, email, password):
        account = self.backend.accounts.get(email)
        if account is None or account[0] != password:
            raise AuthenticationError('INVALID_LOGIN_CREDENTIALS')
        session = AuthSession(uid=account[1], email=email)
        self.backend.issued += 1
        self.session_cookie = f"cookie-{account[1]}-{self.backend.issued}"
        self.backend.cookies[self.session_cookie] = session
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    def sign_out(self):
        self.sign_out_calls += 1
        self.backend.cookies.pop(self.session_cookie, None)
        self.session_cookie = None
        self._emit(AuthEvent.SIGNED_OUT, None)


class FakeProvisioner:
    def __init__(self):
        self.created = []
        self.deleted = []

    def create_account(self, email, password, display_name=None):
        uid = f'uid-{len(self.created) + 1}'
        self.created.append((email, password, display_name, uid))
        return uid

    def delete_account(self, uid):
        self.deleted.append(uid)


class FakeAssets:
    def __init__(self):
        self.uploads = []

    def upload(self, path, data, content_type=None):
        self.uploads.append((path, data, content_type))
        return f'https://storage.example.com/{path}'


def make_tables():
    tables = {model.TABLE: FakeTable(model.TABLE) for model in RECORD_MODELS}
    tables['profiles'] = FakeTable('profiles', PROFILES)
    return tables


@pytest.fixture
def tables():
    return make_tables()


@pytest.fixture
def auth_backend():
    return FakeAuthBackend()


@pytest.fixture
def provider(auth_backend):
    return FakeProvider(auth_backend)


@pytest.fixture
def provisioner():
    return FakeProvisioner()


@pytest.fixture
def assets():
    return FakeAssets()


@pytest.fixture
def session_holder(provider, tables):
    return SessionHolder(provider, tables['profiles'], FAST_RETRY)


@pytest.fixture
def portal(session_holder, tables, provisioner, assets):
    portal = Portal(session_holder, tables, provisioner=provisioner, assets=assets)
    portal.start()
    return portal


@pytest.fixture
def admin_portal(portal):
    portal.session.login('admin@alphabeta.org', 'admin1963')
    return portal


@pytest.fixture
def guest_portal(portal):
    portal.session.login('guest@alphabeta.org', 'guest1925')
    return portal


@pytest.fixture
def app(tables, auth_backend, provisioner, assets):
    def factory(session_cookie):
        session = SessionHolder(FakeProvider(auth_backend, session_cookie), tables['profiles'], FAST_RETRY)
        return Portal(session, tables, provisioner=provisioner, assets=assets)

    app = create_app(TestConfig, portal_factory=factory)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, email, password):
    return client.post('/auth/login', json={'email': email, 'password': password})


@pytest.fixture
def admin_client(client):
    resp = login(client, 'admin@alphabeta.org', 'admin1963')
    assert resp.status_code == 200
    return client


@pytest.fixture
def guest_client(client):
    resp = login(client, 'guest@alphabeta.org', 'guest1925')
    assert resp.status_code == 200
    return client


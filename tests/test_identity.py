from unittest import mock

import pytest
import requests
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from portal.errors import AuthenticationError, IdentityProviderError, RemoteFailure
from portal.identity import AuthEvent, AuthSession, FirebaseIdentityProvider, UserProvisioner


def _response(status_code, payload):
    resp = mock.Mock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


@pytest.fixture
def auth():
    return mock.Mock()


@pytest.fixture
def provider(auth):
    return FirebaseIdentityProvider(auth, 'test-api-key', timeout=3)


def test_sign_in_creates_session_cookie_and_emits(auth, provider):
    auth.create_session_cookie.return_value = 'session-cookie'
    events = []
    provider.subscribe(lambda event, session: events.append((event, session)))
    ok = _response(200, {'idToken': 'id-token', 'localId': 'u1', 'email': 'admin@alphabeta.org'})

    with mock.patch('portal.identity.http_requests.post', return_value=ok) as post:
        session = provider.sign_in('admin@alphabeta.org', 'admin1963')

    assert session == AuthSession(uid='u1', email='admin@alphabeta.org')
    assert provider.session_cookie == 'session-cookie'
    assert events == [(AuthEvent.SIGNED_IN, session)]
    assert post.call_args.kwargs['json']['returnSecureToken'] is True
    assert post.call_args.kwargs['timeout'] == 3


def test_sign_in_bad_credentials(provider):
    rejected = _response(400, {'error': {'message': 'INVALID_LOGIN_CREDENTIALS'}})
    with mock.patch('portal.identity.http_requests.post', return_value=rejected):
        with pytest.raises(AuthenticationError, match='INVALID_LOGIN_CREDENTIALS'):
            provider.sign_in('admin@alphabeta.org', 'wrong')
    assert provider.session_cookie is None


def test_sign_in_server_error_is_transient(provider):
    with mock.patch('portal.identity.http_requests.post', return_value=_response(503, {})):
        with pytest.raises(IdentityProviderError):
            provider.sign_in('admin@alphabeta.org', 'admin1963')


def test_sign_in_network_error_is_transient(provider):
    with mock.patch('portal.identity.http_requests.post', side_effect=requests.ConnectionError('down')):
        with pytest.raises(IdentityProviderError):
            provider.sign_in('admin@alphabeta.org', 'admin1963')


def test_sign_in_requires_api_key(auth):
    with pytest.raises(IdentityProviderError):
        FirebaseIdentityProvider(auth, '').sign_in('admin@alphabeta.org', 'admin1963')


def test_current_session_without_cookie(provider, auth):
    assert provider.get_current_session() is None
    auth.verify_session_cookie.assert_not_called()


def test_current_session_verifies_cookie(auth):
    auth.verify_session_cookie.return_value = {'uid': 'u1', 'email': 'guest@alphabeta.org'}
    provider = FirebaseIdentityProvider(auth, 'key', session_cookie='cookie')

    assert provider.get_current_session() == AuthSession(uid='u1', email='guest@alphabeta.org')
    auth.verify_session_cookie.assert_called_once_with('cookie', check_revoked=True)


def test_invalid_cookie_is_dropped(auth):
    auth.verify_session_cookie.side_effect = firebase_auth.InvalidSessionCookieError('expired')
    provider = FirebaseIdentityProvider(auth, 'key', session_cookie='cookie')

    assert provider.get_current_session() is None
    assert provider.session_cookie is None


def test_unavailable_auth_backend_is_transient(auth):
    auth.verify_session_cookie.side_effect = firebase_exceptions.UnavailableError('try later')
    provider = FirebaseIdentityProvider(auth, 'key', session_cookie='cookie')

    with pytest.raises(IdentityProviderError):
        provider.get_current_session()
    assert provider.session_cookie == 'cookie'


def test_sign_out_clears_cookie_and_emits(auth):
    auth.verify_session_cookie.return_value = {'uid': 'u1'}
    provider = FirebaseIdentityProvider(auth, 'key', session_cookie='cookie')
    events = []
    unsubscribe = provider.subscribe(lambda event, session: events.append(event))

    provider.sign_out()
    unsubscribe()
    provider.sign_out()

    assert provider.session_cookie is None
    assert events == [AuthEvent.SIGNED_OUT]


def test_sign_out_revokes_refresh_tokens(auth):
    auth.verify_session_cookie.return_value = {'uid': 'u1'}
    provider = FirebaseIdentityProvider(auth, 'key', session_cookie='cookie')

    provider.sign_out()

    auth.verify_session_cookie.assert_called_once_with('cookie')
    auth.revoke_refresh_tokens.assert_called_once_with('u1')


def test_sign_out_without_cookie_revokes_nothing(auth, provider):
    provider.sign_out()
    auth.revoke_refresh_tokens.assert_not_called()


def test_sign_out_still_clears_session_when_revocation_fails(auth):
    auth.verify_session_cookie.side_effect = firebase_auth.InvalidSessionCookieError('expired')
    provider = FirebaseIdentityProvider(auth, 'key', session_cookie='cookie')
    events = []
    provider.subscribe(lambda event, session: events.append(event))

    provider.sign_out()

    assert provider.session_cookie is None
    assert events == [AuthEvent.SIGNED_OUT]
    auth.revoke_refresh_tokens.assert_not_called()


def test_provisioner_creates_account(auth):
    auth.create_user.return_value = mock.Mock(uid='new-uid')

    uid = UserProvisioner(auth).create_account('new@alphabeta.org', 'secret1', 'New Brother')

    assert uid == 'new-uid'
    auth.create_user.assert_called_once_with(
        email='new@alphabeta.org', password='secret1', display_name='New Brother'
    )


def test_provisioner_maps_firebase_errors(auth):
    auth.create_user.side_effect = firebase_auth.EmailAlreadyExistsError('taken', None, None)
    with pytest.raises(RemoteFailure):
        UserProvisioner(auth).create_account('admin@alphabeta.org', 'secret1')


def test_provisioner_delete_tolerates_missing_account(auth):
    auth.delete_user.side_effect = firebase_auth.UserNotFoundError('gone')
    UserProvisioner(auth).delete_account('ghost')
    auth.delete_user.assert_called_once_with('ghost')

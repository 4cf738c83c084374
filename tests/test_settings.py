import pytest

from conftest import FAST_RETRY, FakeProvider
from portal.context import Portal
from portal.errors import AuthorizationError, RemoteFailure
from portal.models import Settings
from portal.session import SessionHolder
from portal.settings import CHAPTER_NAME_PAGE, LOGO_URL_PAGE, SettingsStore


def test_defaults_when_pages_are_missing(guest_portal):
    assert guest_portal.settings.get_settings() == Settings(chapter_name='ALPHA BETA', logo_url='')


def test_empty_chapter_name_falls_back_to_default(admin_portal, tables):
    tables['content_pages'].rows[CHAPTER_NAME_PAGE] = {'id': CHAPTER_NAME_PAGE, 'title': 'Chapter Name', 'content': ''}
    admin_portal.content_pages.load()

    assert admin_portal.settings.refresh().chapter_name == 'ALPHA BETA'


def test_update_chapter_name_round_trips(admin_portal, tables, auth_backend):
    settings = admin_portal.settings.update_settings({'chapter_name': 'GAMMA'})

    assert settings.chapter_name == 'GAMMA'
    assert settings.logo_url == ''
    page = tables['content_pages'].rows[CHAPTER_NAME_PAGE]
    assert page['title'] == 'Chapter Name'
    assert page['content'] == 'GAMMA'

    # A fresh session over the same tables sees the new name
    session = SessionHolder(FakeProvider(auth_backend), tables['profiles'], FAST_RETRY)
    other = Portal(session, tables)
    other.start()
    session.login('guest@alphabeta.org', 'guest1925')
    assert other.settings.get_settings().chapter_name == 'GAMMA'


def test_update_existing_page_keeps_title(admin_portal, tables):
    admin_portal.settings.update_settings({'chapter_name': 'GAMMA'})
    admin_portal.settings.update_settings({'chapter_name': 'DELTA'})

    page = tables['content_pages'].rows[CHAPTER_NAME_PAGE]
    assert page['title'] == 'Chapter Name'
    assert page['content'] == 'DELTA'


def test_update_only_touches_supplied_fields(admin_portal, tables):
    admin_portal.settings.update_settings({'logo_url': 'https://cdn.example.com/logo.png'})

    assert LOGO_URL_PAGE in tables['content_pages'].rows
    assert CHAPTER_NAME_PAGE not in tables['content_pages'].rows
    assert admin_portal.settings.get_settings().chapter_name == 'ALPHA BETA'


def test_guest_cannot_update_settings(guest_portal, tables):
    with pytest.raises(AuthorizationError):
        guest_portal.settings.update_settings({'chapter_name': 'GAMMA'})

    assert tables['content_pages'].writes == []
    assert guest_portal.settings.get_settings().chapter_name == 'ALPHA BETA'


def test_upload_logo_stores_public_url(admin_portal, assets):
    settings = admin_portal.settings.upload_logo('Crest.PNG', b'\x89PNG', 'image/png')

    path, data, content_type = assets.uploads[0]
    assert path.startswith('settings/logo_')
    assert path.endswith('.png')
    assert data == b'\x89PNG'
    assert content_type == 'image/png'
    assert settings.logo_url == f'https://storage.example.com/{path}'


def test_guest_cannot_upload_logo(guest_portal, assets):
    with pytest.raises(AuthorizationError):
        guest_portal.settings.upload_logo('logo.png', b'x')
    assert assets.uploads == []


def test_upload_logo_without_asset_store(admin_portal):
    store = SettingsStore(admin_portal.content_pages, admin_portal.session)
    with pytest.raises(RemoteFailure, match='No asset store'):
        store.upload_logo('logo.png', b'x')

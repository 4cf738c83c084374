"""
Application settings kept in two reserved content pages.

The chapter display name and the logo URL each live in the `content`
field of a well-known page. Missing pages fall back to defaults on read.
"""

import logging
import uuid

from portal.errors import RemoteFailure
from portal.models import Settings
from portal.permissions import require_admin

logger = logging.getLogger(__name__)

CHAPTER_NAME_PAGE = 'app_settings_chapter_name'
LOGO_URL_PAGE = 'app_settings_logo_url'

DEFAULT_CHAPTER_NAME = 'ALPHA BETA'
DEFAULT_LOGO_URL = ''

# settings field -> (reserved page id, page title)
RESERVED_PAGES = {
    'chapter_name': (CHAPTER_NAME_PAGE, 'Chapter Name'),
    'logo_url': (LOGO_URL_PAGE, 'Logo URL'),
}


class SettingsStore:
    def __init__(self, pages, session, assets=None):
        self._pages = pages
        self._session = session
        self._assets = assets
        self._current = Settings(DEFAULT_CHAPTER_NAME, DEFAULT_LOGO_URL)

    def get_settings(self):
        return self._current

    def refresh(self):
        """Re-derive the snapshot from the loaded content pages."""
        name_page = self._pages.get_page(CHAPTER_NAME_PAGE)
        logo_page = self._pages.get_page(LOGO_URL_PAGE)
        self._current = Settings(
            chapter_name=name_page.content if name_page and name_page.content else DEFAULT_CHAPTER_NAME,
            logo_url=logo_page.content if logo_page else DEFAULT_LOGO_URL,
        )
        return self._current

    def update_settings(self, partial):
        """Write each supplied setting to its reserved page.

        Writes are independent: the snapshot takes each new value as soon
        as its own write succeeds, so a failure on the second field keeps
        the first one applied.
        """
        require_admin(self._session.current_identity())
        for field_name, (page_id, title) in RESERVED_PAGES.items():
            if field_name not in partial:
                continue
            value = partial[field_name]
            value = '' if value is None else str(value)
            if self._pages.get_page(page_id) is None:
                self._pages.upsert(page_id, {'title': title, 'content': value})
            else:
                self._pages.upsert(page_id, {'content': value})
            self._current = Settings(**{**self._current.to_dict(), field_name: value})
            logger.info('Setting %s updated', field_name)
        return self._current

    def upload_logo(self, filename, data, content_type=None):
        """Upload a logo image and store its public URL as the logo setting."""
        require_admin(self._session.current_identity())
        if self._assets is None:
            raise RemoteFailure('No asset store is configured for logo uploads')
        ext = filename.rsplit('.', 1)[-1].lower() if '.' in filename else 'png'
        path = f'settings/logo_{uuid.uuid4().hex[:8]}.{ext}'
        url = self._assets.upload(path, data, content_type)
        return self.update_settings({'logo_url': url})

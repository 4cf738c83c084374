"""
Entity stores: in-memory mirrors of the remote tables.

Each store holds the rows of one table in load/insertion order and is the
only way the web layer changes them. Every mutation passes the admin gate
first, then writes remotely, and only touches the local list once the
remote write has been confirmed.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from portal.errors import (
    InvalidFieldError,
    MissingFieldError,
    NotFoundError,
    ProvisioningUnavailable,
    RemoteFailure,
    SelfDeletionError,
)
from portal.models import ContentPage, UserProfile
from portal.permissions import require_admin

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


def next_timestamp(previous=None):
    """Current UTC time, nudged past `previous` so updates always move forward."""
    now = _now()
    if previous is None:
        return now
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class EntityStore:
    def __init__(self, model, table, session):
        self.model = model
        self._table = table
        self._session = session
        self._records = []

    @property
    def name(self):
        return self.model.TABLE

    @property
    def records(self):
        return list(self._records)

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(list(self._records))

    def get(self, record_id):
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def _require_admin(self):
        require_admin(self._session.current_identity())

    # -- Reads ---------------------------------------------------------------

    def load(self):
        """Replace the local rows with the remote table's contents.

        A failed fetch keeps whatever was cached before and returns False.
        """
        try:
            records = [self.model.from_dict(row) for row in self._table.select_all()]
        except (RemoteFailure, InvalidFieldError):
            logger.exception('Loading %s failed; keeping %d cached rows', self.name, len(self._records))
            return False
        self._records = records
        logger.debug('Loaded %d rows from %s', len(records), self.name)
        return True

    def reset(self):
        self._records = []

    # -- Mutations -----------------------------------------------------------

    def _new_id(self, attributes):
        return uuid.uuid4().hex

    def _build(self, attributes):
        data = {k: v for k, v in attributes.items()
                if k != 'id' and k not in self.model.timestamp_fields()}
        record = self.model.from_dict(data)
        record.id = self._new_id(attributes)
        now = _now()
        for field_name in self.model.timestamp_fields():
            setattr(record, field_name, now)
        return record

    def _insert(self, record):
        row = self._table.insert(record.to_row())
        stored = self.model.from_dict(row) if row else record
        self._remember(stored)
        logger.info('Added %s/%s', self.name, stored.id)
        return stored

    def _remember(self, record):
        for index, existing in enumerate(self._records):
            if existing.id == record.id:
                self._records[index] = record
                return
        self._records.append(record)

    def add(self, attributes):
        """Create a record from `attributes`; returns the stored record."""
        self._require_admin()
        return self._insert(self._build(attributes))

    def update(self, record_id, partial):
        """Apply a partial update; omitted fields keep their values."""
        self._require_admin()
        data = self.model.coerce_partial(partial)
        updated_field = self.model.UPDATED_FIELD
        if updated_field:
            current = self.get(record_id)
            data[updated_field] = next_timestamp(getattr(current, updated_field, None))

        if data:
            row = self._table.update(record_id, data)
        else:
            row = self._table.get(record_id)
            if row is None:
                raise NotFoundError(self.name, record_id)

        stored = self.model.from_dict(row, record_id)
        self._remember(stored)
        logger.info('Updated %s/%s', self.name, record_id)
        return stored

    def delete(self, record_id):
        self._require_admin()
        self._table.delete(record_id)
        self._records = [r for r in self._records if r.id != record_id]
        logger.info('Deleted %s/%s', self.name, record_id)


class UserProfileStore(EntityStore):
    """Profiles keyed by Firebase Auth UID.

    New users are provisioned through `provisioner` when one is configured.
    Without it, `add` can only link a profile to an account that already
    exists in Firebase Auth (pass its UID as 'id').
    """

    def __init__(self, table, session, provisioner=None):
        super().__init__(UserProfile, table, session)
        self._provisioner = provisioner

    def add(self, attributes, password=None):
        self._require_admin()
        record = self._build(attributes)

        if password:
            if self._provisioner is None:
                raise ProvisioningUnavailable(
                    'Create the account in the Firebase console, then link its profile by UID.'
                )
            uid = self._provisioner.create_account(record.email, password, record.name)
            record.id = uid
            try:
                return self._insert(record)
            except RemoteFailure:
                self._provisioner.delete_account(uid)
                raise

        if not attributes.get('id'):
            raise ProvisioningUnavailable('A password or an existing account UID is required.')
        record.id = attributes['id']
        return self._insert(record)

    def delete(self, record_id):
        """Delete a profile. The Firebase Auth account itself is left alone."""
        self._require_admin()
        if self._session.current_identity().id == record_id:
            raise SelfDeletionError('Cannot delete self')
        super().delete(record_id)


class ContentPageStore(EntityStore):
    """Editable page sections keyed by a well-known page id."""

    def __init__(self, table, session):
        super().__init__(ContentPage, table, session)

    def _new_id(self, attributes):
        page_id = attributes.get('id')
        if not page_id:
            raise MissingFieldError('id')
        return page_id

    def get_page(self, page_id):
        return self.get(page_id)

    def upsert(self, page_id, partial):
        """Update the page, creating it first if it does not exist yet."""
        self._require_admin()
        if self._table.get(page_id) is None:
            attributes = {'title': page_id}
            attributes.update(partial)
            attributes['id'] = page_id
            return self.add(attributes)
        return self.update(page_id, partial)

    def update_page_content(self, page_id, content):
        return self.upsert(page_id, {'content': content})

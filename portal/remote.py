"""
Firestore table adapter.

The entity stores never talk to Firestore directly; they go through a
`FirestoreTable`, which presents a collection as a table of rows keyed by
document ID. Rows are plain dicts carrying an 'id' field, and every write
returns the row as persisted on the server.
"""

import logging

from google.api_core import exceptions as gexc

from portal.errors import NotFoundError, RemoteFailure
from portal.models import RECORD_MODELS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _doc_to_dict(doc_snapshot):
    """Convert a Firestore DocumentSnapshot to a dict with 'id' field."""
    if not doc_snapshot.exists:
        return None
    d = doc_snapshot.to_dict() or {}
    d['id'] = doc_snapshot.id
    return d


class FirestoreTable:
    """One Firestore collection seen as a remote table."""

    def __init__(self, db, name, timeout=None):
        self._db = db
        self.name = name
        self._timeout = timeout

    def _collection(self):
        return self._db.collection(self.name)

    def _failure(self, action, exc):
        logger.warning('Firestore %s on %s failed: %s', action, self.name, exc)
        return RemoteFailure(f'{action} on {self.name} failed: {exc}')

    def select_all(self):
        """Return every row of the collection in server order."""
        try:
            return [_doc_to_dict(doc) for doc in self._collection().stream(timeout=self._timeout)]
        except (gexc.GoogleAPICallError, gexc.RetryError) as exc:
            raise self._failure('select', exc) from exc

    def get(self, record_id):
        """Get a row by ID. Returns dict or None."""
        try:
            doc = self._collection().document(record_id).get(timeout=self._timeout)
        except (gexc.GoogleAPICallError, gexc.RetryError) as exc:
            raise self._failure('get', exc) from exc
        return _doc_to_dict(doc)

    def insert(self, row):
        """Create the row under row['id'] and return the stored version."""
        data = dict(row)
        record_id = data.pop('id')
        doc_ref = self._collection().document(record_id)
        try:
            doc_ref.create(data, timeout=self._timeout)
            return _doc_to_dict(doc_ref.get(timeout=self._timeout))
        except (gexc.GoogleAPICallError, gexc.RetryError) as exc:
            raise self._failure('insert', exc) from exc

    def update(self, record_id, partial):
        """Apply a partial update and return the stored version."""
        doc_ref = self._collection().document(record_id)
        try:
            doc_ref.update(dict(partial), timeout=self._timeout)
            return _doc_to_dict(doc_ref.get(timeout=self._timeout))
        except gexc.NotFound as exc:
            raise NotFoundError(self.name, record_id) from exc
        except (gexc.GoogleAPICallError, gexc.RetryError) as exc:
            raise self._failure('update', exc) from exc

    def delete(self, record_id):
        """Delete a row. Missing rows raise NotFoundError."""
        doc_ref = self._collection().document(record_id)
        try:
            if not doc_ref.get(timeout=self._timeout).exists:
                raise NotFoundError(self.name, record_id)
            doc_ref.delete(timeout=self._timeout)
        except (gexc.GoogleAPICallError, gexc.RetryError) as exc:
            raise self._failure('delete', exc) from exc


def build_tables(db, timeout=None):
    """Return a {table name: FirestoreTable} mapping for every record kind."""
    return {model.TABLE: FirestoreTable(db, model.TABLE, timeout) for model in RECORD_MODELS}

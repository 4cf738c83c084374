"""Process-wide Firebase Admin handles: Firestore, Auth and the asset bucket."""

import logging
import os

import firebase_admin
from firebase_admin import auth, credentials, firestore, storage

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIALS = './firebase-service-account.json'

_clients = {}


def _setting(app_config, key, default=''):
    return (app_config or {}).get(key) or os.environ.get(key, default)


def _load_credentials(path):
    if path and os.path.exists(path):
        return credentials.Certificate(path)
    logger.info('No service account at %s, using application default credentials', path)
    return credentials.ApplicationDefault()


def init_firebase(app_config=None):
    """Initialise the default Firebase app once per process."""
    if 'app' in _clients:
        return _clients['app']

    bucket_name = _setting(app_config, 'FIREBASE_STORAGE_BUCKET')
    cred = _load_credentials(_setting(app_config, 'GOOGLE_APPLICATION_CREDENTIALS', DEFAULT_CREDENTIALS))
    options = {'storageBucket': bucket_name} if bucket_name else None

    _clients['app'] = firebase_admin.initialize_app(cred, options=options)
    _clients['db'] = firestore.client()
    _clients['bucket'] = storage.bucket() if bucket_name else None
    logger.info('Firebase initialised (asset bucket: %s)', bucket_name or 'none')
    return _clients['app']


def get_db():
    init_firebase()
    return _clients['db']


def get_bucket():
    """The asset bucket, or None when no FIREBASE_STORAGE_BUCKET is set."""
    init_firebase()
    return _clients['bucket']


def get_auth():
    init_firebase()
    return auth

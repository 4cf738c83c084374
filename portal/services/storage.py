from google.api_core import exceptions as gexc

from portal.errors import RemoteFailure
from portal.firebase_init import get_bucket


def upload_public_file(bucket, destination_path, file_data, content_type=None):
    """Upload file bytes to Firebase Storage and make them public.

    Args:
        bucket: storage bucket
        file_data: bytes or file-like object
        destination_path: path in the bucket (e.g. 'settings/logo.png')
        content_type: MIME type

    Returns:
        The public URL of the uploaded object
    """
    blob = bucket.blob(destination_path)
    try:
        if isinstance(file_data, bytes):
            blob.upload_from_string(file_data, content_type=content_type)
        else:
            blob.upload_from_file(file_data, content_type=content_type)
        blob.make_public()
    except (gexc.GoogleAPICallError, gexc.RetryError) as exc:
        raise RemoteFailure(f'Upload of {destination_path} failed: {exc}') from exc
    return blob.public_url


class AssetStore:
    """File/asset store used by the settings flow for logo uploads."""

    def __init__(self, bucket=None):
        self._bucket = bucket

    @property
    def bucket(self):
        if self._bucket is None:
            self._bucket = get_bucket()
        return self._bucket

    def upload(self, path, data, content_type=None):
        if content_type is None and path.endswith(('.png', '.jpg', '.jpeg')):
            ext = path.rsplit('.', 1)[-1]
            content_type = f'image/{ext}' if ext != 'jpg' else 'image/jpeg'
        return upload_public_file(self.bucket, path, data, content_type)

import os
import uuid
import logging

from werkzeug.utils import secure_filename

from marketplace.errors import AssetStoreError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = ('jpg', 'jpeg', 'png', 'webp', 'gif')


class AssetStore:
    """Image storage for product pictures and avatars.

    ``upload`` returns ``{'public_id': ..., 'url': ...}``; ``public_id`` is
    what ``delete`` takes back.
    """

    def upload(self, file_storage, folder):
        raise NotImplementedError

    def delete(self, public_id):
        raise NotImplementedError


class LocalAssetStore(AssetStore):

    def __init__(self, root, url_prefix='/static/uploads'):
        self.root = root
        self.url_prefix = url_prefix.rstrip('/')

    @classmethod
    def from_config(cls, config):
        return cls(config['UPLOAD_FOLDER'],
                   config.get('UPLOAD_URL_PREFIX', '/static/uploads'))

    def _abs_path(self, public_id):
        path = os.path.abspath(os.path.join(self.root, public_id))
        if not path.startswith(os.path.abspath(self.root) + os.sep):
            raise AssetStoreError(f'Invalid asset id: {public_id}')
        return path

    def upload(self, file_storage, folder):
        filename = secure_filename(file_storage.filename or '')
        ext = (filename.rsplit('.', 1)[-1] if '.' in filename else '').lower()
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            raise AssetStoreError(
                'Unsupported image type (jpg/jpeg/png/webp/gif only)')

        abs_dir = os.path.join(self.root, folder)
        new_name = f"{uuid.uuid4().hex}.{ext}"
        try:
            os.makedirs(abs_dir, exist_ok=True)
            file_storage.save(os.path.join(abs_dir, new_name))
        except OSError as exc:
            raise AssetStoreError(f'Could not store image: {exc}') from exc

        public_id = f"{folder}/{new_name}".replace('\\', '/')
        return {
            'public_id': public_id,
            'url': f"{self.url_prefix}/{public_id}",
        }

    def delete(self, public_id):
        path = self._abs_path(public_id)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.info("Asset %s already gone", public_id)
        except OSError as exc:
            raise AssetStoreError(
                f'Could not delete {public_id}: {exc}') from exc

import logging

from marketplace.errors import (
    AssetStoreError,
    Conflict,
    GatewayError,
    InvalidRequest,
)
from marketplace.models import Review, User
from marketplace.policy import authorize
from marketplace.services.audit_service import log_audit
from marketplace.services.identity_service import normalize_email, parse_role

logger = logging.getLogger(__name__)

AVATAR_FOLDER = 'avatars'


class UserService:

    def __init__(self, storage, asset_store):
        self.storage = storage
        self.asset_store = asset_store

    def _delete_avatar(self, user):
        if not user.avatar_public_id:
            return
        try:
            self.asset_store.delete(user.avatar_public_id)
        except AssetStoreError as exc:
            logger.warning("Could not delete avatar %s: %s",
                           user.avatar_public_id, exc)

    def _replace_avatar(self, user, file_storage):
        try:
            result = self.asset_store.upload(file_storage, AVATAR_FOLDER)
        except AssetStoreError as exc:
            raise GatewayError(f'Avatar upload failed: {exc}')
        self._delete_avatar(user)
        user.avatar_public_id = result['public_id']
        user.avatar_url = result['url']

    def _check_email_free(self, email, user_id=None):
        other = self.storage.find_one(User, email=email)
        if other is not None and other.id != user_id:
            raise Conflict('User already exists')

    def list_users(self, admin):
        authorize(admin, 'user:manage')
        return self.storage.find(User, order_by=User.id.asc())

    def get_user(self, admin, user_id):
        authorize(admin, 'user:manage')
        return self.storage.get_or_404(User, user_id, 'User not found')

    def create_user(self, admin, fields, avatar=None):
        authorize(admin, 'user:manage')
        name = (fields.get('name') or '').strip()
        email = normalize_email(fields.get('email'))
        password = fields.get('password')
        if not name or not email or not password:
            raise InvalidRequest('Name, email and password are required')
        self._check_email_free(email)

        user = User(
            name=name,
            email=email,
            role=parse_role(fields.get('role')),
            bio=fields.get('bio'),
        )
        user.set_password(password)
        if avatar is not None:
            self._replace_avatar(user, avatar)
        if not self.storage.add_unique(user):
            self._delete_avatar(user)
            raise Conflict('User already exists')

        log_audit(
            actor=admin,
            action='USER_CREATE',
            target_type='USER',
            target_id=user.id,
            payload={'role': user.role.value},
        )
        return user

    def update_user(self, admin, user_id, fields, avatar=None):
        user = self.get_user(admin, user_id)

        if fields.get('name'):
            user.name = fields['name'].strip()
        if fields.get('email'):
            email = normalize_email(fields['email'])
            self._check_email_free(email, user.id)
            user.email = email
        if fields.get('role'):
            user.role = parse_role(fields['role'])
        if fields.get('bio') is not None:
            user.bio = fields['bio']
        if avatar is not None:
            self._replace_avatar(user, avatar)

        self.storage.commit()
        log_audit(
            actor=admin,
            action='USER_UPDATE',
            target_type='USER',
            target_id=user.id,
            payload={'role': user.role.value},
        )
        return user

    def delete_user(self, admin, user_id):
        user = self.get_user(admin, user_id)
        self._delete_avatar(user)
        # Reviews outlive their author.
        self.storage.query(Review).filter(Review.user_id == user.id).update(
            {Review.user_id: None}, synchronize_session=False)
        self.storage.delete(user)
        self.storage.commit()

        log_audit(
            actor=admin,
            action='USER_DELETE',
            target_type='USER',
            target_id=user_id,
        )

    def update_avatar(self, user, avatar):
        if avatar is None:
            raise InvalidRequest('No image uploaded')
        self._replace_avatar(user, avatar)
        self.storage.commit()
        return user

    def set_avatar(self, admin, user_id, avatar):
        user = self.get_user(admin, user_id)
        return self.update_avatar(user, avatar)

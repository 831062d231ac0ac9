from datetime import datetime, timedelta
import hashlib
import logging
import secrets

from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import PyJWTError

from marketplace.errors import (
    Conflict,
    InternalError,
    InvalidRequest,
    InvalidToken,
    MailerError,
    NotFound,
    Unauthorized,
)
from marketplace.models import User, UserRole
from marketplace.services.audit_service import log_audit

logger = logging.getLogger(__name__)

# Roles a visitor may pick for themselves; admins are created by admins.
SELF_SERVICE_ROLES = (UserRole.BUYER, UserRole.SELLER)


def hash_reset_token(raw_token):
    return hashlib.sha256(raw_token.encode('utf-8')).hexdigest()


def normalize_email(email):
    return (email or '').strip().lower()


def parse_role(value, allowed=tuple(UserRole)):
    if not value:
        return UserRole.BUYER
    try:
        role = UserRole(str(value).strip().lower())
    except ValueError:
        raise InvalidRequest(f'Invalid role: {value}')
    if role not in allowed:
        raise InvalidRequest(f'Role {role.value} cannot be chosen here')
    return role


class IdentityService:

    def __init__(self, storage, mailer, reset_expire_minutes=10):
        self.storage = storage
        self.mailer = mailer
        self.reset_expire_minutes = reset_expire_minutes

    def issue_token(self, user):
        return create_access_token(identity=str(user.id))

    def authenticate(self, token):
        if not token:
            raise Unauthorized('Not authorized, no token')
        try:
            claims = decode_token(token)
        except (PyJWTError, JWTExtendedException) as exc:
            logger.info("Rejected bearer token: %s", exc)
            raise Unauthorized('Not authorized, token failed')

        user = self.storage.get(User, claims.get('sub'))
        if user is None:
            raise Unauthorized('Not authorized, token failed')
        return user

    def register(self, name, email, password, role=None):
        name = (name or '').strip()
        email = normalize_email(email)
        if not name or not email or not password:
            raise InvalidRequest('Name, email and password are required')

        user_role = parse_role(role, allowed=SELF_SERVICE_ROLES)
        if self.storage.find_one(User, email=email):
            raise Conflict('User already exists')

        user = User(name=name, email=email, role=user_role)
        user.set_password(password)
        if not self.storage.add_unique(user):
            raise Conflict('User already exists')

        log_audit(
            actor=user,
            action='REGISTER',
            target_type='USER',
            target_id=user.id,
            payload={'role': user.role.value},
        )
        return user, self.issue_token(user)

    def login(self, email, password):
        email = normalize_email(email)
        user = self.storage.find_one(User, email=email) if email else None

        if user is None or not password or not user.check_password(password):
            log_audit(
                action='LOGIN_FAILED',
                target_type='USER',
                target_id=user.id if user else None,
                payload={
                    'reason': 'invalid_credentials' if user
                    else 'user_not_found'})
            raise Unauthorized('Invalid email or password')

        log_audit(
            actor=user,
            action='LOGIN_SUCCESS',
            target_type='USER',
            target_id=user.id,
        )
        return user, self.issue_token(user)

    def update_profile(self, user, fields):
        if fields.get('name'):
            user.name = fields['name'].strip()
        if fields.get('email'):
            email = normalize_email(fields['email'])
            other = self.storage.find_one(User, email=email)
            if other is not None and other.id != user.id:
                raise Conflict('Email already in use')
            user.email = email
        if fields.get('bio') is not None:
            bio = fields['bio']
            if len(bio) > 500:
                raise InvalidRequest('Bio cannot exceed 500 characters')
            user.bio = bio
        if fields.get('password'):
            user.set_password(fields['password'])

        self.storage.commit()
        return user, self.issue_token(user)

    def request_password_reset(self, email, reset_url_for):
        """Mail a reset link; ``reset_url_for(raw_token)`` builds the URL."""
        user = self.storage.find_one(User, email=normalize_email(email))
        if user is None:
            raise NotFound('User not found')

        raw_token = secrets.token_hex(20)
        user.reset_password_token = hash_reset_token(raw_token)
        user.reset_password_expire = datetime.utcnow() + timedelta(
            minutes=self.reset_expire_minutes)
        self.storage.commit()

        message = (
            'You are receiving this email because you (or someone else) has '
            'requested the reset of a password. Please make a PUT request '
            f'to: \n\n {reset_url_for(raw_token)}'
        )
        try:
            self.mailer.send(user.email, 'Password reset token', message)
        except MailerError as exc:
            logger.error("Password reset mail to %s failed: %s",
                         user.email, exc)
            user.clear_reset_token()
            self.storage.commit()
            raise InternalError('Email could not be sent')

        log_audit(
            actor=user,
            action='PASSWORD_RESET_REQUEST',
            target_type='USER',
            target_id=user.id,
        )
        return user

    def reset_password(self, raw_token, new_password):
        if not new_password:
            raise InvalidRequest('Password is required')

        user = self.storage.find_one(
            User, reset_password_token=hash_reset_token(raw_token or ''))
        if (
            user is None
            or user.reset_password_expire is None
            or user.reset_password_expire <= datetime.utcnow()
        ):
            raise InvalidToken('Invalid token')

        user.set_password(new_password)
        user.clear_reset_token()
        self.storage.commit()

        log_audit(
            actor=user,
            action='PASSWORD_RESET',
            target_type='USER',
            target_id=user.id,
        )
        return user, self.issue_token(user)

from flask import request
from flask_login import current_user
from functools import wraps
import logging

from marketplace.errors import Unauthorized
from marketplace.extensions import login_manager
from marketplace.policy import authorize

logger = logging.getLogger(__name__)


def bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def setup_auth_middleware(app):

    @login_manager.request_loader
    def load_user_from_request(req):
        token = bearer_token()
        if token is None:
            return None
        from marketplace.services import get_services
        try:
            return get_services().identity.authenticate(token)
        except Unauthorized:
            return None

    @login_manager.user_loader
    def load_user(user_id):
        # Sessions are never created; only bearer tokens authenticate.
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        if bearer_token() is None:
            raise Unauthorized('Not authorized, no token')
        raise Unauthorized('Not authorized, token failed')


def role_required(action):
    """Gate a view on a role action from :mod:`marketplace.policy`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()
            authorize(current_user._get_current_object(), action)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def identity():
    """The authenticated User behind ``current_user``."""
    return current_user._get_current_object()

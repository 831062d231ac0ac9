"""Who may do what.

Every role and ownership decision goes through :func:`authorize`; routes and
services do not compare roles inline.
"""
import logging

from marketplace.errors import Forbidden
from marketplace.models import UserRole

logger = logging.getLogger(__name__)

# Actions that only need a role.
ROLE_ACTIONS = {
    'admin': {UserRole.ADMIN},
    'seller': {UserRole.SELLER, UserRole.ADMIN},
    'order:list-all': {UserRole.ADMIN},
    'order:deliver': {UserRole.ADMIN},
    'order:list-seller': {UserRole.SELLER, UserRole.ADMIN},
    'product:create': {UserRole.SELLER, UserRole.ADMIN},
    'user:manage': {UserRole.ADMIN},
}


def _is_admin(identity):
    return identity.role == UserRole.ADMIN


def _owns_product(identity, product):
    return product.seller_id == identity.id


def _sells_in_order(identity, order):
    return any(
        item.product is not None and item.product.seller_id == identity.id
        for item in order.items
    )


def is_allowed(identity, action, resource=None):
    if identity is None:
        return False

    if action in ROLE_ACTIONS:
        return identity.role in ROLE_ACTIONS[action]

    if action in ('product:update', 'product:delete'):
        return _is_admin(identity) or _owns_product(identity, resource)

    if action == 'order:view':
        return (
            resource.user_id == identity.id
            or _is_admin(identity)
            or _sells_in_order(identity, resource)
        )

    if action == 'order:pay':
        return resource.user_id == identity.id or _is_admin(identity)

    if action in ('order:payment-intent', 'order:capture'):
        return resource.user_id == identity.id

    if action == 'chat:access':
        return resource.has_participant(identity.id)

    raise ValueError(f'Unknown action: {action}')


def authorize(identity, action, resource=None, message=None):
    if not is_allowed(identity, action, resource):
        logger.warning(
            "User %s denied %s on %r",
            getattr(identity, 'id', None),
            action,
            resource,
        )
        raise Forbidden(message or 'Not authorized')
    return True

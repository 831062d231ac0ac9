from types import SimpleNamespace

import pytest

from marketplace.errors import Forbidden
from marketplace.models import UserRole
from marketplace.policy import authorize, is_allowed


def user(user_id, role=UserRole.BUYER):
    return SimpleNamespace(id=user_id, role=role)


def order(owner_id, seller_ids=()):
    items = [
        SimpleNamespace(product=SimpleNamespace(seller_id=sid))
        for sid in seller_ids
    ]
    # A deleted product leaves the line with no product.
    items.append(SimpleNamespace(product=None))
    return SimpleNamespace(user_id=owner_id, items=items)


BUYER = user(1)
SELLER = user(2, UserRole.SELLER)
ADMIN = user(3, UserRole.ADMIN)
OTHER = user(4)


@pytest.mark.parametrize('action, allowed', [
    ('admin', {ADMIN.id}),
    ('seller', {SELLER.id, ADMIN.id}),
    ('order:deliver', {ADMIN.id}),
    ('order:list-all', {ADMIN.id}),
    ('user:manage', {ADMIN.id}),
])
def test_role_actions(action, allowed):
    for who in (BUYER, SELLER, ADMIN):
        assert is_allowed(who, action) == (who.id in allowed)


def test_product_owner_or_admin():
    product = SimpleNamespace(seller_id=SELLER.id)
    rival = user(9, UserRole.SELLER)

    assert is_allowed(SELLER, 'product:update', product)
    assert is_allowed(ADMIN, 'product:delete', product)
    assert not is_allowed(rival, 'product:update', product)


def test_order_view():
    o = order(BUYER.id, seller_ids=[SELLER.id])

    assert is_allowed(BUYER, 'order:view', o)
    assert is_allowed(SELLER, 'order:view', o)
    assert is_allowed(ADMIN, 'order:view', o)
    assert not is_allowed(OTHER, 'order:view', o)


def test_payment_steps_are_owner_only():
    o = order(BUYER.id)

    assert is_allowed(ADMIN, 'order:pay', o)
    assert not is_allowed(ADMIN, 'order:payment-intent', o)
    assert not is_allowed(ADMIN, 'order:capture', o)
    assert is_allowed(BUYER, 'order:capture', o)


def test_chat_access():
    chat = SimpleNamespace(has_participant=lambda uid: uid in (1, 2))

    assert is_allowed(BUYER, 'chat:access', chat)
    assert not is_allowed(OTHER, 'chat:access', chat)


def test_anonymous_is_never_allowed():
    assert not is_allowed(None, 'seller')


def test_unknown_action():
    with pytest.raises(ValueError):
        is_allowed(ADMIN, 'launch:rockets')


def test_authorize_raises_forbidden_with_message():
    with pytest.raises(Forbidden) as excinfo:
        authorize(BUYER, 'admin', message='Admins only')

    assert excinfo.value.message == 'Admins only'
    assert excinfo.value.status_code == 403
    assert authorize(ADMIN, 'admin') is True

"""Order lifecycle and the PayPal capture handshake.

An order is created in one transaction: validate every line against live
stock, insert the order with price snapshots, then take the stock with a
conditional decrement per line. If any decrement loses a race the whole
transaction is rolled back and no stock moves.

``isPaid`` and ``isDelivered`` are independent flags; nothing here resets
either once set.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
import logging

from sqlalchemy import select

from marketplace.errors import (
    GatewayError,
    InsufficientStock,
    InvalidRequest,
    NotFound,
    PaymentGatewayError,
)
from marketplace.models import Order, OrderItem, Product
from marketplace.policy import authorize
from marketplace.services.audit_service import log_audit
from marketplace.utils import to_int

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')


def _money(value, field):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidRequest(f'{field} must be a number')
    if not amount.is_finite() or amount < 0:
        raise InvalidRequest(f'{field} must be a non-negative number')
    return amount.quantize(TWO_PLACES)


def _total(totals, key, default):
    value = totals.get(key)
    if value in (None, ''):
        value = default
    return _money(value, key)


def _amount(currency, value):
    return {
        'currency_code': currency,
        'value': f'{Decimal(value).quantize(TWO_PLACES)}',
    }


def _parse_line(raw):
    if not isinstance(raw, dict):
        raise InvalidRequest('Invalid order item')
    product_id = raw.get('product', raw.get('product_id'))
    if product_id in (None, ''):
        raise InvalidRequest('Order item is missing a product')
    quantity = raw.get('quantity', raw.get('qty'))
    try:
        quantity = to_int(quantity)
    except (TypeError, ValueError):
        raise InvalidRequest('Quantity must be a positive integer')
    if quantity < 1:
        raise InvalidRequest('Quantity must be a positive integer')
    return product_id, quantity


class OrderService:

    def __init__(self, storage, payment_gateway, currency='USD',
                 brand_name='Marketplace'):
        self.storage = storage
        self.payment_gateway = payment_gateway
        self.currency = currency
        self.brand_name = brand_name

    def _get_order(self, order_id):
        return self.storage.get_or_404(Order, order_id, 'Order not found')

    def create_order(self, buyer, items, shipping_address, payment_method,
                     totals=None):
        if not items:
            raise InvalidRequest('No order items')
        if not shipping_address:
            raise InvalidRequest('Shipping address is required')
        if not payment_method:
            raise InvalidRequest('Payment method is required')
        totals = totals or {}

        # Pass 1: validate against live stock, no writes.
        lines = []
        for raw in items:
            product_id, quantity = _parse_line(raw)
            product = self.storage.get(Product, product_id)
            if product is None:
                raise NotFound(f'Product {product_id} not found')
            if product.stock < quantity:
                raise InsufficientStock(product.name)
            lines.append((product, quantity))

        order_items = [
            OrderItem(
                product_id=product.id,
                name=product.name,
                image=product.images[0].url if product.images else None,
                price=product.price,
                quantity=quantity,
            )
            for product, quantity in lines
        ]
        snapshot_total = sum(
            (Decimal(item.price) * item.quantity for item in order_items),
            Decimal('0'))

        items_price = _total(totals, 'itemsPrice', snapshot_total)
        tax_price = _total(totals, 'taxPrice', 0)
        shipping_price = _total(totals, 'shippingPrice', 0)
        total_price = _total(
            totals, 'totalPrice', items_price + tax_price + shipping_price)

        order = Order(
            user_id=buyer.id,
            shipping_address=shipping_address,
            payment_method=payment_method,
            items_price=items_price,
            tax_price=tax_price,
            shipping_price=shipping_price,
            total_price=total_price,
            is_paid=False,
            is_delivered=False,
        )
        order.items = order_items

        # Pass 2: insert and take stock atomically.
        with self.storage.transaction():
            self.storage.add(order)
            self.storage.flush()
            for product, quantity in lines:
                if not self.storage.decrement_stock(product.id, quantity):
                    logger.warning(
                        "Stock for product %s changed during checkout",
                        product.id)
                    raise InsufficientStock(product.name)

        log_audit(
            actor=buyer,
            action='ORDER_CREATE',
            target_type='ORDER',
            target_id=order.id,
            payload={
                'total_price': float(order.total_price),
                'items': [
                    {'product_id': p.id, 'quantity': q} for p, q in lines
                ],
            },
        )
        return order

    def get_order(self, identity, order_id):
        order = self._get_order(order_id)
        authorize(identity, 'order:view', order)
        return order

    def mark_paid(self, identity, order_id, payment_result):
        order = self._get_order(order_id)
        authorize(identity, 'order:pay', order)

        payment_result = payment_result or {}
        payer = payment_result.get('payer') or {}
        order.is_paid = True
        order.paid_at = datetime.utcnow()
        order.payment_result = {
            'id': payment_result.get('id'),
            'status': payment_result.get('status'),
            'update_time': payment_result.get('update_time'),
            'email_address': payer.get('email_address'),
        }
        self.storage.commit()

        log_audit(
            actor=identity,
            action='ORDER_PAID',
            target_type='ORDER',
            target_id=order.id,
            payload=order.payment_result,
        )
        return order

    def mark_delivered(self, identity, order_id):
        authorize(identity, 'order:deliver')
        order = self._get_order(order_id)

        order.is_delivered = True
        order.delivered_at = datetime.utcnow()
        self.storage.commit()

        log_audit(
            actor=identity,
            action='ORDER_DELIVERED',
            target_type='ORDER',
            target_id=order.id,
        )
        return order

    def my_orders(self, buyer):
        return self.storage.find(
            Order,
            Order.user_id == buyer.id,
            order_by=[Order.created_at.desc(), Order.id.desc()],
        )

    def all_orders(self, identity):
        authorize(identity, 'order:list-all')
        return self.storage.find(
            Order,
            order_by=[Order.created_at.desc(), Order.id.desc()],
        )

    def seller_orders(self, seller):
        authorize(seller, 'order:list-seller')
        seller_order_ids = select(OrderItem.order_id).join(
            Product, OrderItem.product_id == Product.id
        ).where(Product.seller_id == seller.id)
        return self.storage.find(
            Order,
            Order.id.in_(seller_order_ids),
            order_by=[Order.created_at.desc(), Order.id.desc()],
        )

    # Payment capture handshake

    def build_payment_request(self, order, origin=None):
        currency = self.currency
        request_body = {
            'intent': 'CAPTURE',
            'purchase_units': [{
                'reference_id': str(order.id),
                'amount': {
                    **_amount(currency, order.total_price),
                    'breakdown': {
                        'item_total': _amount(currency, order.items_price),
                        'shipping': _amount(currency, order.shipping_price),
                        'tax_total': _amount(currency, order.tax_price),
                    },
                },
                'items': [{
                    'name': item.name,
                    'unit_amount': _amount(currency, item.price),
                    'quantity': str(item.quantity),
                } for item in order.items],
            }],
            'application_context': {
                'brand_name': self.brand_name,
                'shipping_preference': 'SET_PROVIDED_ADDRESS',
                'user_action': 'PAY_NOW',
            },
        }
        if origin:
            origin = origin.rstrip('/')
            request_body['application_context'].update({
                'return_url': f'{origin}/order/{order.id}/success',
                'cancel_url': f'{origin}/order/{order.id}',
            })
        return request_body

    def create_payment_intent(self, identity, order_id, origin=None):
        order = self._get_order(order_id)
        authorize(identity, 'order:payment-intent', order)

        try:
            response = self.payment_gateway.create_order(
                self.build_payment_request(order, origin))
        except PaymentGatewayError as exc:
            logger.error("PayPal order creation failed for order %s: %s",
                         order.id, exc)
            raise GatewayError('PayPal order creation failed')

        intent_id = response.get('id')
        if not intent_id:
            raise GatewayError('PayPal order creation failed')

        log_audit(
            actor=identity,
            action='PAYMENT_INTENT_CREATE',
            target_type='ORDER',
            target_id=order.id,
            payload={'intent_id': intent_id},
        )
        return intent_id

    def capture_funds(self, identity, order_id, intent_id):
        if not intent_id:
            raise InvalidRequest('orderID is required')
        order = self._get_order(order_id)
        authorize(identity, 'order:capture', order)

        try:
            capture = self.payment_gateway.capture_order(intent_id)
        except PaymentGatewayError as exc:
            logger.error("PayPal capture failed for intent %s: %s",
                         intent_id, exc)
            raise GatewayError('PayPal payment capture failed')

        log_audit(
            actor=identity,
            action='PAYMENT_CAPTURE',
            target_type='ORDER',
            target_id=order.id,
            payload={
                'intent_id': intent_id,
                'status': capture.get('status'),
            },
        )
        return capture

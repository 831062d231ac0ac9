from flask import Blueprint, current_app, request, jsonify
from flask_login import login_required

from marketplace.middleware import identity, role_required
from marketplace.serializers import order_payload
from marketplace.services import get_services
from marketplace.utils import request_data
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('orders', __name__)


@bp.route('/orders', methods=['POST'])
@login_required
def create_order():
    data = request_data()
    order = get_services().orders.create_order(
        identity(),
        data.get('orderItems'),
        data.get('shippingAddress'),
        data.get('paymentMethod'),
        totals={
            key: data.get(key)
            for key in ('itemsPrice', 'taxPrice', 'shippingPrice',
                        'totalPrice')
        },
    )
    return jsonify(order_payload(order)), 201


@bp.route('/orders', methods=['GET'])
@login_required
@role_required('order:list-all')
def list_orders():
    orders = get_services().orders.all_orders(identity())
    return jsonify([order_payload(o, resolve_user=True) for o in orders])


@bp.route('/orders/myorders', methods=['GET'])
@login_required
def my_orders():
    orders = get_services().orders.my_orders(identity())
    return jsonify([order_payload(o) for o in orders])


@bp.route('/orders/seller', methods=['GET'])
@login_required
@role_required('order:list-seller')
def seller_orders():
    orders = get_services().orders.seller_orders(identity())
    return jsonify([order_payload(o, resolve_user=True) for o in orders])


@bp.route('/orders/<int:order_id>', methods=['GET'])
@login_required
def order_detail(order_id):
    order = get_services().orders.get_order(identity(), order_id)
    return jsonify(order_payload(order, resolve_user=True))


@bp.route('/orders/<int:order_id>/pay', methods=['PUT'])
@login_required
def pay_order(order_id):
    order = get_services().orders.mark_paid(
        identity(), order_id, request_data())
    return jsonify(order_payload(order))


@bp.route('/orders/<int:order_id>/deliver', methods=['PUT'])
@login_required
@role_required('order:deliver')
def deliver_order(order_id):
    order = get_services().orders.mark_delivered(identity(), order_id)
    return jsonify(order_payload(order))


@bp.route('/orders/<int:order_id>/paypal/create', methods=['POST'])
@login_required
def create_paypal_order(order_id):
    intent_id = get_services().orders.create_payment_intent(
        identity(), order_id, origin=request.headers.get('Origin'))
    return jsonify({'id': intent_id})


@bp.route('/orders/<int:order_id>/paypal/capture', methods=['POST'])
@login_required
def capture_paypal_order(order_id):
    capture = get_services().orders.capture_funds(
        identity(), order_id, request_data().get('orderID'))
    return jsonify(capture)


@bp.route('/config/paypal', methods=['GET'])
def paypal_config():
    return jsonify({'clientId': current_app.config['PAYPAL_CLIENT_ID']})

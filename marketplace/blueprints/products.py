from flask import Blueprint, request, jsonify
from flask_login import login_required

from marketplace.middleware import identity, role_required
from marketplace.serializers import product_payload
from marketplace.services import get_services
from marketplace.utils import request_data, uploaded_files
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('products', __name__)


@bp.route('', methods=['GET'])
def product_list():
    products, page, pages = get_services().catalog.list_products(
        keyword=request.args.get('keyword'),
        category=request.args.get('category') or None,
        page=request.args.get('pageNumber', 1, type=int),
    )
    return jsonify({
        'products': [product_payload(p, with_reviews=False)
                     for p in products],
        'page': page,
        'pages': pages,
    })


@bp.route('/top', methods=['GET'])
def top_products():
    products = get_services().catalog.top_products()
    return jsonify([product_payload(p, with_reviews=False)
                    for p in products])


@bp.route('/seller/<int:seller_id>', methods=['GET'])
def seller_products(seller_id):
    products = get_services().catalog.seller_products(seller_id)
    return jsonify([product_payload(p, with_reviews=False)
                    for p in products])


@bp.route('/<int:product_id>', methods=['GET'])
def product_detail(product_id):
    product = get_services().catalog.get_product(product_id)
    return jsonify(product_payload(product))


@bp.route('', methods=['POST'])
@login_required
@role_required('seller')
def create_product():
    product = get_services().catalog.create_product(
        identity(), request_data(), uploaded_files('images'))
    return jsonify(product_payload(product)), 201


@bp.route('/<int:product_id>', methods=['PUT'])
@login_required
@role_required('seller')
def update_product(product_id):
    product = get_services().catalog.update_product(
        identity(), product_id, request_data(), uploaded_files('images'))
    return jsonify(product_payload(product))


@bp.route('/<int:product_id>', methods=['DELETE'])
@login_required
@role_required('seller')
def delete_product(product_id):
    get_services().catalog.delete_product(identity(), product_id)
    return jsonify({'message': 'Product removed'})


@bp.route('/<int:product_id>/reviews', methods=['POST'])
@login_required
def create_review(product_id):
    data = request_data()
    get_services().catalog.add_review(
        identity(), product_id, data.get('rating'), data.get('comment'))
    return jsonify({'message': 'Review added'}), 201

from flask import Blueprint, jsonify
from flask_login import login_required

from marketplace.middleware import identity, role_required
from marketplace.serializers import user_profile
from marketplace.services import get_services
from marketplace.utils import request_data, uploaded_file
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('users', __name__)


@bp.route('', methods=['GET'])
@login_required
@role_required('user:manage')
def list_users():
    users = get_services().users.list_users(identity())
    return jsonify([user_profile(u) for u in users])


@bp.route('', methods=['POST'])
@login_required
@role_required('user:manage')
def create_user():
    user = get_services().users.create_user(
        identity(), request_data(), avatar=uploaded_file('avatar'))
    return jsonify(user_profile(user)), 201


@bp.route('/avatar', methods=['PUT'])
@login_required
def update_own_avatar():
    user = get_services().users.update_avatar(
        identity(), uploaded_file('avatar'))
    return jsonify(user_profile(user))


@bp.route('/<int:user_id>', methods=['GET'])
@login_required
@role_required('user:manage')
def get_user(user_id):
    user = get_services().users.get_user(identity(), user_id)
    return jsonify(user_profile(user))


@bp.route('/<int:user_id>', methods=['PUT'])
@login_required
@role_required('user:manage')
def update_user(user_id):
    user = get_services().users.update_user(
        identity(), user_id, request_data(), avatar=uploaded_file('avatar'))
    return jsonify(user_profile(user))


@bp.route('/<int:user_id>', methods=['DELETE'])
@login_required
@role_required('user:manage')
def delete_user(user_id):
    get_services().users.delete_user(identity(), user_id)
    return jsonify({'message': 'User removed'})


@bp.route('/<int:user_id>/avatar', methods=['POST'])
@login_required
@role_required('user:manage')
def set_user_avatar(user_id):
    user = get_services().users.set_avatar(
        identity(), user_id, uploaded_file('avatar'))
    return jsonify(user_profile(user))

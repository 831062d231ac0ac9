from flask import Blueprint, jsonify, url_for
from flask_login import login_required

from marketplace.middleware import identity
from marketplace.serializers import user_profile
from marketplace.services import get_services
from marketplace.utils import request_data
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__)


@bp.route('/register', methods=['POST'])
def register():
    data = request_data()
    user, token = get_services().identity.register(
        data.get('name'),
        data.get('email'),
        data.get('password'),
        role=data.get('role'),
    )
    return jsonify(user_profile(user, token=token)), 201


@bp.route('/login', methods=['POST'])
def login():
    data = request_data()
    user, token = get_services().identity.login(
        data.get('email'), data.get('password'))
    return jsonify(user_profile(user, token=token))


@bp.route('/profile', methods=['GET'])
@login_required
def get_profile():
    return jsonify(user_profile(identity()))


@bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    user, token = get_services().identity.update_profile(
        identity(), request_data())
    return jsonify(user_profile(user, token=token))


@bp.route('/forgotpassword', methods=['POST'])
def forgot_password():
    data = request_data()
    get_services().identity.request_password_reset(
        data.get('email'),
        lambda token: url_for(
            'auth.reset_password', token=token, _external=True),
    )
    return jsonify({'success': True, 'data': 'Email sent'})


@bp.route('/resetpassword/<token>', methods=['PUT'])
def reset_password(token):
    user, new_token = get_services().identity.reset_password(
        token, request_data().get('password'))
    return jsonify(user_profile(user, token=new_token))

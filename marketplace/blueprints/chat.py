from flask import Blueprint, jsonify
from flask_login import login_required

from marketplace.middleware import identity
from marketplace.serializers import chat_payload, message_payload
from marketplace.services import get_services
from marketplace.utils import request_data

bp = Blueprint('chat', __name__)


@bp.route('', methods=['POST'])
@login_required
def access_chat():
    chat, created = get_services().chats.get_or_create_chat(
        identity(), request_data().get('userId'))
    return jsonify(chat_payload(chat)), (201 if created else 200)


@bp.route('', methods=['GET'])
@login_required
def list_chats():
    chats = get_services().chats.list_chats(identity())
    return jsonify([chat_payload(c) for c in chats])


@bp.route('/message', methods=['POST'])
@login_required
def send_message():
    data = request_data()
    chat = get_services().chats.send_message(
        identity(), data.get('chatId'), data.get('content'))
    return jsonify(chat_payload(chat, with_messages=True))


@bp.route('/<int:chat_id>/messages', methods=['GET'])
@login_required
def list_messages(chat_id):
    messages = get_services().chats.list_messages(identity(), chat_id)
    return jsonify([message_payload(m) for m in messages])

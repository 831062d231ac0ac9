import logging
from datetime import datetime

from sqlalchemy import or_

from marketplace.errors import InvalidRequest, NotFound
from marketplace.models import Chat, ChatMessage, User
from marketplace.policy import authorize
from marketplace.utils import to_int

logger = logging.getLogger(__name__)


def _parse_user_id(value, message):
    if value in (None, ''):
        raise InvalidRequest(message)
    try:
        return to_int(value)
    except (TypeError, ValueError):
        raise InvalidRequest(message)


class ChatService:

    def __init__(self, storage):
        self.storage = storage

    def _find_chat(self, user_a_id, user_b_id):
        low, high = Chat.pair_key(user_a_id, user_b_id)
        return self.storage.find_one(
            Chat, user_low_id=low, user_high_id=high)

    def _get_accessible_chat(self, identity, chat_id):
        chat = self.storage.get_or_404(Chat, chat_id, 'Chat not found')
        authorize(identity, 'chat:access', chat,
                  message='Not authorized to access this chat')
        return chat

    def get_or_create_chat(self, identity, user_id):
        """Return ``(chat, created)`` for the pair {identity, user_id}."""
        other_id = _parse_user_id(
            user_id, 'UserId param not sent with request')
        if other_id == identity.id:
            raise InvalidRequest('Cannot start a chat with yourself')

        chat = self._find_chat(identity.id, other_id)
        if chat is not None:
            return chat, False

        if self.storage.get(User, other_id) is None:
            raise NotFound('User not found')

        low, high = Chat.pair_key(identity.id, other_id)
        chat = Chat(user_low_id=low, user_high_id=high)
        if self.storage.add_unique(chat):
            logger.info("Chat %s created for users %s and %s",
                        chat.id, low, high)
            return chat, True

        # Someone else created it between our lookup and insert.
        chat = self._find_chat(identity.id, other_id)
        if chat is None:
            raise NotFound('Chat not found')
        return chat, False

    def list_chats(self, identity):
        return self.storage.find(
            Chat,
            or_(Chat.user_low_id == identity.id,
                Chat.user_high_id == identity.id),
            order_by=[Chat.updated_at.desc(), Chat.id.desc()],
        )

    def send_message(self, identity, chat_id, content):
        if not content or not chat_id:
            raise InvalidRequest('Invalid data passed into request')
        chat = self._get_accessible_chat(identity, chat_id)

        message = ChatMessage(
            chat_id=chat.id,
            sender_id=identity.id,
            content=content,
        )
        chat.messages.append(message)
        self.storage.flush()
        chat.latest_message = message
        chat.updated_at = datetime.utcnow()
        self.storage.commit()
        return chat

    def list_messages(self, identity, chat_id):
        chat = self._get_accessible_chat(identity, chat_id)
        return chat.messages

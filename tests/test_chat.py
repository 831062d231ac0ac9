from marketplace.extensions import db
from marketplace.models import Chat
from marketplace.services.chat_service import ChatService


def _open_chat(client, user, other_id):
    return client.post('/api/chats', json={'userId': other_id},
                       headers=user.headers)


def test_chat_is_unique_per_pair(app, client, buyer, seller):
    created = _open_chat(client, buyer, seller.id)
    reopened = _open_chat(client, seller, buyer.id)

    assert created.status_code == 201
    assert reopened.status_code == 200
    assert created.get_json()['_id'] == reopened.get_json()['_id']
    participants = {p['_id'] for p in created.get_json()['participants']}
    assert participants == {buyer.id, seller.id}
    with app.app_context():
        assert db.session.query(Chat).count() == 1


def test_chat_requires_user_id(client, buyer):
    resp = client.post('/api/chats', json={}, headers=buyer.headers)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'UserId param not sent with request'}


def test_chat_with_self_rejected(client, buyer):
    assert _open_chat(client, buyer, buyer.id).status_code == 400


def test_chat_with_unknown_user(client, buyer):
    assert _open_chat(client, buyer, 9999).status_code == 404


def test_concurrent_create_falls_back_to_existing(app, client, buyer, seller,
                                                  monkeypatch):
    first = _open_chat(client, buyer, seller.id).get_json()

    # Simulate losing the race: the lookup misses once, the insert collides.
    real_find = ChatService._find_chat
    calls = []

    def flaky_find(self, a, b):
        calls.append((a, b))
        if len(calls) == 1:
            return None
        return real_find(self, a, b)

    monkeypatch.setattr(ChatService, '_find_chat', flaky_find)
    resp = _open_chat(client, seller, buyer.id)

    assert resp.status_code == 200
    assert resp.get_json()['_id'] == first['_id']
    assert len(calls) == 2
    with app.app_context():
        assert db.session.query(Chat).count() == 1


def test_send_and_list_messages(client, buyer, seller):
    chat_id = _open_chat(client, buyer, seller.id).get_json()['_id']

    resp = client.post('/api/chats/message', json={
        'chatId': chat_id, 'content': 'Is this still available?'},
        headers=buyer.headers)
    client.post('/api/chats/message', json={
        'chatId': chat_id, 'content': 'Yes!'}, headers=seller.headers)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body['latestMessage']['content'] == 'Is this still available?'
    assert body['messages'][0]['sender']['_id'] == buyer.id

    messages = client.get(f'/api/chats/{chat_id}/messages',
                          headers=seller.headers).get_json()
    assert [m['content'] for m in messages] == [
        'Is this still available?', 'Yes!']


def test_send_message_requires_content(client, buyer, seller):
    chat_id = _open_chat(client, buyer, seller.id).get_json()['_id']

    resp = client.post('/api/chats/message', json={'chatId': chat_id},
                       headers=buyer.headers)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid data passed into request'}


def test_outsider_cannot_read_or_write(client, buyer, seller, stranger):
    chat_id = _open_chat(client, buyer, seller.id).get_json()['_id']

    write = client.post('/api/chats/message', json={
        'chatId': chat_id, 'content': 'hi'}, headers=stranger.headers)
    read = client.get(f'/api/chats/{chat_id}/messages',
                      headers=stranger.headers)

    assert write.status_code == 403
    assert write.get_json() == {'error': 'Not authorized to access this chat'}
    assert read.status_code == 403


def test_list_chats_most_recent_first(client, buyer, seller, other_seller):
    first = _open_chat(client, buyer, seller.id).get_json()['_id']
    second = _open_chat(client, buyer, other_seller.id).get_json()['_id']
    client.post('/api/chats/message', json={
        'chatId': first, 'content': 'bump'}, headers=buyer.headers)

    chats = client.get('/api/chats', headers=buyer.headers).get_json()

    assert [c['_id'] for c in chats] == [first, second]
    assert chats[0]['latestMessage']['content'] == 'bump'
    only_seller = client.get('/api/chats', headers=seller.headers).get_json()
    assert [c['_id'] for c in only_seller] == [first]


def test_unknown_chat(client, buyer):
    resp = client.get('/api/chats/777/messages', headers=buyer.headers)

    assert resp.status_code == 404

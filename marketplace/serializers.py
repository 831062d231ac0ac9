"""JSON projections of the models.

Field names follow the public wire format (``_id``, camelCase).
"""


def _iso(dt):
    return dt.isoformat() if dt else None


def _money(value):
    return float(value) if value is not None else 0.0


def avatar_payload(user):
    if not user.avatar_public_id:
        return None
    return {'public_id': user.avatar_public_id, 'url': user.avatar_url}


def user_summary(user):
    """Public projection used when a user is embedded in another document."""
    if user is None:
        return None
    return {
        '_id': user.id,
        'name': user.name,
        'email': user.email,
        'avatar': avatar_payload(user),
    }


def user_profile(user, token=None):
    data = {
        '_id': user.id,
        'name': user.name,
        'email': user.email,
        'role': user.role.value,
        'avatar': avatar_payload(user),
        'bio': user.bio,
        'createdAt': _iso(user.created_at),
        'updatedAt': _iso(user.updated_at),
    }
    if token is not None:
        data['token'] = token
    return data


def review_payload(review):
    return {
        '_id': review.id,
        'user': review.user_id,
        'name': review.name,
        'rating': review.rating,
        'comment': review.comment,
        'createdAt': _iso(review.created_at),
    }


def product_payload(product, with_reviews=True):
    seller = product.seller
    data = {
        '_id': product.id,
        'name': product.name,
        'description': product.description,
        'price': _money(product.price),
        'category': product.category,
        'stock': product.stock,
        'seller': {
            '_id': seller.id,
            'name': seller.name,
            'avatar': avatar_payload(seller),
            'bio': seller.bio,
        } if seller else product.seller_id,
        'images': [
            {'public_id': img.public_id, 'url': img.url}
            for img in product.images
        ],
        'ratings': product.rating,
        'numOfReviews': product.num_reviews,
        'createdAt': _iso(product.created_at),
        'updatedAt': _iso(product.updated_at),
    }
    if with_reviews:
        data['reviews'] = [review_payload(r) for r in product.reviews]
    return data


def order_item_payload(item):
    return {
        '_id': item.id,
        'product': item.product_id,
        'name': item.name,
        'image': item.image,
        'price': _money(item.price),
        'quantity': item.quantity,
    }


def order_payload(order, resolve_user=False):
    if resolve_user and order.user is not None:
        user = {'_id': order.user.id, 'name': order.user.name,
                'email': order.user.email}
    else:
        user = order.user_id
    return {
        '_id': order.id,
        'user': user,
        'orderItems': [order_item_payload(i) for i in order.items],
        'shippingAddress': order.shipping_address,
        'paymentMethod': order.payment_method,
        'itemsPrice': _money(order.items_price),
        'taxPrice': _money(order.tax_price),
        'shippingPrice': _money(order.shipping_price),
        'totalPrice': _money(order.total_price),
        'isPaid': order.is_paid,
        'paidAt': _iso(order.paid_at),
        'paymentResult': order.payment_result,
        'isDelivered': order.is_delivered,
        'deliveredAt': _iso(order.delivered_at),
        'createdAt': _iso(order.created_at),
        'updatedAt': _iso(order.updated_at),
    }


def message_payload(message):
    return {
        '_id': message.id,
        'chat': message.chat_id,
        'sender': user_summary(message.sender),
        'content': message.content,
        'createdAt': _iso(message.created_at),
    }


def chat_payload(chat, with_messages=False):
    data = {
        '_id': chat.id,
        'participants': [user_summary(u) for u in chat.participants],
        'latestMessage': (
            message_payload(chat.latest_message)
            if chat.latest_message else None
        ),
        'createdAt': _iso(chat.created_at),
        'updatedAt': _iso(chat.updated_at),
    }
    if with_messages:
        data['messages'] = [message_payload(m) for m in chat.messages]
    return data

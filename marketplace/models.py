from marketplace.extensions import db
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime
from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlalchemy.orm import validates
import enum
import json


class UserRole(enum.Enum):
    BUYER = 'buyer'
    SELLER = 'seller'
    ADMIN = 'admin'


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(
        db.Enum(UserRole),
        nullable=False,
        default=UserRole.BUYER)
    bio = db.Column(db.String(500), nullable=True)
    # Asset store reference, e.g. "avatars/3f2a....png"
    avatar_public_id = db.Column(db.String(255), nullable=True)
    avatar_url = db.Column(db.String(500), nullable=True)
    # SHA-256 hex digest of the emailed token, never the token itself
    reset_password_token = db.Column(
        db.String(64),
        nullable=True,
        index=True)
    reset_password_expire = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def clear_reset_token(self):
        self.reset_password_token = None
        self.reset_password_expire = None

    def __repr__(self):
        return f'<User {self.email}>'


class Product(db.Model):
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    category = db.Column(db.String(100), nullable=True, index=True)
    stock = db.Column(db.Integer, nullable=False, default=0)
    # Derived from reviews, recomputed on every insert
    rating = db.Column(db.Float, nullable=False, default=0.0)
    num_reviews = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    seller = db.relationship('User', foreign_keys=[seller_id])
    images = db.relationship(
        'ProductImage',
        backref='product',
        order_by='ProductImage.position',
        cascade='all, delete-orphan')
    reviews = db.relationship(
        'Review',
        backref='product',
        order_by='Review.created_at',
        cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint('stock >= 0', name='ck_product_stock_non_negative'),
        CheckConstraint('price >= 0', name='ck_product_price_non_negative'),
    )

    def __repr__(self):
        return f'<Product {self.name}>'


class ProductImage(db.Model):
    __tablename__ = 'product_images'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    public_id = db.Column(db.String(255), nullable=False)
    url = db.Column(db.String(500), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f'<ProductImage {self.public_id}>'


class Review(db.Model):
    __tablename__ = 'reviews'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    # Reviewer name at the time of writing; kept after the account is gone
    name = db.Column(db.String(100), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    __table_args__ = (
        UniqueConstraint('product_id', 'user_id', name='uq_review_product_user'),
        CheckConstraint('rating BETWEEN 1 AND 5', name='ck_review_rating'),
    )

    def __repr__(self):
        return f'<Review product={self.product_id} user={self.user_id}>'


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    # {"address", "city", "postalCode", "country"}
    shipping_address = db.Column(db.JSON, nullable=False)
    payment_method = db.Column(db.String(50), nullable=False)
    items_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    tax_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    shipping_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    is_paid = db.Column(db.Boolean, default=False, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=True)
    # {"id", "status", "update_time", "email_address"} from the gateway
    payment_result = db.Column(db.JSON, nullable=True)

    is_delivered = db.Column(db.Boolean, default=False, nullable=False)
    delivered_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    user = db.relationship('User', foreign_keys=[user_id])
    items = db.relationship(
        'OrderItem',
        backref='order',
        order_by='OrderItem.id',
        cascade='all, delete-orphan')

    @validates('is_paid', 'is_delivered')
    def _validate_status_flag(self, key, value):
        # Paid/delivered never go back to false.
        if getattr(self, key) and not value:
            raise ValueError(f'{key} cannot be reset once set')
        return value

    def __repr__(self):
        return f'<Order {self.id}>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    # Snapshot taken at checkout
    name = db.Column(db.String(200), nullable=False)
    image = db.Column(db.String(500), nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    product = db.relationship('Product', foreign_keys=[product_id])

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_order_item_quantity'),
    )

    def __repr__(self):
        return f'<OrderItem order={self.order_id} product={self.product_id}>'


class Chat(db.Model):
    __tablename__ = 'chats'

    id = db.Column(db.Integer, primary_key=True)
    # Participant pair stored low/high so (a, b) and (b, a) share one row
    user_low_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    user_high_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    latest_message_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'chat_messages.id',
            ondelete='SET NULL',
            use_alter=True,
            name='fk_chats_latest_message_id'),
        nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    user_low = db.relationship('User', foreign_keys=[user_low_id])
    user_high = db.relationship('User', foreign_keys=[user_high_id])
    latest_message = db.relationship(
        'ChatMessage',
        foreign_keys=[latest_message_id],
        post_update=True)
    messages = db.relationship(
        'ChatMessage',
        backref='chat',
        foreign_keys='ChatMessage.chat_id',
        order_by='ChatMessage.id',
        cascade='all, delete-orphan')

    __table_args__ = (
        UniqueConstraint(
            'user_low_id',
            'user_high_id',
            name='uq_chat_participant_pair'),
        CheckConstraint(
            'user_low_id < user_high_id',
            name='ck_chat_pair_ordered'),
    )

    @staticmethod
    def pair_key(user_a_id, user_b_id):
        return min(user_a_id, user_b_id), max(user_a_id, user_b_id)

    @property
    def participant_ids(self):
        return (self.user_low_id, self.user_high_id)

    @property
    def participants(self):
        return [self.user_low, self.user_high]

    def has_participant(self, user_id):
        return user_id in self.participant_ids

    def __repr__(self):
        return f'<Chat {self.id} {self.user_low_id}-{self.user_high_id}>'


class ChatMessage(db.Model):
    __tablename__ = 'chat_messages'

    id = db.Column(db.Integer, primary_key=True)
    chat_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'chats.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    sender_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)

    sender = db.relationship('User', foreign_keys=[sender_id])

    def __repr__(self):
        return f'<ChatMessage {self.id} chat={self.chat_id}>'


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True)
    actor_role = db.Column(db.String(20), nullable=False)
    # e.g., ORDER_CREATE, PAYMENT_CAPTURE
    action = db.Column(db.String(100), nullable=False)
    # ORDER, PRODUCT, USER, etc.
    target_type = db.Column(db.String(50), nullable=True)
    target_id = db.Column(db.Integer, nullable=True)
    ip = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)
    # JSON format key field snapshot
    payload_json = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)

    def set_payload(self, data):
        self.payload_json = json.dumps(data, ensure_ascii=False, default=str)

    def get_payload(self):
        if self.payload_json:
            return json.loads(self.payload_json)
        return {}

    def __repr__(self):
        return f'<AuditLog {self.id} action={self.action}>'

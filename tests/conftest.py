from decimal import Decimal
from types import SimpleNamespace
import io

import pytest
from flask_jwt_extended import create_access_token

from marketplace import create_app
from marketplace.config import Config
from marketplace.errors import AssetStoreError, MailerError, PaymentGatewayError
from marketplace.extensions import db
from marketplace.models import Product, User, UserRole
from marketplace.services.asset_store import AssetStore
from marketplace.services.mailer import Mailer
from marketplace.services.payment_gateway import PaymentGateway


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SECRET_KEY = 'test-secret-key-for-the-marketplace-suite'
    JWT_SECRET_KEY = 'test-jwt-secret-key-for-the-marketplace-suite'
    LOG_FILE = None
    MAJOR_EVENTS_LOG = None
    PAYPAL_CLIENT_ID = 'test-client-id'
    CORS_ORIGINS = ['*']


class FakePaymentGateway(PaymentGateway):

    def __init__(self):
        self.created = []
        self.captured = []
        self.fail = False

    def create_order(self, payload):
        if self.fail:
            raise PaymentGatewayError('gateway down')
        self.created.append(payload)
        return {'id': f'PAYPAL-{len(self.created)}', 'status': 'CREATED'}

    def capture_order(self, intent_id):
        if self.fail:
            raise PaymentGatewayError('gateway down')
        self.captured.append(intent_id)
        return {
            'id': intent_id,
            'status': 'COMPLETED',
            'update_time': '2024-05-01T10:00:00Z',
            'payer': {'email_address': 'payer@example.com'},
        }


class FakeAssetStore(AssetStore):

    def __init__(self):
        self.uploaded = []
        self.deleted = []
        self.fail_upload = False
        self.fail_delete = False

    def upload(self, file_storage, folder):
        if self.fail_upload:
            raise AssetStoreError('storage down')
        public_id = f'{folder}/{len(self.uploaded) + 1}-{file_storage.filename}'
        self.uploaded.append(public_id)
        return {'public_id': public_id, 'url': f'/static/uploads/{public_id}'}

    def delete(self, public_id):
        if self.fail_delete:
            raise AssetStoreError('storage down')
        self.deleted.append(public_id)


class FakeMailer(Mailer):

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, subject, text):
        if self.fail:
            raise MailerError('smtp down')
        self.sent.append({'to': to, 'subject': subject, 'text': text})
        return 'mail-id'


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def assets():
    return FakeAssetStore()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def app_config():
    return TestingConfig


@pytest.fixture
def app(app_config, gateway, assets, mailer):
    app = create_app(
        app_config,
        payment_gateway=gateway,
        asset_store=assets,
        mailer=mailer,
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(name, email, role=UserRole.BUYER, password='secret123'):
        with app.app_context():
            user = User(name=name, email=email, role=role)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            token = create_access_token(identity=str(user.id))
            return SimpleNamespace(
                id=user.id,
                name=name,
                email=email,
                password=password,
                token=token,
                headers={'Authorization': f'Bearer {token}'},
            )
    return _make_user


@pytest.fixture
def buyer(make_user):
    return make_user('Bob Buyer', 'bob@example.com')


@pytest.fixture
def seller(make_user):
    return make_user('Sam Seller', 'sam@example.com', role=UserRole.SELLER)


@pytest.fixture
def other_seller(make_user):
    return make_user('Olga Seller', 'olga@example.com', role=UserRole.SELLER)


@pytest.fixture
def admin(make_user):
    return make_user('Ada Admin', 'ada@example.com', role=UserRole.ADMIN)


@pytest.fixture
def stranger(make_user):
    return make_user('Sid Stranger', 'sid@example.com')


@pytest.fixture
def make_product(app):
    def _make_product(seller, name='Widget', price='10.00', stock=5,
                      category='Gadgets'):
        with app.app_context():
            product = Product(
                seller_id=seller.id,
                name=name,
                price=Decimal(str(price)),
                stock=stock,
                category=category,
            )
            db.session.add(product)
            db.session.commit()
            return product.id
    return _make_product


@pytest.fixture
def product_stock(app):
    def _product_stock(product_id):
        with app.app_context():
            return db.session.get(Product, product_id).stock
    return _product_stock


@pytest.fixture
def image_file():
    def _image_file(name='photo.png'):
        return (io.BytesIO(b'\x89PNG fake image bytes'), name)
    return _image_file

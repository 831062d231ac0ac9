from flask import current_app

from marketplace.services.asset_store import LocalAssetStore
from marketplace.services.catalog_service import CatalogService
from marketplace.services.chat_service import ChatService
from marketplace.services.identity_service import IdentityService
from marketplace.services.mailer import ResendMailer
from marketplace.services.order_service import OrderService
from marketplace.services.payment_gateway import PayPalGateway
from marketplace.services.user_service import UserService

EXTENSION_KEY = 'marketplace'


class ServiceRegistry:
    """Components wired to their collaborators for one app instance."""

    def __init__(self, config, storage, payment_gateway=None,
                 asset_store=None, mailer=None):
        self.storage = storage
        self.payment_gateway = (
            payment_gateway or PayPalGateway.from_config(config))
        self.asset_store = asset_store or LocalAssetStore.from_config(config)
        self.mailer = mailer or ResendMailer.from_config(config)

        self.identity = IdentityService(
            storage,
            self.mailer,
            reset_expire_minutes=config['RESET_PASSWORD_EXPIRE_MINUTES'],
        )
        self.catalog = CatalogService(
            storage,
            self.asset_store,
            per_page=config['PRODUCTS_PER_PAGE'],
            top_limit=config['TOP_PRODUCTS_LIMIT'],
            max_images=config['MAX_PRODUCT_IMAGES'],
        )
        self.orders = OrderService(
            storage,
            self.payment_gateway,
            currency=config['PAYPAL_CURRENCY'],
            brand_name=config['PAYPAL_BRAND_NAME'],
        )
        self.chats = ChatService(storage)
        self.users = UserService(storage, self.asset_store)


def get_services() -> ServiceRegistry:
    return current_app.extensions[EXTENSION_KEY]

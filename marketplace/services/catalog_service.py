from decimal import Decimal, InvalidOperation
import logging

from marketplace.errors import (
    AssetStoreError,
    Conflict,
    GatewayError,
    InvalidRequest,
)
from marketplace.models import Product, ProductImage, Review
from marketplace.policy import authorize
from marketplace.services.audit_service import log_audit
from marketplace.utils import to_int

logger = logging.getLogger(__name__)

PRODUCT_IMAGE_FOLDER = 'products'


def _parse_price(value):
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidRequest('Price must be a number')
    if not price.is_finite() or price < 0:
        raise InvalidRequest('Price must be a non-negative number')
    return price.quantize(Decimal('0.01'))


def _parse_stock(value):
    try:
        stock = to_int(value)
    except (TypeError, ValueError):
        raise InvalidRequest('Stock must be an integer')
    if stock < 0:
        raise InvalidRequest('Stock cannot be negative')
    return stock


class CatalogService:

    def __init__(self, storage, asset_store, per_page=12, top_limit=3,
                 max_images=5):
        self.storage = storage
        self.asset_store = asset_store
        self.per_page = per_page
        self.top_limit = top_limit
        self.max_images = max_images

    # Images

    def _upload_images(self, files):
        if len(files) > self.max_images:
            raise InvalidRequest(
                f'At most {self.max_images} images per product')
        images = []
        try:
            for position, file_storage in enumerate(files):
                result = self.asset_store.upload(
                    file_storage, PRODUCT_IMAGE_FOLDER)
                images.append(ProductImage(
                    public_id=result['public_id'],
                    url=result['url'],
                    position=position,
                ))
        except AssetStoreError as exc:
            # Don't leave half an upload batch behind.
            self._delete_assets([img.public_id for img in images])
            raise GatewayError(f'Image upload failed: {exc}')
        return images

    def _delete_assets(self, public_ids):
        for public_id in public_ids:
            try:
                self.asset_store.delete(public_id)
            except AssetStoreError as exc:
                logger.warning("Could not delete asset %s: %s",
                               public_id, exc)

    # Queries

    def list_products(self, keyword=None, category=None, page=1):
        query = self.storage.query(Product)
        keyword = (keyword or '').strip()
        if keyword:
            query = query.filter(
                Product.name.icontains(keyword, autoescape=True))
        if category:
            query = query.filter(Product.category == category)
        query = query.order_by(Product.id.asc())

        result = self.storage.paginate(query, page=page,
                                       per_page=self.per_page)
        return result['items'], result['page'], result['pages']

    def get_product(self, product_id):
        return self.storage.get_or_404(
            Product, product_id, 'Product not found')

    def top_products(self):
        return self.storage.find(
            Product,
            order_by=[Product.rating.desc(), Product.id.asc()],
            limit=self.top_limit,
        )

    def seller_products(self, seller_id):
        return self.storage.find(
            Product,
            Product.seller_id == seller_id,
            order_by=Product.id.asc(),
        )

    # Mutations

    def create_product(self, seller, fields, files=None):
        authorize(seller, 'product:create')
        name = (fields.get('name') or '').strip()
        if not name:
            raise InvalidRequest('Product name is required')
        if fields.get('price') in (None, ''):
            raise InvalidRequest('Product price is required')

        product = Product(
            name=name,
            description=fields.get('description'),
            price=_parse_price(fields['price']),
            category=fields.get('category'),
            stock=_parse_stock(fields.get('stock') or 0),
            seller_id=seller.id,
        )
        product.images = self._upload_images(files or [])
        try:
            self.storage.save(product)
        except Exception:
            self.storage.rollback()
            self._delete_assets([img.public_id for img in product.images])
            raise

        log_audit(
            actor=seller,
            action='PRODUCT_CREATE',
            target_type='PRODUCT',
            target_id=product.id,
            payload={'name': product.name, 'stock': product.stock},
        )
        return product

    def update_product(self, identity, product_id, fields, files=None):
        product = self.get_product(product_id)
        authorize(identity, 'product:update', product)

        if fields.get('name'):
            product.name = fields['name'].strip()
        if fields.get('description') is not None:
            product.description = fields['description']
        if fields.get('price') not in (None, ''):
            product.price = _parse_price(fields['price'])
        if fields.get('category'):
            product.category = fields['category']
        if fields.get('stock') not in (None, ''):
            product.stock = _parse_stock(fields['stock'])

        if files:
            # Replace, not merge.
            new_images = self._upload_images(files)
            old_ids = [img.public_id for img in product.images]
            self._delete_assets(old_ids)
            product.images = new_images

        self.storage.commit()
        log_audit(
            actor=identity,
            action='PRODUCT_UPDATE',
            target_type='PRODUCT',
            target_id=product.id,
            payload={'images_replaced': bool(files)},
        )
        return product

    def delete_product(self, identity, product_id):
        product = self.get_product(product_id)
        authorize(identity, 'product:delete', product)

        self._delete_assets([img.public_id for img in product.images])
        self.storage.delete(product)
        self.storage.commit()

        log_audit(
            actor=identity,
            action='PRODUCT_DELETE',
            target_type='PRODUCT',
            target_id=product_id,
        )

    def add_review(self, identity, product_id, rating, comment=None):
        product = self.get_product(product_id)

        try:
            rating = to_int(rating)
        except (TypeError, ValueError):
            raise InvalidRequest('Rating must be between 1 and 5')
        if not (1 <= rating <= 5):
            raise InvalidRequest('Rating must be between 1 and 5')

        if any(r.user_id == identity.id for r in product.reviews):
            raise Conflict('Product already reviewed')

        product.reviews.append(Review(
            user_id=identity.id,
            name=identity.name,
            rating=rating,
            comment=comment,
        ))
        product.num_reviews = len(product.reviews)
        product.rating = (
            sum(r.rating for r in product.reviews) / product.num_reviews
        )
        if not self.storage.add_unique(product):
            raise Conflict('Product already reviewed')

        log_audit(
            actor=identity,
            action='REVIEW_CREATE',
            target_type='PRODUCT',
            target_id=product.id,
            payload={'rating': rating},
        )
        return product

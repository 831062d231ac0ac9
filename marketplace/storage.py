"""Persistence gateway.

Services never touch ``db.session`` directly; they receive a :class:`Storage`
so tests (or another backend) can hand them something else.
"""
from contextlib import contextmanager
import logging
import math

from sqlalchemy.exc import IntegrityError

from marketplace.errors import NotFound
from marketplace.models import Product

logger = logging.getLogger(__name__)


class Storage:

    def __init__(self, db):
        self.db = db

    @property
    def session(self):
        return self.db.session

    # Point lookups

    def get(self, model, obj_id):
        if obj_id is None:
            return None
        try:
            obj_id = int(obj_id)
        except (TypeError, ValueError):
            return None
        return self.session.get(model, obj_id)

    def get_or_404(self, model, obj_id, message=None):
        obj = self.get(model, obj_id)
        if obj is None:
            raise NotFound(message or f'{model.__name__} not found')
        return obj

    def find_one(self, model, **filters):
        return self.session.query(model).filter_by(**filters).first()

    # Queries

    def query(self, model):
        return self.session.query(model)

    def find(self, model, *criteria, order_by=None, limit=None):
        q = self.session.query(model)
        if criteria:
            q = q.filter(*criteria)
        if order_by is not None:
            q = q.order_by(*order_by) if isinstance(
                order_by, (list, tuple)) else q.order_by(order_by)
        if limit:
            q = q.limit(limit)
        return q.all()

    def paginate(self, query, page=1, per_page=20):
        page = max(1, page or 1)
        total = query.order_by(None).count()
        items = query.limit(per_page).offset(per_page * (page - 1)).all()
        return {
            'items': items,
            'page': page,
            'pages': math.ceil(total / per_page) if per_page else 0,
            'per_page': per_page,
            'total': total,
        }

    # Writes

    def add(self, obj):
        self.session.add(obj)
        return obj

    def delete(self, obj):
        self.session.delete(obj)

    def flush(self):
        self.session.flush()

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    def save(self, obj):
        self.session.add(obj)
        self.session.commit()
        return obj

    @contextmanager
    def transaction(self):
        """Commit on success, roll everything back on any exception."""
        try:
            yield self
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def add_unique(self, obj):
        """Insert ``obj``; return False instead of raising on a unique clash."""
        self.session.add(obj)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.info("Unique constraint hit inserting %r", obj)
            return False
        return True

    def decrement_stock(self, product_id, quantity):
        """Atomically take ``quantity`` units, only if that many are left.

        Returns True when the row was updated. Runs inside the caller's
        transaction; nothing is committed here.
        """
        updated = self.session.query(Product).filter(
            Product.id == product_id,
            Product.stock >= quantity
        ).update(
            {Product.stock: Product.stock - quantity},
            synchronize_session=False
        )
        return updated == 1

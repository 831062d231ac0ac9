from flask import Flask, jsonify
from marketplace.config import Config
from marketplace.errors import register_error_handlers
from marketplace.extensions import cors, db, jwt, login_manager, migrate
from marketplace.middleware import setup_auth_middleware
from marketplace.storage import Storage
import logging

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def configure_logging(app):
    handlers = [logging.StreamHandler()]
    if app.config.get('LOG_FILE'):
        handlers.append(logging.FileHandler(app.config['LOG_FILE']))
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT,
                        handlers=handlers)

    major_logger = logging.getLogger('major_events')
    if app.config.get('MAJOR_EVENTS_LOG') and not major_logger.handlers:
        handler = logging.FileHandler(app.config['MAJOR_EVENTS_LOG'])
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'))
        major_logger.addHandler(handler)
        major_logger.setLevel(logging.INFO)
        major_logger.propagate = False


def create_app(config_class=Config, storage=None, payment_gateway=None,
               asset_store=None, mailer=None):
    """Build the app; any collaborator left as None gets its real default."""
    app = Flask(
        __name__,
        static_folder=config_class.STATIC_FOLDER,
        static_url_path="/static",
    )
    app.config.from_object(config_class)
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, origins=app.config['CORS_ORIGINS'] or '*')

    from marketplace.services import EXTENSION_KEY, ServiceRegistry
    app.extensions[EXTENSION_KEY] = ServiceRegistry(
        app.config,
        storage or Storage(db),
        payment_gateway=payment_gateway,
        asset_store=asset_store,
        mailer=mailer,
    )

    # Register blueprints
    from marketplace.blueprints import auth, chat, orders, products, users

    app.register_blueprint(auth.bp, url_prefix='/api/auth')
    app.register_blueprint(products.bp, url_prefix='/api/products')
    app.register_blueprint(orders.bp, url_prefix='/api')
    app.register_blueprint(users.bp, url_prefix='/api/users')
    app.register_blueprint(chat.bp, url_prefix='/api/chats')

    setup_auth_middleware(app)
    register_error_handlers(app)

    @app.route('/', methods=['GET'])
    def index():
        return jsonify({'message': 'API is running...'})

    logger.info("Flask application initialized")
    return app

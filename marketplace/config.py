import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or (
        'dev-secret-key-change-in-production'
    )
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        days=int(os.environ.get('JWT_EXPIRES_DAYS', '30'))
    )
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or (
        'sqlite:///marketplace.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # PayPal REST credentials.
    PAYPAL_CLIENT_ID = os.environ.get('PAYPAL_CLIENT_ID', '')
    PAYPAL_CLIENT_SECRET = os.environ.get('PAYPAL_CLIENT_SECRET', '')
    # sandbox|live
    PAYPAL_MODE = os.environ.get('PAYPAL_MODE', 'sandbox').lower()
    PAYPAL_CURRENCY = os.environ.get('PAYPAL_CURRENCY', 'USD')
    PAYPAL_BRAND_NAME = os.environ.get('PAYPAL_BRAND_NAME', 'Marketplace')
    PAYPAL_TIMEOUT_SECONDS = 15

    # Served at /static; uploaded product images and avatars live under it.
    STATIC_FOLDER = os.environ.get('STATIC_FOLDER') or os.path.abspath(
        os.path.join(os.path.dirname(__file__), '..', 'static'))
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER') or os.path.join(
        STATIC_FOLDER, 'uploads')
    UPLOAD_URL_PREFIX = '/static/uploads'
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # Mail (Resend).
    RESEND_API_KEY = os.environ.get('RESEND_API_KEY', '')
    MAIL_FROM = os.environ.get(
        'MAIL_FROM', 'Marketplace <no-reply@marketplace.local>')

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get('CORS_ORIGINS', '*').split(',')
        if origin.strip()
    ]

    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')
    MAJOR_EVENTS_LOG = os.environ.get('MAJOR_EVENTS_LOG', 'major_events.log')

    # Catalog
    PRODUCTS_PER_PAGE = 12
    TOP_PRODUCTS_LIMIT = 3
    MAX_PRODUCT_IMAGES = 5

    # Password reset token lifetime (minutes)
    RESET_PASSWORD_EXPIRE_MINUTES = 10

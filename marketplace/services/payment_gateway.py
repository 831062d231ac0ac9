from datetime import datetime, timedelta
import logging

import requests

from marketplace.errors import PaymentGatewayError

logger = logging.getLogger(__name__)

PAYPAL_BASE_URLS = {
    'sandbox': 'https://api-m.sandbox.paypal.com',
    'live': 'https://api-m.paypal.com',
}


class PaymentGateway:
    """Two-step capture handshake: create an intent, then capture it."""

    def create_order(self, payload):
        raise NotImplementedError

    def capture_order(self, intent_id):
        raise NotImplementedError


class PayPalGateway(PaymentGateway):

    def __init__(self, client_id, client_secret, mode='sandbox',
                 timeout=15, session=None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = PAYPAL_BASE_URLS.get(mode, PAYPAL_BASE_URLS['sandbox'])
        self.timeout = timeout
        self.http = session or requests.Session()
        self._token_cache = {'access_token': None, 'expires_at': None}

    @classmethod
    def from_config(cls, config):
        return cls(
            config.get('PAYPAL_CLIENT_ID', ''),
            config.get('PAYPAL_CLIENT_SECRET', ''),
            mode=config.get('PAYPAL_MODE', 'sandbox'),
            timeout=config.get('PAYPAL_TIMEOUT_SECONDS', 15),
        )

    def _access_token(self):
        if not self.client_id or not self.client_secret:
            raise PaymentGatewayError('PayPal credentials are not configured')

        now = datetime.utcnow()
        if (
            self._token_cache['access_token']
            and self._token_cache['expires_at']
            and self._token_cache['expires_at'] > now + timedelta(seconds=30)
        ):
            return self._token_cache['access_token']

        try:
            response = self.http.post(
                f'{self.base_url}/v1/oauth2/token',
                data={'grant_type': 'client_credentials'},
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("PayPal auth error: %s", exc)
            raise PaymentGatewayError(
                'Failed to authenticate with PayPal') from exc

        self._token_cache['access_token'] = data.get('access_token')
        self._token_cache['expires_at'] = now + timedelta(
            seconds=data.get('expires_in', 3600))
        return self._token_cache['access_token']

    def _post(self, path, payload):
        headers = {
            'Authorization': f'Bearer {self._access_token()}',
            'Content-Type': 'application/json',
            'Prefer': 'return=representation',
        }
        try:
            response = self.http.post(
                f'{self.base_url}{path}',
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("PayPal request to %s failed: %s", path, exc)
            raise PaymentGatewayError(str(exc)) from exc

        if response.status_code >= 400:
            logger.error(
                "PayPal %s returned %s: %s",
                path, response.status_code, response.text[:500])
            raise PaymentGatewayError(
                f'PayPal returned HTTP {response.status_code}')
        try:
            return response.json()
        except ValueError as exc:
            raise PaymentGatewayError('PayPal returned invalid JSON') from exc

    def create_order(self, payload):
        return self._post('/v2/checkout/orders', payload)

    def capture_order(self, intent_id):
        return self._post(f'/v2/checkout/orders/{intent_id}/capture', {})

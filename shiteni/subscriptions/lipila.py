"""
Lipila payment gateway client (mobile money and card collections).
Calls the Lipila REST API and, in mock mode, answers locally without network access.
"""
import re
import time
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Dict, Any

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r'^260[0-9]{9}$')

MOBILE_MONEY_TIMEOUT = 45
DEFAULT_TIMEOUT = 30
MAX_RETRIES = 3
RETRY_DELAY = 2  # seconds, multiplied by the attempt number
RETRYABLE_STATUSES = (502, 503, 504)

SUCCESSFUL = 'Successful'
PENDING = 'Pending'
FAILED = 'Failed'
CANCELLED = 'Cancelled'


class LipilaError(Exception):
    """Raised when a Lipila request is invalid or the gateway rejects it"""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}

    @property
    def is_auth_error(self):
        return self.status_code == 401 or 'api key' in self.message.lower() or 'unauthorized' in self.message.lower()


def normalize_phone(phone_number: str) -> str:
    """Return the number as 260XXXXXXXXX or raise LipilaError"""
    digits = re.sub(r'\D', '', phone_number or '')
    if not digits:
        raise LipilaError('Phone number is required')
    if not digits.startswith('260'):
        digits = '260' + digits[1:] if digits.startswith('0') else '260' + digits
    if not PHONE_PATTERN.match(digits):
        raise LipilaError('Invalid phone number format. Must be a valid Zambian number (e.g., 260XXXXXXXXX)')
    return digits


def validate_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise LipilaError('Invalid payment amount. Amount must be a positive number')
    if value <= 0:
        raise LipilaError('Invalid payment amount. Amount must be a positive number')
    return value


class LipilaClient:
    """Thin wrapper over the Lipila transactions API"""

    def __init__(self, secret_key=None, base_url=None, currency=None, mock_mode=None, session=None):
        self.secret_key = secret_key if secret_key is not None else getattr(settings, 'LIPILA_SECRET_KEY', '')
        self.base_url = (base_url or getattr(settings, 'LIPILA_BASE_URL', 'https://lipila-prod.hobbiton.app')).rstrip('/')
        self.currency = currency or getattr(settings, 'LIPILA_CURRENCY', 'ZMW')
        self.mock_mode = getattr(settings, 'LIPILA_MOCK_MODE', False) if mock_mode is None else mock_mode
        self.session = session or requests.Session()

        if not self.secret_key and not self.mock_mode:
            logger.warning("LIPILA_SECRET_KEY is not configured - real payments will fail")

    def _headers(self):
        return {
            'Authorization': f'Bearer {self.secret_key}',
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }

    def _request(self, method, path, payload=None, params=None, timeout=DEFAULT_TIMEOUT, retries=1):
        url = f"{self.base_url}{path}"
        last_error = None
        for attempt in range(retries):
            if attempt:
                time.sleep(RETRY_DELAY * attempt)
            try:
                response = self.session.request(
                    method, url, json=payload, params=params, headers=self._headers(), timeout=timeout
                )
            except requests.Timeout:
                last_error = LipilaError('Request timeout - Please try again or check your network connection')
                logger.warning(f"Lipila {method} {path} timed out (attempt {attempt + 1}/{retries})")
                continue
            except requests.RequestException as e:
                raise LipilaError(f'Could not reach Lipila: {str(e)}')

            if response.status_code in RETRYABLE_STATUSES:
                last_error = LipilaError('Payment service temporarily unavailable. Please try again later.',
                                         status_code=response.status_code)
                logger.warning(f"Lipila {method} {path} returned {response.status_code} (attempt {attempt + 1}/{retries})")
                continue

            try:
                data = response.json()
            except ValueError:
                data = {}

            if response.status_code == 401:
                raise LipilaError('Unauthorized - Please check your Lipila API credentials',
                                  status_code=401, payload=data)
            if response.status_code == 403:
                raise LipilaError('Forbidden - API key lacks required permissions',
                                  status_code=403, payload=data)
            if response.status_code >= 400:
                message = data.get('message') if isinstance(data, dict) else None
                raise LipilaError(message or 'Invalid payment data', status_code=response.status_code, payload=data)
            return data

        raise last_error or LipilaError('Lipila request failed')

    def _mock_response(self, amount, external_id):
        transaction_id = f"MOCK-{int(time.time() * 1000)}"
        logger.info(f"Lipila mock mode: {external_id} -> {transaction_id}")
        return {
            'status': SUCCESSFUL,
            'message': 'Mock payment processed successfully',
            'transactionId': transaction_id,
            'externalId': external_id,
            'amount': float(amount),
            'currency': self.currency,
            'paymentType': 'mock',
        }

    def process_mobile_money_payment(self, phone_number, amount, external_id=None, full_name=None,
                                     email=None, narration=None, currency=None) -> Dict[str, Any]:
        amount = validate_amount(amount)
        phone = normalize_phone(phone_number)
        external_id = external_id or f"MM-{int(time.time() * 1000)}"
        if self.mock_mode:
            return self._mock_response(amount, external_id)

        payload = {
            'currency': currency or self.currency,
            'amount': float(amount),
            'accountNumber': phone,
            'phoneNumber': phone,
            'fullName': full_name or 'Customer',
            'email': email or '',
            'externalId': external_id,
            'narration': narration or 'Mobile money payment',
        }
        logger.info(f"Lipila mobile money collection {external_id} for {amount}")
        return self._request('POST', '/transactions/mobile-money', payload,
                             timeout=MOBILE_MONEY_TIMEOUT, retries=MAX_RETRIES)

    def process_card_payment(self, phone_number, amount, redirect_url, external_id=None, full_name=None,
                             email=None, narration=None, customer: Optional[Dict[str, Any]] = None,
                             currency=None) -> Dict[str, Any]:
        amount = validate_amount(amount)
        phone = normalize_phone(phone_number)
        if not redirect_url:
            raise LipilaError('Redirect URL is required for card payments')
        external_id = external_id or f"CARD-{int(time.time() * 1000)}"
        if self.mock_mode:
            return self._mock_response(amount, external_id)

        customer = customer or {}
        name_parts = (full_name or '').split(' ')
        payload = {
            'currency': currency or self.currency,
            'amount': float(amount),
            'phoneNumber': phone,
            'email': email or '',
            'customerFirstName': customer.get('first_name') or name_parts[0] or 'Customer',
            'customerLastName': customer.get('last_name') or ' '.join(name_parts[1:]) or 'User',
            'customerCity': customer.get('city') or 'Lusaka',
            'customerCountry': customer.get('country') or 'Zambia',
            'customerAddress': customer.get('address') or '',
            'customerZip': customer.get('zip') or 10101,
            'externalId': external_id,
            'narration': narration or 'Card payment',
            'clientRedirectUrl': redirect_url,
        }
        logger.info(f"Lipila card collection {external_id} for {amount}")
        return self._request('POST', '/transactions/card', payload, retries=MAX_RETRIES)

    def check_transaction_status(self, transaction_id) -> Dict[str, Any]:
        if self.mock_mode or str(transaction_id).startswith('MOCK-'):
            return {'status': SUCCESSFUL, 'transactionId': transaction_id, 'paymentType': 'mock'}
        return self._request('GET', '/transactions/status', params={'transactionId': transaction_id})

    def cancel_transaction(self, transaction_id) -> Dict[str, Any]:
        if self.mock_mode:
            return {'status': CANCELLED, 'transactionId': transaction_id}
        return self._request('POST', '/transactions/cancel', {'transactionId': transaction_id})

    def process_subscription_payment(self, subscription_id, amount, payment_type, phone_number,
                                     full_name=None, email=None, redirect_url=None, customer=None):
        """Charge a subscription; the external id links the gateway transaction back to it"""
        external_id = f"SUB-{subscription_id}-{int(time.time() * 1000)}"
        narration = f"Shiteni subscription {subscription_id}"
        if payment_type == 'card':
            return self.process_card_payment(phone_number, amount, redirect_url, external_id=external_id,
                                             full_name=full_name, email=email, narration=narration,
                                             customer=customer)
        return self.process_mobile_money_payment(phone_number, amount, external_id=external_id,
                                                 full_name=full_name, email=email, narration=narration)

    def verify_payment(self, transaction_id) -> bool:
        try:
            return self.check_transaction_status(transaction_id).get('status') == SUCCESSFUL
        except LipilaError as e:
            logger.error(f"Could not verify Lipila transaction {transaction_id}: {e.message}")
            return False


def get_lipila_client():
    return LipilaClient()

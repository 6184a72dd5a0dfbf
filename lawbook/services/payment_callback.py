"""
PayAnyWay payment notification handling.

The gateway calls the Pay URL without any authentication and only looks at
the response body: ``SUCCESS`` stops its retries, anything else (we send
``FAIL``) makes it try again later. Every path through ``handle`` therefore
ends in one of those two tokens.
"""

import hmac
import logging
from typing import Mapping

from lawbook.core.config import GatewaySettings
from lawbook.errors import BookingError, SignatureMismatch, ValidationError
from lawbook.services.payment_links import TRANSACTION_SEPARATOR, md5_signature
from lawbook.services.reservations import ReservationEngine

logger = logging.getLogger(__name__)

SUCCESS = 'SUCCESS'
FAIL = 'FAIL'


def parse_appointment_id(transaction_id: str | None) -> str:
    """Return the appointment id carried in a transaction id.

    ``"abc|1700000000000"`` and ``"abc"`` both yield ``"abc"``.
    """
    appointment_id = (transaction_id or '').split(TRANSACTION_SEPARATOR, 1)[0].strip()
    if not appointment_id:
        raise ValidationError(f'Invalid transaction id: {transaction_id!r}')
    return appointment_id


class PaymentCallbackHandler:
    def __init__(self, settings: GatewaySettings, engine: ReservationEngine):
        self.settings = settings
        self.engine = engine

    def expected_signature(self, params: Mapping[str, str]) -> str:
        return md5_signature(
            params.get('MNT_ID', ''),
            params.get('MNT_TRANSACTION_ID', ''),
            params.get('MNT_OPERATION_ID', ''),
            params.get('MNT_AMOUNT', ''),
            params.get('MNT_CURRENCY_CODE', ''),
            params.get('MNT_SUBSCRIBER_ID') or '',
            params.get('MNT_TEST_MODE', ''),
            self.settings.integrity_code,
        )

    def verify_signature(self, params: Mapping[str, str]) -> None:
        expected = self.expected_signature(params)
        received = (params.get('MNT_SIGNATURE') or '').strip().lower()
        if not hmac.compare_digest(expected.encode('utf-8'), received.encode('utf-8')):
            raise SignatureMismatch(
                f'Signature mismatch for transaction {params.get("MNT_TRANSACTION_ID")!r}'
            )

    def handle(self, params: Mapping[str, str]) -> str:
        try:
            return self._handle(params)
        except Exception:
            logger.exception('Unexpected error while processing payment callback')
            return FAIL

    def _handle(self, params: Mapping[str, str]) -> str:
        if 'MNT_TRANSACTION_ID' not in params:
            logger.info('Payment callback without MNT_TRANSACTION_ID; answering gateway check')
            return SUCCESS

        if params.get('MNT_ID') != self.settings.merchant_id:
            logger.warning('Payment callback for unknown merchant %r', params.get('MNT_ID'))
            return FAIL

        try:
            self.verify_signature(params)
        except SignatureMismatch as exc:
            if self.settings.strict_signature_verification:
                logger.warning('%s; rejecting', exc)
                return FAIL
            logger.warning('%s; continuing because strict verification is off', exc)

        transaction_id = params.get('MNT_TRANSACTION_ID')
        try:
            appointment_id = parse_appointment_id(transaction_id)
        except ValidationError:
            logger.warning('Payment callback with unusable transaction id %r', transaction_id)
            return FAIL

        try:
            self.engine.confirm(appointment_id, params.get('MNT_OPERATION_ID'))
        except BookingError as exc:
            logger.warning('Could not confirm appointment %s: %s', appointment_id, exc)
            return FAIL

        logger.info('Payment confirmed for appointment %s', appointment_id)
        return SUCCESS

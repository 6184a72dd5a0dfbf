"""Signed redirect links to the PayAnyWay hosted payment page."""

import hashlib
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable
from urllib.parse import urlencode

from lawbook.core.config import GatewaySettings
from lawbook.errors import ValidationError

TRANSACTION_SEPARATOR = '|'


def current_millis() -> int:
    return int(time.time() * 1000)


def format_amount(amount) -> str:
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ValidationError(f'Invalid payment amount: {amount!r}') from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError(f'Invalid payment amount: {amount!r}')
    return f'{value:.2f}'


def md5_signature(*parts: str) -> str:
    return hashlib.md5(''.join(parts).encode('utf-8')).hexdigest().lower()


def build_transaction_id(appointment_id: str, timestamp_ms: int) -> str:
    return f'{appointment_id}{TRANSACTION_SEPARATOR}{timestamp_ms}'


@dataclass(frozen=True)
class PaymentLink:
    url: str
    transaction_id: str
    signature: str
    amount: str


class PaymentLinkBuilder:
    def __init__(self, settings: GatewaySettings, clock: Callable[[], int] = current_millis):
        self.settings = settings
        self.clock = clock

    def sign(self, transaction_id: str, amount: str, subscriber_id: str) -> str:
        return md5_signature(
            self.settings.merchant_id,
            transaction_id,
            amount,
            self.settings.currency_code,
            subscriber_id,
            self.settings.test_mode,
            self.settings.integrity_code,
        )

    def build(
        self,
        appointment_id: str,
        client_email: str,
        description: str,
        amount=None,
    ) -> PaymentLink:
        if not appointment_id:
            raise ValidationError('Appointment id is required.')

        formatted_amount = format_amount(amount if amount is not None else self.settings.amount)
        transaction_id = build_transaction_id(appointment_id, self.clock())
        signature = self.sign(transaction_id, formatted_amount, client_email)

        return_query = urlencode({'appointmentId': appointment_id})
        query = urlencode({
            'MNT_ID': self.settings.merchant_id,
            'MNT_AMOUNT': formatted_amount,
            'MNT_TRANSACTION_ID': transaction_id,
            'MNT_CURRENCY_CODE': self.settings.currency_code,
            'MNT_TEST_MODE': self.settings.test_mode,
            'MNT_DESCRIPTION': description,
            'MNT_SUBSCRIBER_ID': client_email,
            'MNT_SUCCESS_URL': f'{self.settings.base_url}/payment/success?{return_query}',
            'MNT_FAIL_URL': f'{self.settings.base_url}/payment/fail?{return_query}',
            'MNT_SIGNATURE': signature,
        })

        return PaymentLink(
            url=f'{self.settings.gateway_url}?{query}',
            transaction_id=transaction_id,
            signature=signature,
            amount=formatted_amount,
        )

import hashlib
from unittest.mock import MagicMock

import pytest

from lawbook.errors import NotFoundError, ValidationError
from lawbook.models.appointment import STATUS_CANCELLED, STATUS_CONFIRMED
from lawbook.services.payment_callback import FAIL, SUCCESS, PaymentCallbackHandler, parse_appointment_id
from lawbook.services.reservations import ClientDetails, ReservationEngine
from lawbook.stores import AppointmentStore, SlotStore

CLIENT = ClientDetails(name='Ivan Petrov', email='ivan@example.com', phone='+79990000000')


def _signed_params(transaction_id: str, integrity_code: str = 'secret', **overrides) -> dict[str, str]:
    params = {
        'MNT_ID': '74730556',
        'MNT_TRANSACTION_ID': transaction_id,
        'MNT_OPERATION_ID': 'op-42',
        'MNT_AMOUNT': '1500.00',
        'MNT_CURRENCY_CODE': 'RUB',
        'MNT_SUBSCRIBER_ID': 'ivan@example.com',
        'MNT_TEST_MODE': '0',
    }
    params.update(overrides)
    params['MNT_SIGNATURE'] = hashlib.md5(
        (
            params['MNT_ID']
            + params['MNT_TRANSACTION_ID']
            + params['MNT_OPERATION_ID']
            + params['MNT_AMOUNT']
            + params['MNT_CURRENCY_CODE']
            + params['MNT_SUBSCRIBER_ID']
            + params['MNT_TEST_MODE']
            + integrity_code
        ).encode('utf-8')
    ).hexdigest()
    return params


@pytest.mark.parametrize(
    ('transaction_id', 'expected'),
    [('abc|1700000000000', 'abc'), ('abc', 'abc'), (' abc |1', 'abc'), ('abc|1|2', 'abc')],
)
def test_parse_appointment_id(transaction_id: str, expected: str) -> None:
    assert parse_appointment_id(transaction_id) == expected


@pytest.mark.parametrize('transaction_id', ['', '   ', '|1700000000000', None])
def test_parse_appointment_id_rejects_empty_ids(transaction_id) -> None:
    with pytest.raises(ValidationError):
        parse_appointment_id(transaction_id)


def test_check_without_transaction_id_succeeds_without_touching_bookings(gateway_settings) -> None:
    engine = MagicMock()
    handler = PaymentCallbackHandler(gateway_settings, engine)

    assert handler.handle({}) == SUCCESS
    assert handler.handle({'MNT_ID': '74730556'}) == SUCCESS
    engine.confirm.assert_not_called()


def test_unknown_merchant_fails(gateway_settings) -> None:
    engine = MagicMock()
    handler = PaymentCallbackHandler(gateway_settings, engine)

    assert handler.handle(_signed_params('appt-1|1', MNT_ID='11111111')) == FAIL
    engine.confirm.assert_not_called()


@pytest.mark.parametrize('transaction_id', ['', '|1700000000000'])
def test_unusable_transaction_id_fails(gateway_settings, transaction_id: str) -> None:
    engine = MagicMock()
    handler = PaymentCallbackHandler(gateway_settings, engine)

    assert handler.handle(_signed_params(transaction_id)) == FAIL
    engine.confirm.assert_not_called()


def test_bad_signature_is_rejected_in_strict_mode(gateway_settings) -> None:
    engine = MagicMock()
    strict = gateway_settings.model_copy(update={'strict_signature_verification': True})
    handler = PaymentCallbackHandler(strict, engine)

    params = _signed_params('appt-1|1700000000000', integrity_code='wrong')

    assert handler.handle(params) == FAIL
    engine.confirm.assert_not_called()


def test_bad_signature_is_tolerated_when_not_strict(gateway_settings) -> None:
    engine = MagicMock()
    handler = PaymentCallbackHandler(gateway_settings, engine)

    params = _signed_params('appt-1|1700000000000', integrity_code='wrong')

    assert handler.handle(params) == SUCCESS
    engine.confirm.assert_called_once_with('appt-1', 'op-42')


def test_valid_signature_passes_strict_mode(gateway_settings) -> None:
    engine = MagicMock()
    strict = gateway_settings.model_copy(update={'strict_signature_verification': True})
    handler = PaymentCallbackHandler(strict, engine)

    params = _signed_params('appt-1|1700000000000')
    params['MNT_SIGNATURE'] = params['MNT_SIGNATURE'].upper()

    assert handler.handle(params) == SUCCESS
    engine.confirm.assert_called_once_with('appt-1', 'op-42')


def test_missing_subscriber_id_signs_as_empty_string(gateway_settings) -> None:
    handler = PaymentCallbackHandler(gateway_settings, MagicMock())
    params = _signed_params('appt-1|1', MNT_SUBSCRIBER_ID='')
    del params['MNT_SUBSCRIBER_ID']

    handler.verify_signature(params)


def test_booking_errors_fail(gateway_settings) -> None:
    engine = MagicMock()
    engine.confirm.side_effect = NotFoundError('Appointment appt-1 not found.')
    handler = PaymentCallbackHandler(gateway_settings, engine)

    assert handler.handle(_signed_params('appt-1|1700000000000')) == FAIL


def test_unexpected_errors_fail(gateway_settings) -> None:
    engine = MagicMock()
    engine.confirm.side_effect = RuntimeError('database exploded')
    handler = PaymentCallbackHandler(gateway_settings, engine)

    assert handler.handle(_signed_params('appt-1|1700000000000')) == FAIL


def test_callback_confirms_booking_and_retries_stay_successful(booking_db, slot_factory, gateway_settings) -> None:
    slot = slot_factory()
    engine = ReservationEngine(SlotStore(booking_db), AppointmentStore(booking_db))
    appointment_id = engine.create(slot.id, CLIENT).id
    handler = PaymentCallbackHandler(gateway_settings, engine)
    params = _signed_params(f'{appointment_id}|1700000000000')

    assert handler.handle(params) == SUCCESS
    assert handler.handle(params) == SUCCESS

    appointment = engine.get(appointment_id)
    assert appointment.status == STATUS_CONFIRMED
    assert appointment.payment_id == 'op-42'
    assert engine.slots.get(slot.id).is_available is False


def test_callback_for_cancelled_booking_fails(booking_db, slot_factory, gateway_settings) -> None:
    slot = slot_factory()
    engine = ReservationEngine(SlotStore(booking_db), AppointmentStore(booking_db))
    appointment_id = engine.create(slot.id, CLIENT).id
    engine.cancel(appointment_id)
    handler = PaymentCallbackHandler(gateway_settings, engine)

    assert handler.handle(_signed_params(appointment_id)) == FAIL
    assert engine.get(appointment_id).status == STATUS_CANCELLED

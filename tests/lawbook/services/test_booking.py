from datetime import time

import pytest

from lawbook.auth.identity import DatabaseIdentityService
from lawbook.errors import ConflictError, UpstreamError, ValidationError
from lawbook.models.appointment import STATUS_PENDING, Appointment
from lawbook.models.time_slot import TimeSlot
from lawbook.models.user import User
from lawbook.services.accounts import AccountProvisioner
from lawbook.services.booking import BookingService, describe_consultation
from lawbook.services.payment_links import PaymentLinkBuilder
from lawbook.services.reservations import ClientDetails, ReservationEngine
from lawbook.stores import AppointmentStore, LawyerStore, SlotStore

CLIENT = ClientDetails(name='Ivan Petrov', email='ivan@example.com', phone='+79990000000')


class _BrokenLawyerStore(LawyerStore):
    def get(self, lawyer_id: str):
        raise UpstreamError('Storage call failed: get lawyer')


def _booking(db, settings, lawyers=None) -> BookingService:
    return BookingService(
        engine=ReservationEngine(SlotStore(db), AppointmentStore(db)),
        provisioner=AccountProvisioner(DatabaseIdentityService(db)),
        link_builder=PaymentLinkBuilder(settings),
        lawyers=lawyers or LawyerStore(db),
    )


def _slot_is_available(db, slot_id: str) -> bool:
    db.expire_all()
    return db.get(TimeSlot, slot_id).is_available


def test_describe_consultation_names_lawyer(lawyer) -> None:
    assert describe_consultation(lawyer) == 'Legal consultation: Jane Doe'
    assert describe_consultation(None) == 'Legal consultation'


def test_book_reserves_slot_and_opens_account(booking_db, slot_factory, gateway_settings) -> None:
    slot = slot_factory()

    result = _booking(booking_db, gateway_settings).book(slot.id, CLIENT)

    assert result.appointment.status == STATUS_PENDING
    assert result.payment_link.amount == '1500.00'
    assert result.account.created is True
    assert _slot_is_available(booking_db, slot.id) is False


def test_unpriceable_booking_releases_slot(booking_db, lawyer, slot_factory, gateway_settings) -> None:
    lawyer.consultation_price = None
    booking_db.commit()
    slot = slot_factory()
    settings = gateway_settings.model_copy(update={'amount': 'abc'})

    with pytest.raises(ValidationError):
        _booking(booking_db, settings).book(slot.id, CLIENT)

    assert booking_db.query(Appointment).count() == 0
    assert _slot_is_available(booking_db, slot.id) is True
    assert booking_db.query(User).filter(User.email == CLIENT.email).count() == 0


def test_storage_failure_while_issuing_link_releases_slot(booking_db, slot_factory, gateway_settings) -> None:
    slot = slot_factory()
    booking = _booking(booking_db, gateway_settings, lawyers=_BrokenLawyerStore(booking_db))

    with pytest.raises(UpstreamError):
        booking.book(slot.id, CLIENT)

    assert booking_db.query(Appointment).count() == 0
    assert _slot_is_available(booking_db, slot.id) is True


def test_lost_slot_creates_no_account(booking_db, slot_factory, gateway_settings) -> None:
    slot = slot_factory(is_available=False)

    with pytest.raises(ConflictError):
        _booking(booking_db, gateway_settings).book(slot.id, CLIENT)

    assert booking_db.query(User).filter(User.email == CLIENT.email).count() == 0


def test_retry_after_lost_slot_still_returns_password(booking_db, slot_factory, gateway_settings) -> None:
    taken = slot_factory(is_available=False)
    free = slot_factory(start_time=time(12, 0), end_time=time(13, 0))
    booking = _booking(booking_db, gateway_settings)
    with pytest.raises(ConflictError):
        booking.book(taken.id, CLIENT)

    result = booking.book(free.id, CLIENT)

    assert result.account.created is True
    assert len(result.account.temporary_password) == 8

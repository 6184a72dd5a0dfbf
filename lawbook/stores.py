"""
Row stores used by the reservation core.

Each call commits on its own, so a multi-step operation is a sequence of
independent writes. Callers that need all-or-nothing behaviour pair each
write with a compensating one (see ``lawbook.services.saga``).
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lawbook.errors import ConflictError, UpstreamError
from lawbook.models.appointment import ACTIVE_STATUSES, Appointment
from lawbook.models.lawyer import Lawyer
from lawbook.models.time_slot import TimeSlot

logger = logging.getLogger(__name__)


@contextmanager
def _storage_call(db: Session, action: str):
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error('Storage call failed: %s', action)
        raise UpstreamError(f'Storage call failed: {action}') from exc


class SlotStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, slot_id: str) -> TimeSlot | None:
        with _storage_call(self.db, 'get time slot'):
            return self.db.get(TimeSlot, slot_id)

    def conditional_set_available(self, slot_id: str, expected: bool, new_value: bool) -> bool:
        """Flip ``is_available`` only if it still equals ``expected``.

        Returns True when this call changed the row. Concurrent callers racing
        on the same slot see exactly one True.
        """
        with _storage_call(self.db, 'update time slot availability'):
            updated = self.db.query(TimeSlot).filter(
                TimeSlot.id == slot_id,
                TimeSlot.is_available == expected,
            ).update({TimeSlot.is_available: new_value}, synchronize_session=False)
            self.db.commit()
            self.db.expire_all()
            return updated == 1

    def set_available(self, slot_id: str, value: bool) -> bool:
        with _storage_call(self.db, 'set time slot availability'):
            updated = self.db.query(TimeSlot).filter(
                TimeSlot.id == slot_id,
            ).update({TimeSlot.is_available: value}, synchronize_session=False)
            self.db.commit()
            self.db.expire_all()
            return updated == 1

    def add(self, slot: TimeSlot) -> TimeSlot:
        with _storage_call(self.db, 'insert time slot'):
            self.db.add(slot)
            self.db.commit()
            self.db.refresh(slot)
            return slot

    def delete_if_available(self, slot_id: str) -> bool:
        with _storage_call(self.db, 'delete time slot'):
            try:
                deleted = self.db.query(TimeSlot).filter(
                    TimeSlot.id == slot_id,
                    TimeSlot.is_available.is_(True),
                ).delete(synchronize_session=False)
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise ConflictError('Slot is referenced by past appointments.') from exc
            self.db.expire_all()
            return deleted == 1

    def list_for_lawyer(self, lawyer_id: str, slot_date=None, is_available: bool | None = None) -> list[TimeSlot]:
        with _storage_call(self.db, 'list time slots'):
            query = self.db.query(TimeSlot).filter(TimeSlot.lawyer_id == lawyer_id)
            if slot_date is not None:
                query = query.filter(TimeSlot.date == slot_date)
            if is_available is not None:
                query = query.filter(TimeSlot.is_available == is_available)
            return query.order_by(TimeSlot.date.asc(), TimeSlot.start_time.asc()).all()


class AppointmentStore:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, appointment: Appointment) -> Appointment:
        with _storage_call(self.db, 'insert appointment'):
            self.db.add(appointment)
            self.db.commit()
            self.db.refresh(appointment)
            return appointment

    def get(self, appointment_id: str) -> Appointment | None:
        with _storage_call(self.db, 'get appointment'):
            return self.db.get(Appointment, appointment_id)

    def update_status(self, appointment_id: str, status: str, expected_status: str | None = None, **fields) -> bool:
        """Set ``status`` (and any extra columns); with ``expected_status`` only
        rows still in that status are touched."""
        values = {Appointment.status: status}
        for name, value in fields.items():
            values[getattr(Appointment, name)] = value

        with _storage_call(self.db, 'update appointment status'):
            query = self.db.query(Appointment).filter(Appointment.id == appointment_id)
            if expected_status is not None:
                query = query.filter(Appointment.status == expected_status)
            updated = query.update(values, synchronize_session=False)
            self.db.commit()
            self.db.expire_all()
            return updated == 1

    def set_transaction_id(self, appointment_id: str, transaction_id: str) -> bool:
        with _storage_call(self.db, 'record transaction id'):
            updated = self.db.query(Appointment).filter(
                Appointment.id == appointment_id,
            ).update({Appointment.transaction_id: transaction_id}, synchronize_session=False)
            self.db.commit()
            self.db.expire_all()
            return updated == 1

    def delete(self, appointment_id: str) -> None:
        with _storage_call(self.db, 'delete appointment'):
            self.db.query(Appointment).filter(
                Appointment.id == appointment_id,
            ).delete(synchronize_session=False)
            self.db.commit()
            self.db.expire_all()

    def find_active_for_slot(self, slot_id: str, exclude_id: str | None = None) -> list[Appointment]:
        with _storage_call(self.db, 'find active appointments'):
            query = self.db.query(Appointment).filter(
                Appointment.time_slot_id == slot_id,
                Appointment.status.in_(ACTIVE_STATUSES),
            )
            if exclude_id is not None:
                query = query.filter(Appointment.id != exclude_id)
            return query.all()


class LawyerStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, lawyer_id: str) -> Lawyer | None:
        with _storage_call(self.db, 'get lawyer'):
            return self.db.get(Lawyer, lawyer_id)

    def get_by_id_or_slug(self, id_or_slug: str) -> Lawyer | None:
        with _storage_call(self.db, 'find lawyer'):
            return self.db.query(Lawyer).filter(
                (Lawyer.id == id_or_slug) | (Lawyer.slug == id_or_slug)
            ).first()

    def get_by_user(self, user_id: str) -> Lawyer | None:
        with _storage_call(self.db, 'find lawyer by user'):
            return self.db.query(Lawyer).filter(Lawyer.user_id == user_id).first()

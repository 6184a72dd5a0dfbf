"""Lawyer roster: registration, pricing and per-lawyer statistics."""

import logging
import re
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lawbook.auth.identity import DatabaseIdentityService
from lawbook.errors import NotFoundError, UpstreamError, ValidationError
from lawbook.models.appointment import STATUS_CONFIRMED, Appointment
from lawbook.models.lawyer import Lawyer
from lawbook.models.time_slot import TimeSlot
from lawbook.models.user import ROLE_LAWYER, User
from lawbook.services.saga import Saga

logger = logging.getLogger(__name__)

BASE36_DIGITS = '0123456789abcdefghijklmnopqrstuvwxyz'


def to_base36(value: int) -> str:
    if value == 0:
        return '0'
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_DIGITS[remainder])
    return ''.join(reversed(digits))


def make_slug(full_name: str, timestamp_ms: int) -> str:
    base = re.sub(r'[^a-z0-9]+', '-', full_name.lower()).strip('-') or 'lawyer'
    return f'{base}-{to_base36(timestamp_ms)}'


@dataclass(frozen=True)
class LawyerStats:
    lawyer: Lawyer
    total_appointments: int
    completed_appointments: int


class LawyerRoster:
    def __init__(self, db: Session):
        self.db = db
        self.identity = DatabaseIdentityService(db)

    def register(
        self,
        email: str,
        password: str,
        full_name: str,
        specialization: str,
        phone: str | None = None,
    ) -> Lawyer:
        """Create a lawyer login and its public profile.

        The profile insert is undone by deleting the login, so a failed
        registration can be retried with the same email.
        """
        session = None

        def create_login():
            nonlocal session
            session = self.identity.sign_up(email, password, full_name=full_name, phone=phone, role=ROLE_LAWYER)
            return session

        def create_profile() -> Lawyer:
            try:
                lawyer = Lawyer(
                    user_id=session.user_id,
                    slug=make_slug(full_name, int(time.time() * 1000)),
                    specialization=specialization,
                )
                self.db.add(lawyer)
                self.db.commit()
                self.db.refresh(lawyer)
                return lawyer
            except SQLAlchemyError as exc:
                self.db.rollback()
                raise UpstreamError('Lawyer profile creation failed') from exc

        saga = Saga('register lawyer')
        saga.step('create login', create_login, lambda created: self._delete_user(created.user_id))
        saga.step('create profile', create_profile)
        _, lawyer = saga.run()

        logger.info('Registered lawyer %s (%s)', lawyer.id, lawyer.slug)
        return lawyer

    def update_price(self, lawyer_id: str, price) -> Lawyer:
        try:
            amount = Decimal(str(price))
        except InvalidOperation as exc:
            raise ValidationError('Price must be a number.') from exc
        if not amount.is_finite() or amount <= 0:
            raise ValidationError('Price must be greater than zero.')

        try:
            lawyer = self.db.get(Lawyer, lawyer_id)
            if lawyer is None:
                raise NotFoundError(f'Lawyer {lawyer_id} not found.')
            lawyer.consultation_price = amount.quantize(Decimal('0.01'))
            self.db.commit()
            self.db.refresh(lawyer)
            return lawyer
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise UpstreamError('Price update failed') from exc

    def list_lawyers(self) -> list[Lawyer]:
        try:
            return self.db.query(Lawyer).order_by(Lawyer.id.asc()).all()
        except SQLAlchemyError as exc:
            raise UpstreamError('Lawyer listing failed') from exc

    def stats(self) -> list[LawyerStats]:
        try:
            rows = self.db.query(
                TimeSlot.lawyer_id,
                func.count(Appointment.id),
                func.sum(case((Appointment.status == STATUS_CONFIRMED, 1), else_=0)),
            ).join(Appointment, Appointment.time_slot_id == TimeSlot.id).group_by(TimeSlot.lawyer_id).all()
            counts = {lawyer_id: (total, confirmed or 0) for lawyer_id, total, confirmed in rows}

            return [
                LawyerStats(
                    lawyer=lawyer,
                    total_appointments=counts.get(lawyer.id, (0, 0))[0],
                    completed_appointments=counts.get(lawyer.id, (0, 0))[1],
                )
                for lawyer in self.list_lawyers()
            ]
        except SQLAlchemyError as exc:
            raise UpstreamError('Lawyer statistics failed') from exc

    def _delete_user(self, user_id: str) -> None:
        try:
            self.db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

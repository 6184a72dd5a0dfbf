"""
Reservation engine.

Holds a slot for a pending appointment, releases it on cancellation and
finalises it when payment is confirmed. The only synchronisation primitive is
the conditional update on ``time_slots.is_available``: whoever flips it from
available to unavailable owns the slot, everybody else is rolled back.
"""

import logging
import uuid
from dataclasses import dataclass

from lawbook.errors import ConflictError, NotFoundError, ValidationError
from lawbook.models.appointment import (
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    Appointment,
)
from lawbook.services.saga import Saga
from lawbook.stores import AppointmentStore, SlotStore

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = 'slot no longer available'


@dataclass(frozen=True)
class ClientDetails:
    name: str
    email: str
    phone: str
    comment: str | None = None


class ReservationEngine:
    def __init__(self, slots: SlotStore, appointments: AppointmentStore):
        self.slots = slots
        self.appointments = appointments

    def get(self, appointment_id: str) -> Appointment:
        if not appointment_id:
            raise ValidationError('Appointment id is required.')

        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise NotFoundError(f'Appointment {appointment_id} not found.')
        return appointment

    def create(self, slot_id: str, client: ClientDetails) -> Appointment:
        """Create a pending appointment and take its slot off the market.

        The appointment row is written first, then the slot is flipped with
        a conditional update. Losing that update (or failing it) deletes the
        appointment again before the error is raised.
        """
        if not slot_id:
            raise ValidationError('Time slot id is required.')

        slot = self.slots.get(slot_id)
        if slot is None:
            raise NotFoundError(f'Time slot {slot_id} not found.')
        if not slot.is_available:
            raise ConflictError(SLOT_TAKEN_MESSAGE)

        appointment_id = str(uuid.uuid4())

        def insert_appointment() -> Appointment:
            return self.appointments.insert(
                Appointment(
                    id=appointment_id,
                    time_slot_id=slot_id,
                    client_name=client.name,
                    client_email=client.email,
                    client_phone=client.phone,
                    comment=client.comment or None,
                    status=STATUS_PENDING,
                )
            )

        def reserve_slot() -> None:
            if not self.slots.conditional_set_available(slot_id, True, False):
                raise ConflictError(SLOT_TAKEN_MESSAGE)

        saga = Saga('create appointment')
        saga.step('insert appointment', insert_appointment, lambda _: self.appointments.delete(appointment_id))
        saga.step('reserve slot', reserve_slot)
        appointment, _ = saga.run()

        logger.info('Appointment %s is holding slot %s', appointment_id, slot_id)
        return appointment

    def cancel(self, appointment_id: str) -> Appointment:
        appointment = self.get(appointment_id)
        slot_id = appointment.time_slot_id
        previous_status = appointment.status

        if previous_status == STATUS_CANCELLED:
            self._release_orphaned_slot(appointment_id, slot_id)
            return self.get(appointment_id)

        def mark_cancelled() -> None:
            if not self.appointments.update_status(appointment_id, STATUS_CANCELLED, expected_status=previous_status):
                raise ConflictError(f'Appointment {appointment_id} changed while it was being cancelled.')

        def release_slot() -> None:
            if not self.slots.set_available(slot_id, True):
                logger.warning('Cancelled appointment %s points at missing slot %s', appointment_id, slot_id)

        saga = Saga('cancel appointment')
        saga.step(
            'mark cancelled',
            mark_cancelled,
            lambda _: self.appointments.update_status(appointment_id, previous_status),
        )
        saga.step('release slot', release_slot)
        saga.run()

        logger.info('Appointment %s cancelled, slot %s released', appointment_id, slot_id)
        return self.get(appointment_id)

    def confirm(self, appointment_id: str, payment_ref: str | None) -> Appointment:
        """Mark a paid appointment confirmed and make sure its slot stays held.

        Safe to repeat with the same notification. A cancelled appointment
        cannot be confirmed.
        """
        appointment = self.get(appointment_id)
        if appointment.status == STATUS_CANCELLED:
            raise ConflictError(f'Appointment {appointment_id} is cancelled and cannot be confirmed.')

        slot_id = appointment.time_slot_id
        previous_status = appointment.status
        previous_payment_id = appointment.payment_id

        def mark_confirmed() -> None:
            updated = self.appointments.update_status(
                appointment_id,
                STATUS_CONFIRMED,
                expected_status=previous_status,
                payment_id=payment_ref or previous_payment_id,
            )
            if not updated:
                raise ConflictError(f'Appointment {appointment_id} changed while it was being confirmed.')

        def restore_previous(_) -> None:
            self.appointments.update_status(appointment_id, previous_status, payment_id=previous_payment_id)

        saga = Saga('confirm appointment')
        saga.step('mark confirmed', mark_confirmed, restore_previous)
        saga.step('hold slot', lambda: self.slots.set_available(slot_id, False))
        saga.run()

        logger.info('Appointment %s confirmed with payment %s', appointment_id, payment_ref)
        return self.get(appointment_id)

    def discard(self, appointment_id: str, slot_id: str) -> None:
        """Undo a ``create`` whose booking could not be completed."""
        self.slots.conditional_set_available(slot_id, False, True)
        self.appointments.delete(appointment_id)
        logger.info('Discarded appointment %s and released slot %s', appointment_id, slot_id)

    def record_transaction(self, appointment_id: str, transaction_id: str) -> None:
        if not self.appointments.set_transaction_id(appointment_id, transaction_id):
            raise NotFoundError(f'Appointment {appointment_id} not found.')

    def _release_orphaned_slot(self, appointment_id: str, slot_id: str) -> None:
        # An interrupted cancel can leave the slot unavailable; free it unless
        # somebody else has booked it since.
        if self.appointments.find_active_for_slot(slot_id, exclude_id=appointment_id):
            logger.info('Appointment %s already cancelled; slot %s belongs to another booking', appointment_id, slot_id)
            return

        slot = self.slots.get(slot_id)
        if slot is not None and not slot.is_available:
            self.slots.conditional_set_available(slot_id, False, True)
            logger.info('Released slot %s left unavailable by cancelled appointment %s', slot_id, appointment_id)

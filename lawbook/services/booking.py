"""Client booking workflow: reservation, payment link, account."""

import logging
from dataclasses import dataclass

from lawbook.errors import BookingError, ConflictError
from lawbook.models.appointment import STATUS_PENDING, Appointment
from lawbook.models.lawyer import Lawyer
from lawbook.services.accounts import AccountProvisioner, ProvisionResult
from lawbook.services.payment_links import PaymentLink, PaymentLinkBuilder
from lawbook.services.reservations import ClientDetails, ReservationEngine
from lawbook.services.saga import Saga
from lawbook.stores import LawyerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingResult:
    appointment: Appointment
    payment_link: PaymentLink
    account: ProvisionResult


def describe_consultation(lawyer: Lawyer | None) -> str:
    full_name = lawyer.user.full_name if lawyer is not None and lawyer.user is not None else ''
    return f'Legal consultation: {full_name}' if full_name else 'Legal consultation'


class BookingService:
    def __init__(
        self,
        engine: ReservationEngine,
        provisioner: AccountProvisioner,
        link_builder: PaymentLinkBuilder,
        lawyers: LawyerStore,
    ):
        self.engine = engine
        self.provisioner = provisioner
        self.link_builder = link_builder
        self.lawyers = lawyers

    def book(self, slot_id: str, client: ClientDetails) -> BookingResult:
        """Reserve the slot, issue its payment link, then open a client account.

        A failed link throws the reservation away again. The account is only
        created for a booking that went through.
        """
        appointment = None

        def reserve_slot() -> str:
            nonlocal appointment
            appointment = self.engine.create(slot_id, client)
            return appointment.id

        saga = Saga('book consultation')
        saga.step('reserve slot', reserve_slot, lambda appointment_id: self.engine.discard(appointment_id, slot_id))
        saga.step('issue payment link', lambda: self._issue_link(appointment))
        _, payment_link = saga.run()

        account = self.provisioner.ensure_account(client.email, client.name, client.phone)
        return BookingResult(appointment=appointment, payment_link=payment_link, account=account)

    def issue_payment_link(self, appointment_id: str) -> PaymentLink:
        appointment = self.engine.get(appointment_id)
        if appointment.status != STATUS_PENDING:
            raise ConflictError(f'Appointment {appointment_id} is {appointment.status}; nothing to pay.')
        return self._issue_link(appointment)

    def _issue_link(self, appointment: Appointment) -> PaymentLink:
        slot = self.engine.slots.get(appointment.time_slot_id)
        lawyer = self.lawyers.get(slot.lawyer_id) if slot is not None else None
        price = lawyer.consultation_price if lawyer is not None else None

        link = self.link_builder.build(
            appointment.id,
            appointment.client_email,
            describe_consultation(lawyer),
            amount=price,
        )

        try:
            self.engine.record_transaction(appointment.id, link.transaction_id)
        except BookingError:
            logger.warning('Could not record transaction %s on appointment %s', link.transaction_id, appointment.id)

        return link

from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lawbook.auth.dependencies import require_roles
from lawbook.errors import BookingError
from lawbook.models.appointment import STATUS_CANCELLED, STATUS_CONFIRMED, STATUS_PENDING, Appointment
from lawbook.models.time_slot import TimeSlot
from lawbook.models.user import ROLE_LAWYER, ROLE_SUPERADMIN, User
from lawbook.routes.common import (
    DATABASE_UNAVAILABLE_DETAIL,
    ensure_database_ready,
    get_booking_service,
    get_db,
    get_reservation_engine,
    to_http_exception,
)
from lawbook.services.booking import BookingService
from lawbook.services.reservations import ClientDetails, ReservationEngine
from lawbook.stores import LawyerStore

router = APIRouter(tags=['appointments'])

MAX_COMMENT_LENGTH = 1000
APPOINTMENT_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED)
SLOT_TAKEN_DETAIL = 'This time slot is no longer available. Please pick another time.'


class CreateAppointmentRequest(BaseModel):
    time_slot_id: str
    client_name: str
    client_email: str
    client_phone: str
    comment: str | None = None

    @field_validator('time_slot_id', 'client_name', 'client_phone')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('This field is required.')
        return normalized

    @field_validator('client_email')
    @classmethod
    def validate_client_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if '@' not in normalized:
            raise ValueError('A valid email is required.')
        return normalized

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_COMMENT_LENGTH:
            raise ValueError(f'Comment must be {MAX_COMMENT_LENGTH} characters or fewer.')

        return normalized


class AppointmentResponse(BaseModel):
    id: str
    time_slot_id: str
    client_name: str
    client_email: str
    client_phone: str
    comment: str | None = None
    status: str
    transaction_id: str | None = None
    payment_id: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class AppointmentDetailResponse(AppointmentResponse):
    lawyer_id: str | None = None
    slot_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None


class PaymentLinkResponse(BaseModel):
    payment_url: str
    transaction_id: str
    amount: str


class BookingResponse(BaseModel):
    appointment: AppointmentResponse
    payment_url: str
    transaction_id: str
    account_created: bool
    temporary_password: str | None = None


def serialize_appointment_detail(appointment: Appointment, slot: TimeSlot | None) -> AppointmentDetailResponse:
    return AppointmentDetailResponse(
        **AppointmentResponse.model_validate(appointment).model_dump(),
        lawyer_id=slot.lawyer_id if slot else None,
        slot_date=slot.date if slot else None,
        start_time=slot.start_time if slot else None,
        end_time=slot.end_time if slot else None,
    )


def staff_lawyer_scope(db: Session, current_user: User) -> str | None:
    """Lawyer id a staff member is limited to, or None for superadmins."""
    if current_user.role == ROLE_SUPERADMIN:
        return None

    try:
        lawyer = LawyerStore(db).get_by_user(current_user.id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    if lawyer is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only lawyers with a profile can manage appointments.',
        )
    return lawyer.id


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(data: CreateAppointmentRequest, booking: BookingService = Depends(get_booking_service)):
    ensure_database_ready()

    client = ClientDetails(
        name=data.client_name,
        email=data.client_email,
        phone=data.client_phone,
        comment=data.comment,
    )
    try:
        result = booking.book(data.time_slot_id, client)
        return BookingResponse(
            appointment=AppointmentResponse.model_validate(result.appointment),
            payment_url=result.payment_link.url,
            transaction_id=result.payment_link.transaction_id,
            account_created=result.account.created,
            temporary_password=result.account.temporary_password,
        )
    except BookingError as exc:
        raise to_http_exception(exc, conflict_detail=SLOT_TAKEN_DETAIL) from exc


@router.get('', response_model=list[AppointmentDetailResponse])
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    slot_date: date | None = Query(default=None, alias='date'),
    lawyer_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_LAWYER, ROLE_SUPERADMIN)),
):
    if status_filter is not None and status_filter not in APPOINTMENT_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid appointment status.',
        )

    scope = staff_lawyer_scope(db, current_user)
    if scope is not None:
        lawyer_id = scope

    ensure_database_ready()

    try:
        query = db.query(Appointment, TimeSlot).outerjoin(TimeSlot, Appointment.time_slot_id == TimeSlot.id)
        if status_filter is not None:
            query = query.filter(Appointment.status == status_filter)
        if slot_date is not None:
            query = query.filter(TimeSlot.date == slot_date)
        if lawyer_id is not None:
            query = query.filter(TimeSlot.lawyer_id == lawyer_id)

        rows = query.order_by(Appointment.created_at.desc()).all()
        return [serialize_appointment_detail(appointment, slot) for appointment, slot in rows]
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/{appointment_id}', response_model=AppointmentDetailResponse)
def get_appointment(appointment_id: str, engine: ReservationEngine = Depends(get_reservation_engine)):
    ensure_database_ready()

    try:
        appointment = engine.get(appointment_id)
        return serialize_appointment_detail(appointment, engine.slots.get(appointment.time_slot_id))
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: str,
    db: Session = Depends(get_db),
    engine: ReservationEngine = Depends(get_reservation_engine),
    current_user: User = Depends(require_roles(ROLE_LAWYER, ROLE_SUPERADMIN)),
):
    scope = staff_lawyer_scope(db, current_user)
    ensure_database_ready()

    try:
        if scope is not None:
            appointment = engine.get(appointment_id)
            slot = engine.slots.get(appointment.time_slot_id)
            if slot is None or slot.lawyer_id != scope:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail='Lawyers can only cancel their own appointments.',
                )

        return AppointmentResponse.model_validate(engine.cancel(appointment_id))
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/{appointment_id}/payment-link', response_model=PaymentLinkResponse)
def create_payment_link(appointment_id: str, booking: BookingService = Depends(get_booking_service)):
    ensure_database_ready()

    try:
        link = booking.issue_payment_link(appointment_id)
        return PaymentLinkResponse(payment_url=link.url, transaction_id=link.transaction_id, amount=link.amount)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

from datetime import date, time
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from lawbook.auth.dependencies import require_roles
from lawbook.errors import BookingError
from lawbook.models.lawyer import Lawyer
from lawbook.models.user import ROLE_LAWYER, ROLE_SUPERADMIN, User
from lawbook.routes.common import ensure_database_ready, get_db, get_slot_scheduler, to_http_exception
from lawbook.services.roster import LawyerRoster
from lawbook.services.slots import SlotScheduler
from lawbook.stores import LawyerStore

router = APIRouter(tags=['lawyers'])

MIN_PASSWORD_LENGTH = 8


class RegisterLawyerRequest(BaseModel):
    email: str
    password: str
    full_name: str
    specialization: str
    phone: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if '@' not in normalized:
            raise ValueError('A valid email is required.')
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')
        return value

    @field_validator('full_name', 'specialization')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('This field is required.')
        return normalized


class UpdatePriceRequest(BaseModel):
    consultation_price: Decimal


class LawyerResponse(BaseModel):
    id: str
    user_id: str
    slug: str | None = None
    full_name: str
    email: str
    specialization: str
    bio: str | None = None
    avatar_url: str | None = None
    consultation_price: Decimal | None = None


class LawyerStatsResponse(LawyerResponse):
    total_appointments: int
    completed_appointments: int


class TimeSlotResponse(BaseModel):
    id: str
    lawyer_id: str
    date: date
    start_time: time
    end_time: time
    is_available: bool

    class Config:
        from_attributes = True


def serialize_lawyer(lawyer: Lawyer) -> LawyerResponse:
    return LawyerResponse(
        id=lawyer.id,
        user_id=lawyer.user_id,
        slug=lawyer.slug,
        full_name=lawyer.user.full_name if lawyer.user else '',
        email=lawyer.user.email if lawyer.user else '',
        specialization=lawyer.specialization or '',
        bio=lawyer.bio,
        avatar_url=lawyer.avatar_url,
        consultation_price=lawyer.consultation_price,
    )


@router.post('', response_model=LawyerResponse, status_code=status.HTTP_201_CREATED)
def register_lawyer(data: RegisterLawyerRequest, db: Session = Depends(get_db)):
    try:
        lawyer = LawyerRoster(db).register(
            email=data.email,
            password=data.password,
            full_name=data.full_name,
            specialization=data.specialization,
            phone=data.phone,
        )
        return serialize_lawyer(lawyer)
    except BookingError as exc:
        raise to_http_exception(exc, conflict_detail='This email is already registered.') from exc


@router.get('', response_model=list[LawyerResponse])
def list_lawyers(db: Session = Depends(get_db)):
    try:
        return [serialize_lawyer(lawyer) for lawyer in LawyerRoster(db).list_lawyers()]
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get(
    '/stats',
    response_model=list[LawyerStatsResponse],
    dependencies=[Depends(require_roles(ROLE_SUPERADMIN))],
)
def list_lawyer_stats(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return [
            LawyerStatsResponse(
                **serialize_lawyer(entry.lawyer).model_dump(),
                total_appointments=entry.total_appointments,
                completed_appointments=entry.completed_appointments,
            )
            for entry in LawyerRoster(db).stats()
        ]
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{id_or_slug}', response_model=LawyerResponse)
def get_lawyer(id_or_slug: str, db: Session = Depends(get_db)):
    try:
        lawyer = LawyerStore(db).get_by_id_or_slug(id_or_slug)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    if lawyer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Lawyer not found.')
    return serialize_lawyer(lawyer)


@router.patch('/{lawyer_id}/price', response_model=LawyerResponse)
def update_lawyer_price(
    lawyer_id: str,
    data: UpdatePriceRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_LAWYER, ROLE_SUPERADMIN)),
):
    try:
        if current_user.role == ROLE_LAWYER:
            own_profile = LawyerStore(db).get_by_user(current_user.id)
            if own_profile is None or own_profile.id != lawyer_id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail='Lawyers can only change their own price.',
                )

        return serialize_lawyer(LawyerRoster(db).update_price(lawyer_id, data.consultation_price))
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{lawyer_id}/slots', response_model=list[TimeSlotResponse])
def list_lawyer_slots(
    lawyer_id: str,
    slot_date: date | None = Query(default=None, alias='date'),
    is_available: bool | None = Query(default=None),
    scheduler: SlotScheduler = Depends(get_slot_scheduler),
):
    ensure_database_ready()

    try:
        return scheduler.list_slots(lawyer_id, slot_date=slot_date, is_available=is_available)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{lawyer_id}/available-dates', response_model=list[date])
def list_available_dates(lawyer_id: str, scheduler: SlotScheduler = Depends(get_slot_scheduler)):
    ensure_database_ready()

    try:
        return scheduler.list_available_dates(lawyer_id, today=date.today())
    except BookingError as exc:
        raise to_http_exception(exc) from exc

from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lawbook.auth.identity import DatabaseIdentityService
from lawbook.core.config import GatewaySettings, get_gateway_settings
from lawbook.database import SessionLocal, ensure_appointment_schema, ensure_time_slot_schema
from lawbook.errors import BookingError, ConflictError, NotFoundError, UpstreamError, ValidationError
from lawbook.services.accounts import AccountProvisioner
from lawbook.services.booking import BookingService
from lawbook.services.payment_callback import PaymentCallbackHandler
from lawbook.services.payment_links import PaymentLinkBuilder
from lawbook.services.reservations import ReservationEngine
from lawbook.services.slots import SlotScheduler
from lawbook.stores import AppointmentStore, LawyerStore, SlotStore

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'


def ensure_database_ready() -> None:
    try:
        ensure_time_slot_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def to_http_exception(exc: BookingError, conflict_detail: str | None = None) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=conflict_detail or str(exc))
    if isinstance(exc, UpstreamError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=DATABASE_UNAVAILABLE_DETAIL)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail='Unexpected booking error.')


def get_gateway() -> GatewaySettings:
    return get_gateway_settings()


def get_reservation_engine(db: Session = Depends(get_db)) -> ReservationEngine:
    return ReservationEngine(SlotStore(db), AppointmentStore(db))


def get_slot_scheduler(db: Session = Depends(get_db)) -> SlotScheduler:
    return SlotScheduler(SlotStore(db))


def get_booking_service(
    db: Session = Depends(get_db),
    gateway: GatewaySettings = Depends(get_gateway),
) -> BookingService:
    return BookingService(
        engine=ReservationEngine(SlotStore(db), AppointmentStore(db)),
        provisioner=AccountProvisioner(DatabaseIdentityService(db)),
        link_builder=PaymentLinkBuilder(gateway),
        lawyers=LawyerStore(db),
    )


def get_callback_handler(
    engine: ReservationEngine = Depends(get_reservation_engine),
    gateway: GatewaySettings = Depends(get_gateway),
) -> PaymentCallbackHandler:
    return PaymentCallbackHandler(gateway, engine)

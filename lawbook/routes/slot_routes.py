from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, model_validator
from sqlalchemy.orm import Session

from lawbook.auth.dependencies import require_roles
from lawbook.errors import BookingError
from lawbook.models.lawyer import Lawyer
from lawbook.models.user import ROLE_LAWYER, User
from lawbook.routes.common import ensure_database_ready, get_db, get_slot_scheduler, to_http_exception
from lawbook.routes.lawyer_routes import TimeSlotResponse
from lawbook.services.slots import SlotScheduler
from lawbook.stores import LawyerStore

router = APIRouter(tags=['slots'])


class CreateTimeSlotRequest(BaseModel):
    date: date
    start_time: time
    end_time: time

    @model_validator(mode='after')
    def validate_range(self) -> 'CreateTimeSlotRequest':
        if self.start_time >= self.end_time:
            raise ValueError('End time must be after start time.')
        return self


def get_own_lawyer_profile(db: Session, current_user: User) -> Lawyer:
    try:
        lawyer = LawyerStore(db).get_by_user(current_user.id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    if lawyer is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only lawyers with a profile can manage time slots.',
        )
    return lawyer


@router.post('', response_model=TimeSlotResponse, status_code=status.HTTP_201_CREATED)
def create_time_slot(
    data: CreateTimeSlotRequest,
    db: Session = Depends(get_db),
    scheduler: SlotScheduler = Depends(get_slot_scheduler),
    current_user: User = Depends(require_roles(ROLE_LAWYER)),
):
    lawyer = get_own_lawyer_profile(db, current_user)
    ensure_database_ready()

    try:
        slot = scheduler.create_slot(lawyer.id, data.date, data.start_time, data.end_time)
        return TimeSlotResponse.model_validate(slot)
    except BookingError as exc:
        raise to_http_exception(exc, conflict_detail='This slot overlaps an existing slot.') from exc


@router.delete('/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_time_slot(
    slot_id: str,
    db: Session = Depends(get_db),
    scheduler: SlotScheduler = Depends(get_slot_scheduler),
    current_user: User = Depends(require_roles(ROLE_LAWYER)),
):
    lawyer = get_own_lawyer_profile(db, current_user)
    ensure_database_ready()

    try:
        scheduler.delete_slot(lawyer.id, slot_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

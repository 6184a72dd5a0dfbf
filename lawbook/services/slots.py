"""Consultant-side slot publishing."""

import logging
from datetime import date, time

from lawbook.errors import ConflictError, NotFoundError, ValidationError
from lawbook.models.time_slot import TimeSlot
from lawbook.stores import SlotStore

logger = logging.getLogger(__name__)


def ranges_overlap(start: time, end: time, other_start: time, other_end: time) -> bool:
    return start < other_end and end > other_start


class SlotScheduler:
    def __init__(self, slots: SlotStore):
        self.slots = slots

    def create_slot(self, lawyer_id: str, slot_date: date, start_time: time, end_time: time) -> TimeSlot:
        if not lawyer_id:
            raise ValidationError('Lawyer id is required.')
        if start_time >= end_time:
            raise ValidationError('Slot must end after it starts.')

        for existing in self.slots.list_for_lawyer(lawyer_id, slot_date=slot_date):
            if ranges_overlap(start_time, end_time, existing.start_time, existing.end_time):
                raise ConflictError('Slot overlaps an existing slot.')

        slot = self.slots.add(
            TimeSlot(
                lawyer_id=lawyer_id,
                date=slot_date,
                start_time=start_time,
                end_time=end_time,
                is_available=True,
            )
        )
        logger.info('Lawyer %s published slot %s on %s %s-%s', lawyer_id, slot.id, slot_date, start_time, end_time)
        return slot

    def delete_slot(self, lawyer_id: str, slot_id: str) -> None:
        slot = self.slots.get(slot_id)
        if slot is None or slot.lawyer_id != lawyer_id:
            raise NotFoundError(f'Time slot {slot_id} not found.')
        if not slot.is_available or not self.slots.delete_if_available(slot_id):
            raise ConflictError('Booked slots cannot be deleted.')

        logger.info('Lawyer %s deleted slot %s', lawyer_id, slot_id)

    def list_slots(self, lawyer_id: str, slot_date: date | None = None, is_available: bool | None = None) -> list[TimeSlot]:
        return self.slots.list_for_lawyer(lawyer_id, slot_date=slot_date, is_available=is_available)

    def list_available_dates(self, lawyer_id: str, today: date) -> list[date]:
        dates: list[date] = []
        for slot in self.slots.list_for_lawyer(lawyer_id, is_available=True):
            if slot.date >= today and slot.date not in dates:
                dates.append(slot.date)
        return dates

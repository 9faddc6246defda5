from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.core import config
from backend.core.clock import get_now
from backend.core.exceptions import SchedulingError
from backend.database import get_db
from backend.models.user import User
from backend.routes.common import (
    database_unavailable,
    ensure_database_ready,
    require_professional_owner,
    to_http_exception,
)
from backend.routes.schemas import (
    AvailabilityRangeResponse,
    AvailabilityStatsResponse,
    CreateRangeRequest,
    GenerateSlotsRequest,
    GenerateSlotsResponse,
    NextSlotResponse,
    SlotChangeResponse,
    SlotCheckResponse,
    SlotRequest,
)
from backend.services import availability_queries, range_store, slot_generator
from backend.services.slot_inventory import add_manual_slot, remove_manual_slot
from backend.services.time_utils import parse_slot_key, slot_key

router = APIRouter(tags=['availability'])


@router.get('/professionals/{professional_id}/ranges', response_model=list[AvailabilityRangeResponse])
def list_ranges(professional_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return range_store.list_ranges(db, professional_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post(
    '/professionals/{professional_id}/ranges',
    response_model=AvailabilityRangeResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_range(
    professional_id: int,
    data: CreateRangeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        require_professional_owner(db, professional_id, current_user)
        return range_store.add_range(
            db,
            professional_id,
            data.day_of_week,
            data.start_time,
            data.end_time,
            data.interval_minutes,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/professionals/{professional_id}/ranges/{range_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_range(
    professional_id: int,
    range_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        require_professional_owner(db, professional_id, current_user)
        range_store.remove_range(db, professional_id, range_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/professionals/{professional_id}/ranges/index/{index}', status_code=status.HTTP_204_NO_CONTENT)
def delete_range_at_index(
    professional_id: int,
    index: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        require_professional_owner(db, professional_id, current_user)
        range_store.remove_range_at(db, professional_id, index)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/professionals/{professional_id}/slots/generate', response_model=GenerateSlotsResponse)
def generate_slots(
    professional_id: int,
    data: GenerateSlotsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    window_days = config.SLOT_WINDOW_DAYS if data.window_days is None else data.window_days

    try:
        require_professional_owner(db, professional_id, current_user)
        added = slot_generator.regenerate_slots(
            db,
            professional_id,
            now,
            window_days=window_days,
            replace=data.replace,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return GenerateSlotsResponse(added_count=len(added), added_slots=[slot_key(slot_start) for slot_start in added])


@router.get('/professionals/{professional_id}/slots', response_model=list[str])
def list_slots(professional_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return [slot_key(slot_start) for slot_start in availability_queries.list_slots(db, professional_id)]
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post(
    '/professionals/{professional_id}/slots',
    response_model=SlotChangeResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_slot(
    professional_id: int,
    data: SlotRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        require_professional_owner(db, professional_id, current_user)
        slot_start = parse_slot_key(data.slot)
        added = add_manual_slot(db, professional_id, slot_start, now)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return SlotChangeResponse(slot=slot_key(slot_start), changed=added)


@router.delete('/professionals/{professional_id}/slots', response_model=SlotChangeResponse)
def remove_slot(
    professional_id: int,
    slot: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        require_professional_owner(db, professional_id, current_user)
        slot_start = parse_slot_key(slot)
        removed = remove_manual_slot(db, professional_id, slot_start)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return SlotChangeResponse(slot=slot_key(slot_start), changed=removed)


@router.get('/professionals/{professional_id}/slots/date/{slot_date}', response_model=list[str])
def list_slots_for_date(professional_id: int, slot_date: date, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        slots = availability_queries.slots_for_date(db, professional_id, slot_date)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [slot_key(slot_start) for slot_start in slots]


@router.get('/professionals/{professional_id}/slots/range', response_model=list[str])
def list_slots_for_range(
    professional_id: int,
    start: datetime = Query(...),
    end: datetime = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slots = availability_queries.slots_for_range(db, professional_id, start, end)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [slot_key(slot_start) for slot_start in slots]


@router.get('/professionals/{professional_id}/slots/check', response_model=SlotCheckResponse)
def check_slot(
    professional_id: int,
    slot: str = Query(...),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        slot_start = parse_slot_key(slot)
        available = availability_queries.is_slot_available(db, professional_id, slot_start, now)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return SlotCheckResponse(slot=slot_key(slot_start), available=available)


@router.get('/professionals/{professional_id}/slots/next', response_model=NextSlotResponse)
def get_next_slot(
    professional_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        next_slot = availability_queries.next_available_slot(db, professional_id, now)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return NextSlotResponse(next_available_slot=slot_key(next_slot) if next_slot else None)


@router.get('/professionals/{professional_id}/stats', response_model=AvailabilityStatsResponse)
def get_stats(
    professional_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        require_professional_owner(db, professional_id, current_user)
        stats = availability_queries.availability_stats(db, professional_id, now)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return AvailabilityStatsResponse(
        total_slots=stats.total_slots,
        future_slots=stats.future_slots,
        dates_with_availability=stats.dates_with_availability,
        average_slots_per_day=stats.average_slots_per_day,
        next_available_slot=slot_key(stats.next_available_slot) if stats.next_available_slot else None,
    )


@router.get('/professionals', response_model=list[int])
def list_professionals_with_availability(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        return availability_queries.professionals_with_availability(db, now)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

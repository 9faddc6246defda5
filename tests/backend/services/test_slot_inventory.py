from datetime import datetime

import pytest

from backend.core.exceptions import NotFoundError, SlotUnavailableError, ValidationError
from backend.models.availability import SLOT_SOURCE_RELEASED, AvailabilitySlot
from backend.services.slot_inventory import SlotInventory, add_manual_slot, remove_manual_slot

NOW = datetime(2024, 6, 3, 8, 0)
SLOT = datetime(2024, 6, 5, 9, 0)


def test_add_slot_twice_keeps_inventory_size(db, professional) -> None:
    inventory = SlotInventory(db, professional.id)

    assert inventory.add_slot(SLOT) is True
    assert inventory.add_slot(SLOT) is False
    db.commit()

    assert inventory.size() == 1
    assert inventory.contains(SLOT)


def test_remove_absent_slot_is_a_no_op(db, professional) -> None:
    inventory = SlotInventory(db, professional.id)

    assert inventory.remove_slot(SLOT) is False
    inventory.add_slot(SLOT)
    assert inventory.remove_slot(SLOT) is True
    assert inventory.remove_slot(SLOT) is False
    assert not inventory.contains(SLOT)


def test_inventories_are_scoped_per_professional(db, professional) -> None:
    SlotInventory(db, professional.id).add_slot(SLOT)

    assert not SlotInventory(db, professional.id + 1).contains(SLOT)


def test_reserve_consumes_slot_exactly_once(db, professional) -> None:
    inventory = SlotInventory(db, professional.id)
    inventory.add_slot(SLOT)

    inventory.reserve(SLOT, appointment_id=1)

    assert not inventory.contains(SLOT)
    with pytest.raises(SlotUnavailableError):
        inventory.reserve(SLOT, appointment_id=2)


def test_reserve_absent_slot_raises(db, professional) -> None:
    with pytest.raises(SlotUnavailableError):
        SlotInventory(db, professional.id).reserve(SLOT, appointment_id=1)


def test_remove_slot_leaves_booked_slot_alone(db, professional) -> None:
    inventory = SlotInventory(db, professional.id)
    inventory.add_slot(SLOT)
    inventory.reserve(SLOT, appointment_id=1)

    assert inventory.remove_slot(SLOT) is False
    assert inventory.known_starts() == {SLOT}


def test_clear_drops_only_free_slots(db, professional) -> None:
    inventory = SlotInventory(db, professional.id)
    booked = datetime(2024, 6, 5, 10, 0)
    inventory.add_slot(SLOT)
    inventory.add_slot(booked)
    inventory.reserve(booked, appointment_id=1)

    assert inventory.clear() == 1
    assert inventory.free_slots() == []
    assert inventory.known_starts() == {booked}


def test_release_returns_booked_slot(db, professional) -> None:
    inventory = SlotInventory(db, professional.id)
    inventory.add_slot(SLOT)
    inventory.reserve(SLOT, appointment_id=1)

    inventory.release(SLOT)
    db.commit()

    row = db.query(AvailabilitySlot).filter(AvailabilitySlot.start_time == SLOT).one()
    assert row.is_booked is False
    assert row.appointment_id is None


def test_release_recreates_missing_slot(db, professional) -> None:
    inventory = SlotInventory(db, professional.id)

    inventory.release(SLOT)
    db.commit()

    row = db.query(AvailabilitySlot).filter(AvailabilitySlot.start_time == SLOT).one()
    assert inventory.contains(SLOT)
    assert row.source == SLOT_SOURCE_RELEASED


def test_purge_expired_keeps_future_and_booked_slots(db, professional) -> None:
    inventory = SlotInventory(db, professional.id)
    past_free = datetime(2024, 6, 1, 9, 0)
    past_booked = datetime(2024, 6, 1, 10, 0)
    inventory.add_slot(past_free)
    inventory.add_slot(past_booked)
    inventory.add_slot(SLOT)
    inventory.reserve(past_booked, appointment_id=1)

    assert inventory.purge_expired(NOW) == 1
    assert inventory.known_starts() == {past_booked, SLOT}


def test_free_slots_are_ordered(db, professional) -> None:
    inventory = SlotInventory(db, professional.id)
    later = datetime(2024, 6, 6, 9, 0)
    inventory.add_slot(later)
    inventory.add_slot(SLOT)

    assert inventory.free_slots() == [SLOT, later]


def test_add_manual_slot_commits_and_is_idempotent(db, professional) -> None:
    assert add_manual_slot(db, professional.id, SLOT, NOW) is True
    assert add_manual_slot(db, professional.id, SLOT, NOW) is False

    assert SlotInventory(db, professional.id).size() == 1


def test_add_manual_slot_rejects_past_slot(db, professional) -> None:
    with pytest.raises(ValidationError):
        add_manual_slot(db, professional.id, datetime(2024, 6, 3, 7, 0), NOW)


def test_manual_slot_helpers_require_professional(db) -> None:
    with pytest.raises(NotFoundError):
        add_manual_slot(db, 404, SLOT, NOW)
    with pytest.raises(NotFoundError):
        remove_manual_slot(db, 404, SLOT)


def test_remove_manual_slot_retracts_free_slot(db, professional) -> None:
    add_manual_slot(db, professional.id, SLOT, NOW)

    assert remove_manual_slot(db, professional.id, SLOT) is True
    assert remove_manual_slot(db, professional.id, SLOT) is False

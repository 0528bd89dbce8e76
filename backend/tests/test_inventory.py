import logging
from datetime import timedelta

import pytest

from ticketing.core.clock import utcnow
from ticketing.core.errors import NoActiveLotError, NotFoundError, SoldOutError
from ticketing.services import inventory


def test_allocate_picks_earliest_eligible_lot(db, seed):
    tt = seed.ticket_type()
    seed.lot(tt, name="inactive", start_offset=timedelta(days=-5), is_active=False)
    seed.lot(tt, name="deleted", start_offset=timedelta(days=-4), deleted=True)
    seed.lot(tt, name="expired", start_offset=timedelta(days=-3), end_offset=timedelta(days=-2))
    seed.lot(tt, name="future", start_offset=timedelta(days=1), end_offset=timedelta(days=3))
    second = seed.lot(tt, name="second", start_offset=timedelta(hours=-1))
    first = seed.lot(tt, name="first", start_offset=timedelta(days=-2))

    lot = inventory.allocate(db, tt.id, utcnow())
    assert lot.id == first.id
    assert lot.id != second.id


def test_allocate_without_lot_in_window_fails(db, seed):
    tt = seed.ticket_type()
    seed.lot(tt, start_offset=timedelta(days=-10), end_offset=timedelta(days=-1))
    with pytest.raises(NoActiveLotError):
        inventory.allocate(db, tt.id, utcnow())


def test_allocate_respects_requested_instant(db, seed):
    tt = seed.ticket_type()
    lot = seed.lot(tt, start_offset=timedelta(days=2), end_offset=timedelta(days=4))
    assert inventory.allocate(db, tt.id, utcnow() + timedelta(days=3)).id == lot.id


def test_decrement_never_goes_below_zero(db, seed):
    tt = seed.ticket_type()
    lot = seed.lot(tt, sold=1)

    assert inventory.lot_counter.try_decrement(db, lot.id) is True
    assert inventory.lot_counter.try_decrement(db, lot.id) is False
    db.commit()
    assert inventory.lot_counter.sold(db, lot.id) == 0


def test_increment_is_capped_by_quantity(db, seed):
    tt = seed.ticket_type()
    lot = seed.lot(tt, quantity=2, sold=1)

    assert inventory.lot_counter.try_increment(db, lot.id) is True
    assert inventory.lot_counter.try_increment(db, lot.id) is False
    db.commit()
    assert inventory.lot_counter.sold(db, lot.id) == 2


def test_coupon_without_quantity_is_unlimited(db, seed):
    event = seed.event()
    coupon = seed.coupon(event, quantity=None, sold=1000)
    assert inventory.coupon_counter.try_increment(db, coupon.id) is True
    inventory.ensure_capacity("coupon", coupon.id, None, 1001, 50)


def test_ensure_capacity():
    inventory.ensure_capacity("lot", 1, 10, 8, 2)
    with pytest.raises(SoldOutError):
        inventory.ensure_capacity("lot", 1, 10, 9, 2)


def test_category_must_belong_to_ticket_type(db, seed):
    tt = seed.ticket_type()
    other = seed.ticket_type()
    category = seed.category(other)
    with pytest.raises(NotFoundError):
        inventory.get_category(db, category.id, tt.id)
    assert inventory.get_category(db, category.id, other.id).id == category.id


def test_coupon_must_belong_to_event(db, seed):
    event = seed.event()
    coupon = seed.coupon(seed.event())
    with pytest.raises(NotFoundError):
        inventory.get_coupon(db, coupon.id, event.id)


def test_lookup_misses_are_logged(db, seed, caplog):
    tt = seed.ticket_type()
    with caplog.at_level(logging.WARNING, logger="ticketing.services.inventory"):
        with pytest.raises(NotFoundError):
            inventory.get_category(db, 404, tt.id)
        with pytest.raises(NotFoundError):
            inventory.get_coupon(db, 405, tt.event_id)
    assert "Category not found | category=404" in caplog.text
    assert "Coupon not found | coupon=405" in caplog.text

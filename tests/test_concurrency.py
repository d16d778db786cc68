"""Concurrency tests: no double-booking under parallel requests."""

import itertools
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from booking_engine.schemas.booking_schema import BookingStatus, ErrorKind
from booking_engine.utils import overlaps
from tests.conftest import MONDAY, at, make_request

WORKERS = 16


def _assert_pairwise_disjoint(intervals):
    for (s1, e1), (s2, e2) in itertools.combinations(intervals, 2):
        assert not overlaps(s1, e1, s2, e2), f"{(s1, e1)} overlaps {(s2, e2)}"


def _live_intervals(lifecycle, staff_id):
    return [
        (b.reserved_start, b.reserved_end)
        for b in lifecycle.get_bookings_by_tenant("tenant-1")
        if b.staff_id == staff_id and b.status != BookingStatus.CANCELLED
    ]


class TestConcurrentCreate:
    def test_same_slot_only_one_wins(self, lifecycle, calculator, haircut, staff_a):
        barrier = threading.Barrier(WORKERS)

        def attempt(i):
            request = make_request(haircut, at(MONDAY, 10), customer_id=f"cust-{i}")
            barrier.wait()
            return lifecycle.create_booking(request, haircut, [staff_a])

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            results = list(pool.map(attempt, range(WORKERS)))

        winners = [r for r in results if r.success]
        assert len(winners) == 1
        assert all(
            r.error_kind in (ErrorKind.UNAVAILABLE, ErrorKind.CONFLICT)
            for r in results if not r.success
        )
        assert len(calculator.get_appointments("stf_a")) == 1

    def test_overlapping_times_stay_disjoint(self, lifecycle, calculator, haircut, staff_a):
        starts = [at(MONDAY, 10) + timedelta(minutes=15 * i) for i in range(WORKERS)]
        barrier = threading.Barrier(WORKERS)

        def attempt(i):
            request = make_request(haircut, starts[i], customer_id=f"cust-{i}", staff_id="stf_a")
            barrier.wait()
            return lifecycle.create_booking(request, haircut, [staff_a])

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            results = list(pool.map(attempt, range(WORKERS)))

        assert any(r.success for r in results)
        _assert_pairwise_disjoint(calculator.get_appointments("stf_a"))
        _assert_pairwise_disjoint(_live_intervals(lifecycle, "stf_a"))
        assert len(calculator.get_appointments("stf_a")) == sum(r.success for r in results)

    def test_different_staff_proceed_independently(self, lifecycle, haircut, staff_a, staff_b):
        def attempt(staff_id):
            request = make_request(haircut, at(MONDAY, 10), staff_id=staff_id)
            return lifecycle.create_booking(request, haircut, [staff_a, staff_b])

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(attempt, ["stf_a", "stf_b"]))

        assert all(r.success for r in results)


class TestConcurrentReschedule:
    def test_reschedules_into_same_slot(self, lifecycle, calculator, haircut, staff_a):
        bookings = []
        for i in range(6):
            request = make_request(haircut, at(MONDAY, 9, 15) + timedelta(hours=i), customer_id=f"cust-{i}")
            result = lifecycle.create_booking(request, haircut, [staff_a])
            assert result.success
            bookings.append(result.booking)

        target = at(MONDAY, 16)
        barrier = threading.Barrier(len(bookings))

        def attempt(booking):
            barrier.wait()
            return lifecycle.reschedule_booking(booking.id, target, haircut, [staff_a])

        with ThreadPoolExecutor(max_workers=len(bookings)) as pool:
            results = list(pool.map(attempt, bookings))

        assert sum(r.success for r in results) == 1
        index = calculator.get_appointments("stf_a")
        assert len(index) == len(bookings)
        _assert_pairwise_disjoint(index)
        assert sorted(index) == sorted(_live_intervals(lifecycle, "stf_a"))

    def test_create_and_cancel_interleaved(self, lifecycle, calculator, haircut, staff_a):
        first = lifecycle.create_booking(make_request(haircut, at(MONDAY, 10)), haircut, [staff_a])
        assert first.success

        def cancel():
            return lifecycle.cancel_booking(first.booking.id)

        def create():
            return lifecycle.create_booking(
                make_request(haircut, at(MONDAY, 10), customer_id="cust-2"), haircut, [staff_a],
            )

        with ThreadPoolExecutor(max_workers=2) as pool:
            cancelled = pool.submit(cancel)
            created = pool.submit(create)
            assert cancelled.result().success
            created.result()

        _assert_pairwise_disjoint(calculator.get_appointments("stf_a"))
        assert sorted(calculator.get_appointments("stf_a")) == sorted(_live_intervals(lifecycle, "stf_a"))

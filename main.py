"""
Booking engine command line.

Seeds an in-memory tenant (one service, two staff members) and either
walks the core booking flows or runs the reminder sweep.

Usage:
    Walkthrough:    python main.py demo
    Reminder loop:  python main.py sweep
    Single sweep:   python main.py sweep --once
"""

import argparse
import logging
import sys
import time
from datetime import datetime, timedelta

from booking_engine.config import settings
from booking_engine.engine import SchedulingEngine, build_engine
from booking_engine.logging_context import request_context
from booking_engine.schemas.booking_schema import BookingRequest, BookingResult, CustomerInfo

logger = logging.getLogger(__name__)

TENANT = "demo-salon"

GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


def _weekday_hours(start: str = "09:00", end: str = "17:00") -> list[dict]:
    return [
        {"day_of_week": day, "start_time": start, "end_time": end,
         "breaks": [{"start_time": "12:00", "end_time": "13:00", "name": "Lunch"}]}
        for day in range(5)
    ]


def seed(engine: SchedulingEngine) -> dict[str, str]:
    """Create the demo catalog and roster. Returns the ids created."""
    for name, level in (("cut", "advanced"), ("color", "expert")):
        engine.skills.create_skill(TENANT, {"name": name, "category": "hair", "level": level})
    haircut = engine.services.create_service({
        "tenant_id": TENANT,
        "name": "Haircut",
        "duration": 30,
        "price": "35.00",
        "buffer_before": 5,
        "buffer_after": 5,
        "category": "hair",
    })
    balayage = engine.services.create_service({
        "tenant_id": TENANT,
        "name": "Balayage",
        "duration": 120,
        "price": "140.00",
        "required_skills": ["color", "cut"],
        "category": "color",
    })
    alex = engine.staff.create_staff({
        "tenant_id": TENANT,
        "name": "Alex",
        "skills": ["cut", "color"],
        "specializations": ["hair"],
        "working_hours": _weekday_hours(),
    })
    sam = engine.staff.create_staff({
        "tenant_id": TENANT,
        "name": "Sam",
        "skills": ["color"],
        "working_hours": _weekday_hours("10:00", "18:00"),
    })
    return {"haircut": haircut.id, "balayage": balayage.id, "alex": alex.id, "sam": sam.id}


def _next_monday(now: datetime) -> datetime:
    days_ahead = (7 - now.weekday()) % 7 or 7
    return (now + timedelta(days=days_ahead)).replace(hour=0, minute=0, second=0, microsecond=0)


def _report(label: str, result: BookingResult) -> None:
    if result.success:
        booking = result.booking
        print(f"{GREEN}{BOLD}[ok]{RESET} {label}: {booking.id} "
              f"{booking.start_time:%a %H:%M} with {booking.staff_id} ({booking.status.value})")
        if result.cancellation_fee is not None:
            print(f"{DIM}  >> cancellation fee {result.cancellation_fee} {booking.currency}{RESET}")
        return
    print(f"{RED}{BOLD}[fail]{RESET} {label}: {result.error} ({result.error_kind.value})")
    for slot in result.alternatives:
        print(f"{YELLOW}  >> alternative {slot.start_time:%a %H:%M} with {slot.staff_id}{RESET}")


def run_demo(engine: SchedulingEngine) -> None:
    ids = seed(engine)
    monday = _next_monday(datetime.now())
    customer = CustomerInfo(name="Jo Bloggs", email="jo@example.com", phone="+44 7700 900123")

    with request_context():
        first = engine.book(BookingRequest(
            tenant_id=TENANT, customer_id="cust-1", service_id=ids["haircut"],
            preferred_time=monday.replace(hour=10), customer_info=customer,
        ))
    _report("Haircut Monday 10:00", first)
    if first.confirmation:
        print(f"{DIM}  >> confirmation code {first.confirmation.confirmation_code}{RESET}")

    with request_context():
        second = engine.book(BookingRequest(
            tenant_id=TENANT, customer_id="cust-2", service_id=ids["haircut"],
            staff_id=first.booking.staff_id, preferred_time=monday.replace(hour=10, minute=15),
        ))
    _report("Haircut Monday 10:15 with the same stylist", second)

    haircut = engine.services.get_service(ids["haircut"])
    roster = engine.staff.get_active_staff(TENANT)
    moved = engine.bookings.reschedule_booking(
        first.booking.id, monday.replace(hour=14), haircut, roster,
    )
    _report("Reschedule to 14:00", moved)

    engine.bookings.confirm_booking(first.booking.id)
    _report("Cancel", engine.bookings.cancel_booking(first.booking.id, reason="Change of plans"))

    for match in engine.matching.find_qualified_staff(TENANT, ids["balayage"]):
        print(f"{DIM}  >> {match.staff_name} scores {match.match_score} for Balayage, "
              f"missing {match.missing_skills or 'nothing'}{RESET}")


def run_sweep(engine: SchedulingEngine, once: bool) -> None:
    interval = engine.config.reminders.sweep_interval_seconds
    while True:
        with request_context(prefix="SWEEP"):
            sent = engine.bookings.send_reminders()
            logger.info("Sweep finished, %d reminder(s) sent", sent)
        if once:
            return
        time.sleep(interval)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=f"{settings.engine_name} command line")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("demo", help="walk through booking, reschedule and cancellation")
    sweep = commands.add_parser("sweep", help="run the reminder sweep")
    sweep.add_argument("--once", action="store_true", help="run a single sweep and exit")
    args = parser.parse_args(argv)

    engine = build_engine(settings)
    if args.command == "demo":
        run_demo(engine)
    else:
        seed(engine)
        try:
            run_sweep(engine, args.once)
        except KeyboardInterrupt:
            logger.info("Reminder sweep stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Tests for engine wiring and the command line entry point."""

from booking_engine.config import AppConfig
from booking_engine.engine import build_engine
from booking_engine.schemas.booking_schema import BookingRequest, ErrorKind
from tests.conftest import MONDAY, NOW, TENANT, FixedClock, at, weekday_hours


def _seeded_engine():
    engine = build_engine(clock=FixedClock(NOW))
    service = engine.services.create_service({
        "tenant_id": TENANT, "name": "Haircut", "duration": 30, "price": 35,
        "buffer_before": 5, "buffer_after": 5,
    })
    engine.staff.create_staff({"tenant_id": TENANT, "name": "Alex", "working_hours": weekday_hours()})
    return engine, service


class TestBuildEngine:
    def test_engines_do_not_share_state(self):
        first, service = _seeded_engine()
        second = build_engine()
        assert second.services.get_service(service.id) is None
        assert first.calculator is not second.calculator

    def test_book_resolves_service_and_roster(self):
        engine, service = _seeded_engine()
        result = engine.book(BookingRequest(
            tenant_id=TENANT, customer_id="cust-1", service_id=service.id,
            preferred_time=at(MONDAY, 10),
        ))
        assert result.success
        assert engine.staff.get_staff(result.booking.staff_id).name == "Alex"

    def test_book_unknown_service(self):
        engine, _ = _seeded_engine()
        result = engine.book(BookingRequest(
            tenant_id=TENANT, customer_id="cust-1", service_id="svc_missing",
            preferred_time=at(MONDAY, 10),
        ))
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_book_other_tenant_service(self):
        engine, service = _seeded_engine()
        result = engine.book(BookingRequest(
            tenant_id="other", customer_id="cust-1", service_id=service.id,
            preferred_time=at(MONDAY, 10),
        ))
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_services_priced_in_configured_currency(self):
        engine = build_engine(AppConfig(default_currency="USD"))
        service = engine.services.create_service({
            "tenant_id": TENANT, "name": "Trim", "duration": 15, "price": 10,
        })
        assert service.currency == "USD"

    def test_skill_catalog_wired(self):
        engine = build_engine()
        skill = engine.skills.create_skill(TENANT, {"name": "cut", "category": "hair", "level": "expert"})
        assert engine.skills.get_skills_by_tenant(TENANT) == [skill]

    def test_matching_shares_catalog(self):
        engine, service = _seeded_engine()
        [match] = engine.matching.find_qualified_staff(TENANT, service.id)
        assert match.match_score == 100


class TestCommandLine:
    def test_demo_runs(self, capsys):
        from main import main

        assert main(["demo"]) == 0
        out = capsys.readouterr().out
        assert "Haircut Monday 10:00" in out
        assert "Reschedule to 14:00" in out

    def test_single_sweep(self):
        from main import main

        assert main(["sweep", "--once"]) == 0

"""Tests for the staff directory and structural availability."""

from datetime import date

import pytest
from pydantic import ValidationError

from booking_engine.schemas.staff_schema import WorkingHours
from tests.conftest import MONDAY, TENANT, at, make_staff, weekday_hours

LUNCH = [{"start_time": "12:00", "end_time": "13:00", "name": "Lunch"}]


class TestStaffModel:
    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError):
            WorkingHours(day_of_week=0, start_time="17:00", end_time="09:00")

    def test_bad_time_format(self):
        with pytest.raises(ValidationError):
            WorkingHours(day_of_week=0, start_time="9am", end_time="17:00")

    def test_duplicate_weekday_rejected(self):
        hours = weekday_hours(days=range(1)) * 2
        with pytest.raises(ValidationError):
            make_staff(working_hours=hours)

    def test_skills_are_a_set(self):
        staff = make_staff(skills=["cut", "color", "cut", " ", "color "], specializations=["hair", "hair"])
        assert staff.skills == ["cut", "color"]
        assert staff.specializations == ["hair"]

    def test_working_minutes_excludes_breaks(self):
        day = WorkingHours(day_of_week=0, start_time="09:00", end_time="17:00", breaks=LUNCH)
        assert day.working_minutes() == 420


class TestIsAvailable:
    def test_available_inside_hours(self):
        check = make_staff().is_available(at(MONDAY, 10), 30)
        assert check.available
        assert check.reason is None

    def test_not_working_on_sunday(self):
        check = make_staff().is_available(at(date(2030, 1, 6), 10), 30)
        assert not check.available
        assert check.reason == "Not working on this day"

    def test_running_past_end_of_day(self):
        check = make_staff().is_available(at(MONDAY, 16, 45), 30)
        assert check.reason == "Outside working hours"

    def test_before_start_of_day(self):
        assert not make_staff().is_available(at(MONDAY, 8, 45), 30).available

    def test_break(self):
        staff = make_staff(working_hours=weekday_hours(breaks=LUNCH))
        check = staff.is_available(at(MONDAY, 11, 45), 30)
        assert check.reason == "Break time: Lunch"

    def test_ending_at_break_start_is_free(self):
        staff = make_staff(working_hours=weekday_hours(breaks=LUNCH))
        assert staff.is_available(at(MONDAY, 11, 30), 30).available

    def test_approved_time_off(self):
        staff = make_staff(time_off=[{
            "start_date": MONDAY, "end_date": MONDAY, "type": "vacation",
            "reason": "Holiday", "is_approved": True,
        }])
        check = staff.is_available(at(MONDAY, 10), 30)
        assert check.reason == "Time off: vacation (Holiday)"

    def test_unapproved_time_off_ignored(self):
        staff = make_staff(time_off=[{
            "start_date": MONDAY, "end_date": MONDAY, "type": "vacation",
        }])
        assert staff.is_available(at(MONDAY, 10), 30).available


class TestStaffDirectory:
    def _create(self, directory, **overrides):
        data = {"tenant_id": TENANT, "name": "Alex", "working_hours": weekday_hours()}
        data.update(overrides)
        return directory.create_staff(data)

    def test_create_and_get(self, staff_directory):
        staff = self._create(staff_directory)
        assert staff.id.startswith("stf_")
        assert staff_directory.get_staff(staff.id) == staff

    def test_update_keeps_identity(self, staff_directory):
        staff = self._create(staff_directory)
        updated = staff_directory.update_staff(staff.id, {"id": "stf_x", "name": "Alexis"})
        assert updated.id == staff.id
        assert updated.name == "Alexis"

    def test_update_unknown(self, staff_directory):
        assert staff_directory.update_staff("stf_missing", {"name": "X"}) is None

    def test_active_and_skill_queries(self, staff_directory):
        self._create(staff_directory, name="A", skills=["cut", "color"])
        self._create(staff_directory, name="B", skills=["cut"])
        self._create(staff_directory, name="C", skills=["cut", "color"], is_active=False)
        self._create(staff_directory, name="D", tenant_id="other", skills=["cut", "color"])

        assert len(staff_directory.get_staff_by_tenant(TENANT)) == 3
        assert len(staff_directory.get_active_staff(TENANT)) == 2
        names = [s.name for s in staff_directory.get_staff_with_skills(TENANT, ["cut", "color"])]
        assert names == ["A"]

    def test_time_off_needs_approval(self, staff_directory):
        staff = self._create(staff_directory)
        staff = staff_directory.add_time_off(staff.id, {
            "start_date": MONDAY, "end_date": MONDAY, "type": "sick",
        })
        assert staff.is_available(at(MONDAY, 10), 30).available

        period_id = staff.time_off[0].id
        staff = staff_directory.approve_time_off(staff.id, period_id, approved_by="manager")
        assert staff.time_off[0].approved_by == "manager"
        assert not staff.is_available(at(MONDAY, 10), 30).available

    def test_approve_unknown_period(self, staff_directory):
        staff = self._create(staff_directory)
        assert staff_directory.approve_time_off(staff.id, "off_missing", "manager") is None

    def test_update_working_hours(self, staff_directory):
        staff = self._create(staff_directory)
        staff = staff_directory.update_working_hours(staff.id, [
            WorkingHours(day_of_week=0, start_time="12:00", end_time="20:00"),
        ])
        assert staff.get_working_day(0).start_time == "12:00"
        assert staff.get_working_day(1) is None

    def test_delete(self, staff_directory):
        staff = self._create(staff_directory)
        assert staff_directory.delete_staff(staff.id)
        assert staff_directory.get_staff(staff.id) is None


class TestStaffReporting:
    def test_day_grid(self, staff_directory):
        staff = staff_directory.create_staff({
            "tenant_id": TENANT, "name": "Alex", "working_hours": weekday_hours(breaks=LUNCH),
        })
        [day] = staff_directory.get_availability(staff.id, MONDAY, MONDAY)
        assert len(day.time_slots) == 32
        assert day.time_slots[0].start_time == "09:00"
        lunch = [s for s in day.time_slots if s.start_time == "12:15"][0]
        assert lunch.reason == "break"

    def test_non_working_day_single_cell(self, staff_directory):
        staff = staff_directory.create_staff({
            "tenant_id": TENANT, "name": "Alex", "working_hours": weekday_hours(),
        })
        sunday = date(2030, 1, 6)
        [day] = staff_directory.get_availability(staff.id, sunday, sunday)
        assert len(day.time_slots) == 1
        assert day.time_slots[0].reason == "not_working"

    def test_grid_marks_bookings_with_calculator(self, staff_directory, calculator):
        staff = staff_directory.create_staff({
            "tenant_id": TENANT, "name": "Alex", "working_hours": weekday_hours(),
        })
        calculator.add_appointment(staff.id, at(MONDAY, 10), at(MONDAY, 10, 30))
        [day] = staff_directory.get_availability(staff.id, MONDAY, MONDAY, calculator)
        booked = [s.start_time for s in day.time_slots if s.reason == "booked"]
        assert booked == ["10:00", "10:15"]

    def test_unknown_staff_availability(self, staff_directory):
        assert staff_directory.get_availability("stf_missing", MONDAY, MONDAY) == []

    def test_utilization(self, staff_directory, calculator):
        staff = staff_directory.create_staff({
            "tenant_id": TENANT, "name": "Alex", "working_hours": weekday_hours(),
        })
        calculator.add_appointment(staff.id, at(MONDAY, 10), at(MONDAY, 12))
        report = staff_directory.calculate_utilization(staff.id, MONDAY, MONDAY, calculator)
        assert report.total_working_hours == 8
        assert report.booked_hours == 2
        assert report.utilization_percentage == 25.0

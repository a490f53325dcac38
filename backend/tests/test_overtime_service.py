"""
Overtime requests: monthly caps, approval credits and summaries.
"""

import pytest

from timebank.errors import AccumulationLimitExceeded, Forbidden, MonthlyLimitExceeded, ValidationError
from timebank.extensions import db
from timebank.models import HourBankRecord, OvertimeRequest
from timebank.services import employee_service, overtime_service, settings_service
from timebank.time_utils import local_now

from conftest import scope_of


def _submit(actor, employee, start="18:00", end="20:00", date="2026-10-19"):
    return overtime_service.submit(
        actor_scope=scope_of(actor),
        employee_id=employee.id,
        date=date,
        start_time=start,
        end_time=end,
        reason="Release night",
    )


def _approve(manager, request):
    return overtime_service.set_status(actor_scope=scope_of(manager), request_id=request.id, status="approved")


class TestSubmit:
    def test_hours_from_window(self, employee):
        request = _submit(employee, employee, "22:00", "01:30")

        assert request.hours == pytest.approx(3.5)
        assert request.status == "pending"
        assert request.created_by == employee.id

    def test_monthly_limit(self, employee):
        employee.overtime_limit = 3
        db.session.commit()
        _submit(employee, employee)

        with pytest.raises(MonthlyLimitExceeded) as exc:
            _submit(employee, employee, date="2026-10-20")

        assert exc.value.context == {"current": 2.0, "requested": 2.0, "limit": 3.0}
        assert OvertimeRequest.query.count() == 1

    def test_exception_raises_the_cap_for_one_month(self, manager, employee):
        employee.overtime_limit = 3
        db.session.commit()
        employee_service.upsert_overtime_exception(
            actor_scope=scope_of(manager), employee_id=employee.id, month=10, year=2026, additional_hours=2,
        )

        _submit(employee, employee)
        _submit(employee, employee, date="2026-10-20")
        with pytest.raises(MonthlyLimitExceeded):
            _submit(employee, employee, date="2026-10-21")

        # November falls back to the plain cap
        _submit(employee, employee, date="2026-11-02")
        with pytest.raises(MonthlyLimitExceeded):
            _submit(employee, employee, date="2026-11-03")

    def test_company_default_applies_without_personal_limit(self, admin, employee):
        settings_service.update_settings(actor_scope=scope_of(admin), changes={"default_overtime_limit": 1})

        with pytest.raises(MonthlyLimitExceeded) as exc:
            _submit(employee, employee)
        assert exc.value.context["limit"] == 1.0

    def test_rejected_requests_free_the_cap(self, manager, employee):
        employee.overtime_limit = 2
        db.session.commit()
        first = _submit(employee, employee)
        overtime_service.set_status(actor_scope=scope_of(manager), request_id=first.id, status="rejected")

        second = _submit(employee, employee, date="2026-10-20")
        assert second.status == "pending"

    def test_same_start_and_end_is_invalid(self, employee):
        with pytest.raises(ValidationError):
            _submit(employee, employee, "18:00", "18:00")

    def test_employee_cannot_submit_for_someone_else(self, employee, outsider):
        with pytest.raises(Forbidden):
            _submit(employee, outsider)


class TestApproval:
    def test_approval_creates_one_linked_credit(self, manager, employee):
        request = _submit(employee, employee)

        _approve(manager, request)
        _approve(manager, request)

        credits = HourBankRecord.query.filter_by(overtime_request_id=request.id).all()
        assert len(credits) == 1
        assert credits[0].status == "approved"
        assert credits[0].hours == pytest.approx(2.0)
        assert credits[0].approved_by == manager.id
        assert db.session.get(OvertimeRequest, request.id).status == "approved"

    def test_rejected_request_cannot_be_approved(self, manager, employee):
        request = _submit(employee, employee)
        overtime_service.set_status(actor_scope=scope_of(manager), request_id=request.id, status="rejected")

        with pytest.raises(ValidationError):
            _approve(manager, request)
        assert HourBankRecord.query.count() == 0

    def test_approval_respects_accumulation_limit(self, admin, manager, employee):
        settings_service.update_settings(actor_scope=scope_of(admin), changes={"default_accumulation_limit": 1})
        request = _submit(employee, employee)

        with pytest.raises(AccumulationLimitExceeded):
            _approve(manager, request)

        db.session.expire_all()
        assert db.session.get(OvertimeRequest, request.id).status == "pending"
        assert HourBankRecord.query.count() == 0

    def test_employee_cannot_approve(self, employee):
        request = _submit(employee, employee)
        with pytest.raises(Forbidden):
            overtime_service.set_status(actor_scope=scope_of(employee), request_id=request.id, status="approved")

    def test_manager_outside_department_cannot_approve(self, manager, outsider):
        request = _submit(outsider, outsider)
        with pytest.raises(Forbidden):
            _approve(manager, request)


class TestCurrentMonthSummary:
    def test_warning_threshold(self, employee):
        employee.overtime_limit = 10
        db.session.commit()
        today = local_now().date().strftime("%Y-%m-%d")
        _submit(employee, employee, "08:00", "16:00", date=today)

        summary = overtime_service.current_month_summary(actor_scope=scope_of(employee))["summary"]

        assert summary["total_hours"] == 8.0
        assert summary["remaining_hours"] == 2.0
        assert summary["percentage"] == 80.0
        assert summary["show_warning"] is True
        assert summary["show_alert"] is False

    def test_manager_sees_department(self, manager, employee, outsider):
        result = overtime_service.current_month_summary(actor_scope=scope_of(manager))

        ids = {s["employee"]["id"] for s in result["summaries"]}
        assert ids == {manager.id, employee.id}

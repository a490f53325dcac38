"""
Hour-bank ledger: balance fold, limits and status transitions.
"""

import pytest

from timebank.errors import (
    AccumulationLimitExceeded,
    Forbidden,
    InsufficientBalance,
    UsageLimitExceeded,
    ValidationError,
)
from timebank.extensions import db
from timebank.models import AuditLog, HourBankRecord
from timebank.services import hour_bank_service, settings_service

from conftest import scope_of


def _credit(actor, employee, hours, date="2026-10-19", approve_with=None):
    record = hour_bank_service.propose_credit(
        actor_scope=scope_of(actor),
        employee_id=employee.id,
        date=date,
        hours=hours,
        reason="Weekend deploy",
    )
    if approve_with is not None:
        hour_bank_service.set_status(actor_scope=scope_of(approve_with), record_id=record.id, status="approved")
    return record


def _set_limits(admin, **changes):
    settings_service.update_settings(actor_scope=scope_of(admin), changes=changes)


class TestBalance:
    def test_only_approved_records_count(self, manager, employee):
        _credit(employee, employee, 3, approve_with=manager)
        _credit(employee, employee, 2, approve_with=manager)
        pending = _credit(employee, employee, 5)
        rejected = _credit(employee, employee, 7)
        hour_bank_service.set_status(actor_scope=scope_of(manager), record_id=rejected.id, status="rejected")
        hour_bank_service.propose_debit(
            actor_scope=scope_of(manager), employee_id=employee.id, date="2026-10-20", hours=1.5, reason="Day off",
        )

        balance = hour_bank_service.get_balance(employee.id)

        assert balance.total_balance == pytest.approx(3.5)
        assert balance.pending_credit == pytest.approx(5)
        assert pending.status == "pending"

    def test_balance_summary_reports_percentages(self, admin, manager, employee):
        _set_limits(admin, default_accumulation_limit=10)
        _credit(employee, employee, 4, approve_with=manager)

        summary = hour_bank_service.balance_summary(employee)

        assert summary["total_balance"] == 4.0
        assert summary["accumulation_percentage"] == 40.0
        assert summary["usage_percentage"] is None


class TestAccumulationLimit:
    def test_credit_over_limit_is_rejected_without_mutation(self, admin, manager, employee):
        _set_limits(admin, default_accumulation_limit=5)
        _credit(employee, employee, 4, approve_with=manager)
        before = HourBankRecord.query.count()

        with pytest.raises(AccumulationLimitExceeded) as exc:
            _credit(employee, employee, 2)

        assert HourBankRecord.query.count() == before
        payload = exc.value.to_dict()
        assert payload["code"] == "AccumulationLimitExceeded"
        assert payload["current_balance"] == 4.0
        assert payload["limit"] == 5.0
        assert payload["requested"] == 2.0

    def test_approval_rechecks_the_limit(self, admin, manager, employee):
        _set_limits(admin, default_accumulation_limit=5)
        first = _credit(employee, employee, 3)
        second = _credit(employee, employee, 3)
        hour_bank_service.set_status(actor_scope=scope_of(manager), record_id=first.id, status="approved")

        with pytest.raises(AccumulationLimitExceeded):
            hour_bank_service.set_status(actor_scope=scope_of(manager), record_id=second.id, status="approved")

        assert db.session.get(HourBankRecord, second.id).status == "pending"

    def test_zero_limit_means_unlimited(self, admin, manager, employee):
        _set_limits(admin, default_accumulation_limit=0)
        _credit(employee, employee, 300, approve_with=manager)
        assert hour_bank_service.get_balance(employee.id).total_balance == 300


class TestDebits:
    def test_manual_debit_requires_balance(self, manager, employee):
        with pytest.raises(InsufficientBalance) as exc:
            hour_bank_service.propose_debit(
                actor_scope=scope_of(manager), employee_id=employee.id, date="2026-10-19", hours=1, reason="Leave",
            )
        assert exc.value.context["available"] == 0.0

    def test_manual_debit_is_created_approved(self, manager, employee):
        _credit(employee, employee, 4, approve_with=manager)

        debit = hour_bank_service.propose_debit(
            actor_scope=scope_of(manager), employee_id=employee.id, date="2026-10-19", hours=1, reason="Leave",
        )

        assert debit.status == "approved"
        assert debit.approved_by == manager.id
        assert hour_bank_service.get_balance(employee.id).total_balance == pytest.approx(3)

    def test_monthly_usage_limit(self, admin, manager, employee):
        _set_limits(admin, default_usage_limit=2)
        _credit(employee, employee, 10, approve_with=manager)
        hour_bank_service.propose_debit(
            actor_scope=scope_of(manager), employee_id=employee.id, date="2026-10-05", hours=1.5, reason="Leave",
        )

        with pytest.raises(UsageLimitExceeded) as exc:
            hour_bank_service.propose_debit(
                actor_scope=scope_of(manager), employee_id=employee.id, date="2026-10-19", hours=1, reason="Leave",
            )
        assert exc.value.context["current_usage"] == 1.5

        # A different month has its own allowance
        hour_bank_service.propose_debit(
            actor_scope=scope_of(manager), employee_id=employee.id, date="2026-11-02", hours=1, reason="Leave",
        )

    def test_employee_cannot_debit(self, employee):
        with pytest.raises(Forbidden):
            hour_bank_service.propose_debit(
                actor_scope=scope_of(employee), employee_id=employee.id, date="2026-10-19", hours=1, reason="Leave",
            )


class TestScope:
    def test_employee_cannot_credit_someone_else(self, employee, outsider):
        with pytest.raises(Forbidden):
            _credit(employee, outsider, 1)

    def test_manager_limited_to_department(self, manager, outsider):
        with pytest.raises(Forbidden):
            _credit(manager, outsider, 1)

    def test_admin_can_credit_anyone(self, admin, outsider):
        record = _credit(admin, outsider, 1)
        assert record.created_by == admin.id

    def test_list_records_is_scoped(self, admin, manager, employee, outsider):
        _credit(employee, employee, 1)
        _credit(outsider, outsider, 1)

        mine = hour_bank_service.list_records(actor_scope=scope_of(employee))
        department = hour_bank_service.list_records(actor_scope=scope_of(manager))
        everything = hour_bank_service.list_records(actor_scope=scope_of(admin))

        assert {r.employee_id for r in mine} == {employee.id}
        assert {r.employee_id for r in department} == {employee.id}
        assert len(everything) == 2


class TestStatusTransitions:
    def test_only_pending_records_move(self, manager, employee):
        record = _credit(employee, employee, 1, approve_with=manager)

        with pytest.raises(ValidationError):
            hour_bank_service.set_status(actor_scope=scope_of(manager), record_id=record.id, status="rejected")

    def test_unknown_status_is_rejected(self, manager, employee):
        record = _credit(employee, employee, 1)

        with pytest.raises(ValidationError):
            hour_bank_service.set_status(actor_scope=scope_of(manager), record_id=record.id, status="done")

    def test_approval_is_audited(self, manager, employee):
        record = _credit(employee, employee, 1, approve_with=manager)

        entry = AuditLog.query.filter_by(action="hourbank_approved", entity_id=str(record.id)).one()
        assert entry.actor_id == manager.id
        assert entry.target_id == employee.id


class TestValidation:
    @pytest.mark.parametrize("hours", [0, -1, "abc", None, True, float("nan"), 10**400])
    def test_bad_hours(self, employee, hours):
        with pytest.raises(ValidationError):
            _credit(employee, employee, hours)

    def test_bad_date(self, employee):
        with pytest.raises(ValidationError):
            _credit(employee, employee, 1, date="2026-02-30")


def test_check_limits_reports_instead_of_raising(admin, manager, employee):
    _set_limits(admin, default_accumulation_limit=2)
    _credit(employee, employee, 2, approve_with=manager)

    result = hour_bank_service.check_limits(employee_id=employee.id, hours=1, type="credit")

    assert result["can_proceed"] is False
    assert result["code"] == "AccumulationLimitExceeded"

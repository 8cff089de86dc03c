"""
Tests for PeriodService.

Covers:
- Implicitly open months
- Close / reopen / lock transitions
- Drafts blocking close
- Posting gate
"""

from datetime import date

import pytest

from ledger_kernel.exceptions import (
    ClosedPeriodError,
    InvalidPeriodError,
    PeriodTransitionError,
)
from ledger_kernel.models.accounting_period import PeriodStatus
from ledger_kernel.services.period_service import PeriodService
from tests.conftest import make_lines


class TestPeriodStatus:

    def test_never_closed_month_is_open(self, period_service):
        info = period_service.period_status(2024, 3)

        assert info.status == PeriodStatus.OPEN
        assert info.accepts_postings
        assert info.id is None
        assert info.period_code == "2024-03"
        assert info.start_date == date(2024, 3, 1)
        assert info.end_date == date(2024, 3, 31)

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_invalid_month(self, period_service, month):
        with pytest.raises(InvalidPeriodError):
            period_service.period_status(2024, month)

    def test_can_post_to_date(self, period_service, test_actor_id):
        period_service.close_period(2024, 1, test_actor_id)

        assert not period_service.can_post_to_date(date(2024, 1, 31))
        assert period_service.can_post_to_date(date(2024, 2, 1))


class TestClosePeriod:

    def test_close_records_actor_and_time(self, period_service, test_actor_id, deterministic_clock):
        info = period_service.close_period(2024, 1, test_actor_id)

        assert info.status == PeriodStatus.CLOSED
        assert info.closed_by_id == test_actor_id
        assert info.closed_at == deterministic_clock.now()
        assert not info.accepts_postings

    def test_close_twice_rejected(self, period_service, test_actor_id):
        period_service.close_period(2024, 1, test_actor_id)
        with pytest.raises(PeriodTransitionError) as exc_info:
            period_service.close_period(2024, 1, test_actor_id)
        assert exc_info.value.from_status == "closed"

    def test_drafts_block_close(self, period_service, journal_service, simple_accounts, test_actor_id):
        journal_service.create_draft(
            date(2024, 1, 20), "Pending",
            make_lines((simple_accounts["cash"], "1", None), (simple_accounts["revenue"], None, "1")),
            test_actor_id,
        )

        with pytest.raises(PeriodTransitionError) as exc_info:
            period_service.close_period(2024, 1, test_actor_id)
        assert "draft" in exc_info.value.reason

    def test_draft_in_other_month_does_not_block(
        self, period_service, journal_service, simple_accounts, test_actor_id,
    ):
        journal_service.create_draft(
            date(2024, 2, 1), "Next month",
            make_lines((simple_accounts["cash"], "1", None), (simple_accounts["revenue"], None, "1")),
            test_actor_id,
        )
        assert period_service.close_period(2024, 1, test_actor_id).status == PeriodStatus.CLOSED

    def test_close_with_postings(self, period_service, journal_service, simple_accounts, test_actor_id):
        draft = journal_service.create_draft(
            date(2024, 1, 20), "Sale",
            make_lines((simple_accounts["cash"], "100", None), (simple_accounts["revenue"], None, "100")),
            test_actor_id,
        )
        journal_service.post(draft.id, test_actor_id)

        assert period_service.close_period(2024, 1, test_actor_id).status == PeriodStatus.CLOSED


class TestReopenAndLock:

    def test_reopen_requires_reason(self, period_service, test_actor_id):
        period_service.close_period(2024, 1, test_actor_id)
        with pytest.raises(PeriodTransitionError):
            period_service.reopen_period(2024, 1, test_actor_id, reason="  ")

    def test_reopen_closed_month(self, period_service, test_actor_id):
        period_service.close_period(2024, 1, test_actor_id)
        info = period_service.reopen_period(2024, 1, test_actor_id, reason="Missed supplier bill")

        assert info.status == PeriodStatus.OPEN
        assert info.reopen_reason == "Missed supplier bill"
        assert info.reopened_by_id == test_actor_id
        assert period_service.can_post_to_date(date(2024, 1, 15))

    def test_reopen_open_month_rejected(self, period_service, test_actor_id):
        with pytest.raises(PeriodTransitionError):
            period_service.reopen_period(2024, 1, test_actor_id, reason="Why not")

    def test_close_again_after_reopen(self, period_service, test_actor_id):
        period_service.close_period(2024, 1, test_actor_id)
        period_service.reopen_period(2024, 1, test_actor_id, reason="Adjustment")
        assert period_service.close_period(2024, 1, test_actor_id).status == PeriodStatus.CLOSED

    def test_lock_closed_month(self, period_service, test_actor_id):
        period_service.close_period(2024, 1, test_actor_id)
        info = period_service.lock_period(2024, 1, test_actor_id)

        assert info.status == PeriodStatus.LOCKED
        assert info.locked_at is not None

    def test_lock_open_month_rejected(self, period_service, test_actor_id):
        with pytest.raises(PeriodTransitionError) as exc_info:
            period_service.lock_period(2024, 1, test_actor_id)
        assert exc_info.value.to_status == "locked"

    def test_locked_month_cannot_reopen(self, period_service, test_actor_id):
        period_service.close_period(2024, 1, test_actor_id)
        period_service.lock_period(2024, 1, test_actor_id)

        with pytest.raises(PeriodTransitionError):
            period_service.reopen_period(2024, 1, test_actor_id, reason="Audit finding")


class TestPostingGate:

    def test_locked_month_rejects_posting(self, period_service, test_actor_id):
        period_service.close_period(2024, 1, test_actor_id)
        period_service.lock_period(2024, 1, test_actor_id)

        with pytest.raises(ClosedPeriodError) as exc_info:
            period_service.validate_posting_date(date(2024, 1, 5))
        assert exc_info.value.status == "locked"

    def test_unenforced_gate_only_logs(self, session, tenant_id, period_service, test_actor_id, captured_logs):
        period_service.close_period(2024, 1, test_actor_id)
        lenient = PeriodService(session, tenant_id, enforce_locks=False)

        lenient.validate_posting_date(date(2024, 1, 5))

        warnings = [r for r in captured_logs() if r["message"] == "posting_to_closed_period"]
        assert warnings[0]["enforced"] is False
        assert warnings[0]["level"] == "WARNING"


class TestListPeriods:

    def test_newest_first(self, period_service, test_actor_id):
        period_service.close_period(2023, 12, test_actor_id)
        period_service.close_period(2024, 2, test_actor_id)
        period_service.close_period(2024, 1, test_actor_id)

        assert [p.period_code for p in period_service.list_periods()] == [
            "2024-02", "2024-01", "2023-12",
        ]
        assert [p.period_code for p in period_service.list_periods(2023)] == ["2023-12"]

    def test_implicit_months_not_listed(self, period_service):
        assert period_service.list_periods() == []

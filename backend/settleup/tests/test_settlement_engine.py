"""
Tests for the pure settlement engine.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from settleup.models.expense import SplitType
from settleup.models.reimbursement import ReimbursementStatus
from settleup.schemas.snapshot import (
    EventSnapshot,
    ExpenseShareSnapshot,
    ExpenseSnapshot,
    ParticipantSnapshot,
    ReimbursementSnapshot,
    RequesterIdentity,
)
from settleup.services.settlement_engine import (
    NetDebt,
    aggregate_pairwise_debts,
    check_share_totals,
    check_zero_sum,
    compute_settlement,
    net_debts,
    resolve_participant,
)

ALICE, BOB, CHLOE = 1, 2, 3

PARTICIPANTS = [
    ParticipantSnapshot(id=ALICE, name="Alice", user_id=10),
    ParticipantSnapshot(id=BOB, name="Bob"),
    ParticipantSnapshot(id=CHLOE, name="Chloe", user_id=30),
]

BASE_TIME = datetime(2024, 7, 1, 12, 0, 0)


def expense(expense_id, amount, payer_id, shares, not_obligated=(), currency="EUR"):
    return ExpenseSnapshot(
        id=expense_id,
        amount=Decimal(amount),
        payer_id=payer_id,
        split_type=SplitType.CUSTOM,
        currency=currency,
        shares=[
            ExpenseShareSnapshot(participant_id=pid, share_amount=Decimal(a))
            for pid, a in shares.items()
        ] + [
            ExpenseShareSnapshot(participant_id=pid, share_amount=Decimal("0"), is_obligated=False)
            for pid in not_obligated
        ],
    )


def reimbursement(reimbursement_id, debtor_id, creditor_id, amount, status, hours=0):
    return ReimbursementSnapshot(
        id=reimbursement_id,
        debtor_id=debtor_id,
        creditor_id=creditor_id,
        amount=Decimal(amount),
        currency="EUR",
        status=status,
        reimbursed_at=BASE_TIME + timedelta(hours=hours),
    )


def snapshot(expenses=(), reimbursements=(), participants=PARTICIPANTS[:2]):
    return EventSnapshot(
        event_id=1,
        currency="EUR",
        participants=list(participants),
        expenses=list(expenses),
        reimbursements=list(reimbursements),
    )


def as_bob():
    return RequesterIdentity(user_id=20, username="Bob")


def as_alice():
    return RequesterIdentity(user_id=10, username="alice_account")


DINNER = expense(1, "30.00", ALICE, {ALICE: "15.00", BOB: "15.00"})


class TestScenarios:
    def test_equal_split_between_two(self):
        result = compute_settlement(snapshot([DINNER]), as_bob())

        assert len(result.debts) == 1
        debt = result.debts[0]
        assert (debt.from_id, debt.to_id) == (BOB, ALICE)
        assert debt.amount == Decimal("15.00")
        assert debt.original_amount == Decimal("15.00")
        assert not debt.is_fully_reimbursed
        assert result.total_to_pay == Decimal("15.00")
        assert result.total_to_receive == Decimal("0")

        alice_view = compute_settlement(snapshot([DINNER]), as_alice())
        assert alice_view.total_to_receive == Decimal("15.00")
        assert alice_view.total_to_pay == Decimal("0")

    def test_completed_reimbursement_settles_debt(self):
        snap = snapshot([DINNER], [reimbursement(1, BOB, ALICE, "15.00", ReimbursementStatus.COMPLETED)])

        result = compute_settlement(snap, as_bob())

        debt = result.debts[0]
        assert debt.amount == Decimal("0.00")
        assert debt.reimbursed_amount == Decimal("15.00")
        assert debt.is_fully_reimbursed
        assert result.total_to_pay == Decimal("0.00")

    def test_pending_reimbursement_does_not_reduce_debt(self):
        snap = snapshot([DINNER], [reimbursement(1, BOB, ALICE, "10.00", ReimbursementStatus.PENDING)])

        result = compute_settlement(snap, as_bob())

        debt = result.debts[0]
        assert debt.amount == Decimal("15.00")
        assert debt.pending_reimbursement == Decimal("10.00")
        assert debt.total_reimbursed == Decimal("10.00")
        assert not debt.is_fully_reimbursed
        assert result.pending_to_pay == Decimal("10.00")
        assert result.total_to_pay == Decimal("15.00")

    def test_three_way_netting(self):
        expenses = [
            expense(1, "20.00", ALICE, {ALICE: "6.67", BOB: "6.67", CHLOE: "6.67"}),
            expense(2, "9.00", BOB, {ALICE: "3.00", BOB: "3.00", CHLOE: "3.00"}),
        ]

        result = compute_settlement(snapshot(expenses, participants=PARTICIPANTS))

        amounts = {(d.from_id, d.to_id): d.amount for d in result.debts}
        assert amounts == {
            (BOB, ALICE): Decimal("3.67"),
            (CHLOE, ALICE): Decimal("6.67"),
            (CHLOE, BOB): Decimal("3.00"),
        }

    def test_rejected_reimbursement_without_debt_stays_visible(self):
        snap = snapshot(reimbursements=[reimbursement(7, ALICE, BOB, "5.00", ReimbursementStatus.REJECTED)])

        result = compute_settlement(snap)

        assert len(result.debts) == 1
        debt = result.debts[0]
        assert (debt.from_id, debt.to_id) == (ALICE, BOB)
        assert debt.amount == Decimal("0")
        assert debt.original_amount == Decimal("0")
        assert debt.rejected_reimbursement == Decimal("5.00")
        assert not debt.is_fully_reimbursed
        assert [r.id for r in debt.reimbursements] == [7]

    def test_empty_event(self):
        result = compute_settlement(snapshot(), as_bob())

        assert result.debts == []
        assert result.total_to_pay == 0
        assert result.total_to_receive == 0
        assert result.pending_to_pay == 0
        assert result.rejected_to_pay == 0


class TestAggregation:
    def test_skips_payer_unobligated_zero_and_nan_shares(self):
        exp = ExpenseSnapshot(
            id=1,
            amount=Decimal("30.00"),
            payer_id=ALICE,
            currency="EUR",
            shares=[
                ExpenseShareSnapshot(participant_id=ALICE, share_amount=Decimal("10.00")),
                ExpenseShareSnapshot(participant_id=BOB, share_amount=Decimal("20.00")),
                ExpenseShareSnapshot(participant_id=CHLOE, share_amount=Decimal("5.00"), is_obligated=False),
            ],
        )
        nan_exp = ExpenseSnapshot(
            id=2,
            amount=Decimal("4.00"),
            payer_id=BOB,
            currency="EUR",
            shares=[
                ExpenseShareSnapshot(participant_id=CHLOE, share_amount=Decimal("NaN")),
                ExpenseShareSnapshot(participant_id=ALICE, share_amount=Decimal("0.00")),
            ],
        )

        table = aggregate_pairwise_debts([exp, nan_exp], PARTICIPANTS)

        assert table[(BOB, ALICE)] == Decimal("20.00")
        assert table[(CHLOE, ALICE)] == Decimal("0")
        assert table[(CHLOE, BOB)] == Decimal("0")
        assert table[(ALICE, BOB)] == Decimal("0")
        assert len(table) == 6

    def test_order_independent(self):
        expenses = [
            expense(1, "20.00", ALICE, {BOB: "10.00", CHLOE: "10.00"}),
            expense(2, "12.00", CHLOE, {ALICE: "6.00", BOB: "6.00"}),
            expense(3, "8.00", BOB, {ALICE: "8.00"}),
        ]

        forward = compute_settlement(snapshot(expenses, participants=PARTICIPANTS))
        backward = compute_settlement(snapshot(expenses[::-1], participants=PARTICIPANTS))

        assert forward.model_dump_json() == backward.model_dump_json()

    def test_negative_share_rejected_at_boundary(self):
        with pytest.raises(ValueError):
            ExpenseShareSnapshot(participant_id=BOB, share_amount=Decimal("-1.00"))


class TestNetting:
    def test_opposing_debts_cancel(self):
        expenses = [
            expense(1, "10.00", ALICE, {ALICE: "5.00", BOB: "5.00"}),
            expense(2, "10.00", BOB, {ALICE: "5.00", BOB: "5.00"}),
        ]

        assert compute_settlement(snapshot(expenses)).debts == []

    def test_one_cent_difference_is_settled(self):
        table = {(ALICE, BOB): Decimal("5.00"), (BOB, ALICE): Decimal("5.01")}

        assert net_debts(table) == []

    def test_larger_side_owes(self):
        table = {(ALICE, BOB): Decimal("2.50"), (BOB, ALICE): Decimal("10.00")}

        debts = net_debts(table)

        assert len(debts) == 1
        assert (debts[0].from_id, debts[0].to_id, debts[0].amount) == (BOB, ALICE, Decimal("7.50"))

    def test_never_emits_opposing_edges(self):
        expenses = [
            expense(1, "90.00", ALICE, {ALICE: "30.00", BOB: "30.00", CHLOE: "30.00"}),
            expense(2, "60.00", BOB, {ALICE: "20.00", BOB: "20.00", CHLOE: "20.00"}),
            expense(3, "45.00", CHLOE, {ALICE: "15.00", BOB: "15.00", CHLOE: "15.00"}),
            expense(4, "33.33", BOB, {ALICE: "11.11", CHLOE: "22.22"}),
        ]
        reimbursements = [reimbursement(1, ALICE, BOB, "4.00", ReimbursementStatus.COMPLETED)]

        result = compute_settlement(snapshot(expenses, reimbursements, PARTICIPANTS))

        outstanding = {(d.from_id, d.to_id) for d in result.debts if d.amount > 0}
        for from_id, to_id in outstanding:
            assert (to_id, from_id) not in outstanding


class TestInvariants:
    def test_zero_sum_holds(self):
        expenses = [
            expense(1, "20.00", ALICE, {ALICE: "6.67", BOB: "6.67", CHLOE: "6.67"}),
            expense(2, "9.00", BOB, {ALICE: "3.00", BOB: "3.00", CHLOE: "3.00"}),
        ]
        netted = net_debts(aggregate_pairwise_debts(expenses, PARTICIPANTS))

        report = check_zero_sum(netted)

        assert report.is_balanced
        assert abs(report.total) <= Decimal("0.02")
        assert report.balances[ALICE] == Decimal("10.34")
        assert report.balances[CHLOE] == Decimal("-9.67")

    def test_check_zero_sum_on_empty_ledger(self):
        report = check_zero_sum([])

        assert report.balances == {}
        assert report.total == 0

    def test_share_mismatch_is_logged_not_raised(self, caplog):
        broken = expense(5, "30.00", ALICE, {ALICE: "10.00", BOB: "10.00"})

        with caplog.at_level(logging.WARNING):
            result = compute_settlement(snapshot([broken]), as_bob())

        assert result.total_to_pay == Decimal("10.00")
        assert "Expense 5 shares sum to 20.00" in caplog.text

    def test_share_totals_ignore_unobligated(self):
        exp = expense(1, "30.00", ALICE, {ALICE: "15.00", BOB: "15.00"}, not_obligated=[CHLOE])

        assert check_share_totals([exp]) == []

    def test_injected_logger_receives_warnings(self):
        log = MagicMock()
        mixed = expense(1, "30.00", ALICE, {ALICE: "15.00", BOB: "15.00"}, currency="USD")

        compute_settlement(snapshot([mixed]), log=log)

        assert log.warning.called
        assert "USD" in log.warning.call_args_list[0].args[0]

    def test_net_debt_repr(self):
        assert repr(NetDebt(BOB, ALICE, Decimal("1.00"))) == "NetDebt(2 -> 1: 1.00)"


class TestReconciliation:
    def test_monotonic_in_completed_amount(self):
        previous = None
        for paid in ["0.01", "5.00", "10.00", "15.00", "20.00", "100.00"]:
            snap = snapshot([DINNER], [reimbursement(1, BOB, ALICE, paid, ReimbursementStatus.COMPLETED)])
            remaining = compute_settlement(snap).debts[0].amount
            assert remaining >= 0
            if previous is not None:
                assert remaining <= previous
            previous = remaining

    def test_overpayment_clamps_to_zero(self):
        snap = snapshot([DINNER], [reimbursement(1, BOB, ALICE, "20.00", ReimbursementStatus.COMPLETED)])

        debt = compute_settlement(snap).debts[0]

        assert debt.amount == Decimal("0.00")
        assert debt.reimbursed_amount == Decimal("20.00")
        assert debt.is_fully_reimbursed

    def test_mixed_statuses_and_audit_order(self):
        reimbursements = [
            reimbursement(3, BOB, ALICE, "2.00", ReimbursementStatus.REJECTED, hours=5),
            reimbursement(1, BOB, ALICE, "5.00", ReimbursementStatus.COMPLETED, hours=1),
            reimbursement(2, BOB, ALICE, "4.00", ReimbursementStatus.PENDING, hours=3),
        ]

        result = compute_settlement(snapshot([DINNER], reimbursements), as_bob())

        debt = result.debts[0]
        assert debt.amount == Decimal("10.00")
        assert debt.reimbursed_amount == Decimal("5.00")
        assert debt.pending_reimbursement == Decimal("4.00")
        assert debt.rejected_reimbursement == Decimal("2.00")
        assert debt.total_reimbursed == Decimal("9.00")
        assert [r.id for r in debt.reimbursements] == [1, 2, 3]
        assert result.rejected_to_pay == Decimal("2.00")
        assert result.pending_to_pay == Decimal("4.00")

    def test_repayment_survives_expense_removal(self):
        snap = snapshot(reimbursements=[reimbursement(1, BOB, ALICE, "15.00", ReimbursementStatus.COMPLETED)])

        debt = compute_settlement(snap).debts[0]

        assert debt.amount == Decimal("0")
        assert debt.reimbursed_amount == Decimal("15.00")
        assert debt.is_fully_reimbursed

    def test_reimbursement_only_matches_its_direction(self):
        snap = snapshot([DINNER], [reimbursement(1, ALICE, BOB, "5.00", ReimbursementStatus.COMPLETED)])

        debts = {(d.from_id, d.to_id): d for d in compute_settlement(snap).debts}

        assert debts[(BOB, ALICE)].amount == Decimal("15.00")
        assert debts[(BOB, ALICE)].reimbursed_amount == Decimal("0")
        assert debts[(ALICE, BOB)].amount == Decimal("0")
        assert debts[(ALICE, BOB)].reimbursed_amount == Decimal("5.00")

    def test_participant_outside_roster_is_logged(self, caplog):
        snap = snapshot([DINNER], [reimbursement(1, 99, ALICE, "5.00", ReimbursementStatus.COMPLETED)])

        with caplog.at_level(logging.WARNING):
            debts = {(d.from_id, d.to_id): d for d in compute_settlement(snap).debts}

        assert debts[(99, ALICE)].from_name == "99"
        assert "participants [99] missing from the roster" in caplog.text

    def test_known_participants_log_nothing(self, caplog):
        snap = snapshot([DINNER], [reimbursement(1, BOB, ALICE, "5.00", ReimbursementStatus.COMPLETED)])

        with caplog.at_level(logging.WARNING):
            compute_settlement(snap)

        assert "missing from the roster" not in caplog.text


class TestProjection:
    def test_linked_participant_wins(self):
        assert resolve_participant(PARTICIPANTS, as_alice()).id == ALICE

    def test_falls_back_to_unlinked_name(self):
        assert resolve_participant(PARTICIPANTS, as_bob()).id == BOB

    def test_does_not_fall_back_to_linked_participant(self):
        requester = RequesterIdentity(user_id=99, username="Chloe")

        assert resolve_participant(PARTICIPANTS, requester) is None

    def test_unknown_requester_gets_zero_totals(self):
        result = compute_settlement(snapshot([DINNER]), RequesterIdentity(user_id=99))

        assert len(result.debts) == 1
        assert result.user_summary is None
        assert result.total_to_pay == 0

    def test_credit_and_debit_sorted_by_amount(self):
        expenses = [
            expense(1, "30.00", ALICE, {BOB: "10.00", CHLOE: "20.00"}),
        ]

        result = compute_settlement(snapshot(expenses, participants=PARTICIPANTS), as_alice())

        summary = result.user_summary
        assert [c.name for c in summary.credit] == ["Chloe", "Bob"]
        assert summary.debit == []
        assert result.total_to_receive == Decimal("30.00")

    def test_amounts_have_two_decimals(self):
        expenses = [
            expense(1, "10.00", ALICE, {ALICE: "3.34", BOB: "3.33", CHLOE: "3.33"}),
            expense(2, "7.00", CHLOE, {ALICE: "2.34", BOB: "2.33", CHLOE: "2.33"}),
        ]

        result = compute_settlement(snapshot(expenses, participants=PARTICIPANTS), as_bob())

        cent = Decimal("0.01")
        for debt in result.debts:
            assert debt.amount == debt.amount.quantize(cent)
            assert debt.original_amount == debt.original_amount.quantize(cent)
        constituents = sum(d.amount for d in result.debts if d.from_id == BOB)
        assert abs(result.total_to_pay - constituents) <= cent


class TestDeterminism:
    def test_repeated_runs_are_identical(self):
        expenses = [
            expense(1, "20.00", ALICE, {ALICE: "6.67", BOB: "6.67", CHLOE: "6.67"}),
            expense(2, "9.00", BOB, {ALICE: "3.00", BOB: "3.00", CHLOE: "3.00"}),
        ]
        reimbursements = [reimbursement(1, CHLOE, ALICE, "2.00", ReimbursementStatus.PENDING)]
        snap = snapshot(expenses, reimbursements, PARTICIPANTS)

        first = compute_settlement(snap, as_alice()).model_dump_json(by_alias=True)
        second = compute_settlement(snap, as_alice()).model_dump_json(by_alias=True)

        assert first == second

    def test_json_shape(self):
        snap = snapshot([DINNER], [reimbursement(1, BOB, ALICE, "15.00", ReimbursementStatus.COMPLETED)])

        data = compute_settlement(snap, as_bob()).model_dump(mode="json", by_alias=True)

        debt = data["debts"][0]
        assert debt["from"] == "Bob"
        assert debt["to"] == "Alice"
        assert debt["originalAmount"] == 15.0
        assert debt["reimbursedAmount"] == 15.0
        assert debt["isFullyReimbursed"] is True
        assert debt["currency"] == "EUR"
        assert debt["reimbursements"][0]["status"] == "completed"
        assert data["total_to_pay"] == 0.0

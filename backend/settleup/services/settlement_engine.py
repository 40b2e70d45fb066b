"""
Debt aggregation, netting and reimbursement reconciliation.

Every function in this module is a pure transformation over snapshot
records: nothing here reads from or writes to the database, and nothing is
kept between calls. Participants are keyed by their stable id throughout;
names are only attached to the final Debt records for display.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from settleup.core.utils import ZERO, round_money
from settleup.models.reimbursement import ReimbursementStatus
from settleup.schemas.settlement import (
    Counterpart,
    Debt,
    ReimbursementAudit,
    SettlementResult,
    UserSummary,
)
from settleup.schemas.snapshot import (
    EventSnapshot,
    ExpenseSnapshot,
    ParticipantSnapshot,
    ReimbursementSnapshot,
    RequesterIdentity,
)

logger = logging.getLogger(__name__)

EPSILON = Decimal("0.01")
ZERO_SUM_TOLERANCE = Decimal("0.02")

Pair = Tuple[int, int]  # (debtor_id, creditor_id)


class NetDebt:
    """Represents a single netted debt between two participants."""
    def __init__(self, from_id: int, to_id: int, amount: Decimal):
        self.from_id = from_id
        self.to_id = to_id
        self.amount = amount

    def __repr__(self):
        return f"NetDebt({self.from_id} -> {self.to_id}: {self.amount})"


class BalanceReport:
    """Per-participant balances derived from the netted ledger."""
    def __init__(self, balances: Dict[int, Decimal], total: Decimal):
        self.balances = balances  # participant_id -> balance (positive = receives)
        self.total = total

    @property
    def is_balanced(self) -> bool:
        return abs(self.total) <= ZERO_SUM_TOLERANCE


# ============================================================================
# Aggregation
# ============================================================================


def aggregate_pairwise_debts(
    expenses: List[ExpenseSnapshot],
    participants: List[ParticipantSnapshot],
) -> Dict[Pair, Decimal]:
    """
    Fold every expense share into a directed (debtor, creditor) table.

    Shares that are not obligated, belong to the payer, are NaN or are below
    one cent do not contribute.
    """
    ids = sorted(p.id for p in participants)
    table: Dict[Pair, Decimal] = {
        (debtor, creditor): ZERO
        for debtor in ids
        for creditor in ids
        if debtor != creditor
    }

    for expense in expenses:
        for share in expense.shares:
            if not share.is_obligated or share.participant_id == expense.payer_id:
                continue
            if share.share_amount.is_nan() or share.share_amount < EPSILON:
                continue
            key = (share.participant_id, expense.payer_id)
            table[key] = table.get(key, ZERO) + share.share_amount

    return table


# ============================================================================
# Netting
# ============================================================================


def net_debts(table: Dict[Pair, Decimal]) -> List[NetDebt]:
    """
    Collapse both directions of every participant pair into one directed debt.

    Pairs whose opposing amounts cancel out to within one cent are dropped.
    """
    pairs = sorted({(min(debtor, creditor), max(debtor, creditor)) for debtor, creditor in table})

    debts = []
    for first, second in pairs:
        first_owes = table.get((first, second), ZERO)
        second_owes = table.get((second, first), ZERO)
        net = abs(first_owes - second_owes)
        if net <= EPSILON:
            continue
        if first_owes > second_owes:
            debts.append(NetDebt(first, second, round_money(net)))
        else:
            debts.append(NetDebt(second, first, round_money(net)))

    return debts


# ============================================================================
# Invariant checks (diagnostic only)
# ============================================================================


def check_zero_sum(debts: List[NetDebt], log: Optional[logging.Logger] = None) -> BalanceReport:
    """Credit every creditor, debit every debtor and verify the ledger sums to zero."""
    log = log or logger
    balances: Dict[int, Decimal] = {}
    for debt in debts:
        balances[debt.to_id] = balances.get(debt.to_id, ZERO) + debt.amount
        balances[debt.from_id] = balances.get(debt.from_id, ZERO) - debt.amount

    report = BalanceReport(balances, sum(balances.values(), ZERO))
    if not report.is_balanced:
        log.warning(
            f"Netted ledger is not zero-sum: total {report.total} exceeds "
            f"tolerance {ZERO_SUM_TOLERANCE}"
        )
    return report


def check_share_totals(
    expenses: List[ExpenseSnapshot],
    log: Optional[logging.Logger] = None,
) -> List[int]:
    """Return ids of expenses whose obligated shares do not add up to the amount."""
    log = log or logger
    mismatched = []
    for expense in expenses:
        allocated = sum(
            (
                s.share_amount
                for s in expense.shares
                if s.is_obligated and not s.share_amount.is_nan()
            ),
            ZERO,
        )
        if abs(allocated - expense.amount) > EPSILON:
            mismatched.append(expense.id)
            log.warning(
                f"Expense {expense.id} shares sum to {allocated}, "
                f"expected {expense.amount}"
            )
    return mismatched


# ============================================================================
# Reconciliation
# ============================================================================


def reconcile_reimbursements(
    debts: List[NetDebt],
    reimbursements: List[ReimbursementSnapshot],
    participants: List[ParticipantSnapshot],
    currency: str,
    log: Optional[logging.Logger] = None,
) -> List[Debt]:
    """
    Apply reimbursements to netted debts.

    Completed reimbursements reduce what is owed; pending and rejected ones
    are only reported. Pairs that have reimbursements but no netted debt are
    still emitted (with an original amount of zero) so past repayments stay
    visible. Participants missing from the roster are shown by id.
    """
    log = log or logger
    names = {p.id: p.name for p in participants}
    originals: Dict[Pair, Decimal] = {(d.from_id, d.to_id): d.amount for d in debts}

    by_pair: Dict[Pair, List[ReimbursementSnapshot]] = {}
    for reimbursement in reimbursements:
        key = (reimbursement.debtor_id, reimbursement.creditor_id)
        by_pair.setdefault(key, []).append(reimbursement)

    unknown = sorted({pid for pair in by_pair for pid in pair} - set(names))
    if unknown:
        log.warning(f"Reimbursements reference participants {unknown} missing from the roster")

    reconciled = []
    for from_id, to_id in sorted(set(originals) | set(by_pair)):
        original = originals.get((from_id, to_id), ZERO)
        records = sorted(
            by_pair.get((from_id, to_id), []),
            key=lambda r: (r.reimbursed_at, r.id),
        )

        completed = _sum_by_status(records, ReimbursementStatus.COMPLETED)
        pending = _sum_by_status(records, ReimbursementStatus.PENDING)
        rejected = _sum_by_status(records, ReimbursementStatus.REJECTED)
        remaining = round_money(max(ZERO, original - completed))

        reconciled.append(
            Debt(
                from_id=from_id,
                from_name=names.get(from_id, str(from_id)),
                to_id=to_id,
                to_name=names.get(to_id, str(to_id)),
                amount=remaining,
                original_amount=original,
                reimbursed_amount=completed,
                pending_reimbursement=pending,
                rejected_reimbursement=rejected,
                total_reimbursed=round_money(completed + pending),
                is_fully_reimbursed=(
                    remaining <= EPSILON and completed >= original and completed > ZERO
                ),
                currency=currency,
                reimbursements=[
                    ReimbursementAudit(
                        id=r.id,
                        amount=r.amount,
                        status=r.status,
                        date=r.reimbursed_at,
                    )
                    for r in records
                ],
            )
        )

    return reconciled


def _sum_by_status(records: List[ReimbursementSnapshot], status: ReimbursementStatus) -> Decimal:
    return round_money(sum((r.amount for r in records if r.status == status), ZERO))


# ============================================================================
# Projection
# ============================================================================


def resolve_participant(
    participants: List[ParticipantSnapshot],
    requester: Optional[RequesterIdentity],
) -> Optional[ParticipantSnapshot]:
    """
    Find the requester's participant.

    A participant linked to the user id wins; otherwise an unlinked
    participant carrying the user's display name is used.
    """
    if requester is None:
        return None

    if requester.user_id is not None:
        for participant in participants:
            if participant.user_id == requester.user_id:
                return participant

    if requester.username:
        for participant in participants:
            if participant.user_id is None and participant.name == requester.username:
                return participant

    return None


def project_user_summary(debts: List[Debt], participant: ParticipantSnapshot) -> UserSummary:
    """Sum one participant's side of the reconciled debts, rounding only at the end."""
    owed = [d for d in debts if d.from_id == participant.id]
    receivable = [d for d in debts if d.to_id == participant.id]

    debit = [
        Counterpart(participant_id=d.to_id, name=d.to_name, amount=d.amount)
        for d in owed
        if d.amount > ZERO
    ]
    credit = [
        Counterpart(participant_id=d.from_id, name=d.from_name, amount=d.amount)
        for d in receivable
        if d.amount > ZERO
    ]

    return UserSummary(
        participant_id=participant.id,
        name=participant.name,
        total_to_pay=round_money(sum((d.amount for d in owed), ZERO)),
        total_to_receive=round_money(sum((d.amount for d in receivable), ZERO)),
        pending_to_pay=round_money(sum((d.pending_reimbursement for d in owed), ZERO)),
        rejected_to_pay=round_money(sum((d.rejected_reimbursement for d in owed), ZERO)),
        credit=sorted(credit, key=lambda c: (-c.amount, c.participant_id)),
        debit=sorted(debit, key=lambda c: (-c.amount, c.participant_id)),
    )


# ============================================================================
# Pipeline
# ============================================================================


def compute_settlement(
    snapshot: EventSnapshot,
    requester: Optional[RequesterIdentity] = None,
    log: Optional[logging.Logger] = None,
) -> SettlementResult:
    """Run aggregation, netting, reconciliation and projection over one snapshot."""
    log = log or logger

    foreign = sorted(
        {e.currency for e in snapshot.expenses if e.currency != snapshot.currency}
        | {r.currency for r in snapshot.reimbursements if r.currency != snapshot.currency}
    )
    if foreign:
        log.warning(
            f"Event {snapshot.event_id} mixes currencies {foreign} with "
            f"{snapshot.currency}; amounts are not converted"
        )

    check_share_totals(snapshot.expenses, log)
    table = aggregate_pairwise_debts(snapshot.expenses, snapshot.participants)
    netted = net_debts(table)
    check_zero_sum(netted, log)

    debts = reconcile_reimbursements(
        netted, snapshot.reimbursements, snapshot.participants, snapshot.currency, log
    )
    log.debug(
        f"Event {snapshot.event_id}: {len(netted)} net debts, "
        f"{len(debts)} reconciled entries"
    )

    participant = resolve_participant(snapshot.participants, requester)
    if participant is None:
        return SettlementResult(debts=debts)

    summary = project_user_summary(debts, participant)
    return SettlementResult(
        debts=debts,
        user_summary=summary,
        total_to_pay=summary.total_to_pay,
        total_to_receive=summary.total_to_receive,
        pending_to_pay=summary.pending_to_pay,
        rejected_to_pay=summary.rejected_to_pay,
    )

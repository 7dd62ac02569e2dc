"""Transaction workflows: installment creation, cycle locking, duplicate resolution"""

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any, Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_core.domain import duplicates
from ledger_core.domain.billing_cycle import billing_cycle, billing_cycle_window
from ledger_core.domain.cycle_lock import effective_payment_date, is_deferred_badge_visible, lock, needs_relock
from ledger_core.domain.exceptions import InstallmentBatchError, NotFoundError
from ledger_core.domain.installments import apply_nature, normalize_count, parse_amount, split
from ledger_core.domain.models import BillingCycleResult, CreditCardPolicy, DuplicateSuggestion, MergeResult, Transaction
from ledger_core.infrastructure.database.models import LedgerTransaction
from ledger_core.infrastructure.database.repositories import (
    AccountRepository,
    TransactionRepository,
    policy_for,
    to_domain,
)
from ledger_core.infrastructure.observability.logging import (
    log_cycle_locked,
    log_duplicate_resolution,
    log_installments_created,
)
from ledger_core.infrastructure.observability.metrics import (
    cycle_lock_counter,
    duplicate_resolution_counter,
    installment_batch_failure_counter,
    record_installment_plan,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PaymentInfo:
    """Payment date and deferred badge for one transaction"""

    transaction: Transaction
    payment_due_date: Optional[date]
    deferred_badge: bool


class TransactionService:
    """
    Orchestrates the engine around a SQLAlchemy session.

    Every public method commits on success and rolls back on failure, so
    callers never see a half-written installment group or metadata update.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self.accounts = AccountRepository(db)
        self.transactions = TransactionRepository(db)

    def create_transaction(
        self,
        account_id: str,
        name: Optional[str],
        txn_date: date,
        amount: Any,
        nature: Optional[str],
        currency: Optional[str] = None,
        installments_count: Any = 1,
        installment_mode: Optional[str] = None,
        deferred_to_next_cycle: bool = False,
        request_id: Optional[str] = None,
    ) -> List[Transaction]:
        """
        Create one transaction, or one per installment period.

        Flow:
        1. Validate account, sign and installment count (nothing written yet)
        2. Split into installment lines when more than one period
        3. Persist every line and lock its billing cycle in one DB transaction
        4. Commit, or roll back the whole batch on any persistence failure
        """
        account = self.accounts.get_account(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")

        signed_amount = apply_nature(amount, nature)
        count = normalize_count(installments_count)
        policy = policy_for(account)
        base = Transaction(
            id=None,
            account_id=account.id,
            name=name or "",
            date=txn_date,
            amount=signed_amount,
            currency=currency or account.currency,
            deferred_to_next_cycle=deferred_to_next_cycle,
        )

        plan = None
        if count > 1:
            plan = split(signed_amount, count, installment_mode, txn_date, name)
            candidates = [
                replace(base, name=line.name, date=line.date, amount=line.amount, installment=plan.tag_for(line))
                for line in plan.lines
            ]
        else:
            candidates = [base]

        try:
            rows = []
            for candidate in candidates:
                row = self.transactions.add(candidate)
                self._lock_cycle(policy, row, reason="create")
                rows.append(row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            installment_batch_failure_counter.inc()
            raise InstallmentBatchError(f"Failed to create {len(candidates)} transaction(s): {e}") from e
        except Exception:
            self.db.rollback()
            raise

        if plan is not None:
            record_installment_plan(plan.mode.value, len(plan.lines))
            log_installments_created(request_id, account.id, plan.group_id, plan.mode.value, len(plan.lines))

        return [to_domain(row) for row in rows]

    def update_transaction(
        self,
        transaction_id: str,
        name: Optional[str] = None,
        amount: Any = None,
        deferred_to_next_cycle: Optional[bool] = None,
        nature: Optional[str] = None,
    ) -> Transaction:
        """
        Apply edits; the billing cycle is relocked only when the deferral flag changes.

        An amount is taken as a magnitude and signed by nature. Without a
        nature the stored direction is kept, so editing an inflow's amount
        never turns it into an outflow.
        """
        try:
            row = self._get_row_for_update(transaction_id)
            previous_deferred = bool(row.deferred_to_next_cycle)

            if name is not None:
                row.name = name
            if amount is not None or nature is not None:
                magnitude = abs(parse_amount(amount if amount is not None else row.amount))
                direction = nature or ("inflow" if row.amount < 0 else "outflow")
                row.amount = apply_nature(magnitude, direction)
            if deferred_to_next_cycle is not None:
                row.deferred_to_next_cycle = deferred_to_next_cycle
            self.db.flush()

            if needs_relock(previous_deferred, bool(row.deferred_to_next_cycle)):
                self._lock_cycle(policy_for(row.account), row, reason="relock")

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return to_domain(row)

    def payment_info(self, transaction_id: str) -> PaymentInfo:
        row = self.transactions.get(transaction_id)
        if row is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return self._payment_info(row)

    def installment_group(self, account_id: str, group_id: str) -> List[PaymentInfo]:
        """Every period of one installment plan, in period order"""
        account = self.accounts.get_account(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")

        rows = self.transactions.list_by_group(account.id, group_id)
        if not rows:
            raise NotFoundError(f"Installment group {group_id} not found")
        return [self._payment_info(row) for row in rows]

    def _payment_info(self, row: LedgerTransaction) -> PaymentInfo:
        policy = policy_for(row.account)
        transaction = to_domain(row)
        return PaymentInfo(
            transaction=transaction,
            payment_due_date=effective_payment_date(policy, transaction),
            deferred_badge=is_deferred_badge_visible(policy, transaction),
        )

    def billing_cycle_for_account(
        self, account_id: str, reference_date: date
    ) -> Tuple[Optional[BillingCycleResult], Optional[Tuple[date, date]]]:
        """Cycle dates for reference_date's month plus the window paid on that due date"""
        account = self.accounts.get_account(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")

        policy = policy_for(account)
        if policy is None:
            return None, None

        cycle = billing_cycle(policy, reference_date)
        window = billing_cycle_window(policy, cycle.payment_due_date) if cycle else None
        return cycle, window

    def attach_duplicate(self, transaction_id: str, suggestion: DuplicateSuggestion) -> Transaction:
        """Entry point for the matcher that pairs pending and posted entries"""
        return self._rewrite_suggestion(transaction_id, lambda txn: duplicates.attach(txn, suggestion))

    def merge_duplicate(self, transaction_id: str, request_id: Optional[str] = None) -> MergeResult:
        """Delete a pending entry in favour of its posted match, atomically"""
        try:
            row = self.transactions.get_for_update(transaction_id)
            transaction = to_domain(row) if row is not None else None
            result = duplicates.merge(
                transaction,
                lookup_entry=self.transactions.get,
                delete_entry=self.transactions.delete,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        duplicate_resolution_counter.labels(action="merge").inc()
        log_duplicate_resolution(request_id, result.pending_id, "merge", result.posted_id)
        return result

    def dismiss_duplicate(self, transaction_id: str, request_id: Optional[str] = None) -> Transaction:
        transaction = self._rewrite_suggestion(transaction_id, duplicates.dismiss)
        duplicate_resolution_counter.labels(action="dismiss").inc()
        log_duplicate_resolution(request_id, transaction_id, "dismiss")
        return transaction

    def clear_duplicate(self, transaction_id: str, request_id: Optional[str] = None) -> Transaction:
        transaction = self._rewrite_suggestion(transaction_id, duplicates.clear)
        duplicate_resolution_counter.labels(action="clear").inc()
        log_duplicate_resolution(request_id, transaction_id, "clear")
        return transaction

    def _rewrite_suggestion(
        self, transaction_id: str, mutate: Callable[[Transaction], Transaction]
    ) -> Transaction:
        try:
            row = self._get_row_for_update(transaction_id)
            updated = mutate(to_domain(row))
            self.transactions.write_metadata(row, updated)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return updated

    def _get_row_for_update(self, transaction_id: str) -> LedgerTransaction:
        row = self.transactions.get_for_update(transaction_id)
        if row is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return row

    def _lock_cycle(self, policy: Optional[CreditCardPolicy], row: LedgerTransaction, reason: str) -> None:
        stamp = lock(policy, to_domain(row), self.clock())
        if stamp is None:
            cycle_lock_counter.labels(reason="skipped").inc()
            return

        self.transactions.apply_stamp(row, stamp)
        cycle_lock_counter.labels(reason=reason).inc()
        log_cycle_locked(row.id, stamp.billing_cycle_month.isoformat(), reason)

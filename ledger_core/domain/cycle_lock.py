"""Billing cycle lock - freezes a transaction's payment month against later policy edits"""

from datetime import date, datetime
from typing import Optional

from ledger_core.domain.billing_cycle import is_in_next_cycle, payment_due_date
from ledger_core.domain.models import CreditCardPolicy, CycleStamp, Transaction
from ledger_core.utils.date_utils import add_months, clamp_day, first_of_month


def resolve_payment_date(policy: Optional[CreditCardPolicy], transaction: Transaction) -> Optional[date]:
    """
    Payment due date under the current policy, ignoring any existing lock.

    Manual deferral and charges past the cutoff both go to next month's bill.
    Returns None for non-credit-card accounts (policy is None) or cards
    without a due day.
    """
    if policy is None or policy.due_day is None:
        return None

    txn_date = transaction.date
    if transaction.deferred_to_next_cycle:
        return payment_due_date(policy, add_months(txn_date, 1))
    if is_in_next_cycle(policy, txn_date, txn_date):
        return payment_due_date(policy, add_months(txn_date, 1))
    return payment_due_date(policy, txn_date)


def lock(policy: Optional[CreditCardPolicy], transaction: Transaction, now: datetime) -> Optional[CycleStamp]:
    """
    Compute the cycle stamp to persist for a transaction.

    Called at creation and when deferred_to_next_cycle changes, never on read.
    Returns None (nothing to persist) when the policy is missing or incomplete.
    """
    resolved = resolve_payment_date(policy, transaction)
    if resolved is None:
        return None
    return CycleStamp(billing_cycle_month=first_of_month(resolved), locked_at=now)


def needs_relock(previous_deferred: bool, current_deferred: bool) -> bool:
    return previous_deferred != current_deferred


def effective_payment_date(policy: Optional[CreditCardPolicy], transaction: Transaction) -> Optional[date]:
    """
    Payment date shown for a transaction.

    Locked transactions keep their locked month (only the due day follows the
    current policy); unlocked ones are resolved under the current policy.
    Non-credit-card transactions are paid on their own date.
    """
    if policy is None or policy.due_day is None:
        return transaction.date

    locked_month = transaction.billing_cycle_month
    if locked_month is not None:
        return clamp_day(locked_month.year, locked_month.month, policy.due_day)

    return resolve_payment_date(policy, transaction)


def is_deferred_badge_visible(policy: Optional[CreditCardPolicy], transaction: Transaction) -> bool:
    """
    Whether the transaction is flagged as billed in a later cycle.

    Unlocked transactions never show the badge so that editing the card's
    billing settings does not flip it on old history.
    """
    if policy is None:
        return False
    if transaction.deferred_to_next_cycle:
        return True
    if policy.due_day is None:
        return False

    locked_month = transaction.billing_cycle_month
    if locked_month is None:
        return False

    return (locked_month.year, locked_month.month) > (transaction.date.year, transaction.date.month)

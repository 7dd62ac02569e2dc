"""Credit card billing cycle date arithmetic"""

from datetime import date, timedelta
from typing import Optional, Tuple

from ledger_core.domain.models import BillingCycleResult, CreditCardPolicy
from ledger_core.utils.date_utils import add_months, clamp_day, first_of_month


def _cutoff_offset(policy: CreditCardPolicy) -> int:
    if policy.cutoff_days_before_due and policy.cutoff_days_before_due > 0:
        return policy.cutoff_days_before_due
    return 0


def cutoff_date(policy: CreditCardPolicy, reference_date: date) -> Optional[date]:
    """
    Last day counted in the statement paid in reference_date's month.

    Charges dated on or after the cutoff roll over to the next bill.
    Returns None when the card has no due day configured.
    """
    if policy.due_day is None:
        return None

    due_in_month = clamp_day(reference_date.year, reference_date.month, policy.due_day)
    return due_in_month - timedelta(days=_cutoff_offset(policy))


def payment_due_date(policy: CreditCardPolicy, reference_date: date) -> Optional[date]:
    """
    Due date for the charges of reference_date's month.

    Cutoff on the 10th with due day 15 -> due the 15th of the same month.
    A cutoff that lands after this month's due day pushes payment to next month.
    """
    if policy.due_day is None:
        return None

    cutoff = cutoff_date(policy, reference_date)
    if cutoff is None:
        return None

    due_in_month = clamp_day(reference_date.year, reference_date.month, policy.due_day)
    if cutoff <= due_in_month:
        return due_in_month

    next_month = add_months(reference_date, 1)
    return clamp_day(next_month.year, next_month.month, policy.due_day)


def is_in_next_cycle(policy: CreditCardPolicy, transaction_date: date, reference_date: date) -> bool:
    """True when the transaction falls on or after reference month's cutoff"""
    if policy.due_day is None:
        return False

    cutoff = cutoff_date(policy, reference_date)
    if cutoff is None:
        return False

    return transaction_date >= cutoff


def billing_cycle_window(policy: CreditCardPolicy, due_date: date) -> Optional[Tuple[date, date]]:
    """
    (start, end) of the cycle whose statement is paid on due_date.

    The cycle starts the day after the previous month's cutoff and ends at
    this due date shifted back by the cutoff offset.
    """
    if policy.due_day is None:
        return None

    end = due_date - timedelta(days=_cutoff_offset(policy))

    previous_cutoff = cutoff_date(policy, add_months(due_date, -1))
    if previous_cutoff is not None:
        start = previous_cutoff + timedelta(days=1)
    else:
        start = first_of_month(due_date)

    return start, end


def billing_cycle(policy: CreditCardPolicy, reference_date: date) -> Optional[BillingCycleResult]:
    """Cutoff and payment-due dates for reference_date's month, or None without a due day"""
    cutoff = cutoff_date(policy, reference_date)
    due = payment_due_date(policy, reference_date)
    if cutoff is None or due is None:
        return None
    return BillingCycleResult(cutoff_date=cutoff, payment_due_date=due)

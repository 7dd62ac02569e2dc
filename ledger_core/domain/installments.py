"""Installment plan generation for multi-period transactions"""

import uuid
from datetime import date
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any, List, Optional

from ledger_core.config import settings
from ledger_core.domain.exceptions import ValidationError
from ledger_core.domain.models import InstallmentLine, InstallmentMode, InstallmentPlan
from ledger_core.utils.date_utils import add_months

CENT = Decimal("0.01")
NATURES = ("inflow", "outflow")


def parse_amount(value: Any) -> Decimal:
    """Decimal from a request value; floats go through str() to avoid binary noise"""
    if value is None or isinstance(value, bool):
        raise ValidationError("Amount is required")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValidationError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount


def apply_nature(amount: Any, nature: Optional[str]) -> Decimal:
    """
    Sign-normalize a user-entered amount before splitting.

    Ledger convention: outflows are positive, inflows negative.
    """
    if nature not in NATURES:
        raise ValidationError("Invalid transaction type")
    value = parse_amount(amount)
    return -value if nature == "inflow" else value


def parse_mode(mode: Any) -> InstallmentMode:
    if mode is None or mode == "":
        return InstallmentMode(settings.default_installment_mode)
    try:
        return InstallmentMode(mode)
    except ValueError as e:
        raise ValidationError(f"Unknown installment mode: {mode!r}") from e


def normalize_count(count: Any) -> int:
    """Clamp low counts to 1, reject counts above the configured maximum"""
    try:
        value = int(count) if count is not None else 1
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid installment count: {count!r}") from e

    if value < 1:
        value = 1
    if value > settings.max_installments:
        raise ValidationError(f"Installments must be between 1 and {settings.max_installments}")
    return value


def divide_amount(principal: Decimal, count: int) -> List[Decimal]:
    """
    Split a cent-precision principal into count amounts that sum to it exactly.

    Works in integer cents, truncating any sub-cent fraction, so the lines
    never add up to more than the principal. The first `remainder`
    installments carry the extra cent and every amount keeps the
    principal's sign.

    Example:
        -100.00 / 3 -> 10000 cents, quotient 3333, remainder 1
        -> [-33.34, -33.33, -33.33]
    """
    sign = 1 if principal >= 0 else -1
    cents = int((abs(principal) * 100).to_integral_value(rounding=ROUND_DOWN))
    quotient, remainder = divmod(cents, count)

    amounts = []
    for i in range(count):
        inst_cents = quotient + (1 if i < remainder else 0)
        amounts.append((Decimal(inst_cents) * CENT) * sign)
    return amounts


def split(
    principal: Any,
    count: Any,
    mode: Any,
    start_date: date,
    base_name: Optional[str],
    group_id: Optional[str] = None,
) -> InstallmentPlan:
    """
    Build an installment plan for one transaction.

    Requirements:
    - count below 1 becomes 1, above the maximum (12) is a ValidationError
    - divide: exact-cent split, sum equals the principal
    - replicate: each period repeats the full principal
    - period i (0-based) is dated start_date + i months, labelled "(i+1/count)"
    - all lines share one group token

    Nothing is produced unless every input validates.
    """
    amount = parse_amount(principal)
    inst_count = normalize_count(count)
    inst_mode = parse_mode(mode)

    if inst_mode == InstallmentMode.REPLICATE:
        amounts = [amount] * inst_count
    else:
        amounts = divide_amount(amount, inst_count)

    name = base_name or ""
    lines = []
    for i, inst_amount in enumerate(amounts):
        suffix = f"({i + 1}/{inst_count})"
        lines.append(
            InstallmentLine(
                index=i + 1,
                amount=inst_amount,
                date=add_months(start_date, i),
                label_suffix=suffix,
                name=f"{name} {suffix}",
            )
        )

    return InstallmentPlan(
        group_id=group_id or str(uuid.uuid4()),
        mode=inst_mode,
        lines=lines,
    )

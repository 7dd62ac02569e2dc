"""Domain models - pure Python dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from ledger_core.domain.exceptions import ValidationError


@dataclass(frozen=True)
class CreditCardPolicy:
    """Billing settings of a credit card account"""

    due_day: Optional[int] = None  # 1..31, clamped to the month's last day when used
    cutoff_days_before_due: Optional[int] = None

    def __post_init__(self):
        if self.due_day is not None and not 1 <= self.due_day <= 31:
            raise ValidationError(f"Due day must be between 1 and 31, got {self.due_day}")
        if self.cutoff_days_before_due is not None and self.cutoff_days_before_due < 0:
            raise ValidationError(
                f"Cutoff days before due cannot be negative, got {self.cutoff_days_before_due}"
            )


@dataclass(frozen=True)
class BillingCycleResult:
    """Cutoff and payment-due dates for one reference month"""

    cutoff_date: date
    payment_due_date: date


@dataclass(frozen=True)
class CycleStamp:
    """Locked payment month to persist on a transaction"""

    billing_cycle_month: date
    locked_at: datetime


class DuplicateConfidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class DuplicateSuggestion:
    """Pending-vs-posted match candidate awaiting merge or dismissal"""

    entry_id: str
    reason: Optional[str] = None
    confidence: DuplicateConfidence = DuplicateConfidence.MEDIUM
    posted_amount: Optional[Decimal] = None
    dismissed: bool = False
    # Matcher map as stored; its keys are written back untouched
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def to_extra(self) -> Dict[str, Any]:
        data: Dict[str, Any]
        if self.raw:
            data = dict(self.raw)
        else:
            data = {
                "entry_id": self.entry_id,
                "reason": self.reason,
                "confidence": self.confidence.value,
            }
            if self.posted_amount is not None:
                data["posted_amount"] = str(self.posted_amount)
        data["dismissed"] = self.dismissed
        return data


class InstallmentMode(str, Enum):
    DIVIDE = "divide"  # principal split across periods
    REPLICATE = "replicate"  # full principal repeated each period


@dataclass(frozen=True)
class InstallmentTag:
    """Marks a transaction as one period of an installment group"""

    group_id: str
    index: int  # 1-based
    total: int
    mode: InstallmentMode

    def to_extra(self) -> Dict[str, Any]:
        return {
            "installment_group": self.group_id,
            "installment_index": self.index,
            "installments_total": self.total,
            "installment_mode": self.mode.value,
        }


@dataclass(frozen=True)
class InstallmentLine:
    """Single period of an installment plan"""

    index: int  # 1-based
    amount: Decimal
    date: date
    label_suffix: str
    name: str


@dataclass
class InstallmentPlan:
    """Ephemeral split of one amount into dated periods"""

    group_id: str
    mode: InstallmentMode
    lines: List[InstallmentLine]

    def tag_for(self, line: InstallmentLine) -> InstallmentTag:
        return InstallmentTag(
            group_id=self.group_id,
            index=line.index,
            total=len(self.lines),
            mode=self.mode,
        )

    @property
    def total_amount(self) -> Decimal:
        return sum((line.amount for line in self.lines), Decimal("0"))


@dataclass
class Transaction:
    """Ledger transaction as seen by the engine"""

    id: Optional[str]
    account_id: Optional[str]
    name: str
    date: date
    amount: Decimal
    currency: str = "USD"
    deferred_to_next_cycle: bool = False
    billing_cycle_month: Optional[date] = None
    billing_cycle_locked_at: Optional[datetime] = None
    duplicate_suggestion: Optional[DuplicateSuggestion] = None
    installment: Optional[InstallmentTag] = None
    extra: Dict[str, Any] = field(default_factory=dict)  # provider keys not modelled above

    @property
    def is_cycle_locked(self) -> bool:
        return self.billing_cycle_month is not None


@dataclass(frozen=True)
class MergeResult:
    """Outcome of merging a pending entry into its posted counterpart"""

    pending_id: str
    posted_id: str

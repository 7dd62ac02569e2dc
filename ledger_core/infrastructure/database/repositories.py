"""Data access layer for accounts and ledger transactions"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from ledger_core.infrastructure.database.models import Account, LedgerTransaction
from ledger_core.domain.duplicates import SUGGESTION_KEY, read_suggestion
from ledger_core.domain.installments import CENT
from ledger_core.domain.models import (
    CreditCardPolicy,
    CycleStamp,
    InstallmentMode,
    InstallmentTag,
    Transaction,
)

CREDIT_CARD_KIND = "credit_card"
INSTALLMENT_KEYS = ("installment_group", "installment_index", "installments_total", "installment_mode")


def policy_for(account: Account) -> Optional[CreditCardPolicy]:
    """Billing policy of a credit card account, None for any other account kind"""
    if account.kind != CREDIT_CARD_KIND:
        return None
    return CreditCardPolicy(
        due_day=account.due_day,
        cutoff_days_before_due=account.cutoff_days_before_due,
    )


def read_installment_tag(extra: Dict[str, Any]) -> Optional[InstallmentTag]:
    group_id = extra.get("installment_group")
    if not group_id:
        return None
    try:
        return InstallmentTag(
            group_id=str(group_id),
            index=int(extra["installment_index"]),
            total=int(extra["installments_total"]),
            mode=InstallmentMode(extra.get("installment_mode") or InstallmentMode.DIVIDE.value),
        )
    except (KeyError, TypeError, ValueError):
        return None


def to_domain(row: LedgerTransaction) -> Transaction:
    """Row -> domain transaction, parsing typed metadata out of the extra map"""
    extra = dict(row.extra or {})
    suggestion = read_suggestion(extra)
    installment = read_installment_tag(extra)

    extra.pop(SUGGESTION_KEY, None)
    for key in INSTALLMENT_KEYS:
        extra.pop(key, None)

    return Transaction(
        id=row.id,
        account_id=row.account_id,
        name=row.name,
        date=row.date,
        amount=Decimal(row.amount).quantize(CENT),
        currency=row.currency,
        deferred_to_next_cycle=bool(row.deferred_to_next_cycle),
        billing_cycle_month=row.billing_cycle_month,
        billing_cycle_locked_at=row.billing_cycle_locked_at,
        duplicate_suggestion=suggestion,
        installment=installment,
        extra=extra,
    )


def to_extra(transaction: Transaction) -> Dict[str, Any]:
    """Domain metadata -> JSON map, keeping unrelated provider keys"""
    extra = dict(transaction.extra)
    if transaction.duplicate_suggestion is not None:
        extra[SUGGESTION_KEY] = transaction.duplicate_suggestion.to_extra()
    if transaction.installment is not None:
        extra.update(transaction.installment.to_extra())
    return extra


class AccountRepository:
    """Repository for accounts"""

    def __init__(self, db: Session):
        self.db = db

    def create_account(
        self,
        name: str,
        kind: str = "depository",
        currency: str = "USD",
        due_day: Optional[int] = None,
        cutoff_days_before_due: Optional[int] = None,
    ) -> Account:
        """
        Stage a new account.

        Raises:
            ValidationError: due day outside 1..31 or negative cutoff days
        """
        CreditCardPolicy(due_day=due_day, cutoff_days_before_due=cutoff_days_before_due)
        db_account = Account(
            name=name,
            kind=kind,
            currency=currency,
            due_day=due_day,
            cutoff_days_before_due=cutoff_days_before_due,
        )
        self.db.add(db_account)
        self.db.flush()
        return db_account

    def get_account(self, account_id: str) -> Optional[Account]:
        return self.db.get(Account, account_id)


class TransactionRepository:
    """Repository for ledger transactions"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, transaction: Transaction) -> LedgerTransaction:
        """Stage a new transaction and flush to obtain its id"""
        db_txn = LedgerTransaction(
            account_id=transaction.account_id,
            name=transaction.name,
            date=transaction.date,
            amount=transaction.amount,
            currency=transaction.currency,
            deferred_to_next_cycle=transaction.deferred_to_next_cycle,
            billing_cycle_month=transaction.billing_cycle_month,
            billing_cycle_locked_at=transaction.billing_cycle_locked_at,
            extra=to_extra(transaction),
        )
        self.db.add(db_txn)
        self.db.flush()
        return db_txn

    def get(self, transaction_id: str) -> Optional[LedgerTransaction]:
        return self.db.get(LedgerTransaction, transaction_id)

    def get_for_update(self, transaction_id: str) -> Optional[LedgerTransaction]:
        """Load a transaction with a row lock so read-modify-write cannot interleave"""
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.id == transaction_id)
            .with_for_update()
            .first()
        )

    def list_by_group(self, account_id: str, group_id: str) -> List[LedgerTransaction]:
        """Installments of one group, in period order"""
        # JSON path queries differ per dialect, so the group filter runs in Python
        rows = self.db.query(LedgerTransaction).filter(LedgerTransaction.account_id == account_id).all()
        matching = [row for row in rows if (row.extra or {}).get("installment_group") == group_id]
        return sorted(matching, key=lambda row: (row.extra or {}).get("installment_index", 0))

    def apply_stamp(self, row: LedgerTransaction, stamp: CycleStamp) -> None:
        row.billing_cycle_month = stamp.billing_cycle_month
        row.billing_cycle_locked_at = stamp.locked_at
        self.db.flush()

    def write_metadata(self, row: LedgerTransaction, transaction: Transaction) -> None:
        # Reassign rather than mutate so the JSON column is marked dirty
        row.extra = to_extra(transaction)
        self.db.flush()

    def delete(self, transaction_id: str) -> None:
        row = self.get(transaction_id)
        if row is not None:
            self.db.delete(row)
            self.db.flush()

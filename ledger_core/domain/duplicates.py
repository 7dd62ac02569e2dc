"""Pending/posted duplicate suggestions: read, merge, dismiss, clear"""

from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional

from ledger_core.domain.exceptions import NotFoundError
from ledger_core.domain.models import DuplicateConfidence, DuplicateSuggestion, MergeResult, Transaction


SUGGESTION_KEY = "potential_posted_match"
PENDING_PROVIDERS = ("simplefin", "plaid")


def read_suggestion(extra: Optional[Mapping[str, Any]]) -> Optional[DuplicateSuggestion]:
    """
    Parse the suggestion stored in a transaction's metadata map.

    Unknown or missing confidence falls back to medium. A record without an
    entry_id is still a suggestion (it can be dismissed) but can never merge.
    The stored map is kept on the suggestion so matcher-specific keys survive
    a dismissal.
    """
    if not isinstance(extra, Mapping):
        return None
    data = extra.get(SUGGESTION_KEY)
    if not isinstance(data, Mapping) or not data:
        return None

    try:
        confidence = DuplicateConfidence(data.get("confidence") or DuplicateConfidence.MEDIUM.value)
    except ValueError:
        confidence = DuplicateConfidence.MEDIUM

    posted_amount = None
    raw_amount = data.get("posted_amount")
    if raw_amount is not None:
        try:
            posted_amount = Decimal(str(raw_amount))
        except InvalidOperation:
            posted_amount = None

    entry_id = data.get("entry_id")
    return DuplicateSuggestion(
        entry_id=str(entry_id) if entry_id is not None else "",
        reason=data.get("reason"),
        confidence=confidence,
        posted_amount=posted_amount,
        dismissed=data.get("dismissed") is True,
        raw=dict(data),
    )


def has_active_suggestion(transaction: Optional[Transaction]) -> bool:
    if transaction is None or transaction.duplicate_suggestion is None:
        return False
    return not transaction.duplicate_suggestion.dismissed


def is_low_confidence(suggestion: DuplicateSuggestion) -> bool:
    return suggestion.confidence == DuplicateConfidence.LOW


def is_pending(transaction: Transaction) -> bool:
    """True when any provider marks the transaction as pending"""
    for provider in PENDING_PROVIDERS:
        data = transaction.extra.get(provider)
        if isinstance(data, Mapping) and _truthy(data.get("pending")):
            return True
    return False


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "t", "yes")
    return bool(value)


def attach(transaction: Transaction, suggestion: DuplicateSuggestion) -> Transaction:
    """Attach a matcher suggestion, replacing any previous one"""
    return replace(transaction, duplicate_suggestion=suggestion)


def merge(
    transaction: Optional[Transaction],
    lookup_entry: Callable[[str], Optional[Any]],
    delete_entry: Callable[[str], None],
) -> MergeResult:
    """
    Merge a pending transaction into its suggested posted counterpart.

    The posted entry is canonical, so the pending entry is deleted outright.
    A second merge sees no transaction and raises NotFoundError.

    Raises:
        NotFoundError: transaction missing, no active suggestion, or posted
            entry not found
    """
    if transaction is None:
        raise NotFoundError("Transaction not found")
    if not has_active_suggestion(transaction):
        raise NotFoundError(f"Transaction {transaction.id} has no active duplicate suggestion")

    suggestion = transaction.duplicate_suggestion
    posted = lookup_entry(suggestion.entry_id) if suggestion.entry_id else None
    if posted is None:
        raise NotFoundError(f"Posted entry {suggestion.entry_id or '<missing>'} not found")

    delete_entry(transaction.id)
    return MergeResult(pending_id=transaction.id, posted_id=suggestion.entry_id)


def dismiss(transaction: Transaction) -> Transaction:
    """
    Mark the suggestion as not-a-duplicate. Idempotent.

    Raises:
        NotFoundError: no suggestion is attached
    """
    suggestion = transaction.duplicate_suggestion
    if suggestion is None:
        raise NotFoundError(f"Transaction {transaction.id} has no duplicate suggestion")
    if suggestion.dismissed:
        return transaction
    return replace(transaction, duplicate_suggestion=replace(suggestion, dismissed=True))


def clear(transaction: Transaction) -> Transaction:
    """Drop the suggestion entirely, e.g. when a rematch made it stale"""
    return replace(transaction, duplicate_suggestion=None)

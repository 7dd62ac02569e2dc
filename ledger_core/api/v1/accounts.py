"""Account endpoints - credit card cycle dates and installment groups"""

from datetime import date
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ledger_core.api.v1.schemas import BillingCycleResponse, InstallmentGroupResponse
from ledger_core.api.v1.transactions import build_response
from ledger_core.api.dependencies import get_transaction_service
from ledger_core.services.transactions import TransactionService
from ledger_core.domain.exceptions import NotFoundError, ValidationError

router = APIRouter()


@router.get("/accounts/{account_id}/billing_cycle", response_model=BillingCycleResponse)
def get_billing_cycle(
    account_id: str,
    reference_date: Optional[date] = Query(None, description="Any day of the requested month (default: today)"),
    service: TransactionService = Depends(get_transaction_service),
):
    """
    Cutoff and payment-due dates for a month, plus the cycle window paid on that due date.

    Accounts that are not credit cards, or cards without a due day, return
    empty dates.
    """
    reference_date = reference_date or date.today()

    try:
        cycle, window = service.billing_cycle_for_account(account_id, reference_date)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return BillingCycleResponse(
        account_id=account_id,
        reference_date=reference_date,
        cutoff_date=cycle.cutoff_date if cycle else None,
        payment_due_date=cycle.payment_due_date if cycle else None,
        cycle_start=window[0] if window else None,
        cycle_end=window[1] if window else None,
    )


@router.get("/accounts/{account_id}/installments/{group_id}", response_model=InstallmentGroupResponse)
def get_installment_group(
    account_id: str,
    group_id: str,
    service: TransactionService = Depends(get_transaction_service),
):
    """All periods of one installment plan with their payment due dates"""
    try:
        periods = service.installment_group(account_id, group_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return InstallmentGroupResponse(
        group_id=group_id,
        total_amount=sum((info.transaction.amount for info in periods), Decimal("0")),
        transactions=[build_response(info) for info in periods],
    )

"""Transaction endpoints - create (with installments), update, duplicate resolution"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from ledger_core.api.v1.schemas import (
    DuplicateSuggestionSchema,
    InstallmentSchema,
    MergeResponse,
    TransactionCreateRequest,
    TransactionCreateResponse,
    TransactionResponse,
    TransactionUpdateRequest,
)
from ledger_core.api.dependencies import get_request_id, get_transaction_service
from ledger_core.services.transactions import PaymentInfo, TransactionService
from ledger_core.domain import duplicates
from ledger_core.domain.exceptions import InstallmentBatchError, NotFoundError, ValidationError

router = APIRouter()


def to_response(service: TransactionService, transaction_id: str) -> TransactionResponse:
    return build_response(service.payment_info(transaction_id))


def build_response(info: PaymentInfo) -> TransactionResponse:
    txn = info.transaction
    suggestion = txn.duplicate_suggestion
    installment = txn.installment

    return TransactionResponse(
        id=txn.id,
        account_id=txn.account_id,
        name=txn.name,
        date=txn.date,
        amount=txn.amount,
        currency=txn.currency,
        deferred_to_next_cycle=txn.deferred_to_next_cycle,
        billing_cycle_month=txn.billing_cycle_month,
        billing_cycle_locked_at=txn.billing_cycle_locked_at,
        payment_due_date=info.payment_due_date,
        deferred_badge=info.deferred_badge,
        cycle_locked=txn.is_cycle_locked,
        pending=duplicates.is_pending(txn),
        duplicate_suggestion=DuplicateSuggestionSchema(
            entry_id=suggestion.entry_id,
            reason=suggestion.reason,
            confidence=suggestion.confidence.value,
            posted_amount=suggestion.posted_amount,
            dismissed=suggestion.dismissed,
            low_confidence=duplicates.is_low_confidence(suggestion),
        )
        if suggestion
        else None,
        installment=InstallmentSchema(
            group_id=installment.group_id,
            index=installment.index,
            total=installment.total,
            mode=installment.mode.value,
        )
        if installment
        else None,
    )


@router.post("/transactions", response_model=TransactionCreateResponse, status_code=201)
def create_transaction(
    request_body: TransactionCreateRequest,
    request: Request,
    service: TransactionService = Depends(get_transaction_service),
):
    """
    Create a transaction, split into installments when installments_count > 1.

    Flow:
    1. Sign the amount from its nature (inflow/outflow)
    2. Split into exact-cent (divide) or repeated (replicate) periods
    3. Persist all periods and lock their billing cycles atomically
    """
    request_id = get_request_id(request)

    try:
        created = service.create_transaction(
            account_id=request_body.account_id,
            name=request_body.name,
            txn_date=request_body.date,
            amount=request_body.amount,
            nature=request_body.nature,
            currency=request_body.currency,
            installments_count=request_body.installments_count,
            installment_mode=request_body.installment_mode,
            deferred_to_next_cycle=request_body.deferred_to_next_cycle,
            request_id=request_id,
        )

    except ValidationError as e:
        logging.warning(f"Rejected transaction: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except InstallmentBatchError as e:
        logging.error(f"Installment batch rolled back: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Could not create transactions")

    return TransactionCreateResponse(transactions=[to_response(service, txn.id) for txn in created])


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: str, service: TransactionService = Depends(get_transaction_service)):
    try:
        return to_response(service, transaction_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.patch("/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: str,
    request_body: TransactionUpdateRequest,
    service: TransactionService = Depends(get_transaction_service),
):
    """Edit a transaction; toggling deferred_to_next_cycle relocks its billing cycle"""
    try:
        service.update_transaction(
            transaction_id,
            name=request_body.name,
            amount=request_body.amount,
            deferred_to_next_cycle=request_body.deferred_to_next_cycle,
            nature=request_body.nature,
        )
        return to_response(service, transaction_id)

    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/transactions/{transaction_id}/merge_duplicate", response_model=MergeResponse)
def merge_duplicate(
    transaction_id: str,
    request: Request,
    service: TransactionService = Depends(get_transaction_service),
):
    """Delete the pending entry; its suggested posted entry becomes canonical"""
    request_id = get_request_id(request)

    try:
        result = service.merge_duplicate(transaction_id, request_id=request_id)
    except NotFoundError as e:
        logging.warning(f"Merge failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    return MergeResponse(merged=True, pending_id=result.pending_id, posted_id=result.posted_id)


@router.post("/transactions/{transaction_id}/dismiss_duplicate", response_model=TransactionResponse)
def dismiss_duplicate(
    transaction_id: str,
    request: Request,
    service: TransactionService = Depends(get_transaction_service),
):
    """Mark the duplicate suggestion as not-a-duplicate"""
    try:
        service.dismiss_duplicate(transaction_id, request_id=get_request_id(request))
        return to_response(service, transaction_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional


class TransactionCreateRequest(BaseModel):
    """Request body for POST /v1/transactions"""

    account_id: str = Field(..., min_length=1, description="Account identifier")
    name: str = Field("", description="Transaction name; installments get an (i/n) suffix")
    date: date
    amount: Decimal = Field(..., description="Unsigned amount as entered by the user")
    nature: str = Field(..., description="inflow | outflow")
    currency: Optional[str] = None
    installments_count: int = Field(1, description="Number of periods; values below 1 mean 1")
    installment_mode: Optional[Literal["divide", "replicate"]] = None
    deferred_to_next_cycle: bool = False


class TransactionUpdateRequest(BaseModel):
    """Request body for PATCH /v1/transactions/{transaction_id}"""

    name: Optional[str] = None
    amount: Optional[Decimal] = Field(None, description="Magnitude; signed by nature, or by the stored direction")
    nature: Optional[str] = Field(None, description="inflow | outflow; omitted keeps the current direction")
    deferred_to_next_cycle: Optional[bool] = None


class DuplicateSuggestionSchema(BaseModel):
    entry_id: str
    reason: Optional[str] = None
    confidence: str = "medium"
    posted_amount: Optional[Decimal] = None
    dismissed: bool = False
    low_confidence: bool = False


class InstallmentSchema(BaseModel):
    group_id: str
    index: int
    total: int
    mode: str


class TransactionResponse(BaseModel):
    """Single ledger transaction"""

    id: str
    account_id: str
    name: str
    date: date
    amount: Decimal
    currency: str
    deferred_to_next_cycle: bool
    billing_cycle_month: Optional[date] = None
    billing_cycle_locked_at: Optional[datetime] = None
    payment_due_date: Optional[date] = None
    deferred_badge: bool = False
    cycle_locked: bool = False
    pending: bool = False
    duplicate_suggestion: Optional[DuplicateSuggestionSchema] = None
    installment: Optional[InstallmentSchema] = None


class InstallmentGroupResponse(BaseModel):
    """Response for GET /v1/accounts/{account_id}/installments/{group_id}"""

    group_id: str
    total_amount: Decimal
    transactions: List[TransactionResponse]


class TransactionCreateResponse(BaseModel):
    """Response for POST /v1/transactions"""

    transactions: List[TransactionResponse]


class MergeResponse(BaseModel):
    """Response for POST /v1/transactions/{transaction_id}/merge_duplicate"""

    merged: bool
    pending_id: str
    posted_id: str


class BillingCycleResponse(BaseModel):
    """Response for GET /v1/accounts/{account_id}/billing_cycle"""

    account_id: str
    reference_date: date
    cutoff_date: Optional[date] = None
    payment_due_date: Optional[date] = None
    cycle_start: Optional[date] = None
    cycle_end: Optional[date] = None

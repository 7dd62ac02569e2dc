"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ledger_core.infrastructure.database.session import get_db
from ledger_core.services.transactions import TransactionService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_transaction_service(db: Session = Depends(get_db)) -> TransactionService:
    """Provide a transaction service bound to the request's session"""
    return TransactionService(db)

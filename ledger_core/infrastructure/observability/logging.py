"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from ledger_core.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_installments_created(
    request_id: Optional[str],
    account_id: str,
    group_id: str,
    mode: str,
    count: int,
) -> None:
    """Log a committed installment batch"""
    logging.info(
        "Installments created",
        extra={
            "request_id": request_id,
            "account_id": account_id,
            "step": "installments_created",
            "installment_group": group_id,
            "installment_mode": mode,
            "installments_total": count,
        },
    )


def log_duplicate_resolution(
    request_id: Optional[str],
    transaction_id: str,
    action: str,
    posted_entry_id: Optional[str] = None,
) -> None:
    """Log a user merge/dismiss/clear of a duplicate suggestion"""
    logging.info(
        "Duplicate suggestion resolved",
        extra={
            "request_id": request_id,
            "transaction_id": transaction_id,
            "step": "duplicate_resolution",
            "action": action,
            "posted_entry_id": posted_entry_id,
        },
    )


def log_cycle_locked(transaction_id: str, billing_cycle_month: str, reason: str) -> None:
    """Log a billing cycle lock or relock"""
    logging.debug(
        "Billing cycle locked",
        extra={
            "transaction_id": transaction_id,
            "step": "cycle_lock",
            "billing_cycle_month": billing_cycle_month,
            "reason": reason,
        },
    )

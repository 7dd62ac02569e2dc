"""SQLAlchemy ORM models for accounts and ledger transactions"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Date, Integer, ForeignKey, Numeric, Text, JSON
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    """Ledger account; credit cards carry billing cycle settings"""

    __tablename__ = "account"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(Text, nullable=False)
    kind = Column(Text, nullable=False, default="depository")  # credit_card | depository | ...
    currency = Column(String(3), nullable=False, default="USD")
    due_day = Column(Integer, nullable=True)  # 1-31
    cutoff_days_before_due = Column(Integer, nullable=True, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    transactions = relationship("LedgerTransaction", back_populates="account", cascade="all, delete-orphan")


class LedgerTransaction(Base):
    """Single ledger entry with billing cycle lock and free-form provider metadata"""

    __tablename__ = "ledger_transaction"

    id = Column(String(36), primary_key=True, default=_new_id)
    account_id = Column(String(36), ForeignKey("account.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False, default="")
    date = Column(Date, nullable=False)
    amount = Column(Numeric(19, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    deferred_to_next_cycle = Column(Boolean, nullable=False, default=False, index=True)
    billing_cycle_month = Column(Date, nullable=True, index=True)  # Payment month, locked at creation
    billing_cycle_locked_at = Column(DateTime(timezone=True), nullable=True)
    extra = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    account = relationship("Account", back_populates="transactions")

"""
Balance reconciliation for bank accounts.

An account's cached ``balance`` must always equal its opening balance plus the
signed amounts of the transactions linked to it. Every mutation of a
transaction is described as a move from an old ledger state to a new one
(either side may be absent) and the difference is applied to the affected
account rows inside the caller's database transaction.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional

from sqlmodel import Session, select, func

from .errors import InvalidFieldError, NotFoundError
from .models import BankAccount, Transaction, TransactionType

CENT = Decimal("0.01")


@dataclass(frozen=True)
class LedgerState:
    """The part of a transaction that contributes to an account balance."""
    account_id: Optional[str]
    amount: Decimal
    type: TransactionType

    @classmethod
    def of(cls, tx: Transaction) -> "LedgerState":
        return cls(tx.bank_account_id, tx.amount, TransactionType(tx.type))


def parse_money(value: Any, field: str = "amount") -> Decimal:
    """Parse a JSON number or numeric string into a cent-quantized Decimal."""
    if value is None or isinstance(value, bool):
        raise InvalidFieldError(field, f"{field} is required")
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidFieldError(field, f"{field} must be a number")
    if not parsed.is_finite():
        raise InvalidFieldError(field, f"{field} must be a number")
    return parsed.quantize(CENT, rounding=ROUND_HALF_UP)

def parse_amount(value: Any) -> Decimal:
    amount = parse_money(value, "amount")
    if amount <= 0:
        raise InvalidFieldError("amount", "amount must be a positive number")
    return amount

def parse_type(value: Any, field: str = "type") -> TransactionType:
    try:
        return TransactionType(value)
    except ValueError:
        raise InvalidFieldError(field, f"{field} must be INCOME or EXPENSE")


def signed_amount(amount: Decimal, type_: TransactionType) -> Decimal:
    return amount if type_ == TransactionType.INCOME else -amount

def compute_deltas(old: Optional[LedgerState], new: Optional[LedgerState]) -> Dict[str, Decimal]:
    """
    Balance changes needed to move from ``old`` to ``new``.

    The old contribution is always reversed before the new one is applied, so
    flipping INCOME to EXPENSE on the same account moves the balance by twice
    the amount, and a reassignment touches both accounts.
    """
    deltas: Dict[str, Decimal] = {}
    if old is not None and old.account_id:
        deltas[old.account_id] = deltas.get(old.account_id, Decimal("0")) - signed_amount(old.amount, old.type)
    if new is not None and new.account_id:
        deltas[new.account_id] = deltas.get(new.account_id, Decimal("0")) + signed_amount(new.amount, new.type)
    return {account_id: delta for account_id, delta in deltas.items() if delta != 0}

def lock_account(session: Session, account_id: str, user_id: str) -> BankAccount:
    """Load an account owned by ``user_id`` with a row lock held until commit."""
    acc = session.exec(
        select(BankAccount).where(BankAccount.id == account_id).with_for_update()
    ).first()
    if not acc or acc.user_id != user_id:
        raise NotFoundError("Bank account not found")
    return acc

def apply_deltas(session: Session, deltas: Dict[str, Decimal], user_id: str) -> Dict[str, BankAccount]:
    touched: Dict[str, BankAccount] = {}
    # stable lock order across concurrent requests
    for account_id in sorted(deltas):
        acc = lock_account(session, account_id, user_id)
        acc.balance = acc.balance + deltas[account_id]
        session.add(acc)
        touched[account_id] = acc
    return touched


def expected_balance(session: Session, account: BankAccount) -> Decimal:
    """Recompute what the cached balance should be from the linked transactions."""
    totals = session.exec(
        select(Transaction.type, func.sum(Transaction.amount))
        .where(Transaction.bank_account_id == account.id)
        .group_by(Transaction.type)
    ).all()
    balance = Decimal(account.opening_balance)
    for type_, total in totals:
        balance += signed_amount(Decimal(str(total or 0)), TransactionType(type_))
    return balance.quantize(CENT)

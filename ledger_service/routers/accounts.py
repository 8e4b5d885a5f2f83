from fastapi import APIRouter, Depends
from sqlmodel import Session, select, func, col

from ..db import get_session
from ..errors import InvalidFieldError, NotFoundError
from ..logger import get_logger
from ..models import BankAccount, Transaction
from ..reconciler import parse_money
from ..schemas import BankAccountIn, account_out
from ..security import get_user

router = APIRouter(prefix="/bank-accounts", tags=["bank-accounts"])
log = get_logger("accounts")

@router.get("")
def list_accounts(user=Depends(get_user), session: Session = Depends(get_session)):
    accounts = session.exec(
        select(BankAccount).where(BankAccount.user_id == user).order_by(BankAccount.created_at)
    ).all()
    counts = dict(session.exec(
        select(Transaction.bank_account_id, func.count(Transaction.id))
        .where(Transaction.user_id == user, col(Transaction.bank_account_id).is_not(None))
        .group_by(Transaction.bank_account_id)
    ).all())
    return [account_out(acc, counts.get(acc.id, 0)) for acc in accounts]

@router.post("", status_code=201)
def create_account(body: BankAccountIn, user=Depends(get_user), session: Session = Depends(get_session)):
    if not body.name or not body.name.strip():
        raise InvalidFieldError("name", "name is required")
    opening = parse_money(body.balance if body.balance not in (None, "") else "0", "balance")
    acc = BankAccount(
        user_id=user,
        name=body.name.strip(),
        institution=body.institution,
        type=body.type,
        currency=body.currency,
        color=body.color,
        opening_balance=opening,
        balance=opening,
    )
    session.add(acc)
    session.commit()
    session.refresh(acc)
    log.info(f"Created bank account: account_id={acc.id} user_id={user}")
    return account_out(acc, 0)

@router.get("/{acc_id}")
def get_account(acc_id: str, user=Depends(get_user), session: Session = Depends(get_session)):
    acc = session.get(BankAccount, acc_id)
    if not acc or acc.user_id != user:
        raise NotFoundError("Account not found")
    count = session.exec(
        select(func.count(Transaction.id)).where(Transaction.bank_account_id == acc.id)
    ).one()
    return account_out(acc, count)

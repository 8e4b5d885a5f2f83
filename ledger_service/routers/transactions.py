from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import ledger
from ..db import get_session
from ..schemas import TransactionIn
from ..security import get_user
from ..storage import StorageBackend, get_storage

router = APIRouter(prefix="/transactions", tags=["transactions"])

@router.get("")
def list_transactions(
    month: Optional[int] = None,
    year: Optional[int] = None,
    bank_account_id: Optional[str] = Query(None, alias="bankAccountId"),
    user=Depends(get_user),
    session: Session = Depends(get_session),
):
    transactions = ledger.list_transactions(session, user, month, year, bank_account_id)
    return ledger.serialize(session, transactions)

@router.post("", status_code=201)
def create_transaction(body: TransactionIn, user=Depends(get_user), session: Session = Depends(get_session)):
    tx = ledger.create_transaction(session, user, body)
    return ledger.serialize(session, [tx])[0]

@router.put("/{tx_id}")
def update_transaction(
    tx_id: str,
    body: TransactionIn,
    user=Depends(get_user),
    session: Session = Depends(get_session),
    storage: StorageBackend = Depends(get_storage),
):
    tx = ledger.update_transaction(session, user, tx_id, body, storage)
    return ledger.serialize(session, [tx])[0]

@router.delete("/{tx_id}")
def delete_transaction(
    tx_id: str,
    user=Depends(get_user),
    session: Session = Depends(get_session),
    storage: StorageBackend = Depends(get_storage),
):
    ledger.delete_transaction(session, user, tx_id, storage)
    return {"success": True}

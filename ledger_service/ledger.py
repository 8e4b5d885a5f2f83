"""
Transaction create/update/delete as single atomic units.

Each operation validates its input, checks ownership, then performs every
write (transaction row, account balances, documents) in one session and
commits once. Any failure rolls the whole unit back.
"""

import calendar
import datetime as dt
from contextlib import contextmanager
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select, col

from .errors import ForbiddenError, InvalidFieldError, LedgerError, NotFoundError, StorageFailure
from .logger import get_logger
from .models import BankAccount, Document, Transaction, utcnow
from .reconciler import (
    LedgerState,
    apply_deltas,
    compute_deltas,
    parse_amount,
    parse_type,
)
from .schemas import DocumentIn, TransactionIn, transaction_out
from .storage import PROXY_PREFIX, StorageBackend, discard_files, document_key, normalize_document_url

log = get_logger("ledger")


@contextmanager
def atomic(session: Session, operation: str, user_id: str, tx_id: Optional[str] = None):
    bound = log.bind(operation=operation, user_id=user_id, tx_id=tx_id)
    try:
        yield
        session.commit()
    except LedgerError as e:
        session.rollback()
        bound.warning(f"{operation} transaction rejected: tx_id={tx_id} user_id={user_id} error={e.message}")
        raise
    except SQLAlchemyError:
        session.rollback()
        bound.exception(f"{operation} transaction failed: tx_id={tx_id} user_id={user_id}")
        raise StorageFailure(f"Failed to {operation} transaction")


def _required_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidFieldError(field, f"{field} is required")
    return str(value).strip()

def owned_query(tx_id: str):
    # row stays locked until the unit commits or rolls back
    return select(Transaction).where(Transaction.id == tx_id).with_for_update()

def _load_owned(session: Session, tx_id: str, user_id: str) -> Transaction:
    tx = session.exec(owned_query(tx_id)).first()
    if not tx:
        raise NotFoundError("Transaction not found")
    if tx.user_id != user_id:
        raise ForbiddenError("Forbidden")
    return tx

def _documents(session: Session, tx_id: str) -> List[Document]:
    return list(session.exec(
        select(Document).where(Document.transaction_id == tx_id).order_by(Document.position)
    ).all())

def _attach_documents(session: Session, tx_id: str, documents: List[DocumentIn]):
    for position, doc in enumerate(documents):
        session.add(Document(
            transaction_id=tx_id,
            url=normalize_document_url(doc.url),
            file_name=doc.file_name,
            mime_type=doc.mime_type,
            position=position,
        ))

def _remove_documents(session: Session, tx_id: str) -> List[str]:
    """Delete the transaction's documents and return their storage keys."""
    keys = []
    for doc in _documents(session, tx_id):
        key = document_key(doc.url)
        if key:
            keys.append(key)
        session.delete(doc)
    session.flush()
    return keys

def _orphaned(session: Session, keys: List[str]) -> List[str]:
    """Keys whose proxy URL no remaining document references."""
    if not keys:
        return []
    urls = [PROXY_PREFIX + key for key in keys]
    still_used = set(session.exec(select(Document.url).where(col(Document.url).in_(urls))).all())
    return [key for key in keys if PROXY_PREFIX + key not in still_used]

def _release_files(storage: Optional[StorageBackend], keys: List[str]):
    if storage is not None and keys:
        discard_files(storage, keys)


def create_transaction(session: Session, user_id: str, body: TransactionIn) -> Transaction:
    with atomic(session, "create", user_id):
        tx = Transaction(
            user_id=user_id,
            bank_account_id=body.bank_account_id or None,
            title=_required_text(body.title, "title"),
            description=body.description or None,
            amount=parse_amount(body.amount),
            type=parse_type(body.type),
            category=_required_text(body.category, "category"),
            date=body.date or dt.date.today(),
        )
        # balances first so a missing account fails before the insert is flushed
        apply_deltas(session, compute_deltas(None, LedgerState.of(tx)), user_id)
        session.add(tx)
        session.flush()
        if body.documents:
            _attach_documents(session, tx.id, body.documents)
    session.refresh(tx)
    log.info(f"Created transaction: tx_id={tx.id} user_id={user_id} account={tx.bank_account_id}")
    return tx

def update_transaction(
    session: Session,
    user_id: str,
    tx_id: str,
    body: TransactionIn,
    storage: Optional[StorageBackend] = None,
) -> Transaction:
    supplied = body.model_fields_set
    released: List[str] = []
    with atomic(session, "update", user_id, tx_id):
        tx = _load_owned(session, tx_id, user_id)
        old = LedgerState.of(tx)
        # omitted or empty bankAccountId unlinks the transaction
        new = LedgerState(
            body.bank_account_id or None,
            parse_amount(body.amount) if "amount" in supplied else old.amount,
            parse_type(body.type) if "type" in supplied else old.type,
        )
        title = _required_text(body.title, "title") if "title" in supplied else tx.title
        category = _required_text(body.category, "category") if "category" in supplied else tx.category

        apply_deltas(session, compute_deltas(old, new), user_id)

        tx.title = title
        tx.category = category
        if "description" in supplied:
            tx.description = body.description or None
        if body.date is not None:
            tx.date = body.date
        tx.amount = new.amount
        tx.type = new.type
        tx.bank_account_id = new.account_id
        tx.updated_at = utcnow()
        session.add(tx)

        if body.documents is not None:
            removed = _remove_documents(session, tx.id)
            _attach_documents(session, tx.id, body.documents)
            session.flush()
            released = _orphaned(session, removed)
    session.refresh(tx)
    # stored bytes go only once the commit has succeeded
    _release_files(storage, released)
    log.info(f"Updated transaction: tx_id={tx.id} user_id={user_id} account={tx.bank_account_id}")
    return tx

def delete_transaction(
    session: Session,
    user_id: str,
    tx_id: str,
    storage: Optional[StorageBackend] = None,
) -> None:
    with atomic(session, "delete", user_id, tx_id):
        tx = _load_owned(session, tx_id, user_id)
        apply_deltas(session, compute_deltas(LedgerState.of(tx), None), user_id)
        removed = _remove_documents(session, tx.id)
        session.delete(tx)
        session.flush()
        released = _orphaned(session, removed)
    _release_files(storage, released)
    log.info(f"Deleted transaction: tx_id={tx_id} user_id={user_id}")


def month_bounds(month: int, year: int):
    if not 1 <= month <= 12:
        raise InvalidFieldError("month", "month must be between 1 and 12")
    if not dt.MINYEAR <= year <= dt.MAXYEAR:
        raise InvalidFieldError("year", f"year must be between {dt.MINYEAR} and {dt.MAXYEAR}")
    last_day = calendar.monthrange(year, month)[1]
    return dt.date(year, month, 1), dt.date(year, month, last_day)

def list_transactions(
    session: Session,
    user_id: str,
    month: Optional[int] = None,
    year: Optional[int] = None,
    bank_account_id: Optional[str] = None,
) -> List[Transaction]:
    query = select(Transaction).where(Transaction.user_id == user_id)
    if bank_account_id:
        query = query.where(Transaction.bank_account_id == bank_account_id)
    if month is not None and year is not None:
        start, end = month_bounds(month, year)
        query = query.where(Transaction.date >= start, Transaction.date <= end)
    query = query.order_by(col(Transaction.date).desc(), col(Transaction.created_at).desc())
    return list(session.exec(query).all())

def accounts_by_id(session: Session, transactions: List[Transaction]) -> Dict[str, BankAccount]:
    ids = {tx.bank_account_id for tx in transactions if tx.bank_account_id}
    if not ids:
        return {}
    accounts = session.exec(select(BankAccount).where(col(BankAccount.id).in_(ids))).all()
    return {acc.id: acc for acc in accounts}

def serialize(session: Session, transactions: List[Transaction]) -> List[dict]:
    """Render transactions with their linked account snapshot and documents."""
    accounts = accounts_by_id(session, transactions)
    documents: Dict[str, List[Document]] = {}
    if transactions:
        rows = session.exec(
            select(Document)
            .where(col(Document.transaction_id).in_([tx.id for tx in transactions]))
            .order_by(Document.position)
        ).all()
        for doc in rows:
            documents.setdefault(doc.transaction_id, []).append(doc)
    return [
        transaction_out(tx, accounts.get(tx.bank_account_id), documents.get(tx.id))
        for tx in transactions
    ]

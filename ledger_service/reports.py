import csv
import io
from decimal import Decimal
from typing import Dict, List, Optional

from sqlmodel import Session

from .ledger import accounts_by_id, list_transactions
from .models import Transaction, TransactionType
from .reconciler import signed_amount

CSV_HEADER = ["Date", "Title", "Category", "Type", "Amount", "Account", "Description"]


def _breakdown(totals: Dict[str, Decimal]) -> List[dict]:
    return [
        {"category": category, "total": float(total)}
        for category, total in sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    ]

def monthly_summary(
    session: Session,
    user_id: str,
    month: Optional[int] = None,
    year: Optional[int] = None,
    bank_account_id: Optional[str] = None,
) -> dict:
    """Return income/expense/net totals and per-category breakdowns for the period."""
    transactions = list_transactions(session, user_id, month, year, bank_account_id)
    income = expense = Decimal("0")
    by_category: Dict[TransactionType, Dict[str, Decimal]] = {
        TransactionType.INCOME: {},
        TransactionType.EXPENSE: {},
    }
    for tx in transactions:
        type_ = TransactionType(tx.type)
        if type_ == TransactionType.INCOME:
            income += tx.amount
        else:
            expense += tx.amount
        bucket = by_category[type_]
        bucket[tx.category] = bucket.get(tx.category, Decimal("0")) + tx.amount
    return {
        "month": month,
        "year": year,
        "bankAccountId": bank_account_id,
        "income": float(income),
        "expense": float(expense),
        "net": float(income - expense),
        "count": len(transactions),
        "incomeByCategory": _breakdown(by_category[TransactionType.INCOME]),
        "expenseByCategory": _breakdown(by_category[TransactionType.EXPENSE]),
    }


def export_rows(session: Session, transactions: List[Transaction]) -> List[List[str]]:
    accounts = accounts_by_id(session, transactions)
    rows = [CSV_HEADER]
    for tx in transactions:
        account = accounts.get(tx.bank_account_id)
        rows.append([
            tx.date.isoformat(),
            tx.title,
            tx.category,
            TransactionType(tx.type).value,
            f"{signed_amount(tx.amount, TransactionType(tx.type)):.2f}",
            account.institution if account and account.institution else "N/A",
            tx.description or "",
        ])
    return rows

def export_csv(
    session: Session,
    user_id: str,
    month: Optional[int] = None,
    year: Optional[int] = None,
    bank_account_id: Optional[str] = None,
) -> str:
    transactions = list_transactions(session, user_id, month, year, bank_account_id)
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerows(export_rows(session, transactions))
    return buf.getvalue()

def export_filename(month: Optional[int], year: Optional[int]) -> str:
    if month and year:
        return f"transactions-{year}-{month:02d}.csv"
    return "transactions.csv"

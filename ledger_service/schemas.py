import datetime as dt
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .models import BankAccount, CustomCategory, Document, Transaction

# amounts arrive as JSON numbers or numeric strings and are parsed by the reconciler
Money = Union[Decimal, str, None]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class RegisterIn(CamelModel):
    email: str
    password: str
    name: Optional[str] = None

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"

class BankAccountIn(CamelModel):
    name: Optional[str] = None
    institution: str = ""
    type: str = "checking"
    balance: Money = "0"
    currency: str = "BRL"
    color: Optional[str] = None

class DocumentIn(CamelModel):
    url: str
    file_name: str
    mime_type: str

class TransactionIn(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    amount: Money = None
    type: Optional[str] = None
    category: Optional[str] = None
    date: Optional[dt.date] = None
    bank_account_id: Optional[str] = None
    documents: Optional[List[DocumentIn]] = None

class CategoryIn(CamelModel):
    name: Optional[str] = None
    name_en: Optional[str] = None
    icon: Optional[str] = None
    type: Optional[str] = None


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None

def account_out(acc: BankAccount, transaction_count: Optional[int] = None) -> dict:
    out = {
        "id": acc.id,
        "userId": acc.user_id,
        "name": acc.name,
        "institution": acc.institution,
        "type": acc.type,
        "currency": acc.currency,
        "color": acc.color,
        "openingBalance": float(acc.opening_balance),
        "balance": float(acc.balance),
        "createdAt": _iso(acc.created_at),
    }
    if transaction_count is not None:
        out["transactionCount"] = transaction_count
    return out

def document_out(doc: Document) -> dict:
    return {
        "id": doc.id,
        "transactionId": doc.transaction_id,
        "url": doc.url,
        "fileName": doc.file_name,
        "mimeType": doc.mime_type,
    }

def transaction_out(
    tx: Transaction,
    account: Optional[BankAccount] = None,
    documents: Optional[List[Document]] = None,
) -> dict:
    return {
        "id": tx.id,
        "userId": tx.user_id,
        "title": tx.title,
        "description": tx.description,
        "amount": float(tx.amount),
        "type": tx.type.value if hasattr(tx.type, "value") else tx.type,
        "category": tx.category,
        "date": _iso(tx.date),
        "bankAccountId": tx.bank_account_id,
        "bankAccount": account_out(account) if account else None,
        "documents": [document_out(d) for d in documents or []],
        "createdAt": _iso(tx.created_at),
        "updatedAt": _iso(tx.updated_at),
    }

def category_out(cat: CustomCategory) -> dict:
    return {
        "id": cat.id,
        "userId": cat.user_id,
        "name": cat.name,
        "nameEn": cat.name_en,
        "icon": cat.icon,
        "type": cat.type.value if hasattr(cat.type, "value") else cat.type,
        "createdAt": _iso(cat.created_at),
    }

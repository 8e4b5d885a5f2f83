import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlmodel import Field, SQLModel, Column, String


def new_id() -> str:
    return uuid4().hex

def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(sa_column=Column(String, unique=True, index=True, nullable=False))
    name: Optional[str] = None
    password_hash: str
    created_at: dt.datetime = Field(default_factory=utcnow)

class BankAccount(SQLModel, table=True):
    __tablename__ = "bank_accounts"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    name: str
    institution: str = ""
    type: str = "checking"
    currency: str = "BRL"
    color: Optional[str] = None
    # balance supplied at creation; `balance` is the cached running total
    opening_balance: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    balance: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    created_at: dt.datetime = Field(default_factory=utcnow)

class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    bank_account_id: Optional[str] = Field(default=None, foreign_key="bank_accounts.id", index=True)
    title: str
    description: Optional[str] = None
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    type: TransactionType
    category: str
    date: dt.date = Field(index=True)
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)

class Document(SQLModel, table=True):
    __tablename__ = "documents"

    id: str = Field(default_factory=new_id, primary_key=True)
    transaction_id: str = Field(foreign_key="transactions.id", index=True)
    url: str
    file_name: str
    mime_type: str
    position: int = 0
    created_at: dt.datetime = Field(default_factory=utcnow)

class CustomCategory(SQLModel, table=True):
    __tablename__ = "custom_categories"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    name: str
    name_en: str
    icon: str
    type: TransactionType
    created_at: dt.datetime = Field(default_factory=utcnow)

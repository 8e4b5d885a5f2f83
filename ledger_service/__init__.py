"""Personal-finance ledger service: bank accounts, transactions and receipts."""

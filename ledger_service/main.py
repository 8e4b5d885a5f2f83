from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .db import init_db
from .errors import InvalidFieldError, LedgerError
from .logger import get_logger
from .routers import accounts, auth, categories, documents, reports, transactions

app = FastAPI(title="ledger-service")
log = get_logger("app")

for router in (auth.router, accounts.router, transactions.router, categories.router, documents.router, reports.router):
    app.include_router(router, prefix="/api")

@app.on_event("startup")
def on_start():
    init_db()
    log.info("ledger-service started")

@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    body = {"detail": exc.message}
    if isinstance(exc, InvalidFieldError) and exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=body)

@app.get("/health")
def health():
    return {"status": "ok"}

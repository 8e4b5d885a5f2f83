from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from .. import reports
from ..db import get_session
from ..security import get_user

router = APIRouter(prefix="/reports", tags=["reports"])

@router.get("/summary")
def summary(
    month: Optional[int] = None,
    year: Optional[int] = None,
    bank_account_id: Optional[str] = Query(None, alias="bankAccountId"),
    user=Depends(get_user),
    session: Session = Depends(get_session),
):
    return reports.monthly_summary(session, user, month, year, bank_account_id)

@router.get("/export.csv")
def export_csv(
    month: Optional[int] = None,
    year: Optional[int] = None,
    bank_account_id: Optional[str] = Query(None, alias="bankAccountId"),
    user=Depends(get_user),
    session: Session = Depends(get_session),
):
    csv_text = reports.export_csv(session, user, month, year, bank_account_id)
    filename = reports.export_filename(month, year)
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

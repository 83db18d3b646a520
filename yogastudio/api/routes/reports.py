from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...db.schemas.report import ReportType
from ...services import report_service

router = APIRouter(prefix="/reports", tags=["reports"])


def date_range(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
) -> schemas.DateRange:
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="End date must be after start date"
        )
    return schemas.DateRange(start_date=start_date, end_date=end_date)


@router.get("/{report_type}", response_model=schemas.Envelope[dict[str, Any]])
def get_report(
    report_type: ReportType,
    period: schemas.DateRange = Depends(date_range),
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    report = report_service.build_report(db, report_type, period.start_date, period.end_date)
    return {"success": True, "data": report}


@router.post("/export")
def export_report(
    payload: schemas.ReportExport,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    try:
        filename, content = report_service.export_report(
            db, payload.type, payload.format, payload.start_date, payload.end_date
        )
    except report_service.ReportError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

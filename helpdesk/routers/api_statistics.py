from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import require_staff
from ..schemas.statistics import StatisticsReport
from ..services import statistics as statistics_service
from ..services.imports import XLSX_MEDIA_TYPE

router = APIRouter(prefix="/api/v1/statistics", tags=["statistics"], dependencies=[Depends(require_staff)])

RANGE_PATTERN = "^(7d|30d|90d)$"


def _report(db: Session, range_token: str, backlog_cutoff: int) -> StatisticsReport:
    return statistics_service.build_report(
        db,
        days=statistics_service.RANGE_CHOICES[range_token],
        backlog_cutoff_days=backlog_cutoff,
    )


@router.get("", response_model=StatisticsReport)
def api_report(
    range_key: str = Query(default="30d", alias="range", pattern=RANGE_PATTERN),
    backlog_cutoff: int = Query(default=statistics_service.DEFAULT_BACKLOG_CUTOFF, ge=1, le=365),
    db: Session = Depends(get_db),
):
    return _report(db, range_key, backlog_cutoff)


@router.get("/export")
def api_export(
    range_key: str = Query(default="30d", alias="range", pattern=RANGE_PATTERN),
    backlog_cutoff: int = Query(default=statistics_service.DEFAULT_BACKLOG_CUTOFF, ge=1, le=365),
    db: Session = Depends(get_db),
):
    report = _report(db, range_key, backlog_cutoff)
    return Response(
        content=statistics_service.export_statistics_workbook(report),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="help-desk-statistics.xlsx"'},
    )

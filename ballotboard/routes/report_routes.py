import logging
from datetime import datetime

from bson.errors import BSONError
from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError

from ballotboard.database.connection import get_db, get_now
from ballotboard.reports import fetch_summary, summary_to_csv
from ballotboard.security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"], dependencies=[Depends(require_admin)])


def _failure(exc: Exception) -> JSONResponse:
    logger.error(f"Error fetching report summary: {exc}")
    return JSONResponse(
        status_code=500,
        content={"message": "Failed to fetch report summary", "error": str(exc)},
    )


@router.get("/summary")
def get_report_summary(db: Database = Depends(get_db), now: datetime = Depends(get_now)):
    """
    Totals, distinct-voter turnout and per-election turnout.
    Recomputed from the store on every call.
    """
    try:
        return fetch_summary(db, now)
    except (PyMongoError, BSONError) as e:
        return _failure(e)


@router.get("/summary.csv")
def export_report_csv(db: Database = Depends(get_db), now: datetime = Depends(get_now)):
    try:
        summary = fetch_summary(db, now)
    except (PyMongoError, BSONError) as e:
        return _failure(e)

    return Response(
        content=summary_to_csv(summary),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="election_report.csv"'},
    )

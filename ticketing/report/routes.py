# ticketing/report/routes.py
from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool

from ticketing.core.errors import MalformedInputError
from ticketing.report.schemas import ReportAck, ReportOut
from ticketing.report.services import ReportLog

router = APIRouter(prefix="/api/reports", tags=["Reports"])


def get_report_log(request: Request) -> ReportLog:
    return request.app.state.report_log


@router.post("", response_model=ReportAck)
async def receive(request: Request, report_log: ReportLog = Depends(get_report_log)):
    raw = await request.body()
    try:
        body = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedInputError("report body must be UTF-8 text") from exc
    stored = await run_in_threadpool(report_log.record, body, request.headers.get("content-type"))
    if not stored:
        return ReportAck(success=False, message="Report received but not stored")
    return ReportAck(success=True, message="Report received")


@router.get("", response_model=list[ReportOut])
def list_recent(
    limit: int = Query(default=50, ge=1, le=500),
    report_log: ReportLog = Depends(get_report_log),
):
    return report_log.recent(limit)

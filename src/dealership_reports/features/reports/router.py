import logging
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from typing import Annotated, Optional, Union

from ..auth.models import User as AuthUser
from ..auth.security import get_current_active_user

from .filters import build_scope
from .registry import REPORTS, ReportDefinition
from .responses import format_report_response, handle_report_error
from .schemas import ErrorEnvelope, ReportCatalogue, ReportEnvelope, ReportInfo, ReportPeriod
from .sources import ReportSources, get_report_sources

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
    # Every report needs an authenticated caller
    dependencies=[Depends(get_current_active_user)],
    responses={
        400: {"model": ErrorEnvelope, "description": "Invalid date range"},
        500: {"model": ErrorEnvelope, "description": "Report generation failed"},
        503: {"model": ErrorEnvelope, "description": "Database unavailable"},
    },
)


def report_period(
    start_date: Optional[str] = Query(None, alias="startDate", description="Start of the creation date range"),
    end_date: Optional[str] = Query(None, alias="endDate", description="End of the creation date range"),
    from_date: Optional[str] = Query(None, alias="from", description="Alias of startDate"),
    to_date: Optional[str] = Query(None, alias="to", description="Alias of endDate"),
) -> ReportPeriod:
    return ReportPeriod(start_date=start_date or from_date, end_date=end_date or to_date)


async def run_report(
    report: ReportDefinition,
    current_user: AuthUser,
    period: ReportPeriod,
    sources: ReportSources,
) -> Union[ReportEnvelope, JSONResponse]:
    """
    Builds the caller's scope, runs the report service and wraps the result.

    Any failure, including an invalid date range, is turned into the failure
    envelope by the error reporter, so a report endpoint never raises.
    """
    try:
        scope = build_scope(current_user, period.start_date, period.end_date)
        logger.info(f"Generating {report.report_type} for company {scope.company_id}")
        data = await report.service(scope, sources)
        return format_report_response(data, report.report_type, scope)
    except Exception as error:
        return handle_report_error(error, report.report_type, report.label)


def _report_endpoint(report: ReportDefinition):
    async def endpoint(
        current_user: Annotated[AuthUser, Depends(get_current_active_user)],
        period: Annotated[ReportPeriod, Depends(report_period)],
        sources: Annotated[ReportSources, Depends(get_report_sources)],
    ):
        return await run_report(report, current_user, period, sources)

    endpoint.__name__ = f"get_{report.report_type.replace('-', '_')}_report"
    return endpoint


@router.get("", response_model=ReportCatalogue)
async def list_reports(request: Request):
    return ReportCatalogue(reports=[
        ReportInfo(
            report_type=report.report_type,
            label=report.label,
            path=str(request.app.url_path_for(report.report_type)),
            description=report.summary,
        )
        for report in REPORTS
    ])


for _report in REPORTS:
    router.add_api_route(
        _report.route,
        _report_endpoint(_report),
        methods=["GET"],
        response_model=ReportEnvelope,
        name=_report.report_type,
        summary=_report.label,
        description=_report.summary,
    )

"""Success and failure envelopes for report endpoints."""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .errors import as_report_error
from .filters import ScopeFilter
from .schemas import ErrorDetail, ErrorEnvelope, ReportEnvelope, ReportMeta

logger = logging.getLogger(__name__)


def _plain(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [_plain(item) for item in data]
    return data


def format_report_response(data: Any, report_type: str, scope: ScopeFilter) -> ReportEnvelope:
    """Wraps report data with the report type, the scope it ran with and a generation time."""
    return ReportEnvelope(
        data=_plain(data),
        meta=ReportMeta(
            report_type=report_type,
            filters=scope.to_meta() if scope is not None else {},
            generated_at=datetime.now(timezone.utc),
        ),
    )


def handle_report_error(error: Exception, report_type: str, label: str) -> JSONResponse:
    """
    Maps any exception raised while generating a report to the failure envelope.

    The full traceback goes to the log under the report label; the caller only
    gets a generic message naming the report, with the status taken from the
    error taxonomy (500 for anything unexpected).

    Args:
        error: The exception caught at the route boundary.
        report_type: The registry's report type, echoed back to the caller.
        label: Human readable report name used in the log and the message.

    Returns:
        JSONResponse: ``{"error": {"message", "reportType"}}``.
    """
    report_error = as_report_error(error)
    logger.error(f"Report Error [{label}]: {error}", exc_info=error)
    envelope = ErrorEnvelope(
        error=ErrorDetail(message=f"Error generating {label} report", report_type=report_type)
    )
    return JSONResponse(
        status_code=report_error.status_code,
        content=envelope.model_dump(mode="json", by_alias=True),
    )

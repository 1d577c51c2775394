"""Error taxonomy for report generation.

Every failure inside a report ends up as one of these before it is turned into
the failure envelope, so the route boundary only has to look at
``status_code``. Anything that is not a ``ReportError`` is treated as an
internal error.
"""

from fastapi import status
from tortoise.exceptions import DBConnectionError, OperationalError


class ReportError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = "Report generation failed"):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ReportError):
    status_code = status.HTTP_404_NOT_FOUND


class ReportValidationError(ReportError):
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamUnavailableError(ReportError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def as_report_error(error: Exception) -> ReportError:
    if isinstance(error, ReportError):
        return error
    if isinstance(error, (DBConnectionError, OperationalError)):
        return UpstreamUnavailableError(str(error))
    return ReportError(str(error))

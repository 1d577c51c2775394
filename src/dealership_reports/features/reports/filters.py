"""
Report scope construction.

Every report is scoped by three things: the caller's company, optionally the
dealerships the caller is restricted to, and optionally a creation date range
taken from the query string. This module turns the authenticated user and the
raw query parameters into a ``ScopeFilter`` that the pipeline helpers
translate into Tortoise filters.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from ..auth.models import User
from .errors import ReportValidationError

logger = logging.getLogger(__name__)

RESTRICTED_ROLE = "company_super_admin"


@dataclass(frozen=True)
class DateRange:
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    # A bare date as the end bound covers that whole day
    end_is_date: bool = False

    @property
    def upper_bound(self) -> Optional[datetime]:
        if self.end is None:
            return None
        return self.end + timedelta(days=1) if self.end_is_date else self.end

    def to_meta(self) -> dict:
        return {
            "startDate": self.start.isoformat() if self.start else None,
            "endDate": self.end.isoformat() if self.end else None,
        }


@dataclass(frozen=True)
class ScopeFilter:
    company_id: str
    dealership_ids: Optional[List[int]] = None
    date_range: Optional[DateRange] = None

    @property
    def is_restricted(self) -> bool:
        return self.dealership_ids is not None

    def to_meta(self) -> dict:
        return {
            "companyId": self.company_id,
            "dealershipIds": list(self.dealership_ids) if self.dealership_ids is not None else None,
            "dateRange": self.date_range.to_meta() if self.date_range else None,
        }


def build_dealership_filter(user: User) -> Optional[List[int]]:
    """Dealership ids the caller is limited to, or None for no restriction.

    Primary admins always see the whole company. A company super admin with
    assigned dealerships only sees those. Everybody else is left unrestricted,
    access control beyond this is handled upstream.
    """
    if user.is_primary_admin:
        return None
    if user.role == RESTRICTED_ROLE and user.dealership_ids:
        return [int(dealership_id) for dealership_id in user.dealership_ids]
    return None


def _parse_bound(value: Optional[str], name: str):
    if value is None or not str(value).strip():
        return None, False
    raw = str(value).strip()
    try:
        if len(raw) == 10:
            parsed_date = date.fromisoformat(raw)
            return datetime(parsed_date.year, parsed_date.month, parsed_date.day, tzinfo=timezone.utc), True
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring malformed {name} value: {raw!r}")
        return None, False
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed, False


def build_date_filter(start_date: Optional[str] = None, end_date: Optional[str] = None) -> Optional[DateRange]:
    """
    Builds the creation date range for a report.

    Args:
        start_date: ISO date or datetime for the lower bound (inclusive).
        end_date: ISO date or datetime for the upper bound. A plain date is
            inclusive of the whole day, a datetime is used as given.

    Returns:
        DateRange | None: None when neither bound is usable. Malformed values
        are logged at DEBUG and ignored rather than rejected.

    Raises:
        ReportValidationError: If both bounds parse but the range is inverted.
    """
    start, _ = _parse_bound(start_date, "startDate")
    end, end_is_date = _parse_bound(end_date, "endDate")
    if start is None and end is None:
        return None
    date_range = DateRange(start=start, end=end, end_is_date=end_is_date)
    if start is not None and end is not None:
        # A datetime end is inclusive, so a single instant is still a valid range
        inverted = start >= date_range.upper_bound if end_is_date else start > end
        if inverted:
            raise ReportValidationError("startDate must not be after endDate")
    return date_range


def build_scope(user: User, start_date: Optional[str] = None, end_date: Optional[str] = None) -> ScopeFilter:
    return ScopeFilter(
        company_id=user.company_id,
        dealership_ids=build_dealership_filter(user),
        date_range=build_date_filter(start_date, end_date),
    )

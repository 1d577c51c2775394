"""Shared report schemas.

Report payloads are built from ``CamelModel`` records: Python attributes stay
snake_case and are serialised with camelCase keys, which is what the
dashboards consuming these endpoints expect.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional
import datetime


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ReportPeriod(BaseModel):
    start_date: Optional[str] = Field(None, description="Start of the creation date range (ISO date or datetime)")
    end_date: Optional[str] = Field(None, description="End of the creation date range, inclusive for plain dates")


class ReportMeta(CamelModel):
    report_type: str
    filters: Dict[str, Any]
    generated_at: datetime.datetime


class ReportEnvelope(CamelModel):
    data: Any
    meta: ReportMeta


class ErrorDetail(CamelModel):
    message: str
    report_type: str


class ErrorEnvelope(CamelModel):
    error: ErrorDetail


class ReportInfo(CamelModel):
    report_type: str
    label: str
    path: str
    description: Optional[str] = None


class ReportCatalogue(CamelModel):
    reports: List[ReportInfo]


# Rows shared by several reports

class LabelCount(CamelModel):
    label: Any
    count: int
    percentage: float = 0


class BucketCount(CamelModel):
    bucket: Any
    count: int


class StatusCount(CamelModel):
    status: Optional[str] = None
    count: int


class CreatorRef(CamelModel):
    name: str
    email: Optional[str] = None


def empty_report(items_key: str, total_key: str, message: str) -> Dict[str, Any]:
    """Payload for a report that found nothing to analyse."""
    return {items_key: [], "summary": {total_key: 0, "message": message}}


def creator_ref(user) -> Optional[CreatorRef]:
    """The ``createdBy`` block of a record, None when the creator is unknown."""
    if user is None:
        return None
    return CreatorRef(name=f"{user.first_name} {user.last_name}", email=user.email)

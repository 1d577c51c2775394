"""
Query and grouping helpers.

The scoped queryset helpers push the company, dealership and date restriction
down into the database. Everything after the fetch (grouping by day, month,
status or bucket) happens in memory over the fetched rows through
``group_by`` and ``bucketize``.
"""

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from tortoise.models import Model
from tortoise.queryset import QuerySet

from .filters import ScopeFilter
from .metrics import as_utc, safe_average, safe_max, safe_min, safe_sum

logger = logging.getLogger(__name__)

Getter = Union[str, Callable[[Any], Any]]


def scope_kwargs(
    scope: ScopeFilter,
    *,
    dealership_field: Optional[str] = "dealership_id",
    date_field: Optional[str] = "created_at",
) -> Dict[str, Any]:
    """Tortoise filter kwargs for a scope.

    Pass ``dealership_field=None`` for collections that are company wide and
    ``date_field=None`` for reports that ignore the date range.
    """
    kwargs: Dict[str, Any] = {"company_id": scope.company_id}
    if dealership_field and scope.dealership_ids is not None:
        kwargs[f"{dealership_field}__in"] = scope.dealership_ids
    if date_field and scope.date_range is not None:
        date_range = scope.date_range
        if date_range.start is not None:
            kwargs[f"{date_field}__gte"] = date_range.start
        if date_range.end is not None:
            if date_range.end_is_date:
                kwargs[f"{date_field}__lt"] = date_range.upper_bound
            else:
                kwargs[f"{date_field}__lte"] = date_range.end
    return kwargs


def scoped(model: type[Model], scope: ScopeFilter, **options) -> QuerySet:
    return model.filter(**scope_kwargs(scope, **options))


async def resolve_quote_ids(scope: ScopeFilter, quote_model: type[Model]) -> Optional[List[int]]:
    """First phase of the indirect dealership filter.

    Conversations and workshop reports only know their quote, so a restricted
    caller is first resolved to the ids of the quotes raised by their
    dealerships. Returns None when the caller is not restricted.
    """
    if scope.dealership_ids is None:
        return None
    quote_ids = await quote_model.filter(
        company_id=scope.company_id, dealership_id__in=scope.dealership_ids
    ).values_list("id", flat=True)
    logger.debug(f"Resolved {len(quote_ids)} quote(s) for dealerships {scope.dealership_ids}")
    return list(quote_ids)


def restrict_to(queryset: QuerySet, field_name: str, ids: Optional[Sequence[int]]) -> QuerySet:
    """Second phase: narrow a queryset to the resolved id set when there is one."""
    if ids is None:
        return queryset
    return queryset.filter(**{f"{field_name}__in": list(ids)})


def get_value(row: Any, getter: Getter) -> Any:
    if callable(getter):
        return getter(row)
    if isinstance(row, dict):
        return row.get(getter)
    return getattr(row, getter, None)


class GroupAccumulator:
    """Rows sharing one grouping key, with the usual ``$group`` accumulators."""

    def __init__(self, key: Any):
        self.key = key
        self.rows: List[Any] = []

    def __repr__(self):
        return f"<GroupAccumulator {self.key!r} count={self.count}>"

    @property
    def count(self) -> int:
        return len(self.rows)

    def values(self, getter: Getter) -> List[Any]:
        return [get_value(row, getter) for row in self.rows]

    def count_where(self, predicate: Callable[[Any], bool]) -> int:
        return sum(1 for row in self.rows if predicate(row))

    def sum(self, getter: Getter):
        return safe_sum(self.values(getter))

    def avg(self, getter: Getter) -> float:
        return safe_average(self.values(getter))

    def min(self, getter: Getter, default: Any = 0):
        return safe_min(self.values(getter), default)

    def max(self, getter: Getter, default: Any = 0):
        return safe_max(self.values(getter), default)

    def distinct(self, getter: Getter) -> List[Any]:
        seen = []
        for value in self.values(getter):
            if value not in seen:
                seen.append(value)
        return seen

    def first(self, getter: Getter) -> Any:
        return get_value(self.rows[0], getter) if self.rows else None


def group_by(rows: Iterable[Any], key: Getter) -> Dict[Any, GroupAccumulator]:
    """Groups rows by ``key`` keeping first-seen order of the keys."""
    groups: Dict[Any, GroupAccumulator] = OrderedDict()
    for row in rows:
        group_key = get_value(row, key)
        if group_key not in groups:
            groups[group_key] = GroupAccumulator(group_key)
        groups[group_key].rows.append(row)
    return groups


def day_key(moment: Optional[datetime]) -> Optional[str]:
    return as_utc(moment).strftime("%Y-%m-%d") if moment else None


def month_key(moment: Optional[datetime]) -> Optional[str]:
    return as_utc(moment).strftime("%Y-%m") if moment else None


def day_of_week(moment: datetime) -> int:
    """1 for Sunday through 7 for Saturday."""
    return as_utc(moment).isoweekday() % 7 + 1


def hour_of_day(moment: datetime) -> int:
    return as_utc(moment).hour


def bucket(value: Optional[float], boundaries: Sequence[float], default: Any) -> Any:
    """Returns the lower boundary of the ``[b_i, b_i+1)`` range holding ``value``.

    A value equal to a boundary belongs to the range starting at it. Values
    below the first or at/above the last boundary, and missing values, get the
    ``default`` label.
    """
    if value is None:
        return default
    for lower, upper in zip(boundaries, boundaries[1:]):
        if lower <= value < upper:
            return lower
    return default


def bucketize(
    rows: Iterable[Any], value: Getter, boundaries: Sequence[float], default: Any
) -> Dict[Any, GroupAccumulator]:
    """Groups rows by bucket, in boundary order with the overflow last. Empty buckets are left out."""
    order = list(boundaries[:-1]) + [default]
    groups = group_by(rows, lambda row: bucket(get_value(row, value), boundaries, default))
    return OrderedDict((key, groups[key]) for key in order if key in groups)


def distribution(
    values: Iterable[Optional[float]],
    boundaries: Sequence[float],
    default: Any,
    labels: Optional[Dict[Any, str]] = None,
) -> List[Dict[str, Any]]:
    """Ordered ``[{bucket, count}]`` rows for plain values."""
    groups = bucketize(list(values), lambda v: v, boundaries, default)
    labels = labels or {}
    return [{"bucket": labels.get(key, key), "count": group.count} for key, group in groups.items()]

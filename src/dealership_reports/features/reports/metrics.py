"""
Metric computation helpers shared by every report.

All functions here are pure and work on already-fetched rows. They return a
defined zero or empty value for empty input, so report code never has to guard
against division by zero or ``min()`` of an empty sequence itself.

Rounding follows the platform's half-up convention (``js_round``) rather than
Python's banker's rounding, so a rate of 62.5 is reported as 63.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

Number = Union[int, float]


def js_round(value: Optional[Number], digits: int = 0) -> Number:
    """Round half-up. Returns an int when ``digits`` is 0."""
    if value is None:
        return 0
    if digits == 0:
        return int(math.floor(value + 0.5))
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round1(value: Optional[Number]) -> float:
    return js_round(value, 1)


def round2(value: Optional[Number]) -> float:
    return js_round(value, 2)


def rate(numerator: Number, denominator: Number) -> int:
    """Whole percentage of ``numerator`` over ``denominator``, 0 when the denominator is 0."""
    if not denominator:
        return 0
    return js_round(numerator / denominator * 100)


def percentage(numerator: Number, denominator: Number, digits: int = 1) -> float:
    """Like :func:`rate` but kept to ``digits`` decimals."""
    if not denominator:
        return 0
    return js_round(numerator / denominator * 100, digits)


def ratio(numerator: Number, denominator: Number, digits: int = 1) -> float:
    if not denominator:
        return 0
    return js_round(numerator / denominator, digits)


def _present(values: Iterable[Optional[Number]]) -> List[Number]:
    return [v for v in values if v is not None]


def safe_sum(values: Iterable[Optional[Number]]) -> Number:
    return sum(_present(values))


def safe_average(values: Iterable[Optional[Number]]) -> float:
    present = _present(values)
    if not present:
        return 0
    return sum(present) / len(present)


def safe_min(values: Iterable[Optional[Number]], default: Any = 0):
    present = _present(values)
    return min(present) if present else default


def safe_max(values: Iterable[Optional[Number]], default: Any = 0):
    present = _present(values)
    return max(present) if present else default


class ThresholdLadder:
    """Maps a score onto a label through an ordered list of thresholds.

    With the default ``"gte"`` comparison the rungs run highest first and a
    score takes the first label whose threshold it reaches. With ``"lte"`` the
    rungs run lowest first and a value takes the first label whose threshold it
    does not exceed. Anything past the last rung gets ``default``, so the
    ladder covers every value without gaps.
    """

    def __init__(self, rungs: Sequence[Tuple[Number, str]], default: str, comparison: str = "gte"):
        if comparison not in ("gte", "lte"):
            raise ValueError(f"Unsupported comparison: {comparison}")
        thresholds = [threshold for threshold, _ in rungs]
        expected = sorted(thresholds, reverse=comparison == "gte")
        if thresholds != expected:
            raise ValueError("Ladder thresholds are out of order")
        self.rungs = list(rungs)
        self.default = default
        self.comparison = comparison

    @property
    def labels(self) -> List[str]:
        return [label for _, label in self.rungs] + [self.default]

    def classify(self, value: Optional[Number]) -> str:
        if value is None:
            return self.default
        for threshold, label in self.rungs:
            if self.comparison == "gte" and value >= threshold:
                return label
            if self.comparison == "lte" and value <= threshold:
                return label
        return self.default

    __call__ = classify


@dataclass(frozen=True)
class PointsRule:
    """One line of a points table: the first rung the metric satisfies scores."""

    metric: str
    rungs: Tuple[Tuple[Number, Number], ...]
    comparison: str = "gte"

    def points(self, value: Optional[Number]) -> Number:
        if value is None:
            return 0
        for threshold, points in self.rungs:
            if self.comparison == "gte" and value >= threshold:
                return points
            if self.comparison == "lte" and value <= threshold:
                return points
            if self.comparison == "eq" and value == threshold:
                return points
        return 0


def score_rules(rules: Sequence[PointsRule], metrics: Mapping[str, Optional[Number]]) -> Number:
    return sum(rule.points(metrics.get(rule.metric)) for rule in rules)


@dataclass(frozen=True)
class HealthCheck:
    condition: Callable[[Any], bool]
    message: str
    penalty: int
    kind: str = "issue"  # or "warning"


@dataclass
class HealthResult:
    score: int = 100
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def health_score(subject: Any, checks: Sequence[HealthCheck], start: int = 100) -> HealthResult:
    """Additive-penalty scoring.

    Starts from ``start`` and subtracts the penalty of every check whose
    condition holds for ``subject``, never going below 0. The messages of the
    triggered checks are collected as issues or warnings.
    """
    result = HealthResult(score=start)
    for check in checks:
        if not check.condition(subject):
            continue
        result.score -= check.penalty
        if check.kind == "warning":
            result.warnings.append(check.message)
        else:
            result.issues.append(check.message)
    result.score = max(0, result.score)
    return result


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accepts datetimes or ISO-8601 strings (``Z`` suffix included), always returns UTC-aware."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    return as_utc(parsed)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(later: Optional[datetime], earlier: Optional[datetime]) -> Optional[float]:
    if later is None or earlier is None:
        return None
    return (as_utc(later) - as_utc(earlier)).total_seconds() / 86400


@dataclass(frozen=True)
class ResponseTime:
    from_sender: str
    to_sender: str
    response_time_ms: float
    responded_at: datetime

    @property
    def minutes(self) -> float:
        return self.response_time_ms / 60000

    @property
    def hours(self) -> float:
        return self.response_time_ms / 3600000


def extract_response_times(
    messages: Sequence[Mapping[str, Any]],
    sender_key: str = "sender_type",
    timestamp_key: str = "created_at",
) -> Optional[List[ResponseTime]]:
    """
    Extracts one response per change of sender in a message thread.

    A response is recorded only when two consecutive messages come from
    different senders; its time is the gap between them. For the thread
    A, A, B, B, A that is two responses (A to B and B to A), not four.

    Args:
        messages: Thread messages, oldest first.
        sender_key: Key holding the sender tag.
        timestamp_key: Key holding the message time.

    Returns:
        list[ResponseTime] | None: None when the thread has fewer than two
        messages or never changes sender, so callers can leave it out of
        averages instead of counting it as zero.
    """
    if not messages or len(messages) < 2:
        return None
    responses = []
    for previous, current in zip(messages, messages[1:]):
        previous_sender = previous.get(sender_key)
        current_sender = current.get(sender_key)
        if previous_sender == current_sender:
            continue
        sent_at = parse_timestamp(previous.get(timestamp_key))
        answered_at = parse_timestamp(current.get(timestamp_key))
        if sent_at is None or answered_at is None:
            continue
        responses.append(
            ResponseTime(
                from_sender=previous_sender,
                to_sender=current_sender,
                response_time_ms=(answered_at - sent_at).total_seconds() * 1000,
                responded_at=answered_at,
            )
        )
    return responses or None


def _key_func(key: Union[str, Callable[[Any], Any]]) -> Callable[[Any], Any]:
    if callable(key):
        return key
    def getter(row):
        value = row.get(key) if isinstance(row, Mapping) else getattr(row, key, None)
        return 0 if value is None else value
    return getter


def top_n(rows: Iterable[Any], key: Union[str, Callable[[Any], Any]], n: Optional[int] = None) -> List[Any]:
    """Highest first; ties keep their original order."""
    ordered = sorted(rows, key=_key_func(key), reverse=True)
    return ordered if n is None else ordered[:n]


def bottom_n(rows: Iterable[Any], key: Union[str, Callable[[Any], Any]], n: Optional[int] = None) -> List[Any]:
    """Lowest first; ties keep their original order."""
    ordered = sorted(rows, key=_key_func(key))
    return ordered if n is None else ordered[:n]


def share_table(counter: Mapping[Any, Number], total: Optional[Number] = None, digits: int = 0) -> List[Dict[str, Any]]:
    """Turns a label -> count mapping into ``[{label, count, percentage}]`` rows, largest first."""
    if total is None:
        total = sum(counter.values())
    items = counter.most_common() if isinstance(counter, Counter) else top_n(counter.items(), lambda item: item[1])
    return [
        {
            "label": label,
            "count": count,
            "percentage": rate(count, total) if digits == 0 else percentage(count, total, digits),
        }
        for label, count in items
    ]

"""
Conversation Reports Service

Analytics over the message threads held between the company and its suppliers
about workshop quotes: message volume over time, how quickly each side
replies, and how engaged each thread is.

Conversations have no dealership of their own, so a restricted caller is first
resolved to the quotes of their dealerships and the conversations are then
narrowed to those quotes.
"""

import logging
import math
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..filters import ScopeFilter
from ..metrics import (
    ThresholdLadder, as_utc, bottom_n, extract_response_times, js_round, parse_timestamp,
    rate, ratio, round1, safe_average, safe_max, safe_min, top_n,
)
from ..pipeline import day_key, day_of_week, group_by, hour_of_day, month_key, resolve_quote_ids, restrict_to, scoped
from ..sources import DEFAULT_SOURCES, ReportSources
from .schemas import (
    ActiveConversation, ConversationEngagement, ConversationEngagementReport, ConversationResponseTimeReport,
    ConversationResponseTimes, ConversationVolumeReport, DailyVolume, DayOfWeekVolume, EngagementMetrics,
    EngagementSummary, EngagementTrend, HourlyVolume, LowEngagementConversation, MessageTypeDistribution,
    PeakActivity, PeakDay, PeakHour, PerformanceIndicators, QuoteTypeEngagement, ReadMetrics, ResolutionMetrics,
    ResponderComparison, ResponderMetrics, ResponseDistribution, ResponseTimeEntry, ResponseTimeSummary,
    ResponseTimeTrend, SupplierEngagement, SupplierResponsePerformance, TimeOfDayDistribution,
    TopEngagedConversation, VolumeSummary,
)

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
RESOLVED_QUOTE_STATUSES = ("completed_jobs", "rejected")
MAX_LISTED_CONVERSATIONS = 50

TIME_OF_DAY = ThresholdLadder([(11, "Morning"), (16, "Afternoon")], "Evening", comparison="lte")
RESPONSE_CATEGORY = ThresholdLadder(
    [(15, "Immediate"), (60, "Fast"), (240, "Moderate"), (1440, "Slow")], "Very Slow", comparison="lte"
)
RESPONSE_PERFORMANCE = ThresholdLadder([(60, "Excellent"), (240, "Good"), (1440, "Fair")], "Poor", comparison="lte")
ENGAGEMENT_LEVEL = ThresholdLadder([(70, "High"), (40, "Medium")], "Low")
ENGAGEMENT_HEALTH = ThresholdLadder([(60, "Healthy"), (40, "Moderate")], "Needs Improvement")

_DISTRIBUTION_KEYS = {
    "Immediate": "immediate", "Fast": "fast", "Moderate": "moderate", "Slow": "slow", "Very Slow": "very_slow",
}


async def _load_conversations(scope: ScopeFilter, sources: ReportSources, *related: str) -> list:
    quote_ids = await resolve_quote_ids(scope, sources.quotes)
    queryset = restrict_to(scoped(sources.conversations, scope, dealership_field=None), "quote_id", quote_ids)
    if related:
        queryset = queryset.prefetch_related(*related)
    return await queryset.order_by("id")


def _messages(conversation) -> List[Dict[str, Any]]:
    return list(conversation.messages or [])


def _count(messages, key: str, value: str) -> int:
    return sum(1 for message in messages if message.get(key) == value)


async def generate_conversation_volume_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> ConversationVolumeReport:
    """
    Generates message volume statistics for the conversations in scope.

    Messages are bucketed by the day, weekday and hour they were sent, and the
    busiest conversations are listed. A conversation with no messages still
    counts towards ``totalConversations`` but not ``activeConversations``.

    Args:
        scope: Company, dealership and creation date restriction.
        sources: Model classes to read from.

    Returns:
        ConversationVolumeReport: Daily, weekday and hourly volume, the ten
        most active conversations and a summary block.
    """
    conversations = await _load_conversations(scope, sources)

    per_conversation = []
    timed_messages = []
    for conversation in conversations:
        messages = _messages(conversation)
        per_conversation.append({
            "conversation": conversation,
            "message_count": len(messages),
            "company": _count(messages, "sender_type", "company"),
            "supplier": _count(messages, "sender_type", "supplier"),
            "text": _count(messages, "message_type", "text"),
            "image": _count(messages, "message_type", "image"),
            "file": _count(messages, "message_type", "file"),
        })
        for message in messages:
            sent_at = parse_timestamp(message.get("created_at"))
            if sent_at is not None:
                timed_messages.append({"conversation_id": conversation.id, "sender": message.get("sender_type"), "at": sent_at})

    daily_volume = []
    for key, group in sorted(group_by(timed_messages, lambda m: day_key(m["at"])).items()):
        unique = len(group.distinct("conversation_id"))
        sample = group.rows[0]["at"]
        daily_volume.append(DailyVolume(
            date=key, year=sample.year, month=sample.month, day=sample.day,
            total_messages=group.count,
            company_messages=group.count_where(lambda m: m["sender"] == "company"),
            supplier_messages=group.count_where(lambda m: m["sender"] == "supplier"),
            unique_conversations=unique,
            avg_messages_per_conversation=ratio(group.count, unique),
        ))

    day_of_week_analysis = []
    for number, group in sorted(group_by(timed_messages, lambda m: day_of_week(m["at"])).items()):
        company = group.count_where(lambda m: m["sender"] == "company")
        supplier = group.count_where(lambda m: m["sender"] == "supplier")
        day_of_week_analysis.append(DayOfWeekVolume(
            day_of_week=DAY_NAMES[number - 1], day_number=number, total_messages=group.count,
            company_messages=company, supplier_messages=supplier,
            company_percentage=rate(company, group.count), supplier_percentage=rate(supplier, group.count),
        ))

    hourly_analysis = []
    for hour, group in sorted(group_by(timed_messages, lambda m: hour_of_day(m["at"])).items()):
        hourly_analysis.append(HourlyVolume(
            hour=hour, time_slot=f"{hour:02d}:00", total_messages=group.count,
            company_messages=group.count_where(lambda m: m["sender"] == "company"),
            supplier_messages=group.count_where(lambda m: m["sender"] == "supplier"),
            time_of_day=TIME_OF_DAY.classify(hour),
        ))

    top_active = [
        ActiveConversation(
            conversation_id=row["conversation"].id,
            quote_id=row["conversation"].quote_id,
            supplier_id=row["conversation"].supplier_id,
            total_messages=row["message_count"],
            company_messages=row["company"],
            supplier_messages=row["supplier"],
            last_message_at=row["conversation"].last_message_at,
            unread_company=row["conversation"].unread_count_company,
            unread_supplier=row["conversation"].unread_count_supplier,
        )
        for row in top_n(per_conversation, "message_count", 10)
    ]

    total_conversations = len(per_conversation)
    total_messages = sum(row["message_count"] for row in per_conversation)
    total_company = sum(row["company"] for row in per_conversation)
    total_supplier = sum(row["supplier"] for row in per_conversation)
    type_totals = {kind: sum(row[kind] for row in per_conversation) for kind in ("text", "image", "file")}

    # First maximum wins on ties
    peak_day = None
    for day in day_of_week_analysis:
        if day.total_messages > (peak_day.total_messages if peak_day else 0):
            peak_day = day
    peak_hour = None
    for hour in hourly_analysis:
        if hour.total_messages > (peak_hour.total_messages if peak_hour else 0):
            peak_hour = hour

    time_of_day = Counter()
    for hour in hourly_analysis:
        time_of_day[hour.time_of_day] += hour.total_messages

    summary = VolumeSummary(
        total_conversations=total_conversations,
        active_conversations=sum(1 for row in per_conversation if row["message_count"] > 0),
        archived_conversations=sum(1 for row in per_conversation if row["conversation"].is_archived),
        total_messages=total_messages,
        total_company_messages=total_company,
        total_supplier_messages=total_supplier,
        avg_messages_per_conversation=ratio(total_messages, total_conversations),
        company_message_percentage=rate(total_company, total_messages),
        supplier_message_percentage=rate(total_supplier, total_messages),
        message_type_distribution=MessageTypeDistribution(
            text=type_totals["text"], image=type_totals["image"], file=type_totals["file"],
            text_percentage=rate(type_totals["text"], total_messages),
            image_percentage=rate(type_totals["image"], total_messages),
            file_percentage=rate(type_totals["file"], total_messages),
        ),
        peak_activity=PeakActivity(
            day=PeakDay(day_of_week=peak_day.day_of_week, messages=peak_day.total_messages) if peak_day else None,
            hour=PeakHour(time_slot=peak_hour.time_slot, messages=peak_hour.total_messages) if peak_hour else None,
        ),
        time_of_day_distribution=TimeOfDayDistribution(
            morning=time_of_day["Morning"], afternoon=time_of_day["Afternoon"], evening=time_of_day["Evening"],
        ),
    )

    logger.info(f"Conversation volume: {total_conversations} conversation(s), {total_messages} message(s)")
    return ConversationVolumeReport(
        daily_volume=daily_volume,
        day_of_week_analysis=day_of_week_analysis,
        hourly_analysis=hourly_analysis,
        top_active_conversations=top_active,
        summary=summary,
    )


def _conversation_response_times(conversation) -> Optional[Dict[str, Any]]:
    messages = _messages(conversation)
    responses = extract_response_times(messages)
    if responses is None:
        return None

    entries = [
        ResponseTimeEntry(
            from_sender=response.from_sender,
            to_sender=response.to_sender,
            response_time_ms=response.response_time_ms,
            response_time_minutes=js_round(response.minutes),
            response_time_hours=round1(response.hours),
        )
        for response in responses
    ]
    company_minutes = [entry.response_time_minutes for entry in entries if entry.to_sender == "company"]
    supplier_minutes = [entry.response_time_minutes for entry in entries if entry.to_sender == "supplier"]
    avg_company = safe_average(company_minutes)
    avg_supplier = safe_average(supplier_minutes)
    all_minutes = [entry.response_time_minutes for entry in entries]

    record = ConversationResponseTimes(
        conversation_id=conversation.id,
        quote_id=conversation.quote_id,
        supplier_id=conversation.supplier_id,
        supplier_name=conversation.supplier.name if conversation.supplier else None,
        total_messages=len(messages),
        total_responses=len(entries),
        company_responses=len(company_minutes),
        supplier_responses=len(supplier_minutes),
        avg_company_response_time_minutes=js_round(avg_company),
        avg_supplier_response_time_minutes=js_round(avg_supplier),
        avg_company_response_time_hours=round1(avg_company / 60),
        avg_supplier_response_time_hours=round1(avg_supplier / 60),
        fastest_response_minutes=min(all_minutes),
        slowest_response_minutes=max(all_minutes),
        response_times=entries,
    )
    return {"record": record, "responses": responses}


def _distribution(minutes: List[int]) -> ResponseDistribution:
    counts = Counter(_DISTRIBUTION_KEYS[RESPONSE_CATEGORY.classify(value)] for value in minutes)
    return ResponseDistribution(**counts)


def _responder_metrics(per_conversation_avgs: List[int], total_responses: int) -> ResponderMetrics:
    average = js_round(safe_average(per_conversation_avgs))
    return ResponderMetrics(
        avg_response_time_minutes=average,
        avg_response_time_hours=round1(average / 60),
        total_responses=total_responses,
        fastest_response_minutes=safe_min(per_conversation_avgs),
        slowest_response_minutes=safe_max(per_conversation_avgs),
        distribution=_distribution(per_conversation_avgs),
        performance_rating=RESPONSE_PERFORMANCE.classify(average),
    )


async def generate_conversation_response_time_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> ConversationResponseTimeReport:
    """
    Generates response time analytics for company and supplier replies.

    A response is a message whose sender differs from the previous message in
    the thread. Threads with fewer than two messages or without any change of
    sender have no response times and are left out entirely. Overall averages
    are taken over the per-conversation averages that are above zero.

    Args:
        scope: Company, dealership and creation date restriction.
        sources: Model classes to read from.

    Returns:
        ConversationResponseTimeReport: Up to 50 analysed conversations,
        supplier performance (fastest first), daily trends keyed by the date
        of the reply and a company versus supplier summary.
    """
    conversations = await _load_conversations(scope, sources, "supplier")

    analysed = []
    for conversation in conversations:
        result = _conversation_response_times(conversation)
        if result is not None:
            analysed.append(result)
    records = [item["record"] for item in analysed]

    company_avgs = [r.avg_company_response_time_minutes for r in records if r.avg_company_response_time_minutes > 0]
    supplier_avgs = [r.avg_supplier_response_time_minutes for r in records if r.avg_supplier_response_time_minutes > 0]

    supplier_performance = []
    with_supplier = [r for r in records if r.supplier_id and r.avg_supplier_response_time_minutes > 0]
    for supplier_id, group in group_by(with_supplier, "supplier_id").items():
        minutes = group.values("avg_supplier_response_time_minutes")
        average = js_round(safe_average(minutes))
        supplier_performance.append(SupplierResponsePerformance(
            supplier_id=supplier_id,
            supplier_name=group.first("supplier_name"),
            conversation_count=group.count,
            total_responses=group.sum("supplier_responses"),
            avg_response_time_minutes=average,
            avg_response_time_hours=round1(average / 60),
            fastest_response_minutes=safe_min(minutes),
            slowest_response_minutes=safe_max(minutes),
            response_category=RESPONSE_CATEGORY.classify(average),
            performance_score=RESPONSE_PERFORMANCE.classify(average),
        ))
    supplier_performance = bottom_n(supplier_performance, "avg_response_time_minutes")

    replies = []
    for item in analysed:
        for response, entry in zip(item["responses"], item["record"].response_times):
            replies.append({"date": day_key(response.responded_at), "to": entry.to_sender, "minutes": entry.response_time_minutes})
    trends = []
    for date, group in sorted(group_by(replies, "date").items()):
        company = [row["minutes"] for row in group.rows if row["to"] == "company"]
        supplier = [row["minutes"] for row in group.rows if row["to"] != "company"]
        trends.append(ResponseTimeTrend(
            date=date,
            avg_company_response_time=js_round(safe_average(company)),
            avg_supplier_response_time=js_round(safe_average(supplier)),
            company_response_count=len(company),
            supplier_response_count=len(supplier),
        ))

    company_metrics = _responder_metrics(company_avgs, sum(r.company_responses for r in records))
    supplier_metrics = _responder_metrics(supplier_avgs, sum(r.supplier_responses for r in records))
    difference = abs(company_metrics.avg_response_time_minutes - supplier_metrics.avg_response_time_minutes)
    summary = ResponseTimeSummary(
        total_conversations_analyzed=len(records),
        total_responses=sum(r.total_responses for r in records),
        company_metrics=company_metrics,
        supplier_metrics=supplier_metrics,
        comparison=ResponderComparison(
            faster_responder="Company"
            if company_metrics.avg_response_time_minutes < supplier_metrics.avg_response_time_minutes
            else "Supplier",
            time_difference_minutes=difference,
            time_difference_hours=round1(difference / 60),
        ),
    )

    return ConversationResponseTimeReport(
        conversations=records[:MAX_LISTED_CONVERSATIONS],
        supplier_performance=supplier_performance,
        trends=trends,
        summary=summary,
    )


def _engagement(conversation, now: datetime) -> Optional[ConversationEngagement]:
    messages = _messages(conversation)
    if not messages:
        return None

    total = len(messages)
    read = sum(1 for message in messages if message.get("is_read"))
    company = _count(messages, "sender_type", "company")
    supplier = _count(messages, "sender_type", "supplier")
    read_rate = rate(read, total)
    balance = min(company, supplier) / max(company, supplier, 1)
    created_at = as_utc(conversation.created_at) or now
    days_open = max(1, math.ceil((now - created_at).total_seconds() / 86400))
    frequency = total / days_open
    score = js_round(read_rate * 0.3 + balance * 30 + min(frequency * 10, 40))

    first_at = parse_timestamp(messages[0].get("created_at"))
    last_at = parse_timestamp(messages[-1].get("created_at"))
    duration_seconds = (last_at - first_at).total_seconds() if first_at and last_at else 0

    quote = conversation.quote
    quote_status = quote.status if quote else None
    is_resolved = quote_status in RESOLVED_QUOTE_STATUSES or conversation.is_archived
    time_to_resolution = None
    if is_resolved and conversation.last_message_at:
        time_to_resolution = round1((as_utc(conversation.last_message_at) - created_at).total_seconds() / 86400)

    return ConversationEngagement(
        conversation_id=conversation.id,
        quote_id=conversation.quote_id,
        quote_status=quote_status,
        quote_type=quote.quote_type if quote else None,
        supplier_id=conversation.supplier_id,
        supplier_name=conversation.supplier.name if conversation.supplier else None,
        total_messages=total,
        company_messages=company,
        supplier_messages=supplier,
        read_messages=read,
        unread_messages=total - read,
        read_rate=read_rate,
        unread_count_company=conversation.unread_count_company,
        unread_count_supplier=conversation.unread_count_supplier,
        message_balance=js_round(balance * 100),
        message_frequency_per_day=round1(frequency),
        engagement_score=score,
        engagement_level=ENGAGEMENT_LEVEL.classify(score),
        duration_hours=round1(duration_seconds / 3600),
        duration_days=round1(duration_seconds / 86400),
        is_resolved=is_resolved,
        time_to_resolution_days=time_to_resolution,
        is_archived=conversation.is_archived,
        created_at=conversation.created_at,
        last_message_at=conversation.last_message_at,
    )


async def generate_conversation_engagement_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> ConversationEngagementReport:
    """
    Generates engagement metrics per conversation.

    Each thread with at least one message gets an engagement score:
    30% of its read rate, up to 30 points for how balanced the exchange is
    between the two sides and up to 40 points for message frequency per day
    since it was opened. A thread counts as resolved when its quote is
    completed or rejected, or when either side archived it.

    Args:
        scope: Company, dealership and creation date restriction.
        sources: Model classes to read from.

    Returns:
        ConversationEngagementReport: Scored conversations (highest first),
        top and low engagement lists, quote type, supplier and monthly
        breakdowns and a summary.
    """
    conversations = await _load_conversations(scope, sources, "quote", "supplier")
    now = datetime.now(timezone.utc)

    engagement = [record for record in (_engagement(c, now) for c in conversations) if record is not None]
    ranked = top_n(engagement, "engagement_score")

    quote_type_analysis = [
        QuoteTypeEngagement(
            quote_type=quote_type,
            conversation_count=group.count,
            total_messages=group.sum("total_messages"),
            avg_messages_per_conversation=ratio(group.sum("total_messages"), group.count),
            avg_engagement_score=js_round(group.avg("engagement_score")),
            resolution_rate=rate(group.count_where(lambda c: c.is_resolved), group.count),
        )
        for quote_type, group in group_by(engagement, lambda c: c.quote_type or "unknown").items()
    ]

    supplier_engagement = []
    for supplier_id, group in group_by([c for c in engagement if c.supplier_id], "supplier_id").items():
        average = js_round(group.avg("engagement_score"))
        supplier_engagement.append(SupplierEngagement(
            supplier_id=supplier_id,
            supplier_name=group.first("supplier_name"),
            conversation_count=group.count,
            total_messages=group.sum("total_messages"),
            avg_messages_per_conversation=ratio(group.sum("total_messages"), group.count),
            avg_engagement_score=average,
            avg_read_rate=js_round(group.avg("read_rate")),
            resolution_rate=rate(group.count_where(lambda c: c.is_resolved), group.count),
            engagement_level=ENGAGEMENT_LEVEL.classify(average),
        ))
    supplier_engagement = top_n(supplier_engagement, "avg_engagement_score")

    top_engaged = [
        TopEngagedConversation(**c.model_dump(include={
            "conversation_id", "quote_id", "supplier_name", "engagement_score", "engagement_level",
            "total_messages", "read_rate", "is_resolved",
        }))
        for c in ranked[:10]
    ]
    low_engagement = [
        LowEngagementConversation(**c.model_dump(include={
            "conversation_id", "quote_id", "supplier_name", "engagement_score", "total_messages",
            "read_rate", "duration_days",
        }))
        for c in bottom_n([c for c in engagement if c.engagement_level == "Low" and not c.is_resolved], "engagement_score", 10)
    ]

    trends = [
        EngagementTrend(
            period=period,
            conversation_count=group.count,
            total_messages=group.sum("total_messages"),
            avg_messages_per_conversation=ratio(group.sum("total_messages"), group.count),
            avg_engagement_score=js_round(group.avg("engagement_score")),
            avg_read_rate=js_round(group.avg("read_rate")),
            resolution_rate=rate(group.count_where(lambda c: c.is_resolved), group.count),
        )
        for period, group in sorted(group_by(engagement, lambda c: month_key(c.created_at)).items())
    ]

    total = len(engagement)
    total_messages = sum(c.total_messages for c in engagement)
    total_read = sum(c.read_messages for c in engagement)
    resolved = [c for c in engagement if c.is_resolved]
    levels = Counter(c.engagement_level for c in engagement)
    avg_score = js_round(safe_average([c.engagement_score for c in engagement]))

    summary = EngagementSummary(
        total_conversations=total,
        active_conversations=total - len(resolved),
        resolved_conversations=len(resolved),
        archived_conversations=sum(1 for c in engagement if c.is_archived),
        total_messages=total_messages,
        avg_messages_per_conversation=ratio(total_messages, total),
        read_metrics=ReadMetrics(
            total_read_messages=total_read,
            total_unread_messages=total_messages - total_read,
            overall_read_rate=rate(total_read, total_messages),
            avg_unread_per_conversation=ratio(total_messages - total_read, total),
        ),
        engagement_metrics=EngagementMetrics(
            avg_engagement_score=avg_score,
            distribution={"high": levels["High"], "medium": levels["Medium"], "low": levels["Low"]},
            high_engagement_percentage=rate(levels["High"], total),
        ),
        resolution_metrics=ResolutionMetrics(
            resolution_rate=rate(len(resolved), total),
            avg_time_to_resolution_days=round1(safe_average([c.time_to_resolution_days for c in resolved])),
            unresolved_conversations=total - len(resolved),
            avg_duration_days=round1(safe_average([c.duration_days for c in engagement])),
        ),
        performance_indicators=PerformanceIndicators(
            needs_attention=len(low_engagement),
            high_performers=len(top_engaged),
            overall_health=ENGAGEMENT_HEALTH.classify(avg_score),
        ),
    )

    return ConversationEngagementReport(
        conversations=ranked[:MAX_LISTED_CONVERSATIONS],
        top_engaged=top_engaged,
        low_engagement=low_engagement,
        quote_type_analysis=quote_type_analysis,
        supplier_engagement=supplier_engagement,
        trends=trends,
        summary=summary,
    )

"""
Supplier Reports Service

Supplier rows are company wide. The activity joined to them (approved quotes,
the workshop reports filed against those quotes and the conversations held
with the supplier) is restricted to the caller's dealerships and the
requested date range.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import combinations
from typing import Dict, List, Optional

from ....core.config import RESPONSE_WINDOW_HOURS
from ..filters import ScopeFilter
from ..metrics import (
    ThresholdLadder, as_utc, days_between, extract_response_times, js_round, parse_timestamp,
    percentage, rate, round1, round2, safe_average, safe_sum, top_n,
)
from ..pipeline import GroupAccumulator, bucketize, group_by, resolve_quote_ids, restrict_to, scoped
from ..sources import DEFAULT_SOURCES, ReportSources
from .schemas import (
    AccountAge, CollaborationMetrics, OverviewCommunicationMetrics, OverviewPerformanceMetrics,
    OverviewQuoteMetrics, PerformanceScores, QualityBreakdown, RankingMetrics, RankingSummary,
    RelationshipCommunication, RelationshipEngagement, RelationshipSummary, SupplierOverviewReport,
    SupplierOverviewRow, SupplierOverviewSummary, SupplierPerformanceRankingReport, SupplierRanking,
    SupplierRelationship, SupplierRelationshipReport, SupplierTagAnalysisReport, TagCountBucket,
    TagCountSupplier, TagDistribution, TaggedSupplier, TagPair, TagQuotePerformance, TagRevenue,
    TagStats, UnreadMessages, UntaggedSupplier, ValueMetrics,
)

logger = logging.getLogger(__name__)

ACTIVITY_LEVEL = ThresholdLadder([(70, "High"), (40, "Medium")], "Low")
PERFORMANCE_LEVEL = ThresholdLadder([(80, "Excellent"), (60, "Good"), (40, "Average")], "Needs Improvement")
RELATIONSHIP_LEVEL = ThresholdLadder([(75, "Strong"), (50, "Moderate"), (25, "Developing")], "Weak")
ENGAGEMENT_STATUS = ThresholdLadder([(30, "Active"), (90, "Moderate")], "Inactive", comparison="lte")

TAG_COUNT_BOUNDARIES = [0, 1, 2, 3, 5, 100]
QUALITY_CHECKS = {
    "visual": "visual_check_score",
    "functional": "functional_check_score",
    "road_test": "road_test_score",
    "safety": "safety_check_score",
}


@dataclass
class SupplierActivity:
    """Suppliers with their in-scope activity grouped by supplier id."""

    suppliers: list
    quotes: Dict[int, GroupAccumulator] = field(default_factory=dict)
    reports: Dict[int, GroupAccumulator] = field(default_factory=dict)
    conversations: Dict[int, GroupAccumulator] = field(default_factory=dict)

    def quotes_of(self, supplier_id: int) -> list:
        group = self.quotes.get(supplier_id)
        return group.rows if group else []

    def reports_of(self, supplier_id: int) -> list:
        group = self.reports.get(supplier_id)
        return group.rows if group else []

    def conversations_of(self, supplier_id: int) -> list:
        group = self.conversations.get(supplier_id)
        return group.rows if group else []


async def load_supplier_activity(
    scope: ScopeFilter, sources: ReportSources, active_only: bool = False
) -> SupplierActivity:
    """
    Fetches the company's suppliers and the activity joined to them.

    Quotes are matched on their approved supplier, workshop reports through
    the quote they were filed against and conversations on their supplier.
    Every joined collection carries the scope's date range and dealership
    restriction.

    Args:
        scope: Company, dealership and date restriction for the joined rows.
        sources: Model classes to read from.
        active_only: Leave out inactive suppliers.

    Returns:
        SupplierActivity: The suppliers and their grouped activity.
    """
    supplier_query = sources.suppliers.filter(company_id=scope.company_id)
    if active_only:
        supplier_query = supplier_query.filter(is_active=True)
    suppliers = await supplier_query.order_by("id")
    supplier_ids = [supplier.id for supplier in suppliers]
    if not supplier_ids:
        return SupplierActivity(suppliers=[])

    quotes = await scoped(sources.quotes, scope).filter(approved_supplier_id__in=supplier_ids).order_by("id")

    # Reports are dated by their own creation time, not the quote's
    quote_suppliers = dict(
        await sources.quotes.filter(company_id=scope.company_id, approved_supplier_id__in=supplier_ids).values_list(
            "id", "approved_supplier_id"
        )
    )
    reports = []
    if quote_suppliers:
        reports = await scoped(sources.workshop_reports, scope).filter(quote_id__in=list(quote_suppliers)).order_by("id")

    quote_ids = await resolve_quote_ids(scope, sources.quotes)
    conversations = await restrict_to(
        scoped(sources.conversations, scope, dealership_field=None).filter(supplier_id__in=supplier_ids),
        "quote_id",
        quote_ids,
    ).order_by("id")

    logger.debug(
        f"Supplier activity: {len(suppliers)} supplier(s), {len(quotes)} quote(s), "
        f"{len(reports)} report(s), {len(conversations)} conversation(s)"
    )
    return SupplierActivity(
        suppliers=suppliers,
        quotes=group_by(quotes, "approved_supplier_id"),
        reports=group_by(reports, lambda report: quote_suppliers.get(report.quote_id)),
        conversations=group_by(conversations, "supplier_id"),
    )


def _count_status(quotes, status: str) -> int:
    return sum(1 for quote in quotes if quote.status == status)


def _completion_days(report) -> Optional[float]:
    return days_between(report.updated_at, report.created_at)


def _message_count(conversation) -> int:
    return len(conversation.messages or [])


def _sender_count(conversation, sender: str) -> int:
    return sum(1 for message in conversation.messages or [] if message.get("sender_type") == sender)


def _latest(values) -> Optional[datetime]:
    present = [as_utc(value) for value in values if value is not None]
    return max(present) if present else None


def _earliest(values) -> Optional[datetime]:
    present = [as_utc(value) for value in values if value is not None]
    return min(present) if present else None


async def generate_supplier_overview_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> SupplierOverviewReport:
    """
    Lists every supplier with its quote, communication and completed work
    figures and an engagement score of up to 100 points: 5 per quote (max 40),
    3 per conversation (max 30) and 3 per workshop report (max 30).
    """
    activity = await load_supplier_activity(scope, sources)

    rows = []
    for supplier in activity.suppliers:
        quotes = activity.quotes_of(supplier.id)
        conversations = activity.conversations_of(supplier.id)
        reports = activity.reports_of(supplier.id)

        engagement_score = js_round(
            min(len(quotes) * 5, 40) + min(len(conversations) * 3, 30) + min(len(reports) * 3, 30)
        )
        amounts = [quote.quote_amount for quote in quotes]
        rows.append(SupplierOverviewRow(
            supplier_id=supplier.id,
            name=supplier.name,
            email=supplier.email,
            shop_name=supplier.supplier_shop_name,
            tags=supplier.tags or [],
            is_active=supplier.is_active,
            created_at=supplier.created_at,
            quote_metrics=OverviewQuoteMetrics(
                total=len(quotes),
                approved=_count_status(quotes, "approved"),
                completed=_count_status(quotes, "completed_jobs"),
                in_progress=_count_status(quotes, "work_in_progress"),
                total_value=safe_sum(amounts),
                avg_amount=safe_average(amounts),
                approval_rate=rate(_count_status(quotes, "approved"), len(quotes)),
                completion_rate=rate(_count_status(quotes, "completed_jobs"), len(quotes)),
                last_quote_date=_latest(quote.created_at for quote in quotes),
            ),
            communication_metrics=OverviewCommunicationMetrics(
                total_conversations=len(conversations),
                total_messages=sum(_message_count(c) for c in conversations),
                avg_messages_per_conversation=js_round(safe_average([_message_count(c) for c in conversations])),
                last_message_date=_latest(c.last_message_at for c in conversations),
                unread_messages=sum(c.unread_count_company for c in conversations),
            ),
            performance_metrics=OverviewPerformanceMetrics(
                total_reports=len(reports),
                total_revenue=safe_sum(report.final_price for report in reports),
                avg_revenue=safe_average([report.final_price for report in reports]),
                avg_completion_time=js_round(safe_average([_completion_days(report) for report in reports])),
            ),
            engagement_score=engagement_score,
            activity_level=ACTIVITY_LEVEL.classify(engagement_score),
        ))

    rows = top_n(rows, "engagement_score")
    suppliers = activity.suppliers
    return SupplierOverviewReport(
        suppliers=rows,
        summary=SupplierOverviewSummary(
            total_suppliers=len(suppliers),
            active_suppliers=sum(1 for s in suppliers if s.is_active),
            inactive_suppliers=sum(1 for s in suppliers if not s.is_active),
            suppliers_with_quotes=len(activity.quotes),
            suppliers_with_conversations=len(activity.conversations),
            suppliers_with_completed_work=len(activity.reports),
            avg_engagement_score=js_round(safe_average([row.engagement_score for row in rows])),
        ),
    )


def _supplier_reply_hours(conversations) -> List[float]:
    """Company to supplier reply times in hours, inside the response window."""
    hours = []
    for conversation in conversations:
        messages = sorted(
            conversation.messages or [],
            key=lambda message: parse_timestamp(message.get("created_at")) or datetime.min.replace(tzinfo=timezone.utc),
        )
        for response in extract_response_times(messages) or []:
            if response.from_sender == "company" and response.to_sender == "supplier" and response.hours < RESPONSE_WINDOW_HOURS:
                hours.append(response.hours)
    return hours


def _cost_variance(quotes, reports_by_quote: Dict[int, list]) -> Optional[float]:
    """Percent difference between the average final price and the average quote of completed jobs.

    None when the supplier has no completed jobs in scope.
    """
    completed = [quote for quote in quotes if quote.status == "completed_jobs"]
    if not completed:
        return None
    quote_amounts = []
    final_prices = []
    for quote in completed:
        reports = reports_by_quote.get(quote.id) or [None]
        for report in reports:
            quote_amounts.append(quote.quote_amount)
            if report is not None:
                final_prices.append(report.final_price)
    avg_quote = safe_average(quote_amounts)
    if not avg_quote or not final_prices:
        return 0
    return (safe_average(final_prices) - avg_quote) / avg_quote * 100


def _quality(reports) -> QualityBreakdown:
    averages = {}
    for name, attribute in QUALITY_CHECKS.items():
        scores = [getattr(report, attribute) for report in reports if getattr(report, attribute) is not None]
        averages[name] = safe_average(scores) if scores else None
    present = [value for value in averages.values() if value is not None]
    return QualityBreakdown(
        overall=round1(safe_average(present)),
        **{name: round1(value) for name, value in averages.items()},
    )


async def generate_supplier_performance_ranking_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> SupplierPerformanceRankingReport:
    """
    Ranks active suppliers on a weighted score.

    The overall score weighs five 0-100 components: response time 15%
    (``100 - 2 * avg hours`` for company to supplier replies under the
    response window), cost efficiency 20% (``100 - |variance %|`` between
    quoted and final prices of completed jobs), approval rate 25%, completion
    rate 25% and average inspection quality 15%.

    Args:
        scope: Company, dealership and date restriction.
        sources: Model classes to read from.

    Returns:
        SupplierPerformanceRankingReport: Suppliers ordered by overall score
        with a 1-based ``rank``, and the performance level counts.
    """
    activity = await load_supplier_activity(scope, sources, active_only=True)

    rankings = []
    for supplier in activity.suppliers:
        quotes = activity.quotes_of(supplier.id)
        reports = activity.reports_of(supplier.id)
        reports_by_quote = {key: group.rows for key, group in group_by(reports, "quote_id").items()}

        reply_hours = _supplier_reply_hours(activity.conversations_of(supplier.id))
        avg_reply = safe_average(reply_hours)
        # An average reply of zero hours counts as no response data
        response_score = max(0, 100 - avg_reply * 2) if avg_reply else 0

        variance = _cost_variance(quotes, reports_by_quote)
        cost_score = max(0, 100 - abs(variance)) if variance is not None else 0

        approved = _count_status(quotes, "approved")
        completed = _count_status(quotes, "completed_jobs")
        approval_score = approved / len(quotes) * 100 if quotes else 0
        completion_score = completed / len(quotes) * 100 if quotes else 0

        quality = _quality(reports)
        overall = js_round(
            response_score * 0.15
            + cost_score * 0.20
            + approval_score * 0.25
            + completion_score * 0.25
            + quality.overall * 0.15
        )

        rankings.append(SupplierRanking(
            supplier_id=supplier.id,
            name=supplier.name,
            email=supplier.email,
            shop_name=supplier.supplier_shop_name,
            tags=supplier.tags or [],
            performance_scores=PerformanceScores(
                overall=overall,
                response_time=js_round(response_score),
                cost_efficiency=js_round(cost_score),
                approval_rate=js_round(approval_score),
                completion_rate=js_round(completion_score),
                quality=js_round(quality.overall),
            ),
            metrics=RankingMetrics(
                avg_response_time=round1(avg_reply),
                total_responses=len(reply_hours),
                total_quotes=len(quotes),
                approved_quotes=approved,
                completed_quotes=completed,
                rejected_quotes=_count_status(quotes, "rejected"),
                avg_quote_amount=js_round(safe_average([quote.quote_amount for quote in quotes])),
                cost_variance=round1(variance or 0),
                total_revenue=safe_sum(report.final_price for report in reports),
                avg_revenue=js_round(safe_average([report.final_price for report in reports])),
                total_reports=len(reports),
            ),
            quality_breakdown=quality,
            performance_level=PERFORMANCE_LEVEL.classify(overall),
        ))

    rankings = top_n(rankings, lambda row: row.performance_scores.overall)
    for position, row in enumerate(rankings, start=1):
        row.rank = position

    levels = Counter(row.performance_level for row in rankings)
    return SupplierPerformanceRankingReport(
        rankings=rankings,
        summary=RankingSummary(
            total_suppliers=len(rankings),
            avg_overall_score=js_round(safe_average([row.performance_scores.overall for row in rankings])),
            excellent_performers=levels["Excellent"],
            good_performers=levels["Good"],
            average_performers=levels["Average"],
            needs_improvement=levels["Needs Improvement"],
        ),
    )


async def generate_supplier_tag_analysis_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> SupplierTagAnalysisReport:
    """
    Breaks suppliers down by the tags they carry: how many suppliers share
    each tag, the quote and revenue figures behind each tag, how many tags
    suppliers carry and which tags appear together.
    """
    activity = await load_supplier_activity(scope, sources)
    suppliers = activity.suppliers

    tagged_rows = [(tag, supplier) for supplier in suppliers for tag in (supplier.tags or [])]

    tag_distribution = top_n(
        [
            TagDistribution(
                tag=tag,
                supplier_count=group.count,
                active_suppliers=group.count_where(lambda row: row[1].is_active),
                suppliers=[
                    TaggedSupplier(id=s.id, name=s.name, shop_name=s.supplier_shop_name, is_active=s.is_active)
                    for _, s in group.rows
                ],
            )
            for tag, group in group_by(tagged_rows, lambda row: row[0]).items()
        ],
        "supplier_count",
    )

    quote_rows = [(tag, quote) for tag, supplier in tagged_rows for quote in activity.quotes_of(supplier.id)]
    quote_performance = []
    for tag, group in group_by(quote_rows, lambda row: row[0]).items():
        quotes = [quote for _, quote in group.rows]
        approved = _count_status(quotes, "approved")
        completed = _count_status(quotes, "completed_jobs")
        quote_performance.append(TagQuotePerformance(
            tag=tag,
            total_quotes=len(quotes),
            approved_quotes=approved,
            completed_quotes=completed,
            total_quote_value=safe_sum(quote.quote_amount for quote in quotes),
            avg_quote_amount=safe_average([quote.quote_amount for quote in quotes]),
            approval_rate=percentage(approved, len(quotes)),
            completion_rate=percentage(completed, len(quotes)),
        ))
    quote_performance = top_n(quote_performance, "total_quotes")

    report_rows = [(tag, report) for tag, supplier in tagged_rows for report in activity.reports_of(supplier.id)]
    revenue_by_tag = []
    for tag, group in group_by(report_rows, lambda row: row[0]).items():
        reports = [report for _, report in group.rows]
        revenue = safe_sum(report.final_price for report in reports)
        costs = safe_sum(report.parts_cost for report in reports) + safe_sum(report.labour_cost for report in reports)
        revenue_by_tag.append(TagRevenue(
            tag=tag,
            total_reports=len(reports),
            total_revenue=revenue,
            avg_revenue=safe_average([report.final_price for report in reports]),
            total_parts_cost=safe_sum(report.parts_cost for report in reports),
            total_labour_cost=safe_sum(report.labour_cost for report in reports),
            profit_margin=percentage(revenue - costs, revenue),
        ))
    revenue_by_tag = top_n(revenue_by_tag, "total_revenue")

    tag_combinations = [
        TagCountBucket(
            bucket=key,
            count=group.count,
            active_count=group.count_where(lambda s: s.is_active),
            suppliers=[TagCountSupplier(name=s.name, tags=s.tags or [], tag_count=len(s.tags or [])) for s in group.rows],
        )
        for key, group in bucketize(suppliers, lambda s: len(s.tags or []), TAG_COUNT_BOUNDARIES, "5+").items()
    ]

    pair_rows = [
        (f"{first} + {second}", supplier.name)
        for supplier in suppliers
        for first, second in combinations(supplier.tags or [], 2)
    ]
    common_tag_pairs = top_n(
        [
            TagPair(pair=pair, count=group.count, suppliers=[name for _, name in group.rows])
            for pair, group in group_by(pair_rows, lambda row: row[0]).items()
        ],
        "count",
        10,
    )

    untagged = [s for s in suppliers if not s.tags]
    with_tags = len(suppliers) - len(untagged)
    tag_stats = TagStats(
        total_suppliers=len(suppliers),
        suppliers_with_tags=with_tags,
        suppliers_without_tags=len(untagged),
        unique_tags=len(tag_distribution),
        avg_tags_per_supplier=round1(safe_average([len(s.tags or []) for s in suppliers])),
        tag_coverage_rate=percentage(with_tags, len(suppliers)),
    )

    return SupplierTagAnalysisReport(
        tag_distribution=tag_distribution,
        quote_performance_by_tag=quote_performance,
        revenue_by_tag=revenue_by_tag,
        tag_combinations=tag_combinations,
        common_tag_pairs=common_tag_pairs,
        suppliers_without_tags=[
            UntaggedSupplier(id=s.id, name=s.name, email=s.email, shop_name=s.supplier_shop_name, is_active=s.is_active)
            for s in untagged
        ],
        tag_stats=tag_stats,
    )


def _relationship(supplier, activity: SupplierActivity, now: datetime) -> SupplierRelationship:
    conversations = activity.conversations_of(supplier.id)
    quotes = activity.quotes_of(supplier.id)
    reports = activity.reports_of(supplier.id)

    company_messages = sum(_sender_count(c, "company") for c in conversations)
    supplier_messages = sum(_sender_count(c, "supplier") for c in conversations)
    days_since_messages = [days_between(now, c.last_message_at) for c in conversations]
    communication = RelationshipCommunication(
        total_conversations=len(conversations),
        total_messages=sum(_message_count(c) for c in conversations),
        avg_messages_per_conversation=round1(safe_average([_message_count(c) for c in conversations])),
        company_messages=company_messages,
        supplier_messages=supplier_messages,
        response_ratio=round2(supplier_messages / company_messages) if company_messages else 0,
        last_communication=_latest(c.last_message_at for c in conversations),
        days_since_last_message=round1(safe_average(days_since_messages))
        if any(d is not None for d in days_since_messages) else None,
        unread_messages=UnreadMessages(
            company=sum(c.unread_count_company for c in conversations),
            supplier=sum(c.unread_count_supplier for c in conversations),
        ),
    )

    first_quote = _earliest(q.created_at for q in quotes)
    last_quote = _latest(q.created_at for q in quotes)
    engagement = RelationshipEngagement(total_quotes=len(quotes), total_quote_value=safe_sum(q.quote_amount for q in quotes))
    if quotes:
        months_active = (now - first_quote).total_seconds() / (30 * 86400)
        engagement = RelationshipEngagement(
            total_quotes=len(quotes),
            first_quote=first_quote,
            last_quote=last_quote,
            days_since_first_quote=js_round(days_between(now, first_quote)),
            days_since_last_quote=js_round(days_between(now, last_quote)),
            quotes_per_month=round2(len(quotes) / months_active) if months_active > 0 else 0,
            avg_quote_amount=js_round(safe_average([q.quote_amount for q in quotes])),
            total_quote_value=safe_sum(q.quote_amount for q in quotes),
        )

    collaboration = CollaborationMetrics(
        total_quotes=len(quotes),
        approved_quotes=_count_status(quotes, "approved"),
        completed_quotes=_count_status(quotes, "completed_jobs"),
        rejected_quotes=_count_status(quotes, "rejected"),
        in_progress_quotes=_count_status(quotes, "work_in_progress"),
        success_rate=percentage(_count_status(quotes, "completed_jobs"), len(quotes)),
        approval_rate=percentage(_count_status(quotes, "approved"), len(quotes)),
        rejection_rate=percentage(_count_status(quotes, "rejected"), len(quotes)),
    )

    revenue = safe_sum(report.final_price for report in reports)
    value = ValueMetrics(
        total_reports=len(reports),
        lifetime_value=revenue,
        avg_revenue_per_report=js_round(safe_average([report.final_price for report in reports])),
        total_parts_cost=safe_sum(report.parts_cost for report in reports),
        total_labour_cost=safe_sum(report.labour_cost for report in reports),
        avg_completion_time=round1(safe_average([_completion_days(report) for report in reports])),
    )

    strength = js_round(
        min(len(conversations) * 5, 25)
        + min(len(quotes) * 3, 25)
        + collaboration.success_rate * 0.25
        + min(revenue / 10000, 25)
    )
    account_days = math.floor(days_between(now, supplier.created_at) or 0)

    return SupplierRelationship(
        supplier_id=supplier.id,
        name=supplier.name,
        email=supplier.email,
        shop_name=supplier.supplier_shop_name,
        is_active=supplier.is_active,
        account_age=AccountAge(days=account_days, months=account_days // 30),
        communication_metrics=communication,
        engagement_metrics=engagement,
        collaboration_metrics=collaboration,
        value_metrics=value,
        relationship_strength=strength,
        relationship_level=RELATIONSHIP_LEVEL.classify(strength),
        engagement_status=ENGAGEMENT_STATUS.classify(engagement.days_since_last_quote) if quotes else "No Activity",
    )


async def generate_supplier_relationship_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> SupplierRelationshipReport:
    """
    Scores the strength of each supplier relationship.

    Strength adds up to 25 points each for conversations (5 per
    conversation), quotes (3 per quote), the completion rate and lifetime
    revenue (1 point per 10,000). The engagement status follows the days since
    the supplier's last quote in scope; suppliers without quotes have
    ``No Activity``.
    """
    activity = await load_supplier_activity(scope, sources)
    now = datetime.now(timezone.utc)

    relationships = top_n(
        [_relationship(supplier, activity, now) for supplier in activity.suppliers],
        "relationship_strength",
    )
    levels = Counter(row.relationship_level for row in relationships)
    statuses = Counter(row.engagement_status for row in relationships)

    return SupplierRelationshipReport(
        relationships=relationships,
        summary=RelationshipSummary(
            total_suppliers=len(activity.suppliers),
            active_suppliers=sum(1 for s in activity.suppliers if s.is_active),
            suppliers_with_communication=len(activity.conversations),
            suppliers_with_quotes=len(activity.quotes),
            suppliers_with_completed_work=len(activity.reports),
            avg_relationship_strength=js_round(safe_average([row.relationship_strength for row in relationships])),
            relationship_distribution={
                "strong": levels["Strong"],
                "moderate": levels["Moderate"],
                "developing": levels["Developing"],
                "weak": levels["Weak"],
            },
            engagement_distribution={
                "active": statuses["Active"],
                "moderate": statuses["Moderate"],
                "inactive": statuses["Inactive"],
                "noActivity": statuses["No Activity"],
            },
        ),
    )

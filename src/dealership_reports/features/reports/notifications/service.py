"""
Notification Reports Service

Measures how the notification rules configured by a company perform: whether
the notifications they fire get delivered and read, which kinds of trigger
work best and how healthy the in-app channel is.

Configurations are company wide, so the dealership restriction does not
apply. The date range applies to both the configurations and the
notifications counted against them.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..filters import ScopeFilter
from ..metrics import (
    PointsRule, ThresholdLadder, bottom_n, js_round, parse_timestamp, rate, ratio, safe_average, score_rules, top_n,
)
from ..pipeline import group_by, hour_of_day, scoped
from ..schemas import creator_ref, empty_report
from ..sources import DEFAULT_SOURCES, ReportSources
from .schemas import (
    AttentionConfiguration, ChannelHealth, ChannelIssue, ChannelMetrics, ChannelPreferences, ChannelSummary,
    ConditionUsage, ConfigurationChannel, ConfigurationEngagement, ConfigurationRef, DeliveryMetrics,
    EngagementSummary, HourlyDelivery, InAppHealth, NotificationChannelReport,
    NotificationEngagementReport, NotificationTriggerReport, PriorityBreakdown, PriorityChannelPerformance,
    PriorityEngagement, TargetSchemaAnalysis, TargetUserAnalysis, TopChannelPerformer, TopConfiguration,
    TriggerHighlight, TriggerSummary, TriggerTypeAnalysis, TypeBreakdown, TypeEngagement,
)

logger = logging.getLogger(__name__)

NO_CONFIGURATIONS = "No notification configurations found"
DELIVERED_STATUSES = ("delivered", "read")
PRIORITIES = ("low", "medium", "high", "urgent")
TYPES = ("info", "success", "warning", "error")
MAX_HIGHLIGHTED = 5

ENGAGEMENT_RULES = (
    PointsRule("delivery_rate", ((90, 30), (70, 20), (50, 10))),
    PointsRule("read_rate", ((70, 40), (50, 25), (30, 15))),
    PointsRule("failure_rate", ((5, 20), (10, 10), (20, 5)), comparison="lte"),
    PointsRule("minutes_to_read", ((30, 10), (60, 5)), comparison="lte"),
)
EFFECTIVENESS_RULES = (
    PointsRule("delivery_rate", ((90, 40), (70, 25), (50, 15))),
    PointsRule("read_rate", ((70, 40), (50, 25), (30, 15))),
    PointsRule("active_ratio", ((0.7, 20), (0.5, 10))),
)
PERFORMANCE_RULES = (
    PointsRule("delivery_rate", ((95, 40), (85, 30), (70, 20))),
    PointsRule("read_rate", ((70, 40), (50, 25), (30, 15))),
    PointsRule("failure_rate", ((0, 20), (5, 10)), comparison="lte"),
)
IN_APP_HEALTH_RULES = (
    PointsRule("delivery_rate", ((95, 35), (85, 25), (70, 15))),
    PointsRule("read_rate", ((70, 35), (50, 20), (30, 10))),
    PointsRule("failure_rate", ((2, 20), (5, 10), (10, 5)), comparison="lte"),
    PointsRule("delivery_seconds", ((5, 10), (10, 5)), comparison="lte"),
)

QUALITY_STATUS = ThresholdLadder([(80, "Excellent"), (60, "Good"), (40, "Fair")], "Poor")
EFFECTIVENESS_STATUS = ThresholdLadder(
    [(80, "Highly Effective"), (60, "Effective"), (40, "Moderately Effective")], "Needs Improvement"
)


def is_delivered(notification) -> bool:
    return notification.status in DELIVERED_STATUSES


def in_app_channel(notification) -> Optional[Dict[str, Any]]:
    channel = (notification.channels or {}).get("in_app")
    return channel if isinstance(channel, dict) and channel else None


@dataclass
class DeliveryTally:
    """Delivery counts over a set of notifications."""

    sent: int = 0
    delivered: int = 0
    read: int = 0
    failed: int = 0
    pending: int = 0

    @classmethod
    def of(cls, notifications) -> "DeliveryTally":
        return cls(
            sent=len(notifications),
            delivered=sum(1 for n in notifications if is_delivered(n)),
            read=sum(1 for n in notifications if n.is_read),
            failed=sum(1 for n in notifications if n.status == "failed"),
            pending=sum(1 for n in notifications if n.status == "pending"),
        )

    def __add__(self, other: "DeliveryTally") -> "DeliveryTally":
        return DeliveryTally(
            self.sent + other.sent,
            self.delivered + other.delivered,
            self.read + other.read,
            self.failed + other.failed,
            self.pending + other.pending,
        )

    @property
    def delivery_rate(self) -> int:
        return rate(self.delivered, self.sent)

    @property
    def read_rate(self) -> int:
        """Reads over deliveries."""
        return rate(self.read, self.delivered)

    @property
    def failure_rate(self) -> int:
        return rate(self.failed, self.sent)

    @property
    def engagement_rate(self) -> int:
        """Reads over everything sent."""
        return rate(self.read, self.sent)


async def load_configurations(scope: ScopeFilter, sources: ReportSources, *related: str) -> list:
    queryset = scoped(sources.notification_configurations, scope, dealership_field=None)
    if related:
        queryset = queryset.prefetch_related(*related)
    return await queryset.order_by("id")


async def load_notifications(scope: ScopeFilter, sources: ReportSources, configurations) -> Dict[Any, list]:
    """The notifications fired by ``configurations``, keyed by configuration id."""
    notifications = await scoped(sources.notifications, scope, dealership_field=None).filter(
        configuration_id__in=[config.id for config in configurations]
    ).order_by("id")
    logger.debug(f"Loaded {len(notifications)} notification(s) for {len(configurations)} configuration(s)")
    return {key: group.rows for key, group in group_by(notifications, "configuration_id").items()}


def _minutes_to_read(notifications) -> int:
    durations = []
    for notification in notifications:
        if notification.is_read and notification.read_at and notification.created_at:
            durations.append((parse_timestamp(notification.read_at) - parse_timestamp(notification.created_at)).total_seconds())
    return js_round(safe_average(durations) / 60)


async def generate_notification_engagement_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> Union[NotificationEngagementReport, Dict[str, Any]]:
    """
    Generates delivery and read engagement per notification configuration.

    Read rate is computed over delivered notifications, engagement rate over
    everything sent.

    Args:
        scope: Company and creation date restriction.
        sources: Model classes to read from.

    Returns:
        NotificationEngagementReport: Per configuration metrics and scores,
        the top and the worst configurations, engagement by priority and by
        type, and a summary. When the company has no configurations an empty
        payload carrying a message is returned instead.
    """
    configurations = await load_configurations(scope, sources, "created_by")
    if not configurations:
        return empty_report("configurations", "totalConfigurations", NO_CONFIGURATIONS)

    fired = await load_notifications(scope, sources, configurations)
    all_notifications = [n for rows in fired.values() for n in rows]

    analysis = []
    for config in configurations:
        notifications = fired.get(config.id, [])
        tally = DeliveryTally.of(notifications)
        minutes_to_read = _minutes_to_read(notifications)
        score = score_rules(ENGAGEMENT_RULES, {
            "delivery_rate": tally.delivery_rate,
            "read_rate": tally.read_rate,
            "failure_rate": tally.failure_rate,
            "minutes_to_read": minutes_to_read,
        })
        priorities = Counter(n.priority for n in notifications)
        types = Counter(n.type for n in notifications)
        analysis.append(ConfigurationEngagement(
            configuration_id=config.id,
            name=config.name,
            description=config.description,
            is_active=config.is_active,
            trigger_type=config.trigger_type,
            target_schema=config.target_schema,
            channels=config.notification_channels or {},
            metrics=DeliveryMetrics(
                total_sent=tally.sent,
                delivered=tally.delivered,
                read=tally.read,
                failed=tally.failed,
                pending=tally.pending,
                delivery_rate=tally.delivery_rate,
                read_rate=tally.read_rate,
                failure_rate=tally.failure_rate,
                engagement_rate=tally.engagement_rate,
                avg_time_to_read_minutes=minutes_to_read,
            ),
            priority_breakdown=PriorityBreakdown(**{p: priorities.get(p, 0) for p in PRIORITIES}),
            type_breakdown=TypeBreakdown(**{t: types.get(t, 0) for t in TYPES}),
            engagement_score=score,
            engagement_status=QUALITY_STATUS(score),
            created_by=creator_ref(config.created_by),
            created_at=config.created_at,
        ))

    top = [
        TopConfiguration(
            name=c.name,
            engagement_score=c.engagement_score,
            engagement_status=c.engagement_status,
            read_rate=c.metrics.read_rate,
            total_sent=c.metrics.total_sent,
        )
        for c in top_n([c for c in analysis if c.metrics.total_sent > 0], "engagement_score", MAX_HIGHLIGHTED)
    ]
    needing_attention = [
        AttentionConfiguration(
            name=c.name,
            engagement_score=c.engagement_score,
            engagement_status=c.engagement_status,
            failure_rate=c.metrics.failure_rate,
            total_sent=c.metrics.total_sent,
        )
        for c in bottom_n(
            [c for c in analysis if c.engagement_status == "Poor" or c.metrics.failure_rate > 20],
            "engagement_score",
            MAX_HIGHLIGHTED,
        )
    ]

    def read_engagement(field_name: str, labels):
        groups = group_by(all_notifications, field_name)
        rows = []
        for label in labels:
            group = groups.get(label)
            sent = group.count if group else 0
            read = group.count_where(lambda n: n.is_read) if group else 0
            rows.append({field_name: label, "sent": sent, "read": read, "read_rate": rate(read, sent)})
        return rows

    overall = DeliveryTally.of(all_notifications)
    active = [c for c in analysis if c.is_active]
    statuses = Counter(c.engagement_status for c in analysis)
    summary = EngagementSummary(
        total_configurations=len(configurations),
        active_configurations=len(active),
        inactive_configurations=len(analysis) - len(active),
        total_notifications_sent=overall.sent,
        total_delivered=overall.delivered,
        total_read=overall.read,
        total_failed=overall.failed,
        overall_delivery_rate=overall.delivery_rate,
        overall_read_rate=overall.read_rate,
        overall_engagement_rate=overall.engagement_rate,
        avg_engagement_score=js_round(safe_average(c.engagement_score for c in analysis)),
        excellent_configurations=statuses["Excellent"],
        good_configurations=statuses["Good"],
        fair_configurations=statuses["Fair"],
        poor_configurations=statuses["Poor"],
        avg_active_engagement=js_round(safe_average(c.engagement_score for c in active)),
        configurations_with_high_failure_rate=sum(1 for c in analysis if c.metrics.failure_rate > 20),
    )

    return NotificationEngagementReport(
        configurations=analysis,
        top_configurations=top,
        configurations_needing_attention=needing_attention,
        priority_engagement=[PriorityEngagement(**row) for row in read_engagement("priority", PRIORITIES)],
        type_engagement=[TypeEngagement(**row) for row in read_engagement("type", TYPES)],
        summary=summary,
    )


def _conditions(config) -> Dict[str, Any]:
    conditions = config.conditions
    return conditions if isinstance(conditions, dict) else {}


def _condition_enabled(config, name: str) -> bool:
    condition = _conditions(config).get(name)
    return bool(isinstance(condition, dict) and condition.get("enabled"))


def _condition_count(config) -> int:
    return sum(1 for name in ("time_based", "frequency_limit") if _condition_enabled(config, name))


def _has_custom_event(config) -> bool:
    event = config.custom_event_config
    return bool(isinstance(event, dict) and event.get("event_name"))


def _target_user_type(config) -> str:
    target = config.target_users if isinstance(config.target_users, dict) else {}
    return target.get("type") or "all"


async def generate_notification_trigger_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> Union[NotificationTriggerReport, Dict[str, Any]]:
    """
    Generates how effective each trigger type, target schema and audience is.

    Effectiveness combines the delivery and read rates of the notifications
    fired by a trigger type with the share of its configurations that are
    active.
    """
    configurations = await load_configurations(scope, sources)
    if not configurations:
        return empty_report("triggers", "totalConfigurations", NO_CONFIGURATIONS)

    fired = await load_notifications(scope, sources, configurations)
    tallies = {config.id: DeliveryTally.of(fired.get(config.id, [])) for config in configurations}

    def combined(configs) -> DeliveryTally:
        total = DeliveryTally()
        for config in configs:
            total = total + tallies[config.id]
        return total

    trigger_types = []
    for trigger_type, group in group_by(configurations, lambda c: c.trigger_type or "unknown").items():
        tally = combined(group.rows)
        active_count = group.count_where(lambda c: c.is_active)
        score = score_rules(EFFECTIVENESS_RULES, {
            "delivery_rate": tally.delivery_rate,
            "read_rate": tally.read_rate,
            "active_ratio": active_count / group.count,
        })
        trigger_types.append(TriggerTypeAnalysis(
            trigger_type=trigger_type,
            configuration_count=group.count,
            active_configurations=active_count,
            inactive_configurations=group.count - active_count,
            total_notifications_sent=tally.sent,
            delivered=tally.delivered,
            read=tally.read,
            delivery_rate=tally.delivery_rate,
            read_rate=tally.read_rate,
            effectiveness_score=score,
            effectiveness_status=EFFECTIVENESS_STATUS(score),
            avg_notifications_per_config=ratio(tally.sent, group.count),
            configurations=[
                ConfigurationRef(configuration_id=c.id, name=c.name, is_active=c.is_active, target_schema=c.target_schema)
                for c in group.rows
            ],
        ))
    trigger_types = top_n(trigger_types, "effectiveness_score")

    target_schemas = []
    for schema, group in group_by(configurations, lambda c: c.target_schema or "unknown").items():
        tally = combined(group.rows)
        target_schemas.append(TargetSchemaAnalysis(
            target_schema=schema,
            configuration_count=group.count,
            active_configurations=group.count_where(lambda c: c.is_active),
            total_notifications_sent=tally.sent,
            total_read=tally.read,
            read_rate=tally.engagement_rate,
            trigger_distribution=dict(Counter(c.trigger_type or "unknown" for c in group.rows)),
            avg_notifications_per_config=ratio(tally.sent, group.count),
        ))
    target_schemas = top_n(target_schemas, "total_notifications_sent")

    target_users = []
    for user_type, group in group_by(configurations, _target_user_type).items():
        tally = combined(group.rows)
        target_users.append(TargetUserAnalysis(
            target_user_type=user_type,
            configuration_count=group.count,
            percentage=rate(group.count, len(configurations)),
            total_notifications_sent=tally.sent,
            total_read=tally.read,
            read_rate=tally.engagement_rate,
        ))
    target_users = top_n(target_users, "configuration_count")

    def highlight(row: Optional[TriggerTypeAnalysis]) -> Optional[TriggerHighlight]:
        if row is None:
            return None
        return TriggerHighlight(
            trigger_type=row.trigger_type,
            effectiveness_score=row.effectiveness_score,
            effectiveness_status=row.effectiveness_status,
            configuration_count=row.configuration_count,
        )

    most_effective = trigger_types[0] if trigger_types else None
    least_effective = trigger_types[-1] if trigger_types else None
    most_active_schema = target_schemas[0] if target_schemas else None

    usage = ConditionUsage(
        time_based_conditions=sum(1 for c in configurations if _condition_enabled(c, "time_based")),
        frequency_limits=sum(1 for c in configurations if _condition_enabled(c, "frequency_limit")),
        target_field_filters=sum(1 for c in configurations if c.target_fields),
        custom_events=sum(1 for c in configurations if _has_custom_event(c)),
    )
    total_sent = sum(tally.sent for tally in tallies.values())
    summary = TriggerSummary(
        total_configurations=len(configurations),
        active_configurations=sum(1 for c in configurations if c.is_active),
        unique_trigger_types=len(trigger_types),
        unique_target_schemas=len(target_schemas),
        most_effective_trigger=most_effective.trigger_type if most_effective else "none",
        most_effective_trigger_score=most_effective.effectiveness_score if most_effective else 0,
        least_effective_trigger=least_effective.trigger_type if least_effective else "none",
        least_effective_trigger_score=least_effective.effectiveness_score if least_effective else 0,
        most_active_schema=most_active_schema.target_schema if most_active_schema else "none",
        most_active_schema_notifications=most_active_schema.total_notifications_sent if most_active_schema else 0,
        configurations_with_time_conditions=usage.time_based_conditions,
        configurations_with_frequency_limits=usage.frequency_limits,
        configurations_with_target_fields=usage.target_field_filters,
        custom_event_configurations=usage.custom_events,
        avg_target_fields_per_config=ratio(sum(len(c.target_fields or []) for c in configurations), len(configurations)),
        avg_conditions_per_config=ratio(sum(_condition_count(c) for c in configurations), len(configurations)),
        total_notifications_sent=total_sent,
        avg_notifications_per_config=ratio(total_sent, len(configurations)),
    )

    return NotificationTriggerReport(
        trigger_types=trigger_types,
        target_schemas=target_schemas,
        target_user_types=target_users,
        most_effective_trigger=highlight(most_effective),
        least_effective_trigger=highlight(least_effective),
        condition_usage=usage,
        summary=summary,
    )


def in_app_enabled(config) -> bool:
    return (config.notification_channels or {}).get("in_app") is not False


def _channel_metrics(notifications) -> ChannelMetrics:
    in_app = [n for n in notifications if in_app_channel(n)]
    sent = sum(1 for n in in_app if in_app_channel(n).get("sent"))
    delivered = sum(1 for n in in_app if is_delivered(n))
    read = sum(1 for n in in_app if n.is_read)
    failed = sum(1 for n in in_app if in_app_channel(n).get("error"))
    return ChannelMetrics(
        total_notifications=len(notifications),
        in_app_sent=sent,
        in_app_delivered=delivered,
        in_app_read=read,
        in_app_failed=failed,
        delivery_rate=rate(delivered, sent),
        read_rate=rate(read, delivered),
        failure_rate=rate(failed, sent),
    )


def _delivery_seconds(notifications) -> int:
    durations = []
    for notification in notifications:
        channel = in_app_channel(notification)
        if not channel or not channel.get("sent"):
            continue
        sent_at = parse_timestamp(channel.get("sent_at"))
        created_at = parse_timestamp(notification.created_at)
        if sent_at and created_at:
            durations.append((sent_at - created_at).total_seconds())
    return js_round(safe_average(durations))


async def generate_notification_channel_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> Union[NotificationChannelReport, Dict[str, Any]]:
    """
    Generates delivery performance for the in-app channel.

    Args:
        scope: Company and creation date restriction.
        sources: Model classes to read from.

    Returns:
        NotificationChannelReport: Overall in-app health, per configuration
        channel performance, hourly delivery patterns, performance by
        priority and a summary, or an empty payload with a message when the
        company has no configurations.
    """
    configurations = await load_configurations(scope, sources)
    if not configurations:
        return empty_report("channels", "totalConfigurations", NO_CONFIGURATIONS)

    fired = await load_notifications(scope, sources, configurations)
    all_notifications = [n for rows in fired.values() for n in rows]

    overall = _channel_metrics(all_notifications)
    delivery_seconds = _delivery_seconds(all_notifications)
    enabled = [c for c in configurations if in_app_enabled(c)]
    health = score_rules(IN_APP_HEALTH_RULES, {
        "delivery_rate": overall.delivery_rate,
        "read_rate": overall.read_rate,
        "failure_rate": overall.failure_rate,
        "delivery_seconds": delivery_seconds,
    })
    channel_health = ChannelHealth(in_app=InAppHealth(
        total_sent=overall.in_app_sent,
        total_delivered=overall.in_app_delivered,
        total_read=overall.in_app_read,
        total_failed=overall.in_app_failed,
        delivery_rate=overall.delivery_rate,
        read_rate=overall.read_rate,
        failure_rate=overall.failure_rate,
        avg_delivery_time_seconds=delivery_seconds,
        configurations_enabled=len(enabled),
        health_score=health,
        health_status=QUALITY_STATUS(health),
    ))

    analysis = []
    for config in configurations:
        metrics = _channel_metrics(fired.get(config.id, []))
        score = score_rules(PERFORMANCE_RULES, {
            "delivery_rate": metrics.delivery_rate,
            "read_rate": metrics.read_rate,
            "failure_rate": metrics.failure_rate,
        })
        analysis.append(ConfigurationChannel(
            configuration_id=config.id,
            name=config.name,
            is_active=config.is_active,
            in_app_enabled=in_app_enabled(config),
            metrics=metrics,
            performance_score=score,
            performance_status=QUALITY_STATUS(score),
        ))

    top_performers = [
        TopChannelPerformer(
            name=c.name,
            performance_score=c.performance_score,
            performance_status=c.performance_status,
            delivery_rate=c.metrics.delivery_rate,
            read_rate=c.metrics.read_rate,
        )
        for c in top_n([c for c in analysis if c.metrics.in_app_sent > 0], "performance_score", MAX_HIGHLIGHTED)
    ]
    with_issues = [
        ChannelIssue(
            name=c.name,
            performance_score=c.performance_score,
            performance_status=c.performance_status,
            failure_rate=c.metrics.failure_rate,
            total_sent=c.metrics.in_app_sent,
        )
        for c in bottom_n(
            [c for c in analysis if c.performance_status == "Poor" or c.metrics.failure_rate > 10],
            "performance_score",
            MAX_HIGHLIGHTED,
        )
    ]

    hourly = []
    for hour, group in sorted(group_by(all_notifications, lambda n: hour_of_day(n.created_at)).items()):
        delivered = group.count_where(is_delivered)
        read = group.count_where(lambda n: n.is_read)
        hourly.append(HourlyDelivery(
            hour=hour,
            sent=group.count,
            delivered=delivered,
            read=read,
            delivery_rate=rate(delivered, group.count),
            read_rate=rate(read, delivered),
        ))

    priorities = group_by(all_notifications, "priority")
    priority_performance = []
    for priority in PRIORITIES:
        group = priorities.get(priority)
        if group is None:
            priority_performance.append(PriorityChannelPerformance(priority=priority))
            continue
        delivered = group.count_where(is_delivered)
        read = group.count_where(lambda n: n.is_read)
        priority_performance.append(PriorityChannelPerformance(
            priority=priority,
            sent=group.count,
            delivered=delivered,
            read=read,
            delivery_rate=rate(delivered, group.count),
            read_rate=rate(read, delivered),
        ))

    statuses = Counter(c.performance_status for c in analysis)
    summary = ChannelSummary(
        total_configurations=len(configurations),
        total_notifications=len(all_notifications),
        in_app_enabled_configurations=len(enabled),
        in_app_disabled_configurations=len(configurations) - len(enabled),
        overall_in_app_delivery_rate=overall.delivery_rate,
        overall_in_app_read_rate=overall.read_rate,
        overall_in_app_failure_rate=overall.failure_rate,
        avg_in_app_delivery_time_seconds=delivery_seconds,
        excellent_performers=statuses["Excellent"],
        good_performers=statuses["Good"],
        fair_performers=statuses["Fair"],
        poor_performers=statuses["Poor"],
        configurations_with_issues=len(with_issues),
        avg_channel_performance_score=js_round(safe_average(c.performance_score for c in analysis)),
        overall_channel_health_score=health,
    )

    return NotificationChannelReport(
        channel_health=channel_health,
        configurations=analysis,
        top_channel_performers=top_performers,
        configurations_with_issues=with_issues,
        channel_preferences=ChannelPreferences(
            in_app_enabled=len(enabled),
            in_app_disabled=len(configurations) - len(enabled),
            in_app_enabled_percentage=rate(len(enabled), len(configurations)),
        ),
        delivery_patterns_by_hour=hourly,
        priority_channel_performance=priority_performance,
        summary=summary,
    )

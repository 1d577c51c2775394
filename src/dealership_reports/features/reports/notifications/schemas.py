"""Result records for the notification configuration reports."""
from typing import Any, Dict, List, Optional
import datetime

from ..schemas import CamelModel, CreatorRef


# Engagement metrics

class DeliveryMetrics(CamelModel):
    total_sent: int = 0
    delivered: int = 0
    read: int = 0
    failed: int = 0
    pending: int = 0
    delivery_rate: int = 0
    read_rate: int = 0
    failure_rate: int = 0
    engagement_rate: int = 0
    avg_time_to_read_minutes: int = 0


class PriorityBreakdown(CamelModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    urgent: int = 0


class TypeBreakdown(CamelModel):
    info: int = 0
    success: int = 0
    warning: int = 0
    error: int = 0


class ConfigurationEngagement(CamelModel):
    configuration_id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    trigger_type: Optional[str] = None
    target_schema: Optional[str] = None
    channels: Dict[str, Any] = {}
    metrics: DeliveryMetrics
    priority_breakdown: PriorityBreakdown
    type_breakdown: TypeBreakdown
    engagement_score: int
    engagement_status: str
    created_by: Optional[CreatorRef] = None
    created_at: Optional[datetime.datetime] = None


class TopConfiguration(CamelModel):
    name: str
    engagement_score: int
    engagement_status: str
    read_rate: int
    total_sent: int


class AttentionConfiguration(CamelModel):
    name: str
    engagement_score: int
    engagement_status: str
    failure_rate: int
    total_sent: int


class PriorityEngagement(CamelModel):
    priority: str
    sent: int = 0
    read: int = 0
    read_rate: int = 0


class TypeEngagement(CamelModel):
    type: str
    sent: int = 0
    read: int = 0
    read_rate: int = 0


class EngagementSummary(CamelModel):
    total_configurations: int
    active_configurations: int
    inactive_configurations: int
    total_notifications_sent: int
    total_delivered: int
    total_read: int
    total_failed: int
    overall_delivery_rate: int
    overall_read_rate: int
    overall_engagement_rate: int
    avg_engagement_score: int
    excellent_configurations: int
    good_configurations: int
    fair_configurations: int
    poor_configurations: int
    avg_active_engagement: int
    configurations_with_high_failure_rate: int


class NotificationEngagementReport(CamelModel):
    configurations: List[ConfigurationEngagement]
    top_configurations: List[TopConfiguration]
    configurations_needing_attention: List[AttentionConfiguration]
    priority_engagement: List[PriorityEngagement]
    type_engagement: List[TypeEngagement]
    summary: EngagementSummary


# Trigger analysis

class ConfigurationRef(CamelModel):
    configuration_id: int
    name: str
    is_active: bool
    target_schema: Optional[str] = None


class TriggerTypeAnalysis(CamelModel):
    trigger_type: str
    configuration_count: int
    active_configurations: int
    inactive_configurations: int
    total_notifications_sent: int
    delivered: int
    read: int
    delivery_rate: int
    read_rate: int
    effectiveness_score: int
    effectiveness_status: str
    avg_notifications_per_config: float
    configurations: List[ConfigurationRef]


class TargetSchemaAnalysis(CamelModel):
    target_schema: str
    configuration_count: int
    active_configurations: int
    total_notifications_sent: int
    total_read: int
    read_rate: int
    trigger_distribution: Dict[str, int]
    avg_notifications_per_config: float


class TargetUserAnalysis(CamelModel):
    target_user_type: str
    configuration_count: int
    percentage: int
    total_notifications_sent: int
    total_read: int
    read_rate: int


class TriggerHighlight(CamelModel):
    trigger_type: str
    effectiveness_score: int
    effectiveness_status: str
    configuration_count: int


class ConditionUsage(CamelModel):
    time_based_conditions: int = 0
    frequency_limits: int = 0
    target_field_filters: int = 0
    custom_events: int = 0


class TriggerSummary(CamelModel):
    total_configurations: int
    active_configurations: int
    unique_trigger_types: int
    unique_target_schemas: int
    most_effective_trigger: str
    most_effective_trigger_score: int
    least_effective_trigger: str
    least_effective_trigger_score: int
    most_active_schema: str
    most_active_schema_notifications: int
    configurations_with_time_conditions: int
    configurations_with_frequency_limits: int
    configurations_with_target_fields: int
    custom_event_configurations: int
    avg_target_fields_per_config: float
    avg_conditions_per_config: float
    total_notifications_sent: int
    avg_notifications_per_config: float


class NotificationTriggerReport(CamelModel):
    trigger_types: List[TriggerTypeAnalysis]
    target_schemas: List[TargetSchemaAnalysis]
    target_user_types: List[TargetUserAnalysis]
    most_effective_trigger: Optional[TriggerHighlight] = None
    least_effective_trigger: Optional[TriggerHighlight] = None
    condition_usage: ConditionUsage
    summary: TriggerSummary


# Channel performance

class InAppHealth(CamelModel):
    total_sent: int = 0
    total_delivered: int = 0
    total_read: int = 0
    total_failed: int = 0
    delivery_rate: int = 0
    read_rate: int = 0
    failure_rate: int = 0
    avg_delivery_time_seconds: int = 0
    configurations_enabled: int = 0
    health_score: int = 0
    health_status: str = "Poor"


class ChannelHealth(CamelModel):
    in_app: InAppHealth


class ChannelMetrics(CamelModel):
    total_notifications: int = 0
    in_app_sent: int = 0
    in_app_delivered: int = 0
    in_app_read: int = 0
    in_app_failed: int = 0
    delivery_rate: int = 0
    read_rate: int = 0
    failure_rate: int = 0


class ConfigurationChannel(CamelModel):
    configuration_id: int
    name: str
    is_active: bool
    in_app_enabled: bool
    metrics: ChannelMetrics
    performance_score: int
    performance_status: str


class TopChannelPerformer(CamelModel):
    name: str
    performance_score: int
    performance_status: str
    delivery_rate: int
    read_rate: int


class ChannelIssue(CamelModel):
    name: str
    performance_score: int
    performance_status: str
    failure_rate: int
    total_sent: int


class ChannelPreferences(CamelModel):
    in_app_enabled: int
    in_app_disabled: int
    in_app_enabled_percentage: int


class HourlyDelivery(CamelModel):
    hour: int
    sent: int
    delivered: int
    read: int
    delivery_rate: int
    read_rate: int


class PriorityChannelPerformance(CamelModel):
    priority: str
    sent: int = 0
    delivered: int = 0
    read: int = 0
    delivery_rate: int = 0
    read_rate: int = 0


class ChannelSummary(CamelModel):
    total_configurations: int
    total_notifications: int
    in_app_enabled_configurations: int
    in_app_disabled_configurations: int
    overall_in_app_delivery_rate: int
    overall_in_app_read_rate: int
    overall_in_app_failure_rate: int
    avg_in_app_delivery_time_seconds: int
    excellent_performers: int
    good_performers: int
    fair_performers: int
    poor_performers: int
    configurations_with_issues: int
    avg_channel_performance_score: int
    overall_channel_health_score: int


class NotificationChannelReport(CamelModel):
    channel_health: ChannelHealth
    configurations: List[ConfigurationChannel]
    top_channel_performers: List[TopChannelPerformer]
    configurations_with_issues: List[ChannelIssue]
    channel_preferences: ChannelPreferences
    delivery_patterns_by_hour: List[HourlyDelivery]
    priority_channel_performance: List[PriorityChannelPerformance]
    summary: ChannelSummary

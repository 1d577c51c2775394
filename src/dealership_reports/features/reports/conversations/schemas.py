"""Result records for the conversation reports."""
from typing import Dict, List, Optional
import datetime

from ..schemas import CamelModel


# Volume analysis

class DailyVolume(CamelModel):
    date: str
    year: int
    month: int
    day: int
    total_messages: int
    company_messages: int
    supplier_messages: int
    unique_conversations: int
    avg_messages_per_conversation: float


class DayOfWeekVolume(CamelModel):
    day_of_week: str
    day_number: int
    total_messages: int
    company_messages: int
    supplier_messages: int
    company_percentage: int
    supplier_percentage: int


class HourlyVolume(CamelModel):
    hour: int
    time_slot: str
    total_messages: int
    company_messages: int
    supplier_messages: int
    time_of_day: str


class ActiveConversation(CamelModel):
    conversation_id: int
    quote_id: Optional[int] = None
    supplier_id: Optional[int] = None
    total_messages: int
    company_messages: int
    supplier_messages: int
    last_message_at: Optional[datetime.datetime] = None
    unread_company: int
    unread_supplier: int


class MessageTypeDistribution(CamelModel):
    text: int = 0
    image: int = 0
    file: int = 0
    text_percentage: int = 0
    image_percentage: int = 0
    file_percentage: int = 0


class PeakDay(CamelModel):
    day_of_week: str
    messages: int


class PeakHour(CamelModel):
    time_slot: str
    messages: int


class PeakActivity(CamelModel):
    day: Optional[PeakDay] = None
    hour: Optional[PeakHour] = None


class TimeOfDayDistribution(CamelModel):
    morning: int = 0
    afternoon: int = 0
    evening: int = 0


class VolumeSummary(CamelModel):
    total_conversations: int
    active_conversations: int
    archived_conversations: int
    total_messages: int
    total_company_messages: int
    total_supplier_messages: int
    avg_messages_per_conversation: float
    company_message_percentage: int
    supplier_message_percentage: int
    message_type_distribution: MessageTypeDistribution
    peak_activity: PeakActivity
    time_of_day_distribution: TimeOfDayDistribution


class ConversationVolumeReport(CamelModel):
    daily_volume: List[DailyVolume]
    day_of_week_analysis: List[DayOfWeekVolume]
    hourly_analysis: List[HourlyVolume]
    top_active_conversations: List[ActiveConversation]
    summary: VolumeSummary


# Response times

class ResponseTimeEntry(CamelModel):
    from_sender: str
    to_sender: str
    response_time_ms: float
    response_time_minutes: int
    response_time_hours: float


class ConversationResponseTimes(CamelModel):
    conversation_id: int
    quote_id: Optional[int] = None
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    total_messages: int
    total_responses: int
    company_responses: int
    supplier_responses: int
    avg_company_response_time_minutes: int
    avg_supplier_response_time_minutes: int
    avg_company_response_time_hours: float
    avg_supplier_response_time_hours: float
    fastest_response_minutes: int
    slowest_response_minutes: int
    response_times: List[ResponseTimeEntry]


class SupplierResponsePerformance(CamelModel):
    supplier_id: int
    supplier_name: Optional[str] = None
    conversation_count: int
    total_responses: int
    avg_response_time_minutes: int
    avg_response_time_hours: float
    fastest_response_minutes: int
    slowest_response_minutes: int
    response_category: str
    performance_score: str


class ResponseTimeTrend(CamelModel):
    date: str
    avg_company_response_time: int
    avg_supplier_response_time: int
    company_response_count: int
    supplier_response_count: int


class ResponseDistribution(CamelModel):
    immediate: int = 0
    fast: int = 0
    moderate: int = 0
    slow: int = 0
    very_slow: int = 0


class ResponderMetrics(CamelModel):
    avg_response_time_minutes: int
    avg_response_time_hours: float
    total_responses: int
    fastest_response_minutes: int
    slowest_response_minutes: int
    distribution: ResponseDistribution
    performance_rating: str


class ResponderComparison(CamelModel):
    faster_responder: str
    time_difference_minutes: int
    time_difference_hours: float


class ResponseTimeSummary(CamelModel):
    total_conversations_analyzed: int
    total_responses: int
    company_metrics: ResponderMetrics
    supplier_metrics: ResponderMetrics
    comparison: ResponderComparison


class ConversationResponseTimeReport(CamelModel):
    conversations: List[ConversationResponseTimes]
    supplier_performance: List[SupplierResponsePerformance]
    trends: List[ResponseTimeTrend]
    summary: ResponseTimeSummary


# Engagement

class ConversationEngagement(CamelModel):
    conversation_id: int
    quote_id: Optional[int] = None
    quote_status: Optional[str] = None
    quote_type: Optional[str] = None
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    total_messages: int
    company_messages: int
    supplier_messages: int
    read_messages: int
    unread_messages: int
    read_rate: int
    unread_count_company: int
    unread_count_supplier: int
    message_balance: int
    message_frequency_per_day: float
    engagement_score: int
    engagement_level: str
    duration_hours: float
    duration_days: float
    is_resolved: bool
    time_to_resolution_days: Optional[float] = None
    is_archived: bool
    created_at: Optional[datetime.datetime] = None
    last_message_at: Optional[datetime.datetime] = None


class TopEngagedConversation(CamelModel):
    conversation_id: int
    quote_id: Optional[int] = None
    supplier_name: Optional[str] = None
    engagement_score: int
    engagement_level: str
    total_messages: int
    read_rate: int
    is_resolved: bool


class LowEngagementConversation(CamelModel):
    conversation_id: int
    quote_id: Optional[int] = None
    supplier_name: Optional[str] = None
    engagement_score: int
    total_messages: int
    read_rate: int
    duration_days: float
    needs_attention: bool = True


class QuoteTypeEngagement(CamelModel):
    quote_type: str
    conversation_count: int
    total_messages: int
    avg_messages_per_conversation: float
    avg_engagement_score: int
    resolution_rate: int


class SupplierEngagement(CamelModel):
    supplier_id: int
    supplier_name: Optional[str] = None
    conversation_count: int
    total_messages: int
    avg_messages_per_conversation: float
    avg_engagement_score: int
    avg_read_rate: int
    resolution_rate: int
    engagement_level: str


class EngagementTrend(CamelModel):
    period: str
    conversation_count: int
    total_messages: int
    avg_messages_per_conversation: float
    avg_engagement_score: int
    avg_read_rate: int
    resolution_rate: int


class ReadMetrics(CamelModel):
    total_read_messages: int
    total_unread_messages: int
    overall_read_rate: int
    avg_unread_per_conversation: float


class EngagementMetrics(CamelModel):
    avg_engagement_score: int
    distribution: Dict[str, int]
    high_engagement_percentage: int


class ResolutionMetrics(CamelModel):
    resolution_rate: int
    avg_time_to_resolution_days: float
    unresolved_conversations: int
    avg_duration_days: float


class PerformanceIndicators(CamelModel):
    needs_attention: int
    high_performers: int
    overall_health: str


class EngagementSummary(CamelModel):
    total_conversations: int
    active_conversations: int
    resolved_conversations: int
    archived_conversations: int
    total_messages: int
    avg_messages_per_conversation: float
    read_metrics: ReadMetrics
    engagement_metrics: EngagementMetrics
    resolution_metrics: ResolutionMetrics
    performance_indicators: PerformanceIndicators


class ConversationEngagementReport(CamelModel):
    conversations: List[ConversationEngagement]
    top_engaged: List[TopEngagedConversation]
    low_engagement: List[LowEngagementConversation]
    quote_type_analysis: List[QuoteTypeEngagement]
    supplier_engagement: List[SupplierEngagement]
    trends: List[EngagementTrend]
    summary: EngagementSummary

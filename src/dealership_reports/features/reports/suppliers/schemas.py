"""Result records for the supplier reports."""
from typing import Any, Dict, List, Optional
import datetime

from ..schemas import CamelModel


class SupplierRef(CamelModel):
    supplier_id: int
    name: str
    email: Optional[str] = None
    shop_name: Optional[str] = None


# Overview

class OverviewQuoteMetrics(CamelModel):
    total: int = 0
    approved: int = 0
    completed: int = 0
    in_progress: int = 0
    total_value: float = 0
    avg_amount: float = 0
    approval_rate: int = 0
    completion_rate: int = 0
    last_quote_date: Optional[datetime.datetime] = None


class OverviewCommunicationMetrics(CamelModel):
    total_conversations: int = 0
    total_messages: int = 0
    avg_messages_per_conversation: int = 0
    last_message_date: Optional[datetime.datetime] = None
    unread_messages: int = 0


class OverviewPerformanceMetrics(CamelModel):
    total_reports: int = 0
    total_revenue: float = 0
    avg_revenue: float = 0
    avg_completion_time: int = 0


class SupplierOverviewRow(SupplierRef):
    tags: List[str] = []
    is_active: bool
    created_at: Optional[datetime.datetime] = None
    quote_metrics: OverviewQuoteMetrics
    communication_metrics: OverviewCommunicationMetrics
    performance_metrics: OverviewPerformanceMetrics
    engagement_score: int
    activity_level: str


class SupplierOverviewSummary(CamelModel):
    total_suppliers: int
    active_suppliers: int
    inactive_suppliers: int
    suppliers_with_quotes: int
    suppliers_with_conversations: int
    suppliers_with_completed_work: int
    avg_engagement_score: int


class SupplierOverviewReport(CamelModel):
    suppliers: List[SupplierOverviewRow]
    summary: SupplierOverviewSummary


# Performance ranking

class PerformanceScores(CamelModel):
    overall: int
    response_time: int
    cost_efficiency: int
    approval_rate: int
    completion_rate: int
    quality: int


class RankingMetrics(CamelModel):
    avg_response_time: float = 0
    total_responses: int = 0
    total_quotes: int = 0
    approved_quotes: int = 0
    completed_quotes: int = 0
    rejected_quotes: int = 0
    avg_quote_amount: int = 0
    cost_variance: float = 0
    total_revenue: float = 0
    avg_revenue: int = 0
    total_reports: int = 0


class QualityBreakdown(CamelModel):
    visual: float = 0
    functional: float = 0
    road_test: float = 0
    safety: float = 0
    overall: float = 0


class SupplierRanking(SupplierRef):
    tags: List[str] = []
    performance_scores: PerformanceScores
    metrics: RankingMetrics
    quality_breakdown: QualityBreakdown
    performance_level: str
    rank: int = 0


class RankingSummary(CamelModel):
    total_suppliers: int
    avg_overall_score: int
    excellent_performers: int
    good_performers: int
    average_performers: int
    needs_improvement: int


class SupplierPerformanceRankingReport(CamelModel):
    rankings: List[SupplierRanking]
    summary: RankingSummary


# Tag analysis

class TaggedSupplier(CamelModel):
    id: int
    name: str
    shop_name: Optional[str] = None
    is_active: bool


class TagDistribution(CamelModel):
    tag: str
    supplier_count: int
    active_suppliers: int
    suppliers: List[TaggedSupplier]


class TagQuotePerformance(CamelModel):
    tag: str
    total_quotes: int
    approved_quotes: int
    completed_quotes: int
    total_quote_value: float
    avg_quote_amount: float
    approval_rate: float
    completion_rate: float


class TagRevenue(CamelModel):
    tag: str
    total_reports: int
    total_revenue: float
    avg_revenue: float
    total_parts_cost: float
    total_labour_cost: float
    profit_margin: float


class TagCountSupplier(CamelModel):
    name: str
    tags: List[str]
    tag_count: int


class TagCountBucket(CamelModel):
    bucket: Any
    count: int
    active_count: int
    suppliers: List[TagCountSupplier]


class TagPair(CamelModel):
    pair: str
    count: int
    suppliers: List[str]


class UntaggedSupplier(CamelModel):
    id: int
    name: str
    email: Optional[str] = None
    shop_name: Optional[str] = None
    is_active: bool


class TagStats(CamelModel):
    total_suppliers: int
    suppliers_with_tags: int
    suppliers_without_tags: int
    unique_tags: int
    avg_tags_per_supplier: float
    tag_coverage_rate: float


class SupplierTagAnalysisReport(CamelModel):
    tag_distribution: List[TagDistribution]
    quote_performance_by_tag: List[TagQuotePerformance]
    revenue_by_tag: List[TagRevenue]
    tag_combinations: List[TagCountBucket]
    common_tag_pairs: List[TagPair]
    suppliers_without_tags: List[UntaggedSupplier]
    tag_stats: TagStats


# Relationship metrics

class AccountAge(CamelModel):
    days: int
    months: int


class UnreadMessages(CamelModel):
    company: int = 0
    supplier: int = 0


class RelationshipCommunication(CamelModel):
    total_conversations: int = 0
    total_messages: int = 0
    avg_messages_per_conversation: float = 0
    company_messages: int = 0
    supplier_messages: int = 0
    response_ratio: float = 0
    last_communication: Optional[datetime.datetime] = None
    days_since_last_message: Optional[float] = None
    unread_messages: UnreadMessages = UnreadMessages()


class RelationshipEngagement(CamelModel):
    total_quotes: int = 0
    first_quote: Optional[datetime.datetime] = None
    last_quote: Optional[datetime.datetime] = None
    days_since_first_quote: Optional[int] = None
    days_since_last_quote: Optional[int] = None
    quotes_per_month: float = 0
    avg_quote_amount: int = 0
    total_quote_value: float = 0


class CollaborationMetrics(CamelModel):
    total_quotes: int = 0
    approved_quotes: int = 0
    completed_quotes: int = 0
    rejected_quotes: int = 0
    in_progress_quotes: int = 0
    success_rate: float = 0
    approval_rate: float = 0
    rejection_rate: float = 0


class ValueMetrics(CamelModel):
    total_reports: int = 0
    lifetime_value: float = 0
    avg_revenue_per_report: int = 0
    total_parts_cost: float = 0
    total_labour_cost: float = 0
    avg_completion_time: float = 0


class SupplierRelationship(SupplierRef):
    is_active: bool
    account_age: AccountAge
    communication_metrics: RelationshipCommunication
    engagement_metrics: RelationshipEngagement
    collaboration_metrics: CollaborationMetrics
    value_metrics: ValueMetrics
    relationship_strength: int
    relationship_level: str
    engagement_status: str


class RelationshipSummary(CamelModel):
    total_suppliers: int
    active_suppliers: int
    suppliers_with_communication: int
    suppliers_with_quotes: int
    suppliers_with_completed_work: int
    avg_relationship_strength: int
    relationship_distribution: Dict[str, int]
    engagement_distribution: Dict[str, int]


class SupplierRelationshipReport(CamelModel):
    relationships: List[SupplierRelationship]
    summary: RelationshipSummary

"""Declarative catalogue of every report the API serves.

Each entry ties a ``reportType`` to the route it is mounted on, the label used
in logs and error messages, and the service coroutine that builds it. The
router and the CLI both work from this list.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List

from .advertisements import service as advertisements
from .conversations import service as conversations
from .dropdowns import service as dropdowns
from .errors import NotFoundError
from .filters import ScopeFilter
from .notifications import service as notifications
from .sources import ReportSources
from .suppliers import service as suppliers
from .tradeins import service as tradeins
from .users import service as users

ReportService = Callable[[ScopeFilter, ReportSources], Awaitable[Any]]


@dataclass(frozen=True)
class ReportDefinition:
    report_type: str
    domain: str
    path: str
    label: str
    service: ReportService
    summary: str

    @property
    def route(self) -> str:
        return f"/{self.domain}/{self.path}"


REPORTS: List[ReportDefinition] = [
    # Conversations
    ReportDefinition(
        "conversation-volume-analysis", "conversations", "volume-analysis", "Conversation Volume Analysis",
        conversations.generate_conversation_volume_report,
        "Daily, weekly and hourly message volume between the company and its suppliers.",
    ),
    ReportDefinition(
        "conversation-response-times", "conversations", "response-times", "Conversation Response Times",
        conversations.generate_conversation_response_time_report,
        "How quickly the company and suppliers answer each other.",
    ),
    ReportDefinition(
        "conversation-engagement-metrics", "conversations", "engagement-metrics", "Conversation Engagement Metrics",
        conversations.generate_conversation_engagement_report,
        "Engagement score, resolution and trends per conversation.",
    ),
    # Suppliers
    ReportDefinition(
        "supplier-overview", "suppliers", "overview", "Supplier Overview",
        suppliers.generate_supplier_overview_report,
        "Activity and engagement of every supplier.",
    ),
    ReportDefinition(
        "supplier-performance-ranking", "suppliers", "performance-ranking", "Supplier Performance Ranking",
        suppliers.generate_supplier_performance_ranking_report,
        "Suppliers ranked on response, cost accuracy, approval, completion and quality.",
    ),
    ReportDefinition(
        "supplier-tag-analysis", "suppliers", "tag-analysis", "Supplier Tag Analysis",
        suppliers.generate_supplier_tag_analysis_report,
        "Quote performance and revenue per supplier tag.",
    ),
    ReportDefinition(
        "supplier-relationship-metrics", "suppliers", "relationship-metrics", "Supplier Relationship Metrics",
        suppliers.generate_supplier_relationship_report,
        "Relationship strength and recency of engagement per supplier.",
    ),
    # Users
    ReportDefinition(
        "user-performance-metrics", "users", "performance-metrics", "User Performance Metrics",
        users.generate_user_performance_report,
        "Vehicles, quotes and reports handled by each user.",
    ),
    ReportDefinition(
        "user-login-patterns", "users", "login-patterns", "User Login Patterns",
        users.generate_user_login_patterns_report,
        "Login frequency, recency and account security per user.",
    ),
    ReportDefinition(
        "user-role-distribution", "users", "role-distribution", "User Role Distribution",
        users.generate_user_role_distribution_report,
        "Users per role and status, with a creation timeline.",
    ),
    ReportDefinition(
        "user-dealership-assignment", "users", "dealership-assignment", "User Dealership Assignment",
        users.generate_user_dealership_assignment_report,
        "How users are spread over dealerships.",
    ),
    ReportDefinition(
        "user-permission-utilization", "users", "permission-utilization", "User Permission Utilization",
        users.generate_user_permission_utilization_report,
        "Permissions and module access held by users.",
    ),
    # Advertisements
    ReportDefinition(
        "advertisement-performance", "advertisements", "performance", "Advertisement Performance",
        advertisements.generate_advertisement_performance_report,
        "Processing status, age and make/model spread of advertised vehicles.",
    ),
    ReportDefinition(
        "advertisement-pricing-analysis", "advertisements", "pricing-analysis", "Advertisement Pricing Analysis",
        advertisements.generate_advertisement_pricing_report,
        "Retail and sold price analysis of advertised vehicles.",
    ),
    ReportDefinition(
        "advertisement-attachment-quality", "advertisements", "attachment-quality",
        "Advertisement Attachment Quality",
        advertisements.generate_advertisement_attachment_quality_report,
        "Image and file coverage of advertised vehicles.",
    ),
    ReportDefinition(
        "advertisement-status-tracking", "advertisements", "status-tracking", "Advertisement Status Tracking",
        advertisements.generate_advertisement_status_tracking_report,
        "Status, queue and processing attempt tracking.",
    ),
    ReportDefinition(
        "advertisement-conversion-rates", "advertisements", "conversion-rates", "Advertisement Conversion Rates",
        advertisements.generate_advertisement_conversion_report,
        "How many advertised vehicles sell, and at what price.",
    ),
    # Notifications
    ReportDefinition(
        "notification-engagement-metrics", "notifications", "engagement-metrics", "Notification Engagement Metrics",
        notifications.generate_notification_engagement_report,
        "Delivery and read rates per notification configuration.",
    ),
    ReportDefinition(
        "notification-trigger-analysis", "notifications", "trigger-analysis", "Notification Trigger Analysis",
        notifications.generate_notification_trigger_report,
        "Effectiveness of notification triggers and targets.",
    ),
    ReportDefinition(
        "notification-channel-performance", "notifications", "channel-performance",
        "Notification Channel Performance",
        notifications.generate_notification_channel_report,
        "In-app channel health and delivery patterns.",
    ),
    # Dropdown masters
    ReportDefinition(
        "dropdown-usage-analysis", "dropdowns", "usage-analysis", "Dropdown Usage Analysis",
        dropdowns.generate_dropdown_usage_report,
        "How dropdowns are configured and used.",
    ),
    ReportDefinition(
        "dropdown-value-distribution", "dropdowns", "value-distribution", "Dropdown Value Distribution",
        dropdowns.generate_dropdown_value_distribution_report,
        "How values are spread over dropdowns.",
    ),
    ReportDefinition(
        "dropdown-configuration-health", "dropdowns", "configuration-health", "Dropdown Configuration Health",
        dropdowns.generate_dropdown_configuration_health_report,
        "Health score, issues and recommendations per dropdown.",
    ),
    # Trade-in configurations
    ReportDefinition(
        "tradein-config-usage", "tradeins", "config-usage", "Tradein Config Usage",
        tradeins.generate_tradein_config_usage_report,
        "Structure and usage of trade-in configurations.",
    ),
    ReportDefinition(
        "tradein-field-analysis", "tradeins", "field-analysis", "Tradein Field Analysis",
        tradeins.generate_tradein_field_analysis_report,
        "Completeness of trade-in form fields.",
    ),
    ReportDefinition(
        "tradein-category-effectiveness", "tradeins", "category-effectiveness", "Tradein Category Effectiveness",
        tradeins.generate_tradein_category_effectiveness_report,
        "Effectiveness of trade-in form categories.",
    ),
]

REPORTS_BY_TYPE: Dict[str, ReportDefinition] = {report.report_type: report for report in REPORTS}


def get_report(report_type: str) -> ReportDefinition:
    try:
        return REPORTS_BY_TYPE[report_type]
    except KeyError:
        raise NotFoundError(f"Unknown report type: {report_type}") from None

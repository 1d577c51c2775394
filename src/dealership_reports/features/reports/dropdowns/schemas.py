"""Result records for the dropdown master reports."""
from typing import List, Optional, Union
import datetime

from ..schemas import CamelModel, CreatorRef


class DropdownRef(CamelModel):
    dropdown_id: int
    dropdown_name: str
    display_name: Optional[str] = None


# Usage analysis

class DropdownUsage(DropdownRef):
    is_active: bool
    is_standard: bool
    is_required: bool
    allow_multiple_selection: bool
    has_validation: bool
    total_values: int
    active_values: int
    inactive_values: int
    default_values: int
    has_default_value: bool
    value_utilization_rate: int
    configuration_score: int
    created_by: Optional[CreatorRef] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


class DealershipDropdowns(CamelModel):
    dealership_id: Union[int, str]
    count: int = 0
    active_count: int = 0
    standard_count: int = 0
    custom_count: int = 0


class RequiredWithoutDefault(DropdownRef):
    is_required: bool


class AllValuesInactive(DropdownRef):
    total_values: int


class IssueDropdowns(CamelModel):
    empty: List[DropdownRef]
    without_default: List[RequiredWithoutDefault]
    all_inactive_values: List[AllValuesInactive]


class UsageSummary(CamelModel):
    total_dropdowns: int
    active_dropdowns: int
    inactive_dropdowns: int
    active_percentage: int
    standard_dropdowns: int
    custom_dropdowns: int
    standard_percentage: int
    multiple_selection_enabled: int
    required_dropdowns: int
    dropdowns_with_validation: int
    total_values: int
    avg_values_per_dropdown: float
    empty_dropdowns: int
    dropdowns_without_default: int
    dropdowns_with_all_inactive_values: int
    avg_configuration_score: int
    overall_health: str
    unique_dealerships: int


class DropdownUsageReport(CamelModel):
    dropdowns: List[DropdownUsage]
    top_dropdowns: List[DropdownUsage]
    dealership_distribution: List[DealershipDropdowns]
    issue_dropdowns: IssueDropdowns
    summary: UsageSummary


# Value distribution

class DropdownValues(DropdownRef):
    is_active: bool
    total_values: int
    active_values: int
    inactive_values: int
    default_values: int
    active_percentage: int
    has_multiple_defaults: bool
    has_no_default: bool
    values_with_display_order: int
    avg_display_order: float
    display_order_usage: int


class ValueStatusDistribution(CamelModel):
    active_only: int = 0
    inactive_only: int = 0
    mixed: int = 0
    empty: int = 0


class DefaultValuePatterns(CamelModel):
    no_default: int = 0
    single_default: int = 0
    multiple_defaults: int = 0


class DisplayOrderAnalysis(CamelModel):
    dropdowns_using_order: int = 0
    dropdowns_not_using_order: int = 0
    total_values_with_order: int = 0
    order_usage_percentage: int = 0


class ValueLengthDistribution(CamelModel):
    short: int = 0
    medium: int = 0
    long: int = 0
    short_percentage: int = 0
    medium_percentage: int = 0
    long_percentage: int = 0


class ValueHealthIndicators(CamelModel):
    dropdowns_with_no_values: int
    dropdowns_with_all_inactive: int
    dropdowns_with_no_default: int
    dropdowns_with_multiple_defaults: int


class ValueSummary(CamelModel):
    total_dropdowns: int
    total_values: int
    total_active_values: int
    total_inactive_values: int
    total_default_values: int
    avg_values_per_dropdown: float
    active_value_percentage: int
    default_value_percentage: int
    status_distribution: ValueStatusDistribution
    default_value_patterns: DefaultValuePatterns
    display_order_analysis: DisplayOrderAnalysis
    value_length_distribution: ValueLengthDistribution
    health_indicators: ValueHealthIndicators


class DropdownValueDistributionReport(CamelModel):
    values_by_dropdown: List[DropdownValues]
    dropdowns_with_most_values: List[DropdownValues]
    dropdowns_with_least_values: List[DropdownValues]
    summary: ValueSummary


# Configuration health

class DropdownHealth(DropdownRef):
    is_active: bool
    is_standard: bool
    is_required: bool
    allow_multiple_selection: bool
    has_description: bool
    has_validation: bool
    total_values: int
    active_values: int
    inactive_values: int
    default_values: int
    values_with_display_order: int
    health_score: int
    health_status: str
    issue_count: int
    warning_count: int
    recommendation_count: int
    issues: List[str]
    warnings: List[str]
    recommendations: List[str]
    created_by: Optional[CreatorRef] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None
    last_modified: Optional[datetime.datetime] = None


class BestDropdown(CamelModel):
    dropdown_name: str
    display_name: Optional[str] = None
    health_score: int
    health_status: str


class WorstDropdown(BestDropdown):
    issue_count: int


class IssueFrequency(CamelModel):
    issue: str
    count: int
    percentage: int


class WarningFrequency(CamelModel):
    warning: str
    count: int
    percentage: int


class HealthDistribution(CamelModel):
    healthy: int = 0
    fair: int = 0
    poor: int = 0
    critical: int = 0
    healthy_percentage: int = 0
    fair_percentage: int = 0
    poor_percentage: int = 0
    critical_percentage: int = 0


class CompletenessMetrics(CamelModel):
    with_description: int = 0
    with_validation: int = 0
    with_values: int = 0
    with_active_values: int = 0
    with_default_values: int = 0
    with_display_order: int = 0
    fully_configured: int = 0
    description_coverage: int = 0
    validation_coverage: int = 0
    value_coverage: int = 0
    active_value_coverage: int = 0
    default_value_coverage: int = 0
    display_order_coverage: int = 0
    fully_configured_percentage: int = 0


class ActionableInsights(CamelModel):
    critical_action_required: int
    improvement_opportunities: int
    well_configured: int


class HealthSummary(CamelModel):
    total_dropdowns: int
    avg_health_score: int
    overall_system_health: str
    health_distribution: HealthDistribution
    total_issues: int
    total_warnings: int
    dropdowns_needing_attention: int
    completeness_metrics: CompletenessMetrics
    actionable_insights: ActionableInsights


class DropdownConfigurationHealthReport(CamelModel):
    health_report: List[DropdownHealth]
    needs_attention: List[DropdownHealth]
    best_performing: List[BestDropdown]
    worst_performing: List[WorstDropdown]
    common_issues: List[IssueFrequency]
    common_warnings: List[WarningFrequency]
    summary: HealthSummary

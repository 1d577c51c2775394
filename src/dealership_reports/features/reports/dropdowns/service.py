"""
Dropdown Master Reports Service

Audits the dropdown lists a company configures for its forms: how they are
used, how their values are spread and how healthy each configuration is.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from ..filters import ScopeFilter
from ..metrics import (
    HealthCheck, PointsRule, ThresholdLadder, bottom_n, health_score, js_round, rate, ratio, safe_average, score_rules,
    top_n,
)
from ..pipeline import group_by, scoped
from ..schemas import creator_ref, empty_report
from ..sources import DEFAULT_SOURCES, ReportSources
from .schemas import (
    ActionableInsights, AllValuesInactive, BestDropdown, CompletenessMetrics, DealershipDropdowns,
    DefaultValuePatterns, DisplayOrderAnalysis, DropdownConfigurationHealthReport, DropdownHealth, DropdownRef,
    DropdownUsage, DropdownUsageReport, DropdownValueDistributionReport, DropdownValues, HealthDistribution,
    HealthSummary, IssueDropdowns, IssueFrequency, RequiredWithoutDefault, UsageSummary, ValueHealthIndicators,
    ValueLengthDistribution, ValueStatusDistribution, ValueSummary, WarningFrequency, WorstDropdown,
)

logger = logging.getLogger(__name__)

NO_DROPDOWNS = "No dropdown configurations found"
COMPANY_WIDE = "company_wide"
MAX_TOP_DROPDOWNS = 10
MAX_LISTED = 5

CONFIGURATION_RULES = (
    PointsRule("has_values", ((1, 30),)),
    PointsRule("has_active_values", ((1, 20),)),
    PointsRule("has_default", ((1, 15),)),
    PointsRule("has_description", ((1, 10),)),
    PointsRule("has_validation", ((1, 10),)),
    PointsRule("has_display_order", ((1, 10),)),
    PointsRule("reasonable_size", ((1, 5),)),
)
USAGE_HEALTH = ThresholdLadder([(10, "Excellent"), (25, "Good"), (50, "Fair")], "Needs Improvement", comparison="lte")
DROPDOWN_HEALTH = ThresholdLadder([(80, "Healthy"), (60, "Fair"), (40, "Poor")], "Critical")
SYSTEM_HEALTH = ThresholdLadder([(80, "Excellent"), (70, "Good"), (60, "Fair"), (40, "Poor")], "Critical")
VALUE_LENGTH = ThresholdLadder([(10, "short"), (30, "medium")], "long", comparison="lte")


@dataclass
class DropdownFacts:
    """The value counts of one dropdown that every report reads."""

    dropdown: Any
    values: List[Dict[str, Any]]

    @classmethod
    def of(cls, dropdown) -> "DropdownFacts":
        return cls(dropdown, [v for v in (dropdown.values or []) if isinstance(v, dict)])

    @property
    def total(self) -> int:
        return len(self.values)

    @property
    def active(self) -> int:
        return sum(1 for v in self.values if v.get("is_active"))

    @property
    def inactive(self) -> int:
        return self.total - self.active

    @property
    def defaults(self) -> int:
        return sum(1 for v in self.values if v.get("is_default"))

    @property
    def ordered(self) -> List[Dict[str, Any]]:
        return [v for v in self.values if v.get("display_order") is not None]

    @property
    def has_description(self) -> bool:
        return bool(self.dropdown.description and self.dropdown.description.strip())

    @property
    def has_validation(self) -> bool:
        rules = self.dropdown.validation_rules
        return bool(isinstance(rules, dict) and (rules.get("min_length") or rules.get("max_length") or rules.get("pattern")))

    def ref(self) -> Dict[str, Any]:
        return {
            "dropdown_id": self.dropdown.id,
            "dropdown_name": self.dropdown.dropdown_name,
            "display_name": self.dropdown.display_name,
        }


def configuration_score(facts: DropdownFacts) -> int:
    return score_rules(CONFIGURATION_RULES, {
        "has_values": int(facts.total > 0),
        "has_active_values": int(facts.active > 0),
        "has_default": int(facts.defaults > 0),
        "has_description": int(facts.has_description),
        "has_validation": int(facts.has_validation),
        "has_display_order": int(len(facts.ordered) > 0),
        "reasonable_size": int(3 <= facts.total <= 30),
    })


async def load_dropdowns(scope: ScopeFilter, sources: ReportSources, *related: str) -> List[DropdownFacts]:
    queryset = scoped(sources.dropdowns, scope)
    if related:
        queryset = queryset.prefetch_related(*related)
    return [DropdownFacts.of(dropdown) for dropdown in await queryset.order_by("id")]


async def generate_dropdown_usage_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> Union[DropdownUsageReport, Dict[str, Any]]:
    """
    Generates how the company's dropdowns are configured and used.

    Args:
        scope: Company, dealership and creation date restriction.
        sources: Model classes to read from.

    Returns:
        DropdownUsageReport: Per dropdown value analysis and configuration
        score, the ten best configured dropdowns, the spread over dealerships,
        dropdowns with issues and a summary. An empty payload with a message
        when there are no dropdowns.
    """
    all_facts = await load_dropdowns(scope, sources, "created_by")
    if not all_facts:
        return empty_report("dropdowns", "totalDropdowns", NO_DROPDOWNS)

    analysis = []
    for facts in all_facts:
        dropdown = facts.dropdown
        analysis.append(DropdownUsage(
            **facts.ref(),
            is_active=dropdown.is_active,
            is_standard=dropdown.is_standard,
            is_required=dropdown.is_required,
            allow_multiple_selection=dropdown.allow_multiple_selection,
            has_validation=facts.has_validation,
            total_values=facts.total,
            active_values=facts.active,
            inactive_values=facts.inactive,
            default_values=facts.defaults,
            has_default_value=facts.defaults > 0,
            value_utilization_rate=rate(facts.active, facts.total),
            configuration_score=configuration_score(facts),
            created_by=creator_ref(dropdown.created_by),
            created_at=dropdown.created_at,
            updated_at=dropdown.updated_at,
        ))

    empty = [facts for facts in all_facts if facts.total == 0]
    without_default = [facts for facts in all_facts if facts.dropdown.is_required and facts.defaults == 0]
    all_inactive = [facts for facts in all_facts if facts.total > 0 and facts.active == 0]

    dealerships = []
    for dealership_id, group in group_by(all_facts, lambda f: f.dropdown.dealership_id or COMPANY_WIDE).items():
        standard = group.count_where(lambda f: f.dropdown.is_standard)
        dealerships.append(DealershipDropdowns(
            dealership_id=dealership_id,
            count=group.count,
            active_count=group.count_where(lambda f: f.dropdown.is_active),
            standard_count=standard,
            custom_count=group.count - standard,
        ))

    total = len(all_facts)
    active = sum(1 for f in all_facts if f.dropdown.is_active)
    standard = sum(1 for f in all_facts if f.dropdown.is_standard)
    total_values = sum(f.total for f in all_facts)
    issue_percentage = (len(empty) + len(without_default)) / total * 100
    summary = UsageSummary(
        total_dropdowns=total,
        active_dropdowns=active,
        inactive_dropdowns=total - active,
        active_percentage=rate(active, total),
        standard_dropdowns=standard,
        custom_dropdowns=total - standard,
        standard_percentage=rate(standard, total),
        multiple_selection_enabled=sum(1 for f in all_facts if f.dropdown.allow_multiple_selection),
        required_dropdowns=sum(1 for f in all_facts if f.dropdown.is_required),
        dropdowns_with_validation=sum(1 for f in all_facts if f.has_validation),
        total_values=total_values,
        avg_values_per_dropdown=ratio(total_values, total),
        empty_dropdowns=len(empty),
        dropdowns_without_default=len(without_default),
        dropdowns_with_all_inactive_values=len(all_inactive),
        avg_configuration_score=js_round(safe_average(d.configuration_score for d in analysis)),
        overall_health=USAGE_HEALTH(issue_percentage),
        unique_dealerships=len(dealerships),
    )

    return DropdownUsageReport(
        dropdowns=analysis,
        top_dropdowns=top_n(analysis, "configuration_score", MAX_TOP_DROPDOWNS),
        dealership_distribution=dealerships,
        issue_dropdowns=IssueDropdowns(
            empty=[DropdownRef(**f.ref()) for f in empty],
            without_default=[RequiredWithoutDefault(**f.ref(), is_required=f.dropdown.is_required) for f in without_default],
            all_inactive_values=[AllValuesInactive(**f.ref(), total_values=f.total) for f in all_inactive],
        ),
        summary=summary,
    )


async def generate_dropdown_value_distribution_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> Union[DropdownValueDistributionReport, Dict[str, Any]]:
    """Generates how values are spread over the dropdowns, largest dropdown first."""
    all_facts = await load_dropdowns(scope, sources)
    if not all_facts:
        return empty_report("valueDistribution", "totalValues", NO_DROPDOWNS)

    by_dropdown = top_n([
        DropdownValues(
            **facts.ref(),
            is_active=facts.dropdown.is_active,
            total_values=facts.total,
            active_values=facts.active,
            inactive_values=facts.inactive,
            default_values=facts.defaults,
            active_percentage=rate(facts.active, facts.total),
            has_multiple_defaults=facts.defaults > 1,
            has_no_default=facts.defaults == 0,
            values_with_display_order=len(facts.ordered),
            avg_display_order=ratio(sum(v["display_order"] for v in facts.ordered), len(facts.ordered)),
            display_order_usage=rate(len(facts.ordered), facts.total),
        )
        for facts in all_facts
    ], "total_values")

    filled = [f for f in all_facts if f.total > 0]
    statuses = ValueStatusDistribution(
        active_only=sum(1 for f in filled if f.inactive == 0),
        inactive_only=sum(1 for f in filled if f.active == 0),
        mixed=sum(1 for f in filled if f.active and f.inactive),
        empty=len(all_facts) - len(filled),
    )
    defaults = DefaultValuePatterns(
        no_default=sum(1 for f in filled if f.defaults == 0),
        single_default=sum(1 for f in all_facts if f.defaults == 1),
        multiple_defaults=sum(1 for f in all_facts if f.defaults > 1),
    )
    using_order = sum(1 for f in all_facts if f.ordered)
    display_order = DisplayOrderAnalysis(
        dropdowns_using_order=using_order,
        dropdowns_not_using_order=sum(1 for f in filled if not f.ordered),
        total_values_with_order=sum(len(f.ordered) for f in all_facts),
        order_usage_percentage=rate(using_order, len(all_facts)),
    )

    values = [value for facts in all_facts for value in facts.values]
    lengths = Counter(VALUE_LENGTH(len(value.get("display_value") or "")) for value in values)
    total_values = len(values)
    value_lengths = ValueLengthDistribution(
        short=lengths["short"],
        medium=lengths["medium"],
        long=lengths["long"],
        short_percentage=rate(lengths["short"], total_values),
        medium_percentage=rate(lengths["medium"], total_values),
        long_percentage=rate(lengths["long"], total_values),
    )

    total_active = sum(f.active for f in all_facts)
    total_defaults = sum(f.defaults for f in all_facts)
    summary = ValueSummary(
        total_dropdowns=len(all_facts),
        total_values=total_values,
        total_active_values=total_active,
        total_inactive_values=total_values - total_active,
        total_default_values=total_defaults,
        avg_values_per_dropdown=ratio(total_values, len(all_facts)),
        active_value_percentage=rate(total_active, total_values),
        default_value_percentage=rate(total_defaults, total_values),
        status_distribution=statuses,
        default_value_patterns=defaults,
        display_order_analysis=display_order,
        value_length_distribution=value_lengths,
        health_indicators=ValueHealthIndicators(
            dropdowns_with_no_values=statuses.empty,
            dropdowns_with_all_inactive=statuses.inactive_only,
            dropdowns_with_no_default=defaults.no_default,
            dropdowns_with_multiple_defaults=defaults.multiple_defaults,
        ),
    )

    return DropdownValueDistributionReport(
        values_by_dropdown=by_dropdown,
        dropdowns_with_most_values=by_dropdown[:MAX_LISTED],
        dropdowns_with_least_values=bottom_n([d for d in by_dropdown if d.total_values > 0], "total_values", MAX_LISTED),
        summary=summary,
    )


HEALTH_CHECKS = (
    HealthCheck(lambda f: f.total == 0, "No values configured", 40),
    HealthCheck(lambda f: f.total > 0 and f.active == 0, "All values are inactive", 30),
    HealthCheck(lambda f: f.dropdown.is_required and f.defaults == 0, "Required dropdown has no default value", 20),
    HealthCheck(
        lambda f: f.defaults > 1 and not f.dropdown.allow_multiple_selection,
        "Multiple default values but multiple selection not allowed", 10, "warning",
    ),
    HealthCheck(lambda f: f.total > 0 and f.active < f.total * 0.5, "More than 50% of values are inactive", 10, "warning"),
    HealthCheck(lambda f: f.total > 50, "Large number of values may impact usability", 5, "warning"),
    HealthCheck(lambda f: not f.has_description, "Missing description", 5, "warning"),
    HealthCheck(lambda f: f.total > 0 and not f.ordered, "No display order configured for values", 5, "warning"),
)


def recommendations(facts: DropdownFacts) -> List[str]:
    dropdown = facts.dropdown
    rules = dropdown.validation_rules if isinstance(dropdown.validation_rules, dict) else {}
    advice = []
    if facts.total == 0:
        advice.append("Add at least one value to make this dropdown functional")
    if dropdown.is_required and facts.defaults == 0:
        advice.append("Set a default value for required dropdown")
    if 0 < facts.active < 3:
        advice.append("Consider adding more active values for better user choice")
    if not rules.get("min_length") and not rules.get("max_length"):
        advice.append("Consider adding validation rules for data quality")
    if facts.total > 20 and not dropdown.description:
        advice.append("Add description to help users understand this dropdown")
    return advice


async def generate_dropdown_configuration_health_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> Union[DropdownConfigurationHealthReport, Dict[str, Any]]:
    """
    Generates a health score for every dropdown.

    Each dropdown starts at 100 and loses points for every problem found,
    never dropping below 0. Critical problems are reported as issues, minor
    ones as warnings.

    Args:
        scope: Company, dealership and creation date restriction.
        sources: Model classes to read from.

    Returns:
        DropdownConfigurationHealthReport: Per dropdown health, the dropdowns
        needing attention, best and worst five, issue and warning frequency
        and a summary. An empty payload with a message when there are no
        dropdowns.
    """
    all_facts = await load_dropdowns(scope, sources, "created_by")
    if not all_facts:
        return empty_report("healthReport", "totalDropdowns", NO_DROPDOWNS)

    report = []
    for facts in all_facts:
        dropdown = facts.dropdown
        result = health_score(facts, HEALTH_CHECKS)
        advice = recommendations(facts)
        report.append(DropdownHealth(
            **facts.ref(),
            is_active=dropdown.is_active,
            is_standard=dropdown.is_standard,
            is_required=dropdown.is_required,
            allow_multiple_selection=dropdown.allow_multiple_selection,
            has_description=facts.has_description,
            has_validation=facts.has_validation,
            total_values=facts.total,
            active_values=facts.active,
            inactive_values=facts.inactive,
            default_values=facts.defaults,
            values_with_display_order=len(facts.ordered),
            health_score=result.score,
            health_status=DROPDOWN_HEALTH(result.score),
            issue_count=len(result.issues),
            warning_count=len(result.warnings),
            recommendation_count=len(advice),
            issues=result.issues,
            warnings=result.warnings,
            recommendations=advice,
            created_by=creator_ref(dropdown.created_by),
            created_at=dropdown.created_at,
            updated_at=dropdown.updated_at,
            last_modified=dropdown.updated_at,
        ))

    total = len(report)
    statuses = Counter(d.health_status for d in report)
    needs_attention = bottom_n([d for d in report if d.health_status in ("Critical", "Poor")], "health_score")

    issue_counts = Counter(issue for d in report for issue in d.issues)
    warning_counts = Counter(warning for d in report for warning in d.warnings)

    completeness = CompletenessMetrics(
        with_description=sum(1 for d in report if d.has_description),
        with_validation=sum(1 for d in report if d.has_validation),
        with_values=sum(1 for d in report if d.total_values > 0),
        with_active_values=sum(1 for d in report if d.active_values > 0),
        with_default_values=sum(1 for d in report if d.default_values > 0),
        with_display_order=sum(1 for d in report if d.values_with_display_order > 0),
        fully_configured=sum(
            1 for d in report
            if d.has_description and d.total_values > 0 and d.active_values > 0 and d.values_with_display_order > 0
        ),
    )
    completeness.description_coverage = rate(completeness.with_description, total)
    completeness.validation_coverage = rate(completeness.with_validation, total)
    completeness.value_coverage = rate(completeness.with_values, total)
    completeness.active_value_coverage = rate(completeness.with_active_values, total)
    completeness.default_value_coverage = rate(completeness.with_default_values, total)
    completeness.display_order_coverage = rate(completeness.with_display_order, total)
    completeness.fully_configured_percentage = rate(completeness.fully_configured, total)

    avg_health = js_round(safe_average(d.health_score for d in report))
    summary = HealthSummary(
        total_dropdowns=total,
        avg_health_score=avg_health,
        overall_system_health=SYSTEM_HEALTH(avg_health),
        health_distribution=HealthDistribution(
            healthy=statuses["Healthy"],
            fair=statuses["Fair"],
            poor=statuses["Poor"],
            critical=statuses["Critical"],
            healthy_percentage=rate(statuses["Healthy"], total),
            fair_percentage=rate(statuses["Fair"], total),
            poor_percentage=rate(statuses["Poor"], total),
            critical_percentage=rate(statuses["Critical"], total),
        ),
        total_issues=sum(issue_counts.values()),
        total_warnings=sum(warning_counts.values()),
        dropdowns_needing_attention=len(needs_attention),
        completeness_metrics=completeness,
        actionable_insights=ActionableInsights(
            critical_action_required=statuses["Critical"],
            improvement_opportunities=statuses["Poor"] + statuses["Fair"],
            well_configured=statuses["Healthy"],
        ),
    )

    return DropdownConfigurationHealthReport(
        health_report=report,
        needs_attention=needs_attention,
        best_performing=[
            BestDropdown(
                dropdown_name=d.dropdown_name, display_name=d.display_name,
                health_score=d.health_score, health_status=d.health_status,
            )
            for d in top_n(report, "health_score", MAX_LISTED)
        ],
        worst_performing=[
            WorstDropdown(
                dropdown_name=d.dropdown_name, display_name=d.display_name,
                health_score=d.health_score, health_status=d.health_status, issue_count=d.issue_count,
            )
            for d in bottom_n(report, "health_score", MAX_LISTED)
        ],
        common_issues=[
            IssueFrequency(issue=issue, count=count, percentage=rate(count, total))
            for issue, count in issue_counts.most_common()
        ],
        common_warnings=[
            WarningFrequency(warning=warning, count=count, percentage=rate(count, total))
            for warning, count in warning_counts.most_common()
        ],
        summary=summary,
    )

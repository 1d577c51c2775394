"""
Trade-in Configuration Reports Service

Trade-in configurations describe the inspection form a dealership fills in
when it appraises a customer's vehicle. Each configuration holds categories,
each category holds sections and each section holds fields, all stored as a
JSON document on the configuration. These reports walk that document.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from ..filters import ScopeFilter
from ..metrics import PointsRule, ThresholdLadder, bottom_n, js_round, rate, ratio, safe_average, score_rules, top_n
from ..pipeline import group_by, scoped
from ..schemas import creator_ref, empty_report
from ..sources import DEFAULT_SOURCES, ReportSources
from .schemas import (
    CategoryEffectiveness, CategoryNameCount, CategoryNeedingImprovement, CategorySummary, ConfigUsage,
    ConfigUsageSummary, DealershipConfigs, FieldRef, FieldSummary, FieldTypeAnalysis, FieldTypeUsage,
    PoorlyConfiguredField, ScoredField, SectionAnalysis, SettingsAnalysis, TopCategory, TradeinCategoryEffectivenessReport,
    TradeinConfigUsageReport, TradeinFieldAnalysisReport, ValidationTypeUsage, VersionCount,
)

logger = logging.getLogger(__name__)

NO_CONFIGURATIONS = "No trade-in configurations found"
COMPANY_WIDE = "company_wide"
UNKNOWN = "unknown"
MAX_TOP_CONFIGS = 5
MAX_LISTED = 10
WELL_CONFIGURED = 70
POORLY_CONFIGURED = 40
VALIDATION_KEYS = ("min_value", "max_value", "min_length", "max_length", "pattern")
# Both spellings occur in stored forms
MULTIPLIER_TYPES = ("multiplier", "mutiplier")

CONFIG_RULES = (
    PointsRule("has_categories", ((1, 20),)),
    PointsRule("has_sections", ((1, 20),)),
    PointsRule("has_fields", ((1, 20),)),
    PointsRule("has_description", ((1, 10),)),
    PointsRule("has_settings", ((1, 10),)),
    PointsRule("has_required_fields", ((1, 10),)),
    PointsRule("has_validation", ((1, 10),)),
)
FIELD_RULES = (
    PointsRule("has_name", ((1, 15),)),
    PointsRule("has_type", ((1, 15),)),
    PointsRule("is_required", ((1, 10),)),
    PointsRule("has_validation", ((1, 20),)),
    PointsRule("has_dropdown", ((1, 10),)),
    PointsRule("has_placeholder", ((1, 10),)),
    PointsRule("has_help_text", ((1, 10),)),
    PointsRule("has_image", ((1, 5),)),
    PointsRule("has_notes", ((1, 5),)),
)
CATEGORY_RULES = (
    PointsRule("has_sections", ((1, 20),)),
    PointsRule("has_fields", ((1, 20),)),
    PointsRule("has_description", ((1, 10),)),
    PointsRule("is_active", ((1, 10),)),
    PointsRule("has_required_fields", ((1, 10),)),
    PointsRule("has_validation", ((1, 10),)),
    PointsRule("has_calculations", ((1, 10),)),
    PointsRule("has_display_order", ((1, 10),)),
)
CONFIG_HEALTH = ThresholdLadder([(80, "Excellent"), (60, "Good"), (40, "Fair")], "Poor")
ACTIVE_SHARE_HEALTH = ThresholdLadder([(0.7, "Healthy"), (0.4, "Moderate")], "Needs Improvement")
EFFECTIVENESS_LEVEL = ThresholdLadder([(70, "High"), (50, "Medium")], "Low")
CATEGORY_HEALTH = ThresholdLadder([(0.6, "Excellent"), (0.4, "Good"), (0.2, "Fair")], "Needs Improvement")


def has_text(value: Any) -> bool:
    return bool(value and str(value).strip())


def has_validation(field: Dict[str, Any]) -> bool:
    rules = field.get("validation_rules")
    return isinstance(rules, dict) and any(rules.get(key) for key in VALIDATION_KEYS)


def sections_of(category: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [s for s in (category.get("sections") or []) if isinstance(s, dict)]


def fields_of(section: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [f for f in (section.get("fields") or []) if isinstance(f, dict)]


def categories_of(config) -> List[Dict[str, Any]]:
    return [c for c in (config.categories or []) if isinstance(c, dict)]


@dataclass
class FieldFacts:
    """One form field together with the config, category and section it sits in."""

    config: Any
    category: Dict[str, Any]
    section: Dict[str, Any]
    field: Dict[str, Any]

    @property
    def field_type(self) -> str:
        return self.field.get("field_type") or UNKNOWN

    @property
    def is_required(self) -> bool:
        return bool(self.field.get("is_required"))

    @property
    def has_validation(self) -> bool:
        return has_validation(self.field)

    @property
    def has_dropdown(self) -> bool:
        dropdown = self.field.get("dropdown_config")
        return isinstance(dropdown, dict) and bool(dropdown.get("dropdown_id"))

    @property
    def allows_multiple(self) -> bool:
        return self.has_dropdown and bool(self.field["dropdown_config"].get("allow_multiple"))

    @property
    def has_image(self) -> bool:
        return bool(self.field.get("has_image"))

    @property
    def has_notes(self) -> bool:
        return bool(self.field.get("has_notes"))

    @property
    def has_placeholder(self) -> bool:
        return has_text(self.field.get("placeholder"))

    @property
    def has_help_text(self) -> bool:
        return has_text(self.field.get("help_text"))

    @property
    def has_display_order(self) -> bool:
        order = self.field.get("display_order")
        return order is not None and order > 0

    @property
    def completeness_score(self) -> int:
        return score_rules(FIELD_RULES, {
            "has_name": int(has_text(self.field.get("field_name"))),
            "has_type": int(bool(self.field.get("field_type"))),
            "is_required": int(self.is_required),
            "has_validation": int(self.has_validation),
            "has_dropdown": int(self.has_dropdown),
            "has_placeholder": int(self.has_placeholder),
            "has_help_text": int(self.has_help_text),
            "has_image": int(self.has_image),
            "has_notes": int(self.has_notes),
        })

    def ref(self) -> Dict[str, Any]:
        return {
            "field_name": self.field.get("field_name"),
            "field_type": self.field.get("field_type"),
            "config_name": self.config.config_name,
            "category_name": self.category.get("category_name"),
            "section_name": self.section.get("section_name"),
        }


def config_fields(config) -> List[FieldFacts]:
    return [
        FieldFacts(config, category, section, field)
        for category in categories_of(config)
        for section in sections_of(category)
        for field in fields_of(section)
    ]


def missing_features(facts: FieldFacts) -> List[str]:
    missing = []
    if not facts.has_validation:
        missing.append("validation_rules")
    if not facts.has_placeholder:
        missing.append("placeholder")
    if not facts.has_help_text:
        missing.append("help_text")
    if facts.field_type == "dropdown" and not facts.has_dropdown:
        missing.append("dropdown_config")
    if not facts.has_image and facts.field_type in ("text", "dropdown", "currency"):
        missing.append("image_support")
    if not facts.has_notes:
        missing.append("notes_support")
    return missing


async def load_configurations(scope: ScopeFilter, sources: ReportSources, *related: str) -> List[Any]:
    queryset = scoped(sources.tradein_configs, scope)
    if related:
        queryset = queryset.prefetch_related(*related)
    configs = await queryset.order_by("id")
    logger.debug(f"Loaded {len(configs)} trade-in configuration(s) for company {scope.company_id}")
    return configs


def analyse_config(config) -> ConfigUsage:
    categories = categories_of(config)
    total_sections = sum(len(sections_of(category)) for category in categories)
    fields = config_fields(config)
    required = sum(1 for f in fields if f.is_required)
    validated = sum(1 for f in fields if f.has_validation)

    score = score_rules(CONFIG_RULES, {
        "has_categories": int(len(categories) > 0),
        "has_sections": int(total_sections > 0),
        "has_fields": int(len(fields) > 0),
        "has_description": int(has_text(config.description)),
        "has_settings": int(config.settings is not None),
        "has_required_fields": int(required > 0),
        "has_validation": int(validated > 0),
    })
    return ConfigUsage(
        config_id=config.id,
        config_name=config.config_name,
        description=config.description,
        version=config.version,
        is_active=config.is_active,
        is_default=config.is_default,
        dealership_id=config.dealership_id,
        total_categories=len(categories),
        total_sections=total_sections,
        total_fields=len(fields),
        required_fields_count=required,
        fields_with_validation_count=validated,
        fields_with_dropdown_count=sum(1 for f in fields if f.has_dropdown),
        fields_with_image_count=sum(1 for f in fields if f.has_image),
        fields_with_notes_count=sum(1 for f in fields if f.has_notes),
        field_types=dict(Counter(f.field_type for f in fields)),
        avg_fields_per_section=ratio(len(fields), total_sections),
        avg_sections_per_category=ratio(total_sections, len(categories)),
        config_score=score,
        config_health=CONFIG_HEALTH(score),
        settings=config.settings,
        created_by=creator_ref(config.created_by),
        created_at=config.created_at,
        updated_at=config.updated_at,
    )


def analyse_settings(configs: List[Any]) -> SettingsAnalysis:
    settings = [config.settings if isinstance(config.settings, dict) else {} for config in configs]

    def enabled(key: str) -> int:
        return sum(1 for s in settings if s.get(key))

    def average(key: str) -> int:
        return js_round(sum(s.get(key) or 0 for s in settings) / len(settings)) if settings else 0

    return SettingsAnalysis(
        require_photos=enabled("require_photos"),
        allow_video_upload=enabled("allow_video_upload"),
        require_customer_signature=enabled("require_customer_signature"),
        generate_offer_immediately=enabled("generate_offer_immediately"),
        avg_max_photos_per_section=average("max_photos_per_section"),
        avg_max_video_size_mb=average("max_video_size_mb"),
        avg_auto_save_interval=average("auto_save_interval"),
    )


async def generate_tradein_config_usage_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> Union[TradeinConfigUsageReport, Dict[str, Any]]:
    """
    Generates how trade-in configurations are structured and used.

    Args:
        scope: Company, dealership and creation date restriction.
        sources: Model classes to read from.

    Returns:
        TradeinConfigUsageReport: Every configuration with its structure
        counts and score (best first), the top five, configurations needing
        attention, version and dealership spread, field type usage, settings
        usage and a summary. An empty payload with a message when there are
        no configurations.
    """
    configs = await load_configurations(scope, sources, "created_by")
    if not configs:
        return empty_report("configs", "totalConfigs", NO_CONFIGURATIONS)

    analysis = top_n([analyse_config(config) for config in configs], "config_score")
    needing_attention = [c for c in analysis if c.config_health == "Poor" or c.total_fields == 0]

    total = len(configs)
    versions = Counter(config.version or UNKNOWN for config in configs)
    version_distribution = [
        VersionCount(version=version, count=count, percentage=rate(count, total))
        for version, count in versions.items()
    ]

    dealerships = [
        DealershipConfigs(
            dealership_id=dealership_id,
            count=group.count,
            active_count=group.count_where(lambda c: c.is_active),
            default_count=group.count_where(lambda c: c.is_default),
        )
        for dealership_id, group in group_by(configs, lambda c: c.dealership_id or COMPANY_WIDE).items()
    ]

    field_types = Counter()
    for config in analysis:
        field_types.update(config.field_types)
    total_fields = sum(c.total_fields for c in analysis)
    field_type_usage = top_n([
        FieldTypeUsage(field_type=field_type, count=count, percentage=rate(count, total_fields))
        for field_type, count in field_types.items()
    ], "count")

    active = sum(1 for config in configs if config.is_active)
    total_categories = sum(c.total_categories for c in analysis)
    total_sections = sum(c.total_sections for c in analysis)
    summary = ConfigUsageSummary(
        total_configs=total,
        active_configs=active,
        inactive_configs=sum(1 for config in configs if not config.is_active),
        default_configs=sum(1 for config in configs if config.is_default),
        active_percentage=rate(active, total),
        total_categories=total_categories,
        total_sections=total_sections,
        total_fields=total_fields,
        avg_categories_per_config=ratio(total_categories, total),
        avg_sections_per_config=ratio(total_sections, total),
        avg_fields_per_config=ratio(total_fields, total),
        avg_config_score=js_round(safe_average(c.config_score for c in analysis)),
        unique_versions=len(versions),
        unique_dealerships=len(dealerships),
        configs_needing_attention=len(needing_attention),
        overall_health=ACTIVE_SHARE_HEALTH(active / total),
    )

    return TradeinConfigUsageReport(
        configs=analysis,
        top_configs=analysis[:MAX_TOP_CONFIGS],
        configs_needing_attention=needing_attention,
        version_distribution=version_distribution,
        dealership_distribution=dealerships,
        global_field_type_usage=field_type_usage,
        settings_analysis=analyse_settings(configs),
        summary=summary,
    )


async def generate_tradein_field_analysis_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> Union[TradeinFieldAnalysisReport, Dict[str, Any]]:
    """
    Generates how completely the fields of all trade-in forms are configured.

    Every field earns a completeness score out of 100 from its name, type,
    required flag, validation rules, dropdown source, placeholder, help text
    and image and notes support.
    """
    configs = await load_configurations(scope, sources)
    if not configs:
        return empty_report("fields", "totalFields", NO_CONFIGURATIONS)

    fields = [facts for config in configs for facts in config_fields(config)]
    scores = {id(f): f.completeness_score for f in fields}

    type_analysis = []
    for field_type, group in group_by(fields, "field_type").items():
        count = group.count
        required = group.count_where(lambda f: f.is_required)
        validated = group.count_where(lambda f: f.has_validation)
        with_image = group.count_where(lambda f: f.has_image)
        with_notes = group.count_where(lambda f: f.has_notes)
        with_dropdown = group.count_where(lambda f: f.has_dropdown)
        type_analysis.append(FieldTypeAnalysis(
            field_type=field_type,
            total_count=count,
            required_count=required,
            validation_count=validated,
            with_image=with_image,
            with_notes=with_notes,
            with_dropdown=with_dropdown,
            with_placeholder=group.count_where(lambda f: f.has_placeholder),
            with_help_text=group.count_where(lambda f: f.has_help_text),
            required_percentage=rate(required, count),
            validation_percentage=rate(validated, count),
            image_percentage=rate(with_image, count),
            notes_percentage=rate(with_notes, count),
            dropdown_percentage=rate(with_dropdown, count),
            avg_completeness_score=js_round(group.avg(lambda f: scores[id(f)])),
        ))

    validation_usage = ValidationTypeUsage()
    for facts in fields:
        if facts.has_validation:
            rules = facts.field["validation_rules"]
            for key in VALIDATION_KEYS:
                if rules.get(key):
                    setattr(validation_usage, key, getattr(validation_usage, key) + 1)

    required = [f for f in fields if f.is_required]
    required_without_validation = [f for f in required if not f.has_validation]
    well_configured = [f for f in fields if scores[id(f)] >= WELL_CONFIGURED]
    poorly_configured = [f for f in fields if scores[id(f)] < POORLY_CONFIGURED]

    total = len(fields)
    validated = sum(1 for f in fields if f.has_validation)
    with_dropdown = [f for f in fields if f.has_dropdown]
    with_image = sum(1 for f in fields if f.has_image)
    with_notes = sum(1 for f in fields if f.has_notes)
    with_placeholder = sum(1 for f in fields if f.has_placeholder)
    with_help_text = sum(1 for f in fields if f.has_help_text)
    with_display_order = sum(1 for f in fields if f.has_display_order)
    summary = FieldSummary(
        total_fields=total,
        total_configs=len(configs),
        unique_field_types=len(type_analysis),
        required_fields=len(required),
        required_percentage=rate(len(required), total),
        fields_with_validation=validated,
        validation_coverage=rate(validated, total),
        required_fields_with_validation=len(required) - len(required_without_validation),
        required_fields_without_validation=len(required_without_validation),
        fields_with_dropdown=len(with_dropdown),
        dropdown_usage_percentage=rate(len(with_dropdown), total),
        dropdowns_allowing_multiple=sum(1 for f in with_dropdown if f.allows_multiple),
        fields_with_image=with_image,
        image_usage_percentage=rate(with_image, total),
        fields_with_notes=with_notes,
        notes_usage_percentage=rate(with_notes, total),
        fields_with_placeholder=with_placeholder,
        placeholder_usage_percentage=rate(with_placeholder, total),
        fields_with_help_text=with_help_text,
        help_text_usage_percentage=rate(with_help_text, total),
        fields_with_display_order=with_display_order,
        display_order_usage_percentage=rate(with_display_order, total),
        avg_completeness_score=js_round(safe_average(scores.values())),
        well_configured_fields_count=len(well_configured),
        poorly_configured_fields_count=len(poorly_configured),
        avg_fields_per_config=ratio(total, len(configs)),
        currency_fields_count=sum(1 for f in fields if f.field_type == "currency"),
        video_fields_count=sum(1 for f in fields if f.field_type == "video"),
        calculation_fields_count=sum(1 for f in fields if f.field_type == "calculation_field"),
        multiplier_fields_count=sum(1 for f in fields if f.field_type in MULTIPLIER_TYPES),
    )

    return TradeinFieldAnalysisReport(
        field_type_analysis=top_n(type_analysis, "total_count"),
        validation_type_usage=validation_usage,
        well_configured_fields=[
            ScoredField(**f.ref(), completeness_score=scores[id(f)])
            for f in top_n(well_configured, lambda f: scores[id(f)], MAX_LISTED)
        ],
        poorly_configured_fields=[
            PoorlyConfiguredField(**f.ref(), completeness_score=scores[id(f)], missing_features=missing_features(f))
            for f in bottom_n(poorly_configured, lambda f: scores[id(f)], MAX_LISTED)
        ],
        required_fields_without_validation=[FieldRef(**f.ref()) for f in required_without_validation[:MAX_LISTED]],
        summary=summary,
    )


def analyse_category(config, category: Dict[str, Any]) -> CategoryEffectiveness:
    sections = sections_of(category)
    fields = [field for section in sections for field in fields_of(section)]
    required = sum(1 for field in fields if field.get("is_required"))
    validated = sum(1 for field in fields if has_validation(field))
    calculations = [c for c in (category.get("calculations") or []) if isinstance(c, dict)]

    score = score_rules(CATEGORY_RULES, {
        "has_sections": int(len(sections) > 0),
        "has_fields": int(len(fields) > 0),
        "has_description": int(has_text(category.get("description"))),
        "is_active": int(bool(category.get("is_active"))),
        "has_required_fields": int(required > 0),
        "has_validation": int(validated > 0),
        "has_calculations": int(len(calculations) > 0),
        "has_display_order": int("display_order" in category),
    })
    return CategoryEffectiveness(
        config_id=config.id,
        config_name=config.config_name,
        category_id=category.get("category_id"),
        category_name=category.get("category_name") or UNKNOWN,
        description=category.get("description"),
        is_active=bool(category.get("is_active")),
        display_order=category.get("display_order"),
        total_sections=len(sections),
        total_fields=len(fields),
        required_fields=required,
        fields_with_validation=validated,
        total_calculations=len(calculations),
        active_calculations=sum(1 for c in calculations if c.get("is_active")),
        collapsible_sections=sum(1 for s in sections if s.get("is_collapsible")),
        expanded_by_default_sections=sum(1 for s in sections if s.get("is_expanded_by_default")),
        sections_with_description=sum(1 for s in sections if has_text(s.get("description"))),
        avg_fields_per_section=ratio(len(fields), len(sections)),
        required_fields_percentage=rate(required, len(fields)),
        validation_coverage=rate(validated, len(fields)),
        effectiveness_score=score,
        effectiveness_level=EFFECTIVENESS_LEVEL(score),
        sections=[
            SectionAnalysis(
                section_id=section.get("section_id"),
                section_name=section.get("section_name"),
                description=section.get("description"),
                display_order=section.get("display_order"),
                is_collapsible=bool(section.get("is_collapsible")),
                is_expanded_by_default=bool(section.get("is_expanded_by_default")),
                field_count=len(fields_of(section)),
                required_field_count=sum(1 for field in fields_of(section) if field.get("is_required")),
            )
            for section in sections
        ],
    )


def category_issues(category: CategoryEffectiveness) -> List[str]:
    issues = []
    if category.total_sections == 0:
        issues.append("No sections configured")
    if category.total_fields == 0:
        issues.append("No fields configured")
    if not has_text(category.description):
        issues.append("Missing description")
    if not category.is_active:
        issues.append("Category is inactive")
    if category.required_fields == 0 and category.total_fields > 0:
        issues.append("No required fields")
    if category.validation_coverage < 30:
        issues.append("Low validation coverage")
    if category.total_calculations == 0 and category.total_fields > 5:
        issues.append("No calculations configured")
    return issues


async def generate_tradein_category_effectiveness_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> Union[TradeinCategoryEffectivenessReport, Dict[str, Any]]:
    """
    Generates an effectiveness score for every category of every trade-in form.

    Args:
        scope: Company, dealership and creation date restriction.
        sources: Model classes to read from.

    Returns:
        TradeinCategoryEffectivenessReport: Every category (most effective
        first) with its sections, the top ten, the categories needing
        improvement with their issues, how often each category name is used
        and a summary. An empty payload with a message when there are no
        configurations.
    """
    configs = await load_configurations(scope, sources)
    if not configs:
        return empty_report("categories", "totalCategories", NO_CONFIGURATIONS)

    categories = top_n([
        analyse_category(config, category) for config in configs for category in categories_of(config)
    ], "effectiveness_score")

    names = Counter(c.category_name for c in categories)
    name_analysis = top_n([
        CategoryNameCount(category_name=name, count=count, percentage=rate(count, len(configs)))
        for name, count in names.items()
    ], "count")

    needing_improvement = bottom_n(
        [c for c in categories if c.effectiveness_level == "Low" or c.total_fields == 0],
        "effectiveness_score",
        MAX_LISTED,
    )

    total = len(categories)
    levels = Counter(c.effectiveness_level for c in categories)
    active = sum(1 for c in categories if c.is_active)
    total_sections = sum(c.total_sections for c in categories)
    total_fields = sum(c.total_fields for c in categories)
    total_calculations = sum(c.total_calculations for c in categories)
    with_calculations = sum(1 for c in categories if c.total_calculations > 0)
    sections = [section for c in categories for section in c.sections]
    described = sum(1 for s in sections if has_text(s.description))
    collapsible = sum(1 for s in sections if s.is_collapsible)
    summary = CategorySummary(
        total_categories=total,
        total_configs=len(configs),
        active_categories=active,
        inactive_categories=total - active,
        active_percentage=rate(active, total),
        unique_category_names=len(names),
        avg_categories_per_config=ratio(total, len(configs)),
        total_sections=total_sections,
        total_fields=total_fields,
        avg_sections_per_category=ratio(total_sections, total),
        avg_fields_per_category=ratio(total_fields, total),
        high_effectiveness=levels["High"],
        medium_effectiveness=levels["Medium"],
        low_effectiveness=levels["Low"],
        high_effectiveness_percentage=rate(levels["High"], total),
        avg_effectiveness_score=js_round(safe_average(c.effectiveness_score for c in categories)),
        total_calculations=total_calculations,
        total_active_calculations=sum(c.active_calculations for c in categories),
        categories_with_calculations=with_calculations,
        calculation_usage_percentage=rate(with_calculations, total),
        avg_calculations_per_category=ratio(total_calculations, total),
        sections_with_description=described,
        section_description_percentage=rate(described, len(sections)),
        collapsible_sections=collapsible,
        collapsible_percentage=rate(collapsible, len(sections)),
        expanded_by_default_sections=sum(1 for s in sections if s.is_expanded_by_default),
        overall_health=CATEGORY_HEALTH(levels["High"] / total if total else 0),
    )

    return TradeinCategoryEffectivenessReport(
        categories=categories,
        top_categories=[
            TopCategory(
                category_name=c.category_name,
                config_name=c.config_name,
                effectiveness_score=c.effectiveness_score,
                effectiveness_level=c.effectiveness_level,
                total_sections=c.total_sections,
                total_fields=c.total_fields,
                total_calculations=c.total_calculations,
            )
            for c in categories[:MAX_LISTED]
        ],
        categories_needing_improvement=[
            CategoryNeedingImprovement(
                category_name=c.category_name,
                config_name=c.config_name,
                effectiveness_score=c.effectiveness_score,
                effectiveness_level=c.effectiveness_level,
                total_sections=c.total_sections,
                total_fields=c.total_fields,
                issues=category_issues(c),
            )
            for c in needing_improvement
        ],
        category_name_analysis=name_analysis,
        summary=summary,
    )

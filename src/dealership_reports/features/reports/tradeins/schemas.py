"""Result records for the trade-in configuration reports."""
from typing import Any, Dict, List, Optional, Union
import datetime

from ..schemas import CamelModel, CreatorRef


# Configuration usage

class ConfigUsage(CamelModel):
    config_id: int
    config_name: str
    description: Optional[str] = None
    version: Optional[str] = None
    is_active: bool
    is_default: bool
    dealership_id: Optional[int] = None
    total_categories: int
    total_sections: int
    total_fields: int
    required_fields_count: int
    fields_with_validation_count: int
    fields_with_dropdown_count: int
    fields_with_image_count: int
    fields_with_notes_count: int
    field_types: Dict[str, int]
    avg_fields_per_section: float
    avg_sections_per_category: float
    config_score: int
    config_health: str
    settings: Optional[Dict[str, Any]] = None
    created_by: Optional[CreatorRef] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


class VersionCount(CamelModel):
    version: str
    count: int
    percentage: int


class DealershipConfigs(CamelModel):
    dealership_id: Union[int, str]
    count: int = 0
    active_count: int = 0
    default_count: int = 0


class FieldTypeUsage(CamelModel):
    field_type: str
    count: int
    percentage: int


class SettingsAnalysis(CamelModel):
    require_photos: int = 0
    allow_video_upload: int = 0
    require_customer_signature: int = 0
    generate_offer_immediately: int = 0
    avg_max_photos_per_section: int = 0
    avg_max_video_size_mb: int = 0
    avg_auto_save_interval: int = 0


class ConfigUsageSummary(CamelModel):
    total_configs: int
    active_configs: int
    inactive_configs: int
    default_configs: int
    active_percentage: int
    total_categories: int
    total_sections: int
    total_fields: int
    avg_categories_per_config: float
    avg_sections_per_config: float
    avg_fields_per_config: float
    avg_config_score: int
    unique_versions: int
    unique_dealerships: int
    configs_needing_attention: int
    overall_health: str


class TradeinConfigUsageReport(CamelModel):
    configs: List[ConfigUsage]
    top_configs: List[ConfigUsage]
    configs_needing_attention: List[ConfigUsage]
    version_distribution: List[VersionCount]
    dealership_distribution: List[DealershipConfigs]
    global_field_type_usage: List[FieldTypeUsage]
    settings_analysis: SettingsAnalysis
    summary: ConfigUsageSummary


# Field analysis

class FieldTypeAnalysis(CamelModel):
    field_type: str
    total_count: int
    required_count: int
    validation_count: int
    with_image: int
    with_notes: int
    with_dropdown: int
    with_placeholder: int
    with_help_text: int
    required_percentage: int
    validation_percentage: int
    image_percentage: int
    notes_percentage: int
    dropdown_percentage: int
    avg_completeness_score: int


class ValidationTypeUsage(CamelModel):
    min_value: int = 0
    max_value: int = 0
    min_length: int = 0
    max_length: int = 0
    pattern: int = 0


class FieldRef(CamelModel):
    field_name: Optional[str] = None
    field_type: Optional[str] = None
    config_name: str
    category_name: Optional[str] = None
    section_name: Optional[str] = None


class ScoredField(FieldRef):
    completeness_score: int


class PoorlyConfiguredField(ScoredField):
    missing_features: List[str]


class FieldSummary(CamelModel):
    total_fields: int
    total_configs: int
    unique_field_types: int
    required_fields: int
    required_percentage: int
    fields_with_validation: int
    validation_coverage: int
    required_fields_with_validation: int
    required_fields_without_validation: int
    fields_with_dropdown: int
    dropdown_usage_percentage: int
    dropdowns_allowing_multiple: int
    fields_with_image: int
    image_usage_percentage: int
    fields_with_notes: int
    notes_usage_percentage: int
    fields_with_placeholder: int
    placeholder_usage_percentage: int
    fields_with_help_text: int
    help_text_usage_percentage: int
    fields_with_display_order: int
    display_order_usage_percentage: int
    avg_completeness_score: int
    well_configured_fields_count: int
    poorly_configured_fields_count: int
    avg_fields_per_config: float
    currency_fields_count: int
    video_fields_count: int
    calculation_fields_count: int
    multiplier_fields_count: int


class TradeinFieldAnalysisReport(CamelModel):
    field_type_analysis: List[FieldTypeAnalysis]
    validation_type_usage: ValidationTypeUsage
    well_configured_fields: List[ScoredField]
    poorly_configured_fields: List[PoorlyConfiguredField]
    required_fields_without_validation: List[FieldRef]
    summary: FieldSummary


# Category effectiveness

class SectionAnalysis(CamelModel):
    section_id: Optional[Union[int, str]] = None
    section_name: Optional[str] = None
    description: Optional[str] = None
    display_order: Optional[int] = None
    is_collapsible: bool = False
    is_expanded_by_default: bool = False
    field_count: int = 0
    required_field_count: int = 0


class CategoryEffectiveness(CamelModel):
    config_id: int
    config_name: str
    category_id: Optional[Union[int, str]] = None
    category_name: str
    description: Optional[str] = None
    is_active: bool
    display_order: Optional[int] = None
    total_sections: int
    total_fields: int
    required_fields: int
    fields_with_validation: int
    total_calculations: int
    active_calculations: int
    collapsible_sections: int
    expanded_by_default_sections: int
    sections_with_description: int
    avg_fields_per_section: float
    required_fields_percentage: int
    validation_coverage: int
    effectiveness_score: int
    effectiveness_level: str
    sections: List[SectionAnalysis]


class TopCategory(CamelModel):
    category_name: str
    config_name: str
    effectiveness_score: int
    effectiveness_level: str
    total_sections: int
    total_fields: int
    total_calculations: int


class CategoryNeedingImprovement(CamelModel):
    category_name: str
    config_name: str
    effectiveness_score: int
    effectiveness_level: str
    total_sections: int
    total_fields: int
    issues: List[str]


class CategoryNameCount(CamelModel):
    category_name: str
    count: int
    percentage: int


class CategorySummary(CamelModel):
    total_categories: int
    total_configs: int
    active_categories: int
    inactive_categories: int
    active_percentage: int
    unique_category_names: int
    avg_categories_per_config: float
    total_sections: int
    total_fields: int
    avg_sections_per_category: float
    avg_fields_per_category: float
    high_effectiveness: int
    medium_effectiveness: int
    low_effectiveness: int
    high_effectiveness_percentage: int
    avg_effectiveness_score: int
    total_calculations: int
    total_active_calculations: int
    categories_with_calculations: int
    calculation_usage_percentage: int
    avg_calculations_per_category: float
    sections_with_description: int
    section_description_percentage: int
    collapsible_sections: int
    collapsible_percentage: int
    expanded_by_default_sections: int
    overall_health: str


class TradeinCategoryEffectivenessReport(CamelModel):
    categories: List[CategoryEffectiveness]
    top_categories: List[TopCategory]
    categories_needing_improvement: List[CategoryNeedingImprovement]
    category_name_analysis: List[CategoryNameCount]
    summary: CategorySummary

"""Result records for the advertisement reports."""
from typing import Any, List, Optional

from ..schemas import BucketCount, CamelModel, StatusCount


class MakeModel(CamelModel):
    make: Optional[str] = None
    model: Optional[str] = None


class YearMonth(CamelModel):
    year: int
    month: int


class MonthlyStatus(YearMonth):
    status_breakdown: List[StatusCount]
    total_count: int


# Performance

class PerformanceSummary(CamelModel):
    total_advertisements: int = 0
    active_ads: int = 0
    pending_ads: int = 0
    processing_ads: int = 0
    failed_ads: int = 0
    completion_rate: float = 0
    failure_rate: float = 0
    avg_retail_price: float = 0
    total_listing_value: float = 0


class DealershipPerformance(CamelModel):
    dealership_id: Optional[int] = None
    total_ads: int
    completed_ads: int
    failed_ads: int
    completion_rate: float
    avg_retail_price: float
    total_listing_value: float


class MakeModelPerformance(MakeModel):
    count: int
    completed_count: int
    completion_rate: float
    avg_retail_price: float


class QueuePerformance(CamelModel):
    queue_status: Optional[str] = None
    count: int
    avg_processing_attempts: float


class AgeBucket(CamelModel):
    bucket: Any
    count: int
    completed_count: int


class AdvertisementPerformanceReport(CamelModel):
    performance_summary: PerformanceSummary
    status_timeline: List[MonthlyStatus]
    performance_by_dealership: List[DealershipPerformance]
    performance_by_make_model: List[MakeModelPerformance]
    queue_performance: List[QueuePerformance]
    age_analysis: List[AgeBucket]


# Pricing

class PricingOverview(CamelModel):
    total_vehicles: int = 0
    avg_retail_price: float = 0
    min_retail_price: float = 0
    max_retail_price: float = 0
    avg_sold_price: float = 0
    total_listing_value: float = 0
    total_sold_value: float = 0
    vehicles_included_in_exports: int = 0
    export_inclusion_rate: float = 0


class PriceRangeBucket(CamelModel):
    bucket: Any
    count: int
    avg_sold_price: float


class StatusPricing(CamelModel):
    status: Optional[str] = None
    count: int
    avg_retail_price: float
    avg_sold_price: float


class MakeModelPricing(MakeModel):
    count: int
    avg_retail_price: float
    min_retail_price: float
    max_retail_price: float
    avg_sold_price: float


class YearPricing(CamelModel):
    year: Optional[int] = None
    count: int
    avg_retail_price: float
    avg_sold_price: float


class MonthlyPricing(YearMonth):
    count: int
    avg_retail_price: float
    avg_sold_price: float


class GstPricing(CamelModel):
    gst_inclusive: Optional[bool] = None
    count: int
    avg_retail_price: float


class AdvertisementPricingReport(CamelModel):
    pricing_overview: PricingOverview
    price_range_distribution: List[PriceRangeBucket]
    pricing_by_status: List[StatusPricing]
    pricing_by_make_model: List[MakeModelPricing]
    pricing_by_year: List[YearPricing]
    pricing_trends: List[MonthlyPricing]
    gst_analysis: List[GstPricing]


# Attachment quality

class AttachmentOverview(CamelModel):
    total_vehicles: int = 0
    total_attachments: int = 0
    total_images: int = 0
    total_files: int = 0
    vehicles_with_hero_image: int = 0
    hero_image_rate: float = 0
    avg_attachments_per_vehicle: float = 0
    avg_images_per_vehicle: float = 0
    avg_files_per_vehicle: float = 0


class CategoryCount(CamelModel):
    category: Optional[str] = None
    count: int
    avg_size: int


class SizeAnalysis(CamelModel):
    type: Optional[str] = None
    count: int
    avg_size: int
    min_size: float
    max_size: float
    total_size: float


class MimeTypeCount(CamelModel):
    mime_type: Optional[str] = None
    count: int


class AttachmentQualityScore(CamelModel):
    total_vehicles: int = 0
    with_hero_image: int = 0
    with_minimum_images: int = 0
    avg_image_count: float = 0
    quality_score: float = 0


class AdvertisementAttachmentReport(CamelModel):
    attachment_overview: AttachmentOverview
    attachment_distribution: List[BucketCount]
    image_category_distribution: List[CategoryCount]
    file_category_distribution: List[CategoryCount]
    size_analysis: List[SizeAnalysis]
    mime_type_distribution: List[MimeTypeCount]
    quality_score: AttachmentQualityScore


# Status tracking

class StatusDistribution(CamelModel):
    status: Optional[str] = None
    count: int
    avg_retail_price: float


class DealershipStatus(CamelModel):
    dealership_id: Optional[int] = None
    status_breakdown: List[StatusCount]
    total_count: int


class AttemptsBucket(CamelModel):
    bucket: Any
    count: int
    failed_count: int


class LifecycleDuration(CamelModel):
    status: Optional[str] = None
    count: int
    avg_age_in_days: float
    min_age_in_days: float
    max_age_in_days: float


class FailedAnalysis(CamelModel):
    total_failed: int = 0
    avg_processing_attempts: float = 0
    with_error_message: int = 0
    error_message_rate: float = 0


class AdvertisementStatusReport(CamelModel):
    status_distribution: List[StatusDistribution]
    queue_status_distribution: List[QueuePerformance]
    status_timeline: List[MonthlyStatus]
    status_by_dealership: List[DealershipStatus]
    processing_attempts_analysis: List[AttemptsBucket]
    lifecycle_duration: List[LifecycleDuration]
    failed_analysis: FailedAnalysis


# Conversion

class ConversionMetrics(CamelModel):
    total_advertisements: int = 0
    completed_ads: int = 0
    sold_vehicles: int = 0
    completion_rate: float = 0
    conversion_rate: float = 0
    total_listing_value: float = 0
    total_sold_value: float = 0
    avg_retail_price: float = 0
    avg_sold_price: float = 0
    price_realization_rate: float = 0


class DealershipConversion(CamelModel):
    dealership_id: Optional[int] = None
    total_ads: int
    completed_ads: int
    sold_vehicles: int
    completion_rate: float
    conversion_rate: float
    total_sold_value: float


class MakeModelConversion(MakeModel):
    total_ads: int
    completed_ads: int
    sold_vehicles: int
    conversion_rate: float
    avg_retail_price: float
    avg_sold_price: float


class PriceRangeConversion(CamelModel):
    bucket: Any
    total_ads: int
    sold_vehicles: int
    conversion_rate: float


class MonthlyConversion(YearMonth):
    total_ads: int
    completed_ads: int
    sold_vehicles: int
    conversion_rate: float


class AdvertisementConversionReport(CamelModel):
    conversion_metrics: ConversionMetrics
    conversion_by_dealership: List[DealershipConversion]
    conversion_by_make_model: List[MakeModelConversion]
    conversion_by_price_range: List[PriceRangeConversion]
    conversion_timeline: List[MonthlyConversion]
    time_to_conversion: List[BucketCount]

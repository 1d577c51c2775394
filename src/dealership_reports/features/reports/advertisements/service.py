"""
Advertisement Reports Service

Reports over the vehicles queued for advertising: how far each listing got
through the processing queue, what it is priced at, how well it is
illustrated and whether it sold.

Pricing lives in ``vehicle_other_details``, a list of detail entries. The
single-figure reports read the first entry's retail price. The pricing and
conversion reports unwind the list into one row per entry, keeping one empty
row for a vehicle without any details so that it is still counted.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..filters import ScopeFilter
from ..metrics import as_utc, days_between, js_round, percentage, round1, round2, safe_average, top_n
from ..pipeline import GroupAccumulator, bucketize, group_by, scoped
from ..schemas import BucketCount, StatusCount
from ..sources import DEFAULT_SOURCES, ReportSources
from .schemas import (
    AdvertisementAttachmentReport, AdvertisementConversionReport, AdvertisementPerformanceReport,
    AdvertisementPricingReport, AdvertisementStatusReport, AgeBucket, AttachmentOverview,
    AttachmentQualityScore, AttemptsBucket, CategoryCount, ConversionMetrics, DealershipConversion,
    DealershipPerformance, DealershipStatus, FailedAnalysis, GstPricing, LifecycleDuration, MakeModelConversion,
    MakeModelPerformance, MakeModelPricing, MimeTypeCount, MonthlyConversion, MonthlyPricing, MonthlyStatus,
    PerformanceSummary, PriceRangeBucket, PriceRangeConversion, PricingOverview, QueuePerformance, SizeAnalysis,
    StatusDistribution, StatusPricing, YearPricing,
)

logger = logging.getLogger(__name__)

ADVERTISEMENT_TYPE = "advertisement"
MAX_MAKE_MODELS = 20
MAX_MIME_TYPES = 20
MINIMUM_IMAGES = 5

AGE_BOUNDARIES = [0, 7, 14, 30, 60, 90, 180, 365, 10000]
PRICE_BOUNDARIES = [0, 5000, 10000, 15000, 20000, 30000, 50000, 100000, 1000000]
CONVERSION_PRICE_BOUNDARIES = [0, 10000, 20000, 30000, 50000, 100000, 1000000]
ATTACHMENT_BOUNDARIES = [0, 1, 5, 10, 15, 20, 50, 100]
ATTEMPT_BOUNDARIES = [0, 1, 2, 3, 5, 10, 20]


async def load_advertisements(scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES) -> list:
    return await scoped(sources.advertisements, scope).filter(vehicle_type=ADVERTISEMENT_TYPE).order_by("id")


def _details(ad) -> List[Dict[str, Any]]:
    return [detail for detail in (ad.vehicle_other_details or []) if isinstance(detail, dict)]


def first_retail_price(ad) -> Optional[float]:
    details = _details(ad)
    return details[0].get("retail_price") if details else None


def unwind_details(ads) -> List[Dict[str, Any]]:
    """One row per detail entry, ``{"ad": ..., "detail": {...}}``, with an empty detail for bare vehicles."""
    rows = []
    for ad in ads:
        details = _details(ad)
        if not details:
            rows.append({"ad": ad, "detail": {}})
        for detail in details:
            rows.append({"ad": ad, "detail": detail})
    return rows


def _attachments(ad) -> List[Dict[str, Any]]:
    return [item for item in (ad.vehicle_attachments or []) if isinstance(item, dict)]


def _of_type(ad, kind: str) -> List[Dict[str, Any]]:
    return [item for item in _attachments(ad) if item.get("type") == kind]


def age_in_days(ad, now: datetime) -> Optional[float]:
    return days_between(now, ad.created_at)


def is_sold(row: Dict[str, Any]) -> bool:
    sold_price = row["detail"].get("sold_price")
    return sold_price is not None and sold_price > 0


def _retail(row):
    return row["detail"].get("retail_price")


def _sold(row):
    return row["detail"].get("sold_price")


def _completed(ad) -> bool:
    return ad.status == "completed"


def _row_completed(row) -> bool:
    return _completed(row["ad"])


def _year_month(moment: datetime):
    moment = as_utc(moment)
    return moment.year, moment.month


def _status_breakdown(group: GroupAccumulator) -> List[StatusCount]:
    return [StatusCount(status=status, count=sub.count) for status, sub in group_by(group.rows, "status").items()]


def _status_timeline(ads) -> List[MonthlyStatus]:
    months = group_by(ads, lambda ad: _year_month(ad.created_at))
    return [
        MonthlyStatus(year=year, month=month, status_breakdown=_status_breakdown(group), total_count=group.count)
        for (year, month), group in sorted(months.items())
    ]


def _queue_performance(ads) -> List[QueuePerformance]:
    rows = [
        QueuePerformance(
            queue_status=queue_status,
            count=group.count,
            avg_processing_attempts=round1(group.avg("processing_attempts")),
        )
        for queue_status, group in group_by(ads, "queue_status").items()
    ]
    return top_n(rows, "count")


def _make_model(row_or_ad):
    ad = row_or_ad["ad"] if isinstance(row_or_ad, dict) else row_or_ad
    return ad.make, ad.model


async def generate_advertisement_performance_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> AdvertisementPerformanceReport:
    """
    Generates the processing performance of advertised vehicles.

    Args:
        scope: Company, dealership and creation date restriction.
        sources: Model classes to read from.

    Returns:
        AdvertisementPerformanceReport: Status summary, monthly status
        timeline, per dealership and make/model figures, queue performance
        and listing age buckets.
    """
    ads = await load_advertisements(scope, sources)
    now = datetime.now(timezone.utc)

    summary = PerformanceSummary()
    if ads:
        total = len(ads)
        completed = sum(1 for ad in ads if _completed(ad))
        failed = sum(1 for ad in ads if ad.status == "failed")
        prices = [first_retail_price(ad) for ad in ads]
        summary = PerformanceSummary(
            total_advertisements=total,
            active_ads=completed,
            pending_ads=sum(1 for ad in ads if ad.status == "pending"),
            processing_ads=sum(1 for ad in ads if ad.status == "processing"),
            failed_ads=failed,
            completion_rate=percentage(completed, total),
            failure_rate=percentage(failed, total),
            avg_retail_price=round2(safe_average(prices)),
            total_listing_value=round2(sum(p for p in prices if p is not None)),
        )

    by_dealership = []
    for dealership_id, group in group_by(ads, "dealership_id").items():
        completed = group.count_where(_completed)
        by_dealership.append(DealershipPerformance(
            dealership_id=dealership_id,
            total_ads=group.count,
            completed_ads=completed,
            failed_ads=group.count_where(lambda ad: ad.status == "failed"),
            completion_rate=percentage(completed, group.count),
            avg_retail_price=round2(group.avg(first_retail_price)),
            total_listing_value=round2(group.sum(first_retail_price)),
        ))

    by_make_model = []
    for (make, model), group in group_by(ads, _make_model).items():
        completed = group.count_where(_completed)
        by_make_model.append(MakeModelPerformance(
            make=make,
            model=model,
            count=group.count,
            completed_count=completed,
            completion_rate=percentage(completed, group.count),
            avg_retail_price=round2(group.avg(first_retail_price)),
        ))

    age_analysis = [
        AgeBucket(bucket=key, count=group.count, completed_count=group.count_where(_completed))
        for key, group in bucketize(ads, lambda ad: age_in_days(ad, now), AGE_BOUNDARIES, "365+").items()
    ]

    return AdvertisementPerformanceReport(
        performance_summary=summary,
        status_timeline=_status_timeline(ads),
        performance_by_dealership=top_n(by_dealership, "total_ads"),
        performance_by_make_model=top_n(by_make_model, "count", MAX_MAKE_MODELS),
        queue_performance=_queue_performance(ads),
        age_analysis=age_analysis,
    )


async def generate_advertisement_pricing_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> AdvertisementPricingReport:
    """
    Generates retail and sold price statistics over every detail entry.

    Args:
        scope: Company, dealership and creation date restriction.
        sources: Model classes to read from.

    Returns:
        AdvertisementPricingReport: Overview, price range buckets and the
        breakdowns by detail status, make/model, year, month and GST.
    """
    ads = await load_advertisements(scope, sources)
    rows = unwind_details(ads)

    overview = PricingOverview()
    if rows:
        retail = [_retail(row) for row in rows]
        sold = [_sold(row) for row in rows]
        exported = sum(1 for row in rows if row["detail"].get("included_in_exports") is True)
        overview = PricingOverview(
            total_vehicles=len(rows),
            avg_retail_price=round2(safe_average(retail)),
            min_retail_price=round2(min((p for p in retail if p is not None), default=0)),
            max_retail_price=round2(max((p for p in retail if p is not None), default=0)),
            avg_sold_price=round2(safe_average(sold)),
            total_listing_value=round2(sum(p for p in retail if p is not None)),
            total_sold_value=round2(sum(p for p in sold if p is not None)),
            vehicles_included_in_exports=exported,
            export_inclusion_rate=percentage(exported, len(rows)),
        )

    price_ranges = [
        PriceRangeBucket(bucket=key, count=group.count, avg_sold_price=round2(group.avg(_sold)))
        for key, group in bucketize(rows, _retail, PRICE_BOUNDARIES, "1000000+").items()
    ]

    by_status = [
        StatusPricing(
            status=status,
            count=group.count,
            avg_retail_price=round2(group.avg(_retail)),
            avg_sold_price=round2(group.avg(_sold)),
        )
        for status, group in group_by(rows, lambda row: row["detail"].get("status")).items()
    ]

    by_make_model = [
        MakeModelPricing(
            make=make,
            model=model,
            count=group.count,
            avg_retail_price=round2(group.avg(_retail)),
            min_retail_price=round2(group.min(_retail)),
            max_retail_price=round2(group.max(_retail)),
            avg_sold_price=round2(group.avg(_sold)),
        )
        for (make, model), group in group_by(rows, _make_model).items()
    ]

    years = group_by(rows, lambda row: row["ad"].year)
    by_year = [
        YearPricing(
            year=year,
            count=group.count,
            avg_retail_price=round2(group.avg(_retail)),
            avg_sold_price=round2(group.avg(_sold)),
        )
        # vehicles without a year sort last
        for year, group in sorted(years.items(), key=lambda item: (item[0] is not None, item[0] or 0), reverse=True)
    ]

    months = group_by(rows, lambda row: _year_month(row["ad"].created_at))
    trends = [
        MonthlyPricing(
            year=year,
            month=month,
            count=group.count,
            avg_retail_price=round2(group.avg(_retail)),
            avg_sold_price=round2(group.avg(_sold)),
        )
        for (year, month), group in sorted(months.items())
    ]

    gst = [
        GstPricing(gst_inclusive=flag, count=group.count, avg_retail_price=round2(group.avg(_retail)))
        for flag, group in group_by(rows, lambda row: row["detail"].get("gst_inclusive")).items()
    ]

    return AdvertisementPricingReport(
        pricing_overview=overview,
        price_range_distribution=price_ranges,
        pricing_by_status=top_n(by_status, "count"),
        pricing_by_make_model=top_n(by_make_model, "count", MAX_MAKE_MODELS),
        pricing_by_year=by_year,
        pricing_trends=trends,
        gst_analysis=gst,
    )


def _category_counts(attachments, category_field: str) -> List[CategoryCount]:
    rows = [
        CategoryCount(category=category, count=group.count, avg_size=js_round(group.avg("size")))
        for category, group in group_by(attachments, category_field).items()
    ]
    return top_n(rows, "count")


async def generate_advertisement_attachment_quality_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> AdvertisementAttachmentReport:
    """
    Generates media quality figures for advertised vehicles.

    The quality score is the share of two checks passed over all vehicles:
    having a hero image and having at least five images.
    """
    ads = await load_advertisements(scope, sources)
    attachments = [item for ad in ads for item in _attachments(ad)]
    images = [item for item in attachments if item.get("type") == "image"]
    files = [item for item in attachments if item.get("type") == "file"]

    total = len(ads)
    with_hero = sum(1 for ad in ads if ad.vehicle_hero_image is not None)
    image_counts = [len(_of_type(ad, "image")) for ad in ads]

    overview = AttachmentOverview()
    quality = AttachmentQualityScore()
    if ads:
        overview = AttachmentOverview(
            total_vehicles=total,
            total_attachments=len(attachments),
            total_images=len(images),
            total_files=len(files),
            vehicles_with_hero_image=with_hero,
            hero_image_rate=percentage(with_hero, total),
            avg_attachments_per_vehicle=round1(len(attachments) / total),
            avg_images_per_vehicle=round1(len(images) / total),
            avg_files_per_vehicle=round1(len(files) / total),
        )
        with_minimum = sum(1 for count in image_counts if count >= MINIMUM_IMAGES)
        quality = AttachmentQualityScore(
            total_vehicles=total,
            with_hero_image=with_hero,
            with_minimum_images=with_minimum,
            avg_image_count=round1(safe_average(image_counts)),
            quality_score=percentage(with_hero + with_minimum, total * 2),
        )

    distribution = [
        BucketCount(bucket=key, count=group.count)
        for key, group in bucketize(ads, lambda ad: len(_attachments(ad)), ATTACHMENT_BOUNDARIES, "100+").items()
    ]

    size_analysis = [
        SizeAnalysis(
            type=kind,
            count=group.count,
            avg_size=js_round(group.avg("size")),
            min_size=group.min("size"),
            max_size=group.max("size"),
            total_size=group.sum("size"),
        )
        for kind, group in group_by(attachments, "type").items()
    ]

    mime_types = [
        MimeTypeCount(mime_type=mime_type, count=group.count)
        for mime_type, group in group_by(attachments, "mime_type").items()
    ]

    return AdvertisementAttachmentReport(
        attachment_overview=overview,
        attachment_distribution=distribution,
        image_category_distribution=_category_counts(images, "image_category"),
        file_category_distribution=_category_counts(files, "file_category"),
        size_analysis=size_analysis,
        mime_type_distribution=top_n(mime_types, "count", MAX_MIME_TYPES),
        quality_score=quality,
    )


async def generate_advertisement_status_tracking_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> AdvertisementStatusReport:
    ads = await load_advertisements(scope, sources)
    now = datetime.now(timezone.utc)

    statuses = [
        StatusDistribution(status=status, count=group.count, avg_retail_price=round2(group.avg(first_retail_price)))
        for status, group in group_by(ads, "status").items()
    ]

    by_dealership = [
        DealershipStatus(dealership_id=dealership_id, status_breakdown=_status_breakdown(group), total_count=group.count)
        for dealership_id, group in group_by(ads, "dealership_id").items()
    ]

    attempts = [
        AttemptsBucket(bucket=key, count=group.count, failed_count=group.count_where(lambda ad: ad.status == "failed"))
        for key, group in bucketize(ads, "processing_attempts", ATTEMPT_BOUNDARIES, "20+").items()
    ]

    lifecycle = [
        LifecycleDuration(
            status=status,
            count=group.count,
            avg_age_in_days=round1(group.avg(lambda ad: age_in_days(ad, now))),
            min_age_in_days=round1(group.min(lambda ad: age_in_days(ad, now))),
            max_age_in_days=round1(group.max(lambda ad: age_in_days(ad, now))),
        )
        for status, group in group_by(ads, "status").items()
    ]

    failed = [ad for ad in ads if ad.status == "failed"]
    failed_analysis = FailedAnalysis()
    if failed:
        with_error = sum(1 for ad in failed if ad.last_processing_error is not None)
        failed_analysis = FailedAnalysis(
            total_failed=len(failed),
            avg_processing_attempts=round1(safe_average(ad.processing_attempts for ad in failed)),
            with_error_message=with_error,
            error_message_rate=percentage(with_error, len(failed)),
        )

    return AdvertisementStatusReport(
        status_distribution=top_n(statuses, "count"),
        queue_status_distribution=_queue_performance(ads),
        status_timeline=_status_timeline(ads),
        status_by_dealership=top_n(by_dealership, "total_count"),
        processing_attempts_analysis=attempts,
        lifecycle_duration=lifecycle,
        failed_analysis=failed_analysis,
    )


async def generate_advertisement_conversion_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> AdvertisementConversionReport:
    """
    Generates how many advertised vehicles went on to sell.

    A detail entry counts as sold when its ``sold_price`` is above zero. The
    price realisation rate compares the average sold price with the average
    retail price.

    Args:
        scope: Company, dealership and creation date restriction.
        sources: Model classes to read from.

    Returns:
        AdvertisementConversionReport: Overall metrics, conversion by
        dealership, make/model, price range and month, and the age of the
        sold listings.
    """
    ads = await load_advertisements(scope, sources)
    rows = unwind_details(ads)
    now = datetime.now(timezone.utc)

    metrics = ConversionMetrics()
    if rows:
        total = len(rows)
        completed = sum(1 for row in rows if _row_completed(row))
        sold = sum(1 for row in rows if is_sold(row))
        avg_retail = safe_average(_retail(row) for row in rows)
        avg_sold = safe_average(_sold(row) for row in rows)
        metrics = ConversionMetrics(
            total_advertisements=total,
            completed_ads=completed,
            sold_vehicles=sold,
            completion_rate=percentage(completed, total),
            conversion_rate=percentage(sold, total),
            total_listing_value=round2(sum(p for p in map(_retail, rows) if p is not None)),
            total_sold_value=round2(sum(p for p in map(_sold, rows) if p is not None)),
            avg_retail_price=round2(avg_retail),
            avg_sold_price=round2(avg_sold),
            price_realization_rate=percentage(avg_sold, avg_retail),
        )

    by_dealership = []
    for dealership_id, group in group_by(rows, lambda row: row["ad"].dealership_id).items():
        completed = group.count_where(_row_completed)
        sold = group.count_where(is_sold)
        by_dealership.append(DealershipConversion(
            dealership_id=dealership_id,
            total_ads=group.count,
            completed_ads=completed,
            sold_vehicles=sold,
            completion_rate=percentage(completed, group.count),
            conversion_rate=percentage(sold, group.count),
            total_sold_value=round2(group.sum(_sold)),
        ))

    by_make_model = []
    for (make, model), group in group_by(rows, _make_model).items():
        sold = group.count_where(is_sold)
        by_make_model.append(MakeModelConversion(
            make=make,
            model=model,
            total_ads=group.count,
            completed_ads=group.count_where(_row_completed),
            sold_vehicles=sold,
            conversion_rate=percentage(sold, group.count),
            avg_retail_price=round2(group.avg(_retail)),
            avg_sold_price=round2(group.avg(_sold)),
        ))

    by_price_range = []
    for key, group in bucketize(rows, _retail, CONVERSION_PRICE_BOUNDARIES, "1000000+").items():
        sold = group.count_where(is_sold)
        by_price_range.append(PriceRangeConversion(
            bucket=key, total_ads=group.count, sold_vehicles=sold, conversion_rate=percentage(sold, group.count),
        ))

    timeline = []
    for (year, month), group in sorted(group_by(rows, lambda row: _year_month(row["ad"].created_at)).items()):
        sold = group.count_where(is_sold)
        timeline.append(MonthlyConversion(
            year=year,
            month=month,
            total_ads=group.count,
            completed_ads=group.count_where(_row_completed),
            sold_vehicles=sold,
            conversion_rate=percentage(sold, group.count),
        ))

    sold_rows = [row for row in rows if is_sold(row)]
    time_to_conversion = [
        BucketCount(bucket=key, count=group.count)
        for key, group in bucketize(sold_rows, lambda row: age_in_days(row["ad"], now), AGE_BOUNDARIES, "365+").items()
    ]

    return AdvertisementConversionReport(
        conversion_metrics=metrics,
        conversion_by_dealership=top_n(by_dealership, "conversion_rate"),
        conversion_by_make_model=top_n(by_make_model, "conversion_rate", MAX_MAKE_MODELS),
        conversion_by_price_range=by_price_range,
        conversion_timeline=timeline,
        time_to_conversion=time_to_conversion,
    )

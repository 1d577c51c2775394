import datetime

import pytest
import pytest_asyncio
from fastapi import status
from fastapi.testclient import TestClient

from dealership_reports.features.auth.models import User
from dealership_reports.features.vehicles.models import AdvertiseVehicle

pytestmark = pytest.mark.asyncio


def get_auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


def image(size: int = 100, category: str = "exterior") -> dict:
    return {"type": "image", "image_category": category, "size": size, "mime_type": "image/jpeg"}


@pytest_asyncio.fixture
async def advertisements(dealerships):
    north, south = dealerships
    listed = await AdvertiseVehicle.create(
        company_id="acme",
        dealership=north,
        status="completed",
        queue_status="processed",
        processing_attempts=1,
        make="Toyota",
        model="Corolla",
        year=2020,
        vehicle_other_details=[{
            "retail_price": 12000,
            "sold_price": 11000,
            "status": "sold",
            "gst_inclusive": True,
            "included_in_exports": True,
        }],
        vehicle_attachments=[image() for _ in range(5)] + [
            {"type": "file", "file_category": "service_history", "size": 400, "mime_type": "application/pdf"}
        ],
        vehicle_hero_image="hero.jpg",
    )
    failed = await AdvertiseVehicle.create(
        company_id="acme",
        dealership=north,
        status="failed",
        queue_status="failed",
        processing_attempts=3,
        last_processing_error="Publisher timeout",
        make="Toyota",
        model="Corolla",
        year=2019,
    )
    pending = await AdvertiseVehicle.create(
        company_id="acme",
        dealership=south,
        status="pending",
        make="Ford",
        model="Focus",
        year=2018,
        vehicle_other_details=[{"retail_price": 8000}, {"retail_price": 9000, "sold_price": 0}],
    )
    # Listings of another type or tenant are never counted
    await AdvertiseVehicle.create(company_id="acme", dealership=north, vehicle_type="master", status="completed")
    await AdvertiseVehicle.create(company_id="globex", status="completed")
    return listed, failed, pending


async def test_advertisement_performance(client: TestClient, primary_admin_token: tuple[str, User], advertisements):
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/advertisements/performance", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    summary = data["performanceSummary"]
    assert summary["totalAdvertisements"] == 3
    assert summary["activeAds"] == 1
    assert summary["failedAds"] == 1
    assert summary["pendingAds"] == 1
    assert summary["completionRate"] == 33.3
    # Listings without a retail price are left out of the average
    assert summary["avgRetailPrice"] == 10000
    assert summary["totalListingValue"] == 20000

    assert [row["totalAds"] for row in data["performanceByDealership"]] == [2, 1]
    assert [(row["make"], row["count"]) for row in data["performanceByMakeModel"]] == [("Toyota", 2), ("Ford", 1)]
    assert data["ageAnalysis"] == [{"bucket": 0, "count": 3, "completedCount": 1}]


async def test_advertisement_performance_for_restricted_admin(
    client: TestClient, restricted_admin_token: tuple[str, User], advertisements
):
    token, _ = restricted_admin_token
    response = client.get("/api/v1/reports/advertisements/performance", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["performanceSummary"]["totalAdvertisements"] == 2


async def test_advertisement_date_range(client: TestClient, primary_admin_token: tuple[str, User], advertisements):
    _, _, pending = advertisements
    await AdvertiseVehicle.filter(id=pending.id).update(
        created_at=datetime.datetime(2020, 1, 15, tzinfo=datetime.timezone.utc)
    )
    token, _ = primary_admin_token
    response = client.get(
        "/api/v1/reports/advertisements/performance",
        params={"startDate": "2021-01-01"},
        headers=get_auth_headers(token),
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["meta"]["filters"]["dateRange"]["startDate"] == "2021-01-01T00:00:00+00:00"
    assert body["data"]["performanceSummary"]["totalAdvertisements"] == 2


async def test_advertisement_pricing(client: TestClient, primary_admin_token: tuple[str, User], advertisements):
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/advertisements/pricing-analysis", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    overview = data["pricingOverview"]
    # One row per detail entry plus one for the vehicle without details
    assert overview["totalVehicles"] == 4
    assert overview["avgRetailPrice"] == 9666.67
    assert overview["minRetailPrice"] == 8000
    assert overview["maxRetailPrice"] == 12000
    assert overview["avgSoldPrice"] == 5500
    assert overview["exportInclusionRate"] == 25

    assert [(row["bucket"], row["count"]) for row in data["priceRangeDistribution"]] == [
        (5000, 2), (10000, 1), ("1000000+", 1),
    ]
    assert [row["year"] for row in data["pricingByYear"]] == [2020, 2019, 2018]


async def test_advertisement_attachment_quality(
    client: TestClient, primary_admin_token: tuple[str, User], advertisements
):
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/advertisements/attachment-quality", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    overview = data["attachmentOverview"]
    assert overview["totalAttachments"] == 6
    assert overview["totalImages"] == 5
    assert overview["vehiclesWithHeroImage"] == 1
    assert overview["avgImagesPerVehicle"] == 1.7

    assert [(row["bucket"], row["count"]) for row in data["attachmentDistribution"]] == [(0, 2), (5, 1)]
    sizes = {row["type"]: row for row in data["sizeAnalysis"]}
    assert sizes["image"]["totalSize"] == 500
    assert sizes["file"]["maxSize"] == 400

    quality = data["qualityScore"]
    assert quality["withMinimumImages"] == 1
    assert quality["qualityScore"] == 33.3


async def test_advertisement_status_tracking(
    client: TestClient, primary_admin_token: tuple[str, User], advertisements
):
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/advertisements/status-tracking", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    assert {row["status"]: row["count"] for row in data["statusDistribution"]} == {
        "completed": 1, "failed": 1, "pending": 1,
    }
    assert [row["bucket"] for row in data["processingAttemptsAnalysis"]] == [0, 1, 3]
    assert data["failedAnalysis"] == {
        "totalFailed": 1,
        "avgProcessingAttempts": 3,
        "withErrorMessage": 1,
        "errorMessageRate": 100,
    }


async def test_advertisement_conversion_rates(
    client: TestClient, primary_admin_token: tuple[str, User], advertisements, dealerships
):
    north, _ = dealerships
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/advertisements/conversion-rates", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    metrics = data["conversionMetrics"]
    assert metrics["totalAdvertisements"] == 4
    # A zero sold price is not a sale
    assert metrics["soldVehicles"] == 1
    assert metrics["conversionRate"] == 25
    assert metrics["priceRealizationRate"] == 56.9

    assert data["conversionByDealership"][0]["dealershipId"] == north.id
    assert data["conversionByDealership"][0]["conversionRate"] == 50
    assert data["timeToConversion"] == [{"bucket": 0, "count": 1}]

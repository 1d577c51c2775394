import json

import pytest
import pytest_asyncio
from fastapi import status
from fastapi.testclient import TestClient

from dealership_reports.features.auth.models import User
from dealership_reports.features.reports.filters import ScopeFilter
from dealership_reports.features.reports.responses import format_report_response
from dealership_reports.features.reports.suppliers.service import (
    generate_supplier_overview_report,
    generate_supplier_performance_ranking_report,
)
from dealership_reports.features.workshop.models import Conversation, Supplier, WorkshopQuote, WorkshopReport

pytestmark = pytest.mark.asyncio


def get_auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def suppliers(dealerships):
    north, south = dealerships
    bolt = await Supplier.create(company_id="acme", name="Bolt Repairs", tags=["brakes", "tyres"])
    spark = await Supplier.create(company_id="acme", name="Spark Electrical", tags=["electrical"])
    idle = await Supplier.create(company_id="acme", name="Idle Panels", tags=[], is_active=False)
    await Supplier.create(company_id="globex", name="Elsewhere", tags=["brakes"])

    completed = await WorkshopQuote.create(
        company_id="acme", dealership=north, approved_supplier=bolt, status="completed_jobs", quote_amount=1000
    )
    await WorkshopQuote.create(
        company_id="acme", dealership=north, approved_supplier=bolt, status="approved", quote_amount=500
    )
    await WorkshopQuote.create(
        company_id="acme", dealership=south, approved_supplier=spark, status="approved", quote_amount=200
    )
    await WorkshopReport.create(
        company_id="acme",
        dealership=north,
        quote=completed,
        final_price=1100,
        parts_cost=300,
        labour_cost=200,
        visual_check_score=80,
        functional_check_score=90,
    )
    await Conversation.create(
        company_id="acme",
        quote=completed,
        supplier=bolt,
        messages=[
            {"sender_type": "company", "message_type": "text", "created_at": "2024-03-04T10:00:00Z"},
            {"sender_type": "supplier", "message_type": "text", "created_at": "2024-03-04T12:00:00Z"},
        ],
    )
    return bolt, spark, idle


async def test_supplier_overview(client: TestClient, primary_admin_token: tuple[str, User], suppliers):
    bolt, spark, idle = suppliers
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/suppliers/overview", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    assert [row["supplierId"] for row in data["suppliers"]] == [bolt.id, spark.id, idle.id]
    first = data["suppliers"][0]
    # 2 quotes, 1 conversation, 1 report
    assert first["engagementScore"] == 16
    assert first["activityLevel"] == "Low"
    assert first["quoteMetrics"]["total"] == 2
    assert first["quoteMetrics"]["totalValue"] == 1500
    assert first["quoteMetrics"]["approvalRate"] == 50
    assert first["performanceMetrics"]["totalRevenue"] == 1100

    assert data["summary"] == {
        "totalSuppliers": 3,
        "activeSuppliers": 2,
        "inactiveSuppliers": 1,
        "suppliersWithQuotes": 2,
        "suppliersWithConversations": 1,
        "suppliersWithCompletedWork": 1,
        "avgEngagementScore": 7,
    }


async def test_supplier_overview_restricts_activity_not_suppliers(
    client: TestClient, restricted_admin_token: tuple[str, User], suppliers
):
    bolt, spark, _ = suppliers
    token, _ = restricted_admin_token
    response = client.get("/api/v1/reports/suppliers/overview", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    assert data["summary"]["totalSuppliers"] == 3
    assert data["summary"]["suppliersWithQuotes"] == 1
    rows = {row["supplierId"]: row for row in data["suppliers"]}
    assert rows[spark.id]["quoteMetrics"]["total"] == 0
    assert rows[bolt.id]["quoteMetrics"]["total"] == 2


async def test_supplier_performance_ranking(client: TestClient, primary_admin_token: tuple[str, User], suppliers):
    bolt, spark, _ = suppliers
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/suppliers/performance-ranking", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    # Inactive suppliers are not ranked
    assert [(row["supplierId"], row["rank"]) for row in data["rankings"]] == [(bolt.id, 1), (spark.id, 2)]
    scores = data["rankings"][0]["performanceScores"]
    assert scores == {
        "overall": 70,
        "responseTime": 96,
        "costEfficiency": 90,
        "approvalRate": 50,
        "completionRate": 50,
        "quality": 85,
    }
    assert data["rankings"][0]["metrics"]["costVariance"] == 10
    assert data["rankings"][0]["qualityBreakdown"]["roadTest"] == 0
    assert data["rankings"][0]["performanceLevel"] == "Good"
    assert data["rankings"][1]["performanceScores"]["overall"] == 25
    assert data["summary"]["goodPerformers"] == 1
    assert data["summary"]["needsImprovement"] == 1


async def test_supplier_tag_analysis(client: TestClient, primary_admin_token: tuple[str, User], suppliers):
    _, _, idle = suppliers
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/suppliers/tag-analysis", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    assert [row["tag"] for row in data["tagDistribution"]] == ["brakes", "tyres", "electrical"]
    quote_perf = {row["tag"]: row for row in data["quotePerformanceByTag"]}
    assert quote_perf["brakes"]["totalQuotes"] == 2
    assert quote_perf["brakes"]["completionRate"] == 50
    assert data["revenueByTag"][0]["profitMargin"] == 54.5
    assert [row["bucket"] for row in data["tagCombinations"]] == [0, 1, 2]
    assert data["commonTagPairs"] == [{"pair": "brakes + tyres", "count": 1, "suppliers": ["Bolt Repairs"]}]
    assert [row["id"] for row in data["suppliersWithoutTags"]] == [idle.id]
    assert data["tagStats"]["uniqueTags"] == 3
    assert data["tagStats"]["tagCoverageRate"] == 66.7


async def test_supplier_relationship_metrics(client: TestClient, primary_admin_token: tuple[str, User], suppliers):
    bolt, _, idle = suppliers
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/suppliers/relationship-metrics", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    rows = {row["supplierId"]: row for row in data["relationships"]}
    # 5 for the conversation, 6 for two quotes, 12.5 for half completed, 0.11 for revenue
    assert rows[bolt.id]["relationshipStrength"] == 24
    assert rows[bolt.id]["relationshipLevel"] == "Weak"
    assert rows[bolt.id]["engagementStatus"] == "Active"
    assert rows[bolt.id]["communicationMetrics"]["responseRatio"] == 1
    assert rows[idle.id]["engagementStatus"] == "No Activity"
    assert data["relationships"][0]["supplierId"] == bolt.id
    assert data["summary"]["engagementDistribution"] == {"active": 2, "moderate": 0, "inactive": 0, "noActivity": 1}


async def test_supplier_without_activity_scores_zero(suppliers):
    _, _, idle = suppliers
    report = await generate_supplier_overview_report(ScopeFilter(company_id="acme"))
    row = next(row for row in report.suppliers if row.supplier_id == idle.id)
    assert row.engagement_score == 0
    assert row.activity_level == "Low"
    assert row.quote_metrics.total == 0


async def test_supplier_overview_is_repeatable(suppliers):
    scope = ScopeFilter(company_id="acme")
    first = await generate_supplier_overview_report(scope)
    second = await generate_supplier_overview_report(scope)
    assert first.model_dump() == second.model_dump()

    first_envelope = format_report_response(first, "supplier-overview", scope)
    second_envelope = format_report_response(second, "supplier-overview", scope)
    assert first_envelope.data == second_envelope.data


async def test_supplier_overview_envelope_survives_json(suppliers):
    scope = ScopeFilter(company_id="acme")
    report = await generate_supplier_overview_report(scope)
    envelope = format_report_response(report, "supplier-overview", scope)

    parsed = json.loads(envelope.model_dump_json(by_alias=True))
    assert parsed["data"] == envelope.data
    assert parsed["data"] == report.model_dump(mode="json", by_alias=True)
    assert parsed["meta"]["reportType"] == "supplier-overview"


async def test_zero_hour_replies_count_as_no_response_data(suppliers):
    _, spark, _ = suppliers
    quote = await WorkshopQuote.filter(approved_supplier_id=spark.id).first()
    await Conversation.create(
        company_id="acme",
        quote=quote,
        supplier=spark,
        messages=[
            {"sender_type": "company", "message_type": "text", "created_at": "2024-03-04T10:00:00Z"},
            {"sender_type": "supplier", "message_type": "text", "created_at": "2024-03-04T10:00:00Z"},
        ],
    )
    report = await generate_supplier_performance_ranking_report(ScopeFilter(company_id="acme"))
    ranking = next(row for row in report.rankings if row.supplier_id == spark.id)
    assert ranking.performance_scores.response_time == 0
    assert ranking.performance_scores.overall == 25

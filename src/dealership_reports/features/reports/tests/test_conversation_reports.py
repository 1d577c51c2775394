import pytest
import pytest_asyncio
from fastapi import status
from fastapi.testclient import TestClient

from dealership_reports.features.auth.models import User
from dealership_reports.features.workshop.models import Conversation, Supplier, WorkshopQuote

# Helper function to create auth headers
def get_auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


def message(sender: str, at: str, message_type: str = "text", is_read: bool = True) -> dict:
    return {"sender_type": sender, "message_type": message_type, "content": "...", "is_read": is_read, "created_at": at}


@pytest_asyncio.fixture
async def conversations(dealerships):
    north, south = dealerships
    supplier = await Supplier.create(company_id="acme", name="Bolt Repairs")
    north_quote = await WorkshopQuote.create(
        company_id="acme", dealership=north, status="completed_jobs", quote_type="supplier", approved_supplier=supplier
    )
    south_quote = await WorkshopQuote.create(company_id="acme", dealership=south, status="quote_request")

    # 2024-03-04 was a Monday
    north_thread = await Conversation.create(
        company_id="acme",
        quote=north_quote,
        supplier=supplier,
        messages=[
            message("company", "2024-03-04T09:00:00Z"),
            message("supplier", "2024-03-04T09:30:00Z", "image"),
            message("company", "2024-03-04T10:30:00Z", is_read=False),
        ],
        unread_count_company=1,
    )
    south_thread = await Conversation.create(
        company_id="acme",
        quote=south_quote,
        supplier=supplier,
        messages=[
            message("supplier", "2024-03-05T14:00:00Z"),
            message("company", "2024-03-05T15:00:00Z"),
        ],
        is_archived_supplier=True,
    )
    silent_thread = await Conversation.create(company_id="acme", quote=north_quote, messages=[])
    # Another tenant's thread must never show up
    await Conversation.create(company_id="globex", messages=[message("company", "2024-03-04T09:00:00Z")])
    return north_thread, south_thread, silent_thread


pytestmark = pytest.mark.asyncio


async def test_volume_report_envelope_and_totals(
    client: TestClient, primary_admin_token: tuple[str, User], conversations
):
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/conversations/volume-analysis", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    body = response.json()

    assert body["meta"]["reportType"] == "conversation-volume-analysis"
    assert body["meta"]["filters"]["companyId"] == "acme"
    assert body["meta"]["filters"]["dealershipIds"] is None
    assert "generatedAt" in body["meta"]

    summary = body["data"]["summary"]
    assert summary["totalConversations"] == 3
    assert summary["activeConversations"] == 2
    assert summary["archivedConversations"] == 1
    assert summary["totalMessages"] == 5
    assert summary["totalCompanyMessages"] == 3
    assert summary["totalSupplierMessages"] == 2
    assert summary["companyMessagePercentage"] == 60
    assert summary["messageTypeDistribution"]["image"] == 1
    assert summary["messageTypeDistribution"]["imagePercentage"] == 20
    assert summary["peakActivity"]["day"] == {"dayOfWeek": "Monday", "messages": 3}

    daily = body["data"]["dailyVolume"]
    assert [(d["date"], d["totalMessages"]) for d in daily] == [("2024-03-04", 3), ("2024-03-05", 2)]
    assert daily[0]["uniqueConversations"] == 1

    hours = {h["hour"]: h["timeOfDay"] for h in body["data"]["hourlyAnalysis"]}
    assert hours == {9: "Morning", 10: "Morning", 14: "Afternoon", 15: "Afternoon"}

    top = body["data"]["topActiveConversations"]
    assert top[0]["totalMessages"] == 3
    assert top[-1]["totalMessages"] == 0


async def test_volume_report_for_restricted_admin_only_sees_own_dealership_threads(
    client: TestClient, restricted_admin_token: tuple[str, User], conversations
):
    north_thread, _, silent_thread = conversations
    token, _ = restricted_admin_token
    response = client.get("/api/v1/reports/conversations/volume-analysis", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    body = response.json()

    assert len(body["meta"]["filters"]["dealershipIds"]) == 1
    summary = body["data"]["summary"]
    assert summary["totalConversations"] == 2
    assert summary["totalMessages"] == 3
    ids = {c["conversationId"] for c in body["data"]["topActiveConversations"]}
    assert ids == {north_thread.id, silent_thread.id}


async def test_response_time_report(client: TestClient, primary_admin_token: tuple[str, User], conversations):
    north_thread, south_thread, _ = conversations
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/conversations/response-times", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    analysed = {c["conversationId"]: c for c in data["conversations"]}
    # The silent thread has no responses and is left out
    assert set(analysed) == {north_thread.id, south_thread.id}
    north = analysed[north_thread.id]
    assert north["supplierName"] == "Bolt Repairs"
    assert north["avgSupplierResponseTimeMinutes"] == 30
    assert north["avgCompanyResponseTimeMinutes"] == 60
    assert north["fastestResponseMinutes"] == 30
    assert north["slowestResponseMinutes"] == 60

    assert len(data["supplierPerformance"]) == 1
    assert data["supplierPerformance"][0]["avgResponseTimeMinutes"] == 30
    assert data["supplierPerformance"][0]["responseCategory"] == "Fast"

    assert [t["date"] for t in data["trends"]] == ["2024-03-04", "2024-03-05"]

    summary = data["summary"]
    assert summary["totalConversationsAnalyzed"] == 2
    assert summary["totalResponses"] == 3
    assert summary["companyMetrics"]["avgResponseTimeMinutes"] == 60
    assert summary["supplierMetrics"]["avgResponseTimeMinutes"] == 30
    assert summary["comparison"]["fasterResponder"] == "Supplier"
    assert summary["comparison"]["timeDifferenceMinutes"] == 30


async def test_engagement_report(client: TestClient, primary_admin_token: tuple[str, User], conversations):
    north_thread, south_thread, _ = conversations
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/conversations/engagement-metrics", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    records = {c["conversationId"]: c for c in data["conversations"]}
    assert set(records) == {north_thread.id, south_thread.id}
    north = records[north_thread.id]
    assert north["readRate"] == 67
    assert north["messageBalance"] == 50
    # Completed quote
    assert north["isResolved"] is True
    # Archived by the supplier
    assert records[south_thread.id]["isResolved"] is True

    summary = data["summary"]
    assert summary["totalConversations"] == 2
    assert summary["resolvedConversations"] == 2
    assert summary["readMetrics"]["totalReadMessages"] == 4
    assert summary["readMetrics"]["totalUnreadMessages"] == 1
    assert {q["quoteType"] for q in data["quoteTypeAnalysis"]} == {"supplier", "unknown"}


async def test_conversation_reports_with_no_data(client: TestClient, other_company_token: tuple[str, User]):
    token, _ = other_company_token
    response = client.get("/api/v1/reports/conversations/response-times", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    summary = response.json()["data"]["summary"]
    assert summary["totalConversationsAnalyzed"] == 0
    assert summary["companyMetrics"]["avgResponseTimeMinutes"] == 0
    assert summary["companyMetrics"]["performanceRating"] == "Excellent"

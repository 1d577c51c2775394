import datetime

import pytest
import pytest_asyncio
from fastapi import status
from fastapi.testclient import TestClient

from dealership_reports.features.auth.models import User
from dealership_reports.features.notifications.models import Notification, NotificationConfiguration

pytestmark = pytest.mark.asyncio


def get_auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def configurations():
    author = await User.get(username="companyadmin")
    quote_rule = await NotificationConfiguration.create(
        company_id="acme",
        name="Quote approved",
        trigger_type="create",
        target_schema="workshop_quote",
        target_fields=["status"],
        conditions={"time_based": {"enabled": True}, "frequency_limit": {"enabled": False}},
        notification_channels={"in_app": True},
        created_by=author,
    )
    idle_rule = await NotificationConfiguration.create(
        company_id="acme",
        name="Idle rule",
        is_active=False,
        notification_channels={"in_app": False},
    )
    await NotificationConfiguration.create(company_id="globex", name="Elsewhere", trigger_type="create")

    now = datetime.datetime.now(datetime.timezone.utc)
    sent = {"in_app": {"sent": True, "sent_at": (now + datetime.timedelta(seconds=2)).isoformat(), "error": None}}
    await Notification.create(
        company_id="acme",
        configuration=quote_rule,
        status="read",
        is_read=True,
        read_at=now + datetime.timedelta(minutes=10),
        channels=sent,
    )
    for _ in range(2):
        await Notification.create(company_id="acme", configuration=quote_rule, status="delivered", channels=sent)
    await Notification.create(
        company_id="acme",
        configuration=quote_rule,
        status="failed",
        channels={"in_app": {"sent": True, "sent_at": None, "error": "Recipient not found"}},
    )
    return quote_rule, idle_rule


async def test_notification_engagement(client: TestClient, primary_admin_token: tuple[str, User], configurations):
    quote_rule, idle_rule = configurations
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/notifications/engagement-metrics", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    rows = {row["configurationId"]: row for row in data["configurations"]}
    assert set(rows) == {quote_rule.id, idle_rule.id}
    metrics = rows[quote_rule.id]["metrics"]
    assert metrics["totalSent"] == 4
    assert metrics["delivered"] == 3
    assert metrics["deliveryRate"] == 75
    # Reads over deliveries
    assert metrics["readRate"] == 33
    # Reads over everything sent
    assert metrics["engagementRate"] == 25
    assert metrics["failureRate"] == 25
    # 20 for delivery, 15 for reads, 0 for failures, 10 for reading within half an hour
    assert rows[quote_rule.id]["engagementScore"] == 45
    assert rows[quote_rule.id]["engagementStatus"] == "Fair"
    assert rows[quote_rule.id]["createdBy"] == {"name": "Companyadmin Fixture", "email": "companyadmin@example.com"}
    assert rows[idle_rule.id]["createdBy"] is None
    assert rows[idle_rule.id]["engagementStatus"] == "Poor"

    assert [c["name"] for c in data["topConfigurations"]] == ["Quote approved"]
    # Poor score or more than a fifth failed, lowest score first
    assert [c["name"] for c in data["configurationsNeedingAttention"]] == ["Idle rule", "Quote approved"]
    medium = next(row for row in data["priorityEngagement"] if row["priority"] == "medium")
    assert medium == {"priority": "medium", "sent": 4, "read": 1, "readRate": 25}

    summary = data["summary"]
    assert summary["totalConfigurations"] == 2
    assert summary["inactiveConfigurations"] == 1
    assert summary["totalNotificationsSent"] == 4
    assert summary["overallReadRate"] == 33
    assert summary["configurationsWithHighFailureRate"] == 1


async def test_notification_reports_ignore_dealership_restriction(
    client: TestClient, restricted_admin_token: tuple[str, User], configurations
):
    token, _ = restricted_admin_token
    response = client.get("/api/v1/reports/notifications/engagement-metrics", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["summary"]["totalConfigurations"] == 2


async def test_notification_trigger_analysis(
    client: TestClient, primary_admin_token: tuple[str, User], configurations
):
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/notifications/trigger-analysis", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    triggers = data["triggerTypes"]
    assert [(t["triggerType"], t["effectivenessScore"]) for t in triggers] == [("create", 60), ("unknown", 0)]
    assert triggers[0]["effectivenessStatus"] == "Effective"
    assert data["mostEffectiveTrigger"]["triggerType"] == "create"
    assert data["leastEffectiveTrigger"]["triggerType"] == "unknown"
    assert data["targetSchemas"][0]["targetSchema"] == "workshop_quote"
    assert data["targetUserTypes"] == [{
        "targetUserType": "all",
        "configurationCount": 2,
        "percentage": 100,
        "totalNotificationsSent": 4,
        "totalRead": 1,
        "readRate": 25,
    }]
    assert data["conditionUsage"]["timeBasedConditions"] == 1
    assert data["conditionUsage"]["frequencyLimits"] == 0
    assert data["summary"]["avgConditionsPerConfig"] == 0.5


async def test_notification_channel_performance(
    client: TestClient, primary_admin_token: tuple[str, User], configurations
):
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/notifications/channel-performance", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    in_app = data["channelHealth"]["inApp"]
    assert in_app["totalSent"] == 4
    assert in_app["totalFailed"] == 1
    assert in_app["configurationsEnabled"] == 1
    # 15 for delivery, 10 for reads, 0 for failures, 10 for delivering within five seconds
    assert in_app["healthScore"] == 35
    assert in_app["healthStatus"] == "Poor"
    assert data["channelPreferences"] == {"inAppEnabled": 1, "inAppDisabled": 1, "inAppEnabledPercentage": 50}
    assert [p["priority"] for p in data["priorityChannelPerformance"]] == ["low", "medium", "high", "urgent"]


async def test_notification_reports_without_configurations(
    client: TestClient, other_company_token: tuple[str, User]
):
    token, _ = other_company_token
    response = client.get("/api/v1/reports/notifications/channel-performance", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"] == {
        "channels": [],
        "summary": {"totalConfigurations": 0, "message": "No notification configurations found"},
    }

import pytest
import pytest_asyncio
from fastapi import status
from fastapi.testclient import TestClient

from dealership_reports.features.auth.models import User
from dealership_reports.features.masters.models import DropdownMaster

pytestmark = pytest.mark.asyncio


def get_auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


def value(display: str, order=None, is_active: bool = True, is_default: bool = False) -> dict:
    return {
        "option_value": display.lower(),
        "display_value": display,
        "display_order": order,
        "is_active": is_active,
        "is_default": is_default,
    }


@pytest_asyncio.fixture
async def dropdowns(dealerships):
    north, south = dealerships
    author = await User.get(username="companyadmin")
    fuel = await DropdownMaster.create(
        company_id="acme",
        dealership=north,
        dropdown_name="fuel_type",
        display_name="Fuel Type",
        description="Fuel the vehicle runs on",
        validation_rules={"max_length": 20},
        values=[value("Petrol", 1, is_default=True), value("Diesel", 2), value("Electric", 3, is_active=False)],
        created_by=author,
    )
    colour = await DropdownMaster.create(
        company_id="acme",
        dropdown_name="body_colour",
        is_required=True,
        values=[],
    )
    gearbox = await DropdownMaster.create(
        company_id="acme",
        dealership=south,
        dropdown_name="transmission",
        display_name="Transmission",
        description="Gearbox",
        is_standard=True,
        values=[value("Manual", is_active=False), value("Automatic", is_active=False)],
    )
    await DropdownMaster.create(company_id="globex", dropdown_name="fuel_type", values=[value("Petrol")])
    return fuel, colour, gearbox


async def test_dropdown_usage(client: TestClient, primary_admin_token: tuple[str, User], dropdowns, dealerships):
    fuel, colour, gearbox = dropdowns
    north, south = dealerships
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/dropdowns/usage-analysis", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    scores = {row["dropdownName"]: row["configurationScore"] for row in data["dropdowns"]}
    assert scores == {"fuel_type": 100, "body_colour": 0, "transmission": 40}
    assert [row["dropdownId"] for row in data["topDropdowns"]] == [fuel.id, gearbox.id, colour.id]
    assert data["dropdowns"][0]["createdBy"]["email"] == "companyadmin@example.com"
    assert data["dropdowns"][0]["valueUtilizationRate"] == 67

    assert [row["dealershipId"] for row in data["dealershipDistribution"]] == [north.id, "company_wide", south.id]
    issues = data["issueDropdowns"]
    assert issues["empty"] == [{"dropdownId": colour.id, "dropdownName": "body_colour", "displayName": None}]
    assert [row["dropdownId"] for row in issues["withoutDefault"]] == [colour.id]
    assert issues["allInactiveValues"][0]["totalValues"] == 2

    summary = data["summary"]
    assert summary["totalDropdowns"] == 3
    assert summary["standardDropdowns"] == 1
    assert summary["totalValues"] == 5
    assert summary["avgConfigurationScore"] == 47
    # Two issues over three dropdowns
    assert summary["overallHealth"] == "Needs Improvement"


async def test_dropdown_usage_for_restricted_admin(
    client: TestClient, restricted_admin_token: tuple[str, User], dropdowns
):
    fuel, _, _ = dropdowns
    token, _ = restricted_admin_token
    response = client.get("/api/v1/reports/dropdowns/usage-analysis", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert [row["dropdownId"] for row in data["dropdowns"]] == [fuel.id]
    assert data["summary"]["overallHealth"] == "Excellent"


async def test_dropdown_value_distribution(client: TestClient, primary_admin_token: tuple[str, User], dropdowns):
    fuel, _, gearbox = dropdowns
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/dropdowns/value-distribution", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    by_dropdown = data["valuesByDropdown"]
    assert [row["totalValues"] for row in by_dropdown] == [3, 2, 0]
    assert by_dropdown[0]["avgDisplayOrder"] == 2
    assert by_dropdown[0]["displayOrderUsage"] == 100
    assert [row["dropdownId"] for row in data["dropdownsWithLeastValues"]] == [gearbox.id, fuel.id]

    summary = data["summary"]
    assert summary["totalActiveValues"] == 2
    assert summary["statusDistribution"] == {"activeOnly": 0, "inactiveOnly": 1, "mixed": 1, "empty": 1}
    assert summary["defaultValuePatterns"] == {"noDefault": 1, "singleDefault": 1, "multipleDefaults": 0}
    assert summary["valueLengthDistribution"]["short"] == 5
    assert summary["healthIndicators"]["dropdownsWithNoValues"] == 1


async def test_dropdown_configuration_health(client: TestClient, primary_admin_token: tuple[str, User], dropdowns):
    fuel, colour, gearbox = dropdowns
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/dropdowns/configuration-health", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    health = {row["dropdownId"]: row for row in data["healthReport"]}
    assert health[fuel.id]["healthScore"] == 100
    assert health[fuel.id]["healthStatus"] == "Healthy"
    assert health[fuel.id]["recommendations"] == ["Consider adding more active values for better user choice"]

    assert health[colour.id]["healthScore"] == 35
    assert health[colour.id]["healthStatus"] == "Critical"
    assert health[colour.id]["issues"] == ["No values configured", "Required dropdown has no default value"]
    assert health[colour.id]["warnings"] == ["Missing description"]

    assert health[gearbox.id]["healthScore"] == 55
    assert health[gearbox.id]["healthStatus"] == "Poor"

    assert [row["dropdownId"] for row in data["needsAttention"]] == [colour.id, gearbox.id]
    assert data["bestPerforming"][0]["dropdownName"] == "fuel_type"
    assert data["worstPerforming"][0] == {
        "dropdownName": "body_colour",
        "displayName": None,
        "healthScore": 35,
        "healthStatus": "Critical",
        "issueCount": 2,
    }

    summary = data["summary"]
    assert summary["avgHealthScore"] == 63
    assert summary["overallSystemHealth"] == "Fair"
    assert summary["totalIssues"] == 3
    assert summary["completenessMetrics"]["fullyConfigured"] == 1
    assert summary["actionableInsights"] == {
        "criticalActionRequired": 1,
        "improvementOpportunities": 1,
        "wellConfigured": 1,
    }


async def test_dropdown_reports_without_dropdowns(client: TestClient, other_company_token: tuple[str, User]):
    token, _ = other_company_token
    response = client.get("/api/v1/reports/dropdowns/configuration-health", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"] == {
        "healthReport": [],
        "summary": {"totalDropdowns": 0, "message": "No dropdown configurations found"},
    }

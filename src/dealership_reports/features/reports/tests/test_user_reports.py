import pytest
from fastapi import status
from fastapi.testclient import TestClient

from dealership_reports.features.auth.models import User
from dealership_reports.features.company.models import GroupPermission
from dealership_reports.features.vehicles.models import Vehicle
from dealership_reports.features.workshop.models import WorkshopQuote

pytestmark = pytest.mark.asyncio


def get_auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


async def test_user_performance_scores_created_activity(
    client: TestClient, primary_admin_token: tuple[str, User], dealerships
):
    token, _ = primary_admin_token
    author = await User.get(username="companyadmin")
    await Vehicle.create(company_id="acme", vehicle_type="inspection", created_by=author)
    await Vehicle.create(company_id="acme", vehicle_type="tradein", created_by=author)
    await WorkshopQuote.create(
        company_id="acme", dealership=dealerships[0], status="completed_jobs", quote_amount=400, created_by=author
    )

    response = client.get("/api/v1/reports/users/performance-metrics", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    rows = response.json()["data"]

    assert [row["username"] for row in rows] == ["companyadmin", "primaryadmin", "restrictedadmin"]
    top = rows[0]
    assert top["productivityScore"] == 7
    assert top["activityLevel"] == "Low"
    assert top["vehicleActivity"]["inspection"] == 1
    assert top["quoteActivity"]["completionRate"] == 100
    assert top["fullName"] == "Companyadmin Fixture"
    assert rows[1]["daysSinceLastLogin"] == 0


async def test_user_reports_for_restricted_admin_only_list_users_sharing_a_dealership(
    client: TestClient, restricted_admin_token: tuple[str, User]
):
    token, _ = restricted_admin_token
    response = client.get("/api/v1/reports/users/performance-metrics", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    # The primary admin has no dealership of its own
    assert [row["username"] for row in response.json()["data"]] == ["companyadmin", "restrictedadmin"]


async def test_user_login_patterns(client: TestClient, primary_admin_token: tuple[str, User]):
    token, _ = primary_admin_token
    await User.filter(username="companyadmin").update(login_attempts=2)

    response = client.get("/api/v1/reports/users/login-patterns", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    details = data["userLoginDetails"]
    assert details[0]["username"] == "primaryadmin"
    assert details[0]["activityStatus"] == "Active"
    assert details[0]["loginFrequency"] == "Daily"
    never = [d for d in details if not d["hasLoggedIn"]]
    assert {d["activityStatus"] for d in never} == {"Never Logged In"}

    assert data["frequencyDistribution"] == [
        {"bucket": 0, "category": "Today", "count": 1},
        {"bucket": "Never", "category": "Never", "count": 2},
    ]
    assert data["securityMetrics"]["usersWithFailedAttempts"] == 1
    assert data["securityMetrics"]["avgLoginAttempts"] == 0.67


async def test_user_role_distribution(client: TestClient, primary_admin_token: tuple[str, User]):
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/users/role-distribution", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    roles = {row["role"]: row for row in data["roleDistribution"]}
    assert roles["company_super_admin"]["totalUsers"] == 2
    assert roles["company_super_admin"]["primaryAdmins"] == 1
    assert roles["company_admin"]["avgDealershipCount"] == 2
    assert data["roleDistribution"][0]["role"] == "company_super_admin"
    assert [row["bucket"] for row in data["dealershipAssignmentByRole"]] == [0, 1, 2]
    assert data["overallStats"]["totalUsers"] == 3
    assert data["overallStats"]["uniqueRoleCount"] == 2


async def test_user_dealership_assignment(client: TestClient, primary_admin_token: tuple[str, User], dealerships):
    north, south = dealerships
    token, _ = primary_admin_token
    response = client.get("/api/v1/reports/users/dealership-assignment", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    detailed = data["detailedAssignments"]
    assert [row["username"] for row in detailed] == ["companyadmin", "restrictedadmin", "primaryadmin"]
    assert [d["name"] for d in detailed[0]["dealerships"]] == ["North Motors", "South Motors"]

    coverage = {row["dealershipId"]: row["userCount"] for row in data["dealershipCoverage"]}
    assert coverage == {north.id: 2, south.id: 1}
    assert [admin["username"] for admin in data["primaryAdminAnalysis"]] == ["primaryadmin"]
    assert data["assignmentStats"]["totalAssignments"] == 3
    assert data["assignmentStats"]["assignmentRate"] == 66.7


async def test_user_permission_utilization(client: TestClient, primary_admin_token: tuple[str, User]):
    token, _ = primary_admin_token
    group = await GroupPermission.create(company_id="acme", name="Workshop Team", permissions=["quotes:read"])
    await User.filter(username="companyadmin").update(
        permissions=["quotes:read", "reports:read"], module_access=["workshop"], group_permissions=group
    )
    await User.filter(username="restrictedadmin").update(permissions=["reports:read"])

    response = client.get("/api/v1/reports/users/permission-utilization", headers=get_auth_headers(token))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    assert data["commonPermissions"][0]["permission"] == "reports:read"
    assert data["commonPermissions"][0]["userCount"] == 2
    assert data["groupPermissionUsage"][0]["groupName"] == "Workshop Team"
    assert data["userPermissionProfiles"][0]["username"] == "companyadmin"
    assert data["userPermissionProfiles"][0]["hasGroupPermissions"] is True
    stats = data["permissionStats"]
    assert stats["totalUsers"] == 3
    assert stats["usersWithPermissions"] == 2
    assert stats["groupPermissionUsage"] == 33.3

"""Result records for the user reports."""
from typing import Any, List, Optional
import datetime

from ..schemas import CamelModel


# Performance metrics

class VehicleActivity(CamelModel):
    total: int = 0
    inspection: int = 0
    tradein: int = 0
    master: int = 0
    advertisement: int = 0
    last_created: Optional[datetime.datetime] = None


class QuoteActivity(CamelModel):
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    total_value: float = 0
    avg_amount: float = 0
    completion_rate: int = 0
    last_created: Optional[datetime.datetime] = None


class ReportActivity(CamelModel):
    total: int = 0
    total_revenue: float = 0
    avg_revenue: float = 0
    last_created: Optional[datetime.datetime] = None


class UserPerformance(CamelModel):
    user_id: int
    username: str
    full_name: str
    email: str
    role: str
    dealership_count: int
    last_login: Optional[datetime.datetime] = None
    days_since_last_login: Optional[int] = None
    vehicle_activity: VehicleActivity
    quote_activity: QuoteActivity
    report_activity: ReportActivity
    productivity_score: int
    activity_level: str


# Login patterns

class UserLoginDetail(CamelModel):
    user_id: int
    username: str
    full_name: str
    email: str
    role: str
    is_active: bool
    last_login: Optional[datetime.datetime] = None
    is_first_login: bool
    login_attempts: int
    account_locked_until: Optional[datetime.datetime] = None
    created_at: Optional[datetime.datetime] = None
    days_since_last_login: Optional[float] = None
    days_since_creation: float
    has_logged_in: bool
    is_locked: bool
    login_frequency: str
    activity_status: str


class LoginRecencyBucket(CamelModel):
    bucket: Any
    category: str
    count: int


class RoleLoginPattern(CamelModel):
    role: str
    total_users: int
    users_with_login: int
    active_users: int
    avg_days_since_last_login: Optional[float] = None
    recently_active: int
    login_rate: float
    activity_rate: float


class FirstLoginStatus(CamelModel):
    is_first_login: bool
    count: int


class SecurityMetrics(CamelModel):
    total_users: int = 0
    locked_accounts: int = 0
    users_with_failed_attempts: int = 0
    avg_login_attempts: float = 0
    lock_rate: float = 0


class UserLoginPatternsReport(CamelModel):
    user_login_details: List[UserLoginDetail]
    frequency_distribution: List[LoginRecencyBucket]
    role_login_patterns: List[RoleLoginPattern]
    first_login_status: List[FirstLoginStatus]
    security_metrics: SecurityMetrics


# Role distribution

class RoleDistribution(CamelModel):
    role: str
    total_users: int
    active_users: int
    inactive_users: int
    primary_admins: int
    users_with_login: int
    avg_dealership_count: float
    avg_permission_count: float
    avg_module_access_count: float
    users_with_group_permissions: int
    active_rate: float
    login_rate: float
    group_permission_rate: float


class RoleStatusCount(CamelModel):
    is_active: bool
    is_primary_admin: bool
    count: int


class RoleStatusRow(CamelModel):
    role: str
    status_breakdown: List[RoleStatusCount]


class DealershipCountBucket(CamelModel):
    bucket: Any
    count: int
    roles: List[str]


class PermissionComplexity(CamelModel):
    role: str
    avg_permissions: float
    avg_module_access: float
    max_permissions: int
    min_permissions: int
    users_with_no_permissions: int


class RoleCreationCount(CamelModel):
    year_month: str
    role: str
    count: int


class RoleOverallStats(CamelModel):
    total_users: int = 0
    unique_role_count: int = 0
    total_primary_admins: int = 0
    total_active_users: int = 0
    active_rate: float = 0


class UserRoleDistributionReport(CamelModel):
    role_distribution: List[RoleDistribution]
    role_status_matrix: List[RoleStatusRow]
    dealership_assignment_by_role: List[DealershipCountBucket]
    permission_complexity_by_role: List[PermissionComplexity]
    role_creation_timeline: List[RoleCreationCount]
    overall_stats: RoleOverallStats


# Dealership assignment

class AssignedUser(CamelModel):
    username: str
    full_name: str
    role: str
    is_primary_admin: bool
    dealership_count: int


class AssignmentBucket(CamelModel):
    bucket: Any
    count: int
    users: List[AssignedUser]


class RoleAssignment(CamelModel):
    role: str
    total_users: int
    avg_dealership_count: float
    max_dealership_count: int
    min_dealership_count: int
    users_with_no_dealerships: int
    users_with_multiple_dealerships: int
    primary_admins: int
    multi_dealership_rate: float


class DealershipRef(CamelModel):
    id: int
    name: str
    is_active: bool


class DetailedAssignment(CamelModel):
    user_id: int
    username: str
    full_name: str
    email: str
    role: str
    is_primary_admin: bool
    is_active: bool
    dealerships: List[DealershipRef]
    dealership_count: int


class DealershipCoverage(CamelModel):
    dealership_id: int
    dealership_name: Optional[str] = None
    dealership_is_active: Optional[bool] = None
    user_count: int
    active_user_count: int
    primary_admin_count: int
    role_count: int
    roles: List[str]


class PrimaryAdmin(CamelModel):
    user_id: int
    username: str
    first_name: str
    last_name: str
    email: str
    role: str
    is_active: bool
    dealership_count: int
    last_login: Optional[datetime.datetime] = None


class AssignmentStats(CamelModel):
    total_users: int = 0
    users_with_assignments: int = 0
    users_without_assignments: int = 0
    total_assignments: int = 0
    primary_admins: int = 0
    avg_assignments_per_user: float = 0
    assignment_rate: float = 0


class UserDealershipAssignmentReport(CamelModel):
    users_by_dealership_count: List[AssignmentBucket]
    assignment_by_role: List[RoleAssignment]
    detailed_assignments: List[DetailedAssignment]
    dealership_coverage: List[DealershipCoverage]
    primary_admin_analysis: List[PrimaryAdmin]
    assignment_stats: AssignmentStats


# Permission utilization

class PermissionCountBucket(CamelModel):
    bucket: Any
    count: int
    avg_module_access: float
    users_with_group_permissions: int


class PermissionUsage(CamelModel):
    permission: str
    user_count: int
    role_count: int
    roles: List[str]


class ModuleUsage(CamelModel):
    module: str
    user_count: int
    role_count: int
    roles: List[str]


class RolePermissions(CamelModel):
    role: str
    total_users: int
    avg_permissions: float
    avg_module_access: float
    max_permissions: int
    min_permissions: int
    users_with_no_permissions: int
    users_with_group_permissions: int
    group_permission_rate: float


class GroupMember(CamelModel):
    username: str
    full_name: str
    role: str


class GroupPermissionUsage(CamelModel):
    group_id: int
    group_name: Optional[str] = None
    user_count: int
    role_count: int
    roles: List[str]
    users: List[GroupMember]


class UserPermissionProfile(CamelModel):
    user_id: int
    username: str
    full_name: str
    email: str
    role: str
    is_active: bool
    permission_count: int
    module_access_count: int
    permissions: List[str]
    module_access: List[str]
    group_permission_name: Optional[str] = None
    has_group_permissions: bool


class PermissionStats(CamelModel):
    total_users: int = 0
    users_with_permissions: int = 0
    users_with_module_access: int = 0
    users_with_group_permissions: int = 0
    total_permissions: int = 0
    total_module_access: int = 0
    avg_permissions_per_user: float = 0
    avg_module_access_per_user: float = 0
    permission_coverage: float = 0
    module_access_coverage: float = 0
    group_permission_usage: float = 0


class UserPermissionUtilizationReport(CamelModel):
    permission_distribution: List[PermissionCountBucket]
    common_permissions: List[PermissionUsage]
    common_module_access: List[ModuleUsage]
    permission_by_role: List[RolePermissions]
    group_permission_usage: List[GroupPermissionUsage]
    user_permission_profiles: List[UserPermissionProfile]
    permission_stats: PermissionStats

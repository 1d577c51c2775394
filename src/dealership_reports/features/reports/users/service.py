"""
User Reports Service

Analytics over the platform users of a company: productivity, login habits,
roles, dealership assignments and permissions.

A user belongs to any number of dealerships through ``dealership_ids``, so a
caller restricted to some dealerships sees the users that share at least one
of them.
"""

import logging
import math
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional

from ...auth.service import is_locked
from ..filters import ScopeFilter
from ..metrics import (
    ThresholdLadder, as_utc, days_between, js_round, percentage, rate, round1, round2, safe_average,
    safe_max, safe_min, safe_sum, top_n,
)
from ..pipeline import bucketize, group_by, month_key, scoped
from ..sources import DEFAULT_SOURCES, ReportSources
from .schemas import (
    AssignedUser, AssignmentBucket, AssignmentStats, DealershipCountBucket, DealershipCoverage, DealershipRef,
    DetailedAssignment, FirstLoginStatus, GroupMember, GroupPermissionUsage, LoginRecencyBucket, ModuleUsage,
    PermissionComplexity, PermissionCountBucket, PermissionStats, PermissionUsage, PrimaryAdmin, QuoteActivity,
    ReportActivity, RoleAssignment, RoleCreationCount, RoleDistribution, RoleLoginPattern, RoleOverallStats,
    RolePermissions, RoleStatusCount, RoleStatusRow, SecurityMetrics, UserDealershipAssignmentReport,
    UserLoginDetail, UserLoginPatternsReport, UserPerformance, UserPermissionProfile,
    UserPermissionUtilizationReport, UserRoleDistributionReport, VehicleActivity,
)

logger = logging.getLogger(__name__)

PRODUCTIVITY_LEVEL = ThresholdLadder([(70, "High"), (40, "Medium")], "Low")
LOGIN_FREQUENCY = ThresholdLadder([(1, "Daily"), (7, "Weekly"), (30, "Monthly")], "Inactive", comparison="lte")
LOGIN_ACTIVITY = ThresholdLadder([(7, "Active"), (30, "Moderately Active")], "Inactive", comparison="lte")

NEVER_LOGGED_IN_DAYS = 999
LOGIN_RECENCY_BOUNDARIES = [0, 1, 7, 30, 90, NEVER_LOGGED_IN_DAYS]
LOGIN_RECENCY_LABELS = {0: "Today", 1: "This Week", 7: "This Month", 30: "Last 3 Months", 90: "Inactive"}
ROLE_DEALERSHIP_BOUNDARIES = [0, 1, 2, 5, 10, 100]
ASSIGNMENT_BOUNDARIES = [0, 1, 2, 3, 5, 10, 100]
PERMISSION_BOUNDARIES = [0, 1, 5, 10, 20, 50, 1000]
ROLE_TIMELINE_LIMIT = 12


def shares_dealership(user, dealership_ids: Optional[List[int]]) -> bool:
    if dealership_ids is None:
        return True
    return bool(set(dealership_ids).intersection(user.dealership_ids or []))


async def load_users(
    scope: ScopeFilter,
    sources: ReportSources,
    *,
    active_only: bool = False,
    dated: bool = False,
) -> list:
    """Company users visible to the caller, optionally only active ones or
    only those created inside the scope's date range."""
    if dated:
        queryset = scoped(sources.users, scope, dealership_field=None)
    else:
        queryset = sources.users.filter(company_id=scope.company_id)
    if active_only:
        queryset = queryset.filter(is_active=True)
    users = await queryset.order_by("id")
    visible = [user for user in users if shares_dealership(user, scope.dealership_ids)]
    logger.debug(f"Loaded {len(visible)} of {len(users)} user(s) for company {scope.company_id}")
    return visible


def _full_name(user) -> str:
    return f"{user.first_name} {user.last_name}"


def _size(values) -> int:
    return len(values or [])


def _latest(values) -> Optional[datetime]:
    present = [as_utc(value) for value in values if value is not None]
    return max(present) if present else None


def _role_sets(group) -> List[str]:
    return [role for role in group.distinct("role") if role is not None]


async def generate_user_performance_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> List[UserPerformance]:
    """
    Scores the productivity of every active user.

    The score gives 2 points per vehicle created (max 40), 3 per workshop
    quote (max 30) and 3 per workshop report (max 30). Only the activity
    created inside the date range counts.

    Args:
        scope: Company, dealership and date restriction.
        sources: Model classes to read from.

    Returns:
        list[UserPerformance]: One row per active user, most productive first.
    """
    users = await load_users(scope, sources, active_only=True)
    user_ids = [user.id for user in users]
    if not user_ids:
        return []

    vehicles = await scoped(sources.vehicles, scope, dealership_field=None).filter(created_by_id__in=user_ids)
    quotes = await scoped(sources.quotes, scope, dealership_field=None).filter(created_by_id__in=user_ids)
    reports = await scoped(sources.workshop_reports, scope, dealership_field=None).filter(created_by_id__in=user_ids)

    vehicles_by_user = group_by(vehicles, "created_by_id")
    quotes_by_user = group_by(quotes, "created_by_id")
    reports_by_user = group_by(reports, "created_by_id")
    now = datetime.now(timezone.utc)

    rows = []
    for user in users:
        vehicle_group = vehicles_by_user.get(user.id)
        quote_group = quotes_by_user.get(user.id)
        report_group = reports_by_user.get(user.id)

        vehicle_activity = VehicleActivity()
        if vehicle_group:
            types = Counter(vehicle_group.values("vehicle_type"))
            vehicle_activity = VehicleActivity(
                total=vehicle_group.count,
                inspection=types["inspection"],
                tradein=types["tradein"],
                master=types["master"],
                advertisement=types["advertisement"],
                last_created=_latest(vehicle_group.values("created_at")),
            )

        quote_activity = QuoteActivity()
        if quote_group:
            completed = quote_group.count_where(lambda q: q.status == "completed_jobs")
            quote_activity = QuoteActivity(
                total=quote_group.count,
                completed=completed,
                in_progress=quote_group.count_where(lambda q: q.status == "work_in_progress"),
                total_value=quote_group.sum("quote_amount"),
                avg_amount=quote_group.avg("quote_amount"),
                completion_rate=rate(completed, quote_group.count),
                last_created=_latest(quote_group.values("created_at")),
            )

        report_activity = ReportActivity()
        if report_group:
            report_activity = ReportActivity(
                total=report_group.count,
                total_revenue=report_group.sum("final_price"),
                avg_revenue=report_group.avg("final_price"),
                last_created=_latest(report_group.values("created_at")),
            )

        score = js_round(
            min(vehicle_activity.total * 2, 40) + min(quote_activity.total * 3, 30) + min(report_activity.total * 3, 30)
        )
        rows.append(UserPerformance(
            user_id=user.id,
            username=user.username,
            full_name=_full_name(user),
            email=user.email,
            role=user.role,
            dealership_count=_size(user.dealership_ids),
            last_login=user.last_login,
            days_since_last_login=math.floor(days_between(now, user.last_login)) if user.last_login else None,
            vehicle_activity=vehicle_activity,
            quote_activity=quote_activity,
            report_activity=report_activity,
            productivity_score=score,
            activity_level=PRODUCTIVITY_LEVEL.classify(score),
        ))

    return top_n(rows, "productivity_score")


def _login_detail(user, now: datetime) -> UserLoginDetail:
    days_since_login = days_between(now, user.last_login)
    locked = is_locked(user, now)
    if not user.is_active:
        status = "Disabled"
    elif locked:
        status = "Locked"
    elif days_since_login is None:
        status = "Never Logged In"
    else:
        status = LOGIN_ACTIVITY.classify(days_since_login)

    return UserLoginDetail(
        user_id=user.id,
        username=user.username,
        full_name=_full_name(user),
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        last_login=user.last_login,
        is_first_login=user.is_first_login,
        login_attempts=user.login_attempts,
        account_locked_until=user.account_locked_until,
        created_at=user.created_at,
        days_since_last_login=days_since_login,
        days_since_creation=days_between(now, user.created_at) or 0,
        has_logged_in=user.last_login is not None,
        is_locked=locked,
        login_frequency=LOGIN_FREQUENCY.classify(days_since_login) if days_since_login is not None else "Never",
        activity_status=status,
    )


async def generate_user_login_patterns_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> UserLoginPatternsReport:
    """
    Describes how recently and how often users log in.

    Every user gets a login frequency and an activity status. Disabled and
    locked accounts are reported as such before their login history is
    looked at.
    """
    users = await load_users(scope, sources, dated=True)
    now = datetime.now(timezone.utc)

    details = [_login_detail(user, now) for user in users]
    # Most recent login first, users who never logged in last
    details.sort(key=lambda d: (d.last_login is not None, as_utc(d.last_login) if d.last_login else now), reverse=True)

    recency = bucketize(
        details,
        lambda d: d.days_since_last_login if d.has_logged_in else NEVER_LOGGED_IN_DAYS,
        LOGIN_RECENCY_BOUNDARIES,
        "Never",
    )
    frequency_distribution = [
        LoginRecencyBucket(bucket=key, category=LOGIN_RECENCY_LABELS.get(key, "Never"), count=group.count)
        for key, group in recency.items()
    ]

    role_patterns = []
    for role, group in group_by(details, "role").items():
        login_days = [d.days_since_last_login for d in group.rows if d.has_logged_in]
        with_login = len(login_days)
        recently_active = sum(1 for days in login_days if days <= 7)
        role_patterns.append(RoleLoginPattern(
            role=role,
            total_users=group.count,
            users_with_login=with_login,
            active_users=group.count_where(lambda d: d.is_active),
            avg_days_since_last_login=round1(safe_average(login_days)) if login_days else None,
            recently_active=recently_active,
            login_rate=percentage(with_login, group.count),
            activity_rate=percentage(recently_active, group.count),
        ))

    first_login_status = [
        FirstLoginStatus(is_first_login=key, count=group.count)
        for key, group in group_by(details, "is_first_login").items()
    ]

    security = SecurityMetrics()
    if details:
        locked = sum(1 for d in details if d.is_locked)
        security = SecurityMetrics(
            total_users=len(details),
            locked_accounts=locked,
            users_with_failed_attempts=sum(1 for d in details if d.login_attempts > 0),
            avg_login_attempts=round2(safe_average([d.login_attempts for d in details])),
            lock_rate=percentage(locked, len(details), 2),
        )

    return UserLoginPatternsReport(
        user_login_details=details,
        frequency_distribution=frequency_distribution,
        role_login_patterns=role_patterns,
        first_login_status=first_login_status,
        security_metrics=security,
    )


async def generate_user_role_distribution_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> UserRoleDistributionReport:
    """
    Breaks the user base down by role: activity, primary admins, how many
    dealerships and permissions each role carries and when each role's users
    were created.
    """
    users = await load_users(scope, sources)

    role_distribution = []
    permission_complexity = []
    role_status_matrix = []
    for role, group in group_by(users, "role").items():
        active = group.count_where(lambda u: u.is_active)
        with_login = group.count_where(lambda u: u.last_login is not None)
        with_groups = group.count_where(lambda u: u.group_permissions_id is not None)
        permission_counts = [_size(u.permissions) for u in group.rows]
        module_counts = [_size(u.module_access) for u in group.rows]
        role_distribution.append(RoleDistribution(
            role=role,
            total_users=group.count,
            active_users=active,
            inactive_users=group.count - active,
            primary_admins=group.count_where(lambda u: u.is_primary_admin),
            users_with_login=with_login,
            avg_dealership_count=round1(safe_average([_size(u.dealership_ids) for u in group.rows])),
            avg_permission_count=round1(safe_average(permission_counts)),
            avg_module_access_count=round1(safe_average(module_counts)),
            users_with_group_permissions=with_groups,
            active_rate=percentage(active, group.count),
            login_rate=percentage(with_login, group.count),
            group_permission_rate=percentage(with_groups, group.count),
        ))
        permission_complexity.append(PermissionComplexity(
            role=role,
            avg_permissions=round1(safe_average(permission_counts)),
            avg_module_access=round1(safe_average(module_counts)),
            max_permissions=safe_max(permission_counts),
            min_permissions=safe_min(permission_counts),
            users_with_no_permissions=sum(1 for count in permission_counts if count == 0),
        ))
        role_status_matrix.append(RoleStatusRow(
            role=role,
            status_breakdown=[
                RoleStatusCount(is_active=key[0], is_primary_admin=key[1], count=status_group.count)
                for key, status_group in group_by(group.rows, lambda u: (u.is_active, u.is_primary_admin)).items()
            ],
        ))

    dealership_buckets = [
        DealershipCountBucket(bucket=key, count=group.count, roles=group.values("role"))
        for key, group in bucketize(users, lambda u: _size(u.dealership_ids), ROLE_DEALERSHIP_BOUNDARIES, "10+").items()
    ]

    timeline_groups = group_by(users, lambda u: (month_key(u.created_at), u.role))
    timeline = sorted(
        (RoleCreationCount(year_month=key[0], role=key[1], count=group.count) for key, group in timeline_groups.items()),
        key=lambda row: row.year_month,
        reverse=True,
    )[:ROLE_TIMELINE_LIMIT]

    overall = RoleOverallStats()
    if users:
        active = sum(1 for u in users if u.is_active)
        overall = RoleOverallStats(
            total_users=len(users),
            unique_role_count=len({u.role for u in users}),
            total_primary_admins=sum(1 for u in users if u.is_primary_admin),
            total_active_users=active,
            active_rate=percentage(active, len(users)),
        )

    return UserRoleDistributionReport(
        role_distribution=top_n(role_distribution, "total_users"),
        role_status_matrix=role_status_matrix,
        dealership_assignment_by_role=dealership_buckets,
        permission_complexity_by_role=permission_complexity,
        role_creation_timeline=timeline,
        overall_stats=overall,
    )


async def generate_user_dealership_assignment_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> UserDealershipAssignmentReport:
    """
    Shows how users are spread over dealerships: how many dealerships each
    user holds, per role and per dealership, and who the company's primary
    admins are. Dealership ids that no longer resolve to a dealership are
    left out of the per-user dealership lists.
    """
    users = await load_users(scope, sources)
    assigned_ids = sorted({dealership_id for user in users for dealership_id in user.dealership_ids or []})
    dealerships = {}
    if assigned_ids:
        dealerships = {
            dealership.id: dealership
            for dealership in await sources.dealerships.filter(company_id=scope.company_id, id__in=assigned_ids)
        }

    users_by_count = [
        AssignmentBucket(
            bucket=key,
            count=group.count,
            users=[
                AssignedUser(
                    username=u.username,
                    full_name=_full_name(u),
                    role=u.role,
                    is_primary_admin=u.is_primary_admin,
                    dealership_count=_size(u.dealership_ids),
                )
                for u in group.rows
            ],
        )
        for key, group in bucketize(users, lambda u: _size(u.dealership_ids), ASSIGNMENT_BOUNDARIES, "10+").items()
    ]

    assignment_by_role = []
    for role, group in group_by(users, "role").items():
        counts = [_size(u.dealership_ids) for u in group.rows]
        multiple = sum(1 for count in counts if count > 1)
        assignment_by_role.append(RoleAssignment(
            role=role,
            total_users=group.count,
            avg_dealership_count=round1(safe_average(counts)),
            max_dealership_count=safe_max(counts),
            min_dealership_count=safe_min(counts),
            users_with_no_dealerships=sum(1 for count in counts if count == 0),
            users_with_multiple_dealerships=multiple,
            primary_admins=group.count_where(lambda u: u.is_primary_admin),
            multi_dealership_rate=percentage(multiple, group.count),
        ))

    detailed = []
    for user in users:
        refs = [
            DealershipRef(id=d.id, name=d.name, is_active=d.is_active)
            for d in (dealerships.get(dealership_id) for dealership_id in user.dealership_ids or [])
            if d is not None
        ]
        detailed.append(DetailedAssignment(
            user_id=user.id,
            username=user.username,
            full_name=_full_name(user),
            email=user.email,
            role=user.role,
            is_primary_admin=user.is_primary_admin,
            is_active=user.is_active,
            dealerships=refs,
            dealership_count=len(refs),
        ))
    detailed.sort(key=lambda row: (-row.dealership_count, row.username))

    memberships = [(dealership_id, user) for user in users for dealership_id in user.dealership_ids or []]
    coverage = []
    for dealership_id, group in group_by(memberships, lambda row: row[0]).items():
        members = [user for _, user in group.rows]
        roles = list(dict.fromkeys(user.role for user in members))
        dealership = dealerships.get(dealership_id)
        coverage.append(DealershipCoverage(
            dealership_id=dealership_id,
            dealership_name=dealership.name if dealership else None,
            dealership_is_active=dealership.is_active if dealership else None,
            user_count=len(members),
            active_user_count=sum(1 for user in members if user.is_active),
            primary_admin_count=sum(1 for user in members if user.is_primary_admin),
            role_count=len(roles),
            roles=roles,
        ))
    coverage = top_n(coverage, "user_count")

    # Primary admins see every dealership, so they are listed company wide
    admins = await sources.users.filter(company_id=scope.company_id, is_primary_admin=True).order_by("id")
    primary_admins = [
        PrimaryAdmin(
            user_id=u.id,
            username=u.username,
            first_name=u.first_name,
            last_name=u.last_name,
            email=u.email,
            role=u.role,
            is_active=u.is_active,
            dealership_count=_size(u.dealership_ids),
            last_login=u.last_login,
        )
        for u in admins
    ]

    stats = AssignmentStats()
    if users:
        with_assignments = sum(1 for u in users if u.dealership_ids)
        total_assignments = sum(_size(u.dealership_ids) for u in users)
        stats = AssignmentStats(
            total_users=len(users),
            users_with_assignments=with_assignments,
            users_without_assignments=len(users) - with_assignments,
            total_assignments=total_assignments,
            primary_admins=sum(1 for u in users if u.is_primary_admin),
            avg_assignments_per_user=round2(total_assignments / len(users)),
            assignment_rate=percentage(with_assignments, len(users)),
        )

    return UserDealershipAssignmentReport(
        users_by_dealership_count=users_by_count,
        assignment_by_role=assignment_by_role,
        detailed_assignments=detailed,
        dealership_coverage=coverage,
        primary_admin_analysis=primary_admins,
        assignment_stats=stats,
    )


async def generate_user_permission_utilization_report(
    scope: ScopeFilter, sources: ReportSources = DEFAULT_SOURCES
) -> UserPermissionUtilizationReport:
    """
    Reports how permissions, module access and group permissions are used
    across the user base. The date range is not applied: permissions describe
    the current state of each account.
    """
    users = await load_users(scope, sources)
    group_ids = sorted({u.group_permissions_id for u in users if u.group_permissions_id is not None})
    groups = {}
    if group_ids:
        groups = {group.id: group for group in await sources.group_permissions.filter(id__in=group_ids)}

    permission_distribution = [
        PermissionCountBucket(
            bucket=key,
            count=group.count,
            avg_module_access=round1(safe_average([_size(u.module_access) for u in group.rows])),
            users_with_group_permissions=group.count_where(lambda u: u.group_permissions_id is not None),
        )
        for key, group in bucketize(users, lambda u: _size(u.permissions), PERMISSION_BOUNDARIES, "50+").items()
    ]

    permission_rows = [(permission, user) for user in users for permission in user.permissions or []]
    common_permissions = top_n(
        [
            PermissionUsage(
                permission=permission,
                user_count=group.count,
                role_count=len(set(u.role for _, u in group.rows)),
                roles=list(dict.fromkeys(u.role for _, u in group.rows)),
            )
            for permission, group in group_by(permission_rows, lambda row: row[0]).items()
        ],
        "user_count",
        20,
    )

    module_rows = [(module, user) for user in users for module in user.module_access or []]
    common_modules = top_n(
        [
            ModuleUsage(
                module=module,
                user_count=group.count,
                role_count=len(set(u.role for _, u in group.rows)),
                roles=list(dict.fromkeys(u.role for _, u in group.rows)),
            )
            for module, group in group_by(module_rows, lambda row: row[0]).items()
        ],
        "user_count",
        20,
    )

    permission_by_role = []
    for role, group in group_by(users, "role").items():
        counts = [_size(u.permissions) for u in group.rows]
        with_groups = group.count_where(lambda u: u.group_permissions_id is not None)
        permission_by_role.append(RolePermissions(
            role=role,
            total_users=group.count,
            avg_permissions=round1(safe_average(counts)),
            avg_module_access=round1(safe_average([_size(u.module_access) for u in group.rows])),
            max_permissions=safe_max(counts),
            min_permissions=safe_min(counts),
            users_with_no_permissions=sum(1 for count in counts if count == 0),
            users_with_group_permissions=with_groups,
            group_permission_rate=percentage(with_groups, group.count),
        ))

    group_usage = top_n(
        [
            GroupPermissionUsage(
                group_id=group_id,
                group_name=groups[group_id].name if group_id in groups else None,
                user_count=group.count,
                role_count=len(_role_sets(group)),
                roles=_role_sets(group),
                users=[GroupMember(username=u.username, full_name=_full_name(u), role=u.role) for u in group.rows],
            )
            for group_id, group in group_by(
                [u for u in users if u.group_permissions_id is not None], "group_permissions_id"
            ).items()
        ],
        "user_count",
    )

    profiles = top_n(
        [
            UserPermissionProfile(
                user_id=u.id,
                username=u.username,
                full_name=_full_name(u),
                email=u.email,
                role=u.role,
                is_active=u.is_active,
                permission_count=_size(u.permissions),
                module_access_count=_size(u.module_access),
                permissions=u.permissions or [],
                module_access=u.module_access or [],
                group_permission_name=groups[u.group_permissions_id].name if u.group_permissions_id in groups else None,
                has_group_permissions=u.group_permissions_id is not None,
            )
            for u in users
        ],
        "permission_count",
    )

    stats = PermissionStats()
    if users:
        total = len(users)
        with_permissions = sum(1 for u in users if u.permissions)
        with_modules = sum(1 for u in users if u.module_access)
        with_groups = sum(1 for u in users if u.group_permissions_id is not None)
        total_permissions = safe_sum(_size(u.permissions) for u in users)
        total_modules = safe_sum(_size(u.module_access) for u in users)
        stats = PermissionStats(
            total_users=total,
            users_with_permissions=with_permissions,
            users_with_module_access=with_modules,
            users_with_group_permissions=with_groups,
            total_permissions=total_permissions,
            total_module_access=total_modules,
            avg_permissions_per_user=round1(total_permissions / total),
            avg_module_access_per_user=round1(total_modules / total),
            permission_coverage=percentage(with_permissions, total),
            module_access_coverage=percentage(with_modules, total),
            group_permission_usage=percentage(with_groups, total),
        )

    return UserPermissionUtilizationReport(
        permission_distribution=permission_distribution,
        common_permissions=common_permissions,
        common_module_access=common_modules,
        permission_by_role=permission_by_role,
        group_permission_usage=group_usage,
        user_permission_profiles=profiles,
        permission_stats=stats,
    )

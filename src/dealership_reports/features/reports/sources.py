"""The model classes a report reads from.

Report services receive their collections through a ``ReportSources``
instance instead of importing models directly, so the router (or a test) decides
what each report queries.
"""
from dataclasses import dataclass

from ..auth.models import User
from ..company.models import Dealership, GroupPermission
from ..masters.models import DropdownMaster, TradeinConfig
from ..notifications.models import Notification, NotificationConfiguration
from ..vehicles.models import AdvertiseVehicle, Vehicle
from ..workshop.models import Conversation, Supplier, WorkshopQuote, WorkshopReport


@dataclass(frozen=True)
class ReportSources:
    users: type = User
    dealerships: type = Dealership
    group_permissions: type = GroupPermission
    suppliers: type = Supplier
    quotes: type = WorkshopQuote
    workshop_reports: type = WorkshopReport
    conversations: type = Conversation
    vehicles: type = Vehicle
    advertisements: type = AdvertiseVehicle
    notification_configurations: type = NotificationConfiguration
    notifications: type = Notification
    dropdowns: type = DropdownMaster
    tradein_configs: type = TradeinConfig


DEFAULT_SOURCES = ReportSources()


def get_report_sources() -> ReportSources:
    return DEFAULT_SOURCES

"""Notification rules configured by a company and the notifications they fired."""

from tortoise import fields

from ...common.models import CompanyScopedMixin


class NotificationConfiguration(CompanyScopedMixin):
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    is_active = fields.BooleanField(default=True)
    # E.g. "create", "update", "delete", "custom_event"
    trigger_type = fields.CharField(max_length=50, null=True)
    target_schema = fields.CharField(max_length=100, null=True)
    target_fields = fields.JSONField(default=list)
    # {"type": "all"|"specific_users"|"role"|"department", "user_ids": [...]}
    target_users = fields.JSONField(default=dict)
    # {"time_based": {"enabled": bool, ...}, "frequency_limit": {"enabled": bool, ...}}
    conditions = fields.JSONField(default=dict)
    custom_event_config = fields.JSONField(null=True)
    notification_channels = fields.JSONField(default=dict)
    priority = fields.CharField(max_length=20, default="medium")
    type = fields.CharField(max_length=20, default="info")
    created_by = fields.ForeignKeyField(
        "models.User",
        related_name="notification_configurations",
        on_delete=fields.SET_NULL,
        null=True,
    )

    def __str__(self):
        return self.name

    class Meta:
        table = "notification_configurations"


class Notification(CompanyScopedMixin):
    configuration = fields.ForeignKeyField(
        "models.NotificationConfiguration",
        related_name="notifications",
        on_delete=fields.CASCADE,
        null=True,
    )
    recipient = fields.ForeignKeyField(
        "models.User",
        related_name="notifications",
        on_delete=fields.SET_NULL,
        null=True,
    )
    # "pending", "sent", "delivered", "read", "failed"
    status = fields.CharField(max_length=20, default="pending", db_index=True)
    is_read = fields.BooleanField(default=False)
    read_at = fields.DatetimeField(null=True)
    # {"in_app": {"sent": bool, "sent_at": ISO-8601, "error": str|None}}
    channels = fields.JSONField(default=dict)
    priority = fields.CharField(max_length=20, default="medium")
    type = fields.CharField(max_length=20, default="info")

    class Meta:
        table = "notifications"

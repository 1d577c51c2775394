"""Company structure: dealerships and the permission groups users belong to."""

from tortoise import fields

from ...common.models import CompanyScopedMixin


class Dealership(CompanyScopedMixin):
    name = fields.CharField(max_length=255)
    is_active = fields.BooleanField(default=True)

    def __str__(self):
        return self.name

    class Meta:
        table = "dealerships"


class GroupPermission(CompanyScopedMixin):
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    permissions = fields.JSONField(default=list)

    users: fields.ReverseRelation["dealership_reports.features.auth.models.User"]

    def __str__(self):
        return self.name

    class Meta:
        table = "group_permissions"

from tortoise import fields

from ...common.models import CompanyScopedMixin


class User(CompanyScopedMixin):
    username = fields.CharField(max_length=100, unique=True, db_index=True)
    email = fields.CharField(max_length=255, unique=True, db_index=True)
    first_name = fields.CharField(max_length=100, default="")
    last_name = fields.CharField(max_length=100, default="")
    hashed_password = fields.CharField(max_length=255)
    # E.g. "company_super_admin", "company_admin"
    role = fields.CharField(max_length=50, default="company_admin")
    is_primary_admin = fields.BooleanField(default=False)
    is_active = fields.BooleanField(default=True)
    dealership_ids = fields.JSONField(default=list)
    permissions = fields.JSONField(default=list)
    module_access = fields.JSONField(default=list)
    group_permissions = fields.ForeignKeyField(
        "models.GroupPermission",
        related_name="users",
        on_delete=fields.SET_NULL,
        null=True,
    )
    last_login = fields.DatetimeField(null=True)
    is_first_login = fields.BooleanField(default=True)
    login_attempts = fields.IntField(default=0)
    account_locked_until = fields.DatetimeField(null=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return f"{self.username} ({self.role})"

    class Meta:
        table = "users"

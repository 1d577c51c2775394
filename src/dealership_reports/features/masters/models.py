"""Company master data: dropdown definitions and trade-in appraisal templates."""

from tortoise import fields

from ...common.models import CompanyScopedMixin


class DropdownMaster(CompanyScopedMixin):
    # Null dealership means the dropdown applies company wide
    dealership = fields.ForeignKeyField(
        "models.Dealership",
        related_name="dropdowns",
        on_delete=fields.SET_NULL,
        null=True,
    )
    dropdown_name = fields.CharField(max_length=100)
    display_name = fields.CharField(max_length=255, null=True)
    description = fields.TextField(null=True)
    is_active = fields.BooleanField(default=True)
    is_standard = fields.BooleanField(default=False)
    is_required = fields.BooleanField(default=False)
    allow_multiple_selection = fields.BooleanField(default=False)
    # {"min_length", "max_length", "pattern"}
    validation_rules = fields.JSONField(default=dict)
    # [{"option_value", "display_value", "display_order", "is_active", "is_default"}]
    values = fields.JSONField(default=list)
    created_by = fields.ForeignKeyField(
        "models.User",
        related_name="created_dropdowns",
        on_delete=fields.SET_NULL,
        null=True,
    )

    def __str__(self):
        return self.dropdown_name

    class Meta:
        table = "dropdown_masters"


class TradeinConfig(CompanyScopedMixin):
    dealership = fields.ForeignKeyField(
        "models.Dealership",
        related_name="tradein_configs",
        on_delete=fields.SET_NULL,
        null=True,
    )
    config_name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    version = fields.CharField(max_length=20, null=True)
    is_active = fields.BooleanField(default=True)
    is_default = fields.BooleanField(default=False)
    settings = fields.JSONField(default=dict)
    # Category -> sections -> fields, see the trade-in report services for the keys read
    categories = fields.JSONField(default=list)
    created_by = fields.ForeignKeyField(
        "models.User",
        related_name="created_tradein_configs",
        on_delete=fields.SET_NULL,
        null=True,
    )

    def __str__(self):
        return self.config_name

    class Meta:
        table = "tradein_configs"

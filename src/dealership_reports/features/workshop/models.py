"""Workshop entities: suppliers, the quotes they are approved for, the reports
they file when the job is done and the conversations held around each quote."""

from tortoise import fields

from ...common.models import CompanyScopedMixin


class Supplier(CompanyScopedMixin):
    name = fields.CharField(max_length=255)
    email = fields.CharField(max_length=255, null=True)
    supplier_shop_name = fields.CharField(max_length=255, null=True)
    tags = fields.JSONField(default=list)
    is_active = fields.BooleanField(default=True)

    def __str__(self):
        return self.name

    class Meta:
        table = "suppliers"


class WorkshopQuote(CompanyScopedMixin):
    dealership = fields.ForeignKeyField(
        "models.Dealership",
        related_name="quotes",
        on_delete=fields.SET_NULL,
        null=True,
    )
    vehicle_stock_id = fields.IntField(null=True)
    quote_type = fields.CharField(max_length=50, null=True)
    # E.g. "quote_request", "approved", "work_in_progress", "completed_jobs", "rejected"
    status = fields.CharField(max_length=50, default="quote_request", db_index=True)
    quote_amount = fields.FloatField(null=True)
    approved_supplier = fields.ForeignKeyField(
        "models.Supplier",
        related_name="approved_quotes",
        on_delete=fields.SET_NULL,
        null=True,
    )
    selected_suppliers = fields.JSONField(default=list)
    created_by = fields.ForeignKeyField(
        "models.User",
        related_name="created_quotes",
        on_delete=fields.SET_NULL,
        null=True,
    )

    class Meta:
        table = "workshop_quotes"


class WorkshopReport(CompanyScopedMixin):
    dealership = fields.ForeignKeyField(
        "models.Dealership",
        related_name="workshop_reports",
        on_delete=fields.SET_NULL,
        null=True,
    )
    quote = fields.ForeignKeyField(
        "models.WorkshopQuote",
        related_name="reports",
        on_delete=fields.CASCADE,
        null=True,
    )
    final_price = fields.FloatField(default=0.0)
    parts_cost = fields.FloatField(default=0.0)
    labour_cost = fields.FloatField(default=0.0)
    total_gst = fields.FloatField(default=0.0)
    visual_check_score = fields.FloatField(null=True)
    functional_check_score = fields.FloatField(null=True)
    road_test_score = fields.FloatField(null=True)
    safety_check_score = fields.FloatField(null=True)
    created_by = fields.ForeignKeyField(
        "models.User",
        related_name="created_workshop_reports",
        on_delete=fields.SET_NULL,
        null=True,
    )

    class Meta:
        table = "workshop_reports"


class Conversation(CompanyScopedMixin):
    quote = fields.ForeignKeyField(
        "models.WorkshopQuote",
        related_name="conversations",
        on_delete=fields.SET_NULL,
        null=True,
    )
    supplier = fields.ForeignKeyField(
        "models.Supplier",
        related_name="conversations",
        on_delete=fields.SET_NULL,
        null=True,
    )
    # [{"sender_type": "company"|"supplier", "sender_id", "message_type": "text"|"image"|"file",
    #   "content", "is_read", "created_at": ISO-8601}], oldest first
    messages = fields.JSONField(default=list)
    last_message_at = fields.DatetimeField(null=True)
    unread_count_company = fields.IntField(default=0)
    unread_count_supplier = fields.IntField(default=0)
    is_archived_company = fields.BooleanField(default=False)
    is_archived_supplier = fields.BooleanField(default=False)

    @property
    def is_archived(self) -> bool:
        return bool(self.is_archived_company or self.is_archived_supplier)

    class Meta:
        table = "conversations"

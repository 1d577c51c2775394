"""Vehicle stock: the shared vehicle register and the advertisement listings
pushed out to publishing channels."""

from tortoise import fields

from ...common.models import CompanyScopedMixin


class Vehicle(CompanyScopedMixin):
    dealership = fields.ForeignKeyField(
        "models.Dealership",
        related_name="vehicles",
        on_delete=fields.SET_NULL,
        null=True,
    )
    # E.g. "inspection", "tradein", "master", "advertisement"
    vehicle_type = fields.CharField(max_length=50, db_index=True)
    make = fields.CharField(max_length=100, null=True)
    model = fields.CharField(max_length=100, null=True)
    year = fields.IntField(null=True)
    created_by = fields.ForeignKeyField(
        "models.User",
        related_name="created_vehicles",
        on_delete=fields.SET_NULL,
        null=True,
    )

    class Meta:
        table = "vehicles"


class AdvertiseVehicle(CompanyScopedMixin):
    dealership = fields.ForeignKeyField(
        "models.Dealership",
        related_name="advertisements",
        on_delete=fields.SET_NULL,
        null=True,
    )
    vehicle_type = fields.CharField(max_length=50, default="advertisement", db_index=True)
    # "pending", "processing", "completed", "failed"
    status = fields.CharField(max_length=50, default="pending", db_index=True)
    queue_status = fields.CharField(max_length=50, null=True)
    processing_attempts = fields.IntField(default=0)
    last_processing_error = fields.TextField(null=True)
    make = fields.CharField(max_length=100, null=True)
    model = fields.CharField(max_length=100, null=True)
    year = fields.IntField(null=True)
    # [{"retail_price", "sold_price", "purchase_price", "gst_inclusive",
    #   "included_in_exports", "status"}]
    vehicle_other_details = fields.JSONField(default=list)
    # [{"type": "image"|"file", "image_category", "file_category", "size", "mime_type"}]
    vehicle_attachments = fields.JSONField(default=list)
    vehicle_hero_image = fields.CharField(max_length=500, null=True)

    class Meta:
        table = "advertise_vehicles"

"""Models module for the platform entities.

Holds the pieces every entity model shares: a TimestampMixin with created_at
and updated_at, a CompanyScopedMixin that adds the tenant column all report
queries filter on, and a helper for generating KSUIDs (K-Sortable Unique
IDentifiers) used as public ids."""

from tortoise import fields, models
from ksuid import ksuid


def generate_ksuid():
    """Generate a K-Sortable Unique IDentifier (KSUID).

    KSUIDs are time-ordered, URL-safe and sort chronologically, which makes
    them convenient public identifiers for records exposed in reports.

    Returns:
        str: A string representation of the generated KSUID.
    """
    return str(ksuid.Ksuid())


class TimestampMixin(models.Model):
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        abstract = True


class CompanyScopedMixin(TimestampMixin):
    id = fields.IntField(primary_key=True)
    public_id = fields.CharField(max_length=27, unique=True, default=generate_ksuid, db_index=True)
    company_id = fields.CharField(max_length=64, db_index=True)

    class Meta:
        abstract = True

"""
Core models for the FitNEase auth service.
Provides BaseModel with numeric primary keys and timestamp fields.
"""
from django.db import models


class BaseModel(models.Model):
    """
    Abstract base model with auto-increment primary key and timestamps.

    All models in the service inherit from this base model so every table
    exposes the same id/created_at/updated_at columns.
    """
    id = models.BigAutoField(
        primary_key=True,
        help_text="Unique numeric identifier"
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when the record was created"
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when the record was last updated"
    )

    class Meta:
        abstract = True
        ordering = ['-created_at']

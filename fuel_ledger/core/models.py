# fuel_ledger/core/models.py

"""
Shared model mixins.
"""

from sqlalchemy import Column, DateTime, Integer, func
from sqlalchemy.orm import declared_attr


class AuditMixin:
    """Mixin for auditing fields."""

    @declared_attr
    def created_by(cls):
        """
        Column for the user who created this record
        """
        return Column(
            Integer,
            nullable=True,
            comment="User who created this record",
        )

    @declared_attr
    def modified_by(cls):
        """
        Column for the user who last modified this record
        """
        return Column(
            Integer,
            nullable=True,
            comment="User who last modified this record",
        )

    @declared_attr
    def created_on(cls):
        """
        Column for the timestamp when this record was created
        """
        return Column(
            DateTime(timezone=True),
            server_default=func.now(),
            comment="Timestamp when this record was created",
        )

    @declared_attr
    def updated_on(cls):
        """
        Column for the timestamp when this record was last updated
        """
        return Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            comment="Timestamp when this record was last updated",
        )

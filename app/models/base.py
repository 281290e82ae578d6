"""Base models and mixins for database models"""

from sqlalchemy import Column, DateTime, String, Uuid
from sqlalchemy.orm import DeclarativeBase, declared_attr
from sqlalchemy.sql import func
from datetime import datetime, timezone
import uuid

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

# Create declarative base
class Base(DeclarativeBase):
    pass

class TimestampedModel:
    """Mixin for adding created_at and updated_at timestamps"""

    @declared_attr
    def created_at(cls):
        return Column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            server_default=func.now(),
            index=True
        )

    @declared_attr
    def updated_at(cls):
        return Column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            server_default=func.now(),
            onupdate=utcnow
        )

class UUIDModel:
    """Mixin for adding UUID primary key"""

    @declared_attr
    def id(cls):
        return Column(
            Uuid(as_uuid=True),
            primary_key=True,
            default=uuid.uuid4,
            nullable=False
        )

class ShopScopedModel:
    """Mixin for rows owned by a single shop"""

    @declared_attr
    def shop(cls):
        return Column(
            String(255),
            nullable=False,
            index=True
        )

class StatusModel:
    """Mixin for status tracking"""

    @declared_attr
    def status(cls):
        return Column(
            String(50),
            nullable=False,
            default='active',
            index=True
        )

    @declared_attr
    def status_changed_at(cls):
        return Column(
            DateTime(timezone=True),
            nullable=True
        )

    def change_status(self, new_status: str):
        """Change status and track time"""
        self.status = new_status
        self.status_changed_at = utcnow()

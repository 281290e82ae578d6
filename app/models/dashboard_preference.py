"""Dashboard preference model"""

from sqlalchemy import Column, String, JSON

from app.models.base import Base, TimestampedModel, UUIDModel

class DashboardPreference(Base, UUIDModel, TimestampedModel):
    """Per-shop metric card visibility"""

    __tablename__ = "dashboard_preferences"

    shop = Column(String(255), nullable=False, unique=True, index=True)
    visibility = Column(JSON, nullable=False, default=dict)

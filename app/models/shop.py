"""Shop session model"""

from sqlalchemy import Column, String, Text

from app.models.base import Base, TimestampedModel

class ShopSession(Base, TimestampedModel):
    """
    Offline Admin API access token for an installed shop

    Rows are written by the install/OAuth flow, this service only reads them.
    """

    __tablename__ = "shop_sessions"

    shop = Column(String(255), primary_key=True)
    access_token = Column(Text, nullable=False)
    scope = Column(Text)

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, JSON, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from app.db.database import Base


class Creator(Base):
    __tablename__ = "creators"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    niche = Column(String, nullable=False, index=True)
    bio = Column(Text)

    total_followers = Column(Integer, default=0, nullable=False)
    avg_engagement_rate = Column(Float, default=0.0, nullable=False)  # percent
    completed_campaigns = Column(Integer, default=0, nullable=False)
    rating = Column(Float, default=0.0, nullable=False)  # 0-5

    rates = Column(JSON)  # {"post": 250, "story": 100, "reel": 400}
    social_accounts = Column(JSON, default=list)  # [{"platform", "followers", "verified"}]
    portfolio = Column(JSON, default=list)  # [{"platform", "engagement", "reach"}]
    is_verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    applications = relationship("CampaignApplication", back_populates="creator")

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Text, JSON, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from app.db.database import Base


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")

    # {"niche", "min_followers", "max_followers", "min_engagement", "platforms"}
    requirements = Column(JSON)
    budget = Column(JSON)  # {"min": 500, "max": 1000}
    platforms = Column(JSON)
    deadline = Column(DateTime)
    status = Column(String, default="draft", nullable=False, index=True)
    applications_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    applications = relationship(
        "CampaignApplication", back_populates="campaign", cascade="all, delete-orphan"
    )


class CampaignApplication(Base):
    __tablename__ = "campaign_applications"
    __table_args__ = (UniqueConstraint("campaign_id", "creator_id"),)

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False)
    creator_id = Column(Integer, ForeignKey("creators.id"), nullable=False)
    proposal_text = Column(Text, default="")
    proposed_rate = Column(Float)
    status = Column(String, default="pending", nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    campaign = relationship("Campaign", back_populates="applications")
    creator = relationship("Creator", back_populates="applications")

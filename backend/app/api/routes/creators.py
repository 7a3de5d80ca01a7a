import logging

from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel, Field
from typing import Optional

from app.db.database import get_db
from app.models import Campaign, Creator
from app.services.matching import (
    CampaignProfile,
    CreatorProfile,
    CreatorRates,
    MatchingService,
    PortfolioItem,
    SocialAccount,
)
from app.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/creators", tags=["creators"])

settings = get_settings()
matching = MatchingService()


class CreatorCreate(BaseModel):
    name: str
    niche: str
    bio: str = ""
    total_followers: int = Field(0, ge=0)
    avg_engagement_rate: float = Field(0.0, ge=0)
    completed_campaigns: int = Field(0, ge=0)
    rating: float = Field(0.0, ge=0, le=5)
    rates: Optional[CreatorRates] = None
    social_accounts: list[SocialAccount] = []
    portfolio: list[PortfolioItem] = []
    is_verified: bool = False


class CreatorUpdate(BaseModel):
    name: Optional[str] = None
    niche: Optional[str] = None
    bio: Optional[str] = None
    total_followers: Optional[int] = Field(None, ge=0)
    avg_engagement_rate: Optional[float] = Field(None, ge=0)
    completed_campaigns: Optional[int] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)
    rates: Optional[CreatorRates] = None
    social_accounts: Optional[list[SocialAccount]] = None
    portfolio: Optional[list[PortfolioItem]] = None
    is_verified: Optional[bool] = None


def _creator_to_dict(creator: Creator) -> dict:
    return {
        "id": creator.id,
        "name": creator.name,
        "niche": creator.niche,
        "bio": creator.bio,
        "total_followers": creator.total_followers,
        "avg_engagement_rate": creator.avg_engagement_rate,
        "completed_campaigns": creator.completed_campaigns,
        "rating": creator.rating,
        "rates": creator.rates,
        "social_accounts": creator.social_accounts or [],
        "portfolio": creator.portfolio or [],
        "is_verified": creator.is_verified,
        "created_at": creator.created_at,
        "updated_at": creator.updated_at,
    }


def _reject_null_columns(model, updates: dict):
    required = [
        key for key, val in updates.items()
        if val is None and not model.__table__.columns[key].nullable
    ]
    if required:
        raise HTTPException(status_code=400, detail=f"Fields cannot be null: {', '.join(required)}")


async def _get_creator_or_404(db: AsyncSession, creator_id: int) -> Creator:
    result = await db.execute(select(Creator).where(Creator.id == creator_id))
    creator = result.scalar_one_or_none()
    if not creator:
        raise HTTPException(status_code=404, detail="Creator not found")
    return creator


@router.post("")
async def create_creator(body: CreatorCreate, db: AsyncSession = Depends(get_db)):
    data = body.model_dump()
    if body.rates is not None:
        data["rates"] = body.rates.model_dump(exclude_none=True)
    creator = Creator(**data)
    db.add(creator)
    await db.commit()
    await db.refresh(creator)
    logger.info("Created creator %s (%s)", creator.id, creator.niche)
    return _creator_to_dict(creator)


@router.get("")
async def search_creators(
    niche: Optional[str] = Query(None, description="Niche/category filter"),
    min_followers: Optional[int] = Query(None, ge=0, description="Minimum follower count"),
    max_followers: Optional[int] = Query(None, ge=0, description="Maximum follower count"),
    min_engagement: Optional[float] = Query(None, ge=0, description="Minimum engagement rate"),
    db: AsyncSession = Depends(get_db),
):
    query = select(Creator)

    if niche:
        query = query.where(Creator.niche == niche)
    if min_followers:
        query = query.where(Creator.total_followers >= min_followers)
    if max_followers:
        query = query.where(Creator.total_followers <= max_followers)
    if min_engagement:
        query = query.where(Creator.avg_engagement_rate >= min_engagement)

    result = await db.execute(query.order_by(Creator.rating.desc(), Creator.id))
    creators = result.scalars().all()
    return {"creators": [_creator_to_dict(c) for c in creators], "total": len(creators)}


@router.get("/{creator_id}")
async def get_creator(creator_id: int, db: AsyncSession = Depends(get_db)):
    creator = await _get_creator_or_404(db, creator_id)
    return _creator_to_dict(creator)


@router.put("/{creator_id}")
async def update_creator(
    creator_id: int,
    body: CreatorUpdate,
    db: AsyncSession = Depends(get_db),
):
    creator = await _get_creator_or_404(db, creator_id)

    updates = body.model_dump(exclude_unset=True)
    _reject_null_columns(Creator, updates)
    for key, val in updates.items():
        if key == "rates" and val is not None:
            val = {k: v for k, v in val.items() if v is not None}
        setattr(creator, key, val)
    await db.commit()
    await db.refresh(creator)
    return _creator_to_dict(creator)


@router.get("/{creator_id}/matches")
async def match_campaigns_for_creator(
    creator_id: int,
    limit: Optional[int] = Query(None, ge=1, le=settings.match_max_limit),
    db: AsyncSession = Depends(get_db),
):
    """Rank active campaigns for a creator, best fit first."""
    creator = await _get_creator_or_404(db, creator_id)

    result = await db.execute(select(Campaign).where(Campaign.status == "active"))
    campaigns = [CampaignProfile.model_validate(c) for c in result.scalars().all()]

    matches = matching.find_matching_campaigns(
        CreatorProfile.model_validate(creator),
        campaigns,
        limit=limit or settings.match_default_limit,
    )
    return {
        "creator_id": creator.id,
        "matches": [
            {**m.model_dump(), "explanation": matching.generate_match_explanation(m)}
            for m in matches
        ],
        "total": len(matches),
    }

import csv
import io
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from pydantic import BaseModel, Field
from typing import Literal, Optional

from app.db.database import get_db
from app.models import Campaign, CampaignApplication, Creator
from app.services.matching import (
    BudgetRange,
    CampaignProfile,
    CampaignRequirements,
    CreatorProfile,
    MatchingService,
)
from app.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/campaigns", tags=["campaigns"])

settings = get_settings()
matching = MatchingService()

CampaignStatus = Literal["draft", "active", "paused", "completed", "cancelled"]
CampaignStatusFilter = Literal["draft", "active", "paused", "completed", "cancelled", "all"]


class CampaignCreate(BaseModel):
    title: str
    description: str = ""
    requirements: Optional[CampaignRequirements] = None
    budget: Optional[BudgetRange] = None
    platforms: Optional[list[str]] = None
    deadline: Optional[datetime] = None
    status: CampaignStatus = "draft"


class CampaignUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[CampaignRequirements] = None
    budget: Optional[BudgetRange] = None
    platforms: Optional[list[str]] = None
    deadline: Optional[datetime] = None
    status: Optional[CampaignStatus] = None


class ApplicationCreate(BaseModel):
    creator_id: int
    proposal_text: str = ""
    proposed_rate: Optional[float] = Field(None, ge=0)


def _campaign_to_dict(campaign: Campaign) -> dict:
    return {
        "id": campaign.id,
        "title": campaign.title,
        "description": campaign.description,
        "requirements": campaign.requirements,
        "budget": campaign.budget,
        "platforms": campaign.platforms,
        "deadline": campaign.deadline,
        "status": campaign.status,
        "applications_count": campaign.applications_count,
        "created_at": campaign.created_at,
        "updated_at": campaign.updated_at,
    }


def _match_to_dict(match) -> dict:
    return {**match.model_dump(), "explanation": matching.generate_match_explanation(match)}


def _reject_null_columns(model, updates: dict):
    required = [
        key for key, val in updates.items()
        if val is None and not model.__table__.columns[key].nullable
    ]
    if required:
        raise HTTPException(status_code=400, detail=f"Fields cannot be null: {', '.join(required)}")


async def _get_campaign_or_404(db: AsyncSession, campaign_id: int) -> Campaign:
    result = await db.execute(select(Campaign).where(Campaign.id == campaign_id))
    campaign = result.scalar_one_or_none()
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return campaign


async def _get_creator_or_404(db: AsyncSession, creator_id: int) -> Creator:
    result = await db.execute(select(Creator).where(Creator.id == creator_id))
    creator = result.scalar_one_or_none()
    if not creator:
        raise HTTPException(status_code=404, detail="Creator not found")
    return creator


async def _rank_creators(db: AsyncSession, campaign: Campaign, limit: int):
    result = await db.execute(select(Creator))
    creators = [CreatorProfile.model_validate(c) for c in result.scalars().all()]
    return matching.find_matching_creators(
        CampaignProfile.model_validate(campaign), creators, limit=limit
    )


@router.post("")
async def create_campaign(body: CampaignCreate, db: AsyncSession = Depends(get_db)):
    campaign = Campaign(
        title=body.title,
        description=body.description,
        requirements=body.requirements.model_dump(exclude_none=True) if body.requirements else None,
        budget=body.budget.model_dump() if body.budget else None,
        platforms=body.platforms,
        deadline=body.deadline,
        status=body.status,
    )
    db.add(campaign)
    await db.commit()
    await db.refresh(campaign)
    logger.info("Created campaign %s (%s)", campaign.id, campaign.status)
    return _campaign_to_dict(campaign)


@router.get("")
async def list_campaigns(
    status: CampaignStatusFilter = Query("active", description="Lifecycle status filter, or \"all\""),
    search: Optional[str] = Query(None, description="Substring of title or description"),
    db: AsyncSession = Depends(get_db),
):
    query = select(Campaign)
    if status != "all":
        query = query.where(Campaign.status == status)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Campaign.title.ilike(pattern), Campaign.description.ilike(pattern)))

    result = await db.execute(query.order_by(Campaign.created_at.desc(), Campaign.id.desc()))
    campaigns = result.scalars().all()
    return [_campaign_to_dict(c) for c in campaigns]


@router.get("/{campaign_id}")
async def get_campaign(campaign_id: int, db: AsyncSession = Depends(get_db)):
    campaign = await _get_campaign_or_404(db, campaign_id)
    return _campaign_to_dict(campaign)


@router.put("/{campaign_id}")
async def update_campaign(
    campaign_id: int,
    body: CampaignUpdate,
    db: AsyncSession = Depends(get_db),
):
    campaign = await _get_campaign_or_404(db, campaign_id)

    updates = body.model_dump(exclude_unset=True)
    _reject_null_columns(Campaign, updates)
    if updates.get("requirements") is not None:
        updates["requirements"] = body.requirements.model_dump(exclude_none=True)
    for key, val in updates.items():
        setattr(campaign, key, val)
    await db.commit()
    await db.refresh(campaign)
    return _campaign_to_dict(campaign)


@router.delete("/{campaign_id}")
async def delete_campaign(campaign_id: int, db: AsyncSession = Depends(get_db)):
    campaign = await _get_campaign_or_404(db, campaign_id)
    await db.delete(campaign)
    await db.commit()
    return {"status": "deleted"}


@router.get("/{campaign_id}/matches")
async def match_creators_for_campaign(
    campaign_id: int,
    limit: Optional[int] = Query(None, ge=1, le=settings.match_max_limit),
    db: AsyncSession = Depends(get_db),
):
    """Rank eligible creators for a campaign, best fit first."""
    campaign = await _get_campaign_or_404(db, campaign_id)
    matches = await _rank_creators(db, campaign, limit or settings.match_default_limit)
    return {
        "campaign_id": campaign.id,
        "matches": [_match_to_dict(m) for m in matches],
        "total": len(matches),
    }


@router.get("/{campaign_id}/matches/export")
async def export_matches(
    campaign_id: int,
    limit: Optional[int] = Query(None, ge=1, le=settings.match_max_limit),
    db: AsyncSession = Depends(get_db),
):
    campaign = await _get_campaign_or_404(db, campaign_id)
    matches = await _rank_creators(db, campaign, limit or settings.match_default_limit)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([
        "Creator ID", "Score", "Confidence", "Niche Match", "Follower Match",
        "Engagement Match", "Platform Match", "Budget Match",
        "Experience Match", "Quality Match",
    ])

    for m in matches:
        b = m.breakdown
        writer.writerow([
            m.creator_id, m.score, m.confidence, b.niche_match, b.follower_match,
            b.engagement_match, b.platform_match, b.budget_match,
            b.experience_match, b.quality_match,
        ])

    output.seek(0)
    filename = f"campaign_{campaign.id}_matches.csv"
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/{campaign_id}/matches/{creator_id}")
async def get_match(campaign_id: int, creator_id: int, db: AsyncSession = Depends(get_db)):
    """Score a single creator against a campaign, ignoring the eligibility gate."""
    campaign = CampaignProfile.model_validate(await _get_campaign_or_404(db, campaign_id))
    creator = CreatorProfile.model_validate(await _get_creator_or_404(db, creator_id))

    match = matching.calculate_match(creator, campaign)
    return {
        **_match_to_dict(match),
        "eligible": matching.meets_basic_requirements(creator, campaign),
    }


@router.post("/{campaign_id}/applications")
async def apply_to_campaign(
    campaign_id: int,
    body: ApplicationCreate,
    db: AsyncSession = Depends(get_db),
):
    campaign = await _get_campaign_or_404(db, campaign_id)
    await _get_creator_or_404(db, body.creator_id)

    if campaign.status != "active":
        logger.warning(
            "Creator %s applied to campaign %s in status %s",
            body.creator_id, campaign_id, campaign.status,
        )
        raise HTTPException(status_code=400, detail="Campaign is not accepting applications")

    result = await db.execute(
        select(CampaignApplication).where(
            CampaignApplication.campaign_id == campaign_id,
            CampaignApplication.creator_id == body.creator_id,
        )
    )
    if result.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Creator already applied")

    application = CampaignApplication(
        campaign_id=campaign_id,
        creator_id=body.creator_id,
        proposal_text=body.proposal_text,
        proposed_rate=body.proposed_rate,
    )
    db.add(application)
    campaign.applications_count = (campaign.applications_count or 0) + 1
    await db.commit()
    await db.refresh(application)
    return {
        "id": application.id,
        "campaign_id": application.campaign_id,
        "creator_id": application.creator_id,
        "status": application.status,
        "created_at": application.created_at,
    }


@router.get("/{campaign_id}/applications")
async def list_applications(campaign_id: int, db: AsyncSession = Depends(get_db)):
    """Applications for a campaign, each annotated with the applicant's match score."""
    campaign = await _get_campaign_or_404(db, campaign_id)
    profile = CampaignProfile.model_validate(campaign)

    result = await db.execute(
        select(CampaignApplication, Creator)
        .join(Creator, CampaignApplication.creator_id == Creator.id)
        .where(CampaignApplication.campaign_id == campaign_id)
        .order_by(CampaignApplication.created_at, CampaignApplication.id)
    )

    applications = []
    for application, creator in result.all():
        match = matching.calculate_match(CreatorProfile.model_validate(creator), profile)
        applications.append({
            "id": application.id,
            "creator_id": creator.id,
            "creator_name": creator.name,
            "proposal_text": application.proposal_text,
            "proposed_rate": application.proposed_rate,
            "status": application.status,
            "created_at": application.created_at,
            "match_score": match.score,
            "confidence": match.confidence,
        })
    return applications

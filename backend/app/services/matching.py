from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


# Niches considered loosely compatible. Checked in both directions.
RELATED_NICHES = MappingProxyType({
    "lifestyle": frozenset({"wellness", "fashion", "travel", "food"}),
    "beauty": frozenset({"fashion", "wellness", "lifestyle"}),
    "fitness": frozenset({"wellness", "lifestyle", "health"}),
    "tech": frozenset({"gaming", "productivity", "gadgets"}),
    "travel": frozenset({"lifestyle", "adventure", "culture"}),
    "food": frozenset({"lifestyle", "health", "culture"}),
    "fashion": frozenset({"beauty", "lifestyle", "luxury"}),
    "wellness": frozenset({"fitness", "health", "lifestyle"}),
})

MATCH_WEIGHTS = MappingProxyType({
    "niche_match": 0.25,
    "follower_match": 0.20,
    "engagement_match": 0.15,
    "platform_match": 0.15,
    "budget_match": 0.10,
    "experience_match": 0.10,
    "quality_match": 0.05,
})


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class SocialAccount(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    platform: str
    followers: int = 0
    verified: bool = False


class PortfolioItem(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    platform: str = ""
    engagement: float = 0
    reach: float = 0


class CreatorRates(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    post: Optional[float] = Field(None, ge=0)
    story: Optional[float] = Field(None, ge=0)
    reel: Optional[float] = Field(None, ge=0)


class CreatorProfile(BaseModel):
    """Read-only snapshot of a creator as the matcher sees it."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    niche: str = ""
    total_followers: int = 0
    avg_engagement_rate: float = 0.0  # percent, 5.4 means 5.4%
    completed_campaigns: int = 0
    rating: float = 0.0
    rates: Optional[CreatorRates] = None
    social_accounts: list[SocialAccount] = []
    portfolio: list[PortfolioItem] = []
    is_verified: bool = False

    @field_validator("social_accounts", "portfolio", mode="before")
    @classmethod
    def _list_default(cls, v):
        return [] if v is None else v

    @field_validator("niche", mode="before")
    @classmethod
    def _niche_default(cls, v):
        return v or ""

    @field_validator("total_followers", "completed_campaigns", "avg_engagement_rate", "rating", mode="before")
    @classmethod
    def _numeric_default(cls, v):
        return 0 if v is None else v


class CampaignRequirements(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    niche: Optional[str] = None
    min_followers: Optional[int] = None
    max_followers: Optional[int] = None
    min_engagement: Optional[float] = None
    platforms: Optional[list[str]] = None


class BudgetRange(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    min: float = Field(0, ge=0)
    max: Optional[float] = Field(None, ge=0)  # None means no ceiling


class CampaignProfile(BaseModel):
    """Read-only snapshot of a campaign as the matcher sees it."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    requirements: Optional[CampaignRequirements] = None
    budget: Optional[BudgetRange] = None
    platforms: Optional[list[str]] = None
    status: str = "draft"


class MatchBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    niche_match: float
    follower_match: float
    engagement_match: float
    platform_match: float
    budget_match: float
    experience_match: float
    quality_match: float


class MatchScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    creator_id: int
    campaign_id: int
    score: float
    breakdown: MatchBreakdown
    confidence: str  # high / medium / low


class MatchingService:
    """Scores and ranks creator/campaign pairs.

    Stateless: every method is a pure function of its arguments, so one
    instance can be shared across requests.
    """

    def calculate_niche_match(self, creator: CreatorProfile, campaign: CampaignProfile) -> float:
        req = campaign.requirements
        if not req or not req.niche:
            return 0.8

        creator_niche = creator.niche.lower()
        required_niche = req.niche.lower()

        if creator_niche == required_niche:
            return 1.0

        related = (
            required_niche in RELATED_NICHES.get(creator_niche, ())
            or creator_niche in RELATED_NICHES.get(required_niche, ())
        )
        return 0.7 if related else 0.3

    def calculate_follower_match(self, creator: CreatorProfile, campaign: CampaignProfile) -> float:
        req = campaign.requirements
        if not req or (not req.min_followers and not req.max_followers):
            return 1.0

        followers = creator.total_followers
        min_followers = req.min_followers or 0
        max_followers = req.max_followers or None

        if followers >= min_followers and (max_followers is None or followers <= max_followers):
            return 1.0

        # Relative distance outside the accepted range
        if followers < min_followers:
            distance = (min_followers - followers) / min_followers
        else:
            distance = (followers - max_followers) / max_followers

        return _clamp(1 - distance)

    def calculate_engagement_match(self, creator: CreatorProfile, campaign: CampaignProfile) -> float:
        req = campaign.requirements
        engagement = creator.avg_engagement_rate

        if not req or not req.min_engagement:
            if engagement >= 5.0:
                return 1.0
            if engagement >= 3.0:
                return 0.8
            if engagement >= 1.0:
                return 0.6
            return 0.4

        if engagement >= req.min_engagement:
            bonus = min((engagement - req.min_engagement) * 0.1, 0.3)
            return min(1.0, 0.7 + bonus)

        return _clamp(engagement / req.min_engagement)

    def calculate_platform_match(self, creator: CreatorProfile, campaign: CampaignProfile) -> float:
        required = campaign.platforms or (campaign.requirements.platforms if campaign.requirements else None)
        if not required:
            return 1.0

        if not creator.social_accounts:
            return 0.2

        required_platforms = {p.lower() for p in required}
        creator_platforms = {acc.platform.lower() for acc in creator.social_accounts}

        base_score = len(required_platforms & creator_platforms) / len(required_platforms)

        verification_bonus = sum(
            0.1
            for acc in creator.social_accounts
            if acc.verified and acc.platform.lower() in required_platforms
        )
        return _clamp(base_score + verification_bonus)

    def calculate_budget_match(self, creator: CreatorProfile, campaign: CampaignProfile) -> float:
        if not campaign.budget or not creator.rates:
            return 0.8

        budget_min = campaign.budget.min
        budget_max = campaign.budget.max

        # Post rate is the most representative; fall through on missing/zero
        rates = creator.rates
        rate = rates.post or rates.reel or rates.story or 0

        if rate == 0:
            return 0.5

        if budget_min <= rate and (budget_max is None or rate <= budget_max):
            return 1.0

        if rate < budget_min:
            # Cheaper than the floor, good for the brand
            if budget_min <= 0:
                return 1.0
            return _clamp(0.8 + (budget_min - rate) / budget_min * 0.2)

        if budget_max <= 0:
            return 0.0
        overage = (rate - budget_max) / budget_max
        return _clamp(1 - overage)

    def calculate_experience_match(self, creator: CreatorProfile, campaign: CampaignProfile) -> float:
        campaigns = creator.completed_campaigns

        if campaigns >= 20:
            experience_score = 1.0
        elif campaigns >= 10:
            experience_score = 0.8
        elif campaigns >= 5:
            experience_score = 0.6
        elif campaigns >= 1:
            experience_score = 0.4
        else:
            experience_score = 0.2

        rating_score = _clamp(creator.rating / 5.0)
        return _clamp(experience_score * 0.6 + rating_score * 0.4)

    def calculate_quality_match(self, creator: CreatorProfile, campaign: CampaignProfile) -> float:
        quality_score = 0.5

        if creator.is_verified:
            quality_score += 0.2

        if creator.portfolio:
            # Items without reach count as zero engagement
            ratios = [
                item.engagement / item.reach if item.reach > 0 else 0.0
                for item in creator.portfolio
            ]
            avg_ratio = sum(ratios) / len(ratios)
            if avg_ratio > 0.05:
                quality_score += 0.2
            elif avg_ratio > 0.03:
                quality_score += 0.1

        verified_accounts = sum(1 for acc in creator.social_accounts if acc.verified)
        quality_score += min(0.2, verified_accounts * 0.1)

        return _clamp(quality_score)

    def calculate_match(self, creator: CreatorProfile, campaign: CampaignProfile) -> MatchScore:
        breakdown = MatchBreakdown(
            niche_match=self.calculate_niche_match(creator, campaign),
            follower_match=self.calculate_follower_match(creator, campaign),
            engagement_match=self.calculate_engagement_match(creator, campaign),
            platform_match=self.calculate_platform_match(creator, campaign),
            budget_match=self.calculate_budget_match(creator, campaign),
            experience_match=self.calculate_experience_match(creator, campaign),
            quality_match=self.calculate_quality_match(creator, campaign),
        )

        values = breakdown.model_dump()
        score = _clamp(sum(values[key] * weight for key, weight in MATCH_WEIGHTS.items()))

        return MatchScore(
            creator_id=creator.id,
            campaign_id=campaign.id,
            score=round(score, 2),
            breakdown=breakdown,
            confidence=self.determine_confidence(score, breakdown),
        )

    @staticmethod
    def determine_confidence(score: float, breakdown: MatchBreakdown) -> str:
        """Classify a match as 'high', 'medium' or 'low'.

        High requires a strong overall score AND strong niche and follower
        fit; a high score alone only earns 'medium'.
        """
        if score >= 0.8 and breakdown.niche_match >= 0.8 and breakdown.follower_match >= 0.7:
            return "high"
        if score >= 0.6:
            return "medium"
        return "low"

    @staticmethod
    def meets_basic_requirements(creator: CreatorProfile, campaign: CampaignProfile) -> bool:
        """Hard eligibility gate applied before any scoring."""
        req = campaign.requirements
        if not req:
            return True

        if req.min_followers and creator.total_followers < req.min_followers:
            return False
        if req.max_followers and creator.total_followers > req.max_followers:
            return False
        if req.min_engagement and creator.avg_engagement_rate < req.min_engagement:
            return False

        if req.platforms:
            required = {p.lower() for p in req.platforms}
            if not any(acc.platform.lower() in required for acc in creator.social_accounts):
                return False

        return True

    def find_matching_creators(
        self,
        campaign: CampaignProfile,
        creators: Sequence[CreatorProfile],
        limit: int = 10,
    ) -> list[MatchScore]:
        eligible = [c for c in creators if self.meets_basic_requirements(c, campaign)]
        logger.debug(
            "Campaign %s: %d of %d creators passed eligibility",
            campaign.id, len(eligible), len(creators),
        )
        if limit <= 0:
            return []

        scored = [(c, self.calculate_match(c, campaign)) for c in eligible]
        # Ties: higher rating first, then lower id
        scored.sort(key=lambda pair: (-pair[1].score, -pair[0].rating, pair[0].id))
        return [match for _, match in scored[:limit]]

    def find_matching_campaigns(
        self,
        creator: CreatorProfile,
        campaigns: Sequence[CampaignProfile],
        limit: int = 10,
    ) -> list[MatchScore]:
        active = [c for c in campaigns if c.status == "active"]
        eligible = [c for c in active if self.meets_basic_requirements(creator, c)]
        logger.debug(
            "Creator %s: %d of %d active campaigns passed eligibility",
            creator.id, len(eligible), len(active),
        )
        if limit <= 0:
            return []

        matches = [self.calculate_match(creator, c) for c in eligible]
        matches.sort(key=lambda m: (-m.score, m.campaign_id))
        return matches[:limit]

    @staticmethod
    def generate_match_explanation(match: MatchScore) -> list[str]:
        """Human-readable reasons for a match, overall verdict first."""
        b = match.breakdown
        explanations = []

        if match.score >= 0.8:
            explanations.append("Excellent match - highly recommended")
        elif match.score >= 0.6:
            explanations.append("Good match - worth considering")
        else:
            explanations.append("Moderate match - review carefully")

        if b.niche_match >= 0.8:
            explanations.append("Perfect niche alignment")
        elif b.niche_match >= 0.6:
            explanations.append("Good niche compatibility")
        elif b.niche_match < 0.5:
            explanations.append("Limited niche alignment")

        if b.follower_match >= 0.9:
            explanations.append("Follower count perfectly matches requirements")
        elif b.follower_match >= 0.7:
            explanations.append("Good follower count match")

        if b.engagement_match >= 0.8:
            explanations.append("Excellent engagement rate")
        elif b.engagement_match < 0.5:
            explanations.append("Engagement rate below expectations")

        if b.platform_match >= 0.9:
            explanations.append("All required platforms available")
        elif b.platform_match < 0.7:
            explanations.append("Some required platforms missing")

        if b.experience_match >= 0.8:
            explanations.append("Highly experienced creator")
        elif b.experience_match < 0.4:
            explanations.append("New creator with limited campaign history")

        return explanations

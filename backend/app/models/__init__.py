from app.models.creator import Creator
from app.models.campaign import Campaign, CampaignApplication

__all__ = ["Creator", "Campaign", "CampaignApplication"]

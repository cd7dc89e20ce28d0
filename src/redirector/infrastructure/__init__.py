# Infrastructure components
from .schemas import AnalyticParam, AnalyticsEvent, Campaign, EventType, Page
from .campaign_store import CampaignStore, create_campaign_store

__all__ = [
    "AnalyticParam",
    "AnalyticsEvent",
    "Campaign",
    "EventType",
    "Page",
    "CampaignStore",
    "create_campaign_store",
]

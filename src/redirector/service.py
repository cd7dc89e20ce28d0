"""
Redirect service.

Composes the campaign store and the dispatch engine for one request:
load → dispatch → save → enqueue "hit" → redirect URL.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

import structlog

from .dispatch import build_redirect_url, dispatch
from .errors import CampaignNotFound, NoEligiblePage
from .infrastructure.campaign_store import CampaignStore
from .infrastructure.schemas import AnalyticsEvent, Campaign, EventType, Page

logger = structlog.get_logger()


@dataclass
class DispatchResult:
    """A completed dispatch, ready to be redirected to."""
    page: Page
    campaign: Campaign
    url: str
    event_queued: bool
    cycle_reset: bool = False


def first_values(items: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """Keep the first value of each parameter name, in arrival order."""
    seen: dict[str, str] = {}
    for name, value in items:
        seen.setdefault(name, value)
    return list(seen.items())


class RedirectService:
    """
    Serves campaign redirects and records view callbacks.

    Usage:
        service = RedirectService(store)
        result = await service.redirect("spring-sale", request.query_params.multi_items())
    """

    def __init__(self, store: CampaignStore, timezone: str = "Europe/Paris"):
        self.store = store
        self.timezone = timezone

    async def redirect(
        self,
        key: str,
        query: Iterable[tuple[str, str]] = (),
    ) -> DispatchResult:
        """
        Dispatch one request for a campaign.

        Args:
            key: Campaign lookup key
            query: (name, value) pairs of the inbound query string

        Returns:
            DispatchResult carrying the redirect URL

        Raises:
            CampaignNotFound: The key is not in the store
            NoEligiblePage: No page has quota left, even after a reset attempt
            PersistenceFailure: The updated campaign could not be saved
        """
        query = list(query)

        campaign = await self.store.load(key)
        if campaign is None:
            raise CampaignNotFound(key)

        outcome = dispatch(campaign)

        # Saved even without a destination: the reset attempt counts a cycle.
        await self.store.save(outcome.campaign)

        if not outcome.has_destination:
            logger.warning(
                "redirect.no_eligible_page",
                key=key,
                pages=len(campaign.pages),
                total_cycle_hits=campaign.total_cycle_hits,
            )
            raise NoEligiblePage(key)

        if outcome.cycle_reset:
            logger.info(
                "redirect.cycle_reset",
                key=key,
                cycles_done=outcome.campaign.cycles_done,
            )

        event = AnalyticsEvent.create(
            page_id=outcome.page.id,
            event_type=EventType.HIT,
            params=first_values(query),
            timezone=self.timezone,
        )
        event_queued = await self.store.enqueue_analytics(event)

        return DispatchResult(
            page=outcome.page,
            campaign=outcome.campaign,
            url=build_redirect_url(outcome.page, query),
            event_queued=event_queued,
            cycle_reset=outcome.cycle_reset,
        )

    async def record_view(
        self,
        raw_page_id: Optional[str],
        params: Iterable[tuple[str, str]] = (),
    ) -> Optional[AnalyticsEvent]:
        """
        Record a client-side "view" confirmation.

        Campaign state is not touched. A missing, empty or non-numeric page
        id produces no event.

        Args:
            raw_page_id: The ``intoid`` value posted by the tracker
            params: (name, value) pairs of the posted form

        Returns:
            The queued event, or None when nothing was recorded
        """
        if not raw_page_id:
            return None

        try:
            page_id = int(raw_page_id)
        except ValueError:
            logger.warning("view.invalid_page_id", intoid=raw_page_id)
            return None

        event = AnalyticsEvent.create(
            page_id=page_id,
            event_type=EventType.VIEW,
            params=first_values(params),
            timezone=self.timezone,
        )
        if not await self.store.enqueue_analytics(event):
            return None
        return event

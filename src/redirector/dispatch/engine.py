"""
Page dispatch engine.

Pure computation over an immutable campaign snapshot. Each step returns a
new campaign copy; nothing here touches the store.

Selection rules:
- A page is eligible while ``cycle_hits_done < cycle_hits_todo``.
- The LAST eligible page in campaign order wins.
- When no page is eligible the cycle is reset once, and only if the
  campaign's total hits reached ``CYCLE_RESET_THRESHOLD``.
"""

from dataclasses import dataclass
from typing import Optional

from ..infrastructure.schemas import Campaign, Page

CYCLE_RESET_THRESHOLD = 100


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of running the dispatch protocol on one snapshot."""
    page: Optional[Page]  # None when no destination is available
    campaign: Campaign  # Snapshot to persist
    cycle_reset: bool = False

    @property
    def has_destination(self) -> bool:
        return self.page is not None


def is_eligible(page: Page) -> bool:
    """A page can be served while its hits are below its quota."""
    return page.cycle_hits_done < page.cycle_hits_todo


def select_page(campaign: Campaign) -> Optional[Page]:
    """
    Pick the page to serve next.

    Later eligible pages override earlier ones, so the last page with quota
    left is returned. Returns None when every quota is met or there are no
    pages.
    """
    selected = None
    for page in campaign.pages:
        if is_eligible(page):
            selected = page
    return selected


def reset_cycle(campaign: Campaign) -> Campaign:
    """
    Start a new quota cycle.

    Hit counters are zeroed only when the campaign's total hits reach
    CYCLE_RESET_THRESHOLD; below it they are kept as-is, which can leave the
    campaign without an eligible page. ``cycles_done`` is incremented in
    both cases.
    """
    pages = campaign.pages
    if campaign.total_cycle_hits >= CYCLE_RESET_THRESHOLD:
        pages = tuple(page.model_copy(update={"cycle_hits_done": 0}) for page in pages)

    return campaign.model_copy(
        update={"pages": pages, "cycles_done": campaign.cycles_done + 1}
    )


def record_dispatch(campaign: Campaign, page: Page) -> Campaign:
    """
    Count one hit for ``page``.

    The page is matched by id. An unknown id leaves the campaign unchanged.
    """
    pages = list(campaign.pages)
    for index, candidate in enumerate(pages):
        if candidate.id == page.id:
            pages[index] = candidate.model_copy(
                update={"cycle_hits_done": candidate.cycle_hits_done + 1}
            )
            return campaign.model_copy(update={"pages": tuple(pages)})
    return campaign


def dispatch(campaign: Campaign) -> DispatchOutcome:
    """
    Run the dispatch protocol: select, reset at most once, record.

    Returns:
        DispatchOutcome with the selected page (or None) and the updated
        campaign to persist
    """
    cycle_reset = False
    page = select_page(campaign)

    if page is None:
        campaign = reset_cycle(campaign)
        cycle_reset = True
        page = select_page(campaign)

    if page is not None:
        campaign = record_dispatch(campaign, page)

    return DispatchOutcome(page=page, campaign=campaign, cycle_reset=cycle_reset)

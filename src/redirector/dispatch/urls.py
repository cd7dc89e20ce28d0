"""Redirect URL construction."""

from typing import Iterable
from urllib.parse import urlencode, urlsplit

from ..infrastructure.schemas import Page

TRACKING_PARAM = "intoid"


def build_redirect_url(page: Page, incoming_query: Iterable[tuple[str, str]] = ()) -> str:
    """
    Build the destination URL for a dispatched page.

    ``intoid=<page id>`` is always added so the client-side view callback
    can be tied back to the page. Incoming query parameters follow it,
    encoded and sorted by name. A ``#fragment`` on the destination is kept
    and moved after the merged parameters.

    Args:
        page: The dispatched page
        incoming_query: (name, value) pairs from the inbound request

    Returns:
        The URL to redirect to
    """
    base, has_fragment, fragment = page.url.partition("#")

    if base.endswith(("?", "&")):
        joiner = ""
    elif urlsplit(base).query:
        joiner = "&"
    else:
        joiner = "?"

    url = f"{base}{joiner}{TRACKING_PARAM}={page.id}"

    params = sorted(incoming_query, key=lambda item: item[0])
    if params:
        url = f"{url}&{urlencode(params)}"

    if has_fragment:
        url = f"{url}#{fragment}"

    return url

"""Filter/sort engine computing the visible, ordered listing view."""

import math
from typing import Iterable, Optional, Union
from byggout.models.actor import Actor
from byggout.models.listing import Listing
from byggout.models.query import ALL, ListingQuery, SortOrder


def parse_price_bound(value: Optional[Union[str, int, float]]) -> Optional[float]:
    """Parse a min/max price input. Empty, non-numeric or non-finite input means no bound."""
    if value is None:
        return None
    if isinstance(value, str):
        # float() also accepts digit separators like "1_000"
        if value == "" or "_" in value:
            return None
        try:
            bound = float(value)
        except ValueError:
            return None
    else:
        bound = float(value)
    return bound if math.isfinite(bound) else None


def _matches_text(listing: Listing, needle: str) -> bool:
    return (
        needle in listing.title.lower()
        or needle in listing.location.lower()
        or needle in listing.category.lower()
    )


def filter_listings(listings: Iterable[Listing], query: ListingQuery) -> list[Listing]:
    """Apply text, category, condition and price filters, then a stable sort."""
    items = list(listings)

    if query.text.strip():
        needle = query.text.lower()
        items = [item for item in items if _matches_text(item, needle)]

    if query.category != ALL:
        items = [item for item in items if item.category == query.category]

    if query.condition != ALL:
        items = [item for item in items if item.condition == query.condition]

    min_price = parse_price_bound(query.min_price)
    if min_price is not None:
        items = [item for item in items if item.price >= min_price]

    max_price = parse_price_bound(query.max_price)
    if max_price is not None:
        items = [item for item in items if item.price <= max_price]

    # sorted() is stable, including with reverse=True
    if query.sort == SortOrder.LOWEST_PRICE:
        items = sorted(items, key=lambda item: item.price)
    elif query.sort == SortOrder.HIGHEST_PRICE:
        items = sorted(items, key=lambda item: item.price, reverse=True)
    else:
        items = sorted(items, key=lambda item: item.posted_at, reverse=True)

    return items


def visible_listings(
    listings: Iterable[Listing],
    query: ListingQuery,
    actor: Optional[Actor] = None
) -> list[Listing]:
    """Filtered view for ``actor``; hidden listings only reach admins."""
    if actor is None or not actor.is_admin:
        listings = [item for item in listings if not item.hidden]
    return filter_listings(listings, query)

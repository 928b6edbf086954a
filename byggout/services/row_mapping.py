"""Mapping between the remote ``listings`` row schema and the Listing model."""

from datetime import datetime, timezone
from typing import Any, Optional
from byggout.models.listing import Category, Listing, SaleMode

_UNSPLASH = "https://images.unsplash.com/{photo}?q=80&w=1200&auto=format&fit=crop"

PLACEHOLDER_IMAGES = {
    Category.LUMBER: _UNSPLASH.format(photo="photo-1600486913747-55e2d2d46a30"),
    Category.BOARDS: _UNSPLASH.format(photo="photo-1519710164239-da123dc03ef4"),
    Category.INSULATION: _UNSPLASH.format(photo="photo-1641224396111-2eac6b7f982e"),
    Category.TILES: _UNSPLASH.format(photo="photo-1618220179428-22790b461013"),
    Category.WINDOWS_DOORS: _UNSPLASH.format(photo="photo-1600585154526-990dced4db0d"),
    Category.ELECTRICAL_PLUMBING: _UNSPLASH.format(photo="photo-1581093458415-15d9843a1b92"),
}
GENERIC_PLACEHOLDER_IMAGE = _UNSPLASH.format(photo="photo-1523419409543-14f0e1bdd3c3")


def placeholder_image(category: str) -> str:
    """Stock image for a category, generic image for unknown categories."""
    try:
        return PLACEHOLDER_IMAGES[Category(category)]
    except ValueError:
        return GENERIC_PLACEHOLDER_IMAGE


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 wire timestamp; naive values are taken as UTC."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _optional_number(value: Any) -> Optional[float]:
    # Falsy wire values (None, "", 0, "0") all decode as "absent"
    if not value:
        return None
    number = float(value)
    return number or None


def from_row(row: dict) -> Listing:
    """Build a Listing from a remote row, coercing wire types."""
    sale_mode = SaleMode(row.get("sale_mode") or SaleMode.FIXED.value)
    category = row.get("category") or ""

    fields: dict[str, Any] = {
        "id": row.get("id") or str(row.get("pk") or row.get("slug") or row.get("title")),
        "row_id": row.get("id"),
        "seller_id": row.get("seller_id") or None,
        "title": row.get("title") or "",
        "price": float(row.get("price") or 0),
        "location": row.get("location") or "",
        "condition": row.get("condition") or "",
        "category": category,
        "quantity": row.get("quantity") or "",
        "image": row.get("image") or placeholder_image(category),
        "posted_at": parse_timestamp(row.get("posted_at")) or datetime.now(timezone.utc),
        "description": row.get("description") or "",
        "sale_mode": sale_mode,
        "materialpass": row.get("materialpass") or {},
        "featured": bool(row.get("featured")),
        "hidden": bool(row.get("hidden")),
    }

    # Stale columns belonging to another sale mode are ignored
    if sale_mode == SaleMode.AUCTION:
        fields["current_bid"] = _optional_number(row.get("current_bid"))
        fields["bid_deadline"] = parse_timestamp(row.get("bid_deadline"))
    elif sale_mode == SaleMode.OFFER:
        fields["min_acceptable"] = _optional_number(row.get("min_acceptable"))

    return Listing(**fields)


def to_row(listing: Listing) -> dict:
    """Flatten a Listing into a remote row.

    Optional columns are always present (``None`` when unset) so an update
    never leaves a stale value behind. ``id`` is only sent once the store
    has assigned one.
    """
    row = {
        "seller_id": listing.seller_id,
        "title": listing.title,
        "price": listing.price,
        "location": listing.location,
        "condition": listing.condition,
        "category": listing.category,
        "quantity": listing.quantity,
        "image": listing.image,
        "posted_at": format_timestamp(listing.posted_at),
        "description": listing.description,
        "sale_mode": listing.sale_mode.value,
        "current_bid": listing.current_bid,
        "bid_deadline": format_timestamp(listing.bid_deadline),
        "min_acceptable": listing.min_acceptable,
        "materialpass": dict(listing.materialpass),
        "featured": listing.featured,
        "hidden": listing.hidden,
    }
    if listing.row_id:
        row["id"] = listing.row_id
    return row

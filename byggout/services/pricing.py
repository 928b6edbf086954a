"""Pricing-mode presentation rules: badges, call-to-action and price summaries."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from byggout.models.listing import Listing, SaleMode
from byggout.utils.config import MarketConfig

BADGE_LABELS = {
    SaleMode.FIXED: "Fixed price",
    SaleMode.OFFER: "Make an offer",
    SaleMode.AUCTION: "Auction",
}

CTA_LABELS = {
    SaleMode.FIXED: "Buy now",
    SaleMode.OFFER: "Make an offer",
    SaleMode.AUCTION: "Place bid",
}

MATERIALPASS_LABELS = {
    "brand": "Brand",
    "model": "Model",
    "dimensions": "Dimensions",
    "cert": "Certification",
    "docsUrl": "Documentation",
    "year": "Year",
    "woodClass": "Wood class",
    "lambda": "Lambda value",
    "uValue": "U-value",
    "fireClass": "Fire class",
    "woodTreatment": "Wood treatment",
}


class DetailPricing(BaseModel):
    """Price block for the detail view."""
    text: str
    emphasized: bool = False


class PricingView(BaseModel):
    """All derived pricing strings for one listing."""
    badge: str
    cta: str
    card_summary: str
    detail: DetailPricing
    guidance: Optional[str] = None


def format_currency(amount: float, currency: Optional[str] = None) -> str:
    """Whole-unit amount with thousands separators: ``2,400 SEK``."""
    return f"{round(amount):,} {currency or MarketConfig.CURRENCY_CODE}"


def format_datetime(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


def badge_label(listing: Listing) -> str:
    return BADGE_LABELS[listing.sale_mode]


def cta_label(listing: Listing) -> str:
    return CTA_LABELS[listing.sale_mode]


def card_summary(listing: Listing) -> str:
    """Short price line shown on a listing card."""
    if listing.sale_mode == SaleMode.FIXED:
        return format_currency(listing.price)
    if listing.sale_mode == SaleMode.OFFER:
        return "Make an offer"
    return f"Current bid: {format_currency(listing.current_bid or 0)}"


def detail_summary(listing: Listing) -> DetailPricing:
    """Price block for the detail view.

    Offer listings show their price as a non-binding reference; auctions
    show the current bid and, when known, the deadline.
    """
    if listing.sale_mode == SaleMode.FIXED:
        return DetailPricing(text=format_currency(listing.price), emphasized=True)
    if listing.sale_mode == SaleMode.OFFER:
        return DetailPricing(
            text=f"The seller is open to offers. Reference price: {format_currency(listing.price)}"
        )

    text = f"Current bid: {format_currency(listing.current_bid or 0)}"
    if listing.bid_deadline:
        text += f" · Ends: {format_datetime(listing.bid_deadline)}"
    return DetailPricing(text=text)


def offer_guidance(listing: Listing) -> Optional[str]:
    """Hint next to the offer input, only when a minimum is known."""
    if listing.sale_mode != SaleMode.OFFER or listing.min_acceptable is None:
        return None
    return f"Guide: ≥ {format_currency(listing.min_acceptable)}"


def pricing_view(listing: Listing) -> PricingView:
    return PricingView(
        badge=badge_label(listing),
        cta=cta_label(listing),
        card_summary=card_summary(listing),
        detail=detail_summary(listing),
        guidance=offer_guidance(listing),
    )


def pretty_label(key: str) -> str:
    """Display label for a materialpass key; unknown keys pass through."""
    return MATERIALPASS_LABELS.get(key, key)


def materialpass_entries(listing: Listing) -> list[tuple[str, str]]:
    """(label, value) pairs; an empty list means no information was provided."""
    return [(pretty_label(key), str(value)) for key, value in listing.materialpass.items()]

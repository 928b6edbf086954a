"""Checkout stub for fixed-price listings. No payment is taken."""

from pydantic import BaseModel
from byggout.models.listing import Listing, SaleMode
from byggout.utils.config import MarketConfig
from byggout.utils.errors import ConfigError, ValidationError
from byggout.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class CheckoutIntent(BaseModel):
    listing_id: str
    amount: float
    currency: str
    status: str = "stub"


def start_checkout(listing: Listing) -> CheckoutIntent:
    """Describe the checkout a payment backend would start for ``listing``."""
    if listing.sale_mode != SaleMode.FIXED:
        raise ValidationError("Only fixed-price listings can be bought directly", field="sale_mode")
    if not MarketConfig.STRIPE_PUBLISHABLE_KEY:
        raise ConfigError("Buy now requires STRIPE_PUBLISHABLE_KEY and a payment backend")

    logger.info("Checkout stub requested", listing_id=listing.id, amount=listing.price)
    return CheckoutIntent(
        listing_id=listing.id,
        amount=listing.price,
        currency=MarketConfig.CURRENCY_CODE,
    )

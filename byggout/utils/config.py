"""Marketplace configuration read from environment variables."""

import os
from typing import Optional


class MarketConfig:
    """Centralized marketplace configuration."""

    SUPABASE_URL = os.environ.get("SUPABASE_URL")
    SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY")
    LISTINGS_FETCH_LIMIT = int(os.environ.get("LISTINGS_FETCH_LIMIT", "200"))
    LISTING_IMAGES_BUCKET = os.environ.get("LISTING_IMAGES_BUCKET", "listing-images")
    AUCTION_DURATION_DAYS = int(os.environ.get("AUCTION_DURATION_DAYS", "3"))
    OFFER_MIN_RATIO = float(os.environ.get("OFFER_MIN_RATIO", "0.7"))
    CURRENCY_CODE = os.environ.get("CURRENCY_CODE", "SEK")
    AUTH_REDIRECT_URL = os.environ.get("AUTH_REDIRECT_URL")
    STRIPE_PUBLISHABLE_KEY = os.environ.get("STRIPE_PUBLISHABLE_KEY")

    @classmethod
    def supabase_credentials(cls) -> Optional[tuple[str, str]]:
        """Return (url, anon key), or None when the store is not configured."""
        url = os.environ.get("SUPABASE_URL", cls.SUPABASE_URL or "")
        key = os.environ.get("SUPABASE_ANON_KEY", cls.SUPABASE_ANON_KEY or "")
        if not url or not key:
            return None
        return url, key

    @classmethod
    def is_store_configured(cls) -> bool:
        return cls.supabase_credentials() is not None

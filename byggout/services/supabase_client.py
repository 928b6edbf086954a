"""Supabase client wrapper: listings table, image storage and magic-link auth.

Uses the async client so a pending request never blocks other work on the loop.
"""

import time
from typing import Any, Callable, Optional
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions
from byggout.utils.config import MarketConfig
from byggout.utils.errors import ConfigError, NetworkError, RemoteError, StorageError
from byggout.utils.logging import get_structured_logger, log_timing, mask_email, mask_user_id

logger = get_structured_logger(__name__)

LISTINGS_TABLE = "listings"

# Global client instance (singleton pattern)
_client: Optional[AsyncClient] = None


async def get_supabase_client() -> AsyncClient:
    """Get or create the Supabase client singleton."""
    global _client

    if _client is None:
        credentials = MarketConfig.supabase_credentials()
        if credentials is None:
            raise ConfigError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")

        url, key = credentials
        # Browser-style client: the user session is kept and refreshed
        options = AsyncClientOptions(
            auto_refresh_token=True,
            persist_session=True,
        )

        _client = await acreate_client(url, key, options)
        logger.info("Supabase client initialized", supabase_url=url)

    return _client


async def close_supabase_client() -> None:
    """Drop the client singleton."""
    global _client
    if _client:
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[AsyncClient] = None

    async def __aenter__(self) -> AsyncClient:
        self.client = await get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                error_type=exc_type.__name__
            )
        return False


# Listings table operations
async def query_listings(limit: Optional[int] = None) -> list[dict]:
    """Fetch visible listings, featured first then newest."""
    limit = limit or MarketConfig.LISTINGS_FETCH_LIMIT
    async with SupabaseClient() as client:
        try:
            with log_timing("query_listings", logger=logger, limit=limit):
                result = await (
                    client.table(LISTINGS_TABLE)
                    .select("*")
                    .eq("hidden", False)
                    .order("featured", desc=True)
                    .order("posted_at", desc=True)
                    .limit(limit)
                    .execute()
                )
            return result.data if result.data else []
        except Exception as e:
            raise RemoteError(f"Failed to query listings: {e}")


async def insert_listing(row: dict) -> Optional[dict]:
    """Insert a listing row. Returns the stored row when the store echoes it back."""
    async with SupabaseClient() as client:
        try:
            with log_timing("insert_listing", logger=logger):
                result = await client.table(LISTINGS_TABLE).insert(row).execute()
        except Exception as e:
            raise RemoteError(f"Failed to insert listing: {e}")

    if result.data and len(result.data) > 0:
        return result.data[0]
    # Row-level policies may hide the inserted row from the returning select
    logger.warning("Listing insert returned no row")
    return None


async def update_listing(row_id: str, updates: dict) -> None:
    """Apply a partial update to a listing row."""
    async with SupabaseClient() as client:
        try:
            with log_timing("update_listing", logger=logger, row_id=row_id):
                await client.table(LISTINGS_TABLE).update(updates).eq("id", row_id).execute()
        except Exception as e:
            raise RemoteError(f"Failed to update listing {row_id}: {e}")


async def delete_listing(row_id: str) -> None:
    """Delete a listing row by its remote id."""
    async with SupabaseClient() as client:
        try:
            with log_timing("delete_listing", logger=logger, row_id=row_id):
                await client.table(LISTINGS_TABLE).delete().eq("id", row_id).execute()
        except Exception as e:
            raise RemoteError(f"Failed to delete listing {row_id}: {e}")


# Storage operations
def build_image_path(owner_id: str, filename: str) -> str:
    """Object path ``<owner>/<epoch millis>.<ext>`` inside the images bucket."""
    ext = filename.rsplit(".", 1)[-1] if "." in filename else ""
    return f"{owner_id}/{int(time.time() * 1000)}.{ext or 'jpg'}"


async def upload_image(
    owner_id: str,
    filename: str,
    content: bytes,
    content_type: Optional[str] = None
) -> str:
    """Upload an image to the public bucket and return its public URL."""
    path = build_image_path(owner_id, filename)
    file_options = {"upsert": "false"}
    if content_type:
        file_options["content-type"] = content_type

    async with SupabaseClient() as client:
        try:
            bucket = client.storage.from_(MarketConfig.LISTING_IMAGES_BUCKET)
            with log_timing("upload_image", logger=logger, owner_id=mask_user_id(owner_id)):
                response = await bucket.upload(path, content, file_options)
            stored_path = getattr(response, "path", None) or path
            return await bucket.get_public_url(stored_path)
        except Exception as e:
            raise StorageError(f"Failed to upload image: {e}")


# Auth operations
async def get_current_session() -> Optional[Any]:
    """Return the signed-in auth user, or None when anonymous."""
    async with SupabaseClient() as client:
        try:
            session = await client.auth.get_session()
        except Exception as e:
            raise NetworkError(f"Failed to read session: {e}")
    return session.user if session else None


async def on_session_change(callback: Callable[[Optional[Any]], None]) -> Any:
    """Call ``callback`` with the auth user (or None) on every auth transition."""
    client = await get_supabase_client()

    def _listener(event: str, session: Optional[Any]) -> None:
        logger.debug("Auth state changed", auth_event=str(event))
        callback(session.user if session else None)

    return client.auth.on_auth_state_change(_listener)


async def sign_in_with_email_link(email: str) -> None:
    """Send a passwordless sign-in link to ``email``."""
    credentials: dict = {"email": email}
    if MarketConfig.AUTH_REDIRECT_URL:
        credentials["options"] = {"email_redirect_to": MarketConfig.AUTH_REDIRECT_URL}

    async with SupabaseClient() as client:
        try:
            with log_timing("sign_in_with_email_link", logger=logger, email=mask_email(email)):
                await client.auth.sign_in_with_otp(credentials)
        except Exception as e:
            raise NetworkError(f"Failed to send sign-in link: {e}")


async def sign_out() -> None:
    async with SupabaseClient() as client:
        try:
            await client.auth.sign_out()
        except Exception as e:
            raise NetworkError(f"Failed to sign out: {e}")

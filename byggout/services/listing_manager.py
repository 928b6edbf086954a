"""Listing lifecycle manager - optimistic local mutations with explicit reconciliation.

Local state is the source of truth for the session. Every remote write is
tracked as a PendingOperation:

* create: the listing is prepended before the insert is sent. A failed insert
  is logged and the listing stays local (see ``unsynced()``).
* delete / update / admin update: applied locally, then sent. A failed write
  reverts the local change and the RemoteError is raised to the caller.

No retries: each mutation gets exactly one remote attempt.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
from pydantic import ValidationError as PydanticValidationError
from ulid import ULID
from byggout.models.actor import Actor
from byggout.models.listing import (
    AdminPatch,
    Category,
    Listing,
    ListingDraft,
    OwnerPatch,
    SaleMode,
)
from byggout.models.pending import OperationKind, OperationStatus, PendingOperation
from byggout.models.query import ListingQuery
from byggout.services.demo_data import demo_listings
from byggout.services.listing_filter import visible_listings
from byggout.services.row_mapping import from_row, placeholder_image, to_row
from byggout.services.supabase_client import (
    delete_listing,
    insert_listing,
    query_listings,
    update_listing,
    upload_image,
)
from byggout.utils.config import MarketConfig
from byggout.utils.errors import (
    AuthorizationError,
    ByggoutError,
    RemoteError,
    StorageError,
    ValidationError,
)
from byggout.utils.logging import correlation_context, get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)

# Draft form field -> materialpass key
MATERIALPASS_FIELDS = {
    "brand": "brand",
    "model": "model",
    "dimensions": "dimensions",
    "cert": "cert",
    "docs_url": "docsUrl",
}


def generate_listing_id() -> str:
    """Generate a local listing key (ULID format)."""
    return str(ULID())


def can_edit(actor: Optional[Actor], listing: Listing) -> bool:
    """Signed in and owns the listing. Advisory only; the store enforces ownership."""
    return actor is not None and listing.seller_id is not None and actor.id == listing.seller_id


def parse_price(value: Any) -> float:
    """Parse a draft price, rejecting empty, non-numeric and negative input."""
    try:
        price = float(str(value).strip())
    except ValueError:
        raise ValidationError("Invalid price", field="price")
    if math.isnan(price) or math.isinf(price) or price < 0:
        raise ValidationError("Invalid price", field="price")
    return price


def build_materialpass(draft: ListingDraft) -> dict:
    """Collect the optional materialpass fields, omitting blanks."""
    materialpass: dict = {}
    for field_name, key in MATERIALPASS_FIELDS.items():
        value = getattr(draft, field_name).strip()
        if value:
            materialpass[key] = value

    year = draft.year.strip()
    if year:
        try:
            materialpass["year"] = int(year)
        except ValueError:
            raise ValidationError("Year must be a whole number", field="year")
    return materialpass


def _coerce_patch(patch: Union[OwnerPatch, AdminPatch, dict], model: type) -> Any:
    if isinstance(patch, model):
        return patch
    try:
        return model.model_validate(patch)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid update: {e.errors()[0]['msg']}")


class ListingManager:
    """Holds the in-memory listing set and gates mutations by actor."""

    def __init__(self, listings: Optional[list[Listing]] = None, remote_enabled: Optional[bool] = None):
        self.listings: list[Listing] = list(listings or [])
        self.operations: dict[str, PendingOperation] = {}
        self.load_error: Optional[str] = None
        if remote_enabled is None:
            remote_enabled = MarketConfig.is_store_configured()
        self.remote_enabled = remote_enabled

    # Queries
    def get(self, listing_id: str) -> Optional[Listing]:
        for listing in self.listings:
            if listing.id == listing_id:
                return listing
        return None

    def visible(self, query: Optional[ListingQuery] = None, actor: Optional[Actor] = None) -> list[Listing]:
        return visible_listings(self.listings, query or ListingQuery(), actor)

    def can_edit(self, actor: Optional[Actor], listing: Listing) -> bool:
        return can_edit(actor, listing)

    async def refresh(self) -> list[Listing]:
        """Load listings from the store, falling back to demo data."""
        if not self.remote_enabled:
            logger.warning("Store not configured, using demo listings")
            self.listings = demo_listings()
            return self.listings

        try:
            rows = await query_listings()
            self.listings = [from_row(row) for row in rows]
            self.load_error = None
            logger.info("Listings loaded", listing_count=len(self.listings))
        except (ByggoutError, ValueError) as e:
            self.load_error = str(e)
            self.listings = demo_listings()
            logger.warning("Listing load failed, using demo listings", error=str(e))
        return self.listings

    # Reconciliation
    def _issue(self, kind: OperationKind, listing_id: str) -> PendingOperation:
        op = PendingOperation(op_id=str(ULID()), kind=kind, listing_id=listing_id)
        self.operations[op.op_id] = op
        return op

    def _settle(self, op: PendingOperation, error: Optional[Exception] = None) -> None:
        if error is None:
            op.status = OperationStatus.CONFIRMED
        else:
            op.status = OperationStatus.FAILED
            op.error = str(error)

    def pending(self) -> list[PendingOperation]:
        return [op for op in self.operations.values() if op.status == OperationStatus.PENDING]

    def unsynced(self) -> list[Listing]:
        """Local listings whose remote insert failed."""
        failed = {
            op.listing_id
            for op in self.operations.values()
            if op.kind == OperationKind.CREATE and op.status == OperationStatus.FAILED
        }
        return [listing for listing in self.listings if listing.id in failed]

    def compact(self) -> int:
        """Drop confirmed operations; returns how many were removed."""
        confirmed = [
            op_id for op_id, op in self.operations.items()
            if op.status == OperationStatus.CONFIRMED
        ]
        for op_id in confirmed:
            del self.operations[op_id]
        return len(confirmed)

    # Local set helpers (snapshot replace)
    def _replace(self, listing_id: str, replacement: Listing) -> bool:
        found = False
        updated = []
        for item in self.listings:
            if item.id == listing_id:
                updated.append(replacement)
                found = True
            else:
                updated.append(item)
        self.listings = updated
        return found

    def _revert_fields(self, before: Listing, applied: Listing, fields: dict) -> None:
        """Undo one update, leaving fields changed since by other operations."""
        latest = self.get(before.id)
        if latest is None:
            return
        reverted = {
            key: getattr(before, key)
            for key in fields
            if getattr(latest, key) == getattr(applied, key)
        }
        if reverted:
            self._replace(before.id, latest.model_copy(update=reverted))

    def _restore(self, listing: Listing, index: Optional[int]) -> None:
        if index is None or self.get(listing.id) is not None:
            return
        restored = list(self.listings)
        restored.insert(min(index, len(restored)), listing)
        self.listings = restored

    # Mutations
    async def _resolve_image(self, actor: Actor, draft: ListingDraft) -> str:
        image_url = draft.image.strip()
        if draft.image_file is not None and self.remote_enabled:
            try:
                image_url = await upload_image(
                    actor.id,
                    draft.image_file.filename,
                    draft.image_file.content,
                    draft.image_file.content_type,
                )
            except StorageError as e:
                logger.warning("Image upload failed, continuing without it", error=str(e))
        return image_url or placeholder_image(draft.category)

    async def create(self, actor: Optional[Actor], draft: ListingDraft) -> Listing:
        """Validate a draft, insert it locally, then persist it once."""
        if actor is None:
            raise AuthorizationError("Sign in to publish a listing")

        title = draft.title.strip()
        location = draft.location.strip()
        if not title or not location or str(draft.price).strip() == "":
            raise ValidationError("Title, price and location are required")
        price = parse_price(draft.price)
        try:
            Category(draft.category)
        except ValueError:
            raise ValidationError(f"Unknown category: {draft.category}", field="category")
        materialpass = build_materialpass(draft)

        with correlation_context():
            image = await self._resolve_image(actor, draft)
            now = datetime.now(timezone.utc)

            mode_fields: dict = {}
            if draft.sale_mode == SaleMode.AUCTION:
                mode_fields = {
                    "current_bid": 0,
                    "bid_deadline": now + timedelta(days=MarketConfig.AUCTION_DURATION_DAYS),
                }
            elif draft.sale_mode == SaleMode.OFFER:
                mode_fields = {"min_acceptable": math.floor(price * MarketConfig.OFFER_MIN_RATIO)}

            listing = Listing(
                id=generate_listing_id(),
                seller_id=actor.id,
                title=title,
                price=price,
                location=location,
                condition=draft.condition,
                category=draft.category,
                quantity=draft.quantity.strip(),
                image=image,
                posted_at=now,
                description=draft.description.strip(),
                sale_mode=draft.sale_mode,
                materialpass=materialpass,
                **mode_fields,
            )

            self.listings = [listing, *self.listings]
            logger.info(
                "Listing created locally",
                listing_id=listing.id,
                sale_mode=listing.sale_mode.value,
                seller_id=mask_user_id(actor.id)
            )

            if not self.remote_enabled:
                return listing

            op = self._issue(OperationKind.CREATE, listing.id)
            try:
                stored = await insert_listing(to_row(listing))
            except RemoteError as e:
                self._settle(op, e)
                logger.error("Listing insert failed, keeping local copy", listing_id=listing.id, error=str(e))
                return listing

            self._settle(op)
            row_id = stored.get("id") if stored else None
            if row_id:
                listing = listing.model_copy(update={"row_id": str(row_id)})
                if not self._replace(listing.id, listing):
                    logger.warning("Listing removed before insert was confirmed", listing_id=listing.id)
            return listing

    async def delete(self, actor: Optional[Actor], listing: Listing) -> None:
        """Remove an owned listing locally, then delete the remote row."""
        if not can_edit(actor, listing):
            raise AuthorizationError("Only the owner can delete this listing")

        with correlation_context():
            index = next((i for i, item in enumerate(self.listings) if item.id == listing.id), None)
            current = self.get(listing.id) or listing
            self.listings = [item for item in self.listings if item.id != listing.id]
            logger.info("Listing removed locally", listing_id=listing.id)

            if not self.remote_enabled or not current.row_id:
                return

            op = self._issue(OperationKind.DELETE, listing.id)
            try:
                await delete_listing(current.row_id)
            except RemoteError as e:
                self._settle(op, e)
                self._restore(current, index)
                logger.error("Listing delete failed, restored locally", listing_id=listing.id, error=str(e))
                raise
            self._settle(op)

    async def _apply_update(
        self,
        kind: OperationKind,
        listing: Listing,
        local_updates: dict,
        remote_updates_for: Any
    ) -> Listing:
        current = self.get(listing.id) or listing
        updated = current.model_copy(update=local_updates)
        self._replace(current.id, updated)

        if not self.remote_enabled or not current.row_id:
            return updated

        op = self._issue(kind, current.id)
        try:
            await update_listing(current.row_id, remote_updates_for(updated))
        except RemoteError as e:
            self._settle(op, e)
            self._revert_fields(current, updated, local_updates)
            logger.error("Listing update failed, reverted locally", listing_id=current.id, error=str(e))
            raise
        self._settle(op)
        return updated

    async def update(self, actor: Optional[Actor], listing: Listing, patch: Union[OwnerPatch, dict]) -> Listing:
        """Owner edit of title, price, location or category."""
        if not can_edit(actor, listing):
            raise AuthorizationError("Only the owner can edit this listing")

        patch = _coerce_patch(patch, OwnerPatch)
        updates = patch.model_dump(exclude_none=True)
        for field_name in ("title", "location"):
            if field_name in updates:
                updates[field_name] = updates[field_name].strip()
                if not updates[field_name]:
                    raise ValidationError(f"{field_name.capitalize()} is required", field=field_name)
        if "category" in updates:
            try:
                Category(updates["category"])
            except ValueError:
                raise ValidationError(f"Unknown category: {updates['category']}", field="category")
        if not updates:
            return self.get(listing.id) or listing

        with correlation_context():
            return await self._apply_update(
                OperationKind.UPDATE,
                listing,
                updates,
                lambda updated: {key: getattr(updated, key) for key in updates},
            )

    async def admin_update(self, actor: Optional[Actor], listing: Listing, patch: Union[AdminPatch, dict]) -> Listing:
        """Toggle moderation flags. Requires the admin capability."""
        if actor is None or not actor.is_admin:
            raise AuthorizationError("Admin capability required")

        patch = _coerce_patch(patch, AdminPatch)
        updates = patch.model_dump(exclude_none=True)

        with correlation_context():
            logger.info("Admin update", listing_id=listing.id, admin_id=mask_user_id(actor.id), **updates)
            return await self._apply_update(
                OperationKind.ADMIN_UPDATE,
                listing,
                updates,
                lambda updated: {"featured": updated.featured, "hidden": updated.hidden},
            )

    async def toggle_featured(self, actor: Optional[Actor], listing: Listing) -> Listing:
        current = self.get(listing.id) or listing
        return await self.admin_update(actor, current, AdminPatch(featured=not current.featured))

    async def toggle_hidden(self, actor: Optional[Actor], listing: Listing) -> Listing:
        current = self.get(listing.id) or listing
        return await self.admin_update(actor, current, AdminPatch(hidden=not current.hidden))

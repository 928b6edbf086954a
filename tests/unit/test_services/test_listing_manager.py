"""Tests for the listing lifecycle manager."""

import asyncio
import pytest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from freezegun import freeze_time
from byggout.models.listing import Category, ImageUpload, SaleMode
from byggout.models.pending import OperationKind, OperationStatus
from byggout.models.query import ListingQuery
from byggout.services.listing_manager import ListingManager, build_materialpass, can_edit, parse_price
from byggout.services.row_mapping import PLACEHOLDER_IMAGES
from byggout.utils.errors import AuthorizationError, ConfigError, RemoteError, StorageError, ValidationError
from tests.utils.assertions import assert_mode_fields_consistent
from tests.utils.factories import create_listing_row
from tests.utils.helpers import make_draft

MODULE = "byggout.services.listing_manager"


@pytest.fixture
def remote():
    """Patch every remote call the manager makes."""
    with patch(f"{MODULE}.insert_listing", new_callable=AsyncMock) as insert, \
         patch(f"{MODULE}.update_listing", new_callable=AsyncMock) as update, \
         patch(f"{MODULE}.delete_listing", new_callable=AsyncMock) as delete, \
         patch(f"{MODULE}.query_listings", new_callable=AsyncMock) as query, \
         patch(f"{MODULE}.upload_image", new_callable=AsyncMock) as upload:
        insert.return_value = {"id": "row-new"}
        query.return_value = []
        yield SimpleNamespace(
            insert=insert, update=update, delete=delete, query=query, upload=upload,
        )


@pytest.fixture
def manager(fixed_listing, auction_listing, offer_listing):
    return ListingManager([fixed_listing, auction_listing, offer_listing], remote_enabled=True)


@pytest.mark.unit
def test_can_edit(seller, other_user, fixed_listing):
    """Test ownership predicate."""
    assert can_edit(seller, fixed_listing) is True
    assert can_edit(other_user, fixed_listing) is False
    assert can_edit(None, fixed_listing) is False


@pytest.mark.unit
def test_can_edit_demo_listing_without_seller(seller, fixed_listing):
    assert can_edit(seller, fixed_listing.model_copy(update={"seller_id": None})) is False


@pytest.mark.unit
@pytest.mark.parametrize("value", ["-1", "abc", "nan", "inf", -5])
def test_parse_price_rejects(value):
    with pytest.raises(ValidationError):
        parse_price(value)


@pytest.mark.unit
def test_parse_price_accepts_zero_and_decimals():
    assert parse_price("0") == 0.0
    assert parse_price(" 99.5 ") == 99.5


@pytest.mark.unit
def test_build_materialpass_omits_blanks():
    draft = make_draft(brand="Paroc", model="", docs_url="https://example.com/ds.pdf", year="2023")

    assert build_materialpass(draft) == {
        "brand": "Paroc",
        "docsUrl": "https://example.com/ds.pdf",
        "year": 2023,
    }


@pytest.mark.unit
def test_build_materialpass_bad_year():
    with pytest.raises(ValidationError):
        build_materialpass(make_draft(year="twenty"))


# create

@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_prepends_and_persists(manager, seller, remote):
    listing = await manager.create(seller, make_draft(quantity=" 40 packs ", description=" Spare "))

    assert manager.listings[0].id == listing.id
    assert listing.row_id == "row-new"
    assert listing.seller_id == seller.id
    assert listing.quantity == "40 packs"
    assert listing.description == "Spare"
    assert listing.image == PLACEHOLDER_IMAGES[Category.INSULATION]

    row = remote.insert.await_args.args[0]
    assert row["title"] == "Mineral wool 95mm"
    assert row["price"] == 1200.0
    assert row["seller_id"] == seller.id
    assert "id" not in row
    assert [op.status for op in manager.operations.values()] == [OperationStatus.CONFIRMED]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_negative_price_no_mutation(manager, seller, remote):
    """Test that an invalid price touches neither local nor remote state."""
    before = list(manager.listings)

    with pytest.raises(ValidationError):
        await manager.create(seller, make_draft(price=-1))

    assert manager.listings == before
    remote.insert.assert_not_called()
    remote.upload.assert_not_called()
    assert manager.operations == {}


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("field_name", ["title", "price", "location"])
async def test_create_requires_fields(manager, seller, remote, field_name):
    with pytest.raises(ValidationError):
        await manager.create(seller, make_draft(**{field_name: "  "}))

    remote.insert.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_unknown_category(manager, seller, remote):
    with pytest.raises(ValidationError):
        await manager.create(seller, make_draft(category="Scaffolding"))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_requires_signed_in_actor(manager, remote):
    with pytest.raises(AuthorizationError):
        await manager.create(None, make_draft())

    assert len(manager.listings) == 3


@pytest.mark.unit
@pytest.mark.asyncio
@freeze_time("2025-10-01 12:00:00")
async def test_create_auction_defaults(manager, seller, remote):
    listing = await manager.create(seller, make_draft(sale_mode=SaleMode.AUCTION))

    assert listing.current_bid == 0
    assert listing.bid_deadline == datetime(2025, 10, 4, 12, 0, tzinfo=timezone.utc)
    assert_mode_fields_consistent(listing)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_offer_minimum_floored(manager, seller, remote):
    listing = await manager.create(seller, make_draft(price="999", sale_mode=SaleMode.OFFER))

    assert listing.min_acceptable == 699
    assert_mode_fields_consistent(listing)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_remote_failure_keeps_local(manager, seller, remote):
    """Test that a failed insert is logged, not rolled back."""
    remote.insert.side_effect = RemoteError("insert denied")

    listing = await manager.create(seller, make_draft())

    assert manager.listings[0] == listing
    assert listing.row_id is None
    assert manager.unsynced() == [listing]
    op = next(iter(manager.operations.values()))
    assert op.kind == OperationKind.CREATE
    assert op.status == OperationStatus.FAILED
    assert "insert denied" in op.error


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_without_returned_row(manager, seller, remote):
    remote.insert.return_value = None

    listing = await manager.create(seller, make_draft())

    assert listing.row_id is None
    assert manager.unsynced() == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_uses_uploaded_image(manager, seller, remote):
    remote.upload.return_value = "https://cdn.example.com/user/1.jpg"
    draft = make_draft(image="https://example.com/pasted.jpg",
                       image_file=ImageUpload(filename="board.jpg", content=b"\xff\xd8"))

    listing = await manager.create(seller, draft)

    assert listing.image == "https://cdn.example.com/user/1.jpg"
    remote.upload.assert_awaited_once_with(seller.id, "board.jpg", b"\xff\xd8", None)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_upload_failure_falls_back(manager, seller, remote):
    """Test that an upload failure never blocks creation."""
    remote.upload.side_effect = StorageError("bucket missing")
    draft = make_draft(image="https://example.com/pasted.jpg",
                       image_file=ImageUpload(filename="board.jpg", content=b"\xff\xd8"))

    listing = await manager.create(seller, draft)

    assert listing.image == "https://example.com/pasted.jpg"
    remote.insert.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_local_only_when_store_unconfigured(seller, remote):
    manager = ListingManager(remote_enabled=False)

    listing = await manager.create(seller, make_draft())

    assert manager.listings == [listing]
    remote.insert.assert_not_called()
    assert manager.operations == {}


# delete

@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_by_owner(manager, seller, fixed_listing, remote):
    await manager.delete(seller, fixed_listing)

    assert manager.get(fixed_listing.id) is None
    remote.delete.assert_awaited_once_with(fixed_listing.row_id)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_by_non_owner(manager, other_user, fixed_listing, remote):
    before = list(manager.listings)

    with pytest.raises(AuthorizationError):
        await manager.delete(other_user, fixed_listing)

    assert manager.listings == before
    remote.delete.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_anonymous(manager, fixed_listing, remote):
    with pytest.raises(AuthorizationError):
        await manager.delete(None, fixed_listing)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_remote_failure_restores(manager, seller, auction_listing, remote):
    """Test that a failed delete is surfaced and the listing comes back in place."""
    before = list(manager.listings)
    remote.delete.side_effect = RemoteError("rls violation")

    with pytest.raises(RemoteError):
        await manager.delete(seller, auction_listing)

    assert manager.listings == before
    op = next(iter(manager.operations.values()))
    assert op.status == OperationStatus.FAILED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_failure_for_absent_listing_not_restored(seller, fixed_listing, offer_listing, remote):
    """Test that a failed delete never inserts a listing the set did not hold."""
    manager = ListingManager([offer_listing], remote_enabled=True)
    remote.delete.side_effect = RemoteError("rls violation")

    with pytest.raises(RemoteError):
        await manager.delete(seller, fixed_listing)

    assert [item.id for item in manager.listings] == [offer_listing.id]

@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_unpersisted_listing_stays_local(manager, seller, remote):
    remote.insert.side_effect = RemoteError("offline")
    listing = await manager.create(seller, make_draft())

    await manager.delete(seller, listing)

    assert manager.get(listing.id) is None
    remote.delete.assert_not_called()


# owner update

@pytest.mark.unit
@pytest.mark.asyncio
async def test_owner_update(manager, seller, fixed_listing, remote):
    updated = await manager.update(seller, fixed_listing, {"price": 2000, "title": " Boards 13mm "})

    assert updated.price == 2000
    assert updated.title == "Boards 13mm"
    assert updated.seller_id == seller.id
    assert manager.get(fixed_listing.id) == updated
    remote.update.assert_awaited_once_with(fixed_listing.row_id, {"price": 2000.0, "title": "Boards 13mm"})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_owner_update_rejects_foreign_fields(manager, seller, fixed_listing, remote):
    with pytest.raises(ValidationError):
        await manager.update(seller, fixed_listing, {"seller_id": "someone-else"})
    with pytest.raises(ValidationError):
        await manager.update(seller, fixed_listing, {"price": -3})

    remote.update.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_owner_update_by_other_user(manager, other_user, fixed_listing, remote):
    with pytest.raises(AuthorizationError):
        await manager.update(other_user, fixed_listing, {"price": 1})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_owner_update_remote_failure_reverts(manager, seller, fixed_listing, remote):
    remote.update.side_effect = RemoteError("timeout")

    with pytest.raises(RemoteError):
        await manager.update(seller, fixed_listing, {"location": "Solna"})

    assert manager.get(fixed_listing.id) == fixed_listing


# admin update

@pytest.mark.unit
@pytest.mark.asyncio
async def test_admin_update_requires_capability(manager, seller, fixed_listing, remote):
    with pytest.raises(AuthorizationError):
        await manager.admin_update(seller, fixed_listing, {"featured": True})

    assert manager.get(fixed_listing.id).featured is False
    remote.update.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_admin_update_sends_both_flags(manager, admin, fixed_listing, remote):
    updated = await manager.admin_update(admin, fixed_listing, {"featured": True})

    assert updated.featured is True
    remote.update.assert_awaited_once_with(fixed_listing.row_id, {"featured": True, "hidden": False})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_admin_update_only_moderation_fields(manager, admin, fixed_listing, remote):
    with pytest.raises(ValidationError):
        await manager.admin_update(admin, fixed_listing, {"price": 1})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_admin_hide_removes_from_default_view(manager, admin, fixed_listing, remote):
    """Test that a hidden listing drops out of the non-admin view."""
    assert fixed_listing.id in [item.id for item in manager.visible(ListingQuery())]

    await manager.toggle_hidden(admin, fixed_listing)

    assert fixed_listing.id not in [item.id for item in manager.visible(ListingQuery())]
    assert fixed_listing.id in [item.id for item in manager.visible(ListingQuery(), admin)]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_toggle_featured_twice(manager, admin, offer_listing, remote):
    await manager.toggle_featured(admin, offer_listing)
    await manager.toggle_featured(admin, offer_listing)

    assert manager.get(offer_listing.id).featured is False
    assert remote.update.await_count == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_admin_update_remote_failure_reverts(manager, admin, fixed_listing, remote):
    remote.update.side_effect = RemoteError("forbidden")

    with pytest.raises(RemoteError):
        await manager.toggle_hidden(admin, fixed_listing)

    assert manager.get(fixed_listing.id).hidden is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_overlapping_admin_updates_revert_only_failed_fields(manager, admin, fixed_listing, remote):
    """Test that a late failure keeps the changes of updates confirmed meanwhile."""
    release = asyncio.Event()
    calls = []

    async def update(row_id, updates):
        calls.append(updates)
        if len(calls) == 1:
            await release.wait()
            raise RemoteError("timeout")

    remote.update.side_effect = update

    first = asyncio.create_task(manager.admin_update(admin, fixed_listing, {"featured": True}))
    await asyncio.sleep(0)
    await manager.admin_update(admin, fixed_listing, {"hidden": True})
    release.set()

    with pytest.raises(RemoteError):
        await first

    current = manager.get(fixed_listing.id)
    assert calls[1] == {"featured": True, "hidden": True}
    assert current.hidden is True
    assert current.featured is False

# reconciliation

@pytest.mark.unit
@pytest.mark.asyncio
async def test_compact_drops_confirmed(manager, seller, admin, fixed_listing, remote):
    await manager.toggle_featured(admin, fixed_listing)
    remote.insert.side_effect = RemoteError("offline")
    await manager.create(seller, make_draft())

    assert manager.compact() == 1
    assert [op.status for op in manager.operations.values()] == [OperationStatus.FAILED]
    assert manager.pending() == []


# refresh

@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_maps_rows(remote):
    remote.query.return_value = [create_listing_row("auction"), create_listing_row("offer")]
    manager = ListingManager(remote_enabled=True)

    listings = await manager.refresh()

    assert [item.sale_mode for item in listings] == [SaleMode.AUCTION, SaleMode.OFFER]
    assert manager.load_error is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_failure_uses_demo_listings(remote):
    remote.query.side_effect = RemoteError("503")
    manager = ListingManager(remote_enabled=True)

    listings = await manager.refresh()

    assert [item.id for item in listings] == ["1", "2", "3"]
    assert "503" in manager.load_error


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_without_store(remote):
    manager = ListingManager(remote_enabled=False)

    listings = await manager.refresh()

    assert len(listings) == 3
    remote.query.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_unconfigured_store_uses_demo_listings(remote):
    remote.query.side_effect = ConfigError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
    manager = ListingManager(remote_enabled=True)

    listings = await manager.refresh()

    assert [item.id for item in listings] == ["1", "2", "3"]
    assert "SUPABASE_URL" in manager.load_error

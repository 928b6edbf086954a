"""Seed listings shown when the store is unavailable."""

from datetime import datetime, timezone
from byggout.models.listing import Category, Condition, Listing, SaleMode
from byggout.services.row_mapping import PLACEHOLDER_IMAGES

DEMO_SELLER_ID = "demo"


def demo_listings() -> list[Listing]:
    return [
        Listing(
            id="1",
            seller_id=DEMO_SELLER_ID,
            title="Gypsum boards 13mm - 24 unopened packs",
            price=2400,
            location="Huddinge, Stockholm",
            condition=Condition.NEW_UNOPENED.value,
            category=Category.BOARDS.value,
            quantity="~120 m²",
            image=PLACEHOLDER_IMAGES[Category.BOARDS],
            posted_at=datetime(2025, 9, 18, tzinfo=timezone.utc),
            description="Mis-ordered high quality gypsum boards (13 mm).",
            sale_mode=SaleMode.FIXED,
            materialpass={"brand": "Gyproc", "year": 2025},
        ),
        Listing(
            id="2",
            seller_id=DEMO_SELLER_ID,
            title="Studs C24 45x95 - 80 running metres",
            price=1800,
            location="Mölndal, Gothenburg",
            condition=Condition.GOOD.value,
            category=Category.LUMBER.value,
            quantity="80 lm",
            image=PLACEHOLDER_IMAGES[Category.LUMBER],
            posted_at=datetime(2025, 9, 20, tzinfo=timezone.utc),
            description="Left over from a renovation.",
            sale_mode=SaleMode.OFFER,
            min_acceptable=1500,
            materialpass={"woodClass": "C24"},
        ),
        Listing(
            id="3",
            seller_id=DEMO_SELLER_ID,
            title="Porcelain tiles 60x60 - 48 m² (matte grey)",
            price=4800,
            location="Malmö",
            condition=Condition.NEW_UNOPENED.value,
            category=Category.TILES.value,
            quantity="48 m²",
            image=PLACEHOLDER_IMAGES[Category.TILES],
            posted_at=datetime(2025, 9, 19, tzinfo=timezone.utc),
            description="A full pallet left from a project.",
            sale_mode=SaleMode.AUCTION,
            current_bid=3600,
            bid_deadline=datetime(2025, 9, 27, 18, 0, tzinfo=timezone.utc),
            materialpass={"dimensions": "600x600 mm"},
            featured=True,
        ),
    ]

"""Public listings endpoint: filtered, sorted listing cards as JSON."""

import json
import asyncio
from pydantic import ValidationError as PydanticValidationError
from byggout.models.listing import Listing
from byggout.models.query import ALL, ListingQuery
from byggout.services.listing_manager import ListingManager
from byggout.services.pricing import pricing_view
from byggout.utils.logging import correlation_context, get_structured_logger, setup_logging

setup_logging()
logger = get_structured_logger(__name__)


def parse_query(params: dict) -> ListingQuery:
    """Map query-string parameters onto a ListingQuery."""
    return ListingQuery(
        text=params.get("q", ""),
        category=params.get("category") or ALL,
        condition=params.get("condition") or ALL,
        min_price=params.get("min_price", ""),
        max_price=params.get("max_price", ""),
        sort=params.get("sort") or "newest",
    )


def listing_card(listing: Listing) -> dict:
    card = listing.model_dump(mode="json", exclude={"hidden"})
    card["pricing"] = pricing_view(listing).model_dump()
    return card


def _json_response(status: int, payload: dict) -> dict:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload)
    }


def handler(request):
    """Serve the anonymous visible listing view."""
    with correlation_context() as correlation_id:
        try:
            query = parse_query(request.get("query", {}) or {})
        except PydanticValidationError as e:
            return _json_response(400, {"error": e.errors()[0]["msg"]})

        try:
            manager = ListingManager()
            asyncio.run(manager.refresh())
            cards = [listing_card(item) for item in manager.visible(query)]
        except Exception as e:
            logger.error(f"Error serving listings: {e}", exc_info=True)
            return _json_response(500, {"error": str(e)})

        logger.info("Listings served", result_count=len(cards), correlation_id=correlation_id)
        return _json_response(200, {
            "ok": True,
            "count": len(cards),
            "listings": cards,
            "load_error": manager.load_error,
        })

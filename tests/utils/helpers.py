"""Test helper functions."""

from typing import Any, Dict, Optional
from unittest.mock import MagicMock

from byggout.models.listing import ListingDraft


def make_draft(**fields) -> ListingDraft:
    """Build a valid fixed-price draft, overriding any field."""
    data = {
        "title": "Mineral wool 95mm",
        "price": "1200",
        "location": "Uppsala",
        "category": "Insulation",
    }
    data.update(fields)
    return ListingDraft(**data)


def execute_result(data: Optional[list] = None) -> MagicMock:
    """Shape of ``query.execute()`` results from postgrest."""
    return MagicMock(data=data if data is not None else [])


def create_vercel_request(query: Optional[Dict[str, Any]] = None, method: str = "GET") -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    return {
        "method": method,
        "path": "/api/listings",
        "headers": {"content-type": "application/json"},
        "body": "",
        "query": query or {},
    }

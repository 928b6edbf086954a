"""Browse query models."""

from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel, Field

# Sentinel for the category/condition selects meaning "no filter"
ALL = "all"


class SortOrder(str, Enum):
    NEWEST = "newest"
    LOWEST_PRICE = "lowest_price"
    HIGHEST_PRICE = "highest_price"


class ListingQuery(BaseModel):
    """Current browse state: search text, selects, price bounds and sort."""
    text: str = ""
    category: str = ALL
    condition: str = ALL
    min_price: Optional[Union[str, int, float]] = Field("", description="Empty means no bound")
    max_price: Optional[Union[str, int, float]] = Field("", description="Empty means no bound")
    sort: SortOrder = SortOrder.NEWEST

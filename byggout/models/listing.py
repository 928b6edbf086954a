"""Listing models."""

from enum import Enum
from datetime import datetime
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator


class SaleMode(str, Enum):
    """How a listing is sold."""
    FIXED = "fixed"
    AUCTION = "auction"
    OFFER = "offer"


class Category(str, Enum):
    """Material categories offered in the create form."""
    LUMBER = "Lumber"
    BOARDS = "Boards"
    INSULATION = "Insulation"
    TILES = "Tiles"
    WINDOWS_DOORS = "Windows & doors"
    ELECTRICAL_PLUMBING = "Electrical & plumbing"


class Condition(str, Enum):
    """Known conditions. Listings may also carry free-text conditions."""
    NEW_UNOPENED = "New/unopened"
    AS_NEW = "As new"
    GOOD = "Good condition"
    MINT = "Mint"


MaterialpassValue = Union[int, float, str]

# Fields that only carry meaning for one sale mode
MODE_FIELDS = {
    "current_bid": SaleMode.AUCTION,
    "bid_deadline": SaleMode.AUCTION,
    "min_acceptable": SaleMode.OFFER,
}


class Listing(BaseModel):
    """Surplus material listing.

    Instances are immutable; the lifecycle manager replaces them with
    ``model_copy(update=...)`` so that ``seller_id`` can never be reassigned.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Local/display key, always present")
    row_id: Optional[str] = Field(None, description="Remote row id once persisted")
    seller_id: Optional[str] = Field(None, description="Owning actor id, None for demo data")
    title: str
    price: float = Field(..., ge=0)
    location: str
    condition: str
    category: str
    quantity: str = ""
    image: str = ""
    description: str = ""
    posted_at: datetime
    sale_mode: SaleMode = SaleMode.FIXED
    current_bid: Optional[float] = Field(None, ge=0)
    bid_deadline: Optional[datetime] = None
    min_acceptable: Optional[float] = Field(None, ge=0)
    materialpass: dict[str, MaterialpassValue] = Field(default_factory=dict)
    featured: bool = False
    hidden: bool = False

    @model_validator(mode="after")
    def check_mode_fields(self) -> "Listing":
        """Reject mode-specific fields populated for another sale mode."""
        for field_name, mode in MODE_FIELDS.items():
            if getattr(self, field_name) is not None and self.sale_mode != mode:
                raise ValueError(f"{field_name} is only valid for {mode.value} listings")
        return self


class ImageUpload(BaseModel):
    """Image file attached to a draft."""
    filename: str
    content: bytes
    content_type: Optional[str] = None


class ListingDraft(BaseModel):
    """Raw create-form fields as typed by the seller."""
    title: str = ""
    price: Union[str, int, float] = ""
    location: str = ""
    condition: str = Condition.NEW_UNOPENED.value
    category: str = Category.LUMBER.value
    quantity: str = ""
    image: str = Field("", description="Pasted image URL")
    image_file: Optional[ImageUpload] = None
    sale_mode: SaleMode = SaleMode.FIXED
    description: str = ""
    # Materialpass form fields
    brand: str = ""
    model: str = ""
    dimensions: str = ""
    cert: str = ""
    docs_url: str = ""
    year: str = ""


class OwnerPatch(BaseModel):
    """Fields a seller may edit on their own listing."""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None
    category: Optional[str] = None


class AdminPatch(BaseModel):
    """Moderation flags an admin may toggle."""
    model_config = ConfigDict(extra="forbid")

    featured: Optional[bool] = None
    hidden: Optional[bool] = None

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional, Union

# --- Listings ---
class ListingFilters(BaseModel):
    category: Optional[str] = None
    status: Optional[str] = None
    user_id: Optional[str] = None
    condition: Optional[str] = None
    search: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None

# Columns a listing page may be ordered by
SortField = Literal["created_at", "updated_at", "price", "title"]

class ListingSort(BaseModel):
    field: SortField = "created_at"
    order: Literal["asc", "desc"] = "desc"

class ListingCreate(BaseModel):
    category: str
    program: Optional[str] = None
    course: Optional[str] = None
    title: str
    condition: str
    description: Optional[str] = None
    # Forms send text, API clients may send a number
    price: Optional[Union[float, str]] = None
    contact_cell: bool = False
    contact_email: bool = False
    contact_other: bool = False
    phone: Optional[str] = None
    email: Optional[str] = None
    other_contact: Optional[str] = None
    category_attributes: Dict[str, Any] = Field(default_factory=dict)

class ListingUpdate(BaseModel):
    category: Optional[str] = None
    program: Optional[str] = None
    course: Optional[str] = None
    title: Optional[str] = None
    condition: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    status: Optional[Literal["active", "inactive"]] = None
    contact_cell: Optional[bool] = None
    contact_email: Optional[bool] = None
    contact_other: Optional[bool] = None
    contact_phone: Optional[str] = None
    contact_email_value: Optional[str] = None
    contact_other_value: Optional[str] = None
    category_attributes: Optional[Dict[str, Any]] = None
    keep_image_ids: Optional[List[str]] = Field(
        None,
        description="Ids of the images to keep. Every other image of the listing is deleted."
    )

class ListingsPage(BaseModel):
    listings: List[Dict[str, Any]]
    total: int

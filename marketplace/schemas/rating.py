from pydantic import BaseModel, Field
from typing import Any, Dict, List

# --- Ratings (one per seller_id + user_id) ---
class RatingSubmit(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Stars given to the seller, 1 to 5")

class SellerRatings(BaseModel):
    ratings: List[Dict[str, Any]]
    average_rating: float
    total_votes: int

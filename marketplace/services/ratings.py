import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from postgrest.exceptions import APIError

from marketplace.services.errors import NO_ROWS

logger = logging.getLogger(__name__)


def get_seller_ratings(supabase, seller_id: str) -> Dict[str, Any]:
    try:
        ratings = supabase.table("ratings").select("*").eq("seller_id", seller_id).execute().data or []
    except Exception as e:
        logger.error(f"Error fetching ratings for seller {seller_id}: {str(e)}")
        raise

    total_votes = len(ratings)
    average_rating = sum(r["rating"] for r in ratings) / total_votes if total_votes else 0

    return {
        "ratings": ratings,
        "average_rating": average_rating,
        "total_votes": total_votes,
    }


def get_user_rating_for_seller(supabase, seller_id: str, user_id: str) -> Optional[Dict[str, Any]]:
    try:
        return supabase \
            .table("ratings") \
            .select("*") \
            .eq("seller_id", seller_id) \
            .eq("user_id", user_id) \
            .single() \
            .execute().data
    except APIError as e:
        if e.code == NO_ROWS:
            return None
        logger.error(f"Error fetching rating of user {user_id} for seller {seller_id}: {e.message}")
        raise


def submit_rating(supabase, seller_id: str, user_id: str, rating: int) -> Dict[str, Any]:
    """Insert the user's rating of a seller, or update it if one is already there."""
    try:
        existing = get_user_rating_for_seller(supabase, seller_id, user_id)

        if existing:
            response = supabase \
                .table("ratings") \
                .update({
                    "rating": rating,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }) \
                .eq("seller_id", seller_id) \
                .eq("user_id", user_id) \
                .execute()
        else:
            response = supabase.table("ratings").insert({
                "seller_id": seller_id,
                "user_id": user_id,
                "rating": rating,
            }).execute()
    except Exception as e:
        logger.error(f"Error submitting rating for seller {seller_id}: {str(e)}")
        raise

    return response.data[0]


def delete_rating(supabase, seller_id: str, user_id: str) -> None:
    try:
        supabase.table("ratings").delete().eq("seller_id", seller_id).eq("user_id", user_id).execute()
    except Exception as e:
        logger.error(f"Error deleting rating for seller {seller_id}: {str(e)}")
        raise

from fastapi import APIRouter, Depends
from marketplace.dependencies.auth import supabase_client, user_supabase_client
from marketplace.schemas.rating import RatingSubmit, SellerRatings
from marketplace.services.ratings import delete_rating, get_seller_ratings, get_user_rating_for_seller, submit_rating

router = APIRouter()

# -------- Ratings --------
# Sellers rating themselves is blocked in the client, not here

@router.get("/seller/{seller_id}", response_model=SellerRatings)
def seller_ratings(seller_id: str, supabase=Depends(supabase_client)):
    return get_seller_ratings(supabase, seller_id)

@router.get("/seller/{seller_id}/mine")
def my_rating_for_seller(seller_id: str, context=Depends(user_supabase_client)):
    supabase = context["supabase"]
    user_id = context["user_id"]
    return {"rating": get_user_rating_for_seller(supabase, seller_id, user_id)}

@router.put("/seller/{seller_id}")
def rate_seller(seller_id: str, payload: RatingSubmit, context=Depends(user_supabase_client)):
    supabase = context["supabase"]
    user_id = context["user_id"]
    return submit_rating(supabase, seller_id, user_id, payload.rating)

@router.delete("/seller/{seller_id}")
def remove_rating(seller_id: str, context=Depends(user_supabase_client)):
    supabase = context["supabase"]
    user_id = context["user_id"]
    delete_rating(supabase, seller_id, user_id)
    return {"message": "Deleted"}

from fastapi import APIRouter, Depends, Header
from typing import Optional
from marketplace.dependencies.auth import user_supabase_client
from marketplace.schemas.preferences import Favorites, LanguageUpdate
from marketplace.services.preferences import get_favorites, get_language, set_language, toggle_favorite

router = APIRouter()

# -------- Favorites --------
@router.get("/favorites", response_model=Favorites)
def my_favorites(context=Depends(user_supabase_client)):
    return {"favorites": get_favorites(context["supabase"], context["user_id"])}

@router.post("/favorites/{listing_id}", response_model=Favorites)
def toggle_my_favorite(listing_id: str, context=Depends(user_supabase_client)):
    return {"favorites": toggle_favorite(context["supabase"], context["user_id"], listing_id)}

# -------- Language --------
@router.get("/language")
def my_language(
    accept_language: Optional[str] = Header(None),
    context=Depends(user_supabase_client),
):
    return {"language": get_language(context["supabase"], context["user_id"], accept_language)}

@router.put("/language")
def change_my_language(payload: LanguageUpdate, context=Depends(user_supabase_client)):
    return {"language": set_language(context["supabase"], context["user_id"], payload.language)}

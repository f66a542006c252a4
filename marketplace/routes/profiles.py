from fastapi import APIRouter, Depends
from marketplace.dependencies.auth import user_supabase_client
from marketplace.schemas.profile import Profile, ProfileUpdate
from marketplace.services.profiles import get_profile, update_profile

router = APIRouter()

# -------- Profiles --------
@router.get("/me", response_model=Profile)
def my_profile(context=Depends(user_supabase_client)):
    return get_profile(context["supabase"], context["user_id"])

@router.put("/me", response_model=Profile)
def edit_my_profile(changes: ProfileUpdate, context=Depends(user_supabase_client)):
    return update_profile(context["supabase"], context["user_id"], changes)

@router.get("/{user_id}", response_model=Profile)
def get_user_profile(user_id: str, context=Depends(user_supabase_client)):
    return get_profile(context["supabase"], user_id)

from fastapi import APIRouter, Depends, HTTPException
from marketplace.dependencies.auth import supabase_client, user_supabase_client
from marketplace.schemas.auth import LoginRequest, LogoutRequest, SignUpRequest
from marketplace.services.auth import sign_in, sign_out, sign_up
from marketplace.utils.validation import validate_signup

router = APIRouter()

@router.post("/signup", status_code=201)
def signup(form: SignUpRequest, supabase=Depends(supabase_client)):
    errors = validate_signup(form)
    if errors:
        raise HTTPException(status_code=400, detail=errors)
    return sign_up(supabase, form)

@router.post("/login")
def login(credentials: LoginRequest, supabase=Depends(supabase_client)):
    return sign_in(supabase, credentials.email, credentials.password)

@router.post("/logout")
def logout(payload: LogoutRequest, context=Depends(user_supabase_client), supabase=Depends(supabase_client)):
    sign_out(supabase, context["access_token"], payload.refresh_token)
    return {"message": "Signed out"}

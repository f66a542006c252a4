import logging
from typing import Any, Dict

from postgrest.exceptions import APIError
from supabase import AuthApiError

from marketplace.schemas.auth import SignUpRequest
from marketplace.services.errors import NO_ROWS, AuthenticationRequired, InvalidRequest, TooManyRequests

logger = logging.getLogger(__name__)


def sign_up(supabase, form: SignUpRequest) -> Dict[str, Any]:
    """
    Create the auth user. The profile row is created from the metadata by a
    database trigger.
    """
    try:
        response = supabase.auth.sign_up({
            "email": form.email,
            "password": form.password,
            "options": {
                "data": {
                    "first_name": form.first_name,
                    "last_name": form.last_name,
                    "study_cycle": form.study_cycle,
                    "school_year": form.school_year,
                },
            },
        })
    except AuthApiError as e:
        logger.error(f"Sign-up failed for {form.email}: {e.message}")
        if e.status == 429:
            raise TooManyRequests("Too many attempts, please try again later")
        raise InvalidRequest(e.message)

    logger.info(f"Signed up user {response.user.id if response.user else None}")
    return {
        "user_id": response.user.id if response.user else None,
        # No session until the email address is confirmed
        "email_confirmation_required": response.session is None,
    }


def sign_in(supabase, email: str, password: str) -> Dict[str, Any]:
    try:
        response = supabase.auth.sign_in_with_password({"email": email, "password": password})
    except AuthApiError as e:
        logger.warning(f"Sign-in failed for {email}: {e.message}")
        if e.status == 429:
            raise TooManyRequests("Too many attempts, please try again later")
        raise AuthenticationRequired("Invalid email or password")

    user_id = response.user.id
    try:
        supabase.table("profiles").select("id").eq("id", user_id).single().execute()
    except APIError as e:
        # The trigger should have created it; a missing profile does not block sign-in
        if e.code != NO_ROWS:
            logger.error(f"Error fetching profile {user_id}: {e.message}")
        else:
            logger.warning(f"User {user_id} signed in without a profile row")

    session = response.session
    return {
        "user_id": user_id,
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_in": session.expires_in,
        "token_type": "bearer",
    }


def sign_out(supabase, access_token: str, refresh_token: str) -> None:
    try:
        supabase.auth.set_session(access_token, refresh_token)
        supabase.auth.sign_out()
    except AuthApiError as e:
        logger.error(f"Sign-out failed: {e.message}")
        raise AuthenticationRequired(e.message)
